"""InspectFlow CLI - async commands for imports and review.

Commands:
- init: Initialize database schema
- seed-builders: Load the known builder abbreviation dictionary
- import: Run one calendar import batch (RunImport)
- logs: Show recent import runs
- review list/approve/reject: Work the manual review queue
- web serve: Run the operator API
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from inspectflow.calendar.source import JsonFileEventSource
from inspectflow.config import get_config
from inspectflow.core.logging import configure_logging
from inspectflow.db.connection import close_db, get_session, init_db
from inspectflow.errors import InvalidState, NotFound
from inspectflow.models import EventStatus
from inspectflow.pipeline.import_log import list_recent_logs
from inspectflow.pipeline.orchestrator import run_import
from inspectflow.review import (
    ReviewFilters,
    approve_event,
    fetch_review_queue,
    reject_event,
)
from inspectflow.seeds.builders import seed_builders
from inspectflow.utils.timeutils import parse_iso

app = typer.Typer(
    name="inspectflow",
    help="InspectFlow - calendar import and inspector assignment",
    no_args_is_help=True,
)
review_cli = typer.Typer(help="Manual review queue")
app.add_typer(review_cli, name="review")

web_cli = typer.Typer(help="Operator API")
app.add_typer(web_cli, name="web")

console = Console()


def _run(coro):
    """Run a coroutine and dispose the engine bound to its event loop."""

    async def _wrapped():
        try:
            return await coro
        finally:
            await close_db()

    return asyncio.run(_wrapped())


def _parse_since(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parse_iso(value)
    except ValueError as e:
        raise typer.BadParameter(f"Invalid ISO timestamp: {value}") from e


@app.callback()
def main_callback():
    configure_logging(get_config())


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")
    if drop:
        console.print("[yellow]Dropping existing tables...[/yellow]")

    _run(init_db(drop=drop))
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command(name="seed-builders")
def seed_builders_cmd():
    """Load known builders and their abbreviations (idempotent)."""

    async def _seed():
        async with get_session() as session:
            return await seed_builders(session)

    counts = _run(_seed())
    console.print(
        f"[bold green]✓[/bold green] {counts['builders']} builders, "
        f"{counts['abbreviations']} abbreviations added"
    )


@app.command(name="import")
def import_cmd(
    calendar_id: str | None = typer.Option(None, "--calendar", help="Calendar ID"),
    since: str | None = typer.Option(None, "--since", help="ISO start of fetch window"),
    from_file: Path | None = typer.Option(
        None, "--from-file", help="Read events from a JSON file instead of the calendar API"
    ),
):
    """Run one calendar import batch and print its summary."""
    config = get_config()
    calendar = calendar_id or config.calendar.calendar_id
    source = JsonFileEventSource(from_file) if from_file else None

    console.print(f"[bold]Importing calendar:[/bold] {calendar}")
    summary = _run(
        run_import(
            calendar_id=calendar,
            since=_parse_since(since),
            source=source,
            config=config,
            triggered_by="cli",
        )
    )

    table = Table(title="Import Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Processed", str(summary.events_processed))
    table.add_row("Jobs created", str(summary.jobs_created))
    table.add_row("Queued for review", str(summary.events_queued))
    table.add_row("Rejected", str(summary.events_rejected))
    table.add_row("Duplicates", str(summary.events_duplicate))
    table.add_row("Skipped (untitled)", str(summary.events_skipped))
    table.add_row("Errored", str(summary.events_errored))
    table.add_row("Jobs assigned", str(summary.jobs_assigned))
    table.add_row("Jobs needing manual assignment", str(summary.jobs_unassigned))
    console.print(table)

    if summary.error_text:
        console.print(f"[red]✗[/red] {summary.error_text}")
        raise typer.Exit(code=1)
    console.print(f"[bold green]✓[/bold green] Import finished in {summary.duration_seconds:.2f}s")


@app.command()
def logs(
    limit: int = typer.Option(10, "--limit", "-n", help="Show last N import runs"),
    calendar_id: str | None = typer.Option(None, "--calendar", help="Filter by calendar"),
):
    """Show recent import runs."""

    async def _logs():
        async with get_session() as session:
            return await list_recent_logs(session, limit=limit, calendar_id=calendar_id)

    rows = _run(_logs())
    if not rows:
        console.print("[yellow]No import runs found[/yellow]")
        return

    table = Table(title=f"Last {limit} Import Runs")
    table.add_column("Run (UTC)")
    table.add_column("Calendar")
    table.add_column("Processed", justify="right")
    table.add_column("Created", justify="right")
    table.add_column("Queued", justify="right")
    table.add_column("Errored", justify="right")
    table.add_column("Error", style="red")
    for row in rows:
        table.add_row(
            row.run_timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            row.calendar_id,
            str(row.events_processed),
            str(row.jobs_created),
            str(row.events_queued),
            str(row.events_errored),
            row.error_text or "",
        )
    console.print(table)


@review_cli.command("list")
def review_list_cmd(
    status: str = typer.Option("pending", "--status", help="pending|approved|rejected|auto_created|all"),
    min_confidence: int | None = typer.Option(None, "--min-confidence"),
    max_confidence: int | None = typer.Option(None, "--max-confidence"),
    start: str | None = typer.Option(None, "--start", help="ISO start of event window"),
    end: str | None = typer.Option(None, "--end", help="ISO end of event window"),
    page: int = typer.Option(1, "--page"),
    page_size: int = typer.Option(50, "--page-size"),
):
    """List calendar events in the review queue."""
    try:
        status_filter = None if status == "all" else EventStatus(status)
    except ValueError as e:
        raise typer.BadParameter(f"Unknown status: {status}") from e

    filters = ReviewFilters(
        status=status_filter,
        min_confidence=min_confidence,
        max_confidence=max_confidence,
        start=_parse_since(start),
        end=_parse_since(end),
    )

    async def _list():
        async with get_session() as session:
            return await fetch_review_queue(session, filters, page=page, page_size=page_size)

    result = _run(_list())

    table = Table(title=f"Review Queue ({result.total} total, page {result.page})")
    table.add_column("ID", style="dim")
    table.add_column("Start")
    table.add_column("Title")
    table.add_column("Builder guess")
    table.add_column("Job type")
    table.add_column("Score", justify="right")
    table.add_column("Status")
    for item in result.items:
        table.add_row(
            str(item.id),
            item.start_time.strftime("%Y-%m-%d %H:%M") if item.start_time else "-",
            item.title,
            item.builder_name_guess or "-",
            item.job_type_guess or "-",
            str(item.confidence_score),
            item.status.value,
        )
    console.print(table)


@review_cli.command("approve")
def review_approve_cmd(
    event_id: UUID = typer.Argument(..., help="Pending calendar event ID"),
    builder_id: UUID = typer.Option(..., "--builder", help="Builder ID for the job"),
    job_type: str = typer.Option(..., "--job-type", help="Inspection type, e.g. rough_duct"),
    reviewer: str = typer.Option("cli", "--by", help="Reviewer name/email for audit trail"),
):
    """Approve a pending event and create its job."""
    config = get_config()

    async def _approve():
        async with get_session() as session:
            return await approve_event(
                session,
                event_id,
                builder_id=builder_id,
                job_type=job_type,
                reviewer=reviewer,
                assignment_config=config.assignment,
            )

    try:
        result = _run(_approve())
    except (NotFound, InvalidState, ValueError) as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print(f"[bold green]✓[/bold green] Approved; job {result.job_id} created")
    if result.assignment and result.assignment.assigned:
        console.print(f"  Assigned to inspector {result.assignment.inspector_id}")
    for warning in result.warnings:
        console.print(f"  [yellow]⚠[/yellow] {warning}")


@review_cli.command("reject")
def review_reject_cmd(
    event_id: UUID = typer.Argument(..., help="Pending calendar event ID"),
    reason: str = typer.Option(..., "--reason", help="Why the event is rejected"),
    reviewer: str = typer.Option("cli", "--by", help="Reviewer name/email for audit trail"),
):
    """Reject a pending event; no job is created."""

    async def _reject():
        async with get_session() as session:
            return await reject_event(session, event_id, reason=reason, reviewer=reviewer)

    try:
        _run(_reject())
    except (NotFound, InvalidState) as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print(f"[bold green]✓[/bold green] Rejected event {event_id}")


@web_cli.command("serve")
def web_serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind"),
    port: int = typer.Option(8001, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
    """Run the FastAPI operator API."""
    import uvicorn

    typer.echo(f"Starting operator API on http://{host}:{port}")
    uvicorn.run("inspectflow.web.app:app", host=host, port=port, reload=reload, workers=1)


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
