"""Append-only calendar import log."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inspectflow.db.models import CalendarImportLogModel
from inspectflow.pipeline.types import ImportSummary


async def write_import_log(
    session: AsyncSession,
    summary: ImportSummary,
    triggered_by: str | None = None,
) -> CalendarImportLogModel:
    """Persist one summary row for a finished (or failed) batch."""
    entry = CalendarImportLogModel(
        calendar_id=summary.calendar_id,
        calendar_name=summary.calendar_name,
        run_timestamp=summary.run_timestamp,
        events_processed=summary.events_processed,
        jobs_created=summary.jobs_created,
        events_queued=summary.events_queued,
        events_rejected=summary.events_rejected,
        events_duplicate=summary.events_duplicate,
        events_errored=summary.events_errored,
        events_skipped=summary.events_skipped,
        jobs_assigned=summary.jobs_assigned,
        jobs_unassigned=summary.jobs_unassigned,
        error_text=summary.error_text,
        duration_seconds=summary.duration_seconds,
        triggered_by=triggered_by,
    )
    session.add(entry)
    await session.flush()
    summary.log_id = entry.id
    return entry


async def list_recent_logs(
    session: AsyncSession,
    limit: int = 20,
    calendar_id: str | None = None,
) -> list[CalendarImportLogModel]:
    stmt = select(CalendarImportLogModel)
    if calendar_id:
        stmt = stmt.where(CalendarImportLogModel.calendar_id == calendar_id)
    stmt = stmt.order_by(CalendarImportLogModel.run_timestamp.desc()).limit(limit)
    return list((await session.execute(stmt)).scalars().all())
