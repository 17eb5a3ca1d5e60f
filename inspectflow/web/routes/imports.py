"""Calendar import routes.

Routes:
- GET  /imports     - Recent import log rows
- POST /imports/run - Run one batch now and return its summary
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from inspectflow.config import AppConfig
from inspectflow.db.connection import get_session
from inspectflow.pipeline.import_log import list_recent_logs
from inspectflow.pipeline.orchestrator import run_import
from inspectflow.web.dependencies import get_app_config
from inspectflow.web.models import ImportLogOut, RunImportRequest

router = APIRouter(prefix="/imports", tags=["imports"])


@router.get("", response_model=list[ImportLogOut])
async def list_imports(
    limit: int = Query(default=20, ge=1, le=200),
    calendar_id: str | None = Query(default=None, alias="calendarId"),
):
    async with get_session() as session:
        return await list_recent_logs(session, limit=limit, calendar_id=calendar_id)


@router.post("/run")
async def run_calendar_import(
    body: RunImportRequest,
    config: AppConfig = Depends(get_app_config),
):
    """Run an import batch synchronously.

    Adapter failures are reported in ``errorText``; the request itself succeeds.
    """
    summary = await run_import(
        calendar_id=body.calendar_id,
        since=body.since,
        config=config,
        triggered_by="api",
    )
    data = summary.to_dict()
    return {
        "logId": data["log_id"],
        "calendarId": data["calendar_id"],
        "status": data["status"],
        "runTimestamp": data["run_timestamp"],
        "eventsProcessed": data["events_processed"],
        "jobsCreated": data["jobs_created"],
        "eventsQueued": data["events_queued"],
        "eventsRejected": data["events_rejected"],
        "eventsDuplicate": data["events_duplicate"],
        "eventsErrored": data["events_errored"],
        "eventsSkipped": data["events_skipped"],
        "jobsAssigned": data["jobs_assigned"],
        "jobsUnassigned": data["jobs_unassigned"],
        "errorText": data["error_text"],
        "durationSeconds": data["duration_seconds"],
    }
