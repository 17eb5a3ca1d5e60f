"""Review queue business operations (approve/reject)."""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from inspectflow.assignment.engine import AssignmentEngine
from inspectflow.assignment.workload import WorkloadLocks
from inspectflow.config import AssignmentConfig
from inspectflow.db.models import PendingCalendarEventModel
from inspectflow.directory import SqlBuilderDirectory, SqlJobSink
from inspectflow.errors import InvalidState
from inspectflow.models import EventStatus, JobSpec, UrgencyLevel
from inspectflow.parsing.event_parser import derive_territory
from inspectflow.parsing.vocabulary import normalize_job_type
from inspectflow.pipeline.orchestrator import job_name_for
from inspectflow.review.models import ApprovalResult, ReviewEvent
from inspectflow.review.repository import get_event_model
from inspectflow.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)


async def _claim(
    session: AsyncSession,
    event: PendingCalendarEventModel,
    target: EventStatus,
    values: dict,
) -> None:
    """Move a pending event to ``target`` only if it is still pending.

    Raises:
        InvalidState: If the status check fails here or in the database
    """
    EventStatus(event.status).transition(target)

    stmt = (
        update(PendingCalendarEventModel)
        .where(
            PendingCalendarEventModel.id == event.id,
            PendingCalendarEventModel.status == EventStatus.PENDING.value,
        )
        .values(status=target.value, **values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    if result.rowcount != 1:
        # Another reviewer resolved it between our read and write
        raise InvalidState(
            f"Calendar event {event.id} was already resolved",
            current_status=event.status,
        )


async def approve_event(
    session: AsyncSession,
    event_id: UUID,
    builder_id: UUID,
    job_type: str,
    reviewer: str,
    assignment_config: AssignmentConfig | None = None,
    locks: WorkloadLocks | None = None,
    now: datetime | None = None,
) -> ApprovalResult:
    """Approve a pending event: create its job and hand it to assignment.

    The reviewer may correct the builder and job type the parser guessed.

    Raises:
        NotFound: If the event or builder does not exist
        InvalidState: If the event is no longer pending
        ValueError: If the job type is blank
    """
    event = await get_event_model(session, event_id)
    EventStatus(event.status).approve()

    canonical_type = normalize_job_type(job_type)
    if not canonical_type:
        raise ValueError("job_type is required")

    await SqlBuilderDirectory(session).get_builder(builder_id)

    reviewed_at = as_utc(now) if now else utcnow()
    await _claim(
        session,
        event,
        EventStatus.APPROVED,
        {
            "reviewed_by": reviewer,
            "reviewed_at": reviewed_at,
            "matched_builder_id": builder_id,
            "job_type_guess": canonical_type,
        },
    )

    address = event.address_guess or event.location or event.title or "TBD"
    payload = event.raw_payload or {}
    job_id = await SqlJobSink(session).create_job(
        JobSpec(
            name=job_name_for(canonical_type, event.location, event.title),
            builder_id=builder_id,
            inspection_type=canonical_type,
            address=address,
            territory=derive_territory(address),
            latitude=payload.get("latitude"),
            longitude=payload.get("longitude"),
            scheduled_date=as_utc(event.start_time) if event.start_time else reviewed_at,
            urgency=UrgencyLevel(event.urgency),
            source_event_id=event.external_event_id,
            notes=f"Approved from calendar event {event.external_event_id} by {reviewer}",
            created_by=reviewer,
        )
    )
    await session.execute(
        update(PendingCalendarEventModel)
        .where(PendingCalendarEventModel.id == event.id)
        .values(job_id=job_id)
        .execution_options(synchronize_session=False)
    )

    engine = AssignmentEngine(session, assignment_config or AssignmentConfig(), locks)
    assignment = await engine.assign(job_id)

    warnings = []
    if not assignment.assigned:
        warnings.append("No eligible inspector; job needs manual assignment")

    logger.info(
        "calendar_event_approved: event=%s job=%s reviewer=%s assigned=%s",
        event.id,
        job_id,
        reviewer,
        assignment.inspector_id,
    )
    refreshed = await get_event_model(session, event_id)
    return ApprovalResult(
        event=ReviewEvent.from_model(refreshed),
        job_id=job_id,
        assignment=assignment,
        warnings=warnings,
    )


async def reject_event(
    session: AsyncSession,
    event_id: UUID,
    reason: str,
    reviewer: str,
    now: datetime | None = None,
) -> ReviewEvent:
    """Reject a pending event. No job is created.

    Raises:
        NotFound: If the event does not exist
        InvalidState: If the event is no longer pending
    """
    event = await get_event_model(session, event_id)
    EventStatus(event.status).reject()

    await _claim(
        session,
        event,
        EventStatus.REJECTED,
        {
            "reviewed_by": reviewer,
            "reviewed_at": as_utc(now) if now else utcnow(),
            "review_reason": reason.strip() if reason else None,
        },
    )

    logger.info("calendar_event_rejected: event=%s reviewer=%s", event.id, reviewer)
    return ReviewEvent.from_model(await get_event_model(session, event_id))
