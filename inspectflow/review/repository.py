"""Database queries for the review queue."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inspectflow.db.models import PendingCalendarEventModel
from inspectflow.errors import NotFound
from inspectflow.review.models import ReviewEvent, ReviewFilters, ReviewPage

MAX_PAGE_SIZE = 200


def _apply_filters(stmt, filters: ReviewFilters):
    if filters.status is not None:
        stmt = stmt.where(PendingCalendarEventModel.status == filters.status.value)
    if filters.min_confidence is not None:
        stmt = stmt.where(PendingCalendarEventModel.confidence_score >= filters.min_confidence)
    if filters.max_confidence is not None:
        stmt = stmt.where(PendingCalendarEventModel.confidence_score <= filters.max_confidence)
    if filters.start is not None:
        stmt = stmt.where(PendingCalendarEventModel.start_time >= filters.start)
    if filters.end is not None:
        stmt = stmt.where(PendingCalendarEventModel.start_time <= filters.end)
    return stmt


async def fetch_review_queue(
    session: AsyncSession,
    filters: ReviewFilters | None = None,
    page: int = 1,
    page_size: int = 50,
) -> ReviewPage:
    """Return one page of calendar events for operator triage.

    Args:
        filters: Status, confidence range and start-time range (pending by default)
        page: 1-based page number
        page_size: Items per page, capped at MAX_PAGE_SIZE
    """
    filters = filters or ReviewFilters()
    page = max(page, 1)
    page_size = max(1, min(page_size, MAX_PAGE_SIZE))

    total = await session.scalar(
        _apply_filters(select(func.count(PendingCalendarEventModel.id)), filters)
    )

    stmt = (
        _apply_filters(select(PendingCalendarEventModel), filters)
        .order_by(
            PendingCalendarEventModel.start_time.asc().nulls_last(),
            PendingCalendarEventModel.confidence_score.desc(),
            PendingCalendarEventModel.external_event_id,
        )
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    rows = (await session.execute(stmt)).scalars().all()

    return ReviewPage(
        items=[ReviewEvent.from_model(row) for row in rows],
        total=total or 0,
        page=page,
        page_size=page_size,
    )


async def get_event_model(session: AsyncSession, event_id: UUID) -> PendingCalendarEventModel:
    event = await session.get(PendingCalendarEventModel, event_id, populate_existing=True)
    if event is None:
        raise NotFound("Calendar event", event_id)
    return event


async def fetch_review_event(session: AsyncSession, event_id: UUID) -> ReviewEvent:
    """Raises NotFound if the event does not exist."""
    return ReviewEvent.from_model(await get_event_model(session, event_id))
