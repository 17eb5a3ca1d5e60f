"""Review queue routes.

Routes:
- GET  /review-queue              - Paginated, filterable event list
- GET  /review-queue/{id}         - Single event
- POST /review-queue/{id}/approve - Create a job from a pending event
- POST /review-queue/{id}/reject  - Close a pending event without a job
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from inspectflow.config import AppConfig
from inspectflow.db.connection import get_session
from inspectflow.errors import InvalidState, NotFound
from inspectflow.models import EventStatus
from inspectflow.review import (
    ReviewFilters,
    approve_event,
    fetch_review_event,
    fetch_review_queue,
    reject_event,
)
from inspectflow.review.repository import MAX_PAGE_SIZE
from inspectflow.web.dependencies import get_app_config, get_reviewer, to_http_error
from inspectflow.web.models import (
    ApprovalOut,
    ApproveRequest,
    RejectRequest,
    ReviewEventOut,
    ReviewPageOut,
)

router = APIRouter(prefix="/review-queue", tags=["review"])

DEFAULT_REVIEWER = "operator"


def _parse_status(status: str | None) -> EventStatus | None:
    if not status or status.lower() == "all":
        return None
    try:
        return EventStatus(status.lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid status filter: {status}") from None


@router.get("", response_model=ReviewPageOut)
async def list_review_queue(
    status: str | None = Query(default=EventStatus.PENDING.value),
    min_confidence: int | None = Query(default=None, alias="minConfidence", ge=0, le=100),
    max_confidence: int | None = Query(default=None, alias="maxConfidence", ge=0, le=100),
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, alias="pageSize", ge=1, le=MAX_PAGE_SIZE),
):
    """List calendar events for triage (pending by default; ``status=all`` for everything)."""
    filters = ReviewFilters(
        status=_parse_status(status),
        min_confidence=min_confidence,
        max_confidence=max_confidence,
        start=start,
        end=end,
    )
    async with get_session() as session:
        return await fetch_review_queue(session, filters, page=page, page_size=page_size)


@router.get("/{event_id}", response_model=ReviewEventOut)
async def get_review_event(event_id: UUID):
    try:
        async with get_session() as session:
            return await fetch_review_event(session, event_id)
    except NotFound as e:
        raise to_http_error(e) from e


@router.post("/{event_id}/approve", response_model=ApprovalOut)
async def approve_review_event(
    event_id: UUID,
    body: ApproveRequest,
    header_reviewer: str | None = Depends(get_reviewer),
    config: AppConfig = Depends(get_app_config),
):
    """Approve a pending event; 404 if absent, 409 if already resolved."""
    reviewer = body.reviewer or header_reviewer or DEFAULT_REVIEWER
    try:
        async with get_session() as session:
            return await approve_event(
                session,
                event_id,
                builder_id=body.builder_id,
                job_type=body.job_type,
                reviewer=reviewer,
                assignment_config=config.assignment,
            )
    except (NotFound, InvalidState, ValueError) as e:
        raise to_http_error(e) from e


@router.post("/{event_id}/reject", response_model=ReviewEventOut)
async def reject_review_event(
    event_id: UUID,
    body: RejectRequest,
    header_reviewer: str | None = Depends(get_reviewer),
):
    """Reject a pending event; 404 if absent, 409 if already resolved."""
    reviewer = body.reviewer or header_reviewer or DEFAULT_REVIEWER
    try:
        async with get_session() as session:
            return await reject_event(session, event_id, reason=body.reason, reviewer=reviewer)
    except (NotFound, InvalidState) as e:
        raise to_http_error(e) from e
