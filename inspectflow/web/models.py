"""Request/response models for the operator API.

JSON uses camelCase keys; Python attributes stay snake_case.

Usage:
    from inspectflow.web.models import ApproveRequest

    @router.post("/review-queue/{event_id}/approve")
    async def approve(event_id: UUID, body: ApproveRequest):
        ...
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from inspectflow.models import AssignmentStatus, EventStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ============================================================================
# Review Queue Models
# ============================================================================


class ApproveRequest(CamelModel):
    """Used by: POST /review-queue/{id}/approve"""

    builder_id: UUID
    job_type: str = Field(min_length=1)
    reviewer: Optional[str] = None


class RejectRequest(CamelModel):
    """Used by: POST /review-queue/{id}/reject"""

    reason: str = Field(min_length=1)
    reviewer: Optional[str] = None


class ReviewEventOut(CamelModel):
    id: UUID
    external_event_id: str
    calendar_id: str
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    builder_name_guess: Optional[str] = None
    job_type_guess: Optional[str] = None
    address_guess: Optional[str] = None
    urgency: str
    matched_builder_id: Optional[UUID] = None
    matched_abbreviation: Optional[str] = None
    match_method: Optional[str] = None
    confidence_score: int
    score_details: Optional[dict[str, Any]] = None
    status: EventStatus
    job_id: Optional[UUID] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_reason: Optional[str] = None
    seen_count: int = 1
    created_at: Optional[datetime] = None


class ReviewPageOut(CamelModel):
    items: list[ReviewEventOut]
    total: int
    page: int
    page_size: int


class AssignmentOut(CamelModel):
    status: AssignmentStatus
    inspector_id: Optional[UUID] = None
    score: Optional[float] = None
    reasons: list[str] = Field(default_factory=list)


class ApprovalOut(CamelModel):
    event: ReviewEventOut
    job_id: UUID
    assignment: Optional[AssignmentOut] = None
    warnings: list[str] = Field(default_factory=list)


# ============================================================================
# Import Models
# ============================================================================


class RunImportRequest(CamelModel):
    """Used by: POST /imports/run"""

    calendar_id: Optional[str] = None
    since: Optional[datetime] = None


class ImportLogOut(CamelModel):
    id: UUID
    calendar_id: str
    calendar_name: Optional[str] = None
    run_timestamp: datetime
    events_processed: int
    jobs_created: int
    events_queued: int
    events_rejected: int
    events_duplicate: int
    events_errored: int
    events_skipped: int = 0
    jobs_assigned: int
    jobs_unassigned: int = 0
    error_text: Optional[str] = None
    duration_seconds: float
    triggered_by: Optional[str] = None


# ============================================================================
# Job Models
# ============================================================================


class UnassignedJobOut(CamelModel):
    id: UUID
    name: str
    builder_id: UUID
    inspection_type: str
    address: str
    territory: Optional[str] = None
    scheduled_date: datetime
    urgency: str
    needs_manual_assignment: bool


class AssignJobRequest(CamelModel):
    """Used by: POST /jobs/{id}/assign and /jobs/{id}/reassign"""

    inspector_id: UUID
    assigned_by: str = Field(min_length=1)
    reason: Optional[str] = None


class UnassignJobRequest(CamelModel):
    """Used by: POST /jobs/{id}/unassign"""

    assigned_by: str = Field(min_length=1)
    reason: Optional[str] = None
