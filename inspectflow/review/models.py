"""Data structures consumed by the review queue UI and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from inspectflow.db.models import PendingCalendarEventModel
from inspectflow.models import AssignmentResult, EventStatus


@dataclass(slots=True)
class ReviewFilters:
    status: EventStatus | None = EventStatus.PENDING
    min_confidence: int | None = None
    max_confidence: int | None = None
    start: datetime | None = None
    end: datetime | None = None


@dataclass(slots=True)
class ReviewEvent:
    id: UUID
    external_event_id: str
    calendar_id: str
    title: str
    description: str | None
    location: str | None
    start_time: datetime | None
    end_time: datetime | None
    builder_name_guess: str | None
    job_type_guess: str | None
    address_guess: str | None
    urgency: str
    matched_builder_id: UUID | None
    matched_abbreviation: str | None
    match_method: str | None
    confidence_score: int
    score_details: dict[str, Any] | None
    status: EventStatus
    job_id: UUID | None
    reviewed_by: str | None
    reviewed_at: datetime | None
    review_reason: str | None
    seen_count: int
    created_at: datetime | None

    @classmethod
    def from_model(cls, model: PendingCalendarEventModel) -> ReviewEvent:
        return cls(
            id=model.id,
            external_event_id=model.external_event_id,
            calendar_id=model.calendar_id,
            title=model.title,
            description=model.description,
            location=model.location,
            start_time=model.start_time,
            end_time=model.end_time,
            builder_name_guess=model.builder_name_guess,
            job_type_guess=model.job_type_guess,
            address_guess=model.address_guess,
            urgency=model.urgency,
            matched_builder_id=model.matched_builder_id,
            matched_abbreviation=model.matched_abbreviation,
            match_method=model.match_method,
            confidence_score=model.confidence_score,
            score_details=model.score_details,
            status=EventStatus(model.status),
            job_id=model.job_id,
            reviewed_by=model.reviewed_by,
            reviewed_at=model.reviewed_at,
            review_reason=model.review_reason,
            seen_count=model.seen_count,
            created_at=model.created_at,
        )

    @property
    def is_pending(self) -> bool:
        return self.status is EventStatus.PENDING


@dataclass(slots=True)
class ReviewPage:
    items: list[ReviewEvent]
    total: int
    page: int
    page_size: int

    @property
    def pages(self) -> int:
        return (self.total + self.page_size - 1) // self.page_size if self.page_size else 0


@dataclass(slots=True)
class ApprovalResult:
    event: ReviewEvent
    job_id: UUID
    assignment: AssignmentResult | None = None
    warnings: list[str] = field(default_factory=list)
