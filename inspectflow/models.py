"""InspectFlow Pydantic models for type-safe data validation.

Domain types shared by the parser, matcher, scorer, router and the
assignment engine. Persistence models live in inspectflow.db.models.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from inspectflow.errors import InvalidTransition


class UrgencyLevel(str, Enum):
    """Urgency cue extracted from event text."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EventStatus(str, Enum):
    """Lifecycle of a pending calendar event.

    ``pending`` is the only non-terminal state; the router may also create
    records directly in ``auto_created`` or ``rejected``.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    AUTO_CREATED = "auto_created"

    @property
    def is_terminal(self) -> bool:
        return self is not EventStatus.PENDING

    def can_transition_to(self, target: EventStatus) -> bool:
        return target in _ALLOWED_TRANSITIONS[self]

    def transition(self, target: EventStatus) -> EventStatus:
        """Return ``target`` if the move is legal.

        Raises:
            InvalidTransition: If this status cannot move to ``target``
        """
        if not self.can_transition_to(target):
            raise InvalidTransition(self.value, target.value)
        return target

    def approve(self) -> EventStatus:
        return self.transition(EventStatus.APPROVED)

    def reject(self) -> EventStatus:
        return self.transition(EventStatus.REJECTED)


_ALLOWED_TRANSITIONS: dict[EventStatus, frozenset[EventStatus]] = {
    EventStatus.PENDING: frozenset({EventStatus.APPROVED, EventStatus.REJECTED}),
    EventStatus.APPROVED: frozenset(),
    EventStatus.REJECTED: frozenset(),
    EventStatus.AUTO_CREATED: frozenset(),
}


class RoutingOutcome(str, Enum):
    """Decision taken for one event in one batch."""

    AUTO_CREATE = "auto_create"
    QUEUE = "queue"
    REJECT = "reject"
    DUPLICATE = "duplicate"

    @property
    def initial_status(self) -> EventStatus | None:
        """Status a newly created record starts in (None for duplicates)."""
        return {
            RoutingOutcome.AUTO_CREATE: EventStatus.AUTO_CREATED,
            RoutingOutcome.QUEUE: EventStatus.PENDING,
            RoutingOutcome.REJECT: EventStatus.REJECTED,
            RoutingOutcome.DUPLICATE: None,
        }[self]


class MatchMethod(str, Enum):
    """How a builder guess was resolved against the abbreviation dictionary."""

    EXACT_PRIMARY = "exact_primary"  # → 100
    EXACT_SECONDARY = "exact_secondary"  # → 90
    SUBSTRING = "substring"  # → 70
    FUZZY = "fuzzy"  # → 0-60
    NONE = "none"  # → 0


class DateSanity(str, Enum):
    """Plausibility of an event's start time relative to the batch run."""

    SANE = "sane"
    UNKNOWN = "unknown"  # missing start, or too far in the future
    STALE = "stale"  # already past the grace window; disqualifying


class WorkloadLevel(str, Enum):
    """Derived daily workload bucket for an inspector."""

    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"
    OVERBOOKED = "overbooked"

    @property
    def rank(self) -> int:
        return list(WorkloadLevel).index(self)


class AssignmentAction(str, Enum):
    """Action recorded in assignment history."""

    AUTO_ASSIGNED = "auto_assigned"
    ASSIGNED = "assigned"
    REASSIGNED = "reassigned"
    UNASSIGNED = "unassigned"


class AssignmentStatus(str, Enum):
    ASSIGNED = "assigned"
    UNASSIGNABLE = "unassignable"


class RawCalendarEvent(BaseModel):
    """Event as delivered by the calendar source adapter."""

    external_id: str
    calendar_id: str
    title: str = ""
    description: str | None = None
    location: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    latitude: float | None = None
    longitude: float | None = None

    @field_validator("external_id")
    @classmethod
    def external_id_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("external_id must be non-empty")
        return v.strip()

    def payload(self) -> dict[str, Any]:
        """JSON-safe copy for audit storage."""
        return self.model_dump(mode="json")


class ParsedCandidate(BaseModel):
    """Structured guesses extracted from one event's free text."""

    builder_name_guess: str | None = None
    job_type_guess: str | None = None  # canonical job type, e.g. "rough_duct"
    job_type_keyword: str | None = None  # text that triggered the match
    job_type_quality: float = Field(default=0.0, ge=0.0, le=1.0)
    address_guess: str | None = None
    urgency: UrgencyLevel = UrgencyLevel.MEDIUM

    @property
    def has_job_type(self) -> bool:
        return self.job_type_guess is not None

    @property
    def has_address(self) -> bool:
        return bool(self.address_guess)


class BuilderAbbreviation(BaseModel):
    """One dictionary entry: an alias string pointing at a builder."""

    builder_id: UUID
    abbreviation: str
    is_primary: bool = False
    builder_name: str | None = None
    builder_job_count: int = 0


class Builder(BaseModel):
    id: UUID
    name: str
    total_jobs: int = 0


class BuilderMatch(BaseModel):
    """Result of looking a builder guess up in the dictionary."""

    builder_id: UUID | None = None
    score: int = Field(default=0, ge=0, le=100)
    abbreviation: str | None = None
    method: MatchMethod = MatchMethod.NONE
    similarity: float | None = None

    @property
    def matched(self) -> bool:
        return self.builder_id is not None


class ConfidenceSignals(BaseModel):
    """Inputs to the confidence scorer, each independently improvable."""

    builder_score: int = Field(default=0, ge=0, le=100)
    job_type_quality: float = Field(default=0.0, ge=0.0, le=1.0)
    has_address: bool = False
    date_sanity: DateSanity = DateSanity.UNKNOWN


class ConfidenceResult(BaseModel):
    score: int = Field(ge=0, le=100)
    details: dict[str, Any] = Field(default_factory=dict)


class JobSpec(BaseModel):
    """What the pipeline hands to the job sink."""

    name: str
    builder_id: UUID
    inspection_type: str
    address: str
    territory: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    scheduled_date: datetime
    urgency: UrgencyLevel = UrgencyLevel.MEDIUM
    source_event_id: str | None = None
    notes: str | None = None
    created_by: str = "system"

    @property
    def work_date(self) -> date:
        return self.scheduled_date.date()


class AssignmentResult(BaseModel):
    """Outcome of one assignment attempt."""

    job_id: UUID
    status: AssignmentStatus
    inspector_id: UUID | None = None
    score: float | None = None
    reasons: list[str] = Field(default_factory=list)

    @property
    def assigned(self) -> bool:
        return self.status is AssignmentStatus.ASSIGNED
