"""Type definitions for calendar import runs."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from inspectflow.models import (
    BuilderMatch,
    ConfidenceResult,
    DateSanity,
    ParsedCandidate,
    RawCalendarEvent,
    RoutingOutcome,
)


class ImportStatus(str, Enum):
    """Status of an import run."""

    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL_SUCCESS = "partial_success"


@dataclass
class ScoredEvent:
    """One event after the side-effect-free parse → match → score stage."""

    event: RawCalendarEvent
    candidate: ParsedCandidate
    match: BuilderMatch
    date_sanity: DateSanity
    confidence: ConfidenceResult

    @property
    def score(self) -> int:
        return self.confidence.score


@dataclass
class EventOutcome:
    """What happened to one event during routing."""

    external_id: str
    outcome: Optional[RoutingOutcome]
    confidence: int = 0
    job_id: Optional[UUID] = None
    assigned_to: Optional[UUID] = None
    error: Optional[str] = None


@dataclass
class ImportSummary:
    """Counters for one batch; mirrors the calendar_import_logs row."""

    calendar_id: str
    run_timestamp: datetime
    calendar_name: Optional[str] = None
    events_processed: int = 0
    jobs_created: int = 0
    events_queued: int = 0
    events_rejected: int = 0
    events_duplicate: int = 0
    events_errored: int = 0
    events_skipped: int = 0
    jobs_assigned: int = 0
    jobs_unassigned: int = 0
    error_text: Optional[str] = None
    duration_seconds: float = 0.0
    log_id: Optional[UUID] = None
    outcomes: list[EventOutcome] = field(default_factory=list)

    def record(self, outcome: EventOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.error is not None:
            self.events_errored += 1
            return
        if outcome.outcome is RoutingOutcome.AUTO_CREATE:
            self.jobs_created += 1
        elif outcome.outcome is RoutingOutcome.QUEUE:
            self.events_queued += 1
        elif outcome.outcome is RoutingOutcome.REJECT:
            self.events_rejected += 1
        elif outcome.outcome is RoutingOutcome.DUPLICATE:
            self.events_duplicate += 1

    @property
    def status(self) -> ImportStatus:
        if self.error_text and self.events_processed == 0:
            return ImportStatus.FAILED
        if self.error_text or self.events_errored:
            return ImportStatus.PARTIAL_SUCCESS
        return ImportStatus.SUCCESS

    @property
    def success(self) -> bool:
        """Check if the run got past fetching."""
        return self.status in (ImportStatus.SUCCESS, ImportStatus.PARTIAL_SUCCESS)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("outcomes")
        data["status"] = self.status.value
        data["run_timestamp"] = self.run_timestamp.isoformat()
        data["log_id"] = str(self.log_id) if self.log_id else None
        return data
