"""Confidence scoring for parsed calendar events."""

from __future__ import annotations

from datetime import datetime, timedelta

from inspectflow.config import ImportConfig
from inspectflow.models import ConfidenceResult, ConfidenceSignals, DateSanity
from inspectflow.utils.timeutils import as_utc

# Maximum points per signal; they sum to 100
BUILDER_WEIGHT = 60
JOB_TYPE_WEIGHT = 20
ADDRESS_WEIGHT = 10
DATE_WEIGHT = 10


def assess_date(
    start: datetime | None,
    now: datetime,
    config: ImportConfig,
) -> DateSanity:
    """Classify an event start time relative to the batch run time.

    Past the grace window → STALE (disqualifying). Missing or further out than
    ``max_future_days`` → UNKNOWN (no points, no cap).
    """
    if start is None:
        return DateSanity.UNKNOWN

    start = as_utc(start)
    now = as_utc(now)

    if start < now - timedelta(hours=config.date_grace_hours):
        return DateSanity.STALE
    if start > now + timedelta(days=config.max_future_days):
        return DateSanity.UNKNOWN
    return DateSanity.SANE


class ConfidenceScorer:
    """Combine independent signals into a 0-100 confidence score."""

    def __init__(self, config: ImportConfig) -> None:
        """Initialize confidence scorer.

        Args:
            config: Import tuning (stale ceiling is read from here)
        """
        self.stale_ceiling = config.stale_score_ceiling

    def score(self, signals: ConfidenceSignals) -> ConfidenceResult:
        """Weighted sum of signals, capped when the event date is stale.

        Each component is non-decreasing in its own signal, and the cap only
        depends on date sanity, so the total is monotonic in every input.

        Args:
            signals: Builder match score, job-type quality, address presence
                and date sanity

        Returns:
            ConfidenceResult with score and per-signal breakdown
        """
        builder_points = signals.builder_score * BUILDER_WEIGHT / 100
        job_type_points = signals.job_type_quality * JOB_TYPE_WEIGHT
        address_points = ADDRESS_WEIGHT if signals.has_address else 0
        date_points = DATE_WEIGHT if signals.date_sanity is DateSanity.SANE else 0

        raw = builder_points + job_type_points + address_points + date_points
        total = int(round(raw))

        capped = signals.date_sanity is DateSanity.STALE
        if capped:
            total = min(total, self.stale_ceiling)

        return ConfidenceResult(
            score=max(0, min(100, total)),
            details={
                "builder": round(builder_points, 2),
                "job_type": round(job_type_points, 2),
                "address": address_points,
                "date": date_points,
                "date_sanity": signals.date_sanity.value,
                "stale_capped": capped,
            },
        )
