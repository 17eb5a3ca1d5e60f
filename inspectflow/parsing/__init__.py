"""Free-text calendar event parsing."""

from inspectflow.parsing.event_parser import EventParser, derive_territory, parse_event
from inspectflow.parsing.vocabulary import job_type_label, normalize_job_type

__all__ = [
    "EventParser",
    "derive_territory",
    "job_type_label",
    "normalize_job_type",
    "parse_event",
]
