"""Exception taxonomy for the calendar import pipeline.

Ambiguous parses, duplicate events and unassignable jobs are routing
outcomes and have no exception type.
"""

from __future__ import annotations


class InspectFlowError(Exception):
    """Base class for all InspectFlow errors."""


class ConfigurationError(InspectFlowError):
    """Raised when configuration values are missing or inconsistent."""


class AdapterUnavailable(InspectFlowError):
    """Raised when the calendar source cannot be reached or returns garbage."""

    def __init__(self, message: str, calendar_id: str | None = None):
        super().__init__(message)
        self.calendar_id = calendar_id


class NotFound(InspectFlowError):
    """Raised when a requested record does not exist."""

    def __init__(self, entity: str, entity_id: object):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidState(InspectFlowError):
    """Raised when an operation requires a state the record is no longer in."""

    def __init__(self, message: str, current_status: str | None = None):
        super().__init__(message)
        self.current_status = current_status


class InvalidTransition(InvalidState):
    """Raised by the event status type for a transition it does not allow."""

    def __init__(self, current_status: str, target_status: str):
        super().__init__(
            f"Cannot transition calendar event from {current_status!r} to {target_status!r}",
            current_status=current_status,
        )
        self.target_status = target_status
