"""Database layer for InspectFlow with async SQLAlchemy."""

from inspectflow.db.connection import get_db, get_session, init_db
from inspectflow.db.models import (
    AssignmentHistoryModel,
    Base,
    BuilderAbbreviationModel,
    BuilderModel,
    CalendarImportLogModel,
    InspectorModel,
    InspectorPreferencesModel,
    InspectorWorkloadModel,
    JobModel,
    PendingCalendarEventModel,
)

__all__ = [
    "Base",
    "BuilderModel",
    "BuilderAbbreviationModel",
    "InspectorModel",
    "JobModel",
    "PendingCalendarEventModel",
    "CalendarImportLogModel",
    "InspectorPreferencesModel",
    "InspectorWorkloadModel",
    "AssignmentHistoryModel",
    "get_db",
    "get_session",
    "init_db",
]
