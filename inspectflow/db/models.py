"""SQLAlchemy async database models for InspectFlow.

Calendar import pipeline tables plus the slice of the job/inspector schema
the import and assignment steps touch.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class BuilderModel(Base):
    """Home-construction company whose projects are inspected."""

    __tablename__ = "builders"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class BuilderAbbreviationModel(Base):
    """Alias strings used to recognise a builder in calendar titles."""

    __tablename__ = "builder_abbreviations"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    builder_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("builders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    abbreviation: Mapped[str] = mapped_column(Text, nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("builder_id", "abbreviation", name="uq_builder_abbreviation"),
        Index("idx_abbreviation_text", "abbreviation"),
    )


class InspectorModel(Base):
    __tablename__ = "inspectors"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str | None] = mapped_column(Text, unique=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class JobModel(Base):
    """Inspection job created from an accepted calendar event."""

    __tablename__ = "jobs"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    builder_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("builders.id"), nullable=False, index=True
    )
    inspection_type: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    territory: Mapped[str | None] = mapped_column(Text, index=True)
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)
    scheduled_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    urgency: Mapped[str] = mapped_column(Text, nullable=False, default="medium")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="scheduled")

    assigned_to: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("inspectors.id"), index=True
    )
    needs_manual_assignment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    source_event_id: Mapped[str | None] = mapped_column(Text, unique=True)
    notes: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str] = mapped_column(Text, nullable=False, default="system")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_jobs_unassigned", "assigned_to", "scheduled_date"),
    )


class PendingCalendarEventModel(Base):
    """One row per distinct external calendar event id.

    Never deleted; only status-transitioned so the table doubles as the
    import audit trail.
    """

    __tablename__ = "pending_calendar_events"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    external_event_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    calendar_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    # Raw fields
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str | None] = mapped_column(Text)
    location: Mapped[str | None] = mapped_column(Text)
    start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    raw_payload: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    # Parsed fields
    builder_name_guess: Mapped[str | None] = mapped_column(Text)
    job_type_guess: Mapped[str | None] = mapped_column(Text)
    address_guess: Mapped[str | None] = mapped_column(Text)
    urgency: Mapped[str] = mapped_column(Text, nullable=False, default="medium")

    # Match + scoring
    matched_builder_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("builders.id"), index=True
    )
    matched_abbreviation: Mapped[str | None] = mapped_column(Text)
    match_method: Mapped[str | None] = mapped_column(Text)
    confidence_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    score_details: Mapped[dict | None] = mapped_column(JSON)

    # Lifecycle
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending", index=True)
    job_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), ForeignKey("jobs.id"))
    reviewed_by: Mapped[str | None] = mapped_column(Text)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    review_reason: Mapped[str | None] = mapped_column(Text)

    # Re-ingestion tracking
    seen_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_seen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "confidence_score >= 0 AND confidence_score <= 100",
            name="check_confidence_range",
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'auto_created')",
            name="check_event_status",
        ),
        Index("idx_pending_events_status_confidence", "status", "confidence_score"),
    )


class CalendarImportLogModel(Base):
    """Append-only summary of one import batch."""

    __tablename__ = "calendar_import_logs"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    calendar_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    calendar_name: Mapped[str | None] = mapped_column(Text)
    run_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    events_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    jobs_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    events_queued: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    events_rejected: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    events_duplicate: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    events_errored: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    events_skipped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    jobs_assigned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    jobs_unassigned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_text: Mapped[str | None] = mapped_column(Text)
    duration_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    triggered_by: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        CheckConstraint("events_processed >= 0", name="check_events_processed_non_negative"),
        Index("idx_import_logs_run", "calendar_id", "run_timestamp"),
    )


class InspectorPreferencesModel(Base):
    """Inspector self-service settings; read-only for the assignment engine."""

    __tablename__ = "inspector_preferences"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    inspector_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("inspectors.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    preferred_territories: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    max_daily_jobs: Mapped[int | None] = mapped_column(Integer)
    max_weekly_jobs: Mapped[int | None] = mapped_column(Integer)
    availability_windows: Mapped[dict | None] = mapped_column(JSON)
    unavailable_dates: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    specializations: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    travel_radius_km: Mapped[float | None] = mapped_column(Float)
    home_latitude: Mapped[float | None] = mapped_column(Float)
    home_longitude: Mapped[float | None] = mapped_column(Float)
    auto_assign_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class InspectorWorkloadModel(Base):
    """Committed work per (inspector, day)."""

    __tablename__ = "inspector_workloads"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    inspector_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("inspectors.id", ondelete="CASCADE"), nullable=False
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    job_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    scheduled_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    territory: Mapped[str | None] = mapped_column(Text)
    workload_level: Mapped[str] = mapped_column(Text, nullable=False, default="light")
    last_job_latitude: Mapped[float | None] = mapped_column(Float)
    last_job_longitude: Mapped[float | None] = mapped_column(Float)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("inspector_id", "work_date", name="uq_inspector_workload_day"),
        CheckConstraint("job_count >= 0", name="check_job_count_non_negative"),
        CheckConstraint("scheduled_minutes >= 0", name="check_minutes_non_negative"),
        CheckConstraint(
            "workload_level IN ('light', 'moderate', 'heavy', 'overbooked')",
            name="check_workload_level",
        ),
        Index("idx_workload_date_level", "work_date", "workload_level"),
    )


class AssignmentHistoryModel(Base):
    """Append-only audit of assignments, reassignments and unassignments."""

    __tablename__ = "assignment_history"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    job_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("jobs.id"), nullable=False, index=True
    )
    assigned_to: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("inspectors.id"), index=True
    )
    assigned_by: Mapped[str | None] = mapped_column(Text)  # None for automated assignment
    previous_assignee: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True))
    action: Mapped[str] = mapped_column(Text, nullable=False)
    score: Mapped[float | None] = mapped_column(Float)
    reason: Mapped[str | None] = mapped_column(Text)
    details: Mapped[dict | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "action IN ('auto_assigned', 'assigned', 'reassigned', 'unassigned')",
            name="check_assignment_action",
        ),
    )
