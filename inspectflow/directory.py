"""Builder directory and job sink backed by the database.

The pipeline only depends on the two protocols here; the SQL-backed
implementations are what the CLI, web app and worker wire in.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inspectflow.db.models import BuilderAbbreviationModel, BuilderModel, JobModel
from inspectflow.errors import NotFound
from inspectflow.models import Builder, BuilderAbbreviation, JobSpec


class BuilderDirectory(Protocol):
    async def list_abbreviations(self) -> list[BuilderAbbreviation]: ...

    async def get_builder(self, builder_id: UUID) -> Builder: ...


class JobSink(Protocol):
    async def create_job(self, spec: JobSpec) -> UUID: ...


def _job_counts_subquery():
    return (
        select(JobModel.builder_id, func.count(JobModel.id).label("job_count"))
        .group_by(JobModel.builder_id)
        .subquery()
    )


class SqlBuilderDirectory:
    """Reads builders and their abbreviations, with historical job counts."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_abbreviations(self) -> list[BuilderAbbreviation]:
        counts = _job_counts_subquery()
        stmt = (
            select(
                BuilderAbbreviationModel,
                BuilderModel.name,
                func.coalesce(counts.c.job_count, 0),
            )
            .join(BuilderModel, BuilderModel.id == BuilderAbbreviationModel.builder_id)
            .outerjoin(counts, counts.c.builder_id == BuilderModel.id)
            .where(BuilderModel.status == "active")
            .order_by(BuilderModel.name, BuilderAbbreviationModel.abbreviation)
        )
        rows = (await self.session.execute(stmt)).all()
        return [
            BuilderAbbreviation(
                builder_id=abbreviation.builder_id,
                abbreviation=abbreviation.abbreviation,
                is_primary=abbreviation.is_primary,
                builder_name=name,
                builder_job_count=job_count,
            )
            for abbreviation, name, job_count in rows
        ]

    async def get_builder(self, builder_id: UUID) -> Builder:
        """Fetch one builder.

        Raises:
            NotFound: If no builder has this id
        """
        builder = await self.session.get(BuilderModel, builder_id)
        if builder is None:
            raise NotFound("Builder", builder_id)

        job_count = await self.session.scalar(
            select(func.count(JobModel.id)).where(JobModel.builder_id == builder_id)
        )
        return Builder(id=builder.id, name=builder.name, total_jobs=job_count or 0)


class SqlJobSink:
    """Creates job rows in the caller's transaction."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_job(self, spec: JobSpec) -> UUID:
        job = JobModel(
            name=spec.name,
            builder_id=spec.builder_id,
            inspection_type=spec.inspection_type,
            address=spec.address,
            territory=spec.territory,
            latitude=spec.latitude,
            longitude=spec.longitude,
            scheduled_date=spec.scheduled_date,
            urgency=spec.urgency.value,
            source_event_id=spec.source_event_id,
            notes=spec.notes,
            created_by=spec.created_by,
        )
        self.session.add(job)
        await self.session.flush()
        return job.id
