"""Inspector workload bookkeeping.

Job count and scheduled minutes per (inspector, day) only ever change through
a single SQL ``UPDATE ... SET job_count = job_count + 1`` per committed
assignment. Callers serialize on ``WorkloadLocks`` for the same key.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from inspectflow.config import AssignmentConfig
from inspectflow.db.models import InspectorWorkloadModel
from inspectflow.models import WorkloadLevel

logger = logging.getLogger(__name__)


def workload_level(job_count: int, config: AssignmentConfig) -> WorkloadLevel:
    """Bucket a daily job count (0 light, 1-3 moderate, 4-5 heavy, 6+ overbooked)."""
    if job_count >= config.overbooked_min_jobs:
        return WorkloadLevel.OVERBOOKED
    if job_count >= config.heavy_min_jobs:
        return WorkloadLevel.HEAVY
    if job_count >= config.moderate_min_jobs:
        return WorkloadLevel.MODERATE
    return WorkloadLevel.LIGHT


def estimate_minutes(inspection_type: str | None, config: AssignmentConfig) -> int:
    """On-site time for one job plus travel."""
    base = config.final_job_minutes if inspection_type == "final" else config.standard_job_minutes
    return base + config.travel_minutes


def _level_expression(count_expr, config: AssignmentConfig):
    return case(
        (count_expr >= config.overbooked_min_jobs, WorkloadLevel.OVERBOOKED.value),
        (count_expr >= config.heavy_min_jobs, WorkloadLevel.HEAVY.value),
        (count_expr >= config.moderate_min_jobs, WorkloadLevel.MODERATE.value),
        else_=WorkloadLevel.LIGHT.value,
    )


class WorkloadLocks:
    """Registry of asyncio locks keyed by (inspector, work date)."""

    def __init__(self) -> None:
        self._locks: dict[tuple[UUID, date], asyncio.Lock] = {}

    def lock_for(self, inspector_id: UUID, work_date: date) -> asyncio.Lock:
        key = (inspector_id, work_date)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def __len__(self) -> int:
        return len(self._locks)


# Process-wide default shared by the pipeline and the review service
default_locks = WorkloadLocks()


async def get_workload(
    session: AsyncSession, inspector_id: UUID, work_date: date
) -> InspectorWorkloadModel | None:
    stmt = (
        select(InspectorWorkloadModel)
        .where(
            InspectorWorkloadModel.inspector_id == inspector_id,
            InspectorWorkloadModel.work_date == work_date,
        )
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def load_workloads(
    session: AsyncSession, inspector_ids: Iterable[UUID], work_date: date
) -> dict[UUID, InspectorWorkloadModel]:
    ids = list(inspector_ids)
    if not ids:
        return {}
    stmt = (
        select(InspectorWorkloadModel)
        .where(
            InspectorWorkloadModel.inspector_id.in_(ids),
            InspectorWorkloadModel.work_date == work_date,
        )
        .execution_options(populate_existing=True)
    )
    rows = (await session.execute(stmt)).scalars().all()
    return {row.inspector_id: row for row in rows}


async def increment_workload(
    session: AsyncSession,
    inspector_id: UUID,
    work_date: date,
    minutes: int,
    config: AssignmentConfig,
    territory: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
) -> InspectorWorkloadModel | None:
    """Add exactly one job to the inspector's day, creating the row if absent."""
    values = {
        "job_count": InspectorWorkloadModel.job_count + 1,
        "scheduled_minutes": InspectorWorkloadModel.scheduled_minutes + minutes,
        "workload_level": _level_expression(InspectorWorkloadModel.job_count + 1, config),
    }
    if territory is not None:
        values["territory"] = territory
    if latitude is not None and longitude is not None:
        values["last_job_latitude"] = latitude
        values["last_job_longitude"] = longitude

    stmt = (
        update(InspectorWorkloadModel)
        .where(
            InspectorWorkloadModel.inspector_id == inspector_id,
            InspectorWorkloadModel.work_date == work_date,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )

    result = await session.execute(stmt)
    if result.rowcount == 0:
        try:
            async with session.begin_nested():
                session.add(
                    InspectorWorkloadModel(
                        inspector_id=inspector_id,
                        work_date=work_date,
                        job_count=1,
                        scheduled_minutes=minutes,
                        territory=territory,
                        workload_level=workload_level(1, config).value,
                        last_job_latitude=latitude,
                        last_job_longitude=longitude,
                    )
                )
        except IntegrityError:
            # Another transaction created the row first
            logger.debug("workload_row_race: inspector=%s date=%s", inspector_id, work_date)
            await session.execute(stmt)

    return await get_workload(session, inspector_id, work_date)


async def decrement_workload(
    session: AsyncSession,
    inspector_id: UUID,
    work_date: date,
    minutes: int,
    config: AssignmentConfig,
) -> InspectorWorkloadModel | None:
    """Remove one job from the inspector's day; counts never go below zero."""
    new_minutes = InspectorWorkloadModel.scheduled_minutes - minutes
    stmt = (
        update(InspectorWorkloadModel)
        .where(
            InspectorWorkloadModel.inspector_id == inspector_id,
            InspectorWorkloadModel.work_date == work_date,
            InspectorWorkloadModel.job_count > 0,
        )
        .values(
            job_count=InspectorWorkloadModel.job_count - 1,
            scheduled_minutes=case((new_minutes < 0, 0), else_=new_minutes),
            workload_level=_level_expression(InspectorWorkloadModel.job_count - 1, config),
        )
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    if result.rowcount == 0:
        logger.warning(
            "workload_decrement_skipped: inspector=%s date=%s (no jobs recorded)",
            inspector_id,
            work_date,
        )
    return await get_workload(session, inspector_id, work_date)
