"""Inspector assignment engine.

Scores eligible inspectors for a job and commits the winner:

    score = baseline - workload penalty - distance * coefficient
            + specialization bonus

Only inspectors with auto-assign enabled are considered. Overbooked
inspectors and non-positive scores are disqualifying. A job nobody can take
is flagged for manual assignment and reported as ``unassignable``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inspectflow.assignment.geo import distance_between
from inspectflow.assignment.workload import (
    WorkloadLocks,
    decrement_workload,
    default_locks,
    estimate_minutes,
    get_workload,
    increment_workload,
    load_workloads,
    workload_level,
)
from inspectflow.config import AssignmentConfig
from inspectflow.db.models import (
    AssignmentHistoryModel,
    InspectorModel,
    InspectorPreferencesModel,
    JobModel,
)
from inspectflow.errors import InvalidState, NotFound
from inspectflow.models import (
    AssignmentAction,
    AssignmentResult,
    AssignmentStatus,
    WorkloadLevel,
)
from inspectflow.utils.timeutils import as_utc

logger = logging.getLogger(__name__)

_MAX_COMMIT_ATTEMPTS = 3


@dataclass
class CandidateScore:
    """Scoring breakdown for one inspector."""

    inspector_id: UUID
    score: float
    level: WorkloadLevel
    job_count: int
    preference_created_at: datetime
    territory_match: bool
    distance_km: float | None
    specialization_match: bool
    details: dict[str, Any] = field(default_factory=dict)

    def sort_key(self) -> tuple:
        # Highest score, then lightest workload, then oldest preference record
        return (
            -self.score,
            self.level.rank,
            self.job_count,
            as_utc(self.preference_created_at),
            str(self.inspector_id),
        )


def job_work_date(job: JobModel) -> date:
    return as_utc(job.scheduled_date).date()


def _normalize(values: list[str] | None) -> set[str]:
    return {v.strip().lower() for v in values or [] if v and v.strip()}


class AssignmentEngine:
    """Chooses and commits an inspector for a job within the caller's transaction."""

    def __init__(
        self,
        session: AsyncSession,
        config: AssignmentConfig,
        locks: WorkloadLocks | None = None,
    ):
        self.session = session
        self.config = config
        self.locks = locks or default_locks

    async def _load_job(self, job_id: UUID) -> JobModel:
        job = await self.session.get(JobModel, job_id)
        if job is None:
            raise NotFound("Job", job_id)
        return job

    async def _eligible_preferences(self) -> list[InspectorPreferencesModel]:
        stmt = (
            select(InspectorPreferencesModel)
            .join(InspectorModel, InspectorModel.id == InspectorPreferencesModel.inspector_id)
            .where(
                InspectorPreferencesModel.auto_assign_enabled.is_(True),
                InspectorModel.active.is_(True),
            )
            .order_by(InspectorPreferencesModel.created_at, InspectorPreferencesModel.inspector_id)
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def score_candidates(
        self, job: JobModel
    ) -> tuple[list[CandidateScore], dict[str, str]]:
        """Score every auto-assign inspector for ``job``.

        Returns:
            (qualified candidates, best first; {inspector_id: exclusion reason})
        """
        work_date = job_work_date(job)
        preferences = await self._eligible_preferences()
        workloads = await load_workloads(
            self.session, [p.inspector_id for p in preferences], work_date
        )

        job_territory = (job.territory or "").strip().lower()
        job_point = (job.latitude, job.longitude)
        candidates: list[CandidateScore] = []
        excluded: dict[str, str] = {}

        for prefs in preferences:
            key = str(prefs.inspector_id)
            workload = workloads.get(prefs.inspector_id)
            job_count = workload.job_count if workload else 0

            if work_date.isoformat() in (prefs.unavailable_dates or []):
                excluded[key] = "unavailable"
                continue

            territory_match = bool(job_territory) and job_territory in _normalize(
                prefs.preferred_territories
            )

            # Distance from the last job of the day, else from home base
            origin = (prefs.home_latitude, prefs.home_longitude)
            if workload and workload.last_job_latitude is not None:
                origin = (workload.last_job_latitude, workload.last_job_longitude)
            distance = distance_between(origin, job_point)

            if not territory_match:
                home_distance = distance_between(
                    (prefs.home_latitude, prefs.home_longitude), job_point
                )
                if (
                    prefs.travel_radius_km is None
                    or home_distance is None
                    or home_distance > prefs.travel_radius_km
                ):
                    excluded[key] = "outside territory"
                    continue

            max_daily = prefs.max_daily_jobs or self.config.default_max_daily_jobs
            if job_count >= max_daily:
                excluded[key] = f"at daily capacity ({job_count}/{max_daily})"
                continue

            level = workload_level(job_count, self.config)
            if level is WorkloadLevel.OVERBOOKED:
                excluded[key] = "overbooked"
                continue

            workload_penalty = self.config.penalty_for(level.value)
            distance_penalty = (distance or 0.0) * self.config.distance_penalty_per_km
            specialization_match = bool(job.inspection_type) and (
                job.inspection_type.lower() in _normalize(prefs.specializations)
            )
            bonus = self.config.specialization_bonus if specialization_match else 0.0

            score = self.config.baseline_score - workload_penalty - distance_penalty + bonus
            if score <= 0:
                excluded[key] = f"score {score:.1f} disqualifying"
                continue

            candidates.append(
                CandidateScore(
                    inspector_id=prefs.inspector_id,
                    score=round(score, 2),
                    level=level,
                    job_count=job_count,
                    preference_created_at=prefs.created_at,
                    territory_match=territory_match,
                    distance_km=round(distance, 2) if distance is not None else None,
                    specialization_match=specialization_match,
                    details={
                        "workload_penalty": workload_penalty,
                        "distance_penalty": round(distance_penalty, 2),
                        "specialization_bonus": bonus,
                    },
                )
            )

        candidates.sort(key=CandidateScore.sort_key)
        return candidates, excluded

    async def assign(self, job_id: UUID) -> AssignmentResult:
        """Auto-assign a job to the best inspector, or flag it as unassignable."""
        job = await self._load_job(job_id)

        if job.assigned_to is not None:
            return AssignmentResult(
                job_id=job.id,
                status=AssignmentStatus.ASSIGNED,
                inspector_id=job.assigned_to,
                reasons=["already assigned"],
            )

        work_date = job_work_date(job)

        for _ in range(_MAX_COMMIT_ATTEMPTS):
            candidates, excluded = await self.score_candidates(job)
            if not candidates:
                return await self._mark_unassignable(job, excluded)

            best = candidates[0]
            async with self.locks.lock_for(best.inspector_id, work_date):
                current = await get_workload(self.session, best.inspector_id, work_date)
                current_count = current.job_count if current else 0
                if current_count != best.job_count:
                    # Workload moved since scoring; rescore with fresh counts
                    logger.debug(
                        "assignment_rescore: job=%s inspector=%s", job.id, best.inspector_id
                    )
                    continue

                await self._commit(
                    job,
                    best.inspector_id,
                    AssignmentAction.AUTO_ASSIGNED,
                    assigned_by=None,
                    score=best.score,
                    reason=self._describe(best),
                    details={
                        "level": best.level.value,
                        "job_count_before": best.job_count,
                        "distance_km": best.distance_km,
                        "territory_match": best.territory_match,
                        "specialization_match": best.specialization_match,
                        **best.details,
                    },
                )

            logger.info(
                "job_auto_assigned: job=%s inspector=%s score=%.1f",
                job.id,
                best.inspector_id,
                best.score,
            )
            return AssignmentResult(
                job_id=job.id,
                status=AssignmentStatus.ASSIGNED,
                inspector_id=best.inspector_id,
                score=best.score,
                reasons=[self._describe(best)],
            )

        return await self._mark_unassignable(job, {"*": "workload kept changing during assignment"})

    @staticmethod
    def _describe(candidate: CandidateScore) -> str:
        parts = [f"{candidate.level.value} workload"]
        parts.append("territory match" if candidate.territory_match else "within travel radius")
        if candidate.specialization_match:
            parts.append("specialization match")
        return ", ".join(parts)

    async def _mark_unassignable(
        self, job: JobModel, excluded: dict[str, str]
    ) -> AssignmentResult:
        job.needs_manual_assignment = True
        await self.session.flush()

        reasons = (
            [f"{inspector}: {why}" for inspector, why in excluded.items()]
            if excluded
            else ["no inspectors with auto-assign enabled"]
        )
        logger.warning("job_unassignable: job=%s territory=%s", job.id, job.territory)
        return AssignmentResult(
            job_id=job.id,
            status=AssignmentStatus.UNASSIGNABLE,
            reasons=reasons,
        )

    async def _commit(
        self,
        job: JobModel,
        inspector_id: UUID,
        action: AssignmentAction,
        assigned_by: str | None,
        score: float | None = None,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
        previous: UUID | None = None,
    ) -> None:
        await increment_workload(
            self.session,
            inspector_id,
            job_work_date(job),
            estimate_minutes(job.inspection_type, self.config),
            self.config,
            territory=job.territory,
            latitude=job.latitude,
            longitude=job.longitude,
        )
        job.assigned_to = inspector_id
        job.needs_manual_assignment = False
        self.session.add(
            AssignmentHistoryModel(
                job_id=job.id,
                assigned_to=inspector_id,
                assigned_by=assigned_by,
                previous_assignee=previous,
                action=action.value,
                score=score,
                reason=reason,
                details=details,
            )
        )
        await self.session.flush()

    async def _require_inspector(self, inspector_id: UUID) -> InspectorModel:
        inspector = await self.session.get(InspectorModel, inspector_id)
        if inspector is None:
            raise NotFound("Inspector", inspector_id)
        if not inspector.active:
            raise InvalidState(f"Inspector {inspector_id} is inactive")
        return inspector

    async def assign_job(
        self,
        job_id: UUID,
        inspector_id: UUID,
        assigned_by: str,
        reason: str | None = None,
    ) -> AssignmentResult:
        """Manually assign an unassigned job.

        Raises:
            NotFound: If the job or inspector does not exist
            InvalidState: If the job already has an assignee
        """
        job = await self._load_job(job_id)
        if job.assigned_to is not None:
            raise InvalidState(
                f"Job {job_id} is already assigned; reassign instead",
                current_status="assigned",
            )
        await self._require_inspector(inspector_id)

        async with self.locks.lock_for(inspector_id, job_work_date(job)):
            await self._commit(
                job, inspector_id, AssignmentAction.ASSIGNED, assigned_by, reason=reason
            )

        logger.info("job_assigned: job=%s inspector=%s by=%s", job.id, inspector_id, assigned_by)
        return AssignmentResult(
            job_id=job.id, status=AssignmentStatus.ASSIGNED, inspector_id=inspector_id
        )

    async def reassign_job(
        self,
        job_id: UUID,
        inspector_id: UUID,
        assigned_by: str,
        reason: str | None = None,
    ) -> AssignmentResult:
        """Move an assigned job to another inspector, moving its workload too.

        Raises:
            NotFound: If the job or inspector does not exist
            InvalidState: If the job is unassigned or already with this inspector
        """
        job = await self._load_job(job_id)
        previous = job.assigned_to
        if previous is None:
            raise InvalidState(f"Job {job_id} is not assigned", current_status="unassigned")
        if previous == inspector_id:
            raise InvalidState(f"Job {job_id} is already assigned to {inspector_id}")
        await self._require_inspector(inspector_id)

        work_date = job_work_date(job)
        minutes = estimate_minutes(job.inspection_type, self.config)
        async with self.locks.lock_for(previous, work_date):
            await decrement_workload(self.session, previous, work_date, minutes, self.config)
        async with self.locks.lock_for(inspector_id, work_date):
            await self._commit(
                job,
                inspector_id,
                AssignmentAction.REASSIGNED,
                assigned_by,
                reason=reason,
                previous=previous,
            )

        logger.info(
            "job_reassigned: job=%s from=%s to=%s by=%s", job.id, previous, inspector_id, assigned_by
        )
        return AssignmentResult(
            job_id=job.id, status=AssignmentStatus.ASSIGNED, inspector_id=inspector_id
        )

    async def unassign_job(
        self,
        job_id: UUID,
        assigned_by: str,
        reason: str | None = None,
    ) -> AssignmentResult:
        """Remove a job's assignee and return it to the manual assignment list.

        Raises:
            NotFound: If the job does not exist
            InvalidState: If the job has no assignee
        """
        job = await self._load_job(job_id)
        previous = job.assigned_to
        if previous is None:
            raise InvalidState(f"Job {job_id} is not assigned", current_status="unassigned")

        work_date = job_work_date(job)
        async with self.locks.lock_for(previous, work_date):
            await decrement_workload(
                self.session,
                previous,
                work_date,
                estimate_minutes(job.inspection_type, self.config),
                self.config,
            )

        job.assigned_to = None
        job.needs_manual_assignment = True
        self.session.add(
            AssignmentHistoryModel(
                job_id=job.id,
                assigned_to=None,
                assigned_by=assigned_by,
                previous_assignee=previous,
                action=AssignmentAction.UNASSIGNED.value,
                reason=reason,
            )
        )
        await self.session.flush()

        logger.info("job_unassigned: job=%s from=%s by=%s", job.id, previous, assigned_by)
        return AssignmentResult(
            job_id=job.id,
            status=AssignmentStatus.UNASSIGNABLE,
            reasons=[reason or "unassigned manually"],
        )
