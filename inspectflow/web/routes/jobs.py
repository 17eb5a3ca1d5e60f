"""Job routes.

Routes:
- GET  /jobs/unassigned    - Jobs waiting for a manual assignment
- POST /jobs/{id}/assign   - Assign an unassigned job
- POST /jobs/{id}/reassign - Move a job to another inspector
- POST /jobs/{id}/unassign - Return a job to the unassigned list
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select

from inspectflow.assignment.engine import AssignmentEngine
from inspectflow.config import AppConfig
from inspectflow.db.connection import get_session
from inspectflow.db.models import JobModel
from inspectflow.errors import InvalidState, NotFound
from inspectflow.web.dependencies import get_app_config, to_http_error
from inspectflow.web.models import (
    AssignJobRequest,
    AssignmentOut,
    UnassignJobRequest,
    UnassignedJobOut,
)

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("/unassigned", response_model=list[UnassignedJobOut])
async def list_unassigned_jobs(
    territory: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
):
    """Unassigned jobs, soonest first."""
    stmt = select(JobModel).where(JobModel.assigned_to.is_(None))
    if territory:
        stmt = stmt.where(JobModel.territory == territory)
    stmt = stmt.order_by(JobModel.scheduled_date.asc(), JobModel.name).limit(limit)

    async with get_session() as session:
        result = await session.execute(stmt)
        return list(result.scalars().all())


@router.post("/{job_id}/assign", response_model=AssignmentOut)
async def assign_job(
    job_id: UUID,
    body: AssignJobRequest,
    config: AppConfig = Depends(get_app_config),
):
    try:
        async with get_session() as session:
            engine = AssignmentEngine(session, config.assignment)
            return await engine.assign_job(
                job_id, body.inspector_id, body.assigned_by, reason=body.reason
            )
    except (NotFound, InvalidState) as e:
        raise to_http_error(e) from e


@router.post("/{job_id}/reassign", response_model=AssignmentOut)
async def reassign_job(
    job_id: UUID,
    body: AssignJobRequest,
    config: AppConfig = Depends(get_app_config),
):
    try:
        async with get_session() as session:
            engine = AssignmentEngine(session, config.assignment)
            return await engine.reassign_job(
                job_id, body.inspector_id, body.assigned_by, reason=body.reason
            )
    except (NotFound, InvalidState) as e:
        raise to_http_error(e) from e


@router.post("/{job_id}/unassign", response_model=AssignmentOut)
async def unassign_job(
    job_id: UUID,
    body: UnassignJobRequest,
    config: AppConfig = Depends(get_app_config),
):
    try:
        async with get_session() as session:
            engine = AssignmentEngine(session, config.assignment)
            return await engine.unassign_job(job_id, body.assigned_by, reason=body.reason)
    except (NotFound, InvalidState) as e:
        raise to_http_error(e) from e
