"""Shared dependencies for InspectFlow web routes.

Dependencies are injected using FastAPI's Depends() system, so tests can
override them with ``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Header, HTTPException

from inspectflow.config import AppConfig, get_config
from inspectflow.errors import InvalidState, NotFound


def get_app_config() -> AppConfig:
    return get_config()


def get_reviewer(
    x_reviewer: str | None = Header(default=None),
) -> str | None:
    """Reviewer identity forwarded by the operator UI (``X-Reviewer``)."""
    return x_reviewer.strip() if x_reviewer and x_reviewer.strip() else None


def to_http_error(exc: Exception) -> HTTPException:
    """Map review/assignment errors onto HTTP status codes."""
    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidState):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, ValueError):
        return HTTPException(status_code=400, detail=str(exc))
    raise exc
