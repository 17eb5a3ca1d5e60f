"""Shared fixtures for route tests."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from inspectflow.config import AppConfig, DBConfig
from inspectflow.models import EventStatus
from inspectflow.review import ReviewEvent


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(db=DBConfig(url="sqlite+aiosqlite:///:memory:"))


@pytest.fixture
def mock_session():
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    return session


@pytest.fixture
def mock_db_session(mock_session):
    """Mock database session with async context manager."""
    async_cm = AsyncMock()
    async_cm.__aenter__.return_value = mock_session
    async_cm.__aexit__.return_value = None
    return async_cm


@pytest.fixture
def review_event_factory():
    def _make(**overrides) -> ReviewEvent:
        values = dict(
            id=uuid4(),
            external_event_id="evt-1",
            calendar_id="primary",
            title="Lenar - Final",
            description=None,
            location="12 Oak St, Plymouth, MN",
            start_time=datetime(2025, 3, 15, 9, 0, tzinfo=timezone.utc),
            end_time=None,
            builder_name_guess="Lenar",
            job_type_guess="final",
            address_guess="12 Oak St, Plymouth, MN",
            urgency="medium",
            matched_builder_id=None,
            matched_abbreviation=None,
            match_method="none",
            confidence_score=62,
            score_details={"builder": 30.0},
            status=EventStatus.PENDING,
            job_id=None,
            reviewed_by=None,
            reviewed_at=None,
            review_reason=None,
            seen_count=1,
            created_at=datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc),
        )
        values.update(overrides)
        return ReviewEvent(**values)

    return _make
