"""Pytest configuration and fixtures for InspectFlow tests.

Provides an in-memory database per test plus builder/inspector fixtures.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from contextlib import asynccontextmanager
from datetime import datetime, timezone

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from inspectflow.config import AssignmentConfig, ImportConfig, reset_config
from inspectflow.db.models import (
    Base,
    BuilderAbbreviationModel,
    BuilderModel,
    InspectorModel,
    InspectorPreferencesModel,
)

# Fixed batch time so date sanity checks are deterministic
RUN_AT = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _fresh_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def import_config() -> ImportConfig:
    return ImportConfig()


@pytest.fixture
def assignment_config() -> AssignmentConfig:
    return AssignmentConfig()


@pytest_asyncio.fixture()
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)

    # Let SQLAlchemy own BEGIN so SAVEPOINTs nest properly under aiosqlite
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory) -> AsyncSession:
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def session_scope(session_factory):
    """Drop-in replacement for ``get_session()`` bound to the test database."""

    @asynccontextmanager
    async def _scope():
        session = session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    return _scope


async def add_builder(
    session: AsyncSession,
    name: str,
    abbreviations: Iterable[tuple[str, bool]],
) -> BuilderModel:
    builder = BuilderModel(name=name)
    session.add(builder)
    await session.flush()
    for text, is_primary in abbreviations:
        session.add(
            BuilderAbbreviationModel(builder_id=builder.id, abbreviation=text, is_primary=is_primary)
        )
    await session.flush()
    return builder


async def add_inspector(
    session: AsyncSession,
    name: str,
    territories: Iterable[str] = ("Plymouth",),
    created_at: datetime = RUN_AT,
    **preferences,
) -> InspectorModel:
    inspector = InspectorModel(name=name, email=f"{name.lower().replace(' ', '.')}@example.com")
    session.add(inspector)
    await session.flush()
    session.add(
        InspectorPreferencesModel(
            inspector_id=inspector.id,
            preferred_territories=list(territories),
            auto_assign_enabled=preferences.pop("auto_assign_enabled", True),
            created_at=created_at,
            **preferences,
        )
    )
    await session.flush()
    return inspector


@pytest_asyncio.fixture()
async def mi_homes(db_session: AsyncSession) -> BuilderModel:
    """M/I Homes with "MI" as primary and "MI Homes" as secondary abbreviation."""
    return await add_builder(
        db_session, "M/I Homes", [("MI", True), ("M/I", False), ("MI Homes", False)]
    )


@pytest.fixture
def make_builder():
    return add_builder


@pytest.fixture
def make_inspector():
    return add_inspector
