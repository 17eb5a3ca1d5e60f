"""Database connection and session management for InspectFlow.

Provides async SQLAlchemy session management with connection pooling.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from inspectflow.config import get_config
from inspectflow.db.models import Base

# Global engine instance
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get or create singleton async engine.

    Returns:
        AsyncEngine: SQLAlchemy async engine

    Raises:
        KeyError: If database URL is not configured
    """
    global _engine

    if _engine is None:
        db_config = get_config().db

        engine_kwargs: dict = {"echo": db_config.echo}

        # SQLite doesn't support connection pooling parameters
        if "sqlite" not in db_config.url.lower():
            engine_kwargs.update(
                {
                    "pool_size": db_config.pool_size,
                    "max_overflow": db_config.pool_max_overflow,
                    "pool_timeout": db_config.pool_timeout,
                    "pool_pre_ping": True,  # Verify connections before using
                    "pool_recycle": 3600,  # Recycle connections after 1 hour
                }
            )

        _engine = create_async_engine(db_config.url, **engine_kwargs)

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create session factory."""
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,  # Don't expire objects after commit
        )

    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get async database session (context manager).

    Usage:
        async with get_session() as session:
            result = await session.execute(query)

    Commits on clean exit, rolls back on exception.
    """
    session = get_session_factory()()

    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency wrapping get_session()."""
    async with get_session() as session:
        yield session


async def init_db(drop: bool = False) -> None:
    """Create all tables (development/testing convenience)."""
    engine = get_engine()

    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database engine and dispose connections.

    Call this on application shutdown.
    """
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
