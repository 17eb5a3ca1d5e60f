"""arq worker: scheduled and on-demand calendar imports.

Run with ``arq inspectflow.worker.WorkerSettings``.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from arq import cron
from arq.connections import RedisSettings

from inspectflow.config import get_config
from inspectflow.core.logging import configure_logging
from inspectflow.db.connection import close_db
from inspectflow.pipeline.orchestrator import run_import
from inspectflow.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


async def startup(ctx: dict[str, Any]) -> None:
    """Initialize resources when worker starts."""
    config = get_config()
    configure_logging(config)
    ctx["config"] = config
    logger.info("worker_started")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Cleanup resources when worker stops."""
    await close_db()
    logger.info("worker_stopped")


async def run_calendar_import_job(
    ctx: dict[str, Any], calendar_id: str | None = None
) -> dict[str, Any]:
    """Background job: one import batch for one calendar."""
    config = ctx.get("config") or get_config()
    summary = await run_import(calendar_id=calendar_id, config=config, triggered_by="worker")
    return summary.to_dict()


async def scheduled_calendar_import(ctx: dict[str, Any]) -> dict[str, Any]:
    """Cron job: import the configured calendar from now over the lookahead window."""
    config = ctx.get("config") or get_config()
    if not config.calendar.enabled:
        logger.info("scheduled_import_disabled")
        return {"status": "skipped", "reason": "calendar import disabled"}

    summary = await run_import(
        calendar_id=config.calendar.calendar_id,
        since=utcnow(),
        config=config,
        triggered_by="scheduler",
    )
    if summary.error_text:
        logger.warning("scheduled_import_error: %s", summary.error_text)
    return summary.to_dict()


def _cron_hours(every: int) -> set[int]:
    every = max(1, min(every, 24))
    return set(range(0, 24, every))


class WorkerSettings:
    functions = [run_calendar_import_job]
    cron_jobs = [
        cron(
            scheduled_calendar_import,
            hour=_cron_hours(int(os.environ.get("CALENDAR_IMPORT_CRON_HOURS", "6"))),
            minute=0,
            run_at_startup=False,
        )
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(
        os.environ.get("REDIS_URL", "redis://redis:6379")
    )
