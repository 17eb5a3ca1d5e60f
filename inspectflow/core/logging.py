"""Logging setup shared by the CLI, the operator API and the arq worker.

Module code logs through ``logging.getLogger(__name__)``; structlog renders
both stdlib and structlog records (console in development, JSON when
``JSON_LOGS=true``).
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from inspectflow.config import AppConfig

LOG_FILE = Path("logs/inspectflow.log")

# Per-statement SQL and per-request HTTP lines drown out batch summaries
NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "arq.worker")


def configure_logging(config: AppConfig | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        config: Application config; ``LOG_LEVEL``/``JSON_LOGS`` from the
            environment when omitted
    """
    if config is not None:
        level, json_logs = config.log_level, config.json_logs
    else:
        level = os.getenv("LOG_LEVEL", "INFO")
        json_logs = os.getenv("JSON_LOGS", "false").lower() == "true"
    level = level.upper()

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    renderer = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=shared_processors + [renderer],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if LOG_FILE.parent.exists():
        handlers.append(logging.FileHandler(LOG_FILE))

    logging.basicConfig(format="%(message)s", handlers=handlers, level=level)
    # basicConfig is a no-op once handlers exist; the level still applies
    logging.getLogger().setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, logging.getLogger().level))
