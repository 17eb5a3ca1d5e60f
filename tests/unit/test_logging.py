"""Tests for inspectflow.core.logging."""

import logging

import pytest
import structlog

from inspectflow.config import AppConfig, DBConfig
from inspectflow.core.logging import configure_logging


def _config(**overrides) -> AppConfig:
    return AppConfig(db=DBConfig(url="sqlite+aiosqlite:///:memory:"), **overrides)


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_level_from_config(self):
        configure_logging(_config(log_level="debug"))
        assert logging.getLogger().level == logging.DEBUG

        configure_logging(_config(log_level="WARNING"))
        assert logging.getLogger().level == logging.WARNING

    def test_json_logs_selects_json_renderer(self):
        configure_logging(_config(json_logs=True))
        renderer = structlog.get_config()["processors"][-1]
        assert isinstance(renderer, structlog.processors.JSONRenderer)

    def test_console_renderer_by_default(self):
        configure_logging(_config())
        renderer = structlog.get_config()["processors"][-1]
        assert isinstance(renderer, structlog.dev.ConsoleRenderer)

    def test_sql_echo_quieted_below_warning(self):
        configure_logging(_config(log_level="DEBUG"))
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_environment_used_without_config(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        monkeypatch.setenv("JSON_LOGS", "true")

        configure_logging()

        assert logging.getLogger().level == logging.ERROR
        assert isinstance(
            structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer
        )
