"""Tests for opsalert/core/logging.py — setup and correlation id binding."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from opsalert.core.config import reset_settings
from opsalert.core.logging import bind_correlation_id, current_correlation_id, setup_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    logging.getLogger().handlers.clear()
    reset_settings()


class TestCorrelationId:
    def test_bind_and_clear(self) -> None:
        assert current_correlation_id() is None
        bind_correlation_id("abc")
        assert current_correlation_id() == "abc"
        bind_correlation_id(None)
        assert current_correlation_id() is None


class TestSetupLogging:
    def test_level_override(self) -> None:
        setup_logging(level="DEBUG", fmt="console")
        assert logging.getLogger().level == logging.DEBUG

    def test_json_output_carries_context(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(level="INFO", fmt="json")
        bind_correlation_id("tick-1")
        structlog.stdlib.get_logger("opsalert.test").info("alert_triggered", name="Disk Full")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "alert_triggered"
        assert record["name"] == "Disk Full"
        assert record["correlation_id"] == "tick-1"
        assert record["service"] == "opsalert"
        assert record["level"] == "info"
