"""Unit tests — configure_logging and the structlog processors it installs."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Generator

import pytest
import structlog

import rowgate.logging as rowgate_logging
from rowgate.config import LoggingConfig, Settings
from rowgate.logging import (
    _inject_session,
    _truncate_sql,
    bind_session,
    configure_logging,
    get_logger,
)


@pytest.fixture
def root_logger() -> Generator[logging.Logger, None, None]:
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in rowgate_logging._installed:
        root.removeHandler(handler)
        handler.close()
    rowgate_logging._installed.clear()
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.mark.unit
class TestConfigureLogging:
    def test_installs_stdout_and_file_handlers(
        self, root_logger: logging.Logger, tmp_path: Path
    ) -> None:
        log_file = tmp_path / "rowgate.log"
        configure_logging(LoggingConfig(level="debug", format="json", log_file=str(log_file)))

        installed = rowgate_logging._installed
        assert len(installed) == 2
        assert any(isinstance(h, logging.FileHandler) for h in installed)
        assert all(h in root_logger.handlers for h in installed)
        assert root_logger.level == logging.DEBUG
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_json_records_reach_the_file(
        self, root_logger: logging.Logger, tmp_path: Path
    ) -> None:
        log_file = tmp_path / "rowgate.log"
        configure_logging(LoggingConfig(level="info", format="json", log_file=str(log_file)))

        get_logger("rowgate.tests").info("schema_discovered", table="usuario", sql="x" * 600)
        for handler in rowgate_logging._installed:
            handler.flush()

        record = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert record["event"] == "schema_discovered"
        assert record["table"] == "usuario"
        assert record["level"] == "info"
        assert len(record["sql"]) == 503

    def test_reconfigure_replaces_own_handlers_only(self, root_logger: logging.Logger) -> None:
        foreign = logging.NullHandler()
        root_logger.addHandler(foreign)
        try:
            configure_logging(LoggingConfig(level="warning"))
            first = list(rowgate_logging._installed)
            configure_logging(LoggingConfig(level="error"))

            assert foreign in root_logger.handlers
            assert not any(h in root_logger.handlers for h in first)
            assert root_logger.level == logging.ERROR
        finally:
            root_logger.removeHandler(foreign)

    def test_defaults_to_settings(
        self, root_logger: logging.Logger, test_settings: Settings
    ) -> None:
        configure_logging()
        assert root_logger.level == logging.DEBUG
        assert len(rowgate_logging._installed) == 1


@pytest.mark.unit
class TestProcessors:
    def test_long_sql_truncated(self) -> None:
        event = _truncate_sql(None, "debug", {"event": "statement_executed", "sql": "x" * 600})
        assert len(event["sql"]) == 503
        assert event["sql"].endswith("...")

    def test_short_sql_untouched(self) -> None:
        event = _truncate_sql(None, "debug", {"sql": "SELECT 1"})
        assert event["sql"] == "SELECT 1"

    def test_session_injected_when_bound(self) -> None:
        bind_session("batch-7")
        try:
            event = _inject_session(None, "info", {"event": "row_inserted"})
            assert event["session"] == "batch-7"
        finally:
            bind_session(None)
        assert "session" not in _inject_session(None, "info", {"event": "row_inserted"})
