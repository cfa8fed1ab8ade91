"""Tests for the logging helpers."""

from __future__ import annotations

import logging
import logging.handlers
from collections.abc import Iterator
from pathlib import Path

import pytest

from sqlgrate.utils.logging import configure_logging, get_logger


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def test_log_file_argument_adds_file_handler(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "sqlgrate.log"
    configure_logging({"level": "INFO"}, log_file=log_path)

    get_logger("sqlgrate.test").info("Migrated something.")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "Migrated something." in log_path.read_text(encoding="utf-8")


def test_debug_environment_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SQLGRATE_DEBUG", "true")
    configure_logging({"level": "ERROR"})
    assert logging.getLogger().level == logging.DEBUG


def test_unknown_level_falls_back_to_info(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SQLGRATE_DEBUG", raising=False)
    configure_logging({"level": "CHATTY"})
    assert logging.getLogger().level == logging.INFO


def test_unavailable_syslog_is_not_fatal(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SQLGRATE_DEBUG", raising=False)
    configure_logging(
        {"level": "INFO", "syslog": {"enabled": True, "address": str(tmp_path / "no-socket")}}
    )
    assert not any(
        isinstance(handler, logging.handlers.SysLogHandler)
        for handler in logging.getLogger().handlers
    )


def test_get_logger_default_name() -> None:
    assert get_logger().name == "sqlgrate"
