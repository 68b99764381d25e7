"""Tests for powerbroker.core.logging."""

from __future__ import annotations

import json
import logging
import sys

import pytest

import powerbroker.core.logging as log_module
from powerbroker.core.logging import (
    JSONFormatter,
    evaluation_context,
    log_error_once,
    reset_error_once,
    setup_logging,
)


def _record(msg: str = "hello %s", args: tuple = ("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord("powerbroker.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Structured output with evaluation context."""

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "powerbroker.test"
        assert "domain" not in entry
        assert "tick" not in entry

    def test_context_is_injected(self):
        with evaluation_context("map-1", 42):
            entry = json.loads(JSONFormatter().format(_record()))
        assert entry["domain"] == "map-1"
        assert entry["tick"] == 42

    def test_context_is_reset(self):
        with evaluation_context("map-1", 42):
            pass
        entry = json.loads(JSONFormatter().format(_record()))
        assert "tick" not in entry

    def test_extra_fields(self):
        entry = json.loads(JSONFormatter().format(
            _record(network=("grid", 3), need=100.0, storage_level=0.5)
        ))
        assert entry["network"] == "('grid', 3)"
        assert entry["need"] == 100.0
        assert entry["storage_level"] == 0.5

    def test_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        entry = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in entry["exception"]


class TestErrorOnce:
    """Deduplication by stable code."""

    def test_logs_once_per_code(self, caplog):
        logger = logging.getLogger("powerbroker.test")
        assert log_error_once(logger, 1, "first")
        assert not log_error_once(logger, 1, "again")
        assert log_error_once(logger, 2, "other")
        assert [r.getMessage() for r in caplog.records] == ["first", "other"]

    def test_reset(self, caplog):
        logger = logging.getLogger("powerbroker.test")
        log_error_once(logger, 7, "x")
        reset_error_once()
        assert log_error_once(logger, 7, "x")


class TestSetupLogging:
    """Root logger configuration."""

    @pytest.fixture(autouse=True)
    def _restore_root(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_plain(self):
        setup_logging(level="debug")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_json(self):
        setup_logging(json_format=True)
        root = logging.getLogger()
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_defaults_come_from_settings(self, monkeypatch):
        monkeypatch.setattr(log_module.settings, "log_json", True)
        monkeypatch.setattr(log_module.settings, "log_level", "warning")
        setup_logging()
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
