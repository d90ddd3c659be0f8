"""
Tests for dockwatch structured logging.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from unittest import mock

from dockwatch.core.config import reset_settings
from dockwatch.core.logging import DockwatchFormatter, get_logger, reset_logging, set_log_level


def make_record(name: str = "dockwatch.services.dispatcher", msg: str = "ops notified", **extra):
    record = logging.LogRecord(
        name=name,
        level=logging.INFO,
        pathname="dispatcher.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestDockwatchFormatter:
    """Test DockwatchFormatter class."""

    def test_text_format_basic(self):
        """Text format includes level and module."""
        formatted = DockwatchFormatter(json_output=False).format(make_record())

        assert "DOCKWATCH INFO" in formatted
        assert "[dispatcher]" in formatted
        assert "ops notified" in formatted

    def test_text_format_with_exception(self):
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        record = make_record()
        record.exc_info = exc_info

        formatted = DockwatchFormatter(json_output=False).format(record)
        assert "ValueError: Test error" in formatted

    def test_json_format_basic(self):
        data = json.loads(DockwatchFormatter(json_output=True).format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "dockwatch.services.dispatcher"
        assert data["message"] == "ops notified"
        assert "timestamp" in data

    def test_json_format_with_extra(self):
        record = make_record(target_key="ops")
        data = json.loads(DockwatchFormatter(json_output=True).format(record))
        assert data["target_key"] == "ops"


class TestGetLogger:
    """Test get_logger function."""

    def test_returns_logger(self):
        logger = get_logger("dockwatch.test.returns")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "dockwatch.test.returns"

    def test_caches_loggers(self):
        assert get_logger("dockwatch.test.cache") is get_logger("dockwatch.test.cache")

    def test_logger_does_not_propagate(self):
        logger = get_logger("dockwatch.test.propagate")
        assert logger.propagate is False
        assert logger.handlers


class TestSetLogLevel:
    """Test set_log_level function."""

    def test_sets_level_on_all_loggers(self):
        first = get_logger("dockwatch.test.level_a")
        second = get_logger("dockwatch.test.level_b")

        set_log_level(logging.ERROR)

        assert first.level == logging.ERROR
        assert second.level == logging.ERROR


class TestResetLogging:
    """reset_logging restores propagation for caplog."""

    def test_restores_propagation(self):
        logger = get_logger("dockwatch.test.reset")
        reset_logging()

        assert logger.propagate is True
        assert logger.level == logging.NOTSET


class TestSettingsDrivenLogging:
    """Level and output format come from DOCKWATCH_* settings."""

    def test_level_from_settings(self):
        with mock.patch.dict(os.environ, {"DOCKWATCH_LOG_LEVEL": "WARNING"}, clear=True):
            reset_settings()
            logger = get_logger("dockwatch.test.settings_level")

        assert logger.level == logging.WARNING

    def test_json_handler_from_settings(self):
        with mock.patch.dict(os.environ, {"DOCKWATCH_LOG_JSON": "true"}, clear=True):
            reset_settings()
            logger = get_logger("dockwatch.test.settings_json")

        formatter = logger.handlers[0].formatter
        assert isinstance(formatter, DockwatchFormatter)
        assert formatter.json_output is True
