"""
Tests for Death Chest Structured Logging.

Tests logger configuration, formatters, and utility functions.
"""

from __future__ import annotations

import json
import logging
import sys

from deathchest.core.config import DeathChestSettings
from deathchest.core.logging import (
    DeathChestFormatter,
    configure_logging,
    debug_enabled,
    get_logger,
)


def make_record(name: str = "deathchest.datastore.sqlite", level: int = logging.INFO, **kwargs):
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=10,
        msg=kwargs.pop("msg", "Test message"),
        args=(),
        exc_info=kwargs.pop("exc_info", None),
    )


# =============================================================================
# DeathChestFormatter Tests
# =============================================================================


class TestDeathChestFormatter:
    """Test DeathChestFormatter class."""

    def test_text_format_basic(self):
        """Text format includes level and module."""
        formatted = DeathChestFormatter(json_output=False).format(make_record())

        assert formatted == "[DEATHCHEST INFO] [sqlite] Test message"

    def test_text_format_with_exception(self):
        """Text format includes exception info."""
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        formatted = DeathChestFormatter().format(
            make_record(level=logging.ERROR, exc_info=exc_info)
        )

        assert "ValueError" in formatted
        assert "Test error" in formatted

    def test_json_format_basic(self):
        """JSON format produces valid JSON."""
        formatted = DeathChestFormatter(json_output=True).format(make_record())
        data = json.loads(formatted)

        assert data["level"] == "INFO"
        assert data["logger"] == "deathchest.datastore.sqlite"
        assert data["message"] == "Test message"
        assert "timestamp" in data

    def test_json_format_with_extra(self):
        """JSON format includes extra attributes."""
        record = make_record()
        record.world = "world_nether"

        data = json.loads(DeathChestFormatter(json_output=True).format(record))

        assert data["world"] == "world_nether"


# =============================================================================
# Logger Tests
# =============================================================================


class TestGetLogger:
    """Test get_logger function."""

    def test_caches_loggers(self):
        assert get_logger("deathchest.test.cache") is get_logger("deathchest.test.cache")

    def test_logger_does_not_propagate(self):
        """New loggers don't bubble up to the root logger."""
        logger = get_logger("deathchest.test.propagate")

        assert logger.propagate is False
        assert logger.handlers


class TestConfigureLogging:
    """Test configure_logging and debug_enabled."""

    def test_applies_level_to_loggers(self):
        logger = get_logger("deathchest.test.configure")

        configure_logging(DeathChestSettings(log_level="ERROR"))

        assert logger.level == logging.ERROR
        assert debug_enabled() is False

    def test_debug_flag_enables_traces(self):
        configure_logging(DeathChestSettings(debug=True))

        assert debug_enabled() is True

    def test_debug_level_enables_traces(self):
        configure_logging(DeathChestSettings(log_level="DEBUG"))

        assert debug_enabled() is True

    def test_defaults(self):
        assert debug_enabled() is False

    def test_json_output(self, capsys):
        logger = get_logger("deathchest.test.json")
        configure_logging(DeathChestSettings(log_json=True))

        logger.warning("Saved death chest world '%s' does not exist.", "gone")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        assert json.loads(line)["message"] == "Saved death chest world 'gone' does not exist."
