"""
Death Chest Structured Logging

Provides consistent logging across the deathchest package with:
- Level and output mode taken from DeathChestSettings via configure_logging()
- Legacy debug flag attaching stack traces to error diagnostics
- JSON-formatted output option for machine parsing
- Module-specific loggers

Usage:
    from deathchest.core.logging import get_logger

    logger = get_logger(__name__)
    logger.debug("%d rows affected", count)
    logger.warning("Saved death chest world '%s' does not exist", world)
    logger.error("Datastore operation failed", exc_info=debug_enabled())
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config import DeathChestSettings

# Attributes present on every LogRecord; anything else came in via extra=
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "exc_info",
        "exc_text",
        "stack_info",
        "message",
        "taskName",
    }
)


class DeathChestFormatter(logging.Formatter):
    """
    Custom formatter for death chest logs.

    Supports both human-readable and JSON output.
    """

    def __init__(self, json_output: bool = False) -> None:
        super().__init__()
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        if self.json_output:
            return self._format_json(record)
        return self._format_text(record)

    def _format_text(self, record: logging.LogRecord) -> str:
        """Format as human-readable text."""
        module = record.name.rsplit(".", 1)[-1]
        msg = f"[DEATHCHEST {record.levelname}] [{module}] {record.getMessage()}"

        if record.exc_info:
            msg += "\n" + "".join(traceback.format_exception(*record.exc_info))

        return msg

    def _format_json(self, record: logging.LogRecord) -> str:
        """Format as JSON for machine parsing."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(log_data, default=str)


# Module-level logger cache
_loggers: dict[str, logging.Logger] = {}
_handler: logging.Handler | None = None
_level: int = logging.WARNING
_json_output: bool = False
_debug: bool = False


def _get_handler() -> logging.Handler:
    """Get or create the shared stderr handler."""
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(DeathChestFormatter(json_output=_json_output))
    return _handler


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for the given module name.

    Args:
        name: Module name (typically __name__)

    Returns:
        Configured logger instance
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    logger.setLevel(_level)
    logger.addHandler(_get_handler())
    logger.propagate = False  # Don't bubble up to root logger

    _loggers[name] = logger
    return logger


def configure_logging(settings: DeathChestSettings) -> None:
    """
    Apply level, output mode and debug flag from settings to all loggers.

    Args:
        settings: Settings to apply
    """
    global _level, _json_output, _debug

    _level = settings.log_level_int
    _json_output = settings.log_json
    _debug = settings.debug

    if _handler is not None:
        _handler.setFormatter(DeathChestFormatter(json_output=_json_output))
    for logger in _loggers.values():
        logger.setLevel(_level)


def debug_enabled() -> bool:
    """
    Check if debug diagnostics are enabled.

    Used to decide whether error logs carry a stack trace.
    """
    return _debug or _level <= logging.DEBUG


def reset_logging() -> None:
    """
    Reset all deathchest loggers to default state.

    Restores propagate=True and level=NOTSET on every deathchest.* logger so
    pytest's caplog can capture them, and drops the shared handler.
    Used by test fixtures to prevent cross-test logging pollution.
    """
    global _handler, _level, _json_output, _debug

    manager = logging.Logger.manager
    for name in list(manager.loggerDict.keys()):
        if name == "deathchest" or name.startswith("deathchest."):
            logger_or_placeholder = manager.loggerDict[name]
            # loggerDict can contain Logger objects or PlaceHolder objects
            if isinstance(logger_or_placeholder, logging.Logger):
                logger_or_placeholder.propagate = True
                logger_or_placeholder.setLevel(logging.NOTSET)

    for logger in _loggers.values():
        if _handler is not None:
            logger.removeHandler(_handler)

    _handler = None
    _level = logging.WARNING
    _json_output = False
    _debug = False
