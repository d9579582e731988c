"""
Shared infrastructure for the deathchest package.

- config.py: validated settings loaded from DEATHCHEST_* environment variables
- logging.py: package loggers and formatter
"""

from .config import NEVER_EXPIRES, DeathChestSettings, load_settings
from .logging import configure_logging, debug_enabled, get_logger, reset_logging

__all__ = [
    "NEVER_EXPIRES",
    "DeathChestSettings",
    "load_settings",
    "configure_logging",
    "debug_enabled",
    "get_logger",
    "reset_logging",
]
