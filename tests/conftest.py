"""
Death Chest Test Suite - Shared Fixtures and Configuration
"""

from __future__ import annotations

import os

import pytest


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Remove DEATHCHEST_* variables so settings start from defaults."""
    for key in list(os.environ):
        if key.startswith("DEATHCHEST_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_logging_state():
    """
    Restore logger propagation before and after each test.

    Package loggers do not propagate by default, which hides them from caplog.
    """
    from deathchest.core.logging import reset_logging

    reset_logging()
    yield
    reset_logging()
