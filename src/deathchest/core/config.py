"""
Death Chest Centralized Configuration

Provides validated, type-safe access to all environment variables using Pydantic Settings.
Settings are an explicit value: build one with load_settings() and pass it to the
datastore factory. Nothing in the datastore reads configuration on its own.

Usage:
    from deathchest.core.config import load_settings

    settings = load_settings()
    manager = DataStoreManager(settings, worlds)

Data Paths:
    All data is stored in {instance_root}/data/ unless DEATHCHEST_DATA_DIR is set:
    - data/deathchests.db: SQLite datastore
    - data/deathchests.yml: YAML datastore

Environment Variables:
    DEATHCHEST_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    DEATHCHEST_DEBUG: Legacy debug flag (enables DEBUG level and stack traces)
    DEATHCHEST_LOG_JSON: Output logs as JSON
    DEATHCHEST_STORAGE_TYPE: Datastore backend (sqlite, yaml)
    DEATHCHEST_DATA_DIR: Directory holding the datastore file
    DEATHCHEST_EXPIRE_TIME: Minutes before a death chest expires (0 = never)
    DEATHCHEST_ENABLED_WORLDS: JSON list of world names (empty = all worlds)
    DEATHCHEST_DISABLED_WORLDS: JSON list of world names excluded from the enabled set
    DEATHCHEST_SWEEP_INTERVAL_SECONDS: Seconds between expiration sweeps
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Largest value a signed 64-bit expiration column can hold
NEVER_EXPIRES = 2**63 - 1


def _find_instance_root() -> Path:
    """
    Find the instance root directory.

    Resolution order:
    1. DEATHCHEST_INSTANCE_ROOT environment variable (explicit override)
    2. Project root (directory containing pyproject.toml)
    3. Current working directory (fallback)
    """
    override = os.environ.get("DEATHCHEST_INSTANCE_ROOT")
    if override:
        return Path(override)

    current = Path(__file__).resolve().parent
    for _ in range(10):  # Limit search depth
        if (current / "pyproject.toml").exists():
            return current
        parent = current.parent
        if parent == current:
            break
        current = parent

    return Path.cwd()


def _find_project_env_file() -> Path | None:
    """Return the project .env file if one sits next to pyproject.toml."""
    env_file = _find_instance_root() / ".env"
    return env_file if env_file.exists() else None


class DeathChestSettings(BaseSettings):
    """
    Death chest configuration settings with validation.

    Environment variables are automatically loaded with the DEATHCHEST_ prefix.
    All settings have sensible defaults and validation.
    """

    model_config = SettingsConfigDict(
        env_prefix="DEATHCHEST_",
        env_file=_find_project_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level for death chest components",
    )

    debug: bool = Field(
        default=False,
        description="Legacy debug flag (enables DEBUG level and stack traces)",
    )

    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format for machine parsing",
    )

    # =========================================================================
    # Storage
    # =========================================================================

    storage_type: Literal["sqlite", "yaml"] = Field(
        default="sqlite",
        description="Datastore backend",
    )

    instance_root: Path = Field(
        default_factory=_find_instance_root,
        description="Instance root directory (project root containing pyproject.toml)",
    )

    data_dir: Path | None = Field(
        default=None,
        description="Directory holding the datastore file (default {instance_root}/data)",
    )

    # =========================================================================
    # Chest Lifetime
    # =========================================================================

    expire_time: int = Field(
        default=60,
        description="Minutes a death chest lives before it may be cleaned up (0 = never)",
    )

    enabled_worlds: list[str] = Field(
        default_factory=list,
        description="Worlds where death chests are enabled (empty = all loaded worlds)",
    )

    disabled_worlds: list[str] = Field(
        default_factory=list,
        description="Worlds removed from the enabled list, even when it is empty",
    )

    sweep_interval_seconds: int = Field(
        default=300,
        gt=0,
        description="Seconds between scheduled expiration sweeps",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level", "storage_type", mode="before")
    @classmethod
    def normalize_case(cls, v: Any, info: ValidationInfo) -> Any:
        """Normalize log level to uppercase and storage type to lowercase."""
        if isinstance(v, str):
            return v.upper() if info.field_name == "log_level" else v.lower()
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def effective_log_level(self) -> str:
        """
        Get effective log level, respecting legacy DEATHCHEST_DEBUG.

        Priority:
        1. Explicit DEATHCHEST_LOG_LEVEL
        2. DEATHCHEST_DEBUG=1 -> DEBUG
        3. Default: WARNING
        """
        if self.debug and self.log_level == "WARNING":
            return "DEBUG"
        return self.log_level

    @property
    def log_level_int(self) -> int:
        """Get effective log level as logging constant."""
        return getattr(logging, self.effective_log_level)

    @property
    def storage_dir(self) -> Path:
        """Directory holding datastore files."""
        if self.data_dir is not None:
            return self.data_dir
        return self.instance_root / "data"

    @property
    def expire_time_ms(self) -> int:
        """Chest lifetime in milliseconds (0 when chests never expire)."""
        return max(self.expire_time, 0) * 60_000

    def expiration_for(self, placed_at_ms: int) -> int:
        """
        Compute the absolute expiration instant for a chest.

        Args:
            placed_at_ms: Epoch milliseconds when the chest was placed

        Returns:
            Epoch milliseconds after which the chest is expired
        """
        if self.expire_time <= 0:
            return NEVER_EXPIRES
        return placed_at_ms + self.expire_time_ms


def load_settings(**overrides: Any) -> DeathChestSettings:
    """
    Build a settings instance from the environment.

    Each call re-reads the environment; keyword overrides take precedence.

    Returns:
        DeathChestSettings instance with validated configuration
    """
    return DeathChestSettings(**overrides)
