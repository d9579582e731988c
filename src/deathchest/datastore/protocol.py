"""
Datastore Protocol Interface.

This file defines the abstract interface for death chest storage backends
and the collaborator interfaces backends depend on (world resolver, clock).

The protocol enables pluggable storage backends (SQLite, YAML flat file)
while providing a consistent API to the code that places, loots and
expires death chests.
"""

from __future__ import annotations

import time
from abc import abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ..core.logging import get_logger

if TYPE_CHECKING:
    from .records import DeathChestRecord

logger = get_logger(__name__)

# Supplies the current instant in epoch milliseconds
Clock = Callable[[], int]


def system_clock() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class StoreState(Enum):
    """Backend lifecycle: UNINITIALIZED -> INITIALIZED -> CLOSED."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    CLOSED = "closed"


class DataStoreType(Enum):
    """Available backends, with display name and storage file name."""

    SQLITE = ("SQLite", "deathchests.db")
    YAML = ("YAML", "deathchests.yml")

    def __init__(self, display_name: str, filename: str) -> None:
        self.display_name = display_name
        self.filename = filename

    @classmethod
    def default(cls) -> DataStoreType:
        return cls.SQLITE

    @classmethod
    def from_name(cls, name: str | None) -> DataStoreType:
        """
        Look up a backend type by name, case-insensitively.

        Unknown names fall back to the default type with a warning.
        """
        if name:
            for store_type in cls:
                if name.lower() in (store_type.name.lower(), store_type.display_name.lower()):
                    return store_type
        logger.warning(
            "Unknown datastore type '%s'; using %s.", name, cls.default().display_name
        )
        return cls.default()


@runtime_checkable
class WorldResolver(Protocol):
    """Reports which worlds the game server currently has loaded."""

    def is_world_loaded(self, name: str) -> bool:
        """Check if a world with this name is currently known."""
        ...


# =============================================================================
# Protocol Interface
# =============================================================================


@runtime_checkable
class DataStore(Protocol):
    """
    Abstract interface for death chest storage.

    Design notes:
    - (world, x, y, z) is unique; writes replace any record with the same key
    - Expiration instants are epoch milliseconds
    - Calls are synchronous and assume a single calling thread
    - Hard failures raise DataStoreError subclasses; absence returns None
    """

    @property
    def type(self) -> DataStoreType:
        """Backend type of this store."""
        ...

    @property
    def name(self) -> str:
        """Display name of the backend type."""
        ...

    @property
    def state(self) -> StoreState:
        """Current lifecycle state."""
        ...

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @abstractmethod
    def initialize(self) -> None:
        """
        Open the store, creating the underlying schema if absent.

        Idempotent: calling on an initialized store does nothing.

        Raises:
            StorageError: If the store cannot be opened
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """
        Release underlying resources.

        Idempotent and safe to call on a store that was never initialized.
        """
        ...

    @abstractmethod
    def flush(self) -> None:
        """Force buffered state to durable storage (no-op without buffering)."""
        ...

    @abstractmethod
    def delete_storage(self) -> None:
        """Remove the underlying persisted storage, if present."""
        ...

    @abstractmethod
    def exists(self) -> bool:
        """Check for the underlying storage without initializing."""
        ...

    # -------------------------------------------------------------------------
    # Record Operations
    # -------------------------------------------------------------------------

    @abstractmethod
    def get_record(self, world: str, x: int, y: int, z: int) -> DeathChestRecord | None:
        """
        Get the record at a location.

        Identity decoding is lenient: a corrupt owner yields owner_id=None and
        a corrupt killer yields killer_id=None.

        Returns:
            The record, or None if no chest is stored at the location.

        Raises:
            StorageError: If the stored row's location or expiration is corrupt
        """
        ...

    @abstractmethod
    def list_records(self) -> list[DeathChestRecord]:
        """
        Get every stored record.

        Rows with an undecodable owner or a non-integer location or
        expiration are skipped with a warning. Rows in a
        world that is not loaded are skipped and trigger an expiration sweep
        of that world.
        """
        ...

    @abstractmethod
    def put_record(self, record: DeathChestRecord) -> None:
        """
        Insert or replace the record at record.key.

        Raises:
            InvalidOwnerIdentityError: If owner_id cannot be encoded (nothing is written)
        """
        ...

    @abstractmethod
    def delete_record(self, world: str, x: int, y: int, z: int) -> None:
        """Delete the record at a location. Missing records are not an error."""
        ...

    # -------------------------------------------------------------------------
    # Maintenance Operations
    # -------------------------------------------------------------------------

    @abstractmethod
    def delete_expired_records(self, world: str, now: int | None = None) -> int:
        """
        Delete records in a world whose expiration is at or before now.

        A missing expiration counts as already expired.

        Args:
            world: World name to sweep
            now: Current instant in epoch ms (defaults to the store's clock)

        Returns:
            Count of records deleted.
        """
        ...
