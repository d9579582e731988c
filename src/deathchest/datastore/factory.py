"""
Datastore selection and conversion.

Builds the backend named by settings.storage_type and moves records between
backend types when the configured type changes.

Usage:
    settings = load_settings()
    worlds = KnownWorlds(["world", "world_nether"])

    manager = DataStoreManager(settings, worlds)
    manager.start()
    manager.store.put_record(record)
    ...
    manager.reload(load_settings())  # converts storage if the type changed
    manager.shutdown()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.logging import get_logger
from .errors import NotInitializedError
from .flatfile import YAMLDataStore
from .protocol import Clock, DataStore, DataStoreType, StoreState, system_clock
from .sqlite import SQLiteDataStore

if TYPE_CHECKING:
    from ..core.config import DeathChestSettings
    from .protocol import WorldResolver

logger = get_logger(__name__)


def create_datastore(
    settings: DeathChestSettings,
    worlds: WorldResolver,
    clock: Clock = system_clock,
    store_type: DataStoreType | None = None,
) -> DataStore:
    """
    Build an uninitialized datastore.

    Args:
        settings: Supplies the storage directory and default type
        worlds: World resolver handed to the backend
        clock: Clock handed to the backend
        store_type: Backend to build (defaults to settings.storage_type)

    Returns:
        The backend; call initialize() before use.
    """
    if store_type is None:
        store_type = DataStoreType.from_name(settings.storage_type)

    path = settings.storage_dir / store_type.filename
    if store_type is DataStoreType.YAML:
        return YAMLDataStore(path, worlds, clock)
    return SQLiteDataStore(path, worlds, clock)


def convert_datastore(old: DataStore, new: DataStore) -> int:
    """
    Copy every record from old into new, then delete old's storage.

    Does nothing when old has no storage. Records skipped by
    old.list_records() (invalid owner, corrupt row, unloaded world) are not
    copied. old is closed on return; on a failed copy new is closed too and
    old keeps its storage.

    Returns:
        Number of records copied.
    """
    if not old.exists():
        return 0

    try:
        old.initialize()
        try:
            new.initialize()
            records = old.list_records()
            for record in records:
                new.put_record(record)
            new.flush()
        except Exception:
            logger.error("Conversion from %s to %s datastore failed.", old.name, new.name)
            new.close()
            raise
    finally:
        old.close()

    old.delete_storage()

    logger.info(
        "%d records converted from %s to %s datastore.", len(records), old.name, new.name
    )
    return len(records)


def convert_all(
    settings: DeathChestSettings,
    new: DataStore,
    worlds: WorldResolver,
    clock: Clock = system_clock,
) -> int:
    """
    Convert storage of every other backend type into new.

    Returns:
        Total number of records copied.
    """
    copied = 0
    for store_type in DataStoreType:
        if store_type is new.type:
            continue
        old = create_datastore(settings, worlds, clock, store_type)
        copied += convert_datastore(old, new)
    return copied


class DataStoreManager:
    """
    Owns the active datastore for the host.

    start() must succeed before the store serves requests; a failure there is
    a startup failure and propagates.
    """

    def __init__(
        self,
        settings: DeathChestSettings,
        worlds: WorldResolver,
        clock: Clock = system_clock,
    ):
        self.settings = settings
        self.worlds = worlds
        self.clock = clock
        self._store: DataStore | None = None

    @property
    def store(self) -> DataStore:
        """Get the active datastore, raising if not started."""
        if self._store is None:
            raise NotInitializedError("Datastore manager not started. Call start() first.")
        return self._store

    def start(self) -> DataStore:
        """Convert any leftover storage into the configured type and open it."""
        store = create_datastore(self.settings, self.worlds, self.clock)
        convert_all(self.settings, store, self.worlds, self.clock)
        store.initialize()
        self._store = store
        return store

    def reload(self, settings: DeathChestSettings) -> DataStore:
        """
        Apply new settings, converting storage if the backend type changed.

        The previous store is always closed. If conversion fails the error
        propagates and the manager holds no store until start() succeeds.

        Returns:
            The active datastore after reload.
        """
        self.settings = settings
        new_type = DataStoreType.from_name(settings.storage_type)

        if self._store is None:
            return self.start()

        if new_type is self._store.type:
            return self._store

        old = self._store
        new = create_datastore(settings, self.worlds, self.clock, new_type)
        self._store = None
        try:
            convert_datastore(old, new)
        finally:
            old.close()
        new.initialize()
        self._store = new
        logger.info("Datastore changed from %s to %s.", old.name, new.name)
        return new

    def shutdown(self) -> None:
        """Flush and close the active datastore."""
        if self._store is None:
            return
        store = self._store
        self._store = None
        try:
            if store.state is StoreState.INITIALIZED:
                store.flush()
        finally:
            store.close()
