"""
Death Chest Datastore - Persistent Storage for Death Chest Records.

A death chest is placed where a player dies; this package keeps the record of
each one (owner, optional killer, world location, expiration) across restarts.

Key Components:
- SQLiteDataStore: SQLite implementation with versioned schema migrations
- YAMLDataStore: YAML flat-file implementation with buffered writes
- DataStoreManager: Selects the configured backend and converts between types
- ExpirationSweeper: Scheduled removal of expired records
- Protocol classes: DataStore, WorldResolver, DeathChestRecord, etc.

Usage:
    from deathchest.datastore import (
        DataStoreManager,
        DeathChestRecord,
        ExpirationSweeper,
        KnownWorlds,
    )

    worlds = KnownWorlds(["world"])
    manager = DataStoreManager(settings, worlds)
    store = manager.start()

    store.put_record(record)
    record = store.get_record("world", 10, 64, -5)
    store.delete_record("world", 10, 64, -5)

    sweeper = ExpirationSweeper(store, settings, worlds)
    sweeper.run_once()
"""

from .errors import (
    CorruptRecordError,
    DataStoreError,
    InvalidOwnerIdentityError,
    NotInitializedError,
    StorageError,
)
from .factory import DataStoreManager, convert_all, convert_datastore, create_datastore
from .flatfile import YAMLDataStore
from .identity import decode_identity, encode_identity
from .migrations import MigrationRunner
from .protocol import (
    Clock,
    DataStore,
    DataStoreType,
    StoreState,
    WorldResolver,
    system_clock,
)
from .records import DeathChestRecord
from .sqlite import SQLiteDataStore
from .sweep import ExpirationSweeper, SweepStats
from .worlds import KnownWorlds, enabled_worlds

__all__ = [
    # Store implementations
    "SQLiteDataStore",
    "YAMLDataStore",
    "MigrationRunner",
    # Selection
    "DataStoreManager",
    "create_datastore",
    "convert_datastore",
    "convert_all",
    # Sweeping
    "ExpirationSweeper",
    "SweepStats",
    # Protocol
    "DataStore",
    "DataStoreType",
    "StoreState",
    "WorldResolver",
    "Clock",
    "system_clock",
    "DeathChestRecord",
    "KnownWorlds",
    "enabled_worlds",
    # Identity
    "decode_identity",
    "encode_identity",
    # Errors
    "DataStoreError",
    "NotInitializedError",
    "InvalidOwnerIdentityError",
    "StorageError",
    "CorruptRecordError",
]
