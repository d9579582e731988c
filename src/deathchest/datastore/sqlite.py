"""
SQLite Implementation of the Datastore.

Persists death chests in a single blocks table with a UNIQUE (worldname, x, y, z)
constraint; writes use INSERT OR REPLACE so the last writer for a location wins.
Schema is created and evolved by MigrationRunner on initialize.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING

from ..core.logging import debug_enabled, get_logger
from .errors import (
    CorruptRecordError,
    InvalidOwnerIdentityError,
    NotInitializedError,
    RecordKey,
    StorageError,
)
from .migrations import MigrationRunner
from .protocol import Clock, DataStoreType, StoreState, system_clock
from .records import DeathChestRecord, record_from_row, record_to_row

if TYPE_CHECKING:
    from .protocol import WorldResolver

logger = get_logger(__name__)

# Files SQLite may create next to the database
_SIDECAR_SUFFIXES = ("-journal", "-wal", "-shm")


class SQLiteDataStore:
    """
    SQLite implementation of DataStore.

    Lifecycle: UNINITIALIZED -> initialize() -> INITIALIZED -> close() -> CLOSED.
    Record operations outside INITIALIZED raise NotInitializedError.
    The connection is owned by this instance; callers serialize access.
    """

    def __init__(
        self,
        db_path: Path | str,
        worlds: WorldResolver,
        clock: Clock = system_clock,
    ):
        """
        Initialize the store.

        Args:
            db_path: Path to the database file
            worlds: Resolver used to detect records in unloaded worlds
            clock: Source of the current instant for expiration sweeps
        """
        self.db_path = Path(db_path)
        self._worlds = worlds
        self._clock = clock
        self._conn: sqlite3.Connection | None = None
        self._state = StoreState.UNINITIALIZED

    @property
    def type(self) -> DataStoreType:
        return DataStoreType.SQLITE

    @property
    def name(self) -> str:
        return self.type.display_name

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def db(self) -> sqlite3.Connection:
        """Get the database connection, raising if not initialized."""
        if self._conn is None:
            raise NotInitializedError(
                f"{self.name} datastore not initialized. Call initialize() first."
            )
        return self._conn

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def initialize(self) -> None:
        """Open the database and apply pending migrations."""
        if self._state is StoreState.INITIALIZED:
            logger.info("%s datastore already initialized.", self.name)
            return

        conn: sqlite3.Connection | None = None
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path))
            conn.row_factory = sqlite3.Row
            MigrationRunner(conn).run_migrations()
        except (sqlite3.Error, OSError) as e:
            if conn is not None:
                conn.close()
            raise self._storage_error("initialize", e) from e

        self._conn = conn
        self._state = StoreState.INITIALIZED
        logger.info("%s datastore initialized: %s", self.name, self.db_path)

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is None:
            return

        try:
            self._conn.close()
            logger.info("%s datastore connection closed.", self.name)
        except sqlite3.Error as e:
            logger.warning("An error occurred while closing the %s datastore: %s", self.name, e)
        finally:
            self._conn = None
            self._state = StoreState.CLOSED

    def flush(self) -> None:
        """Commit any open transaction; every write already commits."""
        try:
            self.db.commit()
        except sqlite3.Error as e:
            raise self._storage_error("flush", e) from e

    def delete_storage(self) -> None:
        """Delete the database file and its journal files."""
        if self._conn is not None:
            self.close()

        paths = [self.db_path] + [
            self.db_path.with_name(self.db_path.name + suffix) for suffix in _SIDECAR_SUFFIXES
        ]
        try:
            for path in paths:
                path.unlink(missing_ok=True)
        except OSError as e:
            raise self._storage_error("delete_storage", e) from e

        logger.info("%s datastore deleted: %s", self.name, self.db_path)

    def exists(self) -> bool:
        return self.db_path.exists()

    # -------------------------------------------------------------------------
    # Record Operations
    # -------------------------------------------------------------------------

    def get_record(self, world: str, x: int, y: int, z: int) -> DeathChestRecord | None:
        """Get the record at a location, decoding identities leniently."""
        key = (world, x, y, z)
        try:
            row = self.db.execute(
                """
                SELECT ownerid, killerid, worldname, x, y, z, expiration
                FROM blocks
                WHERE worldname = ? AND x = ? AND y = ? AND z = ?
                """,
                key,
            ).fetchone()
        except sqlite3.Error as e:
            raise self._storage_error("get_record", e, key) from e

        # Zero or one row can match the unique location
        if row is None:
            return None

        try:
            record = record_from_row(row)
        except CorruptRecordError as e:
            raise self._storage_error("get_record", e, key) from e
        if record.owner_id is None:
            logger.warning(
                "Death chest at %s has an invalid owner id: %r", key, row["ownerid"]
            )
        return record

    def list_records(self) -> list[DeathChestRecord]:
        """Get every attributable record in a loaded world."""
        try:
            rows = self.db.execute(
                """
                SELECT ownerid, killerid, worldname, x, y, z, expiration
                FROM blocks
                ORDER BY blockid
                """
            ).fetchall()
        except sqlite3.Error as e:
            raise self._storage_error("list_records", e) from e

        results: list[DeathChestRecord] = []
        swept: set[str] = set()

        for row in rows:
            try:
                record = record_from_row(row)
            except CorruptRecordError as e:
                logger.warning(
                    "Skipping corrupt death chest row in world '%s': %s",
                    row["worldname"],
                    e.message,
                )
                continue

            if record.owner_id is None:
                logger.warning(
                    "Skipping death chest at %s with invalid owner id: %r",
                    record.key,
                    row["ownerid"],
                )
                continue

            if not self._worlds.is_world_loaded(record.world):
                logger.warning("Saved death chest world '%s' does not exist.", record.world)
                if record.world not in swept:
                    swept.add(record.world)
                    self._sweep_orphaned_world(record.world)
                continue

            results.append(record)

        logger.debug("%d records fetched from %s datastore.", len(results), self.name)
        return results

    def put_record(self, record: DeathChestRecord) -> None:
        """Insert or replace the record at its location."""
        conn = self.db
        try:
            row = record_to_row(record)
        except InvalidOwnerIdentityError:
            logger.warning("Death chest owner id is invalid: %r", record.owner_id)
            raise

        try:
            with conn:
                cursor = conn.execute(
                    """
                    INSERT OR REPLACE INTO blocks (
                        ownerid, killerid, worldname, x, y, z, expiration
                    ) VALUES (
                        :ownerid, :killerid, :worldname, :x, :y, :z, :expiration
                    )
                    """,
                    row,
                )
        except sqlite3.Error as e:
            raise self._storage_error("put_record", e, record.key) from e

        logger.debug("%d rows affected.", cursor.rowcount)

    def delete_record(self, world: str, x: int, y: int, z: int) -> None:
        """Delete the record at a location, if any."""
        key = (world, x, y, z)
        conn = self.db
        try:
            with conn:
                cursor = conn.execute(
                    "DELETE FROM blocks WHERE worldname = ? AND x = ? AND y = ? AND z = ?",
                    key,
                )
        except sqlite3.Error as e:
            raise self._storage_error("delete_record", e, key) from e

        logger.debug("%d rows deleted.", cursor.rowcount)

    # -------------------------------------------------------------------------
    # Maintenance Operations
    # -------------------------------------------------------------------------

    def delete_expired_records(self, world: str, now: int | None = None) -> int:
        """Delete records in a world whose expiration is at or before now."""
        conn = self.db
        if now is None:
            now = self._clock()

        try:
            with conn:
                cursor = conn.execute(
                    """
                    DELETE FROM blocks
                    WHERE worldname = ? AND (expiration IS NULL OR expiration <= ?)
                    """,
                    (world, now),
                )
        except sqlite3.Error as e:
            raise self._storage_error("delete_expired_records", e) from e

        logger.debug("%d expired rows deleted from world '%s'.", cursor.rowcount, world)
        return cursor.rowcount

    def _sweep_orphaned_world(self, world: str) -> None:
        """Best-effort expiration sweep for a world that is no longer loaded."""
        try:
            self.delete_expired_records(world)
        except StorageError:
            logger.warning("Expired record cleanup for world '%s' failed; continuing.", world)

    def _storage_error(
        self, operation: str, exc: Exception, key: RecordKey | None = None
    ) -> StorageError:
        """Log a backing-store failure and wrap it for the caller."""
        where = f" for {key}" if key is not None else ""
        logger.error(
            "An error occurred during %s datastore %s%s: %s",
            self.name,
            operation,
            where,
            exc,
            exc_info=debug_enabled(),
        )
        return StorageError(f"{self.name} {operation} failed: {exc}", operation, key)
