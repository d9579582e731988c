"""
YAML flat-file Implementation of the Datastore.

All records live in memory keyed by (world, x, y, z) and are written to a single
YAML file on flush() and close(). Rows are kept in the same column form as the
SQLite blocks table so corrupt identities survive a round trip untouched.

File layout:
    records:
      - ownerid: 0f3c...        # canonical UUID text
        killerid: null
        worldname: world
        x: 10
        y: 64
        z: -5
        expiration: 1767225600000
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from ..core.logging import debug_enabled, get_logger
from .errors import InvalidOwnerIdentityError, NotInitializedError, RecordKey, StorageError
from .protocol import Clock, DataStoreType, StoreState, system_clock
from .records import DeathChestRecord, record_from_row, record_to_row

if TYPE_CHECKING:
    from .protocol import WorldResolver

logger = get_logger(__name__)


class YAMLDataStore:
    """
    YAML flat-file implementation of DataStore.

    Writes are buffered in memory until flush(); close() flushes first.
    Same lifecycle and identity rules as SQLiteDataStore.
    """

    def __init__(
        self,
        file_path: Path | str,
        worlds: WorldResolver,
        clock: Clock = system_clock,
    ):
        """
        Initialize the store.

        Args:
            file_path: Path to the YAML file
            worlds: Resolver used to detect records in unloaded worlds
            clock: Source of the current instant for expiration sweeps
        """
        self.file_path = Path(file_path)
        self._worlds = worlds
        self._clock = clock
        self._rows: dict[RecordKey, dict[str, Any]] | None = None
        self._dirty = False
        self._state = StoreState.UNINITIALIZED

    @property
    def type(self) -> DataStoreType:
        return DataStoreType.YAML

    @property
    def name(self) -> str:
        return self.type.display_name

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def rows(self) -> dict[RecordKey, dict[str, Any]]:
        """Get the in-memory rows, raising if not initialized."""
        if self._rows is None:
            raise NotInitializedError(
                f"{self.name} datastore not initialized. Call initialize() first."
            )
        return self._rows

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def initialize(self) -> None:
        """Load the file, creating an empty one if absent."""
        if self._state is StoreState.INITIALIZED:
            logger.info("%s datastore already initialized.", self.name)
            return

        try:
            rows = self._load()
        except (OSError, yaml.YAMLError) as e:
            raise self._storage_error("initialize", e) from e

        previous_state = self._state
        self._rows = rows
        self._state = StoreState.INITIALIZED
        if not self.file_path.exists():
            self._dirty = True
            try:
                self.flush()
            except StorageError:
                self._rows = None
                self._dirty = False
                self._state = previous_state
                raise

        logger.info("%s datastore initialized: %s", self.name, self.file_path)

    def close(self) -> None:
        """Flush pending writes and drop the in-memory rows."""
        if self._rows is None:
            return

        try:
            self.flush()
        except StorageError:
            logger.warning("Pending %s datastore writes were lost on close.", self.name)
        finally:
            self._rows = None
            self._dirty = False
            self._state = StoreState.CLOSED
        logger.info("%s datastore closed.", self.name)

    def flush(self) -> None:
        """Write the file if anything changed since the last flush."""
        rows = self.rows
        if not self._dirty:
            return

        document = {"records": list(rows.values())}
        tmp_path = self._tmp_path()
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                yaml.safe_dump(document, sort_keys=False, default_flow_style=False),
                encoding="utf-8",
            )
            tmp_path.replace(self.file_path)
        except (OSError, yaml.YAMLError) as e:
            raise self._storage_error("flush", e) from e

        self._dirty = False
        logger.debug("%d records written to %s datastore.", len(rows), self.name)

    def delete_storage(self) -> None:
        """Delete the YAML file, discarding any unflushed writes."""
        if self._rows is not None:
            self._rows = None
            self._dirty = False
            self._state = StoreState.CLOSED

        try:
            self.file_path.unlink(missing_ok=True)
            self._tmp_path().unlink(missing_ok=True)
        except OSError as e:
            raise self._storage_error("delete_storage", e) from e

        logger.info("%s datastore deleted: %s", self.name, self.file_path)

    def exists(self) -> bool:
        return self.file_path.exists()

    # -------------------------------------------------------------------------
    # Record Operations
    # -------------------------------------------------------------------------

    def get_record(self, world: str, x: int, y: int, z: int) -> DeathChestRecord | None:
        """Get the record at a location, decoding identities leniently."""
        row = self.rows.get((world, x, y, z))
        if row is None:
            return None

        record = record_from_row(row)
        if record.owner_id is None:
            logger.warning(
                "Death chest at %s has an invalid owner id: %r", record.key, row["ownerid"]
            )
        return record

    def list_records(self) -> list[DeathChestRecord]:
        """Get every attributable record in a loaded world."""
        results: list[DeathChestRecord] = []
        swept: set[str] = set()

        # Snapshot: orphan sweeps mutate the row map
        for row in list(self.rows.values()):
            record = record_from_row(row)

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
                    self.delete_expired_records(record.world)
                continue

            results.append(record)

        logger.debug("%d records fetched from %s datastore.", len(results), self.name)
        return results

    def put_record(self, record: DeathChestRecord) -> None:
        """Insert or replace the record at its location."""
        rows = self.rows
        try:
            row = record_to_row(record)
        except InvalidOwnerIdentityError:
            logger.warning("Death chest owner id is invalid: %r", record.owner_id)
            raise

        rows[self._row_key(row)] = row
        self._dirty = True

    def delete_record(self, world: str, x: int, y: int, z: int) -> None:
        """Delete the record at a location, if any."""
        if self.rows.pop((world, x, y, z), None) is not None:
            self._dirty = True
            logger.debug("1 rows deleted.")

    # -------------------------------------------------------------------------
    # Maintenance Operations
    # -------------------------------------------------------------------------

    def delete_expired_records(self, world: str, now: int | None = None) -> int:
        """Delete records in a world whose expiration is at or before now."""
        rows = self.rows
        if now is None:
            now = self._clock()

        expired = [
            key
            for key, row in rows.items()
            if row["worldname"] == world
            and row["expiration"] <= now
        ]
        for key in expired:
            del rows[key]

        if expired:
            self._dirty = True
        logger.debug("%d expired rows deleted from world '%s'.", len(expired), world)
        return len(expired)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _load(self) -> dict[RecordKey, dict[str, Any]]:
        """Read rows from the file; later duplicates of a location replace earlier ones."""
        rows: dict[RecordKey, dict[str, Any]] = {}
        if not self.file_path.exists():
            return rows

        document = yaml.safe_load(self.file_path.read_text(encoding="utf-8")) or {}
        if not isinstance(document, dict):
            raise yaml.YAMLError(f"expected a mapping at top level of {self.file_path}")

        for entry in document.get("records") or []:
            try:
                row = {
                    "ownerid": entry.get("ownerid"),
                    "killerid": entry.get("killerid"),
                    "worldname": str(entry["worldname"]),
                    "x": int(entry["x"]),
                    "y": int(entry["y"]),
                    "z": int(entry["z"]),
                    "expiration": int(entry.get("expiration") or 0),
                }
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed %s datastore entry %r: %s", self.name, entry, e)
                continue
            rows[self._row_key(row)] = row

        return rows

    @staticmethod
    def _row_key(row: dict[str, Any]) -> RecordKey:
        return (row["worldname"], row["x"], row["y"], row["z"])

    def _tmp_path(self) -> Path:
        return self.file_path.with_name(self.file_path.name + ".tmp")

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
