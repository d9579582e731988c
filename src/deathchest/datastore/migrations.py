"""
Database Migration Runner for the SQLite datastore.

Applies versioned SQL migrations on initialize to manage schema evolution.
"""

from __future__ import annotations

import sqlite3
import time
from pathlib import Path

from ..core.logging import get_logger

logger = get_logger(__name__)

# Directory containing migration SQL files
MIGRATIONS_DIR = Path(__file__).parent / "migrations"


class MigrationRunner:
    """
    Apply database migrations on initialize.

    Migration files should be named: NNN_description.sql
    where NNN is a zero-padded version number (e.g., 001, 002).

    Migrations are applied in order and tracked in the schema_migrations table.
    """

    def __init__(self, conn: sqlite3.Connection, migrations_dir: Path = MIGRATIONS_DIR):
        """
        Initialize the migration runner.

        Args:
            conn: Open database connection
            migrations_dir: Directory holding NNN_description.sql files
        """
        self.conn = conn
        self.migrations_dir = migrations_dir

    def run_migrations(self) -> int:
        """
        Apply pending migrations.

        Returns:
            Number of migrations applied.
        """
        self._ensure_migrations_table()
        current_version = self.current_version()
        applied = 0

        if current_version == 0 and self._has_table("blocks"):
            logger.info("Adopting existing blocks table created before schema tracking")

        for migration_file in sorted(self.migrations_dir.glob("*.sql")):
            version = self._parse_version(migration_file.name)
            if version is None:
                logger.warning("Skipping invalid migration file: %s", migration_file.name)
                continue

            if version > current_version:
                self._apply_migration(version, migration_file)
                applied += 1

        if applied > 0:
            logger.info("Applied %d database migration(s)", applied)

        return applied

    def current_version(self) -> int:
        """
        Get the current schema version.

        Returns:
            Latest applied migration version, or 0 if none applied.
        """
        row = self.conn.execute("SELECT MAX(version) FROM schema_migrations").fetchone()
        return row[0] if row and row[0] is not None else 0

    def _has_table(self, name: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
        ).fetchone()
        return row is not None

    def _ensure_migrations_table(self) -> None:
        """Create schema_migrations table if it doesn't exist."""
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version INTEGER PRIMARY KEY,
                applied_at INTEGER NOT NULL,
                description TEXT
            )
            """
        )
        self.conn.commit()

    def _apply_migration(self, version: int, path: Path) -> None:
        """
        Apply a single migration and record it in one transaction.

        A failing statement rolls back the whole file, so the version row is
        only written when every statement succeeded.

        Args:
            version: Migration version number
            path: Path to the migration SQL file
        """
        sql = path.read_text()
        description = self._parse_description(path.name)

        logger.info("Applying migration %03d: %s", version, description)

        quoted = description.replace("'", "''")
        script = (
            f"BEGIN;\n{sql}\n;\n"
            "INSERT INTO schema_migrations (version, applied_at, description) "
            f"VALUES ({version:d}, {int(time.time()):d}, '{quoted}');\n"
            "COMMIT;"
        )

        try:
            self.conn.executescript(script)
        except sqlite3.Error:
            if self.conn.in_transaction:
                self.conn.rollback()
            raise

    @staticmethod
    def _parse_version(filename: str) -> int | None:
        """Parse version number from e.g. "001_initial_schema.sql"."""
        try:
            return int(filename.split("_", 1)[0])
        except ValueError:
            return None

    @staticmethod
    def _parse_description(filename: str) -> str:
        """Parse a human-readable description from a migration filename."""
        name = filename.rsplit(".", 1)[0]
        parts = name.split("_", 1)
        if len(parts) > 1:
            return parts[1].replace("_", " ")
        return name
