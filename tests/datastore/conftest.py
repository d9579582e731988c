"""Fixtures for datastore tests."""

from __future__ import annotations

from collections.abc import Callable, Generator
from pathlib import Path
from uuid import UUID

import pytest

from deathchest.datastore import (
    DeathChestRecord,
    KnownWorlds,
    SQLiteDataStore,
    YAMLDataStore,
)


class FixedClock:
    """Clock returning a settable instant and counting reads."""

    def __init__(self, now: int) -> None:
        self.now = now
        self.calls = 0

    def __call__(self) -> int:
        self.calls += 1
        return self.now


@pytest.fixture
def owner_id() -> UUID:
    return UUID("5f1b6c2e-8d3a-4e0f-9b7c-1a2b3c4d5e6f")


@pytest.fixture
def other_owner_id() -> UUID:
    return UUID("0c9a4b7e-2f61-4d8e-a5b3-6e7f8091a2b3")


@pytest.fixture
def killer_id() -> UUID:
    return UUID("d2e3f4a5-b6c7-4d8e-9f0a-1b2c3d4e5f60")


@pytest.fixture
def clock() -> FixedClock:
    """Clock fixed at 1500 ms."""
    return FixedClock(1_500)


@pytest.fixture
def worlds() -> KnownWorlds:
    return KnownWorlds(["world", "world_nether"])


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "deathchests.db"


@pytest.fixture
def temp_yaml_path(tmp_path: Path) -> Path:
    """Create a temporary YAML datastore path."""
    return tmp_path / "deathchests.yml"


@pytest.fixture
def store(
    temp_db_path: Path, worlds: KnownWorlds, clock: FixedClock
) -> Generator[SQLiteDataStore, None, None]:
    """Create and initialize a test SQLite store."""
    store = SQLiteDataStore(temp_db_path, worlds, clock)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def yaml_store(
    temp_yaml_path: Path, worlds: KnownWorlds, clock: FixedClock
) -> Generator[YAMLDataStore, None, None]:
    """Create and initialize a test YAML store."""
    store = YAMLDataStore(temp_yaml_path, worlds, clock)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def make_record(owner_id: UUID) -> Callable[..., DeathChestRecord]:
    """Factory for records with sensible defaults."""

    def _make(**overrides) -> DeathChestRecord:
        fields = {
            "owner_id": owner_id,
            "killer_id": None,
            "world": "world",
            "x": 10,
            "y": 64,
            "z": -5,
            "expiration": 9_999_999_999,
        }
        fields.update(overrides)
        return DeathChestRecord(**fields)

    return _make


@pytest.fixture
def sample_record(make_record, killer_id: UUID) -> DeathChestRecord:
    """Create a sample death chest record."""
    return make_record(killer_id=killer_id)


@pytest.fixture
def sample_records(make_record, killer_id: UUID) -> list[DeathChestRecord]:
    """Create ten records with distinct locations across two worlds."""
    return [
        make_record(
            killer_id=killer_id if i % 2 == 0 else None,
            world="world" if i % 2 == 0 else "world_nether",
            x=i * 16,
            y=60 + i,
            z=-i * 8,
            expiration=10_000 + i * 1_000,
        )
        for i in range(10)
    ]


def insert_raw_row(
    store: SQLiteDataStore,
    ownerid: object,
    killerid: object,
    worldname: str,
    x: int,
    y: int,
    z: int,
    expiration: int,
) -> None:
    """Write a row directly, bypassing identity encoding."""
    store.db.execute(
        """
        INSERT INTO blocks (ownerid, killerid, worldname, x, y, z, expiration)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (ownerid, killerid, worldname, x, y, z, expiration),
    )
    store.db.commit()


@pytest.fixture
def raw_insert() -> Callable[..., None]:
    """Fixture exposing insert_raw_row."""
    return insert_raw_row
