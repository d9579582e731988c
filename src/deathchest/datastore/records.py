"""
Death chest record and its persisted row form.

Rows use the column names of the blocks table (ownerid, killerid, worldname,
x, y, z, expiration) in every backend, so the flat-file and SQLite stores
share one codec.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from .errors import CorruptRecordError, InvalidOwnerIdentityError, RecordKey
from .identity import decode_identity, encode_identity


@dataclass
class DeathChestRecord:
    """One death chest placed in the world when a player died."""

    owner_id: UUID | None  # None only on a lenient point lookup of a corrupt row
    killer_id: UUID | None
    world: str
    x: int
    y: int
    z: int
    expiration: int  # Epoch milliseconds

    @property
    def key(self) -> RecordKey:
        """Natural key: (world, x, y, z)."""
        return (self.world, self.x, self.y, self.z)

    def is_expired(self, now_ms: int) -> bool:
        """Check if the chest's expiration instant has been reached."""
        return now_ms >= self.expiration


def record_to_row(record: DeathChestRecord, operation: str = "put_record") -> dict[str, Any]:
    """
    Encode a record for storage.

    The owner identity is strict; the killer identity degrades to NULL.

    Raises:
        InvalidOwnerIdentityError: If the owner identity cannot be encoded
        CorruptRecordError: If a location or expiration field is not an integer
    """
    owner_id = encode_identity(record.owner_id)
    if owner_id is None:
        raise InvalidOwnerIdentityError(record.owner_id, operation, record.key)

    row = {
        "ownerid": owner_id,
        "killerid": encode_identity(record.killer_id),
        "worldname": record.world,
        "x": record.x,
        "y": record.y,
        "z": record.z,
        "expiration": record.expiration,
    }
    for column in ("x", "y", "z", "expiration"):
        row[column] = _as_int(row, column, operation, allow_null=False)
    return row


def record_from_row(row: Mapping[str, Any]) -> DeathChestRecord:
    """
    Decode a stored row leniently.

    Undecodable owner or killer identities become None; callers that need an
    attributable owner must check owner_id themselves.

    Raises:
        CorruptRecordError: If a location or expiration column is not an integer
    """
    return DeathChestRecord(
        owner_id=decode_identity(row["ownerid"]),
        killer_id=decode_identity(row["killerid"]),
        world=row["worldname"],
        x=_as_int(row, "x"),
        y=_as_int(row, "y"),
        z=_as_int(row, "z"),
        expiration=_as_int(row, "expiration"),
    )


def _as_int(
    row: Mapping[str, Any], column: str, operation: str = "decode", allow_null: bool = True
) -> int:
    value = row[column]
    # NULL integer columns read as 0; a NULL expiration is therefore already expired
    if value is None and allow_null:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        key = (row["worldname"], row["x"], row["y"], row["z"])
        raise CorruptRecordError(column, value, operation, key) from e
