"""
Datastore exceptions.

Hard failures raised to the immediate caller. Soft decode problems (bad
killer identity, bad owner identity on a point lookup, unknown world during
a scan, undecodable row during a scan) are recovered inside the backends and
only logged.
"""

from __future__ import annotations

from typing import Any

# (world, x, y, z)
RecordKey = tuple[str, int, int, int]


class DataStoreError(Exception):
    """Base class for datastore failures."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        key: RecordKey | None = None,
    ) -> None:
        """
        Initialize the error.

        Args:
            message: Human-readable error message
            operation: Datastore operation that failed (e.g. "put_record")
            key: Record key involved, when there is one
        """
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.key = key

    def to_dict(self) -> dict[str, Any]:
        """Convert error to JSON-serializable dict."""
        result: dict[str, Any] = {"error": "datastore_error", "message": self.message}
        if self.operation:
            result["operation"] = self.operation
        if self.key:
            result["key"] = list(self.key)
        return result


class NotInitializedError(DataStoreError):
    """Operation invoked before initialize() succeeded or after close()."""

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["error"] = "not_initialized"
        return result


class InvalidOwnerIdentityError(DataStoreError):
    """Write attempted with an owner identity that cannot be encoded."""

    def __init__(
        self,
        value: object,
        operation: str | None = None,
        key: RecordKey | None = None,
    ) -> None:
        super().__init__(f"Invalid owner identity: {value!r}", operation, key)
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["error"] = "invalid_owner_identity"
        return result


class StorageError(DataStoreError):
    """Underlying I/O, connection or query failure in the backing store."""

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["error"] = "storage_error"
        return result


class CorruptRecordError(DataStoreError):
    """Stored row whose location or expiration columns cannot be decoded."""

    def __init__(
        self,
        column: str,
        value: object,
        operation: str | None = None,
        key: RecordKey | None = None,
    ) -> None:
        super().__init__(f"Corrupt {column} column: {value!r}", operation, key)
        self.column = column
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["error"] = "corrupt_record"
        return result
