"""
Player identity encoding.

Owner and killer identities are 128-bit UUIDs persisted in their canonical
36-character text form. Both helpers are total: they return None instead of
raising, and each call site decides whether None is fatal.
"""

from __future__ import annotations

from uuid import UUID


def decode_identity(value: object) -> UUID | None:
    """
    Decode a stored identity.

    Args:
        value: Stored value (normally canonical UUID text, possibly NULL or garbage)

    Returns:
        The UUID, or None if the value is missing or malformed.
    """
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


def encode_identity(value: object) -> str | None:
    """
    Encode an identity into canonical text for storage.

    Accepts a UUID or any string form UUID() accepts.

    Returns:
        Lowercase hyphenated UUID text, or None if the value cannot be encoded.
    """
    identity = decode_identity(value)
    if identity is None:
        return None
    return str(identity)
