"""
Deterministic hashing utilities.

Status-log entries and notification payloads are hashed with these
functions so that a stored history can be re-verified byte for byte.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def _json_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for types not natively supported.

    Args:
        obj: Object to serialize.

    Returns:
        JSON-serializable representation.

    Raises:
        TypeError: If object type is not supported.
    """
    if isinstance(obj, Decimal):
        # Trailing zeros from Numeric columns must not change the hash
        return str(obj.normalize())
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: dict | list | Any) -> str:
    """
    Convert data to canonical JSON string.

    Keys are sorted, no whitespace is emitted, and Decimal/date/UUID values
    are rendered the same way every time.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def hash_payload(payload: dict) -> str:
    """
    Compute SHA-256 hash of a payload.

    Returns:
        Hex-encoded SHA-256 hash (64 characters).
    """
    canonical = canonicalize_json(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def hash_status_log_entry(
    request_id: str,
    sequence: int,
    new_status: str,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """
    Compute the chained hash for one status-log entry.

    The previous entry's hash is folded in, so rewriting any earlier row
    breaks every hash after it.

    Args:
        request_id: Commission request the entry belongs to.
        sequence: Position of the entry within the request's history.
        new_status: Status recorded by the entry.
        payload_hash: Hash of the entry's payload.
        prev_hash: Hash of the previous entry (None for the first one).

    Returns:
        Hex-encoded SHA-256 hash.
    """
    components = [
        str(request_id),
        str(sequence),
        new_status,
        payload_hash,
        prev_hash or "GENESIS",
    ]
    data = "|".join(components)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def to_json_safe(data: dict) -> dict:
    """
    Round-trip ``data`` through canonical JSON.

    Used before storing a payload in a JSON column: Decimal, date and UUID
    values become the same strings the payload hash was computed over.
    """
    return json.loads(canonicalize_json(data))
