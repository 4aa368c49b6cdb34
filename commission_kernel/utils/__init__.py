"""Utility functions for the commission kernel."""

from commission_kernel.utils.hashing import (
    canonicalize_json,
    hash_payload,
    hash_status_log_entry,
    to_json_safe,
)

__all__ = [
    "canonicalize_json",
    "hash_payload",
    "hash_status_log_entry",
    "to_json_safe",
]
