"""
Canonical JSON serialization and stable hashing helpers.

HashFieldPartitioner must place a value in the same bucket in every process, so it
cannot use the builtin hash() (salted per interpreter for str/bytes). Values are
rendered to canonical JSON and hashed with SHA-256 instead.

Notes:
    - Canonical JSON:
        - sort_keys=True
        - separators=(",", ":")
        - ensure_ascii=False
        - default=str for values JSON cannot encode natively (dates, decimals)
    - Hashing is performed over the UTF-8 encoded canonical JSON string.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

__all__ = [
    "json_dumps_canonical",
    "stable_hash",
]


def json_dumps_canonical(obj: Any) -> str:
    """
    Serialize an object to a canonical JSON string.

    Args:
        obj (Any): Object to serialize; non-JSON values fall back to str().

    Returns:
        str: Canonical JSON string with sort_keys=True, compact separators,
        and ensure_ascii=False.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def stable_hash(value: Any) -> int:
    """
    Compute a process-independent non-negative integer hash of a value.

    Args:
        value (Any): Value to hash.

    Returns:
        int: First 8 bytes of the SHA-256 digest of the canonical JSON, big-endian.

    Examples:
        >>> from strata.core.hashing import stable_hash
        >>> stable_hash("a") == stable_hash("a")
        True
    """
    h = hashlib.sha256()
    h.update(json_dumps_canonical(value).encode("utf-8"))
    return int.from_bytes(h.digest()[:8], "big")
