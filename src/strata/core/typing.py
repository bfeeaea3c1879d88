"""
Lightweight typing aliases used across strata core and io.

Provides minimal aliases to improve readability and static checks.
This module contains no runtime logic and is zero-IO.

Notes:
    - Records are plain mappings of field name to value on the Python side; the
      physical format (Parquet) is an io-layer concern.
    - StorageKey holds one partition value per level of a PartitionStrategy.

Examples:
    >>> from strata.core.typing import StorageKey
    >>> key: StorageKey = (0, 2024)
    >>> len(key)
    2
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

__all__ = [
    "StorageKey",
    "Record",
]

StorageKey = tuple[Any, ...]

Record = Mapping[str, Any]
