"""
Core exception types raised by partitioners and partition strategies.

Provides typed exceptions for core-domain failures:
- InvalidValueError when a source value falls outside a partitioner's declared domain.
- StrategyError for malformed partitioner or strategy declarations.

Notes:
    - This module uses only the Python standard library and has no side effects.
    - Both errors derive from ValueError so callers that only care about bad input can
      catch the builtin.
    - IO-layer failures are raised as strata.io.errors.Io* instead.

Examples:
    Catch a value that no bucket accepts.

    >>> from strata.core.errors import InvalidValueError
    >>> from strata.core.partitioners import ListFieldPartitioner
    >>> p = ListFieldPartitioner("letter", [{"a", "b"}, {"c"}])
    >>> try:
    ...     p.apply("z")
    ... except InvalidValueError as e:
    ...     msg = str(e)
    >>> "not in any bucket" in msg
    True
"""

from __future__ import annotations

__all__ = [
    "InvalidValueError",
    "StrategyError",
]


class InvalidValueError(ValueError):
    """Source value outside every declared bucket of a field partitioner."""


class StrategyError(ValueError):
    """Malformed partitioner or partition strategy declaration."""
