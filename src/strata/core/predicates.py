"""
Query predicates over a single field's logical domain.

The predicate set is closed: Exists, In and Range. Every partitioner matches on these
three kinds explicitly; any other object projects to "no constraint" (None).

Responsibilities
- Evaluate a predicate against one source value (matches).
- Combine two predicates on the same field into their conjunction without leaving the
  closed set (intersect_predicates).

Notes
- Predicates are frozen dataclasses; In normalizes its values to a frozenset.
- None never matches any predicate, including Exists.
- Range comparisons that raise TypeError (e.g. str vs int) evaluate to "no match".
- Range compares dates and datetimes across flavours via align_temporal, so a
  date(2020, 12, 31) upper bound admits datetime(2020, 12, 31, 12, 0).

Examples
    >>> from strata.core.predicates import In, Range, intersect_predicates
    >>> sorted(intersect_predicates(In({"a", "b", "c"}), Range("a", "b")).values)
    ['a', 'b']
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Union

__all__ = [
    "Exists",
    "In",
    "Range",
    "Predicate",
    "is_predicate",
    "intersect_predicates",
    "align_temporal",
]


def align_temporal(value: Any, bound: Any) -> tuple[Any, Any]:
    """
    Bring a date/datetime value and a Range bound onto a comparable footing.

    Python refuses to order a date against a datetime, or a naive datetime against an
    aware one. Range treats them as follows:

    - datetime value, plain date bound: compare calendar days (value.date()).
    - plain date value, datetime bound: the date stands for its midnight.
    - naive vs aware datetimes: compare wall-clock times (tzinfo dropped).

    Any other pair is returned unchanged.

    Examples:
        >>> import datetime as dt
        >>> align_temporal(dt.datetime(2020, 12, 31, 12), dt.date(2020, 12, 31))
        (datetime.date(2020, 12, 31), datetime.date(2020, 12, 31))
    """
    if isinstance(value, dt.datetime) and isinstance(bound, dt.datetime):
        if (value.tzinfo is None) != (bound.tzinfo is None):
            return value.replace(tzinfo=None), bound.replace(tzinfo=None)
    elif isinstance(value, dt.datetime) and isinstance(bound, dt.date):
        return value.date(), bound
    elif isinstance(value, dt.date) and isinstance(bound, dt.datetime):
        return dt.datetime.combine(value, dt.time()), bound.replace(tzinfo=None)
    return value, bound


@dataclass(frozen=True)
class Exists:
    """Matches any present (non-None) value."""

    def matches(self, value: Any) -> bool:
        return value is not None


@dataclass(frozen=True, init=False)
class In:
    """
    Matches values contained in a finite set.

    Attributes:
        values (frozenset[Any]): Accepted values. Any iterable is accepted at
            construction and normalized to a frozenset.
    """

    values: frozenset[Any]

    def __init__(self, values: Iterable[Any]) -> None:
        object.__setattr__(self, "values", frozenset(values))

    def matches(self, value: Any) -> bool:
        if value is None:
            return False
        try:
            return value in self.values
        except TypeError:
            # unhashable value
            return False


@dataclass(frozen=True)
class Range:
    """
    Matches values between optional lower and upper bounds.

    Attributes:
        lower (Any): Lower bound, or None for unbounded below.
        upper (Any): Upper bound, or None for unbounded above.
        lower_inclusive (bool): Whether a value equal to lower matches.
        upper_inclusive (bool): Whether a value equal to upper matches.

    Raises:
        ValueError: If both bounds are given and lower > upper.
    """

    lower: Any = None
    upper: Any = None
    lower_inclusive: bool = True
    upper_inclusive: bool = True

    def __post_init__(self) -> None:
        if self.lower is not None and self.upper is not None and self.lower > self.upper:
            raise ValueError(f"Range lower bound {self.lower!r} exceeds upper bound {self.upper!r}")

    @classmethod
    def closed(cls, lower: Any, upper: Any) -> Range:
        return cls(lower, upper, True, True)

    @classmethod
    def open(cls, lower: Any, upper: Any) -> Range:
        return cls(lower, upper, False, False)

    @classmethod
    def at_least(cls, lower: Any) -> Range:
        return cls(lower=lower, lower_inclusive=True)

    @classmethod
    def greater_than(cls, lower: Any) -> Range:
        return cls(lower=lower, lower_inclusive=False)

    @classmethod
    def at_most(cls, upper: Any) -> Range:
        return cls(upper=upper, upper_inclusive=True)

    @classmethod
    def less_than(cls, upper: Any) -> Range:
        return cls(upper=upper, upper_inclusive=False)

    def matches(self, value: Any) -> bool:
        if value is None:
            return False
        try:
            if self.lower is not None:
                v, lower = align_temporal(value, self.lower)
                if v < lower or (v == lower and not self.lower_inclusive):
                    return False
            if self.upper is not None:
                v, upper = align_temporal(value, self.upper)
                if v > upper or (v == upper and not self.upper_inclusive):
                    return False
        except TypeError:
            return False
        return True

    def is_empty(self) -> bool:
        """Return True if no value can satisfy both bounds."""
        if self.lower is None or self.upper is None:
            return False
        if self.lower == self.upper:
            return not (self.lower_inclusive and self.upper_inclusive)
        return False


Predicate = Union[Exists, In, Range]


def is_predicate(obj: Any) -> bool:
    """Return True if obj is one of the closed predicate kinds."""
    return isinstance(obj, (Exists, In, Range))


def _tighter_lower(a: Range, b: Range) -> tuple[Any, bool]:
    if a.lower is None:
        return b.lower, b.lower_inclusive
    if b.lower is None:
        return a.lower, a.lower_inclusive
    if a.lower > b.lower:
        return a.lower, a.lower_inclusive
    if b.lower > a.lower:
        return b.lower, b.lower_inclusive
    return a.lower, a.lower_inclusive and b.lower_inclusive


def _tighter_upper(a: Range, b: Range) -> tuple[Any, bool]:
    if a.upper is None:
        return b.upper, b.upper_inclusive
    if b.upper is None:
        return a.upper, a.upper_inclusive
    if a.upper < b.upper:
        return a.upper, a.upper_inclusive
    if b.upper < a.upper:
        return b.upper, b.upper_inclusive
    return a.upper, a.upper_inclusive and b.upper_inclusive


def intersect_predicates(a: Predicate, b: Predicate) -> Predicate:
    """
    Return the conjunction of two predicates on the same field.

    Args:
        a (Predicate): First predicate.
        b (Predicate): Second predicate.

    Returns:
        Predicate: A predicate matching exactly the values both a and b match.
        Disjoint ranges produce In(frozenset()), which matches nothing.

    Raises:
        TypeError: If either argument is not Exists, In or Range, or if two Range
            bounds cannot be compared.
    """
    if not is_predicate(a) or not is_predicate(b):
        raise TypeError(f"cannot intersect {a!r} with {b!r}: unsupported predicate kind")

    # Exists is implied by every other kind
    if isinstance(a, Exists):
        return b
    if isinstance(b, Exists):
        return a

    if isinstance(a, In) and isinstance(b, In):
        return In(a.values & b.values)
    if isinstance(a, In):
        return In(v for v in a.values if b.matches(v))
    if isinstance(b, In):
        return In(v for v in b.values if a.matches(v))

    lower, lower_inclusive = _tighter_lower(a, b)
    upper, upper_inclusive = _tighter_upper(a, b)
    if lower is not None and upper is not None:
        if lower > upper or (lower == upper and not (lower_inclusive and upper_inclusive)):
            return In(frozenset())
    return Range(lower, upper, lower_inclusive, upper_inclusive)
