"""
Field partitioners: map a record field to a partition value and project predicates.

Every partitioner answers two questions about a predicate on its source field:

- project(p): which partition values *may* hold a matching record (over-approximation,
  used to prune reads). None means "cannot prune".
- project_strict(p): which partition values hold *only* matching records
  (under-approximation, used to prove a partition can be deleted wholesale). None means
  "no partition is provably covered".

For any predicate, the values accepted by project_strict are a subset of those accepted
by project. Empty match sets collapse to None in both directions.

Built-in variants
- ListFieldPartitioner — explicit buckets of source values (finite or Unbounded).
- IdentityFieldPartitioner — the value is its own partition.
- HashFieldPartitioner — stable hash modulo a bucket count.
- RangeFieldPartitioner — ordered inclusive upper bounds.
- YearFieldPartitioner — calendar year of a date/datetime.
- FunctionFieldPartitioner — extension point built from supplied functions.

Notes
- apply() raises InvalidValueError for values outside the declared domain; it never
  falls back to a default bucket.
- format()/parse() convert partition values to and from directory names. parse() raises
  ValueError for names that are not canonical for the partitioner.
"""

from __future__ import annotations

import datetime as dt
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from .constants import HIDDEN_PREFIXES
from .errors import InvalidValueError, StrategyError
from .hashing import stable_hash
from .predicates import Exists, In, Predicate, Range

__all__ = [
    "FieldPartitioner",
    "Unbounded",
    "ListFieldPartitioner",
    "IdentityFieldPartitioner",
    "HashFieldPartitioner",
    "RangeFieldPartitioner",
    "YearFieldPartitioner",
    "FunctionFieldPartitioner",
]


def _in_or_none(values: Iterable[Any]) -> In | None:
    found = frozenset(values)
    return In(found) if found else None


def _parse_index(name: str, cardinality: int) -> int:
    idx = int(name)
    if str(idx) != name or not 0 <= idx < cardinality:
        raise ValueError(f"{name!r} is not a partition index in [0, {cardinality})")
    return idx


def _numeric_aliases(value: Any) -> list[Any]:
    """Return value plus the equal int, float and bool forms a record may hold instead."""
    forms = [value]
    if not isinstance(value, (int, float)):
        return forms
    if isinstance(value, float) and not value.is_integer():
        # also true for inf and nan
        return forms
    i = int(value)
    forms.append(i)
    try:
        if float(i) == i:
            forms.append(float(i))
    except OverflowError:
        # too large for any float to equal it
        pass
    if i in (0, 1):
        forms.append(bool(i))
    return forms


class FieldPartitioner(ABC):
    """
    Capability shared by every partitioner.

    Attributes:
        name (str): Partition name, unique within a strategy.
        source_name (str): Record field the partitioner reads.
        cardinality (int | None): Number of partitions, or None when unbounded.
    """

    name: str
    source_name: str
    cardinality: int | None

    @abstractmethod
    def apply(self, value: Any) -> Any:
        """Return the partition value for a source value."""

    @abstractmethod
    def project(self, predicate: Predicate) -> Predicate | None:
        """Project a source predicate to a permissive partition-value predicate."""

    @abstractmethod
    def project_strict(self, predicate: Predicate) -> Predicate | None:
        """Project a source predicate to a partition-value predicate of full coverage."""

    @abstractmethod
    def parse(self, name: str) -> Any:
        """Parse a directory name into a partition value."""

    def format(self, value: Any) -> str:
        """Render a partition value as a directory name."""
        return str(value)

    def compare(self, a: Any, b: Any) -> int:
        """Order two partition values: negative, zero or positive."""
        return (a > b) - (a < b)


# -----------------------------------------------------------------------------
# List
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Unbounded:
    """
    A bucket whose members cannot be enumerated.

    Attributes:
        accepts (Callable[[Any], bool] | None): Membership test. None accepts any
            non-None value.
    """

    accepts: Callable[[Any], bool] | None = None

    def __contains__(self, value: Any) -> bool:
        if value is None:
            return False
        if self.accepts is None:
            return True
        return bool(self.accepts(value))


Bucket = frozenset[Any] | Unbounded


@dataclass(frozen=True, init=False)
class ListFieldPartitioner(FieldPartitioner):
    """
    Partition by membership in an ordered list of buckets.

    The partition value is the zero-based index of the first bucket containing the
    source value. Buckets are expected to be disjoint; overlap is not checked and the
    first match wins.

    Attributes:
        name (str): Partition name.
        buckets (tuple[frozenset | Unbounded, ...]): Ordered buckets.
        source_name (str): Record field; defaults to name.

    Raises:
        StrategyError: If no buckets are given or a finite bucket is empty.

    Examples:
        >>> from strata.core.partitioners import ListFieldPartitioner
        >>> from strata.core.predicates import In
        >>> p = ListFieldPartitioner("letter", [{"a", "b"}, {"c"}])
        >>> p.apply("c")
        1
        >>> sorted(p.project(In({"a", "c"})).values)
        [0, 1]
    """

    name: str
    buckets: tuple[Bucket, ...]
    source_name: str

    def __init__(
        self, name: str, buckets: Sequence[Iterable[Any] | Unbounded], source_name: str | None = None
    ) -> None:
        if not buckets:
            raise StrategyError(f"list partitioner {name!r} needs at least one bucket")
        normalized: list[Bucket] = []
        for i, bucket in enumerate(buckets):
            if isinstance(bucket, Unbounded):
                normalized.append(bucket)
                continue
            members = frozenset(bucket)
            if not members:
                raise StrategyError(f"list partitioner {name!r} bucket {i} is empty")
            normalized.append(members)
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "buckets", tuple(normalized))
        object.__setattr__(self, "source_name", source_name or name)

    @property
    def cardinality(self) -> int:  # type: ignore[override]
        return len(self.buckets)

    def apply(self, value: Any) -> int:
        for i, bucket in enumerate(self.buckets):
            try:
                if value in bucket:
                    return i
            except TypeError:
                # unhashable values are never members of a finite bucket
                continue
        raise InvalidValueError(f"{value!r} is not in any bucket of partitioner {self.name!r}")

    def parse(self, name: str) -> int:
        return _parse_index(name, len(self.buckets))

    def _try_apply(self, value: Any) -> int | None:
        try:
            return self.apply(value)
        except InvalidValueError:
            return None

    def project(self, predicate: Predicate) -> Predicate | None:
        if isinstance(predicate, Exists):
            return Exists()
        if isinstance(predicate, In):
            indices = (self._try_apply(v) for v in predicate.values)
            return _in_or_none(i for i in indices if i is not None)
        if isinstance(predicate, Range):
            possible: set[int] = set()
            for i, bucket in enumerate(self.buckets):
                if isinstance(bucket, Unbounded):
                    # cannot prove the range misses an unbounded bucket
                    possible.add(i)
                    continue
                for item in bucket:
                    if predicate.matches(item):
                        possible.add(i)
                        break
            return _in_or_none(possible)
        return None

    def project_strict(self, predicate: Predicate) -> Predicate | None:
        if isinstance(predicate, Exists):
            return Exists()
        if isinstance(predicate, (In, Range)):
            covered = (
                i
                for i, bucket in enumerate(self.buckets)
                if not isinstance(bucket, Unbounded) and all(predicate.matches(v) for v in bucket)
            )
            return _in_or_none(covered)
        return None


# -----------------------------------------------------------------------------
# Identity
# -----------------------------------------------------------------------------

_IDENTITY_TYPES: tuple[type, ...] = (str, int)


@dataclass(frozen=True)
class IdentityFieldPartitioner(FieldPartitioner):
    """
    Partition by the source value itself.

    Each partition holds exactly one source value, so projection is exact in both
    directions: predicates pass through unchanged. In members equal to an int, such as
    1.0 or True, are projected as that int.

    Attributes:
        name (str): Partition name.
        value_type (type): str or int.
        source_name (str): Record field; defaults to name.

    Notes:
        String values must be usable as a single directory name: non-empty, no path
        separators, and not starting with a hidden prefix ("." or "_").
    """

    name: str
    value_type: type = str
    source_name: str = ""

    def __post_init__(self) -> None:
        if self.value_type not in _IDENTITY_TYPES:
            raise StrategyError(f"identity partitioner {self.name!r} supports str or int values only")
        if not self.source_name:
            object.__setattr__(self, "source_name", self.name)

    @property
    def cardinality(self) -> None:  # type: ignore[override]
        return None

    def _valid(self, value: Any) -> bool:
        if isinstance(value, bool) or not isinstance(value, self.value_type):
            return False
        if self.value_type is str:
            return bool(value) and "/" not in value and "\\" not in value and not value.startswith(HIDDEN_PREFIXES)
        return True

    def _coerce(self, value: Any) -> Any:
        # In(1.0) and In(True) match the int record 1
        if self.value_type is int and isinstance(value, (bool, float)):
            try:
                as_int = int(value)
            except (OverflowError, ValueError):
                return value
            return as_int if as_int == value else value
        return value

    def apply(self, value: Any) -> Any:
        if not self._valid(value):
            raise InvalidValueError(
                f"{value!r} is not a valid {self.value_type.__name__} for partitioner {self.name!r}"
            )
        return value

    def parse(self, name: str) -> Any:
        value = self.value_type(name)
        if self.format(value) != name:
            raise ValueError(f"{name!r} is not a canonical {self.value_type.__name__} partition name")
        return value

    def project(self, predicate: Predicate) -> Predicate | None:
        if isinstance(predicate, Exists):
            return Exists()
        if isinstance(predicate, In):
            return _in_or_none(c for c in map(self._coerce, predicate.values) if self._valid(c))
        if isinstance(predicate, Range):
            return predicate
        return None

    def project_strict(self, predicate: Predicate) -> Predicate | None:
        return self.project(predicate)


# -----------------------------------------------------------------------------
# Hash
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class HashFieldPartitioner(FieldPartitioner):
    """
    Partition by a stable hash of the source value modulo a bucket count.

    Hash buckets mix unrelated values, so ranges never prune and no partition is ever
    provably covered by an In or Range predicate. Numbers hash by their JSON text, so
    project(In) includes the buckets of every equal int, float and bool form.

    Attributes:
        name (str): Partition name.
        buckets (int): Number of hash buckets (>= 1).
        source_name (str): Record field; defaults to name.
    """

    name: str
    buckets: int
    source_name: str = ""

    def __post_init__(self) -> None:
        if self.buckets < 1:
            raise StrategyError(f"hash partitioner {self.name!r} needs buckets >= 1, got {self.buckets}")
        if not self.source_name:
            object.__setattr__(self, "source_name", self.name)

    @property
    def cardinality(self) -> int:  # type: ignore[override]
        return self.buckets

    def apply(self, value: Any) -> int:
        if value is None:
            raise InvalidValueError(f"None cannot be hashed by partitioner {self.name!r}")
        return stable_hash(value) % self.buckets

    def parse(self, name: str) -> int:
        return _parse_index(name, self.buckets)

    def project(self, predicate: Predicate) -> Predicate | None:
        if isinstance(predicate, Exists):
            return Exists()
        if isinstance(predicate, In):
            return _in_or_none(
                self.apply(form) for v in predicate.values if v is not None for form in _numeric_aliases(v)
            )
        if isinstance(predicate, Range):
            return None
        return None

    def project_strict(self, predicate: Predicate) -> Predicate | None:
        if isinstance(predicate, Exists):
            return Exists()
        if isinstance(predicate, (In, Range)):
            return None
        return None


# -----------------------------------------------------------------------------
# Range
# -----------------------------------------------------------------------------


@dataclass(frozen=True, init=False)
class RangeFieldPartitioner(FieldPartitioner):
    """
    Partition by ordered, inclusive upper bounds.

    Bucket i holds values v with upper_bounds[i-1] < v <= upper_bounds[i]; bucket 0 is
    unbounded below. Values above the last bound are outside the declared domain.

    Attributes:
        name (str): Partition name.
        upper_bounds (tuple[Any, ...]): Strictly increasing upper bounds.
        source_name (str): Record field; defaults to name.

    Examples:
        >>> from strata.core.partitioners import RangeFieldPartitioner
        >>> p = RangeFieldPartitioner("score", [10, 20, 30])
        >>> [p.apply(v) for v in (5, 10, 11, 30)]
        [0, 0, 1, 2]
    """

    name: str
    upper_bounds: tuple[Any, ...]
    source_name: str

    def __init__(self, name: str, upper_bounds: Sequence[Any], source_name: str | None = None) -> None:
        bounds = tuple(upper_bounds)
        if not bounds:
            raise StrategyError(f"range partitioner {name!r} needs at least one upper bound")
        try:
            ordered = all(a < b for a, b in zip(bounds, bounds[1:]))
        except TypeError as exc:
            raise StrategyError(f"range partitioner {name!r} bounds are not comparable") from exc
        if not ordered:
            raise StrategyError(f"range partitioner {name!r} bounds must be strictly increasing")
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "upper_bounds", bounds)
        object.__setattr__(self, "source_name", source_name or name)

    @property
    def cardinality(self) -> int:  # type: ignore[override]
        return len(self.upper_bounds)

    def apply(self, value: Any) -> int:
        if value is not None:
            try:
                for i, upper in enumerate(self.upper_bounds):
                    if value <= upper:
                        return i
            except TypeError:
                pass
        raise InvalidValueError(f"{value!r} is outside the bounds of partitioner {self.name!r}")

    def parse(self, name: str) -> int:
        return _parse_index(name, len(self.upper_bounds))

    def _interval(self, i: int) -> tuple[Any, Any]:
        lower = self.upper_bounds[i - 1] if i > 0 else None
        return lower, self.upper_bounds[i]

    def _overlaps(self, i: int, r: Range) -> bool:
        lower, upper = self._interval(i)
        try:
            if r.lower is not None:
                if r.lower > upper or (r.lower == upper and not r.lower_inclusive):
                    return False
            if r.upper is not None and lower is not None and r.upper <= lower:
                return False
        except TypeError:
            return True
        return True

    def _inside(self, i: int, r: Range) -> bool:
        lower, upper = self._interval(i)
        try:
            if r.lower is not None and (lower is None or lower < r.lower):
                return False
            if r.upper is not None:
                if upper > r.upper or (upper == r.upper and not r.upper_inclusive):
                    return False
        except TypeError:
            return False
        return True

    def _try_apply(self, value: Any) -> int | None:
        try:
            return self.apply(value)
        except InvalidValueError:
            return None

    def project(self, predicate: Predicate) -> Predicate | None:
        if isinstance(predicate, Exists):
            return Exists()
        if isinstance(predicate, In):
            indices = (self._try_apply(v) for v in predicate.values)
            return _in_or_none(i for i in indices if i is not None)
        if isinstance(predicate, Range):
            return _in_or_none(i for i in range(len(self.upper_bounds)) if self._overlaps(i, predicate))
        return None

    def project_strict(self, predicate: Predicate) -> Predicate | None:
        if isinstance(predicate, Exists):
            return Exists()
        if isinstance(predicate, Range):
            return _in_or_none(i for i in range(len(self.upper_bounds)) if self._inside(i, predicate))
        if isinstance(predicate, In):
            return None
        return None


# -----------------------------------------------------------------------------
# Year
# -----------------------------------------------------------------------------


def _year_start(year: int, like: dt.date) -> dt.date:
    if isinstance(like, dt.datetime):
        return dt.datetime(year, 1, 1, tzinfo=like.tzinfo)
    return dt.date(year, 1, 1)


def _is_aware(bound: Any) -> bool:
    return isinstance(bound, dt.datetime) and bound.tzinfo is not None


@dataclass(frozen=True)
class YearFieldPartitioner(FieldPartitioner):
    """
    Partition a date or datetime field by calendar year.

    Attributes:
        name (str): Partition name.
        source_name (str): Record field; defaults to name.

    Notes:
        - project(Range) widens to whole years on both ends, plus one more year past a
          timezone-aware bound.
        - project_strict(Range) keeps only the years whose every instant lies inside the
          range; an open side stays open. Bounds follow Range.matches: a plain date bound
          covers whole calendar days. Aware datetime bounds never prove coverage.
    """

    name: str
    source_name: str = ""

    def __post_init__(self) -> None:
        if not self.source_name:
            object.__setattr__(self, "source_name", self.name)

    @property
    def cardinality(self) -> None:  # type: ignore[override]
        return None

    def apply(self, value: Any) -> int:
        if not isinstance(value, dt.date):
            raise InvalidValueError(f"{value!r} is not a date or datetime for partitioner {self.name!r}")
        return value.year

    def parse(self, name: str) -> int:
        year = int(name)
        if str(year) != name or not dt.MINYEAR <= year <= dt.MAXYEAR:
            raise ValueError(f"{name!r} is not a canonical year")
        return year

    def project(self, predicate: Predicate) -> Predicate | None:
        if isinstance(predicate, Exists):
            return Exists()
        if isinstance(predicate, In):
            return _in_or_none(v.year for v in predicate.values if isinstance(v, dt.date))
        if isinstance(predicate, Range):
            bounds = (predicate.lower, predicate.upper)
            if any(b is not None and not isinstance(b, dt.date) for b in bounds):
                return None
            lower = upper = None
            if predicate.lower is not None:
                # an aware bound may fall in a neighbouring year of the value's own zone
                lower = predicate.lower.year - (1 if _is_aware(predicate.lower) else 0)
            if predicate.upper is not None:
                upper = predicate.upper.year + (1 if _is_aware(predicate.upper) else 0)
            return Range(lower, upper)
        return None

    def project_strict(self, predicate: Predicate) -> Predicate | None:
        if isinstance(predicate, Exists):
            return Exists()
        if isinstance(predicate, Range):
            r = predicate
            bounds = (r.lower, r.upper)
            if any(b is not None and not isinstance(b, dt.date) for b in bounds):
                return None
            # years are wall-clock in the record's zone; an aware bound proves nothing
            if any(_is_aware(b) for b in bounds):
                return None
            lower_year = None
            if r.lower is not None:
                lower_year = r.lower.year
                start = _year_start(lower_year, r.lower)
                if start < r.lower or (start == r.lower and not r.lower_inclusive):
                    lower_year += 1
            upper_year = None
            if r.upper is not None:
                upper_year = r.upper.year
                if isinstance(r.upper, dt.datetime):
                    # a partial final year is not covered
                    covered = r.upper.year < dt.MAXYEAR and r.upper >= _year_start(r.upper.year + 1, r.upper)
                else:
                    # date bounds compare calendar days, so Dec 31 covers every instant of it
                    end = dt.date(r.upper.year, 12, 31)
                    covered = r.upper > end or (r.upper == end and r.upper_inclusive)
                if not covered:
                    upper_year -= 1
            if lower_year is not None and upper_year is not None and lower_year > upper_year:
                return None
            return Range(lower_year, upper_year)
        if isinstance(predicate, In):
            return None
        return None


# -----------------------------------------------------------------------------
# Function (extension point)
# -----------------------------------------------------------------------------


def _default_project(predicate: Predicate) -> Predicate | None:
    return Exists() if isinstance(predicate, Exists) else None


@dataclass(frozen=True)
class FunctionFieldPartitioner(FieldPartitioner):
    """
    Partitioner assembled from caller-supplied functions.

    Attributes:
        name (str): Partition name.
        apply_fn (Callable[[Any], Any]): Source value -> partition value. ValueError,
            TypeError and LookupError are reported as InvalidValueError.
        project_fn (Callable | None): Permissive projection; default keeps Exists only.
        project_strict_fn (Callable | None): Strict projection; default keeps Exists only.
        parse_fn (Callable[[str], Any]): Directory name -> partition value.
        format_fn (Callable[[Any], str]): Partition value -> directory name.
        cardinality (int | None): Declared partition count, None if unbounded.
        source_name (str): Record field; defaults to name.

    Notes:
        The supplied projections must honour the same contract as the built-ins:
        project over-approximates, project_strict under-approximates.
    """

    name: str
    apply_fn: Callable[[Any], Any]
    project_fn: Callable[[Predicate], Predicate | None] | None = None
    project_strict_fn: Callable[[Predicate], Predicate | None] | None = None
    parse_fn: Callable[[str], Any] = str
    format_fn: Callable[[Any], str] = str
    cardinality: int | None = None
    source_name: str = field(default="")

    def __post_init__(self) -> None:
        if not self.source_name:
            object.__setattr__(self, "source_name", self.name)

    def apply(self, value: Any) -> Any:
        try:
            return self.apply_fn(value)
        except InvalidValueError:
            raise
        except (ValueError, TypeError, LookupError) as exc:
            raise InvalidValueError(f"{value!r} rejected by partitioner {self.name!r}: {exc}") from exc

    def parse(self, name: str) -> Any:
        return self.parse_fn(name)

    def format(self, value: Any) -> str:
        return self.format_fn(value)

    def project(self, predicate: Predicate) -> Predicate | None:
        if not isinstance(predicate, (Exists, In, Range)):
            return None
        fn = self.project_fn or _default_project
        return fn(predicate)

    def project_strict(self, predicate: Predicate) -> Predicate | None:
        if not isinstance(predicate, (Exists, In, Range)):
            return None
        fn = self.project_strict_fn or _default_project
        return fn(predicate)
