"""
Constraints: an immutable conjunction of one predicate per field.

Constraints only ever narrow. Adding a predicate to a field that already has one
intersects the two (see strata.core.predicates.intersect_predicates).

Responsibilities
- Row-level evaluation of a record (matches).
- Per-level projection for a PartitionStrategy, permissive (project) for read pruning
  or strict (project_strict) for coverage proofs.
- Deciding whether a partition is provably covered by every constraint (covers).

Notes
- A strategy level whose source field carries no predicate projects to None.
- A record that lacks a constrained field does not match.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from .predicates import Exists, In, Predicate, Range, intersect_predicates, is_predicate
from .strategy import PartitionStrategy
from .typing import Record, StorageKey

__all__ = [
    "Constraints",
]


class Constraints:
    """
    Immutable mapping of field name to Predicate, combined conjunctively.

    Examples:
        >>> from strata.core.constraints import Constraints
        >>> c = Constraints().with_in("letter", "a", "b").with_in("letter", "b", "c")
        >>> sorted(c["letter"].values)
        ['b']
        >>> c.matches({"letter": "b"}), c.matches({"letter": "a"})
        (True, False)
    """

    __slots__ = ("_predicates",)

    def __init__(self, predicates: Mapping[str, Predicate] | None = None) -> None:
        items: dict[str, Predicate] = {}
        for name, pred in (predicates or {}).items():
            if not is_predicate(pred):
                raise TypeError(f"constraint on {name!r} must be Exists, In or Range; got {pred!r}")
            items[name] = pred
        self._predicates = items

    # ------------------------------------------------------------------
    # Mapping-like access
    # ------------------------------------------------------------------
    def __getitem__(self, name: str) -> Predicate:
        return self._predicates[name]

    def __contains__(self, name: object) -> bool:
        return name in self._predicates

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._predicates))

    def __len__(self) -> int:
        return len(self._predicates)

    def get(self, name: str) -> Predicate | None:
        return self._predicates.get(name)

    def items(self) -> list[tuple[str, Predicate]]:
        return sorted(self._predicates.items(), key=lambda kv: kv[0])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Constraints):
            return NotImplemented
        return self._predicates == other._predicates

    def __hash__(self) -> int:
        return hash(tuple(self.items()))

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self.items())
        return f"Constraints({inner})"

    def is_unbounded(self) -> bool:
        """Return True if no field is constrained."""
        return not self._predicates

    # ------------------------------------------------------------------
    # Narrowing
    # ------------------------------------------------------------------
    def intersect(self, other: Constraints) -> Constraints:
        """
        Combine two constraint sets field by field.

        Args:
            other (Constraints): Constraints to conjoin with self.

        Returns:
            Constraints: New value; fields present on one side pass through unchanged,
            fields present on both are intersected.
        """
        merged = dict(self._predicates)
        for name, pred in other._predicates.items():
            current = merged.get(name)
            merged[name] = pred if current is None else intersect_predicates(current, pred)
        return Constraints(merged)

    def with_predicate(self, name: str, predicate: Predicate) -> Constraints:
        return self.intersect(Constraints({name: predicate}))

    def with_exists(self, name: str) -> Constraints:
        return self.with_predicate(name, Exists())

    def with_in(self, name: str, *values: Any) -> Constraints:
        return self.with_predicate(name, In(values))

    def with_range(
        self,
        name: str,
        lower: Any = None,
        upper: Any = None,
        *,
        lower_inclusive: bool = True,
        upper_inclusive: bool = True,
    ) -> Constraints:
        return self.with_predicate(name, Range(lower, upper, lower_inclusive, upper_inclusive))

    # ------------------------------------------------------------------
    # Evaluation and projection
    # ------------------------------------------------------------------
    def matches(self, record: Record) -> bool:
        """Return True if the record satisfies every predicate."""
        return all(pred.matches(record.get(name)) for name, pred in self._predicates.items())

    def project(self, strategy: PartitionStrategy) -> tuple[Predicate | None, ...]:
        """Permissive per-level projection, used to prune reads."""
        return tuple(
            p.project(self._predicates[p.source_name]) if p.source_name in self._predicates else None
            for p in strategy
        )

    def project_strict(self, strategy: PartitionStrategy) -> tuple[Predicate | None, ...]:
        """Strict per-level projection, used to prove full coverage."""
        return tuple(
            p.project_strict(self._predicates[p.source_name]) if p.source_name in self._predicates else None
            for p in strategy
        )

    def covers(
        self,
        strategy: PartitionStrategy,
        key: StorageKey,
        strict: tuple[Predicate | None, ...] | None = None,
    ) -> bool:
        """
        Decide whether every record of a partition is guaranteed to match.

        Args:
            strategy (PartitionStrategy): Strategy that produced key.
            key (StorageKey): Partition to test.
            strict (tuple | None): Precomputed project_strict(strategy), if available.

        Returns:
            bool: True iff each constrained field is read by at least one level whose
            strict projection accepts the key's value at that level. A constraint on a
            field no level partitions by can never be proven.
        """
        if strict is None:
            strict = self.project_strict(strategy)
        for name in self._predicates:
            levels = strategy.levels_for(name)
            if not any(strict[i] is not None and strict[i].matches(key[i]) for i in levels):
                return False
        return True
