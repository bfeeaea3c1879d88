"""
Partition strategies: an ordered sequence of field partitioners.

A strategy turns a record into a StorageKey (one partition value per level) and renders
that key as a relative directory path, one directory per level:

    <root>/<format(level 0 value)>/<format(level 1 value)>/...

Notes
- Partition names must be unique within a strategy; several partitioners may read the
  same source field (e.g. year and hash of one column).
- key_for() computes every level before returning, so a record rejected at any level
  never yields a partial key.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from .errors import StrategyError
from .partitioners import FieldPartitioner
from .typing import Record, StorageKey

__all__ = [
    "PartitionStrategy",
]


@dataclass(frozen=True, init=False)
class PartitionStrategy:
    """
    Ordered, immutable sequence of FieldPartitioners.

    Attributes:
        partitioners (tuple[FieldPartitioner, ...]): One partitioner per directory level.

    Raises:
        StrategyError: If no partitioners are given or partition names repeat.

    Examples:
        >>> from strata.core.partitioners import ListFieldPartitioner, YearFieldPartitioner
        >>> from strata.core.strategy import PartitionStrategy
        >>> s = PartitionStrategy([ListFieldPartitioner("letter", [{"a", "b"}, {"c"}])])
        >>> s.key_for({"letter": "b"})
        (0,)
    """

    partitioners: tuple[FieldPartitioner, ...]

    def __init__(self, partitioners: Iterable[FieldPartitioner]) -> None:
        parts = tuple(partitioners)
        if not parts:
            raise StrategyError("partition strategy needs at least one partitioner")
        names = [p.name for p in parts]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise StrategyError(f"duplicate partition names: {dupes!r}")
        object.__setattr__(self, "partitioners", parts)

    def __len__(self) -> int:
        return len(self.partitioners)

    def __iter__(self) -> Iterator[FieldPartitioner]:
        return iter(self.partitioners)

    def __getitem__(self, level: int) -> FieldPartitioner:
        return self.partitioners[level]

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.partitioners]

    @property
    def source_names(self) -> list[str]:
        return [p.source_name for p in self.partitioners]

    def levels_for(self, source_name: str) -> list[int]:
        """Return the levels whose partitioner reads the given source field."""
        return [i for i, p in enumerate(self.partitioners) if p.source_name == source_name]

    def key_for(self, record: Record) -> StorageKey:
        """
        Compute the StorageKey of a record.

        Args:
            record (Record): Mapping of field name to value. A missing field is passed
                to the partitioner as None.

        Returns:
            StorageKey: One partition value per level.

        Raises:
            strata.core.errors.InvalidValueError: If any level rejects its field value.
        """
        return tuple(p.apply(record.get(p.source_name)) for p in self.partitioners)

    def path_for(self, key: Sequence[Any]) -> str:
        """
        Render a StorageKey as a relative directory path.

        Raises:
            ValueError: If the key length does not match the strategy.
        """
        if len(key) != len(self.partitioners):
            raise ValueError(f"storage key {tuple(key)!r} has {len(key)} levels; strategy has {len(self)}")
        return os.path.join(*(p.format(v) for p, v in zip(self.partitioners, key)))

    def parse_path(self, rel_path: str) -> StorageKey:
        """
        Parse a relative directory path (e.g. "0/2024") back into a StorageKey.

        Raises:
            ValueError: If the depth does not match or any segment fails to parse.
        """
        segments = [s for s in rel_path.replace("\\", "/").split("/") if s]
        if len(segments) != len(self.partitioners):
            raise ValueError(f"partition path {rel_path!r} does not have {len(self)} levels")
        return tuple(p.parse(s) for p, s in zip(self.partitioners, segments))
