"""
Lazy, pruning walk over a partitioned dataset's directory tree.

Overview
- Depth-first and level-synchronous: the directory at depth d is listed only when the
  walk reaches it, its child names are parsed with the level-d partitioner, and only
  children accepted by the level-d projected predicate are descended into.
- Leaves (depth == strategy length) are emitted as (StorageKey, path) pairs in
  partition-value order.

Pruning semantics
- Projected predicates are computed once per walk from Constraints.project(); a level
  with no predicate keeps every child.
- Files, hidden names ("." / "_" prefixed) and names the partitioner cannot parse are
  skipped as noise.
- strict=True additionally emits only partitions that Constraints.covers() proves are
  entirely inside the constraints.

Notes
- The iterator is forward-only and not restartable; close() (or leaving a with-block)
  abandons any pending listing work.
- A missing root, or a directory removed mid-walk, yields nothing for that subtree.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from functools import cmp_to_key
from typing import Any

from strata.core.constraints import Constraints
from strata.core.logging_config import get_logger
from strata.core.strategy import PartitionStrategy
from strata.core.typing import StorageKey

from .errors import IoEnumerationError
from .fs import StorageBackend
from .paths import is_data_file, is_hidden

_LOGGER = get_logger(__name__)


class PartitionIterator:
    """
    Iterator of (StorageKey, partition directory) pairs matching a Constraints value.

    Args:
        backend (StorageBackend): Storage used for directory listing.
        root (str): Dataset root directory.
        strategy (PartitionStrategy): Partition layout of the dataset.
        constraints (Constraints): Constraints to prune by.
        strict (bool): Emit only partitions fully covered by the constraints.

    Raises:
        strata.io.errors.IoEnumerationError: From iteration, if a listing fails.
    """

    def __init__(
        self,
        backend: StorageBackend,
        root: str,
        strategy: PartitionStrategy,
        constraints: Constraints,
        *,
        strict: bool = False,
    ) -> None:
        self._backend = backend
        self._root = root
        self._strategy = strategy
        self._constraints = constraints
        self._strict = strict
        self._predicates = constraints.project(strategy)
        self._strict_predicates = constraints.project_strict(strategy) if strict else None
        self._walk = self._generate()

    def __iter__(self) -> PartitionIterator:
        return self

    def __next__(self) -> tuple[StorageKey, str]:
        return next(self._walk)

    def close(self) -> None:
        """Abandon the walk and release pending listing state."""
        self._walk.close()

    def __enter__(self) -> PartitionIterator:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _children(self, path: str, level: int) -> list[tuple[Any, str]]:
        try:
            entries = self._backend.list(path)
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise IoEnumerationError(f"cannot list partitions under {path!r}: {exc}") from exc

        partitioner = self._strategy[level]
        predicate = self._predicates[level]
        kept: list[tuple[Any, str]] = []
        for name, is_dir in entries:
            if not is_dir or is_hidden(name):
                continue
            try:
                value = partitioner.parse(name)
            except (ValueError, TypeError):
                _LOGGER.debug("partition_name_skipped", path=path, name=name, level=level)
                continue
            if predicate is not None and not predicate.matches(value):
                continue
            kept.append((value, os.path.join(path, name)))
        kept.sort(key=cmp_to_key(lambda a, b: partitioner.compare(a[0], b[0])))
        return kept

    def _generate(self) -> Iterator[tuple[StorageKey, str]]:
        depth = len(self._strategy)
        # pending (key prefix, directory) pairs; popped in partition-value order
        stack: list[tuple[StorageKey, str]] = [((), self._root)]
        while stack:
            key, path = stack.pop()
            if len(key) == depth:
                if self._strict and not self._constraints.covers(self._strategy, key, self._strict_predicates):
                    continue
                yield key, path
                continue
            children = self._children(path, len(key))
            for value, child in reversed(children):
                stack.append((key + (value,), child))


def list_data_files(backend: StorageBackend, directory: str) -> list[str]:
    """
    List the readable part files directly inside a directory.

    Returns:
        list[str]: Part file paths sorted by name; empty if the directory is gone.

    Raises:
        IoEnumerationError: If listing fails for another reason.
    """
    try:
        entries = backend.list(directory)
    except FileNotFoundError:
        return []
    except OSError as exc:
        raise IoEnumerationError(f"cannot list part files under {directory!r}: {exc}") from exc
    return [os.path.join(directory, name) for name, is_dir in entries if not is_dir and is_data_file(name)]
