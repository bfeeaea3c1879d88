"""
Constrained views over a dataset.

A View pairs a Dataset with a Constraints value. Narrowing a view returns a new view;
the dataset and every existing view are left untouched. Views are where partition
pruning, row filtering and the delete path meet.

Delete semantics (delete_all)
- Candidates are the partitions the read-mode PartitionIterator selects.
- A candidate that Constraints.covers() proves is entirely inside the constraints is
  removed as a whole directory.
- Any other candidate is checked file by file: a part file is removed only when every
  record in it matches the constraints. Files holding a non-matching record are kept and
  reported with a "partition_delete_skipped" warning.
- After a partition directory disappears, its now-empty ancestors are removed up to, but
  never including, the dataset root.

Notes
- Unpartitioned datasets behave as one pseudo-partition, the root itself.
- Nothing here holds locks; concurrent writers may race with delete_all.
"""

from __future__ import annotations

import errno
import os
from collections.abc import Iterator
from contextlib import closing
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

import polars as pl

from strata.core.constraints import Constraints
from strata.core.logging_config import get_logger
from strata.core.predicates import Predicate
from strata.core.typing import StorageKey

from .errors import IoDeleteError, IoEnumerationError, IoWriteError
from .partition_iterator import PartitionIterator, list_data_files
from .read import DatasetReader, iter_file_records
from .read import scan as _scan
from .write import ParquetPartWriter, PartitionedDatasetWriter, arrow_schema_for, part_metadata

if TYPE_CHECKING:
    from .dataset import Dataset

_LOGGER = get_logger(__name__)


def _is_strictly_within(path: str, root: str) -> bool:
    path = os.path.abspath(path)
    root = os.path.abspath(root)
    return path != root and os.path.commonpath([path, root]) == root


@dataclass(frozen=True)
class View:
    """
    Immutable (dataset, constraints) pair.

    Attributes:
        dataset (Dataset): Dataset the view reads from and writes to.
        constraints (Constraints): Conjunctive filter; empty means "everything".

    Examples:
        >>> v = dataset.view().with_in("letter", "a", "c")  # doctest: +SKIP
        >>> sorted(r["letter"] for r in v.new_reader())  # doctest: +SKIP
        ['a', 'c']
    """

    dataset: Dataset
    constraints: Constraints = field(default_factory=Constraints)

    # ---------------------------------------------------------------------
    # Narrowing
    # ---------------------------------------------------------------------
    def filter(self, constraints: Constraints) -> View:
        return replace(self, constraints=self.constraints.intersect(constraints))

    def with_predicate(self, name: str, predicate: Predicate) -> View:
        return replace(self, constraints=self.constraints.with_predicate(name, predicate))

    def with_exists(self, name: str) -> View:
        return replace(self, constraints=self.constraints.with_exists(name))

    def with_in(self, name: str, *values: Any) -> View:
        return replace(self, constraints=self.constraints.with_in(name, *values))

    def with_range(
        self,
        name: str,
        lower: Any = None,
        upper: Any = None,
        *,
        lower_inclusive: bool = True,
        upper_inclusive: bool = True,
    ) -> View:
        return replace(
            self,
            constraints=self.constraints.with_range(
                name, lower, upper, lower_inclusive=lower_inclusive, upper_inclusive=upper_inclusive
            ),
        )

    # ---------------------------------------------------------------------
    # Enumeration
    # ---------------------------------------------------------------------
    def partition_iterator(self, *, strict: bool = False) -> PartitionIterator:
        """
        Lazily enumerate the partitions selected by this view.

        Raises:
            IoConfigError: If the dataset is not partitioned.
        """
        ds = self.dataset
        return PartitionIterator(ds.backend, ds.root, ds.partition_strategy, self.constraints, strict=strict)

    def partitions(self) -> Iterator[StorageKey]:
        """Yield the StorageKeys of the selected partitions in partition-value order."""
        with self.partition_iterator() as it:
            for key, _path in it:
                yield key

    def _directories(self) -> Iterator[tuple[StorageKey, str]]:
        if not self.dataset.is_partitioned:
            yield (), self.dataset.root
            return
        with self.partition_iterator() as it:
            yield from it

    def _data_files(self, directory: str) -> list[str]:
        return list_data_files(self.dataset.backend, directory)

    def path_iterator(self) -> Iterator[tuple[StorageKey, str]]:
        """
        Lazily enumerate (key, part file) pairs of the selected partitions.

        Notes:
            Unpartitioned datasets yield their root files with the empty key ().
            Close the returned generator when abandoning it early.
        """
        for key, directory in self._directories():
            for path in self._data_files(directory):
                yield key, path

    # ---------------------------------------------------------------------
    # Read
    # ---------------------------------------------------------------------
    def new_reader(self) -> DatasetReader:
        """Return a lazy reader over the records matching this view."""
        ds = self.dataset
        return DatasetReader(ds.backend, self.path_iterator(), self.constraints, ds.settings.read_batch_size)

    def scan(self) -> pl.LazyFrame:
        """
        Polars LazyFrame over the selected part files, filtered by the constraints.

        Notes:
            Part files are enumerated eagerly; rows are read lazily by polars.
        """
        with closing(self.path_iterator()) as it:
            paths = [path for _key, path in it]
        return _scan(paths, self.constraints)

    def read(self, limit: int | None = None) -> pl.DataFrame:
        """Collect the view into a DataFrame, optionally limited to the first rows."""
        lf = self.scan()
        if limit is not None:
            lf = lf.head(limit)
        return lf.collect()

    # ---------------------------------------------------------------------
    # Write
    # ---------------------------------------------------------------------
    def new_writer(self) -> PartitionedDatasetWriter | ParquetPartWriter:
        """
        Return a writer for this view's dataset.

        Notes:
            Records are routed by the dataset's strategy; the view's constraints do not
            restrict what may be written.
        """
        ds = self.dataset
        if ds.is_partitioned:
            return PartitionedDatasetWriter(ds.backend, ds.root, ds.descriptor, ds.settings)
        try:
            ds.backend.makedirs(ds.root)
        except OSError as exc:
            raise IoWriteError(f"cannot create dataset root {ds.root!r}: {exc}") from exc
        return ParquetPartWriter(
            ds.backend,
            ds.root,
            ds.settings,
            schema=arrow_schema_for(ds.descriptor),
            metadata=part_metadata(ds.name, ()),
        )

    # ---------------------------------------------------------------------
    # Delete
    # ---------------------------------------------------------------------
    def delete_all(self) -> bool:
        """
        Delete the stored data selected by this view.

        Returns:
            bool: True if anything was removed.

        Raises:
            IoDeleteError: If a removal fails.
            IoEnumerationError: If listing fails.
            IoReadError: If a part file that must be checked cannot be read.
        """
        ds = self.dataset
        deleted = False
        if not ds.is_partitioned:
            verify = not self.constraints.is_unbounded()
            for path in self._data_files(ds.root):
                if verify and not self._all_match(path):
                    _LOGGER.warning("partition_delete_skipped", dataset=ds.name, key=[], path=path)
                    continue
                deleted = self._remove(path) or deleted
            return deleted

        strategy = ds.partition_strategy
        strict = self.constraints.project_strict(strategy)
        with self.partition_iterator() as it:
            for key, directory in it:
                if self.constraints.covers(strategy, key, strict):
                    deleted = self._cleanly_delete(key, directory) or deleted
                    continue
                removed = kept = False
                for path in self._data_files(directory):
                    if self._all_match(path):
                        removed = self._remove(path) or removed
                    else:
                        kept = True
                if kept:
                    _LOGGER.warning("partition_delete_skipped", dataset=ds.name, key=list(key), path=directory)
                if removed:
                    deleted = True
                    if self._is_empty(directory):
                        self._cleanly_delete(key, directory)
        return deleted

    def _all_match(self, path: str) -> bool:
        ds = self.dataset
        with closing(iter_file_records(ds.backend, path, ds.settings.read_batch_size)) as records:
            return all(self.constraints.matches(r) for r in records)

    def _is_empty(self, directory: str) -> bool:
        try:
            return not self.dataset.backend.list(directory)
        except FileNotFoundError:
            return True
        except OSError as exc:
            raise IoEnumerationError(f"cannot list {directory!r}: {exc}") from exc

    def _remove(self, path: str, *, recursive: bool = False) -> bool:
        try:
            return self.dataset.backend.delete(path, recursive=recursive)
        except OSError as exc:
            raise IoDeleteError(f"cannot delete {path!r}: {exc}") from exc

    def _cleanly_delete(self, key: StorageKey, directory: str) -> bool:
        """Remove a partition directory, then every ancestor it leaves empty below the root."""
        ds = self.dataset
        deleted = self._remove(directory, recursive=True)
        if deleted:
            _LOGGER.info("partition_deleted", dataset=ds.name, key=list(key), path=directory)
        parent = os.path.dirname(directory)
        while _is_strictly_within(parent, ds.root):
            if not self._is_empty(parent):
                break
            try:
                removed = ds.backend.delete(parent)
            except OSError as exc:
                # A concurrent writer repopulated the directory.
                if exc.errno in (errno.ENOTEMPTY, errno.EEXIST):
                    break
                raise IoDeleteError(f"cannot delete {parent!r}: {exc}") from exc
            if removed:
                deleted = True
                _LOGGER.debug("ancestor_removed", dataset=ds.name, path=parent)
            parent = os.path.dirname(parent)
        return deleted
