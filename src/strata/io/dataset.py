"""
Dataset facade for strata.io.

Provides a convenient object bound to one DatasetDescriptor, a root directory and a
storage backend, with view/filter/read/write/delete helpers. The IO layer is
Arrow/Polars-first and treats strata.core as the single source of truth for names,
columns, partition strategies and constraint semantics.

Source of truth
- Descriptor and strategy: strata.core.descriptor / strata.core.strategy
- Declarative configuration: strata.core.schema (parse_dataset_descriptor)
- Constraint semantics: strata.core.constraints

Import DAG discipline:
- Depends only on stdlib, polars/pyarrow, and strata.core.* (via view/read/write modules).
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import pyarrow as pa

from strata.core.constraints import Constraints
from strata.core.descriptor import DatasetDescriptor
from strata.core.schema import parse_dataset_descriptor
from strata.core.strategy import PartitionStrategy
from strata.core.typing import StorageKey

from .config import IoSettings
from .errors import IoConfigError, IoWriteError
from .fs import StorageBackend, filesystem_for
from .partition_iterator import list_data_files
from .paths import dataset_root, partition_dir
from .read import DatasetReader
from .view import View
from .write import ParquetPartWriter, PartitionedDatasetWriter, arrow_schema_for, part_metadata


class Dataset:
    """
    Facade bound to a DatasetDescriptor, a root directory and a storage backend.

    Notes:
        - A Dataset is the unconstrained view of its data: view() and filter() derive
          narrower views without changing the dataset.
        - Writes are append-only and atomic (tmp -> final rename) per part file.
        - Construction performs no I/O.
    """

    def __init__(
        self,
        descriptor: DatasetDescriptor,
        root: str | None = None,
        settings: IoSettings | None = None,
        backend: StorageBackend | None = None,
    ) -> None:
        """
        Initialize a dataset facade.

        Args:
            descriptor (DatasetDescriptor): Name, columns and optional partition strategy.
            root (str | None): Dataset root directory; defaults to <settings.root_dir>/<name>.
            settings (IoSettings | None): IO configuration; defaults to IoSettings().
            backend (StorageBackend | None): Storage; defaults to filesystem_for(settings).

        Raises:
            IoConfigError: If the settings are invalid.
        """
        self.settings = (settings or IoSettings()).validate()
        self.descriptor = descriptor
        self.root = root if root is not None else dataset_root(self.settings, descriptor.name)
        self.backend = backend if backend is not None else filesystem_for(self.settings)

    @classmethod
    def from_spec(
        cls,
        spec: Mapping[str, Any],
        root: str | None = None,
        settings: IoSettings | None = None,
        backend: StorageBackend | None = None,
    ) -> Dataset:
        """
        Build a dataset from a declarative descriptor mapping (see strata.core.schema).

        Raises:
            pydantic.ValidationError: If the mapping is malformed.
        """
        return cls(parse_dataset_descriptor(spec), root=root, settings=settings, backend=backend)

    def __repr__(self) -> str:
        return f"Dataset(name={self.name!r}, root={self.root!r})"

    # ---------------------------------------------------------------------
    # Metadata
    # ---------------------------------------------------------------------
    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def schema(self) -> pa.Schema | None:
        """Arrow schema of the declared columns, or None when inferred from data."""
        return arrow_schema_for(self.descriptor)

    @property
    def is_partitioned(self) -> bool:
        return self.descriptor.is_partitioned

    @property
    def partition_strategy(self) -> PartitionStrategy:
        """
        Raises:
            IoConfigError: If the dataset is not partitioned.
        """
        strategy = self.descriptor.partition_strategy
        if strategy is None:
            raise IoConfigError(f"dataset {self.name!r} is not partitioned")
        return strategy

    # ---------------------------------------------------------------------
    # Views
    # ---------------------------------------------------------------------
    def view(self) -> View:
        """Return the unconstrained view of this dataset."""
        return View(self)

    def filter(self, constraints: Constraints) -> View:
        return View(self, constraints)

    def new_reader(self) -> DatasetReader:
        return self.view().new_reader()

    def new_writer(self) -> PartitionedDatasetWriter | ParquetPartWriter:
        return self.view().new_writer()

    def delete_all(self) -> bool:
        """Delete every partition (or, unpartitioned, every part file) of the dataset."""
        return self.view().delete_all()

    # ---------------------------------------------------------------------
    # Partitions
    # ---------------------------------------------------------------------
    def partitions(self) -> Iterator[Partition]:
        """
        Lazily yield every existing partition in partition-value order.

        Raises:
            IoConfigError: If the dataset is not partitioned.
        """
        strategy = self.partition_strategy
        return (Partition(self, key, partition_dir(self.root, strategy, key)) for key in self.view().partitions())

    def get_partition(self, key: StorageKey | Sequence[Any] | str, auto_create: bool = False) -> Partition | None:
        """
        Look up a partition by StorageKey or by relative path (e.g. "0/2024").

        Args:
            key: Partition values, one per level, or a relative partition path.
            auto_create (bool): Create the partition directory if absent.

        Returns:
            Partition | None: The partition, or None if absent and auto_create is False.

        Raises:
            IoConfigError: If the dataset is not partitioned.
            ValueError: If key does not fit the strategy.
            IoWriteError: If auto_create fails.
        """
        strategy = self.partition_strategy
        skey = strategy.parse_path(key) if isinstance(key, str) else strategy.parse_path(strategy.path_for(key))
        directory = partition_dir(self.root, strategy, skey)
        if not self.backend.exists(directory):
            if not auto_create:
                return None
            try:
                self.backend.makedirs(directory)
            except OSError as exc:
                raise IoWriteError(f"cannot create partition directory {directory!r}: {exc}") from exc
        return Partition(self, skey, directory)


@dataclass(frozen=True)
class Partition:
    """
    One stored partition of a dataset.

    Attributes:
        dataset (Dataset): Owning dataset.
        key (StorageKey): Partition values, one per strategy level.
        path (str): Partition directory.
    """

    dataset: Dataset
    key: StorageKey
    path: str

    def new_reader(self) -> DatasetReader:
        """Read every record stored in this partition."""
        ds = self.dataset
        files = ((self.key, p) for p in list_data_files(ds.backend, self.path))
        return DatasetReader(ds.backend, files, Constraints(), ds.settings.read_batch_size)

    def new_writer(self) -> ParquetPartWriter:
        """
        Writer for one new part file in this partition.

        Raises (from append):
            strata.core.errors.InvalidValueError: If a record maps to another partition.
        """
        ds = self.dataset
        return ParquetPartWriter(
            ds.backend,
            self.path,
            ds.settings,
            schema=ds.schema,
            metadata=part_metadata(ds.name, self.key),
            strategy=ds.partition_strategy,
            key=self.key,
        )
