"""
Append-only writers for strata datasets.

Overview
- ParquetPartWriter: buffers records for one directory and writes them as a single
  Parquet part file with atomic tmp -> final rename on close.
- PartitionedDatasetWriter: routes each record to the part writer of its partition,
  creating partition directories on first use.

Source of truth
- Partition routing: strata.core.strategy.PartitionStrategy.key_for.
- Declared columns: strata.core.descriptor.DatasetDescriptor (rendered by arrow_schema_for).
- Layout and naming: strata.io.paths.

Parquet key-value metadata embedded in every part
- b"strata_format_version" = strata.core.constants.FORMAT_VERSION
- b"strata_dataset_name"   = descriptor name
- b"strata_storage_key"    = canonical JSON of the partition key ("[]" when unpartitioned)

Notes
- Readers never see partial parts: in-flight files carry a ".tmp" suffix and are only
  renamed into place after fsync.
- A writer that received no records creates no part file.
- Single-writer semantics per part; concurrent writers use distinct part names.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from typing import Any, BinaryIO

import pyarrow as pa
import pyarrow.parquet as pq

from strata.core.constants import FORMAT_VERSION
from strata.core.descriptor import DatasetDescriptor
from strata.core.errors import InvalidValueError
from strata.core.hashing import json_dumps_canonical
from strata.core.logging_config import get_logger
from strata.core.strategy import PartitionStrategy
from strata.core.typing import Record, StorageKey

from .config import IoSettings
from .errors import IoSchemaError, IoWriteError
from .fs import StorageBackend
from .paths import PartPaths, part_paths, partition_dir

_LOGGER = get_logger(__name__)

_ARROW_TYPES: dict[str, pa.DataType] = {
    "i64": pa.int64(),
    "f64": pa.float64(),
    "str": pa.string(),
    "bool": pa.bool_(),
    "date": pa.date32(),
    "timestamp": pa.timestamp("us"),
}


def arrow_schema_for(descriptor: DatasetDescriptor) -> pa.Schema | None:
    """
    Render a descriptor's declared columns as an Arrow schema.

    Returns:
        pa.Schema | None: Schema in declaration order, or None when no columns are declared.
    """
    if not descriptor.columns:
        return None
    return pa.schema([pa.field(name, _ARROW_TYPES[dtype]) for name, dtype in descriptor.columns.items()])


def part_metadata(dataset_name: str, key: StorageKey) -> dict[bytes, bytes]:
    """Build the key-value metadata embedded in a part file."""
    return {
        b"strata_format_version": FORMAT_VERSION.encode(),
        b"strata_dataset_name": dataset_name.encode("utf-8"),
        b"strata_storage_key": json_dumps_canonical(list(key)).encode("utf-8"),
    }


class ParquetPartWriter:
    """
    Writer for a single Parquet part file.

    Args:
        backend (StorageBackend): Storage used for the tmp file, fsync and rename.
        directory (str): Existing directory that receives the part.
        settings (IoSettings): Compression, row group size and schema strictness.
        schema (pa.Schema | None): Declared schema; None infers it from the first batch.
        metadata (dict[bytes, bytes] | None): Parquet key-value metadata.
        strategy (PartitionStrategy | None): When given with key, every appended record
            must map to key.
        key (StorageKey | None): Partition the part belongs to.

    Raises:
        IoSchemaError: From append/flush/close, if records do not fit the schema.
        IoWriteError: From flush/close, if the tmp write, fsync or rename fails.
        strata.core.errors.InvalidValueError: From append, if a record belongs to another
            partition than key.
    """

    def __init__(
        self,
        backend: StorageBackend,
        directory: str,
        settings: IoSettings,
        *,
        schema: pa.Schema | None = None,
        metadata: dict[bytes, bytes] | None = None,
        strategy: PartitionStrategy | None = None,
        key: StorageKey | None = None,
    ) -> None:
        self._backend = backend
        self._directory = directory
        self._settings = settings
        self._schema = schema if settings.strict_schema else None
        self._metadata = dict(metadata or {})
        self._strategy = strategy
        self._key = key
        self._buffer: list[dict[str, Any]] = []
        self._paths: PartPaths | None = None
        self._fh: BinaryIO | None = None
        self._writer: pq.ParquetWriter | None = None
        self._rows = 0
        self._closed = False

    @property
    def path(self) -> str | None:
        """Final part path once the first row group has been started, else None."""
        return self._paths.final_path if self._paths is not None else None

    @property
    def rows_written(self) -> int:
        return self._rows

    @property
    def closed(self) -> bool:
        return self._closed

    def append(self, record: Record) -> None:
        if self._closed:
            raise IoWriteError("writer is closed")
        if self._strategy is not None and self._key is not None:
            key = self._strategy.key_for(record)
            if key != self._key:
                raise InvalidValueError(f"record belongs to partition {key!r}, not {self._key!r}")
        self._buffer.append(dict(record))
        if len(self._buffer) >= self._settings.row_group_size:
            self.flush()

    def write(self, records: Iterable[Record]) -> None:
        for record in records:
            self.append(record)

    def _to_table(self, rows: list[dict[str, Any]]) -> pa.Table:
        schema = self._schema
        if schema is not None:
            extra = sorted({k for r in rows for k in r} - set(schema.names))
            if extra:
                raise IoSchemaError(f"unexpected columns not declared for the dataset: {extra}")
        try:
            table = pa.Table.from_pylist(rows, schema=schema)
        except (pa.ArrowInvalid, pa.ArrowTypeError, TypeError, ValueError) as exc:
            raise IoSchemaError(f"records do not match the part schema: {exc}") from exc
        if schema is None:
            # Inferred schema is fixed for the rest of the part.
            self._schema = table.schema
        return table

    def _open(self, schema: pa.Schema) -> None:
        self._paths = part_paths(self._directory, uuid.uuid4().hex)
        self._fh = self._backend.open_write(self._paths.tmp_path)
        self._writer = pq.ParquetWriter(
            self._fh,
            schema.with_metadata(self._metadata),
            compression=self._settings.compression,
        )

    def flush(self) -> None:
        """Write buffered records as one row group."""
        if not self._buffer:
            return
        rows, self._buffer = self._buffer, []
        table = self._to_table(rows)
        try:
            if self._writer is None:
                self._open(table.schema)
            assert self._writer is not None
            self._writer.write_table(table.replace_schema_metadata(self._metadata))
        except (OSError, pa.ArrowException) as exc:
            self._abort()
            raise IoWriteError(f"failed writing part in {self._directory!r}: {exc}") from exc
        self._rows += len(rows)

    def close(self) -> None:
        """
        Flush, fsync and atomically publish the part file.

        Notes:
            Idempotent. On failure the temporary file is removed and IoWriteError raised.
        """
        if self._closed:
            return
        try:
            self.flush()
        except IoSchemaError:
            self._abort()
            raise
        finally:
            self._closed = True
        if self._writer is None:
            return
        assert self._paths is not None and self._fh is not None
        try:
            self._writer.close()
            self._backend.fsync(self._fh)
            self._fh.close()
            self._backend.rename(self._paths.tmp_path, self._paths.final_path)
        except (OSError, pa.ArrowException) as exc:
            self._abort()
            raise IoWriteError(f"failed committing part {self._paths.final_path!r}: {exc}") from exc
        _LOGGER.info("part_written", path=self._paths.final_path, rows=self._rows)

    def _abort(self) -> None:
        """Drop the in-flight tmp file, if any."""
        self._closed = True
        if self._writer is not None:
            try:
                self._writer.close()
            except (OSError, pa.ArrowException) as exc:
                _LOGGER.debug("part_abort_close_failed", error=str(exc))
            self._writer = None
        if self._fh is not None and not self._fh.closed:
            self._fh.close()
        if self._paths is not None:
            try:
                self._backend.delete(self._paths.tmp_path)
            except OSError as exc:
                _LOGGER.warning("part_abort_delete_failed", path=self._paths.tmp_path, error=str(exc))

    def __enter__(self) -> ParquetPartWriter:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class PartitionedDatasetWriter:
    """
    Route records of a partitioned dataset to per-partition part writers.

    Args:
        backend (StorageBackend): Storage backend.
        root (str): Dataset root directory.
        descriptor (DatasetDescriptor): Partitioned dataset descriptor.
        settings (IoSettings): IO configuration.

    Notes:
        - The partition key is computed before anything is written, so a record any
          partitioner rejects (InvalidValueError) leaves the dataset unchanged.
        - Partition directories are created idempotently; several writers may race to
          create the same one.

    Examples:
        >>> with dataset.new_writer() as w:  # doctest: +SKIP
        ...     w.write([{"letter": "a"}, {"letter": "c"}])
    """

    def __init__(
        self,
        backend: StorageBackend,
        root: str,
        descriptor: DatasetDescriptor,
        settings: IoSettings,
    ) -> None:
        if descriptor.partition_strategy is None:
            raise ValueError(f"dataset {descriptor.name!r} is not partitioned")
        self._backend = backend
        self._root = root
        self._descriptor = descriptor
        self._strategy = descriptor.partition_strategy
        self._settings = settings
        self._schema = arrow_schema_for(descriptor)
        self._writers: dict[StorageKey, ParquetPartWriter] = {}
        self._closed = False

    @property
    def partitions(self) -> list[StorageKey]:
        """Keys of the partitions this writer has routed records to."""
        return list(self._writers)

    def _writer_for(self, key: StorageKey) -> ParquetPartWriter:
        writer = self._writers.get(key)
        if writer is None:
            directory = partition_dir(self._root, self._strategy, key)
            try:
                self._backend.makedirs(directory)
            except OSError as exc:
                raise IoWriteError(f"cannot create partition directory {directory!r}: {exc}") from exc
            _LOGGER.debug("partition_created", dataset=self._descriptor.name, key=list(key), path=directory)
            writer = ParquetPartWriter(
                self._backend,
                directory,
                self._settings,
                schema=self._schema,
                metadata=part_metadata(self._descriptor.name, key),
            )
            self._writers[key] = writer
        return writer

    def append(self, record: Mapping[str, Any]) -> None:
        if self._closed:
            raise IoWriteError("writer is closed")
        key = self._strategy.key_for(record)
        self._writer_for(key).append(record)

    def write(self, records: Iterable[Mapping[str, Any]]) -> None:
        """
        Append many records; keys are computed for all of them before any is routed.

        Raises:
            strata.core.errors.InvalidValueError: If any record is rejected; nothing
                from this call is buffered in that case.
        """
        if self._closed:
            raise IoWriteError("writer is closed")
        keyed = [(self._strategy.key_for(r), r) for r in records]
        for key, record in keyed:
            self._writer_for(key).append(record)

    def flush(self) -> None:
        for writer in self._writers.values():
            writer.flush()

    def close(self) -> None:
        """Close every part writer; the first failure is raised after all were attempted."""
        if self._closed:
            return
        self._closed = True
        first: Exception | None = None
        for writer in self._writers.values():
            try:
                writer.close()
            except (IoWriteError, IoSchemaError) as exc:
                if first is None:
                    first = exc
        _LOGGER.debug("writer_closed", dataset=self._descriptor.name, partitions=len(self._writers))
        if first is not None:
            raise first

    def __enter__(self) -> PartitionedDatasetWriter:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
