"""
Read utilities for strata datasets.

Overview
- iter_file_records(): stream the records of one part file as dicts.
- DatasetReader: lazy, closeable record stream over a sequence of part files, filtered
  row by row with Constraints.matches().
- scan(): a Polars LazyFrame over part files with the constraints pushed down as a
  row filter.

Pruning semantics
- Partition pruning happens upstream (strata.io.partition_iterator); this module only
  reads what it is given. Row-level filters are always applied because a selected
  partition may also hold non-matching records.

Import DAG discipline
- Depends on stdlib, pyarrow, polars, strata.core and strata.io helpers.

Notes
- File protocol baseline; scan() hands local paths straight to polars.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Iterator
from typing import Any

import polars as pl
import pyarrow as pa
import pyarrow.parquet as pq

from strata.core.constraints import Constraints
from strata.core.logging_config import get_logger
from strata.core.predicates import Exists, In, Predicate, Range
from strata.core.typing import StorageKey

from .errors import IoReadError
from .fs import StorageBackend

_LOGGER = get_logger(__name__)


def iter_file_records(backend: StorageBackend, path: str, batch_size: int) -> Iterator[dict[str, Any]]:
    """
    Stream the records of a single Parquet part file.

    Args:
        backend (StorageBackend): Storage used to open the file.
        path (str): Part file path.
        batch_size (int): Rows decoded per Arrow record batch.

    Yields:
        dict[str, Any]: One record per row.

    Raises:
        IoReadError: If the file cannot be opened or decoded.

    Notes:
        The file handle is closed when the generator finishes or is closed early.
    """
    try:
        fh = backend.open_read(path)
    except OSError as exc:
        raise IoReadError(f"cannot open part file {path!r}: {exc}") from exc
    _LOGGER.debug("part_opened", path=path)
    try:
        try:
            pf = pq.ParquetFile(fh)
            batches = pf.iter_batches(batch_size=batch_size)
            for batch in batches:
                yield from batch.to_pylist()
        except (OSError, pa.ArrowException) as exc:
            raise IoReadError(f"cannot decode part file {path!r}: {exc}") from exc
    finally:
        fh.close()


class DatasetReader:
    """
    Lazy record stream over part files, filtered by Constraints.

    Args:
        backend (StorageBackend): Storage used to open part files.
        paths (Iterable[tuple[StorageKey, str]]): (key, part file) pairs, typically a
            View.path_iterator(). Closed together with the reader when it supports close().
        constraints (Constraints): Row-level filter.
        batch_size (int): Rows decoded per batch.

    Notes:
        - Not restartable: ask the view for a new reader to read again.
        - Always close the reader (or use it as a context manager) when abandoning it
          early; this releases the open part file and the pending directory listing.

    Examples:
        >>> with view.new_reader() as reader:  # doctest: +SKIP
        ...     for record in reader:
        ...         ...
    """

    def __init__(
        self,
        backend: StorageBackend,
        paths: Iterable[tuple[StorageKey, str]],
        constraints: Constraints,
        batch_size: int,
    ) -> None:
        self._backend = backend
        self._paths = paths
        self._constraints = constraints
        self._batch_size = batch_size
        self._records = self._generate()
        self._closed = False

    def _generate(self) -> Iterator[dict[str, Any]]:
        try:
            for _key, path in self._paths:
                records = iter_file_records(self._backend, path, self._batch_size)
                try:
                    for record in records:
                        if self._constraints.matches(record):
                            yield record
                finally:
                    records.close()
        finally:
            close = getattr(self._paths, "close", None)
            if close is not None:
                close()

    def __iter__(self) -> DatasetReader:
        return self

    def __next__(self) -> dict[str, Any]:
        return next(self._records)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the current part file and the remaining path enumeration."""
        if not self._closed:
            self._records.close()
            self._closed = True

    def __enter__(self) -> DatasetReader:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def read_all(self) -> list[dict[str, Any]]:
        """Drain the reader into a list and close it."""
        try:
            return list(self)
        finally:
            self.close()


# -----------------------------------------------------------------------------
# Polars scan
# -----------------------------------------------------------------------------


def _bound_operand(col: pl.Expr, bound: Any) -> pl.Expr:
    # plain date bounds compare calendar days, as Range.matches does
    if isinstance(bound, dt.date) and not isinstance(bound, dt.datetime):
        return col.dt.date()
    return col


def _predicate_expr(name: str, pred: Predicate) -> pl.Expr:
    col = pl.col(name)
    if isinstance(pred, Exists):
        return col.is_not_null()
    if isinstance(pred, In):
        if not pred.values:
            return pl.lit(False)
        return col.is_in(list(pred.values))
    if isinstance(pred, Range):
        expr = col.is_not_null()
        if pred.lower is not None:
            lhs = _bound_operand(col, pred.lower)
            expr = expr & (lhs >= pred.lower if pred.lower_inclusive else lhs > pred.lower)
        if pred.upper is not None:
            lhs = _bound_operand(col, pred.upper)
            expr = expr & (lhs <= pred.upper if pred.upper_inclusive else lhs < pred.upper)
        return expr
    raise TypeError(f"unsupported predicate {pred!r}")


def constraints_expr(constraints: Constraints) -> pl.Expr | None:
    """
    Translate Constraints into a Polars boolean expression.

    Returns:
        pl.Expr | None: Conjunction of one expression per constrained field, or None
        when nothing is constrained.
    """
    exprs = [_predicate_expr(name, pred) for name, pred in constraints.items()]
    if not exprs:
        return None
    out = exprs[0]
    for e in exprs[1:]:
        out = out & e
    return out


def scan(paths: list[str], constraints: Constraints) -> pl.LazyFrame:
    """
    Create a LazyFrame over the given part files with a row-level constraints filter.

    Args:
        paths (list[str]): Part files, already pruned to the selected partitions.
        constraints (Constraints): Row filter pushed into the scan.

    Returns:
        pl.LazyFrame: Lazy scan; an empty LazyFrame when paths is empty.
    """
    if not paths:
        # Return an empty scan to keep types simple; consumers can handle empty results.
        return pl.LazyFrame()

    lf = pl.scan_parquet(paths)
    expr = constraints_expr(constraints)
    if expr is not None:
        lf = lf.filter(expr)
    return lf
