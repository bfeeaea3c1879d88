"""
strata.io — Storage layer for partitioned strata datasets.

## Responsibilities
- Walk partition directory trees lazily, pruning with the per-level predicates that
  strata.core.constraints projects from a query.
- Read records back (row by row, or as a Polars LazyFrame) with constraints applied.
- Write records append-only into per-partition Parquet part files with atomic
  tmp → final renames.
- Delete the data a view selects, removing emptied ancestor directories.

## Public API
- IoSettings — Configuration for IO behavior (defaults sourced from strata.core.constants).
- Dataset — Facade bound to a DatasetDescriptor and a root directory.
- View — Immutable (dataset, constraints) pair with reader/writer/delete operations.
- Partition — Handle on one stored partition.

## Import DAG discipline
- Depends only on stdlib, pyarrow/polars, structlog and strata.core.*.

## Examples
```python
from strata.core.schema import parse_dataset_descriptor
from strata.io import Dataset

ds = Dataset(parse_dataset_descriptor({  # doctest: +SKIP
    "name": "letters",
    "columns": {"letter": "str", "n": "i64"},
    "partitions": [{"type": "list", "name": "letter", "buckets": [["a", "b"], ["c"]]}],
}), root="/data")
with ds.new_writer() as w:  # doctest: +SKIP
    w.write([{"letter": "a", "n": 1}, {"letter": "c", "n": 2}])
ds.view().with_in("letter", "c").delete_all()  # doctest: +SKIP
```

## Notes
- Layout: <root>/<level-0 value>/.../<level-n value>/part-<uuid>.parquet.
- Names starting with "." or "_" are never partitions or data files.
"""

from __future__ import annotations

from .config import IoSettings
from .dataset import Dataset, Partition
from .view import View

__all__ = [
    "IoSettings",
    "Dataset",
    "Partition",
    "View",
]
