"""
Frozen dataset descriptor: name, columns, and optional partition strategy.

Notes:
    - columns maps lower_snake column name -> dtype where
      dtype ∈ {"i64","f64","str","bool","date","timestamp"}.
    - An empty column map means "infer the schema from the first written batch".
    - Core is zero-IO (stdlib only); strata.io renders the columns as an Arrow schema.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Final, Literal

from .errors import StrategyError
from .strategy import PartitionStrategy

__all__ = [
    "DTYPES",
    "DatasetDescriptor",
    "validate_dataset_name",
]

DTYPES: Final[frozenset[str]] = frozenset({"i64", "f64", "str", "bool", "date", "timestamp"})

# Allow common safe characters in dataset names: letters, digits, underscore, dash, dot.
_NAME_ALLOWED_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def validate_dataset_name(name: str) -> str:
    """
    Validate that a dataset name is safe to use as a single directory name.

    Raises:
        ValueError: If name is empty or contains disallowed characters.
    """
    s = name or ""
    if not _NAME_ALLOWED_RE.match(s):
        raise ValueError(
            f"dataset name {name!r} contains illegal characters; allowed pattern is [A-Za-z0-9][A-Za-z0-9._-]*"
        )
    return s


@dataclass(frozen=True)
class DatasetDescriptor:
    """
    Frozen descriptor for a dataset.

    Attributes:
        name (str): Dataset name, also the default directory name under the root.
        columns (dict[str, str]): Column name -> dtype (see DTYPES). May be empty.
        partition_strategy (PartitionStrategy | None): None for an unpartitioned dataset.
        format (Literal["parquet"]): Physical part-file format.

    Raises:
        ValueError: If the name is unsafe or a dtype is unknown.
        StrategyError: If a partition source field is missing from a non-empty column map.

    Examples:
        >>> from strata.core.descriptor import DatasetDescriptor
        >>> DatasetDescriptor(name="events", columns={"letter": "str"}).is_partitioned
        False
    """

    name: str
    columns: dict[str, str] = field(default_factory=dict)
    partition_strategy: PartitionStrategy | None = None
    format: Literal["parquet"] = "parquet"

    def __post_init__(self) -> None:
        validate_dataset_name(self.name)
        unknown = {c: t for c, t in self.columns.items() if t not in DTYPES}
        if unknown:
            raise ValueError(f"unknown dtypes {unknown!r}; expected one of {sorted(DTYPES)!r}")
        if self.partition_strategy is not None and self.columns:
            missing = [s for s in self.partition_strategy.source_names if s not in self.columns]
            if missing:
                raise StrategyError(f"partition source fields missing from columns: {missing!r}")

    @property
    def is_partitioned(self) -> bool:
        return self.partition_strategy is not None
