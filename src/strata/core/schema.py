"""
Pydantic v2 models for declarative partition strategies and dataset descriptors.

A strategy can be written as plain data (JSON, TOML, YAML) and parsed here into the
runtime PartitionStrategy / DatasetDescriptor objects:

    {
      "name": "events",
      "columns": {"letter": "str", "ts": "timestamp", "score": "i64"},
      "partitions": [
        {"type": "list", "name": "letter", "buckets": [["a", "b"], ["c"], "*"]},
        {"type": "year", "name": "year", "source": "ts"}
      ]
    }

Responsibilities
- Validate the shape of each partitioner declaration (discriminated on "type").
- Build the runtime objects; semantic checks (duplicate names, bucket ordering) are
  raised by the runtime constructors as StrategyError.

Notes
- Zero-IO (stdlib + pydantic only).
- In a list partitioner, the string "*" declares an Unbounded bucket.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .descriptor import DTYPES, DatasetDescriptor
from .partitioners import (
    FieldPartitioner,
    HashFieldPartitioner,
    IdentityFieldPartitioner,
    ListFieldPartitioner,
    RangeFieldPartitioner,
    Unbounded,
    YearFieldPartitioner,
)
from .strategy import PartitionStrategy

__all__ = [
    "ListPartitionSpec",
    "IdentityPartitionSpec",
    "HashPartitionSpec",
    "RangePartitionSpec",
    "YearPartitionSpec",
    "PartitionStrategySpec",
    "DatasetDescriptorSpec",
    "parse_partition_strategy",
    "parse_dataset_descriptor",
]

UNBOUNDED_MARKER = "*"


class _PartitionSpecBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1)
    source: str | None = None


class ListPartitionSpec(_PartitionSpecBase):
    """
    List partitioner declaration.

    Attributes:
        buckets (list[list[Any] | "*"]): Ordered buckets; "*" declares an unbounded one.
    """

    type: Literal["list"]
    buckets: list[Union[list[Any], Literal["*"]]] = Field(..., min_length=1)

    def build(self) -> ListFieldPartitioner:
        buckets = [Unbounded() if b == UNBOUNDED_MARKER else b for b in self.buckets]
        return ListFieldPartitioner(self.name, buckets, source_name=self.source)


class IdentityPartitionSpec(_PartitionSpecBase):
    """Identity partitioner declaration."""

    type: Literal["identity"]
    value_type: Literal["str", "int"] = "str"

    def build(self) -> IdentityFieldPartitioner:
        vt = str if self.value_type == "str" else int
        return IdentityFieldPartitioner(self.name, value_type=vt, source_name=self.source or "")


class HashPartitionSpec(_PartitionSpecBase):
    """Hash partitioner declaration."""

    type: Literal["hash"]
    buckets: int = Field(..., ge=1)

    def build(self) -> HashFieldPartitioner:
        return HashFieldPartitioner(self.name, self.buckets, source_name=self.source or "")


class RangePartitionSpec(_PartitionSpecBase):
    """Range partitioner declaration (inclusive upper bounds)."""

    type: Literal["range"]
    upper_bounds: list[Any] = Field(..., min_length=1)

    def build(self) -> RangeFieldPartitioner:
        return RangeFieldPartitioner(self.name, self.upper_bounds, source_name=self.source)


class YearPartitionSpec(_PartitionSpecBase):
    """Calendar-year partitioner declaration."""

    type: Literal["year"]

    def build(self) -> YearFieldPartitioner:
        return YearFieldPartitioner(self.name, source_name=self.source or "")


PartitionerSpec = Annotated[
    Union[ListPartitionSpec, IdentityPartitionSpec, HashPartitionSpec, RangePartitionSpec, YearPartitionSpec],
    Field(discriminator="type"),
]


class PartitionStrategySpec(BaseModel):
    """Ordered list of partitioner declarations."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    partitions: list[PartitionerSpec] = Field(..., min_length=1)

    def build(self) -> PartitionStrategy:
        parts: list[FieldPartitioner] = [p.build() for p in self.partitions]
        return PartitionStrategy(parts)


class DatasetDescriptorSpec(BaseModel):
    """
    Dataset descriptor declaration.

    Attributes:
        name (str): Dataset name.
        columns (dict[str, str]): Column -> dtype; dtypes must be in DTYPES.
        partitions (list | None): Partitioner declarations; None or omitted for an
            unpartitioned dataset.
        format (Literal["parquet"]): Part-file format.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    columns: dict[str, str] = Field(default_factory=dict)
    partitions: list[PartitionerSpec] | None = None
    format: Literal["parquet"] = "parquet"

    @field_validator("columns")
    @classmethod
    def _known_dtypes(cls, v: dict[str, str]) -> dict[str, str]:
        unknown = sorted(t for t in v.values() if t not in DTYPES)
        if unknown:
            raise ValueError(f"unknown dtypes {unknown!r}; expected one of {sorted(DTYPES)!r}")
        return v

    def build(self) -> DatasetDescriptor:
        strategy = None
        if self.partitions:
            strategy = PartitionStrategySpec(partitions=self.partitions).build()
        return DatasetDescriptor(
            name=self.name,
            columns=dict(self.columns),
            partition_strategy=strategy,
            format=self.format,
        )


def parse_partition_strategy(obj: Mapping[str, Any] | list[Any]) -> PartitionStrategy:
    """
    Build a PartitionStrategy from plain data.

    Args:
        obj: Either {"partitions": [...]} or the bare list of partitioner declarations.

    Returns:
        PartitionStrategy

    Raises:
        pydantic.ValidationError: If a declaration has the wrong shape.
        strata.core.errors.StrategyError: If the declarations are semantically invalid.
    """
    data = {"partitions": obj} if isinstance(obj, list) else obj
    return PartitionStrategySpec.model_validate(data).build()


def parse_dataset_descriptor(obj: Mapping[str, Any]) -> DatasetDescriptor:
    """
    Build a DatasetDescriptor from plain data.

    Raises:
        pydantic.ValidationError: If the declaration has the wrong shape.
        strata.core.errors.StrategyError: If the partition declarations are invalid.
    """
    return DatasetDescriptorSpec.model_validate(obj).build()
