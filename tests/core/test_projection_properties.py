import datetime as dt

import pytest

from strata.core.errors import InvalidValueError
from strata.core.partitioners import (
    HashFieldPartitioner,
    IdentityFieldPartitioner,
    RangeFieldPartitioner,
    YearFieldPartitioner,
)
from strata.core.predicates import Exists, In, Range

UTC = dt.timezone.utc
EST = dt.timezone(dt.timedelta(hours=-5))

YEAR_VALUES = [
    dt.date(2019, 12, 31),
    dt.date(2020, 1, 1),
    dt.date(2020, 12, 31),
    dt.datetime(2020, 1, 1, 0, 0),
    dt.datetime(2020, 12, 31, 12, 0),
    dt.datetime(2020, 12, 31, 23, 59, 59),
    dt.datetime(2020, 12, 31, 23, 0, tzinfo=EST),
    dt.datetime(2021, 1, 1, 0, 0),
    dt.date(2021, 6, 1),
]
YEAR_PREDICATES = [
    Range(dt.date(2020, 1, 1), dt.date(2020, 12, 31)),
    Range(dt.date(2020, 1, 1), dt.date(2020, 12, 31), upper_inclusive=False),
    Range(dt.datetime(2020, 1, 1), dt.datetime(2021, 1, 1), upper_inclusive=False),
    Range.at_least(dt.datetime(2020, 6, 1)),
    Range.at_most(dt.date(2020, 12, 31)),
    Range.greater_than(dt.date(2019, 12, 31)),
    Range.at_least(dt.datetime(2021, 1, 1, tzinfo=UTC)),
    Range.less_than(dt.datetime(2021, 1, 1, tzinfo=UTC)),
    In({dt.date(2020, 12, 31), dt.datetime(2021, 1, 1)}),
    Exists(),
]

NUMBER_VALUES = [-5, 5, 10, 10.0, 10.5, 11, 20, 20.0, 25, 30.0, True]
RANGE_PREDICATES = [
    Range(10, 20),
    Range(10, 20, lower_inclusive=False),
    Range.at_least(10.5),
    Range.at_most(20.0),
    Range.less_than(20),
    In({10.0, 25}),
    In({True}),
    Exists(),
]

HASH_VALUES = [0, 0.0, False, 1, 1.0, True, 2, 2.5, "1", "a"]
HASH_PREDICATES = [
    In({1.0}),
    In({1}),
    In({True}),
    In({0, "1"}),
    In({2.5}),
    Range(0, 2),
    Exists(),
]

IDENTITY_VALUES = [1, 2, 3, 10]
IDENTITY_PREDICATES = [
    In({1.0, 2}),
    In({True}),
    In({2.5}),
    Range(1.5, 3.0),
    Range.less_than(2),
    Exists(),
]

CASES = [
    (YearFieldPartitioner("year", source_name="ts"), YEAR_VALUES, YEAR_PREDICATES),
    (RangeFieldPartitioner("band", [10, 20, 30], source_name="n"), NUMBER_VALUES, RANGE_PREDICATES),
    (HashFieldPartitioner("bucket", 16, source_name="n"), HASH_VALUES, HASH_PREDICATES),
    (IdentityFieldPartitioner("shard", value_type=int), IDENTITY_VALUES, IDENTITY_PREDICATES),
]

PARAMS = [
    pytest.param(partitioner, values, predicate, id=f"{type(partitioner).__name__}-{i}")
    for partitioner, values, predicates in CASES
    for i, predicate in enumerate(predicates)
]


def _keyed(partitioner, values):
    for v in values:
        try:
            yield v, partitioner.apply(v)
        except InvalidValueError:
            continue


@pytest.mark.parametrize("partitioner,values,predicate", PARAMS)
def test_project_keeps_every_matching_value(partitioner, values, predicate) -> None:
    projected = partitioner.project(predicate)
    for value, key in _keyed(partitioner, values):
        if predicate.matches(value):
            assert projected is None or projected.matches(key), (value, key, projected)


@pytest.mark.parametrize("partitioner,values,predicate", PARAMS)
def test_project_strict_admits_only_matching_values(partitioner, values, predicate) -> None:
    strict = partitioner.project_strict(predicate)
    if strict is None:
        return
    for value, key in _keyed(partitioner, values):
        if strict.matches(key):
            assert predicate.matches(value), (value, key, strict)


@pytest.mark.parametrize("partitioner,values,predicate", PARAMS)
def test_strict_partitions_are_a_subset_of_permissive(partitioner, values, predicate) -> None:
    projected = partitioner.project(predicate)
    strict = partitioner.project_strict(predicate)
    if strict is None or projected is None:
        return
    for _, key in _keyed(partitioner, values):
        if strict.matches(key):
            assert projected.matches(key)
