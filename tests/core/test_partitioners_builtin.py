import datetime as dt

import pytest

from strata.core.errors import InvalidValueError, StrategyError
from strata.core.partitioners import (
    FunctionFieldPartitioner,
    HashFieldPartitioner,
    IdentityFieldPartitioner,
    RangeFieldPartitioner,
    YearFieldPartitioner,
)
from strata.core.predicates import Exists, In, Range


def test_identity_passes_predicates_through() -> None:
    p = IdentityFieldPartitioner("region")
    assert p.apply("eu") == "eu"
    assert p.project(In({"eu", "us"})) == In({"eu", "us"})
    assert p.project_strict(Range("a", "m")) == Range("a", "m")
    assert p.project(Exists()) == Exists()


def test_identity_rejects_unsafe_directory_names() -> None:
    p = IdentityFieldPartitioner("region")
    for bad in ("", "a/b", ".hidden", "_tmp", None, 3):
        with pytest.raises(InvalidValueError):
            p.apply(bad)
    # unusable values never show up in a projection
    assert p.project(In({"eu", "a/b"})) == In({"eu"})
    assert p.project(In({".x"})) is None


def test_identity_int_parse_is_canonical() -> None:
    p = IdentityFieldPartitioner("shard", value_type=int)
    assert p.apply(7) == 7
    assert p.parse("7") == 7
    with pytest.raises(ValueError):
        p.parse("07")
    with pytest.raises(InvalidValueError):
        p.apply(True)
    with pytest.raises(StrategyError):
        IdentityFieldPartitioner("x", value_type=float)


def test_identity_int_projects_equal_numbers() -> None:
    p = IdentityFieldPartitioner("shard", value_type=int)
    assert In({1.0, 2}).matches(1)
    assert p.project(In({1.0, 2})) == In({1, 2})
    assert p.project(In({True})) == In({1})
    assert p.project_strict(In({1.0})) == In({1})
    # no int equals 2.5
    assert p.project(In({2.5})) is None
    assert p.project(In({float("nan"), 3})) == In({3})


def test_hash_is_stable_and_bounded() -> None:
    p = HashFieldPartitioner("user_bucket", 8, source_name="user")
    assert p.source_name == "user"
    values = [f"u{i}" for i in range(50)]
    assert all(0 <= p.apply(v) < 8 for v in values)
    assert p.apply("u1") == HashFieldPartitioner("other", 8).apply("u1")
    with pytest.raises(InvalidValueError):
        p.apply(None)


def test_hash_projection() -> None:
    p = HashFieldPartitioner("user_bucket", 8, source_name="user")
    assert p.project(In({"u1"})) == In({p.apply("u1")})
    assert p.project(Range("a", "z")) is None
    assert p.project_strict(In({"u1"})) is None
    assert p.project_strict(Exists()) == Exists()
    with pytest.raises(StrategyError):
        HashFieldPartitioner("h", 0)


def test_hash_projection_covers_equal_numbers() -> None:
    p = HashFieldPartitioner("n_bucket", 64, source_name="n")
    projected = p.project(In({1.0}))
    assert projected is not None
    for record_value in (1, 1.0, True):
        assert In({1.0}).matches(record_value)
        assert projected.matches(p.apply(record_value))
    zero = p.project(In({0}))
    assert zero is not None and all(zero.matches(p.apply(v)) for v in (0, 0.0, False))
    assert p.project(In({2.5})) == In({p.apply(2.5)})
    assert p.project(In({"1"})) == In({p.apply("1")})


def test_range_partitioner_apply_and_domain() -> None:
    p = RangeFieldPartitioner("score_band", [10, 20, 30], source_name="score")
    assert [p.apply(v) for v in (-5, 10, 11, 20, 30)] == [0, 0, 1, 1, 2]
    for bad in (31, None, "x"):
        with pytest.raises(InvalidValueError):
            p.apply(bad)
    with pytest.raises(StrategyError):
        RangeFieldPartitioner("s", [3, 2])
    with pytest.raises(StrategyError):
        RangeFieldPartitioner("s", [])


def test_range_partitioner_projection() -> None:
    p = RangeFieldPartitioner("score", [10, 20, 30])
    assert p.project(Range(12, 25)) == In({1, 2})
    assert p.project(Range.greater_than(10)) == In({1, 2})
    assert p.project(Range.at_least(10)) == In({0, 1, 2})
    assert p.project(In({5, 25, 99})) == In({0, 2})
    assert p.project(Range(31, 40)) is None
    # bucket 1 is (10, 20]
    assert p.project_strict(Range.greater_than(10)) == In({1, 2})
    assert p.project_strict(Range(11, 30)) == In({2})
    assert p.project_strict(Range.at_most(20)) == In({0, 1})
    assert p.project_strict(Range.less_than(20)) == In({0})
    assert p.project_strict(In({15})) is None


def test_year_partitioner_apply() -> None:
    p = YearFieldPartitioner("year", source_name="ts")
    assert p.apply(dt.date(2024, 3, 1)) == 2024
    assert p.apply(dt.datetime(1999, 12, 31, 23, 59)) == 1999
    with pytest.raises(InvalidValueError):
        p.apply("2024-01-01")
    assert p.parse("2024") == 2024
    with pytest.raises(ValueError):
        p.parse("02024")


def test_year_partitioner_projection() -> None:
    p = YearFieldPartitioner("year", source_name="ts")
    r = Range(dt.date(2020, 6, 1), dt.date(2023, 2, 1))
    assert p.project(r) == Range(2020, 2023)
    assert p.project_strict(r) == Range(2021, 2022)
    whole = Range(dt.date(2020, 1, 1), dt.date(2021, 12, 31))
    assert p.project_strict(whole) == Range(2020, 2021)
    assert p.project_strict(Range(dt.date(2020, 3, 1), dt.date(2020, 9, 1))) is None
    assert p.project_strict(Range.at_least(dt.datetime(2020, 1, 1))) == Range(2020, None)
    assert p.project(In({dt.date(2020, 1, 1), dt.date(2022, 5, 5)})) == In({2020, 2022})
    assert p.project_strict(In({dt.date(2020, 1, 1)})) is None


def test_year_partitioner_date_bounds_cover_whole_days() -> None:
    p = YearFieldPartitioner("year", source_name="ts")
    through_dec_31 = Range(dt.date(2020, 1, 1), dt.date(2020, 12, 31))
    assert p.project_strict(through_dec_31) == Range(2020, 2020)
    assert through_dec_31.matches(dt.datetime(2020, 12, 31, 12, 0))
    before_dec_31 = Range(dt.date(2020, 1, 1), dt.date(2020, 12, 31), upper_inclusive=False)
    assert p.project_strict(before_dec_31) is None
    assert p.project(before_dec_31) == Range(2020, 2020)


def test_year_partitioner_aware_bounds() -> None:
    p = YearFieldPartitioner("year", source_name="ts")
    new_year_utc = dt.datetime(2021, 1, 1, tzinfo=dt.timezone.utc)
    # 2020-12-31T23:00-05:00 is in the 2021 UTC range but in the 2020 partition
    late = dt.datetime(2020, 12, 31, 23, 0, tzinfo=dt.timezone(dt.timedelta(hours=-5)))
    assert Range.at_least(new_year_utc).matches(late)
    assert p.project(Range.at_least(new_year_utc)).matches(p.apply(late))
    assert p.project_strict(Range.at_least(new_year_utc)) is None
    assert p.project_strict(Range.less_than(new_year_utc)) is None


def test_function_partitioner_wraps_errors_and_defaults_projection() -> None:
    p = FunctionFieldPartitioner("initial", apply_fn=lambda v: v[0], source_name="word")
    assert p.apply("apple") == "a"
    with pytest.raises(InvalidValueError):
        p.apply("")  # IndexError
    with pytest.raises(InvalidValueError):
        p.apply(None)  # TypeError
    assert p.project(In({"apple"})) is None
    assert p.project(Exists()) == Exists()


def test_function_partitioner_custom_projection() -> None:
    p = FunctionFieldPartitioner(
        "parity",
        apply_fn=lambda v: v % 2,
        project_fn=lambda pred: In({v % 2 for v in pred.values}) if isinstance(pred, In) else None,
        parse_fn=int,
        cardinality=2,
    )
    assert p.project(In({1, 3})) == In({1})
    assert p.project(Range(1, 3)) is None
    assert p.parse("1") == 1
