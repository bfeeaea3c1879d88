import datetime as dt
import os

import pytest

from strata.core.constraints import Constraints
from strata.core.errors import InvalidValueError, StrategyError
from strata.core.partitioners import HashFieldPartitioner, ListFieldPartitioner, YearFieldPartitioner
from strata.core.predicates import Exists, In, Range
from strata.core.strategy import PartitionStrategy


def _letters_by_year() -> PartitionStrategy:
    return PartitionStrategy(
        [
            ListFieldPartitioner("letter", [{"a", "b"}, {"c"}]),
            YearFieldPartitioner("year", source_name="ts"),
        ]
    )


def test_strategy_key_and_path() -> None:
    s = _letters_by_year()
    key = s.key_for({"letter": "c", "ts": dt.date(2024, 5, 1)})
    assert key == (1, 2024)
    assert s.path_for(key) == os.path.join("1", "2024")
    assert s.parse_path("1/2024") == (1, 2024)
    assert s.names == ["letter", "year"]
    assert s.source_names == ["letter", "ts"]
    assert len(s) == 2


def test_strategy_rejects_record_outside_any_level() -> None:
    s = _letters_by_year()
    with pytest.raises(InvalidValueError):
        s.key_for({"letter": "z", "ts": dt.date(2024, 5, 1)})
    with pytest.raises(InvalidValueError):
        s.key_for({"letter": "a"})  # missing ts


def test_strategy_validation() -> None:
    with pytest.raises(StrategyError):
        PartitionStrategy([])
    with pytest.raises(StrategyError):
        PartitionStrategy([YearFieldPartitioner("year", "ts"), YearFieldPartitioner("year", "other")])
    with pytest.raises(ValueError):
        _letters_by_year().parse_path("1")
    with pytest.raises(ValueError):
        _letters_by_year().path_for((1,))


def test_constraints_are_immutable_values() -> None:
    base = Constraints()
    narrowed = base.with_in("letter", "a")
    assert base.is_unbounded()
    assert not narrowed.is_unbounded()
    assert narrowed == Constraints({"letter": In({"a"})})
    assert hash(narrowed) == hash(Constraints({"letter": In({"a"})}))
    assert list(narrowed) == ["letter"]
    assert "letter" in narrowed and len(narrowed) == 1


def test_constraints_reject_non_predicates() -> None:
    with pytest.raises(TypeError):
        Constraints({"letter": "a"})  # type: ignore[dict-item]


def test_intersect_passes_through_and_combines() -> None:
    c1 = Constraints().with_in("letter", "a", "b").with_exists("ts")
    c2 = Constraints().with_in("letter", "b", "c").with_range("score", 1, 5)
    both = c1.intersect(c2)
    assert both["letter"] == In({"b"})
    assert both["ts"] == Exists()
    assert both["score"] == Range(1, 5)
    # repeated narrowing on one field intersects as well
    assert Constraints().with_range("score", 0, 10).with_range("score", 5, 20)["score"] == Range(5, 10)


def test_matches_requires_every_field() -> None:
    c = Constraints().with_in("letter", "a").with_range("score", 1, 5)
    assert c.matches({"letter": "a", "score": 3})
    assert not c.matches({"letter": "a", "score": 9})
    assert not c.matches({"letter": "a"})
    assert Constraints().matches({})


def test_project_per_level() -> None:
    s = _letters_by_year()
    c = Constraints().with_in("letter", "a", "c")
    assert c.project(s) == (In({0, 1}), None)
    ranged = Constraints().with_range("ts", dt.date(2020, 6, 1), dt.date(2021, 1, 1))
    assert ranged.project(s) == (None, Range(2020, 2021))
    assert ranged.project_strict(s) == (None, None)


def test_covers_needs_every_constrained_field_proven() -> None:
    s = _letters_by_year()
    c = Constraints().with_in("letter", "c").with_range("ts", dt.date(2020, 1, 1), dt.date(2020, 12, 31))
    assert c.covers(s, (1, 2020))
    assert not c.covers(s, (1, 2021))
    assert not c.covers(s, (0, 2020))
    # a field no level partitions by can never be proven
    assert not c.with_range("score", 1, 5).covers(s, (1, 2020))
    assert Constraints().covers(s, (0, 2020))


def test_covers_uses_any_level_reading_the_field() -> None:
    s = PartitionStrategy(
        [
            YearFieldPartitioner("year", source_name="ts"),
            HashFieldPartitioner("ts_hash", 4, source_name="ts"),
        ]
    )
    c = Constraints().with_range("ts", dt.date(2020, 1, 1), dt.date(2020, 12, 31))
    assert c.covers(s, (2020, 3))
