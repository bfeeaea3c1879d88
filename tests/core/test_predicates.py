import datetime as dt

import pytest

from strata.core.predicates import Exists, In, Range, intersect_predicates, is_predicate


def test_exists_rejects_none_only() -> None:
    assert Exists().matches(0)
    assert Exists().matches("")
    assert not Exists().matches(None)


def test_in_normalizes_to_frozenset_and_handles_unhashable() -> None:
    p = In(["a", "b", "a"])
    assert p.values == frozenset({"a", "b"})
    assert p == In({"b", "a"})
    assert p.matches("a")
    assert not p.matches("c")
    assert not p.matches(None)
    assert not p.matches(["a"])  # unhashable -> no match


def test_range_bounds_and_inclusivity() -> None:
    r = Range(1, 5)
    assert r.matches(1) and r.matches(5) and r.matches(3)
    assert not r.matches(0) and not r.matches(6)
    o = Range.open(1, 5)
    assert not o.matches(1) and not o.matches(5) and o.matches(2)
    assert Range.at_least(3).matches(3)
    assert not Range.greater_than(3).matches(3)
    assert Range.at_most(3).matches(3)
    assert not Range.less_than(3).matches(3)
    assert Range().matches("anything")
    assert not Range().matches(None)


def test_range_incomparable_value_does_not_match() -> None:
    assert not Range(1, 5).matches("3")


def test_range_compares_dates_against_datetimes() -> None:
    year = Range(dt.date(2020, 1, 1), dt.date(2020, 12, 31))
    assert year.matches(dt.datetime(2020, 12, 31, 12, 0))
    assert year.matches(dt.datetime(2020, 1, 1, 0, 0))
    assert not year.matches(dt.datetime(2021, 1, 1, 0, 0))
    before_last_day = Range.less_than(dt.date(2020, 12, 31))
    assert not before_last_day.matches(dt.datetime(2020, 12, 31, 12, 0))
    # a date stands for its midnight against datetime bounds
    assert Range.at_least(dt.datetime(2020, 1, 1)).matches(dt.date(2020, 1, 1))
    assert not Range.greater_than(dt.datetime(2020, 1, 1)).matches(dt.date(2020, 1, 1))
    # naive vs aware compares wall-clock time
    aware = dt.datetime(2020, 6, 1, tzinfo=dt.timezone.utc)
    assert Range.at_least(aware).matches(dt.datetime(2020, 6, 1, 9, 0))
    assert not Range.at_least(aware).matches(dt.datetime(2020, 5, 31, 23, 0))


def test_range_rejects_inverted_bounds() -> None:
    with pytest.raises(ValueError):
        Range(5, 1)


def test_range_is_empty() -> None:
    assert Range(1, 1, lower_inclusive=False).is_empty()
    assert not Range(1, 1).is_empty()
    assert not Range(1, None).is_empty()


def test_is_predicate() -> None:
    assert is_predicate(Exists()) and is_predicate(In([])) and is_predicate(Range())
    assert not is_predicate("a")


def test_intersect_exists_is_identity() -> None:
    assert intersect_predicates(Exists(), In({"a"})) == In({"a"})
    assert intersect_predicates(Range(1, 2), Exists()) == Range(1, 2)
    assert intersect_predicates(Exists(), Exists()) == Exists()


def test_intersect_in_with_in_and_range() -> None:
    assert intersect_predicates(In({"a", "b"}), In({"b", "c"})) == In({"b"})
    assert intersect_predicates(In({1, 5, 9}), Range(2, 9)) == In({5, 9})
    assert intersect_predicates(Range(2, 9), In({1, 5, 9})) == In({5, 9})


def test_intersect_ranges_tightens_bounds() -> None:
    r = intersect_predicates(Range(1, 10), Range.open(5, 20))
    assert r == Range(5, 10, lower_inclusive=False, upper_inclusive=True)
    d = intersect_predicates(
        Range(dt.date(2020, 1, 1), None), Range(None, dt.date(2021, 6, 1))
    )
    assert d == Range(dt.date(2020, 1, 1), dt.date(2021, 6, 1))


def test_intersect_disjoint_ranges_matches_nothing() -> None:
    r = intersect_predicates(Range(1, 2), Range(3, 4))
    assert r == In(frozenset())
    touching = intersect_predicates(Range.less_than(3), Range.at_least(3))
    assert touching == In(frozenset())


def test_intersect_unknown_kind_raises() -> None:
    with pytest.raises(TypeError):
        intersect_predicates(In({"a"}), "a")  # type: ignore[arg-type]
