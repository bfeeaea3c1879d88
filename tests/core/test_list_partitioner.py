import pytest

from strata.core.errors import InvalidValueError, StrategyError
from strata.core.partitioners import ListFieldPartitioner, Unbounded
from strata.core.predicates import Exists, In, Range

BUCKETS = [{"a", "b"}, {"c"}]


def _accepted(pred, cardinality: int) -> set[int]:
    """Index set a projected predicate accepts; None accepts every index."""
    if pred is None:
        return set(range(cardinality))
    return {i for i in range(cardinality) if pred.matches(i)}


def test_apply_maps_every_member_to_its_bucket() -> None:
    p = ListFieldPartitioner("letter", BUCKETS)
    for i, bucket in enumerate(BUCKETS):
        for v in bucket:
            assert p.apply(v) == i


def test_apply_outside_every_bucket_raises() -> None:
    p = ListFieldPartitioner("letter", BUCKETS)
    for v in ("z", None, 1, ["a"]):
        with pytest.raises(InvalidValueError):
            p.apply(v)


def test_apply_first_match_wins() -> None:
    p = ListFieldPartitioner("letter", [{"a"}, {"a", "b"}, Unbounded()])
    assert p.apply("a") == 0
    assert p.apply("b") == 1
    assert p.apply("zzz") == 2


def test_exists_projects_to_exists_both_ways() -> None:
    p = ListFieldPartitioner("letter", BUCKETS)
    assert p.project(Exists()) == Exists()
    assert p.project_strict(Exists()) == Exists()


def test_documented_projections() -> None:
    p = ListFieldPartitioner("letter", BUCKETS)
    assert p.project(In({"a", "c"})) == In({0, 1})
    assert p.project(Range("a", "a")) == In({0})
    assert p.project_strict(Range("a", "a")) is None


def test_project_in_drops_values_outside_every_bucket() -> None:
    p = ListFieldPartitioner("letter", BUCKETS)
    assert p.project(In({"a", "z"})) == In({0})
    # nothing maps -> no constraint, not an empty set
    assert p.project(In({"z"})) is None


def test_project_range_without_hits_is_no_constraint() -> None:
    p = ListFieldPartitioner("letter", BUCKETS)
    assert p.project(Range("x", "z")) is None


def test_project_strict_in_requires_every_member() -> None:
    p = ListFieldPartitioner("letter", BUCKETS)
    assert p.project_strict(In({"a", "b"})) == In({0})
    assert p.project_strict(In({"a", "b", "c"})) == In({0, 1})
    assert p.project_strict(In({"c"})) == In({1})
    assert p.project_strict(In({"a"})) is None


def test_unbounded_bucket_in_project_range_never_in_strict() -> None:
    p = ListFieldPartitioner("letter", [{"a"}, Unbounded()])
    for r in (Range("a", "a"), Range("x", "z"), Range(), Range.at_least("b")):
        assert 1 in _accepted(p.project(r), p.cardinality)
        strict = p.project_strict(r)
        if strict is not None:
            assert not strict.matches(1)


@pytest.mark.parametrize(
    "pred",
    [
        Exists(),
        In({"a"}),
        In({"a", "b"}),
        In({"a", "b", "c", "z"}),
        In(set()),
        Range("a", "b"),
        Range("b", "c"),
        Range.greater_than("a"),
        Range.less_than("c"),
        Range(),
    ],
)
def test_strict_projection_is_subset_of_projection(pred) -> None:
    p = ListFieldPartitioner("letter", [{"a", "b"}, {"c"}, Unbounded()])
    strict = p.project_strict(pred)
    loose = p.project(pred)
    if strict is None:
        return
    assert _accepted(strict, p.cardinality) <= _accepted(loose, p.cardinality)


def test_parse_and_format_are_canonical_indices() -> None:
    p = ListFieldPartitioner("letter", BUCKETS)
    assert p.parse("0") == 0
    assert p.format(1) == "1"
    for bad in ("2", "-1", "01", "x", ""):
        with pytest.raises(ValueError):
            p.parse(bad)


def test_equality_by_name_and_buckets() -> None:
    assert ListFieldPartitioner("letter", BUCKETS) == ListFieldPartitioner("letter", [["a", "b"], ["c"]])
    assert ListFieldPartitioner("letter", BUCKETS) != ListFieldPartitioner("other", BUCKETS)
    assert ListFieldPartitioner("letter", BUCKETS).compare(0, 1) < 0


def test_invalid_bucket_declarations() -> None:
    with pytest.raises(StrategyError):
        ListFieldPartitioner("letter", [])
    with pytest.raises(StrategyError):
        ListFieldPartitioner("letter", [{"a"}, set()])


def test_source_name_defaults_to_name() -> None:
    assert ListFieldPartitioner("letter", BUCKETS).source_name == "letter"
    assert ListFieldPartitioner("bucket", BUCKETS, source_name="letter").source_name == "letter"
