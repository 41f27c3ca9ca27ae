import pytest

from touche2021.errors import CompositionError
from touche2021.proximity import ProximityQueryBuilder, pairs
from touche2021.query import Field, PairingPolicy, ProximityGroup


def test_all_pairs():
    assert pairs(["a", "b", "c"], PairingPolicy.ALL_PAIRS) == [("a", "b"), ("a", "c"), ("b", "c")]


def test_adjacent_pairs():
    assert pairs(["a", "b", "c"], PairingPolicy.ADJACENT_PAIRS) == [("a", "b"), ("b", "c")]


def test_identical_terms_are_not_paired():
    assert pairs(["a", "a", "b"], PairingPolicy.ALL_PAIRS) == [("a", "b"), ("a", "b")]
    assert pairs(["a", "a"], PairingPolicy.ADJACENT_PAIRS) == []


def test_build_group():
    group = ProximityQueryBuilder().build(["a", "b", "c"], Field.BODY, 17, 0.75)

    assert group == ProximityGroup(
        field=Field.BODY,
        pairs=(("a", "b", 17), ("a", "c", 17), ("b", "c", 17)),
        boost=0.75,
    )


def test_build_adjacent_group():
    group = ProximityQueryBuilder().build(["a", "b", "c"], Field.TITLE, 12, 0.75, PairingPolicy.ADJACENT_PAIRS)
    assert group.pairs == (("a", "b", 12), ("b", "c", 12))


def test_zero_boost_omits_group():
    assert ProximityQueryBuilder().build(["a", "b"], Field.TITLE, 12, 0.0) is None


def test_single_term_has_no_group():
    assert ProximityQueryBuilder().build(["a"], Field.TITLE, 12, 0.75) is None


@pytest.mark.parametrize("distance, boost", [(-1, 0.75), (12, -0.5)])
def test_negative_values_are_rejected(distance, boost):
    with pytest.raises(CompositionError):
        ProximityQueryBuilder().build(["a", "b"], Field.TITLE, distance, boost)
