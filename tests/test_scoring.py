"""
Unit tests for scoring, optimistic bounds and the top-K result set.
"""

import pytest
from albumseq.models import Duration, Medium, Track
from albumseq.sequence.constraints import Adjacent, AtPosition, OnSide
from albumseq.sequence.scoring import ProposalResult, TopK, score, upper_bound
from albumseq.sequence.search import _Prefix
from albumseq.sequence.sides import assign


@pytest.fixture
def tracks():
    return [Track(name, Duration.from_minutes(2)) for name in "ABC"]


@pytest.fixture
def medium():
    return Medium("Tape", 1, Duration.from_minutes(10))


def make_result(value, order_key):
    tracks = tuple(Track(str(i), Duration(1000)) for i in order_key)
    layout = assign(tracks, Medium("M", 1, Duration(60_000)))
    return ProposalResult(layout, value, tuple(order_key))


class TestScore:
    def test_empty_constraints(self, tracks, medium):
        assert score(assign(tracks, medium), []) == 0.0

    def test_sum_of_satisfied(self, tracks, medium):
        constraints = [
            AtPosition(10.0, "A", 0),
            Adjacent(5.0, "A", "B"),
            AtPosition(3.0, "C", 0),
        ]
        assert score(assign(tracks, medium), constraints) == 15.0

    def test_penalty(self, tracks, medium):
        constraints = [AtPosition(-2.0, "A", 0), OnSide(1.0, "B", 0)]
        assert score(assign(tracks, medium), constraints) == -1.0


class TestUpperBound:
    def test_empty_prefix_counts_positive_weights(self, tracks, medium):
        constraints = [AtPosition(10.0, "A", 0), AtPosition(-5.0, "B", 1)]
        assert upper_bound(_Prefix(tracks, medium), constraints) == 10.0

    def test_violated_drops_out(self, tracks, medium):
        prefix = _Prefix(tracks, medium)
        prefix.push(1)
        constraints = [AtPosition(10.0, "A", 0), AtPosition(4.0, "C", 2)]
        assert upper_bound(prefix, constraints) == 4.0

    def test_satisfied_penalty_counts(self, tracks, medium):
        prefix = _Prefix(tracks, medium)
        prefix.push(0)
        constraints = [AtPosition(-3.0, "A", 0), AtPosition(2.0, "B", 1)]
        assert upper_bound(prefix, constraints) == -1.0

    def test_complete_state_equals_score(self, tracks, medium):
        constraints = [AtPosition(0.1, "A", 0), AtPosition(0.2, "B", 1), Adjacent(0.3, "B", "C")]
        prefix = _Prefix(tracks, medium)
        for index in range(3):
            prefix.push(index)
        assert upper_bound(prefix, constraints) == score(prefix.layout(), constraints)


class TestTopK:
    """Test bounded retention and ranking."""

    def test_rejects_zero_size(self):
        with pytest.raises(ValueError):
            TopK(0)

    def test_keeps_best(self):
        top = TopK(2)
        for value, key in [(1.0, (0, 1)), (5.0, (1, 0)), (3.0, (0, 2))]:
            top.offer(make_result(value, key))
        assert [r.score for r in top.results()] == [5.0, 3.0]
        assert len(top) == 2
        assert top.threshold() == 3.0

    def test_threshold_none_until_full(self):
        top = TopK(2)
        top.offer(make_result(1.0, (0,)))
        assert top.threshold() is None
        assert not top.full

    def test_tie_keeps_earlier_order(self):
        top = TopK(1)
        assert top.offer(make_result(2.0, (1, 0)))
        assert top.offer(make_result(2.0, (0, 1)))
        assert not top.offer(make_result(2.0, (1, 2)))
        assert top.results()[0].order_key == (0, 1)

    def test_duplicates_ignored(self):
        top = TopK(3)
        assert top.offer(make_result(1.0, (0, 1)))
        assert not top.offer(make_result(1.0, (0, 1)))
        assert len(top) == 1
        assert (0, 1) in top

    def test_results_ranked_with_ties(self):
        top = TopK(4)
        for value, key in [(1.0, (2,)), (2.0, (3,)), (1.0, (0,)), (1.0, (1,))]:
            top.offer(make_result(value, key))
        assert [r.order_key for r in top.results()] == [(3,), (0,), (1,), (2,)]

    def test_evicted_key_can_return(self):
        top = TopK(1)
        top.offer(make_result(1.0, (5,)))
        top.offer(make_result(2.0, (6,)))
        assert (5,) not in top
        assert top.offer(make_result(3.0, (5,)))
