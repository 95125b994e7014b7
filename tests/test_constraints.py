"""
Unit tests for constraint parsing and evaluation.

Tests the four kinds against complete layouts and partial orderings.
"""

import pytest
from albumseq.models import Duration, Medium, Track
from albumseq.sequence.constraints import (
    CONSTRAINT_KINDS,
    Adjacent,
    AtPosition,
    ConstraintError,
    OnSameSide,
    OnSide,
    Status,
    parse_constraint,
    report_problems,
)
from albumseq.sequence.search import _Prefix
from albumseq.sequence.sides import assign


def minutes(value):
    return Duration.from_minutes(value)


@pytest.fixture
def tracks():
    return [
        Track("A", minutes(3)),
        Track("B", minutes(4)),
        Track("C", minutes(2)),
        Track("D", minutes(3)),
    ]


@pytest.fixture
def medium():
    """Two 7:00 sides."""
    return Medium("Vinyl", 2, minutes(7))


@pytest.fixture
def layout(tracks, medium):
    """A B | C D"""
    return assign(tracks, medium)


def prefix_of(tracks, medium, *indices):
    prefix = _Prefix(tracks, medium)
    for index in indices:
        assert prefix.push(index)
    return prefix


class TestParseConstraint:
    """Test building constraints from textual form."""

    def test_atpos(self):
        constraint = parse_constraint("atpos", ["A", "0"], 10)
        assert constraint == AtPosition(10.0, "A", 0)

    def test_kind_case_insensitive(self):
        assert isinstance(parse_constraint("Adjacent", ["A", "B"]), Adjacent)

    def test_default_weight(self):
        assert parse_constraint("side", ["A", "1"]).weight == 1.0

    def test_onsameside(self):
        assert parse_constraint("onsameside", ["A", "B"], -2) == OnSameSide(-2.0, "A", "B")

    def test_unknown_kind(self):
        with pytest.raises(ConstraintError, match="Unknown constraint kind"):
            parse_constraint("before", ["A", "B"])

    def test_wrong_arg_count(self):
        with pytest.raises(ConstraintError, match="exactly 2 arguments"):
            parse_constraint("adjacent", ["A"])

    @pytest.mark.parametrize("index", ["x", "1.5", "-1"])
    def test_bad_index(self, index):
        with pytest.raises(ConstraintError):
            parse_constraint("atpos", ["A", index])

    def test_all_kinds_registered(self):
        assert set(CONSTRAINT_KINDS) == {"atpos", "adjacent", "side", "onsameside"}

    def test_str(self):
        assert str(parse_constraint("atpos", ["A", "0"], 10)) == "atpos(A, 0) (weight 10)"
        assert str(parse_constraint("side", ["A", "1"], 0.5)) == "side(A, 1) (weight 0.5)"

    def test_same_rule_ignores_weight(self):
        assert AtPosition(1.0, "A", 0).same_rule(AtPosition(5.0, "A", 0))
        assert not AtPosition(1.0, "A", 0).same_rule(AtPosition(1.0, "A", 1))


class TestCompleteLayout:
    """Test evaluation against a complete layout A B | C D."""

    def test_atpos_satisfied(self, layout):
        assert AtPosition(10.0, "A", 0).evaluate(layout) == 10.0
        assert AtPosition(10.0, "A", 1).evaluate(layout) == 0.0

    def test_adjacent_either_order(self, layout):
        assert Adjacent(5.0, "B", "A").evaluate(layout) == 5.0
        assert Adjacent(5.0, "B", "C").evaluate(layout) == 5.0
        assert Adjacent(5.0, "A", "C").evaluate(layout) == 0.0

    def test_adjacent_across_sides(self, layout):
        """Adjacency is about positions, not sides."""
        assert Adjacent(1.0, "B", "C").status(layout) is Status.SATISFIED

    def test_side(self, layout):
        assert OnSide(2.0, "C", 1).evaluate(layout) == 2.0
        assert OnSide(2.0, "C", 0).evaluate(layout) == 0.0

    def test_onsameside(self, layout):
        assert OnSameSide(3.0, "A", "B").evaluate(layout) == 3.0
        assert OnSameSide(3.0, "A", "D").evaluate(layout) == 0.0

    def test_negative_weight(self, layout):
        assert AtPosition(-4.0, "A", 0).evaluate(layout) == -4.0


class TestInvalidReferences:
    """Invalid references never contribute, whatever the weight."""

    def test_unknown_track(self, layout):
        assert AtPosition(10.0, "Z", 0).evaluate(layout) == 0.0
        assert Adjacent(-10.0, "A", "Z").evaluate(layout) == 0.0
        assert OnSameSide(5.0, "Z", "A").evaluate(layout) == 0.0

    def test_position_out_of_range(self, layout):
        assert AtPosition(10.0, "A", 4).evaluate(layout) == 0.0

    def test_side_out_of_range(self, layout):
        assert OnSide(10.0, "A", 2).evaluate(layout) == 0.0

    def test_self_reference(self, layout):
        assert Adjacent(10.0, "A", "A").evaluate(layout) == 0.0
        assert OnSameSide(10.0, "A", "A").evaluate(layout) == 0.0

    def test_report_problems(self, caplog):
        constraints = [
            AtPosition(1.0, "A", 0),
            AtPosition(1.0, "Z", 0),
            OnSide(1.0, "A", 5),
            Adjacent(1.0, "A", "A"),
        ]
        problems = report_problems(constraints, {"A", "B"}, 2, 2)
        assert len(problems) == 3
        assert "#1" in problems[0] and "unknown track 'Z'" in problems[0]
        assert "side 5 out of range" in problems[1]
        assert "ignored" in caplog.text


class TestPartialStatus:
    """Test status() against orderings under construction."""

    def test_atpos_open_then_violated(self, tracks, medium):
        constraint = AtPosition(1.0, "C", 1)
        assert constraint.status(prefix_of(tracks, medium, 0)) is Status.OPEN
        assert constraint.status(prefix_of(tracks, medium, 0, 1)) is Status.VIOLATED
        assert constraint.status(prefix_of(tracks, medium, 0, 2)) is Status.SATISFIED

    def test_adjacent_needs_free_next_slot(self, tracks, medium):
        constraint = Adjacent(1.0, "A", "D")
        assert constraint.status(prefix_of(tracks, medium)) is Status.OPEN
        assert constraint.status(prefix_of(tracks, medium, 0)) is Status.OPEN
        assert constraint.status(prefix_of(tracks, medium, 0, 1)) is Status.VIOLATED

    def test_side_closed_once_passed(self, tracks, medium):
        constraint = OnSide(1.0, "D", 0)
        # A B fill side 0 (7:00), C goes to side 1
        assert constraint.status(prefix_of(tracks, medium, 0, 1)) is Status.OPEN
        assert constraint.status(prefix_of(tracks, medium, 0, 1, 2)) is Status.VIOLATED

    def test_onsameside_partner_left_behind(self, tracks, medium):
        constraint = OnSameSide(1.0, "A", "D")
        assert constraint.status(prefix_of(tracks, medium, 0)) is Status.OPEN
        assert constraint.status(prefix_of(tracks, medium, 0, 1, 2)) is Status.VIOLATED
        assert constraint.status(prefix_of(tracks, medium, 0, 3)) is Status.SATISFIED

    def test_partial_invalid_reference(self, tracks, medium):
        assert AtPosition(1.0, "Z", 0).status(prefix_of(tracks, medium)) is Status.VIOLATED
