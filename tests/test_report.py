"""
Unit tests for CLI text rendering.
"""

import pytest
from albumseq.models import Duration, Medium, Track, Tracklist
from albumseq.report import (
    format_score,
    render_context,
    render_proposals,
)
from albumseq.sequence.constraints import Adjacent, AtPosition
from albumseq.sequence.search import propose


@pytest.fixture
def tracklist():
    return Tracklist(
        "My Album",
        [
            Track("Song1", Duration.from_minutes(3)),
            Track("Song2", Duration.from_minutes(4)),
            Track("Song3", Duration.from_minutes(2)),
        ],
    )


@pytest.fixture
def vinyl():
    return Medium("Vinyl", 2, Duration.from_minutes(7))


class TestFormatting:
    def test_format_score(self):
        assert format_score(10.0) == "10"
        assert format_score(-2.0) == "-2"
        assert format_score(2.5) == "2.50"


class TestRenderProposals:
    def test_table(self, tracklist, vinyl):
        results = propose(tracklist, vinyl, [AtPosition(10.0, "Song1", 0)], 1)
        output = render_proposals(results, tracklist.name, vinyl.name, 1)

        assert output.startswith("Top 1 permutations for tracklist 'My Album' on medium 'Vinyl':")
        assert "Permutation #1" in output
        assert "Score: 10" in output
        assert "Side 1 (07:00)" in output
        assert "Side 2 (02:00)" in output
        assert "TOTAL" in output and "09:00" in output

    def test_min_score_heading(self, tracklist, vinyl):
        output = render_proposals([], tracklist.name, vinyl.name, 5, min_score=3)
        assert "with score >= 3:" in output
        assert "No layout fits the medium with the requested score." in output

    def test_fewer_than_requested(self, tracklist, vinyl):
        results = propose(tracklist, vinyl, [Adjacent(1.0, "Song1", "Song2")], 50)
        output = render_proposals(results, tracklist.name, vinyl.name, 50)
        assert f"Only {len(results)} layouts qualify." in output
        assert f"Permutation #{len(results)}" in output


class TestRenderContext:
    @pytest.fixture
    def context(self, tracklist, vinyl):
        return [tracklist], [vinyl], [AtPosition(10.0, "Song1", 0), Adjacent(5.0, "Song1", "Song2")]

    def test_all(self, context):
        output = render_context(*context)
        assert "--- Tracklists ---" in output
        assert "My Album (3 tracks, 09:00):" in output
        assert "Medium: Vinyl | Sides: 2 | Max per side: 07:00" in output
        assert "[0] atpos(Song1, 0) (weight 10)" in output
        assert "[1] adjacent(Song1, Song2) (weight 5)" in output

    def test_filter(self, context):
        output = render_context(*context, what="media")
        assert "--- Media ---" in output
        assert "Tracklists" not in output
        assert "Constraints" not in output

    def test_unknown_filter(self, context):
        with pytest.raises(ValueError, match="Unknown filter"):
            render_context(*context, what="tracks")
