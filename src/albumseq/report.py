"""
Text rendering of proposals and context listings for the CLI.
"""

from typing import Iterable, List, Optional, Sequence

from .models import Medium, Tracklist
from .sequence.constraints import Constraint
from .sequence.scoring import ProposalResult

SHOW_FILTERS = ("all", "tracklists", "media", "constraints")


def format_score(score: float) -> str:
    """Integral scores print without a decimal part."""
    if float(score).is_integer():
        return str(int(score))
    return f"{score:.2f}"


def render_result(result: ProposalResult, rank: int) -> str:
    """Render one proposal as a per-side table."""
    layout = result.layout
    width = max([len("Title")] + [len(t.name) for t in layout.tracks])

    lines = [
        f"Permutation #{rank}",
        f"Score: {format_score(result.score)}",
        f"{'#':<3} {'Title':<{width}} {'Duration':>8}",
        f"{'-' * 3} {'-' * width} {'-' * 8}",
    ]

    track_number = 1
    for index, (tracks, duration) in enumerate(zip(layout.side_tracks(), layout.side_durations())):
        if not tracks:
            continue
        lines.append(f"Side {index + 1} ({duration})")
        for track in tracks:
            lines.append(f"{track_number:<3} {track.name:<{width}} {str(track.duration):>8}")
            track_number += 1

    lines.append(f"{'':<3} {'TOTAL':<{width}} {str(layout.total_duration):>8}")
    return "\n".join(lines)


def render_proposals(
    results: Sequence[ProposalResult],
    tracklist: str,
    medium: str,
    count: int,
    min_score: Optional[float] = None,
) -> str:
    """Render a ranked proposal list with its heading."""
    heading = f"Top {count} permutations for tracklist '{tracklist}' on medium '{medium}'"
    if min_score is not None:
        heading += f" with score >= {format_score(min_score)}"
    blocks = [heading + ":"]

    if not results:
        blocks.append("No layout fits the medium with the requested score.")
    elif len(results) < count:
        blocks.append(f"Only {len(results)} layouts qualify.")

    for rank, result in enumerate(results, start=1):
        blocks.append(render_result(result, rank))

    return "\n\n".join(blocks)


def render_tracklists(tracklists: Iterable[Tracklist]) -> List[str]:
    lines = ["--- Tracklists ---"]
    for tracklist in tracklists:
        lines.append(f"{tracklist.name} ({len(tracklist)} tracks, {tracklist.total_duration}):")
        for index, track in enumerate(tracklist.tracks):
            lines.append(f"  {index:>2}  {track.name} ({track.duration})")
    return lines


def render_media(media: Iterable[Medium]) -> List[str]:
    lines = ["--- Media ---"]
    for medium in media:
        lines.append(
            f"Medium: {medium.name} | Sides: {medium.sides} | "
            f"Max per side: {medium.max_duration_per_side}"
        )
    return lines


def render_constraints(constraints: Sequence[Constraint]) -> List[str]:
    lines = ["--- Constraints ---"]
    for index, constraint in enumerate(constraints):
        lines.append(f"[{index}] {constraint}")
    return lines


def render_context(
    tracklists: Iterable[Tracklist],
    media: Iterable[Medium],
    constraints: Sequence[Constraint],
    what: str = "all",
) -> str:
    """
    Render the stored context.

    Args:
        what: One of SHOW_FILTERS

    Raises:
        ValueError: Unknown filter
    """
    what = (what or "all").lower()
    if what not in SHOW_FILTERS:
        raise ValueError(f"Unknown filter {what!r} (expected one of: {', '.join(SHOW_FILTERS)})")

    lines: List[str] = []
    if what in ("all", "tracklists"):
        lines.extend(render_tracklists(tracklists))
    if what in ("all", "media"):
        lines.extend(render_media(media))
    if what in ("all", "constraints"):
        lines.extend(render_constraints(constraints))
    return "\n".join(lines)
