"""
Side Assignment: Order-preserving greedy packing of tracks onto sides.

- Walk the ordering once, filling the current side until the next track
  would exceed the per-side cap, then move to the next side
- No reordering: the search decides the ordering, this module only splits it
- A track longer than the cap never fits, whatever the ordering
- Output: Layout (side index per position) or FitFailure
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ..models import Duration, Medium, Track

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Layout:
    """A full ordering of tracks together with the side each one lands on."""

    tracks: Tuple[Track, ...]
    sides: Tuple[int, ...]
    side_count: int
    _positions: Dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "tracks", tuple(self.tracks))
        object.__setattr__(self, "sides", tuple(self.sides))
        if len(self.tracks) != len(self.sides):
            raise ValueError("Layout needs exactly one side index per track")
        object.__setattr__(
            self, "_positions", {t.name: i for i, t in enumerate(self.tracks)}
        )

    # Placement-state protocol shared with the search's partial orderings

    @property
    def placed_count(self) -> int:
        return len(self.tracks)

    @property
    def track_count(self) -> int:
        return len(self.tracks)

    @property
    def current_side(self) -> int:
        return self.sides[-1] if self.sides else 0

    def has_track(self, name: str) -> bool:
        return name in self._positions

    def position_of(self, name: str) -> Optional[int]:
        return self._positions.get(name)

    def side_of(self, name: str) -> Optional[int]:
        position = self._positions.get(name)
        if position is None:
            return None
        return self.sides[position]

    # Presentation helpers

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(t.name for t in self.tracks)

    @property
    def total_duration(self) -> Duration:
        return sum((t.duration for t in self.tracks), Duration())

    def slot_of(self, position: int) -> int:
        """Position of a track within its own side (0-based)."""
        side = self.sides[position]
        return position - self.sides.index(side)

    def side_tracks(self) -> List[List[Track]]:
        """Tracks grouped per side, one list per side of the medium."""
        grouped: List[List[Track]] = [[] for _ in range(self.side_count)]
        for track, side in zip(self.tracks, self.sides):
            grouped[side].append(track)
        return grouped

    def side_durations(self) -> List[Duration]:
        return [
            sum((t.duration for t in tracks), Duration())
            for tracks in self.side_tracks()
        ]

    @property
    def used_sides(self) -> int:
        return self.current_side + 1 if self.sides else 0


@dataclass(frozen=True)
class FitFailure:
    """Why an ordering could not be laid out on a medium."""

    reason: str
    track: Optional[Track] = None
    overflow: Duration = Duration()

    def __bool__(self) -> bool:
        return False


class SidePacker:
    """
    Incremental form of the greedy packer.

    push() places the next track of a growing ordering, pop() undoes the last
    placement. Because a prefix's sides never change when tracks are appended,
    the search drives this directly instead of re-packing full orderings.
    """

    def __init__(self, medium: Medium):
        self.side_count = medium.sides
        self.capacity_ms = medium.max_duration_per_side.milliseconds
        self.current_side = 0
        self.used_ms = 0
        self._history: List[Tuple[int, int]] = []

    def __len__(self) -> int:
        return len(self._history)

    def fits_alone(self, track: Track) -> bool:
        return track.duration.milliseconds <= self.capacity_ms

    def push(self, track: Track) -> Optional[int]:
        """
        Place a track after the ones already placed.

        Returns:
            Side index the track landed on, or None if it does not fit
            (state is left unchanged).
        """
        duration_ms = track.duration.milliseconds
        if duration_ms > self.capacity_ms or self.side_count < 1:
            return None

        side, used = self.current_side, self.used_ms
        if used + duration_ms > self.capacity_ms:
            if side + 1 >= self.side_count:
                return None
            side, used = side + 1, 0

        self._history.append((self.current_side, self.used_ms))
        self.current_side, self.used_ms = side, used + duration_ms
        return side

    def pop(self) -> None:
        self.current_side, self.used_ms = self._history.pop()

    def remaining_capacity_ms(self) -> int:
        """Upper bound on the duration that can still be placed."""
        free_sides = max(self.side_count - 1 - self.current_side, 0)
        return (self.capacity_ms - self.used_ms) + free_sides * self.capacity_ms


def unfittable_tracks(tracks: Sequence[Track], medium: Medium) -> List[Track]:
    """
    Tracks longer than a side of the medium.

    Any ordering containing one of these fails, so callers can check this once
    instead of per ordering.
    """
    cap = medium.max_duration_per_side
    return [t for t in tracks if t.duration > cap]


def assign(ordering: Sequence[Track], medium: Medium) -> Union[Layout, FitFailure]:
    """
    Split an ordering onto the sides of a medium, preserving order.

    Args:
        ordering: Tracks in playing order
        medium: Target medium

    Returns:
        Layout if every track fits, FitFailure otherwise
    """
    if medium.sides < 1:
        return FitFailure(
            f"Medium '{medium.name}' has no sides",
            overflow=sum((t.duration for t in ordering), Duration()),
        )

    packer = SidePacker(medium)
    sides = []

    for position, track in enumerate(ordering):
        side = packer.push(track)
        if side is None:
            overflow = sum((t.duration for t in ordering[position:]), Duration())
            if not packer.fits_alone(track):
                reason = (
                    f"Track '{track.name}' ({track.duration}) is longer than a side "
                    f"of '{medium.name}' ({medium.max_duration_per_side})"
                )
            else:
                reason = (
                    f"Ran out of sides at track '{track.name}' "
                    f"(position {position}, {medium.sides} sides)"
                )
            logger.debug(reason)
            return FitFailure(reason, track=track, overflow=overflow)
        sides.append(side)

    return Layout(tuple(ordering), tuple(sides), medium.sides)
