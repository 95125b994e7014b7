"""
Core value types for albumseq.

Tracks, tracklists and media are immutable once handed to the proposal
engine. Durations are integer milliseconds: 3:20 + 3:20 + 3:20 is exactly
10:00 when checked against a side cap.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class Duration:
    """Non-negative time quantity."""

    milliseconds: int = 0

    def __post_init__(self):
        if self.milliseconds < 0:
            raise ValueError(f"Duration cannot be negative: {self.milliseconds}ms")

    @classmethod
    def from_seconds(cls, seconds: float) -> "Duration":
        return cls(int(round(seconds * 1000)))

    @classmethod
    def from_minutes(cls, minutes: float) -> "Duration":
        return cls(int(round(minutes * 60_000)))

    @property
    def seconds(self) -> float:
        return self.milliseconds / 1000.0

    @property
    def minutes(self) -> float:
        return self.milliseconds / 60_000.0

    def __add__(self, other: "Duration") -> "Duration":
        if not isinstance(other, Duration):
            return NotImplemented
        return Duration(self.milliseconds + other.milliseconds)

    def __radd__(self, other):
        # sum() starts from 0
        if other == 0:
            return self
        return NotImplemented

    def __str__(self) -> str:
        return format_duration(self)


def parse_duration(text: str) -> Duration:
    """
    Parse a duration from "MM:SS" or decimal minutes.

    Args:
        text: Input such as "3:45", "22:00" or "3.5".

    Returns:
        Parsed Duration.

    Raises:
        ValueError: If the text is not a valid duration.
    """
    text = text.strip()

    if ":" in text:
        min_str, sec_str = text.split(":", 1)
        if not (min_str.isdigit() and sec_str.isdigit()):
            raise ValueError(f"Invalid duration: {text!r}")
        minutes, seconds = int(min_str), int(sec_str)
        if seconds >= 60:
            raise ValueError(f"Invalid duration (seconds >= 60): {text!r}")
        return Duration((minutes * 60 + seconds) * 1000)

    try:
        minutes = float(text)
    except ValueError:
        raise ValueError(f"Invalid duration: {text!r}")

    if minutes < 0 or not math.isfinite(minutes):
        raise ValueError(f"Invalid duration: {text!r}")

    return Duration.from_minutes(minutes)


def format_duration(duration: Duration) -> str:
    """Format a duration as "MM:SS", rounded to the nearest second."""
    total_seconds = (duration.milliseconds + 500) // 1000
    return f"{total_seconds // 60:02d}:{total_seconds % 60:02d}"


@dataclass(frozen=True)
class Track:
    """A named track with its playing time."""

    name: str
    duration: Duration


@dataclass(frozen=True)
class Tracklist:
    """Named, ordered collection of tracks. Stored order is the reference order."""

    name: str
    tracks: Tuple[Track, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Accept any iterable (list from the store, generator from the CLI)
        object.__setattr__(self, "tracks", tuple(self.tracks))

    def __len__(self) -> int:
        return len(self.tracks)

    @property
    def total_duration(self) -> Duration:
        return sum((t.duration for t in self.tracks), Duration())

    def names(self) -> List[str]:
        return [t.name for t in self.tracks]

    def find(self, name: str) -> Optional[Track]:
        for track in self.tracks:
            if track.name == name:
                return track
        return None

    def duplicate_names(self) -> List[str]:
        """Return track names that appear more than once, in first-seen order."""
        seen = set()
        duplicates = []
        for track in self.tracks:
            if track.name in seen and track.name not in duplicates:
                duplicates.append(track.name)
            seen.add(track.name)
        return duplicates


@dataclass(frozen=True)
class Medium:
    """Physical carrier: a number of sides sharing one duration cap."""

    name: str
    sides: int
    max_duration_per_side: Duration

    @property
    def capacity(self) -> Duration:
        return Duration(max(self.sides, 0) * self.max_duration_per_side.milliseconds)


def parse_track(spec: str) -> Track:
    """
    Parse a "Title:Duration" track specification.

    The title ends at the first colon; everything after it is the duration
    ("Song:3:45" or "Song:3.75").

    Raises:
        ValueError: If the spec has no title or an invalid duration.
    """
    if ":" not in spec:
        raise ValueError(f"Track must be 'Title:Duration', got {spec!r}")

    title, duration_text = spec.split(":", 1)
    title = title.strip()
    if not title:
        raise ValueError(f"Track has an empty title: {spec!r}")

    return Track(title, parse_duration(duration_text))


def parse_tracks(specs: Iterable[str]) -> List[Track]:
    """Parse track specs, skipping (and logging) malformed entries."""
    tracks = []
    for spec in specs:
        try:
            tracks.append(parse_track(spec))
        except ValueError as e:
            logger.warning(f"Skipping track: {e}")
    return tracks
