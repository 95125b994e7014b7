"""
Proposal Search: Find the best-scoring layouts of a tracklist on a medium.

- Exact mode (track count <= exact_track_limit): depth-first enumeration of
  orderings in lexicographic order of original indices, with branch-and-bound
  - prune when the next track cannot be placed on the remaining sides
  - prune when the unplaced duration exceeds the remaining capacity
  - prune when the optimistic bound cannot reach min_score or beat the
    current K-th best result
- Heuristic mode (above the limit): seeded randomized local search with a
  fixed evaluation budget; deterministic for a given seed
- Output: at most K ProposalResult, descending score, ties in canonical order
"""

import logging
import random
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import Medium, Track, Tracklist
from .constraints import Constraint, report_problems
from .scoring import ProposalResult, TopK, score, upper_bound
from .sides import FitFailure, Layout, SidePacker, assign, unfittable_tracks

logger = logging.getLogger(__name__)

# Largest track count searched exhaustively; above it the heuristic takes over
EXACT_TRACK_LIMIT = 10
HEURISTIC_ITERATIONS = 20_000
HEURISTIC_RESTARTS = 8
DEFAULT_SEED = 0


class InvalidInputError(ValueError):
    """Raised when propose() is called with input it cannot search."""
    pass


class SearchSettings:
    """Search tuning from config."""

    def __init__(self, config: Optional[dict] = None):
        """
        Args:
            config: Settings dict from config["propose"]
        """
        config = config or {}
        self.exact_track_limit = int(config.get("exact_track_limit", EXACT_TRACK_LIMIT))
        self.heuristic_iterations = int(config.get("heuristic_iterations", HEURISTIC_ITERATIONS))
        self.heuristic_restarts = int(config.get("heuristic_restarts", HEURISTIC_RESTARTS))
        self.seed = int(config.get("seed", DEFAULT_SEED))

    def __repr__(self) -> str:
        return (
            f"SearchSettings(exact_track_limit={self.exact_track_limit}, "
            f"heuristic_iterations={self.heuristic_iterations}, "
            f"heuristic_restarts={self.heuristic_restarts}, seed={self.seed})"
        )


class _Prefix:
    """Partial ordering under construction, with its (final) side assignment."""

    def __init__(self, tracks: Sequence[Track], medium: Medium):
        self.tracks = tracks
        self.track_count = len(tracks)
        self.side_count = medium.sides
        self.packer = SidePacker(medium)
        self.order: List[int] = []
        self.remaining_ms = sum(t.duration.milliseconds for t in tracks)
        self._names = {t.name for t in tracks}
        self._positions: Dict[str, int] = {}
        self._sides: Dict[str, int] = {}

    @property
    def placed_count(self) -> int:
        return len(self.order)

    @property
    def current_side(self) -> int:
        return self.packer.current_side

    def has_track(self, name: str) -> bool:
        return name in self._names

    def position_of(self, name: str) -> Optional[int]:
        return self._positions.get(name)

    def side_of(self, name: str) -> Optional[int]:
        return self._sides.get(name)

    def push(self, index: int) -> bool:
        track = self.tracks[index]
        side = self.packer.push(track)
        if side is None:
            return False
        self._positions[track.name] = len(self.order)
        self._sides[track.name] = side
        self.order.append(index)
        self.remaining_ms -= track.duration.milliseconds
        return True

    def pop(self) -> None:
        track = self.tracks[self.order.pop()]
        del self._positions[track.name]
        del self._sides[track.name]
        self.remaining_ms += track.duration.milliseconds
        self.packer.pop()

    def capacity_left(self) -> bool:
        return self.remaining_ms <= self.packer.remaining_capacity_ms()

    def layout(self) -> Layout:
        tracks = tuple(self.tracks[i] for i in self.order)
        sides = tuple(self._sides[t.name] for t in tracks)
        return Layout(tracks, sides, self.side_count)


class ProposalSearch:
    """
    One proposal run over a tracklist, medium and constraint set.

    Attributes after run():
        mode: "exact", "heuristic" or "infeasible"
        nodes: Partial orderings visited (exact mode)
        evaluations: Full orderings packed and scored (heuristic mode)
    """

    def __init__(
        self,
        tracklist: Tracklist,
        medium: Medium,
        constraints: Sequence[Constraint],
        count: int,
        min_score: Optional[float] = None,
        settings: Optional[SearchSettings] = None,
    ):
        self.tracklist = tracklist
        self.medium = medium
        self.constraints = list(constraints or [])
        self.count = count
        self.min_score = None if min_score is None else float(min_score)
        self.settings = settings or SearchSettings()
        self.tracks: Tuple[Track, ...] = tuple(tracklist.tracks)
        self.mode: Optional[str] = None
        self.nodes = 0
        self.evaluations = 0
        self._top: Optional[TopK] = None

    def _validate(self) -> None:
        if not self.tracks:
            raise InvalidInputError(f"Tracklist '{self.tracklist.name}' is empty")

        duplicates = self.tracklist.duplicate_names()
        if duplicates:
            raise InvalidInputError(
                f"Tracklist '{self.tracklist.name}' has duplicate track names: "
                f"{', '.join(duplicates)}"
            )

        if self.medium.sides < 1:
            raise InvalidInputError(
                f"Medium '{self.medium.name}' must have at least one side "
                f"(got {self.medium.sides})"
            )

        if isinstance(self.count, bool) or not isinstance(self.count, int) or self.count < 1:
            raise InvalidInputError(f"Proposal count must be a positive integer, got {self.count!r}")

    def _feasible(self) -> bool:
        too_long = unfittable_tracks(self.tracks, self.medium)
        if too_long:
            for track in too_long:
                logger.warning(
                    f"Track '{track.name}' ({track.duration}) is longer than a side of "
                    f"'{self.medium.name}' ({self.medium.max_duration_per_side}); "
                    f"no ordering can fit"
                )
            return False

        total = self.tracklist.total_duration
        if total > self.medium.capacity:
            logger.warning(
                f"Tracklist '{self.tracklist.name}' runs {total}, more than the "
                f"{self.medium.capacity} capacity of '{self.medium.name}'"
            )
            return False

        return True

    def _accept(self, layout: Layout, order_key: Tuple[int, ...]) -> float:
        total = score(layout, self.constraints)
        if self.min_score is None or total >= self.min_score:
            self._top.offer(ProposalResult(layout, total, order_key))
        return total

    def _prunable(self, prefix: _Prefix) -> bool:
        if not prefix.capacity_left():
            return True

        bound = upper_bound(prefix, self.constraints)
        if self.min_score is not None and bound < self.min_score:
            return True

        # A completion found later loses ties, so matching the threshold is not enough
        threshold = self._top.threshold()
        return threshold is not None and bound <= threshold

    def _search_exact(self) -> None:
        n = len(self.tracks)
        prefix = _Prefix(self.tracks, self.medium)
        used = [False] * n

        def descend() -> None:
            self.nodes += 1
            if prefix.placed_count == n:
                self._accept(prefix.layout(), tuple(prefix.order))
                return

            for index in range(n):
                if used[index] or not prefix.push(index):
                    continue
                if self._prunable(prefix):
                    prefix.pop()
                    continue
                used[index] = True
                descend()
                used[index] = False
                prefix.pop()

        descend()

    def _search_heuristic(self) -> None:
        n = len(self.tracks)
        rng = random.Random(self.settings.seed)
        seen: Dict[Tuple[int, ...], tuple] = {}

        def objective(order: List[int]) -> tuple:
            key = tuple(order)
            cached = seen.get(key)
            if cached is not None:
                return cached

            self.evaluations += 1
            result = assign([self.tracks[i] for i in key], self.medium)
            if isinstance(result, FitFailure):
                # Infeasible orderings rank by how much did not fit
                value = (0, -result.overflow.milliseconds)
            else:
                value = (1, self._accept(result, key))
            seen[key] = value
            return value

        restarts = max(1, self.settings.heuristic_restarts)
        steps = max(1, self.settings.heuristic_iterations // restarts)

        for restart in range(restarts):
            current = list(range(n))
            if restart > 0:
                rng.shuffle(current)
            current_value = objective(current)

            for _ in range(steps):
                i, j = rng.sample(range(n), 2)
                candidate = list(current)
                if rng.random() < 0.5:
                    candidate[i], candidate[j] = candidate[j], candidate[i]
                else:
                    candidate.insert(j, candidate.pop(i))

                value = objective(candidate)
                # Sideways moves let the walk cross plateaus of equal score
                if value >= current_value:
                    current, current_value = candidate, value

            logger.debug(
                f"Restart {restart}: best objective {current_value}, "
                f"{self.evaluations} orderings evaluated"
            )

    def run(self) -> List[ProposalResult]:
        """
        Execute the search.

        Returns:
            Up to `count` results, best first

        Raises:
            InvalidInputError: Empty tracklist, duplicate names, medium
                without sides, or count < 1
        """
        self._validate()
        self._top = TopK(self.count)

        logger.info(
            f"Proposing {self.count} layouts of '{self.tracklist.name}' "
            f"({len(self.tracks)} tracks, {self.tracklist.total_duration}) on "
            f"'{self.medium.name}' ({self.medium.sides} x {self.medium.max_duration_per_side})"
        )

        if not self._feasible():
            self.mode = "infeasible"
            return []

        report_problems(
            self.constraints,
            {t.name for t in self.tracks},
            len(self.tracks),
            self.medium.sides,
        )

        if len(self.tracks) <= self.settings.exact_track_limit:
            self.mode = "exact"
            self._search_exact()
        else:
            self.mode = "heuristic"
            logger.info(
                f"{len(self.tracks)} tracks exceeds exact limit "
                f"{self.settings.exact_track_limit}; using heuristic search "
                f"(seed {self.settings.seed})"
            )
            self._search_heuristic()

        results = self._top.results()

        logger.info(
            f"✅ {self.mode.capitalize()} search done: {len(results)} results "
            f"(nodes: {self.nodes}, evaluations: {self.evaluations})"
        )
        return results


def propose(
    tracklist: Tracklist,
    medium: Medium,
    constraints: Sequence[Constraint],
    count: int,
    min_score: Optional[float] = None,
    settings: Optional[SearchSettings] = None,
) -> List[ProposalResult]:
    """
    Propose the best layouts of a tracklist on a medium.

    Args:
        tracklist: Tracks to sequence (stored order is the canonical order)
        medium: Target medium
        constraints: Weighted constraints to satisfy
        count: Maximum number of results (K >= 1)
        min_score: Exclude results scoring below this (optional)
        settings: Search tuning (defaults if None)

    Returns:
        Up to `count` ProposalResult, descending score, ties in canonical order.
        Empty if nothing fits.

    Raises:
        InvalidInputError: If the input cannot be searched
    """
    search = ProposalSearch(tracklist, medium, constraints, count, min_score, settings)
    return search.run()
