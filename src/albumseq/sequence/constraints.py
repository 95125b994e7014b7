"""
Constraints: Weighted placement rules scored against layouts.

Closed set of kinds, each parsed once from (kind, args, weight):
- atpos       <track> <index>   track at absolute position (0-based)
- adjacent    <track> <track>   tracks at consecutive positions, either order
- side        <track> <index>   track on a given side (0-based)
- onsameside  <track> <track>   tracks share a side

A satisfied constraint contributes its weight (negative weights penalise),
anything else contributes 0. References to unknown tracks or out-of-range
positions/sides are not errors: such a constraint simply never contributes.

Every kind answers status() against a placement state, either a complete
Layout or a partial ordering built by the search:
    position_of(name) / side_of(name)  -> index or None if not placed yet
    has_track(name)                    -> name belongs to the tracklist
    placed_count, track_count, current_side, side_count
"""

import enum
import logging
from dataclasses import dataclass
from typing import Collection, Dict, List, Optional, Sequence, Type

logger = logging.getLogger(__name__)


class ConstraintError(ValueError):
    """Raised when a constraint cannot be parsed."""
    pass


class Status(enum.Enum):
    SATISFIED = "satisfied"
    VIOLATED = "violated"
    OPEN = "open"  # depends on tracks not placed yet


@dataclass(frozen=True)
class Constraint:
    """Base class for constraint kinds."""

    weight: float

    KIND = ""
    ARG_NAMES = ()

    @property
    def kind(self) -> str:
        return self.KIND

    @property
    def args(self) -> List[str]:
        raise NotImplementedError

    def problem(self, names: Collection[str], track_count: int, side_count: int) -> Optional[str]:
        """Reason this constraint can never contribute, or None if it can."""
        raise NotImplementedError

    def status(self, state) -> Status:
        raise NotImplementedError

    def evaluate(self, layout) -> float:
        """Contribution of this constraint to a complete layout's score."""
        if self.status(layout) is Status.SATISFIED:
            return self.weight
        return 0.0

    def same_rule(self, other: "Constraint") -> bool:
        """True if both constraints express the same rule (weight aside)."""
        return self.kind == other.kind and self.args == other.args

    def describe(self) -> str:
        return f"{self.kind}({', '.join(self.args)})"

    def __str__(self) -> str:
        return f"{self.describe()} (weight {_format_weight(self.weight)})"


def _format_weight(weight: float) -> str:
    return str(int(weight)) if float(weight).is_integer() else str(weight)


def _unknown(names: Collection[str], *tracks: str) -> Optional[str]:
    for track in tracks:
        if track not in names:
            return f"unknown track '{track}'"
    return None


def _placed_side_status(state, side: Optional[int], target_side: int) -> Status:
    if side is not None:
        return Status.SATISFIED if side == target_side else Status.VIOLATED
    # Unplaced tracks can only land on the current side or later ones
    if state.placed_count and state.current_side > target_side:
        return Status.VIOLATED
    return Status.OPEN


@dataclass(frozen=True)
class AtPosition(Constraint):
    """Track must occupy a given absolute position."""

    track: str = ""
    position: int = 0

    KIND = "atpos"
    ARG_NAMES = ("title", "pos")

    @property
    def args(self) -> List[str]:
        return [self.track, str(self.position)]

    def problem(self, names, track_count, side_count):
        unknown = _unknown(names, self.track)
        if unknown:
            return unknown
        if not 0 <= self.position < track_count:
            return f"position {self.position} out of range (0..{track_count - 1})"
        return None

    def status(self, state) -> Status:
        if not state.has_track(self.track) or not 0 <= self.position < state.track_count:
            return Status.VIOLATED

        placed_at = state.position_of(self.track)
        if placed_at is not None:
            return Status.SATISFIED if placed_at == self.position else Status.VIOLATED
        if self.position < state.placed_count:
            # Someone else already holds the slot
            return Status.VIOLATED
        return Status.OPEN


@dataclass(frozen=True)
class Adjacent(Constraint):
    """Two tracks must be consecutive, in either order."""

    first: str = ""
    second: str = ""

    KIND = "adjacent"
    ARG_NAMES = ("title1", "title2")

    @property
    def args(self) -> List[str]:
        return [self.first, self.second]

    def problem(self, names, track_count, side_count):
        if self.first == self.second:
            return f"track '{self.first}' cannot be adjacent to itself"
        return _unknown(names, self.first, self.second)

    def status(self, state) -> Status:
        if (
            self.first == self.second
            or not state.has_track(self.first)
            or not state.has_track(self.second)
        ):
            return Status.VIOLATED

        a = state.position_of(self.first)
        b = state.position_of(self.second)
        if a is not None and b is not None:
            return Status.SATISFIED if abs(a - b) == 1 else Status.VIOLATED

        placed = a if a is not None else b
        if placed is None:
            return Status.OPEN
        # The partner can only come right after, so that slot must still be free
        if placed + 1 < state.placed_count:
            return Status.VIOLATED
        return Status.OPEN


@dataclass(frozen=True)
class OnSide(Constraint):
    """Track must land on a given side."""

    track: str = ""
    side: int = 0

    KIND = "side"
    ARG_NAMES = ("title", "side")

    @property
    def args(self) -> List[str]:
        return [self.track, str(self.side)]

    def problem(self, names, track_count, side_count):
        unknown = _unknown(names, self.track)
        if unknown:
            return unknown
        if not 0 <= self.side < side_count:
            return f"side {self.side} out of range (0..{side_count - 1})"
        return None

    def status(self, state) -> Status:
        if not state.has_track(self.track) or not 0 <= self.side < state.side_count:
            return Status.VIOLATED
        return _placed_side_status(state, state.side_of(self.track), self.side)


@dataclass(frozen=True)
class OnSameSide(Constraint):
    """Two tracks must land on the same side."""

    first: str = ""
    second: str = ""

    KIND = "onsameside"
    ARG_NAMES = ("title1", "title2")

    @property
    def args(self) -> List[str]:
        return [self.first, self.second]

    def problem(self, names, track_count, side_count):
        if self.first == self.second:
            return f"track '{self.first}' is compared with itself"
        return _unknown(names, self.first, self.second)

    def status(self, state) -> Status:
        if (
            self.first == self.second
            or not state.has_track(self.first)
            or not state.has_track(self.second)
        ):
            return Status.VIOLATED

        a = state.side_of(self.first)
        b = state.side_of(self.second)
        if a is not None and b is not None:
            return Status.SATISFIED if a == b else Status.VIOLATED
        if a is None and b is None:
            return Status.OPEN
        return _placed_side_status(state, None, a if a is not None else b)


CONSTRAINT_KINDS: Dict[str, Type[Constraint]] = {
    cls.KIND: cls for cls in (AtPosition, Adjacent, OnSide, OnSameSide)
}


def _parse_index(kind: str, label: str, text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise ConstraintError(f"Invalid {label} for {kind}: {text!r}")
    if value < 0:
        raise ConstraintError(f"Invalid {label} for {kind}: {value} is negative")
    return value


def parse_constraint(kind: str, args: Sequence[str], weight: float = 1.0) -> Constraint:
    """
    Build a constraint from its textual form.

    Args:
        kind: Constraint kind (case-insensitive): atpos, adjacent, side, onsameside
        args: Kind-specific arguments
        weight: Score contribution when satisfied (may be negative)

    Returns:
        Constraint instance

    Raises:
        ConstraintError: Unknown kind, wrong argument count or bad index
    """
    key = kind.strip().lower()
    cls = CONSTRAINT_KINDS.get(key)
    if cls is None:
        raise ConstraintError(
            f"Unknown constraint kind: {kind!r} "
            f"(expected one of: {', '.join(CONSTRAINT_KINDS)})"
        )

    args = list(args)
    if len(args) != len(cls.ARG_NAMES):
        raise ConstraintError(
            f"{key} constraint requires exactly {len(cls.ARG_NAMES)} arguments: "
            f"{' '.join(cls.ARG_NAMES)}"
        )

    weight = float(weight)

    if cls is AtPosition:
        return AtPosition(weight, args[0], _parse_index(key, "position", args[1]))
    if cls is OnSide:
        return OnSide(weight, args[0], _parse_index(key, "side", args[1]))
    return cls(weight, args[0], args[1])


def report_problems(
    constraints: Sequence[Constraint],
    names: Collection[str],
    track_count: int,
    side_count: int,
) -> List[str]:
    """Log and return one message per constraint that can never contribute."""
    problems = []
    for index, constraint in enumerate(constraints):
        reason = constraint.problem(names, track_count, side_count)
        if reason:
            message = f"Constraint #{index} {constraint.describe()} ignored: {reason}"
            logger.warning(message)
            problems.append(message)
    return problems
