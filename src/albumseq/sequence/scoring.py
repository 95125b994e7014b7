"""
Scoring and Ranking: Constraint scores and a bounded top-K result set.

- score(): sum of the weights of satisfied constraints (invalid ones add 0)
- upper_bound(): optimistic score of any completion of a partial ordering
- TopK: min-heap of at most K results, worst result on top
- Ranking: descending score, ties broken by canonical order (earlier wins)
"""

import heapq
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Tuple

from .constraints import Constraint, Status
from .sides import Layout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProposalResult:
    """A fitting layout and its total score."""

    layout: Layout
    score: float
    # Original indices of the tracks in playing order; defines canonical order
    order_key: Tuple[int, ...] = field(default=(), compare=False)

    @property
    def ordering(self) -> Tuple[str, ...]:
        return self.layout.names

    @property
    def rank_key(self) -> tuple:
        return (-self.score, self.order_key)


def score(layout: Layout, constraints: Sequence[Constraint]) -> float:
    """
    Total score of a complete layout.

    Args:
        layout: Complete, fitting layout
        constraints: Constraints to evaluate (each independently)

    Returns:
        Sum of contributions; negative if penalties dominate
    """
    total = 0.0
    for constraint in constraints:
        total += constraint.evaluate(layout)
    return total


def upper_bound(state, constraints: Sequence[Constraint]) -> float:
    """
    Best score any completion of a partial ordering could reach.

    Satisfied constraints count their weight, undecided ones count their weight
    only if positive. Terms are accumulated in the same order as score(), so for
    a complete state the bound is exactly the score.
    """
    total = 0.0
    for constraint in constraints:
        status = constraint.status(state)
        if status is Status.SATISFIED:
            total += constraint.weight
        elif status is Status.OPEN and constraint.weight > 0:
            total += constraint.weight
        else:
            total += 0.0
    return total


class TopK:
    """
    Bounded set of the K best results seen so far.

    Memory stays O(K): once full, a new result only gets in by evicting the
    current worst one. Identical orderings are kept once.
    """

    def __init__(self, size: int):
        if size < 1:
            raise ValueError(f"TopK size must be >= 1, got {size}")
        self.size = size
        # (score, negated order key, result): smallest entry is the worst result
        self._heap: List[tuple] = []
        self._keys: Set[Tuple[int, ...]] = set()

    def __len__(self) -> int:
        return len(self._heap)

    def __contains__(self, order_key) -> bool:
        return tuple(order_key) in self._keys

    @property
    def full(self) -> bool:
        return len(self._heap) >= self.size

    def threshold(self) -> Optional[float]:
        """Score of the K-th best result, or None while there is still room."""
        if not self.full:
            return None
        return self._heap[0][0]

    @staticmethod
    def _entry(result: ProposalResult) -> tuple:
        return (result.score, tuple(-i for i in result.order_key), result)

    def offer(self, result: ProposalResult) -> bool:
        """
        Try to add a result.

        Returns:
            True if the result was retained
        """
        if result.order_key in self._keys:
            return False

        entry = self._entry(result)

        if not self.full:
            heapq.heappush(self._heap, entry)
            self._keys.add(result.order_key)
            return True

        if entry[:2] <= self._heap[0][:2]:
            return False

        evicted = heapq.heapreplace(self._heap, entry)
        self._keys.discard(evicted[2].order_key)
        self._keys.add(result.order_key)
        logger.debug(
            f"Evicted score {evicted[0]} for {result.score} "
            f"(threshold now {self._heap[0][0]})"
        )
        return True

    def results(self) -> List[ProposalResult]:
        """Retained results, best first."""
        return sorted((entry[2] for entry in self._heap), key=lambda r: r.rank_key)
