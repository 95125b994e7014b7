"""
Sequencing Module: Lay out a tracklist on the sides of a medium.

- constraints : weighted placement rules (atpos, adjacent, side, onsameside)
- sides       : order-preserving greedy side assignment
- scoring     : constraint scores and bounded top-K ranking
- search      : exact branch-and-bound search, heuristic beyond the exact limit
"""

__all__ = ["constraints", "sides", "scoring", "search"]
