"""Position features shared by the move-selection strategies."""

from __future__ import annotations

from collections import deque
from typing import Deque, List

from morris_board import ADJ, MILLS, POINTS, RINGS, centrality
from morris_engine import EMPTY, GameState, apply_move_fast, forms_mill, legal_moves

__all__ = [
    "centrality",
    "count_in_ring",
    "largest_cluster",
    "mill_potential",
    "mill_threats",
    "mobility",
    "piece_count",
    "two_in_row",
]


def piece_count(state: GameState, side: int) -> int:
    return sum(1 for v in state.cells if v == side)


def mobility(state: GameState, side: int) -> int:
    return len(legal_moves(state, side))


def two_in_row(state: GameState, side: int) -> int:
    """Mills holding exactly two of ``side``'s stones and one empty point."""
    cells = state.cells
    count = 0
    for mill in MILLS:
        own = 0
        empty = 0
        for p in mill:
            if cells[p] == side:
                own += 1
            elif cells[p] == EMPTY:
                empty += 1
        if own == 2 and empty == 1:
            count += 1
    return count


def mill_potential(state: GameState, side: int) -> int:
    # Same feature as two_in_row; the DP evaluator weighs it as the immediate-threat term.
    return two_in_row(state, side)


def largest_cluster(state: GameState, side: int) -> int:
    cells = state.cells
    visited = [False] * POINTS
    best = 0
    for start in range(POINTS):
        if visited[start] or cells[start] != side:
            continue
        visited[start] = True
        queue: Deque[int] = deque([start])
        size = 1
        while queue:
            u = queue.popleft()
            for nb in ADJ[u]:
                if not visited[nb] and cells[nb] == side:
                    visited[nb] = True
                    size += 1
                    queue.append(nb)
        best = max(best, size)
    return best


def count_in_ring(state: GameState, side: int, ring: str) -> int:
    cells = state.cells
    return sum(1 for p in RINGS[ring] if cells[p] == side)


def mill_threats(state: GameState, side: int) -> List[int]:
    """Landing points where one legal move of ``side`` would close a mill."""
    threats: List[int] = []
    for move in legal_moves(state, side):
        if move.to in threats:
            continue
        if forms_mill(apply_move_fast(state, move, side), side, move.to):
            threats.append(move.to)
    return threats
