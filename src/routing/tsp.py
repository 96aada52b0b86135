"""
Tour solver for single-agent visit sequencing.

Given a square travel-time matrix (seconds), computes an open visiting order
that keeps total travel time low:

1. Multi-start nearest neighbour: one greedy tour from every node, the
   cheapest one wins (ties go to the lowest starting index).
2. 2-opt refinement, first improvement, repeated until a full pass makes no
   move (local optimum).

The result is a heuristic, not a guaranteed optimum. The solver is a pure
function of the matrix: no I/O, no randomness, identical input gives
identical output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import MatrixError

logger = logging.getLogger(__name__)

MatrixLike = Union[np.ndarray, Sequence[Sequence[float]]]

# Moves must beat the current edges by more than this to count as improvements.
IMPROVEMENT_EPSILON = 1e-9


@dataclass
class TourResult:
    """Result from the tour solver."""

    order: List[int]
    """Visiting order as indices into the matrix (a permutation)."""

    total_cost: float
    """Sum of ``matrix[order[i]][order[i+1]]`` over consecutive pairs."""


def validate_matrix(matrix: MatrixLike) -> np.ndarray:
    """
    Convert ``matrix`` to a float array and check it is a valid cost matrix.

    Raises:
        MatrixError: If the matrix is ragged, not square, or holds negative,
            NaN or infinite values
    """
    try:
        data = np.asarray(matrix, dtype=float)
    except (TypeError, ValueError) as exc:
        raise MatrixError(f"Travel-time matrix is not numeric: {exc}") from exc

    if data.size == 0:
        return np.zeros((0, 0), dtype=float)
    if data.ndim != 2 or data.shape[0] != data.shape[1]:
        raise MatrixError(f"Travel-time matrix must be square, got shape {data.shape}")
    if not np.all(np.isfinite(data)):
        raise MatrixError("Travel-time matrix contains NaN or infinite values")
    if np.any(data < 0):
        raise MatrixError("Travel-time matrix contains negative values")
    return data


def tour_cost(matrix: MatrixLike, order: Sequence[int]) -> float:
    """Sum the directed edge weights along ``order``."""
    data = np.asarray(matrix, dtype=float)
    return float(sum(data[a, b] for a, b in zip(order[:-1], order[1:])))


def nearest_neighbor_order(matrix: np.ndarray, start: int) -> Tuple[List[int], float]:
    """
    Build one greedy tour from ``start``.

    The next node is always the cheapest unvisited one from the current
    node; on equal cost the lowest index wins.

    Returns:
        (order, accumulated edge cost)
    """
    n = len(matrix)
    visited = [False] * n
    visited[start] = True
    order = [start]
    current = start
    cost = 0.0

    for _ in range(n - 1):
        nearest = -1
        nearest_cost = float("inf")
        row = matrix[current]
        for j in range(n):
            if not visited[j] and row[j] < nearest_cost:
                nearest = j
                nearest_cost = float(row[j])
        visited[nearest] = True
        order.append(nearest)
        cost += nearest_cost
        current = nearest

    return order, cost


def multi_start_nearest_neighbor(
    matrix: np.ndarray,
    score: Optional[Callable[[List[int], float], float]] = None,
) -> Tuple[List[int], float]:
    """
    Run nearest neighbour from every node and keep the cheapest tour.

    Args:
        matrix: Validated square cost matrix
        score: Optional function mapping (order, accumulated cost) to the
            value being minimised, used when the tour is embedded in a
            longer path

    Returns:
        (best order, its score)
    """
    best_order: List[int] = []
    best_score = float("inf")

    for start in range(len(matrix)):
        order, cost = nearest_neighbor_order(matrix, start)
        value = score(order, cost) if score else cost
        if value < best_score:
            best_score = value
            best_order = order

    return best_order, best_score


def _reversal_delta(matrix: np.ndarray, route: List[int], i: int, j: int) -> float:
    """Change in internal path cost when ``route[i..j]`` is walked backwards."""
    segment = np.asarray(route[i:j + 1])
    forward = matrix[segment[:-1], segment[1:]].sum()
    backward = matrix[segment[1:], segment[:-1]].sum()
    return float(backward - forward)


def two_opt(matrix: np.ndarray, order: Sequence[int]) -> List[int]:
    """
    Refine ``order`` with first-improvement 2-opt until no move helps.

    Only pairs with ``1 <= i < j <= n-2`` are tried, so the first and last
    positions of the order never move. On a symmetric matrix a move is
    judged by the two replaced edges alone; on an asymmetric one the
    reversed segment's internal edges are counted as well, so every
    accepted move strictly lowers the total cost.
    """
    route = list(order)
    n = len(route)
    symmetric = bool(np.array_equal(matrix, matrix.T))

    passes = 0
    improved = True
    while improved:
        improved = False
        passes += 1
        for i in range(1, n - 2):
            for j in range(i + 1, n - 1):
                a, b, c, d = route[i - 1], route[i], route[j], route[j + 1]
                delta = matrix[a, c] + matrix[b, d] - matrix[a, b] - matrix[c, d]
                if not symmetric:
                    delta += _reversal_delta(matrix, route, i, j)
                if delta < -IMPROVEMENT_EPSILON:
                    route[i:j + 1] = route[i:j + 1][::-1]
                    improved = True

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"2-opt converged after {passes} passes (n={n}, symmetric={symmetric})")
    return route


def solve_tour(matrix: MatrixLike) -> TourResult:
    """
    Compute a low-cost open visiting order over all nodes of ``matrix``.

    Args:
        matrix: N×N non-negative travel times (seconds); symmetry is not assumed

    Returns:
        TourResult whose cost is recomputed from the final order

    Raises:
        MatrixError: If the matrix is malformed
    """
    data = validate_matrix(matrix)
    n = len(data)

    if n == 0:
        return TourResult(order=[], total_cost=0.0)
    if n == 1:
        return TourResult(order=[0], total_cost=0.0)

    constructed, constructed_cost = multi_start_nearest_neighbor(data)
    refined = two_opt(data, constructed)
    total = tour_cost(data, refined)

    logger.debug(
        "Solved tour over %d nodes: construction=%.1fs refined=%.1fs",
        n, constructed_cost, total,
    )
    return TourResult(order=refined, total_cost=total)
