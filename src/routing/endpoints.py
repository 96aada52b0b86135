"""
Fixed-endpoint variant of the tour solver.

When the agent leaves from a known place (home) and/or must finish at one
(office), the search becomes a Hamiltonian path with pinned ends. By
convention index 0 of the matrix is the fixed start and index N-1 the fixed
end. Only the interior nodes are permuted; the same nearest-neighbour plus
2-opt machinery is reused, with the boundary edges folded into the cost.

A missing endpoint is handled by padding the matrix with a virtual node whose
edges cost nothing, which turns every case into the two-sided one.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

import numpy as np

from .errors import MatrixError
from .tsp import (
    MatrixLike,
    TourResult,
    multi_start_nearest_neighbor,
    solve_tour,
    tour_cost,
    two_opt,
    validate_matrix,
)

logger = logging.getLogger(__name__)


def _pad_open_ends(matrix: np.ndarray, has_start: bool, has_end: bool) -> Tuple[np.ndarray, int]:
    """Add zero-cost virtual endpoints where none is fixed; returns (matrix, index offset)."""
    padded = matrix
    offset = 0
    if not has_start:
        padded = np.pad(padded, ((1, 0), (1, 0)))
        offset = 1
    if not has_end:
        padded = np.pad(padded, ((0, 1), (0, 1)))
    return padded, offset


def _solve_pinned_path(matrix: np.ndarray) -> List[int]:
    """Order all nodes with node 0 first and node N-1 last."""
    last = len(matrix) - 1
    if last == 1:
        return [0, 1]

    sub = matrix[1:last, 1:last]

    def with_boundaries(order: List[int], cost: float) -> float:
        return float(matrix[0, order[0] + 1] + cost + matrix[order[-1] + 1, last])

    interior, _ = multi_start_nearest_neighbor(sub, score=with_boundaries)
    path = [0] + [k + 1 for k in interior] + [last]
    return two_opt(matrix, path)


def solve_with_endpoints(
    matrix: MatrixLike,
    has_start: bool = False,
    has_end: bool = False,
) -> TourResult:
    """
    Solve a visiting order with an optional fixed first and/or last node.

    Args:
        matrix: N×N travel times; row/column 0 is the start when ``has_start``,
            row/column N-1 is the end when ``has_end``
        has_start: Pin index 0 to the first position
        has_end: Pin index N-1 to the last position

    Returns:
        TourResult over the original indices

    Raises:
        MatrixError: If the matrix is malformed or too small for the
            requested endpoints
    """
    data = validate_matrix(matrix)
    n = len(data)

    if not has_start and not has_end:
        return solve_tour(data)

    if n == 0:
        raise MatrixError("Cannot fix an endpoint of an empty matrix")
    if has_start and has_end and n < 2:
        raise MatrixError("A fixed start and a fixed end need at least two nodes")
    if n == 1:
        return TourResult(order=[0], total_cost=0.0)

    padded, offset = _pad_open_ends(data, has_start, has_end)
    path = _solve_pinned_path(padded)

    if not has_start:
        path = path[1:]
    if not has_end:
        path = path[:-1]
    order = [index - offset for index in path]

    total = tour_cost(data, order)
    logger.debug(
        "Solved pinned path over %d nodes (start=%s, end=%s): %.1fs",
        n, has_start, has_end, total,
    )
    return TourResult(order=order, total_cost=total)
