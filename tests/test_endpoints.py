"""
Unit Tests for fixed-endpoint solving (src/routing/endpoints.py)
"""

import numpy as np
import pytest

from src.routing import MatrixError, solve_with_endpoints, tour_cost


def line(xs):
    xs = np.asarray(xs, dtype=float)
    return np.abs(xs[:, None] - xs[None, :])


class TestSolveWithEndpoints:
    """Test pinned start/end handling."""

    def test_no_endpoints_matches_free_solve(self, line_matrix):
        result = solve_with_endpoints(line_matrix)
        assert result.order == [0, 1, 2, 3, 4]

    def test_fixed_start(self, line_matrix):
        result = solve_with_endpoints(line_matrix, has_start=True)
        assert result.order == [0, 1, 2, 3, 4]
        assert result.total_cost == 4

    def test_fixed_end(self, line_matrix):
        result = solve_with_endpoints(line_matrix, has_end=True)
        assert result.order == [0, 1, 2, 3, 4]
        assert result.total_cost == 4

    def test_fixed_start_in_the_middle(self):
        # Start at x=2, stops at x=0, 1, 4
        matrix = line([2, 0, 1, 4])
        result = solve_with_endpoints(matrix, has_start=True)
        assert result.order[0] == 0
        assert sorted(result.order) == [0, 1, 2, 3]
        # Every open path from x=2 that finishes at x=4 costs 6
        assert result.order[-1] == 3
        assert result.total_cost == 6

    def test_both_ends_fixed(self):
        # Start at x=2, end at x=4, interior at x=0, 1, 3
        matrix = line([2, 0, 1, 3, 4])
        result = solve_with_endpoints(matrix, has_start=True, has_end=True)
        assert result.order[0] == 0
        assert result.order[-1] == 4
        assert result.total_cost == 6

    def test_both_ends_without_interior(self):
        result = solve_with_endpoints([[0, 7], [3, 0]], has_start=True, has_end=True)
        assert result.order == [0, 1]
        assert result.total_cost == 7

    def test_single_node_with_start(self):
        result = solve_with_endpoints([[0]], has_start=True)
        assert result.order == [0]
        assert result.total_cost == 0.0

    def test_single_node_with_both_ends_rejected(self):
        with pytest.raises(MatrixError):
            solve_with_endpoints([[0]], has_start=True, has_end=True)

    def test_empty_with_endpoint_rejected(self):
        with pytest.raises(MatrixError):
            solve_with_endpoints([], has_end=True)

    def test_empty_without_endpoints(self):
        assert solve_with_endpoints([]).order == []

    def test_two_nodes_with_start_keeps_direction(self):
        # The free solve would start at 1; the pinned one must not
        result = solve_with_endpoints([[0, 5], [3, 0]], has_start=True)
        assert result.order == [0, 1]
        assert result.total_cost == 5

    def test_two_nodes_with_end_keeps_direction(self):
        result = solve_with_endpoints([[0, 3], [5, 0]], has_end=True)
        assert result.order == [0, 1]
        assert result.total_cost == 3

    @pytest.mark.parametrize("n", [2, 3, 4, 7, 11])
    @pytest.mark.parametrize("has_start,has_end", [(True, False), (False, True), (True, True)])
    @pytest.mark.parametrize("symmetric", [True, False])
    def test_pins_hold_on_random_matrices(self, make_matrix, n, has_start, has_end, symmetric):
        matrix = make_matrix(n, seed=n * 7, symmetric=symmetric)
        result = solve_with_endpoints(matrix, has_start=has_start, has_end=has_end)

        assert sorted(result.order) == list(range(n))
        if has_start:
            assert result.order[0] == 0
        if has_end:
            assert result.order[-1] == n - 1
        assert result.total_cost == pytest.approx(tour_cost(matrix, result.order))

    def test_start_pin_beats_naive_insertion_order(self, make_matrix):
        matrix = make_matrix(10, seed=5)
        naive = tour_cost(matrix, list(range(10)))
        assert solve_with_endpoints(matrix, has_start=True).total_cost <= naive + 1e-9

    def test_deterministic(self, make_matrix):
        matrix = make_matrix(9, seed=8, symmetric=False)
        first = solve_with_endpoints(matrix, has_start=True, has_end=True)
        second = solve_with_endpoints(matrix, has_start=True, has_end=True)
        assert first.order == second.order
