"""Tests for penalty computation and cell selection."""

import sys
from pathlib import Path

import numpy as np

PROJECT_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from transport_solver.data import INACTIVE_PENALTY, Penalties  # noqa: E402
from transport_solver.penalties import compute_penalties, select_cell  # noqa: E402


class TestComputePenalties:
    """Tests for compute_penalties()."""

    def test_gap_between_two_cheapest_costs(self):
        penalties = compute_penalties(
            np.array([[4, 6], [5, 3]]), np.array([10, 10]), np.array([12, 8])
        )
        assert penalties.rows == (2, 2)
        assert penalties.columns == (1, 3)

    def test_only_active_costs_are_considered(self):
        costs = np.array([[19, 30, 50, 10], [70, 30, 40, 60], [40, 8, 70, 20]])
        penalties = compute_penalties(costs, np.array([7, 9, 10]), np.array([5, 0, 7, 14]))

        # Column 2 is exhausted: its costs no longer count and it reports -1.
        assert penalties.rows == (9, 20, 20)
        assert penalties.columns == (21, INACTIVE_PENALTY, 10, 10)

    def test_exhausted_lines_are_inactive(self):
        penalties = compute_penalties(
            np.array([[4, 6], [5, 3]]), np.array([0, 2]), np.array([2, 0])
        )
        assert penalties.rows == (INACTIVE_PENALTY, 0)
        assert penalties.columns == (0, INACTIVE_PENALTY)

    def test_single_active_cost_gives_zero(self):
        penalties = compute_penalties(np.array([[7]]), np.array([5]), np.array([5]))
        assert penalties.rows == (0,)
        assert penalties.columns == (0,)

    def test_equal_cheapest_costs_give_zero(self):
        penalties = compute_penalties(np.array([[3, 3, 5]]), np.array([3]), np.array([1, 1, 1]))
        assert penalties.rows == (0,)

    def test_float_costs(self):
        penalties = compute_penalties(
            np.array([[1.5], [2.5]]), np.array([2.5, 2.5]), np.array([5.0])
        )
        assert penalties.rows == (0, 0)
        assert penalties.columns == (1.0,)

    def test_inputs_are_not_modified(self):
        costs = np.array([[4, 6], [5, 3]])
        supply = np.array([10, 10])
        demand = np.array([12, 8])
        compute_penalties(costs, supply, demand)

        np.testing.assert_array_equal(costs, [[4, 6], [5, 3]])
        np.testing.assert_array_equal(supply, [10, 10])
        np.testing.assert_array_equal(demand, [12, 8])


class TestSelectCell:
    """Tests for select_cell()."""

    def test_column_with_strictly_larger_penalty_wins(self):
        costs = np.array([[4, 6], [5, 3]])
        supply = np.array([10, 10])
        demand = np.array([12, 8])
        penalties = compute_penalties(costs, supply, demand)

        assert select_cell(costs, supply, demand, penalties) == (1, 1)

    def test_row_wins_ties(self):
        costs = np.array([[4, 6], [5, 3]])
        supply = np.array([0, 2])
        demand = np.array([2, 0])
        penalties = Penalties(rows=(INACTIVE_PENALTY, 0), columns=(0, INACTIVE_PENALTY))

        assert select_cell(costs, supply, demand, penalties) == (1, 0)

    def test_first_row_with_maximum_penalty(self):
        costs = np.array([[1, 5], [5, 1]])
        supply = np.array([1, 1])
        demand = np.array([1, 1])
        penalties = Penalties(rows=(4, 4), columns=(4, 4))

        assert select_cell(costs, supply, demand, penalties) == (0, 0)

    def test_cheapest_cell_ties_go_to_first_column(self):
        costs = np.array([[2, 2]])
        supply = np.array([5])
        demand = np.array([3, 2])
        penalties = compute_penalties(costs, supply, demand)

        assert select_cell(costs, supply, demand, penalties) == (0, 0)

    def test_cheapest_cell_skips_exhausted_columns(self):
        costs = np.array([[1, 9, 4]])
        supply = np.array([5])
        demand = np.array([0, 2, 3])
        penalties = Penalties(rows=(5,), columns=(INACTIVE_PENALTY, 0, 0))

        assert select_cell(costs, supply, demand, penalties) == (0, 2)

    def test_cheapest_row_within_chosen_column(self):
        costs = np.array([[19, 30], [70, 30], [40, 8]])
        supply = np.array([7, 9, 18])
        demand = np.array([5, 8])
        penalties = Penalties(rows=(1, 2, 3), columns=(21, 22))

        assert select_cell(costs, supply, demand, penalties) == (2, 1)

    def test_no_cell_when_everything_is_exhausted(self):
        costs = np.array([[1, 2]])
        supply = np.array([0])
        demand = np.array([0, 0])
        penalties = compute_penalties(costs, supply, demand)

        assert penalties.max_row == INACTIVE_PENALTY
        assert penalties.max_column == INACTIVE_PENALTY
        assert select_cell(costs, supply, demand, penalties) is None
