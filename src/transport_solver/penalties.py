"""Penalty computation and cell selection for the maximum-penalty initial phase.

The maximum-penalty rule (Vogel's approximation, known as Balas-Hammer in
French-language courses) scores every source and destination by the gap
between its two cheapest still-available costs. The line with the largest gap
is served first, at its cheapest available cell.
"""

from __future__ import annotations

import numpy as np

from .data import INACTIVE_PENALTY, Penalties


def _gap(active_costs: np.ndarray) -> float:
    # A single active cost yields a zero penalty rather than an undefined gap.
    if active_costs.size == 0:
        return INACTIVE_PENALTY
    if active_costs.size == 1:
        return 0
    cheapest = np.partition(active_costs, 1)[:2]
    return (cheapest[1] - cheapest[0]).item()


def compute_penalties(costs: np.ndarray, supply: np.ndarray, demand: np.ndarray) -> Penalties:
    """Compute row and column penalties from the currently active costs.

    A row is active while its remaining supply is positive; a column while its
    remaining demand is positive. The penalty of an active row is the difference
    between the second-smallest and the smallest cost over active columns (0 if
    only one active column remains). Inactive rows and columns get
    INACTIVE_PENALTY (-1). Inputs are not modified.

    Args:
        costs: m × n cost matrix.
        supply: Remaining supply per row.
        demand: Remaining demand per column.

    Returns:
        Penalties with one entry per row and per column.

    Examples:
        >>> import numpy as np
        >>> penalties = compute_penalties(
        ...     np.array([[4, 6], [5, 3]]), np.array([10, 10]), np.array([12, 8])
        ... )
        >>> penalties.rows, penalties.columns
        ((2, 2), (1, 3))
    """
    active_rows = np.asarray(supply) > 0
    active_cols = np.asarray(demand) > 0

    row_penalties = [
        _gap(costs[i, active_cols]) if active_rows[i] else INACTIVE_PENALTY
        for i in range(costs.shape[0])
    ]
    column_penalties = [
        _gap(costs[active_rows, j]) if active_cols[j] else INACTIVE_PENALTY
        for j in range(costs.shape[1])
    ]
    return Penalties(rows=tuple(row_penalties), columns=tuple(column_penalties))


def select_cell(
    costs: np.ndarray,
    supply: np.ndarray,
    demand: np.ndarray,
    penalties: Penalties,
) -> tuple[int, int] | None:
    """Pick the next cell to allocate.

    The row with the largest penalty is used when its penalty is at least the
    largest column penalty; otherwise the column with the largest penalty is used.
    Within the chosen line the cheapest still-active cell is selected. All ties
    go to the lowest index.

    Returns:
        ``(row, col)`` of the chosen cell, or None when every row and column is
        exhausted.
    """
    max_row = penalties.max_row
    max_column = penalties.max_column
    if max_row == INACTIVE_PENALTY and max_column == INACTIVE_PENALTY:
        return None

    if max_row >= max_column:
        row = penalties.rows.index(max_row)
        candidates = np.flatnonzero(np.asarray(demand) > 0)
        if candidates.size == 0:
            return None
        # argmin returns the first minimum, giving the lowest-index tie-break.
        col = int(candidates[np.argmin(costs[row, candidates])])
        return row, col

    col = penalties.columns.index(max_column)
    candidates = np.flatnonzero(np.asarray(supply) > 0)
    if candidates.size == 0:
        return None
    row = int(candidates[np.argmin(costs[candidates, col])])
    return row, col
