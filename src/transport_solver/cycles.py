"""Closed-loop search over the basic cells of an allocation."""

from __future__ import annotations

from collections import deque

from .data import AllocationMatrix, cell_label
from .exceptions import NoCycleError

HORIZONTAL = "row"
VERTICAL = "column"

Position = tuple[int, int]


class ClosedLoopFinder:
    """Finds stepping-stone loops through empty cells.

    A loop starts at an empty cell, visits only basic cells (Flow or Epsilon),
    alternates strictly between moves along a row and moves along a column and
    returns to the start. Its length is even, so signs alternate +, -, +, -
    around it with every row and column touched receiving one of each.

    The search is breadth-first, launched with both a horizontal and a vertical
    first move, so the shortest loop is returned. Row and column membership is
    indexed once per finder; build a new finder after the allocation changes.

    Examples:
        >>> from transport_solver.data import EMPTY, Flow
        >>> allocations = AllocationMatrix.from_rows(
        ...     [[Flow(10), EMPTY], [Flow(2), Flow(8)]]
        ... )
        >>> ClosedLoopFinder(allocations).find((0, 1))
        ((0, 1), (0, 0), (1, 0), (1, 1))
    """

    def __init__(self, allocations: AllocationMatrix):
        rows, cols = allocations.shape
        self._row_members = [allocations.basic_in_row(i) for i in range(rows)]
        self._column_members = [allocations.basic_in_column(j) for j in range(cols)]

    def find(self, start: Position) -> tuple[Position, ...]:
        """Return the shortest closed loop through ``start``.

        Raises:
            NoCycleError: If the basic cells do not connect back to ``start``.
        """
        start_row, start_col = start
        queue: deque[tuple[Position, str, tuple[Position, ...]]] = deque()
        # Visited states include the path parity: the same cell reached with the
        # same move at odd and even depth belongs to loops of different orientation.
        visited: set[tuple[Position, str, int]] = set()

        for col in self._row_members[start_row]:
            if col != start_col:
                cell = (start_row, col)
                visited.add((cell, HORIZONTAL, 0))
                queue.append((cell, HORIZONTAL, (start, cell)))
        for row in self._column_members[start_col]:
            if row != start_row:
                cell = (row, start_col)
                visited.add((cell, VERTICAL, 0))
                queue.append((cell, VERTICAL, (start, cell)))

        while queue:
            (row, col), last_move, path = queue.popleft()
            if last_move == HORIZONTAL:
                # Next move runs along the column.
                if col == start_col and len(path) % 2 == 0:
                    return path
                next_move = VERTICAL
                neighbours = [(other, col) for other in self._column_members[col] if other != row]
            else:
                if row == start_row and len(path) % 2 == 0:
                    return path
                next_move = HORIZONTAL
                neighbours = [(row, other) for other in self._row_members[row] if other != col]

            for neighbour in neighbours:
                state = (neighbour, next_move, (len(path) + 1) % 2)
                if neighbour in path or state in visited:
                    continue
                visited.add(state)
                queue.append((neighbour, next_move, path + (neighbour,)))

        raise NoCycleError(
            f"No closed loop through {cell_label(*start)}: the basic cells do not connect "
            f"its row and column.",
            cell=start,
        )
