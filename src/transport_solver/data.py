"""Core data structures for balanced transportation problems."""

from __future__ import annotations

import math
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

import numpy as np

from .exceptions import (
    ImbalanceError,
    InvalidProblemError,
    ShapeError,
    SolverConfigurationError,
    TransportSolverError,
)

INACTIVE_PENALTY = -1  # Penalty reported for exhausted rows and columns.


def source_label(row: int) -> str:
    """Return the display label of a source: A, B, ... then R27, R28, ..."""
    if row < 26:
        return chr(ord("A") + row)
    return f"R{row + 1}"


def cell_label(row: int, col: int) -> str:
    """Return the display label of a cell, e.g. ``(B, 3)``."""
    return f"({source_label(row)}, {col + 1})"


@dataclass(frozen=True)
class Empty:
    """A cell with no flow assigned. Empty cells are non-basic."""

    @property
    def is_basic(self) -> bool:
        return False

    @property
    def quantity(self) -> int:
        return 0

    def __str__(self) -> str:
        return ""


@dataclass(frozen=True)
class Epsilon:
    """A zero-flow placeholder that keeps the basis at m + n - 1 cells.

    Epsilon cells count as basic for cycle search and basis size, but never
    contribute to delivered quantity or cost.
    """

    @property
    def is_basic(self) -> bool:
        return True

    @property
    def quantity(self) -> int:
        return 0

    def __str__(self) -> str:
        return "ε"


@dataclass(frozen=True)
class Flow:
    """A cell carrying a strictly positive quantity.

    Attributes:
        quantity: Units shipped from the row's source to the column's destination.

    Raises:
        InvalidProblemError: If quantity is not strictly positive.
    """

    quantity: float

    def __post_init__(self) -> None:
        if not self.quantity > 0:
            raise InvalidProblemError(
                f"Flow quantity must be strictly positive, got {self.quantity}. "
                f"Use EMPTY for cells without flow."
            )

    @property
    def is_basic(self) -> bool:
        return True

    def __str__(self) -> str:
        return str(self.quantity)


Cell = Union[Empty, Flow, Epsilon]

EMPTY = Empty()
EPSILON = Epsilon()


class AllocationMatrix:
    """Mutable m × n grid of allocation cells.

    Each cell is one of EMPTY, EPSILON or a Flow. The matrix offers the basis
    queries used by the solver phases (basic counts, row/column membership,
    empty-cell scans in row-major order) and immutable snapshots for step records.

    Examples:
        >>> allocations = AllocationMatrix(2, 2)
        >>> allocations[0, 0] = Flow(10)
        >>> allocations[1, 1] = EPSILON
        >>> allocations.basic_count()
        2
        >>> allocations.empty_cells()
        [(0, 1), (1, 0)]
    """

    def __init__(self, rows: int, cols: int):
        self._cells: list[list[Cell]] = [[EMPTY] * cols for _ in range(rows)]

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Cell]]) -> AllocationMatrix:
        """Build a matrix from nested sequences of cells (e.g. a step snapshot)."""
        matrix = cls(0, 0)
        matrix._cells = [list(row) for row in rows]
        return matrix

    @property
    def shape(self) -> tuple[int, int]:
        rows = len(self._cells)
        return rows, (len(self._cells[0]) if rows else 0)

    def __getitem__(self, index: tuple[int, int]) -> Cell:
        row, col = index
        return self._cells[row][col]

    def __setitem__(self, index: tuple[int, int], cell: Cell) -> None:
        row, col = index
        self._cells[row][col] = cell

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AllocationMatrix):
            return NotImplemented
        return self._cells == other._cells

    def cells(self) -> Iterator[tuple[int, int, Cell]]:
        """Yield ``(row, col, cell)`` in row-major order."""
        for i, row in enumerate(self._cells):
            for j, cell in enumerate(row):
                yield i, j, cell

    def basic_count(self) -> int:
        """Number of basic (Flow or Epsilon) cells."""
        return sum(1 for _, _, cell in self.cells() if cell.is_basic)

    def empty_cells(self) -> list[tuple[int, int]]:
        """Empty cells in row-major scan order."""
        return [(i, j) for i, j, cell in self.cells() if not cell.is_basic]

    def basic_in_row(self, row: int) -> list[int]:
        """Columns holding a basic cell in the given row."""
        return [j for j, cell in enumerate(self._cells[row]) if cell.is_basic]

    def basic_in_column(self, col: int) -> list[int]:
        """Rows holding a basic cell in the given column."""
        return [i for i, row in enumerate(self._cells) if row[col].is_basic]

    def quantities(self) -> np.ndarray:
        """Numeric flow matrix; Empty and Epsilon cells read as zero."""
        return np.array([[cell.quantity for cell in row] for row in self._cells])

    def snapshot(self) -> tuple[tuple[Cell, ...], ...]:
        return tuple(tuple(row) for row in self._cells)

    def copy(self) -> AllocationMatrix:
        return AllocationMatrix.from_rows(self._cells)

    def __repr__(self) -> str:
        rows = ", ".join("[" + ", ".join(str(cell) or "·" for cell in row) + "]" for row in self._cells)
        return f"AllocationMatrix([{rows}])"


@dataclass
class TransportProblem:
    """Encapsulates a balanced transportation problem.

    Attributes:
        costs: m × n unit costs, costs[i][j] = cost of shipping one unit from
               source i to destination j. Finite and non-negative.
        supply: Units available at each of the m sources.
        demand: Units required at each of the n destinations.

    Examples:
        >>> problem = TransportProblem(
        ...     costs=[[4, 6], [5, 3]],
        ...     supply=[10, 10],
        ...     demand=[12, 8],
        ... )
        >>> problem.validate()  # Check problem is well-formed
        >>> problem.shape
        (2, 2)

    Note:
        Total supply must equal total demand exactly. Unbalanced problems are
        rejected with ImbalanceError; add a dummy source or destination before
        solving if needed.
    """

    costs: Sequence[Sequence[float]]
    supply: Sequence[float]
    demand: Sequence[float]

    @property
    def shape(self) -> tuple[int, int]:
        rows = len(self.costs)
        return rows, (len(self.costs[0]) if rows else 0)

    def validate(self) -> None:
        rows, cols = self.shape
        if rows == 0 or cols == 0:
            raise ShapeError(
                f"Cost matrix has shape {rows}x{cols}. A transportation problem needs at "
                f"least one source and one destination."
            )
        for i, row in enumerate(self.costs):
            if len(row) != cols:
                raise ShapeError(
                    f"Cost matrix row {source_label(i)} has {len(row)} entries, expected {cols}. "
                    f"All rows must have the same length."
                )
        if len(self.supply) != rows:
            raise ShapeError(
                f"Supply vector has {len(self.supply)} entries but the cost matrix has {rows} rows."
            )
        if len(self.demand) != cols:
            raise ShapeError(
                f"Demand vector has {len(self.demand)} entries but the cost matrix has {cols} columns."
            )

        for i, row in enumerate(self.costs):
            for j, cost in enumerate(row):
                if not math.isfinite(cost) or cost < 0:
                    raise InvalidProblemError(
                        f"Cost at {cell_label(i, j)} is {cost}. Costs must be finite and non-negative."
                    )
        for i, amount in enumerate(self.supply):
            if not math.isfinite(amount) or amount < 0:
                raise InvalidProblemError(
                    f"Supply of source {source_label(i)} is {amount}. Supplies must be finite and "
                    f"non-negative."
                )
        for j, amount in enumerate(self.demand):
            if not math.isfinite(amount) or amount < 0:
                raise InvalidProblemError(
                    f"Demand of destination {j + 1} is {amount}. Demands must be finite and "
                    f"non-negative."
                )

        # Balance is checked exactly; exchanges later rely on exact zero tests.
        total_supply = sum(self.supply)
        total_demand = sum(self.demand)
        if total_supply != total_demand:
            raise ImbalanceError(
                f"Problem is unbalanced: total supply {total_supply} differs from total demand "
                f"{total_demand}. Add a dummy source or destination to balance the problem "
                f"before solving.",
                total_supply=total_supply,
                total_demand=total_demand,
            )


class CostModel:
    """Private working state for one solve.

    Holds a read-only copy of the cost matrix and of the original supply and
    demand, plus writable working vectors that the initial phase decrements.
    The caller's sequences are copied and never mutated.

    Attributes:
        costs: Read-only numpy cost matrix.
        original_supply: Read-only supply as given.
        original_demand: Read-only demand as given.
        supply: Remaining supply per source.
        demand: Remaining demand per destination.
    """

    def __init__(self, problem: TransportProblem):
        self.costs = np.array(problem.costs)
        self.costs.setflags(write=False)
        self.original_supply = np.array(problem.supply)
        self.original_supply.setflags(write=False)
        self.original_demand = np.array(problem.demand)
        self.original_demand.setflags(write=False)
        self.supply = self.original_supply.copy()
        self.demand = self.original_demand.copy()

    @property
    def shape(self) -> tuple[int, int]:
        rows, cols = self.costs.shape
        return int(rows), int(cols)

    @property
    def basis_size(self) -> int:
        """Number of basic cells a basic feasible solution needs (m + n - 1)."""
        rows, cols = self.shape
        return rows + cols - 1

    def cost(self, row: int, col: int) -> float:
        return self.costs[row, col].item()

    def has_remaining(self) -> bool:
        """True while some supply and some demand are still positive."""
        return bool(np.any(self.supply > 0) and np.any(self.demand > 0))

    def allocate(self, row: int, col: int, quantity: float) -> None:
        """Decrement remaining supply and demand by an allocated quantity."""
        self.supply[row] -= quantity
        self.demand[col] -= quantity

    def remaining_supply(self) -> tuple[float, ...]:
        return tuple(self.supply.tolist())

    def remaining_demand(self) -> tuple[float, ...]:
        return tuple(self.demand.tolist())


@dataclass(frozen=True)
class Penalties:
    """Row and column penalties computed for one allocation step.

    Attributes:
        rows: Penalty per source (second-cheapest minus cheapest active cost),
              INACTIVE_PENALTY (-1) for exhausted sources.
        columns: Penalty per destination, same convention.
    """

    rows: tuple[float, ...]
    columns: tuple[float, ...]

    @property
    def max_row(self) -> float:
        return max(self.rows, default=INACTIVE_PENALTY)

    @property
    def max_column(self) -> float:
        return max(self.columns, default=INACTIVE_PENALTY)


@dataclass(frozen=True)
class CycleDelta:
    """Cost change of routing one unit around a closed loop.

    Attributes:
        cell: The empty cell the loop starts from.
        cycle: Loop cells, starting with ``cell``. Even positions are "+", odd "-".
        terms: Signed unit costs along the loop.
        delta: Sum of ``terms``; negative values improve the total cost.
        transferable: Largest quantity that can move around the loop, the
                      smallest quantity on its "-" positions. Zero when a "-"
                      position holds an Epsilon placeholder; applying such a
                      loop is a degenerate basis change.
    """

    cell: tuple[int, int]
    cycle: tuple[tuple[int, int], ...]
    terms: tuple[float, ...]
    delta: float
    transferable: float

    @property
    def formula(self) -> str:
        signed = " ".join(f"{'+' if k % 2 == 0 else '-'}{abs(term)}" for k, term in enumerate(self.terms))
        return f"δ{cell_label(*self.cell)} = {signed} = {self.delta}"


class Phase(Enum):
    """Solver phase a step record belongs to."""

    INITIAL = "initial"
    DEGENERACY = "degeneracy"
    BASIC_SOLUTION = "basic_solution"
    REFINEMENT = "refinement"
    BASIS_CHANGE = "basis_change"
    OPTIMAL = "optimal"
    FAILED = "failed"


@dataclass(frozen=True)
class StepRecord:
    """Immutable snapshot taken after each atomic change of a solve.

    Attributes:
        phase: Phase the step belongs to.
        note: Human-readable description of the step.
        allocations: Allocation snapshot, None when the solve failed before
                     any allocation existed.
        supply: Remaining supply per source.
        demand: Remaining demand per destination.
        chosen: Cell chosen in this step, if any.
        penalties: Penalties that led to the choice (initial phase).
        deltas: Delta table computed this round (refinement).
        cycle: Loop used by an exchange.
        quantity: Quantity allocated or transferred.
        total_cost: Total cost of ``allocations``.
    """

    phase: Phase
    note: str
    allocations: tuple[tuple[Cell, ...], ...] | None
    supply: tuple[float, ...]
    demand: tuple[float, ...]
    chosen: tuple[int, int] | None = None
    penalties: Penalties | None = None
    deltas: tuple[CycleDelta, ...] | None = None
    cycle: tuple[tuple[int, int], ...] | None = None
    quantity: float | None = None
    total_cost: float | None = None


class EventKind(Enum):
    """Points of the solve at which trace events are emitted."""

    CELL_ALLOCATED = "cell_allocated"
    EPSILON_ADDED = "epsilon_added"
    BASIS_COMPLETE = "basis_complete"
    EXCHANGE_APPLIED = "exchange_applied"
    BASIS_CHANGED = "basis_changed"
    OPTIMAL = "optimal"
    FAILED = "failed"


@dataclass(frozen=True)
class TraceEvent:
    """Structured event delivered to a trace callback.

    Attributes:
        kind: What happened.
        step_index: Index of the step record produced by this event.
        message: Human-readable description (same as the step note).
        cell: Cell involved, if any.
        quantity: Quantity allocated or transferred, if any.
        delta: Loop delta, for EXCHANGE_APPLIED and BASIS_CHANGED.
        total_cost: Total cost after the event, if known.
    """

    kind: EventKind
    step_index: int
    message: str
    cell: tuple[int, int] | None = None
    quantity: float | None = None
    delta: float | None = None
    total_cost: float | None = None


# Type alias for trace callback function
TraceCallback = Callable[[TraceEvent], None]


@dataclass
class SolverOptions:
    """Configuration options for the transportation solver.

    Attributes:
        max_iterations: Maximum number of stepping-stone exchanges plus
                        degenerate basis changes.
                        If None, defaults to max(100, 10*m*n).
        optimize: Run the stepping-stone refinement after the initial phase
                  (default: True). When False the solve stops at the initial
                  basic feasible solution and reports status "initial".

    Examples:
        >>> options = SolverOptions()
        >>> options = SolverOptions(max_iterations=50)
        >>> options = SolverOptions(optimize=False)  # initial solution only
    """

    max_iterations: int | None = None
    optimize: bool = True

    def __post_init__(self) -> None:
        if self.max_iterations is not None and self.max_iterations <= 0:
            raise SolverConfigurationError(
                f"max_iterations must be positive, got {self.max_iterations}. "
                f"Use None for the default budget."
            )

    def resolve_max_iterations(self, rows: int, cols: int) -> int:
        if self.max_iterations is not None:
            return self.max_iterations
        return max(100, 10 * rows * cols)


@dataclass
class TransportResult:
    """Represents the output of a transportation solve.

    Attributes:
        status: Solution status:
                - 'optimal': No improving exchange remains
                - 'initial': Refinement disabled, initial basic solution returned
                - 'invalid_shape' / 'invalid_problem' / 'imbalanced': Input rejected
                - 'degenerate_basis': Basis could not be completed
                - 'iteration_limit': Exchange budget exhausted
        steps: Ordered trace of step records; the last one is terminal.
        allocations: Final allocation snapshot (None if no allocation was built).
        objective: Total cost of ``allocations`` (None if no allocation was built).
        iterations: Number of stepping-stone exchanges applied.
        basis_changes: Number of degenerate (zero-quantity) basis changes.
        error: The exception that stopped the solve, if any.

    Examples:
        >>> from transport_solver import solve_transportation
        >>> result = solve_transportation([[7]], [5], [5])
        >>> result.status, result.objective
        ('optimal', 35)
        >>> result.flows
        {(0, 0): 5}
    """

    status: str
    steps: list[StepRecord] = field(default_factory=list)
    allocations: tuple[tuple[Cell, ...], ...] | None = None
    objective: float | None = None
    iterations: int = 0
    basis_changes: int = 0
    error: TransportSolverError | None = None

    @property
    def final_step(self) -> StepRecord | None:
        return self.steps[-1] if self.steps else None

    @property
    def flows(self) -> dict[tuple[int, int], float]:
        """Numeric flows keyed by (source, destination); Epsilon cells are omitted."""
        if self.allocations is None:
            return {}
        return {
            (i, j): cell.quantity
            for i, row in enumerate(self.allocations)
            for j, cell in enumerate(row)
            if isinstance(cell, Flow)
        }

    @property
    def epsilon_cells(self) -> list[tuple[int, int]]:
        if self.allocations is None:
            return []
        return [
            (i, j)
            for i, row in enumerate(self.allocations)
            for j, cell in enumerate(row)
            if isinstance(cell, Epsilon)
        ]

    def raise_for_status(self) -> None:
        """Re-raise the error that stopped the solve, if any."""
        if self.error is not None:
            raise self.error


def build_problem(
    costs: Sequence[Sequence[float]],
    supply: Sequence[float],
    demand: Sequence[float],
) -> TransportProblem:
    """Factory helper used by IO layer to assemble a validated TransportProblem."""
    # Copy into plain lists so later edits to the caller's data cannot leak in.
    problem = TransportProblem(
        costs=[list(row) for row in costs],
        supply=list(supply),
        demand=list(demand),
    )
    problem.validate()
    return problem
