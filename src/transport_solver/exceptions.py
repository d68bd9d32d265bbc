"""Custom exceptions for the transportation solver library."""

from __future__ import annotations


class TransportSolverError(Exception):
    """Base exception for all transportation solver errors.

    All custom exceptions in the transport_solver package inherit from this class,
    allowing users to catch all solver-related errors with a single except clause.

    Each subclass carries a ``status`` string. When a structural error stops a
    solve, the returned TransportResult reports that status instead of raising.

    Example:
        try:
            result = solve_transportation(costs, supply, demand)
            result.raise_for_status()
        except TransportSolverError as e:
            print(f"Solver error: {e}")
    """

    status = "error"


class InvalidProblemError(TransportSolverError):
    """Raised when a problem definition is invalid or malformed.

    This includes negative or non-finite costs, supplies and demands. Shape and
    balance problems have their own subclasses.

    Example:
        InvalidProblemError("Cost at (A, 2) is negative (-3). Costs must be non-negative.")
    """

    status = "invalid_problem"


class ShapeError(InvalidProblemError):
    """Raised when the cost matrix or the supply/demand vectors have an unusable shape.

    This includes:
    - Zero sources (rows) or zero destinations (columns)
    - Ragged cost matrix (rows of different lengths)
    - Supply length different from the number of rows
    - Demand length different from the number of columns
    """

    status = "invalid_shape"


class ImbalanceError(InvalidProblemError):
    """Raised when total supply differs from total demand.

    The solver does not add dummy sources or destinations; callers must balance
    the problem before solving.

    Example:
        ImbalanceError(
            "Problem is unbalanced: total supply 20 differs from total demand 25",
            total_supply=20,
            total_demand=25,
        )
    """

    status = "imbalanced"

    def __init__(self, message: str, total_supply: float = 0.0, total_demand: float = 0.0):
        """Initialize with message and the mismatched totals."""
        super().__init__(message)
        self.total_supply = total_supply
        self.total_demand = total_demand


class DegenerateBasisError(TransportSolverError):
    """Raised when degeneracy repair cannot reach the required basis size.

    A basis needs m + n - 1 occupied cells. If every cell is already occupied
    and the count is still short, the allocation state is contradictory.
    """

    status = "degenerate_basis"

    def __init__(self, message: str, basic_count: int = 0, required: int = 0):
        """Initialize with message and basis counts."""
        super().__init__(message)
        self.basic_count = basic_count
        self.required = required


class NoCycleError(TransportSolverError):
    """Raised when no closed loop exists through an empty cell.

    The stepping-stone optimizer recovers from this locally by skipping the
    cell for the current round; it never reaches the caller of a solve.
    """

    status = "no_cycle"

    def __init__(self, message: str, cell: tuple[int, int] | None = None):
        """Initialize with message and the cell whose loop was searched."""
        super().__init__(message)
        self.cell = cell


class IterationLimitError(TransportSolverError):
    """Raised when the refinement phase exceeds its exchange budget.

    By default the solver returns a TransportResult with status="iteration_limit"
    rather than raising this exception. Call TransportResult.raise_for_status()
    to get it raised.

    Example:
        IterationLimitError(
            "Iteration limit reached: 100 exchanges applied",
            iterations=100,
            objective=1234.0,
        )
    """

    status = "iteration_limit"

    def __init__(self, message: str, iterations: int = 0, objective: float | None = None):
        """Initialize with message and solution state."""
        super().__init__(message)
        self.iterations = iterations
        self.objective = objective


class SolverConfigurationError(TransportSolverError):
    """Raised when solver configuration or options are invalid.

    Example:
        SolverConfigurationError("max_iterations must be positive, got -1")
    """

    status = "configuration_error"
