"""Public solver entrypoints."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from .data import SolverOptions, TraceCallback, TransportProblem, TransportResult
from .engine import TransportSolver
from .io import load_problem as load_problem_file
from .io import save_result as save_result_file


def solve_transportation(
    costs: Sequence[Sequence[float]],
    supply: Sequence[float],
    demand: Sequence[float],
    options: SolverOptions | None = None,
    trace_callback: TraceCallback | None = None,
) -> TransportResult:
    """Solve a balanced transportation problem.

    This is the main entry point. The initial allocation is built with the
    maximum-penalty rule (Vogel / Balas-Hammer), completed with Epsilon
    placeholders if degenerate, then refined with stepping-stone exchanges.

    Args:
        costs: m × n unit costs (finite, non-negative).
        supply: Supply of each of the m sources (non-negative).
        demand: Demand of each of the n destinations (non-negative).
                Total demand must equal total supply.
        options: Solver configuration options. If None, uses defaults.
        trace_callback: Optional function called with a TraceEvent for every
                        recorded step.

    Returns:
        TransportResult containing:
        - status: 'optimal', 'initial', or the status of the error that stopped the solve
        - steps: Ordered trace of StepRecords, the last one terminal
        - allocations: Final allocation snapshot
        - objective: Total cost of the final allocation
        - iterations: Number of stepping-stone exchanges applied

    Raises:
        SolverConfigurationError: Only when ``options`` is invalid. Problem
            errors are reported through the result status instead.

    Examples:
        >>> from transport_solver import solve_transportation
        >>> result = solve_transportation([[4, 6], [5, 3]], [10, 10], [12, 8])
        >>> result.status, result.objective
        ('optimal', 74)
        >>> result.flows
        {(0, 0): 10, (1, 0): 2, (1, 1): 8}
        >>>
        >>> # Unbalanced input is reported, not raised
        >>> result = solve_transportation([[4, 6], [5, 3]], [10, 10], [15, 10])
        >>> result.status, len(result.steps)
        ('imbalanced', 1)

    See Also:
        - solve_problem(): Same solve for a prepared TransportProblem
        - TransportResult.raise_for_status(): Turn a failed status into an exception
    """
    problem = TransportProblem(costs=costs, supply=supply, demand=demand)
    return solve_problem(problem, options=options, trace_callback=trace_callback)


def solve_problem(
    problem: TransportProblem,
    options: SolverOptions | None = None,
    trace_callback: TraceCallback | None = None,
) -> TransportResult:
    """Solve a TransportProblem; see solve_transportation() for details."""
    # Instantiate a fresh solver each call to avoid cross-run state sharing.
    solver = TransportSolver(problem, options=options, trace_callback=trace_callback)
    return solver.solve()


def load_problem(path: str | Path) -> TransportProblem:
    """Load a transportation problem from a JSON file.

    Args:
        path: Path to a JSON file with ``costs``, ``supply`` and ``demand``.

    Returns:
        Validated TransportProblem ready to solve.

    Raises:
        FileNotFoundError: If file does not exist.
        InvalidProblemError: If JSON is malformed or the problem is invalid
            (including ShapeError and ImbalanceError).

    Examples:
        >>> from transport_solver import load_problem, solve_problem
        >>> problem = load_problem("examples/textbook_transport_problem.json")
        >>> result = solve_problem(problem)
    """
    # Reuse the IO helpers so callers interact with a single parsing implementation.
    return load_problem_file(path)


def save_result(path: str | Path, result: TransportResult) -> None:
    """Save a transportation solution to a JSON file.

    The file contains status, objective, iterations, the numeric flows, the
    Epsilon cells of the final basis and the error message, if any.

    Raises:
        OSError: If file cannot be written.
    """
    save_result_file(path, result)
