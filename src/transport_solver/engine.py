"""Two-phase transportation solver: maximum-penalty start, stepping-stone refinement."""

from __future__ import annotations

import logging
import time

from .data import (
    AllocationMatrix,
    CostModel,
    EventKind,
    Phase,
    SolverOptions,
    StepRecord,
    TraceCallback,
    TransportProblem,
    TransportResult,
)
from .exceptions import (
    DegenerateBasisError,
    InvalidProblemError,
    IterationLimitError,
    TransportSolverError,
)
from .initial import DegeneracyResolver, InitialSolutionBuilder
from .stepping_stone import SteppingStoneOptimizer
from .trace import StepRecorder
from .utils import total_cost


class TransportSolver:
    """Solver for the balanced transportation problem.

    The solve runs in two phases:
    - Initial phase: maximum-penalty (Vogel / Balas-Hammer) allocation, followed
      by Epsilon placeholders when the basis is short of m + n - 1 cells
    - Refinement phase: stepping-stone exchanges until no closed loop has a
      negative delta

    Structural errors (bad shape, imbalance, an unrepairable basis, an exhausted
    exchange budget) do not propagate: the solve returns a TransportResult whose
    last step is a FAILED record describing the error.

    Attributes:
        problem: The TransportProblem instance to solve. Never mutated.
        options: Solver configuration.
        trace_callback: Optional receiver of TraceEvents.

    See Also:
        - solve_transportation(): Public API wrapper

    Note:
        Each solve works on private copies of the inputs, so concurrent solves of
        different problems need no synchronization.
    """

    def __init__(
        self,
        problem: TransportProblem,
        options: SolverOptions | None = None,
        trace_callback: TraceCallback | None = None,
    ):
        self.problem = problem
        self.options = options if options is not None else SolverOptions()
        self.trace_callback = trace_callback
        self.logger = logging.getLogger(__name__)

    def solve(self) -> TransportResult:
        started = time.perf_counter()
        recorder = StepRecorder(self.trace_callback)

        try:
            self.problem.validate()
        except InvalidProblemError as exc:
            return self._fail(recorder, exc)

        model = CostModel(self.problem)
        rows, cols = model.shape
        self.logger.info(
            "Starting transportation solve",
            extra={
                "sources": rows,
                "destinations": cols,
                "total_supply": model.original_supply.sum().item(),
            },
        )

        allocations = InitialSolutionBuilder(model, recorder).build()
        try:
            DegeneracyResolver(model, recorder).resolve(allocations)
        except DegenerateBasisError as exc:
            return self._fail(recorder, exc, model, allocations)

        objective = total_cost(allocations, model.costs)
        recorder.record(
            StepRecord(
                phase=Phase.BASIC_SOLUTION,
                note=f"Initial basic feasible solution obtained, total cost {objective}",
                allocations=allocations.snapshot(),
                supply=model.remaining_supply(),
                demand=model.remaining_demand(),
                total_cost=objective,
            ),
            EventKind.BASIS_COMPLETE,
        )

        if not self.options.optimize:
            return TransportResult(
                status="initial",
                steps=recorder.steps,
                allocations=allocations.snapshot(),
                objective=objective,
            )

        optimizer = SteppingStoneOptimizer(
            model,
            allocations,
            recorder,
            max_iterations=self.options.resolve_max_iterations(rows, cols),
        )
        try:
            optimizer.optimize()
        except IterationLimitError as exc:
            return self._fail(
                recorder,
                exc,
                model,
                allocations,
                iterations=optimizer.iterations,
                basis_changes=optimizer.basis_changes,
            )

        objective = total_cost(allocations, model.costs)
        recorder.record(
            StepRecord(
                phase=Phase.OPTIMAL,
                note=f"Stepping-stone optimization complete, optimal total cost {objective}",
                allocations=allocations.snapshot(),
                supply=model.remaining_supply(),
                demand=model.remaining_demand(),
                deltas=optimizer.last_deltas,
                total_cost=objective,
            ),
            EventKind.OPTIMAL,
        )
        self.logger.info(
            "Solve complete",
            extra={
                "objective": objective,
                "iterations": optimizer.iterations,
                "basis_changes": optimizer.basis_changes,
                "elapsed_ms": (time.perf_counter() - started) * 1000,
            },
        )
        return TransportResult(
            status="optimal",
            steps=recorder.steps,
            allocations=allocations.snapshot(),
            objective=objective,
            iterations=optimizer.iterations,
            basis_changes=optimizer.basis_changes,
        )

    def _fail(
        self,
        recorder: StepRecorder,
        error: TransportSolverError,
        model: CostModel | None = None,
        allocations: AllocationMatrix | None = None,
        iterations: int = 0,
        basis_changes: int = 0,
    ) -> TransportResult:
        self.logger.error(
            f"Transportation solve failed: {error}",
            extra={"status": error.status},
        )
        if model is None:
            # Validation failed before any working copy existed; echo the caller's vectors.
            supply = tuple(self.problem.supply)
            demand = tuple(self.problem.demand)
        else:
            supply = model.remaining_supply()
            demand = model.remaining_demand()

        snapshot = allocations.snapshot() if allocations is not None else None
        objective = (
            total_cost(allocations, model.costs)
            if allocations is not None and model is not None
            else None
        )
        recorder.record(
            StepRecord(
                phase=Phase.FAILED,
                note=str(error),
                allocations=snapshot,
                supply=supply,
                demand=demand,
                total_cost=objective,
            ),
            EventKind.FAILED,
        )
        return TransportResult(
            status=error.status,
            steps=recorder.steps,
            allocations=snapshot,
            objective=objective,
            iterations=iterations,
            basis_changes=basis_changes,
            error=error,
        )
