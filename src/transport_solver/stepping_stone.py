"""Stepping-stone refinement of a basic feasible allocation."""

from __future__ import annotations

import logging

from .cycles import ClosedLoopFinder
from .data import (
    EMPTY,
    EPSILON,
    AllocationMatrix,
    CostModel,
    CycleDelta,
    Epsilon,
    EventKind,
    Flow,
    Phase,
    StepRecord,
    cell_label,
)
from .exceptions import IterationLimitError, NoCycleError
from .trace import StepRecorder
from .utils import total_cost


class SteppingStoneOptimizer:
    """Improves an allocation by exchanging flow around closed loops.

    Each round evaluates the loop of every empty cell. The loop delta adds the
    unit costs of its "+" cells (even positions, starting with the empty cell)
    and subtracts those of its "-" cells. The most negative delta is applied,
    moving as many units as the smallest "-" quantity allows. Rounds repeat
    until no loop has a negative delta.

    When a "-" position holds an Epsilon placeholder the loop can move nothing.
    Applying it is a degenerate basis change instead: the empty cell enters the
    basis as Epsilon and the first Epsilon on a "-" position leaves it. The
    allocation and its cost are unchanged but the next round sees new loops.

    Degenerate basis changes can revisit a basis. Visited bases are tracked
    between exchanges; on the first revisit the optimizer switches to the
    smallest-index rule (first negative delta in row-major order, smallest
    leaving cell), which cannot cycle.

    Attributes:
        model: Cost model of the solve (costs and remaining vectors).
        allocations: Allocation refined in place.
        recorder: Receives one REFINEMENT step per applied exchange and one
                  BASIS_CHANGE step per degenerate basis change.
        max_iterations: Budget shared by exchanges and basis changes.
        iterations: Exchanges applied so far.
        basis_changes: Degenerate basis changes applied so far.
        smallest_index_rule: True once cycling protection is active.
        last_deltas: Delta table of the most recent round.
    """

    def __init__(
        self,
        model: CostModel,
        allocations: AllocationMatrix,
        recorder: StepRecorder,
        max_iterations: int,
    ):
        self.model = model
        self.allocations = allocations
        self.recorder = recorder
        self.max_iterations = max_iterations
        self.iterations = 0
        self.basis_changes = 0
        self.smallest_index_rule = False
        self.last_deltas: tuple[CycleDelta, ...] = ()
        self.logger = logging.getLogger(__name__)

    def evaluate(self) -> tuple[CycleDelta, ...]:
        """Compute the delta table of the current allocation, in row-major order."""
        finder = ClosedLoopFinder(self.allocations)
        deltas: list[CycleDelta] = []
        for cell in self.allocations.empty_cells():
            try:
                cycle = finder.find(cell)
            except NoCycleError:
                # A disconnected cell offers no exchange this round.
                if self.logger.isEnabledFor(logging.DEBUG):
                    self.logger.debug("No closed loop", extra={"cell": cell})
                continue
            terms = tuple(
                self.model.cost(*position) if k % 2 == 0 else -self.model.cost(*position)
                for k, position in enumerate(cycle)
            )
            deltas.append(
                CycleDelta(
                    cell=cell,
                    cycle=cycle,
                    terms=terms,
                    delta=sum(terms),
                    transferable=self._transferable(cycle),
                )
            )
        return tuple(deltas)

    def _transferable(self, cycle: tuple[tuple[int, int], ...]) -> float:
        # Epsilon donors read as zero.
        return min(self.allocations[position].quantity for position in cycle[1::2])

    @staticmethod
    def select(
        deltas: tuple[CycleDelta, ...], smallest_index: bool = False
    ) -> CycleDelta | None:
        """Most negative delta, the first one winning ties.

        With ``smallest_index`` the first negative delta in row-major order is
        returned instead.
        """
        best: CycleDelta | None = None
        for candidate in deltas:
            if candidate.delta < (0 if best is None else best.delta):
                best = candidate
                if smallest_index:
                    break
        return best

    def _leaving_epsilon(self, candidate: CycleDelta) -> tuple[int, int]:
        donors = [
            position
            for position in candidate.cycle[1::2]
            if isinstance(self.allocations[position], Epsilon)
        ]
        return min(donors) if self.smallest_index_rule else donors[0]

    def apply(self, candidate: CycleDelta) -> float:
        """Move ``candidate.transferable`` units around the loop and return the quantity.

        A zero quantity swaps the empty cell into the basis in place of an
        Epsilon "-" cell.
        """
        quantity = candidate.transferable
        if quantity == 0:
            self.allocations[candidate.cell] = EPSILON
            self.allocations[self._leaving_epsilon(candidate)] = EMPTY
            return quantity
        for k, position in enumerate(candidate.cycle):
            cell = self.allocations[position]
            if k % 2 == 0:
                self.allocations[position] = Flow(cell.quantity + quantity)
            else:
                remaining = cell.quantity - quantity
                self.allocations[position] = Flow(remaining) if remaining != 0 else EMPTY
        return quantity

    def _basis_key(self) -> frozenset[tuple[int, int]]:
        return frozenset((i, j) for i, j, cell in self.allocations.cells() if cell.is_basic)

    def optimize(self) -> AllocationMatrix:
        """Run rounds until no loop has a negative delta.

        Raises:
            IterationLimitError: If the budget is used up while an improving
                                 loop still exists.
        """
        objective = total_cost(self.allocations, self.model.costs)
        self.logger.info(
            "Starting stepping-stone refinement",
            extra={"objective": objective, "max_iterations": self.max_iterations},
        )
        visited = {self._basis_key()}
        while True:
            deltas = self.evaluate()
            self.last_deltas = deltas
            best = self.select(deltas, smallest_index=self.smallest_index_rule)
            if best is None:
                break
            if self.iterations + self.basis_changes >= self.max_iterations:
                raise IterationLimitError(
                    f"Iteration limit reached: {self.iterations} exchanges and "
                    f"{self.basis_changes} basis changes applied, and "
                    f"{cell_label(*best.cell)} still improves the cost by {best.delta} per unit.",
                    iterations=self.iterations,
                    objective=objective,
                )

            if best.transferable == 0:
                leaving = self._leaving_epsilon(best)
                self.apply(best)
                self.basis_changes += 1
                self._record_basis_change(best, leaving, deltas, objective)
                key = self._basis_key()
                if key in visited and not self.smallest_index_rule:
                    self.logger.warning(
                        "Basis revisited by degenerate changes; switching to smallest-index rule",
                        extra={"basis_changes": self.basis_changes},
                    )
                    self.smallest_index_rule = True
                visited.add(key)
                continue

            quantity = self.apply(best)
            self.iterations += 1
            objective = total_cost(self.allocations, self.model.costs)
            # A cost decrease rules out returning to any earlier basis.
            visited = {self._basis_key()}
            self.recorder.record(
                StepRecord(
                    phase=Phase.REFINEMENT,
                    note=(
                        f"Stepping-stone iteration {self.iterations}: improvement with "
                        f"δ = {best.delta} via {cell_label(*best.cell)}. "
                        f"Quantity transferred: {quantity}."
                    ),
                    allocations=self.allocations.snapshot(),
                    supply=self.model.remaining_supply(),
                    demand=self.model.remaining_demand(),
                    chosen=best.cell,
                    deltas=deltas,
                    cycle=best.cycle,
                    quantity=quantity,
                    total_cost=objective,
                ),
                EventKind.EXCHANGE_APPLIED,
                delta=best.delta,
            )

        self.logger.info(
            "Stepping-stone refinement converged",
            extra={
                "iterations": self.iterations,
                "basis_changes": self.basis_changes,
                "objective": objective,
            },
        )
        return self.allocations

    def _record_basis_change(
        self,
        best: CycleDelta,
        leaving: tuple[int, int],
        deltas: tuple[CycleDelta, ...],
        objective: float,
    ) -> None:
        self.recorder.record(
            StepRecord(
                phase=Phase.BASIS_CHANGE,
                note=(
                    f"Degenerate basis change {self.basis_changes}: ε enters at "
                    f"{cell_label(*best.cell)} (δ = {best.delta}) and leaves "
                    f"{cell_label(*leaving)}. Total cost unchanged."
                ),
                allocations=self.allocations.snapshot(),
                supply=self.model.remaining_supply(),
                demand=self.model.remaining_demand(),
                chosen=best.cell,
                deltas=deltas,
                cycle=best.cycle,
                quantity=0,
                total_cost=objective,
            ),
            EventKind.BASIS_CHANGED,
            delta=best.delta,
        )
