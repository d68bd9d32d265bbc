"""Initial basic feasible solution: maximum-penalty allocation and degeneracy repair."""

from __future__ import annotations

import logging

from .data import (
    EPSILON,
    AllocationMatrix,
    CostModel,
    EventKind,
    Flow,
    Phase,
    StepRecord,
    cell_label,
)
from .exceptions import DegenerateBasisError
from .penalties import compute_penalties, select_cell
from .trace import StepRecorder
from .utils import total_cost


class InitialSolutionBuilder:
    """Builds an initial allocation with the maximum-penalty rule.

    While some supply and some demand remain, penalties are recomputed, a cell
    is selected and ``min(supply[i], demand[j])`` units are allocated to it.
    Every allocation exhausts its row or its column, so a cell never receives
    a second allocation.

    Attributes:
        model: Working cost model; its supply and demand vectors are decremented.
        recorder: Receives one INITIAL step per allocation.
        allocations: The allocation being built.
    """

    def __init__(self, model: CostModel, recorder: StepRecorder):
        self.model = model
        self.recorder = recorder
        self.allocations = AllocationMatrix(*model.shape)
        self.logger = logging.getLogger(__name__)

    def build(self) -> AllocationMatrix:
        model = self.model
        while model.has_remaining():
            penalties = compute_penalties(model.costs, model.supply, model.demand)
            chosen = select_cell(model.costs, model.supply, model.demand, penalties)
            if chosen is None:
                break

            row, col = chosen
            if isinstance(self.allocations[row, col], Flow):
                self.logger.warning(
                    "Selected cell already carries flow; stopping initial allocation",
                    extra={"cell": chosen},
                )
                break

            quantity = min(model.supply[row], model.demand[col]).item()
            if quantity <= 0:
                break

            self.allocations[row, col] = Flow(quantity)
            model.allocate(row, col, quantity)
            self.recorder.record(
                StepRecord(
                    phase=Phase.INITIAL,
                    note=f"Allocate {quantity} to {cell_label(row, col)}",
                    allocations=self.allocations.snapshot(),
                    supply=model.remaining_supply(),
                    demand=model.remaining_demand(),
                    chosen=chosen,
                    penalties=penalties,
                    quantity=quantity,
                    total_cost=total_cost(self.allocations, model.costs),
                ),
                EventKind.CELL_ALLOCATED,
            )

        self.logger.info(
            "Initial allocation complete",
            extra={
                "allocations": len(self.recorder.steps),
                "basic_cells": self.allocations.basic_count(),
            },
        )
        return self.allocations


class DegeneracyResolver:
    """Tops up a short basis with Epsilon placeholders.

    A basic feasible solution has m + n - 1 basic cells. When the initial phase
    exhausts a row and a column in the same allocation, fewer cells are filled.
    The resolver then marks the cheapest empty cells (row-major order on ties)
    as Epsilon until the count is reached.
    """

    def __init__(self, model: CostModel, recorder: StepRecorder):
        self.model = model
        self.recorder = recorder
        self.logger = logging.getLogger(__name__)

    def resolve(self, allocations: AllocationMatrix) -> int:
        """Add Epsilon cells in place and return how many were added.

        Raises:
            DegenerateBasisError: If no empty cell is left while the basis is short.
        """
        required = self.model.basis_size
        count = allocations.basic_count()
        added = 0
        while count < required:
            empty = allocations.empty_cells()
            if not empty:
                raise DegenerateBasisError(
                    f"Cannot complete the basis: {count} basic cells, {required} required, and "
                    f"no empty cell is left to hold an epsilon placeholder.",
                    basic_count=count,
                    required=required,
                )
            # min() keeps the first of equal costs, i.e. row-major order.
            row, col = min(empty, key=lambda cell: self.model.cost(*cell))
            allocations[row, col] = EPSILON
            count += 1
            added += 1
            self.recorder.record(
                StepRecord(
                    phase=Phase.DEGENERACY,
                    note=f"Degeneracy: add ε at {cell_label(row, col)}",
                    allocations=allocations.snapshot(),
                    supply=self.model.remaining_supply(),
                    demand=self.model.remaining_demand(),
                    chosen=(row, col),
                    total_cost=total_cost(allocations, self.model.costs),
                ),
                EventKind.EPSILON_ADDED,
            )

        if added:
            self.logger.info(
                "Degenerate initial solution repaired",
                extra={"epsilon_cells": added, "basis_size": required},
            )
        return added
