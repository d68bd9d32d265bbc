"""Utility functions for evaluating and validating transportation allocations."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Union

import numpy as np

from .data import AllocationMatrix, Cell, source_label

AllocationLike = Union[AllocationMatrix, Sequence[Sequence[Cell]]]


def _as_matrix(allocations: AllocationLike) -> AllocationMatrix:
    if isinstance(allocations, AllocationMatrix):
        return allocations
    return AllocationMatrix.from_rows(allocations)


@dataclass
class ValidationResult:
    """Results from validating an allocation against supply and demand.

    Attributes:
        is_valid: True if every row and column balances.
        errors: List of validation error messages (empty if valid).
        row_residuals: Per source, original supply - shipped - remaining supply.
        column_residuals: Per destination, original demand - received - remaining demand.
    """

    is_valid: bool
    errors: list[str]
    row_residuals: list[float]
    column_residuals: list[float]


def total_cost(allocations: AllocationLike, costs: Sequence[Sequence[float]] | np.ndarray) -> float:
    """Sum cost × quantity over every cell carrying a positive flow.

    Empty and Epsilon cells contribute nothing. The function is pure and can be
    called on any step snapshot.

    Args:
        allocations: Allocation matrix or a step snapshot.
        costs: Unit cost matrix of the same shape.

    Returns:
        Total transportation cost.

    Examples:
        >>> from transport_solver.data import EMPTY, EPSILON, Flow
        >>> total_cost([[Flow(10), EMPTY], [Flow(2), Flow(8)]], [[4, 6], [5, 3]])
        74
        >>> total_cost([[Flow(10), EPSILON]], [[4, 6]])
        40
    """
    quantities = _as_matrix(allocations).quantities()
    if quantities.size == 0:
        return 0
    return (np.asarray(costs) * quantities).sum().item()


def count_basic_cells(allocations: AllocationLike) -> int:
    """Number of Flow and Epsilon cells in an allocation."""
    return _as_matrix(allocations).basic_count()


def validate_allocation(
    allocations: AllocationLike,
    supply: Sequence[float],
    demand: Sequence[float],
    remaining_supply: Sequence[float] | None = None,
    remaining_demand: Sequence[float] | None = None,
) -> ValidationResult:
    """Check that an allocation conserves supply and demand.

    For each source, the shipped quantity plus the remaining supply must equal
    the original supply; symmetrically for destinations. Remaining vectors
    default to zero, which checks a complete solution.

    Examples:
        >>> from transport_solver.data import EMPTY, Flow
        >>> result = validate_allocation([[Flow(5), EMPTY]], supply=[5], demand=[5, 0])
        >>> result.is_valid
        True
    """
    quantities = _as_matrix(allocations).quantities()
    rows, cols = len(supply), len(demand)
    if quantities.size == 0:
        quantities = np.zeros((rows, cols))
    remaining_supply = [0] * rows if remaining_supply is None else remaining_supply
    remaining_demand = [0] * cols if remaining_demand is None else remaining_demand

    errors: list[str] = []
    shipped = quantities.sum(axis=1).tolist()
    received = quantities.sum(axis=0).tolist()

    row_residuals = [supply[i] - shipped[i] - remaining_supply[i] for i in range(rows)]
    column_residuals = [demand[j] - received[j] - remaining_demand[j] for j in range(cols)]

    for i, residual in enumerate(row_residuals):
        if residual != 0:
            errors.append(
                f"Source {source_label(i)} is unbalanced: supply {supply[i]}, shipped {shipped[i]}, "
                f"remaining {remaining_supply[i]}"
            )
    for j, residual in enumerate(column_residuals):
        if residual != 0:
            errors.append(
                f"Destination {j + 1} is unbalanced: demand {demand[j]}, received {received[j]}, "
                f"remaining {remaining_demand[j]}"
            )

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        row_residuals=row_residuals,
        column_residuals=column_residuals,
    )
