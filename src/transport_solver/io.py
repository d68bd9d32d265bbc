"""File I/O helpers for transportation problems."""

from __future__ import annotations

import json
from collections.abc import MutableMapping
from pathlib import Path
from typing import Any

from .data import TransportProblem, TransportResult, build_problem
from .exceptions import InvalidProblemError


def load_problem(path: str | Path) -> TransportProblem:
    """Load a transportation instance from a JSON file."""
    with Path(path).open("r", encoding="utf-8") as fh:
        payload: MutableMapping[str, Any] = json.load(fh)
    costs = payload.get("costs")
    supply = payload.get("supply")
    demand = payload.get("demand")
    if not isinstance(costs, list) or not isinstance(supply, list) or not isinstance(demand, list):
        raise InvalidProblemError(
            "Invalid problem format: JSON must include 'costs' (list of rows), 'supply' and "
            f"'demand' arrays. Got costs type: {type(costs).__name__}, supply type: "
            f"{type(supply).__name__}, demand type: {type(demand).__name__}"
        )
    if not all(isinstance(row, list) for row in costs):
        raise InvalidProblemError("Invalid problem format: every entry of 'costs' must be a list.")
    # Defer to the core builder so validation rules remain centralized in one place.
    return build_problem(costs=costs, supply=supply, demand=demand)


def save_result(path: str | Path, result: TransportResult) -> None:
    """Persist a solver result to JSON."""
    # Sort flow entries for deterministic output that is easy to diff in fixtures.
    data = {
        "status": result.status,
        "objective": result.objective,
        "iterations": result.iterations,
        "basis_changes": result.basis_changes,
        "flows": [
            {"source": source, "destination": destination, "quantity": quantity}
            for (source, destination), quantity in sorted(result.flows.items())
        ],
        "epsilon_cells": [
            {"source": source, "destination": destination}
            for source, destination in sorted(result.epsilon_cells)
        ],
        "steps": len(result.steps),
        "error": str(result.error) if result.error is not None else None,
    }
    with Path(path).open("w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2, sort_keys=False)
