import json
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from transport_solver.data import EMPTY, EPSILON, Flow, TransportResult  # noqa: E402
from transport_solver.exceptions import (  # noqa: E402
    ImbalanceError,
    InvalidProblemError,
    ShapeError,
)
from transport_solver.io import load_problem, save_result  # noqa: E402
from transport_solver.solver import solve_problem  # noqa: E402

# These tests pin the JSON contract implemented by transport_solver.io.


def _write_payload(tmp_path: Path, payload: dict) -> Path:
    path = tmp_path / "problem.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_load_problem_reads_costs_supply_demand(tmp_path: Path):
    payload = {
        "costs": [[4, 6], [5, 3]],
        "supply": [10, 10],
        "demand": [12, 8],
    }

    problem = load_problem(_write_payload(tmp_path, payload))

    assert problem.costs == [[4, 6], [5, 3]]
    assert problem.supply == [10, 10]
    assert problem.demand == [12, 8]
    assert problem.shape == (2, 2)


def test_load_problem_ignores_extra_keys(tmp_path: Path):
    # Descriptive metadata alongside the instance must not break loading.
    payload = {
        "name": "single lane",
        "costs": [[7]],
        "supply": [5],
        "demand": [5],
    }
    assert load_problem(_write_payload(tmp_path, payload)).shape == (1, 1)


@pytest.mark.parametrize("missing", ["costs", "supply", "demand"])
def test_load_problem_requires_all_keys(tmp_path: Path, missing: str):
    payload = {"costs": [[1]], "supply": [1], "demand": [1]}
    del payload[missing]

    with pytest.raises(InvalidProblemError, match="Invalid problem format"):
        load_problem(_write_payload(tmp_path, payload))


def test_load_problem_rejects_flat_cost_list(tmp_path: Path):
    payload = {"costs": [1, 2], "supply": [3], "demand": [1, 2]}

    with pytest.raises(InvalidProblemError, match="every entry of 'costs' must be a list"):
        load_problem(_write_payload(tmp_path, payload))


def test_load_problem_validates_balance(tmp_path: Path):
    payload = {"costs": [[4, 6], [5, 3]], "supply": [10, 10], "demand": [15, 10]}

    with pytest.raises(ImbalanceError) as exc_info:
        load_problem(_write_payload(tmp_path, payload))

    assert exc_info.value.total_supply == 20
    assert exc_info.value.total_demand == 25


def test_load_problem_validates_shape(tmp_path: Path):
    payload = {"costs": [[1, 2], [3]], "supply": [1, 2], "demand": [2, 1]}

    with pytest.raises(ShapeError):
        load_problem(_write_payload(tmp_path, payload))


def test_load_problem_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_problem(tmp_path / "does_not_exist.json")


def test_save_result_writes_sorted_flows(tmp_path: Path):
    result = TransportResult(
        status="optimal",
        allocations=((EMPTY, Flow(5), EPSILON), (Flow(4), EMPTY, Flow(1))),
        objective=42,
        iterations=3,
        basis_changes=1,
    )
    path = tmp_path / "result.json"

    save_result(path, result)

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved == {
        "status": "optimal",
        "objective": 42,
        "iterations": 3,
        "basis_changes": 1,
        "flows": [
            {"source": 0, "destination": 1, "quantity": 5},
            {"source": 1, "destination": 0, "quantity": 4},
            {"source": 1, "destination": 2, "quantity": 1},
        ],
        "epsilon_cells": [{"source": 0, "destination": 2}],
        "steps": 0,
        "error": None,
    }


def test_save_result_of_failed_solve(tmp_path: Path):
    # Failed solves are still persisted with their status and message.
    payload = {"costs": [[4, 6], [5, 3]], "supply": [10, 10], "demand": [12, 8]}
    problem = load_problem(_write_payload(tmp_path, payload))
    problem.demand[0] = 13
    result = solve_problem(problem)
    path = tmp_path / "result.json"

    save_result(path, result)

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["status"] == "imbalanced"
    assert saved["objective"] is None
    assert saved["flows"] == []
    assert saved["steps"] == 1
    assert "unbalanced" in saved["error"]


def test_round_trip_through_solver(tmp_path: Path):
    payload = {"costs": [[4, 6], [5, 3]], "supply": [10, 10], "demand": [12, 8]}
    result = solve_problem(load_problem(_write_payload(tmp_path, payload)))
    path = tmp_path / "result.json"

    save_result(path, result)

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["status"] == "optimal"
    assert saved["objective"] == 74
    assert saved["iterations"] == 0
    assert saved["steps"] == 5
    assert saved["flows"] == [
        {"source": 0, "destination": 0, "quantity": 10},
        {"source": 1, "destination": 0, "quantity": 2},
        {"source": 1, "destination": 1, "quantity": 8},
    ]
