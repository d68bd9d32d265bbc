"""Solve the textbook transportation example and store the result."""

from __future__ import annotations

from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from transport_solver import load_problem, save_result, solve_problem  # noqa: E402
from transport_solver.data import Phase  # noqa: E402


def main() -> None:
    base_dir = Path(__file__).resolve().parent
    problem_path = base_dir / "textbook_transport_problem.json"
    output_path = base_dir / "textbook_transport_solution.json"

    problem = load_problem(problem_path)
    result = solve_problem(problem)
    save_result(output_path, result)

    for index, step in enumerate(result.steps):
        print(f"[{index:2d}] {step.phase.value:<14} {step.note}")
        if step.phase in (Phase.REFINEMENT, Phase.BASIS_CHANGE) and step.deltas:
            for entry in step.deltas:
                print(f"       {entry.formula}")
    print(
        f"Solved {problem_path.name}: status={result.status}, "
        f"objective={result.objective}"
    )


if __name__ == "__main__":
    main()
