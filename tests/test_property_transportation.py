import sys
from pathlib import Path
from typing import List, Tuple

import pytest

hypothesis = pytest.importorskip("hypothesis")
nx = pytest.importorskip("networkx")
from hypothesis import HealthCheck, given, settings  # type: ignore  # noqa: E402
from hypothesis import strategies as st  # type: ignore  # noqa: E402

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from transport_solver.data import Phase  # noqa: E402
from transport_solver.solver import solve_transportation  # noqa: E402
from transport_solver.utils import count_basic_cells, total_cost, validate_allocation  # noqa: E402

Instance = Tuple[List[List[int]], List[int], List[int]]


@st.composite
def _transport_instances(draw) -> Instance:
    # Small balanced instances; zero supplies and demands exercise degeneracy.
    rows = draw(st.integers(min_value=1, max_value=4))
    cols = draw(st.integers(min_value=1, max_value=4))
    costs = [
        [draw(st.integers(min_value=0, max_value=20)) for _ in range(cols)] for _ in range(rows)
    ]
    supply = [draw(st.integers(min_value=0, max_value=15)) for _ in range(rows)]

    remaining = sum(supply)
    demand: List[int] = []
    for idx in range(cols):
        if idx == cols - 1:
            amount = remaining
        else:
            amount = draw(st.integers(min_value=0, max_value=remaining))
        remaining -= amount
        demand.append(amount)

    return costs, supply, demand


def _networkx_optimum(costs, supply, demand):
    graph = nx.DiGraph()
    for i, amount in enumerate(supply):
        graph.add_node(("source", i), demand=-amount)
    for j, amount in enumerate(demand):
        graph.add_node(("destination", j), demand=amount)
    for i, row in enumerate(costs):
        for j, cost in enumerate(row):
            graph.add_edge(("source", i), ("destination", j), weight=cost)
    return nx.min_cost_flow_cost(graph)


@settings(max_examples=75, suppress_health_check=[HealthCheck.too_slow], deadline=None)
@given(_transport_instances())
def test_every_step_conserves_supply_and_demand(instance: Instance):
    costs, supply, demand = instance
    result = solve_transportation(costs, supply, demand)

    assert result.status == "optimal"
    for step in result.steps:
        check = validate_allocation(step.allocations, supply, demand, step.supply, step.demand)
        assert check.is_valid, check.errors
        assert step.total_cost == total_cost(step.allocations, costs)


@settings(max_examples=75, suppress_health_check=[HealthCheck.too_slow], deadline=None)
@given(_transport_instances())
def test_basic_solution_has_full_basis(instance: Instance):
    costs, supply, demand = instance
    result = solve_transportation(costs, supply, demand)

    (basic,) = [step for step in result.steps if step.phase is Phase.BASIC_SOLUTION]
    assert count_basic_cells(basic.allocations) == len(supply) + len(demand) - 1


@settings(max_examples=75, suppress_health_check=[HealthCheck.too_slow], deadline=None)
@given(_transport_instances())
def test_refinement_strictly_lowers_the_cost(instance: Instance):
    costs, supply, demand = instance
    result = solve_transportation(costs, supply, demand)

    basic_index = next(
        index for index, step in enumerate(result.steps) if step.phase is Phase.BASIC_SOLUTION
    )
    previous = result.steps[basic_index].total_cost
    for step in result.steps[basic_index + 1 :]:
        if step.phase is Phase.REFINEMENT:
            assert step.total_cost < previous
            previous = step.total_cost

    assert result.objective <= result.steps[basic_index].total_cost
    assert result.iterations == sum(
        1 for step in result.steps if step.phase is Phase.REFINEMENT
    )
    assert result.basis_changes == sum(
        1 for step in result.steps if step.phase is Phase.BASIS_CHANGE
    )


@settings(max_examples=75, suppress_health_check=[HealthCheck.too_slow], deadline=None)
@given(_transport_instances())
def test_final_solution_has_no_applicable_improvement(instance: Instance):
    costs, supply, demand = instance
    result = solve_transportation(costs, supply, demand)

    assert result.final_step.phase is Phase.OPTIMAL
    for entry in result.final_step.deltas:
        assert entry.delta >= 0
    assert result.objective == total_cost(result.allocations, costs)


@settings(max_examples=50, suppress_health_check=[HealthCheck.too_slow], deadline=None)
@given(_transport_instances())
def test_objective_is_bounded_by_network_simplex(instance: Instance):
    # Property: no allocation can beat the true optimum.
    costs, supply, demand = instance
    result = solve_transportation(costs, supply, demand)

    assert result.objective >= _networkx_optimum(costs, supply, demand)


def _is_spanning_tree(allocations, rows: int, cols: int) -> bool:
    graph = nx.Graph()
    graph.add_nodes_from(("source", i) for i in range(rows))
    graph.add_nodes_from(("destination", j) for j in range(cols))
    graph.add_edges_from(
        (("source", i), ("destination", j))
        for i, row in enumerate(allocations)
        for j, cell in enumerate(row)
        if cell.is_basic
    )
    return graph.number_of_edges() == rows + cols - 1 and nx.is_connected(graph)


@settings(max_examples=75, suppress_health_check=[HealthCheck.too_slow], deadline=None)
@given(_transport_instances())
def test_spanning_tree_basis_reaches_network_simplex_optimum(instance: Instance):
    # Property: with a connected basis, non-negative deltas certify optimality.
    costs, supply, demand = instance
    result = solve_transportation(costs, supply, demand)

    if _is_spanning_tree(result.allocations, len(supply), len(demand)):
        assert result.objective == _networkx_optimum(costs, supply, demand)
