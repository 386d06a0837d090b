import numpy as np
import pytest

import relax_vm as rv
from tests import harness


def test_bc_diamond_single_source():
    graph = harness.graph_from_edges(4, [(0, 1), (0, 2), (1, 3), (2, 3)])
    bc, stats = rv.run_bc(graph, 0)
    assert np.allclose(bc, [0.0, 0.5, 0.5, 0.0])
    assert len(stats) == 1


def test_bc_path_counts_both_directions():
    graph = harness.graph_from_edges(3, [(0, 1), (1, 2)], undirected=True)
    bc, _ = rv.run_bc(graph)
    assert np.allclose(bc, [0.0, 2.0, 0.0])


def test_bc_forward_pass_counts_shortest_paths():
    graph = harness.graph_from_edges(4, [(0, 1), (0, 2), (1, 3), (2, 3)])
    problem = rv.BCProblem(graph).reset(0)
    rv.BCEnactor().enact(problem)
    host = problem.extract()
    assert host.labels.tolist() == [0, 1, 1, 2]
    assert host.sigmas.tolist() == [1.0, 1.0, 1.0, 2.0]
    assert np.allclose(host.deltas, [3.0, 0.5, 0.5, 0.0])
    assert int(host.source) == 0


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_bc_matches_brandes(seed):
    edges, _ = harness.random_graph(seed, 12, 30)
    graph = harness.graph_from_edges(12, edges)
    bc, _ = rv.run_bc(graph)
    assert np.allclose(bc, harness.reference_bc(graph), rtol=1e-5, atol=1e-5)


def test_bc_problem_runs_one_source_per_pass():
    graph = harness.cycle4()
    problem = rv.BCProblem(graph)
    with pytest.raises(rv.MalformedGraphError) as excinfo:
        problem.reset([0, 1])
    assert excinfo.value.check == "seeds.count"
    assert excinfo.value.stage == "reset"


def test_bc_reuses_problem_across_sources():
    graph = harness.graph_from_edges(3, [(0, 1), (1, 2)], undirected=True)
    first, _ = rv.run_bc(graph, [0])
    second, _ = rv.run_bc(graph, [2])
    both, _ = rv.run_bc(graph, [0, 2])
    assert np.allclose(first + second, both)
