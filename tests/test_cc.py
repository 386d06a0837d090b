import numpy as np
import pytest

import relax_vm as rv
from tests import harness


def _reference_components(graph):
    adj = harness.host_adjacency(graph)
    comp = list(range(len(adj)))
    for v in range(len(adj)):
        if comp[v] != v:
            continue
        stack = [v]
        while stack:
            u = stack.pop()
            for d, _ in adj[u]:
                if comp[d] == d and d != v:
                    comp[d] = v
                    stack.append(d)
    return comp


def test_two_triangles_histogram():
    host, _ = rv.run_cc(harness.two_triangles())
    assert host.component_ids.tolist() == [0, 0, 0, 3, 3, 3]
    roots, counts = rv.compute_histogram(host.component_ids)
    assert roots.tolist() == [0, 3]
    assert counts.tolist() == [3, 3]


def test_isolated_vertices_are_their_own_component():
    graph = rv.build([0, 0, 0, 0], [])
    host, stats = rv.run_cc(graph)
    assert stats.iterations == 0
    assert host.component_ids.tolist() == [0, 1, 2]


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_cc_matches_reference(seed):
    edges, _ = harness.random_graph(seed, 20, 14)
    graph = harness.graph_from_edges(20, edges, undirected=True)
    host, _ = rv.run_cc(graph)
    comp = host.component_ids
    assert comp.tolist() == _reference_components(graph)
    roots, counts = rv.compute_histogram(comp)
    assert int(counts.sum()) == graph.nodes
    assert all(int(comp[r]) == int(r) for r in roots)


def test_long_path_converges_to_min_id():
    num_nodes = 17
    edges = [(i, i + 1) for i in range(num_nodes - 1)]
    graph = harness.graph_from_edges(num_nodes, edges, undirected=True)
    host, stats = rv.run_cc(graph)
    assert host.component_ids.tolist() == [0] * num_nodes
    assert stats.iterations <= num_nodes


def test_compute_histogram_empty():
    roots, counts = rv.compute_histogram(np.zeros((0,), dtype=np.int32))
    assert roots.size == 0
    assert counts.size == 0


def test_compute_histogram_rejects_foreign_ids():
    with pytest.raises(ValueError):
        rv.compute_histogram(np.array([0, 5], dtype=np.int32))


def test_largest_components_sorted_stably():
    roots = np.array([0, 2, 5, 7])
    counts = np.array([2, 4, 2, 4])
    top_roots, top_counts = rv.largest_components(roots, counts)
    assert top_roots.tolist() == [2, 7, 0, 5]
    assert top_counts.tolist() == [4, 4, 2, 2]
    top_roots, _ = rv.largest_components(roots, counts, k=1)
    assert top_roots.tolist() == [2]
