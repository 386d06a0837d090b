import jax.numpy as jnp
import numpy as np
import pytest

import relax_vm as rv
from tests import harness


def test_frontier_init_seeds_current_arena():
    frontier = rv.frontier_init(4, [2, 0])
    ids, size, kind = rv.frontier_current(frontier)
    assert frontier.capacity == 4
    assert np.asarray(ids).tolist() == [2, 0, -1, -1]
    assert int(size) == 2
    assert int(kind) == rv.KIND_CODES[rv.FrontierKind.VERTEX]


def test_frontier_init_rejects_overflow():
    with pytest.raises(ValueError, match="exceed frontier capacity"):
        rv.frontier_init(2, [0, 1, 2])


def test_frontier_emit_flips_arenas():
    frontier = rv.frontier_init(4, [1, 3])
    nxt = rv.frontier_emit(frontier, jnp.array([7], dtype=jnp.int32), 1, 1)
    ids, size, kind = rv.frontier_current(nxt)
    assert int(nxt.current) == 1
    assert np.asarray(ids).tolist() == [7, -1, -1, -1]
    assert int(size) == 1
    assert int(kind) == rv.KIND_CODES[rv.FrontierKind.EDGE]
    # The arena that was read stays intact.
    assert np.asarray(nxt.buffers[0]).tolist() == [1, 3, -1, -1]
    back = rv.frontier_emit(nxt, jnp.array([0, 2], dtype=jnp.int32), 2, 0)
    assert int(back.current) == 0
    assert np.asarray(back.buffers[0]).tolist() == [0, 2, -1, -1]


@pytest.mark.parametrize(
    "work, capacity, expected",
    [(0, 8, 1), (1, 8, 1), (5, 100, 8), (8, 100, 8), (300, 100, 100)],
)
def test_launch_width(work, capacity, expected):
    assert rv.launch_width(work, capacity) == expected


def test_launch_width_respects_max_grid_size():
    assert rv.launch_width(4, 100, max_grid_size=4) == 4
    with pytest.raises(rv.LaunchError) as excinfo:
        rv.launch_width(10, 100, max_grid_size=4)
    assert excinfo.value.required == 10
    assert excinfo.value.grid == 4
    assert excinfo.value.stage == "advance"


def test_census_counts_frontier_and_edges():
    graph = harness.cycle4(undirected=True)
    frontier = rv.frontier_init(graph.frontier_capacity, [0, 2])
    census = rv._host_ints(rv.frontier_census(graph, frontier, rv.far_pile_init(0)))
    assert census == (2, 4, 0)


def test_census_maps_edge_frontier_to_heads():
    graph = rv.build([0, 2, 3, 3], [1, 2, 2])
    frontier = rv.frontier_init(graph.frontier_capacity, [0, 1], rv.FrontierKind.EDGE)
    # Edge 0 -> vertex 1 (one out-edge), edge 1 -> vertex 2 (none).
    census = rv._host_ints(rv.frontier_census(graph, frontier, rv.far_pile_init(0)))
    assert census == (2, 1, 0)


def test_advance_then_filter_expands_one_level():
    graph = rv.build([0, 3, 3, 3, 3], [1, 2, 3])
    problem = rv.BFSProblem(graph).reset(0)
    functor = problem.functor()
    width = rv.launch_width(3, graph.frontier_capacity)
    data, frontier = rv.advance_step(
        graph, problem.data, problem.frontier, functor=functor, width=width
    )
    data, frontier, _ = rv.filter_step(
        graph, data, frontier, rv.far_pile_init(0), functor=functor, width=width
    )
    ids, size, _ = rv.frontier_current(frontier)
    assert int(size) == 3
    assert sorted(np.asarray(ids)[:3].tolist()) == [1, 2, 3]
    assert np.asarray(data.labels).tolist() == [0, 1, 1, 1]
