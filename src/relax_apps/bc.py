"""Betweenness centrality (Brandes) on the Advance/Filter operators.

Forward pass: a level-synchronous BFS that also counts shortest paths.
Every edge ``s -> d`` with ``labels[d] == labels[s] + 1`` adds ``sigma[s]``
into ``sigma[d]``; Filter drops duplicate ids so each level is expanded
once.

Backward pass: levels are replayed deepest first. For each level ``L`` the
frontier is ``{v : labels[v] == L}`` and Advance accumulates

    delta[s] += sigma[s] / sigma[d] * (1 + delta[d])

over the shortest-path edges. A final Filter over every reached vertex adds
``delta[v]`` into ``bc[v]`` (the source excluded). Scores from several
sources are summed on the host.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import NamedTuple

import jax
import jax.numpy as jnp
import numpy as np

from relax_core.atomics import atomic_min_winners, first_occurrence, sentinel_for
from relax_core.compact import INVALID_ID
from relax_core.errors import MalformedGraphError
from relax_core.host import _host_ints
from relax_core.jax_safe import drop_index, safe_gather_1d, scatter_add_drop
from relax_core.modes import FrontierKind
from relax_enactor.config import DEFAULT_ENACTOR_CONFIG, EnactorConfig
from relax_enactor.enactor import Enactor, EnactorState, EnactStats
from relax_enactor.frontier import frontier_init
from relax_enactor.functors import FunctorBase
from relax_enactor.operators import (
    advance_step,
    far_pile_init,
    filter_step,
    frontier_census,
    launch_width,
)
from relax_enactor.problem import Problem

_UNREACHED = int(np.iinfo(np.int32).max)


class BCSlice(NamedTuple):
    labels: jnp.ndarray
    sigmas: jnp.ndarray
    deltas: jnp.ndarray
    bc_values: jnp.ndarray
    source: jnp.ndarray


@dataclass(frozen=True)
class BCForwardFunctor(FunctorBase):
    def cond_edge(self, graph, data, src, dst, edge_id, valid):
        labels = data.labels
        unreached = sentinel_for(labels.dtype)
        src_label = safe_gather_1d(labels, src, "bc.src_label", valid=valid, fill=unreached)
        valid = valid & (src_label != unreached)
        candidate = jnp.where(valid, src_label + 1, unreached)
        result = atomic_min_winners(labels, dst, candidate, valid, "bc.labels")
        dst_label = safe_gather_1d(
            result.values, dst, "bc.dst_label", valid=valid, fill=unreached
        )
        # Every shortest-path edge is kept, not only the winning lane.
        keep = valid & (dst_label == candidate)
        return data._replace(labels=result.values), keep

    def apply_edge(self, graph, data, src, dst, edge_id, keep):
        sigmas = data.sigmas
        paths = safe_gather_1d(sigmas, src, "bc.sigma_src", valid=keep)
        sigmas = scatter_add_drop(
            sigmas, drop_index(dst, keep, sigmas.shape[0]), paths, "bc.sigma"
        )
        return data._replace(sigmas=sigmas)

    def cond_filter(self, graph, data, vertex, valid):
        keep = super().cond_filter(graph, data, vertex, valid)
        return first_occurrence(vertex, keep, graph.nodes, "bc.dedup")


@dataclass(frozen=True)
class BCBackwardFunctor(FunctorBase):
    def cond_edge(self, graph, data, src, dst, edge_id, valid):
        labels = data.labels
        unreached = sentinel_for(labels.dtype)
        src_label = safe_gather_1d(labels, src, "bc.back_src", valid=valid, fill=unreached)
        dst_label = safe_gather_1d(labels, dst, "bc.back_dst", valid=valid, fill=unreached)
        valid = valid & (src_label != unreached)
        return data, valid & (dst_label == src_label + 1)

    def apply_edge(self, graph, data, src, dst, edge_id, keep):
        sigma_src = safe_gather_1d(data.sigmas, src, "bc.back_sigma_src", valid=keep)
        sigma_dst = safe_gather_1d(data.sigmas, dst, "bc.back_sigma_dst", valid=keep, fill=1)
        delta_dst = safe_gather_1d(data.deltas, dst, "bc.back_delta_dst", valid=keep)
        sigma_dst = jnp.where(keep, sigma_dst, jnp.ones_like(sigma_dst))
        share = jnp.where(keep, sigma_src / sigma_dst * (1 + delta_dst), 0)
        deltas = scatter_add_drop(
            data.deltas,
            drop_index(src, keep, data.deltas.shape[0]),
            share.astype(data.deltas.dtype),
            "bc.delta",
        )
        return data._replace(deltas=deltas)


@dataclass(frozen=True)
class BCAccumulateFunctor(FunctorBase):
    def cond_edge(self, graph, data, src, dst, edge_id, valid):
        return data, jnp.zeros_like(valid)

    def apply_filter(self, graph, data, vertex, keep):
        keep = keep & (vertex != data.source)
        dependency = safe_gather_1d(data.deltas, vertex, "bc.accumulate", valid=keep)
        bc_values = scatter_add_drop(
            data.bc_values,
            drop_index(vertex, keep, data.bc_values.shape[0]),
            dependency,
            "bc.values",
        )
        return data._replace(bc_values=bc_values)


class BCProblem(Problem):
    algorithm = "bc"

    def __init__(
        self, graph, config: EnactorConfig = DEFAULT_ENACTOR_CONFIG, *, value_dtype=None
    ):
        self.value_dtype = jnp.dtype(jnp.float32 if value_dtype is None else value_dtype)
        super().__init__(graph, config)

    def _allocate(self) -> BCSlice:
        nodes = self.graph.nodes
        return BCSlice(
            labels=jnp.full((nodes,), _UNREACHED, dtype=jnp.int32),
            sigmas=jnp.zeros((nodes,), dtype=self.value_dtype),
            deltas=jnp.zeros((nodes,), dtype=self.value_dtype),
            bc_values=jnp.zeros((nodes,), dtype=self.value_dtype),
            source=jnp.int32(INVALID_ID),
        )

    def _reset_slice(self, seeds) -> BCSlice:
        if seeds.shape[0] > 1:
            raise MalformedGraphError(
                "betweenness runs one source per pass", check="seeds.count", stage="reset"
            )
        data = self._allocate()
        if seeds.shape[0] == 0:
            return data
        return data._replace(
            labels=data.labels.at[seeds].set(0),
            sigmas=data.sigmas.at[seeds].set(1),
            source=seeds[0].astype(jnp.int32),
        )


class BCEnactor(Enactor):
    """Forward Advance/Filter loop, then the level-by-level backward sweep."""

    def __init__(self, config: EnactorConfig | None = None):
        super().__init__(BCForwardFunctor(), config)

    def enact(self, problem, max_iterations: int | None = None) -> EnactStats:
        forward = super().enact(problem, max_iterations)
        cfg = self._config_for(problem)
        problem._resume_enact()
        start = time.perf_counter()
        data = problem.data
        ok = False
        try:
            data, passes, edges = self._backward(problem, cfg)
            ok = True
        except Exception:
            self.state = EnactorState.FAILED
            raise
        finally:
            problem._finish(data, problem.frontier, ok=ok)
        self.iteration = forward.iterations + passes
        return forward._replace(
            iterations=self.iteration,
            elapsed=forward.elapsed + time.perf_counter() - start,
            edges_visited=forward.edges_visited + edges,
        )

    def _backward(self, problem, cfg: EnactorConfig):
        graph = problem.graph
        data = problem.data
        capacity = graph.frontier_capacity
        far = far_pile_init(0)
        labels = np.asarray(jax.device_get(data.labels))
        reached = np.flatnonzero(labels != _UNREACHED).astype(np.int32)
        if reached.size == 0:
            return data, 0, 0
        passes = 0
        edges = 0
        backward = BCBackwardFunctor()
        for level in range(int(labels[reached].max()) - 1, -1, -1):
            frontier = frontier_init(capacity, np.flatnonzero(labels == level))
            _, work, _ = self._launch(
                "census", lambda: _host_ints(frontier_census(graph, frontier, far))
            )
            if work == 0:
                continue
            width = launch_width(work, capacity, cfg.max_grid_size, stage="backward")
            data, _ = self._launch(
                "backward",
                advance_step,
                graph,
                data,
                frontier,
                functor=backward,
                width=width,
                output_kind=FrontierKind.VERTEX,
            )
            passes += 1
            edges += work
        frontier = frontier_init(capacity, reached)
        width = launch_width(reached.size, capacity, cfg.max_grid_size, stage="accumulate")
        data, _, _ = self._launch(
            "accumulate",
            filter_step,
            graph,
            data,
            frontier,
            far,
            functor=BCAccumulateFunctor(),
            width=width,
        )
        data = self._launch("accumulate", jax.block_until_ready, data)
        return data, passes, edges


def run_bc(
    graph,
    sources=None,
    config: EnactorConfig = DEFAULT_ENACTOR_CONFIG,
    *,
    value_dtype=None,
    max_iterations: int | None = None,
):
    """Sum betweenness over ``sources`` (every vertex when None).

    Returns ``(bc_values, stats)`` with one EnactStats per source.
    """
    problem = BCProblem(graph, config, value_dtype=value_dtype)
    if sources is None:
        sources = range(graph.nodes)
    elif np.ndim(sources) == 0:
        sources = [sources]
    total = np.zeros((graph.nodes,), dtype=problem.value_dtype)
    stats = []
    enactor = BCEnactor(config)
    for source in sources:
        problem.reset([int(source)])
        stats.append(enactor.enact(problem, max_iterations))
        total += problem.extract().bc_values
    return total, tuple(stats)


__all__ = [
    "BCSlice",
    "BCForwardFunctor",
    "BCBackwardFunctor",
    "BCAccumulateFunctor",
    "BCProblem",
    "BCEnactor",
    "run_bc",
]
