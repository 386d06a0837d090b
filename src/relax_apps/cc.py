"""Connected components by min-label propagation with pointer jumping.

Every vertex starts as its own component. Advance pushes ``comp[s]`` over
each edge with an atomic minimum; Filter then shortcuts every lowered vertex
once (``comp[v] = comp[comp[v]]``). Since ``comp[v] <= v`` always holds, the
fixpoint labels each component with its smallest vertex id. The graph is
expected to be undirected (``build(..., undirected=True)``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

import jax.numpy as jnp
import numpy as np

from relax_core.atomics import atomic_min_winners
from relax_core.jax_safe import drop_index, safe_gather_1d, scatter_set_drop
from relax_enactor.config import DEFAULT_ENACTOR_CONFIG, EnactorConfig
from relax_enactor.enactor import Enactor
from relax_enactor.functors import FunctorBase
from relax_enactor.problem import Problem


class CCSlice(NamedTuple):
    component_ids: jnp.ndarray


@dataclass(frozen=True)
class CCFunctor(FunctorBase):
    def cond_edge(self, graph, data, src, dst, edge_id, valid):
        comp = data.component_ids
        candidate = safe_gather_1d(comp, src, "cc.src_comp", valid=valid)
        result = atomic_min_winners(comp, dst, candidate, valid, "cc.comp")
        return data._replace(component_ids=result.values), result.won

    def apply_filter(self, graph, data, vertex, keep):
        comp = data.component_ids
        parent = safe_gather_1d(comp, vertex, "cc.parent", valid=keep)
        grand = safe_gather_1d(comp, parent, "cc.grand", valid=keep)
        comp = scatter_set_drop(
            comp, drop_index(vertex, keep, comp.shape[0]), grand, "cc.jump"
        )
        return data._replace(component_ids=comp)


class CCProblem(Problem):
    algorithm = "cc"

    def _allocate(self) -> CCSlice:
        return CCSlice(component_ids=jnp.arange(self.graph.nodes, dtype=jnp.int32))

    def _reset_slice(self, seeds) -> CCSlice:
        return self._allocate()

    def _default_seeds(self) -> np.ndarray:
        return np.arange(self.graph.nodes, dtype=np.int32)

    def functor(self) -> CCFunctor:
        return CCFunctor()


def compute_histogram(component_ids):
    """Group vertices by representative.

    Returns ``(roots, counts)`` as host arrays, one entry per distinct
    component id, ordered by id.
    """
    ids = np.asarray(component_ids).reshape(-1)
    if ids.size == 0:
        return np.zeros((0,), dtype=np.int32), np.zeros((0,), dtype=np.int64)
    if not np.issubdtype(ids.dtype, np.integer):
        raise ValueError(f"component ids must be integers, got {ids.dtype}")
    if ids.min() < 0 or ids.max() >= ids.size:
        raise ValueError(f"component ids must lie in [0, {ids.size})")
    counts = np.bincount(ids, minlength=ids.size)
    roots = np.flatnonzero(counts)
    return roots.astype(ids.dtype), counts[roots]


def largest_components(roots, counts, k: int | None = None):
    """Components ordered by size, largest first (ties keep root order)."""
    roots = np.asarray(roots)
    counts = np.asarray(counts)
    order = np.argsort(-counts, kind="stable")
    if k is not None:
        order = order[: max(int(k), 0)]
    return roots[order], counts[order]


def run_cc(
    graph,
    config: EnactorConfig = DEFAULT_ENACTOR_CONFIG,
    *,
    max_iterations: int | None = None,
):
    problem = CCProblem(graph, config)
    problem.reset()
    stats = Enactor(problem.functor(), config).enact(problem, max_iterations)
    return problem.extract(), stats


__all__ = [
    "CCSlice",
    "CCFunctor",
    "CCProblem",
    "compute_histogram",
    "largest_components",
    "run_cc",
]
