from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

import jax.numpy as jnp

from relax_core.atomics import atomic_min_winners, saturating_add, sentinel_for
from relax_core.compact import INVALID_ID
from relax_core.jax_safe import drop_index, safe_gather_1d, scatter_set_drop
from relax_enactor.config import DEFAULT_ENACTOR_CONFIG, EnactorConfig
from relax_enactor.enactor import Enactor
from relax_enactor.functors import FunctorBase
from relax_enactor.problem import Problem


class PathSlice(NamedTuple):
    labels: jnp.ndarray
    preds: jnp.ndarray
    delta: jnp.ndarray


@dataclass(frozen=True)
class BFSFunctor(FunctorBase):
    """Unit-weight relaxation: ``labels[d] = min(labels[d], labels[s] + 1)``."""

    mark_paths: bool = False

    def _edge_cost(self, graph, edge_id, valid, dtype):
        return jnp.ones(edge_id.shape, dtype=dtype)

    def cond_edge(self, graph, data, src, dst, edge_id, valid):
        labels = data.labels
        unreached = sentinel_for(labels.dtype)
        src_label = safe_gather_1d(labels, src, "relax.src_label", valid=valid, fill=unreached)
        valid = valid & (src_label != unreached)
        cost = self._edge_cost(graph, edge_id, valid, labels.dtype)
        candidate = jnp.where(valid, saturating_add(src_label, cost), unreached)
        result = atomic_min_winners(labels, dst, candidate, valid, "relax.labels")
        return data._replace(labels=result.values), result.won

    def apply_edge(self, graph, data, src, dst, edge_id, keep):
        if not self.mark_paths:
            return data
        # Unordered write; not re-checked against the final label of dst.
        preds = scatter_set_drop(
            data.preds, drop_index(dst, keep, data.preds.shape[0]), src, "relax.preds"
        )
        return data._replace(preds=preds)


class BFSProblem(Problem):
    algorithm = "bfs"
    default_label_dtype = jnp.int32

    def __init__(
        self, graph, config: EnactorConfig = DEFAULT_ENACTOR_CONFIG, *, label_dtype=None
    ):
        self.label_dtype = jnp.dtype(
            self.default_label_dtype if label_dtype is None else label_dtype
        )
        super().__init__(graph, config)

    def _allocate(self) -> PathSlice:
        nodes = self.graph.nodes
        pred_len = nodes if self.config.mark_paths else 0
        return PathSlice(
            labels=jnp.full((nodes,), sentinel_for(self.label_dtype), dtype=self.label_dtype),
            preds=jnp.full((pred_len,), INVALID_ID, dtype=jnp.int32),
            delta=jnp.asarray(self.config.delta, dtype=jnp.float32),
        )

    def _reset_slice(self, seeds) -> PathSlice:
        data = self._allocate()
        labels = data.labels.at[seeds].set(jnp.zeros((), dtype=self.label_dtype))
        return data._replace(labels=labels)

    def functor(self) -> BFSFunctor:
        return BFSFunctor(mark_paths=bool(self.config.mark_paths))


def run_bfs(
    graph,
    source=0,
    config: EnactorConfig = DEFAULT_ENACTOR_CONFIG,
    *,
    max_iterations: int | None = None,
):
    """BFS from ``source`` (an id or a sequence of ids); returns (slice, stats)."""
    problem = BFSProblem(graph, config)
    problem.reset(source)
    stats = Enactor(problem.functor(), config).enact(problem, max_iterations)
    return problem.extract(), stats


__all__ = [
    "PathSlice",
    "BFSFunctor",
    "BFSProblem",
    "run_bfs",
]
