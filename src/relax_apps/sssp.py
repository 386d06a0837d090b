"""Single-source shortest paths over weighted CSR edges.

Same relaxation as BFS with ``edge_values`` as costs (unit costs when the
graph is unweighted). With ``EnactorConfig(priority=True)`` the enactor runs
it delta-stepping style: vertices are bucketed by ``floor(label / delta)``
(raw label when ``delta == 0``) and only the lowest bucket is expanded.
"""

from __future__ import annotations

from dataclasses import dataclass

import jax.numpy as jnp
import numpy as np

from relax_core.errors import MalformedGraphError
from relax_core.jax_safe import safe_gather_1d
from relax_enactor.config import DEFAULT_ENACTOR_CONFIG, EnactorConfig
from relax_enactor.enactor import Enactor
from relax_enactor.functors import edge_weights
from relax_apps.bfs import BFSFunctor, BFSProblem


def priority_scores(labels, delta):
    """Bucket score per label: ``labels / delta``, or ``labels`` when delta is 0."""
    labels = jnp.asarray(labels).astype(jnp.float32)
    delta = jnp.asarray(delta, dtype=jnp.float32)
    safe = jnp.where(delta > 0, delta, jnp.float32(1))
    return jnp.where(delta > 0, labels / safe, labels)


@dataclass(frozen=True)
class SSSPFunctor(BFSFunctor):
    def _edge_cost(self, graph, edge_id, valid, dtype):
        return edge_weights(graph, edge_id, valid, dtype)

    def compute_priority_score(self, graph, data, vertex):
        labels = safe_gather_1d(data.labels, vertex, "sssp.priority")
        return priority_scores(labels, data.delta)


class SSSPProblem(BFSProblem):
    algorithm = "sssp"

    def __init__(
        self, graph, config: EnactorConfig = DEFAULT_ENACTOR_CONFIG, *, label_dtype=None
    ):
        if label_dtype is None:
            label_dtype = graph.edge_values.dtype if graph.weighted else jnp.int32
        super().__init__(graph, config, label_dtype=label_dtype)

    def functor(self) -> SSSPFunctor:
        return SSSPFunctor(mark_paths=bool(self.config.mark_paths))


def check_edge_values(graph) -> None:
    """Reject negative weights; relaxation assumes non-negative costs."""
    if not graph.weighted or graph.edges == 0:
        return
    values = np.asarray(graph.to_host()["edge_values"])
    if values.min() < 0:
        raise MalformedGraphError(
            "sssp requires non-negative edge values", check="edge_values.sign"
        )


def run_sssp(
    graph,
    source=0,
    config: EnactorConfig = DEFAULT_ENACTOR_CONFIG,
    *,
    label_dtype=None,
    max_iterations: int | None = None,
):
    check_edge_values(graph)
    problem = SSSPProblem(graph, config, label_dtype=label_dtype)
    problem.reset(source)
    stats = Enactor(problem.functor(), config).enact(problem, max_iterations)
    return problem.extract(), stats


__all__ = [
    "priority_scores",
    "SSSPFunctor",
    "SSSPProblem",
    "check_edge_values",
    "run_sssp",
]
