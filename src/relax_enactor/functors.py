from __future__ import annotations

from dataclasses import dataclass

import jax.numpy as jnp

from relax_core.compact import INVALID_ID
from relax_core.jax_safe import safe_gather_1d


@dataclass(frozen=True)
class FunctorBase:
    """Defaults for the optional halves of the capability set.

    Subclasses override ``cond_edge`` at minimum. The defaults keep every
    lane that is valid and not the sentinel id, and leave the data slice
    untouched.
    """

    def cond_edge(self, graph, data, src, dst, edge_id, valid):
        raise NotImplementedError(f"{type(self).__name__}.cond_edge")

    def apply_edge(self, graph, data, src, dst, edge_id, keep):
        return data

    def cond_filter(self, graph, data, vertex, valid):
        return valid & (vertex != INVALID_ID)

    def apply_filter(self, graph, data, vertex, keep):
        return data


def edge_weights(graph, edge_id, valid, dtype):
    """Per-lane weights; unit weights when the graph carries none."""
    if graph.edge_values is None:
        return jnp.ones(edge_id.shape, dtype=dtype)
    w = safe_gather_1d(graph.edge_values, edge_id, "edge_weights", valid=valid)
    return w.astype(dtype)


__all__ = [
    "FunctorBase",
    "edge_weights",
]
