from __future__ import annotations

from typing import Protocol, Tuple, runtime_checkable

import jax.numpy as jnp

# dataflow-bundle: graph, data, src, dst, edge_id, valid
# dataflow-bundle: graph, data, vertex, valid


@runtime_checkable
class Functor(Protocol):
    """Capability set every algorithm plugs into the enactor.

    All methods are vectorised over lanes and must be pure: they receive the
    graph and the data slice and return new arrays. Implementations hold no
    per-run state of their own.
    """

    def cond_edge(
        self, graph, data, src: jnp.ndarray, dst: jnp.ndarray, edge_id: jnp.ndarray,
        valid: jnp.ndarray,
    ) -> Tuple[object, jnp.ndarray]:
        ...

    def apply_edge(
        self, graph, data, src: jnp.ndarray, dst: jnp.ndarray, edge_id: jnp.ndarray,
        keep: jnp.ndarray,
    ) -> object:
        ...

    def cond_filter(self, graph, data, vertex: jnp.ndarray, valid: jnp.ndarray) -> jnp.ndarray:
        ...

    def apply_filter(self, graph, data, vertex: jnp.ndarray, keep: jnp.ndarray) -> object:
        ...


@runtime_checkable
class PriorityFunctor(Functor, Protocol):
    def compute_priority_score(self, graph, data, vertex: jnp.ndarray) -> jnp.ndarray:
        ...


def supports_priority(functor) -> bool:
    return isinstance(functor, PriorityFunctor)


__all__ = [
    "Functor",
    "PriorityFunctor",
    "supports_priority",
]
