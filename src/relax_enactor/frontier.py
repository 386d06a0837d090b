"""Double-buffered frontier.

Two fixed-capacity arenas of ids plus a ``current`` index. An operator reads
``buffers[current]`` and writes ``buffers[1 - current]``, then flips the
index, so the wave being read is never the wave being written.
"""

from __future__ import annotations

from typing import NamedTuple

import jax.numpy as jnp

from relax_core.compact import INVALID_ID
from relax_core.modes import FrontierKind, frontier_kind_code


class Frontier(NamedTuple):
    buffers: jnp.ndarray
    sizes: jnp.ndarray
    kinds: jnp.ndarray
    current: jnp.ndarray

    @property
    def capacity(self) -> int:
        return int(self.buffers.shape[1])


def frontier_init(capacity: int, seeds, kind: FrontierKind | str = FrontierKind.VERTEX) -> Frontier:
    capacity = max(int(capacity), 1)
    seeds = jnp.asarray(seeds, dtype=jnp.int32).reshape(-1)
    count = int(seeds.shape[0])
    if count > capacity:
        raise ValueError(f"{count} seeds exceed frontier capacity {capacity}")
    row = jnp.full((capacity,), INVALID_ID, dtype=jnp.int32).at[:count].set(seeds)
    buffers = jnp.stack([row, jnp.full((capacity,), INVALID_ID, dtype=jnp.int32)])
    code = frontier_kind_code(kind)
    return Frontier(
        buffers=buffers,
        sizes=jnp.array([count, 0], dtype=jnp.int32),
        kinds=jnp.array([code, code], dtype=jnp.int32),
        current=jnp.int32(0),
    )


def frontier_current(frontier: Frontier):
    """Return (ids, size, kind_code) of the wave being read."""
    cur = frontier.current
    return frontier.buffers[cur], frontier.sizes[cur], frontier.kinds[cur]


def frontier_emit(frontier: Frontier, ids, count, kind_code) -> Frontier:
    """Write ``ids`` into the idle arena and make it current.

    ``ids`` may be shorter than the capacity; the remaining lanes are
    cleared to INVALID_ID.
    """
    nxt = jnp.int32(1) - frontier.current
    capacity = frontier.buffers.shape[1]
    width = ids.shape[0]
    row = jnp.full((capacity,), INVALID_ID, dtype=jnp.int32)
    row = row.at[:width].set(ids.astype(jnp.int32))
    return Frontier(
        buffers=frontier.buffers.at[nxt].set(row),
        sizes=frontier.sizes.at[nxt].set(jnp.asarray(count, dtype=jnp.int32)),
        kinds=frontier.kinds.at[nxt].set(jnp.asarray(kind_code, dtype=jnp.int32)),
        current=nxt,
    )


__all__ = [
    "Frontier",
    "frontier_init",
    "frontier_current",
    "frontier_emit",
]
