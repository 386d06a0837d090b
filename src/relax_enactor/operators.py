"""Advance and Filter: the two parallel operators the enactor drives.

Both are jitted with the functor and the launch width as static arguments,
so each (functor, width) pair compiles once. Launch widths are powers of two
(see ``launch_width``), which bounds recompilation to log2(capacity) sizes.
"""

from __future__ import annotations

from functools import partial
from typing import NamedTuple

import jax
import jax.numpy as jnp

from relax_core.compact import (
    DEFAULT_COMPACT_CONFIG,
    INVALID_ID,
    CompactConfig,
    compact_ids,
    ids_from_mask,
)
from relax_core.errors import LaunchError
from relax_core.jax_safe import drop_index, safe_gather_1d, scatter_set_drop
from relax_core.modes import KIND_CODES, FrontierKind
from relax_enactor.frontier import Frontier, frontier_current, frontier_emit

_EDGE_CODE = KIND_CODES[FrontierKind.EDGE]


class FarPile(NamedTuple):
    ids: jnp.ndarray
    size: jnp.ndarray


def far_pile_init(capacity: int) -> FarPile:
    return FarPile(
        ids=jnp.full((max(int(capacity), 0),), INVALID_ID, dtype=jnp.int32),
        size=jnp.int32(0),
    )


def launch_width(work: int, capacity: int, max_grid_size: int = 0, *, stage: str = "advance") -> int:
    """Lanes to launch for ``work`` items (next power of two, capped)."""
    work = int(work)
    if max_grid_size and work > int(max_grid_size):
        raise LaunchError(
            "work exceeds the launch grid",
            stage=stage,
            required=work,
            grid=int(max_grid_size),
        )
    width = 1
    while width < work:
        width <<= 1
    return min(width, max(int(capacity), 1))


def frontier_vertices(graph, ids, kind_code, valid):
    """Vertex each frontier lane stands for (edge ids map to their head)."""
    is_edge = kind_code == _EDGE_CODE
    heads = safe_gather_1d(
        graph.column_indices,
        ids,
        "frontier_vertices.edge",
        valid=valid & is_edge,
        fill=INVALID_ID,
    )
    verts = jnp.where(is_edge, heads, ids)
    return jnp.where(valid, verts, INVALID_ID)


def out_degrees(graph, vertex, valid):
    start = safe_gather_1d(graph.row_offsets, vertex, "out_degrees.start", valid=valid)
    end = safe_gather_1d(graph.row_offsets, vertex + 1, "out_degrees.end", valid=valid)
    return jnp.where(valid, end - start, 0).astype(jnp.int32)


def _current_lanes(graph, frontier: Frontier, width=None):
    ids, size, kind = frontier_current(frontier)
    if width is not None:
        ids = ids[:width]
    lanes = jnp.arange(ids.shape[0], dtype=jnp.int32)
    valid = (lanes < size) & (ids != INVALID_ID)
    return ids, kind, valid


@jax.jit
def frontier_census(graph, frontier: Frontier, far: FarPile) -> jnp.ndarray:
    """[size, work, far_size] of the current wave; read back once per iteration."""
    ids, kind, valid = _current_lanes(graph, frontier)
    verts = frontier_vertices(graph, ids, kind, valid)
    work = jnp.sum(out_degrees(graph, verts, valid), dtype=jnp.int32)
    size = jnp.sum(valid, dtype=jnp.int32)
    return jnp.stack([size, work, far.size.astype(jnp.int32)])


@partial(jax.jit, static_argnames=("functor", "width", "output_kind"))
def advance_step(
    graph,
    data,
    frontier: Frontier,
    *,
    functor,
    width: int,
    output_kind: FrontierKind = FrontierKind.VERTEX,
):
    """Expand every frontier id over its out-edges and relax them.

    Output slot ``j`` is mapped to (frontier lane, edge) through a prefix
    sum of out-degrees, so lanes with many edges spread over many slots.
    Winning lanes emit their destination (or edge id); losers emit
    INVALID_ID and are compacted away by Filter.
    """
    ids, kind, in_valid = _current_lanes(graph, frontier)
    cap = ids.shape[0]
    src_all = frontier_vertices(graph, ids, kind, in_valid)
    deg = out_degrees(graph, src_all, in_valid)
    incl = jnp.cumsum(deg, dtype=jnp.int32)
    excl = incl - deg
    total = incl[-1]

    slots = jnp.arange(width, dtype=jnp.int32)
    slot_valid = slots < total
    owner = jnp.searchsorted(incl, slots, side="right").astype(jnp.int32)
    owner = jnp.clip(owner, 0, cap - 1)
    src = jnp.where(slot_valid, src_all[owner], INVALID_ID)
    start = safe_gather_1d(graph.row_offsets, src, "advance.start", valid=slot_valid)
    edge_id = jnp.where(slot_valid, start + slots - excl[owner], 0)
    dst = safe_gather_1d(
        graph.column_indices, edge_id, "advance.dst", valid=slot_valid, fill=INVALID_ID
    )

    data, keep = functor.cond_edge(graph, data, src, dst, edge_id, slot_valid)
    keep = keep & slot_valid
    data = functor.apply_edge(graph, data, src, dst, edge_id, keep)

    emitted = dst if output_kind == FrontierKind.VERTEX else edge_id
    out = jnp.where(keep, emitted, INVALID_ID)
    frontier = frontier_emit(frontier, out, width, KIND_CODES[output_kind])
    return data, frontier


def _priority_split(graph, data, functor, ids, count, far: FarPile, cfg: CompactConfig):
    nodes = graph.nodes
    pending = jnp.zeros((nodes,), dtype=jnp.bool_)
    pending = scatter_set_drop(
        pending, drop_index(ids, ids != INVALID_ID, nodes), True, "priority.frontier"
    )
    pending = scatter_set_drop(
        pending, drop_index(far.ids, far.ids != INVALID_ID, nodes), True, "priority.far"
    )
    pool, _ = ids_from_mask(pending, cfg=cfg)
    valid = pool != INVALID_ID
    score = functor.compute_priority_score(graph, data, jnp.where(valid, pool, 0))
    score = score.astype(jnp.float32)
    bucket = jnp.floor(score)
    delta = getattr(data, "delta", None)
    if delta is not None:
        # Zero width: no buckets, only the lowest raw score is near.
        bucket = jnp.where(delta > 0, bucket, score)
    lowest = jnp.min(jnp.where(valid, bucket, jnp.inf), initial=jnp.inf)
    near = valid & (bucket <= lowest)
    near_ids, near_count = compact_ids(pool, near, cfg=cfg)
    far_ids, far_count = compact_ids(pool, valid & ~near, cfg=cfg)
    return near_ids, near_count, FarPile(ids=far_ids, size=far_count)


@partial(jax.jit, static_argnames=("functor", "width", "priority", "compact_cfg"))
def filter_step(
    graph,
    data,
    frontier: Frontier,
    far: FarPile,
    *,
    functor,
    width: int,
    priority: bool = False,
    compact_cfg: CompactConfig = DEFAULT_COMPACT_CONFIG,
):
    """Admit, mutate and compact the candidate wave produced by Advance.

    With ``priority`` the compacted wave is merged with the far pile and
    only the lowest priority bucket stays in the frontier.
    """
    ids, kind, valid = _current_lanes(graph, frontier, width)
    verts = frontier_vertices(graph, ids, kind, valid)
    keep = functor.cond_filter(graph, data, verts, valid) & valid
    data = functor.apply_filter(graph, data, verts, keep)
    out, count = compact_ids(ids, keep, cfg=compact_cfg)
    if priority:
        out, count, far = _priority_split(graph, data, functor, out, count, far, compact_cfg)
    frontier = frontier_emit(frontier, out, count, kind)
    return data, frontier, far


__all__ = [
    "FarPile",
    "far_pile_init",
    "launch_width",
    "frontier_vertices",
    "out_degrees",
    "frontier_census",
    "advance_step",
    "filter_step",
]
