"""Conflict resolution for lanes racing on the same output location.

Every lane of a parallel step may target the same destination slot. The
primitive here is the only race-resolution rule the operators use:

    lowest value wins; exactly one lane is reported as the winner.

``target.at[idx].min(values)`` is an XLA scatter-min, the data-parallel
equivalent of ``atomicMin`` on every lane at once. The winner is the lane
whose candidate strictly lowered the pre-step value *and* equals the final
minimum; ties at that minimum go to the lowest lane index (a second
scatter-min over lane ids). Losing lanes report ``False`` and must be kept
out of the next frontier.
"""

from __future__ import annotations

from typing import NamedTuple

import jax.numpy as jnp

from relax_core.jax_safe import (
    drop_index,
    safe_gather_1d,
    scatter_min_drop,
)

_LANE_MAX = jnp.iinfo(jnp.int32).max


class MinResult(NamedTuple):
    values: jnp.ndarray
    won: jnp.ndarray
    previous: jnp.ndarray


def sentinel_for(dtype) -> jnp.ndarray:
    """Sentinel label for a dtype (int max or +inf)."""
    dtype = jnp.dtype(dtype)
    if jnp.issubdtype(dtype, jnp.floating):
        return jnp.asarray(jnp.inf, dtype=dtype)
    return jnp.asarray(jnp.iinfo(dtype).max, dtype=dtype)


def saturating_add(labels, costs):
    """``labels + costs`` clamped just below the sentinel.

    Both operands are non-negative. A sum that would wrap (ints) or reach
    +inf (floats) is pinned to the largest label that still reads as
    reached.
    """
    dtype = labels.dtype
    costs = costs.astype(dtype)
    if jnp.issubdtype(dtype, jnp.floating):
        return jnp.minimum(labels + costs, jnp.asarray(jnp.finfo(dtype).max, dtype=dtype))
    limit = jnp.asarray(jnp.iinfo(dtype).max - 1, dtype=dtype)
    return jnp.where(costs > limit - labels, limit, labels + costs)


def claim_lanes(idx, claim, size, label="claim_lanes"):
    """Among ``claim`` lanes, keep the lowest lane per destination."""
    lanes = jnp.arange(idx.shape[0], dtype=jnp.int32)
    owner = jnp.full((size,), _LANE_MAX, dtype=jnp.int32)
    owner = scatter_min_drop(owner, drop_index(idx, claim, size), lanes, label)
    first = safe_gather_1d(owner, idx, label, valid=claim, fill=-1)
    return claim & (first == lanes)


def atomic_min_winners(target, idx, candidates, valid, label="atomic_min"):
    """Scatter-min ``candidates`` into ``target[idx]`` for ``valid`` lanes.

    Returns ``MinResult(values, won, previous)`` where ``values`` is the
    updated target, ``won`` marks the single winning lane per destination
    (if any lane lowered it) and ``previous`` is the pre-step value seen by
    each lane.
    """
    size = target.shape[0]
    fill = sentinel_for(target.dtype)
    candidates = jnp.where(valid, candidates.astype(target.dtype), fill)
    previous = safe_gather_1d(target, idx, label, valid=valid, fill=fill)
    values = scatter_min_drop(target, drop_index(idx, valid, size), candidates, label)
    final = safe_gather_1d(values, idx, label, valid=valid, fill=fill)
    lowered = valid & (candidates < previous) & (candidates == final)
    won = claim_lanes(idx, lowered, size, label)
    return MinResult(values=values, won=won, previous=previous)


def first_occurrence(ids, valid, size, label="first_occurrence"):
    """Mask keeping the first lane of every distinct id (dedup)."""
    return claim_lanes(ids, valid, size, label)


__all__ = [
    "MinResult",
    "sentinel_for",
    "saturating_add",
    "claim_lanes",
    "atomic_min_winners",
    "first_occurrence",
]
