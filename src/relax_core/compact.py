from dataclasses import dataclass
from typing import NamedTuple

import jax.numpy as jnp

# Sentinel id for empty/removed frontier lanes.
INVALID_ID = -1


class CompactResult(NamedTuple):
    idx: jnp.ndarray
    valid: jnp.ndarray
    count: jnp.ndarray


@dataclass(frozen=True, slots=True)
class CompactConfig:
    """Index/count dtypes used when Filter packs a wave."""

    index_dtype: jnp.dtype | None = jnp.int32
    count_dtype: jnp.dtype | None = jnp.int32


DEFAULT_COMPACT_CONFIG = CompactConfig()


def compact_mask(mask, *, index_dtype=None, count_dtype=None):
    """Lane numbers where ``mask`` holds, packed to the front.

    The output keeps the static length of ``mask``; ``valid`` marks the
    first ``count`` entries and the tail reads lane 0.
    """
    lanes = mask.shape[0]
    count = jnp.sum(mask, dtype=jnp.int32)
    idx = jnp.nonzero(mask, size=lanes, fill_value=0)[0]
    if index_dtype is not None:
        idx = idx.astype(index_dtype)
    if count_dtype is not None:
        count = count.astype(count_dtype)
    valid = jnp.arange(lanes, dtype=idx.dtype) < count.astype(idx.dtype)
    return CompactResult(idx=idx, valid=valid, count=count)


def compact_mask_cfg(mask, *, cfg: CompactConfig = DEFAULT_COMPACT_CONFIG):
    return compact_mask(mask, index_dtype=cfg.index_dtype, count_dtype=cfg.count_dtype)


def compact_ids(ids, keep, *, cfg: CompactConfig = DEFAULT_COMPACT_CONFIG):
    """Stream-compact ``ids`` by ``keep``; dropped tail lanes hold INVALID_ID."""
    result = compact_mask_cfg(keep, cfg=cfg)
    if ids.shape[0] == 0:
        return ids, result.count
    out = jnp.where(result.valid, ids[result.idx], jnp.asarray(INVALID_ID, ids.dtype))
    return out, result.count


def ids_from_mask(mask, *, cfg: CompactConfig = DEFAULT_COMPACT_CONFIG):
    """Return the (sorted, unique) lane ids where ``mask`` holds."""
    result = compact_mask_cfg(mask, cfg=cfg)
    ids = jnp.where(result.valid, result.idx, jnp.asarray(INVALID_ID, result.idx.dtype))
    return ids, result.count


__all__ = [
    "INVALID_ID",
    "CompactResult",
    "CompactConfig",
    "DEFAULT_COMPACT_CONFIG",
    "compact_mask",
    "compact_mask_cfg",
    "compact_ids",
    "ids_from_mask",
]
