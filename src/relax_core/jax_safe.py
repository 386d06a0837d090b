import jax
import jax.numpy as jnp

from relax_core.gating import (
    _gather_guard_enabled,
    _scatter_guard_enabled,
    _test_guards_enabled,
)

TEST_GUARDS = _test_guards_enabled()
SCATTER_GUARD = _scatter_guard_enabled()
GATHER_GUARD = _gather_guard_enabled()
HAS_DEBUG_CALLBACK = hasattr(jax, "debug") and hasattr(jax.debug, "callback")


def scatter_guard(indices, max_index, label, guard=None):
    if guard is None:
        guard = SCATTER_GUARD
    if not guard or not HAS_DEBUG_CALLBACK:
        return
    if indices.size == 0:
        return
    min_idx = jnp.min(indices)
    max_idx = jnp.max(indices)
    # Allow sentinel index == max_index for intentional drop semantics.
    bad = (min_idx < 0) | (max_idx > max_index)

    def _raise(bad_val, min_val, max_val, max_allowed):
        if bad_val:
            raise RuntimeError(
                f"scatter index out of bounds in {label} "
                f"(min={int(min_val)}, max={int(max_val)}, max={int(max_allowed)})"
            )

    jax.debug.callback(_raise, bad, min_idx, max_idx, max_index)


def guard_gather_index(idx, size, label, guard=None, *, valid=None):
    if guard is None:
        guard = GATHER_GUARD
    if not guard or not HAS_DEBUG_CALLBACK:
        return
    if idx.size == 0:
        return
    if valid is None:
        valid = jnp.ones(idx.shape, dtype=jnp.bool_)
    # Masked lanes never participate in the bounds check.
    min_idx = jnp.min(jnp.where(valid, idx, 0))
    max_idx = jnp.max(jnp.where(valid, idx, -1))
    bad = (min_idx < 0) | (max_idx >= size)

    def _raise(bad_val, min_val, max_val, size_val):
        if bad_val:
            raise RuntimeError(
                "gather index out of bounds in "
                f"{label} (min={int(min_val)}, max={int(max_val)}, size={int(size_val)})"
            )

    jax.debug.callback(
        _raise, bad, min_idx, max_idx, jnp.asarray(size, dtype=jnp.int32)
    )


def drop_index(idx, valid, size):
    """Route invalid lanes to the out-of-range sentinel ``size``."""
    return jnp.where(valid, idx, jnp.asarray(size, dtype=idx.dtype))


def scatter_set_drop(target, indices, values, label):
    max_index = jnp.asarray(target.shape[0], dtype=jnp.int32)
    scatter_guard(indices, max_index, label)
    return target.at[indices].set(values, mode="drop")


def scatter_min_drop(target, indices, values, label):
    max_index = jnp.asarray(target.shape[0], dtype=jnp.int32)
    scatter_guard(indices, max_index, label)
    return target.at[indices].min(values, mode="drop")


def scatter_add_drop(target, indices, values, label):
    max_index = jnp.asarray(target.shape[0], dtype=jnp.int32)
    scatter_guard(indices, max_index, label)
    return target.at[indices].add(values, mode="drop")


def safe_gather_1d(arr, idx, label="safe_gather_1d", *, valid=None, fill=0):
    """Gather with explicit fill for invalid lanes (empty arrays allowed).

    ``fill`` may be a Python scalar or an array; masked and out-of-range
    lanes read it instead of ``arr``.
    """
    size = arr.shape[0]
    idx_i = jnp.asarray(idx, dtype=jnp.int32)
    guard_gather_index(idx_i, size, label, valid=valid)
    fill_v = jnp.asarray(fill, dtype=arr.dtype)
    if size == 0:
        return jnp.full(idx_i.shape, fill_v, dtype=arr.dtype)
    ok = (idx_i >= 0) & (idx_i < size)
    if valid is not None:
        ok = ok & valid
    values = arr[jnp.clip(idx_i, 0, size - 1)]
    return jnp.where(ok, values, fill_v)


__all__ = [
    "TEST_GUARDS",
    "SCATTER_GUARD",
    "GATHER_GUARD",
    "HAS_DEBUG_CALLBACK",
    "scatter_guard",
    "guard_gather_index",
    "drop_index",
    "scatter_set_drop",
    "scatter_min_drop",
    "scatter_add_drop",
    "safe_gather_1d",
]
