from __future__ import annotations

import jax
import numpy as np


def _host_ints(values) -> tuple[int, ...]:
    """Read a small device vector in one transfer (the host barrier)."""
    arr = np.asarray(jax.device_get(values))
    return tuple(int(x) for x in arr.reshape(-1))


def _host_copy(tree):
    """Copy a device pytree into freshly owned host NumPy arrays."""
    host = jax.device_get(tree)
    return jax.tree_util.tree_map(lambda x: np.array(x, copy=True), host)


__all__ = [
    "_host_ints",
    "_host_copy",
]
