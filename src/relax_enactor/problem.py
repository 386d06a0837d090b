"""Problem state: the device arrays one algorithm run owns.

Lifecycle::

    Problem(graph, cfg)   -> ALLOCATED   (Init: device arrays sized to the graph)
    reset(seeds)          -> RESET       (labels/preds re-initialised, frontier seeded)
    Enactor.enact(...)    -> ENACTING -> DONE | FAILED
    extract()             -> host NumPy copy, only in DONE

Subclasses supply ``_allocate`` (device slice with fresh arrays),
``_reset_slice`` (slice for a seed set) and ``_default_seeds``.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping

import jax
import jax.numpy as jnp
import numpy as np

from relax_core.errors import (
    AllocationError,
    EnactError,
    MalformedGraphError,
    NotReadyError,
    RelaxConfigError,
    UnsupportedPartitioningError,
)
from relax_core.gating import _device_mem_limit_bytes
from relax_core.host import _host_copy
from relax_core.modes import FrontierKind, coerce_frontier_kind
from relax_enactor.config import DEFAULT_ENACTOR_CONFIG, EnactorConfig
from relax_enactor.frontier import Frontier, frontier_init


class ProblemPhase(str, Enum):
    ALLOCATED = "allocated"
    RESET = "reset"
    ENACTING = "enacting"
    DONE = "done"
    FAILED = "failed"


def partition_bounds(nodes: int, num_partitions: int) -> tuple[tuple[int, int], ...]:
    """Contiguous vertex ranges, one per partition (block distribution)."""
    nodes = int(nodes)
    parts = int(num_partitions)
    if parts < 1:
        raise RelaxConfigError("num_partitions must be >= 1", field="num_partitions")
    base, extra = divmod(nodes, parts)
    bounds = []
    start = 0
    for p in range(parts):
        end = start + base + (1 if p < extra else 0)
        bounds.append((start, end))
        start = end
    return tuple(bounds)


def _tree_nbytes(tree) -> int:
    leaves = jax.tree_util.tree_leaves(tree)
    return int(sum(int(np.prod(x.shape)) * np.dtype(x.dtype).itemsize for x in leaves))


def _device_limit_bytes() -> int | None:
    limit = _device_mem_limit_bytes()
    if limit is not None:
        return limit
    device = jax.devices()[0]
    memory_stats = getattr(device, "memory_stats", None)
    if memory_stats is None:
        return None
    try:
        stats = memory_stats()
    except NotImplementedError:
        return None
    if not stats:
        return None
    limit = stats.get("bytes_limit")
    return None if limit is None else int(limit)


def _is_resource_exhausted(exc: BaseException) -> bool:
    return "RESOURCE_EXHAUSTED" in str(exc) or "out of memory" in str(exc).lower()


class Problem:
    """Owner of one run's device-resident data slice and frontier."""

    algorithm = "generic"

    def __init__(self, graph, config: EnactorConfig = DEFAULT_ENACTOR_CONFIG):
        if config.num_partitions != 1:
            raise UnsupportedPartitioningError(
                "single-partition enactor cannot drive multiple partitions",
                num_partitions=int(config.num_partitions),
            )
        self.graph = graph
        self.config = config
        self.frontier: Frontier | None = None
        self.output_kind = config.output_kind
        self.seeds: np.ndarray | None = None
        self._check_budget()
        self.data = self._guarded("init", self._allocate)
        self.phase = ProblemPhase.ALLOCATED

    # -- hooks ---------------------------------------------------------------

    def _allocate(self):
        raise NotImplementedError(f"{type(self).__name__}._allocate")

    def _reset_slice(self, seeds: jnp.ndarray):
        raise NotImplementedError(f"{type(self).__name__}._reset_slice")

    def _default_seeds(self) -> np.ndarray:
        if self.graph.nodes == 0:
            return np.zeros((0,), dtype=np.int32)
        return np.zeros((1,), dtype=np.int32)

    # -- partitions ----------------------------------------------------------

    @property
    def num_partitions(self) -> int:
        return int(self.config.num_partitions)

    def partition_bounds(self) -> tuple[tuple[int, int], ...]:
        return partition_bounds(self.graph.nodes, self.num_partitions)

    # -- memory --------------------------------------------------------------

    def footprint_bytes(self) -> int:
        """Device bytes for the slice plus both frontier arenas."""
        slice_bytes = _tree_nbytes(jax.eval_shape(self._allocate))
        frontier_bytes = 2 * self.graph.frontier_capacity * np.dtype(np.int32).itemsize
        return slice_bytes + frontier_bytes

    def _check_budget(self) -> None:
        limit = _device_limit_bytes()
        if limit is None:
            return
        requested = self.footprint_bytes()
        if requested > limit:
            raise AllocationError(
                f"{self.algorithm} problem does not fit in device memory",
                requested_bytes=requested,
                limit_bytes=limit,
            )

    def _guarded(self, stage: str, fn):
        try:
            return fn()
        except RuntimeError as exc:
            if _is_resource_exhausted(exc):
                raise AllocationError(
                    f"device allocation failed: {exc}", stage=stage
                ) from exc
            raise

    # -- lifecycle -----------------------------------------------------------

    def _normalize_seeds(self, seeds) -> np.ndarray:
        if seeds is None:
            return np.asarray(self._default_seeds(), dtype=np.int32)
        arr = np.atleast_1d(np.asarray(seeds))
        if arr.ndim != 1 or (arr.size and not np.issubdtype(arr.dtype, np.integer)):
            raise MalformedGraphError(
                "seeds must be a 1-D sequence of vertex ids", check="seeds", stage="reset"
            )
        arr = arr.astype(np.int64)
        if arr.size and (arr.min() < 0 or arr.max() >= self.graph.nodes):
            raise MalformedGraphError(
                f"seed out of range [0, {self.graph.nodes})", check="seeds.range", stage="reset"
            )
        return np.unique(arr).astype(np.int32)

    def reset(self, seeds=None, frontier_kind: FrontierKind | str | None = None) -> "Problem":
        """Re-initialise the slice for ``seeds`` and seed the frontier.

        Safe to call any number of times; every call starts from the same
        state regardless of earlier runs.
        """
        if self.phase == ProblemPhase.ENACTING:
            raise EnactError("cannot reset while enacting", stage="reset")
        kind = coerce_frontier_kind(
            self.config.output_kind if frontier_kind is None else frontier_kind
        )
        if self.config.priority and kind != FrontierKind.VERTEX:
            raise RelaxConfigError(
                "priority scheduling needs a vertex frontier", field="frontier_kind"
            )
        seeds = self._normalize_seeds(seeds)
        self.data = self._guarded("reset", lambda: self._reset_slice(jnp.asarray(seeds)))
        self.frontier = self._guarded(
            "reset",
            lambda: frontier_init(self.graph.frontier_capacity, seeds, FrontierKind.VERTEX),
        )
        self.output_kind = kind
        self.seeds = seeds
        self.phase = ProblemPhase.RESET
        return self

    def _begin_enact(self) -> None:
        if self.phase == ProblemPhase.ENACTING:
            raise EnactError("problem is already being enacted")
        if self.phase != ProblemPhase.RESET:
            raise EnactError(
                f"problem must be reset before enact (phase={self.phase.value})"
            )
        self.phase = ProblemPhase.ENACTING

    def _resume_enact(self) -> None:
        """Re-enter ENACTING after a completed pass (multi-pass primitives)."""
        if self.phase != ProblemPhase.DONE:
            raise EnactError(
                f"problem must be done before another pass (phase={self.phase.value})"
            )
        self.phase = ProblemPhase.ENACTING

    def _finish(self, data, frontier, *, ok: bool) -> None:
        if ok:
            self.data = data
            self.frontier = frontier
            self.phase = ProblemPhase.DONE
        else:
            self.phase = ProblemPhase.FAILED

    @property
    def ready(self) -> bool:
        return self.phase == ProblemPhase.DONE

    def extract(self, out: Mapping[str, np.ndarray] | None = None):
        """Copy the final slice to host memory.

        Returns the slice type with NumPy leaves. When ``out`` maps field
        names to preallocated arrays, every shape is checked before any
        copy so ``out`` is either fully written or untouched.
        """
        if self.phase != ProblemPhase.DONE:
            raise NotReadyError(phase=self.phase.value)
        host = _host_copy(self.data)
        if out is None:
            return host
        fields = host._asdict()
        for name, target in out.items():
            value = fields.get(name)
            if value is None:
                raise ValueError(f"unknown or absent field {name!r} for extract")
            if np.shape(target) != np.shape(value):
                raise ValueError(
                    f"extract buffer for {name!r} has shape {np.shape(target)}, "
                    f"expected {np.shape(value)}"
                )
        for name, target in out.items():
            np.copyto(target, fields[name], casting="unsafe")
        return host


__all__ = [
    "ProblemPhase",
    "Problem",
    "partition_bounds",
]
