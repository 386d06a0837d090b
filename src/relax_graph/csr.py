"""Immutable CSR topology shared read-only by every run on a graph.

Validation happens on host NumPy arrays; nothing is transferred to the
device until the topology is known to be well formed.
"""

from __future__ import annotations

from typing import NamedTuple

import jax
import jax.numpy as jnp
import numpy as np

from relax_core.errors import AllocationError, MalformedGraphError


class GraphStore(NamedTuple):
    row_offsets: jnp.ndarray
    column_indices: jnp.ndarray
    edge_sources: jnp.ndarray
    edge_values: jnp.ndarray | None = None

    @property
    def nodes(self) -> int:
        return int(self.row_offsets.shape[0]) - 1

    @property
    def edges(self) -> int:
        return int(self.column_indices.shape[0])

    @property
    def weighted(self) -> bool:
        return self.edge_values is not None

    @property
    def frontier_capacity(self) -> int:
        return max(self.nodes, self.edges, 1)

    def _host_offsets(self) -> np.ndarray:
        return np.asarray(jax.device_get(self.row_offsets))

    def _require_vertex(self, v) -> int:
        v = int(v)
        if v < 0 or v >= self.nodes:
            raise IndexError(f"vertex {v} out of range [0, {self.nodes})")
        return v

    def out_degree(self, v) -> int:
        v = self._require_vertex(v)
        offsets = self._host_offsets()
        return int(offsets[v + 1] - offsets[v])

    def out_degrees(self) -> np.ndarray:
        return np.diff(self._host_offsets())

    def neighbors(self, v) -> list[tuple[int, object]]:
        v = self._require_vertex(v)
        offsets = self._host_offsets()
        start, end = int(offsets[v]), int(offsets[v + 1])
        dst = np.asarray(jax.device_get(self.column_indices[start:end]))
        if self.edge_values is None:
            return [(int(d), None) for d in dst]
        weights = np.asarray(jax.device_get(self.edge_values[start:end]))
        return [(int(d), w.item()) for d, w in zip(dst, weights)]

    def to_host(self) -> dict[str, np.ndarray | None]:
        host = jax.device_get(self)
        return {
            "row_offsets": np.asarray(host.row_offsets),
            "column_indices": np.asarray(host.column_indices),
            "edge_values": (
                None if host.edge_values is None else np.asarray(host.edge_values)
            ),
        }


def _as_int_array(values, name: str) -> np.ndarray:
    arr = np.asarray(values)
    if arr.ndim != 1:
        raise MalformedGraphError(f"{name} must be 1-D", check=f"{name}.ndim")
    if arr.size == 0:
        return arr.astype(np.int64)
    if not np.issubdtype(arr.dtype, np.integer):
        raise MalformedGraphError(
            f"{name} must hold integers, got {arr.dtype}", check=f"{name}.dtype"
        )
    return arr.astype(np.int64)


def validate_csr(
    row_offsets,
    column_indices,
    edge_values=None,
    *,
    num_nodes: int | None = None,
    num_edges: int | None = None,
):
    """Check CSR invariants on host arrays; return normalized copies."""
    offsets = _as_int_array(row_offsets, "row_offsets")
    cols = _as_int_array(column_indices, "column_indices")
    if offsets.size == 0:
        raise MalformedGraphError(
            "row_offsets must have nodes+1 entries", check="row_offsets.len"
        )
    nodes = offsets.size - 1
    edges = cols.size
    if num_nodes is not None and int(num_nodes) != nodes:
        raise MalformedGraphError(
            f"row_offsets has {offsets.size} entries, expected num_nodes+1={int(num_nodes) + 1}",
            check="row_offsets.len",
        )
    if num_edges is not None and int(num_edges) != edges:
        raise MalformedGraphError(
            f"column_indices has {edges} entries, expected num_edges={int(num_edges)}",
            check="column_indices.len",
        )
    if offsets[0] != 0:
        raise MalformedGraphError(
            f"row_offsets[0] must be 0, got {int(offsets[0])}", check="row_offsets.start"
        )
    steps = np.diff(offsets)
    if np.any(steps < 0):
        bad = int(np.argmax(steps < 0))
        raise MalformedGraphError(
            f"row_offsets not monotonic at vertex {bad}", check="row_offsets.monotonic"
        )
    if offsets[-1] != edges:
        raise MalformedGraphError(
            f"row_offsets[-1]={int(offsets[-1])} does not match {edges} edges",
            check="row_offsets.end",
        )
    if edges and (cols.min() < 0 or cols.max() >= nodes):
        bad = int(np.argmax((cols < 0) | (cols >= nodes)))
        raise MalformedGraphError(
            f"column_indices[{bad}]={int(cols[bad])} out of range [0, {nodes})",
            check="column_indices.range",
        )
    values = None
    if edge_values is not None:
        values = np.asarray(edge_values)
        if values.ndim != 1 or values.size != edges:
            raise MalformedGraphError(
                f"edge_values must have {edges} entries, got shape {values.shape}",
                check="edge_values.len",
            )
        if values.size and (
            values.dtype == np.bool_
            or not (
                np.issubdtype(values.dtype, np.integer)
                or np.issubdtype(values.dtype, np.floating)
            )
        ):
            raise MalformedGraphError(
                f"edge_values must be numeric, got {values.dtype}", check="edge_values.dtype"
            )
    return offsets, cols, values


def _cast_edge_values(values, value_dtype):
    """Cast weights to the run's value type; integer targets must be exact."""
    target = np.dtype(value_dtype)
    cast = values.astype(target)
    if np.issubdtype(target, np.integer) and not np.array_equal(cast, values):
        raise MalformedGraphError(
            f"edge_values do not fit {target} without loss", check="edge_values.dtype"
        )
    return cast


def _symmetrize_host(offsets, cols, values):
    nodes = offsets.size - 1
    src = np.repeat(np.arange(nodes, dtype=np.int64), np.diff(offsets))
    all_src = np.concatenate([src, cols])
    all_dst = np.concatenate([cols, src])
    order = np.lexsort((all_dst, all_src))
    all_src = all_src[order]
    all_dst = all_dst[order]
    counts = np.bincount(all_src, minlength=nodes) if nodes else np.zeros(0, np.int64)
    new_offsets = np.zeros(nodes + 1, dtype=np.int64)
    np.cumsum(counts, out=new_offsets[1:])
    new_values = None
    if values is not None:
        new_values = np.concatenate([values, values])[order]
    return new_offsets, all_dst, new_values


def build(
    row_offsets,
    column_indices,
    edge_values=None,
    *,
    num_nodes: int | None = None,
    num_edges: int | None = None,
    undirected: bool = False,
    value_dtype=None,
) -> GraphStore:
    """Validate a CSR description and stage it on the device.

    ``undirected=True`` stores every edge in both directions (edge values
    are mirrored). Raises MalformedGraphError before any device transfer.
    """
    offsets, cols, values = validate_csr(
        row_offsets,
        column_indices,
        edge_values,
        num_nodes=num_nodes,
        num_edges=num_edges,
    )
    if undirected:
        offsets, cols, values = _symmetrize_host(offsets, cols, values)
    nodes = offsets.size - 1
    src = np.repeat(np.arange(nodes, dtype=np.int32), np.diff(offsets))
    if values is not None and value_dtype is not None:
        values = _cast_edge_values(values, value_dtype)
    try:
        return GraphStore(
            row_offsets=jnp.asarray(offsets, dtype=jnp.int32),
            column_indices=jnp.asarray(cols, dtype=jnp.int32),
            edge_sources=jnp.asarray(src, dtype=jnp.int32),
            edge_values=None if values is None else jnp.asarray(values),
        )
    except RuntimeError as exc:
        raise AllocationError(f"graph staging failed: {exc}", stage="build") from exc


def symmetrize(graph: GraphStore) -> GraphStore:
    """Return the undirected closure of ``graph`` as a new store."""
    host = graph.to_host()
    return build(
        host["row_offsets"],
        host["column_indices"],
        host["edge_values"],
        undirected=True,
    )


__all__ = [
    "GraphStore",
    "validate_csr",
    "build",
    "symmetrize",
]
