from __future__ import annotations

from dataclasses import dataclass

import jax
import numpy as np

from relax_core.errors import UnsupportedTypeCombination


@dataclass(frozen=True, slots=True)
class TypeCombination:
    """Resolved (vertex-id, size, value) dtypes for one engine instantiation."""

    vertex: np.dtype
    size: np.dtype
    value: np.dtype

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.vertex.name, self.size.name, self.value.name)


# Frontier lanes and CSR offsets are int32 throughout; only value widths vary.
_BASE_COMBINATIONS = (
    ("int32", "int32", "int32"),
    ("int32", "int32", "float32"),
)
_X64_COMBINATIONS = (
    ("int32", "int32", "int64"),
    ("int32", "int32", "float64"),
)


def _x64_enabled() -> bool:
    return bool(jax.config.jax_enable_x64)


def supported_combinations() -> tuple[tuple[str, str, str], ...]:
    if _x64_enabled():
        return _BASE_COMBINATIONS + _X64_COMBINATIONS
    return _BASE_COMBINATIONS


def _dtype_name(value) -> str | None:
    try:
        return np.dtype(value).name
    except TypeError:
        return None


def resolve_type_combination(vertex_type, size_type, value_type) -> TypeCombination:
    """Select the engine instantiation once, or reject the combination."""
    supported = supported_combinations()
    key = (_dtype_name(vertex_type), _dtype_name(size_type), _dtype_name(value_type))
    if key not in supported:
        raise UnsupportedTypeCombination(
            vertex_type=vertex_type,
            size_type=size_type,
            value_type=value_type,
            supported=tuple("/".join(c) for c in supported),
        )
    return TypeCombination(
        vertex=np.dtype(key[0]),
        size=np.dtype(key[1]),
        value=np.dtype(key[2]),
    )


DEFAULT_TYPES = TypeCombination(
    vertex=np.dtype("int32"),
    size=np.dtype("int32"),
    value=np.dtype("int32"),
)


__all__ = [
    "TypeCombination",
    "DEFAULT_TYPES",
    "supported_combinations",
    "resolve_type_combination",
]
