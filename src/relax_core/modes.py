from __future__ import annotations

from enum import Enum

from relax_core.errors import RelaxModeError, _allowed_tuple


class FrontierKind(str, Enum):
    VERTEX = "vertex"
    EDGE = "edge"


# Device-side codes stored in Frontier.kinds.
KIND_CODES = {FrontierKind.VERTEX: 0, FrontierKind.EDGE: 1}


def coerce_frontier_kind(
    kind: FrontierKind | str | None, *, context: str | None = None
) -> FrontierKind:
    if kind is None:
        return FrontierKind.VERTEX
    if isinstance(kind, FrontierKind):
        return kind
    if isinstance(kind, str):
        if kind == FrontierKind.VERTEX.value:
            return FrontierKind.VERTEX
        if kind == FrontierKind.EDGE.value:
            return FrontierKind.EDGE
    raise RelaxModeError(
        mode=kind,
        allowed=_allowed_tuple(k.value for k in FrontierKind),
        context=context or "frontier_kind",
    )


def frontier_kind_code(kind: FrontierKind | str | None) -> int:
    return KIND_CODES[coerce_frontier_kind(kind)]


class Algorithm(str, Enum):
    BFS = "bfs"
    SSSP = "sssp"
    CC = "cc"
    BC = "bc"


def coerce_algorithm(
    name: Algorithm | str, *, context: str | None = None
) -> Algorithm:
    if isinstance(name, Algorithm):
        return name
    if isinstance(name, str):
        value = name.strip().lower()
        for algo in Algorithm:
            if value == algo.value:
                return algo
    raise RelaxModeError(
        mode=name,
        allowed=_allowed_tuple(a.value for a in Algorithm),
        context=context or "algorithm",
    )


__all__ = [
    "FrontierKind",
    "KIND_CODES",
    "coerce_frontier_kind",
    "frontier_kind_code",
    "Algorithm",
    "coerce_algorithm",
]
