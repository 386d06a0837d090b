from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class MalformedGraphError(ValueError):
    message: str
    check: str | None = None
    stage: str = "build"

    def __str__(self) -> str:
        if self.check is None:
            return self.message
        return f"{self.message} [{self.check}]"


@dataclass(frozen=True)
class AllocationError(MemoryError):
    message: str
    requested_bytes: int | None = None
    limit_bytes: int | None = None
    stage: str = "init"

    def __str__(self) -> str:
        if self.requested_bytes is None or self.limit_bytes is None:
            return self.message
        return (
            f"{self.message} (requested={self.requested_bytes}, "
            f"limit={self.limit_bytes})"
        )


@dataclass(frozen=True)
class InitError(RuntimeError):
    message: str
    stage: str = "init"

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class UnsupportedPartitioningError(InitError):
    num_partitions: int = 1

    def __str__(self) -> str:
        return f"{self.message} (num_partitions={self.num_partitions})"


@dataclass(frozen=True)
class NotReadyError(RuntimeError):
    phase: str
    stage: str = "extract"

    def __str__(self) -> str:
        return f"problem is not ready for extract (phase={self.phase})"


@dataclass(frozen=True)
class EnactError(RuntimeError):
    message: str
    stage: str = "enact"

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class LaunchError(EnactError):
    required: int | None = None
    grid: int | None = None

    def __str__(self) -> str:
        if self.required is None:
            return f"kernel launch failed in {self.stage}: {self.message}"
        return (
            f"kernel launch failed in {self.stage}: {self.message} "
            f"(required={self.required}, max_grid_size={self.grid})"
        )


@dataclass(frozen=True)
class DivergedError(EnactError):
    max_iterations: int = 0
    iterations: int = 0
    last_frontier_size: int = 0

    def __str__(self) -> str:
        return (
            f"iteration cap exceeded: {self.message} "
            f"(max_iterations={self.max_iterations}, "
            f"iterations={self.iterations}, "
            f"frontier={self.last_frontier_size})"
        )


IterationLimitExceeded = DivergedError


@dataclass(frozen=True)
class UnsupportedTypeCombination(TypeError):
    vertex_type: object
    size_type: object
    value_type: object
    supported: tuple[str, ...] | None = None
    stage: str = "dispatch"

    def __str__(self) -> str:
        return (
            "unsupported type combination "
            f"(vertex={self.vertex_type!r}, size={self.size_type!r}, "
            f"value={self.value_type!r})"
        )


@dataclass(frozen=True)
class RelaxModeError(ValueError):
    mode: object
    allowed: tuple[str, ...] = ()
    context: str | None = None
    stage: str = "config"

    def __str__(self) -> str:
        if self.context is None:
            return f"unknown mode={self.mode!r}"
        return f"unknown {self.context}={self.mode!r}"


@dataclass(frozen=True)
class RelaxConfigError(ValueError):
    message: str
    field: str | None = None
    stage: str = "config"

    def __str__(self) -> str:
        return self.message


def _allowed_tuple(values: Iterable[str] | None) -> tuple[str, ...]:
    if values is None:
        return ()
    return tuple(values)


__all__ = [
    "MalformedGraphError",
    "AllocationError",
    "InitError",
    "UnsupportedPartitioningError",
    "NotReadyError",
    "EnactError",
    "LaunchError",
    "DivergedError",
    "IterationLimitExceeded",
    "UnsupportedTypeCombination",
    "RelaxModeError",
    "RelaxConfigError",
    "_allowed_tuple",
]
