from __future__ import annotations

from dataclasses import dataclass

from relax_core.compact import CompactConfig, DEFAULT_COMPACT_CONFIG
from relax_core.errors import RelaxConfigError
from relax_core.gating import _env_max_iterations
from relax_core.modes import FrontierKind, coerce_frontier_kind


@dataclass(frozen=True, slots=True)
class EnactorConfig:
    """Enactor/problem DI bundle (host-side control surface).

    max_grid_size:
      upper bound on lanes per launch; 0 sizes launches automatically.
    max_iterations:
      iteration cap; 0 derives one from the graph (see resolve_max_iterations).
    num_partitions:
      partitions the graph is split over; this enactor drives exactly one.
    mark_paths:
      record predecessors during relaxation.
    delta:
      bucket width for priority scheduling (0 orders by raw label).
    priority:
      enable near/far priority scheduling (needs compute_priority_score).
    output_kind:
      ids emitted by Advance (vertex ids or edge ids).
    """

    max_grid_size: int = 0
    max_iterations: int = 0
    num_partitions: int = 1
    mark_paths: bool = False
    delta: float = 0.0
    priority: bool = False
    output_kind: FrontierKind | str = FrontierKind.VERTEX
    compact_cfg: CompactConfig = DEFAULT_COMPACT_CONFIG

    def __post_init__(self):
        object.__setattr__(
            self, "output_kind", coerce_frontier_kind(self.output_kind, context="output_kind")
        )
        if int(self.max_grid_size) < 0:
            raise RelaxConfigError("max_grid_size must be >= 0", field="max_grid_size")
        if int(self.max_iterations) < 0:
            raise RelaxConfigError("max_iterations must be >= 0", field="max_iterations")
        if int(self.num_partitions) < 1:
            raise RelaxConfigError("num_partitions must be >= 1", field="num_partitions")
        if float(self.delta) < 0:
            raise RelaxConfigError("delta must be >= 0", field="delta")
        if self.priority and self.output_kind != FrontierKind.VERTEX:
            raise RelaxConfigError(
                "priority scheduling needs a vertex frontier", field="priority"
            )


DEFAULT_ENACTOR_CONFIG = EnactorConfig()


def resolve_max_iterations(cfg: EnactorConfig, nodes: int, override: int | None = None) -> int:
    """Pick the iteration cap: explicit override, config, env, then auto."""
    for value in (override, cfg.max_iterations or None, _env_max_iterations()):
        if value is not None:
            return int(value)
    base = max(int(nodes), 0) + 1
    if cfg.priority:
        # Each bucket may need its own relaxation rounds.
        return base * base
    return base


__all__ = [
    "EnactorConfig",
    "DEFAULT_ENACTOR_CONFIG",
    "resolve_max_iterations",
]
