"""Generic Advance -> Filter iteration engine.

State machine::

    INIT -> (ADVANCE -> FILTER)* -> DONE
                 \\_____________/-> FAILED   (launch failure / iteration cap)

The host reads a three-int census after every Filter; that read is the
only barrier between iterations, so iteration k+1 never starts before
iteration k has retired on the device.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import NamedTuple

import jax

from relax_core.errors import (
    DivergedError,
    EnactError,
    LaunchError,
    RelaxConfigError,
)
from relax_core.host import _host_ints
from relax_enactor.config import EnactorConfig, resolve_max_iterations
from relax_enactor.operators import (
    advance_step,
    far_pile_init,
    filter_step,
    frontier_census,
    launch_width,
)
from relax_enactor.protocols import Functor, supports_priority
from relax_metrics.metrics import _enact_metrics_update


class EnactorState(str, Enum):
    INIT = "init"
    ADVANCE = "advance"
    FILTER = "filter"
    DONE = "done"
    FAILED = "failed"


class EnactStats(NamedTuple):
    iterations: int
    elapsed: float
    edges_visited: int
    frontier_sizes: tuple[int, ...]
    last_frontier_size: int


class Enactor:
    """Drives one functor over a reset Problem until the frontier drains."""

    def __init__(self, functor, config: EnactorConfig | None = None):
        if not isinstance(functor, Functor):
            raise TypeError(f"{type(functor).__name__} does not implement the functor protocol")
        self.functor = functor
        self.config = config
        self.state = EnactorState.INIT
        self.iteration = 0

    def _config_for(self, problem) -> EnactorConfig:
        return self.config if self.config is not None else problem.config

    def _launch(self, stage, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except EnactError:
            raise
        except (RuntimeError, TypeError) as exc:
            raise LaunchError(str(exc), stage=stage) from exc

    def _census(self, graph, frontier, far):
        # Deferred device errors surface at this read, so it sits inside _launch.
        return self._launch(
            "census", lambda: _host_ints(frontier_census(graph, frontier, far))
        )

    def enact(self, problem, max_iterations: int | None = None) -> EnactStats:
        """Run Advance/Filter rounds on ``problem`` until convergence.

        Raises LaunchError when a step cannot be scheduled and DivergedError
        when the iteration cap is reached with work still pending. The
        problem is marked DONE only on success.
        """
        cfg = self._config_for(problem)
        if cfg.priority and not supports_priority(self.functor):
            raise RelaxConfigError(
                f"{type(self.functor).__name__} has no compute_priority_score",
                field="priority",
            )
        cap = resolve_max_iterations(cfg, problem.graph.nodes, max_iterations)
        problem._begin_enact()
        self.state = EnactorState.INIT
        self.iteration = 0
        graph = problem.graph
        data = problem.data
        frontier = problem.frontier
        far = far_pile_init(graph.nodes if cfg.priority else 0)
        capacity = graph.frontier_capacity
        sizes = []
        edges_visited = 0
        size = 0
        diverged = False
        ok = False
        start = time.perf_counter()
        try:
            size, work, far_size = self._census(graph, frontier, far)
            while work > 0 or far_size > 0:
                if self.iteration >= cap:
                    diverged = True
                    raise DivergedError(
                        "frontier still active",
                        max_iterations=cap,
                        iterations=self.iteration,
                        last_frontier_size=size + far_size,
                    )
                width = launch_width(work, capacity, cfg.max_grid_size)
                self.state = EnactorState.ADVANCE
                data, frontier = self._launch(
                    "advance",
                    advance_step,
                    graph,
                    data,
                    frontier,
                    functor=self.functor,
                    width=width,
                    output_kind=problem.output_kind,
                )
                self.state = EnactorState.FILTER
                data, frontier, far = self._launch(
                    "filter",
                    filter_step,
                    graph,
                    data,
                    frontier,
                    far,
                    functor=self.functor,
                    width=width,
                    priority=cfg.priority,
                    compact_cfg=cfg.compact_cfg,
                )
                self.iteration += 1
                edges_visited += work
                size, work, far_size = self._census(graph, frontier, far)
                sizes.append(size)
            data = self._launch("enact", jax.block_until_ready, data)
            ok = True
        except Exception:
            self.state = EnactorState.FAILED
            raise
        finally:
            problem._finish(data, frontier, ok=ok)
            _enact_metrics_update(
                iterations=self.iteration,
                edges=edges_visited,
                peak=max(sizes, default=size),
                diverged=diverged,
            )
        self.state = EnactorState.DONE
        return EnactStats(
            iterations=self.iteration,
            elapsed=time.perf_counter() - start,
            edges_visited=edges_visited,
            frontier_sizes=tuple(sizes),
            last_frontier_size=size,
        )


def enact(functor, problem, max_iterations: int | None = None) -> EnactStats:
    """One-shot helper: ``Enactor(functor).enact(problem, max_iterations)``."""
    return Enactor(functor).enact(problem, max_iterations)


__all__ = [
    "EnactorState",
    "EnactStats",
    "Enactor",
    "enact",
]
