"""Host entry point: descriptor in, structured result out.

``run`` is the only layer that turns exceptions into values. Everything
below it raises; ``run`` maps the error taxonomy onto ``RunStatus`` and the
stage that failed, and never lets those errors escape.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple

import numpy as np

from relax_core.dtypes import TypeCombination, resolve_type_combination
from relax_core.errors import (
    AllocationError,
    EnactError,
    InitError,
    MalformedGraphError,
    NotReadyError,
    RelaxConfigError,
    RelaxModeError,
    UnsupportedTypeCombination,
)
from relax_core.modes import Algorithm, coerce_algorithm
from relax_enactor.config import EnactorConfig
from relax_enactor.enactor import Enactor
from relax_graph.csr import build
from relax_apps.bc import BCEnactor, BCProblem
from relax_apps.bfs import BFSProblem
from relax_apps.cc import CCProblem
from relax_apps.sssp import SSSPProblem, check_edge_values


@dataclass(frozen=True)
class GraphDescriptor:
    num_nodes: int
    num_edges: int
    row_offsets: Any
    col_indices: Any
    edge_values: Any = None


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Caller-facing options; ``enactor_config`` maps them onto the engine."""

    max_grid_size: int = 0
    num_partitions: int = 1
    mark_paths: bool = False
    delta: float = 0.0
    priority: bool = False
    max_iterations: int = 0
    undirected: bool = False
    sources: tuple[int, ...] | None = None

    def enactor_config(self) -> EnactorConfig:
        return EnactorConfig(
            max_grid_size=self.max_grid_size,
            max_iterations=self.max_iterations,
            num_partitions=self.num_partitions,
            mark_paths=self.mark_paths,
            delta=self.delta,
            priority=self.priority,
        )


DEFAULT_RUN_CONFIG = RunConfig()


class RunStatus(str, Enum):
    OK = "ok"
    UNSUPPORTED = "unsupported"
    INIT_FAILED = "init_failed"
    ENACT_FAILED = "enact_failed"


class RunResult(NamedTuple):
    status: RunStatus
    stage: str | None
    message: str
    node_values: np.ndarray | None = None
    predecessors: np.ndarray | None = None
    stats: Any = None

    @property
    def ok(self) -> bool:
        return self.status == RunStatus.OK


def _run_paths(problem_cls, graph, cfg, types: TypeCombination, run_cfg: RunConfig):
    label_dtype = types.vertex if problem_cls is BFSProblem else types.value
    problem = problem_cls(graph, cfg, label_dtype=label_dtype)
    problem.reset(run_cfg.sources)
    stats = Enactor(problem.functor(), cfg).enact(problem)
    host = problem.extract()
    preds = host.preds if cfg.mark_paths else None
    return host.labels, preds, stats


def _run_bfs(graph, cfg, types, run_cfg):
    return _run_paths(BFSProblem, graph, cfg, types, run_cfg)


def _run_sssp(graph, cfg, types, run_cfg):
    check_edge_values(graph)
    return _run_paths(SSSPProblem, graph, cfg, types, run_cfg)


def _run_cc(graph, cfg, types, run_cfg):
    problem = CCProblem(graph, cfg)
    problem.reset()
    stats = Enactor(problem.functor(), cfg).enact(problem)
    return problem.extract().component_ids, None, stats


def _run_bc(graph, cfg, types, run_cfg):
    value_dtype = types.value if np.issubdtype(types.value, np.floating) else np.float32
    problem = BCProblem(graph, cfg, value_dtype=value_dtype)
    sources = range(graph.nodes) if run_cfg.sources is None else run_cfg.sources
    enactor = BCEnactor(cfg)
    total = np.zeros((graph.nodes,), dtype=problem.value_dtype)
    stats = []
    for source in sources:
        problem.reset([int(source)])
        stats.append(enactor.enact(problem))
        total += problem.extract().bc_values
    return total, None, tuple(stats)


_RUNNERS = {
    Algorithm.BFS: _run_bfs,
    Algorithm.SSSP: _run_sssp,
    Algorithm.CC: _run_cc,
    Algorithm.BC: _run_bc,
}

_INIT_ERRORS = (MalformedGraphError, AllocationError, InitError)
_ENACT_ERRORS = (EnactError, NotReadyError)


def _failure(status: RunStatus, stage: str, exc: BaseException) -> RunResult:
    return RunResult(status=status, stage=stage, message=str(exc))


def run(
    algorithm,
    descriptor: GraphDescriptor,
    config: RunConfig = DEFAULT_RUN_CONFIG,
    *,
    vertex_type="int32",
    size_type="int32",
    value_type="int32",
) -> RunResult:
    """Build, reset, enact and extract one primitive run.

    The (vertex, size, value) dtypes are resolved once; unsupported
    combinations come back as ``RunStatus.UNSUPPORTED`` before the graph is
    touched.
    """
    try:
        algo = coerce_algorithm(algorithm)
        types = resolve_type_combination(vertex_type, size_type, value_type)
    except (RelaxModeError, UnsupportedTypeCombination) as exc:
        return _failure(RunStatus.UNSUPPORTED, "dispatch", exc)
    runner = _RUNNERS[algo]

    try:
        cfg = config.enactor_config()
        undirected = config.undirected or algo == Algorithm.CC
        graph = build(
            descriptor.row_offsets,
            descriptor.col_indices,
            descriptor.edge_values,
            num_nodes=descriptor.num_nodes,
            num_edges=descriptor.num_edges,
            undirected=undirected,
            value_dtype=types.value,
        )
    except RelaxConfigError as exc:
        return _failure(RunStatus.INIT_FAILED, "init", exc)
    except _INIT_ERRORS as exc:
        return _failure(RunStatus.INIT_FAILED, exc.stage, exc)

    try:
        node_values, preds, stats = runner(graph, cfg, types, config)
    except RelaxConfigError as exc:
        return _failure(RunStatus.INIT_FAILED, "init", exc)
    except _INIT_ERRORS as exc:
        return _failure(RunStatus.INIT_FAILED, exc.stage, exc)
    except _ENACT_ERRORS as exc:
        return _failure(RunStatus.ENACT_FAILED, exc.stage, exc)
    return RunResult(
        status=RunStatus.OK,
        stage=None,
        message="ok",
        node_values=node_values,
        predecessors=preds,
        stats=stats,
    )


__all__ = [
    "GraphDescriptor",
    "RunConfig",
    "DEFAULT_RUN_CONFIG",
    "RunStatus",
    "RunResult",
    "run",
]
