from dataclasses import dataclass

import jax.numpy as jnp
import pytest

import relax_vm as rv
from tests import harness


def _star(leaves):
    return rv.build([0, leaves] + [leaves] * leaves, list(range(1, leaves + 1)))


def test_enactor_rejects_non_functor():
    with pytest.raises(TypeError, match=r"functor protocol"):
        rv.Enactor(object())


def test_launch_error_when_work_exceeds_grid():
    problem = rv.BFSProblem(_star(3), rv.EnactorConfig(max_grid_size=2)).reset(0)
    enactor = rv.Enactor(problem.functor())
    with pytest.raises(rv.LaunchError) as excinfo:
        enactor.enact(problem)
    assert excinfo.value.required == 3
    assert excinfo.value.grid == 2
    assert isinstance(excinfo.value, rv.EnactError)
    assert enactor.state == rv.EnactorState.FAILED


def test_diverged_error_reports_last_frontier():
    problem = rv.BFSProblem(harness.cycle4()).reset(0)
    enactor = rv.Enactor(problem.functor())
    with pytest.raises(rv.DivergedError) as excinfo:
        enactor.enact(problem, max_iterations=1)
    err = excinfo.value
    assert err.max_iterations == 1
    assert err.iterations == 1
    assert err.last_frontier_size == 1
    assert "iteration cap exceeded" in str(err)
    assert enactor.state == rv.EnactorState.FAILED
    assert problem.phase == rv.ProblemPhase.FAILED
    assert rv.IterationLimitExceeded is rv.DivergedError


def test_config_iteration_cap_applies():
    cfg = rv.EnactorConfig(max_iterations=2)
    problem = rv.BFSProblem(harness.cycle4(), cfg).reset(0)
    with pytest.raises(rv.DivergedError):
        rv.Enactor(problem.functor()).enact(problem)


def test_env_iteration_cap_applies(monkeypatch):
    monkeypatch.setenv("RELAX_MAX_ITERATIONS", "1")
    problem = rv.BFSProblem(harness.cycle4()).reset(0)
    with pytest.raises(rv.DivergedError) as excinfo:
        rv.Enactor(problem.functor()).enact(problem)
    assert excinfo.value.max_iterations == 1


def test_priority_requires_priority_score():
    cfg = rv.EnactorConfig(priority=True)
    problem = rv.BFSProblem(harness.cycle4(), cfg).reset(0)
    with pytest.raises(rv.RelaxConfigError, match=r"compute_priority_score"):
        rv.Enactor(problem.functor()).enact(problem)
    # Nothing ran, the problem is still ready to enact.
    assert problem.phase == rv.ProblemPhase.RESET


def test_enactor_config_overrides_problem_config():
    problem = rv.BFSProblem(_star(3)).reset(0)
    enactor = rv.Enactor(problem.functor(), rv.EnactorConfig(max_grid_size=1))
    with pytest.raises(rv.LaunchError):
        enactor.enact(problem)


def test_module_level_enact():
    problem = rv.BFSProblem(harness.cycle4()).reset(0)
    stats = rv.enact(problem.functor(), problem)
    assert stats.iterations == 4
    assert problem.ready


@dataclass(frozen=True)
class _ReachOnce(rv.FunctorBase):
    """Marks every destination as visited with label 1, never re-emits."""

    def cond_edge(self, graph, data, src, dst, edge_id, valid):
        seen = rv._safe_gather_1d(data.labels, dst, "test.seen", valid=valid, fill=0)
        keep = valid & (seen != 0)
        idx = rv._drop_index(dst, keep, data.labels.shape[0])
        labels = rv._scatter_set_drop(data.labels, idx, jnp.int32(0), "test.mark")
        return data._replace(labels=labels), keep


def test_custom_functor_plugs_into_enactor():
    graph = _star(3)
    problem = rv.BFSProblem(graph).reset(0)
    stats = rv.Enactor(_ReachOnce()).enact(problem)
    assert stats.iterations == 1
    assert problem.extract().labels.tolist() == [0, 0, 0, 0]


@dataclass(frozen=True)
class _BadTypes(rv.FunctorBase):
    def cond_edge(self, graph, data, src, dst, edge_id, valid):
        raise TypeError("labels cannot be relaxed")


def test_kernel_type_error_becomes_launch_error():
    problem = rv.BFSProblem(_star(2)).reset(0)
    enactor = rv.Enactor(_BadTypes())
    with pytest.raises(rv.LaunchError) as excinfo:
        enactor.enact(problem)
    assert excinfo.value.stage == "advance"
    assert enactor.state == rv.EnactorState.FAILED
    assert problem.phase == rv.ProblemPhase.FAILED
