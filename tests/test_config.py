import numpy as np
import pytest

import relax_vm as rv
from relax_core import gating


def test_coerce_frontier_kind():
    assert rv.coerce_frontier_kind(None) == rv.FrontierKind.VERTEX
    assert rv.coerce_frontier_kind("edge") == rv.FrontierKind.EDGE
    assert rv.frontier_kind_code("vertex") == 0
    with pytest.raises(rv.RelaxModeError, match=r"unknown output_kind='arc'"):
        rv.coerce_frontier_kind("arc", context="output_kind")


def test_coerce_algorithm():
    assert rv.coerce_algorithm(" BFS ") == rv.Algorithm.BFS
    assert rv.coerce_algorithm(rv.Algorithm.CC) == rv.Algorithm.CC
    with pytest.raises(rv.RelaxModeError) as excinfo:
        rv.coerce_algorithm("pagerank")
    assert "sssp" in excinfo.value.allowed


def test_enactor_config_coerces_output_kind():
    cfg = rv.EnactorConfig(output_kind="edge")
    assert cfg.output_kind == rv.FrontierKind.EDGE
    assert rv.DEFAULT_ENACTOR_CONFIG.output_kind == rv.FrontierKind.VERTEX


@pytest.mark.parametrize(
    "kwargs, field",
    [
        ({"max_grid_size": -1}, "max_grid_size"),
        ({"max_iterations": -1}, "max_iterations"),
        ({"num_partitions": 0}, "num_partitions"),
        ({"delta": -0.5}, "delta"),
        ({"priority": True, "output_kind": "edge"}, "priority"),
    ],
)
def test_enactor_config_validation(kwargs, field):
    with pytest.raises(rv.RelaxConfigError) as excinfo:
        rv.EnactorConfig(**kwargs)
    assert excinfo.value.field == field


def test_resolve_max_iterations_order(monkeypatch):
    cfg = rv.EnactorConfig()
    assert rv.resolve_max_iterations(cfg, 9) == 10
    assert rv.resolve_max_iterations(rv.EnactorConfig(priority=True), 9) == 100
    monkeypatch.setenv("RELAX_MAX_ITERATIONS", "7")
    assert rv.resolve_max_iterations(cfg, 9) == 7
    assert rv.resolve_max_iterations(rv.EnactorConfig(max_iterations=3), 9) == 3
    assert rv.resolve_max_iterations(rv.EnactorConfig(max_iterations=3), 9, 5) == 5


def test_env_max_iterations_rejects_garbage(monkeypatch):
    monkeypatch.setenv("RELAX_MAX_ITERATIONS", "many")
    with pytest.raises(ValueError, match=r"RELAX_MAX_ITERATIONS"):
        gating._env_max_iterations()


@pytest.mark.parametrize("value, expected", [("1", True), ("On", True), ("0", False), ("", False)])
def test_env_flag(monkeypatch, value, expected):
    monkeypatch.setenv("RELAX_ENACT_METRICS", value)
    assert gating._enact_metrics_enabled() is expected


def test_device_mem_limit(monkeypatch):
    assert gating._device_mem_limit_bytes() is None
    monkeypatch.setenv("RELAX_DEVICE_MEM_LIMIT_MB", "2")
    assert gating._device_mem_limit_bytes() == 2 * 1024 * 1024
    monkeypatch.setenv("RELAX_DEVICE_MEM_LIMIT_MB", "lots")
    with pytest.raises(ValueError):
        gating._device_mem_limit_bytes()


def test_resolve_type_combination():
    types = rv.resolve_type_combination("int32", np.int32, "float32")
    assert types.key == ("int32", "int32", "float32")
    assert rv.DEFAULT_TYPES.key == ("int32", "int32", "int32")
    assert ("int32", "int32", "int32") in rv.supported_combinations()


def test_resolve_type_combination_rejects():
    with pytest.raises(rv.UnsupportedTypeCombination) as excinfo:
        rv.resolve_type_combination("int32", "int32", "int8")
    assert excinfo.value.stage == "dispatch"
    assert "int32/int32/float32" in excinfo.value.supported


def test_env_zero_iterations_means_auto(monkeypatch):
    monkeypatch.setenv("RELAX_MAX_ITERATIONS", "0")
    assert gating._env_max_iterations() is None
    assert rv.resolve_max_iterations(rv.EnactorConfig(), 9) == 10


def test_bad_env_values_are_config_errors(monkeypatch):
    monkeypatch.setenv("RELAX_MAX_ITERATIONS", "abc")
    with pytest.raises(rv.RelaxConfigError) as excinfo:
        gating._env_max_iterations()
    assert excinfo.value.field == "RELAX_MAX_ITERATIONS"
    monkeypatch.setenv("RELAX_DEVICE_MEM_LIMIT_MB", "lots")
    with pytest.raises(rv.RelaxConfigError):
        gating._device_mem_limit_bytes()
