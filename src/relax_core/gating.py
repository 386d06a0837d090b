import os

from relax_core.errors import RelaxConfigError

_TRUTHY = ("1", "true", "yes", "on")


def _env_flag(name):
    value = os.environ.get(name, "").strip().lower()
    return value in _TRUTHY


def _test_guards_enabled():
    return _env_flag("RELAX_TEST_GUARDS")


def _scatter_guard_enabled():
    return _test_guards_enabled() or _env_flag("RELAX_SCATTER_GUARD")


def _gather_guard_enabled():
    return _test_guards_enabled() or _env_flag("RELAX_GATHER_GUARD")


def _enact_metrics_enabled():
    return _env_flag("RELAX_ENACT_METRICS")


def _env_max_iterations():
    value = os.environ.get("RELAX_MAX_ITERATIONS", "").strip()
    if not value:
        return None
    if not value.isdigit():
        raise RelaxConfigError(
            "RELAX_MAX_ITERATIONS must be an integer", field="RELAX_MAX_ITERATIONS"
        )
    # 0 means auto, as in EnactorConfig.max_iterations.
    return int(value) or None


def _device_mem_limit_bytes():
    value = os.environ.get("RELAX_DEVICE_MEM_LIMIT_MB", "").strip()
    if not value:
        return None
    try:
        limit_mb = float(value)
    except ValueError:
        raise RelaxConfigError(
            "RELAX_DEVICE_MEM_LIMIT_MB must be a number",
            field="RELAX_DEVICE_MEM_LIMIT_MB",
        ) from None
    if limit_mb <= 0:
        return None
    return int(limit_mb * 1024 * 1024)


__all__ = [
    "_env_flag",
    "_test_guards_enabled",
    "_scatter_guard_enabled",
    "_gather_guard_enabled",
    "_enact_metrics_enabled",
    "_env_max_iterations",
    "_device_mem_limit_bytes",
]
