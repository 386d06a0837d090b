import os
import sys

import pytest

# Enable strict scatter/gather guards in tests unless explicitly overridden.
os.environ.setdefault("RELAX_SCATTER_GUARD", "1")
os.environ.setdefault("RELAX_TEST_GUARDS", "1")
# Disable preallocation unless explicitly set.
os.environ.setdefault("XLA_PYTHON_CLIENT_PREALLOCATE", "false")

import jax

# Ensure src/ is importable without an editable install.
ROOT = os.path.dirname(os.path.dirname(__file__))
SRC = os.path.join(ROOT, "src")
for path in (SRC, ROOT):
    if path not in sys.path:
        sys.path.insert(0, path)


@pytest.fixture(autouse=True)
def _set_default_device():
    with jax.default_device(jax.devices("cpu")[0]):
        yield


@pytest.fixture(autouse=True)
def _clean_relax_env(monkeypatch):
    for name in (
        "RELAX_ENACT_METRICS",
        "RELAX_MAX_ITERATIONS",
        "RELAX_DEVICE_MEM_LIMIT_MB",
    ):
        monkeypatch.delenv(name, raising=False)
