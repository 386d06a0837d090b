"""Flat import surface for callers and tests (``import relax_vm as rv``)."""

from relax_core import *
from relax_core.jax_safe import (
    HAS_DEBUG_CALLBACK as _HAS_DEBUG_CALLBACK,
    SCATTER_GUARD as _SCATTER_GUARD,
    TEST_GUARDS as _TEST_GUARDS,
    drop_index as _drop_index,
    safe_gather_1d as _safe_gather_1d,
    scatter_add_drop as _scatter_add_drop,
    scatter_min_drop as _scatter_min_drop,
    scatter_set_drop as _scatter_set_drop,
)
from relax_graph import *
from relax_enactor import *
from relax_apps import *
from relax_metrics import *
