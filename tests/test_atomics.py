import jax
import jax.numpy as jnp
import numpy as np
import pytest

import relax_vm as rv


def test_atomic_min_single_winner_per_destination():
    target = jnp.full((3,), 10, dtype=jnp.int32)
    idx = jnp.array([0, 0, 1, 0], dtype=jnp.int32)
    cand = jnp.array([5, 3, 7, 3], dtype=jnp.int32)
    valid = jnp.ones((4,), dtype=jnp.bool_)
    result = rv.atomic_min_winners(target, idx, cand, valid)
    assert np.asarray(result.values).tolist() == [3, 7, 10]
    # Lanes 1 and 3 tie at the minimum; the lower lane wins.
    assert np.asarray(result.won).tolist() == [False, True, True, False]
    assert np.asarray(result.previous).tolist() == [10, 10, 10, 10]


def test_atomic_min_non_improving_lanes_lose():
    target = jnp.array([2, 9], dtype=jnp.int32)
    idx = jnp.array([0, 1], dtype=jnp.int32)
    cand = jnp.array([2, 9], dtype=jnp.int32)
    valid = jnp.array([True, True])
    result = rv.atomic_min_winners(target, idx, cand, valid)
    assert np.asarray(result.values).tolist() == [2, 9]
    assert not bool(jnp.any(result.won))


def test_atomic_min_ignores_invalid_lanes():
    target = jnp.full((2,), jnp.inf, dtype=jnp.float32)
    idx = jnp.array([0, -1, 1], dtype=jnp.int32)
    cand = jnp.array([1.5, -4.0, 0.5], dtype=jnp.float32)
    valid = jnp.array([True, False, True])
    result = rv.atomic_min_winners(target, idx, cand, valid)
    assert np.asarray(result.values).tolist() == [1.5, 0.5]
    assert np.asarray(result.won).tolist() == [True, False, True]


def test_atomic_min_is_jittable():
    @jax.jit
    def _step(target, idx, cand, valid):
        return rv.atomic_min_winners(target, idx, cand, valid)

    target = jnp.full((4,), rv.sentinel_for(jnp.int32), dtype=jnp.int32)
    idx = jnp.array([3, 3, 3], dtype=jnp.int32)
    cand = jnp.array([4, 2, 2], dtype=jnp.int32)
    result = _step(target, idx, cand, jnp.ones((3,), dtype=jnp.bool_))
    assert int(result.values[3]) == 2
    assert int(jnp.sum(result.won)) == 1
    assert bool(result.won[1])


def test_first_occurrence_dedups():
    ids = jnp.array([2, 1, 2, -1, 1], dtype=jnp.int32)
    valid = jnp.array([True, True, True, False, True])
    keep = rv.first_occurrence(ids, valid, 3)
    assert np.asarray(keep).tolist() == [True, True, False, False, False]


@pytest.mark.parametrize(
    "dtype, expected",
    [(jnp.int32, np.iinfo(np.int32).max), (jnp.float32, np.inf)],
)
def test_sentinel_for(dtype, expected):
    assert rv.sentinel_for(dtype).item() == expected


def test_compact_ids_keeps_order():
    ids = jnp.array([5, 6, 7, 8], dtype=jnp.int32)
    keep = jnp.array([False, True, False, True])
    out, count = rv.compact_ids(ids, keep)
    assert np.asarray(out).tolist() == [6, 8, -1, -1]
    assert int(count) == 2


def test_ids_from_mask():
    ids, count = rv.ids_from_mask(jnp.array([True, False, True]))
    assert np.asarray(ids).tolist() == [0, 2, -1]
    assert int(count) == 2


def test_compact_mask_result_fields():
    result = rv.compact_mask(jnp.array([False, True, True, False]))
    assert np.asarray(result.idx)[:2].tolist() == [1, 2]
    assert np.asarray(result.valid).tolist() == [True, True, False, False]
    assert int(result.count) == 2


def test_saturating_add_pins_below_sentinel():
    labels = jnp.array([0, 2**31 - 11, 2**31 - 2], dtype=jnp.int32)
    costs = jnp.array([5, 100, 1], dtype=jnp.int32)
    out = np.asarray(rv.saturating_add(labels, costs)).tolist()
    assert out == [5, 2**31 - 2, 2**31 - 2]


def test_saturating_add_float_stays_finite():
    big = np.finfo(np.float32).max
    labels = jnp.array([1.5, big], dtype=jnp.float32)
    costs = jnp.array([0.5, big], dtype=jnp.float32)
    out = np.asarray(rv.saturating_add(labels, costs))
    assert out[0] == 2.0
    assert np.isfinite(out[1])
