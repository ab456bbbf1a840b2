from __future__ import annotations

import math

import numpy as np
import pytest

from wealthsim.engine.utils.rand import (
    MASK_32,
    RandomStreams,
    SeededRandom,
    ambient_seed,
    iteration_seeds,
)


def test_seeded_random_is_reproducible() -> None:
    first = SeededRandom(12345)
    second = SeededRandom(12345)
    draws = [first.next() for _ in range(50)]
    assert draws == [second.next() for _ in range(50)]
    assert all(0.0 <= value < 1.0 for value in draws)


def test_seeded_random_differs_across_seeds() -> None:
    left = [SeededRandom(1).next() for _ in range(3)]
    right = [SeededRandom(2).next() for _ in range(3)]
    assert left != right


def test_seed_is_reduced_to_32_bits() -> None:
    assert SeededRandom(-1).seed == MASK_32
    assert SeededRandom(2**32 + 5).seed == 5
    wrapped = SeededRandom(2**32 + 5)
    plain = SeededRandom(5)
    assert [wrapped.next() for _ in range(5)] == [plain.next() for _ in range(5)]


def test_state_setter_restarts_sequence() -> None:
    rng = SeededRandom(7)
    rng.next()
    saved = rng.state
    expected = [rng.next() for _ in range(4)]
    rng.state = saved
    assert [rng.next() for _ in range(4)] == expected


def test_next_normal_replaces_zero_uniform(monkeypatch: pytest.MonkeyPatch) -> None:
    rng = SeededRandom(0)
    draws = iter([0.0, 0.0])
    monkeypatch.setattr(rng, "next", lambda: next(draws))
    value = rng.next_normal(0.0, 1.0)
    assert math.isfinite(value)
    assert value == pytest.approx(math.sqrt(-2.0 * math.log(2.0**-32)))


def test_next_normal_moments() -> None:
    rng = SeededRandom(2024)
    samples = np.array([rng.next_normal(0.01, 0.05) for _ in range(20_000)])
    assert samples.mean() == pytest.approx(0.01, abs=0.002)
    assert samples.std() == pytest.approx(0.05, rel=0.05)


def test_random_streams_match_scalar_generators() -> None:
    seeds = [0, 1, 99, 2**31, MASK_32]
    streams = RandomStreams(seeds)
    scalars = [SeededRandom(seed) for seed in seeds]
    for _ in range(25):
        values = streams.next()
        assert values.tolist() == [rng.next() for rng in scalars]


def test_random_streams_normals_match_scalar_generators() -> None:
    streams = RandomStreams.for_iterations(500, 8)
    scalars = [SeededRandom(500 + k) for k in range(8)]
    for _ in range(10):
        values = streams.next_normal(0.002, 0.04)
        expected = [rng.next_normal(0.002, 0.04) for rng in scalars]
        np.testing.assert_allclose(values, expected, rtol=1e-12, atol=1e-15)


def test_masked_draw_keeps_unselected_states() -> None:
    streams = RandomStreams([10, 11, 12])
    before = streams.states
    mask = np.array([True, False, True])
    streams.next(mask=mask)
    after = streams.states
    assert after[1] == before[1]
    assert after[0] != before[0]
    assert after[2] != before[2]


def test_random_streams_rejects_float_seeds() -> None:
    with pytest.raises(TypeError):
        RandomStreams(np.array([0.5, 1.5]))


def test_iteration_seeds_wrap_modulo_2_32() -> None:
    seeds = iteration_seeds(MASK_32, 3)
    assert seeds.tolist() == [MASK_32, 0, 1]
    with pytest.raises(ValueError):
        iteration_seeds(0, -1)


def test_ambient_seed_is_32_bit() -> None:
    for _ in range(5):
        seed = ambient_seed()
        assert 0 <= seed <= MASK_32
    assert RandomStreams.for_iterations(ambient_seed(), 4).size == 4
