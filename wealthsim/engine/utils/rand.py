"""Deterministic random number generation for the projection engine.

The engine relies on the Mulberry32 generator so that a seeded simulation is
reproducible draw for draw. :class:`SeededRandom` is the scalar generator used
when a single path is simulated; :class:`RandomStreams` keeps one Mulberry32
state per Monte Carlo path in a NumPy array and advances all of them at once.
Stream ``k`` of a :class:`RandomStreams` yields exactly the uniform sequence of
``SeededRandom(seeds[k])``.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Final

import numpy as np

MASK_32: Final[int] = 0xFFFFFFFF
INCREMENT: Final[int] = 0x6D2B79F5
TWO_POW_32: Final[float] = 4294967296.0
# Smallest non-zero Mulberry32 output, used in place of 0 before taking logs.
MIN_UNIFORM: Final[float] = 1.0 / TWO_POW_32

_MASK_U64 = np.uint64(MASK_32)
_INCREMENT_U64 = np.uint64(INCREMENT)

__all__ = [
    "MASK_32",
    "SeededRandom",
    "RandomStreams",
    "ambient_seed",
    "iteration_seeds",
]


def ambient_seed() -> int:
    """Return a 32-bit seed drawn from the operating system entropy pool."""

    state = np.random.SeedSequence().generate_state(1, dtype=np.uint32)
    return int(state[0])


def iteration_seeds(base_seed: int, count: int) -> np.ndarray:
    """Return the per-iteration seeds ``base_seed + i`` reduced modulo 2**32.

    Args:
      base_seed: Seed of the first iteration.
      count: Number of iterations.

    Returns:
      ``uint64`` array of length ``count``.
    """

    if count < 0:
        raise ValueError("count must be >= 0")
    offsets = np.arange(count, dtype=np.uint64)
    return (np.uint64(int(base_seed) & MASK_32) + offsets) & _MASK_U64


def _imul(a: int, b: int) -> int:
    return (a * b) & MASK_32


class SeededRandom:
    """Scalar Mulberry32 generator with a Box-Muller normal sampler.

    Args:
      seed: Integer seed, reduced modulo 2**32. ``None`` draws an ambient
        non-deterministic seed.
    """

    def __init__(self, seed: int | None = None) -> None:
        resolved = ambient_seed() if seed is None else int(seed)
        self.seed = resolved & MASK_32
        self._state = self.seed

    @property
    def state(self) -> int:
        """Current 32-bit generator state."""

        return self._state

    @state.setter
    def state(self, value: int) -> None:
        self._state = int(value) & MASK_32

    def next(self) -> float:
        """Return the next uniform float in ``[0, 1)``."""

        self._state = (self._state + INCREMENT) & MASK_32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & MASK_32
        return ((t ^ (t >> 14)) & MASK_32) / TWO_POW_32

    def next_normal(self, mean: float, std_dev: float) -> float:
        """Return one normal sample via the Box-Muller transform."""

        u1 = self.next()
        u2 = self.next()
        if u1 == 0.0:
            u1 = MIN_UNIFORM
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return z0 * std_dev + mean


class RandomStreams:
    """Vector of independent Mulberry32 generators, one per simulated path.

    Args:
      seeds: One seed per stream; values are reduced modulo 2**32.
    """

    def __init__(self, seeds: Sequence[int] | np.ndarray) -> None:
        states = seeds if isinstance(seeds, np.ndarray) else np.asarray(seeds, dtype=np.int64)
        if states.dtype.kind not in "iu":
            raise TypeError("seeds must be integers")
        self._state = states.astype(np.int64).astype(np.uint64) & _MASK_U64

    @classmethod
    def for_iterations(cls, base_seed: int, count: int) -> RandomStreams:
        """Build ``count`` streams seeded with ``base_seed + i``."""

        return cls(iteration_seeds(base_seed, count))

    @property
    def size(self) -> int:
        """Number of streams."""

        return int(self._state.size)

    @property
    def states(self) -> np.ndarray:
        """Copy of the current per-stream states."""

        return self._state.copy()

    def next(self, mask: np.ndarray | None = None) -> np.ndarray:
        """Advance the streams selected by ``mask`` and return their draws.

        Args:
          mask: Optional boolean array; unselected streams keep their state and
            their slot in the returned array is meaningless.

        Returns:
          ``float64`` array of uniform draws in ``[0, 1)``.
        """

        state = (self._state + _INCREMENT_U64) & _MASK_U64
        t = state
        t = ((t ^ (t >> np.uint64(15))) * (t | np.uint64(1))) & _MASK_U64
        mixed = ((t ^ (t >> np.uint64(7))) * (t | np.uint64(61))) & _MASK_U64
        t = t ^ ((t + mixed) & _MASK_U64)
        values = (t ^ (t >> np.uint64(14))).astype(np.float64) / TWO_POW_32
        if mask is None:
            self._state = state
        else:
            self._state = np.where(mask, state, self._state)
        return values

    def next_normal(
        self,
        mean: float | np.ndarray,
        std_dev: float | np.ndarray,
        mask: np.ndarray | None = None,
    ) -> np.ndarray:
        """Return one Box-Muller normal draw per stream."""

        u1 = self.next(mask)
        u2 = self.next(mask)
        u1 = np.where(u1 == 0.0, MIN_UNIFORM, u1)
        z0 = np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)
        return z0 * std_dev + mean
