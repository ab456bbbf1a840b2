"""Market regime switching applied on top of the monthly return draw."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final

import numpy as np

from wealthsim.engine.utils.rand import RandomStreams, SeededRandom

__all__ = [
    "MarketRegime",
    "RegimeParameters",
    "REGIME_TABLE",
    "REGIME_ORDER",
    "exit_probability",
    "next_regime",
    "step_regime",
    "RegimeState",
]

MAX_EXIT_PROBABILITY: Final[float] = 0.5
EXIT_SCALE: Final[float] = 0.3


class MarketRegime(Enum):
    """Closed set of market states; declaration order is the transition scan order."""

    BULL = "bull"
    NORMAL = "normal"
    BEAR = "bear"


@dataclass(frozen=True)
class RegimeParameters:
    """Adjustments and transition weights of one regime.

    Attributes:
      return_adjustment: Additive annual return adjustment.
      volatility_multiplier: Factor applied to monthly volatility.
      average_duration: Expected stay in months.
      transitions: Successor probabilities in :class:`MarketRegime` order.
    """

    return_adjustment: float
    volatility_multiplier: float
    average_duration: float
    transitions: tuple[float, float, float]


REGIME_ORDER: Final[tuple[MarketRegime, ...]] = tuple(MarketRegime)

REGIME_TABLE: Final[dict[MarketRegime, RegimeParameters]] = {
    MarketRegime.BULL: RegimeParameters(0.03, 0.8, 36, (0.85, 0.12, 0.03)),
    MarketRegime.NORMAL: RegimeParameters(0.0, 1.0, 24, (0.15, 0.70, 0.15)),
    MarketRegime.BEAR: RegimeParameters(-0.05, 1.5, 12, (0.10, 0.30, 0.60)),
}

# Array views of the table indexed by position in REGIME_ORDER.
_RETURN_ADJ = np.array([REGIME_TABLE[r].return_adjustment for r in REGIME_ORDER])
_VOL_MULT = np.array([REGIME_TABLE[r].volatility_multiplier for r in REGIME_ORDER])
_DURATION = np.array([REGIME_TABLE[r].average_duration for r in REGIME_ORDER], dtype=float)
_CUMULATIVE = np.cumsum(
    np.array([REGIME_TABLE[r].transitions for r in REGIME_ORDER], dtype=float), axis=1
)
_NORMAL_INDEX: Final[int] = REGIME_ORDER.index(MarketRegime.NORMAL)


def exit_probability(regime: MarketRegime, months_in_regime: int) -> float:
    """Probability of leaving ``regime`` after ``months_in_regime`` months."""

    duration = REGIME_TABLE[regime].average_duration
    return min(MAX_EXIT_PROBABILITY, months_in_regime / duration * EXIT_SCALE)


def next_regime(regime: MarketRegime, draw: float) -> MarketRegime:
    """Pick the successor of ``regime`` for the uniform ``draw``.

    Scans regimes in declaration order and returns the first one whose
    cumulative transition probability exceeds ``draw`` and which differs from
    the current regime. The current regime is kept when none qualifies.
    """

    cumulative = 0.0
    for candidate, probability in zip(
        REGIME_ORDER, REGIME_TABLE[regime].transitions, strict=True
    ):
        cumulative += probability
        if draw < cumulative and candidate is not regime:
            return candidate
    return regime


def step_regime(
    rng: SeededRandom, regime: MarketRegime, months_in_regime: int
) -> tuple[MarketRegime, int]:
    """Advance one month of a single path.

    Returns:
      The regime for this month and the updated months-in-regime counter.
    """

    if rng.next() < exit_probability(regime, months_in_regime):
        successor = next_regime(regime, rng.next())
        if successor is not regime:
            regime, months_in_regime = successor, 0
    return regime, months_in_regime + 1


class RegimeState:
    """Regime of every path in a batch, advanced one month at a time.

    Args:
      size: Number of paths; all start in ``NORMAL`` with zero months.
    """

    def __init__(self, size: int) -> None:
        self.index = np.full(size, _NORMAL_INDEX, dtype=np.int64)
        self.months = np.zeros(size, dtype=np.int64)

    def step(self, streams: RandomStreams) -> None:
        """Consume one draw per path (two on exit) and update the regimes."""

        draw = streams.next()
        exiting = draw < np.minimum(
            MAX_EXIT_PROBABILITY, self.months / _DURATION[self.index] * EXIT_SCALE
        )
        second = streams.next(mask=exiting)
        # First regime in scan order with second < cumulative, skipping the current one.
        candidates = second[:, None] < _CUMULATIVE[self.index]
        candidates[np.arange(self.index.size), self.index] = False
        has_candidate = candidates.any(axis=1)
        successor = np.where(has_candidate, candidates.argmax(axis=1), self.index)
        changed = exiting & (successor != self.index)
        self.index = np.where(changed, successor, self.index)
        self.months = np.where(changed, 0, self.months) + 1

    def adjust(
        self, monthly_return: float, monthly_volatility: float
    ) -> tuple[np.ndarray, np.ndarray]:
        """Return per-path regime-adjusted monthly return and volatility."""

        return (
            monthly_return + _RETURN_ADJ[self.index] / 12.0,
            monthly_volatility * _VOL_MULT[self.index],
        )

    def regimes(self) -> list[MarketRegime]:
        return [REGIME_ORDER[i] for i in self.index]
