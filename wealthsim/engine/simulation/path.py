"""Monthly net-worth trajectories over the 20-year simulation horizon.

Two renditions of the same monthly recurrence live here. :func:`simulate_paths`
advances a whole batch of paths at once, one Mulberry32 stream per path, and is
what the Monte Carlo runner uses. :func:`simulate_path` walks a single path
with a scalar :class:`~wealthsim.engine.utils.rand.SeededRandom` and serves as
the readable reference of the model.

Each month the regime is advanced (when enabled), savings grow with income,
expense growth crowds out savings, the post-goal withdrawal is deducted, the
contribution is added and one normal return is applied. Net worth is floored
at zero and goals are checked against their deadline-derived month limits.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

import numpy as np

from wealthsim.engine.utils.rand import RandomStreams, SeededRandom

from .constants import SIMULATION_MONTHS, TIME_HORIZON_MONTHS, TIME_HORIZONS
from .models import GoalAchievement, MonteCarloIteration
from .params import PathParameters
from .regime import REGIME_TABLE, MarketRegime, RegimeState, step_regime

__all__ = ["IterationBatch", "simulate_paths", "simulate_path"]

# Month 0 marks "not achieved" in the month arrays.
NOT_ACHIEVED: Final[int] = 0
_HORIZON_SLOTS: Final[dict[int, int]] = {
    TIME_HORIZON_MONTHS[horizon]: slot for slot, horizon in enumerate(TIME_HORIZONS)
}


@dataclass(frozen=True)
class IterationBatch:
    """Outcome of a batch of simulated paths stored column-wise.

    Attributes:
      net_worth: ``(N, 5)`` net worth snapshots in :data:`TIME_HORIZONS` order.
      goal_achieved_month: ``(N,)`` primary achievement month, ``0`` if missed.
      goal_months: ``(N, G)`` per-goal achievement month, ``0`` if missed.
      goal_ids: Identifiers of the ``G`` tracked goals.
    """

    net_worth: np.ndarray
    goal_achieved_month: np.ndarray
    goal_months: np.ndarray
    goal_ids: tuple[str, ...]

    @property
    def size(self) -> int:
        return int(self.goal_achieved_month.shape[0])

    @property
    def goal_achieved(self) -> np.ndarray:
        return self.goal_achieved_month != NOT_ACHIEVED

    @property
    def goals_achieved(self) -> np.ndarray:
        return self.goal_months != NOT_ACHIEVED

    @property
    def all_goals_achieved(self) -> np.ndarray:
        return self.goals_achieved.all(axis=1)

    def __len__(self) -> int:
        return self.size

    def iteration(self, index: int) -> MonteCarloIteration:
        """Materialise iteration ``index`` as a :class:`MonteCarloIteration`."""

        primary = int(self.goal_achieved_month[index])
        achievements = tuple(
            GoalAchievement(
                goal_id=goal_id,
                achieved=int(month) != NOT_ACHIEVED,
                achieved_month=None if int(month) == NOT_ACHIEVED else int(month),
            )
            for goal_id, month in zip(self.goal_ids, self.goal_months[index], strict=True)
        )
        return MonteCarloIteration(
            net_worth={
                horizon: float(self.net_worth[index, slot])
                for slot, horizon in enumerate(TIME_HORIZONS)
            },
            goal_achieved=primary != NOT_ACHIEVED,
            goal_achieved_month=None if primary == NOT_ACHIEVED else primary,
            goal_achievements=achievements,
            all_goals_achieved=all(item.achieved for item in achievements),
        )


def simulate_paths(params: PathParameters, streams: RandomStreams) -> IterationBatch:
    """Simulate one path per random stream.

    Args:
      params: Monthly parameters shared by every path.
      streams: One Mulberry32 stream per path.

    Returns:
      The :class:`IterationBatch` of all paths.
    """

    size = streams.size
    goal_amounts = params.goal_amount_array()
    goal_limits = params.goal_month_array()
    net_worth = np.full(size, params.starting_net_worth, dtype=float)
    primary_month = np.zeros(size, dtype=np.int64)
    goal_month = np.zeros((size, goal_amounts.size), dtype=np.int64)
    snapshots = np.zeros((size, len(TIME_HORIZONS)), dtype=float)
    regimes = RegimeState(size) if params.enable_market_regimes else None

    # Savings and expenses evolve identically on every path.
    savings = params.monthly_savings
    expenses = params.monthly_expenses

    for month in range(1, SIMULATION_MONTHS + 1):
        if regimes is not None:
            regimes.step(streams)
            mean, volatility = regimes.adjust(params.monthly_return, params.monthly_volatility)
        else:
            mean, volatility = params.monthly_return, params.monthly_volatility

        if month > 1 and params.income_growth > 0:
            savings *= 1 + params.income_growth
        if month > 1 and expenses > 0:
            previous = expenses
            expenses *= 1 + params.expense_growth
            savings = max(0.0, savings - (expenses - previous))

        if params.monthly_withdrawal > 0:
            contribution = np.where(
                primary_month != NOT_ACHIEVED, savings - params.monthly_withdrawal, savings
            )
            net_worth = net_worth + contribution
        else:
            net_worth = net_worth + savings

        monthly_return = streams.next_normal(mean, volatility)
        net_worth = np.maximum(0.0, net_worth * (1 + monthly_return))

        if month <= params.primary_months:
            reached = (primary_month == NOT_ACHIEVED) & (net_worth >= params.primary_amount)
            primary_month[reached] = month
        open_goals = month <= goal_limits
        if open_goals.any():
            reached = (
                (goal_month == NOT_ACHIEVED) & (net_worth[:, None] >= goal_amounts) & open_goals
            )
            goal_month[reached] = month

        slot = _HORIZON_SLOTS.get(month)
        if slot is not None:
            snapshots[:, slot] = net_worth

    return IterationBatch(
        net_worth=snapshots,
        goal_achieved_month=primary_month,
        goal_months=goal_month,
        goal_ids=params.goal_ids,
    )


def simulate_path(params: PathParameters, rng: SeededRandom) -> MonteCarloIteration:
    """Simulate a single path with a scalar generator.

    Matches, up to floating-point rounding, the iteration :func:`simulate_paths`
    yields for the stream seeded like ``rng``.
    """

    net_worth = params.starting_net_worth
    savings = params.monthly_savings
    expenses = params.monthly_expenses
    primary_month: int | None = None
    goal_month: list[int | None] = [None] * len(params.goal_amounts)
    snapshots: dict[str, float] = {}
    regime = MarketRegime.NORMAL
    months_in_regime = 0

    for month in range(1, SIMULATION_MONTHS + 1):
        mean, volatility = params.monthly_return, params.monthly_volatility
        if params.enable_market_regimes:
            regime, months_in_regime = step_regime(rng, regime, months_in_regime)
            regime_params = REGIME_TABLE[regime]
            mean = mean + regime_params.return_adjustment / 12.0
            volatility = volatility * regime_params.volatility_multiplier

        if month > 1 and params.income_growth > 0:
            savings *= 1 + params.income_growth
        if month > 1 and expenses > 0:
            previous = expenses
            expenses *= 1 + params.expense_growth
            savings = max(0.0, savings - (expenses - previous))

        contribution = savings
        if primary_month is not None and params.monthly_withdrawal > 0:
            contribution -= params.monthly_withdrawal
        net_worth += contribution
        net_worth *= 1 + rng.next_normal(mean, volatility)
        net_worth = max(0.0, net_worth)

        if (
            primary_month is None
            and net_worth >= params.primary_amount
            and month <= params.primary_months
        ):
            primary_month = month
        for idx, (amount, limit) in enumerate(
            zip(params.goal_amounts, params.goal_months, strict=True)
        ):
            if goal_month[idx] is None and net_worth >= amount and month <= limit:
                goal_month[idx] = month

        if month in _HORIZON_SLOTS:
            snapshots[TIME_HORIZONS[_HORIZON_SLOTS[month]]] = net_worth

    achievements = tuple(
        GoalAchievement(goal_id=goal_id, achieved=month is not None, achieved_month=month)
        for goal_id, month in zip(params.goal_ids, goal_month, strict=True)
    )
    return MonteCarloIteration(
        net_worth=snapshots,
        goal_achieved=primary_month is not None,
        goal_achieved_month=primary_month,
        goal_achievements=achievements,
        all_goals_achieved=all(item.achieved for item in achievements),
    )
