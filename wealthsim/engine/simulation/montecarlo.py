"""Monte Carlo runner and aggregation of simulated paths."""

from __future__ import annotations

import math

import numpy as np

from wealthsim.engine.utils.rand import RandomStreams, ambient_seed

from .constants import TIME_HORIZONS
from .models import AggregatedResult, GoalAggregate
from .params import PathParameters
from .path import IterationBatch, simulate_paths

__all__ = [
    "IterationBatch",
    "run_monte_carlo",
    "aggregate_results",
    "calculate_probability",
    "median",
    "percentile",
]


def run_monte_carlo(
    params: PathParameters, iterations: int, seed: int | None = None
) -> IterationBatch:
    """Simulate ``iterations`` independent paths.

    Iteration ``i`` draws from a generator seeded with ``seed + i`` so each
    outcome is independent of the iteration count. Without a seed one ambient
    base seed is drawn for the whole batch.

    Args:
      params: Monthly path parameters for one savings rate.
      iterations: Number of paths.
      seed: Optional base seed.

    Returns:
      The :class:`IterationBatch` of all paths.
    """

    if iterations < 0:
        raise ValueError("iterations must be >= 0")
    base_seed = ambient_seed() if seed is None else int(seed)
    return simulate_paths(params, RandomStreams.for_iterations(base_seed, iterations))


def median(sorted_values: np.ndarray) -> float:
    """Median of ascending values; even lengths average the two middle values."""

    n = int(sorted_values.size)
    if n == 0:
        return 0.0
    mid = n // 2
    if n % 2:
        return float(sorted_values[mid])
    return float((sorted_values[mid - 1] + sorted_values[mid]) / 2)


def percentile(sorted_values: np.ndarray, p: float) -> float:
    """Nearest-rank percentile: index ``ceil(p / 100 * n) - 1`` clamped to range."""

    n = int(sorted_values.size)
    if n == 0:
        return 0.0
    index = math.ceil(p / 100 * n) - 1
    return float(sorted_values[max(0, min(index, n - 1))])


def _share(flags: np.ndarray) -> float:
    if flags.size == 0:
        return 0.0
    return int(np.count_nonzero(flags)) / int(flags.size)


def _median_month(months: np.ndarray) -> float | None:
    achieved = np.sort(months[months > 0])
    return median(achieved) if achieved.size else None


def calculate_probability(batch: IterationBatch) -> float:
    """Share of iterations that reached the primary goal."""

    return _share(batch.goal_achieved)


def aggregate_results(batch: IterationBatch) -> AggregatedResult:
    """Reduce ``batch`` to probabilities, medians and percentile bands.

    Args:
      batch: Simulated paths.

    Returns:
      The :class:`AggregatedResult` of the batch.
    """

    median_net_worth: dict[str, float] = {}
    percentile_10: dict[str, float] = {}
    percentile_90: dict[str, float] = {}
    for slot, horizon in enumerate(TIME_HORIZONS):
        values = np.sort(batch.net_worth[:, slot])
        median_net_worth[horizon] = median(values)
        percentile_10[horizon] = percentile(values, 10)
        percentile_90[horizon] = percentile(values, 90)

    goal_results = tuple(
        GoalAggregate(
            goal_id=goal_id,
            probability=_share(batch.goals_achieved[:, idx]),
            median_achieved_month=_median_month(batch.goal_months[:, idx]),
        )
        for idx, goal_id in enumerate(batch.goal_ids)
    )
    return AggregatedResult(
        probability=calculate_probability(batch),
        all_goals_probability=_share(batch.all_goals_achieved),
        median_net_worth=median_net_worth,
        percentile_10=percentile_10,
        percentile_90=percentile_90,
        median_goal_month=_median_month(batch.goal_achieved_month),
        goal_results=goal_results,
    )
