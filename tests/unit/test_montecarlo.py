from __future__ import annotations

from datetime import date

import numpy as np
import pytest

from wealthsim.engine.simulation.constants import TIME_HORIZONS, SimulationConstants
from wealthsim.engine.simulation.models import SimulationInput
from wealthsim.engine.simulation.montecarlo import (
    IterationBatch,
    aggregate_results,
    calculate_probability,
    median,
    percentile,
    run_monte_carlo,
)
from wealthsim.engine.simulation.params import (
    PathParameters,
    build_path_parameters,
    resolve_input,
)


def _params() -> PathParameters:
    return PathParameters(
        starting_net_worth=50_000.0,
        monthly_savings=2_000.0,
        monthly_expenses=500.0,
        monthly_return=0.003,
        monthly_volatility=0.05,
        income_growth=0.002,
        expense_growth=0.003,
        monthly_withdrawal=0.0,
        goal_ids=("primary", "second"),
        goal_amounts=(100_000.0, 150_000.0),
        goal_months=(36, 60),
        enable_market_regimes=True,
    )


def _batch() -> IterationBatch:
    net_worth = np.tile(np.arange(1.0, 5.0)[:, None], (1, len(TIME_HORIZONS)))
    return IterationBatch(
        net_worth=net_worth,
        goal_achieved_month=np.array([3, 0, 5, 8]),
        goal_months=np.array([[3, 10], [0, 12], [5, 0], [8, 20]]),
        goal_ids=("primary", "second"),
    )


def test_median_handles_parity() -> None:
    assert median(np.array([])) == 0.0
    assert median(np.array([1.0, 2.0, 3.0])) == 2.0
    assert median(np.array([1.0, 2.0, 3.0, 4.0])) == 2.5


@pytest.mark.parametrize(
    ("p", "expected"),
    [(10, 1.0), (50, 5.0), (90, 9.0), (100, 10.0), (0, 1.0)],
)
def test_percentile_nearest_rank(p: float, expected: float) -> None:
    values = np.arange(1.0, 11.0)
    assert percentile(values, p) == expected


def test_percentile_of_empty_sample() -> None:
    assert percentile(np.array([]), 90) == 0.0


def test_run_monte_carlo_is_reproducible() -> None:
    first = run_monte_carlo(_params(), 50, seed=42)
    second = run_monte_carlo(_params(), 50, seed=42)
    np.testing.assert_array_equal(first.net_worth, second.net_worth)
    np.testing.assert_array_equal(first.goal_months, second.goal_months)


def test_iterations_do_not_depend_on_batch_size() -> None:
    small = run_monte_carlo(_params(), 10, seed=42)
    large = run_monte_carlo(_params(), 25, seed=42)
    np.testing.assert_allclose(small.net_worth, large.net_worth[:10], rtol=1e-12)
    np.testing.assert_array_equal(small.goal_months, large.goal_months[:10])


def test_unseeded_runs_produce_valid_batches() -> None:
    batch = run_monte_carlo(_params(), 30)
    assert batch.size == 30
    assert (batch.net_worth >= 0).all()


def test_negative_iterations_rejected() -> None:
    with pytest.raises(ValueError):
        run_monte_carlo(_params(), -1)


def test_aggregate_results_on_fixed_batch() -> None:
    batch = _batch()
    aggregated = aggregate_results(batch)
    assert aggregated.probability == 0.75
    assert calculate_probability(batch) == 0.75
    assert aggregated.all_goals_probability == 0.5
    assert aggregated.median_goal_month == 5.0
    assert aggregated.median_net_worth["20yr"] == 2.5
    assert aggregated.percentile_10["6mo"] == 1.0
    assert aggregated.percentile_90["6mo"] == 4.0
    primary, second = aggregated.goal_results
    assert primary.goal_id == "primary"
    assert primary.probability == 0.75
    assert second.probability == 0.75
    assert second.median_achieved_month == 12.0


def test_aggregate_results_on_empty_batch() -> None:
    batch = IterationBatch(
        net_worth=np.zeros((0, len(TIME_HORIZONS))),
        goal_achieved_month=np.zeros(0, dtype=np.int64),
        goal_months=np.zeros((0, 1), dtype=np.int64),
        goal_ids=("primary",),
    )
    aggregated = aggregate_results(batch)
    assert aggregated.probability == 0.0
    assert aggregated.all_goals_probability == 0.0
    assert aggregated.median_goal_month is None
    assert aggregated.median_net_worth == {horizon: 0.0 for horizon in TIME_HORIZONS}
    assert aggregated.goal_results[0].median_achieved_month is None


def test_all_goals_probability_bounded_by_each_goal() -> None:
    aggregated = aggregate_results(run_monte_carlo(_params(), 300, seed=9))
    for goal in aggregated.goal_results:
        assert aggregated.all_goals_probability <= goal.probability
    for horizon in TIME_HORIZONS:
        assert aggregated.percentile_10[horizon] <= aggregated.median_net_worth[horizon]
        assert aggregated.median_net_worth[horizon] <= aggregated.percentile_90[horizon]


def test_iteration_view_exposes_achievements() -> None:
    iteration = _batch().iteration(2)
    assert iteration.goal_achieved_month == 5
    assert iteration.goal_achievements[1].achieved is False
    assert iteration.goal_achievements[1].achieved_month is None
    assert iteration.all_goals_achieved is False
    assert iteration.net_worth["1yr"] == 3.0


def test_higher_savings_rate_never_lowers_median_net_worth(
    base_input: SimulationInput, as_of: date, fast_constants: SimulationConstants
) -> None:
    resolved = resolve_input(base_input, fast_constants)
    medians: dict[str, list[float]] = {horizon: [] for horizon in ("5yr", "20yr")}
    for rate in (0.05, 0.15, 0.3):
        params = build_path_parameters(resolved, rate, as_of, fast_constants)
        aggregated = [
            aggregate_results(run_monte_carlo(params, 200, seed=seed))
            for seed in (1, 7, 42, 2024)
        ]
        for horizon, values in medians.items():
            values.append(np.mean([result.median_net_worth[horizon] for result in aggregated]))
    for horizon, values in medians.items():
        assert np.all(np.diff(values) >= 0), horizon
