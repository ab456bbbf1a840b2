from __future__ import annotations

from dataclasses import replace

import numpy as np
import pytest

from wealthsim.engine.simulation.montecarlo import run_monte_carlo
from wealthsim.engine.simulation.params import PathParameters
from wealthsim.engine.simulation.path import simulate_path, simulate_paths
from wealthsim.engine.utils.rand import RandomStreams, SeededRandom


def _params(**overrides: object) -> PathParameters:
    base = PathParameters(
        starting_net_worth=10_000.0,
        monthly_savings=500.0,
        monthly_expenses=0.0,
        monthly_return=0.004,
        monthly_volatility=0.04,
        income_growth=0.0025,
        expense_growth=0.004,
        monthly_withdrawal=0.0,
        goal_ids=("primary", "stretch"),
        goal_amounts=(20_000.0, 60_000.0),
        goal_months=(36, 120),
        enable_market_regimes=False,
    )
    return replace(base, **overrides)


def _deterministic(**overrides: object) -> PathParameters:
    """Parameters without return noise so trajectories can be computed by hand."""

    values: dict[str, object] = {
        "monthly_return": 0.0,
        "monthly_volatility": 0.0,
        "income_growth": 0.0,
        "expense_growth": 0.0,
    }
    values.update(overrides)
    return _params(**values)


@pytest.mark.parametrize("regimes", [False, True])
def test_scalar_path_matches_batch(regimes: bool) -> None:
    params = _params(enable_market_regimes=regimes, monthly_expenses=200.0)
    batch = run_monte_carlo(params, 6, seed=77)
    for idx in range(6):
        expected = simulate_path(params, SeededRandom(77 + idx))
        actual = batch.iteration(idx)
        assert actual.goal_achieved_month == expected.goal_achieved_month
        assert actual.goal_achievements == expected.goal_achievements
        assert actual.all_goals_achieved == expected.all_goals_achieved
        for horizon, value in expected.net_worth.items():
            assert actual.net_worth[horizon] == pytest.approx(value, rel=1e-9)


def test_batch_shapes() -> None:
    batch = simulate_paths(_params(), RandomStreams.for_iterations(1, 9))
    assert batch.net_worth.shape == (9, 5)
    assert batch.goal_months.shape == (9, 2)
    assert len(batch) == 9
    assert batch.goal_ids == ("primary", "stretch")


def test_deterministic_contributions_accumulate() -> None:
    result = simulate_path(_deterministic(), SeededRandom(0))
    assert result.net_worth["6mo"] == pytest.approx(10_000.0 + 6 * 500.0)
    assert result.net_worth["20yr"] == pytest.approx(10_000.0 + 240 * 500.0)
    # 20,000 is first reached after 20 contributions.
    assert result.goal_achieved_month == 20
    assert result.goal_achievements[1].achieved_month == 100


def test_income_growth_compounds_from_second_month() -> None:
    result = simulate_path(_deterministic(income_growth=0.01), SeededRandom(0))
    expected = 10_000.0 + 500.0 * (1.01**6 - 1) / 0.01
    assert result.net_worth["6mo"] == pytest.approx(expected)


def test_expense_growth_crowds_out_savings() -> None:
    params = _deterministic(monthly_expenses=1_000.0, expense_growth=0.01)
    result = simulate_path(params, SeededRandom(0))

    net_worth, savings, expenses = 10_000.0, 500.0, 1_000.0
    for month in range(1, 13):
        if month > 1:
            previous = expenses
            expenses *= 1.01
            savings = max(0.0, savings - (expenses - previous))
        net_worth += savings
    assert result.net_worth["1yr"] == pytest.approx(net_worth)


def test_zero_expenses_ignore_expense_growth() -> None:
    flat = run_monte_carlo(_params(expense_growth=0.0), 20, seed=5)
    growing = run_monte_carlo(_params(expense_growth=0.05), 20, seed=5)
    np.testing.assert_array_equal(flat.net_worth, growing.net_worth)
    np.testing.assert_array_equal(flat.goal_months, growing.goal_months)


def test_withdrawal_starts_after_primary_goal() -> None:
    params = _deterministic(
        starting_net_worth=10_000.0,
        monthly_savings=100.0,
        monthly_withdrawal=300.0,
        goal_amounts=(5_000.0, 50_000.0),
    )
    result = simulate_path(params, SeededRandom(0))
    assert result.goal_achieved_month == 1
    assert result.net_worth["6mo"] == pytest.approx(10_100.0 - 5 * 200.0)
    assert result.net_worth["20yr"] == 0.0

    batch = simulate_paths(params, RandomStreams([0, 1]))
    np.testing.assert_allclose(batch.net_worth[:, 0], 10_100.0 - 5 * 200.0)


def test_negative_net_worth_is_floored() -> None:
    result = simulate_path(
        _deterministic(starting_net_worth=-1_000_000.0, monthly_savings=0.0), SeededRandom(3)
    )
    assert all(value == 0.0 for value in result.net_worth.values())
    assert not result.goal_achieved


def test_past_deadline_is_never_achieved() -> None:
    params = _deterministic(
        starting_net_worth=1_000_000.0, goal_amounts=(10.0, 10.0), goal_months=(0, 0)
    )
    result = simulate_path(params, SeededRandom(0))
    assert not result.goal_achieved
    assert result.goal_achieved_month is None
    assert not result.all_goals_achieved

    batch = run_monte_carlo(params, 10, seed=1)
    assert not batch.goal_achieved.any()
    assert not batch.goals_achieved.any()


def test_goal_after_deadline_does_not_count() -> None:
    # 20,000 is reached in month 20 but the deadline is month 12.
    params = _deterministic(goal_months=(12, 120))
    result = simulate_path(params, SeededRandom(0))
    assert result.goal_achieved_month is None
    assert result.goal_achievements[1].achieved_month == 100
