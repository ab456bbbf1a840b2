"""Resolution of optional simulation inputs into fully specified parameters.

Every fallback (expense growth defaulting to inflation, income growth to the
configured default, tax to zero, and so on) is applied here exactly once so
that the path simulator and the optimizer work on concrete numbers only.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import date

import numpy as np

from .constants import DEFAULT_CONSTANTS, SimulationConstants
from .models import SimulationGoal, SimulationInput

__all__ = [
    "LEGACY_GOAL_ID",
    "LEGACY_GOAL_NAME",
    "ResolvedInput",
    "PathParameters",
    "normalize_goals",
    "months_between",
    "resolve_input",
    "build_path_parameters",
    "derive_optimized_input",
    "optimized_savings_rate",
]

LEGACY_GOAL_ID = "primary"
LEGACY_GOAL_NAME = "Primary Goal"
_MISSING_PRIORITY = 999


@dataclass(frozen=True)
class ResolvedInput:
    """:class:`SimulationInput` with every default applied.

    Attributes:
      savings_rate: Declared savings rate.
      monthly_income: Monthly income.
      monthly_expenses: Monthly expenses, ``0`` when absent.
      net_worth: Starting net worth.
      goals: Normalised goals; the first one is the primary goal.
      expected_return_rate: Nominal annual return.
      inflation_rate: Annual inflation.
      income_growth_rate: Annual income growth.
      expense_growth_rate: Annual expense growth.
      tax_rate: Tax on returns.
      monthly_withdrawal: Post-goal monthly withdrawal.
      enable_market_regimes: Regime switching flag.
      random_seed: Base seed or ``None``.
    """

    savings_rate: float
    monthly_income: float
    monthly_expenses: float
    net_worth: float
    goals: tuple[SimulationGoal, ...]
    expected_return_rate: float
    inflation_rate: float
    income_growth_rate: float
    expense_growth_rate: float
    tax_rate: float
    monthly_withdrawal: float
    enable_market_regimes: bool
    random_seed: int | None

    @property
    def primary_goal(self) -> SimulationGoal:
        return self.goals[0]


@dataclass(frozen=True)
class PathParameters:
    """Monthly quantities consumed by the path simulator.

    Attributes:
      starting_net_worth: Net worth before the first month.
      monthly_savings: Base monthly savings (income times savings rate).
      monthly_expenses: Base monthly expenses.
      monthly_return: Monthly real after-tax mean return.
      monthly_volatility: Monthly standard deviation of returns.
      income_growth: Monthly income growth rate.
      expense_growth: Monthly expense growth rate.
      monthly_withdrawal: Withdrawal applied after the primary goal.
      goal_ids: Identifiers of the tracked goals.
      goal_amounts: Target amounts of the tracked goals.
      goal_months: Months to each goal's deadline.
      enable_market_regimes: Regime switching flag.
    """

    starting_net_worth: float
    monthly_savings: float
    monthly_expenses: float
    monthly_return: float
    monthly_volatility: float
    income_growth: float
    expense_growth: float
    monthly_withdrawal: float
    goal_ids: tuple[str, ...]
    goal_amounts: tuple[float, ...]
    goal_months: tuple[int, ...]
    enable_market_regimes: bool

    @property
    def primary_amount(self) -> float:
        return self.goal_amounts[0]

    @property
    def primary_months(self) -> int:
        return self.goal_months[0]

    def goal_amount_array(self) -> np.ndarray:
        return np.asarray(self.goal_amounts, dtype=float)

    def goal_month_array(self) -> np.ndarray:
        return np.asarray(self.goal_months, dtype=np.int64)


def normalize_goals(
    payload: SimulationInput, max_goals: int = DEFAULT_CONSTANTS.max_goals
) -> tuple[SimulationGoal, ...]:
    """Return the goals the pipeline tracks, in priority order.

    Goals are sorted by priority (missing priorities sort last), truncated to
    ``max_goals`` and given positional defaults for missing id, name and
    priority. Without explicit goals a single legacy goal is synthesised from
    ``goal_amount`` and ``goal_deadline``.

    Raises:
      ValueError: If neither goals nor a legacy deadline are supplied.
    """

    if payload.goals:
        ordered = sorted(
            payload.goals,
            key=lambda goal: _MISSING_PRIORITY if goal.priority is None else goal.priority,
        )[:max_goals]
        return tuple(
            SimulationGoal(
                amount=goal.amount,
                deadline=goal.deadline,
                goal_id=goal.goal_id if goal.goal_id is not None else f"goal-{idx}",
                name=goal.name if goal.name is not None else f"Goal {idx + 1}",
                priority=goal.priority if goal.priority is not None else idx + 1,
            )
            for idx, goal in enumerate(ordered)
        )
    if payload.goal_deadline is None:
        raise ValueError("a goal_deadline or at least one goal is required")
    return (
        SimulationGoal(
            amount=payload.goal_amount,
            deadline=payload.goal_deadline,
            goal_id=LEGACY_GOAL_ID,
            name=LEGACY_GOAL_NAME,
            priority=1,
        ),
    )


def months_between(start: date, end: date) -> int:
    """Whole calendar months from ``start`` to ``end``, floored at zero."""

    months = (end.year - start.year) * 12 + (end.month - start.month)
    return max(0, months)


def resolve_input(
    payload: SimulationInput, constants: SimulationConstants = DEFAULT_CONSTANTS
) -> ResolvedInput:
    """Apply every optional-field default of ``payload``."""

    return ResolvedInput(
        savings_rate=payload.current_savings_rate,
        monthly_income=payload.monthly_income,
        monthly_expenses=payload.monthly_expenses if payload.monthly_expenses is not None else 0.0,
        net_worth=payload.current_net_worth,
        goals=normalize_goals(payload, constants.max_goals),
        expected_return_rate=payload.expected_return_rate,
        inflation_rate=payload.inflation_rate,
        income_growth_rate=(
            payload.income_growth_rate
            if payload.income_growth_rate is not None
            else constants.default_income_growth_rate
        ),
        expense_growth_rate=(
            payload.expense_growth_rate
            if payload.expense_growth_rate is not None
            else payload.inflation_rate
        ),
        tax_rate=(
            payload.tax_rate_on_returns
            if payload.tax_rate_on_returns is not None
            else constants.default_tax_rate
        ),
        monthly_withdrawal=(
            payload.monthly_withdrawal if payload.monthly_withdrawal is not None else 0.0
        ),
        enable_market_regimes=payload.enable_market_regimes,
        random_seed=payload.random_seed,
    )


def build_path_parameters(
    resolved: ResolvedInput,
    savings_rate: float,
    as_of: date,
    constants: SimulationConstants = DEFAULT_CONSTANTS,
) -> PathParameters:
    """Convert annual assumptions into monthly path parameters.

    Args:
      resolved: Fully resolved input.
      savings_rate: Savings rate to simulate; may differ from the declared one.
      as_of: Date the deadlines are measured from.
      constants: Engine constants providing the return volatility.

    Returns:
      The :class:`PathParameters` for one Monte Carlo run.
    """

    after_tax_return = resolved.expected_return_rate * (1 - resolved.tax_rate)
    real_return = after_tax_return - resolved.inflation_rate
    return PathParameters(
        starting_net_worth=resolved.net_worth,
        monthly_savings=resolved.monthly_income * savings_rate,
        monthly_expenses=resolved.monthly_expenses,
        monthly_return=real_return / 12,
        monthly_volatility=constants.return_std_dev / math.sqrt(12),
        income_growth=resolved.income_growth_rate / 12,
        expense_growth=resolved.expense_growth_rate / 12,
        monthly_withdrawal=resolved.monthly_withdrawal,
        goal_ids=tuple(str(goal.goal_id) for goal in resolved.goals),
        goal_amounts=tuple(goal.amount for goal in resolved.goals),
        goal_months=tuple(months_between(as_of, goal.deadline) for goal in resolved.goals),
        enable_market_regimes=resolved.enable_market_regimes,
    )


def derive_optimized_input(
    resolved: ResolvedInput, constants: SimulationConstants = DEFAULT_CONSTANTS
) -> ResolvedInput:
    """Return the assumptions of the optimized strategy.

    Expense growth is reduced by ``expense_growth_reduction``; expected return
    and income growth receive their configured bonuses. The savings rate is
    left untouched, see :func:`optimized_savings_rate`.
    """

    return replace(
        resolved,
        expense_growth_rate=resolved.expense_growth_rate * (1 - constants.expense_growth_reduction),
        expected_return_rate=resolved.expected_return_rate + constants.return_bonus,
        income_growth_rate=resolved.income_growth_rate + constants.income_growth_bonus,
    )


def optimized_savings_rate(
    resolved: ResolvedInput,
    rate: float,
    constants: SimulationConstants = DEFAULT_CONSTANTS,
) -> float:
    """Add the immediate expense-reduction effect to ``rate``.

    A fraction of monthly expenses is assumed to be redirected into savings.
    The result is capped at ``absolute_max_savings_rate`` but never falls below
    ``rate``. Zero income leaves ``rate`` unchanged.
    """

    if resolved.monthly_income <= 0:
        return rate
    delta = resolved.monthly_expenses * constants.expense_reduction / resolved.monthly_income
    return max(rate, min(constants.absolute_max_savings_rate, rate + delta))
