"""Records exchanged by the projection engine.

Inputs are parsed from mappings whose keys may be camelCase (as produced by
JSON clients) or snake_case (as written in YAML scenarios). Outputs serialise
back to camelCase dictionaries with ISO-formatted dates.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

import pandas as pd

from .constants import TIME_HORIZONS

__all__ = [
    "SimulationGoal",
    "SimulationInput",
    "GoalAchievement",
    "MonteCarloIteration",
    "GoalAggregate",
    "AggregatedResult",
    "ConfidenceInterval",
    "GoalPathResult",
    "PathResult",
    "OptimizedPathResult",
    "SimulationMetadata",
    "SimulationOutput",
    "Scenario",
    "parse_date",
]


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _lookup(payload: Mapping[str, object], name: str, default: Any = None) -> Any:
    """Return ``payload[name]`` accepting the camelCase spelling too."""

    if name in payload:
        return payload[name]
    return payload.get(_camel(name), default)


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    return float(value)  # type: ignore[arg-type]


def parse_date(value: object) -> date:
    """Coerce ``value`` into a :class:`datetime.date`.

    Args:
      value: A ``date``, ``datetime``, pandas timestamp or ISO-like string.

    Returns:
      The calendar date.

    Raises:
      ValueError: If ``value`` cannot be interpreted as a date.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return pd.Timestamp(value.strip()).date()
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid date: {value!r}") from exc
    raise ValueError(f"invalid date: {value!r}")


@dataclass(frozen=True)
class SimulationGoal:
    """Financial goal tracked by the simulation.

    Attributes:
      amount: Target net worth.
      deadline: Date by which the target must be reached.
      goal_id: Optional identifier; filled positionally when absent.
      name: Optional display name.
      priority: Optional priority, lower values sort first.
    """

    amount: float
    deadline: date
    goal_id: str | None = None
    name: str | None = None
    priority: int | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> SimulationGoal:
        """Create a goal from a mapping with ``amount`` and ``deadline`` keys."""

        raw_id = payload.get("id", _lookup(payload, "goal_id"))
        raw_name = payload.get("name")
        raw_priority = payload.get("priority")
        return cls(
            amount=float(payload["amount"]),  # type: ignore[arg-type]
            deadline=parse_date(payload["deadline"]),
            goal_id=None if raw_id is None else str(raw_id),
            name=None if raw_name is None else str(raw_name),
            priority=None if raw_priority is None else int(raw_priority),  # type: ignore[arg-type]
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.goal_id,
            "name": self.name,
            "amount": self.amount,
            "deadline": self.deadline.isoformat(),
            "priority": self.priority,
        }


@dataclass(frozen=True)
class SimulationInput:
    """Financial profile and assumptions driving one simulation.

    Rates are annual fractions (``0.07`` for 7%). Optional fields left as
    ``None`` are resolved to their defaults by
    :func:`wealthsim.engine.simulation.params.resolve_input`.

    Attributes:
      current_savings_rate: Share of monthly income saved, in ``[0, 1]``.
      monthly_income: Monthly take-home income.
      current_net_worth: Starting net worth; may be negative.
      expected_return_rate: Expected nominal annual return.
      inflation_rate: Expected annual inflation.
      goal_amount: Legacy single-goal target used when ``goals`` is empty.
      goal_deadline: Legacy single-goal deadline.
      monthly_expenses: Monthly expenses, only their growth affects savings.
      goals: Up to five goals; extra goals are dropped by priority.
      income_growth_rate: Annual income growth.
      expense_growth_rate: Annual expense growth; defaults to inflation.
      tax_rate_on_returns: Tax applied to investment returns.
      monthly_withdrawal: Spending drawn once the primary goal is reached.
      enable_market_regimes: Switch on bull/normal/bear regime dynamics.
      random_seed: Seed making the run reproducible.
    """

    current_savings_rate: float
    monthly_income: float
    current_net_worth: float
    expected_return_rate: float
    inflation_rate: float
    goal_amount: float = 0.0
    goal_deadline: date | None = None
    monthly_expenses: float | None = None
    goals: tuple[SimulationGoal, ...] = ()
    income_growth_rate: float | None = None
    expense_growth_rate: float | None = None
    tax_rate_on_returns: float | None = None
    monthly_withdrawal: float | None = None
    enable_market_regimes: bool = False
    random_seed: int | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> SimulationInput:
        """Create an input from a camelCase or snake_case mapping.

        Args:
          payload: Mapping extracted from a JSON request or YAML scenario.

        Returns:
          A populated :class:`SimulationInput`.
        """

        raw_goals = _lookup(payload, "goals") or []
        if not isinstance(raw_goals, Sequence) or isinstance(raw_goals, str):
            raise ValueError("goals must be a list of mappings")
        goals = tuple(
            item if isinstance(item, SimulationGoal) else SimulationGoal.from_mapping(item)
            for item in raw_goals
        )
        raw_deadline = _lookup(payload, "goal_deadline")
        raw_seed = _lookup(payload, "random_seed")
        return cls(
            current_savings_rate=float(_lookup(payload, "current_savings_rate")),
            monthly_income=float(_lookup(payload, "monthly_income")),
            current_net_worth=float(_lookup(payload, "current_net_worth", 0.0)),
            expected_return_rate=float(_lookup(payload, "expected_return_rate")),
            inflation_rate=float(_lookup(payload, "inflation_rate")),
            goal_amount=float(_lookup(payload, "goal_amount", 0.0)),
            goal_deadline=None if raw_deadline is None else parse_date(raw_deadline),
            monthly_expenses=_optional_float(_lookup(payload, "monthly_expenses")),
            goals=goals,
            income_growth_rate=_optional_float(_lookup(payload, "income_growth_rate")),
            expense_growth_rate=_optional_float(_lookup(payload, "expense_growth_rate")),
            tax_rate_on_returns=_optional_float(_lookup(payload, "tax_rate_on_returns")),
            monthly_withdrawal=_optional_float(_lookup(payload, "monthly_withdrawal")),
            enable_market_regimes=bool(_lookup(payload, "enable_market_regimes", False)),
            random_seed=None if raw_seed is None else int(raw_seed),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentSavingsRate": self.current_savings_rate,
            "monthlyIncome": self.monthly_income,
            "monthlyExpenses": self.monthly_expenses,
            "currentNetWorth": self.current_net_worth,
            "goalAmount": self.goal_amount,
            "goalDeadline": None if self.goal_deadline is None else self.goal_deadline.isoformat(),
            "goals": [goal.to_dict() for goal in self.goals],
            "expectedReturnRate": self.expected_return_rate,
            "inflationRate": self.inflation_rate,
            "incomeGrowthRate": self.income_growth_rate,
            "expenseGrowthRate": self.expense_growth_rate,
            "taxRateOnReturns": self.tax_rate_on_returns,
            "monthlyWithdrawal": self.monthly_withdrawal,
            "enableMarketRegimes": self.enable_market_regimes,
            "randomSeed": self.random_seed,
        }


@dataclass(frozen=True)
class GoalAchievement:
    """Outcome of one goal in one Monte Carlo iteration."""

    goal_id: str
    achieved: bool
    achieved_month: int | None


@dataclass(frozen=True)
class MonteCarloIteration:
    """Single simulated trajectory reduced to what aggregation needs.

    Attributes:
      net_worth: Net worth snapshot keyed by horizon label.
      goal_achieved: Whether the primary goal was reached in time.
      goal_achieved_month: Month (1-based) of the primary achievement.
      goal_achievements: Per-goal outcomes in normalised goal order.
      all_goals_achieved: Whether every tracked goal was reached.
    """

    net_worth: dict[str, float]
    goal_achieved: bool
    goal_achieved_month: int | None
    goal_achievements: tuple[GoalAchievement, ...]
    all_goals_achieved: bool


@dataclass(frozen=True)
class GoalAggregate:
    """Probability and median achievement month of one goal."""

    goal_id: str
    probability: float
    median_achieved_month: float | None


@dataclass(frozen=True)
class AggregatedResult:
    """Statistics reduced from a batch of iterations.

    Attributes:
      probability: Share of iterations reaching the primary goal.
      all_goals_probability: Share of iterations reaching every goal.
      median_net_worth: Median net worth per horizon.
      percentile_10: 10th percentile net worth per horizon.
      percentile_90: 90th percentile net worth per horizon.
      median_goal_month: Median primary achievement month or ``None``.
      goal_results: Per-goal aggregates.
    """

    probability: float
    all_goals_probability: float
    median_net_worth: dict[str, float]
    percentile_10: dict[str, float]
    percentile_90: dict[str, float]
    median_goal_month: float | None
    goal_results: tuple[GoalAggregate, ...]


@dataclass(frozen=True)
class ConfidenceInterval:
    """10th to 90th percentile band at one horizon."""

    low: int
    high: int

    def to_dict(self) -> dict[str, int]:
        return {"low": self.low, "high": self.high}


@dataclass(frozen=True)
class GoalPathResult:
    """Output-facing outcome of one goal on one path."""

    goal_id: str
    goal_name: str
    target_amount: float
    probability: float
    achieve_date: date | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "goalId": self.goal_id,
            "goalName": self.goal_name,
            "targetAmount": self.target_amount,
            "probability": self.probability,
            "achieveDate": None if self.achieve_date is None else self.achieve_date.isoformat(),
        }


@dataclass(frozen=True)
class PathResult:
    """Rounded projection of one strategy.

    Attributes:
      probability: Primary goal probability rounded to two decimals.
      projected_net_worth: Median net worth per horizon, rounded.
      achieve_goal_date: Projected date of the primary goal or ``None``.
      confidence_intervals: Rounded 10th/90th percentile band per horizon.
      goal_results: Per-goal outcomes.
      all_goals_probability: Probability of reaching every goal.
    """

    probability: float
    projected_net_worth: dict[str, int]
    achieve_goal_date: date | None
    confidence_intervals: dict[str, ConfidenceInterval]
    goal_results: tuple[GoalPathResult, ...]
    all_goals_probability: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "probability": self.probability,
            "projectedNetWorth": {h: self.projected_net_worth[h] for h in TIME_HORIZONS},
            "achieveGoalDate": (
                None if self.achieve_goal_date is None else self.achieve_goal_date.isoformat()
            ),
            "confidenceIntervals": {
                h: self.confidence_intervals[h].to_dict() for h in TIME_HORIZONS
            },
            "goalResults": [goal.to_dict() for goal in self.goal_results],
            "allGoalsProbability": self.all_goals_probability,
        }


@dataclass(frozen=True)
class OptimizedPathResult(PathResult):
    """Projection of the recommended strategy.

    Attributes:
      required_savings_rate: Rate found by the optimizer, never below the
        current rate.
      effective_savings_rate: Rate actually simulated once the expense
        reduction effect is added.
    """

    required_savings_rate: float
    effective_savings_rate: float

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["requiredSavingsRate"] = self.required_savings_rate
        payload["effectiveSavingsRate"] = self.effective_savings_rate
        return payload


@dataclass(frozen=True)
class SimulationMetadata:
    iterations: int
    duration_ms: int
    simulated_at: datetime
    currency: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "iterations": self.iterations,
            "durationMs": self.duration_ms,
            "simulatedAt": self.simulated_at.isoformat(),
            "currency": self.currency,
        }


@dataclass(frozen=True)
class SimulationOutput:
    """Result of one dual-path simulation.

    Attributes:
      current_path: Projection with the user's declared behaviour.
      optimized_path: Projection with the recommended rate and assumptions.
      wealth_difference: ``max(0, optimized - current)`` per horizon.
      metadata: Run information.
    """

    current_path: PathResult
    optimized_path: OptimizedPathResult
    wealth_difference: dict[str, int]
    metadata: SimulationMetadata

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentPath": self.current_path.to_dict(),
            "optimizedPath": self.optimized_path.to_dict(),
            "wealthDifference": {h: self.wealth_difference[h] for h in TIME_HORIZONS},
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class Scenario:
    """Simulation request read from a scenario file.

    Attributes:
      user_id: Identifier used for caching and logging.
      currency: Currency code recorded in the output metadata.
      input: Simulation input with country defaults applied.
      country: Country whose economic defaults filled missing assumptions.
    """

    user_id: str
    currency: str
    input: SimulationInput
    country: str | None = None
