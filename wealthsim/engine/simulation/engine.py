"""Dual-path simulation orchestrator.

:class:`SimulationEngine` runs the user's current strategy, searches the
savings rate reaching the target probability, runs the optimized strategy and
assembles a :class:`~wealthsim.engine.simulation.models.SimulationOutput`.
Outputs are memoised in an injected :class:`ResultCache`.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import pandas as pd

from wealthsim.engine.logging import setup_logger

from .cache import ResultCache, build_cache_key
from .constants import DEFAULT_CONSTANTS, TIME_HORIZONS, SimulationConstants
from .exceptions import SimulationCalculationError
from .models import (
    AggregatedResult,
    ConfidenceInterval,
    GoalPathResult,
    OptimizedPathResult,
    PathResult,
    SimulationGoal,
    SimulationInput,
    SimulationMetadata,
    SimulationOutput,
)
from .montecarlo import aggregate_results, run_monte_carlo
from .optimizer import OptimizationResult, find_optimal_savings_rate
from .params import (
    ResolvedInput,
    build_path_parameters,
    derive_optimized_input,
    optimized_savings_rate,
    resolve_input,
)
from .tracing import TRACE_TAGS, NullTracer, Trace, Tracer

__all__ = [
    "SimulationEngine",
    "build_path_result",
    "wealth_difference",
    "add_months",
    "round_half_up",
    "round_probability",
]

LOG = setup_logger(__name__)
TRACE_NAME = "dual_path_simulation"


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded towards +inf."""

    return int(math.floor(value + 0.5))


def round_probability(value: float) -> float:
    """Round a probability to two decimals with exact ties rounded up."""

    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def add_months(start: date, months: float) -> date:
    """Shift ``start`` by the integer part of ``months`` calendar months."""

    return (pd.Timestamp(start) + pd.DateOffset(months=int(months))).date()


def build_path_result(
    aggregated: AggregatedResult, goals: tuple[SimulationGoal, ...], as_of: date
) -> PathResult:
    """Round an aggregate into its output-facing form."""

    achieve_goal_date = (
        None
        if aggregated.median_goal_month is None
        else add_months(as_of, aggregated.median_goal_month)
    )
    goal_results = tuple(
        GoalPathResult(
            goal_id=result.goal_id,
            goal_name=str(goal.name),
            target_amount=goal.amount,
            probability=round_probability(result.probability),
            achieve_date=(
                None
                if result.median_achieved_month is None
                else add_months(as_of, result.median_achieved_month)
            ),
        )
        for result, goal in zip(aggregated.goal_results, goals, strict=True)
    )
    return PathResult(
        probability=round_probability(aggregated.probability),
        projected_net_worth={
            horizon: round_half_up(aggregated.median_net_worth[horizon])
            for horizon in TIME_HORIZONS
        },
        achieve_goal_date=achieve_goal_date,
        confidence_intervals={
            horizon: ConfidenceInterval(
                low=round_half_up(aggregated.percentile_10[horizon]),
                high=round_half_up(aggregated.percentile_90[horizon]),
            )
            for horizon in TIME_HORIZONS
        },
        goal_results=goal_results,
        all_goals_probability=round_probability(aggregated.all_goals_probability),
    )


def wealth_difference(current: PathResult, optimized: PathResult) -> dict[str, int]:
    """Per-horizon gain of the optimized path, floored at zero."""

    return {
        horizon: max(
            0, optimized.projected_net_worth[horizon] - current.projected_net_worth[horizon]
        )
        for horizon in TIME_HORIZONS
    }


def _trace_input(user_id: str, resolved: ResolvedInput) -> dict[str, Any]:
    return {
        "userId": user_id,
        "currentSavingsRate": resolved.savings_rate,
        "hasIncome": resolved.monthly_income > 0,
        "hasExpenses": resolved.monthly_expenses > 0,
        "hasNetWorth": resolved.net_worth != 0,
        "goalCount": len(resolved.goals),
        "expectedReturnRate": resolved.expected_return_rate,
        "inflationRate": resolved.inflation_rate,
        "incomeGrowthRate": resolved.income_growth_rate,
        "expenseGrowthRate": resolved.expense_growth_rate,
        "taxRateOnReturns": resolved.tax_rate,
        "hasWithdrawal": resolved.monthly_withdrawal > 0,
        "enableMarketRegimes": resolved.enable_market_regimes,
        "hasRandomSeed": resolved.random_seed is not None,
    }


class SimulationEngine:
    """Run and cache dual-path Monte Carlo projections.

    Args:
      cache: Result cache; a private :class:`ResultCache` when omitted.
      tracer: Observational tracing sink; :class:`NullTracer` when omitted.
      constants: Engine constants.
      clock: Callable returning the current UTC datetime.
    """

    def __init__(
        self,
        cache: ResultCache | None = None,
        tracer: Tracer | None = None,
        constants: SimulationConstants | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.constants = constants if constants is not None else DEFAULT_CONSTANTS
        self.cache = cache if cache is not None else ResultCache.from_constants(self.constants)
        self.tracer: Tracer = tracer if tracer is not None else NullTracer()
        self._clock = clock if clock is not None else _utc_now

    def clear_cache(self) -> None:
        self.cache.clear()

    @contextmanager
    def _span(self, trace: Trace, name: str) -> Iterator[None]:
        span = self.tracer.start_span(trace, name, {"spanName": name})
        try:
            yield
        except Exception:
            self.tracer.end_span(span, {"completed": False})
            raise
        self.tracer.end_span(span, {"completed": True})

    def run_dual_path_simulation(
        self, user_id: str, payload: SimulationInput, currency: str
    ) -> SimulationOutput:
        """Project the current and optimized strategies of one user.

        Args:
          user_id: Identifier used for caching, tracing and logging.
          payload: Financial profile and assumptions.
          currency: Currency code recorded in the metadata.

        Returns:
          The :class:`SimulationOutput`; a cached instance on a cache hit.

        Raises:
          SimulationCalculationError: If the simulation fails for any reason.
        """

        started = time.perf_counter()
        try:
            cache_key = build_cache_key(user_id, payload, currency, self.constants)
            resolved = resolve_input(payload, self.constants)
        except (TypeError, ValueError) as exc:
            LOG.error("Failed to run simulation for user %s: %s", user_id, exc)
            raise SimulationCalculationError(str(exc), {"userId": user_id}) from exc

        cached = self.cache.get(cache_key)
        if cached is not None:
            LOG.debug(
                "Cache hit for simulation: %s",
                user_id,
                extra={"cache_hit": True, "user_id": user_id},
            )
            return cached

        trace = self.tracer.start_trace(TRACE_NAME, _trace_input(user_id, resolved), TRACE_TAGS)
        try:
            output = self._simulate(trace, resolved, currency, started)
            self.cache.set(cache_key, output)
        except Exception as exc:
            self.tracer.end_trace(trace, success=False, error=str(exc))
            LOG.error("Failed to run simulation for user %s: %s", user_id, exc)
            raise SimulationCalculationError(str(exc), {"userId": user_id}) from exc

        LOG.info(
            "Simulation completed for user %s: current=%.1f%%, optimized=%.1f%% (rate=%.1f%%) "
            "in %dms",
            user_id,
            output.current_path.probability * 100,
            output.optimized_path.probability * 100,
            output.optimized_path.required_savings_rate * 100,
            output.metadata.duration_ms,
            extra={
                "user_id": user_id,
                "duration_ms": output.metadata.duration_ms,
                "iterations": output.metadata.iterations,
                "probability": output.current_path.probability,
                "required_savings_rate": output.optimized_path.required_savings_rate,
            },
        )
        return output

    def _simulate(
        self, trace: Trace, resolved: ResolvedInput, currency: str, started: float
    ) -> SimulationOutput:
        constants = self.constants
        as_of = self._clock().date()
        seed = resolved.random_seed

        with self._span(trace, "monte_carlo_current_path"):
            current_params = build_path_parameters(
                resolved, resolved.savings_rate, as_of, constants
            )
            current_batch = run_monte_carlo(current_params, constants.iterations, seed)
        with self._span(trace, "aggregate_current_results"):
            current_aggregated = aggregate_results(current_batch)

        with self._span(trace, "find_optimal_savings_rate"):
            optimization = find_optimal_savings_rate(
                resolved, current_aggregated.probability, as_of, constants
            )

        optimized_input = derive_optimized_input(resolved, constants)
        effective_rate = optimized_savings_rate(resolved, optimization.rate, constants)
        with self._span(trace, "monte_carlo_optimized_path"):
            optimized_params = build_path_parameters(
                optimized_input, effective_rate, as_of, constants
            )
            optimized_batch = run_monte_carlo(optimized_params, constants.iterations, seed)
        with self._span(trace, "aggregate_optimized_results"):
            optimized_aggregated = aggregate_results(optimized_batch)

        current_path = build_path_result(current_aggregated, resolved.goals, as_of)
        optimized_base = build_path_result(optimized_aggregated, resolved.goals, as_of)
        optimized_path = OptimizedPathResult(
            probability=optimized_base.probability,
            projected_net_worth=optimized_base.projected_net_worth,
            achieve_goal_date=optimized_base.achieve_goal_date,
            confidence_intervals=optimized_base.confidence_intervals,
            goal_results=optimized_base.goal_results,
            all_goals_probability=optimized_base.all_goals_probability,
            required_savings_rate=optimization.rate,
            effective_savings_rate=effective_rate,
        )
        difference = wealth_difference(current_path, optimized_path)
        duration_ms = int((time.perf_counter() - started) * 1000)

        output = SimulationOutput(
            current_path=current_path,
            optimized_path=optimized_path,
            wealth_difference=difference,
            metadata=SimulationMetadata(
                iterations=constants.iterations,
                duration_ms=duration_ms,
                simulated_at=self._clock(),
                currency=currency,
            ),
        )
        self.tracer.end_trace(trace, success=True, result=_trace_result(output, optimization))
        return output


def _trace_result(
    output: SimulationOutput, optimization: OptimizationResult
) -> Mapping[str, Any]:
    return {
        "currentPathProbability": output.current_path.probability,
        "optimizedPathProbability": output.optimized_path.probability,
        "requiredSavingsRate": optimization.rate,
        "optimizerProbes": optimization.probes,
        "optimizerReachedTarget": optimization.reached_target,
        "wealthDifference20yr": output.wealth_difference["20yr"],
        "durationMs": output.metadata.duration_ms,
    }
