"""Binary search for the lowest savings rate reaching the target probability."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from wealthsim.engine.logging import setup_logger

from .constants import DEFAULT_CONSTANTS, SimulationConstants
from .montecarlo import calculate_probability, run_monte_carlo
from .params import ResolvedInput, build_path_parameters, derive_optimized_input

__all__ = ["OptimizationResult", "find_optimal_savings_rate", "probe_savings_rate"]

LOG = setup_logger(__name__)


@dataclass(frozen=True)
class OptimizationResult:
    """Outcome of the savings-rate search.

    Attributes:
      rate: Recommended savings rate, never below the current rate.
      probes: Number of reduced-fidelity Monte Carlo runs performed.
      reached_target: Whether ``rate`` met the target probability.
    """

    rate: float
    probes: int
    reached_target: bool


def probe_savings_rate(
    resolved: ResolvedInput,
    rate: float,
    as_of: date,
    constants: SimulationConstants = DEFAULT_CONSTANTS,
) -> float:
    """Primary goal probability of ``rate`` at optimisation fidelity."""

    params = build_path_parameters(resolved, rate, as_of, constants)
    batch = run_monte_carlo(params, constants.optimization_iterations, resolved.random_seed)
    return calculate_probability(batch)


def find_optimal_savings_rate(
    resolved: ResolvedInput,
    current_probability: float,
    as_of: date,
    constants: SimulationConstants = DEFAULT_CONSTANTS,
) -> OptimizationResult:
    """Search the smallest rate at or above the current one reaching the target.

    The search interval is ``[max(current, min_rate), ceiling]`` where the
    ceiling is ``max(max_rate, min(current, absolute_max))``. The ceiling is
    probed first, under the assumptions of
    :func:`~wealthsim.engine.simulation.params.derive_optimized_input`, and
    returned as is when even those cannot reach the target. Midpoint probes
    use the user's own assumptions. Every probe runs at
    ``optimization_iterations`` with the input seed.

    Args:
      resolved: Resolved baseline input.
      current_probability: Probability of the current path.
      as_of: Date goal deadlines are measured from.
      constants: Engine constants.

    Returns:
      An :class:`OptimizationResult`.
    """

    target = constants.target_probability
    current_rate = resolved.savings_rate
    if current_probability >= target:
        return OptimizationResult(rate=current_rate, probes=0, reached_target=True)

    high = max(
        constants.max_savings_rate, min(current_rate, constants.absolute_max_savings_rate)
    )
    low = max(current_rate, constants.min_savings_rate)
    if low >= high:
        return OptimizationResult(rate=current_rate, probes=0, reached_target=False)

    ceiling_probability = probe_savings_rate(
        derive_optimized_input(resolved, constants), high, as_of, constants
    )
    probes = 1
    if ceiling_probability < target:
        LOG.debug(
            "Max savings rate %.1f%% only achieves %.1f%% probability",
            high * 100,
            ceiling_probability * 100,
        )
        return OptimizationResult(rate=high, probes=probes, reached_target=False)

    best = high
    steps = 0
    while high - low > constants.optimization_tolerance and steps < (
        constants.max_optimization_iterations
    ):
        mid = (low + high) / 2
        if probe_savings_rate(resolved, mid, as_of, constants) >= target:
            best = mid
            high = mid
        else:
            low = mid
        steps += 1

    probes += steps
    LOG.debug("Binary search found optimal rate %.1f%% in %d iterations", best * 100, steps)
    return OptimizationResult(rate=best, probes=probes, reached_target=True)
