"""Dual-path Monte Carlo projection engine."""

from .cache import ResultCache, build_cache_key
from .constants import (
    DEFAULT_CONSTANTS,
    ECONOMIC_DEFAULTS,
    TIME_HORIZON_MONTHS,
    TIME_HORIZONS,
    SimulationConstants,
    economic_defaults,
    load_simulation_constants,
)
from .engine import SimulationEngine
from .exceptions import SimulationCalculationError
from .models import (
    OptimizedPathResult,
    PathResult,
    Scenario,
    SimulationGoal,
    SimulationInput,
    SimulationOutput,
)
from .montecarlo import aggregate_results, calculate_probability, run_monte_carlo
from .optimizer import OptimizationResult, find_optimal_savings_rate
from .params import (
    build_path_parameters,
    derive_optimized_input,
    optimized_savings_rate,
    resolve_input,
)
from .path import IterationBatch, simulate_path, simulate_paths
from .regime import MarketRegime
from .report import (
    SimulationArtifacts,
    goal_summary_frame,
    path_summary_frame,
    write_simulation_artifacts,
)
from .tracing import LoggingTracer, NullTracer, Tracer

__all__ = [
    "DEFAULT_CONSTANTS",
    "ECONOMIC_DEFAULTS",
    "TIME_HORIZON_MONTHS",
    "TIME_HORIZONS",
    "IterationBatch",
    "LoggingTracer",
    "MarketRegime",
    "NullTracer",
    "OptimizationResult",
    "OptimizedPathResult",
    "PathResult",
    "ResultCache",
    "Scenario",
    "SimulationArtifacts",
    "SimulationCalculationError",
    "SimulationConstants",
    "SimulationEngine",
    "SimulationGoal",
    "SimulationInput",
    "SimulationOutput",
    "Tracer",
    "aggregate_results",
    "build_cache_key",
    "build_path_parameters",
    "calculate_probability",
    "derive_optimized_input",
    "economic_defaults",
    "find_optimal_savings_rate",
    "goal_summary_frame",
    "load_simulation_constants",
    "optimized_savings_rate",
    "path_summary_frame",
    "resolve_input",
    "run_monte_carlo",
    "simulate_path",
    "simulate_paths",
    "write_simulation_artifacts",
]
