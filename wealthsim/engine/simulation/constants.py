"""Horizons, engine constants and country economic defaults."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Final

from wealthsim.engine.utils.io import read_yaml

__all__ = [
    "TIME_HORIZONS",
    "TIME_HORIZON_MONTHS",
    "SIMULATION_MONTHS",
    "SimulationConstants",
    "DEFAULT_CONSTANTS",
    "load_simulation_constants",
    "EconomicDefaults",
    "ECONOMIC_DEFAULTS",
    "economic_defaults",
]

TIME_HORIZONS: Final[tuple[str, ...]] = ("6mo", "1yr", "5yr", "10yr", "20yr")
TIME_HORIZON_MONTHS: Final[dict[str, int]] = {
    "6mo": 6,
    "1yr": 12,
    "5yr": 60,
    "10yr": 120,
    "20yr": 240,
}
SIMULATION_MONTHS: Final[int] = TIME_HORIZON_MONTHS["20yr"]


@dataclass(frozen=True)
class SimulationConstants:
    """Tunable constants of the projection engine.

    Attributes:
      iterations: Monte Carlo paths for the reported current/optimized runs.
      optimization_iterations: Paths per optimizer probe.
      return_std_dev: Annual volatility of investment returns.
      max_savings_rate: Configured ceiling of the optimizer search.
      min_savings_rate: Lower bound of the optimizer search.
      target_probability: Success probability the optimizer aims for.
      optimization_tolerance: Interval width at which the search stops.
      max_optimization_iterations: Cap on binary-search probes.
      cache_ttl_seconds: Lifetime of a cached simulation output.
      cache_sweep_threshold: Cache size above which expired entries are swept.
      default_income_growth_rate: Annual income growth when none is supplied.
      default_tax_rate: Tax on returns when none is supplied.
      max_goals: Number of goals tracked per simulation.
      expense_growth_reduction: Fraction removed from expense growth on the
        optimized path.
      return_bonus: Annual return added on the optimized path.
      expense_reduction: Fraction of monthly expenses converted into extra
        savings on the optimized path.
      income_growth_bonus: Annual income growth added on the optimized path.
      absolute_max_savings_rate: Hard cap on any recommended rate.
    """

    iterations: int = 10_000
    optimization_iterations: int = 1_000
    return_std_dev: float = 0.15
    max_savings_rate: float = 0.35
    min_savings_rate: float = 0.01
    target_probability: float = 0.85
    optimization_tolerance: float = 0.005
    max_optimization_iterations: int = 20
    cache_ttl_seconds: float = 300.0
    cache_sweep_threshold: int = 100
    default_income_growth_rate: float = 0.03
    default_tax_rate: float = 0.0
    max_goals: int = 5
    expense_growth_reduction: float = 0.40
    return_bonus: float = 0.01
    expense_reduction: float = 0.15
    income_growth_bonus: float = 0.02
    absolute_max_savings_rate: float = 0.95

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> SimulationConstants:
        """Build constants from a mapping, keeping defaults for absent keys.

        Args:
          payload: Mapping of field name to override value.

        Returns:
          A :class:`SimulationConstants` instance.

        Raises:
          ValueError: If ``payload`` contains unknown keys.
        """

        known = {field.name: field for field in fields(cls)}
        unknown = sorted(set(payload) - set(known))
        if unknown:
            raise ValueError(f"unknown simulation constants: {unknown}")
        overrides: dict[str, float | int] = {}
        for key, value in payload.items():
            default = getattr(cls, key)
            overrides[key] = int(value) if isinstance(default, int) else float(value)
        return cls(**overrides)


DEFAULT_CONSTANTS: Final[SimulationConstants] = SimulationConstants()


def load_simulation_constants(path: Path | str) -> SimulationConstants:
    """Load constant overrides from a YAML file.

    The file may hold the overrides at top level or under a ``simulation`` key.
    """

    payload = read_yaml(path) or {}
    if not isinstance(payload, Mapping):
        raise ValueError("simulation constants file must contain a mapping")
    section = payload.get("simulation", payload)
    if not isinstance(section, Mapping):
        raise ValueError("'simulation' section must be a mapping")
    return SimulationConstants.from_mapping(section)


@dataclass(frozen=True)
class EconomicDefaults:
    """Country-level assumptions used when a profile omits them."""

    inflation_rate: float
    expected_return: float
    income_growth_rate: float


ECONOMIC_DEFAULTS: Final[dict[str, EconomicDefaults]] = {
    "NIGERIA": EconomicDefaults(inflation_rate=0.05, expected_return=0.10, income_growth_rate=0.05),
    "GHANA": EconomicDefaults(inflation_rate=0.08, expected_return=0.12, income_growth_rate=0.04),
    "KENYA": EconomicDefaults(inflation_rate=0.06, expected_return=0.09, income_growth_rate=0.04),
    "SOUTH_AFRICA": EconomicDefaults(
        inflation_rate=0.05, expected_return=0.08, income_growth_rate=0.03
    ),
    "USA": EconomicDefaults(inflation_rate=0.02, expected_return=0.07, income_growth_rate=0.03),
    "UK": EconomicDefaults(inflation_rate=0.02, expected_return=0.06, income_growth_rate=0.025),
    "DEFAULT": EconomicDefaults(inflation_rate=0.05, expected_return=0.07, income_growth_rate=0.03),
}


def economic_defaults(country: str | None) -> EconomicDefaults:
    """Return the defaults for ``country``, falling back to ``DEFAULT``."""

    key = (country or "DEFAULT").strip().upper().replace(" ", "_")
    return ECONOMIC_DEFAULTS.get(key, ECONOMIC_DEFAULTS["DEFAULT"])
