"""Validation of WealthSim scenario files.

The projection engine accepts degenerate but well-formed inputs (zero income,
negative net worth, past deadlines) and simulates them. Structurally invalid
scenarios are rejected here, before they reach the engine. The validator
collects human readable diagnostics instead of stopping at the first problem
and only builds a :class:`~wealthsim.engine.simulation.models.Scenario` when
no error was found.
"""

from __future__ import annotations

# ruff: noqa: ANN401
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from wealthsim.engine.simulation.constants import (
    DEFAULT_CONSTANTS,
    ECONOMIC_DEFAULTS,
    economic_defaults,
)
from wealthsim.engine.simulation.models import (
    Scenario,
    SimulationGoal,
    SimulationInput,
    parse_date,
)
from wealthsim.engine.utils.io import read_yaml

__all__ = [
    "ValidationSummary",
    "validate_scenario",
    "validate_scenario_payload",
    "load_scenario",
    "DEFAULT_CURRENCY",
    "DEFAULT_USER_ID",
]

DEFAULT_CURRENCY = "NGN"
DEFAULT_USER_ID = "local-user"
MAX_RETURN_RATE = 0.5
MAX_INFLATION_RATE = 0.5
MAX_TAX_RATE = 0.5
MAX_INCOME_GROWTH_RATE = 0.2
MAX_EXPENSE_GROWTH_RATE = 0.3


@dataclass(slots=True)
class ValidationSummary:
    """Diagnostics and parsed scenario returned by the validator.

    Attributes:
      errors: Problems that prevent the scenario from being simulated.
      warnings: Soft diagnostics about unusual but accepted values.
      scenario: Parsed scenario, ``None`` when errors were found.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    scenario: Scenario | None = None

    @property
    def ok(self) -> bool:
        return not self.errors


def _is_number(value: Any) -> bool:
    """Return ``True`` if ``value`` is a finite real number (excluding booleans)."""

    return (
        isinstance(value, int | float)
        and not isinstance(value, bool)
        and math.isfinite(float(value))
    )


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _get(payload: Mapping[str, Any], name: str, default: Any = None) -> Any:
    if name in payload:
        return payload[name]
    return payload.get(_camel(name), default)


def _as_float(
    value: Any,
    *,
    path: str,
    errors: list[str],
    minimum: float | None = None,
    maximum: float | None = None,
) -> float | None:
    """Validate ``value`` as a finite float returning it when valid."""

    if not _is_number(value):
        errors.append(f"{path} must be a finite number")
        return None
    number = float(value)
    if minimum is not None and number < minimum:
        errors.append(f"{path} must be >= {minimum}")
        return None
    if maximum is not None and number > maximum:
        errors.append(f"{path} must be <= {maximum}")
        return None
    return number


def _as_optional_float(
    payload: Mapping[str, Any],
    name: str,
    *,
    prefix: str,
    errors: list[str],
    minimum: float | None = None,
    maximum: float | None = None,
) -> float | None:
    value = _get(payload, name)
    if value is None:
        return None
    return _as_float(
        value, path=f"{prefix}.{name}", errors=errors, minimum=minimum, maximum=maximum
    )


def _as_int(value: Any, *, path: str, errors: list[str], minimum: int | None = None) -> int | None:
    """Validate ``value`` as integer returning it when valid."""

    if not isinstance(value, int) or isinstance(value, bool):
        errors.append(f"{path} must be an integer")
        return None
    if minimum is not None and value < minimum:
        errors.append(f"{path} must be >= {minimum}")
        return None
    return value


def _as_string(value: Any, *, path: str, errors: list[str]) -> str | None:
    """Validate ``value`` as a non-empty string returning the stripped text."""

    if not isinstance(value, str) or value.strip() == "":
        errors.append(f"{path} must be a non-empty string")
        return None
    return value.strip()


def _as_date(value: Any, *, path: str, errors: list[str]) -> date | None:
    """Validate ``value`` as an ISO date."""

    try:
        return parse_date(value)
    except ValueError:
        errors.append(f"{path} must be a valid ISO date")
        return None


def _validate_goals(value: Any, *, errors: list[str]) -> list[SimulationGoal] | None:
    """Validate the optional goal list."""

    if value is None:
        return []
    if not isinstance(value, list):
        errors.append("input.goals must be a list")
        return None
    if len(value) > DEFAULT_CONSTANTS.max_goals:
        errors.append(f"input.goals must contain at most {DEFAULT_CONSTANTS.max_goals} entries")
        return None
    goals: list[SimulationGoal] = []
    for idx, entry in enumerate(value):
        path = f"input.goals[{idx}]"
        if not isinstance(entry, dict):
            errors.append(f"{path} must be a mapping")
            continue
        amount = _as_float(entry.get("amount"), path=f"{path}.amount", errors=errors)
        if amount is not None and amount <= 0:
            errors.append(f"{path}.amount must be > 0")
            amount = None
        deadline = _as_date(entry.get("deadline"), path=f"{path}.deadline", errors=errors)
        priority = entry.get("priority")
        if priority is not None:
            priority = _as_int(priority, path=f"{path}.priority", errors=errors, minimum=1)
            if priority is None:
                continue
        goal_id = entry.get("id")
        name = entry.get("name")
        if amount is None or deadline is None:
            continue
        goals.append(
            SimulationGoal(
                amount=amount,
                deadline=deadline,
                goal_id=None if goal_id is None else str(goal_id),
                name=None if name is None else str(name),
                priority=priority,
            )
        )
    return goals


def _validate_input(
    payload: Any,
    *,
    country: str | None,
    summary: ValidationSummary,
) -> SimulationInput | None:
    """Validate the ``input`` section and build a :class:`SimulationInput`."""

    errors = summary.errors
    if not isinstance(payload, dict):
        errors.append("input must be a mapping")
        return None
    error_count = len(errors)
    prefix = "input"
    defaults = economic_defaults(country)

    savings_rate = _as_float(
        _get(payload, "current_savings_rate"),
        path="input.current_savings_rate",
        errors=errors,
        minimum=0.0,
        maximum=1.0,
    )
    income = _as_float(
        _get(payload, "monthly_income"), path="input.monthly_income", errors=errors, minimum=0.0
    )
    net_worth = _as_float(
        _get(payload, "current_net_worth", 0.0), path="input.current_net_worth", errors=errors
    )
    expenses = _as_optional_float(
        payload, "monthly_expenses", prefix=prefix, errors=errors, minimum=0.0
    )
    expected_return = _as_optional_float(
        payload,
        "expected_return_rate",
        prefix=prefix,
        errors=errors,
        minimum=0.0,
        maximum=MAX_RETURN_RATE,
    )
    inflation = _as_optional_float(
        payload,
        "inflation_rate",
        prefix=prefix,
        errors=errors,
        minimum=0.0,
        maximum=MAX_INFLATION_RATE,
    )
    income_growth = _as_optional_float(
        payload,
        "income_growth_rate",
        prefix=prefix,
        errors=errors,
        minimum=0.0,
        maximum=MAX_INCOME_GROWTH_RATE,
    )
    expense_growth = _as_optional_float(
        payload,
        "expense_growth_rate",
        prefix=prefix,
        errors=errors,
        minimum=0.0,
        maximum=MAX_EXPENSE_GROWTH_RATE,
    )
    tax_rate = _as_optional_float(
        payload,
        "tax_rate_on_returns",
        prefix=prefix,
        errors=errors,
        minimum=0.0,
        maximum=MAX_TAX_RATE,
    )
    withdrawal = _as_optional_float(
        payload, "monthly_withdrawal", prefix=prefix, errors=errors, minimum=0.0
    )
    regimes = _get(payload, "enable_market_regimes", False)
    if not isinstance(regimes, bool):
        errors.append("input.enable_market_regimes must be a boolean")
    seed = _get(payload, "random_seed")
    if seed is not None:
        seed = _as_int(seed, path="input.random_seed", errors=errors, minimum=0)

    raw_goals = _get(payload, "goals")
    goals = _validate_goals(raw_goals, errors=errors)
    goal_amount = 0.0
    goal_deadline: date | None = None
    if not raw_goals:
        amount = _as_float(_get(payload, "goal_amount"), path="input.goal_amount", errors=errors)
        if amount is not None and amount <= 0:
            errors.append("input.goal_amount must be > 0")
        elif amount is not None:
            goal_amount = amount
        goal_deadline = _as_date(
            _get(payload, "goal_deadline"), path="input.goal_deadline", errors=errors
        )

    if len(errors) != error_count:
        return None

    if income == 0:
        summary.warnings.append("input.monthly_income is 0; savings stay at zero")
    if net_worth is not None and net_worth < 0:
        summary.warnings.append("input.current_net_worth is negative; it is floored after month 1")
    if expected_return is None:
        expected_return = defaults.expected_return
    if inflation is None:
        inflation = defaults.inflation_rate
    if income_growth is None and country is not None:
        income_growth = defaults.income_growth_rate

    return SimulationInput(
        current_savings_rate=float(savings_rate),  # type: ignore[arg-type]
        monthly_income=float(income),  # type: ignore[arg-type]
        current_net_worth=float(net_worth),  # type: ignore[arg-type]
        expected_return_rate=expected_return,
        inflation_rate=inflation,
        goal_amount=goal_amount,
        goal_deadline=goal_deadline,
        monthly_expenses=expenses,
        goals=tuple(goals or ()),
        income_growth_rate=income_growth,
        expense_growth_rate=expense_growth,
        tax_rate_on_returns=tax_rate,
        monthly_withdrawal=withdrawal,
        enable_market_regimes=bool(regimes),
        random_seed=seed,
    )


def validate_scenario_payload(payload: Any) -> ValidationSummary:
    """Validate an in-memory scenario mapping."""

    summary = ValidationSummary()
    errors = summary.errors
    if not isinstance(payload, dict):
        errors.append("scenario must be a mapping")
        return summary

    user_id = _as_string(
        _get(payload, "user_id", DEFAULT_USER_ID), path="user_id", errors=errors
    )
    currency = _as_string(
        payload.get("currency", DEFAULT_CURRENCY), path="currency", errors=errors
    )
    country: str | None = None
    raw_country = payload.get("country")
    if raw_country is not None:
        country = _as_string(raw_country, path="country", errors=errors)
        if country is not None:
            country = country.upper().replace(" ", "_")
            if country not in ECONOMIC_DEFAULTS:
                summary.warnings.append(
                    f"country: no economic defaults for {country}; using DEFAULT"
                )
    scenario_input = _validate_input(payload.get("input"), country=country, summary=summary)

    if errors or scenario_input is None or user_id is None or currency is None:
        return summary
    summary.scenario = Scenario(
        user_id=user_id,
        currency=currency.upper(),
        input=scenario_input,
        country=country,
    )
    return summary


def validate_scenario(path: Path | str) -> ValidationSummary:
    """Validate a YAML scenario file and return diagnostics."""

    scenario_path = Path(path)
    if not scenario_path.exists():
        return ValidationSummary(errors=[f"scenario: missing file at {scenario_path}"])
    payload = read_yaml(scenario_path)
    if payload is None:
        return ValidationSummary(errors=[f"scenario: file at {scenario_path} is empty"])
    return validate_scenario_payload(payload)


def load_scenario(path: Path | str) -> Scenario:
    """Load and validate a scenario file.

    Raises:
      ValueError: If the scenario is invalid; the message lists every error.
    """

    summary = validate_scenario(path)
    if summary.scenario is None:
        raise ValueError("invalid scenario: " + "; ".join(summary.errors))
    return summary.scenario
