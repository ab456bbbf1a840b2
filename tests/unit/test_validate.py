from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any

import pytest

from wealthsim.engine.utils.io import write_yaml
from wealthsim.engine.validate import (
    DEFAULT_CURRENCY,
    DEFAULT_USER_ID,
    load_scenario,
    validate_scenario,
    validate_scenario_payload,
)


def _scenario(**input_overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "user_id": "demo",
        "currency": "ngn",
        "input": {
            "current_savings_rate": 0.1,
            "monthly_income": 400_000,
            "current_net_worth": 500_000,
            "expected_return_rate": 0.07,
            "inflation_rate": 0.05,
            "goal_amount": 2_000_000,
            "goal_deadline": "2027-01-15",
            "random_seed": 7,
        },
    }
    payload["input"].update(input_overrides)
    return payload


def test_valid_scenario_builds_input() -> None:
    summary = validate_scenario_payload(_scenario())
    assert summary.ok
    assert summary.warnings == []
    scenario = summary.scenario
    assert scenario is not None
    assert scenario.user_id == "demo"
    assert scenario.currency == "NGN"
    assert scenario.input.goal_deadline == date(2027, 1, 15)
    assert scenario.input.random_seed == 7
    assert scenario.input.income_growth_rate is None


def test_defaults_for_user_and_currency() -> None:
    payload = _scenario()
    del payload["user_id"]
    del payload["currency"]
    scenario = validate_scenario_payload(payload).scenario
    assert scenario is not None
    assert scenario.user_id == DEFAULT_USER_ID
    assert scenario.currency == DEFAULT_CURRENCY


def test_camel_case_keys_are_accepted() -> None:
    payload = {
        "userId": "camel",
        "input": {
            "currentSavingsRate": 0.2,
            "monthlyIncome": 1_000,
            "currentNetWorth": 0,
            "expectedReturnRate": 0.06,
            "inflationRate": 0.02,
            "goals": [{"amount": 5_000, "deadline": "2030-06-30", "name": "Trip"}],
            "enableMarketRegimes": True,
        },
    }
    scenario = validate_scenario_payload(payload).scenario
    assert scenario is not None
    assert scenario.user_id == "camel"
    assert scenario.input.enable_market_regimes is True
    assert scenario.input.goals[0].name == "Trip"
    assert scenario.input.goal_deadline is None


def test_country_defaults_fill_missing_assumptions() -> None:
    payload = _scenario()
    payload["country"] = "ghana"
    del payload["input"]["expected_return_rate"]
    del payload["input"]["inflation_rate"]
    scenario = validate_scenario_payload(payload).scenario
    assert scenario is not None
    assert scenario.country == "GHANA"
    assert scenario.input.expected_return_rate == 0.12
    assert scenario.input.inflation_rate == 0.08
    assert scenario.input.income_growth_rate == 0.04


def test_unknown_country_warns_and_uses_default() -> None:
    payload = _scenario()
    payload["country"] = "Atlantis"
    del payload["input"]["inflation_rate"]
    summary = validate_scenario_payload(payload)
    assert summary.ok
    assert any("ATLANTIS" in warning for warning in summary.warnings)
    assert summary.scenario is not None
    assert summary.scenario.input.inflation_rate == 0.05


@pytest.mark.parametrize(
    ("overrides", "fragment"),
    [
        ({"current_savings_rate": 1.5}, "input.current_savings_rate must be <= 1.0"),
        ({"monthly_income": -1}, "input.monthly_income must be >= 0.0"),
        ({"current_net_worth": float("nan")}, "input.current_net_worth must be a finite number"),
        ({"expected_return_rate": 0.9}, "input.expected_return_rate must be <= 0.5"),
        ({"expense_growth_rate": 0.5}, "input.expense_growth_rate must be <= 0.3"),
        ({"income_growth_rate": -0.1}, "input.income_growth_rate must be >= 0.0"),
        ({"monthly_withdrawal": -5}, "input.monthly_withdrawal must be >= 0.0"),
        ({"random_seed": 1.5}, "input.random_seed must be an integer"),
        ({"enable_market_regimes": "yes"}, "input.enable_market_regimes must be a boolean"),
        ({"goal_amount": 0}, "input.goal_amount must be > 0"),
        ({"goal_deadline": "not a date"}, "input.goal_deadline must be a valid ISO date"),
        ({"goal_deadline": None}, "input.goal_deadline must be a valid ISO date"),
        ({"goals": "house"}, "input.goals must be a list"),
    ],
)
def test_invalid_fields_are_reported(overrides: dict[str, Any], fragment: str) -> None:
    summary = validate_scenario_payload(_scenario(**overrides))
    assert not summary.ok
    assert summary.scenario is None
    assert any(fragment in error for error in summary.errors), summary.errors


def test_goal_entries_are_validated() -> None:
    goals = [
        {"amount": -1, "deadline": "2030-01-01"},
        {"amount": 100, "deadline": "soon"},
        {"amount": 100, "deadline": "2030-01-01", "priority": 0},
        "not-a-goal",
    ]
    summary = validate_scenario_payload(_scenario(goals=goals))
    assert "input.goals[0].amount must be > 0" in summary.errors
    assert "input.goals[1].deadline must be a valid ISO date" in summary.errors
    assert "input.goals[2].priority must be >= 1" in summary.errors
    assert "input.goals[3] must be a mapping" in summary.errors


def test_too_many_goals() -> None:
    goals = [{"amount": 100 * (i + 1), "deadline": "2030-01-01"} for i in range(6)]
    summary = validate_scenario_payload(_scenario(goals=goals))
    assert "input.goals must contain at most 5 entries" in summary.errors


def test_goals_replace_legacy_fields() -> None:
    goals = [{"amount": 100, "deadline": "2030-01-01", "id": "g1", "priority": 1}]
    summary = validate_scenario_payload(
        _scenario(goals=goals, goal_amount=None, goal_deadline=None)
    )
    assert summary.ok, summary.errors
    assert summary.scenario is not None
    assert summary.scenario.input.goals[0].goal_id == "g1"


def test_soft_diagnostics_are_warnings() -> None:
    summary = validate_scenario_payload(_scenario(monthly_income=0, current_net_worth=-10))
    assert summary.ok
    assert len(summary.warnings) == 2


def test_non_mapping_payloads() -> None:
    assert validate_scenario_payload([]).errors == ["scenario must be a mapping"]
    payload = _scenario()
    payload["input"] = 3
    assert "input must be a mapping" in validate_scenario_payload(payload).errors


def test_validate_scenario_file(tmp_path: Path) -> None:
    path = write_yaml(_scenario(), tmp_path / "scenario.yml")
    summary = validate_scenario(path)
    assert summary.ok
    assert load_scenario(path).input.goal_amount == 2_000_000.0


def test_missing_and_empty_files(tmp_path: Path) -> None:
    missing = validate_scenario(tmp_path / "nope.yml")
    assert "missing file" in missing.errors[0]
    empty = tmp_path / "empty.yml"
    empty.write_text("", encoding="utf-8")
    assert "is empty" in validate_scenario(empty).errors[0]


def test_load_scenario_raises_with_every_error(tmp_path: Path) -> None:
    path = write_yaml(
        _scenario(current_savings_rate=2, goal_deadline="bad"), tmp_path / "scenario.yml"
    )
    with pytest.raises(ValueError, match="invalid scenario") as excinfo:
        load_scenario(path)
    message = str(excinfo.value)
    assert "current_savings_rate" in message
    assert "goal_deadline" in message


def test_shipped_scenario_is_valid() -> None:
    path = Path(__file__).resolve().parents[2] / "configs" / "scenario.yml"
    summary = validate_scenario(path)
    assert summary.ok, summary.errors
    assert summary.scenario is not None
    assert len(summary.scenario.input.goals) == 2
