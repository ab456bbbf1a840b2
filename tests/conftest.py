"""Shared pytest configuration for WealthSim."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable
from datetime import UTC, date, datetime
from pathlib import Path

import pytest


def _insert_repo_root() -> None:
    """Make sure the repository root is importable."""

    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


_insert_repo_root()

from wealthsim.engine.simulation import SimulationConstants, SimulationInput  # noqa: E402

AS_OF = date(2025, 1, 15)


def pytest_report_header(config: pytest.Config) -> Iterable[str]:  # pragma: no cover - pytest hook
    """Show diagnostic context for the test run."""

    root = Path.cwd()
    log_level = os.environ.get("WEALTHSIM_LOG_LEVEL", "INFO")
    return [f"WealthSim repo: {root}", f"WEALTHSIM_LOG_LEVEL={log_level}"]


@pytest.fixture(autouse=True)
def _set_verbose_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pin the default log level so tests are not affected by the environment."""

    monkeypatch.setenv("WEALTHSIM_LOG_LEVEL", "INFO")
    monkeypatch.delenv("WEALTHSIM_JSON_LOGS", raising=False)


@pytest.fixture
def fast_constants() -> SimulationConstants:
    """Constants with reduced iteration counts for quick engine runs."""

    return SimulationConstants(iterations=400, optimization_iterations=200)


@pytest.fixture
def as_of() -> date:
    """Reference date the goal deadlines are measured from."""

    return AS_OF


@pytest.fixture
def fixed_clock() -> datetime:
    return datetime(AS_OF.year, AS_OF.month, AS_OF.day, 9, 30, tzinfo=UTC)


@pytest.fixture
def base_input() -> SimulationInput:
    """Scenario of a saver targeting 2,000,000 within two years."""

    return SimulationInput(
        current_savings_rate=0.1,
        monthly_income=400_000.0,
        current_net_worth=500_000.0,
        expected_return_rate=0.07,
        inflation_rate=0.05,
        goal_amount=2_000_000.0,
        goal_deadline=date(AS_OF.year + 2, AS_OF.month, AS_OF.day),
        random_seed=12345,
    )
