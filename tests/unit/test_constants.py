from __future__ import annotations

from pathlib import Path

import pytest

from wealthsim.engine.simulation.constants import (
    DEFAULT_CONSTANTS,
    ECONOMIC_DEFAULTS,
    SIMULATION_MONTHS,
    TIME_HORIZON_MONTHS,
    TIME_HORIZONS,
    SimulationConstants,
    economic_defaults,
    load_simulation_constants,
)
from wealthsim.engine.utils.io import write_yaml


def test_horizons_are_ordered() -> None:
    months = [TIME_HORIZON_MONTHS[horizon] for horizon in TIME_HORIZONS]
    assert months == sorted(months)
    assert SIMULATION_MONTHS == 240


def test_default_constants() -> None:
    assert DEFAULT_CONSTANTS.iterations == 10_000
    assert DEFAULT_CONSTANTS.optimization_iterations == 1_000
    assert DEFAULT_CONSTANTS.target_probability == 0.85
    assert DEFAULT_CONSTANTS.max_goals == 5


def test_from_mapping_casts_values() -> None:
    constants = SimulationConstants.from_mapping({"iterations": "250", "return_std_dev": 1})
    assert constants.iterations == 250
    assert isinstance(constants.return_std_dev, float)
    assert constants.target_probability == DEFAULT_CONSTANTS.target_probability


def test_from_mapping_rejects_unknown_keys() -> None:
    with pytest.raises(ValueError, match="unknown simulation constants"):
        SimulationConstants.from_mapping({"iteratons": 10})


def test_load_constants_from_section(tmp_path: Path) -> None:
    path = write_yaml({"simulation": {"iterations": 123}}, tmp_path / "constants.yml")
    assert load_simulation_constants(path).iterations == 123


def test_load_constants_from_top_level(tmp_path: Path) -> None:
    path = write_yaml({"optimization_iterations": 77}, tmp_path / "constants.yml")
    assert load_simulation_constants(path).optimization_iterations == 77


def test_load_constants_rejects_non_mapping(tmp_path: Path) -> None:
    path = write_yaml([1, 2, 3], tmp_path / "constants.yml")
    with pytest.raises(ValueError):
        load_simulation_constants(path)


def test_shipped_constants_load() -> None:
    path = Path(__file__).resolve().parents[2] / "configs" / "constants.yml"
    constants = load_simulation_constants(path)
    assert constants.iterations == 2_000
    assert constants.optimization_iterations == 500


@pytest.mark.parametrize(
    ("country", "expected"),
    [
        ("Nigeria", "NIGERIA"),
        ("south africa", "SOUTH_AFRICA"),
        (None, "DEFAULT"),
        ("Narnia", "DEFAULT"),
    ],
)
def test_economic_defaults_lookup(country: str | None, expected: str) -> None:
    assert economic_defaults(country) == ECONOMIC_DEFAULTS[expected]
