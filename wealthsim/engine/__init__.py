"""Core namespace of the WealthSim engine."""

from __future__ import annotations

from . import simulation, utils

__all__ = ["simulation", "utils"]
