"""Typed failures raised by the projection engine."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

__all__ = ["SimulationCalculationError"]


class SimulationCalculationError(RuntimeError):
    """Raised when a dual-path simulation cannot be completed.

    Attributes:
      reason: Message of the root cause.
      details: Context such as the user identifier.
    """

    def __init__(self, reason: str, details: Mapping[str, Any] | None = None) -> None:
        self.reason = reason
        self.details = dict(details or {})
        super().__init__(f"Simulation calculation failed: {reason}")
