"""In-memory TTL cache of simulation outputs."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from .constants import DEFAULT_CONSTANTS, SimulationConstants
from .models import SimulationInput, SimulationOutput
from .params import resolve_input

__all__ = ["ResultCache", "build_cache_key"]


@dataclass(frozen=True)
class _Entry:
    output: SimulationOutput
    expires_at: float


class ResultCache:
    """Process-local cache keyed by user and input.

    Entries expire ``ttl_seconds`` after insertion. Expired entries are removed
    when looked up, and swept on insertion once the cache holds more than
    ``sweep_threshold`` entries.

    Args:
      ttl_seconds: Lifetime of an entry.
      sweep_threshold: Size above which :meth:`set` sweeps expired entries.
      clock: Monotonic clock returning seconds.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CONSTANTS.cache_ttl_seconds,
        sweep_threshold: int = DEFAULT_CONSTANTS.cache_sweep_threshold,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = float(ttl_seconds)
        self.sweep_threshold = int(sweep_threshold)
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_constants(cls, constants: SimulationConstants) -> ResultCache:
        return cls(
            ttl_seconds=constants.cache_ttl_seconds,
            sweep_threshold=constants.cache_sweep_threshold,
        )

    def get(self, key: str) -> SimulationOutput | None:
        """Return the live entry for ``key`` or ``None``."""

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return None
            return entry.output

    def set(self, key: str, output: SimulationOutput) -> None:
        """Store ``output`` under ``key``."""

        with self._lock:
            now = self._clock()
            self._entries[key] = _Entry(output=output, expires_at=now + self.ttl_seconds)
            if len(self._entries) > self.sweep_threshold:
                expired = [k for k, e in self._entries.items() if now > e.expires_at]
                for stale in expired:
                    del self._entries[stale]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def build_cache_key(
    user_id: str,
    payload: SimulationInput,
    currency: str,
    constants: SimulationConstants = DEFAULT_CONSTANTS,
) -> str:
    """Encode every output-affecting field of a request into a cache key.

    Optional fields are resolved to their defaults first so that an explicit
    default and an omitted field share a key. The normalised goals are
    encoded as ``amount:deadline:id:name`` entries in priority order.
    """

    resolved = resolve_input(payload, constants)
    legacy_deadline = "" if payload.goal_deadline is None else payload.goal_deadline.isoformat()
    goals = "|".join(
        f"{goal.amount}:{goal.deadline.isoformat()}:{goal.goal_id}:{goal.name}"
        for goal in resolved.goals
    )
    parts = [
        "sim",
        user_id,
        currency,
        resolved.savings_rate,
        resolved.monthly_income,
        resolved.monthly_expenses,
        resolved.net_worth,
        payload.goal_amount,
        legacy_deadline,
        resolved.expected_return_rate,
        resolved.inflation_rate,
        resolved.income_growth_rate,
        resolved.expense_growth_rate,
        resolved.tax_rate,
        resolved.monthly_withdrawal,
        resolved.enable_market_regimes,
        "" if resolved.random_seed is None else resolved.random_seed,
        goals,
    ]
    return ":".join(str(part) for part in parts)
