"""Structured logging and metric helpers for WealthSim.

Console output is always on. Setting ``WEALTHSIM_JSON_LOGS`` (or passing
``--json-logs`` to the CLI) also appends one JSON object per record to
``artifacts/audit/wealthsim.log``; the simulation attaches its run statistics
to records through ``extra`` and they land in :data:`AUDIT_NUMBER_FIELDS`.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Final

CONSOLE_FORMAT: Final[str] = "[%(levelname)s] %(name)s: %(message)s"
AUDIT_DIR: Final[Path] = Path("artifacts") / "audit"
LOG_PATH: Final[Path] = AUDIT_DIR / "wealthsim.log"
METRICS_PATH: Final[Path] = AUDIT_DIR / "metrics.jsonl"
JSON_ENV_FLAG: Final[str] = "WEALTHSIM_JSON_LOGS"
LEVEL_ENV_FLAG: Final[str] = "WEALTHSIM_LOG_LEVEL"
AUDIT_NUMBER_FIELDS: Final[tuple[str, ...]] = (
    "duration_ms",
    "iterations",
    "probability",
    "required_savings_rate",
)


class JsonAuditFormatter(logging.Formatter):
    """Format log records as single-line JSON payloads."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "source": record.name,
            "message": record.getMessage(),
            "user_id": getattr(record, "user_id", None),
            "cache_hit": bool(getattr(record, "cache_hit", False)),
        }
        for field in AUDIT_NUMBER_FIELDS:
            payload[field] = _coerce_number(getattr(record, field, None))
        return json.dumps(payload, ensure_ascii=False)


def _coerce_number(value: object) -> float | None:
    if value is None:
        return None
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _resolve_level() -> int:
    """Read the log level from ``WEALTHSIM_LOG_LEVEL``, INFO when unset or unknown."""

    name = os.environ.get(LEVEL_ENV_FLAG, "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _json_logging_enabled(explicit: bool) -> bool:
    if explicit:
        return True
    return os.environ.get(JSON_ENV_FLAG, "").strip().lower() in {"1", "true", "yes", "on"}


def _ensure_console_handler(logger: logging.Logger, level: int) -> None:
    for handler in logger.handlers:
        if getattr(handler, "_wealthsim_console", False):
            handler.setLevel(level)
            return
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    stream_handler._wealthsim_console = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)


def _ensure_json_handler(logger: logging.Logger, level: int) -> None:
    for handler in logger.handlers:
        if getattr(handler, "_wealthsim_json", False):
            handler.setLevel(level)
            return
    AUDIT_DIR.mkdir(parents=True, exist_ok=True)
    json_handler = logging.FileHandler(LOG_PATH, encoding="utf-8")
    json_handler.setLevel(level)
    json_handler.setFormatter(JsonAuditFormatter())
    json_handler._wealthsim_json = True  # type: ignore[attr-defined]
    logger.addHandler(json_handler)


def setup_logger(name: str, json_format: bool = False) -> logging.Logger:
    """Configure and return a structured logger for WealthSim modules."""

    level = _resolve_level()
    logger = logging.getLogger(name)
    logger.setLevel(level)
    # Keep propagation so capture handlers (pytest caplog) still see records.
    logger.propagate = True
    _ensure_console_handler(logger, level)
    if _json_logging_enabled(json_format):
        _ensure_json_handler(logger, level)
    return logger


def record_metrics(metric_name: str, value: float, tags: Mapping[str, str] | None = None) -> None:
    """Append a metric observation to ``artifacts/audit/metrics.jsonl``."""

    AUDIT_DIR.mkdir(parents=True, exist_ok=True)
    payload = {
        "timestamp": datetime.now(tz=UTC).isoformat(),
        "metric": metric_name,
        "value": float(value),
        "tags": dict(tags or {}),
    }
    with METRICS_PATH.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(payload, ensure_ascii=False) + "\n")


def configure_cli_logging(json_logs: bool) -> None:
    """Reconfigure every ``wealthsim`` logger created so far for a CLI run."""

    if json_logs:
        os.environ[JSON_ENV_FLAG] = "1"
    else:
        os.environ.pop(JSON_ENV_FLAG, None)
    names = [
        name
        for name, logger in logging.Logger.manager.loggerDict.items()
        if isinstance(logger, logging.Logger) and name.startswith("wealthsim")
    ]
    for name in {"wealthsim", *names}:
        setup_logger(name, json_format=json_logs)


__all__ = ["setup_logger", "record_metrics", "configure_cli_logging"]
