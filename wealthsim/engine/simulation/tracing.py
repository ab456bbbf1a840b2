"""Optional tracing sink observing the stages of a simulation.

Tracers are purely observational: the engine behaves identically with the
default :class:`NullTracer` and with any other implementation.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from wealthsim.engine.logging import setup_logger

__all__ = ["Trace", "Span", "Tracer", "NullTracer", "LoggingTracer", "TRACE_TAGS"]

TRACE_TAGS: tuple[str, ...] = ("finance", "simulation", "monte-carlo")


@dataclass
class Trace:
    name: str
    input: dict[str, Any] = field(default_factory=dict)
    tags: tuple[str, ...] = ()
    started_at: float = field(default_factory=time.perf_counter)


@dataclass
class Span:
    trace: Trace
    name: str
    input: dict[str, Any] = field(default_factory=dict)
    started_at: float = field(default_factory=time.perf_counter)


class Tracer(Protocol):
    """Sink accepting a trace per simulation and a span per stage."""

    def start_trace(
        self, name: str, input: Mapping[str, Any], tags: Sequence[str] = ()
    ) -> Trace: ...

    def start_span(self, trace: Trace, name: str, input: Mapping[str, Any]) -> Span: ...

    def end_span(self, span: Span, output: Mapping[str, Any]) -> None: ...

    def end_trace(
        self,
        trace: Trace,
        success: bool,
        result: Mapping[str, Any] | None = None,
        error: str | None = None,
    ) -> None: ...


class NullTracer:
    """Tracer that records nothing."""

    def start_trace(
        self, name: str, input: Mapping[str, Any], tags: Sequence[str] = ()
    ) -> Trace:
        return Trace(name=name, input=dict(input), tags=tuple(tags))

    def start_span(self, trace: Trace, name: str, input: Mapping[str, Any]) -> Span:
        return Span(trace=trace, name=name, input=dict(input))

    def end_span(self, span: Span, output: Mapping[str, Any]) -> None:
        return None

    def end_trace(
        self,
        trace: Trace,
        success: bool,
        result: Mapping[str, Any] | None = None,
        error: str | None = None,
    ) -> None:
        return None


class LoggingTracer(NullTracer):
    """Tracer emitting one debug line per span and one per trace."""

    def __init__(self, logger_name: str = "wealthsim.trace") -> None:
        self.logger = setup_logger(logger_name)

    def end_span(self, span: Span, output: Mapping[str, Any]) -> None:
        elapsed_ms = (time.perf_counter() - span.started_at) * 1000
        self.logger.debug(
            "%s/%s finished in %.1fms %s",
            span.trace.name,
            span.name,
            elapsed_ms,
            dict(output),
            extra={"duration_ms": elapsed_ms},
        )

    def end_trace(
        self,
        trace: Trace,
        success: bool,
        result: Mapping[str, Any] | None = None,
        error: str | None = None,
    ) -> None:
        elapsed_ms = (time.perf_counter() - trace.started_at) * 1000
        if success:
            self.logger.debug(
                "%s succeeded in %.1fms %s",
                trace.name,
                elapsed_ms,
                dict(result or {}),
                extra={"duration_ms": elapsed_ms},
            )
        else:
            self.logger.warning(
                "%s failed in %.1fms: %s",
                trace.name,
                elapsed_ms,
                error,
                extra={"duration_ms": elapsed_ms},
            )
