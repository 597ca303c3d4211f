"""
Tracer protocol and implementations for composition-based tracing.

Components receive a tracer as a dependency instead of reaching for a global
one, which keeps them easy to test. A span context yields either a handle
accepting attributes set after the span starts, or None when nothing is
recorded; callers guard with ``if span is not None``.

Example:
    >>> from podmigrator.observability import create_tracer, ATTR_MIGRATION_ID
    >>>
    >>> tracer = create_tracer(__name__, enable_tracing=True)
    >>> with tracer.span("podmigrator.migration.execute", {ATTR_MIGRATION_ID: job_id}) as span:
    ...     result = await run(job_id)
    ...     if span is not None:
    ...         span.set_attribute(ATTR_MIGRATION_STATUS, result.status.value)
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from opentelemetry import trace


class SpanHandle(Protocol):
    """The part of a span that components write to once it has started."""

    def set_attribute(self, key: str, value: Any) -> None: ...


@runtime_checkable
class Tracer(Protocol):
    """
    Protocol for tracers that can create tracing spans.

    Implementations:
    - NullTracer: records nothing
    - OpenTelemetryTracer: spans go to the configured tracer provider
    - MockTracer: keeps spans in memory for assertions
    """

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[SpanHandle | None]: ...


class NullTracer:
    """Tracer used when tracing is disabled. Every span yields None."""

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        yield None


class OpenTelemetryTracer:
    """
    OpenTelemetry tracer implementation.

    Spans are recorded by whatever tracer provider the host process has
    configured; without one, OpenTelemetry's API hands out non-recording spans.

    Args:
        tracer_name: Name for the tracer (typically __name__)
    """

    def __init__(self, tracer_name: str) -> None:
        self._tracer = trace.get_tracer(tracer_name)

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[SpanHandle | None]:
        return self._tracer.start_as_current_span(name, attributes=attributes or {})


@dataclass
class RecordedSpan:
    """
    A span captured by MockTracer.

    Attributes:
        name: Span name
        attributes: Attributes given at start, plus any set afterwards
    """

    name: str
    attributes: dict[str, Any] = field(default_factory=dict)

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value


class MockTracer:
    """
    Tracer for tests that keeps every span in start order.

    Example:
        >>> tracer = MockTracer()
        >>> with tracer.span("podmigrator.pipeline.step", {ATTR_STEP_NAME: "a"}) as span:
        ...     span.set_attribute(ATTR_ERROR_TYPE, "ProvisioningError")
        >>> tracer.spans[0].attributes[ATTR_ERROR_TYPE]
        'ProvisioningError'
    """

    def __init__(self) -> None:
        self.spans: list[RecordedSpan] = []

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[RecordedSpan, None, None]:
        recorded = RecordedSpan(name, dict(attributes or {}))
        self.spans.append(recorded)
        yield recorded

    @property
    def span_names(self) -> list[str]:
        return [span.name for span in self.spans]


def create_tracer(name: str, enable_tracing: bool = True) -> Tracer:
    """
    Create the tracer a component uses by default.

    Args:
        name: Tracer name (typically __name__)
        enable_tracing: Whether spans go to OpenTelemetry

    Returns:
        OpenTelemetryTracer if enabled, NullTracer otherwise
    """
    if enable_tracing:
        return OpenTelemetryTracer(name)
    return NullTracer()


__all__ = [
    "SpanHandle",
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "RecordedSpan",
    "MockTracer",
    "create_tracer",
]
