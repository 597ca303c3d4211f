"""
Observability utilities for podmigrator.

This module provides composition-based tracing and standard attribute
definitions for consistent spans and metrics across components.

Example:
    >>> from podmigrator.observability import create_tracer, ATTR_MIGRATION_ID
    >>>
    >>> class MyComponent:
    ...     def __init__(self, enable_tracing: bool = True):
    ...         self._tracer = create_tracer(__name__, enable_tracing)
"""

from podmigrator.observability.attributes import (
    ATTR_CHECKPOINT_CLAIM,
    ATTR_CONTAINERS_MIGRATING,
    ATTR_CONTAINERS_TOTAL,
    ATTR_ERROR_TYPE,
    ATTR_MIGRATION_ID,
    ATTR_MIGRATION_OUTCOME,
    ATTR_MIGRATION_STATUS,
    ATTR_POD_NAME,
    ATTR_POD_NAMESPACE,
    ATTR_RESOURCE,
    ATTR_SOURCE_NODE,
    ATTR_STEP_NAME,
    ATTR_STEP_POLICY,
    ATTR_TARGET_NODE,
)
from podmigrator.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    RecordedSpan,
    SpanHandle,
    Tracer,
    create_tracer,
)

__all__ = [
    "ATTR_CHECKPOINT_CLAIM",
    "ATTR_CONTAINERS_MIGRATING",
    "ATTR_CONTAINERS_TOTAL",
    "ATTR_ERROR_TYPE",
    "ATTR_MIGRATION_ID",
    "ATTR_MIGRATION_OUTCOME",
    "ATTR_MIGRATION_STATUS",
    "ATTR_POD_NAME",
    "ATTR_POD_NAMESPACE",
    "ATTR_RESOURCE",
    "ATTR_SOURCE_NODE",
    "ATTR_STEP_NAME",
    "ATTR_STEP_POLICY",
    "ATTR_TARGET_NODE",
    "MockTracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "RecordedSpan",
    "SpanHandle",
    "Tracer",
    "create_tracer",
]
