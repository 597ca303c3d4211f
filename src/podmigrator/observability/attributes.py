"""
Standard span and metric attributes for podmigrator.

Attribute constants shared by every component so spans and metrics can be
filtered consistently.

Example:
    >>> from podmigrator.observability.attributes import ATTR_MIGRATION_ID
    >>>
    >>> with tracer.span(
    ...     "podmigrator.pipeline.run",
    ...     {ATTR_MIGRATION_ID: job.id},
    ... ):
    ...     pass
"""

# =============================================================================
# Migration Job Attributes
# =============================================================================

ATTR_MIGRATION_ID = "podmigrator.migration.id"
"""Migration job identifier."""

ATTR_MIGRATION_STATUS = "podmigrator.migration.status"
"""Job status value (e.g., 'running', 'failed')."""

ATTR_MIGRATION_OUTCOME = "outcome"
"""Terminal outcome label on metrics ('completed' or 'failed')."""

# =============================================================================
# Workload Attributes
# =============================================================================

ATTR_POD_NAME = "podmigrator.pod.name"
"""Source pod name."""

ATTR_POD_NAMESPACE = "podmigrator.pod.namespace"
"""Source pod namespace."""

ATTR_SOURCE_NODE = "podmigrator.node.source"
"""Node the pod is migrated from."""

ATTR_TARGET_NODE = "podmigrator.node.target"
"""Node the pod is migrated to."""

ATTR_CONTAINERS_TOTAL = "podmigrator.containers.total"
"""Number of containers in the source pod."""

ATTR_CONTAINERS_MIGRATING = "podmigrator.containers.migrating"
"""Number of containers recreated on the target."""

# =============================================================================
# Pipeline Attributes
# =============================================================================

ATTR_STEP_NAME = "podmigrator.step.name"
"""Pipeline step name."""

ATTR_STEP_POLICY = "podmigrator.step.policy"
"""Step failure policy ('fail_fast' or 'best_effort')."""

ATTR_CHECKPOINT_CLAIM = "podmigrator.checkpoint.claim"
"""Checkpoint volume claim name."""

ATTR_RESOURCE = "resource"
"""Resource label on savings metrics ('cpu' or 'memory')."""

ATTR_ERROR_TYPE = "error.type"
"""Exception class name of a failure."""

__all__ = [
    "ATTR_MIGRATION_ID",
    "ATTR_MIGRATION_STATUS",
    "ATTR_MIGRATION_OUTCOME",
    "ATTR_POD_NAME",
    "ATTR_POD_NAMESPACE",
    "ATTR_SOURCE_NODE",
    "ATTR_TARGET_NODE",
    "ATTR_CONTAINERS_TOTAL",
    "ATTR_CONTAINERS_MIGRATING",
    "ATTR_STEP_NAME",
    "ATTR_STEP_POLICY",
    "ATTR_CHECKPOINT_CLAIM",
    "ATTR_RESOURCE",
    "ATTR_ERROR_TYPE",
]
