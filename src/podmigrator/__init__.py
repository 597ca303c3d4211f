"""
podmigrator - Asynchronous pod migration orchestration.

Relocates a running pod from one node to another: containers are
classified, state is optionally checkpointed to a durable volume, a filtered
pod is created on the target node, the original is removed and resource
savings are measured.

Example:
    >>> from podmigrator import MigrationOrchestrator, MigrationRequest
    >>> from podmigrator.platform import InMemoryPlatform
    >>>
    >>> platform = InMemoryPlatform()
    >>> orchestrator = MigrationOrchestrator(platform)
    >>> response = await orchestrator.submit(
    ...     MigrationRequest(
    ...         pod_name="p1",
    ...         pod_namespace="default",
    ...         source_node="n1",
    ...         target_node="n2",
    ...         preserve_checkpoint=True,
    ...     )
    ... )
    >>> status = await orchestrator.get_status(response.migration_id)
"""

from podmigrator.checkpoint import CheckpointManager, checkpoint_claim_name
from podmigrator.classifier import classify_container, classify_containers
from podmigrator.config import OrchestratorConfig
from podmigrator.exceptions import (
    CleanupWarning,
    CollectionError,
    ConflictError,
    DeadlineExceededError,
    InvalidTransitionError,
    JobNotFoundError,
    NotFoundError,
    PlatformForbiddenError,
    PodMigratorError,
    ProvisioningError,
    ReadinessTimeoutError,
    StepFailedError,
    WorkloadNotFoundError,
)
from podmigrator.metrics import MetricsAggregator, compute_savings
from podmigrator.models import (
    ContainerLifecycle,
    ContainerState,
    MigrationDetails,
    MigrationJob,
    MigrationMetrics,
    MigrationRequest,
    MigrationResponse,
    MigrationStatus,
    ResourceUsage,
    SampleProvenance,
)
from podmigrator.orchestrator import MigrationOrchestrator
from podmigrator.registry import JobRegistry
from podmigrator.supervisor import DrainReport, JobSupervisor

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Entry point
    "MigrationOrchestrator",
    "OrchestratorConfig",
    # Models
    "ContainerLifecycle",
    "ContainerState",
    "MigrationDetails",
    "MigrationJob",
    "MigrationMetrics",
    "MigrationRequest",
    "MigrationResponse",
    "MigrationStatus",
    "ResourceUsage",
    "SampleProvenance",
    # Components
    "CheckpointManager",
    "DrainReport",
    "JobRegistry",
    "JobSupervisor",
    "MetricsAggregator",
    "checkpoint_claim_name",
    "classify_container",
    "classify_containers",
    "compute_savings",
    # Exceptions
    "CleanupWarning",
    "CollectionError",
    "ConflictError",
    "DeadlineExceededError",
    "InvalidTransitionError",
    "JobNotFoundError",
    "NotFoundError",
    "PlatformForbiddenError",
    "PodMigratorError",
    "ProvisioningError",
    "ReadinessTimeoutError",
    "StepFailedError",
    "WorkloadNotFoundError",
]
