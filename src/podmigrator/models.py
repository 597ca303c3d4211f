"""
Data models for pod migration jobs.

Models in this module:

Enums:
    - MigrationStatus: Job lifecycle states
    - ContainerLifecycle: Classified container state
    - SampleProvenance: Whether a resource sample was measured or estimated

Input:
    - MigrationRequest: Immutable caller request (pydantic)

Core Models:
    - ContainerState: Classification result for one container
    - ResourceUsage: CPU and memory sample
    - MigrationDetails: Mutable progress accumulator for a job
    - MigrationJob: The unit of work tracked by the registry
    - MigrationMetrics: Process-wide aggregate snapshot
    - MigrationResponse: Result of submit/get_status
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from podmigrator.exceptions import InvalidTransitionError


class MigrationStatus(Enum):
    """
    Migration job lifecycle states.

    State machine transitions:
        PENDING -> RUNNING -> COMPLETED
                     |
                     +-----> FAILED

    COMPLETED and FAILED are absorbing: no transition leaves them.
    """

    PENDING = "pending"
    """Job registered, pipeline not yet dispatched."""

    RUNNING = "running"
    """Pipeline is executing."""

    COMPLETED = "completed"
    """Every fail-fast step succeeded."""

    FAILED = "failed"
    """A fail-fast step failed or the deadline expired."""

    @property
    def is_terminal(self) -> bool:
        """
        Check if this is a terminal state.

        Returns:
            True for COMPLETED and FAILED.
        """
        return self in (MigrationStatus.COMPLETED, MigrationStatus.FAILED)

    @property
    def message(self) -> str:
        """Human-readable status text."""
        return _STATUS_MESSAGES[self]

    def can_transition_to(self, target: MigrationStatus) -> bool:
        """
        Check if transition to target state is valid.

        Args:
            target: The target state.

        Returns:
            True if the transition is valid.
        """
        if self.is_terminal:
            return False

        valid_transitions: dict[MigrationStatus, list[MigrationStatus]] = {
            MigrationStatus.PENDING: [MigrationStatus.RUNNING, MigrationStatus.FAILED],
            MigrationStatus.RUNNING: [MigrationStatus.COMPLETED, MigrationStatus.FAILED],
        }

        return target in valid_transitions.get(self, [])


_STATUS_MESSAGES = {
    MigrationStatus.PENDING: "Migration is pending",
    MigrationStatus.RUNNING: "Migration is in progress",
    MigrationStatus.COMPLETED: "Migration completed successfully",
    MigrationStatus.FAILED: "Migration failed",
}


class ContainerLifecycle(Enum):
    """Classified lifecycle state of a container."""

    WAITING = "waiting"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SampleProvenance(Enum):
    """
    Origin of a resource-usage sample.

    Aggregate statistics must never mix the two silently.
    """

    MEASURED = "measured"
    """Sampled from the platform."""

    ESTIMATED = "estimated"
    """Derived from another sample by fixed reduction ratios."""


class MigrationRequest(BaseModel):
    """
    Request to relocate a pod from one node to another.

    Attributes:
        pod_name: Name of the source pod
        pod_namespace: Namespace of the source pod
        source_node: Node the pod currently runs on
        target_node: Node to relocate the pod to
        preserve_checkpoint: Create a durable checkpoint volume for state
        force_restart: Passed through to the platform when recreating the pod
        timeout: Job deadline in seconds (0 means use the configured default)

    Example:
        >>> request = MigrationRequest(
        ...     pod_name="p1",
        ...     pod_namespace="default",
        ...     source_node="n1",
        ...     target_node="n2",
        ...     preserve_checkpoint=True,
        ... )
    """

    model_config = ConfigDict(frozen=True)

    pod_name: str = Field(..., min_length=1, description="Source pod name")
    pod_namespace: str = Field(..., min_length=1, description="Source pod namespace")
    source_node: str = Field(..., min_length=1, description="Current node")
    target_node: str = Field(..., min_length=1, description="Destination node")
    preserve_checkpoint: bool = Field(default=False, description="Create checkpoint volume")
    force_restart: bool = Field(default=False, description="Force container restart")
    timeout: int = Field(default=0, ge=0, description="Deadline in seconds, 0 for default")

    @model_validator(mode="after")
    def _check_distinct_nodes(self) -> Self:
        if self.source_node == self.target_node:
            raise ValueError(
                f"source_node and target_node must differ, both are '{self.source_node}'"
            )
        return self


@dataclass(frozen=True)
class ContainerState:
    """
    Migration decision for one container.

    Attributes:
        name: Container name
        state: Classified lifecycle state
        restart_count: Restarts observed on the source node
        should_migrate: Whether the container is recreated on the target
    """

    name: str
    state: ContainerLifecycle
    restart_count: int = 0
    should_migrate: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "restart_count": self.restart_count,
            "should_migrate": self.should_migrate,
        }


@dataclass(frozen=True)
class ResourceUsage:
    """
    CPU and memory sample for a pod.

    Attributes:
        cpu: CPU usage in fractional cores
        memory: Memory usage in bytes
        timestamp: When the sample was taken
        provenance: Whether the sample was measured or estimated
    """

    cpu: float
    memory: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    provenance: SampleProvenance = SampleProvenance.MEASURED

    @property
    def is_estimate(self) -> bool:
        return self.provenance == SampleProvenance.ESTIMATED

    @classmethod
    def zero(cls) -> ResourceUsage:
        """Zero-value placeholder used when original sampling fails. Flagged ESTIMATED."""
        return cls(cpu=0.0, memory=0, provenance=SampleProvenance.ESTIMATED)

    @classmethod
    def estimate_from(
        cls,
        original: ResourceUsage,
        cpu_ratio: float,
        memory_ratio: float,
    ) -> ResourceUsage:
        """
        Derive an estimated sample by applying fixed reduction ratios.

        Args:
            original: The measured pre-migration sample
            cpu_ratio: Multiplier applied to cpu
            memory_ratio: Multiplier applied to memory

        Returns:
            A sample flagged ESTIMATED
        """
        return cls(
            cpu=original.cpu * cpu_ratio,
            memory=int(original.memory * memory_ratio),
            provenance=SampleProvenance.ESTIMATED,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "cpu": self.cpu,
            "memory": self.memory,
            "timestamp": self.timestamp.isoformat(),
            "provenance": self.provenance.value,
        }


@dataclass
class MigrationDetails:
    """
    Progress accumulator for a migration job.

    Mutated only by the owning executor through the registry.

    Attributes:
        start_time: When the job was created
        end_time: When the job reached a terminal state
        duration: end_time - start_time, set once with end_time
        original_resources: Usage sampled before migration
        optimized_resources: Usage sampled (or estimated) after migration
        container_states: Per-container decisions in pod order
        checkpoint_path: Checkpoint handle name, if created
        pv_claim_name: Volume claim backing the checkpoint, if created
        new_pod_name: Name of the recreated pod, once ready
        error: Message of the fail-fast cause, if the job failed
        warnings: Messages of contained best-effort failures
    """

    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    duration: timedelta | None = None
    original_resources: ResourceUsage | None = None
    optimized_resources: ResourceUsage | None = None
    container_states: list[ContainerState] = field(default_factory=list)
    checkpoint_path: str = ""
    pv_claim_name: str = ""
    new_pod_name: str = ""
    error: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def migrating_containers(self) -> list[ContainerState]:
        return [state for state in self.container_states if state.should_migrate]

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to dictionary for JSON responses.

        Returns:
            Dictionary with ISO timestamps and durations in seconds.
        """
        result: dict[str, Any] = {
            "start_time": self.start_time.isoformat(),
            "container_states": [state.to_dict() for state in self.container_states],
        }
        if self.end_time is not None:
            result["end_time"] = self.end_time.isoformat()
        if self.duration is not None:
            result["duration_seconds"] = self.duration.total_seconds()
        if self.original_resources is not None:
            result["original_resources"] = self.original_resources.to_dict()
        if self.optimized_resources is not None:
            result["optimized_resources"] = self.optimized_resources.to_dict()
        if self.checkpoint_path:
            result["checkpoint_path"] = self.checkpoint_path
        if self.pv_claim_name:
            result["pv_claim_name"] = self.pv_claim_name
        if self.new_pod_name:
            result["new_pod_name"] = self.new_pod_name
        if self.error:
            result["error"] = self.error
        if self.warnings:
            result["warnings"] = list(self.warnings)
        return result


@dataclass
class MigrationJob:
    """
    A pod migration job.

    This is a mutable dataclass; all changes go through
    ``JobRegistry.mutate`` so readers never observe a partial update.

    Attributes:
        id: Unique job identifier
        request: The originating request
        timeout_seconds: Resolved deadline length (default applied)
        status: Current lifecycle state
        details: Progress accumulator
        created_at: When the job was created
    """

    id: str
    request: MigrationRequest
    timeout_seconds: float
    status: MigrationStatus = MigrationStatus.PENDING
    details: MigrationDetails = field(default_factory=MigrationDetails)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        self.details.start_time = self.created_at

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def transition_to(self, target: MigrationStatus) -> None:
        """
        Move to a new status, enforcing the state machine.

        Terminal transitions also stamp end_time and duration.

        Raises:
            InvalidTransitionError: If the transition is not allowed.
        """
        if not self.status.can_transition_to(target):
            raise InvalidTransitionError(
                self.status.value, target.value, migration_id=self.id
            )
        self.status = target
        if target.is_terminal:
            end_time = datetime.now(UTC)
            self.details.end_time = end_time
            self.details.duration = end_time - self.details.start_time

    def to_dict(self) -> dict[str, Any]:
        return {
            "migration_id": self.id,
            "status": self.status.value,
            "request": self.request.model_dump(),
            "timeout_seconds": self.timeout_seconds,
            "created_at": self.created_at.isoformat(),
            "details": self.details.to_dict(),
        }


@dataclass(frozen=True)
class MigrationMetrics:
    """
    Snapshot of process-wide migration metrics.

    Savings are the most recently computed values, not a distribution
    aggregate, and stay None until a job completes with both samples.

    Attributes:
        total_migrations: Jobs that reached a terminal state
        successful_migrations: Jobs that completed
        failed_migrations: Jobs that failed
        average_duration: Running mean duration of completed jobs
        cpu_savings: Last cpu savings percentage
        memory_savings: Last memory savings percentage
        savings_estimated: Whether the last savings used an estimated sample
    """

    total_migrations: int = 0
    successful_migrations: int = 0
    failed_migrations: int = 0
    average_duration: timedelta = timedelta(0)
    cpu_savings: float | None = None
    memory_savings: float | None = None
    savings_estimated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_migrations": self.total_migrations,
            "successful_migrations": self.successful_migrations,
            "failed_migrations": self.failed_migrations,
            "average_duration_seconds": self.average_duration.total_seconds(),
            "cpu_savings_percentage": self.cpu_savings,
            "memory_savings_percentage": self.memory_savings,
            "savings_estimated": self.savings_estimated,
        }


@dataclass(frozen=True)
class MigrationResponse:
    """
    Response returned by submit and get_status.

    Attributes:
        migration_id: Job identifier
        status: Job status at the time of the call
        message: Human-readable status text
        details: Snapshot of the job's details
    """

    migration_id: str
    status: MigrationStatus
    message: str
    details: MigrationDetails | None = None

    @classmethod
    def from_job(cls, job: MigrationJob, message: str | None = None) -> MigrationResponse:
        return cls(
            migration_id=job.id,
            status=job.status,
            message=message or job.status.message,
            details=job.details,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "migration_id": self.migration_id,
            "status": self.status.value,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details.to_dict()
        return result


__all__ = [
    "MigrationStatus",
    "ContainerLifecycle",
    "SampleProvenance",
    "MigrationRequest",
    "ContainerState",
    "ResourceUsage",
    "MigrationDetails",
    "MigrationJob",
    "MigrationMetrics",
    "MigrationResponse",
]
