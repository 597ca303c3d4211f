"""
Cluster platform interface and data structures.

The platform performs every real cluster operation a migration needs. The
orchestrator only talks to it through this narrow interface.

This module provides:
- ContainerPhase: Runtime phase reported by the platform
- ContainerRuntimeStatus: Runtime status of one container
- WorkloadDescriptor: Identity and placement of a pod
- ClusterPlatform: Abstract base class for platform implementations
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

from podmigrator.models import ContainerState, ResourceUsage


class ContainerPhase(Enum):
    """Runtime phase of a container as reported by the platform."""

    WAITING = "waiting"
    RUNNING = "running"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class ContainerRuntimeStatus:
    """
    Runtime status of one container.

    Attributes:
        name: Container name
        phase: Runtime phase
        exit_code: Exit code for terminated containers, None otherwise
        restart_count: Number of restarts
    """

    name: str
    phase: ContainerPhase
    exit_code: int | None = None
    restart_count: int = 0


@dataclass(frozen=True)
class WorkloadDescriptor:
    """
    Identity and placement of a pod.

    Attributes:
        namespace: Pod namespace
        name: Pod name
        node: Node the pod is scheduled on
        containers: Container names in pod order
        labels: Pod labels
    """

    namespace: str
    name: str
    node: str
    containers: tuple[str, ...] = ()
    labels: dict[str, str] = field(default_factory=dict)


class ClusterPlatform(ABC):
    """
    Abstract base class for cluster platforms.

    Implementations must be safe for concurrent calls from independent
    migration jobs: every method is a stateless request/response.

    Concrete implementations:
    - InMemoryPlatform: For testing and development

    Example:
        >>> platform = InMemoryPlatform()
        >>> pod = await platform.get_workload("default", "p1")
        >>> statuses = await platform.get_container_runtime_statuses(pod)
    """

    @abstractmethod
    async def get_workload(self, namespace: str, name: str) -> WorkloadDescriptor:
        """
        Look up a pod.

        Raises:
            WorkloadNotFoundError: If the pod does not exist
        """
        pass

    @abstractmethod
    async def get_container_runtime_statuses(
        self,
        workload: WorkloadDescriptor,
    ) -> list[ContainerRuntimeStatus]:
        """
        Get runtime statuses of a pod's containers, in pod order.

        Raises:
            WorkloadNotFoundError: If the pod no longer exists
        """
        pass

    @abstractmethod
    async def get_resource_usage(self, namespace: str, name: str) -> ResourceUsage:
        """
        Sample current CPU and memory usage of a pod.

        Raises:
            CollectionError: If usage metrics are unavailable
        """
        pass

    @abstractmethod
    async def create_durable_volume_claim(
        self,
        namespace: str,
        name: str,
        size: str,
        labels: dict[str, str],
    ) -> str:
        """
        Request a node-independent storage volume.

        Returns:
            The claim name, used to mount the volume later

        Raises:
            ProvisioningError: If the platform rejects the claim
        """
        pass

    @abstractmethod
    async def create_filtered_workload(
        self,
        original: WorkloadDescriptor,
        target_node: str,
        container_states: list[ContainerState],
        volume_claim: str | None,
        *,
        force_restart: bool = False,
    ) -> WorkloadDescriptor:
        """
        Create a copy of a pod on another node with only migrating containers.

        Args:
            original: The source pod
            target_node: Node to schedule the new pod on
            container_states: Per-container decisions, in pod order
            volume_claim: Checkpoint claim to mount, if any
            force_restart: Restart containers rather than resuming them

        Returns:
            Descriptor of the new pod

        Raises:
            ProvisioningError: If the pod cannot be created
        """
        pass

    @abstractmethod
    async def wait_until_ready(self, namespace: str, name: str, timeout: float) -> None:
        """
        Block until a pod is ready.

        Raises:
            ReadinessTimeoutError: If the pod is not ready within timeout seconds
        """
        pass

    @abstractmethod
    async def delete_workload(self, namespace: str, name: str) -> None:
        """
        Delete a pod.

        Raises:
            WorkloadNotFoundError: If the pod does not exist
            PlatformForbiddenError: If deletion is not permitted
        """
        pass


__all__ = [
    "ContainerPhase",
    "ContainerRuntimeStatus",
    "WorkloadDescriptor",
    "ClusterPlatform",
]
