"""
In-memory cluster platform implementation.

Useful for testing, examples and local experimentation. Pods, volume claims
and usage samples live in dictionaries; nothing touches a real cluster.
Failures and latency can be scripted per operation.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace

from podmigrator.exceptions import (
    CollectionError,
    ProvisioningError,
    ReadinessTimeoutError,
    WorkloadNotFoundError,
)
from podmigrator.models import ContainerState, ResourceUsage
from podmigrator.platform.interface import (
    ClusterPlatform,
    ContainerPhase,
    ContainerRuntimeStatus,
    WorkloadDescriptor,
)

logger = logging.getLogger(__name__)

OPERATIONS = (
    "get_workload",
    "get_container_runtime_statuses",
    "get_resource_usage",
    "create_durable_volume_claim",
    "create_filtered_workload",
    "wait_until_ready",
    "delete_workload",
)


@dataclass
class _PodRecord:
    descriptor: WorkloadDescriptor
    statuses: list[ContainerRuntimeStatus]
    usage: ResourceUsage | None = None
    volume_claim: str | None = None


@dataclass
class VolumeClaim:
    """A provisioned volume claim."""

    namespace: str
    name: str
    size: str
    labels: dict[str, str] = field(default_factory=dict)


class InMemoryPlatform(ClusterPlatform):
    """
    In-memory implementation of the cluster platform.

    Thread-safety:
        Uses an asyncio lock around every state change. Safe for concurrent
        calls from independent migration jobs in one event loop.

    Example:
        >>> platform = InMemoryPlatform()
        >>> platform.add_workload(
        ...     "default",
        ...     "p1",
        ...     node="n1",
        ...     containers=[ContainerRuntimeStatus("app", ContainerPhase.RUNNING)],
        ...     usage=ResourceUsage(cpu=2.0, memory=1000),
        ... )
        >>> platform.fail_next("create_filtered_workload", ProvisioningError("quota"))

    Attributes:
        calls: Names of operations invoked, in call order
        ready_delay: Seconds a new pod takes to become ready
        migrated_usage_ratio: (cpu, memory) ratios applied to the source
            usage for new pods; None leaves new pods without usage samples
    """

    def __init__(
        self,
        *,
        ready_delay: float = 0.0,
        migrated_usage_ratio: tuple[float, float] | None = None,
    ) -> None:
        self.ready_delay = ready_delay
        self.migrated_usage_ratio = migrated_usage_ratio
        self.calls: list[str] = []
        self._pods: dict[tuple[str, str], _PodRecord] = {}
        self._claims: dict[tuple[str, str], VolumeClaim] = {}
        self._failures: dict[str, list[BaseException]] = {}
        self._latency: dict[str, float] = {}
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Scripting helpers
    # -------------------------------------------------------------------------

    def add_workload(
        self,
        namespace: str,
        name: str,
        *,
        node: str,
        containers: list[ContainerRuntimeStatus],
        usage: ResourceUsage | None = None,
        labels: dict[str, str] | None = None,
    ) -> WorkloadDescriptor:
        """Register a pod that migrations can act on."""
        descriptor = WorkloadDescriptor(
            namespace=namespace,
            name=name,
            node=node,
            containers=tuple(status.name for status in containers),
            labels=dict(labels or {}),
        )
        self._pods[(namespace, name)] = _PodRecord(
            descriptor=descriptor,
            statuses=list(containers),
            usage=usage,
        )
        return descriptor

    def set_usage(self, namespace: str, name: str, usage: ResourceUsage | None) -> None:
        """Replace the usage sample of a pod; None makes sampling fail."""
        self._record(namespace, name).usage = usage

    def fail_next(self, operation: str, error: BaseException) -> None:
        """Make the next call to an operation raise error."""
        self._validate_operation(operation)
        self._failures.setdefault(operation, []).append(error)

    def set_latency(self, operation: str, seconds: float) -> None:
        """Delay every call to an operation by seconds."""
        self._validate_operation(operation)
        self._latency[operation] = seconds

    def has_workload(self, namespace: str, name: str) -> bool:
        return (namespace, name) in self._pods

    def workload(self, namespace: str, name: str) -> WorkloadDescriptor:
        return self._record(namespace, name).descriptor

    def volume_claims(self) -> list[VolumeClaim]:
        return list(self._claims.values())

    # -------------------------------------------------------------------------
    # ClusterPlatform
    # -------------------------------------------------------------------------

    async def get_workload(self, namespace: str, name: str) -> WorkloadDescriptor:
        await self._enter("get_workload")
        return self._record(namespace, name).descriptor

    async def get_container_runtime_statuses(
        self,
        workload: WorkloadDescriptor,
    ) -> list[ContainerRuntimeStatus]:
        await self._enter("get_container_runtime_statuses")
        return list(self._record(workload.namespace, workload.name).statuses)

    async def get_resource_usage(self, namespace: str, name: str) -> ResourceUsage:
        await self._enter("get_resource_usage")
        record = self._pods.get((namespace, name))
        if record is None or record.usage is None:
            raise CollectionError(f"Metrics unavailable for {namespace}/{name}")
        return record.usage

    async def create_durable_volume_claim(
        self,
        namespace: str,
        name: str,
        size: str,
        labels: dict[str, str],
    ) -> str:
        await self._enter("create_durable_volume_claim")
        async with self._lock:
            if (namespace, name) in self._claims:
                raise ProvisioningError(f"Volume claim {namespace}/{name} already exists")
            self._claims[(namespace, name)] = VolumeClaim(
                namespace=namespace,
                name=name,
                size=size,
                labels=dict(labels),
            )
        logger.debug("Created volume claim %s/%s (%s)", namespace, name, size)
        return name

    async def create_filtered_workload(
        self,
        original: WorkloadDescriptor,
        target_node: str,
        container_states: list[ContainerState],
        volume_claim: str | None,
        *,
        force_restart: bool = False,
    ) -> WorkloadDescriptor:
        await self._enter("create_filtered_workload")
        new_name = f"{original.name}-{target_node}"
        async with self._lock:
            if (original.namespace, new_name) in self._pods:
                raise ProvisioningError(f"Pod {original.namespace}/{new_name} already exists")
            if volume_claim and (original.namespace, volume_claim) not in self._claims:
                raise ProvisioningError(f"Volume claim {volume_claim} does not exist")

            source = self._pods.get((original.namespace, original.name))
            restarts = {
                status.name: status.restart_count for status in (source.statuses if source else [])
            }
            migrating = [state for state in container_states if state.should_migrate]
            statuses = [
                ContainerRuntimeStatus(
                    name=state.name,
                    phase=ContainerPhase.RUNNING,
                    restart_count=0 if force_restart else restarts.get(state.name, 0),
                )
                for state in migrating
            ]
            descriptor = replace(
                original,
                name=new_name,
                node=target_node,
                containers=tuple(status.name for status in statuses),
            )
            usage = None
            if self.migrated_usage_ratio is not None and source and source.usage is not None:
                cpu_ratio, memory_ratio = self.migrated_usage_ratio
                usage = ResourceUsage(
                    cpu=source.usage.cpu * cpu_ratio,
                    memory=int(source.usage.memory * memory_ratio),
                )
            self._pods[(original.namespace, new_name)] = _PodRecord(
                descriptor=descriptor,
                statuses=statuses,
                usage=usage,
                volume_claim=volume_claim,
            )
        return descriptor

    async def wait_until_ready(self, namespace: str, name: str, timeout: float) -> None:
        await self._enter("wait_until_ready")
        self._record(namespace, name)
        if self.ready_delay > timeout:
            await asyncio.sleep(timeout)
            raise ReadinessTimeoutError(namespace, name, timeout)
        await asyncio.sleep(self.ready_delay)

    async def delete_workload(self, namespace: str, name: str) -> None:
        await self._enter("delete_workload")
        async with self._lock:
            if self._pods.pop((namespace, name), None) is None:
                raise WorkloadNotFoundError(namespace, name)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        latency = self._latency.get(operation, 0.0)
        if latency:
            await asyncio.sleep(latency)
        queued = self._failures.get(operation)
        if queued:
            raise queued.pop(0)

    def _record(self, namespace: str, name: str) -> _PodRecord:
        record = self._pods.get((namespace, name))
        if record is None:
            raise WorkloadNotFoundError(namespace, name)
        return record

    @staticmethod
    def _validate_operation(operation: str) -> None:
        if operation not in OPERATIONS:
            raise ValueError(f"Unknown platform operation '{operation}'")


__all__ = ["InMemoryPlatform", "VolumeClaim"]
