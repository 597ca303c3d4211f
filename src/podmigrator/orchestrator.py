"""
MigrationOrchestrator - entry point for pod migrations.

The orchestrator wires the registry, executor, metrics aggregator and job
supervisor together and exposes the public operations:

    - submit: register a job and start its pipeline in the background
    - get_status / get_job / list_jobs: read job snapshots
    - get_metrics: read the process-wide aggregate
    - wait_for_completion: poll until a job is terminal
    - shutdown: drain outstanding jobs, cancelling those that overrun

Usage:
    >>> from podmigrator import MigrationOrchestrator, MigrationRequest
    >>> from podmigrator.platform import InMemoryPlatform
    >>>
    >>> async with MigrationOrchestrator(platform) as orchestrator:
    ...     response = await orchestrator.submit(
    ...         MigrationRequest(
    ...             pod_name="p1",
    ...             pod_namespace="default",
    ...             source_node="n1",
    ...             target_node="n2",
    ...         )
    ...     )
    ...     job = await orchestrator.wait_for_completion(response.migration_id)
    ...     print(job.status)
"""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Self
from uuid import uuid4

from podmigrator.config import OrchestratorConfig
from podmigrator.exceptions import ConflictError
from podmigrator.metrics import MetricsAggregator
from podmigrator.models import (
    MigrationJob,
    MigrationMetrics,
    MigrationRequest,
    MigrationResponse,
    MigrationStatus,
)
from podmigrator.observability import (
    ATTR_MIGRATION_ID,
    ATTR_POD_NAME,
    ATTR_POD_NAMESPACE,
    ATTR_TARGET_NODE,
    Tracer,
    create_tracer,
)
from podmigrator.pipeline.executor import CANCELLED_MESSAGE, MigrationExecutor
from podmigrator.platform.interface import ClusterPlatform
from podmigrator.registry import JobRegistry
from podmigrator.supervisor import JobSupervisor

logger = logging.getLogger(__name__)

MIGRATION_ID_PREFIX = "migration-"
MAX_ID_ATTEMPTS = 3
SUBMITTED_MESSAGE = "Migration started"


def new_migration_id() -> str:
    """Generate a job ID of the form ``migration-<8 hex chars>``."""
    return f"{MIGRATION_ID_PREFIX}{uuid4().hex[:8]}"


class MigrationOrchestrator:
    """
    Accepts migration requests and tracks their jobs.

    Submissions are not deduplicated: two identical requests create two
    independent jobs.
    """

    def __init__(
        self,
        platform: ClusterPlatform,
        *,
        config: OrchestratorConfig | None = None,
        registry: JobRegistry | None = None,
        metrics: MetricsAggregator | None = None,
        supervisor: JobSupervisor | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
        enable_metrics: bool = True,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            platform: Cluster platform the migrations act on
            config: Orchestrator configuration (uses defaults if None)
            registry: Job registry (a new empty one if None)
            metrics: Metrics aggregator (a new one if None)
            supervisor: Task supervisor (a new one if None)
            tracer: Optional custom Tracer instance.
            enable_tracing: Whether to enable OpenTelemetry tracing
            enable_metrics: Whether the default aggregator exports metrics
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._platform = platform
        self._config = config or OrchestratorConfig()
        self._registry = registry or JobRegistry()
        self._metrics = metrics or MetricsAggregator(enable_metrics=enable_metrics)
        self._supervisor = supervisor or JobSupervisor()
        self._executor = MigrationExecutor(
            self._registry,
            platform,
            self._config,
            self._metrics,
            tracer=self._tracer,
        )
        self._closed = False

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    @property
    def registry(self) -> JobRegistry:
        return self._registry

    @property
    def supervisor(self) -> JobSupervisor:
        return self._supervisor

    async def submit(self, request: MigrationRequest) -> MigrationResponse:
        """
        Register a migration job and start it in the background.

        Returns before any pipeline step runs.

        Args:
            request: What to migrate and where

        Returns:
            Response with the new job ID and status PENDING

        Raises:
            RuntimeError: If the orchestrator has been shut down
            ConflictError: If no unused job ID could be generated
        """
        if self._closed:
            raise RuntimeError("MigrationOrchestrator is shut down")

        with self._tracer.span(
            "podmigrator.orchestrator.submit",
            {
                ATTR_POD_NAME: request.pod_name,
                ATTR_POD_NAMESPACE: request.pod_namespace,
                ATTR_TARGET_NODE: request.target_node,
            },
        ) as span:
            timeout = self._config.resolve_timeout(request.timeout)
            job = await self._register(request, timeout)
            if span is not None:
                span.set_attribute(ATTR_MIGRATION_ID, job.id)

            self._supervisor.spawn(job.id, self._executor.execute(job.id))

        logger.info(
            "Submitted migration %s for %s/%s to node %s",
            job.id,
            request.pod_namespace,
            request.pod_name,
            request.target_node,
            extra={"migration_id": job.id},
        )
        return MigrationResponse.from_job(job, SUBMITTED_MESSAGE)

    async def _register(self, request: MigrationRequest, timeout: float) -> MigrationJob:
        for attempt in range(1, MAX_ID_ATTEMPTS + 1):
            job = MigrationJob(id=new_migration_id(), request=request, timeout_seconds=timeout)
            try:
                return await self._registry.register(job)
            except ConflictError:
                if attempt == MAX_ID_ATTEMPTS:
                    raise
                logger.debug("Migration ID %s already in use, drawing another", job.id)
        raise AssertionError("unreachable")

    async def get_status(self, migration_id: str) -> MigrationResponse:
        """
        Get the current status of a job.

        Raises:
            JobNotFoundError: If the job ID is unknown
        """
        job = await self._registry.get(migration_id)
        return MigrationResponse.from_job(job)

    async def get_job(self, migration_id: str) -> MigrationJob:
        """
        Get a snapshot of a job record.

        Raises:
            JobNotFoundError: If the job ID is unknown
        """
        return await self._registry.get(migration_id)

    async def list_jobs(self, status: MigrationStatus | None = None) -> list[MigrationJob]:
        """List job snapshots in submission order, optionally filtered by status."""
        return await self._registry.snapshot_all(status)

    async def get_metrics(self) -> MigrationMetrics:
        return await self._metrics.snapshot()

    async def wait_for_completion(
        self,
        migration_id: str,
        *,
        timeout: float | None = None,
        poll_interval: float = 0.05,
    ) -> MigrationJob:
        """
        Wait for a job to reach a terminal state.

        Args:
            migration_id: Job to wait for
            timeout: Maximum seconds to wait (None = forever)
            poll_interval: Seconds between status checks

        Returns:
            Snapshot of the terminal job

        Raises:
            JobNotFoundError: If the job ID is unknown
            TimeoutError: If timeout exceeded
        """
        loop = asyncio.get_running_loop()
        start = loop.time()

        while True:
            job = await self._registry.get(migration_id)
            if job.is_terminal:
                return job

            if timeout is not None and loop.time() - start >= timeout:
                raise TimeoutError(f"Timeout waiting for migration {migration_id}")

            await asyncio.sleep(poll_interval)

    async def shutdown(self, timeout: float | None = None) -> int:
        """
        Stop accepting jobs and wind down the outstanding ones.

        Running jobs get up to ``timeout`` seconds to finish; the rest are
        cancelled and end as FAILED.

        Args:
            timeout: Drain window in seconds (None = config.shutdown_timeout_seconds)

        Returns:
            Number of jobs failed because of cancellation
        """
        self._closed = True
        if timeout is None:
            timeout = self._config.shutdown_timeout_seconds

        report = await self._supervisor.drain(timeout)

        # A task cancelled before its first step never reached the executor
        cancelled = list(report.cancelled)
        for job in await self._registry.snapshot_all():
            if not job.is_terminal and job.id not in cancelled:
                cancelled.append(job.id)
        failed = 0
        for job_id in cancelled:
            await self._executor.abort(job_id, CANCELLED_MESSAGE)
            job = await self._registry.get(job_id)
            # A task may finish on its own between the drain and its cancellation
            if job.status == MigrationStatus.FAILED and job.details.error == CANCELLED_MESSAGE:
                failed += 1

        logger.info(
            "Orchestrator shut down: %d migration(s) drained, %d cancelled",
            len(report.completed),
            failed,
            extra={"drained": len(report.completed), "cancelled": failed},
        )
        return failed

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.shutdown()


__all__ = ["MigrationOrchestrator", "new_migration_id"]
