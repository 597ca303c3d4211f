"""
Per-job migration executor.

The MigrationExecutor owns one job from dispatch to its terminal state:

    1. PENDING -> RUNNING
    2. Run MIGRATION_STEPS; the job deadline bounds the fail-fast steps and
       is handed to the best-effort steps through the context
    3. RUNNING -> COMPLETED or FAILED, then report the outcome to metrics

Every status change and detail update goes through ``JobRegistry.mutate``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from podmigrator.checkpoint import CheckpointManager
from podmigrator.classifier import summarize
from podmigrator.config import OrchestratorConfig
from podmigrator.exceptions import (
    DeadlineExceededError,
    InvalidTransitionError,
    PodMigratorError,
    StepFailedError,
)
from podmigrator.metrics import MetricsAggregator
from podmigrator.models import MigrationJob, MigrationStatus
from podmigrator.observability import (
    ATTR_CONTAINERS_MIGRATING,
    ATTR_CONTAINERS_TOTAL,
    ATTR_MIGRATION_ID,
    ATTR_MIGRATION_STATUS,
    ATTR_POD_NAME,
    ATTR_POD_NAMESPACE,
    ATTR_SOURCE_NODE,
    ATTR_TARGET_NODE,
    Tracer,
    create_tracer,
)
from podmigrator.pipeline.runner import PipelineRunner, PipelineStep
from podmigrator.pipeline.steps import MIGRATION_STEPS, MigrationContext
from podmigrator.platform.interface import ClusterPlatform
from podmigrator.registry import JobRegistry

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Migration cancelled before completion"


def error_message(error: BaseException) -> str:
    """Message recorded on a job for a failure cause."""
    if isinstance(error, PodMigratorError):
        return error.message
    return str(error) or type(error).__name__


class MigrationExecutor:
    """
    Drives migration jobs through the step pipeline.

    One executor is shared by all jobs; per-job state lives in the
    MigrationContext created for each ``execute`` call.

    Example:
        >>> executor = MigrationExecutor(registry, platform, config, metrics)
        >>> job = await executor.execute("migration-1a2b3c4d")
        >>> job.status
        <MigrationStatus.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        registry: JobRegistry,
        platform: ClusterPlatform,
        config: OrchestratorConfig,
        metrics: MetricsAggregator,
        *,
        steps: Sequence[PipelineStep[MigrationContext]] = MIGRATION_STEPS,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._registry = registry
        self._platform = platform
        self._config = config
        self._metrics = metrics
        self._checkpoints = CheckpointManager(platform, config, tracer=self._tracer)
        self._runner: PipelineRunner[MigrationContext] = PipelineRunner(
            steps, tracer=self._tracer
        )

    async def execute(self, job_id: str) -> MigrationJob:
        """
        Run a registered job to its terminal state.

        Failures of the migration itself never escape; they end the job as
        FAILED. A deadline reached after the new pod is ready is contained
        by the best-effort steps and the job still completes. Cancellation
        fails the job and is then re-raised.

        Args:
            job_id: ID of a PENDING job in the registry

        Returns:
            Snapshot of the terminal job

        Raises:
            JobNotFoundError: If the job is not registered
            InvalidTransitionError: If the job is not PENDING
            asyncio.CancelledError: If the task running the job is cancelled
        """
        job = await self._registry.mutate(
            job_id, lambda j: j.transition_to(MigrationStatus.RUNNING)
        )
        request = job.request
        logger.info(
            "Migration %s: started %s/%s from %s to %s (timeout %gs)",
            job_id,
            request.pod_namespace,
            request.pod_name,
            request.source_node,
            request.target_node,
            job.timeout_seconds,
            extra={"migration_id": job_id},
        )

        deadline = asyncio.get_running_loop().time() + job.timeout_seconds
        context = MigrationContext(
            job=job,
            registry=self._registry,
            platform=self._platform,
            config=self._config,
            checkpoints=self._checkpoints,
            deadline=deadline,
        )

        async def on_contained(step: PipelineStep, error: Exception) -> None:
            await context.add_warning(f"{step.name}: {error_message(error)}")

        with self._tracer.span(
            "podmigrator.migration.execute",
            {
                ATTR_MIGRATION_ID: job_id,
                ATTR_POD_NAME: request.pod_name,
                ATTR_POD_NAMESPACE: request.pod_namespace,
                ATTR_SOURCE_NODE: request.source_node,
                ATTR_TARGET_NODE: request.target_node,
            },
        ) as span:
            try:
                await self._runner.run(
                    context,
                    deadline=deadline,
                    on_contained=on_contained,
                    log_prefix=f"Migration {job_id}: ",
                )
            except StepFailedError as e:
                result = await self._finish(job_id, MigrationStatus.FAILED, error_message(e.cause))
            except TimeoutError:
                expired = DeadlineExceededError(job.timeout_seconds, migration_id=job_id)
                logger.error("Migration %s: %s", job_id, expired.message)
                result = await self._finish(job_id, MigrationStatus.FAILED, expired.message)
            except asyncio.CancelledError:
                logger.warning("Migration %s: cancelled", job_id, extra={"migration_id": job_id})
                await self._finish(job_id, MigrationStatus.FAILED, CANCELLED_MESSAGE)
                raise
            except Exception as e:
                logger.exception("Migration %s: unexpected error", job_id)
                result = await self._finish(job_id, MigrationStatus.FAILED, error_message(e))
            else:
                result = await self._finish(job_id, MigrationStatus.COMPLETED)

            if span is not None:
                span.set_attribute(ATTR_MIGRATION_STATUS, result.status.value)
                migrating, total = summarize(result.details.container_states)
                span.set_attribute(ATTR_CONTAINERS_TOTAL, total)
                span.set_attribute(ATTR_CONTAINERS_MIGRATING, migrating)

        return result

    async def abort(self, job_id: str, reason: str = CANCELLED_MESSAGE) -> MigrationJob | None:
        """
        Fail a job that will not run to completion.

        Used for jobs whose task was cancelled, possibly before ``execute``
        began or while it was finishing.

        Returns:
            Snapshot of the failed job, or None if it was already terminal
        """
        try:
            return await self._finish(job_id, MigrationStatus.FAILED, reason)
        except InvalidTransitionError:
            # Terminal, but the outcome may not have reached the aggregator
            job = await self._registry.get(job_id)
            await self._metrics.record_terminal(job)
            return None

    async def _finish(
        self,
        job_id: str,
        status: MigrationStatus,
        error: str | None = None,
    ) -> MigrationJob:
        """Apply the terminal transition and report it to the aggregator."""

        def finish(job: MigrationJob) -> None:
            if error is not None:
                job.details.error = error
            job.transition_to(status)

        job = await self._registry.mutate(job_id, finish)
        await self._metrics.record_terminal(job)

        duration = job.details.duration.total_seconds() if job.details.duration else 0.0
        if status == MigrationStatus.COMPLETED:
            logger.info(
                "Migration %s: completed in %.2fs",
                job_id,
                duration,
                extra={"migration_id": job_id, "duration": duration},
            )
        else:
            logger.error(
                "Migration %s: failed after %.2fs: %s",
                job_id,
                duration,
                error,
                extra={"migration_id": job_id, "duration": duration},
            )
        return job


__all__ = ["MigrationExecutor", "CANCELLED_MESSAGE", "error_message"]
