"""
Migration pipeline steps.

The five steps of a pod migration, in order:

    ==  ========================  ===========  ===============================
    #   step                      policy       notes
    ==  ========================  ===========  ===============================
    1   capture_container_states  fail-fast    usage failure degrades to zero
    2   create_checkpoint         fail-fast    only if preserve_checkpoint
    3   create_target_workload    fail-fast    create, then wait for ready
    4   delete_original_workload  best-effort  bounded by the job deadline
    5   collect_optimized_usage   best-effort  falls back to an estimate
    ==  ========================  ===========  ===============================

Steps share a MigrationContext and write their results into the job record
through the registry.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from podmigrator.checkpoint import CheckpointManager
from podmigrator.classifier import classify_containers, summarize
from podmigrator.config import OrchestratorConfig
from podmigrator.exceptions import (
    CleanupWarning,
    CollectionError,
    PlatformForbiddenError,
    ReadinessTimeoutError,
    WorkloadNotFoundError,
)
from podmigrator.models import ContainerState, MigrationJob, ResourceUsage
from podmigrator.pipeline.runner import PipelineStep, StepPolicy
from podmigrator.platform.interface import ClusterPlatform, WorkloadDescriptor
from podmigrator.registry import JobRegistry

logger = logging.getLogger(__name__)


@dataclass
class MigrationContext:
    """
    State shared by the steps of one job.

    ``job`` is the snapshot taken at dispatch; its id and request never
    change. Everything a step learns is also written to the registry.
    ``deadline`` is the event loop time the job must finish by (None = none).
    """

    job: MigrationJob
    registry: JobRegistry
    platform: ClusterPlatform
    config: OrchestratorConfig
    checkpoints: CheckpointManager
    original_workload: WorkloadDescriptor | None = None
    container_states: list[ContainerState] = field(default_factory=list)
    original_resources: ResourceUsage | None = None
    checkpoint_claim: str | None = None
    new_workload: WorkloadDescriptor | None = None
    deadline: float | None = None

    @property
    def job_id(self) -> str:
        return self.job.id

    async def add_warning(self, message: str) -> None:
        await self.registry.mutate(self.job_id, lambda job: job.details.warnings.append(message))


async def capture_container_states(ctx: MigrationContext) -> None:
    """Classify the source pod's containers and sample its usage."""
    request = ctx.job.request
    workload = await ctx.platform.get_workload(request.pod_namespace, request.pod_name)
    statuses = await ctx.platform.get_container_runtime_statuses(workload)
    states = classify_containers(statuses)

    if not states:
        logger.warning(
            "Migration %s: pod %s/%s has no containers",
            ctx.job_id,
            request.pod_namespace,
            request.pod_name,
            extra={"migration_id": ctx.job_id},
        )

    warning = None
    try:
        usage = await ctx.platform.get_resource_usage(request.pod_namespace, request.pod_name)
    except CollectionError as e:
        warning = f"original usage unavailable, recorded zero sample: {e.message}"
        logger.warning("Migration %s: %s", ctx.job_id, warning, extra={"migration_id": ctx.job_id})
        usage = ResourceUsage.zero()

    ctx.original_workload = workload
    ctx.container_states = states
    ctx.original_resources = usage

    def record(job: MigrationJob) -> None:
        job.details.container_states = list(states)
        job.details.original_resources = usage
        if warning:
            job.details.warnings.append(warning)

    await ctx.registry.mutate(ctx.job_id, record)

    migrating, total = summarize(states)
    logger.info(
        "Migration %s: %d/%d containers will be migrated",
        ctx.job_id,
        migrating,
        total,
        extra={"migration_id": ctx.job_id, "migrating": migrating, "total": total},
    )


async def create_checkpoint(ctx: MigrationContext) -> None:
    """Provision the checkpoint volume claim."""
    claim = await ctx.checkpoints.create_checkpoint(ctx.job)
    ctx.checkpoint_claim = claim

    def record(job: MigrationJob) -> None:
        job.details.checkpoint_path = claim
        job.details.pv_claim_name = claim

    await ctx.registry.mutate(ctx.job_id, record)


async def create_target_workload(ctx: MigrationContext) -> None:
    """Create the filtered pod on the target node and wait until it is ready."""
    if ctx.original_workload is None:
        raise RuntimeError("create_target_workload requires capture_container_states")

    request = ctx.job.request
    new_workload = await ctx.platform.create_filtered_workload(
        ctx.original_workload,
        request.target_node,
        ctx.container_states,
        ctx.checkpoint_claim,
        force_restart=request.force_restart,
    )
    logger.info(
        "Migration %s: created pod %s on node %s",
        ctx.job_id,
        new_workload.name,
        request.target_node,
        extra={"migration_id": ctx.job_id, "pod": new_workload.name},
    )

    readiness_timeout = ctx.config.readiness_timeout_seconds
    try:
        async with asyncio.timeout(readiness_timeout):
            await ctx.platform.wait_until_ready(
                new_workload.namespace,
                new_workload.name,
                readiness_timeout,
            )
    except TimeoutError as e:
        raise ReadinessTimeoutError(
            new_workload.namespace,
            new_workload.name,
            readiness_timeout,
            migration_id=ctx.job_id,
        ) from e

    logger.info("Migration %s: pod %s is ready", ctx.job_id, new_workload.name)

    ctx.new_workload = new_workload

    def record(job: MigrationJob) -> None:
        job.details.new_pod_name = new_workload.name

    await ctx.registry.mutate(ctx.job_id, record)


async def delete_original_workload(ctx: MigrationContext) -> None:
    """Delete the source pod."""
    request = ctx.job.request
    failure = f"Failed to delete original pod {request.pod_namespace}/{request.pod_name}"
    try:
        async with asyncio.timeout_at(ctx.deadline):
            await ctx.platform.delete_workload(request.pod_namespace, request.pod_name)
    except (WorkloadNotFoundError, PlatformForbiddenError) as e:
        raise CleanupWarning(f"{failure}: {e.message}", migration_id=ctx.job_id) from e
    except TimeoutError as e:
        raise CleanupWarning(f"{failure}: job deadline reached", migration_id=ctx.job_id) from e

    logger.info("Migration %s: deleted original pod %s", ctx.job_id, request.pod_name)


async def collect_optimized_usage(ctx: MigrationContext) -> None:
    """
    Sample the new pod's usage after the settle delay.

    When sampling fails, or the job deadline passes first, record an estimate
    derived from the original sample by the configured reduction ratios.
    """
    request = ctx.job.request
    usage: ResourceUsage | None = None
    reason = None

    try:
        async with asyncio.timeout_at(ctx.deadline):
            await asyncio.sleep(ctx.config.settle_delay_seconds)
            if ctx.new_workload is None:
                reason = "new pod name not available"
            else:
                usage = await ctx.platform.get_resource_usage(
                    request.pod_namespace, ctx.new_workload.name
                )
    except CollectionError as e:
        reason = f"optimized usage unavailable: {e.message}"
    except TimeoutError:
        reason = "optimized usage unavailable: job deadline reached"

    warning = None
    if usage is not None:
        logger.info(
            "Migration %s: optimized usage cpu=%.2f cores memory=%d bytes",
            ctx.job_id,
            usage.cpu,
            usage.memory,
        )
    elif ctx.original_resources is not None:
        usage = ResourceUsage.estimate_from(
            ctx.original_resources,
            ctx.config.cpu_estimate_ratio,
            ctx.config.memory_estimate_ratio,
        )
        warning = f"{reason}, recorded estimate"
        logger.warning("Migration %s: %s", ctx.job_id, warning, extra={"migration_id": ctx.job_id})
    else:
        warning = f"{reason}, no original sample to estimate from"
        logger.warning("Migration %s: %s", ctx.job_id, warning, extra={"migration_id": ctx.job_id})

    def record(job: MigrationJob) -> None:
        if usage is not None:
            job.details.optimized_resources = usage
        if warning:
            job.details.warnings.append(warning)

    await ctx.registry.mutate(ctx.job_id, record)


MIGRATION_STEPS: tuple[PipelineStep[MigrationContext], ...] = (
    PipelineStep("capture_container_states", StepPolicy.FAIL_FAST, capture_container_states),
    PipelineStep(
        "create_checkpoint",
        StepPolicy.FAIL_FAST,
        create_checkpoint,
        condition=lambda ctx: ctx.job.request.preserve_checkpoint,
    ),
    PipelineStep("create_target_workload", StepPolicy.FAIL_FAST, create_target_workload),
    PipelineStep("delete_original_workload", StepPolicy.BEST_EFFORT, delete_original_workload),
    PipelineStep("collect_optimized_usage", StepPolicy.BEST_EFFORT, collect_optimized_usage),
)
"""The migration pipeline, in execution order."""


__all__ = [
    "MigrationContext",
    "MIGRATION_STEPS",
    "capture_container_states",
    "create_checkpoint",
    "create_target_workload",
    "delete_original_workload",
    "collect_optimized_usage",
]
