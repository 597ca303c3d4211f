"""
Unit tests for MigrationExecutor.

Tests cover:
- Successful execution and terminal bookkeeping
- Fail-fast failures and contained best-effort failures
- Deadline expiry before and after the new pod is ready
- Cancellation
- abort() for jobs that never ran
"""

import asyncio
from datetime import timedelta

import pytest

from podmigrator.config import OrchestratorConfig
from podmigrator.exceptions import (
    InvalidTransitionError,
    PlatformForbiddenError,
    ProvisioningError,
)
from podmigrator.models import MigrationStatus
from podmigrator.observability import (
    ATTR_CONTAINERS_MIGRATING,
    ATTR_CONTAINERS_TOTAL,
    ATTR_MIGRATION_ID,
    ATTR_MIGRATION_STATUS,
    MockTracer,
)
from podmigrator.pipeline import CANCELLED_MESSAGE, MigrationExecutor, error_message


@pytest.fixture
def executor(registry, seeded_platform, fast_config, aggregator):
    return MigrationExecutor(
        registry,
        seeded_platform,
        fast_config,
        aggregator,
        enable_tracing=False,
    )


class TestErrorMessage:
    def test_podmigrator_error_uses_message(self):
        error = ProvisioningError("quota", migration_id="migration-1")
        assert error_message(error) == "quota"

    def test_other_error_uses_str(self):
        assert error_message(ValueError("bad value")) == "bad value"

    def test_empty_error_uses_type_name(self):
        assert error_message(RuntimeError()) == "RuntimeError"


class TestExecuteSuccess:
    @pytest.mark.asyncio
    async def test_completes(self, executor, registry, aggregator, job_factory, seeded_platform):
        job = await registry.register(job_factory(preserve_checkpoint=True))

        result = await executor.execute(job.id)

        assert result.status == MigrationStatus.COMPLETED
        assert result.details.error is None
        assert result.details.new_pod_name == "p1-n2"
        assert result.details.checkpoint_path
        assert result.details.end_time >= result.details.start_time
        assert result.details.duration == result.details.end_time - result.details.start_time
        assert not seeded_platform.has_workload("default", "p1")

        stored = await registry.get(job.id)
        assert stored.status == MigrationStatus.COMPLETED

        metrics = await aggregator.snapshot()
        assert metrics.total_migrations == 1
        assert metrics.successful_migrations == 1
        assert metrics.cpu_savings == 50.0
        assert metrics.memory_savings == 40.0
        assert metrics.savings_estimated is False

    @pytest.mark.asyncio
    async def test_step_order(self, executor, registry, job_factory, seeded_platform):
        job = await registry.register(job_factory(preserve_checkpoint=True))

        await executor.execute(job.id)

        assert seeded_platform.calls == [
            "get_workload",
            "get_container_runtime_statuses",
            "get_resource_usage",
            "create_durable_volume_claim",
            "create_filtered_workload",
            "wait_until_ready",
            "delete_workload",
            "get_resource_usage",
        ]

    @pytest.mark.asyncio
    async def test_no_checkpoint_by_default(self, executor, registry, job_factory, seeded_platform):
        job = await registry.register(job_factory())

        result = await executor.execute(job.id)

        assert result.status == MigrationStatus.COMPLETED
        assert result.details.checkpoint_path == ""
        assert "create_durable_volume_claim" not in seeded_platform.calls

    @pytest.mark.asyncio
    async def test_contained_failures_do_not_fail_job(
        self, executor, registry, aggregator, job_factory, seeded_platform
    ):
        seeded_platform.migrated_usage_ratio = None
        seeded_platform.fail_next("delete_workload", PlatformForbiddenError("forbidden"))
        job = await registry.register(job_factory())

        result = await executor.execute(job.id)

        assert result.status == MigrationStatus.COMPLETED
        assert any(w.startswith("delete_original_workload:") for w in result.details.warnings)
        assert result.details.optimized_resources.is_estimate
        metrics = await aggregator.snapshot()
        assert metrics.savings_estimated is True
        assert metrics.cpu_savings == 50.0

    @pytest.mark.asyncio
    async def test_spans(self, registry, seeded_platform, fast_config, aggregator, job_factory):
        tracer = MockTracer()
        executor = MigrationExecutor(
            registry, seeded_platform, fast_config, aggregator, tracer=tracer
        )
        job = await registry.register(job_factory())

        await executor.execute(job.id)

        assert tracer.span_names[0] == "podmigrator.migration.execute"
        assert tracer.span_names.count("podmigrator.pipeline.step") == 4
        execute_span = tracer.spans[0]
        assert execute_span.attributes[ATTR_MIGRATION_ID] == job.id
        assert execute_span.attributes[ATTR_MIGRATION_STATUS] == "completed"
        assert execute_span.attributes[ATTR_CONTAINERS_TOTAL] == 4
        assert execute_span.attributes[ATTR_CONTAINERS_MIGRATING] == 2


class TestExecuteFailure:
    @pytest.mark.asyncio
    async def test_fail_fast_failure(self, executor, registry, aggregator, job_factory, seeded_platform):
        seeded_platform.fail_next("create_filtered_workload", ProvisioningError("no capacity on n2"))
        job = await registry.register(job_factory())

        result = await executor.execute(job.id)

        assert result.status == MigrationStatus.FAILED
        assert result.details.error == "no capacity on n2"
        assert result.details.end_time is not None
        assert result.details.new_pod_name == ""
        assert seeded_platform.has_workload("default", "p1")
        assert "delete_workload" not in seeded_platform.calls

        metrics = await aggregator.snapshot()
        assert metrics.failed_migrations == 1
        assert metrics.successful_migrations == 0
        assert metrics.total_migrations == 1

    @pytest.mark.asyncio
    async def test_missing_pod(self, executor, registry, job_factory):
        job = await registry.register(job_factory(pod_name="ghost"))

        result = await executor.execute(job.id)

        assert result.status == MigrationStatus.FAILED
        assert result.details.error == "Workload default/ghost not found"

    @pytest.mark.asyncio
    async def test_deadline_expiry(self, executor, registry, aggregator, job_factory, seeded_platform):
        seeded_platform.set_latency("create_filtered_workload", 5.0)
        job = await registry.register(job_factory(timeout_seconds=0.05))

        result = await executor.execute(job.id)

        assert result.status == MigrationStatus.FAILED
        assert result.details.error == "Migration timed out after 0.05s"
        assert result.details.duration < timedelta(seconds=5)
        assert (await aggregator.snapshot()).failed_migrations == 1

    @pytest.mark.asyncio
    async def test_cancellation_fails_job(self, executor, registry, aggregator, job_factory, seeded_platform):
        seeded_platform.set_latency("wait_until_ready", 5.0)
        job = await registry.register(job_factory())

        task = asyncio.create_task(executor.execute(job.id))
        while "wait_until_ready" not in seeded_platform.calls:
            await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        stored = await registry.get(job.id)
        assert stored.status == MigrationStatus.FAILED
        assert stored.details.error == CANCELLED_MESSAGE
        assert (await aggregator.snapshot()).failed_migrations == 1

    @pytest.mark.asyncio
    async def test_execute_twice_rejected(self, executor, registry, job_factory):
        job = await registry.register(job_factory())
        await executor.execute(job.id)

        with pytest.raises(InvalidTransitionError):
            await executor.execute(job.id)


class TestDeadlineAfterTargetReady:
    @pytest.mark.asyncio
    async def test_deadline_during_settle_completes_with_estimate(
        self, registry, seeded_platform, aggregator, job_factory
    ):
        config = OrchestratorConfig(readiness_timeout_seconds=5.0, settle_delay_seconds=5.0)
        executor = MigrationExecutor(
            registry, seeded_platform, config, aggregator, enable_tracing=False
        )
        job = await registry.register(job_factory(timeout_seconds=0.2))

        result = await executor.execute(job.id)

        assert result.status == MigrationStatus.COMPLETED
        assert result.details.error is None
        assert result.details.duration < timedelta(seconds=5)
        assert result.details.new_pod_name == "p1-n2"
        assert result.details.optimized_resources.is_estimate
        assert (
            "optimized usage unavailable: job deadline reached, recorded estimate"
            in result.details.warnings
        )
        assert not seeded_platform.has_workload("default", "p1")
        assert seeded_platform.has_workload("default", "p1-n2")

        metrics = await aggregator.snapshot()
        assert metrics.successful_migrations == 1
        assert metrics.failed_migrations == 0
        assert metrics.savings_estimated is True

    @pytest.mark.asyncio
    async def test_deadline_during_delete_completes_with_warning(
        self, executor, registry, job_factory, seeded_platform
    ):
        seeded_platform.set_latency("delete_workload", 5.0)
        job = await registry.register(job_factory(timeout_seconds=0.2))

        result = await executor.execute(job.id)

        assert result.status == MigrationStatus.COMPLETED
        assert result.details.duration < timedelta(seconds=5)
        assert result.details.warnings[0] == (
            "delete_original_workload: Failed to delete original pod default/p1: "
            "job deadline reached"
        )
        assert result.details.optimized_resources.is_estimate
        assert seeded_platform.has_workload("default", "p1-n2")


class TestAbort:
    @pytest.mark.asyncio
    async def test_abort_pending_job(self, executor, registry, aggregator, job_factory):
        job = await registry.register(job_factory())

        result = await executor.abort(job.id)

        assert result.status == MigrationStatus.FAILED
        assert result.details.error == CANCELLED_MESSAGE
        assert (await aggregator.snapshot()).failed_migrations == 1

    @pytest.mark.asyncio
    async def test_abort_terminal_job_is_noop(self, executor, registry, aggregator, job_factory):
        job = await registry.register(job_factory())
        await executor.execute(job.id)

        assert await executor.abort(job.id) is None

        stored = await registry.get(job.id)
        assert stored.status == MigrationStatus.COMPLETED
        metrics = await aggregator.snapshot()
        assert metrics.total_migrations == 1
        assert metrics.failed_migrations == 0
