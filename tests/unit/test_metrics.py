"""
Unit tests for MetricsAggregator and savings arithmetic.

Tests cover:
- compute_savings() arithmetic and missing samples
- Counter and running-average updates
- Duplicate terminal reports
- OpenTelemetry instruments via InMemoryMetricReader
"""

from datetime import timedelta

import pytest

from podmigrator.metrics import MetricsAggregator, NoOpCounter, NoOpHistogram, compute_savings
from podmigrator.models import MigrationStatus, ResourceUsage


def finish(job, status, duration_seconds, original=None, optimized=None):
    """Put a job in a terminal state with a fixed duration."""
    job.details.original_resources = original
    job.details.optimized_resources = optimized
    job.transition_to(MigrationStatus.RUNNING)
    job.transition_to(status)
    job.details.duration = timedelta(seconds=duration_seconds)
    job.details.end_time = job.details.start_time + job.details.duration
    return job


def get_metric_data(reader, name):
    data = reader.get_metrics_data()
    if data is None:
        return None
    for resource_metrics in data.resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                if metric.name == name:
                    return metric
    return None


class TestComputeSavings:
    def test_measured_samples(self):
        original = ResourceUsage(cpu=2.0, memory=1000)
        optimized = ResourceUsage(cpu=1.0, memory=600)
        assert compute_savings(original, optimized) == (50.0, 40.0)

    def test_missing_sample(self):
        original = ResourceUsage(cpu=2.0, memory=1000)
        assert compute_savings(original, None) == (None, None)
        assert compute_savings(None, original) == (None, None)

    def test_zero_original_is_left_unset(self):
        original = ResourceUsage(cpu=0.0, memory=1000)
        optimized = ResourceUsage(cpu=0.0, memory=500)
        assert compute_savings(original, optimized) == (None, 50.0)

    def test_usage_growth_is_negative(self):
        original = ResourceUsage(cpu=1.0, memory=100)
        optimized = ResourceUsage(cpu=1.5, memory=100)
        assert compute_savings(original, optimized) == (-50.0, 0.0)


class TestRecordTerminal:
    @pytest.mark.asyncio
    async def test_initial_snapshot(self, aggregator):
        snapshot = await aggregator.snapshot()
        assert snapshot.total_migrations == 0
        assert snapshot.successful_migrations == 0
        assert snapshot.failed_migrations == 0
        assert snapshot.average_duration == timedelta(0)
        assert snapshot.cpu_savings is None

    @pytest.mark.asyncio
    async def test_success_updates_counters_and_savings(self, aggregator, job_factory):
        job = finish(
            job_factory(),
            MigrationStatus.COMPLETED,
            10,
            ResourceUsage(cpu=2.0, memory=1000),
            ResourceUsage(cpu=1.0, memory=600),
        )

        assert await aggregator.record_terminal(job) is True

        snapshot = await aggregator.snapshot()
        assert snapshot.total_migrations == 1
        assert snapshot.successful_migrations == 1
        assert snapshot.failed_migrations == 0
        assert snapshot.average_duration == timedelta(seconds=10)
        assert snapshot.cpu_savings == 50.0
        assert snapshot.memory_savings == 40.0
        assert snapshot.savings_estimated is False

    @pytest.mark.asyncio
    async def test_estimated_sample_is_flagged(self, aggregator, job_factory):
        original = ResourceUsage(cpu=2.0, memory=1000)
        estimate = ResourceUsage.estimate_from(original, 0.5, 0.6)
        job = finish(job_factory(), MigrationStatus.COMPLETED, 5, original, estimate)

        await aggregator.record_terminal(job)

        snapshot = await aggregator.snapshot()
        assert snapshot.cpu_savings == 50.0
        assert snapshot.savings_estimated is True

    @pytest.mark.asyncio
    async def test_running_average(self, aggregator, job_factory):
        for seconds in (10, 20, 60):
            await aggregator.record_terminal(
                finish(job_factory(), MigrationStatus.COMPLETED, seconds)
            )

        snapshot = await aggregator.snapshot()
        assert snapshot.successful_migrations == 3
        assert snapshot.average_duration == timedelta(seconds=30)

    @pytest.mark.asyncio
    async def test_failure_updates_counters_only(self, aggregator, job_factory):
        await aggregator.record_terminal(
            finish(job_factory(), MigrationStatus.COMPLETED, 10)
        )
        await aggregator.record_terminal(
            finish(
                job_factory(),
                MigrationStatus.FAILED,
                1000,
                ResourceUsage(cpu=2.0, memory=1000),
                ResourceUsage(cpu=1.0, memory=600),
            )
        )

        snapshot = await aggregator.snapshot()
        assert snapshot.total_migrations == 2
        assert snapshot.successful_migrations == 1
        assert snapshot.failed_migrations == 1
        assert snapshot.average_duration == timedelta(seconds=10)
        assert snapshot.cpu_savings is None

    @pytest.mark.asyncio
    async def test_missing_samples_keep_previous_savings(self, aggregator, job_factory):
        await aggregator.record_terminal(
            finish(
                job_factory(),
                MigrationStatus.COMPLETED,
                1,
                ResourceUsage(cpu=2.0, memory=1000),
                ResourceUsage(cpu=1.0, memory=600),
            )
        )
        await aggregator.record_terminal(
            finish(job_factory(), MigrationStatus.COMPLETED, 1)
        )

        snapshot = await aggregator.snapshot()
        assert snapshot.cpu_savings == 50.0
        assert snapshot.memory_savings == 40.0

    @pytest.mark.asyncio
    async def test_duplicate_report_is_ignored(self, aggregator, job_factory):
        job = finish(job_factory(), MigrationStatus.FAILED, 3)

        assert await aggregator.record_terminal(job) is True
        assert await aggregator.record_terminal(job) is False

        snapshot = await aggregator.snapshot()
        assert snapshot.total_migrations == 1
        assert snapshot.failed_migrations == 1

    @pytest.mark.asyncio
    async def test_non_terminal_job_rejected(self, aggregator, job_factory):
        with pytest.raises(ValueError, match="not terminal"):
            await aggregator.record_terminal(job_factory())

    @pytest.mark.asyncio
    async def test_snapshot_is_a_copy(self, aggregator, job_factory):
        before = await aggregator.snapshot()
        await aggregator.record_terminal(finish(job_factory(), MigrationStatus.FAILED, 1))
        assert before.total_migrations == 0


class TestOpenTelemetryInstruments:
    def test_disabled_uses_noop(self):
        aggregator = MetricsAggregator(enable_metrics=False)
        assert isinstance(aggregator._migrations_counter, NoOpCounter)
        assert isinstance(aggregator._duration_histogram, NoOpHistogram)
        assert isinstance(aggregator._savings_histogram, NoOpHistogram)

    @pytest.mark.asyncio
    async def test_instruments_record(self, metric_reader, meter_provider, job_factory):
        aggregator = MetricsAggregator(meter_provider=meter_provider)

        await aggregator.record_terminal(
            finish(
                job_factory(),
                MigrationStatus.COMPLETED,
                4,
                ResourceUsage(cpu=2.0, memory=1000),
                ResourceUsage(cpu=1.0, memory=600),
            )
        )
        await aggregator.record_terminal(finish(job_factory(), MigrationStatus.FAILED, 2))

        counter = get_metric_data(metric_reader, "podmigrator.migrations")
        assert counter is not None
        by_outcome = {
            point.attributes["outcome"]: point.value for point in counter.data.data_points
        }
        assert by_outcome == {"completed": 1, "failed": 1}

        duration = get_metric_data(metric_reader, "podmigrator.migration.duration")
        assert duration is not None
        assert sum(point.count for point in duration.data.data_points) == 2

        savings = get_metric_data(metric_reader, "podmigrator.savings")
        assert savings is not None
        by_resource = {
            point.attributes["resource"]: point.sum for point in savings.data.data_points
        }
        assert by_resource == {"cpu": 50.0, "memory": 40.0}
