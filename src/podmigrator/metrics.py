"""
Process-wide migration metrics.

The MetricsAggregator keeps running counters, a running average duration
and the most recent savings percentages. It is written to only at a job's
terminal transition and read through value snapshots.

Each terminal transition is also reported through OpenTelemetry:
    - podmigrator.migrations (Counter): Terminal jobs, by 'outcome'
    - podmigrator.migration.duration (Histogram): Job duration in seconds, by 'outcome'
    - podmigrator.savings (Histogram): Savings percentage, by 'resource'

Without a configured meter provider the OpenTelemetry API discards the
measurements.

Example:
    >>> aggregator = MetricsAggregator()
    >>> await aggregator.record_terminal(job)
    >>> snapshot = await aggregator.snapshot()
    >>> snapshot.successful_migrations
    1
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from opentelemetry import metrics

from podmigrator.locks import ReadWriteLock
from podmigrator.models import MigrationJob, MigrationMetrics, MigrationStatus, ResourceUsage
from podmigrator.observability.attributes import ATTR_MIGRATION_OUTCOME, ATTR_RESOURCE

logger = logging.getLogger(__name__)

METER_NAME = "podmigrator"
METER_VERSION = "1.0.0"


class NoOpCounter:
    """No-op counter used when metrics export is disabled."""

    def add(
        self,
        amount: int | float,
        attributes: dict[str, Any] | None = None,
    ) -> None:
        pass


class NoOpHistogram:
    """No-op histogram used when metrics export is disabled."""

    def record(
        self,
        value: float,
        attributes: dict[str, Any] | None = None,
    ) -> None:
        pass


def compute_savings(
    original: ResourceUsage | None,
    optimized: ResourceUsage | None,
) -> tuple[float | None, float | None]:
    """
    Compute cpu and memory savings percentages.

    ``(original - optimized) / original * 100`` for each resource. A
    resource stays None when either sample is missing or its original value
    is zero.

    Returns:
        (cpu_savings, memory_savings)
    """
    if original is None or optimized is None:
        return None, None

    cpu = None
    if original.cpu:
        cpu = (original.cpu - optimized.cpu) / original.cpu * 100
    memory = None
    if original.memory:
        memory = (original.memory - optimized.memory) / original.memory * 100
    return cpu, memory


class MetricsAggregator:
    """
    Running migration counters.

    Counters are protected by a readers-writer lock; snapshots are frozen
    copies so callers cannot change internal state.

    Attributes:
        enable_metrics: Whether measurements are exported to OpenTelemetry
    """

    def __init__(
        self,
        *,
        enable_metrics: bool = True,
        meter_provider: metrics.MeterProvider | None = None,
    ) -> None:
        self.enable_metrics = enable_metrics
        self._lock = ReadWriteLock()
        self._total = 0
        self._successful = 0
        self._failed = 0
        self._average_duration = timedelta(0)
        self._cpu_savings: float | None = None
        self._memory_savings: float | None = None
        self._savings_estimated = False
        self._recorded: set[str] = set()

        if enable_metrics:
            self._setup_metrics(meter_provider)
        else:
            self._setup_noop()

    def _setup_metrics(self, meter_provider: metrics.MeterProvider | None) -> None:
        """Set up OpenTelemetry metric instruments."""
        if meter_provider is not None:
            meter = meter_provider.get_meter(METER_NAME, version=METER_VERSION)
        else:
            meter = metrics.get_meter(METER_NAME, version=METER_VERSION)

        self._migrations_counter = meter.create_counter(
            name="podmigrator.migrations",
            unit="migrations",
            description="Number of migrations that reached a terminal state",
        )
        self._duration_histogram = meter.create_histogram(
            name="podmigrator.migration.duration",
            unit="s",
            description="Time from submission to terminal state in seconds",
        )
        self._savings_histogram = meter.create_histogram(
            name="podmigrator.savings",
            unit="%",
            description="Resource savings of completed migrations in percent",
        )

    def _setup_noop(self) -> None:
        self._migrations_counter = NoOpCounter()
        self._duration_histogram = NoOpHistogram()
        self._savings_histogram = NoOpHistogram()

    async def record_terminal(self, job: MigrationJob) -> bool:
        """
        Record a job's terminal outcome.

        Args:
            job: Snapshot of a job in COMPLETED or FAILED status

        Returns:
            True if recorded, False if this job was already recorded

        Raises:
            ValueError: If the job is not terminal
        """
        if not job.status.is_terminal or job.details.duration is None:
            raise ValueError(f"Migration {job.id} is not terminal ({job.status.value})")

        succeeded = job.status == MigrationStatus.COMPLETED
        cpu_savings: float | None = None
        memory_savings: float | None = None

        async with self._lock.write():
            if job.id in self._recorded:
                logger.debug(
                    "Migration %s outcome already recorded, ignoring",
                    job.id,
                    extra={"migration_id": job.id},
                )
                return False
            self._recorded.add(job.id)

            self._total += 1
            if succeeded:
                self._successful += 1
                n = self._successful
                self._average_duration = (
                    self._average_duration * (n - 1) + job.details.duration
                ) / n

                cpu_savings, memory_savings = compute_savings(
                    job.details.original_resources,
                    job.details.optimized_resources,
                )
                if cpu_savings is not None or memory_savings is not None:
                    self._cpu_savings = cpu_savings
                    self._memory_savings = memory_savings
                    optimized = job.details.optimized_resources
                    self._savings_estimated = optimized is not None and optimized.is_estimate
            else:
                self._failed += 1

        outcome = job.status.value
        self._migrations_counter.add(1, {ATTR_MIGRATION_OUTCOME: outcome})
        self._duration_histogram.record(
            job.details.duration.total_seconds(),
            {ATTR_MIGRATION_OUTCOME: outcome},
        )
        for resource, value in (("cpu", cpu_savings), ("memory", memory_savings)):
            if value is not None:
                self._savings_histogram.record(value, {ATTR_RESOURCE: resource})

        return True

    async def snapshot(self) -> MigrationMetrics:
        """Get a frozen copy of the current counters."""
        async with self._lock.read():
            return MigrationMetrics(
                total_migrations=self._total,
                successful_migrations=self._successful,
                failed_migrations=self._failed,
                average_duration=self._average_duration,
                cpu_savings=self._cpu_savings,
                memory_savings=self._memory_savings,
                savings_estimated=self._savings_estimated,
            )


__all__ = ["MetricsAggregator", "compute_savings", "NoOpCounter", "NoOpHistogram"]
