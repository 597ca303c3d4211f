"""
Shared pytest fixtures for the podmigrator tests.

This module provides:
- Configuration fixtures (fast_config) with every delay set to zero
- Platform fixtures (platform, seeded_platform) backed by InMemoryPlatform
- Request and job fixtures (request_factory, job_factory)
- Component fixtures (registry, aggregator, orchestrator)
- OpenTelemetry metrics fixtures (metric_reader)
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

from podmigrator import (
    JobRegistry,
    MetricsAggregator,
    MigrationJob,
    MigrationOrchestrator,
    MigrationRequest,
    OrchestratorConfig,
    ResourceUsage,
)
from podmigrator.platform import ContainerPhase, ContainerRuntimeStatus, InMemoryPlatform

# ============================================================================
# Configuration
# ============================================================================


@pytest.fixture
def fast_config() -> OrchestratorConfig:
    """Configuration with no settle delay and short deadlines."""
    return OrchestratorConfig(
        default_timeout_seconds=600.0,
        readiness_timeout_seconds=5.0,
        settle_delay_seconds=0.0,
        shutdown_timeout_seconds=1.0,
    )


# ============================================================================
# Platform
# ============================================================================


def default_containers() -> list[ContainerRuntimeStatus]:
    """One running, one completed, one failed and one waiting container."""
    return [
        ContainerRuntimeStatus("app", ContainerPhase.RUNNING, restart_count=2),
        ContainerRuntimeStatus("init-db", ContainerPhase.TERMINATED, exit_code=0),
        ContainerRuntimeStatus("worker", ContainerPhase.TERMINATED, exit_code=137),
        ContainerRuntimeStatus("sidecar", ContainerPhase.WAITING),
    ]


@pytest.fixture
def platform() -> InMemoryPlatform:
    """Empty in-memory platform."""
    return InMemoryPlatform()


@pytest.fixture
def seeded_platform(platform: InMemoryPlatform) -> InMemoryPlatform:
    """
    Platform with pod default/p1 on node n1.

    The pod uses 2.0 cores and 1000 bytes; new pods come up at half the cpu
    and 60% of the memory.
    """
    platform.migrated_usage_ratio = (0.5, 0.6)
    platform.add_workload(
        "default",
        "p1",
        node="n1",
        containers=default_containers(),
        usage=ResourceUsage(cpu=2.0, memory=1000),
    )
    return platform


# ============================================================================
# Requests and jobs
# ============================================================================


@pytest.fixture
def request_factory() -> Callable[..., MigrationRequest]:
    """Factory for MigrationRequest with p1/default n1 -> n2 defaults."""

    def _create(**overrides: Any) -> MigrationRequest:
        fields: dict[str, Any] = {
            "pod_name": "p1",
            "pod_namespace": "default",
            "source_node": "n1",
            "target_node": "n2",
        }
        fields.update(overrides)
        return MigrationRequest(**fields)

    return _create


@pytest.fixture
def job_factory(
    request_factory: Callable[..., MigrationRequest],
) -> Callable[..., MigrationJob]:
    """Factory for PENDING MigrationJob records."""
    counter = 0

    def _create(
        job_id: str | None = None,
        timeout_seconds: float = 600.0,
        **request_overrides: Any,
    ) -> MigrationJob:
        nonlocal counter
        counter += 1
        return MigrationJob(
            id=job_id or f"migration-{counter:08x}",
            request=request_factory(**request_overrides),
            timeout_seconds=timeout_seconds,
        )

    return _create


# ============================================================================
# Components
# ============================================================================


@pytest.fixture
def registry() -> JobRegistry:
    return JobRegistry()


@pytest.fixture
def aggregator() -> MetricsAggregator:
    return MetricsAggregator(enable_metrics=False)


@pytest_asyncio.fixture
async def orchestrator(
    seeded_platform: InMemoryPlatform,
    fast_config: OrchestratorConfig,
) -> AsyncGenerator[MigrationOrchestrator, None]:
    """Orchestrator over the seeded platform; shut down after the test."""
    orchestrator = MigrationOrchestrator(
        seeded_platform,
        config=fast_config,
        enable_tracing=False,
        enable_metrics=False,
    )
    yield orchestrator
    await orchestrator.shutdown(timeout=1.0)


# ============================================================================
# OpenTelemetry
# ============================================================================


@pytest.fixture
def metric_reader() -> InMemoryMetricReader:
    """Fresh InMemoryMetricReader; pass ``meter_provider`` from the reader's provider."""
    return InMemoryMetricReader()


@pytest.fixture
def meter_provider(metric_reader: InMemoryMetricReader) -> MeterProvider:
    """SDK meter provider that exports to metric_reader."""
    return MeterProvider(metric_readers=[metric_reader])
