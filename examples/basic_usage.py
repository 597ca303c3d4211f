"""
Basic Usage Example

This example walks through a single pod migration against the in-memory
platform:
- Seeding a pod with a mix of running and finished containers
- Submitting a migration request
- Polling the job until it is terminal
- Reading the aggregate savings metrics

Run with: python examples/basic_usage.py
"""

import asyncio
import logging

from podmigrator import (
    MigrationOrchestrator,
    MigrationRequest,
    OrchestratorConfig,
    ResourceUsage,
)
from podmigrator.platform import ContainerPhase, ContainerRuntimeStatus, InMemoryPlatform

# =============================================================================
# Step 1: Describe the cluster
# =============================================================================
# The in-memory platform stands in for a real cluster. New pods report a
# fraction of the source pod's usage so the savings metrics have data.


def build_platform() -> InMemoryPlatform:
    platform = InMemoryPlatform(migrated_usage_ratio=(0.5, 0.6))
    platform.add_workload(
        "default",
        "web-0",
        node="node-a",
        containers=[
            ContainerRuntimeStatus("app", ContainerPhase.RUNNING, restart_count=1),
            ContainerRuntimeStatus("migrate-db", ContainerPhase.TERMINATED, exit_code=0),
            ContainerRuntimeStatus("crashed-job", ContainerPhase.TERMINATED, exit_code=1),
            ContainerRuntimeStatus("sidecar", ContainerPhase.WAITING),
        ],
        usage=ResourceUsage(cpu=2.0, memory=512 * 1024 * 1024),
    )
    return platform


# =============================================================================
# Step 2: Submit and wait
# =============================================================================


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    platform = build_platform()
    config = OrchestratorConfig(settle_delay_seconds=0.1)

    async with MigrationOrchestrator(platform, config=config, enable_tracing=False) as orchestrator:
        response = await orchestrator.submit(
            MigrationRequest(
                pod_name="web-0",
                pod_namespace="default",
                source_node="node-a",
                target_node="node-b",
                preserve_checkpoint=True,
            )
        )
        print(f"Submitted {response.migration_id}: {response.status.value}")

        job = await orchestrator.wait_for_completion(response.migration_id, timeout=30.0)

        # =====================================================================
        # Step 3: Inspect the outcome
        # =====================================================================
        print(f"\nMigration {job.id} finished as {job.status.value}")
        print(f"  New pod:    {job.details.new_pod_name}")
        print(f"  Checkpoint: {job.details.checkpoint_path}")
        for state in job.details.container_states:
            action = "migrated" if state.should_migrate else "skipped"
            print(f"  - {state.name:<12} {state.state.value:<10} {action}")
        for warning in job.details.warnings:
            print(f"  warning: {warning}")

        metrics = await orchestrator.get_metrics()
        print(f"\nTotal migrations: {metrics.total_migrations}")
        if metrics.cpu_savings is not None:
            print(f"CPU savings:      {metrics.cpu_savings:.1f}%")
        if metrics.memory_savings is not None:
            print(f"Memory savings:   {metrics.memory_savings:.1f}%")


if __name__ == "__main__":
    asyncio.run(main())
