"""
Checkpoint volume provisioning.

When a request asks to preserve state, the CheckpointManager requests a
durable, node-independent volume claim before the pod is recreated. The
claim is mounted into the new pod by the platform.
"""

from __future__ import annotations

import logging
import time

from podmigrator.config import OrchestratorConfig
from podmigrator.exceptions import ProvisioningError
from podmigrator.models import MigrationJob
from podmigrator.observability import (
    ATTR_CHECKPOINT_CLAIM,
    ATTR_MIGRATION_ID,
    Tracer,
    create_tracer,
)
from podmigrator.platform.interface import ClusterPlatform

logger = logging.getLogger(__name__)

MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY_VALUE = "podmigrator"
SOURCE_POD_LABEL = "podmigrator/source-pod"
MIGRATION_ID_LABEL = "podmigrator/migration-id"


def checkpoint_claim_name(pod_name: str, migration_id: str, now: float | None = None) -> str:
    """
    Build a unique claim name for a job's checkpoint.

    Format: ``checkpoint-<pod>-<unix seconds>-<job suffix>``. The job suffix
    keeps two migrations of the same pod within one second apart.
    """
    timestamp = int(now if now is not None else time.time())
    suffix = migration_id.rsplit("-", 1)[-1]
    return f"checkpoint-{pod_name}-{timestamp}-{suffix}"


class CheckpointManager:
    """
    Requests checkpoint volume claims from the platform.

    Example:
        >>> manager = CheckpointManager(platform, OrchestratorConfig())
        >>> claim = await manager.create_checkpoint(job)
        >>> claim
        'checkpoint-p1-1700000000-1a2b3c4d'
    """

    def __init__(
        self,
        platform: ClusterPlatform,
        config: OrchestratorConfig,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._platform = platform
        self._config = config

    def labels_for(self, job: MigrationJob) -> dict[str, str]:
        """Labels identifying the claim's owner; configured labels take part too."""
        return {
            **self._config.checkpoint_labels,
            MANAGED_BY_LABEL: MANAGED_BY_VALUE,
            SOURCE_POD_LABEL: job.request.pod_name,
            MIGRATION_ID_LABEL: job.id,
        }

    async def create_checkpoint(self, job: MigrationJob) -> str:
        """
        Create the checkpoint claim for a job.

        Args:
            job: The migration job requesting the checkpoint

        Returns:
            Name of the created claim

        Raises:
            ProvisioningError: If the platform rejects the claim
        """
        name = checkpoint_claim_name(job.request.pod_name, job.id)
        with self._tracer.span(
            "podmigrator.checkpoint.create",
            {ATTR_MIGRATION_ID: job.id, ATTR_CHECKPOINT_CLAIM: name},
        ):
            try:
                claim = await self._platform.create_durable_volume_claim(
                    job.request.pod_namespace,
                    name,
                    self._config.checkpoint_size,
                    self.labels_for(job),
                )
            except ProvisioningError as e:
                raise ProvisioningError(
                    f"Failed to create checkpoint claim {name}: {e.message}",
                    migration_id=job.id,
                ) from e

        logger.info(
            "Migration %s: created checkpoint claim %s",
            job.id,
            claim,
            extra={"migration_id": job.id, "claim": claim, "size": self._config.checkpoint_size},
        )
        return claim


__all__ = ["CheckpointManager", "checkpoint_claim_name"]
