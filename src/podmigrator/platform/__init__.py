"""
Cluster platform abstraction.

The platform is the external collaborator that performs real cluster
operations: pod lookup, runtime status, volume claims, pod creation and
deletion, readiness polling and usage sampling.
"""

from podmigrator.platform.in_memory import InMemoryPlatform, VolumeClaim
from podmigrator.platform.interface import (
    ClusterPlatform,
    ContainerPhase,
    ContainerRuntimeStatus,
    WorkloadDescriptor,
)

__all__ = [
    "ClusterPlatform",
    "ContainerPhase",
    "ContainerRuntimeStatus",
    "WorkloadDescriptor",
    "InMemoryPlatform",
    "VolumeClaim",
]
