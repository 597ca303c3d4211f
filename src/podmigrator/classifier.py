"""
Container classification.

Decides, per container, whether it is recreated on the target node:

    ===========  =========  ==========  ==============
    phase        exit code  state       should_migrate
    ===========  =========  ==========  ==============
    waiting      n/a        waiting     False
    running      n/a        running     True
    terminated   0          completed   False
    terminated   != 0       failed      True
    ===========  =========  ==========  ==============

Excluding completed containers is where a migration saves resources.
"""

from __future__ import annotations

from collections.abc import Iterable

from podmigrator.models import ContainerLifecycle, ContainerState
from podmigrator.platform.interface import ContainerPhase, ContainerRuntimeStatus


def classify_container(status: ContainerRuntimeStatus) -> ContainerState:
    """
    Classify one container's runtime status.

    A terminated container without an exit code is treated as failed.

    Args:
        status: Runtime status reported by the platform

    Returns:
        The container's migration decision
    """
    if status.phase == ContainerPhase.WAITING:
        state, should_migrate = ContainerLifecycle.WAITING, False
    elif status.phase == ContainerPhase.RUNNING:
        state, should_migrate = ContainerLifecycle.RUNNING, True
    elif status.exit_code == 0:
        state, should_migrate = ContainerLifecycle.COMPLETED, False
    else:
        state, should_migrate = ContainerLifecycle.FAILED, True

    return ContainerState(
        name=status.name,
        state=state,
        restart_count=status.restart_count,
        should_migrate=should_migrate,
    )


def classify_containers(statuses: Iterable[ContainerRuntimeStatus]) -> list[ContainerState]:
    """Classify every container, preserving pod order."""
    return [classify_container(status) for status in statuses]


def summarize(states: Iterable[ContainerState]) -> tuple[int, int]:
    """
    Count migrating containers.

    Returns:
        (migrating, total)
    """
    states = list(states)
    return sum(1 for state in states if state.should_migrate), len(states)


__all__ = ["classify_container", "classify_containers", "summarize"]
