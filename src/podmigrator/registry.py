"""
In-memory registry of migration jobs.

The registry is the only shared mutable state in the orchestrator. Every
read returns a deep-copy snapshot and every write goes through ``mutate``,
so callers never hold a live reference to a record another task is
changing.

Lock scope:
    The exclusive lock is held for one mutation at a time, never for the
    duration of a pipeline step. Mutations are applied to a private copy and
    swapped in only if the update function returns, so a failing update
    leaves the stored record untouched.

Records are never deleted; the registry grows with every submission and is
lost on process exit.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable

from podmigrator.exceptions import ConflictError, JobNotFoundError
from podmigrator.locks import ReadWriteLock
from podmigrator.models import MigrationJob, MigrationStatus

logger = logging.getLogger(__name__)


class JobRegistry:
    """
    Concurrency-safe mapping from job ID to job record.

    Example:
        >>> registry = JobRegistry()
        >>> await registry.register(job)
        >>> await registry.mutate(job.id, lambda j: j.transition_to(MigrationStatus.RUNNING))
        >>> snapshot = await registry.get(job.id)
        >>> snapshot.status
        <MigrationStatus.RUNNING: 'running'>
    """

    def __init__(self) -> None:
        self._jobs: dict[str, MigrationJob] = {}
        self._lock = ReadWriteLock()

    def __len__(self) -> int:
        return len(self._jobs)

    async def register(self, job: MigrationJob) -> MigrationJob:
        """
        Insert a new job record.

        The registry stores its own copy; later changes to ``job`` are not
        seen by readers.

        Returns:
            Snapshot of the stored record

        Raises:
            ConflictError: If the job ID is already registered
        """
        async with self._lock.write():
            if job.id in self._jobs:
                raise ConflictError(job.id)
            stored = copy.deepcopy(job)
            self._jobs[job.id] = stored
            snapshot = copy.deepcopy(stored)

        logger.debug("Registered migration %s", job.id, extra={"migration_id": job.id})
        return snapshot

    async def get(self, job_id: str) -> MigrationJob:
        """
        Get a consistent snapshot of a job.

        Raises:
            JobNotFoundError: If the job ID is unknown
        """
        async with self._lock.read():
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            return copy.deepcopy(job)

    async def contains(self, job_id: str) -> bool:
        async with self._lock.read():
            return job_id in self._jobs

    async def mutate(
        self,
        job_id: str,
        fn: Callable[[MigrationJob], object],
    ) -> MigrationJob:
        """
        Apply an in-place update under exclusive access.

        This is the only sanctioned way to change a job's status or details.
        ``fn`` must be synchronous; its return value is ignored.

        Args:
            job_id: Job to update
            fn: Function that modifies the job it is given

        Returns:
            Snapshot of the updated record

        Raises:
            JobNotFoundError: If the job ID is unknown
            Exception: Whatever ``fn`` raises; the record is left unchanged
        """
        async with self._lock.write():
            current = self._jobs.get(job_id)
            if current is None:
                raise JobNotFoundError(job_id)
            working = copy.deepcopy(current)
            fn(working)
            self._jobs[job_id] = working
            return copy.deepcopy(working)

    async def snapshot_all(self, status: MigrationStatus | None = None) -> list[MigrationJob]:
        """
        Snapshot every job in registration order.

        Args:
            status: Only include jobs in this status (None = all)
        """
        async with self._lock.read():
            return [
                copy.deepcopy(job)
                for job in self._jobs.values()
                if status is None or job.status == status
            ]


__all__ = ["JobRegistry"]
