"""
Supervisor for per-job migration tasks.

Each submitted job runs in its own asyncio task. The JobSupervisor keeps a
reference to every outstanding task, logs tasks that die with an unexpected
exception, and lets shutdown wait for or cancel them.

Example:
    >>> supervisor = JobSupervisor()
    >>> supervisor.spawn(job.id, executor.execute(job.id))
    >>> report = await supervisor.drain(timeout=30.0)
    >>> report.cancelled
    []
"""

import asyncio
import logging
from collections.abc import Coroutine
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrainReport:
    """
    Outcome of a drain.

    Attributes:
        completed: Job IDs whose tasks finished within the timeout
        cancelled: Job IDs whose tasks were cancelled
    """

    completed: list[str] = field(default_factory=list)
    cancelled: list[str] = field(default_factory=list)


class JobSupervisor:
    """
    Tracks one task per job ID.

    Finished tasks remove themselves, so ``pending_count`` is the number of
    jobs still executing.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[Any]] = {}

    def spawn(self, job_id: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """
        Run a job's coroutine in a new task.

        Args:
            job_id: Job the task belongs to; also used as the task name
            coro: The coroutine to run

        Returns:
            The created asyncio.Task

        Raises:
            ValueError: If the job already has an outstanding task
        """
        if job_id in self._tasks:
            coro.close()
            raise ValueError(f"Job {job_id} already has a running task")

        task = asyncio.create_task(coro, name=job_id)
        self._tasks[job_id] = task
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.pop(task.get_name(), None)
        if not task.cancelled():
            exc = task.exception()
            if exc:
                logger.error(
                    "Migration task %s failed: %s",
                    task.get_name(),
                    exc,
                    exc_info=exc,
                )

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    @property
    def has_pending(self) -> bool:
        return self.pending_count > 0

    def task_for(self, job_id: str) -> asyncio.Task[Any] | None:
        return self._tasks.get(job_id)

    async def drain(self, timeout: float | None = None) -> DrainReport:
        """
        Wait for outstanding tasks, cancelling those that outlive the timeout.

        Args:
            timeout: Maximum time to wait in seconds.
                    If None, waits indefinitely.

        Returns:
            Which jobs finished and which were cancelled
        """
        pending = dict(self._tasks)
        if not pending:
            return DrainReport()

        done, remaining = await asyncio.wait(
            pending.values(),
            timeout=timeout,
            return_when=asyncio.ALL_COMPLETED,
        )

        if remaining:
            logger.warning(
                "Job supervisor: %d migration(s) did not complete within timeout",
                len(remaining),
                extra={"remaining_tasks": len(remaining), "timeout": timeout},
            )
            for task in remaining:
                task.cancel()
            # Done callbacks log any failures
            await asyncio.gather(*remaining, return_exceptions=True)

        return DrainReport(
            completed=[job_id for job_id, task in pending.items() if task in done],
            cancelled=[job_id for job_id, task in pending.items() if task in remaining],
        )

    def cancel_all(self) -> int:
        """
        Request cancellation of all outstanding tasks.

        Returns:
            Number of tasks that were cancelled
        """
        pending = [task for task in self._tasks.values() if not task.done()]
        for task in pending:
            task.cancel()
        return len(pending)

    def __repr__(self) -> str:
        return f"JobSupervisor(pending={self.pending_count})"


__all__ = ["JobSupervisor", "DrainReport"]
