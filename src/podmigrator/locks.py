"""
Readers-writer lock for asyncio.

Many readers may hold the lock at once; a writer holds it alone. Waiting
writers block new readers so a steady stream of status polls cannot starve
a job's state change.

Usage:
    >>> lock = ReadWriteLock()
    >>> async with lock.read():
    ...     snapshot = copy.deepcopy(record)
    >>> async with lock.write():
    ...     record.status = new_status
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class ReadWriteLock:
    """
    Writer-preferring readers-writer lock.

    Not thread-safe: all holders must share one event loop. Releases are
    synchronous, so a cancelled holder always gives the lock back.
    """

    def __init__(self) -> None:
        self._writer_lock = asyncio.Lock()
        self._no_readers = asyncio.Event()
        self._no_readers.set()
        self._readers = 0

    @property
    def readers(self) -> int:
        """Number of readers currently holding the lock."""
        return self._readers

    @property
    def write_locked(self) -> bool:
        """True while a writer holds or is waiting for the lock."""
        return self._writer_lock.locked()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        """Hold the lock in shared mode."""
        async with self._writer_lock:
            self._readers += 1
            self._no_readers.clear()
        try:
            yield
        finally:
            self._readers -= 1
            if self._readers == 0:
                self._no_readers.set()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        """Hold the lock exclusively."""
        await self._writer_lock.acquire()
        try:
            await self._no_readers.wait()
            yield
        finally:
            self._writer_lock.release()


__all__ = ["ReadWriteLock"]
