"""
Unit tests for the asyncio readers-writer lock.
"""

import asyncio

import pytest

from podmigrator.locks import ReadWriteLock


class TestReadWriteLock:
    @pytest.mark.asyncio
    async def test_readers_share(self):
        lock = ReadWriteLock()
        inside = asyncio.Event()
        release = asyncio.Event()
        peak = 0

        async def reader():
            nonlocal peak
            async with lock.read():
                peak = max(peak, lock.readers)
                if lock.readers == 3:
                    inside.set()
                await release.wait()

        tasks = [asyncio.create_task(reader()) for _ in range(3)]
        await asyncio.wait_for(inside.wait(), timeout=1.0)
        release.set()
        await asyncio.gather(*tasks)

        assert peak == 3
        assert lock.readers == 0

    @pytest.mark.asyncio
    async def test_writer_waits_for_readers(self):
        lock = ReadWriteLock()
        order: list[str] = []
        reader_in = asyncio.Event()
        release_reader = asyncio.Event()

        async def reader():
            async with lock.read():
                reader_in.set()
                await release_reader.wait()
                order.append("reader-done")

        async def writer():
            async with lock.write():
                order.append("writer")

        reader_task = asyncio.create_task(reader())
        await reader_in.wait()
        writer_task = asyncio.create_task(writer())
        await asyncio.sleep(0.01)
        assert order == []
        assert lock.write_locked

        release_reader.set()
        await asyncio.gather(reader_task, writer_task)
        assert order == ["reader-done", "writer"]

    @pytest.mark.asyncio
    async def test_waiting_writer_blocks_new_readers(self):
        lock = ReadWriteLock()
        order: list[str] = []
        first_in = asyncio.Event()
        release_first = asyncio.Event()

        async def first_reader():
            async with lock.read():
                first_in.set()
                await release_first.wait()

        async def writer():
            async with lock.write():
                order.append("writer")

        async def late_reader():
            async with lock.read():
                order.append("late-reader")

        first = asyncio.create_task(first_reader())
        await first_in.wait()
        writer_task = asyncio.create_task(writer())
        await asyncio.sleep(0.01)
        late = asyncio.create_task(late_reader())
        await asyncio.sleep(0.01)
        assert order == []

        release_first.set()
        await asyncio.gather(first, writer_task, late)
        assert order == ["writer", "late-reader"]

    @pytest.mark.asyncio
    async def test_cancelled_reader_releases(self):
        lock = ReadWriteLock()
        inside = asyncio.Event()

        async def reader():
            async with lock.read():
                inside.set()
                await asyncio.sleep(10)

        task = asyncio.create_task(reader())
        await inside.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert lock.readers == 0
        async with asyncio.timeout(1.0):
            async with lock.write():
                pass
