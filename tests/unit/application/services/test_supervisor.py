"""Tests for background task supervision."""

import asyncio

import pytest
import structlog

from blobmirror.application.services.supervisor import TaskSet, supervise
from blobmirror.domain.errors import BusError


class TestSupervise:
    """Tests for supervise function."""

    async def test_restarts_after_failure(self) -> None:
        runs = 0
        restarted = asyncio.Event()

        async def factory() -> None:
            nonlocal runs
            runs += 1
            if runs < 3:
                raise BusError("Subscription broken")
            restarted.set()
            await asyncio.sleep(10)

        task = asyncio.create_task(
            supervise("updates", factory, structlog.get_logger(), restart_delay=0)
        )
        await asyncio.wait_for(restarted.wait(), timeout=1.0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert runs == 3

    async def test_restarts_after_clean_exit(self) -> None:
        runs = 0

        async def factory() -> None:
            nonlocal runs
            runs += 1
            if runs >= 2:
                await asyncio.sleep(10)

        task = asyncio.create_task(
            supervise("on_seen", factory, structlog.get_logger(), restart_delay=0)
        )
        for _ in range(100):
            if runs >= 2:
                break
            await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert runs == 2


class TestTaskSet:
    """Tests for TaskSet class."""

    async def test_tracks_until_done(self) -> None:
        tasks = TaskSet()
        release = asyncio.Event()

        task = tasks.spawn(release.wait(), name="waiter")

        assert len(tasks) == 1
        assert task.get_name() == "waiter"

        release.set()
        await task
        await asyncio.sleep(0)

        assert len(tasks) == 0

    async def test_cancel_all(self) -> None:
        tasks = TaskSet()
        first = tasks.spawn(asyncio.sleep(10))
        second = tasks.spawn(asyncio.sleep(10))

        await tasks.cancel_all()

        assert first.cancelled()
        assert second.cancelled()
        assert len(tasks) == 0

    async def test_cancel_all_when_empty(self) -> None:
        await TaskSet().cancel_all()
