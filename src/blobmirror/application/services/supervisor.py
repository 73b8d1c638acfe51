"""Supervision of long-running background tasks."""

import asyncio
from collections.abc import Awaitable, Callable

from structlog.stdlib import BoundLogger


async def supervise(
    name: str,
    factory: Callable[[], Awaitable[None]],
    logger: BoundLogger,
    restart_delay: float = 1.0,
) -> None:
    """Run ``factory()`` forever, restarting it whenever it exits.

    Errors are logged, never propagated. Only cancellation stops the loop.

    Args:
        name: Task name used in log records.
        factory: Creates a fresh coroutine for each run.
        logger: Logger instance.
        restart_delay: Seconds to wait before restarting.
    """
    while True:
        try:
            await factory()
            logger.warning("Background task exited, restarting", task=name)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "Background task failed, restarting",
                task=name,
                error=str(e),
                exc_info=True,
            )
        await asyncio.sleep(restart_delay)


class TaskSet:
    """Keeps strong references to fire-and-forget tasks until they finish."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Awaitable[None], name: str | None = None) -> asyncio.Task[None]:
        task = asyncio.ensure_future(coro)
        if name is not None:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def cancel_all(self) -> None:
        """Cancel every running task and wait for them to finish."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
