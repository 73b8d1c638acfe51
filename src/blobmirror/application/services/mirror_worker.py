"""Mirror worker: rewrites mirrored messages from the latest file content."""

import asyncio

from structlog.stdlib import BoundLogger

from blobmirror.application.services.supervisor import TaskSet
from blobmirror.domain.entities.bus import Update
from blobmirror.domain.errors import UpstreamFetchError
from blobmirror.domain.pagination import paginate, render_slot
from blobmirror.infrastructure.discord.chat import ChatClient
from blobmirror.infrastructure.event_bus import Subscription
from blobmirror.infrastructure.github.client import GitHubClient


class MirrorWorker:
    """Consumes ``Update`` messages and edits the bound chat messages.

    Updates run as independent tasks, at most ``max_concurrency`` at a
    time. Within one update the edits are issued concurrently and a failed
    edit does not abort the others.
    """

    def __init__(
        self,
        chat: ChatClient,
        github: GitHubClient,
        logger: BoundLogger,
        capacity: int = 2000,
        max_concurrency: int = 32,
    ) -> None:
        """Initialize the worker.

        Args:
            chat: Chat client used to edit messages.
            github: Client used to download file content.
            logger: Logger instance.
            capacity: Maximum UTF-8 length of one message.
            max_concurrency: Maximum number of updates processed at once.
        """
        self._chat = chat
        self._github = github
        self._logger = logger
        self._capacity = capacity
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks = TaskSet()

    @property
    def running_count(self) -> int:
        """Return the number of dispatched updates not yet finished."""
        return len(self._tasks)

    async def run(self, subscription: Subscription[Update]) -> None:
        """Dispatch every update received from ``subscription``.

        Each received update waits for a free slot before the next one is
        read, so at most ``max_concurrency`` updates are in flight and the
        subscription is not read while all slots are busy. Returns only when
        the subscription
        raises (BusError), so that the supervisor can resubscribe.
        """
        async for update in subscription:
            await self._semaphore.acquire()
            task = self._tasks.spawn(
                self._sync_logged(update), name=f"update:{update.channel_id}"
            )
            task.add_done_callback(lambda _: self._semaphore.release())

    async def dispatch(self, update: Update) -> int:
        """Synchronize one update, logging instead of raising.

        Returns:
            Number of messages edited successfully.
        """
        async with self._semaphore:
            return await self._sync_logged(update)

    async def _sync_logged(self, update: Update) -> int:
        try:
            return await self.sync(update)
        except Exception as e:
            self._logger.error(
                "Error dispatching update",
                channel_id=update.channel_id,
                url=update.url,
                error=str(e),
                exc_info=True,
            )
            return 0

    async def sync(self, update: Update) -> int:
        """Fetch the content of ``update.url`` and rewrite every message.

        Returns:
            Number of messages edited successfully. Zero when the content
            could not be fetched.
        """
        try:
            text = await self._github.fetch_text(update.url)
        except UpstreamFetchError as e:
            self._logger.error(
                "Failed to download mirrored file",
                url=update.url,
                channel_id=update.channel_id,
                error=str(e),
            )
            return 0

        pages = paginate(text, len(update.message_ids), self._capacity, update.url)
        results = await asyncio.gather(
            *(
                self._chat.edit_message(update.channel_id, message_id, render_slot(page))
                for message_id, page in zip(update.message_ids, pages)
            ),
            return_exceptions=True,
        )

        edited = 0
        for message_id, result in zip(update.message_ids, results):
            if isinstance(result, Exception):
                self._logger.error(
                    "Failed to edit mirrored message",
                    channel_id=update.channel_id,
                    message_id=message_id,
                    error=str(result),
                )
            elif isinstance(result, BaseException):
                raise result
            else:
                edited += 1

        self._logger.info(
            "Mirror updated",
            channel_id=update.channel_id,
            url=update.url,
            edited=edited,
            total=len(update.message_ids),
        )
        return edited

    async def close(self) -> None:
        """Cancel updates still in flight."""
        await self._tasks.cancel_all()
