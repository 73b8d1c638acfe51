"""Performs the deferred actions released when a repository becomes seen."""

import asyncio

from structlog.stdlib import BoundLogger

from blobmirror.application.commands.messages import WARNING_REACTION
from blobmirror.domain.entities.bus import OnSeen
from blobmirror.infrastructure.discord.chat import ChatClient
from blobmirror.infrastructure.event_bus import Subscription


class SeenConsumer:
    """Deletes queued messages and removes queued warning reactions."""

    def __init__(self, chat: ChatClient, logger: BoundLogger) -> None:
        self._chat = chat
        self._logger = logger

    async def run(self, subscription: Subscription[OnSeen]) -> None:
        async for on_seen in subscription:
            await self.perform(on_seen)

    async def perform(self, on_seen: OnSeen) -> int:
        """Perform every action of ``on_seen``; failures are logged per message.

        Returns:
            Number of actions that succeeded.
        """
        if on_seen.is_empty:
            return 0

        calls = [
            self._chat.delete_message(channel_id, message_id)
            for channel_id, message_id in on_seen.deletions
        ] + [
            self._chat.remove_reaction(channel_id, message_id, WARNING_REACTION)
            for channel_id, message_id in on_seen.dereacts
        ]
        refs = on_seen.deletions + on_seen.dereacts
        results = await asyncio.gather(*calls, return_exceptions=True)

        done = 0
        for (channel_id, message_id), result in zip(refs, results):
            if isinstance(result, Exception):
                self._logger.warning(
                    "Deferred action failed",
                    channel_id=channel_id,
                    message_id=message_id,
                    error=str(result),
                )
            elif isinstance(result, BaseException):
                raise result
            else:
                done += 1

        self._logger.info("Deferred actions performed", done=done, total=len(refs))
        return done
