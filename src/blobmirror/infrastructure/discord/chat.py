"""Discord implementation of the chat collaborator."""

import asyncio
from collections.abc import Awaitable
from typing import Protocol, TypeVar

import discord

from blobmirror.domain.errors import ChatError

T = TypeVar("T")


class ChatClient(Protocol):
    """Message primitives used by the mirror core.

    Every method raises ChatError on failure or timeout.
    """

    async def send_message(
        self, channel_id: int, body: str, reply_to: int | None = None
    ) -> int:
        """Send a message and return its ID."""
        ...

    async def edit_message(self, channel_id: int, message_id: int, body: str) -> None:
        ...

    async def delete_message(self, channel_id: int, message_id: int) -> None:
        ...

    async def add_reaction(self, channel_id: int, message_id: int, emoji: str) -> None:
        ...

    async def remove_reaction(
        self, channel_id: int, message_id: int, emoji: str
    ) -> None:
        """Remove the bot's own reaction."""
        ...


class DiscordChatClient:
    """ChatClient over a discord.py client.

    Uses partial messageables so no message has to be fetched before it is
    edited, deleted or reacted to.
    """

    def __init__(self, client: discord.Client, timeout: float) -> None:
        """Initialize the chat client.

        Args:
            client: Logged-in discord.py client.
            timeout: Timeout in seconds for each REST call.
        """
        self._client = client
        self._timeout = timeout

    async def _call(self, action: str, awaitable: Awaitable[T]) -> T:
        try:
            async with asyncio.timeout(self._timeout):
                return await awaitable
        except TimeoutError as e:
            raise ChatError(f"Timed out trying to {action}") from e
        except discord.DiscordException as e:
            raise ChatError(f"Failed to {action}: {e}") from e

    def _message(self, channel_id: int, message_id: int) -> discord.PartialMessage:
        channel = self._client.get_partial_messageable(channel_id)
        return channel.get_partial_message(message_id)

    async def send_message(
        self, channel_id: int, body: str, reply_to: int | None = None
    ) -> int:
        channel = self._client.get_partial_messageable(channel_id)
        reference = (
            channel.get_partial_message(reply_to) if reply_to is not None else None
        )
        message = await self._call(
            "send message", channel.send(content=body, reference=reference)
        )
        return message.id

    async def edit_message(self, channel_id: int, message_id: int, body: str) -> None:
        await self._call(
            "edit message", self._message(channel_id, message_id).edit(content=body)
        )

    async def delete_message(self, channel_id: int, message_id: int) -> None:
        await self._call("delete message", self._message(channel_id, message_id).delete())

    async def add_reaction(self, channel_id: int, message_id: int, emoji: str) -> None:
        await self._call(
            "add reaction", self._message(channel_id, message_id).add_reaction(emoji)
        )

    async def remove_reaction(
        self, channel_id: int, message_id: int, emoji: str
    ) -> None:
        if self._client.user is None:
            raise ChatError("Failed to remove reaction: client is not logged in")
        await self._call(
            "remove reaction",
            self._message(channel_id, message_id).remove_reaction(
                emoji, self._client.user
            ),
        )
