"""Discord bot: mirror commands and bus consumers."""

from collections.abc import Awaitable, Callable

import discord
from structlog.stdlib import BoundLogger

from blobmirror.application.commands.messages import (
    GUILD_ONLY,
    INTERNAL_FAILURE,
    INVITE_TEMPLATE,
    PROCESSING_REACTION,
    STORE_FAILURE,
)
from blobmirror.application.commands.parser import parse_command, parse_mirror_args
from blobmirror.application.services.mirror_manager import MirrorGroupManager
from blobmirror.application.services.mirror_worker import MirrorWorker
from blobmirror.application.services.seen_consumer import SeenConsumer
from blobmirror.application.services.supervisor import TaskSet, supervise
from blobmirror.config.models import DiscordConfig, GitHubConfig, MirrorConfig
from blobmirror.domain.entities.bus import OnSeen, Topic, Update
from blobmirror.domain.errors import (
    ChatError,
    StoreError,
    UpstreamFetchError,
    UsageError,
)
from blobmirror.domain.repositories.registry import Registry
from blobmirror.infrastructure.discord.chat import ChatClient, DiscordChatClient
from blobmirror.infrastructure.event_bus import RedisEventBus
from blobmirror.infrastructure.github.client import GitHubClient

CommandHandler = Callable[[discord.Message, list[str]], Awaitable[None]]


class MirrorBot(discord.Client):
    """Discord client hosting the mirror command, worker and seen consumer.

    Commands are messages starting with a mention of the bot:

    - ``invite``: reply with the OAuth invite link
    - ``mirror <url> [message splits]``: create a mirror group

    Args:
        config: Discord configuration.
        mirror_config: Mirror synchronization configuration.
        github_config: GitHub configuration.
        registry: Registry of mirror groups and seen state.
        bus: Event bus to consume updates and seen events from.
        github: GitHub content client.
        logger: Structured logger for logging.
        chat: Chat client; defaults to one backed by this Discord client.
    """

    def __init__(
        self,
        config: DiscordConfig,
        mirror_config: MirrorConfig,
        github_config: GitHubConfig,
        registry: Registry,
        bus: RedisEventBus,
        github: GitHubClient,
        logger: BoundLogger,
        chat: ChatClient | None = None,
    ) -> None:
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(intents=intents, activity=discord.Game(name=config.activity))

        self._config = config
        self._mirror_config = mirror_config
        self._bus = bus
        self._logger = logger
        self.chat: ChatClient = chat or DiscordChatClient(self, config.request_timeout)

        self.manager = MirrorGroupManager(
            registry=registry,
            github=github,
            chat=self.chat,
            logger=logger,
            capacity=mirror_config.message_max_length,
            app_url=github_config.app_url,
        )
        self.worker = MirrorWorker(
            chat=self.chat,
            github=github,
            logger=logger,
            capacity=mirror_config.message_max_length,
            max_concurrency=mirror_config.max_concurrent_updates,
        )
        self.seen_consumer = SeenConsumer(chat=self.chat, logger=logger)
        self._background = TaskSet()
        self._commands: dict[str, CommandHandler] = {
            "invite": self._handle_invite,
            "mirror": self._handle_mirror,
        }

    async def setup_hook(self) -> None:
        """Start the bus consumers once, after login and before connecting."""
        self._background.spawn(
            supervise(
                "updates",
                self._consume_updates,
                self._logger,
                self._mirror_config.restart_delay,
            ),
            name="consume:updates",
        )
        self._background.spawn(
            supervise(
                "on_seen",
                self._consume_on_seen,
                self._logger,
                self._mirror_config.restart_delay,
            ),
            name="consume:on_seen",
        )

    async def _consume_updates(self) -> None:
        subscription = await self._bus.subscribe(Topic.UPDATES, Update)
        try:
            await self.worker.run(subscription)
        finally:
            await subscription.close()

    async def _consume_on_seen(self) -> None:
        subscription = await self._bus.subscribe(Topic.ON_SEEN, OnSeen)
        try:
            await self.seen_consumer.run(subscription)
        finally:
            await subscription.close()

    async def close(self) -> None:
        """Stop the consumers and in-flight updates, then disconnect."""
        await self._background.cancel_all()
        await self.worker.close()
        await super().close()

    async def on_ready(self) -> None:
        self._logger.info(
            "Discord client ready",
            user=str(self.user),
            invite_link=self._config.invite_link,
        )

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return

        command = parse_command(message.content, self._config.client_id)
        if command is None:
            return
        handler = self._commands.get(command.name)
        if handler is None:
            return

        self._logger.debug("Received command", command=command.name, args=command.args)
        channel_id = message.channel.id
        reacted = await self._try_reaction(channel_id, message.id, add=True)
        try:
            await handler(message, command.args)
        except (UsageError, UpstreamFetchError) as e:
            self._logger.info("Command rejected", command=command.name, error=str(e))
            await self._reply(message, str(e))
        except StoreError as e:
            self._logger.error("Error storing message group", error=str(e))
            await self._reply(message, STORE_FAILURE)
        except ChatError as e:
            self._logger.error("Chat error handling command", command=command.name, error=str(e))
            await self._reply(message, str(e))
        except Exception as e:
            self._logger.error(
                "Error handling command",
                command=command.name,
                error=str(e),
                exc_info=True,
            )
            await self._reply(message, INTERNAL_FAILURE)
        finally:
            if reacted:
                await self._try_reaction(channel_id, message.id, add=False)

    async def _handle_invite(self, message: discord.Message, args: list[str]) -> None:
        await self._reply(
            message, INVITE_TEMPLATE.render(invite_link=self._config.invite_link)
        )

    async def _handle_mirror(self, message: discord.Message, args: list[str]) -> None:
        if message.guild is None:
            raise UsageError(GUILD_ONLY)
        request = parse_mirror_args(args)
        await self.manager.create(
            channel_id=message.channel.id,
            request_message_id=message.id,
            url=request.url,
            explicit_pages=request.pages,
        )

    async def _reply(self, message: discord.Message, text: str) -> None:
        try:
            await self.chat.send_message(message.channel.id, text, reply_to=message.id)
        except ChatError as e:
            self._logger.warning("Failed to reply", message_id=message.id, error=str(e))

    async def _try_reaction(self, channel_id: int, message_id: int, add: bool) -> bool:
        try:
            if add:
                await self.chat.add_reaction(channel_id, message_id, PROCESSING_REACTION)
            else:
                await self.chat.remove_reaction(channel_id, message_id, PROCESSING_REACTION)
        except ChatError as e:
            self._logger.debug("Reaction failed", message_id=message_id, error=str(e))
            return False
        return True
