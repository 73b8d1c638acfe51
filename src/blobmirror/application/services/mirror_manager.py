"""Mirror group manager: creates new mirror groups from user commands."""

from dataclasses import dataclass

from structlog.stdlib import BoundLogger

from blobmirror.application.commands.messages import (
    UNSEEN_WARNING_TEMPLATE,
    WARNING_REACTION,
)
from blobmirror.application.commands.parser import parse_file_url
from blobmirror.domain.errors import ChatError, StoreError
from blobmirror.domain.pagination import render_slot, required_pages, split_pages
from blobmirror.domain.repositories.registry import Registry
from blobmirror.infrastructure.discord.chat import ChatClient
from blobmirror.infrastructure.github.client import GitHubClient


@dataclass(frozen=True)
class MirrorResult:
    group_id: str
    message_ids: list[int]
    seen: bool


class MirrorGroupManager:
    """Handles the ``mirror`` command.

    Allocates one message per page, records the group in the registry and,
    when the repository has not installed the GitHub App yet, warns the
    user and queues the warning for cleanup once the repository is seen.
    """

    def __init__(
        self,
        registry: Registry,
        github: GitHubClient,
        chat: ChatClient,
        logger: BoundLogger,
        capacity: int = 2000,
        app_url: str = "https://github.com/apps/blob-mirror",
    ) -> None:
        self._registry = registry
        self._github = github
        self._chat = chat
        self._logger = logger
        self._capacity = capacity
        self._app_url = app_url

    async def create(
        self,
        channel_id: int,
        request_message_id: int,
        url: str,
        explicit_pages: int | None = None,
    ) -> MirrorResult:
        """Create a mirror group for the file at ``url``.

        Args:
            channel_id: Channel the command was issued in.
            request_message_id: Message holding the command.
            url: GitHub file URL.
            explicit_pages: Requested number of messages, if any. Raised to
                the number of pages the content needs.

        Returns:
            The new group.

        Raises:
            UsageError: If the URL is not a GitHub file URL.
            UpstreamFetchError: If the repository or file cannot be fetched.
            StoreError: If the group cannot be stored.
            ChatError: If the mirror messages cannot be sent.
        """
        location = parse_file_url(url)
        repo_id = await self._github.lookup_repo_id(location.user, location.repo)
        raw_url = self._github.raw_url(location.user, location.repo, location.path)
        text = await self._github.fetch_text(raw_url)

        pages = max(explicit_pages or 1, required_pages(text, self._capacity))
        slices = split_pages(text, self._capacity)
        slices += [""] * (pages - len(slices))

        message_ids: list[int] = []
        for page in slices:
            message_id = await self._chat.send_message(channel_id, render_slot(page))
            message_ids.append(message_id)

        group_id = await self._registry.create_group(
            repo_id, location.path, channel_id, message_ids
        )
        self._logger.info(
            "Mirror created",
            group_id=group_id,
            repo_id=repo_id,
            path=location.path,
            channel_id=channel_id,
            pages=pages,
        )

        seen = await self._warn_if_unseen(repo_id, channel_id, request_message_id)
        return MirrorResult(group_id=group_id, message_ids=message_ids, seen=seen)

    async def _warn_if_unseen(
        self, repo_id: int, channel_id: int, request_message_id: int
    ) -> bool:
        """Warn about a missing installation. Advisory only: never raises."""
        try:
            if await self._registry.is_seen(repo_id):
                return True
        except StoreError as e:
            self._logger.error("Error checking seen status", repo_id=repo_id, error=str(e))
            return False

        try:
            warning_id = await self._chat.send_message(
                channel_id,
                UNSEEN_WARNING_TEMPLATE.render(app_url=self._app_url),
                reply_to=request_message_id,
            )
            if not await self._registry.queue_delete_on_seen(
                repo_id, channel_id, warning_id
            ):
                await self._chat.delete_message(channel_id, warning_id)
        except (ChatError, StoreError) as e:
            self._logger.warning("Failed to post install warning", repo_id=repo_id, error=str(e))
            return False

        try:
            await self._chat.add_reaction(channel_id, request_message_id, WARNING_REACTION)
            if not await self._registry.queue_dereact_on_seen(
                repo_id, channel_id, request_message_id
            ):
                await self._chat.remove_reaction(
                    channel_id, request_message_id, WARNING_REACTION
                )
        except (ChatError, StoreError) as e:
            self._logger.warning(
                "Failed to mark request with warning", repo_id=repo_id, error=str(e)
            )
        return False
