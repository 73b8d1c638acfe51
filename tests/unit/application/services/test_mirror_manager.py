"""Tests for MirrorGroupManager."""

import itertools
from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock

import fakeredis
import pytest
import structlog

from blobmirror.application.commands.messages import INVALID_URL, WARNING_REACTION
from blobmirror.application.services.mirror_manager import MirrorGroupManager
from blobmirror.domain.errors import ChatError, StoreError, UpstreamFetchError, UsageError
from blobmirror.domain.pagination import PLACEHOLDER
from blobmirror.infrastructure.persistence.registry import RedisRegistry

FILE_URL = "https://github.com/octocat/hello/blob/master/README.md"
RAW_URL = "https://raw.githubusercontent.com/octocat/hello/master/README.md"
CHANNEL_ID = 7
REQUEST_ID = 50


@pytest.fixture
async def registry() -> AsyncIterator[RedisRegistry]:
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield RedisRegistry(client, structlog.get_logger())
    await client.flushall()
    await client.aclose()


@pytest.fixture
def github() -> MagicMock:
    github = MagicMock()
    github.lookup_repo_id = AsyncMock(return_value=42)
    github.raw_url.return_value = RAW_URL
    github.fetch_text = AsyncMock(return_value="hello")
    return github


@pytest.fixture
def chat() -> MagicMock:
    ids = itertools.count(1000)
    chat = MagicMock()
    chat.send_message = AsyncMock(side_effect=lambda *args, **kwargs: next(ids))
    chat.add_reaction = AsyncMock()
    chat.remove_reaction = AsyncMock()
    chat.delete_message = AsyncMock()
    return chat


def make_manager(registry, github: MagicMock, chat: MagicMock, capacity: int = 2000):
    return MirrorGroupManager(
        registry=registry,
        github=github,
        chat=chat,
        logger=structlog.get_logger(),
        capacity=capacity,
        app_url="https://github.com/apps/blob-mirror",
    )


def sent_bodies(chat: MagicMock) -> list[str]:
    return [call.args[1] for call in chat.send_message.await_args_list]


class TestCreate:
    """Tests for MirrorGroupManager.create."""

    async def test_page_count_raised_to_content(
        self, registry: RedisRegistry, github: MagicMock, chat: MagicMock
    ) -> None:
        """A 5000-byte file at 2000 bytes per message needs three messages."""
        github.fetch_text.return_value = "x" * 5000
        await registry.set_seen(42, True)
        manager = make_manager(registry, github, chat)

        result = await manager.create(CHANNEL_ID, REQUEST_ID, FILE_URL, explicit_pages=1)

        assert chat.send_message.await_count == 3
        assert sent_bodies(chat) == ["x" * 2000, "x" * 2000, "x" * 1000]
        group = await registry.load_group(result.group_id)
        assert group.message_ids == result.message_ids
        assert len(group.message_ids) == 3
        assert group.repo_id == 42
        assert group.path == "master/README.md"
        assert group.channel_id == CHANNEL_ID

    async def test_explicit_pages_reserve_placeholders(
        self, registry: RedisRegistry, github: MagicMock, chat: MagicMock
    ) -> None:
        await registry.set_seen(42, True)
        manager = make_manager(registry, github, chat)

        result = await manager.create(CHANNEL_ID, REQUEST_ID, FILE_URL, explicit_pages=3)

        assert sent_bodies(chat) == ["hello", PLACEHOLDER, PLACEHOLDER]
        assert len(result.message_ids) == 3

    async def test_empty_file_gets_one_placeholder(
        self, registry: RedisRegistry, github: MagicMock, chat: MagicMock
    ) -> None:
        github.fetch_text.return_value = ""
        await registry.set_seen(42, True)
        manager = make_manager(registry, github, chat)

        result = await manager.create(CHANNEL_ID, REQUEST_ID, FILE_URL)

        assert sent_bodies(chat) == [PLACEHOLDER]
        assert len(result.message_ids) == 1

    async def test_fetches_raw_url(
        self, registry: RedisRegistry, github: MagicMock, chat: MagicMock
    ) -> None:
        await registry.set_seen(42, True)
        manager = make_manager(registry, github, chat)

        await manager.create(CHANNEL_ID, REQUEST_ID, FILE_URL)

        github.lookup_repo_id.assert_awaited_once_with("octocat", "hello")
        github.raw_url.assert_called_once_with("octocat", "hello", "master/README.md")
        github.fetch_text.assert_awaited_once_with(RAW_URL)

    async def test_seen_repo_has_no_warning(
        self, registry: RedisRegistry, github: MagicMock, chat: MagicMock
    ) -> None:
        await registry.set_seen(42, True)
        manager = make_manager(registry, github, chat)

        result = await manager.create(CHANNEL_ID, REQUEST_ID, FILE_URL)

        assert result.seen is True
        assert chat.send_message.await_count == 1
        chat.add_reaction.assert_not_awaited()

    async def test_invalid_url(
        self, registry: RedisRegistry, github: MagicMock, chat: MagicMock
    ) -> None:
        manager = make_manager(registry, github, chat)

        with pytest.raises(UsageError, match=INVALID_URL):
            await manager.create(CHANNEL_ID, REQUEST_ID, "https://example.com/file")

        github.lookup_repo_id.assert_not_awaited()

    async def test_fetch_failure_sends_nothing(
        self, registry: RedisRegistry, github: MagicMock, chat: MagicMock
    ) -> None:
        github.fetch_text.side_effect = UpstreamFetchError("Failed to fetch file")
        manager = make_manager(registry, github, chat)

        with pytest.raises(UpstreamFetchError):
            await manager.create(CHANNEL_ID, REQUEST_ID, FILE_URL)

        chat.send_message.assert_not_awaited()

    async def test_store_failure(self, github: MagicMock, chat: MagicMock) -> None:
        registry = MagicMock()
        registry.create_group = AsyncMock(side_effect=StoreError("down"))
        manager = make_manager(registry, github, chat)

        with pytest.raises(StoreError):
            await manager.create(CHANNEL_ID, REQUEST_ID, FILE_URL)


class TestUnseenWarning:
    """Tests for the warning posted for repositories without the app."""

    async def test_warning_is_queued_for_cleanup(
        self, registry: RedisRegistry, github: MagicMock, chat: MagicMock
    ) -> None:
        manager = make_manager(registry, github, chat)

        result = await manager.create(CHANNEL_ID, REQUEST_ID, FILE_URL)

        assert result.seen is False
        # One mirror message, then the warning
        assert chat.send_message.await_count == 2
        warning_call = chat.send_message.await_args_list[1]
        assert "https://github.com/apps/blob-mirror" in warning_call.args[1]
        assert warning_call.kwargs["reply_to"] == REQUEST_ID
        chat.add_reaction.assert_awaited_once_with(
            CHANNEL_ID, REQUEST_ID, WARNING_REACTION
        )

        on_seen = await registry.drain_on_seen(42)
        assert on_seen.deletions == [(CHANNEL_ID, 1001)]
        assert on_seen.dereacts == [(CHANNEL_ID, REQUEST_ID)]

    async def test_cleanup_done_immediately_if_seen_meanwhile(
        self, github: MagicMock, chat: MagicMock
    ) -> None:
        registry = MagicMock()
        registry.create_group = AsyncMock(return_value="group")
        registry.is_seen = AsyncMock(return_value=False)
        registry.queue_delete_on_seen = AsyncMock(return_value=False)
        registry.queue_dereact_on_seen = AsyncMock(return_value=False)
        manager = make_manager(registry, github, chat)

        await manager.create(CHANNEL_ID, REQUEST_ID, FILE_URL)

        chat.delete_message.assert_awaited_once_with(CHANNEL_ID, 1001)
        chat.remove_reaction.assert_awaited_once_with(
            CHANNEL_ID, REQUEST_ID, WARNING_REACTION
        )

    async def test_warning_failure_does_not_fail_command(
        self, registry: RedisRegistry, github: MagicMock, chat: MagicMock
    ) -> None:
        chat.add_reaction.side_effect = ChatError("Failed to add reaction")
        manager = make_manager(registry, github, chat)

        result = await manager.create(CHANNEL_ID, REQUEST_ID, FILE_URL)

        assert result.seen is False
        assert await registry.load_group(result.group_id)

    async def test_warning_cleanup_queued_when_reaction_fails(
        self, registry: RedisRegistry, github: MagicMock, chat: MagicMock
    ) -> None:
        chat.add_reaction.side_effect = ChatError("Missing Permissions")
        manager = make_manager(registry, github, chat)

        await manager.create(CHANNEL_ID, REQUEST_ID, FILE_URL)

        on_seen = await registry.drain_on_seen(42)
        assert on_seen.deletions == [(CHANNEL_ID, 1001)]
        assert on_seen.dereacts == []

    async def test_warning_send_failure_queues_nothing(
        self, registry: RedisRegistry, github: MagicMock, chat: MagicMock
    ) -> None:
        sent = iter([1000])

        async def send(*args, **kwargs) -> int:
            try:
                return next(sent)
            except StopIteration:
                raise ChatError("Missing Access") from None

        chat.send_message.side_effect = send
        manager = make_manager(registry, github, chat)

        result = await manager.create(CHANNEL_ID, REQUEST_ID, FILE_URL)

        assert result.seen is False
        chat.add_reaction.assert_not_awaited()
        assert (await registry.drain_on_seen(42)).is_empty

    async def test_seen_check_failure_skips_warning(
        self, github: MagicMock, chat: MagicMock
    ) -> None:
        registry = MagicMock()
        registry.create_group = AsyncMock(return_value="group")
        registry.is_seen = AsyncMock(side_effect=StoreError("down"))
        manager = make_manager(registry, github, chat)

        result = await manager.create(CHANNEL_ID, REQUEST_ID, FILE_URL)

        assert result.group_id == "group"
        assert chat.send_message.await_count == 1
