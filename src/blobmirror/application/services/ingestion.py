"""Ingestion side: turns webhook events into registry writes and bus messages."""

from collections.abc import Awaitable, Callable
from typing import Any

from structlog.stdlib import BoundLogger

from blobmirror.domain.entities.bus import OnSeen, Topic, Update
from blobmirror.domain.entities.webhook import (
    InstallationEvent,
    InstallationRepositoriesEvent,
    PingEvent,
    PushEvent,
    RepositoryEvent,
    WebhookEvent,
    WebhookEventType,
)
from blobmirror.domain.errors import BusError, StoreError
from blobmirror.domain.repositories.registry import Registry
from blobmirror.infrastructure.event_bus import RedisEventBus

WebhookHandler = Callable[[Any], Awaitable[None]]


class IngestionService:
    """Applies webhook events to the registry and fans out bus messages.

    Visibility events drive the seen state machine; push events publish one
    ``Update`` per mirror group of the repository. Failures are logged per
    repository or group and never raised, since webhooks have no caller to
    report to.
    """

    def __init__(
        self,
        registry: Registry,
        bus: RedisEventBus,
        logger: BoundLogger,
        raw_base_url: str = "https://raw.githubusercontent.com",
    ) -> None:
        self._registry = registry
        self._bus = bus
        self._logger = logger
        self._raw_base_url = raw_base_url
        self._handlers: dict[WebhookEventType, WebhookHandler] = {
            WebhookEventType.PING: self._handle_ping,
            WebhookEventType.INSTALLATION: self._handle_visibility,
            WebhookEventType.INSTALLATION_REPOSITORIES: self._handle_visibility,
            WebhookEventType.REPOSITORY: self._handle_visibility,
            WebhookEventType.PUSH: self._handle_push,
        }

    async def handle(self, event: WebhookEvent) -> None:
        """Dispatch a webhook event to its handler."""
        handler = self._handlers.get(event.type)
        if handler is None:
            self._logger.warning("No handler for webhook event", event_type=event.type.value)
            return
        await handler(event)

    async def _handle_ping(self, event: PingEvent) -> None:
        self._logger.info("Webhook ping received")

    async def _handle_visibility(
        self, event: InstallationEvent | InstallationRepositoriesEvent | RepositoryEvent
    ) -> None:
        changes = event.seen_changes()
        if not changes:
            self._logger.info(
                "Visibility event without seen change", event_type=event.type.value
            )
        for repo_id, seen in changes:
            try:
                await self.set_visibility(repo_id, seen)
            except (StoreError, BusError) as e:
                self._logger.error(
                    "Failed to apply visibility change",
                    repo_id=repo_id,
                    seen=seen,
                    error=str(e),
                )

    async def set_visibility(self, repo_id: int, seen: bool) -> bool:
        """Apply one seen/unseen intent.

        On an actual unseen-to-seen transition the deferred-action queues
        are drained and published as one ``OnSeen`` message. If draining or
        publishing fails, the transition is rolled back: the drained actions
        are requeued and the repository is marked unseen again, so a
        redelivered event retries it.

        Returns:
            True if an ``OnSeen`` message was published.

        Raises:
            StoreError: If the registry fails.
            BusError: If publishing fails.
        """
        changed = await self._registry.set_seen(repo_id, seen)
        self._logger.info("Repo visibility set", repo_id=repo_id, seen=seen, changed=changed)
        if not seen or not changed:
            return False

        try:
            on_seen = await self._registry.drain_on_seen(repo_id)
        except StoreError:
            await self._roll_back_seen(repo_id)
            raise

        try:
            await self._bus.publish(Topic.ON_SEEN, on_seen)
        except BusError:
            await self._roll_back_seen(repo_id, on_seen)
            raise

        self._logger.info(
            "Published deferred actions",
            repo_id=repo_id,
            deletions=len(on_seen.deletions),
            dereacts=len(on_seen.dereacts),
        )
        return True

    async def _roll_back_seen(self, repo_id: int, on_seen: OnSeen | None = None) -> None:
        if on_seen is not None:
            try:
                await self._registry.requeue_on_seen(repo_id, on_seen)
            except StoreError as e:
                self._logger.error(
                    "Failed to requeue deferred actions",
                    repo_id=repo_id,
                    deletions=on_seen.deletions,
                    dereacts=on_seen.dereacts,
                    error=str(e),
                )
        try:
            await self._registry.set_seen(repo_id, False)
        except StoreError as e:
            self._logger.error(
                "Failed to roll back seen transition", repo_id=repo_id, error=str(e)
            )
            return
        self._logger.warning("Seen transition rolled back", repo_id=repo_id)

    async def _handle_push(self, event: PushEvent) -> None:
        await self.publish_updates(event)

    async def publish_updates(self, event: PushEvent) -> int:
        """Publish an ``Update`` for every mirror group of the pushed repository.

        Returns:
            Number of updates published.
        """
        repo = event.repository
        owner_and_name = repo.owner_and_name
        if owner_and_name is None:
            self._logger.warning("Malformed repository name", full_name=repo.full_name)
            return 0
        owner, name = owner_and_name

        try:
            group_ids = await self._registry.lookup_groups_for_repo(repo.id)
        except StoreError as e:
            self._logger.error("Failed to look up mirror groups", repo_id=repo.id, error=str(e))
            return 0

        published = 0
        for group_id in group_ids:
            try:
                group = await self._registry.load_group(group_id)
                update = Update(
                    channel_id=group.channel_id,
                    message_ids=group.message_ids,
                    url=group.raw_url(owner, name, self._raw_base_url),
                )
                await self._bus.publish(Topic.UPDATES, update)
            except (StoreError, BusError) as e:
                self._logger.error(
                    "Failed to publish update",
                    repo_id=repo.id,
                    group_id=group_id,
                    error=str(e),
                )
                continue
            published += 1

        self._logger.info(
            "Push processed",
            repo_id=repo.id,
            ref=event.ref,
            groups=len(group_ids),
            published=published,
        )
        return published
