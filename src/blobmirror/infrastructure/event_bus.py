"""Event bus over Redis pub/sub."""

from typing import Generic, TypeVar

import redis.asyncio as redis
from pydantic import BaseModel, ValidationError
from redis.asyncio.client import PubSub
from structlog.stdlib import BoundLogger

from blobmirror.domain.entities.bus import Topic
from blobmirror.domain.errors import BusError

MessageT = TypeVar("MessageT", bound=BaseModel)

# Seconds a single pub/sub read waits before polling again.
POLL_TIMEOUT = 1.0


class Subscription(Generic[MessageT]):
    """Async iterator over the messages of one topic.

    Payloads that fail validation are logged and skipped. A broken
    connection raises BusError; the caller is expected to resubscribe.
    """

    def __init__(
        self,
        pubsub: PubSub,
        topic: Topic,
        model: type[MessageT],
        logger: BoundLogger,
    ) -> None:
        self._pubsub = pubsub
        self._topic = topic
        self._model = model
        self._logger = logger

    @property
    def topic(self) -> Topic:
        return self._topic

    def __aiter__(self) -> "Subscription[MessageT]":
        return self

    async def __anext__(self) -> MessageT:
        while True:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=POLL_TIMEOUT
                )
            except redis.RedisError as e:
                raise BusError(f"Subscription to {self._topic.value} broken: {e}") from e

            if message is None or message.get("type") != "message":
                continue

            try:
                return self._model.model_validate_json(message["data"])
            except ValidationError as e:
                self._logger.warning(
                    "Dropping malformed bus message",
                    topic=self._topic.value,
                    error=str(e),
                )

    async def close(self) -> None:
        """Unsubscribe and release the pub/sub connection."""
        try:
            await self._pubsub.unsubscribe(self._topic.value)
        except redis.RedisError as e:
            self._logger.debug("Unsubscribe failed", error=str(e))
        finally:
            await self._pubsub.aclose()


class RedisEventBus:
    """Fan-out channel per topic, without persistence.

    Consumers that are not subscribed at publish time miss the message;
    a missed update is corrected by the next push.
    """

    def __init__(self, client: redis.Redis, logger: BoundLogger) -> None:
        """Initialize the event bus.

        Args:
            client: Shared Redis client created with ``decode_responses=True``.
            logger: Logger instance.
        """
        self._client = client
        self._logger = logger

    async def publish(self, topic: Topic, message: BaseModel) -> int:
        """Publish a message.

        Args:
            topic: Destination topic.
            message: Message model, sent as one JSON document.

        Returns:
            Number of subscribers that received the message.

        Raises:
            BusError: If publishing fails.
        """
        try:
            receivers = await self._client.publish(
                topic.value, message.model_dump_json()
            )
        except redis.RedisError as e:
            raise BusError(f"Failed to publish to {topic.value}: {e}") from e

        self._logger.debug("Published", topic=topic.value, receivers=receivers)
        return int(receivers)

    async def subscribe(
        self, topic: Topic, model: type[MessageT]
    ) -> Subscription[MessageT]:
        """Subscribe to a topic.

        The subscription is active when this returns.

        Args:
            topic: Topic to subscribe to.
            model: Model used to validate payloads.

        Raises:
            BusError: If subscribing fails.
        """
        pubsub = self._client.pubsub()
        try:
            await pubsub.subscribe(topic.value)
        except redis.RedisError as e:
            await pubsub.aclose()
            raise BusError(f"Failed to subscribe to {topic.value}: {e}") from e

        self._logger.info("Subscribed", topic=topic.value)
        return Subscription(pubsub, topic, model, self._logger)
