"""Redis implementation of the Registry."""

import json

import redis.asyncio as redis
from redis.exceptions import WatchError
from structlog.stdlib import BoundLogger

from blobmirror.domain.entities.bus import MessageRef, OnSeen
from blobmirror.domain.entities.mirror_group import MirrorGroup, new_group_id
from blobmirror.domain.errors import GroupNotFoundError, StoreError

KEY_PREFIX = "blob-mirror:"
GROUPS_KEY = f"{KEY_PREFIX}groups"
SEEN_KEY = f"{KEY_PREFIX}seen"

# Attempts at generating an unused group ID before giving up.
MAX_ID_ATTEMPTS = 8


def repo_key(repo_id: int) -> str:
    return f"{KEY_PREFIX}repo:{repo_id}"


def group_key(group_id: str) -> str:
    return f"{KEY_PREFIX}group:{group_id}"


def group_messages_key(group_id: str) -> str:
    return f"{KEY_PREFIX}group:{group_id}:messages"


def group_rev_key(message_id: int) -> str:
    return f"{KEY_PREFIX}group-rev:{message_id}"


def delete_queue_key(repo_id: int) -> str:
    return f"{KEY_PREFIX}seen-queue:{repo_id}:delete"


def dereact_queue_key(repo_id: int) -> str:
    return f"{KEY_PREFIX}seen-queue:{repo_id}:dereact"


def _encode_ref(channel_id: int, message_id: int) -> str:
    return json.dumps([channel_id, message_id])


def _decode_ref(value: str) -> MessageRef:
    channel_id, message_id = json.loads(value)
    return int(channel_id), int(message_id)


class RedisRegistry:
    """Redis implementation of Registry.

    Consistency relies on the atomicity of single commands and MULTI/EXEC
    transactions; no cross-operation locking is done.
    """

    def __init__(self, client: redis.Redis, logger: BoundLogger) -> None:
        """Initialize the registry.

        Args:
            client: Shared Redis client created with ``decode_responses=True``.
            logger: Logger instance.
        """
        self._client = client
        self._logger = logger

    async def create_group(
        self, repo_id: int, path: str, channel_id: int, message_ids: list[int]
    ) -> str:
        """Create a mirror group and index it.

        The ID is claimed first; the remaining writes form one idempotent
        transaction which can be retried with the same ID.

        Returns:
            The generated group ID.

        Raises:
            StoreError: If any write fails.
            ValueError: If ``message_ids`` is empty.
        """
        if not message_ids:
            raise ValueError("A mirror group needs at least one message")

        try:
            group_id = await self._claim_group_id()
            await self._write_group(
                MirrorGroup(
                    id=group_id,
                    repo_id=repo_id,
                    path=path,
                    channel_id=channel_id,
                    message_ids=message_ids,
                )
            )
        except redis.RedisError as e:
            raise StoreError(f"Could not store mirror group: {e}") from e

        self._logger.info(
            "Mirror group created",
            group_id=group_id,
            repo_id=repo_id,
            channel_id=channel_id,
            messages=len(message_ids),
        )
        return group_id

    async def _claim_group_id(self) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            group_id = new_group_id()
            if await self._client.sadd(GROUPS_KEY, group_id):
                return group_id
            self._logger.warning("Group ID collision", group_id=group_id)
        raise StoreError("Could not allocate a unique mirror group ID")

    async def _write_group(self, group: MirrorGroup) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.sadd(repo_key(group.repo_id), group.id)
            pipe.hset(
                group_key(group.id),
                mapping={
                    "repo_id": str(group.repo_id),
                    "path": group.path,
                    "channel_id": str(group.channel_id),
                },
            )
            pipe.delete(group_messages_key(group.id))
            pipe.rpush(
                group_messages_key(group.id),
                *[str(message_id) for message_id in group.message_ids],
            )
            for message_id in group.message_ids:
                pipe.set(group_rev_key(message_id), group.id)
            await pipe.execute()

    async def lookup_groups_for_repo(self, repo_id: int) -> list[str]:
        try:
            members = await self._client.smembers(repo_key(repo_id))
        except redis.RedisError as e:
            raise StoreError(f"Could not fetch repo mirror groups: {e}") from e
        return sorted(members)

    async def load_group(self, group_id: str) -> MirrorGroup:
        """Load all fields of a group in one round-trip.

        Raises:
            GroupNotFoundError: If a field is missing or malformed.
            StoreError: If the store is unreachable.
        """
        try:
            async with self._client.pipeline(transaction=False) as pipe:
                pipe.hgetall(group_key(group_id))
                pipe.lrange(group_messages_key(group_id), 0, -1)
                fields, messages = await pipe.execute()
        except redis.RedisError as e:
            raise StoreError(f"Could not fetch mirror group {group_id}: {e}") from e

        try:
            return MirrorGroup(
                id=group_id,
                repo_id=int(fields["repo_id"]),
                path=fields["path"],
                channel_id=int(fields["channel_id"]),
                message_ids=[int(message_id) for message_id in messages],
            )
        except (KeyError, ValueError) as e:
            raise GroupNotFoundError(
                f"Mirror group {group_id} is missing or corrupt"
            ) from e

    async def lookup_group_for_message(self, message_id: int) -> str | None:
        try:
            return await self._client.get(group_rev_key(message_id))
        except redis.RedisError as e:
            raise StoreError(f"Could not fetch message owner: {e}") from e

    async def set_seen(self, repo_id: int, seen: bool) -> bool:
        try:
            if seen:
                changed = await self._client.sadd(SEEN_KEY, str(repo_id))
            else:
                changed = await self._client.srem(SEEN_KEY, str(repo_id))
        except redis.RedisError as e:
            raise StoreError(f"Error marking repo {repo_id} as seen={seen}: {e}") from e
        return bool(changed)

    async def is_seen(self, repo_id: int) -> bool:
        try:
            return bool(await self._client.sismember(SEEN_KEY, str(repo_id)))
        except redis.RedisError as e:
            raise StoreError(f"Error checking repo seen status: {e}") from e

    async def queue_delete_on_seen(
        self, repo_id: int, channel_id: int, message_id: int
    ) -> bool:
        return await self._queue_unless_seen(
            repo_id, delete_queue_key(repo_id), _encode_ref(channel_id, message_id)
        )

    async def queue_dereact_on_seen(
        self, repo_id: int, channel_id: int, message_id: int
    ) -> bool:
        return await self._queue_unless_seen(
            repo_id, dereact_queue_key(repo_id), _encode_ref(channel_id, message_id)
        )

    async def _queue_unless_seen(self, repo_id: int, key: str, value: str) -> bool:
        # WATCH makes the append fail if the seen flag changes in between,
        # so nothing is appended after the drain of a seen transition.
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(SEEN_KEY)
                        if await pipe.sismember(SEEN_KEY, str(repo_id)):
                            return False
                        pipe.multi()
                        pipe.rpush(key, value)
                        await pipe.execute()
                        return True
                    except WatchError:
                        continue
        except redis.RedisError as e:
            raise StoreError(f"Could not queue deferred action: {e}") from e

    async def drain_on_seen(self, repo_id: int) -> OnSeen:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.lrange(delete_queue_key(repo_id), 0, -1)
                pipe.lrange(dereact_queue_key(repo_id), 0, -1)
                pipe.delete(delete_queue_key(repo_id), dereact_queue_key(repo_id))
                deletions, dereacts, _ = await pipe.execute()
        except redis.RedisError as e:
            raise StoreError(f"Could not drain deferred actions: {e}") from e

        return OnSeen(
            deletions=self._decode_refs(repo_id, deletions),
            dereacts=self._decode_refs(repo_id, dereacts),
        )

    def _decode_refs(self, repo_id: int, values: list[str]) -> list[MessageRef]:
        refs: list[MessageRef] = []
        for value in values:
            try:
                refs.append(_decode_ref(value))
            except (TypeError, ValueError) as e:
                self._logger.error(
                    "Skipping corrupt deferred action",
                    repo_id=repo_id,
                    value=value,
                    error=str(e),
                )
        return refs

    async def requeue_on_seen(self, repo_id: int, on_seen: OnSeen) -> None:
        """Put drained actions back in front of both queues.

        Unlike the ``queue_*`` methods this ignores the seen flag; it is
        used to undo a drain whose release could not be published.

        Raises:
            StoreError: If the write fails.
        """
        if on_seen.is_empty:
            return
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                if on_seen.deletions:
                    pipe.lpush(
                        delete_queue_key(repo_id),
                        *[_encode_ref(*ref) for ref in reversed(on_seen.deletions)],
                    )
                if on_seen.dereacts:
                    pipe.lpush(
                        dereact_queue_key(repo_id),
                        *[_encode_ref(*ref) for ref in reversed(on_seen.dereacts)],
                    )
                await pipe.execute()
        except redis.RedisError as e:
            raise StoreError(f"Could not requeue deferred actions: {e}") from e

        self._logger.info(
            "Deferred actions requeued",
            repo_id=repo_id,
            deletions=len(on_seen.deletions),
            dereacts=len(on_seen.dereacts),
        )
