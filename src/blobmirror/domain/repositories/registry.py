"""Registry protocol."""

from typing import Protocol

from blobmirror.domain.entities.bus import OnSeen
from blobmirror.domain.entities.mirror_group import MirrorGroup


class Registry(Protocol):
    """Persistent store of mirror groups and per-repository seen state.

    Every method may raise StoreError when the store is unreachable.
    """

    async def create_group(
        self, repo_id: int, path: str, channel_id: int, message_ids: list[int]
    ) -> str:
        """Create a mirror group.

        Args:
            repo_id: GitHub repository ID.
            path: Path of the mirrored file, starting with the ref.
            channel_id: Discord channel ID.
            message_ids: Pre-allocated message IDs in pagination order.

        Returns:
            The generated group ID.
        """
        ...

    async def lookup_groups_for_repo(self, repo_id: int) -> list[str]:
        """Return the IDs of all mirror groups of a repository."""
        ...

    async def load_group(self, group_id: str) -> MirrorGroup:
        """Load a mirror group.

        Raises:
            GroupNotFoundError: If any field is missing or malformed.
        """
        ...

    async def lookup_group_for_message(self, message_id: int) -> str | None:
        """Return the ID of the group owning a message, if any."""
        ...

    async def set_seen(self, repo_id: int, seen: bool) -> bool:
        """Set the seen flag and return whether the stored value changed."""
        ...

    async def is_seen(self, repo_id: int) -> bool:
        """Return the seen flag; unknown repositories are unseen."""
        ...

    async def queue_delete_on_seen(
        self, repo_id: int, channel_id: int, message_id: int
    ) -> bool:
        """Queue a message deletion until the repository is seen.

        Returns:
            True if queued, False if the repository is already seen and the
            caller should delete the message itself.
        """
        ...

    async def queue_dereact_on_seen(
        self, repo_id: int, channel_id: int, message_id: int
    ) -> bool:
        """Queue a reaction removal until the repository is seen.

        Returns:
            True if queued, False if the repository is already seen.
        """
        ...

    async def drain_on_seen(self, repo_id: int) -> OnSeen:
        """Atomically read and clear both deferred-action queues.

        Corrupt entries are logged and skipped.
        """
        ...

    async def requeue_on_seen(self, repo_id: int, on_seen: OnSeen) -> None:
        """Put drained actions back at the front of the queues, in order."""
        ...
