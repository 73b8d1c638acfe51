"""MirrorGroup entity."""

import ulid
from pydantic import BaseModel, ConfigDict, Field

RAW_CONTENT_BASE_URL = "https://raw.githubusercontent.com"


def new_group_id() -> str:
    """Generate a fresh mirror group ID (ULID, 80 random bits)."""
    return str(ulid.new())


class MirrorGroup(BaseModel):
    """Binding between one file in a repository and an ordered set of messages.

    Attributes:
        id: Opaque group ID.
        repo_id: GitHub numeric repository ID.
        path: Path inside the repository, starting with the ref
            (e.g. ``master/README.md``).
        channel_id: Discord channel holding the messages.
        message_ids: Discord message IDs in pagination order.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    repo_id: int
    path: str = Field(min_length=1)
    channel_id: int
    message_ids: list[int] = Field(min_length=1)

    def raw_url(self, owner: str, name: str, base_url: str = RAW_CONTENT_BASE_URL) -> str:
        """Return the raw-content URL of the mirrored file.

        Args:
            owner: Repository owner login.
            name: Repository name.
            base_url: Raw-content host.

        Returns:
            The authoritative content URL.
        """
        return f"{base_url.rstrip('/')}/{owner}/{name}/{self.path}"
