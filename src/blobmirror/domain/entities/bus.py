"""Messages carried by the event bus."""

from enum import Enum

from pydantic import BaseModel, Field

# (channel_id, message_id)
MessageRef = tuple[int, int]


class Topic(str, Enum):
    """Event bus topics."""

    UPDATES = "updates"
    ON_SEEN = "on_seen"


class Update(BaseModel):
    """A mirrored file changed; rewrite its messages from ``url``."""

    channel_id: int
    message_ids: list[int]
    url: str


class OnSeen(BaseModel):
    """Deferred actions released by a repository becoming seen."""

    deletions: list[MessageRef] = Field(default_factory=list)
    dereacts: list[MessageRef] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """Return True if there is nothing to perform."""
        return not self.deletions and not self.dereacts
