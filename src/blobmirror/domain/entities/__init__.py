"""Domain entities."""

from blobmirror.domain.entities.bus import MessageRef, OnSeen, Topic, Update
from blobmirror.domain.entities.mirror_group import MirrorGroup, new_group_id
from blobmirror.domain.entities.webhook import (
    InstallationEvent,
    InstallationRepositoriesEvent,
    PingEvent,
    PushEvent,
    Repo,
    RepositoryEvent,
    WebhookEvent,
    WebhookEventType,
    parse_webhook_event,
)

__all__ = [
    "InstallationEvent",
    "InstallationRepositoriesEvent",
    "MessageRef",
    "MirrorGroup",
    "OnSeen",
    "PingEvent",
    "PushEvent",
    "Repo",
    "RepositoryEvent",
    "Topic",
    "Update",
    "WebhookEvent",
    "WebhookEventType",
    "new_group_id",
    "parse_webhook_event",
]
