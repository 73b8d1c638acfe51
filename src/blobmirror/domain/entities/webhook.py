"""GitHub webhook events consumed by the ingestion side."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class WebhookEventType(str, Enum):
    """Webhook event kinds, as sent in the ``X-GitHub-Event`` header."""

    PING = "ping"
    INSTALLATION = "installation"
    INSTALLATION_REPOSITORIES = "installation_repositories"
    REPOSITORY = "repository"
    PUSH = "push"


class Repo(BaseModel):
    """Repository reference carried by webhook payloads."""

    id: int
    full_name: str

    @property
    def owner_and_name(self) -> tuple[str, str] | None:
        """Split ``full_name`` into ``(owner, name)``.

        Returns:
            The pair, or None if ``full_name`` is malformed.
        """
        owner, sep, name = self.full_name.partition("/")
        if not sep or not owner or not name or "/" in name:
            return None
        return owner, name


class Installation(BaseModel):
    """GitHub App installation reference."""

    id: int


class InstallationAction(str, Enum):
    CREATED = "created"
    DELETED = "deleted"
    SUSPEND = "suspend"
    UNSUSPEND = "unsuspend"
    NEW_PERMISSIONS_ACCEPTED = "new_permissions_accepted"


class InstallationRepositoriesAction(str, Enum):
    ADDED = "added"
    REMOVED = "removed"


class RepositoryAction(str, Enum):
    CREATED = "created"
    DELETED = "deleted"
    ARCHIVED = "archived"
    UNARCHIVED = "unarchived"
    EDITED = "edited"
    RENAMED = "renamed"
    TRANSFERRED = "transferred"
    PUBLICIZED = "publicized"
    PRIVATIZED = "privatized"


INSTALLATION_SEEN: dict[InstallationAction, bool] = {
    InstallationAction.CREATED: True,
    InstallationAction.UNSUSPEND: True,
    InstallationAction.NEW_PERMISSIONS_ACCEPTED: True,
    InstallationAction.DELETED: False,
    InstallationAction.SUSPEND: False,
}

REPOSITORY_SEEN: dict[RepositoryAction, bool | None] = {
    RepositoryAction.CREATED: True,
    RepositoryAction.UNARCHIVED: True,
    RepositoryAction.EDITED: True,
    RepositoryAction.RENAMED: True,
    RepositoryAction.PUBLICIZED: True,
    RepositoryAction.DELETED: False,
    RepositoryAction.ARCHIVED: False,
    RepositoryAction.PRIVATIZED: False,
    # Transfers keep the current state; mirror groups are not migrated.
    RepositoryAction.TRANSFERRED: None,
}


class WebhookEvent(BaseModel):
    """Base class for decoded webhook events."""

    type: WebhookEventType

    def seen_changes(self) -> list[tuple[int, bool]]:
        """Return the ``(repo_id, seen)`` transitions this event requests."""
        return []


class PingEvent(WebhookEvent):
    """Sent by GitHub when a webhook is configured."""

    type: Literal[WebhookEventType.PING] = WebhookEventType.PING


class InstallationEvent(WebhookEvent):
    """The app was installed, removed, suspended or had permissions changed."""

    type: Literal[WebhookEventType.INSTALLATION] = WebhookEventType.INSTALLATION
    action: InstallationAction
    repositories: list[Repo] = Field(default_factory=list)
    installation: Installation | None = None

    def seen_changes(self) -> list[tuple[int, bool]]:
        seen = INSTALLATION_SEEN[self.action]
        return [(repo.id, seen) for repo in self.repositories]


class InstallationRepositoriesEvent(WebhookEvent):
    """Repositories were added to or removed from an installation."""

    type: Literal[WebhookEventType.INSTALLATION_REPOSITORIES] = (
        WebhookEventType.INSTALLATION_REPOSITORIES
    )
    action: InstallationRepositoriesAction
    repositories_added: list[Repo] = Field(default_factory=list)
    repositories_removed: list[Repo] = Field(default_factory=list)
    installation: Installation | None = None

    def seen_changes(self) -> list[tuple[int, bool]]:
        return [(repo.id, True) for repo in self.repositories_added] + [
            (repo.id, False) for repo in self.repositories_removed
        ]


class RepositoryEvent(WebhookEvent):
    """A repository lifecycle event."""

    type: Literal[WebhookEventType.REPOSITORY] = WebhookEventType.REPOSITORY
    action: RepositoryAction
    repository: Repo
    installation: Installation | None = None

    def seen_changes(self) -> list[tuple[int, bool]]:
        seen = REPOSITORY_SEEN[self.action]
        if seen is None:
            return []
        return [(self.repository.id, seen)]


class PushEvent(WebhookEvent):
    """Commits were pushed to a repository."""

    type: Literal[WebhookEventType.PUSH] = WebhookEventType.PUSH
    repository: Repo
    ref: str
    installation: Installation | None = None


EVENT_TYPE_MAP: dict[WebhookEventType, type[WebhookEvent]] = {
    WebhookEventType.PING: PingEvent,
    WebhookEventType.INSTALLATION: InstallationEvent,
    WebhookEventType.INSTALLATION_REPOSITORIES: InstallationRepositoriesEvent,
    WebhookEventType.REPOSITORY: RepositoryEvent,
    WebhookEventType.PUSH: PushEvent,
}


def parse_webhook_event(kind: str, payload: dict[str, Any]) -> WebhookEvent | None:
    """Decode a webhook payload.

    Args:
        kind: Value of the ``X-GitHub-Event`` header.
        payload: Decoded JSON body.

    Returns:
        The typed event, or None if the kind is not handled.

    Raises:
        pydantic.ValidationError: If the payload does not match the kind.
    """
    try:
        event_type = WebhookEventType(kind)
    except ValueError:
        return None
    event_class = EVENT_TYPE_MAP[event_type]
    return event_class.model_validate({**payload, "type": event_type})
