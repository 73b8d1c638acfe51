"""Tests for webhook events."""

import pytest
from pydantic import ValidationError

from blobmirror.domain.entities.webhook import (
    InstallationEvent,
    InstallationRepositoriesEvent,
    PingEvent,
    PushEvent,
    Repo,
    RepositoryEvent,
    WebhookEventType,
    parse_webhook_event,
)

REPO = {"id": 42, "full_name": "octocat/hello"}


class TestRepo:
    """Tests for Repo model."""

    def test_owner_and_name(self) -> None:
        assert Repo(**REPO).owner_and_name == ("octocat", "hello")

    @pytest.mark.parametrize("full_name", ["noslash", "/name", "owner/", "a/b/c"])
    def test_malformed_full_name(self, full_name: str) -> None:
        assert Repo(id=1, full_name=full_name).owner_and_name is None


class TestParseWebhookEvent:
    """Tests for parse_webhook_event function."""

    def test_unknown_kind_is_ignored(self) -> None:
        assert parse_webhook_event("issues", {"action": "opened"}) is None

    def test_ping(self) -> None:
        event = parse_webhook_event("ping", {"zen": "Keep it simple."})

        assert isinstance(event, PingEvent)
        assert event.type == WebhookEventType.PING

    def test_push(self) -> None:
        event = parse_webhook_event(
            "push", {"ref": "refs/heads/master", "repository": REPO, "commits": []}
        )

        assert isinstance(event, PushEvent)
        assert event.repository.id == 42
        assert event.ref == "refs/heads/master"

    def test_push_without_repository(self) -> None:
        with pytest.raises(ValidationError):
            parse_webhook_event("push", {"ref": "refs/heads/master"})

    def test_unknown_action(self) -> None:
        with pytest.raises(ValidationError):
            parse_webhook_event("repository", {"action": "exploded", "repository": REPO})

    def test_installation(self) -> None:
        event = parse_webhook_event(
            "installation",
            {"action": "created", "repositories": [REPO], "installation": {"id": 9}},
        )

        assert isinstance(event, InstallationEvent)
        assert event.installation is not None
        assert event.installation.id == 9


class TestSeenChanges:
    """Tests for the seen transitions requested by events."""

    @pytest.mark.parametrize(
        ("action", "seen"),
        [
            ("created", True),
            ("unsuspend", True),
            ("new_permissions_accepted", True),
            ("deleted", False),
            ("suspend", False),
        ],
    )
    def test_installation(self, action: str, seen: bool) -> None:
        event = InstallationEvent(
            action=action,
            repositories=[Repo(**REPO), Repo(id=43, full_name="octocat/other")],
        )

        assert event.seen_changes() == [(42, seen), (43, seen)]

    def test_installation_without_repositories(self) -> None:
        assert InstallationEvent(action="created").seen_changes() == []

    def test_installation_repositories(self) -> None:
        event = InstallationRepositoriesEvent(
            action="added",
            repositories_added=[Repo(**REPO)],
            repositories_removed=[Repo(id=43, full_name="octocat/other")],
        )

        assert event.seen_changes() == [(42, True), (43, False)]

    @pytest.mark.parametrize(
        ("action", "seen"),
        [
            ("created", True),
            ("unarchived", True),
            ("edited", True),
            ("renamed", True),
            ("publicized", True),
            ("deleted", False),
            ("archived", False),
            ("privatized", False),
        ],
    )
    def test_repository(self, action: str, seen: bool) -> None:
        event = RepositoryEvent(action=action, repository=Repo(**REPO))

        assert event.seen_changes() == [(42, seen)]

    def test_repository_transferred_is_no_change(self) -> None:
        event = RepositoryEvent(action="transferred", repository=Repo(**REPO))

        assert event.seen_changes() == []

    def test_push_has_no_seen_change(self) -> None:
        event = PushEvent(repository=Repo(**REPO), ref="refs/heads/master")

        assert event.seen_changes() == []
