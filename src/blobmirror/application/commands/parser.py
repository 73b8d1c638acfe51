"""Parsing of bot commands and GitHub file URLs."""

from dataclasses import dataclass

from blobmirror.application.commands.messages import INVALID_URL, MIRROR_USAGE
from blobmirror.domain.errors import UsageError

GITHUB_PREFIX = "https://github.com/"
RAW_PREFIX = "https://raw.githubusercontent.com/"


@dataclass(frozen=True)
class Command:
    """A command addressed to the bot."""

    name: str
    args: list[str]


@dataclass(frozen=True)
class FileLocation:
    """A file inside a GitHub repository.

    ``path`` starts with the ref, as in raw-content URLs.
    """

    user: str
    repo: str
    path: str


@dataclass(frozen=True)
class MirrorRequest:
    url: str
    pages: int | None = None


def parse_command(content: str, client_id: int) -> Command | None:
    """Extract a command from a message that starts with a bot mention.

    Args:
        content: Raw message content.
        client_id: The bot's user ID.

    Returns:
        The command, or None if the message is not addressed to the bot or
        is empty after the mention.
    """
    for prefix in (f"<@!{client_id}>", f"<@{client_id}>"):
        if content.startswith(prefix):
            words = content[len(prefix) :].split()
            if not words:
                return None
            return Command(name=words[0], args=words[1:])
    return None


def parse_mirror_args(args: list[str]) -> MirrorRequest:
    """Parse ``mirror <url> [message splits]``.

    Raises:
        UsageError: If the URL is missing or the page count is not a
            positive integer.
    """
    if not args:
        raise UsageError(MIRROR_USAGE)

    pages = None
    if len(args) > 1:
        try:
            pages = int(args[1])
        except ValueError as e:
            raise UsageError(MIRROR_USAGE) from e
        if pages < 1:
            raise UsageError(MIRROR_USAGE)

    return MirrorRequest(url=args[0], pages=pages)


def parse_file_url(url: str) -> FileLocation:
    """Parse a repository-browser or raw-content file URL.

    Accepted shapes::

        https://github.com/<user>/<repo>/blob/<ref>/<path>
        https://raw.githubusercontent.com/<user>/<repo>/<ref>/<path>

    Raises:
        UsageError: If the URL has neither shape.
    """
    url = url.strip("<>").split("#", 1)[0].split("?", 1)[0]

    if url.startswith(GITHUB_PREFIX):
        parts = url[len(GITHUB_PREFIX) :].split("/", 3)
        if len(parts) == 4:
            user, repo, _, path = parts
            if user and repo and path:
                return FileLocation(user=user, repo=repo, path=path)
    elif url.startswith(RAW_PREFIX):
        parts = url[len(RAW_PREFIX) :].split("/", 2)
        if len(parts) == 3:
            user, repo, path = parts
            if user and repo and path:
                return FileLocation(user=user, repo=repo, path=path)

    raise UsageError(INVALID_URL)
