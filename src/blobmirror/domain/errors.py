"""Error taxonomy shared by every layer.

Each error is scoped to a single command, update or webhook event; none of
them is fatal to the process.
"""


class BlobMirrorError(Exception):
    """Base exception for blob-mirror errors."""


class UsageError(BlobMirrorError):
    """Raised when a user command is malformed.

    The message is shown to the user verbatim.
    """


class UpstreamFetchError(BlobMirrorError):
    """Raised when GitHub is unreachable or returns unusable content."""


class StoreError(BlobMirrorError):
    """Raised when the registry is unreachable or holds an inconsistent record."""


class GroupNotFoundError(StoreError):
    """Raised when a mirror group is missing or only partially stored."""


class BusError(BlobMirrorError):
    """Raised when publishing to or subscribing from the event bus fails."""


class ChatError(BlobMirrorError):
    """Raised when a Discord call fails or times out."""
