"""Persistence infrastructure."""

from blobmirror.infrastructure.persistence.registry import RedisRegistry
from blobmirror.infrastructure.persistence.store import RedisStore

__all__ = ["RedisRegistry", "RedisStore"]
