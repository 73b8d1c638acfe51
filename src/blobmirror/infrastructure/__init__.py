"""Infrastructure layer."""

from blobmirror.infrastructure.event_bus import RedisEventBus, Subscription
from blobmirror.infrastructure.persistence import RedisRegistry, RedisStore

__all__ = ["RedisEventBus", "RedisRegistry", "RedisStore", "Subscription"]
