"""Redis connection management."""

from urllib.parse import urlparse

import redis.asyncio as redis

from blobmirror.config.models import RedisConfig
from blobmirror.domain.errors import StoreError

SUPPORTED_SCHEMES = ("redis", "rediss", "unix")


class RedisStore:
    """Non-blocking Redis connection manager.

    Owns the single client shared by the registry and the event bus. The
    client keeps an internal connection pool, so it is safe to use from many
    concurrent tasks.

    Example:
        >>> store = RedisStore(RedisConfig(url="redis://localhost:6379/0"))
        >>> await store.initialize()
        >>> registry = RedisRegistry(store.client)
        >>> await store.close()
    """

    def __init__(self, config: RedisConfig) -> None:
        """Initialize RedisStore.

        Args:
            config: Redis configuration.

        Raises:
            ValueError: If the URL is empty or has an unsupported scheme.
        """
        if not config.url:
            raise ValueError("Redis URL cannot be empty")

        self._validate_url(config.url)
        self._config = config
        self._client: redis.Redis | None = None

    def _validate_url(self, url: str) -> None:
        scheme = urlparse(url).scheme
        if scheme not in SUPPORTED_SCHEMES:
            raise ValueError(f"Invalid Redis URL format: {url}")

    @property
    def url(self) -> str:
        """Get the connection URL."""
        return self._config.url

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client.

        Raises:
            RuntimeError: If the store is not initialized.
        """
        if self._client is None:
            raise RuntimeError("Store not initialized. Call initialize() first.")
        return self._client

    async def initialize(self) -> None:
        """Create the client and check that the server answers.

        Raises:
            StoreError: If the server cannot be reached.
        """
        client = redis.Redis.from_url(
            self._config.url,
            decode_responses=True,
            socket_timeout=self._config.socket_timeout,
            socket_connect_timeout=self._config.socket_connect_timeout,
        )
        try:
            await client.ping()
        except redis.RedisError as e:
            await client.aclose()
            raise StoreError(f"Failed to connect to redis: {e}") from e
        self._client = client

    async def close(self) -> None:
        """Close the client and its connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
