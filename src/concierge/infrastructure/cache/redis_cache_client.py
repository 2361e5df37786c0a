"""Redis cache client implementation."""

from typing import Optional

import redis.asyncio as aioredis


class RedisCacheClient:
    """
    Redis cache client using async redis library.

    Holds a pooled connection that is released by the "close cache client"
    cleanup hook during shutdown.
    """

    def __init__(self, url: str = "redis://localhost:6379", default_ttl: int = 3600):
        """
        Initialize Redis client configuration.

        Args:
            url: Redis connection URL
            default_ttl: Default key expiration in seconds
        """
        self.url = url
        self.default_ttl = default_ttl
        self._client: Optional[aioredis.Redis] = None

    @property
    def is_connected(self) -> bool:
        """Check if the client has been created."""
        return self._client is not None

    async def connect(self) -> None:
        """Create the client (connections are opened lazily by the pool)."""
        if self._client is not None:
            return

        self._client = aioredis.from_url(
            self.url,
            encoding="utf-8",
            decode_responses=True,
        )

    async def disconnect(self) -> None:
        """Close the client and its connection pool."""
        if self._client is None:
            return

        client, self._client = self._client, None
        await client.aclose()

    async def ping(self) -> bool:
        """
        Check if cache server is reachable.

        Returns:
            True if server responds

        Raises:
            RuntimeError: If the client was never created
            Exception: Connection errors propagate so callers can report them
        """
        if self._client is None:
            raise RuntimeError("Cache client not connected. Call connect() first.")

        return bool(await self._client.ping())
