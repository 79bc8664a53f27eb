"""Shared Redis client.

Holds one lazily-created connection pool per process. Long-lived pubsub
subscriptions create their own connection (see adapters/pubsub/redis.py).
"""

from typing import Optional
from urllib.parse import quote

import redis.asyncio as redis

from tierwave.core.config import settings


def build_redis_url() -> str:
    """Build the Redis URL from settings, escaping the password if one is set."""
    if settings.REDIS_PASSWORD:
        encoded_pwd = quote(settings.REDIS_PASSWORD, safe="")
        return (
            f"redis://:{encoded_pwd}@{settings.REDIS_HOST}:"
            f"{settings.REDIS_PORT}/{settings.REDIS_DB}"
        )
    return f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}"


class RedisClient:
    """Thin wrapper owning the process-wide Redis connection pool."""

    def __init__(self) -> None:
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                build_redis_url(),
                decode_responses=True,
                socket_connect_timeout=5,
            )
        return self._client

    async def publish(self, channel: str, message: str) -> int:
        return await self.client.publish(channel, message)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


redis_client = RedisClient()
