"""Redis-backed PubSub adapter.

Channels are ``<namespace>:<id>`` (``subscription:<user_id>``). Publishing
goes through the shared pooled client; every subscription opens its own
connection, since a websocket may hold it for hours and a subscribed
connection cannot serve other commands.
"""

from __future__ import annotations

import json
import platform
import socket
from typing import Any, AsyncIterator

import redis.asyncio as redis

from tierwave.core.redis_client import build_redis_url, redis_client


def _keepalive_options() -> dict:
    if platform.system() == "Darwin" or not hasattr(socket, "TCP_KEEPIDLE"):
        return {}
    return {
        socket.TCP_KEEPIDLE: 60,
        socket.TCP_KEEPINTVL: 10,
        socket.TCP_KEEPCNT: 6,
    }


class RedisSubscription:
    """One subscribed channel and the connection dedicated to it."""

    def __init__(self, connection: redis.Redis, pubsub: redis.client.PubSub) -> None:
        self._connection = connection
        self._pubsub = pubsub

    def listen(self) -> AsyncIterator[dict[str, Any]]:
        return self._pubsub.listen()

    async def close(self) -> None:
        """Unsubscribe and release the dedicated connection."""
        try:
            await self._pubsub.aclose()
        finally:
            await self._connection.aclose()


class RedisPubSub:
    """PubSub over Redis; reaches subscribers held by any API replica."""

    @staticmethod
    def make_channel(namespace: str, id_str: str) -> str:
        return f"{namespace}:{id_str}"

    async def publish(self, namespace: str, id_value: Any, data: Any) -> int:
        """Publish *data* (JSON-encoded unless already a string); returns receiver count."""
        channel = self.make_channel(namespace, str(id_value))
        payload = data if isinstance(data, str) else json.dumps(data)
        return await redis_client.publish(channel, payload)

    async def subscribe(self, namespace: str, id_value: Any) -> RedisSubscription:
        connection = redis.from_url(
            build_redis_url(),
            decode_responses=True,
            socket_keepalive=True,
            socket_connect_timeout=5,
            socket_keepalive_options=_keepalive_options(),
        )
        pubsub = connection.pubsub()
        try:
            await pubsub.subscribe(self.make_channel(namespace, str(id_value)))
        except Exception:
            await connection.aclose()
            raise
        return RedisSubscription(connection, pubsub)
