"""In-process PubSub adapter.

Delivers messages to subscriptions held by the current process only. Each
subscription owns an unbounded queue; ``listen()`` yields redis-shaped
message dicts so consumers work unchanged against either adapter.
"""

from __future__ import annotations

import asyncio
import json
from collections import defaultdict
from typing import Any, AsyncIterator


class InMemorySubscription:
    """A single subscriber's view of one channel."""

    def __init__(self, owner: "InMemoryPubSub", channel: str) -> None:
        self._owner = owner
        self.channel = channel
        self._queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()
        self.closed = False

    def deliver(self, message: str) -> None:
        self._queue.put_nowait({"type": "message", "channel": self.channel, "data": message})

    async def listen(self) -> AsyncIterator[dict[str, Any]]:
        yield {"type": "subscribe", "channel": self.channel, "data": 1}
        while True:
            item = await self._queue.get()
            if item is None:
                return
            yield item

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._owner._detach(self)
        self._queue.put_nowait(None)


class InMemoryPubSub:
    """Single-process implementation of the PubSub protocol."""

    def __init__(self) -> None:
        self._channels: dict[str, set[InMemorySubscription]] = defaultdict(set)

    @staticmethod
    def make_channel(namespace: str, id_str: str) -> str:
        return f"{namespace}:{id_str}"

    async def publish(self, namespace: str, id_value: Any, data: Any) -> int:
        channel = self.make_channel(namespace, str(id_value))
        message = data if isinstance(data, str) else json.dumps(data)
        subscribers = list(self._channels.get(channel, ()))
        for sub in subscribers:
            sub.deliver(message)
        return len(subscribers)

    async def subscribe(self, namespace: str, id_value: Any) -> InMemorySubscription:
        channel = self.make_channel(namespace, str(id_value))
        sub = InMemorySubscription(self, channel)
        self._channels[channel].add(sub)
        return sub

    def subscriber_count(self, namespace: str, id_value: Any) -> int:
        return len(self._channels.get(self.make_channel(namespace, str(id_value)), ()))

    def _detach(self, sub: InMemorySubscription) -> None:
        subs = self._channels.get(sub.channel)
        if subs is None:
            return
        subs.discard(sub)
        if not subs:
            del self._channels[sub.channel]
