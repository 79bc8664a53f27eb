"""Fake PubSub adapter for testing.

Records all published messages and subscriptions for assertions
without requiring a real Redis connection.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, AsyncIterator, Optional


class FakeSubscription:
    """Subscription handle that yields its scripted messages, then ends."""

    def __init__(self, messages: Optional[list[dict[str, Any]]] = None) -> None:
        self._messages = list(messages or [])
        self.closed = False

    async def listen(self) -> AsyncIterator[dict[str, Any]]:
        for message in self._messages:
            yield message

    async def close(self) -> None:
        self.closed = True


class FakePubSub:
    """Test implementation of the PubSub protocol.

    Usage:
        fake = FakePubSub()
        await notifier(pubsub=fake).emit_subscription_changed(...)

        assert fake.published[("subscription", str(user_id))][0]["type"] == "subscription.updated"

    ``script()`` queues messages every later subscription will yield, which
    lets realtime tests drive a connection without a live publisher.
    """

    def __init__(self, should_raise: Optional[Exception] = None) -> None:
        """Initialize empty recording state."""
        self.published: dict[tuple[str, str], list[Any]] = defaultdict(list)
        self.subscriptions: list[tuple[str, str]] = []
        self.handles: list[FakeSubscription] = []
        self._scripted: list[dict[str, Any]] = []
        self._should_raise = should_raise

    def script(self, *messages: dict[str, Any]) -> None:
        """Messages yielded by subscriptions opened after this call."""
        self._scripted.extend(messages)

    async def publish(self, namespace: str, id_value: Any, data: Any) -> int:
        """Record a published message and return 1."""
        if self._should_raise:
            raise self._should_raise
        self.published[(namespace, str(id_value))].append(data)
        return 1

    async def subscribe(self, namespace: str, id_value: Any) -> FakeSubscription:
        """Record a subscription and return a handle over the scripted messages."""
        self.subscriptions.append((namespace, str(id_value)))
        handle = FakeSubscription(self._scripted)
        self.handles.append(handle)
        return handle

    def clear(self) -> None:
        """Reset all recorded state."""
        self.published.clear()
        self.subscriptions.clear()
        self.handles.clear()
        self._scripted.clear()
