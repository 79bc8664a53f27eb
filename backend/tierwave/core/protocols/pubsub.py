"""PubSub protocol for realtime message fan-out to live client connections.

Decouples producers (the subscription notifier) from the transport layer.
The default adapter is InMemoryPubSub; multi-replica deployments use
RedisPubSub so an update reaches a connection held by any replica.
"""

from typing import Any, AsyncIterator, Protocol, runtime_checkable


@runtime_checkable
class PubSubSubscription(Protocol):
    """Handle returned by ``PubSub.subscribe``.

    Mirrors the subset of ``redis.asyncio.client.PubSub`` consumers rely on:
    ``listen()`` yields dicts with ``type`` and ``data`` keys, where
    ``type == "message"`` marks a published payload.
    """

    def listen(self) -> AsyncIterator[dict[str, Any]]: ...

    async def close(self) -> None: ...


@runtime_checkable
class PubSub(Protocol):
    """Protocol for namespaced publish/subscribe messaging.

    Used by:
    - SubscriptionNotifier: publishes ``subscription.updated`` messages
    - Realtime websocket endpoint: subscribes per connected user

    Implementations:
    - InMemoryPubSub - adapters/pubsub/in_memory.py
    - RedisPubSub - adapters/pubsub/redis.py
    - FakePubSub - adapters/pubsub/fake.py (tests)
    """

    async def publish(self, namespace: str, id_value: Any, data: Any) -> int:
        """Publish a message to a namespaced channel.

        Args:
            namespace: Logical namespace (e.g., "subscription")
            id_value: Identifier for the channel (e.g., user_id)
            data: Payload, dict (JSON-encoded by impl) or pre-encoded string

        Returns:
            Number of subscribers that received the message.
        """
        ...

    async def subscribe(self, namespace: str, id_value: Any) -> PubSubSubscription:
        """Subscribe to a namespaced channel for consuming messages."""
        ...
