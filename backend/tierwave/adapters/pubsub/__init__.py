"""PubSub adapters."""

from tierwave.adapters.pubsub.fake import FakePubSub
from tierwave.adapters.pubsub.in_memory import InMemoryPubSub
from tierwave.adapters.pubsub.redis import RedisPubSub

__all__ = ["FakePubSub", "InMemoryPubSub", "RedisPubSub"]
