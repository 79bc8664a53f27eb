"""Subscription notifier.

Publishes ``subscription.updated`` on the ``subscription`` PubSub namespace,
one channel per user. Delivery is best-effort: it runs only after the
database commit, and a publish failure is logged without affecting the
already-applied change.
"""

from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import UUID

from tierwave.core.logging import logger
from tierwave.core.protocols.pubsub import PubSub
from tierwave.domains.notifications.protocols import (
    SUBSCRIPTION_NAMESPACE,
    SubscriptionNotifierProtocol,
)
from tierwave.schemas.subscription import SubscriptionUpdatedMessage


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubscriptionNotifier(SubscriptionNotifierProtocol):
    """Best-effort fan-out over a PubSub adapter."""

    def __init__(self, pubsub: PubSub, clock: Callable[[], datetime] = _utcnow) -> None:
        """Initialize with the PubSub adapter and a clock for message timestamps."""
        self._pubsub = pubsub
        self._clock = clock

    async def emit_subscription_changed(
        self, user_id: UUID, status: str, expiry: Optional[datetime]
    ) -> int:
        """Publish a ``subscription.updated`` message for *user_id*."""
        message = SubscriptionUpdatedMessage(
            subscription_status=status,
            subscription_expiry=expiry,
            timestamp=self._clock(),
        )
        try:
            delivered = await self._pubsub.publish(
                SUBSCRIPTION_NAMESPACE, user_id, message.model_dump(mode="json")
            )
        except Exception as e:
            logger.with_context(user_id=str(user_id)).error(
                f"Failed to publish subscription update: {e}"
            )
            return 0

        logger.debug(f"subscription.updated for {user_id} reached {delivered} connection(s)")
        return delivered
