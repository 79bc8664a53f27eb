"""Notifications domain protocols."""

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

SUBSCRIPTION_NAMESPACE = "subscription"


@runtime_checkable
class SubscriptionNotifierProtocol(Protocol):
    """Fan-out of subscription changes to a user's live connections."""

    async def emit_subscription_changed(
        self, user_id: UUID, status: str, expiry: Optional[datetime]
    ) -> int:
        """Publish a ``subscription.updated`` message for *user_id*.

        Returns the number of connections reached; never raises.
        """
        ...
