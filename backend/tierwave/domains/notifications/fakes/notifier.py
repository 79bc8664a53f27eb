"""Fake subscription notifier for testing."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from tierwave.domains.notifications.protocols import SubscriptionNotifierProtocol


class FakeSubscriptionNotifier(SubscriptionNotifierProtocol):
    """Records every emitted change as ``(user_id, status, expiry)``."""

    def __init__(self) -> None:
        """Initialize with an empty emission log."""
        self.emitted: list[tuple[UUID, str, Optional[datetime]]] = []

    async def emit_subscription_changed(
        self, user_id: UUID, status: str, expiry: Optional[datetime]
    ) -> int:
        self.emitted.append((user_id, status, expiry))
        return 1

    def for_user(self, user_id: UUID) -> list[tuple[str, Optional[datetime]]]:
        """Emissions for one user, without the user id."""
        return [(status, expiry) for uid, status, expiry in self.emitted if uid == user_id]
