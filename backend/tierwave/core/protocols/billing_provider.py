"""Billing provider protocol.

Cross-cutting infrastructure protocol for the external billing provider
(Stripe). The provider is the source of truth for subscription state; this
service only verifies its webhooks, reads subscriptions back, and flips the
cancel-at-period-end flag on behalf of users.

Direct consumers: BillingWebhookProcessor, SubscriptionService.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class ProviderSubscription:
    """Provider-neutral view of a subscription object."""

    id: str
    status: str
    customer_id: Optional[str]
    current_period_end: Optional[datetime]
    metadata: dict[str, str] = field(default_factory=dict)
    cancel_at_period_end: bool = False


@runtime_checkable
class BillingProviderProtocol(Protocol):
    """Protocol for billing provider operations."""

    # -------------------------------------------------------------------------
    # Webhook operations
    # -------------------------------------------------------------------------

    def verify_webhook_signature(
        self, payload: bytes, signature: str, registration_id: str
    ) -> dict[str, Any]:
        """Verify *payload* against the secret of *registration_id* and decode it.

        Raises:
            WebhookVerificationError: unknown registration, bad signature or
                a body that is not a JSON object.
        """
        ...

    # -------------------------------------------------------------------------
    # Subscription operations
    # -------------------------------------------------------------------------

    async def get_subscription(self, subscription_id: str) -> ProviderSubscription:
        """Retrieve a subscription by id."""
        ...

    async def set_cancel_at_period_end(
        self, subscription_id: str, cancel_at_period_end: bool
    ) -> ProviderSubscription:
        """Schedule (or unschedule) cancellation at the end of the current period."""
        ...
