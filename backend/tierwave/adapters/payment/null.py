"""Null billing provider for when Stripe is disabled.

Satisfies BillingProviderProtocol so the container can always be fully
constructed. Webhooks are rejected with WebhookVerificationError, matching
the Stripe adapter's contract for unknown registrations; subscription
operations raise BillingNotAvailableError.
"""

from typing import Any

from tierwave.core.protocols.billing_provider import BillingProviderProtocol, ProviderSubscription
from tierwave.domains.billing.exceptions import BillingNotAvailableError, WebhookVerificationError


class NullBillingProvider(BillingProviderProtocol):
    """No-op billing provider used when Stripe is disabled."""

    def verify_webhook_signature(
        self, payload: bytes, signature: str, registration_id: str
    ) -> dict[str, Any]:
        """Always reject: no webhook registrations exist without a provider."""
        raise WebhookVerificationError("Billing is not enabled; webhook rejected")

    async def get_subscription(self, subscription_id: str) -> ProviderSubscription:
        """Raise: there is no provider to read from."""
        raise BillingNotAvailableError()

    async def set_cancel_at_period_end(
        self, subscription_id: str, cancel_at_period_end: bool
    ) -> ProviderSubscription:
        """Raise: there is no provider to update."""
        raise BillingNotAvailableError()
