"""Fake billing provider for testing.

In-memory implementation of BillingProviderProtocol.
Records all calls for assertions. No external API calls.
"""

from __future__ import annotations

import json
from dataclasses import replace
from typing import Any, Optional

from tierwave.core.exceptions import ExternalServiceError
from tierwave.core.protocols.billing_provider import BillingProviderProtocol, ProviderSubscription
from tierwave.domains.billing.exceptions import WebhookVerificationError

VALID_SIGNATURE = "t=1,v1=fake"
DEFAULT_REGISTRATION = "primary"


class FakeBillingProvider(BillingProviderProtocol):
    """Test implementation of BillingProviderProtocol.

    A payload verifies when the signature equals ``VALID_SIGNATURE`` and the
    registration id is known; the body is then decoded as JSON.

    Usage::

        fake = FakeBillingProvider()
        fake.seed_subscription(ProviderSubscription(id="sub_1", status="active", ...))
        sub = await fake.get_subscription("sub_1")
        assert fake.call_count("get_subscription") == 1
    """

    def __init__(
        self,
        registrations: Optional[set[str]] = None,
        should_raise: Optional[Exception] = None,
    ) -> None:
        """Initialize with known registrations and optional error injection."""
        self._registrations = registrations or {DEFAULT_REGISTRATION}
        self._should_raise = should_raise
        self._calls: list[tuple[str, tuple, dict]] = []
        self._subscriptions: dict[str, ProviderSubscription] = {}

    def _record(self, method: str, *args: Any, **kwargs: Any) -> None:
        self._calls.append((method, args, kwargs))
        if self._should_raise:
            raise self._should_raise

    # ---- Test helpers ----

    def seed_subscription(self, subscription: ProviderSubscription) -> None:
        """Make *subscription* retrievable by id."""
        self._subscriptions[subscription.id] = subscription

    def call_count(self, method: str) -> int:
        """Number of times a method was called."""
        return sum(1 for name, _, _ in self._calls if name == method)

    def calls_for(self, method: str) -> list[tuple[tuple, dict]]:
        """Return (args, kwargs) for each call to *method*."""
        return [(a, k) for name, a, k in self._calls if name == method]

    # ---- Webhooks ----

    def verify_webhook_signature(
        self, payload: bytes, signature: str, registration_id: str
    ) -> dict[str, Any]:
        """Accept VALID_SIGNATURE on a known registration and decode the body."""
        self._record("verify_webhook_signature", registration_id)
        if registration_id not in self._registrations:
            raise WebhookVerificationError(f"Unknown webhook registration '{registration_id}'")
        if signature != VALID_SIGNATURE:
            raise WebhookVerificationError("Invalid webhook signature")
        try:
            event = json.loads(payload)
        except ValueError as e:
            raise WebhookVerificationError("Webhook body is not valid JSON") from e
        if not isinstance(event, dict):
            raise WebhookVerificationError("Webhook body is not a JSON object")
        return event

    # ---- Subscriptions ----

    async def get_subscription(self, subscription_id: str) -> ProviderSubscription:
        """Return a seeded subscription."""
        self._record("get_subscription", subscription_id)
        try:
            return self._subscriptions[subscription_id]
        except KeyError:
            raise ExternalServiceError(
                "FakeBillingProvider", f"No such subscription: {subscription_id}"
            ) from None

    async def set_cancel_at_period_end(
        self, subscription_id: str, cancel_at_period_end: bool
    ) -> ProviderSubscription:
        """Flip the flag on a seeded subscription (creating a stub if missing)."""
        self._record("set_cancel_at_period_end", subscription_id, cancel_at_period_end)
        current = self._subscriptions.get(
            subscription_id,
            ProviderSubscription(
                id=subscription_id, status="active", customer_id=None, current_period_end=None
            ),
        )
        updated = replace(current, cancel_at_period_end=cancel_at_period_end)
        self._subscriptions[subscription_id] = updated
        return updated
