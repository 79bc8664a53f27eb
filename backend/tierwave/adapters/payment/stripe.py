"""Stripe billing provider adapter.

Implements BillingProviderProtocol on top of the ``stripe`` SDK. Blocking
SDK calls run in a worker thread so the event loop never waits on Stripe.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import stripe

from tierwave.core.exceptions import ExternalServiceError
from tierwave.core.protocols.billing_provider import BillingProviderProtocol, ProviderSubscription
from tierwave.domains.billing.exceptions import WebhookVerificationError

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_SECONDS = 300


def _get(obj: Any, key: str) -> Any:
    """Read *key* from a Stripe object or plain dict, None when absent."""
    if obj is None:
        return None
    try:
        return obj[key]
    except (KeyError, TypeError):
        return None


def _to_datetime(ts: Optional[int]) -> Optional[datetime]:
    if ts is None:
        return None
    return datetime.fromtimestamp(int(ts), tz=timezone.utc)


def period_end_of(subscription: Any) -> Optional[datetime]:
    """Return the subscription's current period end.

    Newer API versions moved ``current_period_end`` from the subscription
    onto its items; the first item's value is used in that case.
    """
    top_level = _get(subscription, "current_period_end")
    if top_level is not None:
        return _to_datetime(top_level)
    items = _get(_get(subscription, "items"), "data") or []
    for item in items:
        item_end = _get(item, "current_period_end")
        if item_end is not None:
            return _to_datetime(item_end)
    return None


def to_provider_subscription(subscription: Any) -> ProviderSubscription:
    """Convert a Stripe subscription object into a ProviderSubscription."""
    customer = _get(subscription, "customer")
    if not isinstance(customer, str):
        customer = _get(customer, "id")
    metadata = _get(subscription, "metadata") or {}
    return ProviderSubscription(
        id=_get(subscription, "id"),
        status=_get(subscription, "status") or "",
        customer_id=customer,
        current_period_end=period_end_of(subscription),
        metadata={str(k): str(v) for k, v in dict(metadata).items()},
        cancel_at_period_end=bool(_get(subscription, "cancel_at_period_end")),
    )


class StripeBillingProvider(BillingProviderProtocol):
    """Stripe-backed billing provider."""

    def __init__(
        self,
        api_key: Optional[str],
        webhook_secrets: dict[str, str],
        tolerance: int = DEFAULT_TOLERANCE_SECONDS,
    ) -> None:
        """Initialize with the API key and the per-registration signing secrets."""
        self._api_key = api_key
        self._webhook_secrets = dict(webhook_secrets)
        self._tolerance = tolerance

    # -------------------------------------------------------------------------
    # Webhook operations
    # -------------------------------------------------------------------------

    def verify_webhook_signature(
        self, payload: bytes, signature: str, registration_id: str
    ) -> dict[str, Any]:
        """Verify the Stripe-Signature header and decode the event body."""
        secret = self._webhook_secrets.get(registration_id)
        if not secret:
            raise WebhookVerificationError(f"Unknown webhook registration '{registration_id}'")

        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(body, signature, secret, self._tolerance)
        except UnicodeDecodeError as e:
            raise WebhookVerificationError("Webhook body is not valid UTF-8") from e
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError(f"Invalid webhook signature: {e}") from e

        try:
            event = json.loads(body)
        except json.JSONDecodeError as e:
            raise WebhookVerificationError("Webhook body is not valid JSON") from e
        if not isinstance(event, dict):
            raise WebhookVerificationError("Webhook body is not a JSON object")
        return event

    # -------------------------------------------------------------------------
    # Subscription operations
    # -------------------------------------------------------------------------

    async def get_subscription(self, subscription_id: str) -> ProviderSubscription:
        """Retrieve a subscription by id."""
        try:
            subscription = await asyncio.to_thread(
                stripe.Subscription.retrieve, subscription_id, api_key=self._api_key
            )
        except stripe.StripeError as e:
            logger.warning("Stripe subscription retrieve failed for %s: %s", subscription_id, e)
            raise ExternalServiceError("Stripe", str(e)) from e
        return to_provider_subscription(subscription)

    async def set_cancel_at_period_end(
        self, subscription_id: str, cancel_at_period_end: bool
    ) -> ProviderSubscription:
        """Flip ``cancel_at_period_end`` on the Stripe subscription."""
        try:
            subscription = await asyncio.to_thread(
                stripe.Subscription.modify,
                subscription_id,
                cancel_at_period_end=cancel_at_period_end,
                api_key=self._api_key,
            )
        except stripe.StripeError as e:
            logger.warning("Stripe subscription modify failed for %s: %s", subscription_id, e)
            raise ExternalServiceError("Stripe", str(e)) from e
        return to_provider_subscription(subscription)
