"""Stripe event adapter.

Translates verified Stripe envelopes into the closed set of billing domain
events. This is the only module that knows Stripe event type strings and
object shapes; the state machine only ever sees typed domain events.

A required field that is absent (a checkout without its subscription, an
active subscription without a period end) raises EventTranslationError so
the delivery is rejected instead of writing a partial state.
"""

from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from tierwave.core.protocols.billing_provider import BillingProviderProtocol, ProviderSubscription
from tierwave.domains.billing.exceptions import (
    EventTranslationError,
    WebhookVerificationError,
    wrap_gateway_errors,
)
from tierwave.domains.billing.protocols import EventAdapterProtocol
from tierwave.domains.billing.types import (
    ACTIVATING_PROVIDER_STATUSES,
    BillingIdentity,
    CheckoutCompleted,
    PaymentFailed,
    PaymentSucceeded,
    SubscriptionActivated,
    SubscriptionDeleted,
    TranslatedEvent,
)
from tierwave.schemas.webhook import (
    CheckoutSessionObject,
    InvoiceObject,
    SubscriptionObject,
    WebhookEnvelope,
)


def parse_envelope(raw: dict[str, Any]) -> WebhookEnvelope:
    """Validate a decoded event body into a WebhookEnvelope."""
    try:
        return WebhookEnvelope.model_validate(raw)
    except ValidationError as e:
        raise WebhookVerificationError(
            f"Malformed event envelope: {e.error_count()} error(s)"
        ) from e


def _summary(envelope: WebhookEnvelope, **extra: Any) -> dict[str, Any]:
    """Redacted, minimal record of what an event carried."""
    obj = envelope.data.object
    metadata = obj.get("metadata") or {}
    summary = {
        "object_id": envelope.object_id,
        "customer": obj.get("customer") if isinstance(obj.get("customer"), str) else None,
        "metadata_user_id": metadata.get("userId") if isinstance(metadata, dict) else None,
        "mode": obj.get("mode"),
        "status": obj.get("status"),
    }
    summary.update(extra)
    return summary


class StripeEventAdapter(EventAdapterProtocol):
    """Translate Stripe webhook envelopes into billing domain events."""

    def __init__(self, provider: BillingProviderProtocol) -> None:
        """Initialize with the provider used to read subscriptions back."""
        self._provider = provider
        self._translators: dict[
            str, Callable[[WebhookEnvelope], Awaitable[TranslatedEvent]]
        ] = {
            "checkout.session.completed": self._checkout_completed,
            "customer.subscription.created": self._subscription_changed,
            "customer.subscription.updated": self._subscription_changed,
            "customer.subscription.deleted": self._subscription_deleted,
            "invoice.payment_succeeded": self._payment_succeeded,
            "invoice.payment_failed": self._payment_failed,
        }

    def handles(self, event_type: str) -> bool:
        return event_type in self._translators

    async def translate(self, envelope: WebhookEnvelope) -> TranslatedEvent:
        """Translate one envelope; unknown event types become ignored translations."""
        translator = self._translators.get(envelope.type)
        if translator is None:
            return self._ignored(envelope, "unhandled_event_type")
        return await translator(envelope)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _ignored(
        envelope: WebhookEnvelope,
        reason: str,
        identity: Optional[BillingIdentity] = None,
        **summary: Any,
    ) -> TranslatedEvent:
        return TranslatedEvent(
            event_id=envelope.id,
            event_type=envelope.type,
            event=None,
            identity=identity or BillingIdentity(),
            session_id=envelope.object_id,
            summary=_summary(envelope, **summary),
            ignore_reason=reason,
        )

    @staticmethod
    def _parse(model: type, envelope: WebhookEnvelope) -> Any:
        try:
            return model.model_validate(envelope.data.object)
        except ValidationError as e:
            raise WebhookVerificationError(
                f"{envelope.type}: malformed {model.__name__}: {e.error_count()} error(s)"
            ) from e

    @wrap_gateway_errors
    async def _fetch_subscription(self, subscription_id: str) -> ProviderSubscription:
        return await self._provider.get_subscription(subscription_id)

    # ------------------------------------------------------------------
    # Translators
    # ------------------------------------------------------------------

    async def _checkout_completed(self, envelope: WebhookEnvelope) -> TranslatedEvent:
        session: CheckoutSessionObject = self._parse(CheckoutSessionObject, envelope)
        if session.mode != "subscription":
            return self._ignored(envelope, "not_subscription_mode")
        if not session.subscription:
            raise EventTranslationError(envelope.type, "subscription")

        subscription = await self._fetch_subscription(session.subscription)
        identity = BillingIdentity(
            customer_id=session.customer or subscription.customer_id,
            metadata_user_id=session.metadata_user_id
            or subscription.metadata.get("userId")
            or subscription.metadata.get("user_id"),
            client_reference_id=session.client_reference_id,
        )
        summary = {
            "subscription_id": subscription.id,
            "subscription_status": subscription.status,
            "subscription_metadata_user_id": subscription.metadata.get("userId"),
        }
        if subscription.status not in ACTIVATING_PROVIDER_STATUSES:
            return self._ignored(
                envelope, f"subscription_{subscription.status}", identity, **summary
            )
        if subscription.current_period_end is None:
            raise EventTranslationError(envelope.type, "current_period_end")

        return TranslatedEvent(
            event_id=envelope.id,
            event_type=envelope.type,
            event=CheckoutCompleted(
                subscription_id=subscription.id,
                period_end=subscription.current_period_end,
                customer_id=identity.customer_id,
                cancel_at_period_end=subscription.cancel_at_period_end,
                occurred_at=envelope.created_at,
            ),
            identity=identity,
            session_id=session.id,
            summary=_summary(envelope, **summary),
        )

    async def _subscription_changed(self, envelope: WebhookEnvelope) -> TranslatedEvent:
        subscription: SubscriptionObject = self._parse(SubscriptionObject, envelope)
        if not subscription.id:
            raise EventTranslationError(envelope.type, "id")
        identity = BillingIdentity(
            customer_id=subscription.customer,
            metadata_user_id=subscription.metadata_user_id,
        )
        if subscription.status not in ACTIVATING_PROVIDER_STATUSES:
            return self._ignored(envelope, f"subscription_{subscription.status}", identity)
        period_end = subscription.period_end
        if period_end is None:
            raise EventTranslationError(envelope.type, "current_period_end")

        return TranslatedEvent(
            event_id=envelope.id,
            event_type=envelope.type,
            event=SubscriptionActivated(
                subscription_id=subscription.id,
                period_end=period_end,
                customer_id=subscription.customer,
                cancel_at_period_end=subscription.cancel_at_period_end,
                occurred_at=envelope.created_at,
            ),
            identity=identity,
            session_id=subscription.id,
            summary=_summary(envelope),
        )

    async def _subscription_deleted(self, envelope: WebhookEnvelope) -> TranslatedEvent:
        subscription: SubscriptionObject = self._parse(SubscriptionObject, envelope)
        return TranslatedEvent(
            event_id=envelope.id,
            event_type=envelope.type,
            event=SubscriptionDeleted(
                subscription_id=subscription.id,
                occurred_at=envelope.created_at,
            ),
            identity=BillingIdentity(
                customer_id=subscription.customer,
                metadata_user_id=subscription.metadata_user_id,
            ),
            session_id=subscription.id,
            summary=_summary(envelope),
        )

    async def _payment_succeeded(self, envelope: WebhookEnvelope) -> TranslatedEvent:
        invoice: InvoiceObject = self._parse(InvoiceObject, envelope)
        identity = BillingIdentity(
            customer_id=invoice.customer,
            metadata_user_id=invoice.metadata_user_id,
        )
        subscription_id = invoice.subscription_id
        if not subscription_id:
            return self._ignored(envelope, "no_subscription", identity)

        subscription = await self._fetch_subscription(subscription_id)
        summary = {"subscription_id": subscription.id, "subscription_status": subscription.status}
        if subscription.status not in ACTIVATING_PROVIDER_STATUSES:
            return self._ignored(
                envelope, f"subscription_{subscription.status}", identity, **summary
            )
        if subscription.current_period_end is None:
            raise EventTranslationError(envelope.type, "current_period_end")

        if identity.metadata_user_id is None:
            identity = BillingIdentity(
                customer_id=identity.customer_id or subscription.customer_id,
                metadata_user_id=subscription.metadata.get("userId"),
            )

        return TranslatedEvent(
            event_id=envelope.id,
            event_type=envelope.type,
            event=PaymentSucceeded(
                subscription_id=subscription.id,
                period_end=subscription.current_period_end,
                customer_id=identity.customer_id,
                cancel_at_period_end=subscription.cancel_at_period_end,
                occurred_at=envelope.created_at,
            ),
            identity=identity,
            session_id=invoice.id,
            summary=_summary(envelope, **summary),
        )

    async def _payment_failed(self, envelope: WebhookEnvelope) -> TranslatedEvent:
        invoice: InvoiceObject = self._parse(InvoiceObject, envelope)
        identity = BillingIdentity(
            customer_id=invoice.customer,
            metadata_user_id=invoice.metadata_user_id,
        )
        if not invoice.customer and not invoice.metadata_user_id:
            raise EventTranslationError(envelope.type, "customer")
        return TranslatedEvent(
            event_id=envelope.id,
            event_type=envelope.type,
            event=PaymentFailed(
                subscription_id=invoice.subscription_id,
                occurred_at=envelope.created_at,
            ),
            identity=identity,
            session_id=invoice.id,
            summary=_summary(envelope, subscription_id=invoice.subscription_id),
        )
