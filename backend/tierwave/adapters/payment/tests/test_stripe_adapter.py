"""Tests for StripeBillingProvider and its conversion helpers.

Signatures are produced with the same HMAC scheme Stripe uses, so
verification runs through the real SDK without network access.
"""

import hashlib
import hmac
import json
import time
from datetime import datetime, timezone

import pytest
import stripe

from tierwave.adapters.payment.null import NullBillingProvider
from tierwave.adapters.payment.stripe import (
    StripeBillingProvider,
    period_end_of,
    to_provider_subscription,
)
from tierwave.core.exceptions import ExternalServiceError
from tierwave.domains.billing.exceptions import BillingNotAvailableError, WebhookVerificationError

SECRET = "whsec_test_primary"
PERIOD_END = datetime(2026, 3, 31, 12, 0, tzinfo=timezone.utc)


def _sign(body: str, secret: str = SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    digest = hmac.new(
        secret.encode(), f"{timestamp}.{body}".encode(), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={digest}"


def _provider() -> StripeBillingProvider:
    return StripeBillingProvider(api_key="sk_test", webhook_secrets={"primary": SECRET})


def _subscription(**overrides) -> dict:
    sub = {
        "id": "sub_1",
        "status": "active",
        "customer": "cus_1",
        "current_period_end": int(PERIOD_END.timestamp()),
        "cancel_at_period_end": False,
        "metadata": {"userId": "u-1"},
    }
    sub.update(overrides)
    return sub


# ---------------------------------------------------------------------------
# verify_webhook_signature
# ---------------------------------------------------------------------------


class TestVerifyWebhookSignature:
    def test_valid_signature_decodes_event(self):
        body = json.dumps({"id": "evt_1", "type": "invoice.paid"})

        event = _provider().verify_webhook_signature(body.encode(), _sign(body), "primary")

        assert event == {"id": "evt_1", "type": "invoice.paid"}

    def test_each_registration_has_its_own_secret(self):
        provider = StripeBillingProvider(
            api_key=None, webhook_secrets={"primary": SECRET, "connect": "whsec_connect"}
        )
        body = json.dumps({"id": "evt_1"})

        assert provider.verify_webhook_signature(
            body.encode(), _sign(body, "whsec_connect"), "connect"
        )
        with pytest.raises(WebhookVerificationError):
            provider.verify_webhook_signature(
                body.encode(), _sign(body, "whsec_connect"), "primary"
            )

    def test_tampered_body_is_rejected(self):
        body = json.dumps({"id": "evt_1"})
        with pytest.raises(WebhookVerificationError):
            _provider().verify_webhook_signature(
                json.dumps({"id": "evt_2"}).encode(), _sign(body), "primary"
            )

    def test_expired_timestamp_is_rejected(self):
        body = json.dumps({"id": "evt_1"})
        old = int(time.time()) - 3600
        with pytest.raises(WebhookVerificationError):
            _provider().verify_webhook_signature(
                body.encode(), _sign(body, timestamp=old), "primary"
            )

    def test_unknown_registration_is_rejected(self):
        body = json.dumps({"id": "evt_1"})
        with pytest.raises(WebhookVerificationError, match="Unknown webhook registration"):
            _provider().verify_webhook_signature(body.encode(), _sign(body), "missing")

    def test_non_object_body_is_rejected(self):
        body = json.dumps(["evt_1"])
        with pytest.raises(WebhookVerificationError):
            _provider().verify_webhook_signature(body.encode(), _sign(body), "primary")

    def test_verification_error_is_a_value_error(self):
        assert issubclass(WebhookVerificationError, ValueError)


# ---------------------------------------------------------------------------
# Conversion helpers
# ---------------------------------------------------------------------------


class TestPeriodEnd:
    def test_top_level(self):
        assert period_end_of(_subscription()) == PERIOD_END

    def test_falls_back_to_items(self):
        sub = _subscription(current_period_end=None)
        sub["items"] = {"data": [{"current_period_end": int(PERIOD_END.timestamp())}]}
        assert period_end_of(sub) == PERIOD_END

    def test_missing_everywhere(self):
        assert period_end_of(_subscription(current_period_end=None)) is None


def test_to_provider_subscription_normalises_customer():
    converted = to_provider_subscription(
        _subscription(customer={"id": "cus_1", "object": "customer"}, cancel_at_period_end=True)
    )

    assert converted.id == "sub_1"
    assert converted.customer_id == "cus_1"
    assert converted.current_period_end == PERIOD_END
    assert converted.metadata == {"userId": "u-1"}
    assert converted.cancel_at_period_end is True


# ---------------------------------------------------------------------------
# Subscription operations
# ---------------------------------------------------------------------------


class TestSubscriptionOperations:
    @pytest.mark.asyncio
    async def test_get_subscription(self, monkeypatch):
        calls = []

        def _retrieve(subscription_id, **kwargs):
            calls.append((subscription_id, kwargs))
            return _subscription(id=subscription_id)

        monkeypatch.setattr(stripe.Subscription, "retrieve", _retrieve)

        result = await _provider().get_subscription("sub_9")

        assert result.id == "sub_9"
        assert calls == [("sub_9", {"api_key": "sk_test"})]

    @pytest.mark.asyncio
    async def test_set_cancel_at_period_end(self, monkeypatch):
        def _modify(subscription_id, **kwargs):
            return _subscription(id=subscription_id, **kwargs)

        monkeypatch.setattr(stripe.Subscription, "modify", _modify)

        result = await _provider().set_cancel_at_period_end("sub_1", True)

        assert result.cancel_at_period_end is True

    @pytest.mark.asyncio
    async def test_stripe_error_becomes_external_service_error(self, monkeypatch):
        def _retrieve(subscription_id, **kwargs):
            raise stripe.StripeError("No such subscription")

        monkeypatch.setattr(stripe.Subscription, "retrieve", _retrieve)

        with pytest.raises(ExternalServiceError):
            await _provider().get_subscription("sub_missing")


# ---------------------------------------------------------------------------
# NullBillingProvider
# ---------------------------------------------------------------------------


class TestNullBillingProvider:
    def test_rejects_webhooks(self):
        with pytest.raises(WebhookVerificationError):
            NullBillingProvider().verify_webhook_signature(b"{}", "sig", "primary")

    @pytest.mark.asyncio
    async def test_subscription_operations_unavailable(self):
        with pytest.raises(BillingNotAvailableError):
            await NullBillingProvider().get_subscription("sub_1")
        with pytest.raises(BillingNotAvailableError):
            await NullBillingProvider().set_cancel_at_period_end("sub_1", True)
