"""Billing domain test fixtures and helpers.

Provides pre-built helpers for subscription records, Stripe event shapes and
service/processor wiring over in-memory fakes.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from unittest.mock import AsyncMock
from uuid import UUID

import pytest

from tierwave.adapters.metrics.billing import FakeBillingMetrics
from tierwave.adapters.payment.fake import FakeBillingProvider
from tierwave.core.protocols.billing_provider import ProviderSubscription
from tierwave.domains.billing.adapter import StripeEventAdapter
from tierwave.domains.billing.fakes.repository import (
    FakeSubscriptionRepository,
    FakeWebhookEventRepository,
)
from tierwave.domains.billing.ledger import IdempotencyLedger
from tierwave.domains.billing.resolver import UserResolver
from tierwave.domains.billing.service import SubscriptionService
from tierwave.domains.billing.types import (
    Plan,
    SubscriptionPolicy,
    SubscriptionRecord,
    SubscriptionStatus,
)
from tierwave.domains.billing.webhook_processor import BillingWebhookProcessor
from tierwave.domains.notifications.fakes.notifier import FakeSubscriptionNotifier
from tierwave.domains.usage.fakes.counters import FakeUsageCounters

# Default test IDs
DEFAULT_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
OTHER_USER_ID = UUID("00000000-0000-0000-0000-000000000002")
CUSTOMER_ID = "cus_test"
SUBSCRIPTION_ID = "sub_test"

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
PERIOD_END = NOW + timedelta(days=30)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ts(value: datetime) -> int:
    return int(value.timestamp())


def _make_record(user_id: UUID = DEFAULT_USER_ID, **overrides: Any) -> SubscriptionRecord:
    """Return a free-plan SubscriptionRecord with overrides applied."""
    return SubscriptionRecord(user_id=user_id, **overrides)


def _make_paid_record(user_id: UUID = DEFAULT_USER_ID, **overrides: Any) -> SubscriptionRecord:
    """Return an active paid record linked to CUSTOMER_ID / SUBSCRIPTION_ID."""
    defaults: dict[str, Any] = dict(
        plan=Plan.PAID,
        status=SubscriptionStatus.ACTIVE,
        paid_until=PERIOD_END,
        customer_id=CUSTOMER_ID,
        subscription_id=SUBSCRIPTION_ID,
        one_time_bonus_granted=True,
        xp=250,
    )
    defaults.update(overrides)
    return SubscriptionRecord(user_id=user_id, **defaults)


def _make_policy(**overrides: Any) -> SubscriptionPolicy:
    return SubscriptionPolicy(**overrides)


def _provider_subscription(
    subscription_id: str = SUBSCRIPTION_ID,
    *,
    status: str = "active",
    customer_id: Optional[str] = CUSTOMER_ID,
    period_end: Optional[datetime] = PERIOD_END,
    user_id: Optional[UUID] = DEFAULT_USER_ID,
    cancel_at_period_end: bool = False,
) -> ProviderSubscription:
    return ProviderSubscription(
        id=subscription_id,
        status=status,
        customer_id=customer_id,
        current_period_end=period_end,
        metadata={"userId": str(user_id)} if user_id else {},
        cancel_at_period_end=cancel_at_period_end,
    )


# ---------------------------------------------------------------------------
# Stripe event shapes
# ---------------------------------------------------------------------------


def _event(
    event_type: str,
    obj: dict[str, Any],
    *,
    event_id: str = "evt_test",
    created: datetime = NOW,
) -> dict[str, Any]:
    """Build a Stripe event envelope."""
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": _ts(created),
        "data": {"object": obj},
    }


def _payload(event: dict[str, Any]) -> bytes:
    return json.dumps(event).encode()


def _checkout_session(
    *,
    mode: str = "subscription",
    customer: Optional[str] = CUSTOMER_ID,
    subscription: Optional[str] = SUBSCRIPTION_ID,
    user_id: Optional[UUID] = DEFAULT_USER_ID,
    client_reference_id: Optional[str] = None,
) -> dict[str, Any]:
    return {
        "id": "cs_test",
        "object": "checkout.session",
        "mode": mode,
        "status": "complete",
        "customer": customer,
        "subscription": subscription,
        "client_reference_id": client_reference_id,
        "metadata": {"userId": str(user_id)} if user_id else {},
    }


def _subscription_object(
    *,
    subscription_id: str = SUBSCRIPTION_ID,
    status: str = "active",
    customer: Optional[str] = CUSTOMER_ID,
    period_end: Optional[datetime] = PERIOD_END,
    user_id: Optional[UUID] = DEFAULT_USER_ID,
    cancel_at_period_end: bool = False,
) -> dict[str, Any]:
    return {
        "id": subscription_id,
        "object": "subscription",
        "status": status,
        "customer": customer,
        "current_period_end": _ts(period_end) if period_end else None,
        "cancel_at_period_end": cancel_at_period_end,
        "metadata": {"userId": str(user_id)} if user_id else {},
    }


def _invoice(
    *,
    invoice_id: str = "in_test",
    customer: Optional[str] = CUSTOMER_ID,
    subscription: Optional[str] = SUBSCRIPTION_ID,
) -> dict[str, Any]:
    return {
        "id": invoice_id,
        "object": "invoice",
        "customer": customer,
        "subscription": subscription,
    }


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


@dataclass
class _Harness:
    """A BillingWebhookProcessor / SubscriptionService wired to fakes."""

    processor: BillingWebhookProcessor
    service: SubscriptionService
    provider: FakeBillingProvider
    repo: FakeSubscriptionRepository
    events: FakeWebhookEventRepository
    usage: FakeUsageCounters
    notifier: FakeSubscriptionNotifier
    metrics: FakeBillingMetrics

    def record(self, user_id: UUID = DEFAULT_USER_ID) -> SubscriptionRecord:
        return self.repo.current(user_id)


def _make_service(
    *,
    repo: Optional[FakeSubscriptionRepository] = None,
    provider: Optional[FakeBillingProvider] = None,
    policy: Optional[SubscriptionPolicy] = None,
    now: datetime = NOW,
) -> tuple[
    SubscriptionService,
    FakeSubscriptionRepository,
    FakeBillingProvider,
    FakeUsageCounters,
    FakeSubscriptionNotifier,
    FakeBillingMetrics,
]:
    """Build a SubscriptionService wired to fakes. Returns (service, *fakes)."""
    repo = repo or FakeSubscriptionRepository()
    provider = provider or FakeBillingProvider()
    usage = FakeUsageCounters()
    notifier = FakeSubscriptionNotifier()
    metrics = FakeBillingMetrics()
    svc = SubscriptionService(
        subscription_repo=repo,
        billing_provider=provider,
        usage=usage,
        notifier=notifier,
        metrics=metrics,
        policy=policy or SubscriptionPolicy(),
        price_sek=39,
        clock=lambda: now,
    )
    return svc, repo, provider, usage, notifier, metrics


def _make_webhook_processor(
    *records: SubscriptionRecord,
    subscriptions: tuple[ProviderSubscription, ...] = (),
    policy: Optional[SubscriptionPolicy] = None,
    now: datetime = NOW,
) -> _Harness:
    """Build a BillingWebhookProcessor wired to fakes, seeded with *records*."""
    svc, repo, provider, usage, notifier, metrics = _make_service(policy=policy, now=now)
    for record in records:
        repo.seed(record)
    for subscription in subscriptions:
        provider.seed_subscription(subscription)

    events = FakeWebhookEventRepository()
    processor = BillingWebhookProcessor(
        billing_provider=provider,
        event_adapter=StripeEventAdapter(provider),
        ledger=IdempotencyLedger(events),
        resolver=UserResolver(repo),
        subscriptions=svc,
        metrics=metrics,
    )
    return _Harness(
        processor=processor,
        service=svc,
        provider=provider,
        repo=repo,
        events=events,
        usage=usage,
        notifier=notifier,
        metrics=metrics,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db():
    """AsyncMock database session; fakes ignore it."""
    return AsyncMock()
