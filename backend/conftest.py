"""Root conftest for pytest configuration and shared fixtures.

Loaded before the colocated tests under tierwave/, making its fixtures
available to domain, adapter and API tests alike.
"""

import os

import pytest

# ---------------------------------------------------------------------------
# Environment variables: must be set before any tierwave module import.
# Uses setdefault so real env vars (CI) are never overridden.
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "test_user")
os.environ.setdefault("POSTGRES_PASSWORD", "test_password")
os.environ.setdefault("POSTGRES_DB", "test_db")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-minimum-32-characters")
os.environ.setdefault("STRIPE_ENABLED", "false")
os.environ.setdefault("PUBSUB_BACKEND", "memory")
os.environ.setdefault("METRICS_ENABLED", "false")


# ---------------------------------------------------------------------------
# Shared fake fixtures: individual protocol fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_billing_provider():
    """Fake BillingProviderProtocol accepting VALID_SIGNATURE."""
    from tierwave.adapters.payment.fake import FakeBillingProvider

    return FakeBillingProvider()


@pytest.fixture
def fake_pubsub():
    """Fake PubSub that records published messages."""
    from tierwave.adapters.pubsub.fake import FakePubSub

    return FakePubSub()


@pytest.fixture
def fake_billing_metrics():
    """Fake BillingMetrics that records every call."""
    from tierwave.adapters.metrics import FakeBillingMetrics

    return FakeBillingMetrics()


@pytest.fixture
def fake_metrics_renderer():
    """Fake MetricsRenderer returning a fixed body."""
    from tierwave.adapters.metrics import FakeMetricsRenderer

    return FakeMetricsRenderer()


@pytest.fixture
def fake_subscription_repo():
    """In-memory subscription records with compare-and-set semantics."""
    from tierwave.domains.billing.fakes import FakeSubscriptionRepository

    return FakeSubscriptionRepository()


@pytest.fixture
def fake_webhook_event_repo():
    """In-memory processed-event ledger."""
    from tierwave.domains.billing.fakes import FakeWebhookEventRepository

    return FakeWebhookEventRepository()


@pytest.fixture
def fake_usage_counters():
    """In-memory usage counters (two free images per day)."""
    from tierwave.domains.usage.fakes import FakeUsageCounters

    return FakeUsageCounters()


@pytest.fixture
def fake_notifier():
    """Notifier fake that records emitted subscription changes."""
    from tierwave.domains.notifications.fakes import FakeSubscriptionNotifier

    return FakeSubscriptionNotifier()


# ---------------------------------------------------------------------------
# Composite container
# ---------------------------------------------------------------------------


@pytest.fixture
def test_container(
    fake_billing_provider,
    fake_pubsub,
    fake_billing_metrics,
    fake_metrics_renderer,
    fake_subscription_repo,
    fake_webhook_event_repo,
    fake_usage_counters,
    fake_notifier,
):
    """A Container whose services run on fakes.

    SubscriptionService and BillingWebhookProcessor are the real classes,
    wired to in-memory repositories and adapters.

    For partial overrides, use container.replace():
        modified = test_container.replace(pubsub=InMemoryPubSub())
    """
    from tierwave.core.container import Container
    from tierwave.domains.billing.adapter import StripeEventAdapter
    from tierwave.domains.billing.ledger import IdempotencyLedger
    from tierwave.domains.billing.resolver import UserResolver
    from tierwave.domains.billing.service import SubscriptionService
    from tierwave.domains.billing.types import SubscriptionPolicy
    from tierwave.domains.billing.webhook_processor import BillingWebhookProcessor

    subscription_service = SubscriptionService(
        subscription_repo=fake_subscription_repo,
        billing_provider=fake_billing_provider,
        usage=fake_usage_counters,
        notifier=fake_notifier,
        metrics=fake_billing_metrics,
        policy=SubscriptionPolicy(),
        price_sek=39,
    )
    billing_webhook = BillingWebhookProcessor(
        billing_provider=fake_billing_provider,
        event_adapter=StripeEventAdapter(fake_billing_provider),
        ledger=IdempotencyLedger(fake_webhook_event_repo),
        resolver=UserResolver(fake_subscription_repo),
        subscriptions=subscription_service,
        metrics=fake_billing_metrics,
    )

    return Container(
        billing_provider=fake_billing_provider,
        pubsub=fake_pubsub,
        billing_metrics=fake_billing_metrics,
        metrics_renderer=fake_metrics_renderer,
        billing_webhook=billing_webhook,
        subscription_service=subscription_service,
        usage_counters=fake_usage_counters,
        notifier=fake_notifier,
    )
