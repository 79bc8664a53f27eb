"""Container Factory.

All construction logic lives here. The factory reads settings and builds
the container with environment-appropriate implementations.

Design principles:
- Single place for all wiring decisions
- Settings-driven: Stripe vs null provider, memory vs Redis pubsub
- Fail fast: broken wiring crashes at startup
"""

from prometheus_client import CollectorRegistry

from tierwave.adapters.metrics import PrometheusBillingMetrics, PrometheusMetricsRenderer
from tierwave.core.config import PubSubBackend, Settings
from tierwave.core.container.container import Container
from tierwave.core.logging import logger
from tierwave.core.protocols.billing_provider import BillingProviderProtocol
from tierwave.core.protocols.metrics import BillingMetrics
from tierwave.core.protocols.pubsub import PubSub
from tierwave.domains.notifications.protocols import SubscriptionNotifierProtocol
from tierwave.domains.usage.protocols import UsageCountersProtocol


def create_container(settings: Settings) -> Container:
    """Build container with environment-appropriate implementations.

    This is the single source of truth for dependency wiring.

    Example:
        from tierwave.core.config import settings
        from tierwave.core.container import create_container

        container = create_container(settings)
    """
    # -----------------------------------------------------------------
    # Infrastructure adapters
    # -----------------------------------------------------------------
    billing_provider = _create_billing_provider(settings)
    pubsub = _create_pubsub(settings)

    # -----------------------------------------------------------------
    # Metrics
    # One registry shared by the billing collectors and the renderer
    # served on the metrics port.
    # -----------------------------------------------------------------
    registry = CollectorRegistry()
    billing_metrics = PrometheusBillingMetrics(registry=registry)
    metrics_renderer = PrometheusMetricsRenderer(registry=registry)

    # -----------------------------------------------------------------
    # Domain services
    # -----------------------------------------------------------------
    usage_counters = _create_usage_counters(settings)
    notifier = _create_notifier(pubsub)
    billing = _create_billing_services(
        settings,
        billing_provider=billing_provider,
        usage_counters=usage_counters,
        notifier=notifier,
        billing_metrics=billing_metrics,
    )

    return Container(
        billing_provider=billing_provider,
        pubsub=pubsub,
        billing_metrics=billing_metrics,
        metrics_renderer=metrics_renderer,
        billing_webhook=billing["billing_webhook"],
        subscription_service=billing["subscription_service"],
        usage_counters=usage_counters,
        notifier=notifier,
    )


# ---------------------------------------------------------------------------
# Private factory functions
# ---------------------------------------------------------------------------


def _create_billing_provider(settings: Settings) -> BillingProviderProtocol:
    """Create billing provider: Stripe if enabled, otherwise a null implementation."""
    if settings.STRIPE_ENABLED:
        from tierwave.adapters.payment.stripe import StripeBillingProvider

        if not settings.STRIPE_WEBHOOK_SECRETS:
            logger.warning("STRIPE_ENABLED is set but no webhook secrets are configured")
        return StripeBillingProvider(
            api_key=settings.STRIPE_SECRET_KEY,
            webhook_secrets=settings.STRIPE_WEBHOOK_SECRETS,
        )

    from tierwave.adapters.payment.null import NullBillingProvider

    return NullBillingProvider()


def _create_pubsub(settings: Settings) -> PubSub:
    """Create the realtime pubsub: Redis for multi-replica fan-out, else in-process."""
    if settings.PUBSUB_BACKEND == PubSubBackend.REDIS:
        from tierwave.adapters.pubsub.redis import RedisPubSub

        return RedisPubSub()

    from tierwave.adapters.pubsub.in_memory import InMemoryPubSub

    return InMemoryPubSub()


def _create_usage_counters(settings: Settings) -> UsageCountersProtocol:
    from tierwave.domains.usage.counters import UsageCounters
    from tierwave.domains.usage.repository import UsageRepository

    return UsageCounters(UsageRepository(), daily_image_limit=settings.FREE_DAILY_IMAGES)


def _create_notifier(pubsub: PubSub) -> SubscriptionNotifierProtocol:
    from tierwave.domains.notifications.notifier import SubscriptionNotifier

    return SubscriptionNotifier(pubsub)


def _create_billing_services(
    settings: Settings,
    *,
    billing_provider: BillingProviderProtocol,
    usage_counters: UsageCountersProtocol,
    notifier: SubscriptionNotifierProtocol,
    billing_metrics: BillingMetrics,
) -> dict:
    """Create subscription service and webhook processor with shared dependencies."""
    from tierwave.domains.billing.adapter import StripeEventAdapter
    from tierwave.domains.billing.ledger import IdempotencyLedger
    from tierwave.domains.billing.repository import (
        SubscriptionRepository,
        WebhookEventRepository,
    )
    from tierwave.domains.billing.resolver import UserResolver
    from tierwave.domains.billing.service import SubscriptionService
    from tierwave.domains.billing.types import SubscriptionPolicy
    from tierwave.domains.billing.webhook_processor import BillingWebhookProcessor

    subscription_repo = SubscriptionRepository()
    subscription_service = SubscriptionService(
        subscription_repo=subscription_repo,
        billing_provider=billing_provider,
        usage=usage_counters,
        notifier=notifier,
        metrics=billing_metrics,
        policy=SubscriptionPolicy.from_settings(settings),
        price_sek=settings.PRICE_SEK,
    )
    billing_webhook = BillingWebhookProcessor(
        billing_provider=billing_provider,
        event_adapter=StripeEventAdapter(billing_provider),
        ledger=IdempotencyLedger(WebhookEventRepository()),
        resolver=UserResolver(subscription_repo),
        subscriptions=subscription_service,
        metrics=billing_metrics,
    )

    return {
        "subscription_service": subscription_service,
        "billing_webhook": billing_webhook,
    }
