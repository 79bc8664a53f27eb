"""Dependency Injection Container.

The container is an immutable dataclass holding protocol implementations.
Construction logic lives in the factory.

Design principles:
- Container serves, factory builds
- Fail fast: all construction at startup
- Fields are protocol types
- Tests construct it directly with fakes
"""

from dataclasses import dataclass, replace
from typing import Any

from tierwave.core.protocols.billing_provider import BillingProviderProtocol
from tierwave.core.protocols.metrics import BillingMetrics, MetricsRenderer
from tierwave.core.protocols.pubsub import PubSub
from tierwave.domains.billing.protocols import BillingWebhookProtocol, SubscriptionServiceProtocol
from tierwave.domains.notifications.protocols import SubscriptionNotifierProtocol
from tierwave.domains.usage.protocols import UsageCountersProtocol


@dataclass(frozen=True)
class Container:
    """Immutable container holding all protocol implementations.

    Usage:
        # Production: use the global container built by the factory
        from tierwave.core.container import container
        await container.subscription_service.start_trial(db, user_id)

        # Testing: construct directly with fakes (see backend/conftest.py
        # for the test_container fixture)
        test_container = Container(billing_provider=FakeBillingProvider(), ...)

        # FastAPI endpoints: use Inject() to pull individual protocols
        from tierwave.api.deps import Inject
        async def my_endpoint(usage: UsageCountersProtocol = Inject(UsageCountersProtocol)):
            ...
    """

    # External billing provider (Stripe, or Null when disabled)
    billing_provider: BillingProviderProtocol

    # Realtime fan-out to live client connections
    pubsub: PubSub

    # Metrics
    billing_metrics: BillingMetrics
    metrics_renderer: MetricsRenderer

    # Billing domain
    billing_webhook: BillingWebhookProtocol
    subscription_service: SubscriptionServiceProtocol

    # Usage domain
    usage_counters: UsageCountersProtocol

    # Notifications domain
    notifier: SubscriptionNotifierProtocol

    # -----------------------------------------------------------------
    # Convenience methods
    # -----------------------------------------------------------------

    def replace(self, **changes: Any) -> "Container":
        """Create a new container with some dependencies replaced.

        Useful for partial overrides in tests:

            modified = container.replace(billing_provider=FakeBillingProvider())
        """
        return replace(self, **changes)
