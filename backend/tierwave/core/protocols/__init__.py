"""Core protocols.

Infrastructure-facing interfaces that adapters implement and the container
binds. Domain-owned protocols live in ``domains/<name>/protocols.py``.
"""

from tierwave.core.protocols.billing_provider import BillingProviderProtocol, ProviderSubscription
from tierwave.core.protocols.metrics import BillingMetrics, MetricsRenderer
from tierwave.core.protocols.pubsub import PubSub, PubSubSubscription

__all__ = [
    "BillingMetrics",
    "BillingProviderProtocol",
    "MetricsRenderer",
    "ProviderSubscription",
    "PubSub",
    "PubSubSubscription",
]
