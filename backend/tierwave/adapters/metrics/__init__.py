"""Metrics adapters: Prometheus and Fake implementations."""

from tierwave.adapters.metrics.billing import (
    FakeBillingMetrics,
    PrometheusBillingMetrics,
    WebhookRecord,
)
from tierwave.adapters.metrics.renderer import FakeMetricsRenderer, PrometheusMetricsRenderer

__all__ = [
    "FakeBillingMetrics",
    "FakeMetricsRenderer",
    "PrometheusBillingMetrics",
    "PrometheusMetricsRenderer",
    "WebhookRecord",
]
