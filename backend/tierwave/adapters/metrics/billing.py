"""Billing metrics adapters (Prometheus + Fake).

Prometheus implementation registers on a dedicated CollectorRegistry so
billing metrics are isolated from the default global registry.
"""

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram

from tierwave.core.protocols.metrics import BillingMetrics


class PrometheusBillingMetrics(BillingMetrics):
    """Prometheus-backed billing metrics collection."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

        self._webhooks_total = Counter(
            "tierwave_billing_webhooks_total",
            "Billing webhook deliveries by event type and outcome",
            ["event_type", "outcome"],
            registry=self._registry,
        )

        self._transitions_total = Counter(
            "tierwave_subscription_transitions_total",
            "Subscription state machine applications",
            ["event", "accepted"],
            registry=self._registry,
        )

        self._cas_conflicts_total = Counter(
            "tierwave_subscription_cas_conflicts_total",
            "Compare-and-set writes that lost a concurrent update race",
            registry=self._registry,
        )

        self._webhook_duration = Histogram(
            "tierwave_billing_webhook_duration_seconds",
            "Billing webhook processing time in seconds",
            ["event_type"],
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    # -- BillingMetrics protocol methods --

    def inc_webhook(self, event_type: str, outcome: str) -> None:
        self._webhooks_total.labels(event_type=event_type, outcome=outcome).inc()

    def inc_transition(self, event: str, accepted: bool) -> None:
        self._transitions_total.labels(event=event, accepted=str(accepted).lower()).inc()

    def inc_cas_conflict(self) -> None:
        self._cas_conflicts_total.inc()

    def observe_webhook_duration(self, event_type: str, duration: float) -> None:
        self._webhook_duration.labels(event_type=event_type).observe(duration)


# ---------------------------------------------------------------------------
# Fake
# ---------------------------------------------------------------------------


@dataclass
class WebhookRecord:
    """Single observed webhook delivery."""

    event_type: str
    outcome: str


class FakeBillingMetrics(BillingMetrics):
    """In-memory spy implementing the BillingMetrics protocol."""

    def __init__(self) -> None:
        self.webhooks: list[WebhookRecord] = []
        self.transitions: list[tuple[str, bool]] = []
        self.cas_conflicts: int = 0
        self.durations: list[tuple[str, float]] = []

    def inc_webhook(self, event_type: str, outcome: str) -> None:
        self.webhooks.append(WebhookRecord(event_type, outcome))

    def inc_transition(self, event: str, accepted: bool) -> None:
        self.transitions.append((event, accepted))

    def inc_cas_conflict(self) -> None:
        self.cas_conflicts += 1

    def observe_webhook_duration(self, event_type: str, duration: float) -> None:
        self.durations.append((event_type, duration))

    # -- test helpers --

    def outcomes(self) -> list[str]:
        return [w.outcome for w in self.webhooks]

    def clear(self) -> None:
        """Reset all recorded state."""
        self.webhooks.clear()
        self.transitions.clear()
        self.cas_conflicts = 0
        self.durations.clear()
