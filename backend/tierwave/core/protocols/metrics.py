"""Metrics protocols for dependency injection.

- BillingMetrics: webhook and subscription transition instrumentation
- MetricsRenderer: metrics serialization for scraping
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class BillingMetrics(Protocol):
    """Protocol for billing webhook metrics collection."""

    def inc_webhook(self, event_type: str, outcome: str) -> None:
        """Count one webhook delivery by provider event type and outcome."""
        ...

    def inc_transition(self, event: str, accepted: bool) -> None:
        """Count one state machine application by domain event name."""
        ...

    def inc_cas_conflict(self) -> None:
        """Count one lost compare-and-set race."""
        ...

    def observe_webhook_duration(self, event_type: str, duration: float) -> None:
        """Record end-to-end webhook processing time in seconds."""
        ...


@runtime_checkable
class MetricsRenderer(Protocol):
    """Serializes the metrics registry for a scrape endpoint."""

    @property
    def content_type(self) -> str: ...

    def generate(self) -> bytes: ...
