"""Fake implementations for billing domain testing."""

from tierwave.domains.billing.fakes.repository import (
    FakeSubscriptionRepository,
    FakeWebhookEventRepository,
)

__all__ = ["FakeSubscriptionRepository", "FakeWebhookEventRepository"]
