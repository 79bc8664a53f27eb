"""Fake implementations for notifications domain testing."""

from tierwave.domains.notifications.fakes.notifier import FakeSubscriptionNotifier

__all__ = ["FakeSubscriptionNotifier"]
