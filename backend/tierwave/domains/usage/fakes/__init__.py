"""Fake implementations for usage domain testing."""

from tierwave.domains.usage.fakes.counters import FakeUsageCounters
from tierwave.domains.usage.fakes.repository import FakeUsageRepository

__all__ = ["FakeUsageCounters", "FakeUsageRepository"]
