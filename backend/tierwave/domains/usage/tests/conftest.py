"""Usage domain test fixtures."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock
from uuid import UUID

import pytest

from tierwave.domains.usage.counters import UsageCounters
from tierwave.domains.usage.fakes.repository import FakeUsageRepository

DEFAULT_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
TODAY = date(2026, 3, 1)
DAILY_LIMIT = 2


def _make_counters(
    repo: FakeUsageRepository | None = None, daily_image_limit: int = DAILY_LIMIT
) -> tuple[UsageCounters, FakeUsageRepository]:
    """Build UsageCounters over a fake repository with a fixed clock."""
    repo = repo or FakeUsageRepository()
    return UsageCounters(repo, daily_image_limit, clock=lambda: NOW), repo


@pytest.fixture
def db():
    return AsyncMock()
