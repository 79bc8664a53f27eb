"""Fake usage counters for testing.

Allows every image for premium users and ``daily_image_limit`` per day for
everyone else, entirely in memory. Records renewal signals.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tierwave.domains.usage.exceptions import UsageLimitExceededError
from tierwave.domains.usage.protocols import UsageCountersProtocol
from tierwave.domains.usage.types import ActionType, ImageLimitCheck, evaluate_image_limit


class FakeUsageCounters(UsageCountersProtocol):
    """Test implementation of UsageCountersProtocol.

    Usage:
        counters = FakeUsageCounters()
        await service.apply(db, user_id, payment_succeeded)
        assert counters.periods_started == [(user_id, period_end)]
    """

    def __init__(self, daily_image_limit: int = 2) -> None:
        """Initialize with empty counts and call log."""
        self._daily_image_limit = daily_image_limit
        self.counts: dict[tuple[UUID, date], int] = {}
        self.periods_started: list[tuple[UUID, Optional[datetime]]] = []

    @property
    def daily_image_limit(self) -> int:
        return self._daily_image_limit

    @staticmethod
    def _today() -> date:
        return datetime.now(timezone.utc).date()

    async def get_usage(self, db: AsyncSession, user_id: UUID, day: date) -> int:
        return self.counts.get((user_id, day), 0)

    async def increment_usage(self, db: AsyncSession, user_id: UUID, day: date) -> int:
        self.counts[(user_id, day)] = self.counts.get((user_id, day), 0) + 1
        return self.counts[(user_id, day)]

    async def check_image_limit(
        self,
        db: AsyncSession,
        user_id: UUID,
        is_premium: bool,
        *,
        day: Optional[date] = None,
    ) -> ImageLimitCheck:
        used = await self.get_usage(db, user_id, day or self._today())
        return evaluate_image_limit(used, self._daily_image_limit, is_premium)

    async def record_image(
        self,
        db: AsyncSession,
        user_id: UUID,
        is_premium: bool,
        *,
        day: Optional[date] = None,
    ) -> int:
        day = day or self._today()
        check = await self.check_image_limit(db, user_id, is_premium, day=day)
        if not check.allowed:
            raise UsageLimitExceededError(ActionType.IMAGES, self._daily_image_limit, check.used)
        return await self.increment_usage(db, user_id, day)

    def can_upload_video(self, is_premium: bool) -> bool:
        return is_premium

    async def begin_billing_period(self, user_id: UUID, period_end: Optional[datetime]) -> None:
        self.periods_started.append((user_id, period_end))
