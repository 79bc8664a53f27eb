"""Usage counters: the free-tier daily image quota and video gate.

Counters are keyed by calendar day (UTC), so a new day or a new billing
period needs no reset job.
"""

from datetime import date, datetime, timezone
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tierwave.core.logging import logger
from tierwave.domains.usage.exceptions import UsageLimitExceededError
from tierwave.domains.usage.protocols import UsageCountersProtocol, UsageRepositoryProtocol
from tierwave.domains.usage.types import ActionType, ImageLimitCheck, evaluate_image_limit


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UsageCounters(UsageCountersProtocol):
    """Singleton free-tier gate backed by the daily_usage table."""

    def __init__(
        self,
        usage_repo: UsageRepositoryProtocol,
        daily_image_limit: int,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize with the repository, the free daily quota and a clock."""
        self._repo = usage_repo
        self._daily_image_limit = daily_image_limit
        self._clock = clock

    @property
    def daily_image_limit(self) -> int:
        return self._daily_image_limit

    def _today(self) -> date:
        return self._clock().astimezone(timezone.utc).date()

    async def get_usage(self, db: AsyncSession, user_id: UUID, day: date) -> int:
        """Images used on *day*."""
        return await self._repo.get_images_sent(db, user_id, day)

    async def increment_usage(self, db: AsyncSession, user_id: UUID, day: date) -> int:
        """Add one image to *day* and return the new count."""
        return await self._repo.increment_images_sent(db, user_id, day)

    async def check_image_limit(
        self,
        db: AsyncSession,
        user_id: UUID,
        is_premium: bool,
        *,
        day: Optional[date] = None,
    ) -> ImageLimitCheck:
        """Whether one more image analysis is allowed today."""
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
        """Check then count one image analysis.

        The increment is an atomic upsert; if a concurrent request pushed a
        free user's count past the quota, the increment is rolled back.

        Raises:
            UsageLimitExceededError: the free quota for the day is spent.
        """
        day = day or self._today()
        check = await self.check_image_limit(db, user_id, is_premium, day=day)
        if not check.allowed:
            raise UsageLimitExceededError(
                ActionType.IMAGES, self._daily_image_limit, check.used, message=check.reason
            )

        count = await self.increment_usage(db, user_id, day)
        if not is_premium and count > self._daily_image_limit:
            await db.rollback()
            raise UsageLimitExceededError(ActionType.IMAGES, self._daily_image_limit, count - 1)
        await db.commit()
        return count

    def can_upload_video(self, is_premium: bool) -> bool:
        """Video upload is a premium feature."""
        return is_premium

    async def begin_billing_period(self, user_id: UUID, period_end: Optional[datetime]) -> None:
        """Record a renewal; day-scoped counters need no reset."""
        logger.with_context(user_id=str(user_id)).info(
            f"Billing period started, paid through {period_end.isoformat() if period_end else '-'}"
        )
