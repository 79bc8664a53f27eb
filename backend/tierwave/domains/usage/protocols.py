"""Usage domain protocols."""

from datetime import date, datetime
from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tierwave.domains.usage.types import ImageLimitCheck


@runtime_checkable
class UsageRepositoryProtocol(Protocol):
    """Data access for per-user, per-day counters."""

    async def get_images_sent(self, db: AsyncSession, user_id: UUID, day: date) -> int:
        """Images analysed by *user_id* on *day* (0 when no row exists)."""
        ...

    async def increment_images_sent(self, db: AsyncSession, user_id: UUID, day: date) -> int:
        """Atomically add one and return the new count."""
        ...


@runtime_checkable
class UsageCountersProtocol(Protocol):
    """Singleton free-tier gate.

    Premium users bypass every check; free users get ``FREE_DAILY_IMAGES``
    image analyses per calendar day and no video upload.
    """

    @property
    def daily_image_limit(self) -> int: ...

    async def get_usage(self, db: AsyncSession, user_id: UUID, day: date) -> int:
        """Images used on *day*."""
        ...

    async def increment_usage(self, db: AsyncSession, user_id: UUID, day: date) -> int:
        """Add one image to *day* and return the new count."""
        ...

    async def check_image_limit(
        self,
        db: AsyncSession,
        user_id: UUID,
        is_premium: bool,
        *,
        day: Optional[date] = None,
    ) -> ImageLimitCheck:
        """Whether one more image analysis is allowed today."""
        ...

    async def record_image(
        self,
        db: AsyncSession,
        user_id: UUID,
        is_premium: bool,
        *,
        day: Optional[date] = None,
    ) -> int:
        """Check then count one image; raises UsageLimitExceededError when spent."""
        ...

    def can_upload_video(self, is_premium: bool) -> bool:
        """Video upload is a premium feature."""
        ...

    async def begin_billing_period(self, user_id: UUID, period_end: Optional[datetime]) -> None:
        """Signal that a new paid period started for *user_id*."""
        ...
