"""CRUD operations for per-day usage counters."""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from tierwave.models.daily_usage import DailyUsage


class CRUDDailyUsage:
    """CRUD operations for daily usage."""

    async def get_images_sent(self, db: AsyncSession, user_id: UUID, usage_date: date) -> int:
        result = await db.execute(
            select(DailyUsage.images_sent).where(
                DailyUsage.user_id == user_id, DailyUsage.usage_date == usage_date
            )
        )
        return result.scalar_one_or_none() or 0

    async def increment_images_sent(
        self, db: AsyncSession, user_id: UUID, usage_date: date
    ) -> int:
        """Atomically add one to the day's counter, creating it on first use.

        Returns:
            The counter value after the increment.
        """
        stmt = insert(DailyUsage).values(user_id=user_id, usage_date=usage_date, images_sent=1)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "usage_date"],
            set_={"images_sent": DailyUsage.images_sent + 1},
        ).returning(DailyUsage.images_sent)
        result = await db.execute(stmt)
        return result.scalar_one()


daily_usage = CRUDDailyUsage()
