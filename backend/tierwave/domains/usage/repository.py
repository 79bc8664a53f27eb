"""Usage repository wrapping the crud.daily_usage singleton."""

from datetime import date
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tierwave import crud
from tierwave.domains.usage.protocols import UsageRepositoryProtocol


class UsageRepository(UsageRepositoryProtocol):
    """Delegates to the crud.daily_usage singleton."""

    async def get_images_sent(self, db: AsyncSession, user_id: UUID, day: date) -> int:
        """Images analysed by *user_id* on *day* (0 when no row exists)."""
        return await crud.daily_usage.get_images_sent(db, user_id, day)

    async def increment_images_sent(self, db: AsyncSession, user_id: UUID, day: date) -> int:
        """Atomically add one and return the new count."""
        return await crud.daily_usage.increment_images_sent(db, user_id, day)
