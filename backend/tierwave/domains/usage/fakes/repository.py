"""Fake usage repository for testing."""

from datetime import date
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tierwave.domains.usage.protocols import UsageRepositoryProtocol


class FakeUsageRepository(UsageRepositoryProtocol):
    """In-memory fake for UsageRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize with empty store and call log."""
        self._store: dict[tuple[UUID, date], int] = {}
        self._calls: list[tuple] = []

    def seed(self, user_id: UUID, day: date, images_sent: int) -> None:
        """Populate store with test data."""
        self._store[(user_id, day)] = images_sent

    async def get_images_sent(self, db: AsyncSession, user_id: UUID, day: date) -> int:
        """Images analysed by *user_id* on *day*."""
        self._calls.append(("get_images_sent", user_id, day))
        return self._store.get((user_id, day), 0)

    async def increment_images_sent(self, db: AsyncSession, user_id: UUID, day: date) -> int:
        """Add one and return the new count."""
        self._calls.append(("increment_images_sent", user_id, day))
        self._store[(user_id, day)] = self._store.get((user_id, day), 0) + 1
        return self._store[(user_id, day)]
