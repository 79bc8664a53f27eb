"""CRUD operations for users' subscription columns."""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tierwave.models.user import User


class CRUDUser:
    """CRUD operations for the user table."""

    async def get(self, db: AsyncSession, id: UUID) -> Optional[User]:
        """Get a user by id."""
        result = await db.execute(select(User).where(User.id == id))
        return result.scalar_one_or_none()

    async def get_by_billing_customer_id(
        self, db: AsyncSession, billing_customer_id: str
    ) -> Optional[User]:
        """Get the user linked to a billing provider customer id."""
        result = await db.execute(
            select(User).where(User.billing_customer_id == billing_customer_id)
        )
        return result.scalar_one_or_none()

    async def link_billing_customer_id(
        self, db: AsyncSession, id: UUID, billing_customer_id: str
    ) -> bool:
        """Attach a customer id to a user that has none yet.

        Returns:
            True if the row now carries *billing_customer_id*; False if the user
            is missing or already linked to a different customer.
        """
        result = await db.execute(
            update(User)
            .where(User.id == id, User.billing_customer_id.is_(None))
            .values(billing_customer_id=billing_customer_id)
        )
        if result.rowcount == 1:
            return True
        user = await self.get(db, id)
        return user is not None and user.billing_customer_id == billing_customer_id

    async def compare_and_set_subscription(
        self, db: AsyncSession, id: UUID, expected_version: int, values: dict[str, Any]
    ) -> bool:
        """Write subscription columns only if the row is still at *expected_version*.

        The version is bumped in the same statement. Returns False when a
        concurrent writer got there first.
        """
        result = await db.execute(
            update(User)
            .where(User.id == id, User.subscription_version == expected_version)
            .values(**values, subscription_version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


user = CRUDUser()
