"""Billing domain repositories wrapping the crud singletons."""

from typing import Any, Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tierwave import crud
from tierwave.domains.billing.types import Plan, SubscriptionRecord, SubscriptionStatus
from tierwave.models.user import User


class SubscriptionRepositoryProtocol(Protocol):
    """Data access for the subscription columns of a user."""

    async def get_record(self, db: AsyncSession, user_id: UUID) -> Optional[SubscriptionRecord]:
        """Read a user's subscription record."""
        ...

    async def get_by_customer_id(
        self, db: AsyncSession, customer_id: str
    ) -> Optional[SubscriptionRecord]:
        """Read the record linked to a billing customer id."""
        ...

    async def link_customer_id(self, db: AsyncSession, user_id: UUID, customer_id: str) -> bool:
        """Link *customer_id* to a user with no customer yet (or already this one)."""
        ...

    async def compare_and_set(
        self, db: AsyncSession, expected: SubscriptionRecord, new: SubscriptionRecord
    ) -> bool:
        """Store *new* only if the stored version still equals ``expected.version``."""
        ...


class WebhookEventRepositoryProtocol(Protocol):
    """Data access for the webhook event ledger."""

    async def exists(self, db: AsyncSession, event_id: str) -> bool:
        """Whether a ledger row exists for *event_id*."""
        ...

    async def insert_if_absent(
        self,
        db: AsyncSession,
        *,
        event_id: str,
        event_type: str,
        session_id: Optional[str],
        user_id: Optional[UUID],
        payload_summary: dict[str, Any],
    ) -> bool:
        """Insert a ledger row unless one exists; True if this call inserted it."""
        ...


def record_from_model(user: User) -> SubscriptionRecord:
    """Map a User row onto the domain record."""
    return SubscriptionRecord(
        user_id=user.id,
        plan=Plan(user.plan),
        status=SubscriptionStatus(user.subscription_status),
        trial_started_at=user.trial_started_at,
        trial_ends_at=user.trial_ends_at,
        paid_until=user.paid_until,
        past_due_since=user.past_due_since,
        customer_id=user.billing_customer_id,
        subscription_id=user.billing_subscription_id,
        one_time_bonus_granted=user.one_time_bonus_granted,
        last_event_at=user.last_billing_event_at,
        xp=user.xp,
        version=user.subscription_version,
    )


def column_values(record: SubscriptionRecord) -> dict[str, Any]:
    """Map the domain record back onto User columns (excluding the version)."""
    return {
        "plan": record.plan.value,
        "subscription_status": record.status.value,
        "trial_started_at": record.trial_started_at,
        "trial_ends_at": record.trial_ends_at,
        "paid_until": record.paid_until,
        "past_due_since": record.past_due_since,
        "billing_customer_id": record.customer_id,
        "billing_subscription_id": record.subscription_id,
        "one_time_bonus_granted": record.one_time_bonus_granted,
        "last_billing_event_at": record.last_event_at,
        "xp": record.xp,
    }


class SubscriptionRepository(SubscriptionRepositoryProtocol):
    """Delegates to the crud.user singleton."""

    async def get_record(self, db: AsyncSession, user_id: UUID) -> Optional[SubscriptionRecord]:
        """Read a user's subscription record."""
        user = await crud.user.get(db, user_id)
        return record_from_model(user) if user else None

    async def get_by_customer_id(
        self, db: AsyncSession, customer_id: str
    ) -> Optional[SubscriptionRecord]:
        """Read the record linked to a billing customer id."""
        user = await crud.user.get_by_billing_customer_id(db, customer_id)
        return record_from_model(user) if user else None

    async def link_customer_id(self, db: AsyncSession, user_id: UUID, customer_id: str) -> bool:
        """Link *customer_id* to a user with no customer yet (or already this one)."""
        return await crud.user.link_billing_customer_id(db, user_id, customer_id)

    async def compare_and_set(
        self, db: AsyncSession, expected: SubscriptionRecord, new: SubscriptionRecord
    ) -> bool:
        """Store *new* only if the stored version still equals ``expected.version``."""
        return await crud.user.compare_and_set_subscription(
            db, expected.user_id, expected.version, column_values(new)
        )


class WebhookEventRepository(WebhookEventRepositoryProtocol):
    """Delegates to the crud.webhook_event singleton."""

    async def exists(self, db: AsyncSession, event_id: str) -> bool:
        """Whether a ledger row exists for *event_id*."""
        return await crud.webhook_event.exists(db, event_id)

    async def insert_if_absent(
        self,
        db: AsyncSession,
        *,
        event_id: str,
        event_type: str,
        session_id: Optional[str],
        user_id: Optional[UUID],
        payload_summary: dict[str, Any],
    ) -> bool:
        """Insert a ledger row unless one exists; True if this call inserted it."""
        return await crud.webhook_event.insert_if_absent(
            db,
            event_id=event_id,
            event_type=event_type,
            session_id=session_id,
            user_id=user_id,
            payload_summary=payload_summary,
        )
