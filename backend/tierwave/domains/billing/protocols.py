"""Protocols for the billing domain."""

from datetime import date, datetime
from typing import Any, Optional, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tierwave.domains.billing.types import (
    BillingIdentity,
    DomainEvent,
    SubscriptionRecord,
    TransitionResult,
    TranslatedEvent,
    WebhookOutcome,
)
from tierwave.schemas.subscription import SubscriptionInfo, SubscriptionStatusView
from tierwave.schemas.webhook import WebhookEnvelope


@runtime_checkable
class BillingWebhookProtocol(Protocol):
    """Billing webhook event processing."""

    async def process_webhook(
        self, db: AsyncSession, payload: bytes, signature: str, registration_id: str
    ) -> WebhookOutcome:
        """Verify and process a billing provider webhook delivery.

        Raises:
            WebhookVerificationError: signature, envelope or translation failure.
            IdentityResolutionError: the event could not be attributed to a user.
        """
        ...


@runtime_checkable
class EventAdapterProtocol(Protocol):
    """Translates provider envelopes into domain events."""

    async def translate(self, envelope: WebhookEnvelope) -> TranslatedEvent:
        """Translate one verified envelope."""
        ...


@runtime_checkable
class IdempotencyLedgerProtocol(Protocol):
    """Durable record of fully-applied provider events."""

    async def is_processed(self, db: AsyncSession, event_id: str) -> bool:
        """Whether *event_id* has already been applied."""
        ...

    async def mark_processed(
        self,
        db: AsyncSession,
        *,
        event_id: str,
        event_type: str,
        session_id: Optional[str],
        user_id: Optional[UUID],
        summary: dict[str, Any],
    ) -> bool:
        """Record *event_id*; returns False when another delivery recorded it first."""
        ...


@runtime_checkable
class UserResolverProtocol(Protocol):
    """Maps billing identifiers to exactly one internal user."""

    async def resolve(self, db: AsyncSession, identity: BillingIdentity) -> UUID:
        """Return the user the identifiers belong to.

        Raises:
            IdentityResolutionError: no user, or the identifiers disagree.
        """
        ...


@runtime_checkable
class SubscriptionServiceProtocol(Protocol):
    """Applies domain events to subscription records and serves status."""

    async def apply(
        self,
        db: AsyncSession,
        user_id: UUID,
        event: DomainEvent,
        *,
        now: Optional[datetime] = None,
    ) -> TransitionResult:
        """Apply *event* to the user's record with a compare-and-set write."""
        ...

    async def start_trial(self, db: AsyncSession, user_id: UUID) -> TransitionResult:
        """Start the one-time free trial."""
        ...

    async def cancel(self, db: AsyncSession, user_id: UUID) -> TransitionResult:
        """Cancel at period end, at the provider and locally."""
        ...

    async def reactivate(self, db: AsyncSession, user_id: UUID) -> TransitionResult:
        """Withdraw a pending cancellation, at the provider and locally."""
        ...

    async def get_record(self, db: AsyncSession, user_id: UUID) -> SubscriptionRecord:
        """Read the user's current record."""
        ...

    async def get_status(
        self, db: AsyncSession, user_id: UUID, *, today: Optional[date] = None
    ) -> SubscriptionStatusView:
        """Build the status view shown to clients."""
        ...

    def describe(
        self, record: SubscriptionRecord, now: Optional[datetime] = None
    ) -> SubscriptionInfo:
        """Project a record onto the client-facing subscription block."""
        ...

    def has_premium(self, record: SubscriptionRecord) -> bool:
        """Whether *record* grants premium access right now."""
        ...
