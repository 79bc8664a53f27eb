"""Idempotency ledger for provider webhook events."""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tierwave.core.logging import logger
from tierwave.domains.billing.protocols import IdempotencyLedgerProtocol
from tierwave.domains.billing.repository import WebhookEventRepositoryProtocol


class IdempotencyLedger(IdempotencyLedgerProtocol):
    """Records which provider event ids have been fully applied.

    A row is only written once an event's effects are in place, so an id
    that is present means "done". The unique constraint on ``event_id``
    settles concurrent deliveries: the loser's insert is a no-op.
    """

    def __init__(self, event_repo: WebhookEventRepositoryProtocol) -> None:
        """Initialize with the webhook event repository."""
        self._event_repo = event_repo

    async def is_processed(self, db: AsyncSession, event_id: str) -> bool:
        """Whether *event_id* has already been applied."""
        return await self._event_repo.exists(db, event_id)

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
        inserted = await self._event_repo.insert_if_absent(
            db,
            event_id=event_id,
            event_type=event_type,
            session_id=session_id,
            user_id=user_id,
            payload_summary=summary,
        )
        if not inserted:
            logger.debug(f"Event {event_id} already recorded by a concurrent delivery")
        return inserted
