"""CRUD operations for the webhook event ledger."""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from tierwave.models.webhook_event import WebhookEvent


class CRUDWebhookEvent:
    """CRUD operations for webhook events. Rows are never updated or deleted."""

    async def exists(self, db: AsyncSession, event_id: str) -> bool:
        result = await db.execute(
            select(WebhookEvent.id).where(WebhookEvent.event_id == event_id).limit(1)
        )
        return result.first() is not None

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
        """Insert a ledger row; a row already present for *event_id* is left alone.

        Returns:
            True if this call inserted the row.
        """
        stmt = (
            insert(WebhookEvent)
            .values(
                event_id=event_id,
                event_type=event_type,
                session_id=session_id,
                user_id=user_id,
                payload_summary=payload_summary,
            )
            .on_conflict_do_nothing(index_elements=["event_id"])
            .returning(WebhookEvent.id)
        )
        result = await db.execute(stmt)
        return result.first() is not None


webhook_event = CRUDWebhookEvent()
