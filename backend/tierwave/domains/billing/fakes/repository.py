"""Fake billing repositories for testing."""

import asyncio
from dataclasses import replace
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tierwave.domains.billing.repository import (
    SubscriptionRepositoryProtocol,
    WebhookEventRepositoryProtocol,
)
from tierwave.domains.billing.types import SubscriptionRecord


class FakeSubscriptionRepository(SubscriptionRepositoryProtocol):
    """In-memory fake for SubscriptionRepositoryProtocol.

    ``compare_and_set`` honours the version token like the real UPDATE, and
    ``get_record`` yields to the event loop after reading so concurrent
    callers interleave between read and write.
    """

    def __init__(self) -> None:
        """Initialize with empty store and call log."""
        self._store: dict[UUID, SubscriptionRecord] = {}
        self._calls: list[tuple] = []
        self.writes: list[SubscriptionRecord] = []
        self.conflicts = 0

    def seed(self, record: SubscriptionRecord) -> None:
        """Populate store with test data."""
        self._store[record.user_id] = record

    def current(self, user_id: UUID) -> SubscriptionRecord:
        """The stored record (test assertion helper)."""
        return self._store[user_id]

    async def get_record(self, db: AsyncSession, user_id: UUID) -> Optional[SubscriptionRecord]:
        """Read a user's subscription record."""
        self._calls.append(("get_record", user_id))
        record = self._store.get(user_id)
        await asyncio.sleep(0)
        return record

    async def get_by_customer_id(
        self, db: AsyncSession, customer_id: str
    ) -> Optional[SubscriptionRecord]:
        """Read the record linked to a billing customer id."""
        self._calls.append(("get_by_customer_id", customer_id))
        for record in self._store.values():
            if record.customer_id == customer_id:
                return record
        return None

    async def link_customer_id(self, db: AsyncSession, user_id: UUID, customer_id: str) -> bool:
        """Link *customer_id* to a user with no customer yet (or already this one)."""
        self._calls.append(("link_customer_id", user_id, customer_id))
        record = self._store.get(user_id)
        if record is None:
            return False
        if record.customer_id is None:
            self._store[user_id] = replace(record, customer_id=customer_id)
            return True
        return record.customer_id == customer_id

    async def compare_and_set(
        self, db: AsyncSession, expected: SubscriptionRecord, new: SubscriptionRecord
    ) -> bool:
        """Store *new* only if the stored version still equals ``expected.version``."""
        self._calls.append(("compare_and_set", expected.user_id, expected.version))
        stored = self._store.get(expected.user_id)
        if stored is None or stored.version != expected.version:
            self.conflicts += 1
            return False
        written = replace(new, version=expected.version + 1)
        self._store[expected.user_id] = written
        self.writes.append(written)
        return True


class FakeWebhookEventRepository(WebhookEventRepositoryProtocol):
    """In-memory fake for WebhookEventRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize with an empty ledger."""
        self.rows: dict[str, dict[str, Any]] = {}

    async def exists(self, db: AsyncSession, event_id: str) -> bool:
        """Whether a ledger row exists for *event_id*."""
        return event_id in self.rows

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
        if event_id in self.rows:
            return False
        self.rows[event_id] = {
            "event_type": event_type,
            "session_id": session_id,
            "user_id": user_id,
            "payload_summary": payload_summary,
        }
        return True
