"""Subscription service.

Owns the read -> transition -> compare-and-set loop around the pure state
machine, the user actions (start trial, cancel, reactivate) and the status
query. Side effects that follow a change (the renewal signal to the usage
counters and the realtime push) run only after the commit.
"""

from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from tierwave.core.logging import logger
from tierwave.core.protocols.billing_provider import BillingProviderProtocol
from tierwave.core.protocols.metrics import BillingMetrics
from tierwave.domains.billing.exceptions import (
    ConcurrentUpdateError,
    SubscriptionNotFoundError,
    wrap_gateway_errors,
)
from tierwave.domains.billing.protocols import SubscriptionServiceProtocol
from tierwave.domains.billing.repository import SubscriptionRepositoryProtocol
from tierwave.domains.billing.state_machine import apply_event
from tierwave.domains.billing.types import (
    Cancel,
    DomainEvent,
    Plan,
    Reactivate,
    StartTrial,
    SubscriptionPolicy,
    SubscriptionRecord,
    TransitionResult,
    access_expiry,
    effective_plan,
    is_active,
    is_premium,
)
from tierwave.domains.notifications.protocols import SubscriptionNotifierProtocol
from tierwave.domains.usage.protocols import UsageCountersProtocol
from tierwave.schemas.subscription import (
    SubscriptionConfigInfo,
    SubscriptionInfo,
    SubscriptionStatusView,
    UsageInfo,
)


class _LostRace(Exception):
    """The stored version moved between read and write."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubscriptionService(SubscriptionServiceProtocol):
    """Applies domain events to subscription records and serves status."""

    def __init__(
        self,
        subscription_repo: SubscriptionRepositoryProtocol,
        billing_provider: BillingProviderProtocol,
        usage: UsageCountersProtocol,
        notifier: SubscriptionNotifierProtocol,
        metrics: BillingMetrics,
        policy: SubscriptionPolicy,
        price_sek: int,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize with all required dependencies."""
        self._repo = subscription_repo
        self._billing_provider = billing_provider
        self._usage = usage
        self._notifier = notifier
        self._metrics = metrics
        self._policy = policy
        self._price_sek = price_sek
        self._clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_record(self, db: AsyncSession, user_id: UUID) -> SubscriptionRecord:
        """Read the user's current record."""
        record = await self._repo.get_record(db, user_id)
        if record is None:
            raise SubscriptionNotFoundError(f"No user {user_id}")
        return record

    def describe(
        self, record: SubscriptionRecord, now: Optional[datetime] = None
    ) -> SubscriptionInfo:
        """Project a record onto the client-facing subscription block."""
        now = now or self._clock()
        return SubscriptionInfo(
            plan=effective_plan(record, now, self._policy).value,
            status=record.status.value,
            is_active=is_active(record, now, self._policy),
            is_premium=is_premium(record, now, self._policy),
            trial_ends_at=record.trial_ends_at,
            paid_until=record.paid_until,
        )

    def has_premium(self, record: SubscriptionRecord) -> bool:
        """Whether *record* grants premium access right now."""
        return is_premium(record, self._clock(), self._policy)

    async def get_status(
        self, db: AsyncSession, user_id: UUID, *, today: Optional[date] = None
    ) -> SubscriptionStatusView:
        """Build the status view shown to clients."""
        now = self._clock()
        record = await self.get_record(db, user_id)
        premium = is_premium(record, now, self._policy)
        used = await self._usage.get_usage(db, user_id, today or now.date())
        return SubscriptionStatusView(
            subscription=self.describe(record, now),
            usage=UsageInfo(
                images_used_today=used,
                daily_image_limit=None if premium else self._usage.daily_image_limit,
                can_upload_video=self._usage.can_upload_video(premium),
            ),
            config=SubscriptionConfigInfo(
                price_sek=self._price_sek, trial_days=self._policy.trial_days
            ),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def apply(
        self,
        db: AsyncSession,
        user_id: UUID,
        event: DomainEvent,
        *,
        now: Optional[datetime] = None,
    ) -> TransitionResult:
        """Apply *event* to the user's record with a compare-and-set write.

        A lost race re-reads the record and re-runs the transition against
        the fresh state. Replays that change nothing perform no write.

        Raises:
            SubscriptionNotFoundError: the user does not exist.
            ConcurrentUpdateError: every attempt lost its race.
        """
        log = logger.with_context(user_id=str(user_id), event=event.name)
        attempts = self._policy.cas_max_attempts
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(attempts),
                retry=retry_if_exception_type(_LostRace),
                reraise=True,
            ):
                with attempt:
                    result = await self._apply_once(db, user_id, event, now)
        except _LostRace:
            log.error(f"Gave up after {attempts} compare-and-set conflicts")
            raise ConcurrentUpdateError(user_id, attempts) from None

        self._metrics.inc_transition(event.name, result.ok)
        if not result.ok:
            log.info(f"Transition rejected: {result.reason.value}")
            return result
        if result.changed:
            log.info(
                f"Transition applied: {result.previous.plan.value}/{result.previous.status.value}"
                f" -> {result.record.plan.value}/{result.record.status.value}"
                + (" (bonus granted)" if result.bonus_granted else "")
            )
            await self._after_commit(user_id, result, now or self._clock())
        return result

    async def _apply_once(
        self,
        db: AsyncSession,
        user_id: UUID,
        event: DomainEvent,
        now: Optional[datetime],
    ) -> TransitionResult:
        record = await self.get_record(db, user_id)
        result = apply_event(record, event, now=now or self._clock(), policy=self._policy)
        if not result.ok or not result.changed:
            return result

        if not await self._repo.compare_and_set(db, record, result.record):
            await db.rollback()
            self._metrics.inc_cas_conflict()
            logger.debug(f"Lost compare-and-set race on user {user_id} at version {record.version}")
            raise _LostRace()

        await db.commit()
        return replace(result, record=replace(result.record, version=record.version + 1))

    async def _after_commit(self, user_id: UUID, result: TransitionResult, now: datetime) -> None:
        record = result.record
        if result.period_started:
            await self._usage.begin_billing_period(user_id, record.paid_until)
        await self._notifier.emit_subscription_changed(
            user_id,
            effective_plan(record, now, self._policy).value,
            access_expiry(record),
        )

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def start_trial(self, db: AsyncSession, user_id: UUID) -> TransitionResult:
        """Start the one-time free trial."""
        return await self.apply(db, user_id, StartTrial())

    async def cancel(self, db: AsyncSession, user_id: UUID) -> TransitionResult:
        """Cancel at period end, at the provider first and then locally."""
        return await self._provider_backed_action(db, user_id, Cancel(), cancel_at_period_end=True)

    async def reactivate(self, db: AsyncSession, user_id: UUID) -> TransitionResult:
        """Withdraw a pending cancellation, at the provider first and then locally."""
        return await self._provider_backed_action(
            db, user_id, Reactivate(), cancel_at_period_end=False
        )

    async def _provider_backed_action(
        self,
        db: AsyncSession,
        user_id: UUID,
        event: DomainEvent,
        *,
        cancel_at_period_end: bool,
    ) -> TransitionResult:
        record = await self.get_record(db, user_id)
        preview = apply_event(record, event, now=self._clock(), policy=self._policy)
        if not preview.ok:
            self._metrics.inc_transition(event.name, False)
            return preview

        if record.plan == Plan.PAID and record.subscription_id:
            await self._set_cancel_at_period_end(record.subscription_id, cancel_at_period_end)
        return await self.apply(db, user_id, event)

    @wrap_gateway_errors
    async def _set_cancel_at_period_end(self, subscription_id: str, flag: bool) -> None:
        await self._billing_provider.set_cancel_at_period_end(subscription_id, flag)
