"""Webhook processor for billing provider events.

Pipeline for one delivery:

    verify signature -> parse envelope -> ledger check -> translate
    -> resolve user -> apply via SubscriptionService -> mark ledger -> commit

The ledger row is written only after the state change is committed, so a
crash in between leaves the event unmarked and the provider's retry
re-applies it. Every transition is idempotent, which makes that retry
harmless.
"""

import time
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tierwave.core.logging import ContextualLogger, logger
from tierwave.core.protocols.billing_provider import BillingProviderProtocol
from tierwave.core.protocols.metrics import BillingMetrics
from tierwave.domains.billing.adapter import parse_envelope
from tierwave.domains.billing.exceptions import IdentityResolutionError, WebhookVerificationError
from tierwave.domains.billing.protocols import (
    BillingWebhookProtocol,
    EventAdapterProtocol,
    IdempotencyLedgerProtocol,
    SubscriptionServiceProtocol,
    UserResolverProtocol,
)
from tierwave.domains.billing.types import (
    RejectionReason,
    TranslatedEvent,
    WebhookOutcome,
)


class BillingWebhookProcessor(BillingWebhookProtocol):
    """Process billing provider webhook deliveries."""

    def __init__(
        self,
        billing_provider: BillingProviderProtocol,
        event_adapter: EventAdapterProtocol,
        ledger: IdempotencyLedgerProtocol,
        resolver: UserResolverProtocol,
        subscriptions: SubscriptionServiceProtocol,
        metrics: BillingMetrics,
    ) -> None:
        """Initialize with all required dependencies."""
        self._billing_provider = billing_provider
        self._event_adapter = event_adapter
        self._ledger = ledger
        self._resolver = resolver
        self._subscriptions = subscriptions
        self._metrics = metrics

    async def process_webhook(
        self, db: AsyncSession, payload: bytes, signature: str, registration_id: str
    ) -> WebhookOutcome:
        """Verify webhook signature and process the resulting event.

        Raises ValueError (WebhookVerificationError) if the delivery cannot
        be authenticated, decoded or translated.
        """
        started = time.perf_counter()
        event_type = "unknown"
        outcome = "error"
        try:
            raw = self._billing_provider.verify_webhook_signature(
                payload, signature, registration_id
            )
            envelope = parse_envelope(raw)
            event_type = envelope.type
            log = logger.with_context(stripe_event_id=envelope.id, event_type=envelope.type)

            if await self._ledger.is_processed(db, envelope.id):
                log.info("Event already processed, skipping")
                result = WebhookOutcome.DUPLICATE
            else:
                translated = await self._event_adapter.translate(envelope)
                result = await self._process_event(db, translated, log)
            outcome = result.value
            return result
        except WebhookVerificationError:
            outcome = "invalid"
            raise
        except IdentityResolutionError:
            outcome = "unresolved"
            raise
        finally:
            self._metrics.inc_webhook(event_type, outcome)
            self._metrics.observe_webhook_duration(event_type, time.perf_counter() - started)

    async def _process_event(
        self, db: AsyncSession, translated: TranslatedEvent, log: ContextualLogger
    ) -> WebhookOutcome:
        """Apply one translated event and record it in the ledger."""
        if translated.event is None:
            log.info(f"Ignoring event: {translated.ignore_reason}")
            return await self._mark(db, translated, None, WebhookOutcome.IGNORED, log)

        user_id = await self._resolver.resolve(db, translated.identity)
        # Persist any customer link made during resolution before the CAS loop.
        await db.commit()
        log = log.with_context(user_id=str(user_id))
        log.info(f"Processing webhook event: {translated.event_type}")

        try:
            result = await self._subscriptions.apply(db, user_id, translated.event)
        except Exception as e:
            log.error(f"Error handling {translated.event_type}: {e}", exc_info=True)
            raise

        if result.ok:
            outcome = WebhookOutcome.PROCESSED
        elif result.reason == RejectionReason.STALE_EVENT:
            outcome = WebhookOutcome.STALE
        else:
            outcome = WebhookOutcome.REJECTED
        return await self._mark(db, translated, user_id, outcome, log)

    async def _mark(
        self,
        db: AsyncSession,
        translated: TranslatedEvent,
        user_id: Optional[UUID],
        outcome: WebhookOutcome,
        log: ContextualLogger,
    ) -> WebhookOutcome:
        summary = {**translated.summary, "outcome": outcome.value}
        if translated.ignore_reason:
            summary["ignore_reason"] = translated.ignore_reason
        inserted = await self._ledger.mark_processed(
            db,
            event_id=translated.event_id,
            event_type=translated.event_type,
            session_id=translated.session_id,
            user_id=user_id,
            summary=summary,
        )
        await db.commit()
        if not inserted:
            log.info("Event recorded by a concurrent delivery")
            return WebhookOutcome.DUPLICATE
        return outcome
