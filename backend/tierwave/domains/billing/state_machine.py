"""Subscription state machine.

Pure transition logic: ``apply_event(record, event, now=..., policy=...)``
returns the record that should be stored next, or a rejection. Nothing here
performs I/O; persistence, retries and fan-out belong to SubscriptionService.

Every transition is safe to reapply: replaying an event against the record
it produced yields an identical record, so a retried webhook converges
instead of compounding.
"""

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Optional

from tierwave.domains.billing.types import (
    Cancel,
    CheckoutCompleted,
    DomainEvent,
    PaymentFailed,
    PaymentSucceeded,
    Plan,
    Reactivate,
    RejectionReason,
    StartTrial,
    SubscriptionActivated,
    SubscriptionDeleted,
    SubscriptionPolicy,
    SubscriptionRecord,
    SubscriptionStatus,
    TransitionResult,
    effective_plan,
    is_active,
)


def _occurred_at(event: DomainEvent) -> Optional[datetime]:
    return getattr(event, "occurred_at", None)


def _is_stale(record: SubscriptionRecord, event: DomainEvent, policy: SubscriptionPolicy) -> bool:
    occurred_at = _occurred_at(event)
    return (
        policy.enforce_event_ordering
        and occurred_at is not None
        and record.last_event_at is not None
        and occurred_at < record.last_event_at
    )


def _activate(
    record: SubscriptionRecord,
    *,
    subscription_id: str,
    period_end: datetime,
    customer_id: Optional[str],
    cancel_at_period_end: bool,
    policy: SubscriptionPolicy,
    period_started: bool = False,
) -> TransitionResult:
    """Move to paid access through ``period_end``, granting the bonus once."""
    status = SubscriptionStatus.CANCELED if cancel_at_period_end else SubscriptionStatus.ACTIVE
    updated = replace(
        record,
        plan=Plan.PAID,
        status=status,
        paid_until=period_end,
        past_due_since=None,
        subscription_id=subscription_id,
        customer_id=record.customer_id or customer_id,
    )

    bonus = not record.one_time_bonus_granted
    if bonus:
        updated = replace(updated, one_time_bonus_granted=True, xp=record.xp + policy.bonus_xp)

    return TransitionResult.accepted(
        record,
        updated,
        bonus_granted=bonus,
        period_started=period_started and period_end != record.paid_until,
    )


def _start_trial(
    record: SubscriptionRecord, event: StartTrial, now: datetime, policy: SubscriptionPolicy
) -> TransitionResult:
    if effective_plan(record, now, policy) != Plan.FREE:
        return TransitionResult.rejected(record, RejectionReason.ALREADY_PREMIUM)
    if record.trial_started_at is not None or record.subscription_id is not None:
        return TransitionResult.rejected(record, RejectionReason.TRIAL_NOT_AVAILABLE)
    return TransitionResult.accepted(
        record,
        replace(
            record,
            plan=Plan.TRIAL,
            status=SubscriptionStatus.TRIALING,
            trial_started_at=now,
            trial_ends_at=now + timedelta(days=policy.trial_days),
        ),
    )


def _checkout_completed(
    record: SubscriptionRecord,
    event: CheckoutCompleted,
    now: datetime,
    policy: SubscriptionPolicy,
) -> TransitionResult:
    return _activate(
        record,
        subscription_id=event.subscription_id,
        period_end=event.period_end,
        customer_id=event.customer_id,
        cancel_at_period_end=event.cancel_at_period_end,
        policy=policy,
    )


def _subscription_activated(
    record: SubscriptionRecord,
    event: SubscriptionActivated,
    now: datetime,
    policy: SubscriptionPolicy,
) -> TransitionResult:
    return _activate(
        record,
        subscription_id=event.subscription_id,
        period_end=event.period_end,
        customer_id=event.customer_id,
        cancel_at_period_end=event.cancel_at_period_end,
        policy=policy,
    )


def _payment_succeeded(
    record: SubscriptionRecord,
    event: PaymentSucceeded,
    now: datetime,
    policy: SubscriptionPolicy,
) -> TransitionResult:
    return _activate(
        record,
        subscription_id=event.subscription_id,
        period_end=event.period_end,
        customer_id=event.customer_id,
        cancel_at_period_end=event.cancel_at_period_end,
        policy=policy,
        period_started=True,
    )


def _subscription_deleted(
    record: SubscriptionRecord,
    event: SubscriptionDeleted,
    now: datetime,
    policy: SubscriptionPolicy,
) -> TransitionResult:
    # A deletion for a replaced subscription must not revoke the current one.
    if (
        event.subscription_id is not None
        and record.subscription_id is not None
        and event.subscription_id != record.subscription_id
    ):
        return TransitionResult.rejected(record, RejectionReason.SUBSCRIPTION_MISMATCH)
    return TransitionResult.accepted(
        record,
        replace(
            record,
            plan=Plan.FREE,
            status=SubscriptionStatus.NONE,
            paid_until=None,
            past_due_since=None,
        ),
    )


def _payment_failed(
    record: SubscriptionRecord,
    event: PaymentFailed,
    now: datetime,
    policy: SubscriptionPolicy,
) -> TransitionResult:
    if record.plan == Plan.FREE:
        return TransitionResult.rejected(record, RejectionReason.NO_PLAN)
    return TransitionResult.accepted(
        record,
        replace(
            record,
            status=SubscriptionStatus.PAST_DUE,
            past_due_since=record.past_due_since or event.occurred_at or now,
        ),
    )


def _cancel(
    record: SubscriptionRecord, event: Cancel, now: datetime, policy: SubscriptionPolicy
) -> TransitionResult:
    if record.plan not in (Plan.PAID, Plan.TRIAL) or not is_active(record, now, policy):
        return TransitionResult.rejected(record, RejectionReason.NOT_ACTIVE)
    return TransitionResult.accepted(record, replace(record, status=SubscriptionStatus.CANCELED))


def _reactivate(
    record: SubscriptionRecord, event: Reactivate, now: datetime, policy: SubscriptionPolicy
) -> TransitionResult:
    if record.status != SubscriptionStatus.CANCELED:
        return TransitionResult.rejected(record, RejectionReason.NOT_CANCELED)
    if not is_active(record, now, policy):
        return TransitionResult.rejected(record, RejectionReason.NOT_ACTIVE)
    status = SubscriptionStatus.ACTIVE if record.plan == Plan.PAID else SubscriptionStatus.TRIALING
    return TransitionResult.accepted(record, replace(record, status=status))


_Handler = Callable[
    [SubscriptionRecord, DomainEvent, datetime, SubscriptionPolicy], TransitionResult
]

_HANDLERS: dict[type, _Handler] = {
    StartTrial: _start_trial,
    CheckoutCompleted: _checkout_completed,
    SubscriptionActivated: _subscription_activated,
    SubscriptionDeleted: _subscription_deleted,
    PaymentSucceeded: _payment_succeeded,
    PaymentFailed: _payment_failed,
    Cancel: _cancel,
    Reactivate: _reactivate,
}


def apply_event(
    record: SubscriptionRecord,
    event: DomainEvent,
    *,
    now: datetime,
    policy: SubscriptionPolicy,
) -> TransitionResult:
    """Apply *event* to *record* at time *now*.

    Returns a rejected result (never raises) when the event's precondition
    does not hold, or when ordering is enforced and the event predates the
    last applied provider event.
    """
    if _is_stale(record, event, policy):
        return TransitionResult.rejected(record, RejectionReason.STALE_EVENT)

    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unsupported domain event: {type(event).__name__}")

    result = handler(record, event, now, policy)
    if not result.ok:
        return result

    occurred_at = _occurred_at(event)
    if occurred_at is not None and (
        result.record.last_event_at is None or occurred_at > result.record.last_event_at
    ):
        result = replace(result, record=replace(result.record, last_event_at=occurred_at))
    return result
