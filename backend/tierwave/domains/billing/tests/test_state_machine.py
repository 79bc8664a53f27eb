"""Unit tests for the subscription state machine and access predicates.

Covers:
- every (event, precondition) pair, accepted and rejected (table-driven)
- replay idempotence of each provider event
- bonus granted at most once
- out-of-order delivery with and without the ordering guard
- is_active / is_premium / effective_plan boundaries
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

import pytest

from tierwave.domains.billing.state_machine import apply_event
from tierwave.domains.billing.tests.conftest import (
    CUSTOMER_ID,
    NOW,
    PERIOD_END,
    SUBSCRIPTION_ID,
    _make_paid_record,
    _make_policy,
    _make_record,
)
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
    SubscriptionRecord,
    SubscriptionStatus,
    effective_plan,
    is_active,
    is_premium,
)

POLICY = _make_policy()


def _apply(record: SubscriptionRecord, event: DomainEvent, now: datetime = NOW, policy=POLICY):
    return apply_event(record, event, now=now, policy=policy)


def _checkout(period_end: datetime = PERIOD_END, **kwargs) -> CheckoutCompleted:
    return CheckoutCompleted(
        subscription_id=SUBSCRIPTION_ID, period_end=period_end, customer_id=CUSTOMER_ID, **kwargs
    )


# ===========================================================================
# Transitions (table-driven)
# ===========================================================================


@dataclass
class TransitionCase:
    label: str
    record: SubscriptionRecord
    event: DomainEvent
    ok: bool = True
    reason: Optional[RejectionReason] = None
    expect: dict = field(default_factory=dict)
    bonus_granted: bool = False
    period_started: bool = False


TRANSITION_CASES = [
    TransitionCase(
        "start trial from fresh free user",
        _make_record(),
        StartTrial(),
        expect=dict(
            plan=Plan.TRIAL,
            status=SubscriptionStatus.TRIALING,
            trial_started_at=NOW,
            trial_ends_at=NOW + timedelta(days=5),
        ),
    ),
    TransitionCase(
        "start trial after trial already used",
        _make_record(trial_started_at=NOW - timedelta(days=30)),
        StartTrial(),
        ok=False,
        reason=RejectionReason.TRIAL_NOT_AVAILABLE,
    ),
    TransitionCase(
        "start trial after a past subscription",
        _make_record(subscription_id="sub_old"),
        StartTrial(),
        ok=False,
        reason=RejectionReason.TRIAL_NOT_AVAILABLE,
    ),
    TransitionCase(
        "start trial while paid",
        _make_paid_record(),
        StartTrial(),
        ok=False,
        reason=RejectionReason.ALREADY_PREMIUM,
    ),
    TransitionCase(
        "start trial while trialing",
        _make_record(
            plan=Plan.TRIAL,
            status=SubscriptionStatus.TRIALING,
            trial_started_at=NOW,
            trial_ends_at=NOW + timedelta(days=5),
        ),
        StartTrial(),
        ok=False,
        reason=RejectionReason.ALREADY_PREMIUM,
    ),
    TransitionCase(
        "checkout from free grants paid access and bonus",
        _make_record(xp=10),
        _checkout(),
        expect=dict(
            plan=Plan.PAID,
            status=SubscriptionStatus.ACTIVE,
            paid_until=PERIOD_END,
            subscription_id=SUBSCRIPTION_ID,
            customer_id=CUSTOMER_ID,
            one_time_bonus_granted=True,
            xp=260,
        ),
        bonus_granted=True,
    ),
    TransitionCase(
        "checkout after bonus already granted",
        _make_record(one_time_bonus_granted=True, xp=300),
        _checkout(),
        expect=dict(plan=Plan.PAID, one_time_bonus_granted=True, xp=300),
    ),
    TransitionCase(
        "checkout with cancel at period end lands canceled",
        _make_record(),
        _checkout(cancel_at_period_end=True),
        expect=dict(plan=Plan.PAID, status=SubscriptionStatus.CANCELED, paid_until=PERIOD_END),
        bonus_granted=True,
    ),
    TransitionCase(
        "checkout keeps an existing customer link",
        _make_record(customer_id="cus_original"),
        _checkout(),
        expect=dict(customer_id="cus_original"),
        bonus_granted=True,
    ),
    TransitionCase(
        "subscription updated extends paid_until",
        _make_paid_record(),
        SubscriptionActivated(
            subscription_id=SUBSCRIPTION_ID, period_end=PERIOD_END + timedelta(days=30)
        ),
        expect=dict(paid_until=PERIOD_END + timedelta(days=30), xp=250),
    ),
    TransitionCase(
        "subscription updated clears past_due",
        _make_paid_record(status=SubscriptionStatus.PAST_DUE, past_due_since=NOW),
        SubscriptionActivated(subscription_id=SUBSCRIPTION_ID, period_end=PERIOD_END),
        expect=dict(status=SubscriptionStatus.ACTIVE, past_due_since=None),
    ),
    TransitionCase(
        "subscription updated with pending cancel keeps canceled status",
        _make_paid_record(),
        SubscriptionActivated(
            subscription_id=SUBSCRIPTION_ID, period_end=PERIOD_END, cancel_at_period_end=True
        ),
        expect=dict(plan=Plan.PAID, status=SubscriptionStatus.CANCELED, paid_until=PERIOD_END),
    ),
    TransitionCase(
        "subscription updated without pending cancel restores active",
        _make_paid_record(status=SubscriptionStatus.CANCELED),
        SubscriptionActivated(subscription_id=SUBSCRIPTION_ID, period_end=PERIOD_END),
        expect=dict(plan=Plan.PAID, status=SubscriptionStatus.ACTIVE),
    ),
    TransitionCase(
        "payment succeeded for a new period",
        _make_paid_record(),
        PaymentSucceeded(
            subscription_id=SUBSCRIPTION_ID, period_end=PERIOD_END + timedelta(days=30)
        ),
        expect=dict(paid_until=PERIOD_END + timedelta(days=30)),
        period_started=True,
    ),
    TransitionCase(
        "payment succeeded for the current period",
        _make_paid_record(),
        PaymentSucceeded(subscription_id=SUBSCRIPTION_ID, period_end=PERIOD_END),
        expect=dict(paid_until=PERIOD_END),
    ),
    TransitionCase(
        "subscription deleted reverts to free and keeps ids",
        _make_paid_record(status=SubscriptionStatus.CANCELED),
        SubscriptionDeleted(subscription_id=SUBSCRIPTION_ID),
        expect=dict(
            plan=Plan.FREE,
            status=SubscriptionStatus.NONE,
            paid_until=None,
            subscription_id=SUBSCRIPTION_ID,
            customer_id=CUSTOMER_ID,
            one_time_bonus_granted=True,
        ),
    ),
    TransitionCase(
        "deletion of a replaced subscription",
        _make_paid_record(),
        SubscriptionDeleted(subscription_id="sub_old"),
        ok=False,
        reason=RejectionReason.SUBSCRIPTION_MISMATCH,
    ),
    TransitionCase(
        "payment failed marks past_due and keeps plan",
        _make_paid_record(),
        PaymentFailed(subscription_id=SUBSCRIPTION_ID, occurred_at=NOW),
        expect=dict(
            plan=Plan.PAID,
            status=SubscriptionStatus.PAST_DUE,
            paid_until=PERIOD_END,
            past_due_since=NOW,
        ),
    ),
    TransitionCase(
        "payment failed keeps the first failure time",
        _make_paid_record(
            status=SubscriptionStatus.PAST_DUE, past_due_since=NOW - timedelta(days=2)
        ),
        PaymentFailed(subscription_id=SUBSCRIPTION_ID, occurred_at=NOW),
        expect=dict(past_due_since=NOW - timedelta(days=2)),
    ),
    TransitionCase(
        "payment failed on free plan",
        _make_record(),
        PaymentFailed(subscription_id=SUBSCRIPTION_ID),
        ok=False,
        reason=RejectionReason.NO_PLAN,
    ),
    TransitionCase(
        "cancel active paid keeps plan and paid_until",
        _make_paid_record(),
        Cancel(),
        expect=dict(plan=Plan.PAID, status=SubscriptionStatus.CANCELED, paid_until=PERIOD_END),
    ),
    TransitionCase(
        "cancel active trial",
        _make_record(
            plan=Plan.TRIAL,
            status=SubscriptionStatus.TRIALING,
            trial_started_at=NOW,
            trial_ends_at=NOW + timedelta(days=5),
        ),
        Cancel(),
        expect=dict(plan=Plan.TRIAL, status=SubscriptionStatus.CANCELED),
    ),
    TransitionCase(
        "cancel on free plan",
        _make_record(),
        Cancel(),
        ok=False,
        reason=RejectionReason.NOT_ACTIVE,
    ),
    TransitionCase(
        "cancel after paid period lapsed",
        _make_paid_record(paid_until=NOW - timedelta(days=1)),
        Cancel(),
        ok=False,
        reason=RejectionReason.NOT_ACTIVE,
    ),
    TransitionCase(
        "reactivate pending cancellation",
        _make_paid_record(status=SubscriptionStatus.CANCELED),
        Reactivate(),
        expect=dict(status=SubscriptionStatus.ACTIVE, paid_until=PERIOD_END),
    ),
    TransitionCase(
        "reactivate active subscription",
        _make_paid_record(),
        Reactivate(),
        ok=False,
        reason=RejectionReason.NOT_CANCELED,
    ),
    TransitionCase(
        "reactivate after access lapsed",
        _make_paid_record(status=SubscriptionStatus.CANCELED, paid_until=NOW - timedelta(hours=1)),
        Reactivate(),
        ok=False,
        reason=RejectionReason.NOT_ACTIVE,
    ),
]


@pytest.mark.parametrize("case", TRANSITION_CASES, ids=lambda c: c.label)
def test_transition(case: TransitionCase):
    result = _apply(case.record, case.event)

    assert result.ok is case.ok
    assert result.reason == case.reason
    assert result.previous == case.record
    if not case.ok:
        assert result.record == case.record
        assert result.message
        return
    for attr, value in case.expect.items():
        assert getattr(result.record, attr) == value, attr
    assert result.bonus_granted is case.bonus_granted
    assert result.period_started is case.period_started


# ===========================================================================
# Idempotence
# ===========================================================================


@dataclass
class ReplayCase:
    label: str
    record: SubscriptionRecord
    event: DomainEvent


REPLAY_CASES = [
    ReplayCase("checkout", _make_record(), _checkout(occurred_at=NOW)),
    ReplayCase(
        "subscription activated",
        _make_record(),
        SubscriptionActivated(
            subscription_id=SUBSCRIPTION_ID, period_end=PERIOD_END, occurred_at=NOW
        ),
    ),
    ReplayCase(
        "payment succeeded",
        _make_paid_record(),
        PaymentSucceeded(
            subscription_id=SUBSCRIPTION_ID,
            period_end=PERIOD_END + timedelta(days=30),
            occurred_at=NOW,
        ),
    ),
    ReplayCase(
        "payment failed",
        _make_paid_record(),
        PaymentFailed(subscription_id=SUBSCRIPTION_ID, occurred_at=NOW),
    ),
    ReplayCase(
        "subscription deleted",
        _make_paid_record(),
        SubscriptionDeleted(subscription_id=SUBSCRIPTION_ID, occurred_at=NOW),
    ),
]


@pytest.mark.parametrize("case", REPLAY_CASES, ids=lambda c: c.label)
@pytest.mark.parametrize("replays", [1, 2, 5])
def test_replaying_provider_event_converges(case: ReplayCase, replays: int):
    first = _apply(case.record, case.event)
    assert first.ok

    record = first.record
    for _ in range(replays):
        again = _apply(record, case.event)
        assert again.ok
        assert not again.changed
        assert not again.bonus_granted
        assert not again.period_started
        record = again.record

    assert record == first.record


def test_bonus_granted_at_most_once_across_subscriptions():
    record = _make_record()
    granted = 0
    for i in range(3):
        result = _apply(
            record,
            CheckoutCompleted(subscription_id=f"sub_{i}", period_end=PERIOD_END + timedelta(days=i)),
        )
        granted += result.bonus_granted
        record = _apply(result.record, SubscriptionDeleted(subscription_id=f"sub_{i}")).record

    assert granted == 1
    assert record.xp == POLICY.bonus_xp
    assert record.one_time_bonus_granted is True


# ===========================================================================
# Ordering
# ===========================================================================

T1 = NOW + timedelta(days=30)
T2 = NOW + timedelta(days=60)


def _renewals():
    newer = SubscriptionActivated(
        subscription_id=SUBSCRIPTION_ID, period_end=T2, occurred_at=NOW + timedelta(minutes=5)
    )
    older = SubscriptionActivated(
        subscription_id=SUBSCRIPTION_ID, period_end=T1, occurred_at=NOW
    )
    return newer, older


def test_out_of_order_last_delivered_wins_by_default():
    newer, older = _renewals()
    record = _apply(_make_paid_record(), newer).record
    result = _apply(record, older)

    assert result.ok
    assert result.record.paid_until == T1
    assert result.record.last_event_at == newer.occurred_at


def test_out_of_order_rejected_with_ordering_guard():
    policy = _make_policy(enforce_event_ordering=True)
    newer, older = _renewals()
    record = _apply(_make_paid_record(), newer, policy=policy).record
    result = _apply(record, older, policy=policy)

    assert not result.ok
    assert result.reason == RejectionReason.STALE_EVENT
    assert result.record.paid_until == T2


def test_user_actions_are_never_stale():
    policy = _make_policy(enforce_event_ordering=True)
    record = _make_paid_record(last_event_at=NOW + timedelta(days=1))
    assert _apply(record, Cancel(), policy=policy).ok


# ===========================================================================
# Access predicates
# ===========================================================================


@dataclass
class AccessCase:
    label: str
    record: SubscriptionRecord
    now: datetime
    active: bool
    premium: bool
    plan: Plan
    grace_days: Optional[int] = None


ACCESS_CASES = [
    AccessCase("free user", _make_record(), NOW, False, False, Plan.FREE),
    AccessCase("active paid", _make_paid_record(), NOW, True, True, Plan.PAID),
    AccessCase(
        "paid past paid_until",
        _make_paid_record(),
        PERIOD_END + timedelta(seconds=1),
        False,
        False,
        Plan.FREE,
    ),
    AccessCase("paid exactly at paid_until", _make_paid_record(), PERIOD_END, False, False, Plan.FREE),
    AccessCase(
        "canceled before paid_until",
        _make_paid_record(status=SubscriptionStatus.CANCELED),
        NOW,
        True,
        True,
        Plan.PAID,
    ),
    AccessCase(
        "canceled after paid_until",
        _make_paid_record(status=SubscriptionStatus.CANCELED),
        PERIOD_END + timedelta(days=1),
        False,
        False,
        Plan.FREE,
    ),
    AccessCase(
        "past_due without grace keeps access",
        _make_paid_record(status=SubscriptionStatus.PAST_DUE, past_due_since=NOW - timedelta(days=20)),
        NOW,
        True,
        True,
        Plan.PAID,
    ),
    AccessCase(
        "past_due inside grace",
        _make_paid_record(status=SubscriptionStatus.PAST_DUE, past_due_since=NOW - timedelta(days=2)),
        NOW,
        True,
        True,
        Plan.PAID,
        grace_days=3,
    ),
    AccessCase(
        "past_due beyond grace",
        _make_paid_record(status=SubscriptionStatus.PAST_DUE, past_due_since=NOW - timedelta(days=4)),
        NOW,
        False,
        False,
        Plan.FREE,
        grace_days=3,
    ),
    AccessCase(
        "trialing inside trial",
        _make_record(
            plan=Plan.TRIAL, status=SubscriptionStatus.TRIALING, trial_ends_at=NOW + timedelta(days=1)
        ),
        NOW,
        True,
        True,
        Plan.TRIAL,
    ),
    AccessCase(
        "trial ended",
        _make_record(
            plan=Plan.TRIAL, status=SubscriptionStatus.TRIALING, trial_ends_at=NOW - timedelta(days=1)
        ),
        NOW,
        False,
        False,
        Plan.FREE,
    ),
]


@pytest.mark.parametrize("case", ACCESS_CASES, ids=lambda c: c.label)
def test_access_predicates(case: AccessCase):
    policy = _make_policy(past_due_grace_days=case.grace_days)
    assert is_active(case.record, case.now, policy) is case.active
    assert is_premium(case.record, case.now, policy) is case.premium
    assert effective_plan(case.record, case.now, policy) == case.plan


def test_cancel_keeps_access_until_deletion():
    canceled = _apply(_make_paid_record(), Cancel()).record
    assert is_premium(canceled, NOW, POLICY)

    deleted = _apply(canceled, SubscriptionDeleted(subscription_id=SUBSCRIPTION_ID)).record
    assert deleted.plan == Plan.FREE
    assert not is_premium(deleted, NOW, POLICY)


def test_lapsed_trial_can_still_buy_but_not_retrial():
    lapsed = _make_record(
        plan=Plan.TRIAL,
        status=SubscriptionStatus.TRIALING,
        trial_started_at=NOW - timedelta(days=10),
        trial_ends_at=NOW - timedelta(days=5),
    )
    retrial = _apply(lapsed, StartTrial())
    assert retrial.reason == RejectionReason.TRIAL_NOT_AVAILABLE

    bought = _apply(lapsed, _checkout())
    assert bought.ok
    assert bought.record.plan == Plan.PAID


def test_unknown_event_type_raises():
    with pytest.raises(TypeError):
        apply_event(_make_record(), object(), now=NOW, policy=POLICY)  # type: ignore[arg-type]
