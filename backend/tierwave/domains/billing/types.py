"""Billing domain types.

Plan/status enums, the immutable subscription record the state machine
operates on, the closed set of domain events, and the pure access
predicates derived from a record.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, ClassVar, Optional, Union
from uuid import UUID


class Plan(str, Enum):
    """Internal tier designation."""

    FREE = "free"
    TRIAL = "trial"
    PAID = "paid"


class SubscriptionStatus(str, Enum):
    """Lifecycle state layered on top of the plan."""

    NONE = "none"
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


# Provider subscription statuses that grant access.
ACTIVATING_PROVIDER_STATUSES = frozenset({"active", "trialing"})


@dataclass(frozen=True)
class SubscriptionRecord:
    """Snapshot of one user's subscription columns.

    ``version`` is the optimistic-concurrency token: a write only lands if
    the stored version still equals the one this snapshot was read at.
    """

    user_id: UUID
    plan: Plan = Plan.FREE
    status: SubscriptionStatus = SubscriptionStatus.NONE
    trial_started_at: Optional[datetime] = None
    trial_ends_at: Optional[datetime] = None
    paid_until: Optional[datetime] = None
    past_due_since: Optional[datetime] = None
    customer_id: Optional[str] = None
    subscription_id: Optional[str] = None
    one_time_bonus_granted: bool = False
    last_event_at: Optional[datetime] = None
    xp: int = 0
    version: int = 0


@dataclass(frozen=True)
class SubscriptionPolicy:
    """Tunable parameters of the subscription lifecycle."""

    trial_days: int = 5
    bonus_xp: int = 250
    past_due_grace_days: Optional[int] = None
    enforce_event_ordering: bool = False
    cas_max_attempts: int = 5

    @classmethod
    def from_settings(cls, settings: Any) -> "SubscriptionPolicy":
        return cls(
            trial_days=settings.TRIAL_DAYS,
            bonus_xp=settings.PREMIUM_BONUS_XP,
            past_due_grace_days=settings.PAST_DUE_GRACE_DAYS,
            enforce_event_ordering=settings.ENFORCE_EVENT_ORDERING,
            cas_max_attempts=settings.CAS_MAX_ATTEMPTS,
        )


# ---------------------------------------------------------------------------
# Domain events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StartTrial:
    """User asks for the free trial."""

    name: ClassVar[str] = "start_trial"


@dataclass(frozen=True)
class CheckoutCompleted:
    """A subscription-mode checkout finished and its subscription grants access."""

    name: ClassVar[str] = "checkout_completed"

    subscription_id: str
    period_end: datetime
    customer_id: Optional[str] = None
    cancel_at_period_end: bool = False
    occurred_at: Optional[datetime] = None


@dataclass(frozen=True)
class SubscriptionActivated:
    """The provider reports a subscription as active or trialing."""

    name: ClassVar[str] = "subscription_activated"

    subscription_id: str
    period_end: datetime
    customer_id: Optional[str] = None
    cancel_at_period_end: bool = False
    occurred_at: Optional[datetime] = None


@dataclass(frozen=True)
class SubscriptionDeleted:
    """The provider ended the subscription."""

    name: ClassVar[str] = "subscription_deleted"

    subscription_id: Optional[str] = None
    occurred_at: Optional[datetime] = None


@dataclass(frozen=True)
class PaymentSucceeded:
    """A subscription invoice was paid; a new billing period starts."""

    name: ClassVar[str] = "payment_succeeded"

    subscription_id: str
    period_end: datetime
    customer_id: Optional[str] = None
    cancel_at_period_end: bool = False
    occurred_at: Optional[datetime] = None


@dataclass(frozen=True)
class PaymentFailed:
    """A subscription invoice payment failed."""

    name: ClassVar[str] = "payment_failed"

    subscription_id: Optional[str] = None
    occurred_at: Optional[datetime] = None


@dataclass(frozen=True)
class Cancel:
    """User cancels; access continues until the paid period ends."""

    name: ClassVar[str] = "cancel"


@dataclass(frozen=True)
class Reactivate:
    """User withdraws a pending cancellation."""

    name: ClassVar[str] = "reactivate"


DomainEvent = Union[
    StartTrial,
    CheckoutCompleted,
    SubscriptionActivated,
    SubscriptionDeleted,
    PaymentSucceeded,
    PaymentFailed,
    Cancel,
    Reactivate,
]

ProviderEvent = Union[
    CheckoutCompleted,
    SubscriptionActivated,
    SubscriptionDeleted,
    PaymentSucceeded,
    PaymentFailed,
]


# ---------------------------------------------------------------------------
# Transition results
# ---------------------------------------------------------------------------


class RejectionReason(str, Enum):
    """Why a domain event was not applied."""

    ALREADY_PREMIUM = "already_premium"
    TRIAL_NOT_AVAILABLE = "trial_not_available"
    NOT_ACTIVE = "not_active"
    NOT_CANCELED = "not_canceled"
    NO_PLAN = "no_plan"
    SUBSCRIPTION_MISMATCH = "subscription_mismatch"
    STALE_EVENT = "stale_event"


_REJECTION_MESSAGES = {
    RejectionReason.ALREADY_PREMIUM: "You already have an active trial or subscription",
    RejectionReason.TRIAL_NOT_AVAILABLE: "The free trial has already been used",
    RejectionReason.NOT_ACTIVE: "No active subscription to cancel",
    RejectionReason.NOT_CANCELED: "Subscription is not pending cancellation",
    RejectionReason.NO_PLAN: "No paid plan on record",
    RejectionReason.SUBSCRIPTION_MISMATCH: "Event refers to a different subscription",
    RejectionReason.STALE_EVENT: "Event is older than the last applied event",
}


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of applying one domain event to one record."""

    ok: bool
    previous: SubscriptionRecord
    record: SubscriptionRecord
    reason: Optional[RejectionReason] = None
    bonus_granted: bool = False
    period_started: bool = False

    @property
    def changed(self) -> bool:
        return self.record != self.previous

    @property
    def message(self) -> str:
        return _REJECTION_MESSAGES[self.reason] if self.reason else ""

    @classmethod
    def accepted(
        cls,
        previous: SubscriptionRecord,
        record: SubscriptionRecord,
        *,
        bonus_granted: bool = False,
        period_started: bool = False,
    ) -> "TransitionResult":
        return cls(
            ok=True,
            previous=previous,
            record=record,
            bonus_granted=bonus_granted,
            period_started=period_started,
        )

    @classmethod
    def rejected(cls, record: SubscriptionRecord, reason: RejectionReason) -> "TransitionResult":
        return cls(ok=False, previous=record, record=record, reason=reason)


# ---------------------------------------------------------------------------
# Derived access
# ---------------------------------------------------------------------------


def is_active(
    record: SubscriptionRecord, now: datetime, policy: Optional[SubscriptionPolicy] = None
) -> bool:
    """Whether the record grants access at *now*.

    A canceled or past_due record keeps access until its plan boundary
    (``paid_until`` for paid, ``trial_ends_at`` for trial) passes. With a
    grace period configured, past_due access also ends ``past_due_grace_days``
    after the first failed payment.
    """
    if record.plan == Plan.FREE or record.status == SubscriptionStatus.NONE:
        return False

    boundary = record.paid_until if record.plan == Plan.PAID else record.trial_ends_at
    if boundary is not None and boundary <= now:
        return False

    if (
        record.status == SubscriptionStatus.PAST_DUE
        and policy is not None
        and policy.past_due_grace_days is not None
        and record.past_due_since is not None
    ):
        if record.past_due_since + timedelta(days=policy.past_due_grace_days) <= now:
            return False

    return True


def is_premium(
    record: SubscriptionRecord, now: datetime, policy: Optional[SubscriptionPolicy] = None
) -> bool:
    return record.plan in (Plan.PAID, Plan.TRIAL) and is_active(record, now, policy)


def effective_plan(
    record: SubscriptionRecord, now: datetime, policy: Optional[SubscriptionPolicy] = None
) -> Plan:
    """The plan the user is entitled to right now; lapsed records read as free."""
    return record.plan if is_active(record, now, policy) else Plan.FREE


def access_expiry(record: SubscriptionRecord) -> Optional[datetime]:
    """The boundary at which the current plan stops granting access."""
    if record.plan == Plan.PAID:
        return record.paid_until
    if record.plan == Plan.TRIAL:
        return record.trial_ends_at
    return None


# ---------------------------------------------------------------------------
# Webhook processing
# ---------------------------------------------------------------------------


class WebhookOutcome(str, Enum):
    """What happened to one webhook delivery."""

    PROCESSED = "processed"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    REJECTED = "rejected"
    STALE = "stale"


@dataclass(frozen=True)
class BillingIdentity:
    """Identifiers carried by an event that can point at a user."""

    customer_id: Optional[str] = None
    metadata_user_id: Optional[str] = None
    client_reference_id: Optional[str] = None


@dataclass(frozen=True)
class TranslatedEvent:
    """A verified provider event after translation.

    ``event`` is None when the provider event has no effect on subscription
    state; ``ignore_reason`` then says why.
    """

    event_id: str
    event_type: str
    event: Optional[ProviderEvent]
    identity: BillingIdentity = field(default_factory=BillingIdentity)
    session_id: Optional[str] = None
    summary: dict[str, Any] = field(default_factory=dict)
    ignore_reason: Optional[str] = None
