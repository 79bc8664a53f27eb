"""User model.

Only the columns this service owns are mapped: identity plus the cached
subscription state. Subscription columns are written exclusively through
``crud.user.compare_and_set_subscription``.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tierwave.models._base import Base


class User(Base):
    """User model."""

    __tablename__ = "user"

    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    xp: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)

    # Subscription state
    plan: Mapped[str] = mapped_column(String(16), default="free", server_default="free")
    subscription_status: Mapped[str] = mapped_column(
        String(16), default="none", server_default="none"
    )
    trial_started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    trial_ends_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    paid_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    past_due_since: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    billing_customer_id: Mapped[Optional[str]] = mapped_column(String, unique=True, nullable=True)
    billing_subscription_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    one_time_bonus_granted: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    last_billing_event_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    subscription_version: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )

    __table_args__ = (Index("idx_user_billing_subscription_id", "billing_subscription_id"),)
