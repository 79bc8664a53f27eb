"""Per-user daily usage counter model."""

from datetime import date
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tierwave.models._base import Base


class DailyUsage(Base):
    """Images analysed by a user on one calendar day (UTC)."""

    __tablename__ = "daily_usage"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE", name="fk_daily_usage_user_id"), nullable=False
    )
    usage_date: Mapped[date] = mapped_column(Date, nullable=False)
    images_sent: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "usage_date", name="uq_daily_usage_user_date"),)
