"""Subscription API schemas.

Responses are serialised with camelCase keys (``isPremium``, ``paidUntil``)
because that is the shape existing clients read.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SubscriptionInfo(_CamelModel):
    """Current plan and access of one user."""

    plan: str
    status: str
    is_active: bool
    is_premium: bool
    trial_ends_at: Optional[datetime] = None
    paid_until: Optional[datetime] = None


class UsageInfo(_CamelModel):
    """Today's usage against the free-tier quota."""

    images_used_today: int
    daily_image_limit: Optional[int] = None
    can_upload_video: bool


class SubscriptionConfigInfo(_CamelModel):
    """Static offer parameters shown alongside the status."""

    price_sek: int
    trial_days: int


class SubscriptionStatusView(_CamelModel):
    """Response of ``GET /subscription/status``."""

    subscription: SubscriptionInfo
    usage: UsageInfo
    config: SubscriptionConfigInfo


class SubscriptionActionResponse(_CamelModel):
    """Successful user action (start trial, cancel, reactivate)."""

    success: bool = True
    message: str
    subscription: SubscriptionInfo


class ImageLimitResponse(_CamelModel):
    """Whether the user may send another image today."""

    allowed: bool
    used: int
    limit: Optional[int] = None
    remaining: Optional[int] = None
    reason: Optional[str] = None


class VideoUploadResponse(_CamelModel):
    can_upload: bool
    reason: Optional[str] = None


class SubscriptionUpdatedMessage(BaseModel):
    """Realtime message pushed to a user's live connections."""

    type: str = "subscription.updated"
    subscription_status: str
    subscription_expiry: Optional[datetime] = None
    timestamp: datetime
