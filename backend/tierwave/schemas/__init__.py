"""Pydantic schemas for the API surface and provider payloads."""

from .subscription import (
    ImageLimitResponse,
    SubscriptionActionResponse,
    SubscriptionConfigInfo,
    SubscriptionInfo,
    SubscriptionStatusView,
    SubscriptionUpdatedMessage,
    UsageInfo,
    VideoUploadResponse,
)
from .webhook import (
    CheckoutSessionObject,
    InvoiceObject,
    SubscriptionObject,
    WebhookEnvelope,
)

__all__ = [
    "CheckoutSessionObject",
    "ImageLimitResponse",
    "InvoiceObject",
    "SubscriptionActionResponse",
    "SubscriptionConfigInfo",
    "SubscriptionInfo",
    "SubscriptionObject",
    "SubscriptionStatusView",
    "SubscriptionUpdatedMessage",
    "UsageInfo",
    "VideoUploadResponse",
    "WebhookEnvelope",
]
