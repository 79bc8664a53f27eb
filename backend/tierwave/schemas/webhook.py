"""Typed views of billing provider webhook payloads.

Only the fields the subscription lifecycle reads are declared; everything
else in a Stripe object is ignored. Expandable references (``customer``,
``subscription``) are accepted either as an id string or as an expanded
object and normalised to the id.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _expandable_id(value: Any) -> Any:
    if isinstance(value, dict):
        return value.get("id")
    return value


class _StripeObject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def coerce_metadata(cls, value: Any) -> dict[str, str]:
        if not value:
            return {}
        return {str(k): str(v) for k, v in dict(value).items() if v is not None}

    @property
    def metadata_user_id(self) -> Optional[str]:
        return self.metadata.get("userId") or self.metadata.get("user_id")


class CheckoutSessionObject(_StripeObject):
    """``checkout.session`` object."""

    mode: Optional[str] = None
    status: Optional[str] = None
    customer: Optional[str] = None
    subscription: Optional[str] = None
    client_reference_id: Optional[str] = None

    @field_validator("customer", "subscription", mode="before")
    @classmethod
    def expand_ids(cls, value: Any) -> Any:
        return _expandable_id(value)


class SubscriptionItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current_period_end: Optional[int] = None


class SubscriptionItems(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: list[SubscriptionItem] = Field(default_factory=list)


class SubscriptionObject(_StripeObject):
    """``subscription`` object."""

    status: Optional[str] = None
    customer: Optional[str] = None
    current_period_end: Optional[int] = None
    cancel_at_period_end: bool = False
    items: SubscriptionItems = Field(default_factory=SubscriptionItems)

    @field_validator("customer", mode="before")
    @classmethod
    def expand_ids(cls, value: Any) -> Any:
        return _expandable_id(value)

    @property
    def period_end(self) -> Optional[datetime]:
        """Current period end; newer API versions carry it on the items."""
        ts = self.current_period_end
        if ts is None:
            ts = next(
                (i.current_period_end for i in self.items.data if i.current_period_end), None
            )
        return datetime.fromtimestamp(ts, tz=timezone.utc) if ts is not None else None


class InvoiceObject(_StripeObject):
    """``invoice`` object."""

    customer: Optional[str] = None
    subscription: Optional[str] = None
    parent: Optional[dict[str, Any]] = None

    @field_validator("customer", "subscription", mode="before")
    @classmethod
    def expand_ids(cls, value: Any) -> Any:
        return _expandable_id(value)

    @property
    def subscription_id(self) -> Optional[str]:
        """Subscription id; newer API versions nest it under ``parent``."""
        if self.subscription:
            return self.subscription
        details = (self.parent or {}).get("subscription_details") or {}
        return _expandable_id(details.get("subscription"))


class WebhookEventData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object: dict[str, Any]


class WebhookEnvelope(BaseModel):
    """Generic provider event envelope ``{id, type, created, data: {object}}``."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    created: Optional[int] = None
    data: WebhookEventData

    @property
    def created_at(self) -> Optional[datetime]:
        if self.created is None:
            return None
        return datetime.fromtimestamp(self.created, tz=timezone.utc)

    @property
    def object_id(self) -> Optional[str]:
        value = self.data.object.get("id")
        return value if isinstance(value, str) else None
