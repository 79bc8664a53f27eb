"""Billing domain exceptions."""

import functools
from typing import Optional

from tierwave.core.exceptions import (
    ConflictException,
    ExternalServiceError,
    InvalidStateError,
    NotFoundException,
    TierwaveException,
)


class SubscriptionNotFoundError(NotFoundException):
    """Raised when a user's subscription record does not exist."""

    def __init__(self, message: str = "Subscription record not found"):
        """Initialize with default message."""
        super().__init__(message)


class BillingNotAvailableError(InvalidStateError):
    """Raised by NullBillingProvider when billing is not enabled."""

    def __init__(self, message: str = "Billing is not enabled for this instance"):
        """Initialize with default message."""
        super().__init__(message)


class PaymentGatewayError(ExternalServiceError):
    """Wraps ExternalServiceError from the billing adapter at the domain boundary."""

    def __init__(self, message: str = "Payment gateway error"):
        """Initialize with default message."""
        super().__init__(service_name="PaymentGateway", message=message)


class WebhookVerificationError(ValueError):
    """Raised when a webhook cannot be authenticated or decoded.

    Subclasses ValueError so the webhook endpoint maps it to 400 and the
    provider retries on its own schedule. Nothing has been touched when this
    is raised.
    """


class EventTranslationError(WebhookVerificationError):
    """Raised when a verified event lacks a field its domain event requires."""

    def __init__(self, event_type: str, field_name: str):
        """Initialize with the event type and the missing field."""
        self.event_type = event_type
        self.field_name = field_name
        super().__init__(f"{event_type}: missing required field '{field_name}'")


class IdentityResolutionError(TierwaveException):
    """Raised when a billing event cannot be attributed to exactly one user."""

    def __init__(
        self,
        customer_id: Optional[str],
        metadata_user_id: Optional[str] = None,
        message: Optional[str] = None,
    ):
        """Initialize with the identifiers that failed to resolve."""
        self.customer_id = customer_id
        self.metadata_user_id = metadata_user_id
        self.message = message or (
            f"Could not resolve user for customer={customer_id!r} "
            f"metadata_user_id={metadata_user_id!r}"
        )
        super().__init__(self.message)


class ConcurrentUpdateError(ConflictException):
    """Raised when a subscription write keeps losing compare-and-set races."""

    def __init__(self, user_id: object, attempts: int):
        """Initialize with the contended user and the number of attempts made."""
        self.user_id = user_id
        self.attempts = attempts
        super().__init__(f"Subscription for user {user_id} changed concurrently {attempts} times")


def wrap_gateway_errors(fn):
    """Decorator: catch ExternalServiceError from the billing adapter, wrap as PaymentGatewayError."""

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except PaymentGatewayError:
            raise
        except ExternalServiceError as e:
            raise PaymentGatewayError(message=e.message) from e

    return wrapper
