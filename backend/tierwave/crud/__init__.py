"""CRUD singletons used by domain repositories."""

from .crud_daily_usage import daily_usage
from .crud_user import user
from .crud_webhook_event import webhook_event

__all__ = ["daily_usage", "user", "webhook_event"]
