"""Models for the application."""

from ._base import Base
from .daily_usage import DailyUsage
from .user import User
from .webhook_event import WebhookEvent

__all__ = ["Base", "DailyUsage", "User", "WebhookEvent"]
