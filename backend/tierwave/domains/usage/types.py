"""Usage domain types and pure business logic.

No IO; everything here is deterministic.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ActionType(str, Enum):
    """Action type enum."""

    IMAGES = "images"
    VIDEO_UPLOAD = "video_upload"


@dataclass(frozen=True)
class ImageLimitCheck:
    """Result of checking the daily image quota.

    ``limit`` and ``remaining`` are None for premium users, who are not
    metered.
    """

    allowed: bool
    used: int
    limit: Optional[int]
    remaining: Optional[int]
    reason: Optional[str] = None


def evaluate_image_limit(used: int, daily_limit: int, is_premium: bool) -> ImageLimitCheck:
    """Decide whether one more image analysis is allowed today."""
    if is_premium:
        return ImageLimitCheck(allowed=True, used=used, limit=None, remaining=None)
    remaining = max(daily_limit - used, 0)
    if remaining == 0:
        return ImageLimitCheck(
            allowed=False,
            used=used,
            limit=daily_limit,
            remaining=0,
            reason=f"Daily limit of {daily_limit} free image analyses reached",
        )
    return ImageLimitCheck(allowed=True, used=used, limit=daily_limit, remaining=remaining)
