"""Usage domain exceptions."""

from typing import Optional

from tierwave.core.exceptions import InvalidStateError
from tierwave.domains.usage.types import ActionType


class UsageLimitExceededError(InvalidStateError):
    """A free user has spent today's quota for *action*.

    Mapped to 429 with ``limit`` and ``used`` in the body.
    """

    def __init__(
        self,
        action: ActionType,
        limit: int,
        used: int,
        message: Optional[str] = None,
    ) -> None:
        self.action = action
        self.limit = limit
        self.used = used
        super().__init__(message or f"Daily {action.value} limit of {limit} reached ({used} used)")
