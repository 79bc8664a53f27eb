"""String enums used by ``Settings``; values match the environment variables."""

from enum import Enum


class Environment(str, Enum):
    """Where the process runs. ``LOCAL`` and ``TEST`` get readable logs."""

    LOCAL = "local"
    TEST = "test"
    DEV = "dev"
    PRD = "prd"


class PubSubBackend(str, Enum):
    """Fan-out for realtime subscription updates.

    ``memory`` reaches sockets held by this process only; use ``redis`` once
    more than one API replica serves websockets.
    """

    MEMORY = "memory"
    REDIS = "redis"
