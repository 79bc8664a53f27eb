"""Settings for the subscription backend.

Import ``settings`` rather than constructing ``Settings``; tests that need a
different configuration build their own ``Settings(...)`` and pass it to
``create_container``.
"""

from tierwave.core.config.enums import Environment, PubSubBackend
from tierwave.core.config.settings import Settings

__all__ = ["Environment", "PubSubBackend", "Settings", "settings"]

settings = Settings()
