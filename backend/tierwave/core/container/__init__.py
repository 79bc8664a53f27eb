"""Process-wide dependency container.

``main.lifespan`` calls ``initialize_container(settings)`` once; endpoints
reach the result through ``tierwave.api.deps`` (``Inject``), never through
the module global directly. Tests build a ``Container`` from fakes instead.
"""

from typing import TYPE_CHECKING, Optional

from tierwave.core.container.container import Container
from tierwave.core.container.factory import create_container

if TYPE_CHECKING:
    from tierwave.core.config import Settings

__all__ = ["Container", "container", "create_container", "initialize_container", "reset_container"]

container: Optional[Container] = None


def initialize_container(settings: "Settings") -> None:
    """Build the global container from *settings*.

    Raises:
        RuntimeError: the container was already initialized in this process.
    """
    global container

    if container is not None:
        raise RuntimeError("Container already initialized; initialize_container() runs once")
    container = create_container(settings)


def reset_container() -> None:
    """Drop the global container so a test can initialize a fresh one."""
    global container
    container = None
