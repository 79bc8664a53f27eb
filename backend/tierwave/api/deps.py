"""FastAPI dependencies shared by the v1 endpoints."""

from functools import lru_cache
from typing import Any, get_type_hints

from fastapi import Depends

from tierwave.api.auth import get_current_user_id
from tierwave.core import container as container_mod
from tierwave.core.container import Container
from tierwave.db.session import get_db

__all__ = ["Inject", "get_container", "get_current_user_id", "get_db"]


def get_container() -> Container:
    """The process container built by the lifespan; overridden in tests."""
    if container_mod.container is None:
        raise RuntimeError("Container not initialized. Call initialize_container() first.")
    return container_mod.container


@lru_cache(maxsize=None)
def _container_bindings() -> dict[Any, str]:
    """Protocol type -> Container field name."""
    return {hint: name for name, hint in get_type_hints(Container).items()}


def Inject(protocol_type: type):  # noqa: N802 - reads like Depends() at call sites
    """Depend on whichever Container field is typed as *protocol_type*.

    Usage::

        async def status(
            subscriptions: SubscriptionServiceProtocol = Inject(SubscriptionServiceProtocol),
        ): ...

    Raises TypeError at import time if no field carries that type.
    """
    bindings = _container_bindings()
    if protocol_type not in bindings:
        raise TypeError(
            f"Container has no field typed {protocol_type.__name__}; "
            f"fields: {sorted(bindings.values())}"
        )
    field_name = bindings[protocol_type]

    def _from_container(c: Container = Depends(get_container)):
        return getattr(c, field_name)

    return Depends(_from_container)
