"""Base exceptions shared by every layer.

Domain packages subclass these in their own ``exceptions.py``; the API maps
each base to a status code in ``tierwave.api.middleware``.
"""

from typing import Optional


class TierwaveException(Exception):
    """Root of the service's own error hierarchy.

    Subclasses set ``default_message``; callers may override it per raise.
    """

    default_message = "Tierwave error"

    def __init__(self, message: Optional[str] = None):
        """Store *message* (or the class default) on ``.message``."""
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundException(TierwaveException):
    """A record the caller addressed does not exist."""

    default_message = "Object not found"


class ConflictException(TierwaveException):
    """A write lost a concurrent update race."""

    default_message = "Concurrent update conflict"


class ExternalServiceError(Exception):
    """A third-party service (billing provider, broker) failed or was unreachable."""

    def __init__(self, service_name: str, message: Optional[str] = "External service failed"):
        """Record the failing service; the string form is ``"<service>: <message>"``."""
        self.service_name = service_name
        self.message = message
        super().__init__(f"{service_name}: {message}")


class InvalidStateError(Exception):
    """The requested operation does not apply to the record's current state."""

    def __init__(self, message: Optional[str] = "Object is in an invalid state"):
        self.message = message
        super().__init__(self.message)
