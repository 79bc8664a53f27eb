"""Logging setup.

One root handler is configured per process. Application code logs through
``ContextualLogger`` instances, which carry structured *dimensions*
(``user_id``, ``stripe_event_id``, ...) that are attached to every record.
Records are rendered by structlog: readable console lines locally, one JSON
object per line elsewhere so the log pipeline can index the dimensions.

Usage:
    from tierwave.core.logging import logger

    log = logger.with_context(user_id=str(user_id))
    log.info("Trial started")
"""

import logging
import sys
from typing import Any, MutableMapping, Optional

import structlog

from tierwave.core.config import settings

# Applied to every stdlib record before rendering; ExtraAdder lifts the
# dimensions passed as ``extra`` into the event dict.
_PRE_CHAIN: list = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.ExtraAdder(),
    structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
    structlog.processors.StackInfoRenderer(),
]


def build_formatter(json_output: bool) -> structlog.stdlib.ProcessorFormatter:
    """Formatter rendering records as JSON lines or console text."""
    if json_output:
        renderers: list = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(default=str),
        ]
    else:
        renderers = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=False),
        ]
    return structlog.stdlib.ProcessorFormatter(
        processors=renderers, foreign_pre_chain=_PRE_CHAIN
    )


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter carrying structured dimensions."""

    def __init__(self, logger: logging.Logger, dimensions: Optional[dict[str, Any]] = None) -> None:
        super().__init__(logger, dict(dimensions or {}))
        self.dimensions: dict[str, Any] = dict(dimensions or {})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping]:
        extra = dict(self.dimensions)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a child logger with *dimensions* merged over the current ones."""
        return ContextualLogger(self.logger, {**self.dimensions, **dimensions})


class LoggerConfigurator:
    """Configures the root handler once and hands out contextual loggers."""

    _configured = False

    @classmethod
    def configure_root(cls) -> None:
        if cls._configured:
            return
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(build_formatter(json_output=not settings.is_local))
        root = logging.getLogger()
        root.handlers = [handler]
        root.setLevel(settings.LOG_LEVEL.upper())
        # uvicorn installs its own handlers; route them through ours.
        for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
            logging.getLogger(name).handlers = []
            logging.getLogger(name).propagate = True
        cls._configured = True

    @classmethod
    def configure_logger(
        cls, name: str, dimensions: Optional[dict[str, Any]] = None
    ) -> ContextualLogger:
        """Return a ContextualLogger named *name* carrying *dimensions*."""
        cls.configure_root()
        return ContextualLogger(logging.getLogger(name), dimensions)


logger = LoggerConfigurator.configure_logger(
    "tierwave", dimensions={"environment": settings.ENVIRONMENT.value}
)
