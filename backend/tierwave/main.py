"""Main module of the FastAPI application.

Sets up the app, its middleware and exception handlers, and the lifespan that
wires the DI container and the internal metrics server.
"""

import os
import subprocess
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tierwave.api.middleware import (
    add_request_id,
    exception_logging_middleware,
    invalid_state_exception_handler,
    log_requests,
    not_found_exception_handler,
    tierwave_exception_handler,
    usage_limit_exception_handler,
)
from tierwave.api.v1.api import api_router
from tierwave.core.config import settings
from tierwave.core.exceptions import (
    InvalidStateError,
    NotFoundException,
    TierwaveException,
)
from tierwave.core.logging import logger
from tierwave.core.redis_client import redis_client
from tierwave.domains.usage.exceptions import UsageLimitExceededError


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events.

    Initializes the DI container, optionally runs alembic migrations and
    serves /metrics on the internal port.
    """
    from tierwave.core import container as container_mod
    from tierwave.core.container import initialize_container

    logger.info("Initializing dependency injection container...")
    initialize_container(settings)
    logger.info("Container initialized successfully")

    if settings.RUN_ALEMBIC_MIGRATIONS:
        logger.info("Running alembic migrations...")
        env = os.environ.copy()
        backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        env["PYTHONPATH"] = backend_dir
        subprocess.run(
            [sys.executable, "-m", "alembic", "upgrade", "heads"],
            check=True,
            cwd=backend_dir,
            env=env,
        )

    metrics_server = None
    if settings.METRICS_ENABLED:
        from tierwave.api.metrics import MetricsServer

        metrics_server = MetricsServer(
            container_mod.container.metrics_renderer,
            port=settings.METRICS_PORT,
            host=settings.METRICS_HOST,
        )
        await metrics_server.start()

    yield

    if metrics_server is not None:
        await metrics_server.stop()
    await redis_client.close()


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.include_router(api_router)

# Order matters: first registered = outermost middleware.
# No middleware may read the request body (webhook signatures cover raw bytes).
app.middleware("http")(add_request_id)
app.middleware("http")(log_requests)
app.middleware("http")(exception_logging_middleware)

# Register exception handlers
app.exception_handler(NotFoundException)(not_found_exception_handler)
app.exception_handler(UsageLimitExceededError)(usage_limit_exception_handler)
app.exception_handler(InvalidStateError)(invalid_state_exception_handler)
app.exception_handler(TierwaveException)(tierwave_exception_handler)
