"""Middleware and exception handlers for the FastAPI application.

None of the middleware here reads the request body, so the billing webhook
route receives the exact bytes the provider signed.
"""

import time
import traceback
import uuid

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from tierwave.core.config import settings
from tierwave.core.exceptions import (
    InvalidStateError,
    NotFoundException,
    TierwaveException,
)
from tierwave.core.logging import logger
from tierwave.domains.usage.exceptions import UsageLimitExceededError


async def add_request_id(request: Request, call_next: callable) -> Response:
    """Generate a request ID for tracing and echo it in the response headers."""
    request.state.request_id = str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


async def log_requests(request: Request, call_next: callable) -> Response:
    """Log every handled request with its duration and status code."""
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.with_context(request_id=getattr(request.state, "request_id", None)).info(
        f"Handled request {request.method} {request.url.path} in {duration:.2f} seconds. "
        f"Response code: {response.status_code}"
    )
    return response


async def exception_logging_middleware(request: Request, call_next: callable) -> Response:
    """Log unhandled exceptions and turn them into a 500 JSON response."""
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

        content = {"detail": f"Internal Server Error: {exc.__class__.__name__}: {exc}"}
        if settings.DEBUG:
            content["trace"] = traceback.format_exc()
        return JSONResponse(status_code=500, content=content)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


async def not_found_exception_handler(request: Request, exc: NotFoundException) -> JSONResponse:
    """Map NotFoundException to 404."""
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def usage_limit_exception_handler(
    request: Request, exc: UsageLimitExceededError
) -> JSONResponse:
    """Map UsageLimitExceededError to 429 with the quota in the body."""
    return JSONResponse(
        status_code=429,
        content={
            "detail": str(exc),
            "limit": exc.limit,
            "used": exc.used,
        },
    )


async def invalid_state_exception_handler(request: Request, exc: InvalidStateError) -> JSONResponse:
    """Map InvalidStateError to 400."""
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def tierwave_exception_handler(request: Request, exc: TierwaveException) -> JSONResponse:
    """Fallback for TierwaveException subclasses without a dedicated handler."""
    logger.error(f"{exc.__class__.__name__}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})
