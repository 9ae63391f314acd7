"""Global exception handlers for consistent error responses.

Every error body shares one flat shape consumed by the web UI and the
browser extension: ``{"error": <code>, "message": <text>, ...}``.

- RateLimitExceededError → 429 with ``retryAfter`` and rate limit headers
- HTTPException (unknown route, wrong method, ...) → its status code
- Unexpected Exception → generic 500 with the request id
"""

import logging
from http import HTTPStatus

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import RateLimitExceededError
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "The requested resource was not found."
INTERNAL_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


def _status_code_name(status_code: int) -> str:
    """Machine-readable code for an HTTP status, e.g. 405 -> method_not_allowed."""
    try:
        phrase = HTTPStatus(status_code).phrase
    except ValueError:
        return "http_error"
    return phrase.lower().replace(" ", "_").replace("-", "_")


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    """Turn a throttled request into a 429 response."""
    return JSONResponse(
        status_code=429,
        content={
            "error": exc.code,
            "message": exc.message,
            "retryAfter": exc.retry_after,
        },
        headers=exc.headers or None,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (404, 405, ...) in the flat error shape."""
    if exc.status_code == 404:
        code, message = "not_found", NOT_FOUND_MESSAGE
    else:
        code, message = _status_code_name(exc.status_code), str(exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": code, "message": message},
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs the failure for debugging while returning a generic message, so no
    stack traces or exception text reach the client.
    """
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": INTERNAL_ERROR_MESSAGE,
            "request_id": get_request_id(),
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    The ``Exception`` handler only fires for errors that escape
    ``request_id_middleware``, which handles route failures itself.
    """
    app.exception_handler(RateLimitExceededError)(rate_limit_exceeded_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
