"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

- Routes depend on a dependency function only, never on the store.
- The application builds one default limiter at startup and keeps it on
  ``app.state.rate_limiter``; routers that need different limits bind their
  own limiter via ``rate_limit_dependency(limiter)``.
- Clients are identified by their forwarded or direct IP address.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Awaitable, Callable

from fastapi import Request, Response

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.in_memory import InMemoryRateLimiter
from app.core.config import RateLimitSettings, settings
from app.core.errors import RateLimitExceededError

logger = logging.getLogger(__name__)

FORWARDED_FOR_HEADER = "x-forwarded-for"
UNKNOWN_CLIENT = "unknown"

RateLimitDependency = Callable[[Request, Response], Awaitable[None]]


def create_rate_limiter(
    *,
    window_ms: int | None = None,
    max_requests: int | None = None,
    sweep_interval_ms: int | None = None,
    config: RateLimitSettings | None = None,
) -> InMemoryRateLimiter:
    """Build an independent limiter, filling unset options from configuration.

    Each call returns a limiter with its own store and sweep thread, so
    different endpoint classes can enforce different limits.

    Args:
        window_ms: Window duration override in milliseconds.
        max_requests: Per-window request ceiling override.
        sweep_interval_ms: Sweep period override (0 disables the sweep).
        config: Defaults to fall back on; the process-wide settings if omitted.

    Returns:
        InMemoryRateLimiter: A started limiter. Callers own it and must close it.
    """

    cfg = config or settings.rate_limit
    return InMemoryRateLimiter(
        window_ms=window_ms if window_ms is not None else cfg.window_ms,
        max_requests=max_requests if max_requests is not None else cfg.max_requests,
        sweep_interval_ms=(
            sweep_interval_ms if sweep_interval_ms is not None else cfg.sweep_interval_ms
        ),
        shard_count=cfg.shard_count,
    )


def resolve_client_id(request: Request) -> str:
    """Derive the rate limit identity for a request.

    Uses the first address of ``X-Forwarded-For`` when the service runs behind
    a proxy, then the peer address, then a fixed fallback.

    Examples:
        ``X-Forwarded-For: 203.0.113.7, 10.0.0.1`` -> ``"203.0.113.7"``
    """

    forwarded = request.headers.get(FORWARDED_FOR_HEADER)
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Headers advertising the client's quota, sent on every gated response."""

    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_epoch_seconds),
    }


def _hash_client_id(client_id: str) -> str:
    """Hash the client identity for logging without exposing addresses."""
    return hashlib.sha256(client_id.encode()).hexdigest()[:16]


def rate_limit_dependency(limiter: AbstractRateLimiter | None = None) -> RateLimitDependency:
    """Build a FastAPI dependency that gates a route behind a limiter.

    Args:
        limiter: Limiter to consult. When omitted the application's default
            limiter (``app.state.rate_limiter``) is used, and the gate is a
            no-op if rate limiting is disabled.

    Returns:
        An async dependency usable with ``Depends(...)``.

    Usage:
        uploads_limit = rate_limit_dependency(create_rate_limiter(max_requests=10))

        @router.post("/upload", dependencies=[Depends(uploads_limit)])
        async def upload(): ...
    """

    async def enforce(request: Request, response: Response) -> None:
        active = limiter if limiter is not None else getattr(request.app.state, "rate_limiter", None)
        if active is None:
            return

        client_id = resolve_client_id(request)
        result = active.check(client_id)
        headers = rate_limit_headers(result)

        if result.allowed:
            response.headers.update(headers)
            logger.info(
                "rate_limit.allowed",
                extra={
                    "client_hash": _hash_client_id(client_id),
                    "limit": result.limit,
                    "remaining": result.remaining,
                },
            )
            return

        retry_after = result.retry_after_seconds or 0
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "client_hash": _hash_client_id(client_id),
                "limit": result.limit,
                "retry_after_s": retry_after,
                "request_path": request.url.path,
            },
        )
        headers["Retry-After"] = str(retry_after)
        raise RateLimitExceededError(retry_after=retry_after, headers=headers)

    return enforce


enforce_rate_limit = rate_limit_dependency()
