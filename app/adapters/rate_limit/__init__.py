"""Rate limiting adapters.

The in-memory limiter keeps one window per client in this process. The
abstract interface lets a shared store replace it without changing routes.
"""

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.in_memory import ClientWindow, InMemoryRateLimiter

__all__ = ["AbstractRateLimiter", "ClientWindow", "InMemoryRateLimiter", "RateLimitResult"]
