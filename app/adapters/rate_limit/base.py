"""Rate limiter interfaces.

The HTTP layer depends on this abstraction rather than the concrete store so a
shared backend (e.g., Redis) can be swapped in later without touching routes.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single admission check.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests per window.
        remaining: Requests left in the current window (0 when blocked).
        reset_time: Epoch milliseconds at which the client's window ends.
        retry_after_seconds: Seconds until the window ends, set only when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_time: float
    retry_after_seconds: int | None = None

    @property
    def reset_epoch_seconds(self) -> int:
        """Window end as epoch seconds, rounded up."""
        return math.ceil(self.reset_time / 1000)


class AbstractRateLimiter(ABC):
    """Interface for per-client rate limiters."""

    @property
    @abstractmethod
    def limit(self) -> int:
        """Maximum requests permitted per client per window."""
        raise NotImplementedError

    @abstractmethod
    def check(self, client_id: str, now: float | None = None) -> RateLimitResult:
        """Record one request for ``client_id`` and decide whether to admit it.

        Args:
            client_id: Resolved client identity (e.g., an IP address).
            now: Current time in epoch milliseconds; read from the limiter's
                clock when omitted.

        Returns:
            RateLimitResult describing the decision.
        """
        raise NotImplementedError

    @abstractmethod
    def sweep_expired(self, now: float | None = None) -> int:
        """Drop every client window that has already ended.

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release background resources. Safe to call more than once."""

    def __enter__(self) -> AbstractRateLimiter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
