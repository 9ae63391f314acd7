"""Application-level exception types.

Errors raised from dependencies and services are turned into JSON responses
by the handlers in ``app.core.exception_handlers``.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class AppError(Exception):
    """Base error for application failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
    """

    code: str
    message: str

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


@dataclass
class RateLimitExceededError(AppError):
    """Raised by the rate limit gate when a client has used up its window.

    Attributes:
        retry_after: Whole seconds until the client's window resets.
        headers: Rate limit headers to attach to the 429 response.
    """

    code: str = "too_many_requests"
    message: str = "Rate limit exceeded. Please try again later."
    retry_after: int = 0
    headers: dict[str, str] = field(default_factory=dict)
