"""In-memory per-client rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: the store is split into shards, each guarded by its own lock,
  so updates for one client never wait on unrelated clients in other shards.
- Wall-clock based: if the host clock jumps backwards a window can outlive
  ``window_ms``.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.sweeper import ExpirySweeper

DEFAULT_WINDOW_MS = 60000
DEFAULT_MAX_REQUESTS = 100
DEFAULT_SWEEP_INTERVAL_MS = 60000
DEFAULT_SHARD_COUNT = 16


def wall_clock_ms() -> float:
    """Current UNIX time in milliseconds."""
    return time.time() * 1000


@dataclass(frozen=True)
class ClientWindow:
    """Request count for one client within its current window."""

    count: int
    reset_time: float

    def is_expired(self, now: float) -> bool:
        return now > self.reset_time


@dataclass
class _Shard:
    lock: threading.Lock = field(default_factory=threading.Lock)
    windows: dict[str, ClientWindow] = field(default_factory=dict)


class InMemoryRateLimiter(AbstractRateLimiter):
    """Rate limiter with one rolling window per client identity.

    A client's window opens on its first request and lasts ``window_ms``. Once
    it ends, the next request starts a fresh window regardless of how far over
    the limit the previous one went.
    """

    def __init__(
        self,
        *,
        window_ms: int = DEFAULT_WINDOW_MS,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        sweep_interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
        shard_count: int = DEFAULT_SHARD_COUNT,
        clock: Callable[[], float] = wall_clock_ms,
    ) -> None:
        """Initialize the limiter and start its expiry sweep.

        Args:
            window_ms: Window duration in milliseconds.
            max_requests: Requests permitted per client per window.
            sweep_interval_ms: Period of the background sweep; 0 disables it.
            shard_count: Number of independently locked store partitions.
            clock: Time source returning UNIX time in milliseconds.

        Raises:
            ValueError: If any numeric option is out of range.
        """
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if sweep_interval_ms < 0:
            raise ValueError("sweep_interval_ms must be >= 0")
        if shard_count < 1:
            raise ValueError("shard_count must be >= 1")

        self._window_ms = window_ms
        self._max_requests = max_requests
        self._clock = clock
        self._shards = tuple(_Shard() for _ in range(shard_count))

        self._sweeper: ExpirySweeper | None = None
        if sweep_interval_ms:
            self._sweeper = ExpirySweeper(
                self.sweep_expired,
                interval_seconds=sweep_interval_ms / 1000,
            )
            self._sweeper.start()

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryRateLimiter(window_ms={self._window_ms}, "
            f"max_requests={self._max_requests}, size={len(self)})"
        )

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.windows)
        return total

    @property
    def limit(self) -> int:
        return self._max_requests

    @property
    def window_ms(self) -> int:
        return self._window_ms

    @property
    def sweeper(self) -> ExpirySweeper | None:
        return self._sweeper

    def _shard_for(self, client_id: str) -> _Shard:
        return self._shards[hash(client_id) % len(self._shards)]

    def get_window(self, client_id: str) -> ClientWindow | None:
        """Return the stored window for ``client_id``, expired or not."""
        shard = self._shard_for(client_id)
        with shard.lock:
            return shard.windows.get(client_id)

    def check(self, client_id: str, now: float | None = None) -> RateLimitResult:
        if now is None:
            now = self._clock()

        shard = self._shard_for(client_id)
        with shard.lock:
            window = shard.windows.get(client_id)
            if window is None or window.is_expired(now):
                window = ClientWindow(count=1, reset_time=now + self._window_ms)
            else:
                window = ClientWindow(count=window.count + 1, reset_time=window.reset_time)
            shard.windows[client_id] = window

        remaining = max(0, self._max_requests - window.count)
        if window.count > self._max_requests:
            return RateLimitResult(
                allowed=False,
                limit=self._max_requests,
                remaining=remaining,
                reset_time=window.reset_time,
                retry_after_seconds=max(0, math.ceil((window.reset_time - now) / 1000)),
            )

        return RateLimitResult(
            allowed=True,
            limit=self._max_requests,
            remaining=remaining,
            reset_time=window.reset_time,
        )

    def sweep_expired(self, now: float | None = None) -> int:
        if now is None:
            now = self._clock()

        removed = 0
        # One shard at a time so concurrent checks on other shards keep flowing.
        for shard in self._shards:
            with shard.lock:
                expired = [key for key, window in shard.windows.items() if window.is_expired(now)]
                for key in expired:
                    del shard.windows[key]
            removed += len(expired)
        return removed

    def close(self) -> None:
        if self._sweeper is not None:
            self._sweeper.stop()
