"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any app import so the settings object
is built with test values and no .env file is loaded.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("RATE_LIMIT_SWEEP_INTERVAL_MS", "0")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.adapters.rate_limit.in_memory import InMemoryRateLimiter
from app.core.app_factory import create_app


class FakeClock:
    """Deterministic millisecond clock for window arithmetic."""

    def __init__(self, start: float = 0.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, ms: float) -> None:
        self.current += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> Iterator[InMemoryRateLimiter]:
    with InMemoryRateLimiter(
        window_ms=60000, max_requests=2, sweep_interval_ms=0, clock=clock
    ) as instance:
        yield instance


@pytest.fixture
def client(limiter: InMemoryRateLimiter) -> TestClient:
    """Test client for an app whose default limiter allows 2 requests per minute."""
    return TestClient(create_app(rate_limiter=limiter))
