"""Tests for the HTTP rate limit gate: headers, 429 body and client identity."""

from unittest.mock import Mock

import pytest
from fastapi import Depends, FastAPI, Request, Response
from fastapi.testclient import TestClient

from app.adapters.rate_limit.in_memory import InMemoryRateLimiter
from app.core.app_factory import create_app
from app.core.config import RateLimitSettings
from app.core.errors import RateLimitExceededError
from app.core.exception_handlers import setup_exception_handlers
from app.core.rate_limit import (
    create_rate_limiter,
    enforce_rate_limit,
    rate_limit_dependency,
    resolve_client_id,
)


def _request(headers: dict[str, str] | None = None, client: tuple[str, int] | None = ("10.0.0.9", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestResolveClientId:
    def test_uses_first_forwarded_address(self) -> None:
        request = _request({"X-Forwarded-For": " 203.0.113.7 , 10.0.0.1"})
        assert resolve_client_id(request) == "203.0.113.7"

    def test_falls_back_to_peer_address(self) -> None:
        assert resolve_client_id(_request()) == "10.0.0.9"

    def test_blank_forwarded_header_falls_back_to_peer(self) -> None:
        assert resolve_client_id(_request({"X-Forwarded-For": " , 10.0.0.1"})) == "10.0.0.9"

    def test_unknown_when_no_address_available(self) -> None:
        assert resolve_client_id(_request(client=None)) == "unknown"


class TestGatedRoutes:
    def test_allowed_response_carries_rate_limit_headers(self, client: TestClient) -> None:
        resp = client.get("/robots.txt")

        assert resp.status_code == 200
        assert "User-agent: GPTBot" in resp.text
        assert resp.headers["X-RateLimit-Limit"] == "2"
        assert resp.headers["X-RateLimit-Remaining"] == "1"
        assert resp.headers["X-RateLimit-Reset"] == "60"

    def test_over_limit_returns_429_with_retry_after(self, client: TestClient) -> None:
        client.get("/robots.txt")
        client.get("/robots.txt")

        resp = client.get("/robots.txt")

        assert resp.status_code == 429
        assert resp.json() == {
            "error": "too_many_requests",
            "message": "Rate limit exceeded. Please try again later.",
            "retryAfter": 60,
        }
        assert resp.headers["X-RateLimit-Limit"] == "2"
        assert resp.headers["X-RateLimit-Remaining"] == "0"
        assert resp.headers["X-RateLimit-Reset"] == "60"
        assert resp.headers["Retry-After"] == "60"
        assert resp.headers.get("X-Request-ID")

    def test_window_reset_readmits_client(self, client: TestClient, clock) -> None:
        for _ in range(3):
            client.get("/robots.txt")

        clock.advance(60001)
        resp = client.get("/robots.txt")

        assert resp.status_code == 200
        assert resp.headers["X-RateLimit-Remaining"] == "1"

    def test_forwarded_clients_are_limited_independently(self, client: TestClient) -> None:
        a = {"X-Forwarded-For": "198.51.100.1"}
        b = {"X-Forwarded-For": "198.51.100.2"}

        client.get("/robots.txt", headers=a)
        client.get("/robots.txt", headers=a)

        assert client.get("/robots.txt", headers=a).status_code == 429
        resp = client.get("/robots.txt", headers=b)
        assert resp.status_code == 200
        assert resp.headers["X-RateLimit-Remaining"] == "1"

    def test_health_is_never_limited(self, client: TestClient) -> None:
        for _ in range(5):
            resp = client.get("/health")
            assert resp.status_code == 200
            assert "X-RateLimit-Limit" not in resp.headers

        assert resp.json()["status"] == "ok"


class TestDependencyBinding:
    def test_separate_limiters_do_not_share_counts(self) -> None:
        strict = InMemoryRateLimiter(window_ms=60000, max_requests=1, sweep_interval_ms=0)
        relaxed = InMemoryRateLimiter(window_ms=60000, max_requests=5, sweep_interval_ms=0)

        app = FastAPI()
        setup_exception_handlers(app)

        @app.get("/uploads", dependencies=[Depends(rate_limit_dependency(strict))])
        def uploads() -> dict:
            return {"ok": True}

        @app.get("/reads", dependencies=[Depends(rate_limit_dependency(relaxed))])
        def reads() -> dict:
            return {"ok": True}

        client = TestClient(app)

        assert client.get("/uploads").status_code == 200
        assert client.get("/uploads").status_code == 429

        resp = client.get("/reads")
        assert resp.status_code == 200
        assert resp.headers["X-RateLimit-Limit"] == "5"
        assert resp.headers["X-RateLimit-Remaining"] == "4"

    def test_default_gate_is_noop_without_app_limiter(self) -> None:
        app = FastAPI()
        app.state.rate_limiter = None

        @app.get("/open", dependencies=[Depends(enforce_rate_limit)])
        def open_route() -> dict:
            return {"ok": True}

        resp = TestClient(app).get("/open")

        assert resp.status_code == 200
        assert "X-RateLimit-Limit" not in resp.headers

    @pytest.mark.asyncio
    async def test_dependency_raises_when_over_limit(self) -> None:
        limiter = InMemoryRateLimiter(max_requests=1, sweep_interval_ms=0, clock=Mock(return_value=0.0))
        enforce = rate_limit_dependency(limiter)
        request = _request()

        await enforce(request, Response())
        with pytest.raises(RateLimitExceededError) as exc_info:
            await enforce(request, Response())

        assert exc_info.value.retry_after == 60
        assert exc_info.value.headers["X-RateLimit-Remaining"] == "0"


class TestCreateRateLimiter:
    def test_unset_options_fall_back_to_config(self) -> None:
        config = RateLimitSettings(window_ms=30000, max_requests=7, sweep_interval_ms=0)

        with create_rate_limiter(config=config) as limiter:
            assert limiter.limit == 7
            assert limiter.window_ms == 30000
            assert limiter.sweeper is None

    def test_overrides_win_over_config(self) -> None:
        config = RateLimitSettings(window_ms=30000, max_requests=7, sweep_interval_ms=0)

        with create_rate_limiter(max_requests=3, config=config) as limiter:
            assert limiter.limit == 3
            assert limiter.window_ms == 30000

    def test_app_builds_default_limiter_from_settings(self) -> None:
        app = create_app()
        limiter = app.state.rate_limiter
        try:
            assert isinstance(limiter, InMemoryRateLimiter)
            assert limiter.limit == 100
        finally:
            limiter.close()

    def test_lifespan_shutdown_closes_limiter(self) -> None:
        limiter = InMemoryRateLimiter(sweep_interval_ms=10)
        app = create_app(rate_limiter=limiter)

        with TestClient(app) as client:
            assert client.get("/robots.txt").status_code == 200
            assert limiter.sweeper.running is True

        assert limiter.sweeper.running is False


def test_terms_page_is_gated(client: TestClient) -> None:
    resp = client.get("/terms")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert "Terms of Service" in resp.text
    assert "AI Training" in resp.text
    assert resp.headers["X-RateLimit-Remaining"] == "1"
