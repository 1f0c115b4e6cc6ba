"""
Unit tests for the global rate limit middleware.

Tests cover:
- Requests beyond the window are rejected with the fixed message
- Failed responses (status >= 400) are not counted
- Concurrent requests still in flight count against the window
- Exempt paths are never limited
- A disabled limiter passes everything through
"""

import asyncio

import httpx
import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry

from shared.metrics import SiteMetrics
from site_api.src.middleware.rate_limit import GLOBAL_LIMIT, GlobalRateLimitMiddleware, RouteLimit


TWO_PER_MINUTE = RouteLimit(
    group="global",
    limit="2 per minute",
    message="Too many requests, please try again later",
)


def build_app(enabled: bool = True, metrics: SiteMetrics = None) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        GlobalRateLimitMiddleware,
        limit=TWO_PER_MINUTE,
        storage_uri="memory://",
        exempt_paths=("/health",),
        enabled=enabled,
        metrics=metrics,
    )

    @app.get("/ok")
    async def ok():
        return {"ok": True}

    @app.get("/fail")
    async def fail():
        raise HTTPException(status_code=400, detail="bad input")

    @app.get("/slow")
    async def slow():
        await asyncio.sleep(0.2)
        return {"ok": True}

    @app.get("/slow-fail")
    async def slow_fail():
        await asyncio.sleep(0.2)
        raise HTTPException(status_code=400, detail="bad input")

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


@pytest.fixture
def client():
    return TestClient(build_app())


class TestGlobalRateLimit:
    """Tests for the application-wide window."""

    def test_default_window(self):
        """Test the default global window and message."""
        assert GLOBAL_LIMIT.message == "Too many requests, please try again later"

    def test_rejects_after_limit(self, client):
        """Test the third successful request in the window is rejected."""
        assert client.get("/ok").status_code == 200
        assert client.get("/ok").status_code == 200

        response = client.get("/ok")

        assert response.status_code == 429
        assert response.json() == {"error": "Too many requests, please try again later"}

    def test_failed_requests_not_counted(self, client):
        """Test responses with an error status do not consume the window."""
        for _ in range(5):
            assert client.get("/fail").status_code == 400

        assert client.get("/ok").status_code == 200
        assert client.get("/ok").status_code == 200
        assert client.get("/ok").status_code == 429

    def test_rejection_applies_to_every_route(self, client):
        """Test an exhausted window blocks other limited routes too."""
        client.get("/ok")
        client.get("/ok")

        assert client.get("/fail").status_code == 429

    def test_exempt_paths_bypass_limit(self, client):
        """Test exempt paths are neither limited nor counted."""
        for _ in range(5):
            assert client.get("/health").status_code == 200

        client.get("/ok")
        client.get("/ok")

        assert client.get("/health").status_code == 200

    def test_disabled_limiter(self):
        """Test a disabled limiter never rejects."""
        client = TestClient(build_app(enabled=False))

        for _ in range(5):
            assert client.get("/ok").status_code == 200

    def test_rejections_counted_in_metrics(self):
        """Test rejections increment the per-group counter."""
        registry = CollectorRegistry()
        client = TestClient(build_app(metrics=SiteMetrics(registry=registry)))

        for _ in range(3):
            client.get("/ok")

        assert registry.get_sample_value(
            "rate_limit_rejections_total", {"group": "global"}
        ) == 1.0


class TestConcurrentRequests:
    """Tests for bursts of requests that overlap in time."""

    async def _burst(self, client: httpx.AsyncClient, path: str, count: int):
        responses = await asyncio.gather(*(client.get(path) for _ in range(count)))
        return sorted(response.status_code for response in responses)

    @pytest.mark.asyncio
    async def test_in_flight_requests_count_against_window(self):
        """Test a concurrent burst cannot exceed the window."""
        transport = httpx.ASGITransport(app=build_app())
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            codes = await self._burst(client, "/slow", 10)

            assert codes == [200] * 2 + [429] * 8
            assert (await client.get("/ok")).status_code == 429

    @pytest.mark.asyncio
    async def test_failed_in_flight_requests_release_their_slot(self):
        """Test failed requests stop counting once they complete."""
        transport = httpx.ASGITransport(app=build_app())
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            codes = await self._burst(client, "/slow-fail", 2)

            assert codes == [400, 400]
            assert (await client.get("/ok")).status_code == 200
            assert (await client.get("/ok")).status_code == 200
            assert (await client.get("/ok")).status_code == 429
