"""
MindSync Backend — Middleware Tests
=====================================

What:  Tests for middleware ordering and the rate limiter's 429 response.
How:   A minimal FastAPI app wrapped the same way create_app wraps the
       real one, driven through HTTPX ASGITransport.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from mindsync.middleware.logging import RequestLoggingMiddleware
from mindsync.middleware.rate_limit import RateLimitMiddleware
from mindsync.middleware.request_id import RequestIDMiddleware


def build_app(max_requests=1):
    app = FastAPI()

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    app.add_middleware(RateLimitMiddleware, max_requests=max_requests, window_seconds=60)
    app.add_middleware(RequestIDMiddleware)
    return app


class TestMiddlewareOrder:

    def test_request_id_wraps_rate_limit(self):
        from mindsync.main import app

        order = [m.cls for m in app.user_middleware]

        # user_middleware lists the outermost middleware first
        assert order.index(RequestIDMiddleware) < order.index(RateLimitMiddleware)
        assert order.index(RateLimitMiddleware) < order.index(RequestLoggingMiddleware)


class TestRateLimitResponse:

    @pytest.mark.asyncio
    async def test_429_echoes_client_request_id(self):
        transport = ASGITransport(app=build_app())
        headers = {"X-User-ID": "caller-1", "X-Request-ID": "req-abc123"}

        async with AsyncClient(transport=transport, base_url="http://test") as client:
            first = await client.get("/ping", headers=headers)
            second = await client.get("/ping", headers=headers)

        assert first.status_code == 200
        assert second.status_code == 429
        body = second.json()
        assert body["error"] == "rate_limit_exceeded"
        assert body["request_id"] == "req-abc123"
        assert second.headers["X-Request-ID"] == "req-abc123"
        assert int(second.headers["Retry-After"]) >= 1

    @pytest.mark.asyncio
    async def test_429_carries_generated_request_id(self):
        transport = ASGITransport(app=build_app())
        headers = {"X-User-ID": "caller-2"}

        async with AsyncClient(transport=transport, base_url="http://test") as client:
            await client.get("/ping", headers=headers)
            limited = await client.get("/ping", headers=headers)

        assert limited.status_code == 429
        assert limited.json()["request_id"]
        assert limited.json()["request_id"] == limited.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_callers_limited_independently(self):
        transport = ASGITransport(app=build_app())

        async with AsyncClient(transport=transport, base_url="http://test") as client:
            a = await client.get("/ping", headers={"X-User-ID": "a"})
            b = await client.get("/ping", headers={"X-User-ID": "b"})

        assert a.status_code == 200
        assert b.status_code == 200
