"""
MindSync Backend — Rate Limiting Middleware
=============================================

What:  Per-caller sliding-window rate limiter.
How:   Keeps the timestamps of each caller's requests inside the window;
       a request arriving when the window is full gets 429 with a
       Retry-After header.

Caller key:
    "user:<X-User-ID>" when the header is present, else "ip:<client host>".
    The header is not verified here (that happens in the route
    dependency), so a client rotating ids only spreads its own load.

Single-process only: counters live in this worker's memory.
"""

import logging
import time
from collections import deque
from typing import Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from mindsync.config import settings
from mindsync.exceptions import RateLimitExceededError
from mindsync.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

CLEANUP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding window counter per caller key.

    Excluded paths: /health and the API docs.

    Exceptions raised in middleware bypass the app's exception handlers,
    so the 429 body is rendered here from RateLimitExceededError. Runs
    inside RequestIDMiddleware, so request_id_var is already set.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(app, **kwargs)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self._requests: Dict[str, Deque[float]] = {}
        self._seen = 0

    @staticmethod
    def caller_key(request: Request) -> str:
        user_id = request.headers.get("X-User-ID")
        if user_id:
            return f"user:{user_id.strip()}"
        host = request.client.host if request.client else "unknown"
        return f"ip:{host}"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        key = self.caller_key(request)
        now = time.time()
        window_start = now - self.window_seconds

        timestamps = self._requests.setdefault(key, deque())
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if len(timestamps) >= self.max_requests:
            retry_after = int(timestamps[0] + self.window_seconds - now) + 1
            exc = RateLimitExceededError(retry_after=retry_after)
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                key,
                len(timestamps),
                self.window_seconds,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        timestamps.append(now)

        self._seen += 1
        if self._seen % CLEANUP_EVERY == 0:
            self._cleanup(window_start)

        return await call_next(request)

    def _cleanup(self, window_start: float) -> None:
        """Forget callers with no request inside the current window."""
        idle = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for key in idle:
            del self._requests[key]
        if idle:
            logger.debug("Cleaned up %d idle rate-limit entries", len(idle))
