"""
MindSync Backend — Access Log Middleware
==========================================

What:  One log line per HTTP request with method, path, status, duration,
       caller identity and request id.
How:   Level follows the status code: 5xx → ERROR, 4xx → WARNING,
       otherwise INFO. /health is skipped (health checks hit it constantly).

Never logged: request bodies (moods, notes and face images are personal
data) and header values other than the caller's user id.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from mindsync.middleware.request_id import request_id_var

logger = logging.getLogger("mindsync.access")

SKIPPED_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request once, after the response is produced."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in SKIPPED_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        status = response.status_code
        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        client_ip = request.client.host if request.client else "unknown"
        user_id = request.headers.get("X-User-ID") or "-"
        rid = request_id_var.get("")

        logger.log(
            level,
            "%s %s %d %.1fms user=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            user_id,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
                "user_id": user_id,
            },
        )
        return response
