# Middleware package init
"""
MindSync Backend — Middleware Package
=======================================

What:  Cross-cutting concerns applied to every HTTP request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Rate Limit] → [Access Log] → [GZip] → [CORS] → Route

    - Request ID sets the correlation id every later log line (and the
      429 body) carries
    - Rate Limit rejects over-quota callers before any route work
    - Access Log records method, path, status and duration per request

WebSocket connections bypass all three; they are plain ASGI websocket
scopes that Starlette's BaseHTTPMiddleware passes through untouched.
"""
