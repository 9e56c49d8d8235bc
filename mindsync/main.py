"""
MindSync Backend — FastAPI Application Factory
================================================

What:  Builds the MindSync FastAPI app: middleware, error mapping, routers.
How:   create_app() wires everything; the module-level `app` is its result.
Who:   Called by uvicorn to start the server (uvicorn mindsync.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware: RequestID → RateLimit → AccessLog → GZip → CORS │
    │                                                              │
    │  Routers:                                                    │
    │    /api/users       /api/meditation      /api/emotions       │
    │    /ws/notifications                     /health             │
    │                                                              │
    │  Exception Handlers: MindSyncError subclasses → 4xx/5xx JSON │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging (with request id on every record)
    2. Create tables when DB_CREATE_TABLES is set (local SQLite runs)

    Shutdown:
    1. Close open notification sockets
    2. Dispose the engine so pooled connections are released
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Tuple, Type

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from mindsync import __version__
from mindsync.config import settings
from mindsync.database import create_tables, dispose_engine
from mindsync.exceptions import (
    AuthenticationError,
    EmotionAnalysisError,
    InvalidStateError,
    MindSyncError,
    NotFoundError,
    PartialCompletionError,
    RateLimitExceededError,
    StorageError,
    ValidationError,
)
from mindsync.middleware.logging import RequestLoggingMiddleware
from mindsync.middleware.rate_limit import RateLimitMiddleware
from mindsync.middleware.request_id import RequestIDFilter, RequestIDMiddleware, request_id_var
from mindsync.routes import emotions, health, meditation, notifications, users
from mindsync.services.notification_hub import notification_hub

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, before anything else logs.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s

    The request id comes from RequestIDFilter, attached to the handler so
    records from every logger (services, SQLAlchemy, uvicorn) carry it.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDFilter())
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        handlers=[handler],
        force=True,
    )

    # Third-party loggers that are chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("MindSync Backend %s starting up...", __version__)
    logger.info("Streak timezone: %s (lookback %d sessions)", settings.timezone, settings.streak_lookback)

    if settings.db_create_tables:
        await create_tables()
        logger.info("Database tables created from metadata")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("MindSync Backend shutting down...")
    await notification_hub.close_all()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

# Most specific first; the first isinstance match wins
ERROR_MAP: Tuple[Tuple[Type[MindSyncError], int, str], ...] = (
    (ValidationError, 400, "validation_error"),
    (AuthenticationError, 401, "authentication_error"),
    (NotFoundError, 404, "not_found"),
    (InvalidStateError, 409, "invalid_state"),
    (RateLimitExceededError, 429, "rate_limit_exceeded"),
    (PartialCompletionError, 500, "partial_completion"),
    (StorageError, 500, "storage_error"),
    (EmotionAnalysisError, 503, "emotion_service_error"),
)

# Context keys safe to return for 5xx errors; everything else is logged only
PUBLIC_SERVER_ERROR_KEYS = {"session_id", "session_saved", "reason"}


def error_status(exc: MindSyncError) -> Tuple[int, str]:
    for exc_type, status_code, code in ERROR_MAP:
        if isinstance(exc, exc_type):
            return status_code, code
    return 500, "internal_server_error"


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map every error to the {error, message, details, request_id} envelope.

    Handler hierarchy:
        ValidationError          → 400 validation_error
        RequestValidationError   → 400 validation_error (malformed body/query)
        AuthenticationError      → 401 authentication_error
        NotFoundError            → 404 not_found
        InvalidStateError        → 409 invalid_state
        RateLimitExceededError   → 429 rate_limit_exceeded (+ Retry-After)
        PartialCompletionError   → 500 partial_completion (details: session_id)
        StorageError             → 500 storage_error
        EmotionAnalysisError     → 503 emotion_service_error
        Exception (fallback)     → 500 internal_server_error

    Server errors never expose internal details (exception types, SQL) in
    the response; those go to the log.
    """

    @app.exception_handler(MindSyncError)
    async def handle_mindsync_error(request: Request, exc: MindSyncError):
        rid = request_id_var.get("")
        status_code, code = error_status(exc)
        headers: Dict[str, str] = {}

        if status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, code, exc.message, exc.context)
            details = {k: v for k, v in exc.context.items() if k in PUBLIC_SERVER_ERROR_KEYS}
        else:
            logger.warning("[%s] %s: %s", rid, code, exc.message)
            details = exc.context

        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)

        return JSONResponse(
            status_code=status_code,
            content={
                "error": code,
                "message": exc.message,
                "details": details or None,
                "request_id": rid,
            },
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Body or query parameters of the wrong shape (missing field, not an int)."""
        rid = request_id_var.get("")
        errors = [
            {"field": ".".join(str(p) for p in err.get("loc", ())[1:]), "message": err.get("msg")}
            for err in exc.errors()
        ]
        logger.warning("[%s] Request validation failed: %s", rid, errors)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": "Request validation failed",
                "details": {"errors": errors},
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: stack trace to the log, generic message to the client."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Assemble the MindSync app: middleware, error handlers, routers.

    Tests import the module-level `app`; uvicorn does the same.
    """
    app = FastAPI(
        title="MindSync API",
        description=(
            "Meditation session tracking with mood check-ins, effectiveness "
            "scoring, streaks and usage statistics."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → RateLimit → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(users.router)
    app.include_router(meditation.router)
    app.include_router(emotions.router)
    app.include_router(notifications.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `mindsync.main:app` to be importable
app = create_app()
