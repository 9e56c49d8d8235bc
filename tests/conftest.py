"""
MindSync Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Points the app at a throwaway SQLite file (aiosqlite) before any
       mindsync import, then builds and drops the schema around each test
       that asks for a database.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── prepared_db:      tables created before, dropped after
    ├── db_session:       AsyncSession on the test database
    ├── session_factory:  factory for tests that need several sessions
    ├── user / other_user: persisted users
    ├── mock_db_session:  AsyncMock session for error-path tests
    ├── sample_png_bytes / sample_jpeg_bytes: tiny images for upload tests
    └── test_client:      HTTPX AsyncClient bound to the ASGI app
"""

import os
import tempfile
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run before any mindsync import: settings and the engine are created
# at module import time
_db_dir = tempfile.mkdtemp(prefix="mindsync_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_db_dir}/test.db"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["TIMEZONE"] = "UTC"
os.environ["EMOTION_MOCK_SEED"] = "7"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["AGGREGATE_RETRY_MIN_WAIT"] = "0.01"
os.environ["AGGREGATE_RETRY_MAX_WAIT"] = "0.1"

from mindsync.database import Base, async_session_factory, engine  # noqa: E402
import mindsync.models  # noqa: E402,F401
from mindsync.services.user_service import user_service  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def prepared_db() -> AsyncGenerator[None, None]:
    """Fresh schema for one test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session(prepared_db):
    async with async_session_factory() as session:
        yield session


@pytest.fixture
def session_factory(prepared_db):
    """
    The app's session factory, for tests that run several transactions
    concurrently (one AsyncSession per task).
    """
    return async_session_factory


@pytest_asyncio.fixture
async def user(db_session):
    return await user_service.create_user(db_session, name="Asha", email="asha@example.com")


@pytest_asyncio.fixture
async def other_user(db_session):
    return await user_service.create_user(db_session, name="Ravi", email="ravi@example.com")


# ══════════════════════════════════════════════════════════════════════════
# Mocks and Sample Data
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    A MagicMock that simulates AsyncSession behavior.

    Usage:
        mock_db_session.execute.return_value.rowcount = 1
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def sample_png_bytes():
    """PNG signature plus an IHDR chunk; libmagic reports image/png."""
    return (
        b"\x89PNG\r\n\x1a\n"
        b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"
        b"\x1f\x15\xc4\x89"
    )


@pytest.fixture
def sample_jpeg_bytes():
    """SOI + JFIF APP0 segment + EOI; libmagic reports image/jpeg."""
    return (
        b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
        b"\xff\xd9"
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(prepared_db):
    """
    HTTPX AsyncClient talking to the FastAPI app in-process.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from mindsync.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
