"""
MindSync Backend — Health Check Route
=======================================

What:  GET /health: database reachability and live socket count.
How:   Runs SELECT 1 against the database and reports the number of open
       notification sockets.
Who:   Container health checks and uptime monitors.

Status levels:
    - healthy:   Database reachable (HTTP 200)
    - unhealthy: Database unreachable (HTTP 503, stop routing traffic)
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from mindsync import __version__
from mindsync.database import engine
from mindsync.schemas.common import HealthResponse
from mindsync.services.notification_hub import notification_hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Initialized once when the module loads
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        notification_connections=notification_hub.connection_count,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
