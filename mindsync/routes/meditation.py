"""
MindSync Backend — Meditation Route Handlers
==============================================

What:  HTTP binding of the session ledger: start, complete, detail,
       history, stats and streak.
How:   Thin handlers; all rules live in MeditationService. After a write
       succeeds the handler pushes a notification to the owner's sockets.
Who:   Called by the web and mobile clients.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mindsync.database import get_db_session
from mindsync.models.user import User
from mindsync.routes.deps import get_current_user
from mindsync.schemas.common import ErrorResponse
from mindsync.schemas.meditation import (
    CompleteSessionRequest,
    SessionListResponse,
    SessionResponse,
    StartSessionRequest,
    StreakResponse,
    UserStatsResponse,
)
from mindsync.services.meditation_service import meditation_service
from mindsync.services.notification_hub import (
    SESSION_COMPLETED,
    SESSION_STARTED,
    notification_hub,
)

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(
    prefix="/api/meditation",
    tags=["Meditation"],
    responses={
        400: {"description": "Invalid input", "model": ErrorResponse},
        401: {"description": "Missing or unknown X-User-ID", "model": ErrorResponse},
        500: {"description": "Storage error", "model": ErrorResponse},
    },
)


@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a meditation session",
)
async def start_session(
    body: StartSessionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SessionResponse:
    session = await meditation_service.start_session(
        db,
        user_id=user.id,
        session_type=body.session_type,
        title=body.title,
        duration=body.duration,
        mood_before=body.mood_before,
        intensity=body.intensity,
        tags=body.tags,
        environment=body.environment.model_dump() if body.environment else None,
    )
    await notification_hub.publish(user.id, SESSION_STARTED, session.model_dump(mode="json"))
    return session


@router.post(
    "/sessions/{session_id}/complete",
    response_model=SessionResponse,
    responses={
        404: {"description": "No such session for this user", "model": ErrorResponse},
        409: {"description": "Session already completed", "model": ErrorResponse},
    },
    summary="Complete a meditation session",
    description=(
        "Finalizes the session and adds it to the caller's totals. Completion "
        "is one-way; a second call returns 409."
    ),
)
async def complete_session(
    session_id: UUID,
    body: CompleteSessionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SessionResponse:
    session = await meditation_service.complete_session(
        db,
        user_id=user.id,
        session_id=session_id,
        mood_after=body.mood_after,
        focus_score=body.focus_score,
        notes=body.notes,
        interruptions=body.interruptions,
    )
    await notification_hub.publish(user.id, SESSION_COMPLETED, session.model_dump(mode="json"))
    return session


@router.get(
    "/sessions",
    response_model=SessionListResponse,
    summary="List the caller's sessions, newest first",
)
async def list_sessions(
    limit: int | None = Query(default=None, description="Page size (default 10, max 100)"),
    page: int = Query(default=1, description="1-based page number"),
    session_type: str | None = Query(default=None, description="Only this session type"),
    sort: str = Query(default="start_time_desc", description="start_time_desc or start_time_asc"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SessionListResponse:
    # Range checks happen in the service so they report as validation_error
    return await meditation_service.get_recent_sessions(
        db,
        user_id=user.id,
        limit=limit,
        page=page,
        session_type=session_type,
        sort=sort,
    )


@router.get(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    responses={404: {"description": "No such session for this user", "model": ErrorResponse}},
    summary="Get one session",
)
async def get_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SessionResponse:
    return await meditation_service.get_session(db, user_id=user.id, session_id=session_id)


@router.get(
    "/stats",
    response_model=UserStatsResponse,
    summary="Aggregate statistics over completed sessions",
)
async def get_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserStatsResponse:
    return await meditation_service.get_user_stats(db, user_id=user.id)


@router.get(
    "/streak",
    response_model=StreakResponse,
    summary="Current consecutive-day streak",
)
async def get_streak(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> StreakResponse:
    streak = await meditation_service.get_current_streak(db, user_id=user.id)
    return StreakResponse(current_streak=streak)
