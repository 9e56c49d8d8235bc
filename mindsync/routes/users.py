"""
MindSync Backend — User Route Handlers
========================================

What:  POST /api/users (register) and GET /api/users/me (caller profile
       with meditation totals).
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from mindsync.database import get_db_session
from mindsync.models.user import User
from mindsync.routes.deps import get_current_user
from mindsync.schemas.common import ErrorResponse
from mindsync.schemas.user import CreateUserRequest, UserResponse
from mindsync.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid input or email taken", "model": ErrorResponse}},
    summary="Register a user",
)
async def create_user(
    body: CreateUserRequest,
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await user_service.create_user(db, name=body.name, email=body.email, bio=body.bio)
    return UserResponse.model_validate(user)


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"description": "Missing or unknown X-User-ID", "model": ErrorResponse}},
    summary="The caller's profile and totals",
)
async def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)
