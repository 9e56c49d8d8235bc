"""
MindSync Backend — User Schemas
=================================

What:  Pydantic models for /api/users.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CreateUserRequest(BaseModel):
    """Body of POST /api/users. Email is stored lower-cased."""
    name: str = Field(description="Display name, 1-100 characters")
    email: str = Field(description="Unique email address")
    bio: Optional[str] = Field(default=None, description="Short profile text")


class UserResponse(BaseModel):
    """
    What:  A user with their running meditation totals.
    Who:   Returned by POST /api/users and GET /api/users/me.
    """
    id: uuid.UUID
    name: str
    email: str
    bio: Optional[str] = None
    total_meditation_minutes: int
    completed_sessions: int
    current_streak: int
    longest_streak: int
    last_active: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}
