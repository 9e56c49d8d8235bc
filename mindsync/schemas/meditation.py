"""
MindSync Backend — Meditation Request/Response Schemas
========================================================

What:  Pydantic models for the /api/meditation endpoints.
How:   Request models only check shape (types, presence); the business
       rules (enumerations, ranges, lengths) live in MeditationService so
       they apply to every caller. Response models carry the derived
       fields (duration_minutes, status, effectiveness) computed on read.
Who:   Route handlers (bodies) and MeditationService (responses).
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from mindsync.services.session_analytics import (
    calculate_effectiveness,
    derive_status,
    duration_minutes,
    ensure_aware_utc,
)


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class EnvironmentRequest(BaseModel):
    """Where the session happens; omitted fields take their defaults."""
    location: Optional[str] = Field(default=None, description="home, office, nature, commute, other")
    noise_level: Optional[str] = Field(default=None, description="silent, quiet, moderate, noisy")
    lighting: Optional[str] = Field(default=None, description="dark, dim, normal, bright")


class StartSessionRequest(BaseModel):
    """
    What:  Body of POST /api/meditation/sessions.

    Example:
        {
            "session_type": "deep-focus",
            "title": "Morning focus",
            "duration": 900,
            "mood_before": "stressed"
        }
    """
    session_type: str = Field(description="One of the eight session types")
    title: str = Field(description="1-100 characters")
    duration: int = Field(description="Planned length in seconds (60-7200)")
    mood_before: Optional[str] = Field(default=None, description="Defaults to neutral")
    intensity: Optional[str] = Field(default=None, description="light, medium, intense")
    tags: Optional[List[str]] = Field(default=None, description="Up to 10 labels")
    environment: Optional[EnvironmentRequest] = None


class CompleteSessionRequest(BaseModel):
    """Body of POST /api/meditation/sessions/{id}/complete."""
    mood_after: str = Field(description="Mood at the end of the session")
    focus_score: Optional[int] = Field(default=None, description="Self-rated focus, 1-10")
    notes: Optional[str] = Field(default=None, description="Up to 1000 characters")
    interruptions: Optional[int] = Field(default=None, description="Times the session was interrupted")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class EnvironmentResponse(BaseModel):
    location: str
    noise_level: str
    lighting: str


class SessionResponse(BaseModel):
    """
    What:  Full representation of one meditation session.
    Who:   Returned by start, complete, detail and history endpoints.

    Derived fields:
        duration_minutes: round(duration / 60), halves up
        status:           completed | in-progress | overdue
        effectiveness:    0-100 for completed sessions, null otherwise
    """
    id: uuid.UUID
    user_id: uuid.UUID
    session_type: str
    title: str
    duration: int = Field(description="Planned length in seconds")
    duration_minutes: int
    start_time: datetime
    end_time: Optional[datetime] = None
    completed: bool
    status: str
    mood_before: str
    mood_after: Optional[str] = None
    mood_improvement: int = Field(description="-1 worse, 0 same, 1 better, 2 much better")
    notes: Optional[str] = None
    intensity: str
    tags: List[str] = Field(default_factory=list)
    interruptions: int
    focus_score: Optional[int] = None
    environment: EnvironmentResponse
    effectiveness: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_session(cls, session, now: Optional[datetime] = None) -> "SessionResponse":
        """Build the response from a MeditationSession row."""
        return cls(
            id=session.id,
            user_id=session.user_id,
            session_type=session.session_type,
            title=session.title,
            duration=session.duration,
            duration_minutes=duration_minutes(session.duration),
            start_time=ensure_aware_utc(session.start_time),
            end_time=ensure_aware_utc(session.end_time),
            completed=session.completed,
            status=derive_status(session.completed, session.start_time, session.duration, now),
            mood_before=session.mood_before,
            mood_after=session.mood_after,
            mood_improvement=session.mood_improvement,
            notes=session.notes,
            intensity=session.intensity,
            tags=list(session.tags or []),
            interruptions=session.interruptions,
            focus_score=session.focus_score,
            environment=EnvironmentResponse(
                location=session.environment_location,
                noise_level=session.environment_noise_level,
                lighting=session.environment_lighting,
            ),
            effectiveness=calculate_effectiveness(session),
            created_at=ensure_aware_utc(session.created_at),
            updated_at=ensure_aware_utc(session.updated_at),
        )


class PaginationInfo(BaseModel):
    """
    Offset pagination block.

    has_next is page * limit < total_items; has_prev is page > 1.
    """
    current_page: int
    limit: int
    total_items: int
    total_pages: int
    has_next: bool
    has_prev: bool


class SessionListResponse(BaseModel):
    """Returned by GET /api/meditation/sessions."""
    sessions: List[SessionResponse]
    pagination: PaginationInfo


class TypeDistributionItem(BaseModel):
    session_type: str
    count: int
    total_minutes: float


class UserStatsResponse(BaseModel):
    """
    What:  Aggregate statistics over a user's completed sessions.
    Who:   Returned by GET /api/meditation/stats.

    A user with no completed sessions gets zeros, an empty distribution
    and favorite_session "quick-calm".
    """
    total_sessions: int
    completed_sessions: int
    total_minutes: float
    avg_duration: float = Field(description="Average planned length in minutes")
    avg_focus_score: Optional[float] = Field(
        default=None,
        description="Null when sessions exist but none carries a focus score",
    )
    type_distribution: List[TypeDistributionItem]
    current_streak: int
    favorite_session: str


class StreakResponse(BaseModel):
    current_streak: int
