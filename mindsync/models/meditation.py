"""
MindSync Backend — Meditation Session SQLAlchemy Model
========================================================

What:  ORM model representing the `meditation_sessions` table.
Who:   Written by MeditationService; read by the analytics queries.

Lifecycle:
    1. Created by start_session (completed=False, end_time NULL)
    2. Finalized once by complete_session (completed=True, end_time set,
       mood_after and derived mood_improvement written together)
    3. Never deleted by the service layer

Derived values (duration in minutes, status, effectiveness) are not
columns; they are computed on read in session_analytics.

Table Design:
    - Enumerated fields are VARCHAR; the service validates against the
      enums in models/enums.py
    - CHECK constraints mirror the invariants the service enforces, so a
      bad write from any other client is rejected by the database too
    - (user_id, start_time) serves history pages and the streak walk;
      (user_id, completed) serves the stats aggregation
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from mindsync.database import Base

MIN_DURATION_SECONDS = 60
MAX_DURATION_SECONDS = 7200
MAX_TITLE_LENGTH = 100
MAX_NOTES_LENGTH = 1000
MAX_TAG_LENGTH = 30
MAX_TAGS = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MeditationSession(Base):
    """One meditation practice attempt, from start to completion."""

    __tablename__ = "meditation_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    session_type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(MAX_TITLE_LENGTH), nullable=False)

    # Planned length in seconds
    duration: Mapped[int] = mapped_column(Integer, nullable=False)

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None,
    )
    completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false"),
    )

    # ── Mood ──────────────────────────────────────────────────────────────
    mood_before: Mapped[str] = mapped_column(
        String(16), nullable=False, default="neutral", server_default=text("'neutral'"),
    )
    mood_after: Mapped[Optional[str]] = mapped_column(String(16), nullable=True, default=None)

    # -1 worse, 0 same, 1 better, 2 much better
    mood_improvement: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )

    # ── Practice Details ──────────────────────────────────────────────────
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    intensity: Mapped[str] = mapped_column(
        String(16), nullable=False, default="medium", server_default=text("'medium'"),
    )
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    interruptions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )
    focus_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=None)

    # ── Environment ───────────────────────────────────────────────────────
    environment_location: Mapped[str] = mapped_column(
        String(16), nullable=False, default="home", server_default=text("'home'"),
    )
    environment_noise_level: Mapped[str] = mapped_column(
        String(16), nullable=False, default="quiet", server_default=text("'quiet'"),
    )
    environment_lighting: Mapped[str] = mapped_column(
        String(16), nullable=False, default="dim", server_default=text("'dim'"),
    )

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint(
            f"duration >= {MIN_DURATION_SECONDS} AND duration <= {MAX_DURATION_SECONDS}",
            name="ck_sessions_duration_range",
        ),
        CheckConstraint(
            "end_time IS NULL OR end_time >= start_time",
            name="ck_sessions_end_after_start",
        ),
        CheckConstraint(
            "focus_score IS NULL OR (focus_score >= 1 AND focus_score <= 10)",
            name="ck_sessions_focus_range",
        ),
        CheckConstraint("interruptions >= 0", name="ck_sessions_interruptions_nonneg"),
        CheckConstraint(
            "mood_improvement >= -1 AND mood_improvement <= 2",
            name="ck_sessions_mood_improvement_range",
        ),
        Index("idx_sessions_user_start", "user_id", "start_time"),
        Index("idx_sessions_user_completed", "user_id", "completed"),
    )

    def __repr__(self) -> str:
        return (
            f"<MeditationSession(id={self.id}, type='{self.session_type}', "
            f"completed={self.completed})>"
        )
