"""
MindSync Backend — Emotion Reading SQLAlchemy Model
=====================================================

What:  ORM model for the `emotion_readings` table: one classified
       face-image check-in per row.
Who:   Written and listed by EmotionService.

The uploaded image itself is not stored; only the classifier verdict,
the mood it maps to and optional free-text context.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from mindsync.database import Base

MAX_CONTEXT_LENGTH = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EmotionReading(Base):
    """A single emotion classification result for a user."""

    __tablename__ = "emotion_readings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    emotion: Mapped[str] = mapped_column(String(16), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    suggested_mood: Mapped[str] = mapped_column(String(16), nullable=False)

    # Which classifier produced the verdict ("mock", or a real provider name)
    source: Mapped[str] = mapped_column(String(32), nullable=False)

    context_location: Mapped[Optional[str]] = mapped_column(
        String(MAX_CONTEXT_LENGTH), nullable=True,
    )
    context_activity: Mapped[Optional[str]] = mapped_column(
        String(MAX_CONTEXT_LENGTH), nullable=True,
    )
    context_time_of_day: Mapped[Optional[str]] = mapped_column(
        String(MAX_CONTEXT_LENGTH), nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint(
            "confidence >= 0 AND confidence <= 1",
            name="ck_emotion_confidence_range",
        ),
        Index("idx_emotion_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<EmotionReading(id={self.id}, emotion='{self.emotion}', "
            f"confidence={self.confidence})>"
        )
