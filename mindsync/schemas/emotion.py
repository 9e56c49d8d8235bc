"""
MindSync Backend — Emotion Check-in Schemas
=============================================

What:  Response models for /api/emotions. The analyze endpoint takes a
       multipart upload, so it has no request body model.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from mindsync.services.session_analytics import ensure_aware_utc


class EmotionContext(BaseModel):
    location: Optional[str] = None
    activity: Optional[str] = None
    time_of_day: Optional[str] = None


class EmotionReadingResponse(BaseModel):
    """
    What:  One classified check-in.

    suggested_mood is a mood value the client can pass straight to
    StartSession as mood_before.
    """
    id: uuid.UUID
    emotion: str
    confidence: float = Field(ge=0.0, le=1.0)
    suggested_mood: str
    source: str = Field(description="Classifier that produced the verdict")
    context: EmotionContext
    created_at: datetime

    @classmethod
    def from_reading(cls, reading) -> "EmotionReadingResponse":
        return cls(
            id=reading.id,
            emotion=reading.emotion,
            confidence=reading.confidence,
            suggested_mood=reading.suggested_mood,
            source=reading.source,
            context=EmotionContext(
                location=reading.context_location,
                activity=reading.context_activity,
                time_of_day=reading.context_time_of_day,
            ),
            created_at=ensure_aware_utc(reading.created_at),
        )


class EmotionHistoryResponse(BaseModel):
    """Newest first."""
    readings: List[EmotionReadingResponse]
    count: int
