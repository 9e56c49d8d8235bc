"""
MindSync Backend — Emotion Check-in Service
=============================================

What:  Validates a face-image upload, classifies it, stores the reading
       and lists a user's past readings.
How:   Upload checks run before the classifier sees any bytes; the image
       is never written anywhere, only the verdict is persisted.
Who:   Called by the /api/emotions route handlers.

Upload checks, in order (all raise ValidationError, field "image"):
    1. Extension:     .png, .jpg, .jpeg
    2. Content type:  image/png, image/jpeg
    3. Non-empty body
    4. Size:          ≤ MAX_IMAGE_SIZE bytes
    5. File header:   sniffed with libmagic; must be image/png or image/jpeg
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional
from uuid import UUID

import magic
from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mindsync.config import settings
from mindsync.exceptions import StorageError, ValidationError
from mindsync.models.emotion import MAX_CONTEXT_LENGTH, EmotionReading
from mindsync.models.enums import EMOTION_TO_MOOD
from mindsync.schemas.emotion import EmotionReadingResponse
from mindsync.services.emotion_classifier import EmotionClassifier, emotion_classifier
from mindsync.services.validators import require_int_range, require_text

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}
ALLOWED_CONTENT_TYPES = {"image/png", "image/jpeg"}
CONTEXT_FIELDS = ("location", "activity", "time_of_day")
DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 100


class EmotionService:
    """
    Emotion check-in workflow.

    The classifier is injected so tests can pass a stub; the default is
    the module-level FallbackEmotionClassifier.
    """

    def __init__(self, classifier: Optional[EmotionClassifier] = None):
        self.classifier = classifier or emotion_classifier

    # ── Upload Validation ─────────────────────────────────────────────────

    def validate_extension(self, filename: Optional[str]) -> str:
        """Returns the normalized extension; raises ValidationError otherwise."""
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or 'none'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_content_type(self, content_type: Optional[str]) -> str:
        # Multipart clients may append parameters ("image/png; charset=...")
        mime = (content_type or "").split(";")[0].strip().lower()
        if mime not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(
                message=f"Content type '{mime or 'none'}' is not supported",
                field="image",
                context={"content_type": mime, "allowed": sorted(ALLOWED_CONTENT_TYPES)},
            )
        return mime

    def validate_size(self, content: bytes) -> None:
        if not content:
            raise ValidationError(message="The uploaded image is empty", field="image")

        if len(content) > settings.max_image_size:
            max_mb = settings.max_image_size / (1024 * 1024)
            raise ValidationError(
                message=(
                    f"Image size ({len(content) / (1024 * 1024):.1f}MB) exceeds "
                    f"maximum of {max_mb:.0f}MB."
                ),
                field="image",
                context={"max_size": settings.max_image_size, "actual_size": len(content)},
            )

    def validate_file_header(self, content: bytes) -> str:
        """
        Sniff the real type from the leading bytes (PNG: 89 50 4E 47,
        JPEG: FF D8 FF) so a renamed file with an image extension and a
        forged multipart type is still rejected.

        Raises:
            ValidationError: Header is not PNG or JPEG
            StorageError: libmagic could not inspect the buffer
        """
        try:
            mime = magic.from_buffer(content, mime=True)
        except magic.MagicException as e:
            logger.error("File type detection failed: %s", str(e))
            raise StorageError(
                message="Could not verify the image type. Please try again.",
                context={"error_type": type(e).__name__},
            )

        if mime not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime}' is not supported. "
                    f"The upload must be a PNG or JPEG image."
                ),
                field="image",
                context={"detected_mime": mime, "allowed": sorted(ALLOWED_CONTENT_TYPES)},
            )
        return mime

    # ── Operations ────────────────────────────────────────────────────────

    async def analyze_emotion(
        self,
        db: AsyncSession,
        user_id: UUID,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
        context: Optional[Dict[str, Optional[str]]] = None,
    ) -> EmotionReadingResponse:
        """
        Classify an uploaded face image and record the reading.

        Workflow Steps:
            1. Validate extension, content type, size and file header
            2. Validate optional context (location/activity/time_of_day)
            3. Classify (mock fallback if the primary provider fails)
            4. Map the emotion to a suggested mood and persist

        Raises:
            ValidationError: Upload or context rejected (→ 400)
            EmotionAnalysisError: No classifier produced a verdict (→ 503)
            StorageError: Insert failed (→ 500)
        """
        self.validate_extension(filename)
        self.validate_content_type(content_type)
        self.validate_size(content)
        self.validate_file_header(content)
        cleaned_context = self._validate_context(context or {})

        result = await self.classifier.classify(content)
        suggested_mood = EMOTION_TO_MOOD[result.emotion]

        reading = EmotionReading(
            user_id=user_id,
            emotion=result.emotion.value,
            confidence=result.confidence,
            suggested_mood=suggested_mood.value,
            source=result.source,
            context_location=cleaned_context.get("location"),
            context_activity=cleaned_context.get("activity"),
            context_time_of_day=cleaned_context.get("time_of_day"),
        )

        try:
            db.add(reading)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error storing emotion reading: %s", str(e), exc_info=True)
            raise StorageError(
                message="Could not save the emotion reading. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info(
            "Emotion recorded for user %s: %s (%.2f, source=%s)",
            user_id,
            reading.emotion,
            reading.confidence,
            reading.source,
        )
        return EmotionReadingResponse.from_reading(reading)

    async def get_emotion_history(
        self,
        db: AsyncSession,
        user_id: UUID,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> List[EmotionReadingResponse]:
        """
        A user's most recent readings, newest first.

        Raises:
            ValidationError: limit outside 1..100
            StorageError: Query failed
        """
        limit = require_int_range(limit, "limit", 1, MAX_HISTORY_LIMIT)

        try:
            result = await db.execute(
                select(EmotionReading)
                .where(EmotionReading.user_id == user_id)
                .order_by(desc(EmotionReading.created_at), desc(EmotionReading.id))
                .limit(limit)
            )
            readings = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing emotions for %s: %s", user_id, str(e), exc_info=True)
            raise StorageError(
                message="Could not retrieve emotion history. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return [EmotionReadingResponse.from_reading(r) for r in readings]

    @staticmethod
    def _validate_context(context: Dict[str, Optional[str]]) -> Dict[str, str]:
        cleaned = {}
        for key in CONTEXT_FIELDS:
            value = context.get(key)
            if value is None:
                continue
            text = require_text(value, key, MAX_CONTEXT_LENGTH, allow_empty=True)
            if text:
                cleaned[key] = text
        return cleaned


# ── Singleton Instance ────────────────────────────────────────────────────
emotion_service = EmotionService()
