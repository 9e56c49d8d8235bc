"""
MindSync Backend — Emotion Check-in Route Handlers
====================================================

What:  POST /api/emotions/analyze (multipart face image) and
       GET /api/emotions/history.
How:   The upload is read into memory once; EmotionService rejects it if
       it is larger than MAX_IMAGE_SIZE. A Content-Length above the limit
       is refused before the body is read.
"""

import logging

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from mindsync.config import settings
from mindsync.database import get_db_session
from mindsync.exceptions import ValidationError
from mindsync.models.user import User
from mindsync.routes.deps import get_current_user
from mindsync.schemas.common import ErrorResponse
from mindsync.schemas.emotion import EmotionHistoryResponse, EmotionReadingResponse
from mindsync.services.emotion_service import DEFAULT_HISTORY_LIMIT, emotion_service
from mindsync.services.notification_hub import EMOTION_RECORDED, notification_hub

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/emotions",
    tags=["Emotions"],
    responses={
        400: {"description": "Invalid input", "model": ErrorResponse},
        401: {"description": "Missing or unknown X-User-ID", "model": ErrorResponse},
    },
)

# Multipart framing overhead allowed on top of the image itself
MULTIPART_OVERHEAD = 64 * 1024


@router.post(
    "/analyze",
    response_model=EmotionReadingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={503: {"description": "Emotion classifier unavailable", "model": ErrorResponse}},
    summary="Classify a face image and record the emotion",
)
async def analyze_emotion(
    request: Request,
    image: UploadFile = File(..., description="PNG or JPEG face image"),
    location: str | None = Form(default=None),
    activity: str | None = Form(default=None),
    time_of_day: str | None = Form(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> EmotionReadingResponse:
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit():
        if int(content_length) > settings.max_image_size + MULTIPART_OVERHEAD:
            raise ValidationError(
                message="Upload exceeds the maximum image size",
                field="image",
                context={"max_size": settings.max_image_size},
            )

    content = await image.read()
    reading = await emotion_service.analyze_emotion(
        db,
        user_id=user.id,
        filename=image.filename,
        content_type=image.content_type,
        content=content,
        context={"location": location, "activity": activity, "time_of_day": time_of_day},
    )
    await notification_hub.publish(user.id, EMOTION_RECORDED, reading.model_dump(mode="json"))
    return reading


@router.get(
    "/history",
    response_model=EmotionHistoryResponse,
    summary="The caller's recent emotion readings, newest first",
)
async def emotion_history(
    limit: int = Query(default=DEFAULT_HISTORY_LIMIT, description="1-100"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> EmotionHistoryResponse:
    readings = await emotion_service.get_emotion_history(db, user_id=user.id, limit=limit)
    return EmotionHistoryResponse(readings=readings, count=len(readings))
