"""
MindSync Backend — Meditation Service (Session Ledger & Analytics Engine)
===========================================================================

What:  Owns the meditation session lifecycle (start → complete) and the
       read-side analytics: history pages, statistics and streaks.
How:   Async SQLAlchemy on the caller's AsyncSession; derived values come
       from session_analytics; aggregate bumps go through UserService.
Who:   Called by the /api/meditation route handlers.
When:  Every session write and every history/stats read.

Completion Flow:
    ┌────────────┐   ┌────────────┐   ┌──────────────────┐   ┌──────────────┐
    │  Owner-    │──▶│  Validate  │──▶│ Conditional      │──▶│ Atomic user  │
    │  scoped    │   │  inputs    │   │ UPDATE + COMMIT  │   │ increment +  │
    │  lookup    │   │            │   │ (completed=false)│   │ COMMIT       │
    └────────────┘   └────────────┘   └──────────────────┘   └──────────────┘

    The session write and the aggregate increment are separate commits.
    If the increment fails after its retries, the session stays completed
    and PartialCompletionError reports the under-count.

    Two requests racing to complete the same session both pass the lookup,
    but only one UPDATE matches `completed = false`; the other gets
    InvalidStateError.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import asc, desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mindsync.config import settings
from mindsync.exceptions import (
    InvalidStateError,
    NotFoundError,
    PartialCompletionError,
    StorageError,
    ValidationError,
)
from mindsync.models.enums import Intensity, Lighting, Location, Mood, NoiseLevel, SessionType
from mindsync.models.meditation import (
    MAX_DURATION_SECONDS,
    MAX_NOTES_LENGTH,
    MAX_TAG_LENGTH,
    MAX_TAGS,
    MAX_TITLE_LENGTH,
    MIN_DURATION_SECONDS,
    MeditationSession,
)
from mindsync.schemas.meditation import (
    PaginationInfo,
    SessionListResponse,
    SessionResponse,
    TypeDistributionItem,
    UserStatsResponse,
)
from mindsync.services.session_analytics import (
    compute_mood_improvement,
    compute_streak,
    duration_minutes,
    ensure_aware_utc,
    total_pages,
)
from mindsync.services.user_service import user_service
from mindsync.services.validators import (
    require_choice,
    require_int_range,
    require_tags,
    require_text,
)

logger = logging.getLogger(__name__)

DEFAULT_FAVORITE_SESSION = SessionType.QUICK_CALM.value
SORT_OPTIONS = {"start_time_desc", "start_time_asc"}
MIN_FOCUS_SCORE, MAX_FOCUS_SCORE = 1, 10
MAX_START_CLOCK_SKEW = timedelta(minutes=5)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _minutes(seconds: Optional[float]) -> float:
    """Seconds → minutes rounded to one decimal."""
    return round((seconds or 0) / 60, 1)


class MeditationService:
    """
    Business logic for meditation sessions.

    Responsibilities:
        - start_session():       validate and create a session
        - complete_session():    one-way completion + aggregate increment
        - get_session():         owner-scoped detail
        - get_recent_sessions(): offset-paginated history
        - get_user_stats():      SQL aggregation over completed sessions
        - get_current_streak():  consecutive-day streak ending today

    Every method takes an optional `now` so callers (and tests) can pin the
    clock; it defaults to the current UTC time.

    Error Handling Strategy:
        Business-rule violations raise ValidationError, NotFoundError or
        InvalidStateError before anything is written. SQLAlchemy errors are
        logged with their type and wrapped in StorageError.
    """

    # ══════════════════════════════════════════════════════════════════════
    # Writes
    # ══════════════════════════════════════════════════════════════════════

    async def start_session(
        self,
        db: AsyncSession,
        user_id: UUID,
        session_type: str,
        title: str,
        duration: int,
        mood_before: Optional[str] = None,
        intensity: Optional[str] = None,
        tags: Optional[List[str]] = None,
        environment: Optional[Dict[str, Optional[str]]] = None,
        now: Optional[datetime] = None,
    ) -> SessionResponse:
        """
        Create a new, not yet completed session starting now.

        The user's aggregates are not touched; only completion counts.

        Args:
            db: Async database session; the insert is committed here
            user_id: Owner of the new session
            session_type: One of SessionType
            title: 1-100 characters after trimming
            duration: Planned length in whole seconds (60-7200)
            mood_before: One of Mood; defaults to neutral
            intensity: One of Intensity; defaults to medium
            tags: Up to 10 labels of 1-30 characters
            environment: Optional location/noise_level/lighting overrides
            now: Start instant; defaults to the current time and may not lie
                more than MAX_START_CLOCK_SKEW in the future

        Raises:
            ValidationError: Any field breaks its rule (nothing is written)
            StorageError: Insert failed
        """
        session_type = require_choice(session_type, SessionType, "session_type").value
        title = require_text(title, "title", MAX_TITLE_LENGTH)
        duration = require_int_range(
            duration, "duration", MIN_DURATION_SECONDS, MAX_DURATION_SECONDS,
        )
        mood_before = (
            require_choice(mood_before, Mood, "mood_before").value
            if mood_before is not None
            else Mood.NEUTRAL.value
        )
        intensity = (
            require_choice(intensity, Intensity, "intensity").value
            if intensity is not None
            else Intensity.MEDIUM.value
        )
        tags = require_tags(tags, MAX_TAGS, MAX_TAG_LENGTH) if tags is not None else []
        location, noise_level, lighting = self._validate_environment(environment or {})

        now = self._validate_start_time(now)
        session = MeditationSession(
            user_id=user_id,
            session_type=session_type,
            title=title,
            duration=duration,
            start_time=now,
            completed=False,
            mood_before=mood_before,
            mood_improvement=0,
            intensity=intensity,
            tags=tags,
            interruptions=0,
            environment_location=location,
            environment_noise_level=noise_level,
            environment_lighting=lighting,
            created_at=now,
            updated_at=now,
        )

        try:
            db.add(session)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error starting session for %s: %s", user_id, str(e), exc_info=True)
            raise StorageError(
                message="Could not start the session. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info(
            "Session started: %s (user=%s, type=%s, duration=%ds)",
            session.id,
            user_id,
            session_type,
            duration,
        )
        return SessionResponse.from_session(session, now=now)

    async def complete_session(
        self,
        db: AsyncSession,
        user_id: UUID,
        session_id: UUID,
        mood_after: str,
        focus_score: Optional[int] = None,
        notes: Optional[str] = None,
        interruptions: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> SessionResponse:
        """
        Mark a session completed and add it to the owner's aggregates.

        Workflow Steps:
            1. Owner-scoped lookup (someone else's session → NotFoundError)
            2. Reject if already completed (record untouched)
            3. Validate mood_after, focus_score, notes, interruptions
            4. Conditional UPDATE ... WHERE completed = false, then COMMIT
            5. Recompute the streak and increment the user's aggregates
               in a second transaction

        Raises:
            NotFoundError: No such session for this user
            InvalidStateError: Already completed (or completed concurrently)
            ValidationError: Bad input; nothing is written
            PartialCompletionError: Step 5 failed; the session IS completed
            StorageError: Steps 1-4 failed; nothing is written
        """
        session = await self._get_owned_session(db, user_id, session_id)

        if session.completed:
            raise InvalidStateError(
                message="Session is already completed",
                state="completed",
                context={"session_id": str(session_id)},
            )

        mood_after = require_choice(mood_after, Mood, "mood_after").value
        values: Dict[str, Any] = {}
        if focus_score is not None:
            values["focus_score"] = require_int_range(
                focus_score, "focus_score", MIN_FOCUS_SCORE, MAX_FOCUS_SCORE,
            )
        if notes is not None:
            values["notes"] = require_text(notes, "notes", MAX_NOTES_LENGTH, allow_empty=True) or None
        if interruptions is not None:
            values["interruptions"] = require_int_range(interruptions, "interruptions", minimum=0)

        now = ensure_aware_utc(now) if now else _utcnow()
        start_time = ensure_aware_utc(session.start_time)
        end_time = now if now >= start_time else start_time

        values.update(
            completed=True,
            end_time=end_time,
            mood_after=mood_after,
            mood_improvement=compute_mood_improvement(session.mood_before, mood_after),
            updated_at=now,
        )

        # ── Step 4: compare-and-set on completed = false ──────────────────
        stmt = (
            update(MeditationSession)
            .where(
                MeditationSession.id == session_id,
                MeditationSession.user_id == user_id,
                MeditationSession.completed.is_(False),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await db.execute(stmt)
            if result.rowcount == 0:
                await db.rollback()
                raise InvalidStateError(
                    message="Session is already completed",
                    state="completed",
                    context={"session_id": str(session_id)},
                )
            await db.commit()
            await db.refresh(session)
        except InvalidStateError:
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error completing session %s: %s", session_id, str(e), exc_info=True)
            raise StorageError(
                message="Could not complete the session. Please try again.",
                context={"session_id": str(session_id), "error_type": type(e).__name__},
            )

        # Snapshot before step 5; a rollback there expires the ORM instance
        response = SessionResponse.from_session(session, now=now)
        minutes = duration_minutes(session.duration)
        logger.info(
            "Session completed: %s (user=%s, mood %s → %s, improvement=%d)",
            session_id,
            user_id,
            response.mood_before,
            mood_after,
            response.mood_improvement,
        )

        # ── Step 5: aggregate increment (separate transaction) ────────────
        try:
            streak = await self.get_current_streak(db, user_id, now=now)
            updated = await user_service.increment_meditation_totals(
                db, user_id, minutes=minutes, streak=streak, at=now,
            )
        except (SQLAlchemyError, StorageError) as e:
            logger.error(
                "Session %s completed but aggregates for user %s were not updated: %s",
                session_id,
                user_id,
                str(e),
            )
            raise PartialCompletionError(
                session_id=str(session_id),
                context={"error_type": type(e).__name__},
            )

        if not updated:
            logger.error(
                "Session %s completed but user %s no longer exists; aggregates not updated",
                session_id,
                user_id,
            )
            raise PartialCompletionError(session_id=str(session_id), reason="user_not_found")

        return response

    # ══════════════════════════════════════════════════════════════════════
    # Reads
    # ══════════════════════════════════════════════════════════════════════

    async def get_session(
        self,
        db: AsyncSession,
        user_id: UUID,
        session_id: UUID,
        now: Optional[datetime] = None,
    ) -> SessionResponse:
        """
        Retrieve one session owned by the caller.

        Raises:
            NotFoundError: Missing, or owned by another user (→ 404)
            StorageError: Query failed (→ 500)
        """
        session = await self._get_owned_session(db, user_id, session_id)
        return SessionResponse.from_session(session, now=now)

    async def get_recent_sessions(
        self,
        db: AsyncSession,
        user_id: UUID,
        limit: Optional[int] = None,
        page: int = 1,
        session_type: Optional[str] = None,
        sort: str = "start_time_desc",
        now: Optional[datetime] = None,
    ) -> SessionListResponse:
        """
        One page of the caller's sessions, completed or not.

        Pagination Strategy (Offset-Based):
            skip = (page - 1) * limit, ordered by start_time (newest first
            by default). Page numbers are what the history UI shows, so
            offset paging fits; the (user_id, start_time) index keeps
            shallow pages cheap.

        Query plan:
            SELECT COUNT(*) FROM meditation_sessions WHERE user_id = :uid
            SELECT * FROM meditation_sessions WHERE user_id = :uid
            ORDER BY start_time DESC LIMIT :limit OFFSET :skip

        Args:
            limit: Page size (1..HISTORY_MAX_LIMIT, default HISTORY_DEFAULT_LIMIT)
            page: 1-based page number
            session_type: Optional filter, one of SessionType
            sort: start_time_desc (default) or start_time_asc

        Raises:
            ValidationError: Bad page, limit, sort or session_type
            StorageError: Query failed
        """
        if limit is None:
            limit = settings.history_default_limit
        limit = require_int_range(limit, "limit", 1, settings.history_max_limit)
        page = require_int_range(page, "page", minimum=1)
        if sort not in SORT_OPTIONS:
            raise ValidationError(
                message=f"Invalid sort '{sort}'. Must be one of: {', '.join(sorted(SORT_OPTIONS))}",
                field="sort",
            )

        filters = [MeditationSession.user_id == user_id]
        if session_type is not None:
            filters.append(
                MeditationSession.session_type
                == require_choice(session_type, SessionType, "session_type").value
            )

        order = asc if sort == "start_time_asc" else desc
        query = (
            select(MeditationSession)
            .where(*filters)
            .order_by(order(MeditationSession.start_time), order(MeditationSession.id))
            .offset((page - 1) * limit)
            .limit(limit)
        )

        try:
            count_result = await db.execute(
                select(func.count(MeditationSession.id)).where(*filters)
            )
            total_items = count_result.scalar() or 0

            result = await db.execute(query)
            sessions = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing sessions for %s: %s", user_id, str(e), exc_info=True)
            raise StorageError(
                message="Could not retrieve sessions. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return SessionListResponse(
            sessions=[SessionResponse.from_session(s, now=now) for s in sessions],
            pagination=PaginationInfo(
                current_page=page,
                limit=limit,
                total_items=total_items,
                total_pages=total_pages(total_items, limit),
                has_next=page * limit < total_items,
                has_prev=page > 1,
            ),
        )

    async def get_user_stats(
        self,
        db: AsyncSession,
        user_id: UUID,
        now: Optional[datetime] = None,
    ) -> UserStatsResponse:
        """
        Aggregate statistics over the caller's completed sessions.

        Query plan:
            SELECT COUNT(id), SUM(duration), AVG(duration), AVG(focus_score)
              FROM meditation_sessions WHERE user_id = :uid AND completed
            SELECT session_type, COUNT(id), SUM(duration)
              FROM meditation_sessions WHERE user_id = :uid AND completed
             GROUP BY session_type

        The distribution is ordered by count descending, ties by type name,
        and its first entry is the favorite session.
        """
        completed_filter = (
            MeditationSession.user_id == user_id,
            MeditationSession.completed.is_(True),
        )

        try:
            summary_result = await db.execute(
                select(
                    func.count(MeditationSession.id),
                    func.sum(MeditationSession.duration),
                    func.avg(MeditationSession.duration),
                    func.avg(MeditationSession.focus_score),
                ).where(*completed_filter)
            )
            count, total_seconds, avg_seconds, avg_focus = summary_result.one()

            dist_result = await db.execute(
                select(
                    MeditationSession.session_type,
                    func.count(MeditationSession.id),
                    func.sum(MeditationSession.duration),
                )
                .where(*completed_filter)
                .group_by(MeditationSession.session_type)
            )
            rows = dist_result.all()
        except SQLAlchemyError as e:
            logger.error("Database error computing stats for %s: %s", user_id, str(e), exc_info=True)
            raise StorageError(
                message="Could not compute statistics. Please try again.",
                context={"error_type": type(e).__name__},
            )

        distribution = sorted(
            (
                TypeDistributionItem(
                    session_type=session_type,
                    count=type_count,
                    total_minutes=_minutes(type_seconds),
                )
                for session_type, type_count, type_seconds in rows
            ),
            key=lambda item: (-item.count, item.session_type),
        )

        current_streak = await self.get_current_streak(db, user_id, now=now)
        count = count or 0

        if count == 0:
            avg_focus_score: Optional[float] = 0.0
        elif avg_focus is None:
            avg_focus_score = None
        else:
            avg_focus_score = round(float(avg_focus), 1)

        return UserStatsResponse(
            total_sessions=count,
            completed_sessions=count,
            total_minutes=_minutes(total_seconds),
            avg_duration=_minutes(float(avg_seconds)) if avg_seconds is not None else 0.0,
            avg_focus_score=avg_focus_score,
            type_distribution=distribution,
            current_streak=current_streak,
            favorite_session=distribution[0].session_type if distribution else DEFAULT_FAVORITE_SESSION,
        )

    async def get_current_streak(
        self,
        db: AsyncSession,
        user_id: UUID,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Consecutive days, ending today, with at least one completed session.

        How:
            1. Fetch start_time of the STREAK_LOOKBACK most recent completed
               sessions
            2. Map each to its calendar day in the configured TIMEZONE
            3. Walk back from today until the first day without a session

        No session today → 0, even if yesterday had one.
        """
        tz = settings.tzinfo
        now = ensure_aware_utc(now) if now else _utcnow()
        today = now.astimezone(tz).date()

        try:
            result = await db.execute(
                select(MeditationSession.start_time)
                .where(
                    MeditationSession.user_id == user_id,
                    MeditationSession.completed.is_(True),
                )
                .order_by(desc(MeditationSession.start_time))
                .limit(settings.streak_lookback)
            )
            start_times = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error computing streak for %s: %s", user_id, str(e), exc_info=True)
            raise StorageError(
                message="Could not compute the streak. Please try again.",
                context={"error_type": type(e).__name__},
            )

        days = [ensure_aware_utc(start).astimezone(tz).date() for start in start_times]
        return compute_streak(days, today)

    # ══════════════════════════════════════════════════════════════════════
    # Helpers
    # ══════════════════════════════════════════════════════════════════════

    async def _get_owned_session(
        self,
        db: AsyncSession,
        user_id: UUID,
        session_id: UUID,
    ) -> MeditationSession:
        try:
            result = await db.execute(
                select(MeditationSession).where(
                    MeditationSession.id == session_id,
                    MeditationSession.user_id == user_id,
                )
            )
            session = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching session %s: %s", session_id, str(e))
            raise StorageError(
                message="Could not retrieve the session. Please try again.",
                context={"session_id": str(session_id)},
            )

        if session is None:
            raise NotFoundError(resource="meditation session", resource_id=str(session_id))
        return session

    @staticmethod
    def _validate_start_time(now: Optional[datetime]) -> datetime:
        current = _utcnow()
        if now is None:
            return current

        now = ensure_aware_utc(now)
        if now > current + MAX_START_CLOCK_SKEW:
            raise ValidationError(
                message="A session cannot start in the future",
                field="start_time",
                context={"start_time": now.isoformat(), "server_time": current.isoformat()},
            )
        return now

    @staticmethod
    def _validate_environment(environment: Dict[str, Optional[str]]):
        unknown = set(environment) - {"location", "noise_level", "lighting"}
        if unknown:
            raise ValidationError(
                message=f"Unknown environment field(s): {', '.join(sorted(unknown))}",
                field="environment",
            )

        def pick(key, enum_cls, default):
            value = environment.get(key)
            if value is None:
                return default.value
            return require_choice(value, enum_cls, f"environment.{key}").value

        return (
            pick("location", Location, Location.HOME),
            pick("noise_level", NoiseLevel, NoiseLevel.QUIET),
            pick("lighting", Lighting, Lighting.DIM),
        )


# ── Singleton Instance ────────────────────────────────────────────────────
meditation_service = MeditationService()
