"""
MindSync Backend — User Service
=================================

What:  Creates and looks up users, and applies the post-completion
       increment to their meditation aggregates.
How:   Plain async SQLAlchemy statements on the caller's AsyncSession.
Who:   Called by the users routes, the identity dependency and
       MeditationService.complete_session.

Aggregate increment:
    UPDATE users
       SET total_meditation_minutes = total_meditation_minutes + :minutes,
           completed_sessions       = completed_sessions + 1,
           current_streak           = :streak,
           longest_streak           = CASE WHEN longest_streak < :streak
                                           THEN :streak ELSE longest_streak END,
           last_active              = :at
     WHERE id = :user_id

    The database applies the arithmetic, so N concurrent completions always
    add N to completed_sessions. Transient OperationalErrors (lock timeouts,
    dropped connections) are retried with exponential backoff.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from mindsync.config import settings
from mindsync.exceptions import NotFoundError, StorageError, ValidationError
from mindsync.models.user import User
from mindsync.services.validators import require_text

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 255
MAX_BIO_LENGTH = 500


def aggregate_retry_wait():
    """Backoff for the aggregate increment: min_wait·2^(n-1) capped at max_wait, plus up to min_wait of jitter."""
    return wait_exponential(
        multiplier=settings.aggregate_retry_min_wait,
        max=settings.aggregate_retry_max_wait,
    ) + wait_random(0, settings.aggregate_retry_min_wait)


class UserService:
    """
    User records and their running totals.

    Error Handling Strategy:
        Input problems raise ValidationError; a missing row raises
        NotFoundError; anything SQLAlchemy raises is logged and wrapped in
        StorageError. increment_meditation_totals is the exception: it lets
        the final database error propagate so the caller can report a
        partial completion.
    """

    async def create_user(
        self,
        db: AsyncSession,
        name: str,
        email: str,
        bio: Optional[str] = None,
    ) -> User:
        """
        Register a new user.

        Raises:
            ValidationError: Bad name/email/bio, or the email is taken
            StorageError: Insert failed for any other reason
        """
        name = require_text(name, "name", MAX_NAME_LENGTH)
        email = require_text(email, "email", MAX_EMAIL_LENGTH).lower()
        if "@" not in email:
            raise ValidationError(message="email must be a valid email address", field="email")
        if bio is not None:
            bio = require_text(bio, "bio", MAX_BIO_LENGTH, allow_empty=True) or None

        try:
            existing = await db.execute(select(User.id).where(User.email == email))
            if existing.scalar_one_or_none() is not None:
                raise ValidationError(
                    message="A user with this email already exists",
                    field="email",
                )

            user = User(name=name, email=email, bio=bio)
            db.add(user)
            await db.commit()
            logger.info("User created: %s", user.id)
            return user

        except ValidationError:
            raise
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            await db.rollback()
            raise ValidationError(
                message="A user with this email already exists",
                field="email",
            )
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error creating user: %s", str(e), exc_info=True)
            raise StorageError(
                message="Could not create the user. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_user(self, db: AsyncSession, user_id: UUID) -> User:
        """
        Fetch a user by id.

        Raises:
            NotFoundError: No such user (→ 404)
            StorageError: Query failed (→ 500)
        """
        try:
            result = await db.execute(select(User).where(User.id == user_id))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", user_id, str(e))
            raise StorageError(
                message="Could not retrieve the user. Please try again.",
                context={"user_id": str(user_id)},
            )

        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    async def increment_meditation_totals(
        self,
        db: AsyncSession,
        user_id: UUID,
        minutes: int,
        streak: int,
        at: datetime,
    ) -> bool:
        """
        Add one completed session to a user's aggregates in a single UPDATE.

        Args:
            db: Async database session; the update is committed here
            user_id: Owner of the completed session
            minutes: Whole minutes to add to total_meditation_minutes
            streak: Freshly computed current streak
            at: Completion time, stored as last_active

        Returns:
            True if the user row was updated, False if it does not exist.

        Raises:
            SQLAlchemyError: The update still failed after all retries
        """
        updated = await self._apply_increment(db, user_id, minutes, streak, at)
        if updated:
            logger.info(
                "Aggregates incremented for user %s: +%d min, streak=%d",
                user_id,
                minutes,
                streak,
            )
        else:
            logger.warning("Aggregate increment matched no user row: %s", user_id)
        return updated

    @retry(
        # Only transient failures; constraint violations will not fix themselves
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(settings.aggregate_retry_attempts),
        wait=aggregate_retry_wait(),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _apply_increment(
        self,
        db: AsyncSession,
        user_id: UUID,
        minutes: int,
        streak: int,
        at: datetime,
    ) -> bool:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(
                total_meditation_minutes=User.total_meditation_minutes + minutes,
                completed_sessions=User.completed_sessions + 1,
                current_streak=streak,
                longest_streak=case(
                    (User.longest_streak < streak, streak),
                    else_=User.longest_streak,
                ),
                last_active=at,
                updated_at=at,
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = await db.execute(stmt)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise
        return result.rowcount > 0


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
