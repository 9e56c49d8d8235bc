"""
MindSync Backend — User SQLAlchemy Model
==========================================

What:  ORM model for the `users` table.
Who:   Created by UserService; aggregates are bumped by the meditation engine.

Aggregate columns:
    total_meditation_minutes, completed_sessions, current_streak,
    longest_streak and last_active are only written through a single
    atomic UPDATE issued after a session completes (see
    UserService.increment_meditation_totals). Nothing reads them, adds
    in Python and writes them back.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from mindsync.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """A registered MindSync user and their running meditation totals."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Stored lower-cased; uniqueness is case-insensitive in practice
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    # ── Meditation Aggregates ─────────────────────────────────────────────
    total_meditation_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )
    completed_sessions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )
    current_streak: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )
    longest_streak: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )
    last_active: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None,
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
        CheckConstraint("total_meditation_minutes >= 0", name="ck_users_minutes_nonneg"),
        CheckConstraint("completed_sessions >= 0", name="ck_users_sessions_nonneg"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
