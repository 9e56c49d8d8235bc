"""Create users, meditation_sessions and emotion_readings tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial MindSync schema.
How:   Portable column types (sa.Uuid, TIMESTAMP WITH TIME ZONE, JSON) so
       the same migration runs on PostgreSQL and SQLite. CHECK constraints
       repeat the invariants MeditationService enforces.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column(
            "total_meditation_minutes", sa.Integer(), nullable=False,
            server_default=sa.text("0"),
            comment="Only changed by the atomic post-completion increment",
        ),
        sa.Column("completed_sessions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_active", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.TIMESTAMP(timezone=True), nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at", sa.TIMESTAMP(timezone=True), nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("total_meditation_minutes >= 0", name="ck_users_minutes_nonneg"),
        sa.CheckConstraint("completed_sessions >= 0", name="ck_users_sessions_nonneg"),
    )

    # ── meditation_sessions ───────────────────────────────────────────────
    op.create_table(
        "meditation_sessions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("session_type", sa.String(32), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False, comment="Planned length in seconds"),
        sa.Column("start_time", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("end_time", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("mood_before", sa.String(16), nullable=False, server_default=sa.text("'neutral'")),
        sa.Column("mood_after", sa.String(16), nullable=True),
        sa.Column("mood_improvement", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("intensity", sa.String(16), nullable=False, server_default=sa.text("'medium'")),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("interruptions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("focus_score", sa.Integer(), nullable=True),
        sa.Column("environment_location", sa.String(16), nullable=False, server_default=sa.text("'home'")),
        sa.Column("environment_noise_level", sa.String(16), nullable=False, server_default=sa.text("'quiet'")),
        sa.Column("environment_lighting", sa.String(16), nullable=False, server_default=sa.text("'dim'")),
        sa.Column(
            "created_at", sa.TIMESTAMP(timezone=True), nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at", sa.TIMESTAMP(timezone=True), nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("duration >= 60 AND duration <= 7200", name="ck_sessions_duration_range"),
        sa.CheckConstraint("end_time IS NULL OR end_time >= start_time", name="ck_sessions_end_after_start"),
        sa.CheckConstraint(
            "focus_score IS NULL OR (focus_score >= 1 AND focus_score <= 10)",
            name="ck_sessions_focus_range",
        ),
        sa.CheckConstraint("interruptions >= 0", name="ck_sessions_interruptions_nonneg"),
        sa.CheckConstraint(
            "mood_improvement >= -1 AND mood_improvement <= 2",
            name="ck_sessions_mood_improvement_range",
        ),
    )
    # History pages and the streak walk
    op.create_index("idx_sessions_user_start", "meditation_sessions", ["user_id", "start_time"])
    # Stats aggregation over completed sessions
    op.create_index("idx_sessions_user_completed", "meditation_sessions", ["user_id", "completed"])

    # ── emotion_readings ──────────────────────────────────────────────────
    op.create_table(
        "emotion_readings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("emotion", sa.String(16), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("suggested_mood", sa.String(16), nullable=False),
        sa.Column("source", sa.String(32), nullable=False, comment="Classifier that produced the verdict"),
        sa.Column("context_location", sa.String(50), nullable=True),
        sa.Column("context_activity", sa.String(50), nullable=True),
        sa.Column("context_time_of_day", sa.String(50), nullable=True),
        sa.Column(
            "created_at", sa.TIMESTAMP(timezone=True), nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("confidence >= 0 AND confidence <= 1", name="ck_emotion_confidence_range"),
    )
    op.create_index("idx_emotion_user_created", "emotion_readings", ["user_id", "created_at"])


def downgrade() -> None:
    op.drop_index("idx_emotion_user_created", table_name="emotion_readings")
    op.drop_table("emotion_readings")
    op.drop_index("idx_sessions_user_completed", table_name="meditation_sessions")
    op.drop_index("idx_sessions_user_start", table_name="meditation_sessions")
    op.drop_table("meditation_sessions")
    op.drop_table("users")
