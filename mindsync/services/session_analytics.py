"""
MindSync Backend — Session Analytics (Pure Derivations)
=========================================================

What:  Pure functions deriving values from stored session fields:
       mood improvement, duration in minutes, status, effectiveness score,
       consecutive-day streak and page counts.
How:   No I/O and no ORM session; every function takes plain values (or
       any object exposing the session attributes) and returns a value.
Who:   MeditationService calls these while writing and when building
       responses; tests exercise them directly.

Nothing here is persisted except mood_improvement, which complete_session
stores alongside the mood pair it was computed from.
"""

import math
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Protocol, Union

from mindsync.models.enums import MOOD_RANKS, Mood, NoiseLevel

MoodLike = Union[Mood, str]

# Effectiveness scoring constants
BASE_SCORE = 50
OPTIMAL_MINUTES = (15, 30)
OPTIMAL_DURATION_BONUS = 20
HIGH_FOCUS_THRESHOLD, HIGH_FOCUS_BONUS = 7, 15
MID_FOCUS_THRESHOLD, MID_FOCUS_BONUS = 5, 10
MUCH_BETTER_BONUS = 15
BETTER_BONUS = 10
QUIET_ENVIRONMENT_BONUS = 10
INTERRUPTION_PENALTY = 5
QUIET_NOISE_LEVELS = {NoiseLevel.QUIET.value, NoiseLevel.SILENT.value}


class ScorableSession(Protocol):
    """Attributes calculate_effectiveness reads from a session."""

    completed: bool
    duration: int
    focus_score: Optional[int]
    mood_improvement: int
    environment_noise_level: str
    interruptions: int


def mood_rank(mood: MoodLike) -> int:
    """Ordinal rank of a mood (angry=1 … excited=9)."""
    return MOOD_RANKS[Mood(mood)]


def compute_mood_improvement(before: MoodLike, after: MoodLike) -> int:
    """
    Classify the change between two moods.

    Returns:
        2 if the rank rose by more than two steps, 1 if it rose at all,
        -1 if it fell, 0 if unchanged.
    """
    before_rank = mood_rank(before)
    after_rank = mood_rank(after)

    if after_rank > before_rank + 2:
        return 2
    if after_rank > before_rank:
        return 1
    if after_rank < before_rank:
        return -1
    return 0


def duration_minutes(duration_seconds: int) -> int:
    """Planned length in whole minutes; halves round up (870s → 15)."""
    return math.floor(duration_seconds / 60 + 0.5)


def ensure_aware_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to timezone-aware UTC.

    SQLite hands DateTime(timezone=True) columns back naive; those values
    were written as UTC, so a naive value is taken to be UTC.
    """
    if dt is None:
        return dt
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def derive_status(
    completed: bool,
    start_time: datetime,
    duration_seconds: int,
    now: Optional[datetime] = None,
) -> str:
    """
    Read-time status of a session.

    completed   → the completion operation succeeded
    in-progress → not completed and still inside its planned window
    overdue     → not completed and the planned window has passed
    """
    if completed:
        return "completed"
    now = ensure_aware_utc(now) if now else datetime.now(timezone.utc)
    planned_end = ensure_aware_utc(start_time) + timedelta(seconds=duration_seconds)
    if now < planned_end:
        return "in-progress"
    return "overdue"


def calculate_effectiveness(session: ScorableSession) -> Optional[int]:
    """
    Heuristic 0–100 quality rating of a completed session.

    Returns None for sessions that are not completed.

    Scoring:
        base 50
        +20  planned length of 15–30 minutes
        +15  focus score ≥ 7, else +10 for focus score ≥ 5
        +15  mood improvement 2, else +10 for mood improvement 1
        +10  quiet or silent environment
        −5   per interruption
        clamped to [0, 100]
    """
    if not session.completed:
        return None

    score = BASE_SCORE

    low, high = OPTIMAL_MINUTES
    if low <= duration_minutes(session.duration) <= high:
        score += OPTIMAL_DURATION_BONUS

    focus = session.focus_score
    if focus is not None:
        if focus >= HIGH_FOCUS_THRESHOLD:
            score += HIGH_FOCUS_BONUS
        elif focus >= MID_FOCUS_THRESHOLD:
            score += MID_FOCUS_BONUS

    if session.mood_improvement == 2:
        score += MUCH_BETTER_BONUS
    elif session.mood_improvement == 1:
        score += BETTER_BONUS

    if session.environment_noise_level in QUIET_NOISE_LEVELS:
        score += QUIET_ENVIRONMENT_BONUS

    score -= INTERRUPTION_PENALTY * (session.interruptions or 0)

    return max(0, min(100, score))


def compute_streak(session_days: Iterable[date], today: date) -> int:
    """
    Count consecutive calendar days ending today that have a session.

    No session today means no streak, even if yesterday had one. The
    count can never exceed the number of distinct days supplied, so the
    caller's lookback window bounds it.
    """
    days = set(session_days)
    if today not in days:
        return 0

    streak = 1
    cursor = today - timedelta(days=1)
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def total_pages(total_items: int, limit: int) -> int:
    """ceil(total/limit); zero items means zero pages."""
    return math.ceil(total_items / limit) if total_items else 0
