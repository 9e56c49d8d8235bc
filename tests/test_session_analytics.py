"""
MindSync Backend — Session Analytics Unit Tests
=================================================

What:  Tests for the pure derivations: mood improvement, duration rounding,
       status, effectiveness scoring, streak walk and page counts.
How:   Plain values and SimpleNamespace stand-ins; no database.
"""

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from mindsync.models.enums import Mood
from mindsync.services.session_analytics import (
    calculate_effectiveness,
    compute_mood_improvement,
    compute_streak,
    derive_status,
    duration_minutes,
    ensure_aware_utc,
    total_pages,
)

RANKED = [
    Mood.ANGRY, Mood.SAD, Mood.ANXIOUS, Mood.STRESSED, Mood.TIRED,
    Mood.NEUTRAL, Mood.CALM, Mood.HAPPY, Mood.EXCITED,
]


def make_session(**overrides):
    fields = dict(
        completed=True,
        duration=600,
        focus_score=None,
        mood_improvement=0,
        environment_noise_level="moderate",
        interruptions=0,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestMoodImprovement:

    @pytest.mark.parametrize("before_index", range(9))
    @pytest.mark.parametrize("after_index", range(9))
    def test_full_table(self, before_index, after_index):
        """Every before/after pair follows the rank-difference rule."""
        diff = after_index - before_index
        if diff > 2:
            expected = 2
        elif diff > 0:
            expected = 1
        elif diff < 0:
            expected = -1
        else:
            expected = 0

        assert compute_mood_improvement(RANKED[before_index], RANKED[after_index]) == expected

    def test_examples(self):
        assert compute_mood_improvement("stressed", "calm") == 2
        assert compute_mood_improvement("calm", "happy") == 1
        assert compute_mood_improvement("happy", "sad") == -1
        assert compute_mood_improvement("neutral", "neutral") == 0
        # Exactly two steps up is "better", not "much better"
        assert compute_mood_improvement("tired", "calm") == 1

    def test_unknown_mood_rejected(self):
        with pytest.raises(ValueError):
            compute_mood_improvement("elated", "calm")


class TestDurationMinutes:

    @pytest.mark.parametrize(
        "seconds, minutes",
        [(60, 1), (89, 1), (90, 2), (870, 15), (899, 15), (1830, 31), (7200, 120)],
    )
    def test_rounds_half_up(self, seconds, minutes):
        assert duration_minutes(seconds) == minutes


class TestDeriveStatus:

    def setup_method(self):
        self.start = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)

    def test_completed(self):
        assert derive_status(True, self.start, 600, now=self.start) == "completed"

    def test_in_progress_inside_window(self):
        now = self.start + timedelta(seconds=599)
        assert derive_status(False, self.start, 600, now=now) == "in-progress"

    def test_overdue_after_window(self):
        now = self.start + timedelta(seconds=600)
        assert derive_status(False, self.start, 600, now=now) == "overdue"

    def test_naive_start_time_treated_as_utc(self):
        naive = self.start.replace(tzinfo=None)
        now = self.start + timedelta(seconds=10)
        assert derive_status(False, naive, 600, now=now) == "in-progress"


class TestEnsureAwareUtc:

    def test_none_passes_through(self):
        assert ensure_aware_utc(None) is None

    def test_converts_other_zones(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        value = datetime(2026, 3, 1, 5, 30, tzinfo=ist)
        assert ensure_aware_utc(value) == datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc)
        assert ensure_aware_utc(value).tzinfo == timezone.utc


class TestEffectiveness:

    def test_not_completed_has_no_score(self):
        assert calculate_effectiveness(make_session(completed=False)) is None

    def test_base_score(self):
        assert calculate_effectiveness(make_session()) == 50

    def test_everything_good_is_clamped_to_100(self):
        """50 + 20 + 15 + 15 + 10 = 110 → 100."""
        session = make_session(
            duration=900,
            focus_score=8,
            mood_improvement=2,
            environment_noise_level="quiet",
        )
        assert calculate_effectiveness(session) == 100

    def test_interruptions_reduce_after_clamp_headroom(self):
        session = make_session(
            duration=900,
            focus_score=8,
            mood_improvement=2,
            environment_noise_level="silent",
            interruptions=4,
        )
        # 110 - 20 = 90
        assert calculate_effectiveness(session) == 90

    def test_mid_focus_and_small_improvement(self):
        session = make_session(duration=1800, focus_score=5, mood_improvement=1)
        # 50 + 20 + 10 + 10
        assert calculate_effectiveness(session) == 90

    def test_low_focus_adds_nothing(self):
        assert calculate_effectiveness(make_session(focus_score=4)) == 50

    def test_optimal_duration_uses_rounded_minutes(self):
        assert calculate_effectiveness(make_session(duration=870)) == 70
        assert calculate_effectiveness(make_session(duration=1830)) == 50

    @pytest.mark.parametrize("interruptions", range(1, 6))
    def test_each_interruption_costs_five(self, interruptions):
        fewer = calculate_effectiveness(make_session(interruptions=interruptions - 1))
        more = calculate_effectiveness(make_session(interruptions=interruptions))
        assert fewer - more == 5

    @pytest.mark.parametrize("low, high", [(1, 4), (5, 6), (7, 10), (4, 5), (6, 7)])
    def test_focus_never_lowers_score(self, low, high):
        assert calculate_effectiveness(make_session(focus_score=low)) <= calculate_effectiveness(
            make_session(focus_score=high)
        )

    def test_floor_is_zero(self):
        session = make_session(duration=60, mood_improvement=-1, interruptions=12)
        assert calculate_effectiveness(session) == 0


class TestComputeStreak:

    def setup_method(self):
        self.today = date(2026, 3, 10)

    def days_ago(self, *offsets):
        return [self.today - timedelta(days=n) for n in offsets]

    def test_three_consecutive_days(self):
        assert compute_streak(self.days_ago(0, 1, 2), self.today) == 3

    def test_multiple_sessions_on_one_day_count_once(self):
        assert compute_streak(self.days_ago(0, 0, 1, 1), self.today) == 2

    def test_gap_stops_the_walk(self):
        assert compute_streak(self.days_ago(0, 2, 3), self.today) == 1

    def test_nothing_today_is_zero(self):
        assert compute_streak(self.days_ago(1, 2, 3), self.today) == 0

    def test_empty(self):
        assert compute_streak([], self.today) == 0


class TestTotalPages:

    @pytest.mark.parametrize(
        "total, limit, pages",
        [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (25, 10, 3)],
    )
    def test_ceiling(self, total, limit, pages):
        assert total_pages(total, limit) == pages
