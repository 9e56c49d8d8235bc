"""
MindSync Backend — Closed Enumerations
========================================

What:  The fixed value sets used by sessions, moods and emotion readings.
How:   `str` enums, so members compare equal to the plain strings stored in
       VARCHAR columns and serialize to JSON without conversion.

Columns store the plain string values, so adding a member needs no
migration. Extend only by explicit product decision.
"""

from enum import Enum
from typing import Dict


class SessionType(str, Enum):
    QUICK_CALM = "quick-calm"
    DEEP_FOCUS = "deep-focus"
    SLEEP_PREPARATION = "sleep-preparation"
    ANXIETY_RELIEF = "anxiety-relief"
    ENERGY_BOOST = "energy-boost"
    MINDFUL_BREATHING = "mindful-breathing"
    BODY_SCAN = "body-scan"
    LOVING_KINDNESS = "loving-kindness"


class Mood(str, Enum):
    EXCITED = "excited"
    HAPPY = "happy"
    CALM = "calm"
    NEUTRAL = "neutral"
    TIRED = "tired"
    STRESSED = "stressed"
    ANXIOUS = "anxious"
    SAD = "sad"
    ANGRY = "angry"


class Intensity(str, Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    INTENSE = "intense"


class Location(str, Enum):
    HOME = "home"
    OFFICE = "office"
    NATURE = "nature"
    COMMUTE = "commute"
    OTHER = "other"


class NoiseLevel(str, Enum):
    SILENT = "silent"
    QUIET = "quiet"
    MODERATE = "moderate"
    NOISY = "noisy"


class Lighting(str, Enum):
    DARK = "dark"
    DIM = "dim"
    NORMAL = "normal"
    BRIGHT = "bright"


class Emotion(str, Enum):
    HAPPY = "happy"
    CALM = "calm"
    FOCUSED = "focused"
    TIRED = "tired"
    STRESSED = "stressed"
    ANGRY = "angry"
    SAD = "sad"
    NEUTRAL = "neutral"
    SURPRISE = "surprise"


# Ordinal scale for mood comparison (higher = better)
MOOD_RANKS: Dict[Mood, int] = {
    Mood.ANGRY: 1,
    Mood.SAD: 2,
    Mood.ANXIOUS: 3,
    Mood.STRESSED: 4,
    Mood.TIRED: 5,
    Mood.NEUTRAL: 6,
    Mood.CALM: 7,
    Mood.HAPPY: 8,
    Mood.EXCITED: 9,
}

# Emotion labels from the classifier → mood values the session engine accepts
EMOTION_TO_MOOD: Dict[Emotion, Mood] = {
    Emotion.HAPPY: Mood.HAPPY,
    Emotion.CALM: Mood.CALM,
    Emotion.FOCUSED: Mood.CALM,
    Emotion.TIRED: Mood.TIRED,
    Emotion.STRESSED: Mood.STRESSED,
    Emotion.ANGRY: Mood.ANGRY,
    Emotion.SAD: Mood.SAD,
    Emotion.NEUTRAL: Mood.NEUTRAL,
    Emotion.SURPRISE: Mood.EXCITED,
}
