"""
MindSync Backend — Emotion Classifier Interface
=================================================

What:  Abstract contract for turning a face image into an emotion label,
       plus the mock and fallback implementations the app ships with.
How:   Concrete classifiers inherit from EmotionClassifier and implement
       classify(). FallbackEmotionClassifier composes two of them.
Who:   EmotionService calls `emotion_classifier.classify()` for every
       check-in upload.

Implementations:
    - MockEmotionClassifier:     canned emotion/confidence pairs, seedable
    - FallbackEmotionClassifier: tries a primary provider, degrades to a
                                 secondary one when the primary fails

A real vision provider plugs in as the primary of a
FallbackEmotionClassifier; the app then keeps answering with mock
results while the provider is down.
"""

import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from mindsync.config import settings
from mindsync.exceptions import EmotionAnalysisError
from mindsync.models.enums import Emotion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmotionResult:
    """A classifier verdict: dominant emotion, confidence in [0, 1], producer."""
    emotion: Emotion
    confidence: float
    source: str


class EmotionClassifier(ABC):
    """
    Abstract interface for image → emotion classification.

    Contract:
        - classify() accepts raw image bytes (already validated as PNG/JPEG)
        - Returns an EmotionResult with confidence in [0, 1]
        - Every provider-specific failure is raised as EmotionAnalysisError
    """

    name: str = "classifier"

    @abstractmethod
    async def classify(self, image: bytes) -> EmotionResult:
        """
        Classify the dominant emotion in a face image.

        Raises:
            EmotionAnalysisError: The provider could not produce a verdict
        """
        ...


class MockEmotionClassifier(EmotionClassifier):
    """
    Returns one of a fixed set of emotion/confidence pairs at random.

    The random generator is injectable (or seeded through
    EMOTION_MOCK_SEED), so tests get deterministic answers.
    """

    name = "mock"

    RESULTS: Sequence[Tuple[Emotion, float]] = (
        (Emotion.HAPPY, 0.85),
        (Emotion.CALM, 0.78),
        (Emotion.FOCUSED, 0.74),
        (Emotion.SURPRISE, 0.72),
        (Emotion.NEUTRAL, 0.65),
        (Emotion.TIRED, 0.61),
        (Emotion.SAD, 0.58),
        (Emotion.STRESSED, 0.52),
        (Emotion.ANGRY, 0.45),
    )

    def __init__(self, rng: Optional[random.Random] = None, seed: Optional[int] = None):
        self.rng = rng or random.Random(seed)

    async def classify(self, image: bytes) -> EmotionResult:
        emotion, confidence = self.rng.choice(self.RESULTS)
        return EmotionResult(emotion=emotion, confidence=confidence, source=self.name)


class FallbackEmotionClassifier(EmotionClassifier):
    """
    Uses the primary classifier; on EmotionAnalysisError, the fallback.

    With no primary configured, every call goes straight to the fallback.
    Errors from the fallback itself propagate (→ 503).
    """

    def __init__(
        self,
        fallback: EmotionClassifier,
        primary: Optional[EmotionClassifier] = None,
    ):
        self.primary = primary
        self.fallback = fallback

    @property
    def name(self) -> str:
        return self.primary.name if self.primary else self.fallback.name

    async def classify(self, image: bytes) -> EmotionResult:
        if self.primary is None:
            return await self.fallback.classify(image)

        try:
            return await self.primary.classify(image)
        except EmotionAnalysisError as e:
            logger.warning(
                "Emotion classifier '%s' failed (%s); using '%s' instead",
                self.primary.name,
                e.message,
                self.fallback.name,
            )
            return await self.fallback.classify(image)


# ── Singleton Instance ────────────────────────────────────────────────────
# No vision provider is wired in; the mock answers every check-in
emotion_classifier: EmotionClassifier = FallbackEmotionClassifier(
    fallback=MockEmotionClassifier(seed=settings.emotion_mock_seed),
)
