"""
Emotion Detector

Keyword-based emotion detection for a single message. Results are
stored on the Turn and appended to the session's emotional trajectory.

CLINICAL_VALIDATION_REQUIRED: Emotion keyword lists need clinical
validation.
"""

from mindshift.domain.models.session import DetectedEmotion
from mindshift.services.classification.keyword_matching import (
    compile_keyword,
    normalize_message,
)

# CLINICAL_VALIDATION_REQUIRED
EMOTION_PATTERNS: dict[str, tuple[str, ...]] = {
    "anxiety": ("anxious", "worried", "panic", "nervous"),
    "depression": ("sad", "depressed", "hopeless", "worthless"),
    "anger": ("angry", "mad", "furious", "irritated"),
    "fear": ("scared", "afraid", "terrified", "panic"),
}

NEGATIVE_EMOTIONS = frozenset(EMOTION_PATTERNS)


class EmotionDetector:
    """
    Detects emotions by keyword.

    Intensity is the share of an emotion's patterns found in the
    message, so one hit out of four patterns yields 0.25.

    Usage:
        detector = EmotionDetector()
        emotions = detector.detect("I'm so worried and scared")
    """

    def __init__(self, patterns: dict[str, tuple[str, ...]] | None = None) -> None:
        self._patterns = {
            emotion: [compile_keyword(k) for k in keywords]
            for emotion, keywords in (patterns or EMOTION_PATTERNS).items()
        }

    def detect(self, text: str) -> tuple[DetectedEmotion, ...]:
        normalized = normalize_message(text)
        if not normalized:
            return ()

        detected = []
        for emotion, patterns in self._patterns.items():
            hits = sum(1 for pattern in patterns if pattern.search(normalized))
            if hits:
                detected.append(
                    DetectedEmotion(emotion=emotion, intensity=hits / len(patterns))
                )
        return tuple(detected)
