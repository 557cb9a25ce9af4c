"""Message classification package."""

from mindshift.services.classification.message_classifier import (
    SENTIMENT_UNAVAILABLE,
    ClassificationResult,
    MessageClassifier,
    ProtocolMatch,
)
from mindshift.services.classification.sentiment import (
    SentimentScorer,
    VaderSentimentScorer,
)
from mindshift.services.classification.emotion_detector import (
    NEGATIVE_EMOTIONS,
    EmotionDetector,
)

__all__ = [
    "MessageClassifier",
    "ClassificationResult",
    "ProtocolMatch",
    "SENTIMENT_UNAVAILABLE",
    "SentimentScorer",
    "VaderSentimentScorer",
    "EmotionDetector",
    "NEGATIVE_EMOTIONS",
]
