"""
Sentiment Scorer

Interface to the external free-text sentiment scorer plus a
VADER-backed implementation. The classifier treats the scorer as a
black box returning polarity and intensity.

Scorer failures surface as UpstreamUnavailable so the caller can fall
back to keyword-only classification.
"""

from abc import ABC, abstractmethod

from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

from mindshift.config.logging_config import get_logger
from mindshift.domain.exceptions import UpstreamUnavailable
from mindshift.domain.models.session import SentimentReading

logger = get_logger(__name__)


class SentimentScorer(ABC):
    """Returns a SentimentReading for a raw message."""

    name: str = "sentiment_scorer"

    @abstractmethod
    async def score(self, text: str) -> SentimentReading:
        """
        Score a raw message.

        Raises:
            UpstreamUnavailable: If the scorer cannot produce a reading
        """


class VaderSentimentScorer(SentimentScorer):
    """
    Lexicon-based scorer using VADER.

    score is VADER's compound polarity; intensity is its magnitude.
    """

    name = "vader"

    def __init__(self) -> None:
        self._analyzer = SentimentIntensityAnalyzer()

    async def score(self, text: str) -> SentimentReading:
        if not text or not text.strip():
            return SentimentReading(score=0.0, intensity=0.0)

        try:
            scores = self._analyzer.polarity_scores(text)
        except Exception as e:
            logger.warning("Sentiment scoring failed", scorer=self.name, error=str(e))
            raise UpstreamUnavailable(self.name, str(e)) from e

        compound = max(-1.0, min(1.0, float(scores["compound"])))
        return SentimentReading(score=compound, intensity=abs(compound))
