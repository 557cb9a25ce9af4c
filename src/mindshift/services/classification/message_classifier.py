"""
Message Classifier

Matches one incoming message against the Protocol Catalog and derives
a risk score for the turn.

Ranking, in order:
1. Highest protocol severity
2. Highest keyword match count
3. Earlier catalog position

Severity ranks first so a crisis protocol always beats a low-severity
protocol, however many stray keywords the latter matches.

risk_score = max(protocol severity, sentiment risk). Sentiment alone
contributes at most RiskLevel.ELEVATED, which catches distressed
language that is not in the catalog verbatim.

SAFETY-CRITICAL: Classification is pure and deterministic. All session
mutation happens in the Session Store append step.

CLINICAL_REVIEW_REQUIRED: The combination rule and the sentiment
thresholds must be validated against clinical review.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from mindshift.config.logging_config import get_logger
from mindshift.config.settings import ClassifierSettings
from mindshift.domain.enums.protocol_category import RiskLevel
from mindshift.domain.models.protocol import Protocol
from mindshift.domain.models.session import SentimentReading, Session
from mindshift.services.catalog.protocol_catalog import ProtocolCatalog
from mindshift.services.classification.keyword_matching import (
    compile_keyword,
    normalize_message,
)

logger = get_logger(__name__)

SENTIMENT_UNAVAILABLE = "sentiment_unavailable"


@dataclass(frozen=True)
class ProtocolMatch:
    """One candidate protocol and the keywords that matched it."""

    protocol: Protocol
    matched_keywords: tuple[str, ...]
    catalog_index: int

    @property
    def match_count(self) -> int:
        return len(self.matched_keywords)

    @property
    def rank_key(self) -> tuple[int, int, int]:
        return (-self.protocol.severity, -self.match_count, self.catalog_index)


@dataclass(frozen=True)
class ClassificationResult:
    """
    Outcome of classifying one message.

    Attributes:
        protocol: Selected protocol, None when nothing matched
        risk_score: 0-5
        matched_keywords: Keywords of the selected protocol found in the message
        sentiment_risk: Risk contributed by sentiment alone (0-3)
        candidates: Every matching protocol id, best first
        warnings: Degradation flags (e.g. sentiment_unavailable)
    """

    protocol: Optional[Protocol]
    risk_score: int
    matched_keywords: tuple[str, ...] = ()
    sentiment_risk: int = 0
    candidates: tuple[str, ...] = ()
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def protocol_id(self) -> Optional[str]:
        return self.protocol.id if self.protocol else None

    @property
    def is_crisis(self) -> bool:
        return bool(self.protocol and self.protocol.is_crisis)

    def indicators(self) -> list[str]:
        """Evidence recorded on a crisis alert."""
        evidence = [f"keyword:{keyword}" for keyword in self.matched_keywords]
        if self.protocol:
            evidence.append(f"category:{self.protocol.category.value}")
            evidence.append(f"protocol:{self.protocol.id}")
        if self.sentiment_risk:
            evidence.append(f"sentiment_risk:{self.sentiment_risk}")
        return evidence

    def to_dict(self) -> dict:
        return {
            "protocol_id": self.protocol_id,
            "category": self.protocol.category.value if self.protocol else None,
            "technique": self.protocol.technique if self.protocol else None,
            "risk_score": self.risk_score,
            "matched_keywords": list(self.matched_keywords),
            "sentiment_risk": self.sentiment_risk,
            "candidates": list(self.candidates),
            "warnings": list(self.warnings),
        }


class MessageClassifier:
    """
    Keyword and sentiment classifier over a ProtocolCatalog.

    Usage:
        classifier = MessageClassifier(catalog)
        result = classifier.classify(session, "I can't sleep", sentiment)
    """

    def __init__(
        self,
        catalog: ProtocolCatalog,
        settings: Optional[ClassifierSettings] = None,
    ) -> None:
        self.catalog = catalog
        self.settings = settings or ClassifierSettings()
        self._index: list[tuple[Protocol, list[tuple[str, re.Pattern[str]]]]] = [
            (protocol, [(kw, compile_keyword(kw)) for kw in protocol.keywords])
            for protocol in catalog
        ]

    def classify(
        self,
        session: Optional[Session],
        raw_message: str,
        sentiment: Optional[SentimentReading],
    ) -> ClassificationResult:
        """
        Classify a message.

        Args:
            session: Read-only session view (not mutated)
            raw_message: Message as typed by the user
            sentiment: Scorer output, None if the scorer was unavailable

        Returns:
            ClassificationResult
        """
        warnings: tuple[str, ...] = ()
        if sentiment is None:
            warnings = (SENTIMENT_UNAVAILABLE,)

        normalized = normalize_message(raw_message)
        if not normalized:
            return ClassificationResult(protocol=None, risk_score=0, warnings=warnings)

        matches = self.match(normalized)
        sentiment_risk = int(self.risk_from_sentiment(sentiment))

        if not matches:
            return ClassificationResult(
                protocol=None,
                risk_score=sentiment_risk,
                sentiment_risk=sentiment_risk,
                warnings=warnings,
            )

        best = matches[0]
        risk_score = max(best.protocol.severity, sentiment_risk)

        logger.debug(
            "Message classified",
            session_id=session.session_id if session else None,
            protocol_id=best.protocol.id,
            risk_score=risk_score,
            candidate_count=len(matches),
        )

        return ClassificationResult(
            protocol=best.protocol,
            risk_score=risk_score,
            matched_keywords=best.matched_keywords,
            sentiment_risk=sentiment_risk,
            candidates=tuple(m.protocol.id for m in matches),
            warnings=warnings,
        )

    def match(self, normalized: str) -> list[ProtocolMatch]:
        """All candidate protocols for a normalized message, best first."""
        matches = []
        for catalog_index, (protocol, patterns) in enumerate(self._index):
            hits = tuple(kw for kw, pattern in patterns if pattern.search(normalized))
            if hits:
                matches.append(ProtocolMatch(protocol, hits, catalog_index))
        matches.sort(key=lambda m: m.rank_key)
        return matches

    def risk_from_sentiment(self, sentiment: Optional[SentimentReading]) -> int:
        """
        Map sentiment onto the risk scale.

        Strongly negative and intense maps to ELEVATED, moderately
        negative to MODERATE, any negative polarity to MILD.
        """
        if sentiment is None:
            return RiskLevel.NONE

        s = self.settings
        if sentiment.score <= s.strong_negative_polarity and sentiment.intensity >= s.strong_intensity:
            return RiskLevel.ELEVATED
        if sentiment.score <= s.moderate_negative_polarity and sentiment.intensity >= s.moderate_intensity:
            return RiskLevel.MODERATE
        if sentiment.score <= s.mild_negative_polarity:
            return RiskLevel.MILD
        return RiskLevel.NONE
