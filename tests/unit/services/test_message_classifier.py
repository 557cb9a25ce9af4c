"""
Unit Tests for Message Classification

Tests protocol ranking, sentiment-derived risk, emotion detection and
the VADER scorer.

SAFETY_NOTE: These tests verify that crisis language always wins.
"""

import pytest

from mindshift.domain.models.session import SentimentReading
from mindshift.services.catalog.protocol_catalog import ProtocolCatalog
from mindshift.services.classification.emotion_detector import EmotionDetector
from mindshift.services.classification.keyword_matching import (
    compile_keyword,
    normalize_message,
)
from mindshift.services.classification.message_classifier import (
    SENTIMENT_UNAVAILABLE,
    MessageClassifier,
)
from mindshift.services.classification.sentiment import VaderSentimentScorer

NEUTRAL = SentimentReading(score=0.0, intensity=0.0)


@pytest.fixture
def classifier(catalog) -> MessageClassifier:
    return MessageClassifier(catalog)


class TestKeywordMatching:
    """Word-start phrase matching."""

    def test_normalizes_case_whitespace_and_apostrophes(self):
        assert normalize_message("  I  CAN’T\tSleep ") == "i can't sleep"

    def test_short_keyword_needs_word_boundary(self):
        pattern = compile_keyword("ex")

        assert pattern.search("talked to my ex today")
        assert not pattern.search("my exam is tomorrow")

    def test_keyword_must_start_a_word(self):
        pattern = compile_keyword("rage")

        assert pattern.search("pure rage")
        assert not pattern.search("about average")

    @pytest.mark.parametrize(
        "keyword,message",
        [
            ("panic", "i keep panicking"),
            ("hopeless", "i feel hopelessness"),
            ("self harm", "i have been self harming"),
        ],
    )
    def test_inflected_forms_match(self, keyword, message):
        assert compile_keyword(keyword).search(message)

    def test_phrase_tolerates_extra_whitespace(self):
        pattern = compile_keyword("kill myself")

        assert pattern.search(normalize_message("i want to kill    myself"))


class TestCrisisClassification:
    """Crisis protocols dominate every other signal."""

    def test_suicidal_statement_is_acute(self, classifier):
        result = classifier.classify(None, "I want to kill myself", NEUTRAL)

        assert result.protocol_id == "crisis_suicide_intervention"
        assert result.risk_score == 5
        assert result.is_crisis
        assert "kill myself" in result.matched_keywords

    def test_crisis_beats_higher_match_count(self, classifier):
        message = "I'm anxious, worried, nervous and scared and I want to die"

        result = classifier.classify(None, message, NEUTRAL)

        assert result.protocol_id == "crisis_suicide_intervention"
        assert result.candidates[0] == "crisis_suicide_intervention"
        assert "anxiety_general" in result.candidates

    def test_more_severe_protocol_sets_risk_over_crisis_flag(self):
        catalog = ProtocolCatalog.from_dict({
            "protocols": [
                {"id": "acute_panic", "category": "anxiety", "keywords": ["panic"], "severity": 5},
                {
                    "id": "hopeless",
                    "category": "crisis",
                    "keywords": ["no way out"],
                    "severity": 4,
                    "is_crisis": True,
                },
            ]
        })

        result = MessageClassifier(catalog).classify(None, "panic, no way out", NEUTRAL)

        assert result.protocol_id == "acute_panic"
        assert result.risk_score == 5
        assert result.candidates == ("acute_panic", "hopeless")

    @pytest.mark.parametrize(
        "message,protocol_id,risk",
        [
            ("I keep panicking", "panic_attack_acute", 4),
            ("I have been self harming", "crisis_self_harm", 5),
            ("I feel hopelessness", "depression_general", 3),
        ],
    )
    def test_inflected_distress_language_matches(self, classifier, message, protocol_id, risk):
        result = classifier.classify(None, message, NEUTRAL)

        assert result.protocol_id == protocol_id
        assert result.risk_score == risk

    def test_indicators_name_keyword_category_and_protocol(self, classifier):
        result = classifier.classify(None, "I keep cutting", NEUTRAL)

        indicators = result.indicators()

        assert "keyword:cutting" in indicators
        assert "category:crisis" in indicators
        assert "protocol:crisis_self_harm" in indicators


class TestProtocolRanking:
    """Severity, then match count, then catalog order."""

    def test_exam_anxiety_is_moderate(self, classifier):
        result = classifier.classify(None, "I'm so anxious about my exam", NEUTRAL)

        assert result.protocol_id == "anxiety_general"
        assert result.risk_score == 2
        assert "breakup_heartbreak" not in result.candidates

    def test_ex_matches_as_whole_word(self, classifier):
        result = classifier.classify(None, "I saw my ex at the party", NEUTRAL)

        assert result.protocol_id == "breakup_heartbreak"
        assert result.risk_score == 3

    def test_match_count_breaks_severity_tie(self, classifier):
        result = classifier.classify(None, "I always worry, it never stops", NEUTRAL)

        assert result.protocol_id == "all_or_nothing"
        assert result.matched_keywords == ("always", "never")

    def test_catalog_order_breaks_full_tie(self, classifier):
        result = classifier.classify(None, "always worried", NEUTRAL)

        assert result.candidates[:2] == ("anxiety_general", "all_or_nothing")
        assert result.protocol_id == "anxiety_general"

    def test_higher_severity_wins(self, classifier):
        result = classifier.classify(None, "I'm anxious and having a panic attack", NEUTRAL)

        assert result.protocol_id == "panic_attack_acute"
        assert result.risk_score == 4

    def test_classification_is_deterministic(self, classifier):
        first = classifier.classify(None, "I can't sleep and feel lonely", NEUTRAL)
        second = classifier.classify(None, "I can't sleep and feel lonely", NEUTRAL)

        assert first == second


class TestSentimentRisk:
    """Sentiment alone contributes at most risk 3."""

    @pytest.mark.parametrize(
        "score,intensity,expected",
        [
            (-0.8, 0.8, 3),
            (-0.8, 0.4, 2),
            (-0.4, 0.4, 2),
            (-0.1, 0.1, 1),
            (0.0, 0.0, 0),
            (0.7, 0.7, 0),
        ],
    )
    def test_unmatched_message_uses_sentiment(self, classifier, score, intensity, expected):
        result = classifier.classify(
            None,
            "the day went badly",
            SentimentReading(score=score, intensity=intensity),
        )

        assert result.protocol is None
        assert result.risk_score == expected
        assert result.sentiment_risk == expected

    def test_sentiment_can_raise_protocol_risk(self, classifier):
        result = classifier.classify(
            None,
            "I'm grateful but today was awful",
            SentimentReading(score=-0.9, intensity=0.9),
        )

        assert result.protocol_id == "gratitude_practice"
        assert result.risk_score == 3

    def test_missing_sentiment_degrades_to_keywords(self, classifier):
        result = classifier.classify(None, "I'm anxious", None)

        assert result.risk_score == 2
        assert result.warnings == (SENTIMENT_UNAVAILABLE,)

    @pytest.mark.parametrize("message", ["", "   ", "\n\t"])
    def test_empty_message_is_no_risk(self, classifier, message):
        result = classifier.classify(None, message, NEUTRAL)

        assert result.protocol is None
        assert result.risk_score == 0


class TestEmotionDetector:
    """Keyword emotion detection."""

    def test_intensity_is_share_of_patterns(self):
        emotions = EmotionDetector().detect("I'm worried and so scared")

        assert {e.emotion: e.intensity for e in emotions} == {"anxiety": 0.25, "fear": 0.25}

    def test_shared_keyword_counts_for_both(self):
        emotions = EmotionDetector().detect("panic")

        assert sorted(e.emotion for e in emotions) == ["anxiety", "fear"]

    def test_no_emotion(self):
        assert EmotionDetector().detect("lovely weather") == ()


class TestVaderSentimentScorer:
    """VADER-backed polarity and intensity."""

    async def test_negative_message(self):
        reading = await VaderSentimentScorer().score("I feel terrible and hopeless")

        assert reading.score < 0
        assert reading.intensity == abs(reading.score)

    async def test_blank_message_is_neutral(self):
        reading = await VaderSentimentScorer().score("   ")

        assert reading == SentimentReading(score=0.0, intensity=0.0)
