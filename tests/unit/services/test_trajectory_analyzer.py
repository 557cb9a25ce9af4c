"""Unit tests for emotional trajectory pattern analysis."""

from datetime import datetime, timezone

from mindshift.domain.models.session import EmotionEntry
from mindshift.services.session.trajectory_analyzer import (
    analyze_emotion_patterns,
    calculate_trend,
)

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _entries(*pairs) -> list[EmotionEntry]:
    return [EmotionEntry(emotion, intensity, NOW) for emotion, intensity in pairs]


class TestPatternAnalysis:

    def test_too_few_entries(self):
        report = analyze_emotion_patterns(_entries(("sad", 0.9)) * 4)

        assert not report.concerning
        assert report.reason == "insufficient_data"

    def test_high_average_intensity_is_concerning(self):
        report = analyze_emotion_patterns(_entries(*[("calm", 0.8)] * 5))

        assert report.concerning
        assert report.reason == "high_average_intensity"
        assert report.recommendations

    def test_persistent_negative_emotion_is_concerning(self):
        report = analyze_emotion_patterns(_entries(*[("depression", 0.3)] * 8))

        assert report.concerning
        assert report.reason == "persistent_negative_emotion"
        assert report.negative_emotion_ratio == 1.0

    def test_mild_mixed_trajectory_is_fine(self):
        report = analyze_emotion_patterns(
            _entries(("anxiety", 0.3), ("joy", 0.2), ("anger", 0.4), ("calm", 0.1), ("fear", 0.3))
        )

        assert not report.concerning
        assert report.recommendations == ()

    def test_only_last_ten_entries_count(self):
        entries = _entries(*[("calm", 1.0)] * 10) + _entries(*[("calm", 0.1)] * 10)

        report = analyze_emotion_patterns(entries)

        assert not report.concerning
        assert round(report.average_intensity, 3) == 0.1


class TestTrend:

    def test_worsening(self):
        entries = _entries(*[("sad", 0.1)] * 3, *[("sad", 0.8)] * 3)

        assert calculate_trend(entries) == "worsening"

    def test_improving(self):
        entries = _entries(*[("sad", 0.9)] * 3, *[("sad", 0.2)] * 3)

        assert calculate_trend(entries) == "improving"

    def test_short_history_is_stable(self):
        assert calculate_trend(_entries(("sad", 0.1), ("sad", 0.9), ("sad", 0.9))) == "stable"
