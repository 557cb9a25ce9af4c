"""
Emotional Trajectory Analyzer

Looks for concerning patterns in the recent emotional trajectory of a
session. Used after live emotion updates from the client.

CLINICAL_VALIDATION_REQUIRED: Thresholds need clinical validation.
"""

from dataclasses import dataclass, field
from typing import Sequence

from mindshift.domain.models.session import EmotionEntry
from mindshift.services.classification.emotion_detector import NEGATIVE_EMOTIONS

MIN_ENTRIES = 5
RECENT_ENTRIES = 10
CONCERNING_AVERAGE_INTENSITY = 0.7
CONCERNING_NEGATIVE_COUNT = 7
TREND_MARGIN = 0.2

CONCERNING_RECOMMENDATIONS = (
    "Immediate therapist check-in",
    "Crisis resource provision",
    "Increased monitoring frequency",
)


@dataclass(frozen=True)
class EmotionPatternReport:
    """Result of analyzing the recent trajectory."""

    concerning: bool
    reason: str = ""
    average_intensity: float = 0.0
    negative_emotion_ratio: float = 0.0
    trend: str = "stable"
    recommendations: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "concerning": self.concerning,
            "reason": self.reason,
            "average_intensity": round(self.average_intensity, 3),
            "negative_emotion_ratio": round(self.negative_emotion_ratio, 3),
            "trend": self.trend,
            "recommendations": list(self.recommendations),
        }


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def calculate_trend(entries: Sequence[EmotionEntry]) -> str:
    """
    Compare the last 3 entries with the 3 before them.

    Returns:
        "worsening", "improving" or "stable"
    """
    if len(entries) < 3:
        return "stable"

    recent = _mean([e.intensity for e in entries[-3:]])
    earlier_entries = entries[-6:-3]
    if not earlier_entries:
        return "stable"
    earlier = _mean([e.intensity for e in earlier_entries])

    if recent > earlier + TREND_MARGIN:
        return "worsening"
    if recent < earlier - TREND_MARGIN:
        return "improving"
    return "stable"


def analyze_emotion_patterns(trajectory: Sequence[EmotionEntry]) -> EmotionPatternReport:
    """
    Analyze the last ten trajectory entries.

    A trajectory is concerning when the average intensity exceeds 0.7
    or more than seven entries carry a negative emotion. At least five
    entries are required.
    """
    entries = list(trajectory)
    if len(entries) < MIN_ENTRIES:
        return EmotionPatternReport(concerning=False, reason="insufficient_data")

    recent = entries[-RECENT_ENTRIES:]
    average = _mean([e.intensity for e in recent])
    negative = sum(1 for e in recent if e.emotion in NEGATIVE_EMOTIONS)

    concerning = average > CONCERNING_AVERAGE_INTENSITY or negative > CONCERNING_NEGATIVE_COUNT
    reason = ""
    if average > CONCERNING_AVERAGE_INTENSITY:
        reason = "high_average_intensity"
    elif negative > CONCERNING_NEGATIVE_COUNT:
        reason = "persistent_negative_emotion"

    return EmotionPatternReport(
        concerning=concerning,
        reason=reason,
        average_intensity=average,
        negative_emotion_ratio=negative / len(recent),
        trend=calculate_trend(recent),
        recommendations=CONCERNING_RECOMMENDATIONS if concerning else (),
    )
