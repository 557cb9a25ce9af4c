"""
Protocol Category and Severity Enumerations

Clinical classification of therapeutic response protocols and the
integer severity scale shared by protocols, turns and crisis alerts.

CLINICAL_REVIEW_REQUIRED: Severity definitions and the crisis
threshold should be validated by mental health professionals before
production deployment.
"""

from enum import IntEnum, StrEnum


class ProtocolCategory(StrEnum):
    """Clinical category of a response protocol."""

    CRISIS = "crisis"
    ANXIETY = "anxiety"
    DEPRESSION = "depression"
    ANGER = "anger"
    SLEEP = "sleep"
    COGNITION = "cognition"
    STRESS = "stress"
    RELATIONSHIPS = "relationships"
    POSITIVE = "positive"


class RiskLevel(IntEnum):
    """
    Risk scale used for protocol severity, turn risk scores and
    the session's current risk level.

    Protocol severity uses 1-5; risk scores may also be NONE (0)
    when nothing matched and sentiment is neutral.
    """

    NONE = 0
    """No risk indicators."""

    MILD = 1
    """Mild distress, routine supportive response."""

    MODERATE = 2
    """Noticeable distress, coping technique offered."""

    ELEVATED = 3
    """Significant distress, enhanced monitoring."""

    HIGH = 4
    """
    High risk. Meets the default escalation threshold.

    SAFETY_NOTE: A turn at this level opens a CrisisAlert.
    """

    ACUTE = 5
    """
    Acute crisis (suicidal ideation, self-harm).

    SAFETY_NOTE: Responders are notified immediately and the
    emergency fallback is armed.
    """

    @classmethod
    def clamp(cls, value: int) -> "RiskLevel":
        """Clamp an arbitrary integer onto the 0-5 scale."""
        return cls(max(cls.NONE, min(cls.ACUTE, int(value))))
