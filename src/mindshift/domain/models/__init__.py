"""Domain models package."""

from mindshift.domain.models.protocol import Protocol
from mindshift.domain.models.session import (
    DetectedEmotion,
    EmotionEntry,
    SentimentReading,
    Session,
    SessionSnapshot,
    Turn,
    compute_risk_level,
)
from mindshift.domain.models.crisis_alert import CrisisAlert, LateAcknowledgement
from mindshift.domain.models.handoff import HandoffCriteria, HandoffRequest, Responder

__all__ = [
    # Catalog
    "Protocol",
    # Session
    "Session",
    "SessionSnapshot",
    "Turn",
    "SentimentReading",
    "DetectedEmotion",
    "EmotionEntry",
    "compute_risk_level",
    # Crisis
    "CrisisAlert",
    "LateAcknowledgement",
    # Handoff
    "HandoffCriteria",
    "HandoffRequest",
    "Responder",
]
