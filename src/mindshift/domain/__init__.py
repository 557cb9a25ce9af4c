"""
MindShift Domain Layer

Core entities and value objects for the triage core.
These models carry the domain logic independent of infrastructure.
"""

from mindshift.domain.models.protocol import Protocol
from mindshift.domain.models.session import Session, SessionSnapshot, Turn
from mindshift.domain.models.crisis_alert import CrisisAlert
from mindshift.domain.models.handoff import HandoffCriteria, HandoffRequest, Responder
from mindshift.domain.enums.protocol_category import ProtocolCategory, RiskLevel
from mindshift.domain.enums.lifecycle import AlertStatus, HandoffStatus, HandoffUrgency

__all__ = [
    "Protocol",
    "Session",
    "SessionSnapshot",
    "Turn",
    "CrisisAlert",
    "HandoffCriteria",
    "HandoffRequest",
    "Responder",
    "ProtocolCategory",
    "RiskLevel",
    "AlertStatus",
    "HandoffStatus",
    "HandoffUrgency",
]
