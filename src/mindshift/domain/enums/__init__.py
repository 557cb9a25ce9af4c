"""Domain enums package."""

from mindshift.domain.enums.protocol_category import ProtocolCategory, RiskLevel
from mindshift.domain.enums.lifecycle import (
    AlertStatus,
    HandoffStatus,
    HandoffUrgency,
    QueueTier,
    ResponderAvailability,
)

__all__ = [
    "ProtocolCategory",
    "RiskLevel",
    "AlertStatus",
    "HandoffStatus",
    "HandoffUrgency",
    "QueueTier",
    "ResponderAvailability",
]
