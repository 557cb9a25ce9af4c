"""
Lifecycle Enumerations

States for crisis alerts and handoff requests, handoff urgency,
and responder availability as reported by the external directory.
"""

from enum import IntEnum, StrEnum


class AlertStatus(StrEnum):
    """
    CrisisAlert lifecycle.

    ACTIVE is the only non-terminal state. An alert leaves ACTIVE
    exactly once and is never reopened.
    """

    ACTIVE = "active"
    """Responders notified, countdown running."""

    RESOLVED = "resolved"
    """A responder acknowledged or the user stood down. Terminal."""

    ESCALATED = "escalated"
    """
    Countdown elapsed without acknowledgement. Terminal.

    SAFETY_NOTE: Emergency fallback has been dispatched.
    """

    @property
    def is_terminal(self) -> bool:
        return self is not AlertStatus.ACTIVE


class HandoffStatus(StrEnum):
    """HandoffRequest lifecycle."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    QUEUED = "queued"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class HandoffUrgency(StrEnum):
    """Urgency of a handoff request. HIGH jumps ahead of NORMAL and LOW."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"

    @property
    def tier(self) -> "QueueTier":
        return QueueTier.PRIORITY if self is HandoffUrgency.HIGH else QueueTier.STANDARD


class QueueTier(IntEnum):
    """Two-tier FIFO ordering inside a specialty bucket (lower is served first)."""

    PRIORITY = 0
    STANDARD = 1


class ResponderAvailability(StrEnum):
    """Availability as reported by the responder directory."""

    IMMEDIATE = "immediate"
    BUSY = "busy"
    OFFLINE = "offline"
