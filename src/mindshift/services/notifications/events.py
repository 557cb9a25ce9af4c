"""
Notification Events

Event model broadcast through the Notification Fan-out to monitors,
responders and session clients.

PRIVACY: Payloads never carry raw user messages.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Optional
from uuid import UUID, uuid4

from mindshift.domain.models.session import utcnow


class EventType(StrEnum):
    """Fan-out event types."""

    SESSION_JOINED = "session_joined"
    SESSION_ENDED = "session_ended"
    NEW_MESSAGE = "new_message"
    EMOTION_UPDATE = "emotion_update"
    CONCERNING_PATTERN = "concerning_pattern"

    CRISIS_ALERT_OPENED = "crisis_alert_opened"
    CRISIS_ALERT_UPDATED = "crisis_alert_updated"
    CRISIS_ALERT_RESOLVED = "crisis_alert_resolved"
    CRISIS_ALERT_ESCALATED = "crisis_alert_escalated"

    HANDOFF_REQUESTED = "handoff_requested"
    HANDOFF_ASSIGNED = "handoff_assigned"
    HANDOFF_QUEUED = "handoff_queued"
    HANDOFF_EXPIRED = "handoff_expired"
    HANDOFF_CANCELLED = "handoff_cancelled"


@dataclass(frozen=True)
class NotificationEvent:
    """
    One fan-out event.

    Attributes:
        event_type: What happened
        session_id: Session the event concerns, if any
        specialty: Specialty bucket the event concerns, if any
        severity: Risk level 0-5 the event carries, if any
        payload: JSON-serializable details
        target_subscriber_id: Deliver only to this subscriber when set
    """

    event_type: EventType
    session_id: Optional[str] = None
    specialty: Optional[str] = None
    severity: Optional[int] = None
    payload: dict[str, Any] = field(default_factory=dict)
    target_subscriber_id: Optional[str] = None
    event_id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type.value,
            "session_id": self.session_id,
            "specialty": self.specialty,
            "severity": self.severity,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class SubscriptionFilter:
    """
    Which events a subscriber wants. An empty set means "any".

    Events without a specialty match every specialty filter, so
    responders subscribed to one specialty still receive broadcasts
    such as crisis alerts. A min_severity filter only passes events that
    carry a severity at or above it.
    """

    event_types: frozenset[EventType] = frozenset()
    session_ids: frozenset[str] = frozenset()
    specialties: frozenset[str] = frozenset()
    min_severity: Optional[int] = None

    def matches(self, event: NotificationEvent) -> bool:
        if self.event_types and event.event_type not in self.event_types:
            return False
        if self.session_ids and event.session_id not in self.session_ids:
            return False
        if self.specialties and event.specialty is not None and event.specialty not in self.specialties:
            return False
        if self.min_severity is not None and (event.severity is None or event.severity < self.min_severity):
            return False
        return True
