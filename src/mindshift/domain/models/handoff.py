"""
Handoff Domain Models

HandoffRequest tracks a request to transfer a session to a human
responder. Responder mirrors an entry of the external directory and is
consumed, never owned.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from mindshift.domain.enums.lifecycle import (
    HandoffStatus,
    HandoffUrgency,
    ResponderAvailability,
)


@dataclass(frozen=True)
class Responder:
    """Responder directory entry."""

    id: str
    specialties: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()
    availability: ResponderAvailability = ResponderAvailability.OFFLINE
    estimated_wait_minutes: int = 0
    name: str = ""

    def matches(self, specialty: Optional[str], language: Optional[str]) -> bool:
        if specialty is not None and specialty not in self.specialties:
            return False
        if language is not None and language not in self.languages:
            return False
        return True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "specialties": list(self.specialties),
            "languages": list(self.languages),
            "availability": self.availability.value,
            "estimated_wait_minutes": self.estimated_wait_minutes,
        }


@dataclass(frozen=True)
class HandoffCriteria:
    """
    Matching criteria supplied with a handoff request.

    Attributes:
        user_id: Opaque user id, None for anonymous users
        reason: Free-text reason shown to the responder
        urgency: HIGH requests jump ahead of NORMAL/LOW in the queue
        specialty: Preferred specialty, None for any
        language: Required language, None for any
        alert_id: Crisis alert that triggered the request, if any
    """

    user_id: Optional[str] = None
    reason: str = ""
    urgency: HandoffUrgency = HandoffUrgency.NORMAL
    specialty: Optional[str] = None
    language: Optional[str] = None
    alert_id: Optional[UUID] = None


@dataclass
class HandoffRequest:
    """A request to transfer a session to a human responder."""

    session_id: str
    created_at: datetime
    user_id: Optional[str] = None
    reason: str = ""
    urgency: HandoffUrgency = HandoffUrgency.NORMAL
    preferred_specialty: Optional[str] = None
    language: Optional[str] = None
    alert_id: Optional[UUID] = None
    request_id: UUID = field(default_factory=uuid4)
    status: HandoffStatus = HandoffStatus.PENDING
    assigned_responder_id: Optional[str] = None
    queue_position: Optional[int] = None
    estimated_wait_minutes: int = 0
    bucket: str = "general"
    assigned_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.status in (HandoffStatus.PENDING, HandoffStatus.QUEUED)

    def to_dict(self) -> dict:
        return {
            "request_id": str(self.request_id),
            "session_id": self.session_id,
            "user_id": self.user_id,
            "reason": self.reason,
            "urgency": self.urgency.value,
            "preferred_specialty": self.preferred_specialty,
            "language": self.language,
            "alert_id": str(self.alert_id) if self.alert_id else None,
            "status": self.status.value,
            "assigned_responder_id": self.assigned_responder_id,
            "queue_position": self.queue_position,
            "estimated_wait_minutes": self.estimated_wait_minutes,
            "created_at": self.created_at.isoformat(),
            "assigned_at": self.assigned_at.isoformat() if self.assigned_at else None,
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
            "warnings": list(self.warnings),
        }
