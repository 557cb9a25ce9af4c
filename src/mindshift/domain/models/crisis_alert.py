"""
Crisis Alert Domain Model

A CrisisAlert is opened when a turn matches a crisis protocol or its
risk score crosses the escalation threshold. It leaves ACTIVE exactly
once, either to RESOLVED (responder acknowledged, user stood down) or
to ESCALATED (countdown elapsed, emergency fallback dispatched).

SAFETY-CRITICAL: All status changes go through transition_from_active,
a compare-and-set guarded by the alert's own lock. Acknowledgement and
timer expiry race on the same alert; the first commit wins and the
loser becomes a no-op.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from mindshift.domain.enums.lifecycle import AlertStatus


@dataclass(frozen=True)
class LateAcknowledgement:
    """Acknowledgement received after the alert already escalated."""

    responder_id: str
    received_at: datetime


@dataclass
class CrisisAlert:
    """
    Active or closed crisis alert for one session.

    Attributes:
        alert_id: Unique alert identifier
        session_id: Session the alert belongs to
        user_id: Opaque user id, None for anonymous users
        severity: 1-5, max over every merged turn
        source_message: Message that opened the alert
        indicators: Matched keyword/category evidence, in arrival order
        opened_at: When the alert entered ACTIVE
        deadline_at: When the countdown expires
        status: ACTIVE, RESOLVED or ESCALATED
        acknowledged_by: Responder that resolved the alert
        acknowledged_at: When that acknowledgement committed
        closed_at: When the alert left ACTIVE
        resolution_reason: acknowledged, user_safe or timeout
    """

    session_id: str
    severity: int
    source_message: str
    opened_at: datetime
    deadline_at: datetime
    user_id: Optional[str] = None
    indicators: list[str] = field(default_factory=list)
    alert_id: UUID = field(default_factory=uuid4)
    status: AlertStatus = AlertStatus.ACTIVE
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    resolution_reason: Optional[str] = None
    handoff_request_id: Optional[UUID] = None
    late_acknowledgements: list[LateAcknowledgement] = field(default_factory=list)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    @property
    def is_active(self) -> bool:
        return self.status is AlertStatus.ACTIVE

    def transition_from_active(
        self,
        target: AlertStatus,
        at: datetime,
        reason: str,
        responder_id: Optional[str] = None,
    ) -> bool:
        """
        Move the alert out of ACTIVE if and only if it is still ACTIVE.

        Args:
            target: RESOLVED or ESCALATED
            at: Commit timestamp
            reason: Resolution reason recorded on the alert
            responder_id: Acknowledging responder, if any

        Returns:
            True if this call committed the transition
        """
        if target is AlertStatus.ACTIVE:
            raise ValueError("Alerts are never reopened")

        with self._lock:
            if self.status is not AlertStatus.ACTIVE:
                return False
            self.status = target
            self.closed_at = at
            self.resolution_reason = reason
            if responder_id is not None:
                self.acknowledged_by = responder_id
                self.acknowledged_at = at
            return True

    def merge(self, severity: int, indicators: list[str]) -> bool:
        """
        Fold a new high-risk turn into this alert.

        Severity takes the max; new indicators are appended once.
        The deadline is left unchanged.

        Returns:
            False if the alert is no longer ACTIVE
        """
        with self._lock:
            if self.status is not AlertStatus.ACTIVE:
                return False
            self.severity = max(self.severity, severity)
            for indicator in indicators:
                if indicator not in self.indicators:
                    self.indicators.append(indicator)
            return True

    def record_late_acknowledgement(self, responder_id: str, at: datetime) -> None:
        with self._lock:
            self.late_acknowledgements.append(LateAcknowledgement(responder_id, at))

    def to_dict(self) -> dict:
        return {
            "alert_id": str(self.alert_id),
            "session_id": self.session_id,
            "user_id": self.user_id,
            "severity": self.severity,
            "indicators": list(self.indicators),
            "opened_at": self.opened_at.isoformat(),
            "deadline_at": self.deadline_at.isoformat(),
            "status": self.status.value,
            "acknowledged_by": self.acknowledged_by,
            "acknowledged_at": (
                self.acknowledged_at.isoformat() if self.acknowledged_at else None
            ),
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
            "resolution_reason": self.resolution_reason,
            "handoff_request_id": (
                str(self.handoff_request_id) if self.handoff_request_id else None
            ),
            "late_acknowledgements": [
                {"responder_id": ack.responder_id, "received_at": ack.received_at.isoformat()}
                for ack in self.late_acknowledgements
            ],
        }
