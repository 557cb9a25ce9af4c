"""
Crisis Alert Database Model

Archive row for a crisis alert that reached a terminal state.
Written once on resolution or escalation, updated if a late
acknowledgement arrives afterwards.

PRIVACY: The raw source message is not archived.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, DateTime, Integer, String, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from mindshift.domain.models.crisis_alert import CrisisAlert
from mindshift.infrastructure.database.connection import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class CrisisAlertModel(Base):
    """
    Crisis alert archive table.

    Table: crisis_alerts
    """

    __tablename__ = "crisis_alerts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, doc="Alert identifier")
    session_id: Mapped[str] = mapped_column(String(128), index=True, doc="Session identifier")
    user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    severity: Mapped[int] = mapped_column(Integer, doc="Max severity over merged turns (1-5)")
    indicators: Mapped[list] = mapped_column(JSONType, default=list, doc="Matched evidence")
    status: Mapped[str] = mapped_column(String(20), index=True, doc="resolved or escalated")
    resolution_reason: Mapped[Optional[str]] = mapped_column(
        String(32), nullable=True, doc="acknowledged, user_safe or timeout"
    )
    acknowledged_by: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    handoff_request_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    late_acknowledgements: Mapped[list] = mapped_column(JSONType, default=list)

    opened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    deadline_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    archived_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    @classmethod
    def from_domain(cls, alert: CrisisAlert) -> "CrisisAlertModel":
        record = alert.to_dict()
        return cls(
            id=alert.alert_id,
            session_id=alert.session_id,
            user_id=alert.user_id,
            severity=alert.severity,
            indicators=list(alert.indicators),
            status=alert.status.value,
            resolution_reason=alert.resolution_reason,
            acknowledged_by=alert.acknowledged_by,
            handoff_request_id=alert.handoff_request_id,
            late_acknowledgements=record["late_acknowledgements"],
            opened_at=alert.opened_at,
            deadline_at=alert.deadline_at,
            acknowledged_at=alert.acknowledged_at,
            closed_at=alert.closed_at,
        )

    def __repr__(self) -> str:
        return f"<CrisisAlertModel(id={self.id}, status={self.status})>"
