"""
Handoff Request Database Model

Archive row for a handoff request that expired, was cancelled, or was
assigned in a session that has since ended.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from mindshift.domain.models.handoff import HandoffRequest
from mindshift.infrastructure.database.connection import Base
from mindshift.infrastructure.database.models.crisis_alert_model import JSONType


class HandoffRequestModel(Base):
    """
    Handoff request archive table.

    Table: handoff_requests
    """

    __tablename__ = "handoff_requests"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, doc="Request identifier")
    session_id: Mapped[str] = mapped_column(String(128), index=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    reason: Mapped[str] = mapped_column(Text, default="")
    urgency: Mapped[str] = mapped_column(String(10), doc="low, normal or high")
    preferred_specialty: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    language: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    alert_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(20), index=True)
    assigned_responder_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    estimated_wait_minutes: Mapped[int] = mapped_column(Integer, default=0)
    warnings: Mapped[list] = mapped_column(JSONType, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    archived_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    @classmethod
    def from_domain(cls, request: HandoffRequest) -> "HandoffRequestModel":
        return cls(
            id=request.request_id,
            session_id=request.session_id,
            user_id=request.user_id,
            reason=request.reason,
            urgency=request.urgency.value,
            preferred_specialty=request.preferred_specialty,
            language=request.language,
            alert_id=request.alert_id,
            status=request.status.value,
            assigned_responder_id=request.assigned_responder_id,
            estimated_wait_minutes=request.estimated_wait_minutes,
            warnings=list(request.warnings),
            created_at=request.created_at,
            assigned_at=request.assigned_at,
            closed_at=request.closed_at,
        )

    def __repr__(self) -> str:
        return f"<HandoffRequestModel(id={self.id}, status={self.status})>"
