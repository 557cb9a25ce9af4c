"""
Session Archive Database Model

Summary of a completed or expired session. No message content.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from mindshift.domain.models.session import Session
from mindshift.infrastructure.database.connection import Base
from mindshift.infrastructure.database.models.crisis_alert_model import JSONType


class SessionArchiveModel(Base):
    """
    Session archive table.

    Table: session_archives
    """

    __tablename__ = "session_archives"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    session_id: Mapped[str] = mapped_column(String(128), index=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    turn_count: Mapped[int] = mapped_column(Integer, default=0)
    max_risk_score: Mapped[int] = mapped_column(Integer, default=0)
    technique_usage: Mapped[dict] = mapped_column(JSONType, default=dict)
    crisis_mode: Mapped[bool] = mapped_column(Boolean, default=False)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    archived_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    @classmethod
    def from_domain(cls, session: Session) -> "SessionArchiveModel":
        record = session.to_archive_record()
        return cls(
            id=uuid4(),
            session_id=session.session_id,
            user_id=session.user_id,
            turn_count=record["turn_count"],
            max_risk_score=record["max_risk_score"],
            technique_usage=record["technique_usage"],
            crisis_mode=session.crisis_mode,
            started_at=session.started_at,
            ended_at=session.ended_at,
        )

    def __repr__(self) -> str:
        return f"<SessionArchiveModel(session_id={self.session_id}, turns={self.turn_count})>"
