"""
Session Endpoints

Conversation turns, live emotion updates, client-raised crisis
alerts and the read-only session snapshot.

PRIVACY: Raw messages are never echoed into logs.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from mindshift.api.dependencies import get_triage_service
from mindshift.config.logging_config import get_logger
from mindshift.services.orchestration.triage_service import TriageService

logger = get_logger(__name__)
router = APIRouter()


# Request Models

class JoinSessionRequest(BaseModel):
    """Join (or create) a session."""

    user_id: Optional[str] = Field(default=None, description="Opaque authenticated user id")


class SendMessageRequest(BaseModel):
    """A user message for one turn."""

    message: str = Field(..., max_length=4000, description="User message")
    user_id: Optional[str] = Field(default=None, description="Opaque authenticated user id")

    class Config:
        json_schema_extra = {
            "example": {
                "message": "I feel a bit anxious about my exam",
                "user_id": None,
            }
        }


class EmotionUpdateRequest(BaseModel):
    """Live emotion reading from the client."""

    emotions: list[str] = Field(..., min_length=1, description="Emotion labels")
    intensity: float = Field(..., ge=0.0, le=1.0, description="Intensity 0-1")


class ReportCrisisRequest(BaseModel):
    """Client-raised crisis alert."""

    reason: str = Field(default="client_reported", max_length=200)
    severity: int = Field(default=5, ge=1, le=5)
    user_id: Optional[str] = None


# Endpoints

@router.post(
    "/{session_id}/join",
    status_code=status.HTTP_200_OK,
    summary="Join a session",
)
async def join_session(
    session_id: str,
    request: JoinSessionRequest,
    service: TriageService = Depends(get_triage_service),
) -> dict:
    snapshot = await service.join_session(session_id, request.user_id)
    return snapshot.to_dict()


@router.post(
    "/{session_id}/messages",
    summary="Classify a message and append it as a turn",
)
async def send_message(
    session_id: str,
    request: SendMessageRequest,
    service: TriageService = Depends(get_triage_service),
) -> dict:
    """
    Process one conversational turn.

    The response carries the supportive text, the classification, the
    session risk level and, while the session is in crisis mode, the
    crisis resources for the configured jurisdiction.
    """
    outcome = await service.handle_message(session_id, request.message, request.user_id)
    return outcome.to_dict()


@router.post(
    "/{session_id}/emotions",
    summary="Record a live emotion update",
)
async def update_emotion(
    session_id: str,
    request: EmotionUpdateRequest,
    service: TriageService = Depends(get_triage_service),
) -> dict:
    report = await service.update_emotion(session_id, request.emotions, request.intensity)
    return report.to_dict()


@router.post(
    "/{session_id}/crisis",
    status_code=status.HTTP_201_CREATED,
    summary="Raise a crisis alert from the client",
)
async def report_crisis(
    session_id: str,
    request: ReportCrisisRequest,
    service: TriageService = Depends(get_triage_service),
) -> dict:
    alert = await service.report_crisis(
        session_id,
        reason=request.reason,
        user_id=request.user_id,
        severity=request.severity,
    )
    return {
        "alert": alert.to_dict(),
        "crisis_resources": [r.to_dict() for r in service.crisis_resources()],
    }


@router.get(
    "/{session_id}",
    summary="Read-only session snapshot",
)
async def get_snapshot(
    session_id: str,
    service: TriageService = Depends(get_triage_service),
) -> dict:
    snapshot = await service.get_snapshot(session_id)
    return snapshot.to_dict()


@router.delete(
    "/{session_id}",
    summary="End a session",
)
async def end_session(
    session_id: str,
    service: TriageService = Depends(get_triage_service),
) -> dict:
    snapshot = await service.end_session(session_id)
    return snapshot.to_dict()
