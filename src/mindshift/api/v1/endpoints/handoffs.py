"""
Handoff Endpoints

Requesting a human responder, cancelling a request, and releasing a
responder back to the pool.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from mindshift.api.dependencies import get_triage_service
from mindshift.domain.enums.lifecycle import HandoffUrgency
from mindshift.domain.models.handoff import HandoffCriteria
from mindshift.services.orchestration.triage_service import TriageService

router = APIRouter()


class HandoffRequestBody(BaseModel):
    """Request a human responder for a session."""

    session_id: str = Field(..., min_length=1)
    user_id: Optional[str] = None
    reason: str = Field(default="", max_length=500)
    urgency: HandoffUrgency = HandoffUrgency.NORMAL
    specialty: Optional[str] = None
    language: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "session_id": "session-42",
                "reason": "User asked to talk to a person",
                "urgency": "normal",
                "specialty": "anxiety",
                "language": "en",
            }
        }


@router.post(
    "/handoffs",
    status_code=status.HTTP_201_CREATED,
    summary="Request a human handoff",
)
async def request_handoff(
    body: HandoffRequestBody,
    service: TriageService = Depends(get_triage_service),
) -> dict:
    """
    Assign an available responder or queue the request.

    Queued requests carry their position and an estimated wait.
    """
    request = await service.request_handoff(
        body.session_id,
        HandoffCriteria(
            user_id=body.user_id,
            reason=body.reason,
            urgency=body.urgency,
            specialty=body.specialty,
            language=body.language,
        ),
    )
    return request.to_dict()


@router.get("/handoffs/{request_id}", summary="Get a handoff request")
async def get_handoff(
    request_id: UUID,
    service: TriageService = Depends(get_triage_service),
) -> dict:
    return service.handoffs.get(request_id).to_dict()


@router.post("/handoffs/{request_id}/cancel", summary="Cancel a handoff request")
async def cancel_handoff(
    request_id: UUID,
    service: TriageService = Depends(get_triage_service),
) -> dict:
    request = await service.cancel_handoff(request_id)
    return request.to_dict()


@router.post("/responders/{responder_id}/release", summary="Release a responder")
async def release_responder(
    responder_id: str,
    service: TriageService = Depends(get_triage_service),
) -> dict:
    """Mark a responder available and assign the oldest request they can serve."""
    request = await service.release_responder(responder_id)
    return {
        "responder_id": responder_id,
        "assigned": request.to_dict() if request else None,
    }
