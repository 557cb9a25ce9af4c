"""
Crisis Alert Endpoints

Responder acknowledgement and client stand-down. Both are idempotent:
acting on a closed alert returns the alert unchanged.

SAFETY-CRITICAL: An acknowledgement arriving after escalation is
recorded but never reverses the escalation.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from mindshift.api.dependencies import get_triage_service
from mindshift.services.orchestration.triage_service import TriageService

router = APIRouter()


class AcknowledgeRequest(BaseModel):
    """Responder acknowledgement."""

    responder_id: str = Field(..., min_length=1, max_length=128)


@router.get("", summary="List active crisis alerts")
async def list_active_alerts(service: TriageService = Depends(get_triage_service)) -> list[dict]:
    return [alert.to_dict() for alert in service.escalation.active_alerts()]


@router.get("/{alert_id}", summary="Get a crisis alert")
async def get_alert(
    alert_id: UUID,
    service: TriageService = Depends(get_triage_service),
) -> dict:
    return service.escalation.get(alert_id).to_dict()


@router.post("/{alert_id}/acknowledge", summary="Acknowledge a crisis alert")
async def acknowledge_alert(
    alert_id: UUID,
    request: AcknowledgeRequest,
    service: TriageService = Depends(get_triage_service),
) -> dict:
    alert = await service.acknowledge_alert(alert_id, request.responder_id)
    return alert.to_dict()


@router.post("/{alert_id}/stand-down", summary="Report the user is safe")
async def stand_down(
    alert_id: UUID,
    service: TriageService = Depends(get_triage_service),
) -> dict:
    alert = await service.stand_down(alert_id)
    return alert.to_dict()
