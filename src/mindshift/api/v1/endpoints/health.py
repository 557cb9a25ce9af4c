"""
Health Check Endpoints

Liveness and readiness probes for load balancers and Kubernetes.
"""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from mindshift import __version__
from mindshift.api.dependencies import get_triage_service
from mindshift.services.orchestration.triage_service import TriageService

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    environment: str


class ReadinessResponse(BaseModel):
    """Readiness check response with component health."""

    ready: bool
    components: dict
    active_alerts: int


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Basic health check endpoint for load balancers",
)
async def health_check(request: Request) -> HealthResponse:
    """Returns 200 if the application is running."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=request.app.state.settings.env,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Readiness including the protocol catalog and the archive database",
)
async def readiness_check(
    request: Request,
    service: TriageService = Depends(get_triage_service),
) -> ReadinessResponse:
    """
    Detailed readiness check.

    Checks:
    - Protocol catalog loaded
    - Archive database reachable (database backend only)
    """
    components = {"catalog": len(service.catalog) > 0}

    db = getattr(request.app.state, "database", None)
    if db is not None:
        components["database"] = await db.health_check()

    return ReadinessResponse(
        ready=all(components.values()),
        components=components,
        active_alerts=len(service.escalation.active_alerts()),
    )
