"""FastAPI dependencies."""

from fastapi import Request

from mindshift.services.orchestration.triage_service import TriageService


def get_triage_service(request: Request) -> TriageService:
    """Triage service attached to the application at startup."""
    service = getattr(request.app.state, "triage", None)
    if service is None:
        raise RuntimeError("Triage service not initialized")
    return service
