"""Triage orchestration package."""

from mindshift.services.orchestration.factory import build_triage_service
from mindshift.services.orchestration.maintenance import MaintenanceLoop
from mindshift.services.orchestration.triage_service import (
    MaintenanceReport,
    TriageOutcome,
    TriageService,
)

__all__ = [
    "TriageService",
    "TriageOutcome",
    "MaintenanceReport",
    "MaintenanceLoop",
    "build_triage_service",
]
