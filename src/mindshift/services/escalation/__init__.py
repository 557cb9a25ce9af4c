"""Crisis escalation package."""

from mindshift.services.escalation.crisis_engine import (
    AlertEvaluation,
    CrisisEscalationEngine,
)
from mindshift.services.escalation.emergency_dispatcher import (
    EmergencyDispatcher,
    LoggingEmergencyDispatcher,
)
from mindshift.services.escalation.emergency_resources import (
    CrisisResource,
    CrisisResourceResolver,
    JurisdictionResources,
)

__all__ = [
    "CrisisEscalationEngine",
    "AlertEvaluation",
    "EmergencyDispatcher",
    "LoggingEmergencyDispatcher",
    "CrisisResource",
    "CrisisResourceResolver",
    "JurisdictionResources",
]
