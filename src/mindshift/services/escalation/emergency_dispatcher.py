"""
Emergency Dispatcher

External collaborator invoked when a crisis alert escalates: contacts
the user's emergency contact or an emergency service.

SAFETY-CRITICAL: Dispatch failures propagate to the escalation
engine, which logs them at CRITICAL and reports them to Sentry.
"""

from abc import ABC, abstractmethod

from mindshift.config.logging_config import get_logger
from mindshift.domain.models.crisis_alert import CrisisAlert
from mindshift.services.escalation.emergency_resources import JurisdictionResources

logger = get_logger(__name__)


class EmergencyDispatcher(ABC):
    """Emergency fallback path."""

    @abstractmethod
    async def dispatch(self, alert: CrisisAlert, resources: JurisdictionResources) -> None:
        """
        Engage the emergency fallback for an escalated alert.

        Raises:
            Exception: Any failure; the caller treats it as critical
        """


class LoggingEmergencyDispatcher(EmergencyDispatcher):
    """
    Records dispatches and logs them at CRITICAL.

    Stands in for a paging or telephony integration until one is wired.
    """

    def __init__(self) -> None:
        self.dispatched: list[CrisisAlert] = []

    async def dispatch(self, alert: CrisisAlert, resources: JurisdictionResources) -> None:
        self.dispatched.append(alert)
        logger.critical(
            "Emergency fallback dispatched",
            alert_id=str(alert.alert_id),
            session_id=alert.session_id,
            severity=alert.severity,
            jurisdiction=resources.country_code,
            emergency_number=resources.emergency_number,
        )
