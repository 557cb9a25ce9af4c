"""
Triage Exception Taxonomy

- ValidationError: malformed input, rejected synchronously.
- NotFoundError: unknown alert, handoff, session or responder id. Benign, since
  races with expiry and resolution are expected.
- UpstreamUnavailable: sentiment scorer or responder directory failed.
  Callers degrade instead of failing the turn.
- EscalationTimerError: the countdown could not be armed. Fatal.

SAFETY-CRITICAL: EscalationTimerError must never be caught and
discarded. A missed escalation is the highest-severity failure.
"""

from typing import Optional


class TriageError(Exception):
    """Base class for all triage core errors."""

    def __init__(self, message: str, code: str = "triage_error") -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(TriageError):
    """Malformed input (missing session id, invalid intensity, ...)."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message, code="validation_error")
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class CatalogValidationError(ValidationError):
    """Protocol catalog violates an invariant (duplicate id, empty keywords, ...)."""


class NotFoundError(TriageError):
    """Referenced entity does not exist (or was already archived)."""

    entity: str = "entity"

    def __init__(self, entity_id: object) -> None:
        super().__init__(f"{self.entity} {entity_id} not found", code="not_found")
        self.entity_id = entity_id


class AlertNotFoundError(NotFoundError):
    entity = "Crisis alert"


class HandoffNotFoundError(NotFoundError):
    entity = "Handoff request"


class SessionNotFoundError(NotFoundError):
    entity = "Session"


class ResponderNotFoundError(NotFoundError):
    entity = "Responder"


class UpstreamUnavailable(TriageError):
    """A collaborator (sentiment scorer, responder directory) failed."""

    def __init__(self, upstream: str, reason: str = "") -> None:
        message = f"{upstream} unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, code="upstream_unavailable")
        self.upstream = upstream


class EscalationTimerError(TriageError):
    """
    The escalation countdown could not be armed.

    SAFETY_NOTE: Fatal by contract. Propagate, never swallow.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, code="escalation_timer_unavailable")
