"""
Archive Sinks

Write-only persistence for closed crisis alerts, closed handoff
requests and ended sessions. The triage core never reads the archive
back to make in-session decisions.

Callers log archive failures and carry on; an archive write never
blocks or reverses a state transition.
"""

from abc import ABC, abstractmethod

from sqlalchemy.exc import InterfaceError, OperationalError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from mindshift.config.logging_config import get_logger
from mindshift.domain.models.crisis_alert import CrisisAlert
from mindshift.domain.models.handoff import HandoffRequest
from mindshift.domain.models.session import Session
from mindshift.infrastructure.database.connection import Base, DatabaseManager
from mindshift.infrastructure.database.models import (
    CrisisAlertModel,
    HandoffRequestModel,
    SessionArchiveModel,
)
from mindshift.infrastructure.database.repositories.base import BaseRepository

logger = get_logger(__name__)

# Connection-level failures are retried. Constraint and data errors
# surface on the first attempt.
TRANSIENT_DB_ERRORS = (OperationalError, InterfaceError, ConnectionError)


class ArchiveSink(ABC):
    """Write-only archive interface."""

    @abstractmethod
    async def archive_alert(self, alert: CrisisAlert) -> None:
        """Persist a crisis alert in a terminal state."""

    @abstractmethod
    async def archive_handoff(self, request: HandoffRequest) -> None:
        """Persist a closed handoff request."""

    @abstractmethod
    async def archive_session(self, session: Session) -> None:
        """Persist an ended session summary."""


class InMemoryArchiveSink(ArchiveSink):
    """Keeps archive records in lists. Default backend and test double."""

    def __init__(self) -> None:
        self.alerts: dict[str, dict] = {}
        self.handoffs: dict[str, dict] = {}
        self.sessions: list[dict] = []

    async def archive_alert(self, alert: CrisisAlert) -> None:
        record = alert.to_dict()
        self.alerts[record["alert_id"]] = record

    async def archive_handoff(self, request: HandoffRequest) -> None:
        record = request.to_dict()
        self.handoffs[record["request_id"]] = record

    async def archive_session(self, session: Session) -> None:
        self.sessions.append(session.to_archive_record())


class DatabaseArchiveSink(ArchiveSink):
    """
    SQLAlchemy archive over the DatabaseManager.

    Transient database errors are retried with exponential backoff
    before the failure is surfaced to the caller.

    Usage:
        db = DatabaseManager(settings.database)
        await db.initialize()
        sink = DatabaseArchiveSink(db)
        await sink.archive_alert(alert)
    """

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(TRANSIENT_DB_ERRORS),
        reraise=True,
    )
    async def _write(self, entity: Base) -> None:
        async with self._db.session() as session:
            await BaseRepository(type(entity), session).upsert(entity)

    async def archive_alert(self, alert: CrisisAlert) -> None:
        await self._write(CrisisAlertModel.from_domain(alert))
        logger.debug("Crisis alert archived", alert_id=str(alert.alert_id))

    async def archive_handoff(self, request: HandoffRequest) -> None:
        await self._write(HandoffRequestModel.from_domain(request))
        logger.debug("Handoff request archived", request_id=str(request.request_id))

    async def archive_session(self, session: Session) -> None:
        await self._write(SessionArchiveModel.from_domain(session))
        logger.debug("Session archived", session_id=session.session_id)
