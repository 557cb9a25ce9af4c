"""
Crisis Escalation Engine

State machine per crisis alert:

    ACTIVE -> RESOLVED   (responder acknowledged, or user stood down)
    ACTIVE -> ESCALATED  (countdown elapsed, emergency fallback dispatched)

Opening an alert broadcasts it through the Notification Fan-out and
arms a countdown task. A session has at most one ACTIVE alert; further
high-risk turns are merged into it (max severity, extra indicators,
same deadline).

Acknowledgement and expiry race on the same alert. Both go through the
alert's compare-and-set transition, so whichever commits first wins
and the other becomes a no-op. Cancelling the countdown is cleanup,
not the guard. A periodic sweep of overdue alerts backs up the
per-alert countdown.

SAFETY-CRITICAL: If the countdown cannot be armed the engine raises
EscalationTimerError. It never skips escalation silently.

CLINICAL_REVIEW_REQUIRED: The 120 second default timeout and the
risk threshold are product decisions.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID

from mindshift.config.logging_config import get_logger
from mindshift.config.settings import EscalationSettings
from mindshift.domain.enums.lifecycle import AlertStatus
from mindshift.domain.enums.protocol_category import RiskLevel
from mindshift.domain.exceptions import (
    AlertNotFoundError,
    EscalationTimerError,
    ValidationError,
)
from mindshift.domain.models.crisis_alert import CrisisAlert
from mindshift.domain.models.session import utcnow
from mindshift.infrastructure.archive.archive_sink import ArchiveSink
from mindshift.infrastructure.metrics.prometheus_metrics import (
    ACKNOWLEDGEMENT_LATENCY,
    EMERGENCY_DISPATCHES_TOTAL,
    track_crisis_alert,
)
from mindshift.infrastructure.monitoring.sentry_integration import (
    capture_alert_event,
    capture_alert_exception,
)
from mindshift.services.classification.message_classifier import ClassificationResult
from mindshift.services.escalation.emergency_dispatcher import (
    EmergencyDispatcher,
    LoggingEmergencyDispatcher,
)
from mindshift.services.escalation.emergency_resources import CrisisResourceResolver
from mindshift.services.notifications.events import EventType, NotificationEvent
from mindshift.services.notifications.fanout import NotificationFanout
from mindshift.services.session.session_store import SessionStore

logger = get_logger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class AlertEvaluation:
    """Alert touched by a high-risk turn; opened=False means merged."""

    alert: CrisisAlert
    opened: bool


class CrisisEscalationEngine:
    """
    Opens, resolves and escalates crisis alerts.

    Usage:
        engine = CrisisEscalationEngine(store, fanout, archive)
        evaluation = await engine.evaluate(session_id, user_id, classification, message)
        await engine.acknowledge(evaluation.alert.alert_id, "responder-7")
    """

    def __init__(
        self,
        session_store: SessionStore,
        fanout: NotificationFanout,
        archive: Optional[ArchiveSink] = None,
        dispatcher: Optional[EmergencyDispatcher] = None,
        resource_resolver: Optional[CrisisResourceResolver] = None,
        settings: Optional[EscalationSettings] = None,
        clock: Clock = utcnow,
        country_code: str = "US",
    ) -> None:
        self.settings = settings or EscalationSettings()
        self._sessions = session_store
        self._fanout = fanout
        self._archive = archive
        self._dispatcher = dispatcher or LoggingEmergencyDispatcher()
        self._resources = resource_resolver or CrisisResourceResolver()
        self._clock = clock
        self._country_code = country_code

        self._alerts: dict[UUID, CrisisAlert] = {}
        self._active_by_session: dict[str, UUID] = {}
        self._timers: dict[UUID, asyncio.Task] = {}
        self._closed = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def qualifies(self, classification: ClassificationResult) -> bool:
        """True if the turn must open or update an alert."""
        return classification.is_crisis or classification.risk_score >= self.settings.risk_threshold

    def get(self, alert_id: UUID) -> CrisisAlert:
        alert = self._alerts.get(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    def active_alert_for(self, session_id: str) -> Optional[CrisisAlert]:
        alert_id = self._active_by_session.get(session_id)
        if alert_id is None:
            return None
        alert = self._alerts.get(alert_id)
        return alert if alert is not None and alert.is_active else None

    def active_alerts(self) -> list[CrisisAlert]:
        return [a for a in self._alerts.values() if a.is_active]

    def has_timer(self, alert_id: UUID) -> bool:
        task = self._timers.get(alert_id)
        return task is not None and not task.done()

    # ------------------------------------------------------------------
    # ACTIVE
    # ------------------------------------------------------------------

    async def evaluate(
        self,
        session_id: str,
        user_id: Optional[str],
        classification: ClassificationResult,
        source_message: str,
    ) -> Optional[AlertEvaluation]:
        """
        Open or update the session's alert for a classified turn.

        Returns:
            None if the turn does not qualify for escalation
        """
        if not self.qualifies(classification):
            return None

        return await self.raise_alert(
            session_id=session_id,
            user_id=user_id,
            severity=classification.risk_score,
            indicators=classification.indicators(),
            source_message=source_message,
        )

    async def raise_alert(
        self,
        session_id: str,
        user_id: Optional[str],
        severity: int,
        indicators: list[str],
        source_message: str = "",
    ) -> AlertEvaluation:
        """
        Merge into the session's ACTIVE alert, or open a new one.

        Also used for alerts raised by the client (panic button)
        without a classified turn.

        Raises:
            EscalationTimerError: If a new alert's countdown cannot be armed
        """
        active = self.active_alert_for(session_id)
        if active is not None and active.merge(severity, indicators):
            track_crisis_alert("updated")
            logger.warning(
                "Crisis alert updated",
                alert_id=str(active.alert_id),
                session_id=session_id,
                severity=active.severity,
            )
            self._publish(EventType.CRISIS_ALERT_UPDATED, active)
            return AlertEvaluation(alert=active, opened=False)

        alert = await self._open_alert(session_id, user_id, severity, indicators, source_message)
        return AlertEvaluation(alert=alert, opened=True)

    async def _open_alert(
        self,
        session_id: str,
        user_id: Optional[str],
        severity: int,
        indicators: list[str],
        source_message: str,
    ) -> CrisisAlert:
        now = self._clock()
        alert = CrisisAlert(
            session_id=session_id,
            user_id=user_id,
            severity=max(int(RiskLevel.MILD), min(int(RiskLevel.ACUTE), int(severity))),
            source_message=source_message,
            indicators=list(indicators),
            opened_at=now,
            deadline_at=now + timedelta(seconds=self.settings.timeout_seconds),
        )
        self._alerts[alert.alert_id] = alert
        self._active_by_session[session_id] = alert.alert_id

        await self._sessions.set_crisis_mode(session_id, True, alert.alert_id)
        track_crisis_alert("opened")
        logger.warning(
            "Crisis alert opened",
            alert_id=str(alert.alert_id),
            session_id=session_id,
            severity=alert.severity,
            indicator_count=len(alert.indicators),
            deadline_at=alert.deadline_at.isoformat(),
        )
        self._publish(EventType.CRISIS_ALERT_OPENED, alert)

        self._arm_timer(alert)
        return alert

    def _arm_timer(self, alert: CrisisAlert) -> None:
        try:
            if self._closed:
                raise EscalationTimerError("Escalation engine is shut down")
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise EscalationTimerError("No running event loop for escalation countdown") from e

            delay = max(0.0, (alert.deadline_at - self._clock()).total_seconds())
            task = loop.create_task(
                self._countdown(alert.alert_id, delay),
                name=f"crisis-countdown-{alert.alert_id}",
            )
        except EscalationTimerError as e:
            logger.critical(
                "Escalation countdown could not be armed",
                alert_id=str(alert.alert_id),
                session_id=alert.session_id,
                error=e.message,
            )
            capture_alert_exception(e, alert, extra={"stage": "arm_countdown"})
            raise

        task.add_done_callback(self._timer_finished)
        self._timers[alert.alert_id] = task

    async def _countdown(self, alert_id: UUID, delay: float) -> None:
        await asyncio.sleep(delay)
        await self.expire(alert_id)

    def _timer_finished(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.critical(
                "Escalation countdown failed",
                task=task.get_name(),
                error=str(error),
            )

    # ------------------------------------------------------------------
    # ACTIVE -> ESCALATED
    # ------------------------------------------------------------------

    async def expire(self, alert_id: UUID, now: Optional[datetime] = None) -> bool:
        """
        Escalate an alert whose countdown elapsed.

        Returns:
            True if this call committed the escalation

        Raises:
            Exception: If the emergency dispatcher fails
        """
        alert = self._alerts.get(alert_id)
        if alert is None:
            return False

        now = now or self._clock()
        if not alert.transition_from_active(AlertStatus.ESCALATED, now, "timeout"):
            return False

        self._release(alert)
        # crisis_mode stays on after escalation
        await self._sessions.set_crisis_mode(alert.session_id, True, None)
        track_crisis_alert("escalated")
        logger.critical(
            "Crisis alert escalated to emergency fallback",
            alert_id=str(alert.alert_id),
            session_id=alert.session_id,
            severity=alert.severity,
        )
        capture_alert_event(alert, "Crisis alert escalated without acknowledgement", level="error")
        self._publish(EventType.CRISIS_ALERT_ESCALATED, alert)

        try:
            await self._dispatch_emergency(alert)
        finally:
            await self._archive_alert(alert)
        return True

    async def _dispatch_emergency(self, alert: CrisisAlert) -> None:
        resources = self._resources.resources_for(self._country_code)
        try:
            await self._dispatcher.dispatch(alert, resources)
        except Exception as e:
            EMERGENCY_DISPATCHES_TOTAL.labels(status="failed").inc()
            logger.critical(
                "Emergency dispatch failed",
                alert_id=str(alert.alert_id),
                session_id=alert.session_id,
                error=str(e),
            )
            capture_alert_exception(e, alert, extra={"stage": "emergency_dispatch"})
            raise
        EMERGENCY_DISPATCHES_TOTAL.labels(status="dispatched").inc()

    async def sweep_overdue(self, now: Optional[datetime] = None) -> list[CrisisAlert]:
        """
        Escalate every ACTIVE alert past its deadline.

        Backstop for countdowns lost to a crash or a stalled loop.
        """
        now = now or self._clock()
        escalated = []
        failure: Optional[Exception] = None
        for alert in self.active_alerts():
            if alert.deadline_at > now:
                continue
            try:
                if await self.expire(alert.alert_id, now=now):
                    escalated.append(alert)
            except Exception as e:
                failure = failure or e
        if failure is not None:
            raise failure
        return escalated

    # ------------------------------------------------------------------
    # ACTIVE -> RESOLVED
    # ------------------------------------------------------------------

    async def acknowledge(self, alert_id: UUID, responder_id: str) -> CrisisAlert:
        """
        Responder acknowledgement.

        Idempotent: acknowledging a closed alert is a no-op. After
        escalation the acknowledgement is recorded as metadata only.

        Raises:
            ValidationError: If responder_id is blank
            AlertNotFoundError: If the alert is unknown
        """
        if not responder_id or not responder_id.strip():
            raise ValidationError("responder_id is required", field="responder_id")

        alert = self.get(alert_id)
        now = self._clock()

        if alert.transition_from_active(AlertStatus.RESOLVED, now, "acknowledged", responder_id):
            ACKNOWLEDGEMENT_LATENCY.observe(max(0.0, (now - alert.opened_at).total_seconds()))
            await self._on_resolved(alert)
        elif alert.status is AlertStatus.ESCALATED:
            alert.record_late_acknowledgement(responder_id, now)
            logger.warning(
                "Acknowledgement received after escalation",
                alert_id=str(alert_id),
                responder_id=responder_id,
            )
            await self._archive_alert(alert)
        else:
            logger.info(
                "Alert already resolved, acknowledgement ignored",
                alert_id=str(alert_id),
                responder_id=responder_id,
            )
        return alert

    async def stand_down(self, alert_id: UUID) -> CrisisAlert:
        """
        Client signal that the user is safe. Idempotent.

        Raises:
            AlertNotFoundError: If the alert is unknown
        """
        alert = self.get(alert_id)
        if alert.transition_from_active(AlertStatus.RESOLVED, self._clock(), "user_safe"):
            await self._on_resolved(alert)
        else:
            logger.info("Stand-down for closed alert ignored", alert_id=str(alert_id))
        return alert

    async def _on_resolved(self, alert: CrisisAlert) -> None:
        self._release(alert)
        await self._sessions.set_crisis_mode(alert.session_id, False, None)
        track_crisis_alert("resolved")
        logger.warning(
            "Crisis alert resolved",
            alert_id=str(alert.alert_id),
            session_id=alert.session_id,
            reason=alert.resolution_reason,
            acknowledged_by=alert.acknowledged_by,
        )
        self._publish(EventType.CRISIS_ALERT_RESOLVED, alert)
        await self._archive_alert(alert)

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def _release(self, alert: CrisisAlert) -> None:
        if self._active_by_session.get(alert.session_id) == alert.alert_id:
            del self._active_by_session[alert.session_id]

        task = self._timers.pop(alert.alert_id, None)
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    def _publish(self, event_type: EventType, alert: CrisisAlert) -> None:
        self._fanout.publish(
            NotificationEvent(
                event_type=event_type,
                session_id=alert.session_id,
                severity=alert.severity,
                payload={
                    "alert_id": str(alert.alert_id),
                    "user_id": alert.user_id,
                    "severity": alert.severity,
                    "indicators": list(alert.indicators),
                    "status": alert.status.value,
                    "deadline_at": alert.deadline_at.isoformat(),
                    "acknowledged_by": alert.acknowledged_by,
                },
            )
        )

    async def _archive_alert(self, alert: CrisisAlert) -> None:
        if self._archive is None:
            return
        try:
            await self._archive.archive_alert(alert)
        except Exception as e:
            logger.error(
                "Crisis alert archive failed",
                alert_id=str(alert.alert_id),
                error=str(e),
            )

    def forget_closed(self, before: datetime) -> int:
        """Drop closed alerts older than `before` from memory."""
        stale = [
            alert_id
            for alert_id, alert in self._alerts.items()
            if not alert.is_active and alert.closed_at is not None and alert.closed_at < before
        ]
        for alert_id in stale:
            del self._alerts[alert_id]
        return len(stale)

    async def shutdown(self) -> None:
        """Stop arming countdowns and cancel the running ones."""
        self._closed = True
        tasks = list(self._timers.values())
        self._timers.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Escalation engine stopped", cancelled_timers=len(tasks))
