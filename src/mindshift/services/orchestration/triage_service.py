"""
Triage Service

Coordinates one conversational turn through the triage core:

    sentiment -> classify -> append turn -> escalation -> handoff -> fan-out

Every mutation of a session happens while holding that session's lock,
so concurrent messages for one session are applied in order while
different sessions proceed independently.

SAFETY: When a turn opens a crisis alert the outcome always carries
crisis resources, and a high-urgency handoff is filed in the crisis
bucket.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence
from uuid import UUID

from mindshift.config.logging_config import get_logger
from mindshift.config.settings import Settings
from mindshift.domain.enums.lifecycle import AlertStatus, HandoffUrgency
from mindshift.domain.exceptions import (
    HandoffNotFoundError,
    UpstreamUnavailable,
    ValidationError,
)
from mindshift.domain.models.crisis_alert import CrisisAlert
from mindshift.domain.models.handoff import HandoffCriteria, HandoffRequest
from mindshift.domain.models.session import (
    DetectedEmotion,
    SentimentReading,
    Session,
    SessionSnapshot,
    Turn,
    utcnow,
)
from mindshift.infrastructure.archive.archive_sink import ArchiveSink
from mindshift.infrastructure.metrics.prometheus_metrics import (
    CONCERNING_PATTERNS_TOTAL,
    track_classification,
    track_degraded,
)
from mindshift.services.catalog.protocol_catalog import ProtocolCatalog
from mindshift.services.classification.emotion_detector import EmotionDetector
from mindshift.services.classification.message_classifier import (
    ClassificationResult,
    MessageClassifier,
)
from mindshift.services.classification.sentiment import SentimentScorer
from mindshift.services.escalation.crisis_engine import CrisisEscalationEngine
from mindshift.services.escalation.emergency_resources import (
    CrisisResource,
    CrisisResourceResolver,
)
from mindshift.services.handoff.handoff_matcher import HandoffMatcher
from mindshift.services.notifications.events import EventType, NotificationEvent
from mindshift.services.notifications.fanout import NotificationFanout
from mindshift.services.session.session_store import SessionStore, validate_session_id
from mindshift.services.session.trajectory_analyzer import (
    EmotionPatternReport,
    analyze_emotion_patterns,
)

logger = get_logger(__name__)

Clock = Callable[[], datetime]

CLOSED_RETENTION = timedelta(hours=1)
CRISIS_HANDOFF_REASON = "crisis_alert"


@dataclass
class TriageOutcome:
    """
    Result of handling one user message.

    Attributes:
        session_id: Session the turn was appended to
        turn_index: Index assigned by the Session Store
        classification: Classifier output for the turn
        response_text: Protocol template, or a fallback supportive line
        risk_level: Session risk level after the append
        crisis_mode: Session crisis flag after escalation
        alert: Crisis alert opened or updated by this turn
        alert_opened: True if this turn opened the alert
        handoff: Crisis handoff filed for a newly opened alert
        crisis_resources: Jurisdiction resources, set while in crisis mode
    """

    session_id: str
    turn_index: int
    classification: ClassificationResult
    response_text: str
    risk_level: int
    crisis_mode: bool
    follow_up_prompt: str = ""
    suggested_tools: tuple[str, ...] = ()
    detected_emotions: tuple[DetectedEmotion, ...] = ()
    alert: Optional[CrisisAlert] = None
    alert_opened: bool = False
    handoff: Optional[HandoffRequest] = None
    crisis_resources: list[CrisisResource] = field(default_factory=list)

    @property
    def warnings(self) -> tuple[str, ...]:
        return self.classification.warnings

    def to_dict(self) -> dict:
        """Serialize for API response."""
        return {
            "session_id": self.session_id,
            "turn_index": self.turn_index,
            "response": self.response_text,
            "follow_up_prompt": self.follow_up_prompt,
            "suggested_tools": list(self.suggested_tools),
            "classification": self.classification.to_dict(),
            "risk_level": self.risk_level,
            "crisis_mode": self.crisis_mode,
            "detected_emotions": [
                {"emotion": e.emotion, "intensity": round(e.intensity, 3)}
                for e in self.detected_emotions
            ],
            "alert_id": str(self.alert.alert_id) if self.alert else None,
            "alert_opened": self.alert_opened,
            "handoff": self.handoff.to_dict() if self.handoff else None,
            "crisis_resources": [r.to_dict() for r in self.crisis_resources],
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class MaintenanceReport:
    """What one maintenance sweep changed."""

    escalated_alerts: int = 0
    expired_handoffs: int = 0
    expired_sessions: int = 0
    forgotten: int = 0


class TriageService:
    """
    Entry point of the triage core.

    Usage:
        service = build_triage_service(settings)
        outcome = await service.handle_message("session-1", "I can't sleep")
        await service.acknowledge_alert(alert_id, "responder-7")
    """

    def __init__(
        self,
        settings: Settings,
        catalog: ProtocolCatalog,
        classifier: MessageClassifier,
        sentiment_scorer: Optional[SentimentScorer],
        emotion_detector: EmotionDetector,
        session_store: SessionStore,
        escalation: CrisisEscalationEngine,
        handoffs: HandoffMatcher,
        fanout: NotificationFanout,
        archive: ArchiveSink,
        resource_resolver: CrisisResourceResolver,
        clock: Clock = utcnow,
    ) -> None:
        self.settings = settings
        self.catalog = catalog
        self.classifier = classifier
        self.sentiment_scorer = sentiment_scorer
        self.emotion_detector = emotion_detector
        self.sessions = session_store
        self.escalation = escalation
        self.handoffs = handoffs
        self.fanout = fanout
        self.archive = archive
        self.resources = resource_resolver
        self._clock = clock

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def handle_message(
        self,
        session_id: str,
        message: str,
        user_id: Optional[str] = None,
    ) -> TriageOutcome:
        """
        Classify a user message, append it as a turn and escalate if needed.

        Args:
            session_id: Session the message belongs to (created on first touch)
            message: Raw user message; blank input yields a no-match turn
            user_id: Opaque authenticated user id, None for anonymous users

        Returns:
            TriageOutcome

        Raises:
            ValidationError: If session_id is blank or message is missing
            EscalationTimerError: If a crisis countdown cannot be armed
        """
        session_id = validate_session_id(session_id)
        if message is None:
            raise ValidationError("message is required", field="message")

        sentiment = await self._score_sentiment(session_id, message)

        async with self.sessions.session_lock(session_id):
            session = await self.sessions.get_or_create(session_id, user_id)
            classification = self.classifier.classify(session, message, sentiment)
            emotions = self.emotion_detector.detect(message)

            session = await self.sessions.append_turn(
                session_id,
                Turn(
                    raw_message=message,
                    risk_score=classification.risk_score,
                    matched_protocol_id=classification.protocol_id,
                    sentiment=sentiment,
                    detected_emotions=emotions,
                    timestamp=self._clock(),
                ),
            )
            turn_index = session.turns[-1].turn_index

            protocol = classification.protocol
            if protocol is not None:
                await self.sessions.increment_technique(session_id, protocol.technique)
            track_classification(protocol.category.value if protocol else None)

            evaluation = await self.escalation.evaluate(
                session_id, session.user_id, classification, message
            )
            handoff = None
            if evaluation is not None and evaluation.opened:
                handoff = await self._file_crisis_handoff(session_id, session.user_id, evaluation.alert)

            snapshot = session.snapshot()

        self.fanout.publish(
            NotificationEvent(
                event_type=EventType.NEW_MESSAGE,
                session_id=session_id,
                severity=classification.risk_score,
                payload={
                    "turn_index": turn_index,
                    "risk_score": classification.risk_score,
                    "protocol_id": classification.protocol_id,
                    "category": protocol.category.value if protocol else None,
                    "risk_level": snapshot.current_risk_level,
                    "crisis_mode": snapshot.crisis_mode,
                },
            )
        )

        if protocol is not None:
            response_text = protocol.response_template
        else:
            response_text = self.catalog.fallback_response(turn_index)

        return TriageOutcome(
            session_id=session_id,
            turn_index=turn_index,
            classification=classification,
            response_text=response_text,
            follow_up_prompt=protocol.follow_up_prompt if protocol else "",
            suggested_tools=protocol.suggested_tools if protocol else (),
            risk_level=snapshot.current_risk_level,
            crisis_mode=snapshot.crisis_mode,
            detected_emotions=emotions,
            alert=evaluation.alert if evaluation else None,
            alert_opened=bool(evaluation and evaluation.opened),
            handoff=handoff,
            crisis_resources=self.crisis_resources() if snapshot.crisis_mode else [],
        )

    async def _score_sentiment(self, session_id: str, message: str) -> Optional[SentimentReading]:
        if self.sentiment_scorer is None:
            return None
        try:
            return await self.sentiment_scorer.score(message)
        except UpstreamUnavailable as e:
            track_degraded("sentiment")
            logger.warning(
                "Sentiment unavailable, classifying on keywords only",
                session_id=session_id,
                error=e.message,
            )
            return None

    async def _file_crisis_handoff(
        self,
        session_id: str,
        user_id: Optional[str],
        alert: CrisisAlert,
    ) -> HandoffRequest:
        request = await self.handoffs.request_handoff(
            session_id,
            HandoffCriteria(
                user_id=user_id,
                reason=CRISIS_HANDOFF_REASON,
                urgency=HandoffUrgency.HIGH,
                specialty=self.settings.handoff.crisis_specialty,
                alert_id=alert.alert_id,
            ),
        )
        alert.handoff_request_id = request.request_id
        await self.sessions.link_handoff(session_id, request.request_id)
        return request

    def crisis_resources(self) -> list[CrisisResource]:
        return self.resources.resources_for(self.settings.default_country_code).all_resources()

    # ------------------------------------------------------------------
    # Crisis alerts
    # ------------------------------------------------------------------

    async def report_crisis(
        self,
        session_id: str,
        reason: str = "client_reported",
        user_id: Optional[str] = None,
        severity: int = 5,
    ) -> CrisisAlert:
        """
        Raise a crisis alert from the client without a classified turn.

        Raises:
            ValidationError: If severity is outside 1-5
            EscalationTimerError: If the countdown cannot be armed
        """
        session_id = validate_session_id(session_id)
        if not 1 <= severity <= 5:
            raise ValidationError(f"severity {severity} outside 1-5", field="severity")

        async with self.sessions.session_lock(session_id):
            session = await self.sessions.get_or_create(session_id, user_id)
            evaluation = await self.escalation.raise_alert(
                session_id=session_id,
                user_id=session.user_id,
                severity=severity,
                indicators=[f"reported:{reason}"],
            )
            if evaluation.opened:
                await self._file_crisis_handoff(session_id, session.user_id, evaluation.alert)
        return evaluation.alert

    async def acknowledge_alert(self, alert_id: UUID, responder_id: str) -> CrisisAlert:
        """Responder acknowledgement; see CrisisEscalationEngine.acknowledge."""
        alert = await self.escalation.acknowledge(alert_id, responder_id)
        await self._cancel_crisis_handoff(alert)
        return alert

    async def stand_down(self, alert_id: UUID) -> CrisisAlert:
        """Client reports the user is safe."""
        alert = await self.escalation.stand_down(alert_id)
        await self._cancel_crisis_handoff(alert)
        return alert

    async def _cancel_crisis_handoff(self, alert: CrisisAlert) -> None:
        if alert.status is not AlertStatus.RESOLVED or alert.handoff_request_id is None:
            return
        try:
            request = self.handoffs.get(alert.handoff_request_id)
        except HandoffNotFoundError:
            logger.info("Crisis handoff already forgotten", alert_id=str(alert.alert_id))
            return
        if request.is_open:
            await self.handoffs.cancel(request.request_id)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def join_session(self, session_id: str, user_id: Optional[str] = None) -> SessionSnapshot:
        session_id = validate_session_id(session_id)
        async with self.sessions.session_lock(session_id):
            session = await self.sessions.get_or_create(session_id, user_id)
            snapshot = session.snapshot()
        self.fanout.publish(
            NotificationEvent(
                event_type=EventType.SESSION_JOINED,
                session_id=session_id,
                payload={"user_id": snapshot.user_id, "turn_count": snapshot.turn_count},
            )
        )
        return snapshot

    async def end_session(self, session_id: str) -> SessionSnapshot:
        """
        End a session: archive it, cancel its open handoffs and notify.

        An ACTIVE crisis alert is not affected; its countdown keeps running.

        Raises:
            SessionNotFoundError: If the session is unknown
        """
        session_id = validate_session_id(session_id)
        async with self.sessions.session_lock(session_id):
            session = await self.sessions.end_session(session_id)
        await self._retire_session(session)
        return session.snapshot()

    async def _retire_session(self, session: Session) -> None:
        if self.escalation.active_alert_for(session.session_id) is not None:
            logger.warning(
                "Session ended with an active crisis alert",
                session_id=session.session_id,
            )
        await self.handoffs.cancel_for_session(session.session_id)
        try:
            await self.archive.archive_session(session)
        except Exception as e:
            logger.error("Session archive failed", session_id=session.session_id, error=str(e))
        self.fanout.publish(
            NotificationEvent(
                event_type=EventType.SESSION_ENDED,
                session_id=session.session_id,
                payload={"turn_count": session.turn_count},
            )
        )

    async def update_emotion(
        self,
        session_id: str,
        emotions: Sequence[str],
        intensity: float,
    ) -> EmotionPatternReport:
        """
        Record live emotion readings from the client and check the
        trajectory for concerning patterns.

        Raises:
            ValidationError: If no emotion is given or intensity is outside [0, 1]
        """
        session_id = validate_session_id(session_id)
        if not emotions:
            raise ValidationError("at least one emotion is required", field="emotions")

        async with self.sessions.session_lock(session_id):
            for emotion in emotions:
                session = await self.sessions.record_emotion(session_id, emotion, intensity)
            report = analyze_emotion_patterns(session.emotional_trajectory)

        self.fanout.publish(
            NotificationEvent(
                event_type=EventType.EMOTION_UPDATE,
                session_id=session_id,
                payload={"emotions": list(emotions), "intensity": intensity},
            )
        )
        if report.concerning:
            CONCERNING_PATTERNS_TOTAL.labels(trend=report.trend).inc()
            logger.warning(
                "Concerning emotional pattern detected",
                session_id=session_id,
                reason=report.reason,
                trend=report.trend,
            )
            self.fanout.publish(
                NotificationEvent(
                    event_type=EventType.CONCERNING_PATTERN,
                    session_id=session_id,
                    payload=report.to_dict(),
                )
            )
        return report

    async def get_snapshot(self, session_id: str) -> SessionSnapshot:
        return await self.sessions.snapshot(session_id)

    # ------------------------------------------------------------------
    # Handoffs
    # ------------------------------------------------------------------

    async def request_handoff(self, session_id: str, criteria: HandoffCriteria) -> HandoffRequest:
        session_id = validate_session_id(session_id)
        request = await self.handoffs.request_handoff(session_id, criteria)
        await self.sessions.link_handoff(session_id, request.request_id)
        return request

    async def cancel_handoff(self, request_id: UUID) -> HandoffRequest:
        return await self.handoffs.cancel(request_id)

    async def release_responder(self, responder_id: str) -> Optional[HandoffRequest]:
        return await self.handoffs.release_responder(responder_id)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def run_maintenance(self, now: Optional[datetime] = None) -> MaintenanceReport:
        """
        One maintenance sweep: escalate overdue alerts, expire stale
        handoffs, evict inactive sessions and forget old closed records.

        Overdue alerts are swept first so an escalation failure surfaces
        before anything else runs.
        """
        now = now or self._clock()

        escalated = await self.escalation.sweep_overdue(now)

        expired_handoffs = await self.handoffs.expire_stale(
            now,
            fallback={"crisis_resources": [r.to_dict() for r in self.crisis_resources()]},
        )

        expired_sessions = await self.sessions.expire_inactive(now)
        for session in expired_sessions:
            await self._retire_session(session)

        cutoff = now - CLOSED_RETENTION
        forgotten = self.escalation.forget_closed(cutoff) + self.handoffs.forget_closed(cutoff)

        return MaintenanceReport(
            escalated_alerts=len(escalated),
            expired_handoffs=len(expired_handoffs),
            expired_sessions=len(expired_sessions),
            forgotten=forgotten,
        )

    async def shutdown(self) -> None:
        await self.escalation.shutdown()
        await self.fanout.close()
        logger.info("Triage service stopped")
