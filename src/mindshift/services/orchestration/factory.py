"""Wiring of the triage core from Settings."""

from typing import Optional

from mindshift.config.settings import Settings
from mindshift.domain.models.session import utcnow
from mindshift.infrastructure.archive.archive_sink import ArchiveSink, InMemoryArchiveSink
from mindshift.services.catalog.protocol_catalog import ProtocolCatalog
from mindshift.services.classification.emotion_detector import EmotionDetector
from mindshift.services.classification.message_classifier import MessageClassifier
from mindshift.services.classification.sentiment import SentimentScorer, VaderSentimentScorer
from mindshift.services.escalation.crisis_engine import CrisisEscalationEngine
from mindshift.services.escalation.emergency_dispatcher import EmergencyDispatcher
from mindshift.services.escalation.emergency_resources import CrisisResourceResolver
from mindshift.services.handoff.handoff_matcher import HandoffMatcher
from mindshift.services.handoff.responder_directory import (
    InMemoryResponderDirectory,
    ResponderDirectory,
)
from mindshift.services.notifications.fanout import NotificationFanout
from mindshift.services.orchestration.triage_service import Clock, TriageService
from mindshift.services.session.session_store import InMemorySessionStore, SessionStore


def build_triage_service(
    settings: Settings,
    archive: Optional[ArchiveSink] = None,
    directory: Optional[ResponderDirectory] = None,
    sentiment_scorer: Optional[SentimentScorer] = None,
    dispatcher: Optional[EmergencyDispatcher] = None,
    session_store: Optional[SessionStore] = None,
    catalog: Optional[ProtocolCatalog] = None,
    clock: Clock = utcnow,
) -> TriageService:
    """
    Build a TriageService with in-memory collaborators unless given.

    Args:
        settings: Application settings
        archive: Archive sink (defaults to InMemoryArchiveSink)
        directory: Responder directory (defaults to an empty in-memory one)
        sentiment_scorer: Sentiment scorer (defaults to VADER)
        dispatcher: Emergency dispatcher (defaults to the logging dispatcher)
        session_store: Session store (defaults to InMemorySessionStore)
        catalog: Protocol catalog (defaults to the built-in one, or catalog_path)
        clock: Time source shared by every component
    """
    if catalog is None:
        catalog = ProtocolCatalog.load(settings.classifier.catalog_path)
    if archive is None:
        archive = InMemoryArchiveSink()
    if sentiment_scorer is None:
        sentiment_scorer = VaderSentimentScorer()

    fanout = NotificationFanout(settings.notifications)
    store = session_store
    if store is None:
        store = InMemorySessionStore(settings.session, clock=clock)
    resolver = CrisisResourceResolver(settings.escalation.crisis_resources_path)

    escalation = CrisisEscalationEngine(
        session_store=store,
        fanout=fanout,
        archive=archive,
        dispatcher=dispatcher,
        resource_resolver=resolver,
        settings=settings.escalation,
        clock=clock,
        country_code=settings.default_country_code,
    )
    handoffs = HandoffMatcher(
        directory=directory or InMemoryResponderDirectory(),
        fanout=fanout,
        archive=archive,
        settings=settings.handoff,
        clock=clock,
    )

    return TriageService(
        settings=settings,
        catalog=catalog,
        classifier=MessageClassifier(catalog, settings.classifier),
        sentiment_scorer=sentiment_scorer,
        emotion_detector=EmotionDetector(),
        session_store=store,
        escalation=escalation,
        handoffs=handoffs,
        fanout=fanout,
        archive=archive,
        resource_resolver=resolver,
        clock=clock,
    )
