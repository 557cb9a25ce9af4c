"""Tests configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from mindshift.config import Settings
from mindshift.config.settings import (
    EscalationSettings,
    HandoffSettings,
    NotificationSettings,
    SessionSettings,
)
from mindshift.domain.enums.lifecycle import ResponderAvailability
from mindshift.domain.exceptions import UpstreamUnavailable
from mindshift.domain.models.handoff import Responder
from mindshift.domain.models.session import SentimentReading
from mindshift.infrastructure.archive.archive_sink import InMemoryArchiveSink
from mindshift.services.catalog.protocol_catalog import ProtocolCatalog
from mindshift.services.classification.sentiment import SentimentScorer
from mindshift.services.escalation.crisis_engine import CrisisEscalationEngine
from mindshift.services.escalation.emergency_dispatcher import LoggingEmergencyDispatcher
from mindshift.services.notifications.fanout import NotificationFanout
from mindshift.services.session.session_store import InMemorySessionStore


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FixedSentimentScorer(SentimentScorer):
    """Returns the same reading for every message."""

    name = "fixed"

    def __init__(self, score: float = 0.0, intensity: float = 0.0) -> None:
        self.reading = SentimentReading(score=score, intensity=intensity)

    async def score(self, text: str) -> SentimentReading:
        return self.reading


class FailingSentimentScorer(SentimentScorer):
    """Always unavailable."""

    name = "failing"

    async def score(self, text: str) -> SentimentReading:
        raise UpstreamUnavailable(self.name, "scorer offline")


class EventRecorder:
    """Fan-out handler collecting delivered events."""

    def __init__(self) -> None:
        self.events = []

    async def __call__(self, event) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [e.event_type.value for e in self.events]


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with default policy values."""
    return Settings(env="development", debug=True)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="session")
def catalog() -> ProtocolCatalog:
    return ProtocolCatalog.load()


@pytest.fixture
def fanout():
    return NotificationFanout(NotificationSettings())


@pytest.fixture
def recorder(fanout) -> EventRecorder:
    handler = EventRecorder()
    fanout.subscribe("monitor", handler)
    return handler


@pytest.fixture
def store(clock) -> InMemorySessionStore:
    return InMemorySessionStore(SessionSettings(), clock=clock)


@pytest.fixture
def archive() -> InMemoryArchiveSink:
    return InMemoryArchiveSink()


@pytest.fixture
def dispatcher() -> LoggingEmergencyDispatcher:
    return LoggingEmergencyDispatcher()


@pytest.fixture
async def engine(store, fanout, archive, dispatcher, clock):
    """Escalation engine on the fake clock with the default 120s timeout."""
    escalation = CrisisEscalationEngine(
        session_store=store,
        fanout=fanout,
        archive=archive,
        dispatcher=dispatcher,
        settings=EscalationSettings(),
        clock=clock,
    )
    yield escalation
    await escalation.shutdown()
    await fanout.close()


@pytest.fixture
def handoff_settings() -> HandoffSettings:
    return HandoffSettings()


def _make_responder(
    responder_id: str,
    specialties: tuple[str, ...] = ("general",),
    languages: tuple[str, ...] = ("en",),
    availability: ResponderAvailability = ResponderAvailability.IMMEDIATE,
    wait: int = 0,
) -> Responder:
    return Responder(
        id=responder_id,
        specialties=specialties,
        languages=languages,
        availability=availability,
        estimated_wait_minutes=wait,
    )


@pytest.fixture
def make_responder():
    """Factory for directory entries."""
    return _make_responder


@pytest.fixture
def fixed_scorer():
    """Factory for a scorer returning one fixed reading."""
    return FixedSentimentScorer


@pytest.fixture
def failing_scorer() -> FailingSentimentScorer:
    return FailingSentimentScorer()


@pytest.fixture
def event_recorder():
    """Factory for fan-out handlers that collect events."""
    return EventRecorder
