"""
Session Store

Injectable store for per-conversation state. The in-memory
implementation keeps live sessions in a dict and evicts them on
explicit end or after an inactivity bound.

Writes for one session are serialized by the caller through
session_lock(); store methods never await while mutating, so each
individual call is atomic with respect to other coroutines.

SAFETY-CRITICAL: current_risk_level is recomputed on every append and
drives crisis escalation.
"""

import asyncio
import dataclasses
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncContextManager, AsyncIterator, Callable, Optional
from uuid import UUID

from mindshift.config.logging_config import get_logger
from mindshift.config.settings import SessionSettings
from mindshift.domain.exceptions import SessionNotFoundError, ValidationError
from mindshift.domain.models.session import (
    EmotionEntry,
    Session,
    SessionSnapshot,
    Turn,
    utcnow,
)
from mindshift.infrastructure.metrics.prometheus_metrics import ACTIVE_SESSIONS

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def validate_session_id(session_id: Optional[str]) -> str:
    """Reject missing or blank session ids."""
    if session_id is None or not str(session_id).strip():
        raise ValidationError("session_id is required", field="session_id")
    return str(session_id).strip()


class SessionStore(ABC):
    """Abstract session store."""

    @abstractmethod
    def session_lock(self, session_id: str) -> AsyncContextManager[None]:
        """Per-session mutex serializing writers of one session."""

    @abstractmethod
    async def get(self, session_id: str) -> Optional[Session]:
        """Return a live session without creating it."""

    @abstractmethod
    async def get_or_create(self, session_id: str, user_id: Optional[str] = None) -> Session:
        """Return the live session, creating it on first touch."""

    @abstractmethod
    async def append_turn(self, session_id: str, turn: Turn) -> Session:
        """Append a turn, assign its index and recompute the risk level."""

    @abstractmethod
    async def record_emotion(self, session_id: str, emotion: str, intensity: float) -> Session:
        """Append one entry to the emotional trajectory."""

    @abstractmethod
    async def increment_technique(self, session_id: str, technique: str) -> int:
        """Count one more use of a technique; returns the new count."""

    @abstractmethod
    async def set_crisis_mode(
        self,
        session_id: str,
        crisis_mode: bool,
        alert_id: Optional[UUID] = None,
    ) -> None:
        """Set the crisis flag and the linked active alert."""

    @abstractmethod
    async def link_handoff(self, session_id: str, request_id: UUID) -> None:
        """Record a handoff request filed for the session."""

    @abstractmethod
    async def snapshot(self, session_id: str) -> SessionSnapshot:
        """Read-only view; raises SessionNotFoundError for unknown ids."""

    @abstractmethod
    async def end_session(self, session_id: str) -> Session:
        """Remove a session and return its final state."""

    @abstractmethod
    async def expire_inactive(self, now: Optional[datetime] = None) -> list[Session]:
        """Remove sessions idle past the inactivity bound."""


class InMemorySessionStore(SessionStore):
    """
    Dict-backed session store.

    Usage:
        store = InMemorySessionStore(settings.session)
        async with store.session_lock(session_id):
            session = await store.append_turn(session_id, turn)
    """

    def __init__(
        self,
        settings: Optional[SessionSettings] = None,
        clock: Clock = utcnow,
    ) -> None:
        self.settings = settings or SessionSettings()
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        # Coroutines holding or waiting for each lock
        self._lock_users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    @asynccontextmanager
    async def session_lock(self, session_id: str) -> AsyncIterator[None]:
        """
        Hold the per-session mutex.

        The lock outlives end_session() and expiry while any coroutine
        holds or waits for it, so late writers still queue on the same
        mutex instead of racing on a fresh one.
        """
        session_id = validate_session_id(session_id)
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        self._lock_users[session_id] = self._lock_users.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[session_id] -= 1
            if session_id not in self._sessions:
                self._discard_lock(session_id)

    def _lock_in_use(self, session_id: str) -> bool:
        return self._lock_users.get(session_id, 0) > 0

    def _discard_lock(self, session_id: str) -> None:
        if self._lock_in_use(session_id):
            return
        self._locks.pop(session_id, None)
        self._lock_users.pop(session_id, None)

    def _require(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def _create(self, session_id: str, user_id: Optional[str]) -> Session:
        now = self._clock()
        session = Session(
            session_id=session_id,
            user_id=user_id,
            trajectory_window=self.settings.trajectory_window,
            started_at=now,
            last_activity_at=now,
        )
        self._sessions[session_id] = session
        ACTIVE_SESSIONS.inc()
        logger.info("Session created", session_id=session_id, anonymous=user_id is None)
        return session

    async def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(validate_session_id(session_id))

    async def get_or_create(self, session_id: str, user_id: Optional[str] = None) -> Session:
        session_id = validate_session_id(session_id)
        session = self._sessions.get(session_id)
        if session is None:
            return self._create(session_id, user_id)
        if session.user_id is None and user_id is not None:
            session.user_id = user_id
        return session

    async def append_turn(self, session_id: str, turn: Turn) -> Session:
        session = await self.get_or_create(session_id)

        appended = dataclasses.replace(turn, turn_index=session.next_turn_index)
        session.turns.append(appended)
        session.last_activity_at = appended.timestamp

        for detected in appended.detected_emotions:
            session.emotional_trajectory.append(
                EmotionEntry(detected.emotion, detected.intensity, appended.timestamp)
            )

        previous = session.current_risk_level
        level = session.recompute_risk(
            self.settings.risk_window_turns,
            self.settings.risk_decay_turns,
        )
        if level != previous:
            logger.info(
                "Session risk level changed",
                session_id=session.session_id,
                turn_index=appended.turn_index,
                previous_level=previous,
                risk_level=level,
            )
        return session

    async def record_emotion(self, session_id: str, emotion: str, intensity: float) -> Session:
        if not emotion or not emotion.strip():
            raise ValidationError("emotion label is required", field="emotion")
        if not 0.0 <= intensity <= 1.0:
            raise ValidationError(f"intensity {intensity} outside [0, 1]", field="intensity")

        session = await self.get_or_create(session_id)
        now = self._clock()
        session.emotional_trajectory.append(
            EmotionEntry(emotion.strip().lower(), float(intensity), now)
        )
        session.last_activity_at = now
        return session

    async def increment_technique(self, session_id: str, technique: str) -> int:
        session = self._require(validate_session_id(session_id))
        count = session.technique_usage_counts.get(technique, 0) + 1
        session.technique_usage_counts[technique] = count
        return count

    async def set_crisis_mode(
        self,
        session_id: str,
        crisis_mode: bool,
        alert_id: Optional[UUID] = None,
    ) -> None:
        session = self._sessions.get(validate_session_id(session_id))
        if session is None:
            # Session ended while an alert was still open
            logger.info("Crisis mode change for evicted session", session_id=session_id)
            return
        session.crisis_mode = crisis_mode
        session.active_alert_id = alert_id

    async def link_handoff(self, session_id: str, request_id: UUID) -> None:
        session = self._sessions.get(validate_session_id(session_id))
        if session is not None:
            session.handoff_request_ids.append(request_id)

    async def snapshot(self, session_id: str) -> SessionSnapshot:
        return self._require(validate_session_id(session_id)).snapshot()

    async def end_session(self, session_id: str) -> Session:
        session_id = validate_session_id(session_id)
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        self._discard_lock(session_id)
        session.ended_at = self._clock()
        ACTIVE_SESSIONS.dec()
        logger.info(
            "Session ended",
            session_id=session_id,
            turn_count=session.turn_count,
        )
        return session

    async def expire_inactive(self, now: Optional[datetime] = None) -> list[Session]:
        now = now or self._clock()
        cutoff = now - timedelta(hours=self.settings.inactivity_expiry_hours)

        expired = []
        for session_id, session in list(self._sessions.items()):
            if session.last_activity_at > cutoff:
                continue
            if self._lock_in_use(session_id):
                continue
            del self._sessions[session_id]
            self._discard_lock(session_id)
            session.ended_at = now
            ACTIVE_SESSIONS.dec()
            expired.append(session)

        if expired:
            logger.info("Expired inactive sessions", count=len(expired))
        return expired
