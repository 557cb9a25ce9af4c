"""
Session Domain Model

Per-conversation mutable state: ordered turn history, emotional
trajectory, technique usage and the current risk level.

PRIVACY: Turns carry raw user messages. Snapshots exposed to UI and
analytics consumers never include message content.

SAFETY-CRITICAL: current_risk_level feeds escalation decisions.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Sequence
from uuid import UUID

from mindshift.domain.exceptions import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SentimentReading:
    """
    Output of the external sentiment scorer.

    Attributes:
        score: Polarity in [-1.0, 1.0]
        intensity: Strength in [0.0, 1.0]
    """

    score: float
    intensity: float

    def __post_init__(self) -> None:
        if not -1.0 <= self.score <= 1.0:
            raise ValidationError(
                f"Sentiment score {self.score} outside [-1, 1]", field="score"
            )
        if not 0.0 <= self.intensity <= 1.0:
            raise ValidationError(
                f"Sentiment intensity {self.intensity} outside [0, 1]",
                field="intensity",
            )


@dataclass(frozen=True)
class DetectedEmotion:
    """Emotion label detected in a single message."""

    emotion: str
    intensity: float


@dataclass(frozen=True)
class EmotionEntry:
    """One point on the session's emotional trajectory."""

    emotion: str
    intensity: float
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "emotion": self.emotion,
            "intensity": self.intensity,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class Turn:
    """
    One classified message exchange.

    Immutable once appended. turn_index is assigned by the Session
    Store at append time; -1 marks a turn not yet appended.
    """

    raw_message: str
    risk_score: int = 0
    matched_protocol_id: Optional[str] = None
    sentiment: Optional[SentimentReading] = None
    detected_emotions: tuple[DetectedEmotion, ...] = field(default_factory=tuple)
    timestamp: datetime = field(default_factory=utcnow)
    turn_index: int = -1


def compute_risk_level(
    risk_scores: Sequence[int],
    window: int,
    decay_turns: int,
) -> int:
    """
    Trailing-window maximum with linear decay.

    The newest `window` turns count at full weight. Older turns lose
    weight linearly over the next `decay_turns` turns and stop counting
    after that, so one historical crisis message cannot keep a session
    flagged forever.

    Args:
        risk_scores: Turn risk scores, oldest first
        window: Turns counted at full weight
        decay_turns: Turns over which weight falls to zero

    Returns:
        Risk level in 0-5
    """
    level = 0.0
    for age, score in enumerate(reversed(risk_scores)):
        if age < window:
            weight = 1.0
        elif age < window + decay_turns:
            weight = (window + decay_turns - age) / (decay_turns + 1)
        else:
            break
        level = max(level, score * weight)
    return int(level)


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only session view for UI and analytics consumers."""

    session_id: str
    user_id: Optional[str]
    turn_count: int
    current_risk_level: int
    technique_usage: dict[str, int]
    crisis_mode: bool
    started_at: datetime
    last_activity_at: datetime
    active_alert_id: Optional[UUID] = None

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "turn_count": self.turn_count,
            "current_risk_level": self.current_risk_level,
            "technique_usage": dict(self.technique_usage),
            "crisis_mode": self.crisis_mode,
            "started_at": self.started_at.isoformat(),
            "last_activity_at": self.last_activity_at.isoformat(),
            "active_alert_id": str(self.active_alert_id) if self.active_alert_id else None,
        }


@dataclass
class Session:
    """
    Conversation state owned exclusively by the Session Store.

    Attributes:
        session_id: Caller-supplied session identifier
        user_id: Opaque user id, None for anonymous users
        turns: Append-only, strictly ordered by turn_index
        technique_usage_counts: technique -> times offered
        emotional_trajectory: Bounded, oldest entries evicted first
        current_risk_level: 0-5, recomputed on every append
        crisis_mode: True while an alert is active or after escalation
    """

    session_id: str
    user_id: Optional[str] = None
    trajectory_window: int = 100
    started_at: datetime = field(default_factory=utcnow)
    last_activity_at: datetime = field(default_factory=utcnow)
    turns: list[Turn] = field(default_factory=list)
    technique_usage_counts: dict[str, int] = field(default_factory=dict)
    emotional_trajectory: deque = field(init=False)
    current_risk_level: int = 0
    crisis_mode: bool = False
    active_alert_id: Optional[UUID] = None
    handoff_request_ids: list[UUID] = field(default_factory=list)
    ended_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.emotional_trajectory = deque(maxlen=self.trajectory_window)

    @property
    def turn_count(self) -> int:
        return len(self.turns)

    @property
    def next_turn_index(self) -> int:
        return len(self.turns)

    @property
    def is_ended(self) -> bool:
        return self.ended_at is not None

    def recompute_risk(self, window: int, decay_turns: int) -> int:
        self.current_risk_level = compute_risk_level(
            [turn.risk_score for turn in self.turns], window, decay_turns
        )
        return self.current_risk_level

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            user_id=self.user_id,
            turn_count=self.turn_count,
            current_risk_level=self.current_risk_level,
            technique_usage=dict(self.technique_usage_counts),
            crisis_mode=self.crisis_mode,
            started_at=self.started_at,
            last_activity_at=self.last_activity_at,
            active_alert_id=self.active_alert_id,
        )

    def to_archive_record(self) -> dict:
        """Summary written to the archive on session end. No message content."""
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "turn_count": self.turn_count,
            "max_risk_score": max((t.risk_score for t in self.turns), default=0),
            "technique_usage": dict(self.technique_usage_counts),
            "crisis_mode": self.crisis_mode,
        }
