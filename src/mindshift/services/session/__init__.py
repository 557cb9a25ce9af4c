"""Session store package."""

from mindshift.services.session.session_store import (
    InMemorySessionStore,
    SessionStore,
    validate_session_id,
)
from mindshift.services.session.trajectory_analyzer import (
    EmotionPatternReport,
    analyze_emotion_patterns,
    calculate_trend,
)

__all__ = [
    "SessionStore",
    "InMemorySessionStore",
    "validate_session_id",
    "EmotionPatternReport",
    "analyze_emotion_patterns",
    "calculate_trend",
]
