"""Metrics infrastructure package."""

from mindshift.infrastructure.metrics.prometheus_metrics import (
    # Classification metrics
    CLASSIFICATIONS_TOTAL,
    DEGRADED_OPERATIONS_TOTAL,
    # Session metrics
    ACTIVE_SESSIONS,
    CONCERNING_PATTERNS_TOTAL,
    # Crisis metrics
    CRISIS_ALERTS_TOTAL,
    ACTIVE_CRISIS_ALERTS,
    ACKNOWLEDGEMENT_LATENCY,
    EMERGENCY_DISPATCHES_TOTAL,
    # Handoff metrics
    HANDOFF_REQUESTS_TOTAL,
    HANDOFF_QUEUE_DEPTH,
    # Notification metrics
    NOTIFICATIONS_PUBLISHED_TOTAL,
    NOTIFICATIONS_DROPPED_TOTAL,
    # Helpers
    track_classification,
    track_crisis_alert,
    track_handoff,
    track_degraded,
    update_system_info,
    # Router
    metrics_router,
)

__all__ = [
    "CLASSIFICATIONS_TOTAL",
    "DEGRADED_OPERATIONS_TOTAL",
    "ACTIVE_SESSIONS",
    "CONCERNING_PATTERNS_TOTAL",
    "CRISIS_ALERTS_TOTAL",
    "ACTIVE_CRISIS_ALERTS",
    "ACKNOWLEDGEMENT_LATENCY",
    "EMERGENCY_DISPATCHES_TOTAL",
    "HANDOFF_REQUESTS_TOTAL",
    "HANDOFF_QUEUE_DEPTH",
    "NOTIFICATIONS_PUBLISHED_TOTAL",
    "NOTIFICATIONS_DROPPED_TOTAL",
    "track_classification",
    "track_crisis_alert",
    "track_handoff",
    "track_degraded",
    "update_system_info",
    "metrics_router",
]
