"""
Prometheus Metrics

Metrics for triage core observability.
Exposes metrics at /metrics endpoint for Prometheus scraping.

ARCHITECTURE: Metrics are decoupled from business logic.
Only increment/observe; never block on metrics operations.
"""

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)
from fastapi import APIRouter, Response

from mindshift.config.logging_config import get_logger

logger = get_logger(__name__)

# =============================================================================
# CLASSIFICATION METRICS
# =============================================================================

CLASSIFICATIONS_TOTAL = Counter(
    "mindshift_classifications_total",
    "Classified messages by matched protocol category",
    ["category"],  # protocol category, or "none"
)

DEGRADED_OPERATIONS_TOTAL = Counter(
    "mindshift_degraded_operations_total",
    "Operations that proceeded without an unavailable upstream",
    ["upstream"],  # sentiment_scorer, responder_directory
)

# =============================================================================
# SESSION METRICS
# =============================================================================

ACTIVE_SESSIONS = Gauge(
    "mindshift_active_sessions",
    "Number of sessions held by the session store",
)

CONCERNING_PATTERNS_TOTAL = Counter(
    "mindshift_concerning_patterns_total",
    "Emotional trajectories flagged as concerning",
    ["trend"],  # worsening, improving, stable
)

# =============================================================================
# CRISIS ESCALATION METRICS
# =============================================================================

CRISIS_ALERTS_TOTAL = Counter(
    "mindshift_crisis_alerts_total",
    "Crisis alert lifecycle events",
    ["outcome"],  # opened, updated, resolved, escalated
)

ACTIVE_CRISIS_ALERTS = Gauge(
    "mindshift_active_crisis_alerts",
    "Crisis alerts currently awaiting acknowledgement",
)

ACKNOWLEDGEMENT_LATENCY = Histogram(
    "mindshift_crisis_acknowledgement_latency_seconds",
    "Time from alert opening to responder acknowledgement",
    buckets=[5, 15, 30, 60, 90, 120, 300],
)

EMERGENCY_DISPATCHES_TOTAL = Counter(
    "mindshift_emergency_dispatches_total",
    "Emergency fallback dispatches",
    ["status"],  # dispatched, failed
)

# =============================================================================
# HANDOFF METRICS
# =============================================================================

HANDOFF_REQUESTS_TOTAL = Counter(
    "mindshift_handoff_requests_total",
    "Handoff request transitions by resulting status",
    ["status"],  # assigned, queued, expired, cancelled
)

HANDOFF_QUEUE_DEPTH = Gauge(
    "mindshift_handoff_queue_depth",
    "Queued handoff requests per specialty bucket",
    ["bucket"],
)

# =============================================================================
# NOTIFICATION METRICS
# =============================================================================

NOTIFICATIONS_PUBLISHED_TOTAL = Counter(
    "mindshift_notifications_published_total",
    "Events published to the fan-out",
    ["event_type"],
)

NOTIFICATIONS_DROPPED_TOTAL = Counter(
    "mindshift_notifications_dropped_total",
    "Events dropped before reaching a subscriber",
    ["reason"],  # queue_full, handler_error, closed
)

# =============================================================================
# SYSTEM INFO
# =============================================================================

SYSTEM_INFO = Info(
    "mindshift_system",
    "Triage core information",
)

SYSTEM_INFO.info({
    "version": "0.1.0",
    "environment": "development",  # Updated at runtime
})


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def track_classification(category: str | None) -> None:
    """Record a classified message."""
    CLASSIFICATIONS_TOTAL.labels(category=category or "none").inc()


def track_crisis_alert(outcome: str) -> None:
    """Record a crisis alert lifecycle event and keep the active gauge in step."""
    CRISIS_ALERTS_TOTAL.labels(outcome=outcome).inc()
    if outcome == "opened":
        ACTIVE_CRISIS_ALERTS.inc()
    elif outcome in ("resolved", "escalated"):
        ACTIVE_CRISIS_ALERTS.dec()


def track_handoff(status: str) -> None:
    """Record a handoff transition."""
    HANDOFF_REQUESTS_TOTAL.labels(status=status).inc()


def track_degraded(upstream: str) -> None:
    """Record an operation that ran without an upstream collaborator."""
    DEGRADED_OPERATIONS_TOTAL.labels(upstream=upstream).inc()


# =============================================================================
# METRICS ENDPOINT
# =============================================================================

metrics_router = APIRouter(tags=["metrics"])


@metrics_router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format for scraping.
    """
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST,
    )


def update_system_info(environment: str, version: str = "0.1.0") -> None:
    """Update system info metric with current environment."""
    SYSTEM_INFO.info({
        "version": version,
        "environment": environment,
    })
