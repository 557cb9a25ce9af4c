"""Monitoring infrastructure package."""

from mindshift.infrastructure.monitoring.sentry_integration import (
    capture_alert_event,
    capture_alert_exception,
    init_sentry,
)

__all__ = [
    "init_sentry",
    "capture_alert_event",
    "capture_alert_exception",
]
