"""
Sentry Error Tracking

Reports escalation failures and unacknowledged crisis alerts to Sentry,
tagged with the alert and session they concern.

SAFETY-CRITICAL: An alert that reaches emergency fallback, or a
countdown that could not be armed, must be visible to on-call staff
even when nobody is reading logs.

PRIVACY: Events pass through the same key redaction as log lines.
Alert source messages are never attached.
"""

import re
from typing import Any, Optional

import sentry_sdk
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from mindshift.config.logging_config import REDACTED, get_logger, redact_mapping
from mindshift.domain.models.crisis_alert import CrisisAlert

logger = get_logger(__name__)

# Credentials that can leak into free-form strings such as headers
_INLINE_SECRET = re.compile(
    r"(bearer\s+[\w\-.~+/]+=*)|((password|token|secret|api[_-]?key)[\"']?\s*[:=]\s*[\"']?[^\"'\s,}]+)",
    re.IGNORECASE,
)


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _scrub(item) for key, item in redact_mapping(value).items()}
    if isinstance(value, list):
        return [_scrub(item) for item in value]
    if isinstance(value, str):
        return _INLINE_SECRET.sub(REDACTED, value)
    return value


def before_send(event: dict, hint: dict) -> Optional[dict]:
    """Scrub request bodies, headers, breadcrumbs and extras."""
    request = event.get("request")
    if isinstance(request, dict):
        for part in ("data", "headers", "cookies"):
            if isinstance(request.get(part), dict):
                request[part] = _scrub(request[part])

    for breadcrumb in event.get("breadcrumbs", {}).get("values", []):
        if isinstance(breadcrumb.get("data"), dict):
            breadcrumb["data"] = _scrub(breadcrumb["data"])

    if isinstance(event.get("extra"), dict):
        event["extra"] = _scrub(event["extra"])
    return event


def init_sentry(
    dsn: str,
    environment: str,
    release: str,
    sample_rate: float = 1.0,
    traces_sample_rate: float = 0.1,
) -> bool:
    """
    Initialize the Sentry SDK.

    Returns:
        False when no DSN is configured and tracking stays off
    """
    if not dsn:
        logger.warning("Sentry DSN not configured, error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        sample_rate=sample_rate,
        traces_sample_rate=traces_sample_rate,
        before_send=before_send,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            AsyncioIntegration(),
            # structlog already records everything; only explicit captures become events
            LoggingIntegration(level=None, event_level=None),
        ],
        send_default_pii=False,
        attach_stacktrace=True,
        max_breadcrumbs=50,
    )
    logger.info("Sentry initialized", environment=environment, release=release)
    return True


def _alert_scope(scope: "sentry_sdk.Scope", alert: CrisisAlert, extra: Optional[dict]) -> None:
    scope.set_tag("category", "safety")
    scope.set_tag("session_id", alert.session_id)
    scope.set_tag("alert_id", str(alert.alert_id))
    scope.set_tag("alert_status", alert.status.value)
    scope.set_extra("severity", alert.severity)
    scope.set_extra("indicators", list(alert.indicators))
    for key, value in _scrub(extra or {}).items():
        scope.set_extra(key, value)


def capture_alert_event(
    alert: CrisisAlert,
    message: str,
    level: str = "warning",
    extra: Optional[dict] = None,
) -> None:
    """Record a safety event for ``alert``. No-op while Sentry is disabled."""
    with sentry_sdk.new_scope() as scope:
        _alert_scope(scope, alert, extra)
        sentry_sdk.capture_message(message, level=level)


def capture_alert_exception(
    error: BaseException,
    alert: CrisisAlert,
    extra: Optional[dict] = None,
) -> Optional[str]:
    """Record an exception raised while handling ``alert``; returns the event id."""
    with sentry_sdk.new_scope() as scope:
        _alert_scope(scope, alert, extra)
        return sentry_sdk.capture_exception(error)
