"""
Triage Logging Configuration

structlog setup shared by the API process and the maintenance loop.
Development gets a coloured console renderer, every other environment
emits one JSON object per line.

PRIVACY: User utterances are clinical data. The redaction processor
blanks message bodies and credentials so that log storage only ever
sees identifiers, scores and protocol ids.

Usage:
    configure_logging(settings)
    logger = get_logger(__name__)
    logger.info("Turn classified", session_id=session_id, risk_level=3)
"""

import logging
import sys
from typing import Any, Mapping

import structlog

from mindshift.config.settings import Settings

REDACTED = "[REDACTED]"

# Substrings of field names that are never written out verbatim.
# Shared with the Sentry scrubber.
REDACTED_KEY_FRAGMENTS: frozenset[str] = frozenset({
    "password",
    "token",
    "secret",
    "api_key",
    "authorization",
    "credential",
    "dsn",
    "raw_message",
    "source_message",
    "message_text",
    "utterance",
})

SERVICE_NAME = "mindshift-triage"

NOISY_LOGGERS = ("uvicorn", "uvicorn.access", "sqlalchemy.engine", "asyncio", "aiosqlite")


def is_redacted_key(key: Any) -> bool:
    """True if values stored under ``key`` must not leave the process."""
    normalized = str(key).lower().replace("-", "_")
    return any(fragment in normalized for fragment in REDACTED_KEY_FRAGMENTS)


def redact_mapping(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with sensitive values blanked, recursively."""
    return {key: _redact(key, value) for key, value in data.items()}


def _redact(key: Any, value: Any) -> Any:
    if is_redacted_key(key):
        return REDACTED
    if isinstance(value, Mapping):
        return redact_mapping(value)
    if isinstance(value, (list, tuple)):
        return [_redact(key, item) for item in value]
    return value


def _redact_processor(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    return redact_mapping(event_dict)


def _service_processor(service: str, version: str):
    def add_service(
        logger: logging.Logger,
        method_name: str,
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        event_dict.setdefault("service", service)
        event_dict.setdefault("version", version)
        return event_dict

    return add_service


def build_processors(settings: Settings) -> list[Any]:
    """
    Processor chain for the configured environment.

    Redaction runs after context merging so correlation and session ids
    bound through contextvars are covered as well.
    """
    from mindshift import __version__

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        _redact_processor,
        _service_processor(SERVICE_NAME, __version__),
    ]

    if settings.env == "development":
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]
    return processors


def configure_logging(settings: Settings) -> None:
    """Configure structlog and the stdlib root logger once at startup."""
    structlog.configure(
        processors=build_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_correlation_id(correlation_id: str) -> None:
    """Attach a request correlation id to every log line in this context."""
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
