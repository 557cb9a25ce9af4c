"""
Unit Tests for Log and Error-Report Redaction

PRIVACY: Message bodies and credentials must never reach log storage
or Sentry.
"""

from mindshift.config.logging_config import REDACTED, is_redacted_key, redact_mapping
from mindshift.infrastructure.monitoring.sentry_integration import before_send


class TestLogRedaction:

    def test_message_bodies_blanked(self):
        redacted = redact_mapping({
            "session_id": "s1",
            "raw_message": "I want to kill myself",
            "risk_score": 5,
        })

        assert redacted == {"session_id": "s1", "raw_message": REDACTED, "risk_score": 5}

    def test_nested_and_listed_values(self):
        redacted = redact_mapping({
            "alert": {"source_message": "private", "severity": 5},
            "turns": [{"raw_message": "private", "turn_index": 0}],
        })

        assert redacted["alert"] == {"source_message": REDACTED, "severity": 5}
        assert redacted["turns"] == [{"raw_message": REDACTED, "turn_index": 0}]

    def test_key_matching_ignores_case_and_dashes(self):
        assert is_redacted_key("X-API-Key")
        assert is_redacted_key("Authorization")
        assert not is_redacted_key("alert_id")


class TestSentryScrubbing:

    def test_request_body_and_headers_scrubbed(self):
        event = {
            "request": {
                "data": {"message": "hi", "raw_message": "private"},
                "headers": {"Authorization": "Bearer abc.def"},
            },
            "extra": {"note": "token=abc123", "severity": 5},
        }

        scrubbed = before_send(event, {})

        assert scrubbed["request"]["data"]["raw_message"] == REDACTED
        assert scrubbed["request"]["headers"]["Authorization"] == REDACTED
        assert scrubbed["extra"] == {"note": REDACTED, "severity": 5}

    def test_breadcrumb_data_scrubbed(self):
        event = {"breadcrumbs": {"values": [{"data": {"source_message": "private"}}]}}

        scrubbed = before_send(event, {})

        assert scrubbed["breadcrumbs"]["values"][0]["data"] == {"source_message": REDACTED}
