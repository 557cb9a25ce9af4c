"""
Unit Tests for Domain Models

Tests risk decay, alert state transitions and model validation.
"""

from datetime import datetime, timedelta, timezone

import pytest

from mindshift.domain.enums.lifecycle import AlertStatus
from mindshift.domain.exceptions import ValidationError
from mindshift.domain.models.crisis_alert import CrisisAlert
from mindshift.domain.models.session import SentimentReading, Session, compute_risk_level

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _alert(**overrides) -> CrisisAlert:
    fields = dict(
        session_id="s1",
        severity=4,
        source_message="help",
        opened_at=NOW,
        deadline_at=NOW + timedelta(seconds=120),
        indicators=["keyword:panic"],
    )
    fields.update(overrides)
    return CrisisAlert(**fields)


class TestRiskLevel:
    """Trailing-window maximum with linear decay."""

    def test_empty_history_is_zero(self):
        assert compute_risk_level([], window=5, decay_turns=5) == 0

    def test_recent_turn_counts_fully(self):
        assert compute_risk_level([1, 5, 1], window=5, decay_turns=5) == 5

    def test_risk_decays_after_window(self):
        # Crisis turn is now 5 turns old: weight 5/6
        scores = [5, 0, 0, 0, 0, 0]

        assert compute_risk_level(scores, window=5, decay_turns=5) == 4

    def test_old_turn_stops_counting(self):
        scores = [5] + [0] * 10

        assert compute_risk_level(scores, window=5, decay_turns=5) == 0

    def test_no_decay_drops_immediately(self):
        scores = [5, 0, 0]

        assert compute_risk_level(scores, window=2, decay_turns=0) == 0

    def test_session_recompute_uses_turn_scores(self):
        session = Session(session_id="s1")

        assert session.recompute_risk(5, 5) == 0
        assert session.current_risk_level == 0


class TestSentimentReading:
    """Scorer output validation."""

    @pytest.mark.parametrize("score,intensity", [(-1.5, 0.2), (0.2, 1.2), (0.0, -0.1)])
    def test_out_of_range_rejected(self, score, intensity):
        with pytest.raises(ValidationError):
            SentimentReading(score=score, intensity=intensity)

    def test_bounds_accepted(self):
        reading = SentimentReading(score=-1.0, intensity=1.0)

        assert reading.score == -1.0


class TestCrisisAlertTransitions:
    """An alert leaves ACTIVE exactly once."""

    def test_first_transition_wins(self):
        alert = _alert()

        assert alert.transition_from_active(AlertStatus.RESOLVED, NOW, "acknowledged", "r1")
        assert not alert.transition_from_active(AlertStatus.ESCALATED, NOW, "timeout")

        assert alert.status is AlertStatus.RESOLVED
        assert alert.acknowledged_by == "r1"
        assert alert.resolution_reason == "acknowledged"

    def test_escalation_records_close_time(self):
        alert = _alert()
        later = NOW + timedelta(seconds=121)

        assert alert.transition_from_active(AlertStatus.ESCALATED, later, "timeout")
        assert alert.closed_at == later
        assert alert.acknowledged_by is None

    def test_cannot_reopen(self):
        with pytest.raises(ValueError):
            _alert().transition_from_active(AlertStatus.ACTIVE, NOW, "reopen")

    def test_merge_takes_max_severity_and_unique_indicators(self):
        alert = _alert(severity=4)
        deadline = alert.deadline_at

        assert alert.merge(5, ["keyword:panic", "keyword:kill myself"])
        assert alert.merge(3, ["category:crisis"])

        assert alert.severity == 5
        assert alert.indicators == ["keyword:panic", "keyword:kill myself", "category:crisis"]
        assert alert.deadline_at == deadline

    def test_merge_into_closed_alert_refused(self):
        alert = _alert()
        alert.transition_from_active(AlertStatus.ESCALATED, NOW, "timeout")

        assert not alert.merge(5, ["x"])
        assert alert.indicators == ["keyword:panic"]

    def test_late_acknowledgement_recorded(self):
        alert = _alert()
        alert.transition_from_active(AlertStatus.ESCALATED, NOW, "timeout")
        alert.record_late_acknowledgement("r9", NOW)

        data = alert.to_dict()

        assert data["status"] == "escalated"
        assert data["late_acknowledgements"][0]["responder_id"] == "r9"
