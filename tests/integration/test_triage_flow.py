"""
Integration Tests for the Triage Flow

Drives TriageService end to end with in-memory collaborators:
classification, crisis escalation, crisis handoff, emotion updates,
session end and maintenance.

SAFETY_NOTE: These scenarios cover the crisis path from the first
message to acknowledgement or emergency fallback.
"""

import pytest

from mindshift.domain.enums.lifecycle import (
    AlertStatus,
    HandoffStatus,
    HandoffUrgency,
    ResponderAvailability,
)
from mindshift.domain.exceptions import SessionNotFoundError, ValidationError
from mindshift.domain.models.handoff import HandoffCriteria
from mindshift.services.classification.message_classifier import SENTIMENT_UNAVAILABLE
from mindshift.services.handoff.responder_directory import InMemoryResponderDirectory
from mindshift.services.orchestration.factory import build_triage_service
from mindshift.services.orchestration.maintenance import MaintenanceLoop


@pytest.fixture
def directory() -> InMemoryResponderDirectory:
    return InMemoryResponderDirectory()


@pytest.fixture
async def service(test_settings, clock, fixed_scorer, archive, dispatcher, directory, catalog):
    triage = build_triage_service(
        test_settings,
        archive=archive,
        directory=directory,
        sentiment_scorer=fixed_scorer(),
        dispatcher=dispatcher,
        catalog=catalog,
        clock=clock,
    )
    yield triage
    await triage.shutdown()


@pytest.fixture
def monitor(service, event_recorder):
    handler = event_recorder()
    service.fanout.subscribe("monitor", handler)
    return handler


class TestConversationalTurns:
    """Ordinary, non-crisis turns."""

    async def test_exam_anxiety_gets_protocol_response(self, service, catalog):
        outcome = await service.handle_message("s1", "I'm so anxious about my exam")

        protocol = catalog.get("anxiety_general")
        assert outcome.classification.protocol_id == "anxiety_general"
        assert outcome.risk_level == 2
        assert outcome.response_text == protocol.response_template
        assert outcome.alert is None
        assert outcome.crisis_resources == []

        snapshot = await service.get_snapshot("s1")
        assert snapshot.technique_usage == {protocol.technique: 1}

    async def test_unmatched_message_gets_fallback_line(self, service, catalog):
        first = await service.handle_message("s1", "the weather is nice")
        second = await service.handle_message("s1", "the weather is still nice")

        assert first.response_text == catalog.fallback_response(0)
        assert second.response_text == catalog.fallback_response(1)
        assert second.turn_index == 1

    async def test_sentiment_outage_degrades_to_keywords(
        self, test_settings, clock, failing_scorer, catalog
    ):
        triage = build_triage_service(
            test_settings, sentiment_scorer=failing_scorer, catalog=catalog, clock=clock
        )
        try:
            outcome = await triage.handle_message("s1", "I can't sleep")
        finally:
            await triage.shutdown()

        assert outcome.classification.protocol_id == "insomnia_general"
        assert SENTIMENT_UNAVAILABLE in outcome.warnings

    async def test_blank_session_rejected(self, service):
        with pytest.raises(ValidationError):
            await service.handle_message("", "hello")

    async def test_message_event_carries_no_content(self, service, monitor):
        await service.handle_message("s1", "very private words")
        await service.fanout.drain()

        event = monitor.events[-1]
        assert event.event_type.value == "new_message"
        assert "very private words" not in str(event.to_dict())


class TestCrisisPath:
    """A crisis message opens an alert, a crisis handoff and resources."""

    async def test_suicidal_message_opens_alert_and_handoff(self, service, monitor):
        outcome = await service.handle_message("s1", "I want to kill myself", user_id="u1")
        await service.fanout.drain()

        assert outcome.risk_level == 5
        assert outcome.crisis_mode
        assert outcome.alert_opened
        assert outcome.alert.status is AlertStatus.ACTIVE
        assert any(r.contact == "988" for r in outcome.crisis_resources)

        handoff = outcome.handoff
        assert handoff.urgency is HandoffUrgency.HIGH
        assert handoff.bucket == "crisis"
        assert handoff.alert_id == outcome.alert.alert_id
        assert handoff.status is HandoffStatus.QUEUED
        assert outcome.alert.handoff_request_id == handoff.request_id

        assert "crisis_alert_opened" in monitor.types()
        assert "handoff_queued" in monitor.types()

    async def test_follow_up_turn_updates_same_alert(self, service):
        first = await service.handle_message("s1", "I'm having a panic attack")
        second = await service.handle_message("s1", "I want to die")

        assert first.alert_opened
        assert not second.alert_opened
        assert second.alert is first.alert
        assert second.alert.severity == 5
        assert second.handoff is None

    async def test_crisis_responder_assigned_immediately(self, service, directory, make_responder):
        directory.add(make_responder("crisis-1", specialties=("crisis",)))

        outcome = await service.handle_message("s1", "I want to kill myself")

        assert outcome.handoff.status is HandoffStatus.ASSIGNED
        assert outcome.handoff.assigned_responder_id == "crisis-1"

    async def test_acknowledgement_resolves_and_cancels_queued_handoff(self, service):
        outcome = await service.handle_message("s1", "I want to kill myself")

        alert = await service.acknowledge_alert(outcome.alert.alert_id, "r1")

        assert alert.status is AlertStatus.RESOLVED
        assert outcome.handoff.status is HandoffStatus.CANCELLED
        assert not (await service.get_snapshot("s1")).crisis_mode

    async def test_unacknowledged_alert_escalates_on_maintenance(self, service, clock, dispatcher):
        outcome = await service.handle_message("s1", "I want to kill myself")
        clock.advance(seconds=125)

        report = await service.run_maintenance()

        assert report.escalated_alerts == 1
        assert outcome.alert.status is AlertStatus.ESCALATED
        assert dispatcher.dispatched == [outcome.alert]
        assert (await service.get_snapshot("s1")).crisis_mode

    async def test_client_reported_crisis(self, service):
        alert = await service.report_crisis("s1", reason="panic_button", user_id="u1")

        assert alert.severity == 5
        assert alert.indicators == ["reported:panic_button"]
        assert alert.handoff_request_id is not None

    async def test_reported_severity_validated(self, service):
        with pytest.raises(ValidationError):
            await service.report_crisis("s1", severity=0)

    async def test_stand_down(self, service):
        alert = await service.report_crisis("s1")

        await service.stand_down(alert.alert_id)

        assert alert.resolution_reason == "user_safe"


class TestSessionsAndEmotions:

    async def test_join_then_end_session(self, service, archive, monitor):
        await service.join_session("s1", user_id="u1")
        request = await service.request_handoff("s1", HandoffCriteria(reason="talk"))

        snapshot = await service.end_session("s1")
        await service.fanout.drain()

        assert snapshot.user_id == "u1"
        assert request.status is HandoffStatus.CANCELLED
        assert archive.sessions[0]["session_id"] == "s1"
        assert monitor.types()[0] == "session_joined"
        assert monitor.types()[-1] == "session_ended"
        with pytest.raises(SessionNotFoundError):
            await service.get_snapshot("s1")

    async def test_concerning_emotion_pattern(self, service, monitor):
        for _ in range(4):
            report = await service.update_emotion("s1", ["anxiety"], 0.9)
        assert not report.concerning

        report = await service.update_emotion("s1", ["anxiety"], 0.9)
        await service.fanout.drain()

        assert report.concerning
        assert "concerning_pattern" in monitor.types()

    async def test_empty_emotion_list_rejected(self, service):
        with pytest.raises(ValidationError):
            await service.update_emotion("s1", [], 0.5)


class TestHandoffsAndMaintenance:

    async def test_released_responder_takes_queued_request(self, service, directory, make_responder):
        request = await service.request_handoff("s1", HandoffCriteria())
        directory.add(make_responder("r1", availability=ResponderAvailability.OFFLINE))

        assigned = await service.release_responder("r1")

        assert assigned is request
        assert request.status is HandoffStatus.ASSIGNED

    async def test_maintenance_expires_handoffs_and_sessions(self, service, clock, monitor):
        await service.join_session("s1")
        await service.join_session("s2")
        request = await service.request_handoff("s1", HandoffCriteria())
        clock.advance(hours=25)

        report = await service.run_maintenance()
        await service.fanout.drain()

        assert report.expired_handoffs == 1
        assert report.expired_sessions == 2
        assert request.status is HandoffStatus.EXPIRED
        expiry = [e for e in monitor.events if e.event_type.value == "handoff_expired"][0]
        assert expiry.payload["crisis_resources"]

    async def test_maintenance_loop_survives_failures(self, service):
        loop = MaintenanceLoop(service, interval_seconds=60)

        async def broken(now=None):
            raise RuntimeError("sweep failed")

        service.run_maintenance = broken
        await loop.run_once()

        assert loop.failures == 1

    async def test_maintenance_loop_start_stop(self, service):
        loop = MaintenanceLoop(service, interval_seconds=60)

        await loop.start()
        assert loop.running

        await loop.stop()
        assert not loop.running
