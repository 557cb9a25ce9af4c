"""
Unit Tests for Notification Fan-out

Tests filtering, targeted delivery, non-blocking publish and
subscriber isolation.
"""

import asyncio

import pytest

from mindshift.config.settings import NotificationSettings
from mindshift.services.notifications.events import (
    EventType,
    NotificationEvent,
    SubscriptionFilter,
)
from mindshift.services.notifications.fanout import NotificationFanout


def _event(event_type: EventType = EventType.NEW_MESSAGE, session_id: str = "s1", **kwargs):
    return NotificationEvent(event_type=event_type, session_id=session_id, **kwargs)


@pytest.fixture
async def hub():
    fanout = NotificationFanout(NotificationSettings())
    yield fanout
    await fanout.close()


class TestBroadcast:
    """Broadcast delivery and filters."""

    async def test_every_subscriber_receives_event(self, hub, event_recorder):
        first, second = event_recorder(), event_recorder()
        hub.subscribe("a", first)
        hub.subscribe("b", second)

        assert hub.publish(_event()) == 2
        await hub.drain()

        assert first.types() == ["new_message"]
        assert second.types() == ["new_message"]

    async def test_event_type_filter(self, hub, event_recorder):
        handler = event_recorder()
        hub.subscribe(
            "monitor",
            handler,
            SubscriptionFilter(event_types=frozenset({EventType.CRISIS_ALERT_OPENED})),
        )

        hub.publish(_event(EventType.NEW_MESSAGE))
        hub.publish(_event(EventType.CRISIS_ALERT_OPENED))
        await hub.drain()

        assert handler.types() == ["crisis_alert_opened"]

    async def test_session_filter(self, hub, event_recorder):
        handler = event_recorder()
        hub.subscribe("viewer", handler, SubscriptionFilter(session_ids=frozenset({"s2"})))

        hub.publish(_event(session_id="s1"))
        hub.publish(_event(session_id="s2"))
        await hub.drain()

        assert [e.session_id for e in handler.events] == ["s2"]

    async def test_specialty_filter_still_gets_unscoped_events(self, hub, event_recorder):
        handler = event_recorder()
        hub.subscribe("responder", handler, SubscriptionFilter(specialties=frozenset({"crisis"})))

        hub.publish(_event(EventType.HANDOFF_QUEUED, specialty="general"))
        hub.publish(_event(EventType.HANDOFF_QUEUED, specialty="crisis"))
        hub.publish(_event(EventType.CRISIS_ALERT_OPENED))
        await hub.drain()

        assert [e.specialty for e in handler.events] == ["crisis", None]

    async def test_min_severity_filter(self, hub, event_recorder):
        handler = event_recorder()
        hub.subscribe("monitor", handler, SubscriptionFilter(min_severity=4))

        hub.publish(_event(severity=2))
        hub.publish(_event(EventType.CRISIS_ALERT_OPENED, severity=5))
        hub.publish(_event(severity=4))
        hub.publish(_event(EventType.SESSION_JOINED))
        await hub.drain()

        assert [e.severity for e in handler.events] == [5, 4]


class TestTargetedDelivery:

    async def test_send_to_reaches_only_target(self, hub, event_recorder):
        target, other = event_recorder(), event_recorder()
        hub.subscribe("r1", target)
        hub.subscribe("r2", other)

        assert hub.send_to("r1", _event(EventType.HANDOFF_REQUESTED))
        await hub.drain()

        assert target.types() == ["handoff_requested"]
        assert other.events == []

    async def test_send_to_unknown_subscriber(self, hub):
        assert not hub.send_to("nobody", _event(EventType.HANDOFF_REQUESTED))


class TestBackpressure:
    """A slow subscriber never blocks the publisher."""

    async def test_full_queue_drops_for_that_subscriber_only(self, event_recorder):
        hub = NotificationFanout(NotificationSettings(subscriber_queue_size=1))
        gate = asyncio.Event()
        slow_seen = []

        async def slow(event):
            await gate.wait()
            slow_seen.append(event)

        fast = event_recorder()
        slow_subscription = hub.subscribe("slow", slow)
        hub.subscribe("fast", fast)
        try:
            hub.publish(_event())
            await asyncio.sleep(0.01)  # slow worker takes the first event and blocks
            hub.publish(_event())
            await asyncio.sleep(0.01)
            hub.publish(_event())

            assert slow_subscription.dropped == 1

            gate.set()
            await hub.drain()

            assert len(slow_seen) == 2
            assert len(fast.events) == 3
        finally:
            await hub.close()

    async def test_failing_handler_does_not_stop_delivery(self, hub, event_recorder):
        calls = []

        async def broken(event):
            calls.append(event)
            raise RuntimeError("boom")

        hub.subscribe("broken", broken)
        hub.publish(_event())
        hub.publish(_event())
        await hub.drain()

        assert len(calls) == 2


class TestSubscriptionLifecycle:

    async def test_resubscribe_replaces_previous(self, hub, event_recorder):
        old, new = event_recorder(), event_recorder()
        hub.subscribe("monitor", old)
        hub.subscribe("monitor", new)

        assert hub.publish(_event()) == 1
        await hub.drain()

        assert old.events == []
        assert new.types() == ["new_message"]

    async def test_resubscribe_stops_replaced_workers(self, hub, event_recorder):
        recorders, subscriptions = [], []
        for _ in range(20):
            recorders.append(event_recorder())
            subscriptions.append(hub.subscribe("monitor", recorders[-1]))
            hub.publish(_event())
            await asyncio.sleep(0)

        await hub.drain()

        assert [len(r.events) for r in recorders] == [1] * 20
        for replaced in subscriptions[:-1]:
            assert not replaced.active
            assert not replaced.worker_running
            assert replaced.pending == 0
        assert subscriptions[-1].worker_running

    async def test_unsubscribe(self, hub, event_recorder):
        handler = event_recorder()
        subscription = hub.subscribe("monitor", handler)

        assert await hub.unsubscribe(subscription)
        assert not hub.is_subscribed("monitor")
        assert hub.publish(_event()) == 0

    async def test_publish_after_close_is_dropped(self, event_recorder):
        hub = NotificationFanout()
        hub.subscribe("monitor", event_recorder())
        await hub.close()

        assert hub.publish(_event()) == 0
        with pytest.raises(RuntimeError):
            hub.subscribe("late", event_recorder())
