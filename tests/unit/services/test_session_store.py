"""
Unit Tests for Session Store

Tests turn ordering, risk recomputation, trajectory bounds and expiry.
"""

import asyncio
from uuid import uuid4

import pytest

from mindshift.config.settings import SessionSettings
from mindshift.domain.exceptions import SessionNotFoundError, ValidationError
from mindshift.domain.models.session import DetectedEmotion, Turn
from mindshift.services.session.session_store import InMemorySessionStore


def _turn(risk: int = 0, message: str = "hello", emotions=()) -> Turn:
    return Turn(raw_message=message, risk_score=risk, detected_emotions=tuple(emotions))


class TestSessionLifecycle:
    """Creation, lookup and removal."""

    async def test_get_or_create_creates_once(self, store):
        first = await store.get_or_create("s1")
        second = await store.get_or_create("s1", user_id="u1")

        assert first is second
        assert second.user_id == "u1"
        assert len(store) == 1

    @pytest.mark.parametrize("session_id", [None, "", "   "])
    async def test_blank_session_id_rejected(self, store, session_id):
        with pytest.raises(ValidationError):
            await store.get_or_create(session_id)

    async def test_snapshot_of_unknown_session(self, store):
        with pytest.raises(SessionNotFoundError):
            await store.snapshot("missing")

    async def test_end_session_removes_state(self, store, clock):
        await store.get_or_create("s1")
        clock.advance(minutes=3)

        session = await store.end_session("s1")

        assert session.ended_at == clock.now
        assert await store.get("s1") is None
        with pytest.raises(SessionNotFoundError):
            await store.end_session("s1")


class TestAppendTurn:
    """Turns are append-only and strictly ordered."""

    async def test_turn_indexes_are_sequential(self, store):
        for _ in range(3):
            await store.append_turn("s1", _turn())

        session = await store.get("s1")

        assert [t.turn_index for t in session.turns] == [0, 1, 2]

    async def test_risk_level_follows_latest_turns(self, store):
        await store.append_turn("s1", _turn(risk=5))
        for _ in range(5):
            session = await store.append_turn("s1", _turn(risk=0))

        # Crisis turn is now 5 turns old and decays
        assert session.current_risk_level == 4

        for _ in range(5):
            session = await store.append_turn("s1", _turn(risk=0))

        assert session.current_risk_level == 0

    async def test_detected_emotions_join_trajectory(self, store):
        emotions = [DetectedEmotion("anxiety", 0.5), DetectedEmotion("fear", 0.25)]

        session = await store.append_turn("s1", _turn(emotions=emotions))

        assert [e.emotion for e in session.emotional_trajectory] == ["anxiety", "fear"]

    async def test_concurrent_appends_keep_order(self, store):
        async def write(n: int) -> None:
            async with store.session_lock("s1"):
                await store.append_turn("s1", _turn(message=f"m{n}"))

        await asyncio.gather(*(write(n) for n in range(10)))
        session = await store.get("s1")

        assert [t.turn_index for t in session.turns] == list(range(10))

    async def test_writers_stay_serialized_across_end_session(self, store):
        await store.get_or_create("s1")
        inside = 0
        seen = []

        async def writer() -> None:
            nonlocal inside
            async with store.session_lock("s1"):
                inside += 1
                seen.append(inside)
                await asyncio.sleep(0)
                inside -= 1

        async with store.session_lock("s1"):
            waiting = asyncio.create_task(writer())
            await asyncio.sleep(0)
            await store.end_session("s1")
        late = asyncio.create_task(writer())
        await asyncio.gather(waiting, late)

        assert seen == [1, 1]


class TestTrajectoryAndTechniques:
    """Bounded trajectory and technique counters."""

    async def test_trajectory_evicts_oldest(self, clock):
        store = InMemorySessionStore(SessionSettings(trajectory_window=3), clock=clock)

        for intensity in (0.1, 0.2, 0.3, 0.4):
            session = await store.record_emotion("s1", "sad", intensity)

        assert [e.intensity for e in session.emotional_trajectory] == [0.2, 0.3, 0.4]

    @pytest.mark.parametrize("emotion,intensity", [("", 0.5), ("sad", 1.5), ("sad", -0.1)])
    async def test_invalid_emotion_rejected(self, store, emotion, intensity):
        with pytest.raises(ValidationError):
            await store.record_emotion("s1", emotion, intensity)

    async def test_technique_counts(self, store):
        await store.get_or_create("s1")

        assert await store.increment_technique("s1", "Grounding") == 1
        assert await store.increment_technique("s1", "Grounding") == 2

        snapshot = await store.snapshot("s1")
        assert snapshot.technique_usage == {"Grounding": 2}


class TestCrisisModeAndExpiry:
    """Crisis flag and inactivity eviction."""

    async def test_crisis_mode_links_alert(self, store):
        await store.get_or_create("s1")
        alert_id = uuid4()

        await store.set_crisis_mode("s1", True, alert_id)
        snapshot = await store.snapshot("s1")

        assert snapshot.crisis_mode
        assert snapshot.active_alert_id == alert_id

    async def test_crisis_mode_for_evicted_session_ignored(self, store):
        await store.set_crisis_mode("gone", True, uuid4())

        assert await store.get("gone") is None

    async def test_inactive_sessions_expire(self, store, clock):
        await store.get_or_create("old")
        clock.advance(hours=23)
        await store.get_or_create("fresh")
        await store.append_turn("fresh", Turn(raw_message="hi", timestamp=clock.now))
        clock.advance(hours=2)

        expired = await store.expire_inactive()

        assert [s.session_id for s in expired] == ["old"]
        assert await store.get("fresh") is not None

    async def test_locked_session_not_expired(self, store, clock):
        await store.get_or_create("busy")
        clock.advance(hours=25)

        async with store.session_lock("busy"):
            expired = await store.expire_inactive()

        assert expired == []

    async def test_session_with_queued_writer_not_expired(self, store, clock):
        await store.get_or_create("busy")
        clock.advance(hours=25)

        async def writer() -> None:
            async with store.session_lock("busy"):
                await store.append_turn("busy", _turn())

        async with store.session_lock("busy"):
            waiting = asyncio.create_task(writer())
            await asyncio.sleep(0)
        expired = await store.expire_inactive()
        await waiting

        assert expired == []

    async def test_snapshot_excludes_message_content(self, store):
        await store.append_turn("s1", _turn(message="very private words"))

        snapshot = (await store.snapshot("s1")).to_dict()

        assert "very private words" not in str(snapshot)
        assert snapshot["turn_count"] == 1
