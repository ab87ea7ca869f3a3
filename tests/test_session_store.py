"""
Tests for the in-memory session arena.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from app.domain.entities.bot_session import BotSession, BotStep
from app.infrastructure.store.memory_store import MemorySessionStore

NOW = datetime(2025, 6, 2, 10, 0, tzinfo=timezone.utc)


def test_session_round_trip_stamps_updated_at():
    store = MemorySessionStore()

    saved = store.save(BotSession(sender_id="a", step=BotStep.AWAITING_DATE), NOW)

    assert saved.updated_at == NOW
    assert store.get("a", NOW).step == BotStep.AWAITING_DATE


def test_idle_session_expires():
    store = MemorySessionStore(idle_timeout=timedelta(minutes=15))
    store.save(BotSession(sender_id="a", step=BotStep.AWAITING_HOUR), NOW)

    assert store.get("a", NOW + timedelta(minutes=14)) is not None
    assert store.get("a", NOW + timedelta(minutes=15)) is None
    assert len(store) == 0


def test_evict_expired_only_removes_stale_sessions():
    store = MemorySessionStore(idle_timeout=timedelta(minutes=15))
    store.save(BotSession(sender_id="old", step=BotStep.AWAITING_DATE), NOW)
    store.save(BotSession(sender_id="fresh", step=BotStep.AWAITING_DATE), NOW + timedelta(minutes=10))

    evicted = store.evict_expired(NOW + timedelta(minutes=20))

    assert evicted == 1
    assert len(store) == 1
    assert store.get("fresh", NOW + timedelta(minutes=20)) is not None


def test_mark_processed_rejects_duplicates_until_expiry():
    store = MemorySessionStore(idle_timeout=timedelta(minutes=15))

    assert store.mark_processed("wamid.1", NOW) is True
    assert store.mark_processed("wamid.1", NOW + timedelta(minutes=1)) is False
    assert store.mark_processed("wamid.1", NOW + timedelta(minutes=30)) is True


def test_delete_is_silent_for_unknown_sender():
    store = MemorySessionStore()
    store.delete("nobody")
    assert store.get("nobody", NOW) is None
