from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timedelta

from app.application.ports.session_store import SessionStorePort
from app.domain.entities.bot_session import BotSession


class MemorySessionStore(SessionStorePort):
    """
    Process-local session arena with idle expiry.

    Sessions and processed message ids are forgotten after `idle_timeout` of
    inactivity and on process restart. Expiry is judged against the `now`
    passed in by the caller, so the clock stays injectable.
    """

    def __init__(self, idle_timeout: timedelta = timedelta(minutes=15)) -> None:
        self._idle_timeout = idle_timeout
        self._sessions: dict[str, BotSession] = {}
        self._processed: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def get(self, sender_id: str, now: datetime) -> BotSession | None:
        with self._lock:
            session = self._sessions.get(sender_id)
            if session is None:
                return None
            if self._is_expired(session.updated_at, now):
                del self._sessions[sender_id]
                return None
            return session

    def save(self, session: BotSession, now: datetime) -> BotSession:
        stamped = replace(session, updated_at=now)
        with self._lock:
            self._sessions[session.sender_id] = stamped
        return stamped

    def delete(self, sender_id: str) -> None:
        with self._lock:
            self._sessions.pop(sender_id, None)

    def mark_processed(self, message_id: str, now: datetime) -> bool:
        with self._lock:
            seen_at = self._processed.get(message_id)
            if seen_at is not None and not self._is_expired(seen_at, now):
                return False
            self._processed[message_id] = now
            return True

    def evict_expired(self, now: datetime) -> int:
        with self._lock:
            stale_sessions = [key for key, s in self._sessions.items() if self._is_expired(s.updated_at, now)]
            for key in stale_sessions:
                del self._sessions[key]
            stale_ids = [key for key, seen_at in self._processed.items() if self._is_expired(seen_at, now)]
            for key in stale_ids:
                del self._processed[key]
            return len(stale_sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _is_expired(self, last_seen: datetime | None, now: datetime) -> bool:
        if last_seen is None:
            return False
        return now - last_seen >= self._idle_timeout
