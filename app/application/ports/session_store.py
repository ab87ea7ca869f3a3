from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from app.domain.entities.bot_session import BotSession


class SessionStorePort(ABC):
    @abstractmethod
    def get(self, sender_id: str, now: datetime) -> BotSession | None:
        """Return the live session for sender, or None if absent or idle-expired."""
        raise NotImplementedError

    @abstractmethod
    def save(self, session: BotSession, now: datetime) -> BotSession:
        """Store the session and stamp its activity time."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, sender_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def mark_processed(self, message_id: str, now: datetime) -> bool:
        """Record an inbound message id. Returns False if it was already seen."""
        raise NotImplementedError

    @abstractmethod
    def evict_expired(self, now: datetime) -> int:
        raise NotImplementedError
