from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.entities.feedback import Feedback


class FeedbackStorePort(ABC):
    @abstractmethod
    def add(
        self,
        customer_name: str,
        phone: str,
        rating: int,
        comment: str,
        appointment_id: str | None = None,
        barber_id: str | None = None,
        barber_name: str | None = None,
    ) -> Feedback:
        raise NotImplementedError

    @abstractmethod
    def list_recent(self, limit: int = 20, approved_only: bool = False) -> list[Feedback]:
        raise NotImplementedError
