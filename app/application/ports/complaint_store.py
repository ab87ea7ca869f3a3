from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.entities.complaint import Complaint, ComplaintStatus


class ComplaintStorePort(ABC):
    @abstractmethod
    def add(self, customer_name: str, phone: str, message: str, source: str = "whatsapp") -> Complaint:
        raise NotImplementedError

    @abstractmethod
    def list_recent(self, limit: int = 20, status: ComplaintStatus | None = None) -> list[Complaint]:
        raise NotImplementedError
