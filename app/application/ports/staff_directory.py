from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.entities.staff import StaffMember


class StaffDirectoryPort(ABC):
    @abstractmethod
    def list_active_staff(self) -> list[StaffMember]:
        """Active staff ordered by name."""
        raise NotImplementedError

    @abstractmethod
    def add_staff(self, name: str, role: str = "barber") -> StaffMember:
        raise NotImplementedError
