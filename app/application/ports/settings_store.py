from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from app.domain.entities.business_settings import BusinessSettings, ClosedDate


class SettingsStorePort(ABC):
    @abstractmethod
    def get_settings(self) -> BusinessSettings:
        """Return the singleton settings, creating defaults on first read."""
        raise NotImplementedError

    @abstractmethod
    def update_settings(self, settings: BusinessSettings) -> BusinessSettings:
        raise NotImplementedError

    @abstractmethod
    def get_closed_date(self, day: date) -> ClosedDate | None:
        raise NotImplementedError

    @abstractmethod
    def list_closed_dates(self, from_date: date | None = None) -> list[ClosedDate]:
        raise NotImplementedError

    @abstractmethod
    def add_closed_date(self, closed: ClosedDate) -> ClosedDate:
        raise NotImplementedError
