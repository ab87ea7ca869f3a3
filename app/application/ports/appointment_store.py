from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from enum import Enum

from app.domain.entities.appointment import Appointment, AppointmentStatus


class InsertOutcome(str, Enum):
    INSERTED = "inserted"
    CONFLICT = "conflict"


class ReminderFlag(str, Enum):
    REMINDER_60 = "reminder_sent_60"
    REMINDER_30 = "reminder_sent_30"
    FEEDBACK = "feedback_requested"


class PhoneFilter(str, Enum):
    ALL = "all"
    TODAY = "today"
    FUTURE = "future"


class AppointmentStorePort(ABC):
    @abstractmethod
    def insert_if_absent(self, appointment: Appointment) -> tuple[InsertOutcome, Appointment | None]:
        """
        Atomically insert a confirmed appointment unless another confirmed appointment
        holds the same (date, hour, barber) key.

        Returns (INSERTED, persisted appointment) or (CONFLICT, None). Concurrent callers
        for the same key must never both see INSERTED.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, appointment_id: str) -> Appointment | None:
        raise NotImplementedError

    @abstractmethod
    def update_status(self, appointment_id: str, status: AppointmentStatus) -> Appointment | None:
        raise NotImplementedError

    @abstractmethod
    def mark_flag(self, appointment_id: str, flag: ReminderFlag) -> None:
        """Set a one-way flag to True. Never resets a flag."""
        raise NotImplementedError

    @abstractmethod
    def find_confirmed_on(self, day: date, barber_id: str | None = None) -> list[Appointment]:
        raise NotImplementedError

    @abstractmethod
    def find_pending_reminders(self, day: date) -> list[Appointment]:
        """Confirmed appointments on day with at least one reminder flag still False."""
        raise NotImplementedError

    @abstractmethod
    def find_feedback_candidates(self, day: date) -> list[Appointment]:
        """Confirmed appointments on day whose feedback has not been requested."""
        raise NotImplementedError

    @abstractmethod
    def find_by_phone(
        self,
        phone: str,
        from_date: date | None = None,
        confirmed_only: bool = False,
        newest_first: bool = False,
        limit: int | None = None,
    ) -> list[Appointment]:
        raise NotImplementedError

    @abstractmethod
    def distinct_phones(self, phone_filter: PhoneFilter, today: date) -> list[str]:
        raise NotImplementedError

    @abstractmethod
    def delete_older_than(self, cutoff: date) -> int:
        """Hard-delete appointments dated before cutoff. Returns the number removed."""
        raise NotImplementedError
