from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable
from zoneinfo import ZoneInfo

from app.application.exceptions import (
    BookingError,
    ClosedDayError,
    NotFoundError,
    OutOfRangeError,
    PartialBookingError,
    PastDateError,
    SlotTakenError,
)
from app.application.ports.appointment_store import AppointmentStorePort, InsertOutcome
from app.application.ports.settings_store import SettingsStorePort
from app.application.use_cases.notify import NotificationQueue
from app.domain.entities.appointment import (
    Appointment,
    AppointmentStatus,
    BookingSource,
    hour_label,
    hour_to_time,
)
from app.domain.entities.business_settings import BusinessSettings

HOUR_LABEL = re.compile(r"^\d{2}:00$")


@dataclass(frozen=True)
class BookingRequest:
    customer_name: str
    phone: str
    date: date
    hour: str
    service: str
    barber_id: str | None = None
    barber_name: str | None = None
    created_from: BookingSource = BookingSource.WEB
    notes: str = ""


class SlotAllocationUseCase:
    """
    Single source of truth for "is this slot bookable".

    Concurrency control is delegated entirely to the store's atomic
    insert-if-absent; no locks are held here.
    """

    def __init__(
        self,
        store: AppointmentStorePort,
        settings_store: SettingsStorePort,
        notifications: NotificationQueue,
        timezone: ZoneInfo,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._settings_store = settings_store
        self._notifications = notifications
        self._timezone = timezone
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        return datetime.now(self._timezone)

    def today(self) -> date:
        return self.now().date()

    def list_available_slots(self, day: date, barber_id: str | None = None) -> list[str]:
        business = self._settings_store.get_settings()
        if self._closed_reason(day, business) is not None:
            return []
        if not self._within_horizon(day, business):
            return []

        candidates = [hour_label(h) for h in range(business.start_hour, business.end_hour)]
        taken = {appt.hour for appt in self._store.find_confirmed_on(day, barber_id)}

        now = self.now()
        available: list[str] = []
        for label in candidates:
            if label in taken:
                continue
            if datetime.combine(day, hour_to_time(label), tzinfo=self._timezone) <= now:
                continue
            available.append(label)
        return available

    def open_dates(self, barber_id: str | None = None, limit: int = 7) -> list[date]:
        """Upcoming dates within the horizon that still have at least one free slot."""
        business = self._settings_store.get_settings()
        today = self.today()
        dates: list[date] = []
        for offset in range(business.booking_range_days + 1):
            day = today + timedelta(days=offset)
            if self.list_available_slots(day, barber_id):
                dates.append(day)
            if len(dates) >= limit:
                break
        return dates

    def book(
        self,
        customer_name: str,
        phone: str,
        day: date,
        hour: str,
        service: str,
        barber_id: str | None = None,
        barber_name: str | None = None,
        created_from: BookingSource = BookingSource.WEB,
        notes: str = "",
    ) -> Appointment:
        business = self._settings_store.get_settings()

        if not HOUR_LABEL.match(hour or ""):
            raise OutOfRangeError(f"Hour must look like HH:00, got {hour!r}.")
        slot_hour = int(hour[:2])
        if not business.start_hour <= slot_hour < business.end_hour:
            raise OutOfRangeError(
                f"{hour} is outside business hours "
                f"({hour_label(business.start_hour)}-{hour_label(business.end_hour)})."
            )

        starts_at = datetime.combine(day, hour_to_time(hour), tzinfo=self._timezone)
        if starts_at <= self.now():
            raise PastDateError()

        reason = self._closed_reason(day, business)
        if reason is not None:
            raise ClosedDayError(f"We are closed on {day.isoformat()}: {reason}.")

        if not self._within_horizon(day, business):
            raise OutOfRangeError(
                f"Bookings are open for the next {business.booking_range_days} days only."
            )

        outcome, appointment = self._store.insert_if_absent(
            Appointment(
                id="",
                customer_name=customer_name.strip(),
                phone=normalize_phone(phone),
                date=day,
                hour=hour,
                service=service,
                status=AppointmentStatus.CONFIRMED,
                created_from=created_from,
                barber_id=barber_id,
                barber_name=barber_name,
                notes=notes,
            )
        )
        if outcome == InsertOutcome.CONFLICT or appointment is None:
            self._logger.warning(
                "Slot already taken",
                extra={"date": day.isoformat(), "hour": hour, "barber_id": barber_id},
            )
            raise SlotTakenError()

        self._logger.info(
            "Appointment created",
            extra={"appointment_id": appointment.id, "phone": appointment.phone},
        )
        self._notifications.enqueue(
            appointment.phone,
            _confirmation_text(appointment, business),
            context={"appointment_id": appointment.id},
        )
        return appointment

    def book_request(self, request: BookingRequest) -> Appointment:
        return self.book(
            customer_name=request.customer_name,
            phone=request.phone,
            day=request.date,
            hour=request.hour,
            service=request.service,
            barber_id=request.barber_id,
            barber_name=request.barber_name,
            created_from=request.created_from,
            notes=request.notes,
        )

    def book_pair(self, first: BookingRequest, second: BookingRequest) -> tuple[Appointment, Appointment]:
        """
        Book two linked appointments as two independent bookings.

        The first booking is kept if the second fails; the caller gets a
        PartialBookingError naming the leg that succeeded.
        """
        booked = self.book_request(first)
        try:
            companion = self.book_request(second)
        except BookingError as e:
            self._logger.warning(
                "Second leg of double booking failed",
                extra={"appointment_id": booked.id, "reason": e.detail},
            )
            raise PartialBookingError(booked=booked, failed_request=second, cause=e) from e
        return booked, companion

    def cancel(self, appointment_id: str) -> Appointment:
        appointment = self._store.get(appointment_id)
        if appointment is None:
            raise NotFoundError()
        if appointment.status == AppointmentStatus.CANCELLED:
            return appointment

        updated = self._store.update_status(appointment_id, AppointmentStatus.CANCELLED)
        if updated is None:
            raise NotFoundError()
        self._logger.info("Appointment cancelled", extra={"appointment_id": appointment_id})
        return updated

    def get_appointment(self, appointment_id: str) -> Appointment | None:
        return self._store.get(appointment_id)

    def upcoming_for_phone(self, phone: str) -> list[Appointment]:
        return self._store.find_by_phone(
            normalize_phone(phone),
            from_date=self.today(),
            confirmed_only=True,
        )

    def cancel_next_for_phone(self, phone: str) -> Appointment | None:
        """Cancel the sender's earliest confirmed appointment that has not started yet."""
        now = self.now()
        upcoming = [a for a in self.upcoming_for_phone(phone) if a.starts_at(self._timezone) > now]
        if not upcoming:
            return None
        upcoming.sort(key=lambda a: a.starts_at(self._timezone))
        return self.cancel(upcoming[0].id)

    def customer_history(self, phone: str, limit: int = 10) -> list[Appointment]:
        return self._store.find_by_phone(normalize_phone(phone), newest_first=True, limit=limit)

    def daily_appointments(self, day: date) -> list[Appointment]:
        return self._store.find_confirmed_on(day)

    def cleanup_old_appointments(self, days: int = 7) -> int:
        cutoff = self.today() - timedelta(days=days)
        removed = self._store.delete_older_than(cutoff)
        if removed:
            self._logger.info("Cleaned up old appointments", extra={"count": removed})
        return removed

    def _closed_reason(self, day: date, business: BusinessSettings) -> str | None:
        if day.weekday() in business.closed_week_days:
            return "weekly closing day"
        closed = self._settings_store.get_closed_date(day)
        if closed is not None:
            return closed.reason
        return None

    def _within_horizon(self, day: date, business: BusinessSettings) -> bool:
        today = self.today()
        return today <= day <= today + timedelta(days=business.booking_range_days)


def normalize_phone(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


def _confirmation_text(appointment: Appointment, business: BusinessSettings) -> str:
    lines = [
        f"Dear {appointment.customer_name},",
        f"Your appointment on {appointment.date.isoformat()} at {appointment.hour} is confirmed.",
    ]
    if appointment.barber_name:
        lines.append(f"Barber: {appointment.barber_name}")
    lines.append(f"Thank you for choosing {business.business_name}.")
    return "\n".join(lines)
