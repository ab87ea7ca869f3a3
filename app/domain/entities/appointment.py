from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from zoneinfo import ZoneInfo


class AppointmentStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class BookingSource(str, Enum):
    WEB = "web"
    CHAT = "chat"
    ADMIN = "admin"


@dataclass(frozen=True)
class Appointment:
    id: str
    customer_name: str
    phone: str  # customer identity key across subsystems
    date: date
    hour: str  # "HH:00"
    service: str
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    created_from: BookingSource = BookingSource.WEB
    barber_id: str | None = None
    barber_name: str | None = None
    # One-way flags: only ever flipped from False to True
    reminder_sent_60: bool = False
    reminder_sent_30: bool = False
    feedback_requested: bool = False
    notes: str = ""
    created_at: datetime | None = None

    @property
    def is_confirmed(self) -> bool:
        return self.status == AppointmentStatus.CONFIRMED

    def starts_at(self, timezone: ZoneInfo) -> datetime:
        return datetime.combine(self.date, hour_to_time(self.hour), tzinfo=timezone)


def hour_label(hour: int) -> str:
    return f"{hour:02d}:00"


def hour_to_time(label: str) -> time:
    hours, minutes = label.split(":", 1)
    return time(int(hours), int(minutes))
