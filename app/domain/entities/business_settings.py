from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True)
class BusinessSettings:
    start_hour: int = 8
    end_hour: int = 20  # exclusive: the last generated slot starts at end_hour - 1
    booking_range_days: int = 14
    closed_week_days: frozenset[int] = field(default_factory=frozenset)  # date.weekday(), Monday == 0
    business_name: str = "Your Barbershop"
    business_address: str = ""


@dataclass(frozen=True)
class ClosedDate:
    date: date
    reason: str = "Holiday"
