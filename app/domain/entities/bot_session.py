from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class BotStep(str, Enum):
    IDLE = "IDLE"
    AWAITING_BARBER = "AWAITING_BARBER"
    AWAITING_DATE = "AWAITING_DATE"
    AWAITING_HOUR = "AWAITING_HOUR"
    AWAITING_NAME = "AWAITING_NAME"
    CONFIRMING = "CONFIRMING"
    AWAITING_FEEDBACK = "AWAITING_FEEDBACK"
    AWAITING_COMPLAINT = "AWAITING_COMPLAINT"


@dataclass(frozen=True)
class BotSession:
    sender_id: str
    step: BotStep = BotStep.IDLE
    barber_id: str | None = None
    barber_name: str | None = None
    date: date | None = None
    hour: str | None = None
    customer_name: str | None = None
    appointment_id: str | None = None  # feedback context
    date_options: tuple[date, ...] = ()  # quick-reply dates offered in AWAITING_DATE
    updated_at: datetime | None = None
