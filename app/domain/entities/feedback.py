from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Feedback:
    id: str
    customer_name: str
    phone: str
    rating: int  # 1..5
    comment: str
    appointment_id: str | None = None
    barber_id: str | None = None
    barber_name: str | None = None
    is_approved: bool = False
    created_at: datetime | None = None
