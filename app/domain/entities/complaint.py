from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ComplaintStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class Complaint:
    id: str
    customer_name: str
    phone: str
    message: str
    status: ComplaintStatus = ComplaintStatus.PENDING
    source: str = "whatsapp"
    created_at: datetime | None = None
