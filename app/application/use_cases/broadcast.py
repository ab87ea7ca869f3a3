from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from app.application.exceptions import SendFailure
from app.application.ports.appointment_store import AppointmentStorePort, PhoneFilter
from app.application.use_cases.send_message import SendMessageUseCase


@dataclass(frozen=True)
class BroadcastResult:
    sent: int
    failed: int
    skipped: int
    recipients: int


class BroadcastUseCase:
    """
    Sequential fan-out with a randomized human-like pause before every send.

    Intentionally not parallel: bursts trip the chat transport's abuse detection.
    """

    def __init__(
        self,
        store: AppointmentStorePort,
        send_message: SendMessageUseCase,
        timezone: ZoneInfo,
        min_delay_seconds: float = 10.0,
        max_delay_seconds: float = 25.0,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if min_delay_seconds < 0 or max_delay_seconds < min_delay_seconds:
            raise ValueError("Broadcast delay interval must satisfy 0 <= min <= max")
        self._store = store
        self._send_message = send_message
        self._timezone = timezone
        self._min_delay = min_delay_seconds
        self._max_delay = max_delay_seconds
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def resolve_audience(self, audience: PhoneFilter) -> list[str]:
        today = (self._clock() if self._clock is not None else datetime.now(self._timezone)).date()
        phones = self._store.distinct_phones(audience, today)
        return list(dict.fromkeys(phone for phone in phones if phone))

    def broadcast(self, message: str, audience: PhoneFilter = PhoneFilter.ALL) -> BroadcastResult:
        recipients = self.resolve_audience(audience)
        self._logger.info(
            "Starting broadcast",
            extra={"audience": audience.value, "recipients": len(recipients)},
        )

        sent = failed = skipped = 0
        for phone in recipients:
            self._sleep(self._rng.uniform(self._min_delay, self._max_delay))
            try:
                if self._send_message.execute(phone, message):
                    sent += 1
                else:
                    skipped += 1
            except SendFailure as e:
                failed += 1
                self._logger.error("Broadcast send failed", extra={"phone": phone, "reason": e.reason})
            except Exception as e:
                failed += 1
                self._logger.exception("Broadcast send crashed", extra={"phone": phone, "reason": str(e)})

        self._logger.info(
            "Broadcast completed",
            extra={"audience": audience.value, "sent": sent, "failed": failed, "skipped": skipped},
        )
        return BroadcastResult(sent=sent, failed=failed, skipped=skipped, recipients=len(recipients))
