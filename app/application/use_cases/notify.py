from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import Any

from app.application.exceptions import SendFailure
from app.application.use_cases.send_message import SendMessageUseCase


class NotificationQueue:
    """
    Best-effort outbound notifications that run after a committed write.

    Delivery never reports back to the caller: failures end up in the log only.
    Without an executor the send runs inline, which keeps tests deterministic.
    """

    def __init__(self, send_message: SendMessageUseCase, executor: Executor | None = None) -> None:
        self._send_message = send_message
        self._executor = executor
        self._logger = logging.getLogger(__name__)

    def enqueue(self, recipient_id: str, text: str, context: dict[str, Any] | None = None) -> None:
        if self._executor is None:
            self._deliver(recipient_id, text, context or {})
            return
        try:
            self._executor.submit(self._deliver, recipient_id, text, context or {})
        except RuntimeError as e:
            # executor already shut down
            self._logger.warning(
                "Notification executor unavailable; delivering inline",
                extra={"phone": recipient_id, "reason": str(e), **(context or {})},
            )
            self._deliver(recipient_id, text, context or {})

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)

    def _deliver(self, recipient_id: str, text: str, context: dict[str, Any]) -> None:
        try:
            self._send_message.execute(recipient_id, text)
        except SendFailure as e:
            self._logger.warning(
                "Notification send failed",
                extra={"phone": recipient_id, "reason": e.reason, **context},
            )
        except Exception:
            self._logger.exception("Notification delivery crashed", extra={"phone": recipient_id, **context})
