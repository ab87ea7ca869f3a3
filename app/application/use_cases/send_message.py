from __future__ import annotations

import logging

from app.application.ports.message_platform import MessagePlatformPort
from app.core.config import settings


class SendMessageUseCase:
    def __init__(self, platform: MessagePlatformPort, enabled: bool | None = None) -> None:
        self._platform = platform
        self._enabled = settings.MESSAGING_ENABLED if enabled is None else enabled
        self._logger = logging.getLogger(__name__)

    def execute(self, recipient_id: str, text: str) -> bool:
        """Send a message. Returns True if actually sent, False if skipped. Raises SendFailure."""
        if not self._enabled:
            self._logger.info("WOULD_SEND_MESSAGE", extra={"recipient_id": recipient_id, "reply_text": text})
            self._logger.info("MESSAGING_ENABLED=false -> skipping send")
            return False
        self._platform.send_text(recipient_id=recipient_id, text=text)
        return True
