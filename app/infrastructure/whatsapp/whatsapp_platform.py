from __future__ import annotations

import httpx

from app.application.exceptions import SendFailure
from app.application.ports.message_platform import MessagePlatformPort
from app.infrastructure.whatsapp.whatsapp_client import WhatsAppClient


class WhatsAppPlatform(MessagePlatformPort):
    def __init__(self, client: WhatsAppClient) -> None:
        self._client = client

    def send_text(self, recipient_id: str, text: str) -> None:
        try:
            self._client.send_text(recipient_id=recipient_id, text=text)
        except httpx.HTTPStatusError as e:
            raise SendFailure(recipient_id, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise SendFailure(recipient_id, type(e).__name__) from e
