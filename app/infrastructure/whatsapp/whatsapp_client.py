from __future__ import annotations

import logging

import httpx


class WhatsAppClient:
    """Thin client for the WhatsApp Cloud API text message endpoint."""

    def __init__(
        self,
        access_token: str,
        phone_number_id: str,
        api_version: str = "v20.0",
        base_url: str = "https://graph.facebook.com",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._access_token = access_token
        self._send_endpoint = f"{base_url.rstrip('/')}/{api_version}/{phone_number_id}/messages"
        self._client = httpx.Client(timeout=timeout, transport=transport)
        self._logger = logging.getLogger(__name__)

    def send_text(self, recipient_id: str, text: str) -> None:
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": recipient_id,
            "type": "text",
            "text": {"preview_url": False, "body": text},
        }
        headers = {"Authorization": f"Bearer {self._access_token}"}
        resp = self._client.post(self._send_endpoint, headers=headers, json=payload)
        if resp.status_code >= 400:
            error_body = resp.text
            try:
                error_json = resp.json()
                error_code = error_json.get("error", {}).get("code")
                error_message = error_json.get("error", {}).get("message")
            except ValueError:
                error_code = None
                error_message = error_body

            self._logger.error(
                "WhatsApp send failed",
                extra={
                    "status": resp.status_code,
                    "error_code": error_code,
                    "error_message": error_message,
                    "recipient_id": recipient_id,
                    "text_length": len(text),
                },
            )
            resp.raise_for_status()

    def close(self) -> None:
        self._client.close()
