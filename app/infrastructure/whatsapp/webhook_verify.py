from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Mapping

SIGNATURE_PREFIX = "sha256="
UNSIGNED_ENVS = {"dev", "local"}

logger = logging.getLogger(__name__)


def verify_get_request(params: Mapping[str, str | None], expected_token: str) -> str | None:
    """Meta subscription handshake. Returns the challenge to echo, or None to refuse."""
    if params.get("hub.mode") != "subscribe":
        return None
    token = params.get("hub.verify_token") or ""
    if not expected_token or not hmac.compare_digest(token.encode("utf-8"), expected_token.encode("utf-8")):
        logger.warning("Webhook verification refused", extra={"reason": "verify token mismatch"})
        return None
    return params.get("hub.challenge") or ""


def verify_post_signature(body: bytes, signature_header: str | None, app_secret: str | None, env: str) -> bool:
    """Check X-Hub-Signature-256 against the raw request body."""
    if not signature_header:
        if env.lower() in UNSIGNED_ENVS:
            logger.warning("Missing signature header; accepting in dev mode")
            return True
        return False

    if not app_secret:
        logger.error("Missing app secret for signature verification")
        return False

    if not signature_header.lower().startswith(SIGNATURE_PREFIX):
        return False

    received = signature_header[len(SIGNATURE_PREFIX) :].strip().lower()
    expected = hmac.new(app_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected.encode("ascii"), received.encode("utf-8"))
