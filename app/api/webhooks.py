from __future__ import annotations

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Request, Response
from fastapi.responses import PlainTextResponse

from app.application.dto.webhook_event import WebhookEventDTO
from app.infrastructure.whatsapp.webhook_verify import verify_get_request, verify_post_signature
from app.wiring.dependencies import get_conversation_use_case
from app.core.config import settings


router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/webhooks/whatsapp")
def verify_webhook(request: Request) -> Response:
    challenge = verify_get_request(request.query_params, settings.WHATSAPP_VERIFY_TOKEN)
    if challenge is None:
        return Response(status_code=403)
    return PlainTextResponse(challenge)


@router.post("/webhooks/whatsapp")
async def whatsapp_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
) -> Response:
    try:
        try:
            use_case = get_conversation_use_case()
        except Exception as e:
            logger.exception("Failed to initialize use case", extra={"reason": str(e)})
            return Response(status_code=500)

        body = await request.body()
        signature = request.headers.get("X-Hub-Signature-256")
        if not verify_post_signature(body, signature, settings.WHATSAPP_APP_SECRET, settings.ENV):
            return Response(status_code=403)

        try:
            payload = json.loads(body.decode("utf-8")) if body else {}
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.exception("Failed to parse webhook body")
            return Response(status_code=400)

        try:
            event = WebhookEventDTO.model_validate(payload)
            messages = event.extract_messages()

            logger.info("Webhook received", extra={"message_count": len(messages)})

            for message in messages:
                background_tasks.add_task(use_case.handle, message)

            return Response(status_code=200)
        except Exception as e:
            logger.exception("Error processing webhook event", extra={"reason": str(e)})
            return Response(status_code=500)
    except Exception as e:
        logger.exception("Fatal error in webhook handler", extra={"reason": str(e)})
        return Response(status_code=500)
