import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.v1.appointments import router as appointments_router
from app.api.v1.broadcasts import router as broadcasts_router
from app.api.webhooks import router as webhooks_router
from app.core.config import settings
from app.wiring.dependencies import build_sweep_runner, get_engine, shutdown_notification_queue

class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in (
            "message_id",
            "sender_id",
            "recipient_id",
            "step",
            "appointment_id",
            "phone",
            "date",
            "hour",
            "audience",
            "recipients",
            "sent",
            "failed",
            "skipped",
            "reply_text",
            "reason",
        ):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    get_engine()
    runner = build_sweep_runner() if settings.REMINDERS_ENABLED else None
    if runner is not None:
        runner.start()
    try:
        yield
    finally:
        if runner is not None:
            runner.stop()
        shutdown_notification_queue()


app = FastAPI(title="Barbershop Booking Bot", version="1.0.0", lifespan=lifespan)

app.include_router(webhooks_router, tags=["webhooks"])
app.include_router(appointments_router, prefix="/api/v1", tags=["appointments"])
app.include_router(broadcasts_router, prefix="/api/v1", tags=["broadcasts"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
