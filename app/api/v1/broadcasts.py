import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from app.api.v1.schemas import BroadcastAcceptedSchema, BroadcastRequestSchema
from app.application.use_cases.broadcast import BroadcastUseCase
from app.wiring.dependencies import get_broadcast_use_case

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/broadcasts", response_model=BroadcastAcceptedSchema, status_code=202)
def start_broadcast(
    req: BroadcastRequestSchema,
    background_tasks: BackgroundTasks,
    uc: BroadcastUseCase = Depends(get_broadcast_use_case),
):
    recipients = uc.resolve_audience(req.audience)
    # Not cancellable once scheduled; the response only means "dispatch accepted".
    background_tasks.add_task(uc.broadcast, req.message, req.audience)
    logger.info("Broadcast accepted", extra={"audience": req.audience.value, "recipients": len(recipients)})
    return BroadcastAcceptedSchema(audience=req.audience, recipients=len(recipients))
