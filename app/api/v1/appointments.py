from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from app.api.v1.schemas import (
    AppointmentSchema,
    BookingResponseSchema,
    CreateAppointmentSchema,
    SlotsResponseSchema,
)
from app.application.exceptions import (
    BookingError,
    ClosedDayError,
    NotFoundError,
    OutOfRangeError,
    PartialBookingError,
    PastDateError,
    SlotTakenError,
)
from app.application.use_cases.slot_allocation import BookingRequest, SlotAllocationUseCase
from app.domain.entities.appointment import BookingSource
from app.wiring.dependencies import get_slot_allocation_use_case

router = APIRouter()


def _http_error(e: BookingError) -> HTTPException:
    if isinstance(e, SlotTakenError):
        return HTTPException(status_code=409, detail=e.detail)
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=e.detail)
    if isinstance(e, (PastDateError, ClosedDayError, OutOfRangeError)):
        return HTTPException(status_code=422, detail=e.detail)
    return HTTPException(status_code=400, detail=e.detail)


@router.get("/slots", response_model=SlotsResponseSchema)
def list_slots(
    day: date = Query(..., alias="date"),
    barber_id: str | None = None,
    uc: SlotAllocationUseCase = Depends(get_slot_allocation_use_case),
):
    return SlotsResponseSchema(
        date=day,
        barber_id=barber_id,
        available_slots=uc.list_available_slots(day, barber_id),
    )


@router.post("/appointments", response_model=BookingResponseSchema, status_code=201)
def create_appointment(
    req: CreateAppointmentSchema,
    uc: SlotAllocationUseCase = Depends(get_slot_allocation_use_case),
):
    first = BookingRequest(
        customer_name=req.customer_name,
        phone=req.phone,
        date=req.date,
        hour=req.hour,
        service=req.service,
        barber_id=req.barber_id,
        barber_name=req.barber_name,
        created_from=BookingSource.WEB,
        notes=req.notes,
    )
    try:
        if req.companion is None:
            appointments = [uc.book_request(first)]
        else:
            second = BookingRequest(
                customer_name=req.companion.customer_name,
                phone=req.phone,
                date=req.date,
                hour=req.companion.hour,
                service=req.service,
                barber_id=req.companion.barber_id,
                barber_name=req.companion.barber_name,
                created_from=BookingSource.WEB,
                notes=req.notes,
            )
            appointments = list(uc.book_pair(first, second))
    except PartialBookingError as e:
        return JSONResponse(
            status_code=409,
            content={
                "detail": e.detail,
                "partial": True,
                "booked": AppointmentSchema.from_entity(e.booked).model_dump(mode="json"),
                "failed": {
                    "customer_name": e.failed_request.customer_name,
                    "hour": e.failed_request.hour,
                    "reason": e.cause.detail,
                },
            },
        )
    except BookingError as e:
        raise _http_error(e)

    return BookingResponseSchema(appointments=[AppointmentSchema.from_entity(a) for a in appointments])


@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentSchema)
def cancel_appointment(
    appointment_id: str,
    uc: SlotAllocationUseCase = Depends(get_slot_allocation_use_case),
):
    try:
        return AppointmentSchema.from_entity(uc.cancel(appointment_id))
    except BookingError as e:
        raise _http_error(e)


@router.get("/appointments/my", response_model=list[AppointmentSchema])
def my_appointments(
    phone: str = Query(..., min_length=10),
    uc: SlotAllocationUseCase = Depends(get_slot_allocation_use_case),
):
    return [AppointmentSchema.from_entity(a) for a in uc.upcoming_for_phone(phone)]
