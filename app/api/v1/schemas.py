from datetime import date, datetime

from pydantic import BaseModel, Field

from app.application.ports.appointment_store import PhoneFilter
from app.domain.entities.appointment import Appointment


class SlotsResponseSchema(BaseModel):
    date: date
    barber_id: str | None = None
    available_slots: list[str]


class CompanionSchema(BaseModel):
    customer_name: str = Field(min_length=2, max_length=100)
    hour: str = Field(pattern=r"^\d{2}:00$")
    barber_id: str | None = None
    barber_name: str | None = None


class CreateAppointmentSchema(BaseModel):
    customer_name: str = Field(min_length=2, max_length=100)
    phone: str = Field(pattern=r"^\+?[0-9 ]{10,16}$")
    date: date
    hour: str = Field(pattern=r"^\d{2}:00$")
    service: str = Field(min_length=1, max_length=100)
    barber_id: str | None = None
    barber_name: str | None = None
    notes: str = ""
    companion: CompanionSchema | None = None  # second person for a double booking


class AppointmentSchema(BaseModel):
    id: str
    customer_name: str
    phone: str
    date: date
    hour: str
    service: str
    status: str
    created_from: str
    barber_id: str | None = None
    barber_name: str | None = None
    notes: str = ""
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, appointment: Appointment) -> "AppointmentSchema":
        return cls(
            id=appointment.id,
            customer_name=appointment.customer_name,
            phone=appointment.phone,
            date=appointment.date,
            hour=appointment.hour,
            service=appointment.service,
            status=appointment.status.value,
            created_from=appointment.created_from.value,
            barber_id=appointment.barber_id,
            barber_name=appointment.barber_name,
            notes=appointment.notes,
            created_at=appointment.created_at,
        )


class BookingResponseSchema(BaseModel):
    appointments: list[AppointmentSchema]


class BroadcastRequestSchema(BaseModel):
    message: str = Field(min_length=1, max_length=4096)
    audience: PhoneFilter = PhoneFilter.ALL


class BroadcastAcceptedSchema(BaseModel):
    status: str = "accepted"
    audience: PhoneFilter
    recipients: int
