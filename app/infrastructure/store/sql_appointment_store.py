from __future__ import annotations

import logging
import uuid
from datetime import date

from sqlalchemy import delete, distinct, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.application.ports.appointment_store import (
    AppointmentStorePort,
    InsertOutcome,
    PhoneFilter,
    ReminderFlag,
)
from app.domain.entities.appointment import Appointment, AppointmentStatus, BookingSource
from app.infrastructure.store.orm import AppointmentRow


class SqlAppointmentStore(AppointmentStorePort):
    """Appointment store whose slot uniqueness is enforced by a partial unique index."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._logger = logging.getLogger(__name__)

    def insert_if_absent(self, appointment: Appointment) -> tuple[InsertOutcome, Appointment | None]:
        row = AppointmentRow(
            id=uuid.uuid4().hex,
            customer_name=appointment.customer_name,
            phone=appointment.phone,
            date=appointment.date,
            hour=appointment.hour,
            service=appointment.service,
            barber_id=appointment.barber_id,
            barber_name=appointment.barber_name,
            barber_key=appointment.barber_id or "",
            status=AppointmentStatus.CONFIRMED.value,
            created_from=appointment.created_from.value,
            reminder_sent_60=False,
            reminder_sent_30=False,
            feedback_requested=False,
            notes=appointment.notes or "",
        )
        with self._session_factory() as session:
            session.add(row)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                self._logger.info(
                    "Insert rejected by unique slot index",
                    extra={"date": appointment.date.isoformat(), "hour": appointment.hour},
                )
                return InsertOutcome.CONFLICT, None
            return InsertOutcome.INSERTED, _to_entity(row)

    def get(self, appointment_id: str) -> Appointment | None:
        with self._session_factory() as session:
            row = session.get(AppointmentRow, appointment_id)
            return _to_entity(row) if row is not None else None

    def update_status(self, appointment_id: str, status: AppointmentStatus) -> Appointment | None:
        with self._session_factory() as session:
            row = session.get(AppointmentRow, appointment_id)
            if row is None:
                return None
            row.status = status.value
            session.commit()
            return _to_entity(row)

    def mark_flag(self, appointment_id: str, flag: ReminderFlag) -> None:
        column = getattr(AppointmentRow, flag.value)
        with self._session_factory() as session:
            session.execute(
                update(AppointmentRow)
                .where(AppointmentRow.id == appointment_id)
                .values({column: True})
            )
            session.commit()

    def find_confirmed_on(self, day: date, barber_id: str | None = None) -> list[Appointment]:
        query = select(AppointmentRow).where(
            AppointmentRow.date == day,
            AppointmentRow.status == AppointmentStatus.CONFIRMED.value,
        )
        if barber_id is not None:
            query = query.where(AppointmentRow.barber_key == barber_id)
        return self._fetch(query.order_by(AppointmentRow.hour))

    def find_pending_reminders(self, day: date) -> list[Appointment]:
        query = select(AppointmentRow).where(
            AppointmentRow.date == day,
            AppointmentRow.status == AppointmentStatus.CONFIRMED.value,
            or_(AppointmentRow.reminder_sent_60.is_(False), AppointmentRow.reminder_sent_30.is_(False)),
        )
        return self._fetch(query.order_by(AppointmentRow.hour))

    def find_feedback_candidates(self, day: date) -> list[Appointment]:
        query = select(AppointmentRow).where(
            AppointmentRow.date == day,
            AppointmentRow.status == AppointmentStatus.CONFIRMED.value,
            AppointmentRow.feedback_requested.is_(False),
        )
        return self._fetch(query.order_by(AppointmentRow.hour))

    def find_by_phone(
        self,
        phone: str,
        from_date: date | None = None,
        confirmed_only: bool = False,
        newest_first: bool = False,
        limit: int | None = None,
    ) -> list[Appointment]:
        query = select(AppointmentRow).where(AppointmentRow.phone == phone)
        if from_date is not None:
            query = query.where(AppointmentRow.date >= from_date)
        if confirmed_only:
            query = query.where(AppointmentRow.status == AppointmentStatus.CONFIRMED.value)
        if newest_first:
            query = query.order_by(AppointmentRow.date.desc(), AppointmentRow.hour.desc())
        else:
            query = query.order_by(AppointmentRow.date, AppointmentRow.hour)
        if limit is not None:
            query = query.limit(limit)
        return self._fetch(query)

    def distinct_phones(self, phone_filter: PhoneFilter, today: date) -> list[str]:
        query = select(distinct(AppointmentRow.phone))
        if phone_filter == PhoneFilter.TODAY:
            query = query.where(AppointmentRow.date == today)
        elif phone_filter == PhoneFilter.FUTURE:
            query = query.where(AppointmentRow.date >= today)
        with self._session_factory() as session:
            return list(session.scalars(query.order_by(AppointmentRow.phone)))

    def delete_older_than(self, cutoff: date) -> int:
        with self._session_factory() as session:
            result = session.execute(delete(AppointmentRow).where(AppointmentRow.date < cutoff))
            session.commit()
            return result.rowcount or 0

    def _fetch(self, query) -> list[Appointment]:
        with self._session_factory() as session:
            return [_to_entity(row) for row in session.scalars(query)]


def _to_entity(row: AppointmentRow) -> Appointment:
    return Appointment(
        id=row.id,
        customer_name=row.customer_name,
        phone=row.phone,
        date=row.date,
        hour=row.hour,
        service=row.service,
        status=AppointmentStatus(row.status),
        created_from=BookingSource(row.created_from),
        barber_id=row.barber_id,
        barber_name=row.barber_name,
        reminder_sent_60=bool(row.reminder_sent_60),
        reminder_sent_30=bool(row.reminder_sent_30),
        feedback_requested=bool(row.feedback_requested),
        notes=row.notes or "",
        created_at=row.created_at,
    )
