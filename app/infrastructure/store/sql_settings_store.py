from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.application.ports.settings_store import SettingsStorePort
from app.domain.entities.business_settings import BusinessSettings, ClosedDate
from app.infrastructure.store.orm import BusinessSettingsRow, ClosedDateRow

SETTINGS_ROW_ID = 1


class SqlSettingsStore(SettingsStorePort):
    def __init__(self, session_factory: sessionmaker[Session], defaults: BusinessSettings | None = None) -> None:
        self._session_factory = session_factory
        self._defaults = defaults or BusinessSettings()

    def get_settings(self) -> BusinessSettings:
        with self._session_factory() as session:
            row = session.get(BusinessSettingsRow, SETTINGS_ROW_ID)
            if row is not None:
                return _settings_to_entity(row)

            row = BusinessSettingsRow(id=SETTINGS_ROW_ID)
            _apply(row, self._defaults)
            session.add(row)
            try:
                session.commit()
            except IntegrityError:
                # Another worker seeded the singleton first.
                session.rollback()
                row = session.get(BusinessSettingsRow, SETTINGS_ROW_ID)
            return _settings_to_entity(row)

    def update_settings(self, settings: BusinessSettings) -> BusinessSettings:
        if not 0 <= settings.start_hour < settings.end_hour <= 24:
            raise ValueError("Business hours must satisfy 0 <= start_hour < end_hour <= 24")
        if settings.booking_range_days < 0:
            raise ValueError("booking_range_days must not be negative")

        self.get_settings()
        with self._session_factory() as session:
            row = session.get(BusinessSettingsRow, SETTINGS_ROW_ID)
            _apply(row, settings)
            session.commit()
            return _settings_to_entity(row)

    def get_closed_date(self, day: date) -> ClosedDate | None:
        with self._session_factory() as session:
            row = session.get(ClosedDateRow, day)
            return ClosedDate(date=row.date, reason=row.reason) if row is not None else None

    def list_closed_dates(self, from_date: date | None = None) -> list[ClosedDate]:
        query = select(ClosedDateRow)
        if from_date is not None:
            query = query.where(ClosedDateRow.date >= from_date)
        with self._session_factory() as session:
            return [ClosedDate(date=row.date, reason=row.reason) for row in session.scalars(query.order_by(ClosedDateRow.date))]

    def add_closed_date(self, closed: ClosedDate) -> ClosedDate:
        with self._session_factory() as session:
            row = session.get(ClosedDateRow, closed.date)
            if row is None:
                row = ClosedDateRow(date=closed.date, reason=closed.reason)
                session.add(row)
            else:
                row.reason = closed.reason
            session.commit()
            return ClosedDate(date=row.date, reason=row.reason)


def _apply(row: BusinessSettingsRow, settings: BusinessSettings) -> None:
    row.start_hour = settings.start_hour
    row.end_hour = settings.end_hour
    row.booking_range_days = settings.booking_range_days
    row.closed_week_days = ",".join(str(day) for day in sorted(settings.closed_week_days))
    row.business_name = settings.business_name
    row.business_address = settings.business_address


def _settings_to_entity(row: BusinessSettingsRow) -> BusinessSettings:
    closed = frozenset(int(part) for part in row.closed_week_days.split(",") if part.strip())
    return BusinessSettings(
        start_hour=row.start_hour,
        end_hour=row.end_hour,
        booking_range_days=row.booking_range_days,
        closed_week_days=closed,
        business_name=row.business_name,
        business_address=row.business_address,
    )
