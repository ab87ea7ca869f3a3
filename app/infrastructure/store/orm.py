from __future__ import annotations

import datetime as dt

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.store.database import Base


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class AppointmentRow(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # At most one confirmed appointment per slot; cancelled rows never block a new booking.
        sa.Index(
            "uq_appointments_confirmed_slot",
            "date",
            "hour",
            "barber_key",
            unique=True,
            sqlite_where=sa.text("status = 'confirmed'"),
            postgresql_where=sa.text("status = 'confirmed'"),
        ),
        sa.Index("ix_appointments_phone", "phone"),
        sa.Index("ix_appointments_date_status", "date", "status"),
    )

    id: Mapped[str] = mapped_column(sa.String(32), primary_key=True)
    customer_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    phone: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    hour: Mapped[str] = mapped_column(sa.String(5), nullable=False)
    service: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    barber_id: Mapped[str | None] = mapped_column(sa.String(32))
    barber_name: Mapped[str | None] = mapped_column(sa.String(100))
    # "" when no barber is assigned so the unique index also covers single-barber shops
    barber_key: Mapped[str] = mapped_column(sa.String(32), nullable=False, default="")
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="confirmed")
    created_from: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    reminder_sent_60: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    reminder_sent_30: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    feedback_requested: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    notes: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    created_at: Mapped[dt.datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, default=_utcnow)


class BusinessSettingsRow(Base):
    __tablename__ = "business_settings"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True)
    start_hour: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=8)
    end_hour: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=20)
    booking_range_days: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=14)
    closed_week_days: Mapped[str] = mapped_column(sa.String(20), nullable=False, default="")  # "0,6"
    business_name: Mapped[str] = mapped_column(sa.String(100), nullable=False, default="")
    business_address: Mapped[str] = mapped_column(sa.String(255), nullable=False, default="")
    updated_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class ClosedDateRow(Base):
    __tablename__ = "closed_dates"

    date: Mapped[dt.date] = mapped_column(sa.Date, primary_key=True)
    reason: Mapped[str] = mapped_column(sa.String(255), nullable=False, default="Holiday")


class StaffRow(Base):
    __tablename__ = "staff"

    id: Mapped[str] = mapped_column(sa.String(32), primary_key=True)
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    role: Mapped[str] = mapped_column(sa.String(32), nullable=False, default="barber")
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)


class FeedbackRow(Base):
    __tablename__ = "feedback"

    id: Mapped[str] = mapped_column(sa.String(32), primary_key=True)
    customer_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    phone: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    rating: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    comment: Mapped[str] = mapped_column(sa.Text, nullable=False)
    appointment_id: Mapped[str | None] = mapped_column(sa.String(32))
    barber_id: Mapped[str | None] = mapped_column(sa.String(32))
    barber_name: Mapped[str | None] = mapped_column(sa.String(100))
    is_approved: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_feedback_rating"),)


class ComplaintRow(Base):
    __tablename__ = "complaints"

    id: Mapped[str] = mapped_column(sa.String(32), primary_key=True)
    customer_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    phone: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    message: Mapped[str] = mapped_column(sa.Text, nullable=False)
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="pending")
    source: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="whatsapp")
    created_at: Mapped[dt.datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, default=_utcnow)
