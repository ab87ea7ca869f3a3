"""
Shared fixtures: a file-backed SQLite database per test, a controllable clock
and a recording message platform.
"""

from __future__ import annotations

import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from app.application.exceptions import SendFailure
from app.application.ports.message_platform import MessagePlatformPort
from app.application.use_cases.notify import NotificationQueue
from app.application.use_cases.send_message import SendMessageUseCase
from app.application.use_cases.slot_allocation import SlotAllocationUseCase
from app.domain.entities.business_settings import BusinessSettings
from app.infrastructure.store.database import create_db_engine, init_db, make_session_factory
from app.infrastructure.store.memory_store import MemorySessionStore
from app.infrastructure.store.sql_appointment_store import SqlAppointmentStore
from app.infrastructure.store.sql_complaint_store import SqlComplaintStore
from app.infrastructure.store.sql_feedback_store import SqlFeedbackStore
from app.infrastructure.store.sql_settings_store import SqlSettingsStore
from app.infrastructure.store.sql_staff_directory import SqlStaffDirectory

TZ = ZoneInfo("Europe/Istanbul")


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingPlatform(MessagePlatformPort):
    def __init__(self, failing: set[str] | None = None) -> None:
        self.sent: list[tuple[str, str]] = []
        self.failing = failing or set()

    def send_text(self, recipient_id: str, text: str) -> None:
        if recipient_id in self.failing:
            raise SendFailure(recipient_id, "HTTP 400")
        self.sent.append((recipient_id, text))

    def texts_to(self, recipient_id: str) -> list[str]:
        return [text for rid, text in self.sent if rid == recipient_id]


@pytest.fixture
def session_factory():
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = create_db_engine(f"sqlite:///{Path(tmpdir) / 'booking.db'}")
        init_db(engine)
        yield make_session_factory(engine)
        engine.dispose()


@pytest.fixture
def clock() -> FakeClock:
    # Monday morning
    return FakeClock(datetime(2025, 6, 2, 9, 30, tzinfo=TZ))


@pytest.fixture
def platform() -> RecordingPlatform:
    return RecordingPlatform()


@pytest.fixture
def send_message(platform) -> SendMessageUseCase:
    return SendMessageUseCase(platform=platform, enabled=True)


@pytest.fixture
def appointment_store(session_factory) -> SqlAppointmentStore:
    return SqlAppointmentStore(session_factory)


@pytest.fixture
def settings_store(session_factory) -> SqlSettingsStore:
    store = SqlSettingsStore(session_factory, defaults=BusinessSettings(business_name="Test Barbers"))
    store.get_settings()
    return store


@pytest.fixture
def staff_directory(session_factory) -> SqlStaffDirectory:
    return SqlStaffDirectory(session_factory)


@pytest.fixture
def feedback_store(session_factory) -> SqlFeedbackStore:
    return SqlFeedbackStore(session_factory)


@pytest.fixture
def complaint_store(session_factory) -> SqlComplaintStore:
    return SqlComplaintStore(session_factory)


@pytest.fixture
def sessions() -> MemorySessionStore:
    return MemorySessionStore(idle_timeout=timedelta(minutes=15))


@pytest.fixture
def allocation(appointment_store, settings_store, send_message, clock) -> SlotAllocationUseCase:
    return SlotAllocationUseCase(
        store=appointment_store,
        settings_store=settings_store,
        notifications=NotificationQueue(send_message),
        timezone=TZ,
        clock=clock,
    )
