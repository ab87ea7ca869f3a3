"""
Tests for post-commit notification delivery.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from zoneinfo import ZoneInfo

from app.application.use_cases.notify import NotificationQueue
from app.application.use_cases.slot_allocation import SlotAllocationUseCase

TZ = ZoneInfo("Europe/Istanbul")
TOMORROW = date(2025, 6, 3)


def test_enqueue_on_executor_delivers(send_message, platform):
    queue = NotificationQueue(send_message, executor=ThreadPoolExecutor(max_workers=1))

    queue.enqueue("905551234567", "hello")
    queue.shutdown(wait=True)

    assert platform.texts_to("905551234567") == ["hello"]


def test_enqueue_after_shutdown_delivers_inline(send_message, platform):
    queue = NotificationQueue(send_message, executor=ThreadPoolExecutor(max_workers=1))
    queue.shutdown(wait=True)

    queue.enqueue("905551234567", "hello", context={"appointment_id": "a1"})

    assert platform.texts_to("905551234567") == ["hello"]


def test_booking_succeeds_after_notification_shutdown(
    appointment_store, settings_store, send_message, platform, clock
):
    """A booking committed during shutdown is returned to the caller and still confirmed."""
    queue = NotificationQueue(send_message, executor=ThreadPoolExecutor(max_workers=1))
    allocation = SlotAllocationUseCase(
        store=appointment_store,
        settings_store=settings_store,
        notifications=queue,
        timezone=TZ,
        clock=clock,
    )
    queue.shutdown(wait=True)

    appointment = allocation.book(
        customer_name="Ali", phone="905551234567", day=TOMORROW, hour="11:00", service="haircut"
    )

    assert appointment.is_confirmed
    assert [a.id for a in allocation.upcoming_for_phone("905551234567")] == [appointment.id]
    assert len(platform.texts_to("905551234567")) == 1


def test_failed_notification_does_not_raise(send_message, platform):
    platform.failing.add("905550000000")
    queue = NotificationQueue(send_message)

    queue.enqueue("905550000000", "hello")

    assert platform.sent == []
