"""
Tests for the SQL-backed settings, staff, feedback and complaint stores.
"""

from __future__ import annotations

from datetime import date

import pytest

from app.domain.entities.business_settings import BusinessSettings, ClosedDate
from app.domain.entities.complaint import ComplaintStatus


def test_settings_are_seeded_with_defaults(settings_store):
    current = settings_store.get_settings()

    assert (current.start_hour, current.end_hour, current.booking_range_days) == (8, 20, 14)
    assert current.business_name == "Test Barbers"
    assert current.closed_week_days == frozenset()


def test_settings_update_round_trips_closed_week_days(settings_store):
    settings_store.update_settings(BusinessSettings(start_hour=9, end_hour=18, closed_week_days=frozenset({0, 6})))

    current = settings_store.get_settings()
    assert current.closed_week_days == frozenset({0, 6})
    assert current.end_hour == 18


@pytest.mark.parametrize(
    "invalid",
    [
        BusinessSettings(start_hour=20, end_hour=8),
        BusinessSettings(start_hour=0, end_hour=25),
        BusinessSettings(booking_range_days=-1),
    ],
)
def test_invalid_settings_are_rejected(settings_store, invalid):
    with pytest.raises(ValueError):
        settings_store.update_settings(invalid)


def test_closed_dates(settings_store):
    settings_store.add_closed_date(ClosedDate(date=date(2025, 6, 6), reason="Eid"))
    settings_store.add_closed_date(ClosedDate(date=date(2025, 6, 4)))
    settings_store.add_closed_date(ClosedDate(date=date(2025, 6, 6), reason="Eid al-Adha"))

    listed = settings_store.list_closed_dates(from_date=date(2025, 6, 5))
    assert listed == [ClosedDate(date=date(2025, 6, 6), reason="Eid al-Adha")]
    assert settings_store.get_closed_date(date(2025, 6, 4)).reason == "Holiday"
    assert settings_store.get_closed_date(date(2025, 6, 5)) is None


def test_staff_directory_lists_active_staff_by_name(staff_directory):
    staff_directory.add_staff("  Hasan ")
    staff_directory.add_staff("Emre")

    assert [member.name for member in staff_directory.list_active_staff()] == ["Emre", "Hasan"]


def test_feedback_store_validates_rating(feedback_store):
    saved = feedback_store.add(customer_name="Ali", phone="905551234567", rating=4, comment="Nice")

    assert saved.rating == 4
    assert not saved.is_approved
    assert feedback_store.list_recent(approved_only=True) == []
    with pytest.raises(ValueError):
        feedback_store.add(customer_name="Ali", phone="905551234567", rating=6, comment="")


def test_complaint_store_filters_by_status(complaint_store):
    first = complaint_store.add(customer_name="Ali", phone="905551234567", message="Too loud")
    second = complaint_store.add(customer_name="Veli", phone="905550000001", message="Long wait")

    assert first.status == ComplaintStatus.PENDING
    assert first.source == "whatsapp"
    assert {c.id for c in complaint_store.list_recent()} == {first.id, second.id}
    assert len(complaint_store.list_recent(status=ComplaintStatus.PENDING)) == 2
    assert complaint_store.list_recent(status=ComplaintStatus.RESOLVED) == []
