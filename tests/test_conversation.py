"""
Tests for the chat booking dialog.
"""

from __future__ import annotations

import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest

from app.application.use_cases.conversation import CANCELLED_TEXT, ConversationUseCase
from app.domain.entities.bot_session import BotSession, BotStep
from app.domain.entities.complaint import ComplaintStatus
from app.domain.entities.message import Message

SENDER = "905551234567"
TOMORROW = date(2025, 6, 3)


def _msg(text: str, sender: str = SENDER, message_id: str | None = None) -> Message:
    return Message(
        id=message_id or uuid.uuid4().hex,
        sender_id=sender,
        text=text,
        timestamp=0,
        platform="whatsapp",
        sender_name="Ali",
    )


@pytest.fixture
def conversation(allocation, sessions, staff_directory, feedback_store, complaint_store, send_message, clock):
    return ConversationUseCase(
        allocation=allocation,
        sessions=sessions,
        staff=staff_directory,
        feedback=feedback_store,
        complaints=complaint_store,
        send_message=send_message,
        business_name="Test Barbers",
        clock=clock,
    )


def _say(conversation: ConversationUseCase, clock, text: str, sender: str = SENDER) -> str:
    return conversation.process(_msg(text, sender), clock())


def _step(sessions, clock, sender: str = SENDER) -> BotStep | None:
    session = sessions.get(sender, clock())
    return session.step if session else None


def test_full_booking_flow_with_barber_choice(conversation, staff_directory, sessions, clock, allocation):
    staff_directory.add_staff("Hasan")
    staff_directory.add_staff("Emre")

    reply = _say(conversation, clock, "I want to book")
    assert "1. Emre" in reply and "2. Hasan" in reply
    assert _step(sessions, clock) == BotStep.AWAITING_BARBER

    reply = _say(conversation, clock, "hasan")
    assert "Hasan selected" in reply
    assert "1. Mon 2025-06-02 (today)" in reply
    assert _step(sessions, clock) == BotStep.AWAITING_DATE

    reply = _say(conversation, clock, "2")
    assert "2025-06-03" in reply and "14:00" in reply
    assert _step(sessions, clock) == BotStep.AWAITING_HOUR

    _say(conversation, clock, "14:00")
    assert _step(sessions, clock) == BotStep.AWAITING_NAME

    reply = _say(conversation, clock, "Ali Veli")
    assert "Ali Veli" in reply and "Hasan" in reply
    assert _step(sessions, clock) == BotStep.CONFIRMING

    reply = _say(conversation, clock, "yes")
    assert "Appointment confirmed" in reply
    assert _step(sessions, clock) is None

    booked = allocation.upcoming_for_phone(SENDER)
    assert len(booked) == 1
    assert booked[0].hour == "14:00"
    assert booked[0].barber_name == "Hasan"
    assert booked[0].created_from.value == "chat"


def test_single_barber_is_selected_automatically(conversation, staff_directory, sessions, clock):
    only = staff_directory.add_staff("Hasan")

    reply = _say(conversation, clock, "book")

    session = sessions.get(SENDER, clock())
    assert session.step == BotStep.AWAITING_DATE
    assert session.barber_id == only.id
    assert "Which day" in reply


def test_no_staff_books_without_a_barber(conversation, sessions, clock):
    _say(conversation, clock, "appointment please")

    session = sessions.get(SENDER, clock())
    assert session.step == BotStep.AWAITING_DATE
    assert session.barber_id is None


def test_typed_dates_are_accepted(conversation, sessions, clock):
    _say(conversation, clock, "book")

    reply = _say(conversation, clock, "03.06")

    assert "2025-06-03" in reply
    assert sessions.get(SENDER, clock()).date == TOMORROW


def test_unreadable_date_keeps_the_step(conversation, sessions, clock):
    _say(conversation, clock, "book")

    reply = _say(conversation, clock, "someday")

    assert "could not read" in reply
    assert _step(sessions, clock) == BotStep.AWAITING_DATE


def test_unavailable_hour_lists_the_free_ones(conversation, sessions, clock, allocation):
    allocation.book(customer_name="Someone", phone="5550000000", day=TOMORROW, hour="14:00", service="haircut")
    _say(conversation, clock, "book")
    _say(conversation, clock, "tomorrow")

    reply = _say(conversation, clock, "14:00")

    assert "not available" in reply
    assert "15:00" in reply
    assert _step(sessions, clock) == BotStep.AWAITING_HOUR


def test_short_name_is_rejected(conversation, sessions, clock):
    _say(conversation, clock, "book")
    _say(conversation, clock, "tomorrow")
    _say(conversation, clock, "15:00")

    reply = _say(conversation, clock, "A")

    assert "at least 2 characters" in reply
    assert _step(sessions, clock) == BotStep.AWAITING_NAME


@pytest.mark.parametrize(
    "step",
    [
        BotStep.IDLE,
        BotStep.AWAITING_BARBER,
        BotStep.AWAITING_DATE,
        BotStep.AWAITING_HOUR,
        BotStep.AWAITING_NAME,
        BotStep.CONFIRMING,
        BotStep.AWAITING_FEEDBACK,
        BotStep.AWAITING_COMPLAINT,
    ],
)
def test_cancel_keyword_resets_from_every_step(conversation, sessions, clock, step):
    """The cancel keyword drops the session from any step and the next booking starts blank."""
    sessions.save(BotSession(sender_id=SENDER, step=step, date=TOMORROW, hour="14:00", customer_name="Ali"), clock())

    reply = _say(conversation, clock, "Cancel")

    assert reply == CANCELLED_TEXT
    assert sessions.get(SENDER, clock()) is None

    _say(conversation, clock, "book")

    session = sessions.get(SENDER, clock())
    assert session.step == BotStep.AWAITING_DATE
    assert session.date is None
    assert session.hour is None
    assert session.customer_name is None


def test_name_containing_a_cancel_word_is_accepted(conversation, sessions, clock):
    _say(conversation, clock, "book")
    _say(conversation, clock, "tomorrow")
    _say(conversation, clock, "15:00")

    reply = _say(conversation, clock, "Stop Smith")

    assert "Stop Smith" in reply
    session = sessions.get(SENDER, clock())
    assert session.step == BotStep.CONFIRMING
    assert session.customer_name == "Stop Smith"


def test_feedback_comment_mentioning_stop_is_recorded(conversation, sessions, feedback_store, clock):
    sessions.save(BotSession(sender_id=SENDER, step=BotStep.AWAITING_FEEDBACK), clock())

    reply = _say(conversation, clock, "5 will never stop coming")

    assert "Thank you" in reply
    recorded = feedback_store.list_recent()
    assert len(recorded) == 1
    assert recorded[0].rating == 5
    assert recorded[0].comment == "will never stop coming"


def test_slot_taken_before_confirmation(conversation, sessions, clock, allocation):
    """Losing the race at confirm time ends the dialog with a clear message."""
    _say(conversation, clock, "book")
    _say(conversation, clock, "tomorrow")
    _say(conversation, clock, "16:00")
    _say(conversation, clock, "Ali Veli")

    allocation.book(customer_name="Faster", phone="5550000000", day=TOMORROW, hour="16:00", service="haircut")
    reply = _say(conversation, clock, "yes")

    assert "no longer available" in reply
    assert _step(sessions, clock) is None
    assert allocation.upcoming_for_phone(SENDER) == []


def test_expired_session_reads_as_idle(conversation, sessions, clock):
    sessions.save(BotSession(sender_id=SENDER, step=BotStep.AWAITING_HOUR, date=TOMORROW), clock())
    clock.advance(minutes=16)

    reply = _say(conversation, clock, "hello")

    assert "Test Barbers assistant" in reply


def test_appointment_query_lists_upcoming_bookings(conversation, clock, allocation):
    allocation.book(customer_name="Ali", phone=SENDER, day=TOMORROW, hour="11:00", service="haircut")

    reply = _say(conversation, clock, "my appointments")

    assert "2025-06-03 11:00" in reply


def test_feedback_reply_is_recorded(conversation, sessions, feedback_store, clock, allocation):
    appointment = allocation.book(customer_name="Ali Veli", phone=SENDER, day=TOMORROW, hour="11:00", service="haircut")
    sessions.save(
        BotSession(sender_id=SENDER, step=BotStep.AWAITING_FEEDBACK, appointment_id=appointment.id),
        clock(),
    )

    reply = _say(conversation, clock, "5 Great haircut")

    assert "Thank you" in reply
    recorded = feedback_store.list_recent()
    assert len(recorded) == 1
    assert recorded[0].rating == 5
    assert recorded[0].comment == "Great haircut"
    assert recorded[0].customer_name == "Ali Veli"
    assert sessions.get(SENDER, clock()) is None


def test_feedback_without_rating_asks_again(conversation, sessions, clock):
    sessions.save(BotSession(sender_id=SENDER, step=BotStep.AWAITING_FEEDBACK), clock())

    reply = _say(conversation, clock, "it was fine")

    assert "rating from 1 to 5" in reply
    assert _step(sessions, clock) == BotStep.AWAITING_FEEDBACK


def test_handle_replies_through_the_platform(conversation, platform):
    conversation.handle(_msg("hello"))

    assert len(platform.texts_to(SENDER)) == 1


def test_duplicate_message_ids_are_ignored(conversation, sessions, clock, platform):
    """A redelivered webhook message must not advance the dialog twice."""
    conversation.handle(_msg("book", message_id="wamid.1"))
    conversation.handle(_msg("book", message_id="wamid.1"))

    assert len(platform.texts_to(SENDER)) == 1
    assert _step(sessions, clock) == BotStep.AWAITING_DATE


def test_senders_are_independent(conversation, sessions, clock):
    _say(conversation, clock, "book", sender="905550000001")
    _say(conversation, clock, "hello", sender="905550000002")

    assert _step(sessions, clock, "905550000001") == BotStep.AWAITING_DATE
    assert _step(sessions, clock, "905550000002") is None


def test_sender_locks_are_released_after_handling(conversation):
    """Per-sender locks exist only while a message is being handled."""
    for index in range(500):
        conversation.handle(_msg("hi", sender=f"90555{index:07d}"))

    assert conversation.active_sender_locks == 0


def test_sender_locks_are_released_under_concurrency(conversation, platform):
    senders = [f"90555000000{index}" for index in range(5)]
    messages = [_msg("hi", sender=senders[index % len(senders)]) for index in range(50)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(conversation.handle, messages))

    assert conversation.active_sender_locks == 0
    assert len(platform.sent) == 50


def test_cancel_my_appointment_cancels_the_next_one(conversation, clock, allocation):
    allocation.book(customer_name="Ali", phone=SENDER, day=TOMORROW, hour="15:00", service="haircut")
    allocation.book(customer_name="Ali", phone=SENDER, day=TOMORROW, hour="11:00", service="haircut")

    reply = _say(conversation, clock, "Please cancel my appointment")

    assert "2025-06-03 at 11:00 has been cancelled" in reply
    remaining = allocation.upcoming_for_phone(SENDER)
    assert [a.hour for a in remaining] == ["15:00"]
    assert "11:00" in allocation.list_available_slots(TOMORROW)


def test_cancel_my_appointment_without_bookings(conversation, clock):
    reply = _say(conversation, clock, "cancel my appointment")

    assert "no upcoming appointment to cancel" in reply


def test_cancel_my_appointment_during_a_dialog_only_resets_the_session(conversation, sessions, clock, allocation):
    allocation.book(customer_name="Ali", phone=SENDER, day=TOMORROW, hour="11:00", service="haircut")
    _say(conversation, clock, "book")

    reply = _say(conversation, clock, "cancel my appointment")

    assert reply == CANCELLED_TEXT
    assert _step(sessions, clock) is None
    assert len(allocation.upcoming_for_phone(SENDER)) == 1


def test_complaint_is_recorded(conversation, sessions, complaint_store, clock):
    reply = _say(conversation, clock, "I have a complaint")
    assert "complaint or suggestion" in reply
    assert _step(sessions, clock) == BotStep.AWAITING_COMPLAINT

    reply = _say(conversation, clock, "The music was too loud")

    assert "passed on to our team" in reply
    assert _step(sessions, clock) is None
    recorded = complaint_store.list_recent()
    assert len(recorded) == 1
    assert recorded[0].customer_name == "Ali"
    assert recorded[0].phone == SENDER
    assert recorded[0].message == "The music was too loud"
    assert recorded[0].status == ComplaintStatus.PENDING
    assert recorded[0].source == "whatsapp"


def test_blank_complaint_asks_again(conversation, sessions, complaint_store, clock):
    sessions.save(BotSession(sender_id=SENDER, step=BotStep.AWAITING_COMPLAINT), clock())

    reply = _say(conversation, clock, "   ")

    assert "Please write your complaint" in reply
    assert _step(sessions, clock) == BotStep.AWAITING_COMPLAINT
    assert complaint_store.list_recent() == []
