from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Iterator

from app.application.exceptions import BookingError, SendFailure, SlotTakenError
from app.application.ports.complaint_store import ComplaintStorePort
from app.application.ports.feedback_store import FeedbackStorePort
from app.application.ports.session_store import SessionStorePort
from app.application.ports.staff_directory import StaffDirectoryPort
from app.application.use_cases.send_message import SendMessageUseCase
from app.application.use_cases.slot_allocation import SlotAllocationUseCase
from app.application.utils.date_parser import parse_date_input, parse_hour_input
from app.application.utils.message_rules import (
    extract_rating,
    is_affirmative,
    is_appointment_cancel_request,
    is_appointment_query,
    is_booking_request,
    is_cancel_request,
    is_complaint_request,
    normalize_text,
)
from app.domain.entities.appointment import BookingSource
from app.domain.entities.bot_session import BotSession, BotStep
from app.domain.entities.message import Message
from app.domain.entities.staff import StaffMember

DEFAULT_CHAT_SERVICE = "haircut"

CANCELLED_TEXT = (
    "✅ Cancelled.\n\nAnything else we can help with?\n"
    '- Type "book" to make an appointment\n'
    '- Type "my appointments" to see your bookings'
)
DATE_FORMAT_HINT = 'Please reply with "today", "tomorrow", a date like YYYY-MM-DD or DD.MM, or a number from the list.'
HOUR_FORMAT_HINT = "Please reply with an hour like 14:00."


class ConversationUseCase:
    """
    Per-sender booking dialog over the chat transport.

    Messages from one sender are processed one at a time in arrival order;
    different senders never block each other.
    """

    def __init__(
        self,
        allocation: SlotAllocationUseCase,
        sessions: SessionStorePort,
        staff: StaffDirectoryPort,
        feedback: FeedbackStorePort,
        complaints: ComplaintStorePort,
        send_message: SendMessageUseCase,
        business_name: str,
        clock: Callable[[], datetime] | None = None,
        date_option_count: int = 7,
    ) -> None:
        self._allocation = allocation
        self._sessions = sessions
        self._staff = staff
        self._feedback = feedback
        self._complaints = complaints
        self._send_message = send_message
        self._business_name = business_name
        self._clock = clock
        self._date_option_count = date_option_count
        self._locks: dict[str, _SenderLock] = {}
        self._lock_lock = threading.Lock()
        self._logger = logging.getLogger(__name__)
        self._handlers: dict[BotStep, Callable[[BotSession, Message, datetime], str]] = {
            BotStep.AWAITING_BARBER: self._on_barber,
            BotStep.AWAITING_DATE: self._on_date,
            BotStep.AWAITING_HOUR: self._on_hour,
            BotStep.AWAITING_NAME: self._on_name,
            BotStep.CONFIRMING: self._on_confirm,
            BotStep.AWAITING_FEEDBACK: self._on_feedback,
            BotStep.AWAITING_COMPLAINT: self._on_complaint,
        }

    def handle(self, message: Message) -> None:
        try:
            now = self.now()
            if not self._sessions.mark_processed(message.id, now):
                self._logger.info("Duplicate message ignored", extra={"message_id": message.id})
                return

            with self._serialized(message.sender_id):
                reply = self.process(message, now)
                if reply:
                    self._reply(message.sender_id, reply)
        except Exception as e:
            self._logger.exception(
                "Failed to handle incoming message",
                extra={"message_id": message.id, "sender_id": message.sender_id, "reason": str(e)},
            )

    def process(self, message: Message, now: datetime) -> str:
        """Advance the sender's session by one inbound message and return the reply text."""
        session = self._sessions.get(message.sender_id, now)
        idle = session is None or session.step == BotStep.IDLE

        if idle and is_appointment_cancel_request(message.text):
            return self._cancel_next_appointment(message.sender_id)

        if is_cancel_request(message.text):
            self._sessions.delete(message.sender_id)
            self._logger.info(
                "Session cancelled by user",
                extra={"sender_id": message.sender_id, "step": session.step.value if session else BotStep.IDLE.value},
            )
            return CANCELLED_TEXT

        if idle:
            return self._on_idle(message, now)

        handler = self._handlers[session.step]
        return handler(session, message, now)

    # --- state handlers ---

    def _on_idle(self, message: Message, now: datetime) -> str:
        if is_appointment_query(message.text):
            return self._describe_upcoming(message.sender_id)
        if is_booking_request(message.text):
            return self._start_booking(message.sender_id, now)
        if is_complaint_request(message.text):
            self._sessions.save(BotSession(sender_id=message.sender_id, step=BotStep.AWAITING_COMPLAINT), now)
            return "📝 Please write your complaint or suggestion and we will pass it on to the team."
        return self._help_text(message.sender_name)

    def _start_booking(self, sender_id: str, now: datetime) -> str:
        staff = self._staff.list_active_staff()
        session = BotSession(sender_id=sender_id)

        if len(staff) > 1:
            self._sessions.save(replace(session, step=BotStep.AWAITING_BARBER), now)
            return "✂️ Which barber would you like?\n\n" + _staff_list(staff) + "\n\nPlease reply with a name."

        if len(staff) == 1:
            session = replace(session, barber_id=staff[0].id, barber_name=staff[0].name)
        return self._ask_for_date(session, now, intro="📅 Which day would you like?")

    def _on_barber(self, session: BotSession, message: Message, now: datetime) -> str:
        staff = self._staff.list_active_staff()
        chosen = _match_staff(message.text, staff)
        if chosen is None:
            return "❌ Please choose one of our barbers:\n\n" + _staff_list(staff)

        session = replace(session, barber_id=chosen.id, barber_name=chosen.name)
        return self._ask_for_date(session, now, intro=f"✂️ {chosen.name} selected.\n\n📅 Which day would you like?")

    def _on_date(self, session: BotSession, message: Message, now: datetime) -> str:
        day = _pick_option(message.text, session.date_options)
        if day is None:
            day = parse_date_input(message.text, now.date())
        if day is None:
            return "📅 I could not read that date. " + DATE_FORMAT_HINT + _date_list(session.date_options)

        slots = self._allocation.list_available_slots(day, session.barber_id)
        if not slots:
            return (
                f"😔 There are no free hours on {day.isoformat()}. Please pick another date."
                + _date_list(session.date_options)
            )

        self._sessions.save(replace(session, step=BotStep.AWAITING_HOUR, date=day), now)
        return f"📅 Free hours on {day.isoformat()}:\n{', '.join(slots)}\n\n{HOUR_FORMAT_HINT}"

    def _on_hour(self, session: BotSession, message: Message, now: datetime) -> str:
        if session.date is None:
            return self._ask_for_date(session, now, intro="📅 Which day would you like?")

        hour = parse_hour_input(message.text)
        if hour is None:
            return "🕐 " + HOUR_FORMAT_HINT

        slots = self._allocation.list_available_slots(session.date, session.barber_id)
        if hour not in slots:
            if not slots:
                return self._ask_for_date(
                    replace(session, date=None),
                    now,
                    intro=f"😔 {session.date.isoformat()} is now fully booked. Please pick another date.",
                )
            return f"❌ {hour} is not available. Please choose one of:\n{', '.join(slots)}"

        self._sessions.save(replace(session, step=BotStep.AWAITING_NAME, hour=hour), now)
        return "👤 What name should we put the appointment under?"

    def _on_name(self, session: BotSession, message: Message, now: datetime) -> str:
        name = " ".join(message.text.split())
        if len(name) < 2:
            return "👤 Please tell us your name (at least 2 characters)."

        session = replace(session, step=BotStep.CONFIRMING, customer_name=name)
        self._sessions.save(session, now)
        return _summary(session) + '\n\nReply "yes" to confirm or "cancel" to stop.'

    def _on_confirm(self, session: BotSession, message: Message, now: datetime) -> str:
        if not is_affirmative(message.text):
            return _summary(session) + '\n\nPlease reply "yes" to confirm or "cancel" to stop.'

        try:
            appointment = self._allocation.book(
                customer_name=session.customer_name or message.sender_name or "Customer",
                phone=message.sender_id,
                day=session.date,
                hour=session.hour,
                service=DEFAULT_CHAT_SERVICE,
                barber_id=session.barber_id,
                barber_name=session.barber_name,
                created_from=BookingSource.CHAT,
            )
        except SlotTakenError as e:
            self._sessions.delete(message.sender_id)
            return "😔 " + e.detail + '\nType "book" to start again.'
        except BookingError as e:
            self._sessions.delete(message.sender_id)
            self._logger.info(
                "Chat booking rejected",
                extra={"sender_id": message.sender_id, "reason": e.detail},
            )
            return "⚠️ " + e.detail + '\nType "book" to start again.'

        self._sessions.delete(message.sender_id)
        text = f"✅ Appointment confirmed!\n\n📅 {appointment.date.isoformat()} - {appointment.hour}"
        if appointment.barber_name:
            text += f"\n✂️ {appointment.barber_name}"
        return text + "\n\nThank you, see you soon!"

    def _on_feedback(self, session: BotSession, message: Message, now: datetime) -> str:
        if is_booking_request(message.text):
            self._sessions.delete(message.sender_id)
            return self._start_booking(message.sender_id, now)

        parsed = extract_rating(message.text)
        if parsed is None:
            return "⭐ Please reply with a rating from 1 to 5, optionally followed by a comment."

        rating, comment = parsed
        customer_name = session.customer_name or message.sender_name or "Customer"
        if session.appointment_id:
            appointment = self._allocation.get_appointment(session.appointment_id)
            if appointment is not None:
                customer_name = appointment.customer_name

        self._feedback.add(
            customer_name=customer_name,
            phone=message.sender_id,
            rating=rating,
            comment=comment or "Rating only",
            appointment_id=session.appointment_id,
            barber_id=session.barber_id,
            barber_name=session.barber_name,
        )
        self._sessions.delete(message.sender_id)
        self._logger.info("Feedback recorded", extra={"sender_id": message.sender_id, "rating": rating})
        return "✅ Thank you for your feedback!"

    def _on_complaint(self, session: BotSession, message: Message, now: datetime) -> str:
        text = message.text.strip()
        if not text:
            return "📝 Please write your complaint or suggestion."

        self._complaints.add(
            customer_name=message.sender_name or "Customer",
            phone=message.sender_id,
            message=text,
        )
        self._sessions.delete(message.sender_id)
        self._logger.info("Complaint recorded", extra={"sender_id": message.sender_id})
        return "🙏 Thank you. Your message has been passed on to our team."

    # --- helpers ---

    def _cancel_next_appointment(self, sender_id: str) -> str:
        appointment = self._allocation.cancel_next_for_phone(sender_id)
        if appointment is None:
            return 'You have no upcoming appointment to cancel. Type "book" to make one.'
        return (
            f"✅ Your appointment on {appointment.date.isoformat()} at {appointment.hour} has been cancelled.\n"
            'Type "book" to make a new one.'
        )

    def _ask_for_date(self, session: BotSession, now: datetime, intro: str) -> str:
        options = tuple(self._allocation.open_dates(session.barber_id, limit=self._date_option_count))
        self._sessions.save(replace(session, step=BotStep.AWAITING_DATE, date_options=options), now)
        if not options:
            return intro + "\n\n😔 There are no free slots in the coming days. " + DATE_FORMAT_HINT
        return intro + _date_list(options, today=now.date())

    def _describe_upcoming(self, sender_id: str) -> str:
        appointments = self._allocation.upcoming_for_phone(sender_id)
        if not appointments:
            return 'You have no upcoming appointments. Type "book" to make one.'
        lines = []
        for appointment in appointments:
            line = f"- {appointment.date.isoformat()} {appointment.hour}"
            if appointment.barber_name:
                line += f" ({appointment.barber_name})"
            lines.append(line)
        return "📅 Your appointments:\n" + "\n".join(lines)

    def _help_text(self, sender_name: str | None) -> str:
        greeting = f"👋 Hello {sender_name}!" if sender_name else "👋 Hello!"
        return (
            f"{greeting}\n\nThis is the {self._business_name} assistant. What would you like to do?\n\n"
            '📅 Book an appointment (type "book")\n'
            '❓ See your appointments (type "my appointments")\n'
            '📝 Send a complaint or suggestion (type "complaint")\n'
            '↩️ Stop at any time (type "cancel")'
        )

    def _reply(self, recipient_id: str, text: str) -> None:
        try:
            self._send_message.execute(recipient_id, text)
        except SendFailure as e:
            self._logger.error("Reply send failed", extra={"sender_id": recipient_id, "reason": e.reason})

    @contextmanager
    def _serialized(self, sender_id: str) -> Iterator[None]:
        # entries live only while some thread holds or waits on them
        with self._lock_lock:
            entry = self._locks.get(sender_id)
            if entry is None:
                entry = self._locks[sender_id] = _SenderLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._lock_lock:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[sender_id]

    @property
    def active_sender_locks(self) -> int:
        with self._lock_lock:
            return len(self._locks)

    def now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        return self._allocation.now()


class _SenderLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


def _staff_list(staff: list[StaffMember]) -> str:
    return "\n".join(f"{index}. {member.name}" for index, member in enumerate(staff, start=1))


def _match_staff(text: str, staff: list[StaffMember]) -> StaffMember | None:
    wanted = " ".join(text.split()).casefold()
    for member in staff:
        if member.name.casefold() == wanted:
            return member
    if wanted.isdigit():
        index = int(wanted)
        if 1 <= index <= len(staff):
            return staff[index - 1]
    return None


def _pick_option(text: str, options: tuple[date, ...]) -> date | None:
    normalized = normalize_text(text)
    if normalized.isdigit():
        index = int(normalized)
        if 1 <= index <= len(options):
            return options[index - 1]
    return None


def _date_list(options: tuple[date, ...], today: date | None = None) -> str:
    if not options:
        return ""
    lines = []
    for index, day in enumerate(options, start=1):
        label = day.strftime("%a %Y-%m-%d")
        if today is not None and day == today:
            label += " (today)"
        lines.append(f"{index}. {label}")
    return "\n\n" + "\n".join(lines)


def _summary(session: BotSession) -> str:
    lines = [
        "Please confirm your appointment:",
        f"📅 {session.date.isoformat() if session.date else '-'} - {session.hour or '-'}",
    ]
    if session.barber_name:
        lines.append(f"✂️ {session.barber_name}")
    lines.append(f"👤 {session.customer_name}")
    return "\n".join(lines)
