from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable
from zoneinfo import ZoneInfo

from app.application.exceptions import SendFailure
from app.application.ports.appointment_store import AppointmentStorePort, ReminderFlag
from app.application.ports.session_store import SessionStorePort
from app.application.ports.settings_store import SettingsStorePort
from app.application.use_cases.send_message import SendMessageUseCase
from app.domain.entities.appointment import Appointment
from app.domain.entities.bot_session import BotSession, BotStep

# (lower exclusive, upper inclusive) minutes before the start.
# Bands are wider than the sweep interval so jitter never skips or repeats a reminder.
REMINDER_60_WINDOW = (45.0, 60.0)
REMINDER_30_WINDOW = (20.0, 40.0)
FEEDBACK_DELAY = timedelta(hours=2)


@dataclass
class SweepReport:
    reminders_60: int = 0
    reminders_30: int = 0
    feedback_requests: int = 0
    failures: int = 0


class ReminderSchedulerUseCase:
    """
    One sweep sends at-most-once reminders and feedback prompts for today's appointments.

    A flag is set after its send attempt whether or not the send succeeded, so a
    failing transport never produces a duplicate storm on the next sweep.
    """

    def __init__(
        self,
        store: AppointmentStorePort,
        settings_store: SettingsStorePort,
        sessions: SessionStorePort,
        send_message: SendMessageUseCase,
        timezone: ZoneInfo,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._settings_store = settings_store
        self._sessions = sessions
        self._send_message = send_message
        self._timezone = timezone
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def run_sweep(self, now: datetime | None = None) -> SweepReport:
        if now is None:
            now = self._clock() if self._clock is not None else datetime.now(self._timezone)
        report = SweepReport()
        self._reminder_pass(now, report)
        self._feedback_pass(now, report)
        self._logger.info(
            "Reminder sweep finished",
            extra={
                "reminders_60": report.reminders_60,
                "reminders_30": report.reminders_30,
                "feedback_requests": report.feedback_requests,
                "failures": report.failures,
            },
        )
        return report

    def _reminder_pass(self, now: datetime, report: SweepReport) -> None:
        business = self._settings_store.get_settings()
        for appointment in self._store.find_pending_reminders(now.date()):
            delta = (appointment.starts_at(self._timezone) - now).total_seconds() / 60

            if _in_window(delta, REMINDER_60_WINDOW) and not appointment.reminder_sent_60:
                flag = ReminderFlag.REMINDER_60
                text = (
                    f"Dear {appointment.customer_name},\n"
                    f"Your appointment starts in about 1 hour ({appointment.hour}). We are looking forward to seeing you."
                )
            elif _in_window(delta, REMINDER_30_WINDOW) and not appointment.reminder_sent_30:
                flag = ReminderFlag.REMINDER_30
                text = (
                    f"Dear {appointment.customer_name},\n"
                    f"Your appointment starts in 30 minutes ({appointment.hour})."
                )
            else:
                continue

            if business.business_address:
                text += f"\nAddress: {business.business_address}"
            text += f"\n- {business.business_name}"

            if self._attempt_send(appointment, text, flag):
                if flag == ReminderFlag.REMINDER_60:
                    report.reminders_60 += 1
                else:
                    report.reminders_30 += 1
            else:
                report.failures += 1
            self._store.mark_flag(appointment.id, flag)

    def _feedback_pass(self, now: datetime, report: SweepReport) -> None:
        business = self._settings_store.get_settings()
        for appointment in self._store.find_feedback_candidates(now.date()):
            if now - appointment.starts_at(self._timezone) < FEEDBACK_DELAY:
                continue

            text = (
                f"Hello {appointment.customer_name}, thank you for choosing {business.business_name} today!\n\n"
                "How satisfied were you? Reply with a rating from 1 to 5 and an optional comment.\n"
                'Example: "5 Great haircut"'
            )
            delivered = self._attempt_send(appointment, text, ReminderFlag.FEEDBACK)
            self._store.mark_flag(appointment.id, ReminderFlag.FEEDBACK)
            if not delivered:
                report.failures += 1
                continue

            report.feedback_requests += 1
            self._open_feedback_session(appointment, now)

    def _open_feedback_session(self, appointment: Appointment, now: datetime) -> None:
        current = self._sessions.get(appointment.phone, now)
        if current is not None and current.step not in (BotStep.IDLE, BotStep.AWAITING_FEEDBACK):
            # Customer is in the middle of a booking dialog; do not clobber it.
            return
        self._sessions.save(
            BotSession(
                sender_id=appointment.phone,
                step=BotStep.AWAITING_FEEDBACK,
                appointment_id=appointment.id,
                barber_id=appointment.barber_id,
                barber_name=appointment.barber_name,
                customer_name=appointment.customer_name,
            ),
            now,
        )

    def _attempt_send(self, appointment: Appointment, text: str, flag: ReminderFlag) -> bool:
        try:
            self._send_message.execute(appointment.phone, text)
            self._logger.info(
                "Scheduled message sent",
                extra={"appointment_id": appointment.id, "phone": appointment.phone, "reason": flag.value},
            )
            return True
        except SendFailure as e:
            self._logger.error(
                "Scheduled message failed",
                extra={"appointment_id": appointment.id, "phone": appointment.phone, "reason": e.reason},
            )
        except Exception as e:
            self._logger.exception(
                "Scheduled message crashed",
                extra={"appointment_id": appointment.id, "phone": appointment.phone, "reason": str(e)},
            )
        return False


def _in_window(delta_minutes: float, window: tuple[float, float]) -> bool:
    low, high = window
    return low < delta_minutes <= high
