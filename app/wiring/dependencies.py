from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from functools import lru_cache
import logging
from zoneinfo import ZoneInfo

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings
from app.domain.entities.business_settings import BusinessSettings
from app.application.ports.message_platform import MessagePlatformPort
from app.application.use_cases.broadcast import BroadcastUseCase
from app.application.use_cases.conversation import ConversationUseCase
from app.application.use_cases.notify import NotificationQueue
from app.application.use_cases.reminders import ReminderSchedulerUseCase
from app.application.use_cases.send_message import SendMessageUseCase
from app.application.use_cases.slot_allocation import SlotAllocationUseCase
from app.infrastructure.scheduling.sweep_runner import PeriodicSweepRunner
from app.infrastructure.store.database import create_db_engine, init_db, make_session_factory
from app.infrastructure.store.memory_store import MemorySessionStore
from app.infrastructure.store.sql_appointment_store import SqlAppointmentStore
from app.infrastructure.store.sql_complaint_store import SqlComplaintStore
from app.infrastructure.store.sql_feedback_store import SqlFeedbackStore
from app.infrastructure.store.sql_settings_store import SqlSettingsStore
from app.infrastructure.store.sql_staff_directory import SqlStaffDirectory
from app.infrastructure.whatsapp.mock_platform import MockWhatsAppPlatform
from app.infrastructure.whatsapp.whatsapp_client import WhatsAppClient
from app.infrastructure.whatsapp.whatsapp_platform import WhatsAppPlatform


_session_store: MemorySessionStore | None = None
_notifications: NotificationQueue | None = None


def get_timezone() -> ZoneInfo:
    return ZoneInfo(settings.BUSINESS_TIMEZONE)


@lru_cache
def get_engine() -> Engine:
    engine = create_db_engine(settings.DATABASE_URL)
    init_db(engine)
    return engine


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    return make_session_factory(get_engine())


def get_appointment_store() -> SqlAppointmentStore:
    return SqlAppointmentStore(get_session_factory())


def get_settings_store() -> SqlSettingsStore:
    return SqlSettingsStore(get_session_factory(), defaults=BusinessSettings(business_name=settings.BUSINESS_NAME))


def get_staff_directory() -> SqlStaffDirectory:
    return SqlStaffDirectory(get_session_factory())


def get_feedback_store() -> SqlFeedbackStore:
    return SqlFeedbackStore(get_session_factory())


def get_complaint_store() -> SqlComplaintStore:
    return SqlComplaintStore(get_session_factory())


def get_session_store() -> MemorySessionStore:
    global _session_store
    if _session_store is None:
        _session_store = MemorySessionStore(idle_timeout=timedelta(minutes=settings.SESSION_IDLE_MINUTES))
    return _session_store


@lru_cache
def get_whatsapp_platform() -> MessagePlatformPort:
    logger = logging.getLogger(__name__)
    logger.info(
        "WHATSAPP_ACCESS_TOKEN present=%s len=%s",
        bool(settings.WHATSAPP_ACCESS_TOKEN),
        len(settings.WHATSAPP_ACCESS_TOKEN or ""),
    )
    logger.info("ENV=%s", settings.ENV)

    if not settings.WHATSAPP_ACCESS_TOKEN or not settings.WHATSAPP_PHONE_NUMBER_ID:
        if settings.ENV.lower() in {"dev", "local"}:
            logger.info("Using MockWhatsAppPlatform (credentials missing, ENV=dev/local)")
            return MockWhatsAppPlatform()
        raise ValueError("WHATSAPP_ACCESS_TOKEN and WHATSAPP_PHONE_NUMBER_ID are required to send messages.")

    logger.info("Using real WhatsAppPlatform")
    client = WhatsAppClient(
        access_token=settings.WHATSAPP_ACCESS_TOKEN,
        phone_number_id=settings.WHATSAPP_PHONE_NUMBER_ID,
        api_version=settings.WHATSAPP_GRAPH_API_VERSION,
        base_url=settings.WHATSAPP_GRAPH_BASE_URL,
    )
    return WhatsAppPlatform(client=client)


def get_send_message_use_case() -> SendMessageUseCase:
    return SendMessageUseCase(platform=get_whatsapp_platform())


def get_notification_queue() -> NotificationQueue:
    global _notifications
    if _notifications is None:
        executor = ThreadPoolExecutor(max_workers=settings.NOTIFICATION_WORKERS, thread_name_prefix="notify")
        _notifications = NotificationQueue(get_send_message_use_case(), executor=executor)
    return _notifications


def get_slot_allocation_use_case() -> SlotAllocationUseCase:
    return SlotAllocationUseCase(
        store=get_appointment_store(),
        settings_store=get_settings_store(),
        notifications=get_notification_queue(),
        timezone=get_timezone(),
    )


def get_reminder_scheduler_use_case() -> ReminderSchedulerUseCase:
    return ReminderSchedulerUseCase(
        store=get_appointment_store(),
        settings_store=get_settings_store(),
        sessions=get_session_store(),
        send_message=get_send_message_use_case(),
        timezone=get_timezone(),
    )


def get_broadcast_use_case() -> BroadcastUseCase:
    return BroadcastUseCase(
        store=get_appointment_store(),
        send_message=get_send_message_use_case(),
        timezone=get_timezone(),
        min_delay_seconds=settings.BROADCAST_MIN_DELAY_SECONDS,
        max_delay_seconds=settings.BROADCAST_MAX_DELAY_SECONDS,
    )


@lru_cache
def get_conversation_use_case() -> ConversationUseCase:
    # Cached so the per-sender locks are shared by every webhook request.
    return ConversationUseCase(
        allocation=get_slot_allocation_use_case(),
        sessions=get_session_store(),
        staff=get_staff_directory(),
        feedback=get_feedback_store(),
        complaints=get_complaint_store(),
        send_message=get_send_message_use_case(),
        business_name=settings.BUSINESS_NAME,
    )


def build_sweep_runner() -> PeriodicSweepRunner:
    reminders = get_reminder_scheduler_use_case()
    sessions = get_session_store()
    timezone = get_timezone()

    def job() -> object:
        report = reminders.run_sweep()
        evicted = sessions.evict_expired(datetime.now(timezone))
        if evicted:
            logging.getLogger(__name__).info("Evicted idle sessions", extra={"evicted": evicted})
        return report

    return PeriodicSweepRunner(job, interval_seconds=settings.REMINDER_SWEEP_SECONDS)


def shutdown_notification_queue() -> None:
    global _notifications
    if _notifications is not None:
        _notifications.shutdown(wait=True)
        _notifications = None
