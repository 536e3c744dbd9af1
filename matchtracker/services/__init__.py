"""Services package."""

from sqlalchemy.orm import sessionmaker

from matchtracker.core.config import settings
from matchtracker.services.email_service import MailgunEmailService
from matchtracker.services.match_store import MatchStore, SqlAlchemyMatchStore
from matchtracker.services.push_service import ExpoPushService
from matchtracker.services.reminder_service import MatchReminderService


def build_reminder_service(session_factory: sessionmaker | None = None) -> MatchReminderService:
    """Wire the reminder service to the database and the real channel senders."""
    if session_factory is None:
        from matchtracker.database import SessionLocal

        session_factory = SessionLocal

    return MatchReminderService(
        SqlAlchemyMatchStore(session_factory),
        ExpoPushService(timeout=settings.CHANNEL_TIMEOUT_SECONDS),
        MailgunEmailService(timeout=settings.CHANNEL_TIMEOUT_SECONDS),
    )


__all__ = [
    "ExpoPushService",
    "MailgunEmailService",
    "MatchReminderService",
    "MatchStore",
    "SqlAlchemyMatchStore",
    "build_reminder_service",
]
