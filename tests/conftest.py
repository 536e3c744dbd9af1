"""Shared fixtures for the reminder engine tests."""

import asyncio
import os
from collections.abc import Iterator
from datetime import datetime, timedelta
from itertools import count

os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-secret")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import matchtracker.models  # noqa: F401
from matchtracker.core.config import get_settings
from matchtracker.core.encryption import encrypt
from matchtracker.database import Base
from matchtracker.models import Match, User
from matchtracker.schemas.notification import EmailResult, PushResult
from matchtracker.services.email_service import MailgunEmailService
from matchtracker.services.match_store import SqlAlchemyMatchStore
from matchtracker.services.push_service import ExpoPushService

NOW = datetime(2026, 10, 18, 12, 0, 0)
PUSH_TOKEN = "ExponentPushToken[xxxxxxxxxxxxxxxxxxxxxx]"
USER_EMAIL = "coach@example.com"
USER_NAME = "Alex Morgan"

_USER_IDS = count(1)


class FakePushSender(ExpoPushService):
    """Expo sender whose transport only records sends; succeeds unless told otherwise."""

    def __init__(
        self,
        result: PushResult | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        super().__init__()
        self.result = result or PushResult(ok=True, ticket_id="ticket-1")
        self.error = error
        self.delay = delay
        self.calls: list[dict] = []

    async def send_push(self, token, title, body, data=None) -> PushResult:
        self.calls.append({"token": token, "title": title, "body": body, "data": data})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


class FakeEmailSender(MailgunEmailService):
    """Mailgun sender whose transport only records sends; succeeds unless told otherwise."""

    def __init__(
        self,
        result: EmailResult | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        super().__init__()
        self.result = result or EmailResult(ok=True, id="<msg-1@mailgun>")
        self.error = error
        self.delay = delay
        self.calls: list[dict] = []

    async def send_email(self, to_address, subject, text_body, html_body=None) -> EmailResult:
        self.calls.append(
            {"to": to_address, "subject": subject, "text": text_body, "html": html_body}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture()
def app_settings():
    """The process-wide settings object; tests monkeypatch its attributes."""
    return get_settings()


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def store(session_factory: sessionmaker) -> SqlAlchemyMatchStore:
    return SqlAlchemyMatchStore(session_factory)


@pytest.fixture()
def add_user(session_factory: sessionmaker):
    """Factory inserting a user with encrypted PII."""

    def _add_user(
        *,
        email: str | None = USER_EMAIL,
        name: str | None = USER_NAME,
        push_token: str | None = PUSH_TOKEN,
        push_notifications: bool = True,
        email_notifications: bool = True,
        raw_email: str | None = None,
    ) -> str:
        user_id = f"user_{next(_USER_IDS)}"
        with session_factory() as session, session.begin():
            session.add(
                User(
                    id=user_id,
                    email=raw_email if raw_email is not None else encrypt(email),
                    name=encrypt(name),
                    push_token=push_token,
                    push_notifications=push_notifications,
                    email_notifications=email_notifications,
                )
            )
        return user_id

    return _add_user


@pytest.fixture()
def add_match(session_factory: sessionmaker):
    """Factory inserting a match that starts ``minutes`` after ``NOW``."""

    def _add_match(user_id: str, minutes: float, **fields) -> int:
        values = {
            "opponent": "Riverside FC",
            "venue": "North Park",
            "match_type": "league",
        }
        values.update(fields)
        with session_factory() as session, session.begin():
            match = Match(user_id=user_id, date=NOW + timedelta(minutes=minutes), **values)
            session.add(match)
            session.flush()
            return match.id

    return _add_match


@pytest.fixture()
def get_match(session_factory: sessionmaker):
    def _get_match(match_id: int) -> Match:
        with session_factory() as session:
            return session.get(Match, match_id)

    return _get_match
