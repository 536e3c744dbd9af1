"""Match store used by the reminder engine."""

from datetime import datetime, timedelta, timezone
from typing import Protocol

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from matchtracker.core.exceptions import StoreError
from matchtracker.models import Match, Notification, User
from matchtracker.schemas.notification import NotifiableMatch, RecipientPreferences


class MatchStore(Protocol):
    """Queries the reminder engine runs against tenant-scoped storage."""

    def find_due_matches(
        self, low_offset: timedelta, high_offset: timedelta, now: datetime
    ) -> list[NotifiableMatch]:
        ...

    def mark_notified(self, match_id: int, sent_at: datetime) -> bool:
        ...

    def record_delivery(
        self, match_id: int, channel: str, status: str, error: str | None = None
    ) -> None:
        ...


def to_naive_utc(value: datetime) -> datetime:
    """Normalize a timestamp to the naive UTC form stored in the database."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class SqlAlchemyMatchStore:
    """
    SQLAlchemy implementation of :class:`MatchStore`.

    Each call opens its own session and transaction, so a scan never pins a
    connection for longer than one query or one conditional update.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    def find_due_matches(
        self, low_offset: timedelta, high_offset: timedelta, now: datetime
    ) -> list[NotifiableMatch]:
        """
        Find unfinished, unnotified matches starting inside the due window.

        Args:
            low_offset: Start of the window relative to ``now``
            high_offset: End of the window relative to ``now``
            now: Scan start time

        Returns:
            Candidates ordered by kick-off time

        Raises:
            StoreError: if the query fails
        """
        now = to_naive_utc(now)
        window_start = now + low_offset
        window_end = now + high_offset

        stmt = (
            select(Match, User)
            .join(User, Match.user_id == User.id)
            .where(
                Match.is_finished == False,  # noqa: E712
                Match.is_deleted == False,  # noqa: E712
                Match.notification_sent == False,  # noqa: E712
                Match.date >= window_start,
                Match.date <= window_end,
            )
            .order_by(Match.date)
        )

        try:
            with self.session_factory() as session:
                rows = session.execute(stmt).all()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load due matches: {e}") from e

        return [self._to_notifiable(match, user) for match, user in rows]

    def mark_notified(self, match_id: int, sent_at: datetime) -> bool:
        """
        Flip ``notification_sent`` for one match if nobody else has.

        Returns:
            True if this call performed the transition

        Raises:
            StoreError: if the update fails
        """
        stmt = (
            update(Match)
            .where(
                Match.id == match_id,
                Match.notification_sent == False,  # noqa: E712
            )
            .values(notification_sent=True, notification_sent_at=to_naive_utc(sent_at))
            .execution_options(synchronize_session=False)
        )

        try:
            with self.session_factory() as session, session.begin():
                result = session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not mark match {match_id} as notified: {e}") from e

        transitioned = result.rowcount == 1
        if not transitioned:
            logger.debug(f"Match {match_id} was already marked as notified")
        return transitioned

    def record_delivery(
        self, match_id: int, channel: str, status: str, error: str | None = None
    ) -> None:
        """Append a delivery attempt to the notification log."""
        try:
            with self.session_factory() as session, session.begin():
                session.add(
                    Notification(
                        match_id=match_id,
                        channel=channel,
                        status=status,
                        error_message=error,
                    )
                )
        except SQLAlchemyError as e:
            raise StoreError(f"Could not record {channel} delivery for match {match_id}: {e}") from e

    @staticmethod
    def _to_notifiable(match: Match, user: User) -> NotifiableMatch:
        return NotifiableMatch(
            id=match.id,
            user_id=match.user_id,
            opponent=match.opponent,
            date=match.date,
            venue=match.venue,
            match_type=match.match_type,
            is_finished=match.is_finished,
            notification_sent=match.notification_sent,
            notification_sent_at=match.notification_sent_at,
            owner=RecipientPreferences(
                push_enabled=bool(user.push_notifications),
                push_token=user.push_token,
                email_enabled=bool(user.email_notifications),
                encrypted_email=user.email,
                encrypted_name=user.name,
            ),
        )
