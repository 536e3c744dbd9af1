"""Match reminder service: finds matches about to start and notifies their owners."""

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol

from loguru import logger

from matchtracker.core.config import settings
from matchtracker.core.encryption import decrypt
from matchtracker.core.exceptions import (
    ChannelDeliveryError,
    ConfigurationError,
    IntegrityError,
    StoreError,
)
from matchtracker.schemas.notification import EmailResult, NotifiableMatch, PushResult, ScanResult
from matchtracker.services.match_store import MatchStore, to_naive_utc

PUSH = "push"
EMAIL = "email"

# Provider rejections worth retrying on a later tick
TRANSIENT_REASONS = frozenset({"MessageRateExceeded"})


class PushSender(Protocol):
    async def send_match_reminder(
        self, token: str, match: NotifiableMatch, minutes: int
    ) -> PushResult:
        ...


class EmailSender(Protocol):
    async def send_match_reminder(
        self, to_address: str, user_name: str | None, match: NotifiableMatch
    ) -> EmailResult:
        ...


@dataclass
class ChannelOutcome:
    """Result of one channel attempt for one match.

    ``transient`` failures leave the match due for another scan; ``skipped``
    attempts never reached the provider.
    """

    channel: str
    ok: bool
    reason: str | None = None
    transient: bool = False
    skipped: bool = False

    @property
    def status(self) -> str:
        if self.ok:
            return "sent"
        return "skipped" if self.skipped else "failed"


def minutes_until(match: NotifiableMatch, now: datetime) -> int:
    """Whole minutes from ``now`` until kick-off, never less than one."""
    delta = to_naive_utc(match.date) - to_naive_utc(now)
    return max(1, round(delta.total_seconds() / 60))


class MatchReminderService:
    """
    Sends "match starting soon" reminders.

    A scan loads every unfinished, unnotified match whose kick-off falls in
    ``[now + low_offset, now + high_offset]`` and, per match, tries push and
    email in parallel. The match is marked as notified when at least one
    channel delivered, or when no attempt can succeed on a retry (no usable
    channel, or only permanent failures such as an unregistered device).
    When nothing delivered and a failure was transient the match is left
    unmarked so the next scan retries it while it is still inside the window.
    """

    def __init__(
        self,
        store: MatchStore,
        push_sender: PushSender,
        email_sender: EmailSender,
        *,
        low_offset: timedelta | None = None,
        high_offset: timedelta | None = None,
        channel_timeout: float | None = None,
    ) -> None:
        self.store = store
        self.push_sender = push_sender
        self.email_sender = email_sender
        self.low_offset = (
            low_offset if low_offset is not None
            else timedelta(minutes=settings.NOTIFY_WINDOW_START_MINUTES)
        )
        self.high_offset = (
            high_offset if high_offset is not None
            else timedelta(minutes=settings.NOTIFY_WINDOW_END_MINUTES)
        )
        if self.low_offset > self.high_offset:
            raise ConfigurationError("Reminder window start must not be after its end")
        self.channel_timeout = (
            channel_timeout if channel_timeout is not None else settings.CHANNEL_TIMEOUT_SECONDS
        )

    async def run_scan_once(self, now: datetime | None = None) -> ScanResult:
        """
        Run one reminder scan.

        Args:
            now: Scan start time (defaults to the current UTC time)

        Returns:
            Counters for the scan

        Raises:
            StoreError: if the candidate list could not be loaded
        """
        now = now or datetime.now(timezone.utc)
        result = ScanResult()

        try:
            candidates = self.store.find_due_matches(self.low_offset, self.high_offset, now)
        except StoreError as e:
            logger.error(f"Reminder scan aborted, could not load candidates: {e}")
            raise

        result.checked = len(candidates)
        logger.info(f"Found {len(candidates)} matches due for a reminder")

        for match in candidates:
            try:
                await self._process_match(match, now, result)
            except Exception as e:
                result.failed += 1
                # Log the error type only
                logger.error(f"Unexpected error while processing match {match.id}: {type(e).__name__}")

        logger.info(
            f"Reminder scan complete: checked={result.checked} notified={result.notified} "
            f"skipped={result.skipped} failed={result.failed} channel_failures={result.channel_failures}"
        )
        return result

    async def _process_match(self, match: NotifiableMatch, now: datetime, result: ScanResult) -> None:
        owner = match.owner
        attempts = []
        if owner.wants_push:
            attempts.append(self._attempt_push(match, now))
        if owner.wants_email:
            attempts.append(self._attempt_email(match))

        outcomes: list[ChannelOutcome] = list(await asyncio.gather(*attempts)) if attempts else []

        for outcome in outcomes:
            if not outcome.ok:
                result.channel_failures += 1
            self._record(match.id, outcome)

        delivered = any(outcome.ok for outcome in outcomes)
        retryable = any(outcome.transient for outcome in outcomes)
        if not delivered and retryable:
            result.failed += 1
            logger.warning(f"No channel delivered the reminder for match {match.id}; will retry while due")
            return

        try:
            marked = self.store.mark_notified(match.id, now)
        except StoreError as e:
            result.failed += 1
            logger.error(f"Could not mark match {match.id} as notified: {e}")
            return

        if not marked:
            logger.info(f"Match {match.id} was already handled by another scan")
        elif delivered:
            result.notified += 1
            logger.info(f"Reminder sent for match {match.id}")
        elif outcomes:
            result.skipped += 1
            logger.info(f"Match {match.id} cannot be delivered on any channel; marked as handled")
        else:
            result.skipped += 1
            logger.info(f"Match {match.id} owner has no enabled channel; marked as handled")

    async def _attempt_push(self, match: NotifiableMatch, now: datetime) -> ChannelOutcome:
        send = self.push_sender.send_match_reminder(
            match.owner.push_token, match, minutes_until(match, now)
        )
        return await self._deliver(PUSH, match.id, send)

    async def _attempt_email(self, match: NotifiableMatch) -> ChannelOutcome:
        owner = match.owner
        try:
            to_address = decrypt(owner.encrypted_email)
            user_name = decrypt(owner.encrypted_name)
        except (IntegrityError, ConfigurationError) as e:
            # Log the error type only
            logger.error(f"Could not decrypt recipient for match {match.id}: {type(e).__name__}")
            return ChannelOutcome(EMAIL, ok=False, reason="undecryptable_recipient", skipped=True)

        send = self.email_sender.send_match_reminder(to_address, user_name, match)
        return await self._deliver(EMAIL, match.id, send)

    async def _deliver(
        self, channel: str, match_id: int, send: Awaitable[PushResult | EmailResult]
    ) -> ChannelOutcome:
        try:
            sent = await asyncio.wait_for(send, timeout=self.channel_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{channel} reminder for match {match_id} timed out after {self.channel_timeout}s")
            return ChannelOutcome(channel, ok=False, reason="timeout", transient=True)
        except ChannelDeliveryError as e:
            logger.warning(f"{channel} reminder for match {match_id} failed: {e.reason}")
            return ChannelOutcome(channel, ok=False, reason=e.reason, transient=True)
        except Exception as e:
            logger.error(f"{channel} sender raised {type(e).__name__} for match {match_id}")
            return ChannelOutcome(channel, ok=False, reason=type(e).__name__)

        if not sent.ok:
            logger.warning(f"{channel} reminder for match {match_id} rejected: {sent.reason}")
            return ChannelOutcome(
                channel, ok=False, reason=sent.reason, transient=sent.reason in TRANSIENT_REASONS
            )
        return ChannelOutcome(channel, ok=True)

    def _record(self, match_id: int, outcome: ChannelOutcome) -> None:
        try:
            self.store.record_delivery(match_id, outcome.channel, outcome.status, outcome.reason)
        except StoreError as e:
            logger.warning(f"Could not record {outcome.channel} delivery for match {match_id}: {e}")
