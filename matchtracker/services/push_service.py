"""Expo push notification service."""

import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
from loguru import logger

from matchtracker.core.config import settings
from matchtracker.core.exceptions import ChannelDeliveryError
from matchtracker.schemas.notification import NotifiableMatch, PushResult

# Expo accepts at most 100 messages per request
PUSH_CHUNK_SIZE = 100

_PUSH_TOKEN_RE = re.compile(r"^(ExponentPushToken|ExpoPushToken)\[.+\]$")


def is_push_token(token: str | None) -> bool:
    """Check that ``token`` looks like an Expo push token."""
    return bool(token) and bool(_PUSH_TOKEN_RE.match(token))


def chunk_messages(messages: list[dict[str, Any]], size: int = PUSH_CHUNK_SIZE) -> list[list[dict[str, Any]]]:
    return [messages[i:i + size] for i in range(0, len(messages), size)]


class ExpoPushService:
    """Service to send push notifications through the Expo push API."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 10.0) -> None:
        """
        Initialize Expo push service.

        Args:
            client: Shared HTTP client; a short-lived one is created per request if omitted
            timeout: Request timeout in seconds for short-lived clients
        """
        self.url = settings.EXPO_PUSH_URL
        self.access_token = settings.EXPO_ACCESS_TOKEN
        self.client = client
        self.timeout = timeout

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self.client is not None:
            yield self.client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    async def _post_chunk(self, chunk: list[dict[str, Any]]) -> list[dict[str, Any]]:
        try:
            async with self._http() as client:
                response = await client.post(self.url, json=chunk, headers=self.headers)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            raise ChannelDeliveryError("push", str(e)) from e
        except ValueError as e:
            raise ChannelDeliveryError("push", f"invalid response body: {e}") from e

        tickets = payload.get("data")
        if isinstance(tickets, dict):
            tickets = [tickets]
        if not isinstance(tickets, list) or len(tickets) != len(chunk):
            raise ChannelDeliveryError("push", "unexpected ticket list in response")
        return tickets

    @staticmethod
    def _ticket_result(ticket: dict[str, Any]) -> PushResult:
        if ticket.get("status") == "ok":
            return PushResult(ok=True, ticket_id=ticket.get("id"))

        details = ticket.get("details") or {}
        reason = details.get("error") or ticket.get("message") or "unknown_error"
        if reason == "DeviceNotRegistered":
            logger.warning("Push token is no longer registered and should be removed")
        return PushResult(ok=False, reason=reason)

    async def send_many(self, messages: list[dict[str, Any]]) -> list[PushResult]:
        """
        Send a batch of push messages.

        Messages with a malformed ``to`` token are dropped before sending.

        Args:
            messages: Expo message dicts

        Returns:
            One result per valid message, in order

        Raises:
            ChannelDeliveryError: if a chunk could not be handed to Expo
        """
        valid = [message for message in messages if is_push_token(message.get("to"))]
        if not valid:
            logger.info("No valid push tokens to send notifications to")
            return []

        chunks = chunk_messages(valid)
        logger.info(f"Sending {len(valid)} push notifications in {len(chunks)} chunks")

        results: list[PushResult] = []
        for chunk in chunks:
            tickets = await self._post_chunk(chunk)
            results.extend(self._ticket_result(ticket) for ticket in tickets)
        return results

    async def send_push(
        self,
        token: str,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> PushResult:
        """
        Send one push notification.

        Args:
            token: Expo push token
            title: Notification title
            body: Notification body
            data: Extra payload delivered to the app

        Returns:
            Whether Expo accepted the message

        Raises:
            ChannelDeliveryError: if Expo could not be reached
        """
        if not is_push_token(token):
            return PushResult(ok=False, reason="invalid_token")

        message = {
            "to": token,
            "sound": "default",
            "title": title,
            "body": body,
            "data": data or {},
            "priority": "high",
            "channelId": "default",
        }
        tickets = await self._post_chunk([message])
        return self._ticket_result(tickets[0])

    async def send_match_reminder(
        self, token: str, match: NotifiableMatch, minutes: int
    ) -> PushResult:
        """Send the "match starting soon" push for ``match``, due in ``minutes``."""
        return await self.send_push(
            token,
            title="⚽ Match Starting Soon!",
            body=(
                f"Your match against {match.opponent} starts in {minutes} minutes "
                f"at {match.venue or 'TBD'}"
            ),
            data={"matchId": match.id, "type": "match_reminder"},
        )

