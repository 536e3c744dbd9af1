"""Tests for the Expo push sender."""

import json
from datetime import datetime

import httpx
import pytest

from matchtracker.core.exceptions import ChannelDeliveryError
from matchtracker.schemas.notification import NotifiableMatch
from matchtracker.services.push_service import ExpoPushService, chunk_messages, is_push_token
from tests.conftest import PUSH_TOKEN


def expo_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def ok_tickets(request: httpx.Request) -> httpx.Response:
    messages = json.loads(request.content)
    return httpx.Response(
        200,
        json={"data": [{"status": "ok", "id": f"ticket-{i}"} for i in range(len(messages))]},
    )


@pytest.mark.parametrize(
    "token,expected",
    [
        (PUSH_TOKEN, True),
        ("ExpoPushToken[abc123]", True),
        ("ExponentPushToken[]", False),
        ("apns-device-token", False),
        ("", False),
        (None, False),
    ],
)
def test_is_push_token(token, expected) -> None:
    assert is_push_token(token) is expected


def test_chunk_messages() -> None:
    messages = [{"to": PUSH_TOKEN}] * 205
    assert [len(chunk) for chunk in chunk_messages(messages)] == [100, 100, 5]


@pytest.mark.asyncio
async def test_send_push_accepted() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return ok_tickets(request)

    async with expo_client(handler) as client:
        result = await ExpoPushService(client=client).send_push(
            PUSH_TOKEN, "⚽ Match Starting Soon!", "Kick-off in 8 minutes", {"matchId": 4}
        )

    assert result.ok is True
    assert result.ticket_id == "ticket-0"

    [request] = requests
    assert request.method == "POST"
    assert str(request.url) == "https://exp.host/--/api/v2/push/send"
    [message] = json.loads(request.content)
    assert message == {
        "to": PUSH_TOKEN,
        "sound": "default",
        "title": "⚽ Match Starting Soon!",
        "body": "Kick-off in 8 minutes",
        "data": {"matchId": 4},
        "priority": "high",
        "channelId": "default",
    }


@pytest.mark.asyncio
async def test_invalid_token_is_not_sent() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with expo_client(handler) as client:
        result = await ExpoPushService(client=client).send_push("bogus", "t", "b")

    assert result.ok is False
    assert result.reason == "invalid_token"


@pytest.mark.asyncio
async def test_ticket_error_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "data": {
                    "status": "error",
                    "message": "not a registered push notification recipient",
                    "details": {"error": "DeviceNotRegistered"},
                }
            },
        )

    async with expo_client(handler) as client:
        result = await ExpoPushService(client=client).send_push(PUSH_TOKEN, "t", "b")

    assert result.ok is False
    assert result.reason == "DeviceNotRegistered"


@pytest.mark.asyncio
async def test_http_error_raises_channel_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"errors": [{"code": "UNAVAILABLE"}]})

    async with expo_client(handler) as client:
        with pytest.raises(ChannelDeliveryError) as exc_info:
            await ExpoPushService(client=client).send_push(PUSH_TOKEN, "t", "b")

    assert exc_info.value.channel == "push"
    assert "503" in exc_info.value.reason


@pytest.mark.asyncio
async def test_unreachable_provider_raises_channel_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with expo_client(handler) as client:
        with pytest.raises(ChannelDeliveryError):
            await ExpoPushService(client=client).send_push(PUSH_TOKEN, "t", "b")


@pytest.mark.asyncio
async def test_send_many_chunks_and_skips_invalid_tokens() -> None:
    chunk_sizes: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        chunk_sizes.append(len(json.loads(request.content)))
        return ok_tickets(request)

    messages = [{"to": PUSH_TOKEN, "title": "t", "body": "b"} for _ in range(205)]
    messages.insert(50, {"to": "not-a-token", "title": "t", "body": "b"})

    async with expo_client(handler) as client:
        results = await ExpoPushService(client=client).send_many(messages)

    assert chunk_sizes == [100, 100, 5]
    assert len(results) == 205
    assert all(result.ok for result in results)


@pytest.mark.asyncio
async def test_send_many_without_valid_tokens() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with expo_client(handler) as client:
        assert await ExpoPushService(client=client).send_many([{"to": "nope"}]) == []


@pytest.mark.asyncio
async def test_access_token_is_sent(monkeypatch, app_settings) -> None:
    monkeypatch.setattr(app_settings, "EXPO_ACCESS_TOKEN", "expo-secret")
    seen: list[str | None] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("Authorization"))
        return ok_tickets(request)

    async with expo_client(handler) as client:
        await ExpoPushService(client=client).send_push(PUSH_TOKEN, "t", "b")

    assert seen == ["Bearer expo-secret"]


@pytest.mark.asyncio
async def test_send_match_reminder_builds_message() -> None:
    sent: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.extend(json.loads(request.content))
        return ok_tickets(request)

    match = NotifiableMatch(
        id=12,
        user_id="user_1",
        opponent="Hilltop United",
        date=datetime(2026, 10, 18, 12, 8),
    )

    async with expo_client(handler) as client:
        result = await ExpoPushService(client=client).send_match_reminder(PUSH_TOKEN, match, 8)

    assert result.ok is True
    [message] = sent
    assert message["title"] == "⚽ Match Starting Soon!"
    assert message["body"] == "Your match against Hilltop United starts in 8 minutes at TBD"
    assert message["data"] == {"matchId": 12, "type": "match_reminder"}
