"""Tests for the Expo push client and recipient filtering."""

from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from anchor.datatypes.notification_datatypes import (
    NotificationEvent,
    NotificationPreferences,
    PreferenceCategory,
    PushMessage,
    UserNotificationProfile,
)
from anchor.exceptions import PushDeliveryError
from anchor.notifications.audience import can_receive, is_valid_push_token, select_recipients
from anchor.notifications.push_client import PushClient, chunked, ticket_errors

from fakes import ok_tickets, push_settings, token_for


def messages(count):
    return [PushMessage(to=token_for(i), title="t", body="b") for i in range(count)]


class FakeResponse:
    def __init__(self, status=200, payload=None, body=""):
        self.status = status
        self._payload = payload if payload is not None else {"data": []}
        self._body = body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def json(self):
        return self._payload

    async def text(self):
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.closed = False
        self.calls = []
        self._response = response or FakeResponse()
        self._error = error

    def post(self, url, json=None, headers=None):
        self.calls.append({"url": url, "json": json, "headers": headers})
        if self._error is not None:
            raise self._error
        return self._response


class TestHelpers:
    """Tests for chunking and ticket parsing."""

    def test_chunked(self):
        chunks = chunked(messages(250), 100)
        assert [len(chunk) for chunk in chunks] == [100, 100, 50]

    def test_ticket_errors(self):
        payload = {
            "data": [
                {"status": "ok", "id": "1"},
                {"status": "error", "message": "not registered", "details": {"error": "DeviceNotRegistered"}},
            ],
            "errors": [{"code": "PUSH_TOO_MANY", "message": "slow down"}],
        }
        assert ticket_errors(payload) == ["DeviceNotRegistered: not registered", "PUSH_TOO_MANY: slow down"]

    def test_payload_includes_badge_only_when_set(self):
        assert "badge" not in PushMessage(to="x", title="t", body="b").to_payload()
        assert PushMessage(to="x", title="t", body="b", badge=3).to_payload()["badge"] == 3


class TestAudience:
    """Tests for token validation and recipient selection."""

    @pytest.mark.parametrize(
        "token, valid",
        [
            ("ExponentPushToken[abc]", True),
            ("ExpoPushToken[abc]", True),
            ("ExponentPushToken[abc", False),
            ("fcm-token", False),
            ("", False),
            (None, False),
        ],
    )
    def test_is_valid_push_token(self, token, valid):
        assert is_valid_push_token(token) is valid

    def test_can_receive_respects_category(self):
        profile = UserNotificationProfile("U1", token_for(1), NotificationPreferences(pleas=False))
        assert not can_receive(profile, PreferenceCategory.PLEAS)
        assert can_receive(profile, PreferenceCategory.MESSAGES)
        assert can_receive(profile, None)
        assert not can_receive(None, None)

    def test_select_recipients_excludes_and_dedupes(self):
        """Test exclusion, opt-out, invalid tokens and duplicate tokens."""
        profiles = [
            UserNotificationProfile("U1", token_for(1)),
            UserNotificationProfile("U2", token_for(2)),
            UserNotificationProfile("U3", token_for(2)),
            UserNotificationProfile("U4", "bad"),
            UserNotificationProfile("U5", token_for(5), NotificationPreferences(pleas=False)),
        ]
        selected = select_recipients(profiles, PreferenceCategory.PLEAS, exclude={"U1"})
        assert [profile.user_id for profile in selected] == ["U2"]


class TestPushClientSend:
    """Tests for PushClient.send."""

    @pytest.mark.asyncio
    async def test_no_messages(self):
        client = PushClient(push_settings())
        with patch.object(client, "_post_chunk", AsyncMock()) as post:
            result = await client.send([], NotificationEvent.NEW_PLEA)
        post.assert_not_awaited()
        assert result.ok
        assert result.sent == 0

    @pytest.mark.asyncio
    async def test_chunks_of_at_most_100(self):
        """Test that 250 messages go out as three requests."""
        client = PushClient(push_settings())
        with patch.object(client, "_post_chunk", AsyncMock(side_effect=ok_tickets)) as post:
            result = await client.send(messages(250), NotificationEvent.NEW_PLEA)

        sizes = [len(call.args[0]) for call in post.await_args_list]
        assert sizes == [100, 100, 50]
        assert result.recipients == 250
        assert result.sent == 250
        assert result.ok

    @pytest.mark.asyncio
    async def test_chunk_size_is_capped(self):
        client = PushClient(push_settings(chunk_size=500))
        assert client.chunk_size == 100

    @pytest.mark.asyncio
    async def test_failed_chunk_does_not_stop_others(self):
        """Test that one failed request is recorded and the rest still send."""
        client = PushClient(push_settings(chunk_size=2))
        post = AsyncMock(side_effect=[ok_tickets([1, 2]), PushDeliveryError("HTTP 500"), ok_tickets([1])])
        with patch.object(client, "_post_chunk", post):
            result = await client.send(messages(5), NotificationEvent.NEW_MESSAGE)

        assert post.await_count == 3
        assert len(result.failed_chunks) == 1
        assert result.failed_chunks[0].error == "HTTP 500"
        assert result.sent == 3
        assert not result.ok

    @pytest.mark.asyncio
    async def test_ticket_errors_recorded(self):
        client = PushClient(push_settings())
        reply = {"data": [{"status": "error", "message": "bad", "details": {"error": "DeviceNotRegistered"}}]}
        with patch.object(client, "_post_chunk", AsyncMock(return_value=reply)):
            result = await client.send(messages(1), NotificationEvent.REJECTION)

        assert result.chunks[0].delivered
        assert result.chunks[0].ticket_errors == ["DeviceNotRegistered: bad"]
        assert not result.ok


class TestPostChunk:
    """Tests for the HTTP request path."""

    @pytest.mark.asyncio
    async def test_headers_without_access_token(self, monkeypatch):
        monkeypatch.delenv("EXPO_ACCESS_TOKEN", raising=False)
        session = FakeSession()
        client = PushClient(push_settings(), session=session)

        await client.send(messages(1), NotificationEvent.NEW_PLEA)

        call = session.calls[0]
        assert call["url"] == "https://exp.host/--/api/v2/push/send"
        assert "Authorization" not in call["headers"]
        assert call["json"][0]["to"] == token_for(0)

    @pytest.mark.asyncio
    async def test_bearer_token(self, monkeypatch):
        monkeypatch.setenv("EXPO_ACCESS_TOKEN", "expo-secret")
        session = FakeSession()
        client = PushClient(push_settings(), session=session)

        await client.send(messages(1), NotificationEvent.NEW_PLEA)

        assert session.calls[0]["headers"]["Authorization"] == "Bearer expo-secret"

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        client = PushClient(push_settings(), session=FakeSession(FakeResponse(status=429, body="slow down")))
        with pytest.raises(PushDeliveryError, match="429"):
            await client._post_chunk([{"to": "x"}])

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        client = PushClient(push_settings(), session=FakeSession(error=aiohttp.ClientConnectionError("reset")))
        with pytest.raises(PushDeliveryError):
            await client._post_chunk([{"to": "x"}])
