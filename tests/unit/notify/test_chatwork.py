"""Tests for the Chatwork transport."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from pydantic import SecretStr

from addon_smoke.config.models import NotificationSettings
from addon_smoke.notify.chatwork import ChatworkTransport, start_banner


class _ResponseContext:
    def __init__(self, response: Any) -> None:
        self._response = response

    async def __aenter__(self) -> Any:
        return self._response

    async def __aexit__(self, *exc_info: object) -> None:
        return None


class _FakeSession:
    def __init__(self, status: int = 200) -> None:
        self.response = MagicMock(status=status)
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.close = AsyncMock()

    def post(self, url: str, **kwargs: Any) -> _ResponseContext:
        self.calls.append((url, kwargs))
        return _ResponseContext(self.response)


class TestChatworkTransport:
    async def test_posts_form_body_with_token_header(self) -> None:
        session = _FakeSession()
        transport = ChatworkTransport(api_token="token", room_id="123", session=session)

        await transport.post("cert-manager check finished\n")

        ((url, kwargs),) = session.calls
        assert url == "https://api.chatwork.com/v2/rooms/123/messages"
        assert kwargs["data"] == {"body": "cert-manager check finished\n"}
        assert kwargs["headers"] == {"X-ChatWorkToken": "token"}
        session.response.raise_for_status.assert_called_once()

    async def test_missing_credentials_skip_sending(self) -> None:
        session = _FakeSession()
        transport = ChatworkTransport(api_token=None, room_id="123", session=session)

        await transport.post("hello")

        assert not transport.enabled
        assert session.calls == []

    async def test_custom_site(self) -> None:
        transport = ChatworkTransport(api_token="t", room_id="9", site="api.chatwork.example")

        assert transport.url == "https://api.chatwork.example/v2/rooms/9/messages"

    async def test_injected_session_is_not_closed(self) -> None:
        session = _FakeSession()
        transport = ChatworkTransport(api_token="t", room_id="1", session=session)

        await transport.close()

        session.close.assert_not_awaited()

    def test_from_settings_unwraps_secret(self) -> None:
        settings = NotificationSettings(
            chatwork_api_token=SecretStr("secret-token"),
            chatwork_room_id="42",
        )

        transport = ChatworkTransport.from_settings(settings)

        assert transport.enabled
        assert transport.url.endswith("/rooms/42/messages")


class TestStartBanner:
    def test_renders_in_configured_timezone(self) -> None:
        banner = start_banner(
            tool="addon-smoke",
            cluster_name="prod-1",
            timezone="Asia/Tokyo",
            now=datetime(2024, 1, 1, 0, 30, 15, tzinfo=UTC),
        )

        assert banner == "addon-smoke start in prod-1 at 2024-01-01 09:30:15"
