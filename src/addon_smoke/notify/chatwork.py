"""Chatwork room messages over aiohttp."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

import aiohttp

if TYPE_CHECKING:
    from addon_smoke.config.models import NotificationSettings

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 10.0


class ChatworkTransport:
    """Posts a form-encoded ``body`` to a Chatwork room.

    Missing credentials turn every ``post`` into a logged no-op so local runs
    do not need a chat room.
    """

    def __init__(
        self,
        *,
        api_token: str | None,
        room_id: str | None,
        site: str = "api.chatwork.com",
        timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS,
        session: Any | None = None,
    ) -> None:
        self._api_token = api_token or ""
        self._room_id = room_id or ""
        self._site = site
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_settings(cls, settings: NotificationSettings) -> ChatworkTransport:
        token = settings.chatwork_api_token
        return cls(
            api_token=None if token is None else token.get_secret_value(),
            room_id=settings.chatwork_room_id,
            site=settings.chatwork_site,
            timeout_seconds=settings.timeout_seconds,
        )

    @property
    def enabled(self) -> bool:
        return bool(self._api_token and self._room_id)

    @property
    def url(self) -> str:
        return f"https://{self._site}/v2/rooms/{self._room_id}/messages"

    async def post(self, text: str) -> None:
        if not self.enabled:
            logger.info("Chatwork token or room id not set, skip sending notification")
            return

        session = self._ensure_session()
        headers = {"X-ChatWorkToken": self._api_token}
        async with session.post(self.url, data={"body": text}, headers=headers) as response:
            logger.info("Chatwork Send Message Status: %s", response.status)
            response.raise_for_status()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _ensure_session(self) -> Any:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session


def start_banner(
    *,
    tool: str,
    cluster_name: str,
    timezone: str = "Asia/Tokyo",
    now: datetime | None = None,
) -> str:
    """First line of every run's notification."""
    moment = datetime.now(ZoneInfo(timezone)) if now is None else now.astimezone(ZoneInfo(timezone))
    return f"{tool} start in {cluster_name} at {moment:%Y-%m-%d %H:%M:%S}"
