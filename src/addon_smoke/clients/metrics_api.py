"""Datadog v1 metrics query API over aiohttp."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from addon_smoke.runtime.errors import AddonSmokeError

logger = logging.getLogger(__name__)


class MetricsHttpError(AddonSmokeError):
    """Raised for a non-2xx response from the metrics API."""

    def __init__(self, status: int, reason: str, errors: list[str] | None = None) -> None:
        self.status = status
        self.reason = reason
        self.errors = list(errors or [])
        detail = f"{status} {reason}"
        if self.errors:
            detail = f"{detail}: {', '.join(self.errors)}"
        super().__init__(detail)


@dataclass(frozen=True, slots=True)
class MetricsQueryResponse:
    """Decoded body of a successful query call.

    ``error`` is set when the API accepted the request but could not run the
    query (for example a malformed query string).
    """

    series: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None
    status: str | None = None


class DatadogMetricsClient:
    def __init__(
        self,
        *,
        api_key: str,
        app_key: str,
        site: str = "datadoghq.com",
        timeout_seconds: float = 10.0,
        session: Any | None = None,
    ) -> None:
        self._api_key = api_key
        self._app_key = app_key
        self._site = site
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None

    @property
    def url(self) -> str:
        return f"https://api.{self._site}/api/v1/query"

    async def query(self, from_ts: int, to_ts: int, query: str) -> MetricsQueryResponse:
        """Query timeseries points between two epoch-second timestamps.

        Raises:
            MetricsHttpError: On a non-2xx response, or a 2xx body that is not a
                JSON object.
            aiohttp.ClientError: On transport failures.
        """
        session = self._ensure_session()
        params = {"from": str(from_ts), "to": str(to_ts), "query": query}
        headers = {
            "DD-API-KEY": self._api_key,
            "DD-APPLICATION-KEY": self._app_key,
            "Accept": "application/json",
        }
        async with session.get(self.url, params=params, headers=headers) as response:
            logger.debug("Datadog query status: %s", response.status)
            if response.status >= 300:
                raise MetricsHttpError(
                    response.status,
                    response.reason or "",
                    await _error_messages(response),
                )
            try:
                payload = await response.json(content_type=None)
            except (aiohttp.ContentTypeError, ValueError) as exc:
                raise MetricsHttpError(
                    response.status, "invalid JSON body", [str(exc)]
                ) from exc
            if not isinstance(payload, dict):
                raise MetricsHttpError(
                    response.status,
                    "unexpected body",
                    [f"expected object, got {type(payload).__name__}"],
                )

        return MetricsQueryResponse(
            series=list(payload.get("series") or []),
            error=payload.get("error") or None,
            status=payload.get("status"),
        )

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _ensure_session(self) -> Any:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session


async def _error_messages(response: Any) -> list[str]:
    try:
        payload = await response.json(content_type=None)
    except (aiohttp.ContentTypeError, ValueError):
        return []
    if not isinstance(payload, dict):
        return []
    return [str(item) for item in payload.get("errors") or []]
