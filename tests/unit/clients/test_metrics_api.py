"""Tests for the Datadog metrics query client."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from addon_smoke.clients.metrics_api import DatadogMetricsClient, MetricsHttpError


class _ResponseContext:
    def __init__(self, response: Any) -> None:
        self._response = response

    async def __aenter__(self) -> Any:
        return self._response

    async def __aexit__(self, *exc_info: object) -> None:
        return None


class _FakeSession:
    def __init__(self, status: int, payload: Any, reason: str = "OK") -> None:
        self.response = MagicMock(status=status, reason=reason)
        self.response.json = AsyncMock(return_value=payload)
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.close = AsyncMock()

    def get(self, url: str, **kwargs: Any) -> _ResponseContext:
        self.calls.append((url, kwargs))
        return _ResponseContext(self.response)


def _client(session: _FakeSession, site: str = "datadoghq.com") -> DatadogMetricsClient:
    return DatadogMetricsClient(api_key="api", app_key="app", site=site, session=session)


class TestDatadogMetricsClient:
    async def test_query_sends_window_and_keys(self) -> None:
        session = _FakeSession(200, {"status": "ok", "series": [{"metric": "cpu"}]})

        response = await _client(session).query(1000, 1120, "avg:kubernetes.cpu.user.total{*}")

        ((url, kwargs),) = session.calls
        assert url == "https://api.datadoghq.com/api/v1/query"
        assert kwargs["params"] == {
            "from": "1000",
            "to": "1120",
            "query": "avg:kubernetes.cpu.user.total{*}",
        }
        assert kwargs["headers"]["DD-API-KEY"] == "api"
        assert kwargs["headers"]["DD-APPLICATION-KEY"] == "app"
        assert response.series == [{"metric": "cpu"}]
        assert response.status == "ok"
        assert response.error is None

    async def test_api_reported_error(self) -> None:
        session = _FakeSession(200, {"status": "error", "error": "Error parsing query"})

        response = await _client(session).query(0, 1, "bad{")

        assert response.series == []
        assert response.error == "Error parsing query"

    async def test_non_2xx_raises_with_status_and_reason(self) -> None:
        session = _FakeSession(403, {"errors": ["Forbidden"]}, reason="Forbidden")

        with pytest.raises(MetricsHttpError) as exc_info:
            await _client(session).query(0, 1, "q")

        assert exc_info.value.status == 403
        assert str(exc_info.value) == "403 Forbidden: Forbidden"

    async def test_non_json_error_body(self) -> None:
        session = _FakeSession(502, None, reason="Bad Gateway")
        session.response.json = AsyncMock(side_effect=ValueError("not json"))

        with pytest.raises(MetricsHttpError) as exc_info:
            await _client(session).query(0, 1, "q")

        assert str(exc_info.value) == "502 Bad Gateway"

    async def test_success_with_non_json_body_raises_http_error(self) -> None:
        session = _FakeSession(200, None)
        session.response.json = AsyncMock(side_effect=ValueError("Expecting value"))

        with pytest.raises(MetricsHttpError) as exc_info:
            await _client(session).query(0, 1, "q")

        assert exc_info.value.status == 200
        assert str(exc_info.value) == "200 invalid JSON body: Expecting value"

    async def test_success_with_non_object_body_raises_http_error(self) -> None:
        session = _FakeSession(200, ["not", "an", "object"])

        with pytest.raises(MetricsHttpError) as exc_info:
            await _client(session).query(0, 1, "q")

        assert exc_info.value.status == 200
        assert exc_info.value.reason == "unexpected body"

    def test_site_selects_host(self) -> None:
        client = DatadogMetricsClient(api_key="a", app_key="b", site="datadoghq.eu")

        assert client.url == "https://api.datadoghq.eu/api/v1/query"

    async def test_injected_session_is_not_closed(self) -> None:
        session = _FakeSession(200, {})

        await _client(session).close()

        session.close.assert_not_awaited()
