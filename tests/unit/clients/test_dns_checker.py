"""Tests for A-record lookups."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import dns.exception
import dns.resolver
import pytest

from addon_smoke.clients.dns import DnsChecker


def _resolver(**kwargs: object) -> MagicMock:
    resolver = MagicMock()
    resolver.resolve = AsyncMock(**kwargs)
    return resolver


class TestDnsChecker:
    async def test_returns_addresses(self) -> None:
        resolver = _resolver(return_value=[SimpleNamespace(address="203.0.113.10")])
        checker = DnsChecker(resolver=resolver)

        assert await checker.resolve_a("sample.example.com") == ["203.0.113.10"]
        resolver.resolve.assert_awaited_once_with("sample.example.com", "A")

    @pytest.mark.parametrize("error", [dns.resolver.NXDOMAIN(), dns.resolver.NoAnswer()])
    async def test_missing_record_is_empty(self, error: Exception) -> None:
        checker = DnsChecker(resolver=_resolver(side_effect=error))

        assert await checker.resolve_a("sample.example.com") == []

    async def test_other_failures_propagate(self) -> None:
        checker = DnsChecker(resolver=_resolver(side_effect=dns.exception.Timeout()))

        with pytest.raises(dns.exception.Timeout):
            await checker.resolve_a("sample.example.com")

    def test_default_resolver_settings(self) -> None:
        checker = DnsChecker("1.1.1.1", lifetime=2.0)

        assert checker.nameserver == "1.1.1.1"
        assert checker._resolver.lifetime == 2.0
