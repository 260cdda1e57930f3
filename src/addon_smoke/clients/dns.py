"""A-record lookups against a fixed public resolver."""

from __future__ import annotations

import logging
from typing import Any

import dns.asyncresolver
import dns.resolver

logger = logging.getLogger(__name__)


class DnsChecker:
    """Resolves A records through ``nameserver`` only, bypassing the local resolver.

    NXDOMAIN and empty answers are "not yet" and yield an empty list. Other
    resolver failures (timeouts, SERVFAIL) propagate as ``dns.exception.DNSException``.
    """

    def __init__(
        self,
        nameserver: str = "8.8.8.8",
        *,
        port: int = 53,
        lifetime: float = 5.0,
        resolver: Any | None = None,
    ) -> None:
        if resolver is None:
            resolver = dns.asyncresolver.Resolver(configure=False)
            resolver.port = port
            resolver.nameservers = [nameserver]
            resolver.lifetime = lifetime
        self._resolver = resolver
        self.nameserver = nameserver

    async def resolve_a(self, hostname: str) -> list[str]:
        try:
            answer = await self._resolver.resolve(hostname, "A")
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
            logger.debug("No A record for %s at %s", hostname, self.nameserver)
            return []
        return [record.address for record in answer]
