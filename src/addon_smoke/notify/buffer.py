"""Run-scoped message buffer flushed as a single notification."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable


@runtime_checkable
class NotificationTransport(Protocol):
    """Outbound chat transport. Implementations may raise on failure."""

    async def post(self, text: str) -> None:
        """Deliver ``text`` as one message."""
        ...

    async def close(self) -> None:
        """Release held connections."""
        ...


class NullTransport:
    """Transport that records messages instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[str] = []

    async def post(self, text: str) -> None:
        self.sent.append(text)

    async def close(self) -> None:
        return None


class NotificationBuffer:
    """Accumulates progress text and sends it in one batch.

    Example usage::

        buffer = NotificationBuffer(ChatworkTransport(settings))
        buffer.add_message("ingress check start")
        ...
        await buffer.send()

    Sending is best-effort: transport errors are logged and never raised, so a
    broken chat endpoint cannot change the outcome of a check. One buffer
    belongs to one run and is flushed at most once: an empty buffer is not
    sent, and text added after the flush is logged and dropped.
    """

    def __init__(
        self,
        transport: NotificationTransport | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._transport = NullTransport() if transport is None else transport
        self._logger = logger or logging.getLogger(__name__)
        self._parts: list[str] = []
        self._sent_count = 0
        self._flushed = False

    @property
    def transport(self) -> NotificationTransport:
        return self._transport

    @property
    def flushed(self) -> bool:
        """Whether this run's message was already handed to the transport."""
        return self._flushed

    @property
    def text(self) -> str:
        """Current buffered text."""
        return "".join(self._parts)

    @property
    def sent_count(self) -> int:
        """Number of messages actually handed to the transport."""
        return self._sent_count

    def add_message(self, message: str) -> None:
        """Append one line of progress text."""
        self._parts.append(message if message.endswith("\n") else f"{message}\n")

    def reset(self) -> None:
        self._parts.clear()

    async def send(self) -> bool:
        """Send buffered text as one message and reset the buffer.

        Returns:
            ``True`` when the transport accepted the message.
        """
        body = self.text
        self.reset()
        if not body:
            self._logger.debug("Notification buffer empty, nothing to send")
            return False
        if self._flushed:
            self._logger.info("Notification already sent, dropping: %r", body)
            return False

        self._flushed = True
        try:
            await self._transport.post(body)
        except Exception as exc:
            self._logger.error(
                "Failed to send notification: %s",
                exc,
                extra={"error_type": type(exc).__name__},
            )
            return False

        self._sent_count += 1
        return True

    async def close(self) -> None:
        try:
            await self._transport.close()
        except Exception as exc:
            self._logger.warning("Failed to close notification transport: %s", exc)
