"""Per-invocation run context passed to every component."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from addon_smoke.notify.buffer import NotificationBuffer


@dataclass(frozen=True, slots=True)
class RunContext:
    """Everything a checker needs that is scoped to one invocation.

    Immutable except for the notifier's buffered text.
    """

    workspace: str
    notifier: NotificationBuffer
    debug: bool = False
    timeout: float = 600.0
    cancelled: asyncio.Event = field(default_factory=asyncio.Event)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("addon_smoke"))
    cluster_name: str = ""

    def log_and_notify(self, message: str, *, level: int = logging.INFO) -> None:
        """Log ``message`` and append it to the run notification."""
        self.logger.log(level, message)
        self.notifier.add_message(message)
