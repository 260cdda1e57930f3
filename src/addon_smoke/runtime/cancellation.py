"""Operator interrupt handling that shares the checker's cleanup path."""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Sequence
from typing import TYPE_CHECKING

from addon_smoke.runtime.context import RunContext

if TYPE_CHECKING:
    from addon_smoke.runtime.checker import Checker

_DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class CancellationWatcher:
    """Reacts to SIGINT/SIGTERM while a checker runs.

    Example usage::

        check_task = asyncio.create_task(checker.check())
        watcher = CancellationWatcher(ctx, checker)
        watcher.install()
        watcher.watch(check_task)
        try:
            await check_task
        finally:
            await watcher.close()

    On the first signal a final notification line is appended and the run's
    cancellation event is set, so an outstanding poll returns promptly and no
    further resource is created. The watcher then starts ``checker.cleanup()``
    and cancels the main task if it has not finished on its own within
    ``grace_seconds``. The notifier is flushed last. The main task's own
    ``finally`` normally flushes it first, and the run's message goes out once.

    ``checker.cleanup()`` is shared with the checker's own ``finally`` path and
    serialized with in-flight creates; whichever side gets there second finds
    nothing left to delete.
    """

    def __init__(
        self,
        context: RunContext,
        checker: Checker,
        *,
        signals: Sequence[signal.Signals] = _DEFAULT_SIGNALS,
        grace_seconds: float = 10.0,
    ) -> None:
        self._context = context
        self._checker = checker
        self._signals = tuple(signals)
        self._grace_seconds = grace_seconds
        self._installed: list[signal.Signals] = []
        self._task: asyncio.Task[None] | None = None
        self.received: signal.Signals | None = None
        self.fired = False
        self._announced = False

    @property
    def logger(self) -> logging.Logger:
        return self._context.logger

    def install(self) -> None:
        """Register loop signal handlers that set the cancellation event."""
        loop = asyncio.get_running_loop()
        for sig in self._signals:
            try:
                loop.add_signal_handler(sig, self.trigger, sig)
            except (NotImplementedError, RuntimeError):
                self.logger.debug("Signal handler for %s not supported here", sig)
                continue
            self._installed.append(sig)

    def watch(self, main_task: asyncio.Task[object] | None = None) -> asyncio.Task[None]:
        """Start the background task that drives cleanup on cancellation."""
        if self._task is None:
            self._task = asyncio.create_task(self._watch(main_task), name="cancellation-watcher")
        return self._task

    def trigger(self, sig: signal.Signals | None = None) -> None:
        """Mark the run as cancelled. Later signals are ignored."""
        if self._context.cancelled.is_set():
            return
        self.received = sig
        self._announce()
        self._context.cancelled.set()

    async def close(self) -> None:
        """Remove signal handlers and stop the watcher.

        Once the run is cancelled the watcher is awaited so its cleanup and
        notification complete. Otherwise it is cancelled.
        """
        loop = asyncio.get_running_loop()
        for sig in self._installed:
            loop.remove_signal_handler(sig)
        self._installed.clear()

        task, self._task = self._task, None
        if task is None:
            return
        if not task.done() and not self._context.cancelled.is_set():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            self.logger.error("Cancellation watcher failed: %s", exc)

    def _announce(self) -> None:
        if self._announced:
            return
        self._announced = True
        name = self.received.name if self.received is not None else "cancellation"
        self.logger.warning("Received %s, cleaning up resources", name)
        self._context.notifier.add_message("Interrupted, cleaning up")

    async def _watch(self, main_task: asyncio.Task[object] | None) -> None:
        await self._context.cancelled.wait()
        self.fired = True
        self._announce()

        cleanup = asyncio.create_task(self._checker.cleanup(), name="cancellation-cleanup")
        if main_task is not None and not main_task.done():
            done, _ = await asyncio.wait({main_task}, timeout=self._grace_seconds)
            if not done:
                self.logger.info(
                    "Main task still running after %gs, terminating", self._grace_seconds
                )
                main_task.cancel()
                await asyncio.wait({main_task}, timeout=self._grace_seconds)

        await cleanup
        # No-op when the main task already flushed the run's message.
        await self._context.notifier.send()
