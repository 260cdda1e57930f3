"""Retry-until-converged primitive shared by every checker."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from addon_smoke.runtime.errors import PollCancelledError, PollTimeoutError

Probe = Callable[[], Awaitable[bool]]

logger = logging.getLogger(__name__)


async def sleep_or_cancel(delay: float, cancel: asyncio.Event | None = None) -> None:
    """Sleep for ``delay`` seconds, waking early if ``cancel`` is set.

    Raises:
        PollCancelledError: The event was set before or during the sleep.
    """
    if cancel is None:
        await asyncio.sleep(max(0.0, delay))
        return
    if cancel.is_set():
        raise PollCancelledError("run cancelled")
    if delay <= 0:
        return
    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
    except TimeoutError:
        return
    raise PollCancelledError("run cancelled")


async def poll_until(
    probe: Probe,
    *,
    interval: float,
    timeout: float,
    immediate: bool = True,
    cancel: asyncio.Event | None = None,
    description: str | None = None,
) -> int:
    """Evaluate ``probe`` on a fixed cadence until it returns ``True``.

    The probe returns ``True`` once converged and ``False`` to be retried.
    Anything it raises aborts the poll immediately and propagates unchanged,
    so fatal conditions (authorization failures, API-reported errors) never
    wait out the timeout.

    At least one evaluation happens even when ``timeout`` is shorter than
    ``interval``. Between evaluations the wait is woken by ``cancel``.

    Args:
        probe: Async predicate inspecting external state.
        interval: Seconds between evaluations.
        timeout: Overall budget in seconds.
        immediate: Evaluate at t=0 instead of after the first interval.
        cancel: Shared cancellation event of the run.
        description: Human readable name used in errors and logs.

    Returns:
        Number of probe evaluations made.

    Raises:
        PollTimeoutError: The budget elapsed without convergence.
        PollCancelledError: ``cancel`` was set while waiting.
    """
    if interval <= 0:
        raise ValueError("interval must be > 0")
    if timeout < 0:
        raise ValueError("timeout must be >= 0")

    label = description or getattr(probe, "__name__", "condition")
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    attempts = 0

    async def _pause(delay: float) -> None:
        try:
            await sleep_or_cancel(delay, cancel)
        except PollCancelledError:
            raise PollCancelledError(
                f"cancelled while waiting for {label}", attempts=attempts
            ) from None

    if not immediate:
        await _pause(min(interval, timeout))

    while True:
        if cancel is not None and cancel.is_set():
            raise PollCancelledError(f"cancelled while waiting for {label}", attempts=attempts)

        attempts += 1
        if await probe():
            logger.debug("%s converged after %d attempt(s)", label, attempts)
            return attempts

        remaining = deadline - loop.time()
        if remaining <= 0:
            raise PollTimeoutError(
                f"timed out after {timeout:g}s waiting for {label}",
                attempts=attempts,
            )
        await _pause(min(interval, remaining))


@dataclass(frozen=True, slots=True)
class ConvergenceProbe:
    """A probe bundled with its polling parameters."""

    probe: Probe
    interval: float = 5.0
    timeout: float = 300.0
    immediate: bool = True
    description: str | None = None

    async def wait(self, cancel: asyncio.Event | None = None) -> int:
        return await poll_until(
            self.probe,
            interval=self.interval,
            timeout=self.timeout,
            immediate=self.immediate,
            cancel=cancel,
            description=self.description,
        )
