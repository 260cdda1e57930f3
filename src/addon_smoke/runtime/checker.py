"""Shared create / converge / clean up skeleton for every add-on checker."""

from __future__ import annotations

import abc
import logging
from collections.abc import Sequence
from enum import StrEnum
from time import perf_counter
from typing import ClassVar

from addon_smoke.observability.logging import run_scope
from addon_smoke.observability.metrics import MetricsRecorder, get_metrics_recorder
from addon_smoke.runtime.context import RunContext
from addon_smoke.runtime.errors import AggregatedError, PollCancelledError
from addon_smoke.runtime.lifecycle import ManagedResource, ResourceLifecycleManager


class CheckState(StrEnum):
    INITIALIZED = "initialized"
    RESOURCES_CREATING = "resources_creating"
    CONVERGING = "converging"
    CLEANING_UP = "cleaning_up"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS: dict[CheckState, frozenset[CheckState]] = {
    CheckState.INITIALIZED: frozenset({CheckState.RESOURCES_CREATING}),
    CheckState.RESOURCES_CREATING: frozenset({CheckState.CONVERGING, CheckState.CLEANING_UP}),
    CheckState.CONVERGING: frozenset({CheckState.CLEANING_UP}),
    CheckState.CLEANING_UP: frozenset({CheckState.SUCCEEDED, CheckState.FAILED}),
    CheckState.SUCCEEDED: frozenset(),
    CheckState.FAILED: frozenset(),
}


class Checker(abc.ABC):
    """Base class composing the lifecycle manager with an add-on probe.

    Subclasses provide the ordered resources to create and, optionally, a
    convergence step that runs once every resource exists. ``check`` drives
    the state machine::

        INITIALIZED -> RESOURCES_CREATING -> CONVERGING -> CLEANING_UP -> SUCCEEDED
                                \\-----------------------> CLEANING_UP -> FAILED

    Cleanup runs exactly once per ``check`` on every exit path, including
    cancellation. Cleanup failures are reported but never turn a successful
    check into a failed one, and never replace the error that failed it.
    """

    name: ClassVar[str]
    workspace_prefix: ClassVar[str]

    def __init__(
        self,
        context: RunContext,
        *,
        metrics: MetricsRecorder | None = None,
    ) -> None:
        self.context = context
        self.lifecycle = ResourceLifecycleManager(context, metrics=metrics)
        self.state = CheckState.INITIALIZED
        self.history: list[CheckState] = [CheckState.INITIALIZED]
        self.cleanup_error: AggregatedError | None = None
        self._metrics = metrics

    @property
    def namespace(self) -> str:
        return self.context.workspace

    @property
    def logger(self) -> logging.Logger:
        return self.context.logger

    async def resources(self) -> Sequence[ManagedResource]:
        """Resources to create, parent before dependent."""
        return []

    async def probe_convergence(self) -> None:
        """Wait for the add-on specific signal once all resources exist."""
        return None

    async def check(self) -> None:
        """Run the whole check. Raises the first fatal error, if any."""
        if self.state is not CheckState.INITIALIZED:
            raise RuntimeError(f"{self.name} check already ran (state: {self.state})")

        ctx = self.context
        started = perf_counter()
        succeeded = False

        with run_scope(checker=self.name, workspace=ctx.workspace):
            ctx.log_and_notify(f"{self.name} check start")
            try:
                self._transition(CheckState.RESOURCES_CREATING)
                await self.lifecycle.create_all(await self.resources())
                self._raise_if_cancelled("after creating resources")

                self._transition(CheckState.CONVERGING)
                await self.probe_convergence()
                self._raise_if_cancelled("after convergence")

                succeeded = True
                ctx.log_and_notify(f"{self.name} check finished")
            except PollCancelledError as exc:
                ctx.log_and_notify(f"{self.name} check interrupted: {exc}")
                raise
            except Exception as exc:
                ctx.log_and_notify(f"{self.name} check failed: {exc}", level=logging.ERROR)
                raise
            finally:
                self._transition(CheckState.CLEANING_UP)
                await self.cleanup()
                self._transition(CheckState.SUCCEEDED if succeeded else CheckState.FAILED)
                self._metrics_recorder().observe_check(
                    checker=self.name,
                    succeeded=succeeded,
                    duration_seconds=perf_counter() - started,
                )
                await ctx.notifier.send()

    async def cleanup(self) -> AggregatedError | None:
        """Tear down everything created so far. Safe to call more than once."""
        error = await self.lifecycle.delete_all()
        if error is not None:
            self.cleanup_error = error
            self.context.log_and_notify(f"Error Delete Resources: {error}", level=logging.ERROR)
        return error

    def _raise_if_cancelled(self, stage: str) -> None:
        # A step that ignores the event may still return normally.
        if self.context.cancelled.is_set():
            raise PollCancelledError(f"run cancelled {stage}")

    def _transition(self, target: CheckState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"invalid check state transition: {self.state} -> {target}")
        self.logger.debug("%s state %s -> %s", self.name, self.state, target)
        self.state = target
        self.history.append(target)

    def _metrics_recorder(self) -> MetricsRecorder:
        return get_metrics_recorder() if self._metrics is None else self._metrics
