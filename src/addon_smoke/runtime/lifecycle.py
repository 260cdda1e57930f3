"""Ordered creation and aggregated reverse teardown of managed resources."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from time import perf_counter

from addon_smoke.observability.metrics import MetricsRecorder, get_metrics_recorder
from addon_smoke.runtime.context import RunContext
from addon_smoke.runtime.errors import AggregatedError, PollCancelledError
from addon_smoke.runtime.poller import ConvergenceProbe

ResourceAction = Callable[[], Awaitable[object]]


@dataclass(frozen=True, slots=True)
class ManagedResource:
    """A named handle to something created in the target system."""

    kind: str
    name: str
    create: ResourceAction
    delete: ResourceAction
    ready: ConvergenceProbe | None = None

    @property
    def label(self) -> str:
        return f"{self.kind}/{self.name}"


class ResourceLifecycleManager:
    """Creates resources in order and tears them down in reverse.

    Example usage::

        lifecycle = ResourceLifecycleManager(ctx)
        try:
            await lifecycle.create_all([namespace, deployment, service])
            ...
        finally:
            error = await lifecycle.delete_all()

    A resource is registered for teardown before its create call, so a
    resource that failed half-way through creation is still deleted. Creation
    stops at the first failure. Teardown attempts every registered resource and
    collects failures into one ``AggregatedError``. Once the run is cancelled
    no further resource is created.

    Not safe for concurrent use by more than one checker.
    """

    def __init__(
        self,
        context: RunContext,
        *,
        metrics: MetricsRecorder | None = None,
    ) -> None:
        self._context = context
        self._metrics = metrics
        self._registered: list[ManagedResource] = []
        self._lock = asyncio.Lock()
        self._skip_announced = False

    @property
    def registered(self) -> list[ManagedResource]:
        """Resources queued for teardown, in creation order."""
        return list(self._registered)

    async def create_all(self, resources: Sequence[ManagedResource]) -> None:
        """Create ``resources`` strictly in order, failing fast.

        Resources carrying a ``ready`` probe are not complete until the probe
        converges; the wait observes the run's cancellation event.
        """
        for resource in resources:
            await self.create(resource)

    async def create(self, resource: ManagedResource) -> None:
        """Create one resource, then wait for its ``ready`` probe if it has one.

        The create call holds the teardown lock, so a concurrent ``delete_all``
        waits for an in-flight create and removes that resource as well.

        Raises:
            PollCancelledError: The run was cancelled before the create call.
        """
        logger = self._context.logger
        self._raise_if_cancelled(resource)

        logger.info("Creating %s", resource.label)
        started = perf_counter()
        async with self._lock:
            self._raise_if_cancelled(resource)
            self._registered.append(resource)
            try:
                await resource.create()
            except Exception as exc:
                self._create_failed(resource, started, exc)
                raise

        if resource.ready is not None:
            try:
                await resource.ready.wait(self._context.cancelled)
            except Exception as exc:
                self._create_failed(resource, started, exc)
                raise

        self._observe_success(resource.kind, "create", started)
        logger.info("Created %s", resource.label)

    def _raise_if_cancelled(self, resource: ManagedResource) -> None:
        if self._context.cancelled.is_set():
            raise PollCancelledError(f"cancelled before creating {resource.label}")

    def _create_failed(self, resource: ManagedResource, started: float, exc: Exception) -> None:
        self._observe_error(resource.kind, "create", started, exc)
        self._context.log_and_notify(
            f"Error Create {resource.kind.capitalize()}: {exc}",
            level=logging.ERROR,
        )

    async def delete_all(
        self,
        resources: Sequence[ManagedResource] | None = None,
    ) -> AggregatedError | None:
        """Delete resources in reverse order, attempting every one.

        Args:
            resources: Explicit creation-ordered list. Defaults to everything
                registered by ``create_all``.

        Returns:
            ``AggregatedError`` with every failure in encounter order, or
            ``None`` when all deletions succeeded (or debug mode skipped them).
        """
        if self._context.debug:
            if not self._skip_announced:
                self._skip_announced = True
                self._context.log_and_notify("Skip Delete Resources")
            return None

        async with self._lock:
            targets = list(self._registered) if resources is None else list(resources)
            if resources is None:
                self._registered.clear()

            errors: list[tuple[str, Exception]] = []
            for resource in reversed(targets):
                started = perf_counter()
                self._context.logger.info("Deleting %s", resource.label)
                try:
                    await resource.delete()
                except Exception as exc:
                    self._observe_error(resource.kind, "delete", started, exc)
                    self._context.log_and_notify(
                        f"Error Delete {resource.kind.capitalize()}: {exc}",
                        level=logging.ERROR,
                    )
                    errors.append((resource.label, exc))
                    continue
                self._observe_success(resource.kind, "delete", started)
                self._context.logger.info("Deleted %s", resource.label)

        return AggregatedError(errors) if errors else None

    def _metrics_recorder(self) -> MetricsRecorder:
        return get_metrics_recorder() if self._metrics is None else self._metrics

    def _observe_success(self, kind: str, operation: str, started: float) -> None:
        self._metrics_recorder().observe_operation(
            resource=kind,
            operation=operation,
            duration_seconds=perf_counter() - started,
            success=True,
        )

    def _observe_error(self, kind: str, operation: str, started: float, exc: Exception) -> None:
        self._metrics_recorder().observe_operation(
            resource=kind,
            operation=operation,
            duration_seconds=perf_counter() - started,
            success=False,
        )
        self._metrics_recorder().observe_error(
            resource=kind,
            operation=operation,
            error_type=type(exc).__name__,
        )
