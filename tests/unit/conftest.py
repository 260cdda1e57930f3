"""Shared fixtures for unit tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from addon_smoke.notify.buffer import NotificationBuffer, NullTransport
from addon_smoke.observability.metrics import reset_metrics_recorder
from addon_smoke.runtime.context import RunContext


@pytest.fixture(autouse=True)
def _noop_metrics() -> Iterator[None]:
    reset_metrics_recorder()
    yield
    reset_metrics_recorder()


@pytest.fixture
def transport() -> NullTransport:
    return NullTransport()


@pytest.fixture
def notifier(transport: NullTransport) -> NotificationBuffer:
    return NotificationBuffer(transport)


@pytest.fixture
def make_context(notifier: NotificationBuffer) -> Callable[..., RunContext]:
    def _make(**overrides: Any) -> RunContext:
        values: dict[str, Any] = {
            "workspace": "smoke-test-20240305-abcde",
            "notifier": notifier,
            "timeout": 1.0,
        }
        values.update(overrides)
        return RunContext(**values)

    return _make


@pytest.fixture
def context(make_context: Callable[..., RunContext]) -> RunContext:
    return make_context()
