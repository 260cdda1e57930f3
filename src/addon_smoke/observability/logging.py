"""Structured logging bootstrap and run context helpers."""

from __future__ import annotations

import contextvars
import json
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TextIO

if TYPE_CHECKING:
    from addon_smoke.config.models import AppSettings

_UNSET = object()

_CHECKER_CTX: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "addon_smoke_checker",
    default=None,
)
_WORKSPACE_CTX: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "addon_smoke_workspace",
    default=None,
)

_STANDARD_RECORD_KEYS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


@dataclass(frozen=True, slots=True)
class RunIds:
    """Run-scoped values attached to every log record."""

    checker: str | None = None
    workspace: str | None = None


class JsonFormatter(logging.Formatter):
    """JSON formatter with service, cluster and run fields."""

    def __init__(self, *, service: str, cluster: str) -> None:
        super().__init__()
        self._service = service
        self._cluster = cluster

    def format(self, record: logging.LogRecord) -> str:
        run = get_run_ids()
        payload: dict[str, Any] = {
            "timestamp": _format_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "file": f"{record.filename}:{record.lineno}",
            "message": record.getMessage(),
            "service": self._service,
            "cluster": self._cluster,
            "checker": run.checker,
            "workspace": run.workspace,
        }

        payload.update(_extract_extra_fields(record))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=True)


class TextFormatter(logging.Formatter):
    """Plain text formatter that still includes the same run context."""

    def __init__(self, *, service: str, cluster: str) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s")
        self._service = service
        self._cluster = cluster

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        run = get_run_ids()
        return (
            f"{base} "
            f"service={self._service} cluster={self._cluster} "
            f"checker={run.checker or '-'} "
            f"workspace={run.workspace or '-'}"
        )


def get_run_ids() -> RunIds:
    """Read run identifiers bound in the current context."""
    return RunIds(checker=_CHECKER_CTX.get(), workspace=_WORKSPACE_CTX.get())


@contextmanager
def run_scope(
    *,
    checker: str | None | object = _UNSET,
    workspace: str | None | object = _UNSET,
) -> Iterator[None]:
    """Temporarily bind run identifiers for the current context."""
    tokens: list[tuple[contextvars.ContextVar[str | None], contextvars.Token[str | None]]] = []

    _bind_if_provided(_CHECKER_CTX, checker, tokens)
    _bind_if_provided(_WORKSPACE_CTX, workspace, tokens)

    try:
        yield
    finally:
        for context_var, token in reversed(tokens):
            context_var.reset(token)


def bootstrap_logging(
    *,
    service: str = "addon-smoke",
    cluster: str | None = None,
    level: str = "INFO",
    log_format: str = "json",
    logger: logging.Logger | None = None,
    stream: TextIO | None = None,
    force: bool = True,
) -> logging.Logger:
    """Configure a logger with standard formatting and run fields."""
    resolved_cluster = cluster if cluster is not None else os.getenv("CLUSTER_NAME", "")
    target_logger = logger or logging.getLogger()

    if force:
        for handler in list(target_logger.handlers):
            target_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(_build_formatter(log_format, service=service, cluster=resolved_cluster))

    target_logger.addHandler(handler)
    target_logger.setLevel(level.upper())
    if target_logger is not logging.getLogger():
        target_logger.propagate = False
    return target_logger


def bootstrap_logging_from_app_settings(
    app_settings: AppSettings,
    *,
    debug: bool = False,
    logger: logging.Logger | None = None,
    stream: TextIO | None = None,
    force: bool = True,
) -> logging.Logger:
    """Bootstrap logging using values from typed settings. Debug forces DEBUG."""
    return bootstrap_logging(
        service=app_settings.run.service_name,
        cluster=app_settings.run.cluster_name,
        level="DEBUG" if debug else app_settings.logging.level,
        log_format=app_settings.logging.format,
        logger=logger,
        stream=stream,
        force=force,
    )


def _build_formatter(log_format: str, *, service: str, cluster: str) -> logging.Formatter:
    if log_format == "text":
        return TextFormatter(service=service, cluster=cluster)
    return JsonFormatter(service=service, cluster=cluster)


def _bind_if_provided(
    context_var: contextvars.ContextVar[str | None],
    value: str | None | object,
    tokens: list[tuple[contextvars.ContextVar[str | None], contextvars.Token[str | None]]],
) -> None:
    if value is _UNSET:
        return
    token = context_var.set(_clean_optional_string(value))
    tokens.append((context_var, token))


def _clean_optional_string(value: object | None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if text == "":
        return None
    return text


def _extract_extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    extras: dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_RECORD_KEYS or key.startswith("_"):
            continue
        if key in {"service", "cluster", "checker", "workspace", "file"}:
            continue
        extras[key] = value
    return extras


def _format_timestamp(created: float) -> str:
    timestamp = datetime.fromtimestamp(created, tz=UTC)
    return timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")
