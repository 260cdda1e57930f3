"""Prometheus metrics primitives for resource lifecycle and check outcomes."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Protocol

from addon_smoke.runtime.errors import MissingDependencyError

_LABEL_NORMALIZER = re.compile(r"[^a-zA-Z0-9_]+")


def _import_prometheus_client() -> Any:
    try:
        import prometheus_client
    except ImportError as exc:  # pragma: no cover - depends on optional extras
        raise MissingDependencyError(
            "Prometheus metrics require optional dependency 'prometheus-client'. "
            "Install with: pip install 'addon-smoke[metrics]'"
        ) from exc
    return prometheus_client


def _sanitize_label(value: str, *, default: str = "unknown") -> str:
    normalized = _LABEL_NORMALIZER.sub("_", value.strip().lower()).strip("_")
    return normalized or default


def _collector_or_create(registry: Any, name: str, factory: Any) -> Any:
    names_to_collectors = getattr(registry, "_names_to_collectors", None)
    if isinstance(names_to_collectors, dict):
        collector = names_to_collectors.get(name)
        if collector is not None:
            return collector
    return factory()


class MetricsRecorder(Protocol):
    """Observer contract for lifecycle and check metrics."""

    def observe_operation(
        self,
        *,
        resource: str,
        operation: str,
        duration_seconds: float,
        success: bool,
    ) -> None:
        """Record operation latency and throughput."""
        ...

    def observe_error(
        self,
        *,
        resource: str,
        operation: str,
        error_type: str,
    ) -> None:
        """Record operation error counters."""
        ...

    def observe_check(
        self,
        *,
        checker: str,
        succeeded: bool,
        duration_seconds: float,
    ) -> None:
        """Record the outcome of a whole check run."""
        ...


class NoopMetricsRecorder:
    """No-op recorder used when metrics are not configured."""

    def observe_operation(
        self,
        *,
        resource: str,
        operation: str,
        duration_seconds: float,
        success: bool,
    ) -> None:
        del resource, operation, duration_seconds, success

    def observe_error(
        self,
        *,
        resource: str,
        operation: str,
        error_type: str,
    ) -> None:
        del resource, operation, error_type

    def observe_check(
        self,
        *,
        checker: str,
        succeeded: bool,
        duration_seconds: float,
    ) -> None:
        del checker, succeeded, duration_seconds


class PrometheusMetricsRecorder:
    """Prometheus-backed recorder with standard addon_smoke_* naming."""

    def __init__(
        self,
        *,
        registry: Any | None = None,
        prefix: str = "addon_smoke",
    ) -> None:
        prometheus_client = _import_prometheus_client()
        self._registry = prometheus_client.REGISTRY if registry is None else registry
        self._prefix = _sanitize_label(prefix, default="addon_smoke")
        self._latency = _collector_or_create(
            self._registry,
            f"{self._prefix}_resource_latency_seconds",
            lambda: prometheus_client.Histogram(
                f"{self._prefix}_resource_latency_seconds",
                "Resource create/delete latency in seconds.",
                labelnames=("resource", "operation", "status"),
                registry=self._registry,
                buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 300.0, 900.0),
            ),
        )
        self._throughput = _collector_or_create(
            self._registry,
            f"{self._prefix}_resource_throughput_total",
            lambda: prometheus_client.Counter(
                f"{self._prefix}_resource_throughput_total",
                "Resource operation throughput counter.",
                labelnames=("resource", "operation", "status"),
                registry=self._registry,
            ),
        )
        self._errors = _collector_or_create(
            self._registry,
            f"{self._prefix}_resource_errors_total",
            lambda: prometheus_client.Counter(
                f"{self._prefix}_resource_errors_total",
                "Resource operation errors.",
                labelnames=("resource", "operation", "error_type"),
                registry=self._registry,
            ),
        )
        self._check_result = _collector_or_create(
            self._registry,
            f"{self._prefix}_check_result",
            lambda: prometheus_client.Gauge(
                f"{self._prefix}_check_result",
                "Outcome of the last check run (1 succeeded, 0 failed).",
                labelnames=("checker",),
                registry=self._registry,
            ),
        )
        self._check_duration = _collector_or_create(
            self._registry,
            f"{self._prefix}_check_duration_seconds",
            lambda: prometheus_client.Gauge(
                f"{self._prefix}_check_duration_seconds",
                "Wall-clock duration of the last check run.",
                labelnames=("checker",),
                registry=self._registry,
            ),
        )

    @property
    def registry(self) -> Any:
        return self._registry

    def observe_operation(
        self,
        *,
        resource: str,
        operation: str,
        duration_seconds: float,
        success: bool,
    ) -> None:
        resource_label = _sanitize_label(resource)
        operation_label = _sanitize_label(operation)
        status_label = "success" if success else "error"
        duration = max(0.0, duration_seconds)
        self._latency.labels(
            resource=resource_label,
            operation=operation_label,
            status=status_label,
        ).observe(duration)
        self._throughput.labels(
            resource=resource_label,
            operation=operation_label,
            status=status_label,
        ).inc()

    def observe_error(
        self,
        *,
        resource: str,
        operation: str,
        error_type: str,
    ) -> None:
        self._errors.labels(
            resource=_sanitize_label(resource),
            operation=_sanitize_label(operation),
            error_type=_sanitize_label(error_type),
        ).inc()

    def observe_check(
        self,
        *,
        checker: str,
        succeeded: bool,
        duration_seconds: float,
    ) -> None:
        label = _sanitize_label(checker)
        self._check_result.labels(checker=label).set(1.0 if succeeded else 0.0)
        self._check_duration.labels(checker=label).set(max(0.0, duration_seconds))


_NOOP_RECORDER = NoopMetricsRecorder()
_DEFAULT_RECORDER: MetricsRecorder = _NOOP_RECORDER


def get_metrics_recorder() -> MetricsRecorder:
    """Return the process-level metrics recorder."""
    return _DEFAULT_RECORDER


def set_metrics_recorder(recorder: MetricsRecorder | None) -> MetricsRecorder:
    """Set process-level recorder. `None` switches back to no-op."""
    global _DEFAULT_RECORDER
    _DEFAULT_RECORDER = _NOOP_RECORDER if recorder is None else recorder
    return _DEFAULT_RECORDER


def reset_metrics_recorder() -> None:
    """Reset process-level recorder to no-op."""
    set_metrics_recorder(None)


def configure_prometheus_metrics(
    *,
    registry: Any | None = None,
    prefix: str = "addon_smoke",
    set_default: bool = True,
) -> PrometheusMetricsRecorder:
    """Build a Prometheus recorder and optionally set it as default."""
    recorder = PrometheusMetricsRecorder(registry=registry, prefix=prefix)
    if set_default:
        set_metrics_recorder(recorder)
    return recorder


def write_metrics_textfile(path: Path | str, *, registry: Any | None = None) -> None:
    """Write the registry in node-exporter textfile-collector format."""
    prometheus_client = _import_prometheus_client()
    resolved_registry = prometheus_client.REGISTRY if registry is None else registry
    prometheus_client.write_to_textfile(str(path), resolved_registry)
