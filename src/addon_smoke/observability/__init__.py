"""Observability primitives: structured logging and Prometheus metrics."""

from addon_smoke.observability.logging import (
    JsonFormatter,
    RunIds,
    TextFormatter,
    bootstrap_logging,
    bootstrap_logging_from_app_settings,
    get_run_ids,
    run_scope,
)
from addon_smoke.observability.metrics import (
    MetricsRecorder,
    NoopMetricsRecorder,
    PrometheusMetricsRecorder,
    configure_prometheus_metrics,
    get_metrics_recorder,
    reset_metrics_recorder,
    set_metrics_recorder,
    write_metrics_textfile,
)

__all__ = [
    "JsonFormatter",
    "MetricsRecorder",
    "NoopMetricsRecorder",
    "PrometheusMetricsRecorder",
    "RunIds",
    "TextFormatter",
    "bootstrap_logging",
    "bootstrap_logging_from_app_settings",
    "configure_prometheus_metrics",
    "get_metrics_recorder",
    "get_run_ids",
    "reset_metrics_recorder",
    "run_scope",
    "set_metrics_recorder",
    "write_metrics_textfile",
]
