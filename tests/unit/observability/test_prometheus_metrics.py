"""Tests for metrics recorders."""

from __future__ import annotations

from pathlib import Path

from prometheus_client import CollectorRegistry

from addon_smoke.observability.metrics import (
    NoopMetricsRecorder,
    PrometheusMetricsRecorder,
    configure_prometheus_metrics,
    get_metrics_recorder,
    set_metrics_recorder,
    write_metrics_textfile,
)


class TestDefaultRecorder:
    def test_defaults_to_noop(self) -> None:
        assert isinstance(get_metrics_recorder(), NoopMetricsRecorder)

    def test_set_and_reset(self) -> None:
        recorder = PrometheusMetricsRecorder(registry=CollectorRegistry())

        assert set_metrics_recorder(recorder) is recorder
        assert get_metrics_recorder() is recorder
        assert isinstance(set_metrics_recorder(None), NoopMetricsRecorder)

    def test_configure_sets_default(self) -> None:
        recorder = configure_prometheus_metrics(registry=CollectorRegistry())

        assert get_metrics_recorder() is recorder


class TestPrometheusMetricsRecorder:
    def test_operation_metrics(self) -> None:
        registry = CollectorRegistry()
        recorder = PrometheusMetricsRecorder(registry=registry)

        recorder.observe_operation(
            resource="Deployment", operation="create", duration_seconds=0.2, success=True
        )
        recorder.observe_operation(
            resource="Deployment", operation="create", duration_seconds=0.1, success=False
        )
        recorder.observe_error(resource="Deployment", operation="create", error_type="KubeApiError")

        labels = {"resource": "deployment", "operation": "create"}
        assert (
            registry.get_sample_value(
                "addon_smoke_resource_throughput_total", {**labels, "status": "success"}
            )
            == 1.0
        )
        assert (
            registry.get_sample_value(
                "addon_smoke_resource_latency_seconds_count", {**labels, "status": "error"}
            )
            == 1.0
        )
        assert (
            registry.get_sample_value(
                "addon_smoke_resource_errors_total", {**labels, "error_type": "kubeapierror"}
            )
            == 1.0
        )

    def test_check_outcome(self) -> None:
        registry = CollectorRegistry()
        recorder = PrometheusMetricsRecorder(registry=registry)

        recorder.observe_check(checker="cert-manager", succeeded=False, duration_seconds=12.5)

        assert registry.get_sample_value("addon_smoke_check_result", {"checker": "cert_manager"}) == 0.0
        assert (
            registry.get_sample_value(
                "addon_smoke_check_duration_seconds", {"checker": "cert_manager"}
            )
            == 12.5
        )

    def test_reuses_collectors_on_same_registry(self) -> None:
        registry = CollectorRegistry()
        first = PrometheusMetricsRecorder(registry=registry)
        second = PrometheusMetricsRecorder(registry=registry)

        first.observe_check(checker="fluent", succeeded=True, duration_seconds=1.0)
        second.observe_check(checker="fluent", succeeded=False, duration_seconds=2.0)

        assert registry.get_sample_value("addon_smoke_check_result", {"checker": "fluent"}) == 0.0

    def test_custom_prefix(self) -> None:
        registry = CollectorRegistry()
        recorder = PrometheusMetricsRecorder(registry=registry, prefix="Smoke Tests")

        recorder.observe_check(checker="ingress", succeeded=True, duration_seconds=1.0)

        assert registry.get_sample_value("smoke_tests_check_result", {"checker": "ingress"}) == 1.0


def test_write_metrics_textfile(tmp_path: Path) -> None:
    registry = CollectorRegistry()
    recorder = PrometheusMetricsRecorder(registry=registry)
    recorder.observe_check(checker="datadog-agent", succeeded=True, duration_seconds=3.0)
    target = tmp_path / "addon_smoke.prom"

    write_metrics_textfile(target, registry=registry)

    content = target.read_text(encoding="utf-8")
    assert 'addon_smoke_check_result{checker="datadog_agent"} 1.0' in content
