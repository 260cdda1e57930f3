"""Typed configuration models with Pydantic validation."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    format: Literal["json", "text"] = Field(default="json", description="Log output format")


class RunSettings(BaseModel):
    """Settings shared by every checker run."""

    model_config = ConfigDict(frozen=True)

    service_name: str = Field(default="addon-smoke", min_length=1, description="Tool name")
    cluster_name: str = Field(default="", description="Cluster name shown in notifications")
    timeout_minutes: float = Field(
        default=10.0, gt=0, description="Upper bound for resource readiness waits"
    )
    timezone: str = Field(default="Asia/Tokyo", min_length=1, description="Banner timezone")
    kubeconfig: str | None = Field(
        default=None, description="Explicit kubeconfig path; in-cluster config when unset"
    )
    kube_context: str | None = Field(default=None, description="kubeconfig context name")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_minutes * 60


class NotificationSettings(BaseModel):
    """Chatwork notification transport."""

    model_config = ConfigDict(frozen=True)

    chatwork_api_token: SecretStr | None = Field(default=None, description="Chatwork API token")
    chatwork_room_id: str | None = Field(default=None, description="Target room id")
    chatwork_site: str = Field(default="api.chatwork.com", min_length=1, description="API host")
    timeout_seconds: float = Field(default=10.0, gt=0, description="HTTP timeout in seconds")

    @property
    def enabled(self) -> bool:
        return bool(self.chatwork_api_token and self.chatwork_room_id)


class CertManagerSettings(BaseModel):
    """cert-manager checker settings."""

    model_config = ConfigDict(frozen=True)

    cert_name: str = Field(default="sample", min_length=1, description="Certificate base name")
    cluster_issuer: str = Field(
        default="selfsigned-issuer",
        min_length=1,
        description="ClusterIssuer that signs the root CA",
    )
    poll_interval_seconds: float = Field(default=5.0, gt=0)
    ready_timeout_seconds: float = Field(default=300.0, gt=0)


class TolerationSettings(BaseModel):
    """Pod toleration added to the scale-out deployment."""

    model_config = ConfigDict(frozen=True)

    key: str | None = None
    operator: Literal["Equal", "Exists"] = "Equal"
    value: str | None = None
    effect: Literal["NoSchedule", "PreferNoSchedule", "NoExecute"] | None = None


class ClusterAutoscalerSettings(BaseModel):
    """cluster-autoscaler checker settings."""

    model_config = ConfigDict(frozen=True)

    resource_name: str = Field(default="sample-for-scale", min_length=1)
    node_label_key: str = Field(default="eks.amazonaws.com/capacityType", min_length=1)
    node_label_value: str = Field(default="SPOT", min_length=1)
    image: str = Field(default="nginx:latest", min_length=1)
    tolerations: tuple[TolerationSettings, ...] = Field(default=())
    poll_interval_seconds: float = Field(default=5.0, gt=0)


class IngressSettings(BaseModel):
    """ingress (ingress controller + external-dns) checker settings."""

    model_config = ConfigDict(frozen=True)

    resource_name: str = Field(default="sample", min_length=1)
    external_hostname: str | None = Field(
        default=None, description="Hostname published through external-dns"
    )
    ingress_class_name: str = Field(default="alb", min_length=1)
    dns_check: bool = Field(default=True, description="Resolve the hostname after creation")
    nameserver: str = Field(default="8.8.8.8", min_length=1)
    image: str = Field(default="nginx:1.25.2", min_length=1)
    poll_interval_seconds: float = Field(default=5.0, gt=0)
    dns_poll_interval_seconds: float = Field(default=30.0, gt=0)


class FluentSettings(BaseModel):
    """fluent (fluent-bit / fluentd) checker settings."""

    model_config = ConfigDict(frozen=True)

    resource_name: str = Field(default="burst-log-generator", min_length=1)
    resource_namespace: str | None = Field(
        default=None, description="Reuse this namespace instead of creating one"
    )
    log_bucket_name: str | None = Field(default=None, description="Bucket fluentd ships to")
    log_path: str = Field(default="fluentd", min_length=1)
    env: str = Field(default="test", min_length=1, description="Environment path segment")
    replica_ratio: float = Field(default=0.5, gt=0, description="Log generators per node")
    image: str = Field(default="ubuntu", min_length=1)
    aws_region: str | None = Field(default=None, description="Region of the log bucket")
    s3_endpoint: str = Field(default="s3.amazonaws.com", min_length=1)
    poll_interval_seconds: float = Field(default=30.0, gt=0)
    poll_timeout_seconds: float = Field(default=600.0, gt=0)


class DatadogSettings(BaseModel):
    """datadog-agent checker settings."""

    model_config = ConfigDict(frozen=True)

    api_key: SecretStr | None = Field(default=None)
    app_key: SecretStr | None = Field(default=None)
    site: str = Field(default="datadoghq.com", min_length=1)
    query: str = Field(default="avg:kubernetes.cpu.user.total{*}", min_length=1)
    wait_seconds: float = Field(default=180.0, ge=0, description="Warm-up before querying")
    window_seconds: float = Field(default=120.0, gt=0)
    poll_interval_seconds: float = Field(default=30.0, gt=0)
    timeout_seconds: float = Field(default=10.0, gt=0, description="HTTP timeout in seconds")


class AppSettings(BaseModel):
    """Root application settings."""

    model_config = ConfigDict(frozen=True)

    run: RunSettings = Field(default_factory=RunSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    notification: NotificationSettings = Field(default_factory=NotificationSettings)
    cert_manager: CertManagerSettings = Field(default_factory=CertManagerSettings)
    cluster_autoscaler: ClusterAutoscalerSettings = Field(
        default_factory=ClusterAutoscalerSettings
    )
    ingress: IngressSettings = Field(default_factory=IngressSettings)
    fluent: FluentSettings = Field(default_factory=FluentSettings)
    datadog: DatadogSettings = Field(default_factory=DatadogSettings)
