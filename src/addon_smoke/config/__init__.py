"""Configuration loading and validation module."""

from addon_smoke.config.errors import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigValidationError,
    PlaceholderResolutionError,
)
from addon_smoke.config.loader import deep_merge, env_overrides, load_config
from addon_smoke.config.models import (
    AppSettings,
    CertManagerSettings,
    ClusterAutoscalerSettings,
    DatadogSettings,
    FluentSettings,
    IngressSettings,
    LoggingSettings,
    NotificationSettings,
    RunSettings,
    TolerationSettings,
)

__all__ = [
    "AppSettings",
    "CertManagerSettings",
    "ClusterAutoscalerSettings",
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigValidationError",
    "DatadogSettings",
    "FluentSettings",
    "IngressSettings",
    "LoggingSettings",
    "NotificationSettings",
    "PlaceholderResolutionError",
    "RunSettings",
    "TolerationSettings",
    "deep_merge",
    "env_overrides",
    "load_config",
]
