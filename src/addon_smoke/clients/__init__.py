"""Adapters for the systems a check talks to."""

from addon_smoke.clients.dns import DnsChecker
from addon_smoke.clients.kubernetes import (
    KubeApiError,
    KubeAuthError,
    KubeClient,
    KubeConflictError,
    KubeNotFoundError,
    load_kube_client,
)
from addon_smoke.clients.metrics_api import (
    DatadogMetricsClient,
    MetricsHttpError,
    MetricsQueryResponse,
)
from addon_smoke.clients.storage import (
    ObjectStore,
    StorageAuthError,
    StorageError,
    StorageNotFoundError,
    StorageOperationError,
    StorageTransientError,
    StoredObject,
)

__all__ = [
    "DatadogMetricsClient",
    "DnsChecker",
    "KubeApiError",
    "KubeAuthError",
    "KubeClient",
    "KubeConflictError",
    "KubeNotFoundError",
    "MetricsHttpError",
    "MetricsQueryResponse",
    "ObjectStore",
    "StorageAuthError",
    "StorageError",
    "StorageNotFoundError",
    "StorageOperationError",
    "StorageTransientError",
    "StoredObject",
    "load_kube_client",
]
