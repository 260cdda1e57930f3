"""fluent: generate container logs and wait for them to land in the log bucket."""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from addon_smoke.checkers.common import (
    app_labels,
    deployment_ready,
    deployment_resource,
    namespace_resource,
)
from addon_smoke.clients.kubernetes import KubeClient
from addon_smoke.clients.storage import ObjectStore, StorageAuthError, StorageError
from addon_smoke.config.models import FluentSettings
from addon_smoke.observability.metrics import MetricsRecorder
from addon_smoke.runtime.checker import Checker
from addon_smoke.runtime.context import RunContext
from addon_smoke.runtime.errors import SetupError
from addon_smoke.runtime.lifecycle import ManagedResource
from addon_smoke.runtime.poller import poll_until

DEPLOYMENT_POLL_INTERVAL = 5.0

LOG_GENERATOR_SCRIPT = (
    "while true; do cat /dev/urandom | tr -dc 'a-zA-Z0-9' | fold -w 128 | head -n 100; "
    "sleep 1; done"
)


def replica_count(node_count: int, ratio: float) -> int:
    """Log generators to run: ``ceil(node_count * ratio)``, at least one."""
    return max(1, math.ceil(node_count * ratio))


class FluentChecker(Checker):
    """Runs a burst log generator and polls the bucket fluentd ships to.

    Success is an object under ``{log_path}/{env}/{namespace}/dt={YYYYMMDD}``
    modified after the check started. Authorization failures on the bucket
    abort the wait; any other storage error is retried.

    When ``resource_namespace`` is configured the namespace is reused as is:
    it is neither created nor deleted.
    """

    name = "fluent"
    workspace_prefix = "fluent-test"

    def __init__(
        self,
        context: RunContext,
        settings: FluentSettings,
        kube: KubeClient,
        store: ObjectStore,
        *,
        metrics: MetricsRecorder | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        super().__init__(context, metrics=metrics)
        self.settings = settings
        self.kube = kube
        self.store = store
        self._clock = clock or (lambda: datetime.now(UTC))
        self.started_at: datetime = self._clock()
        self.replicas: int | None = None

    @staticmethod
    def validate(settings: FluentSettings) -> None:
        """Fail before any client is built when required settings are missing."""
        if not settings.aws_region:
            raise SetupError("region is empty: please set AWS_DEFAULT_REGION")
        if not settings.log_bucket_name:
            raise SetupError("LOG_BUCKET_NAME is empty")

    @property
    def log_prefix(self) -> str:
        s = self.settings
        return f"{s.log_path}/{s.env}/{self.namespace}/dt={self.started_at:%Y%m%d}"

    async def resources(self) -> list[ManagedResource]:
        ctx = self.context
        ctx.log_and_notify(f"fluent check application Namespace: {self.namespace}")

        nodes = await self.kube.list_nodes()
        self.replicas = replica_count(len(nodes), self.settings.replica_ratio)
        ctx.log_and_notify(f"Create Deployment with desire replicas {self.replicas}")

        resources: list[ManagedResource] = []
        if self.settings.resource_namespace is None:
            resources.append(namespace_resource(self.kube, self.namespace))
        resources.append(
            deployment_resource(
                self.kube,
                self.namespace,
                self.deployment_body(self.replicas),
                ready=deployment_ready(
                    self.kube,
                    self.namespace,
                    self.settings.resource_name,
                    interval=DEPLOYMENT_POLL_INTERVAL,
                    timeout=ctx.timeout,
                    logger=self.logger,
                ),
            )
        )
        return resources

    async def probe_convergence(self) -> None:
        await poll_until(
            self._log_object_arrived,
            interval=self.settings.poll_interval_seconds,
            timeout=self.settings.poll_timeout_seconds,
            immediate=True,
            cancel=self.context.cancelled,
            description=f"s3://{self.store.bucket}/{self.log_prefix}",
        )
        self.context.log_and_notify("All S3 Objects are available.")

    async def _log_object_arrived(self) -> bool:
        self.logger.info("Wait fluentd output to s3://%s/%s ...", self.store.bucket, self.log_prefix)
        try:
            found = await self.store.newest_after(self.log_prefix, self.started_at)
        except StorageAuthError:
            raise
        except StorageError as exc:
            self.logger.warning("Got an error retrieving items: %s", exc)
            return False
        if found is None:
            return False
        self.context.log_and_notify(
            f"Found S3 Object: {found.key} (last modified {found.last_modified})"
        )
        return True

    def deployment_body(self, replicas: int) -> dict[str, Any]:
        name = self.settings.resource_name
        return {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": {"name": name, "labels": app_labels(name)},
            "spec": {
                "replicas": replicas,
                "selector": {"matchLabels": app_labels(name)},
                "template": {
                    "metadata": {"labels": app_labels(name)},
                    "spec": {
                        "containers": [
                            {
                                "name": "ubuntu",
                                "image": self.settings.image,
                                "args": ["sh", "-c", LOG_GENERATOR_SCRIPT],
                            }
                        ]
                    },
                },
            },
        }
