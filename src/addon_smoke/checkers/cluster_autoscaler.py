"""cluster-autoscaler: force a scale-out by asking for one pod more than nodes."""

from __future__ import annotations

from typing import Any

from addon_smoke.checkers.common import (
    app_labels,
    deployment_ready,
    deployment_resource,
    namespace_resource,
)
from addon_smoke.clients.kubernetes import KubeClient
from addon_smoke.config.models import ClusterAutoscalerSettings
from addon_smoke.observability.metrics import MetricsRecorder
from addon_smoke.runtime.checker import Checker
from addon_smoke.runtime.context import RunContext
from addon_smoke.runtime.lifecycle import ManagedResource

HOSTNAME_TOPOLOGY_KEY = "kubernetes.io/hostname"


class ClusterAutoscalerChecker(Checker):
    """One pod per labelled node plus one, with required pod anti-affinity.

    The extra pod can only be scheduled once the autoscaler adds a node that
    carries the label, so the deployment becoming ready proves a scale-out.
    """

    name = "cluster-autoscaler"
    workspace_prefix = "cluster-autoscaler-test"

    def __init__(
        self,
        context: RunContext,
        settings: ClusterAutoscalerSettings,
        kube: KubeClient,
        *,
        metrics: MetricsRecorder | None = None,
    ) -> None:
        super().__init__(context, metrics=metrics)
        self.settings = settings
        self.kube = kube
        self.replicas: int | None = None

    @property
    def label_selector(self) -> str:
        return f"{self.settings.node_label_key}={self.settings.node_label_value}"

    async def resources(self) -> list[ManagedResource]:
        ctx = self.context
        ctx.log_and_notify(f"cluster-autoscaler check application Namespace: {self.namespace}")

        nodes = await self.kube.list_nodes(self.label_selector)
        self.replicas = len(nodes) + 1
        ctx.log_and_notify(f"Nodes(have label: {self.label_selector}): {len(nodes)}")
        ctx.log_and_notify(f"Create Deployment with desire replicas {self.replicas}")

        name = self.settings.resource_name
        return [
            namespace_resource(self.kube, self.namespace),
            deployment_resource(
                self.kube,
                self.namespace,
                self.deployment_body(self.replicas),
                ready=deployment_ready(
                    self.kube,
                    self.namespace,
                    name,
                    interval=self.settings.poll_interval_seconds,
                    timeout=ctx.timeout,
                    logger=self.logger,
                ),
            ),
        ]

    def deployment_body(self, replicas: int) -> dict[str, Any]:
        name = self.settings.resource_name
        pod_spec: dict[str, Any] = {
            "affinity": {
                "nodeAffinity": {
                    "requiredDuringSchedulingIgnoredDuringExecution": {
                        "nodeSelectorTerms": [
                            {
                                "matchExpressions": [
                                    {
                                        "key": self.settings.node_label_key,
                                        "operator": "In",
                                        "values": [self.settings.node_label_value],
                                    }
                                ]
                            }
                        ]
                    }
                },
                "podAntiAffinity": {
                    "requiredDuringSchedulingIgnoredDuringExecution": [
                        {
                            "topologyKey": HOSTNAME_TOPOLOGY_KEY,
                            "labelSelector": {
                                "matchExpressions": [
                                    {"key": "app", "operator": "In", "values": [name]}
                                ]
                            },
                        }
                    ]
                },
            },
            "containers": [
                {
                    "name": "nginx",
                    "image": self.settings.image,
                    "ports": [{"name": "http", "protocol": "TCP", "containerPort": 80}],
                }
            ],
        }
        if self.settings.tolerations:
            pod_spec["tolerations"] = [
                toleration.model_dump(exclude_none=True)
                for toleration in self.settings.tolerations
            ]

        return {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": {"name": name, "labels": app_labels(name)},
            "spec": {
                "replicas": replicas,
                "selector": {"matchLabels": app_labels(name)},
                "template": {"metadata": {"labels": app_labels(name)}, "spec": pod_spec},
            },
        }
