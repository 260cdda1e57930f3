"""ingress: ingress controller provisions a load balancer, external-dns publishes it."""

from __future__ import annotations

from typing import Any

import dns.exception

from addon_smoke.checkers.common import (
    app_labels,
    deployment_ready,
    deployment_resource,
    namespace_resource,
)
from addon_smoke.clients.dns import DnsChecker
from addon_smoke.clients.kubernetes import KubeClient
from addon_smoke.config.models import IngressSettings
from addon_smoke.observability.metrics import MetricsRecorder
from addon_smoke.runtime.checker import Checker
from addon_smoke.runtime.context import RunContext
from addon_smoke.runtime.errors import SetupError
from addon_smoke.runtime.lifecycle import ManagedResource
from addon_smoke.runtime.poller import ConvergenceProbe, poll_until

CONTAINER_PORT = 8080
SERVICE_PORT = 80

ALB_ANNOTATIONS = {
    "alb.ingress.kubernetes.io/backend-protocol": "HTTP",
    "alb.ingress.kubernetes.io/connection-idle-timeout": "60",
    "alb.ingress.kubernetes.io/healthcheck-interval-seconds": "5",
    "alb.ingress.kubernetes.io/healthcheck-protocol": "HTTP",
    "alb.ingress.kubernetes.io/healthcheck-timeout-seconds": "2",
    "alb.ingress.kubernetes.io/healthy-threshold-count": "2",
    "alb.ingress.kubernetes.io/inbound-cidrs": "0.0.0.0/0",
    "alb.ingress.kubernetes.io/target-type": "ip",
}


class IngressChecker(Checker):
    name = "ingress"
    workspace_prefix = "ingress-test"

    def __init__(
        self,
        context: RunContext,
        settings: IngressSettings,
        kube: KubeClient,
        dns_checker: DnsChecker | None = None,
        *,
        metrics: MetricsRecorder | None = None,
    ) -> None:
        if not settings.external_hostname:
            raise SetupError("EXTERNAL_HOSTNAME is empty")
        super().__init__(context, metrics=metrics)
        self.settings = settings
        self.kube = kube
        self.dns_checker = dns_checker or DnsChecker(settings.nameserver)
        self.hostname: str = settings.external_hostname

    async def resources(self) -> list[ManagedResource]:
        self.context.log_and_notify(f"Ingress check application Namespace: {self.namespace}")
        name = self.settings.resource_name
        ns = self.namespace
        return [
            namespace_resource(self.kube, ns),
            deployment_resource(
                self.kube,
                ns,
                self.deployment_body(),
                ready=deployment_ready(
                    self.kube,
                    ns,
                    name,
                    interval=self.settings.poll_interval_seconds,
                    timeout=self.context.timeout,
                    logger=self.logger,
                ),
            ),
            ManagedResource(
                kind="service",
                name=name,
                create=lambda: self.kube.create_service(ns, self.service_body()),
                delete=lambda: self.kube.delete_service(ns, name),
            ),
            ManagedResource(
                kind="ingress",
                name=name,
                create=lambda: self.kube.create_ingress(ns, self.ingress_body()),
                delete=lambda: self.kube.delete_ingress(ns, name),
                ready=self._load_balancer_ready(),
            ),
        ]

    async def probe_convergence(self) -> None:
        if not self.settings.dns_check:
            self.context.log_and_notify("Skip Dns Check")
            return
        self.logger.info("Check DNS Record for: %s", self.hostname)
        await poll_until(
            self._record_available,
            interval=self.settings.dns_poll_interval_seconds,
            timeout=self.context.timeout,
            immediate=False,
            cancel=self.context.cancelled,
            description=f"DNS record {self.hostname}",
        )

    async def _record_available(self) -> bool:
        try:
            addresses = await self.dns_checker.resolve_a(self.hostname)
        except dns.exception.DNSException as exc:
            self.logger.warning("DNS lookup for %s failed: %s", self.hostname, exc)
            return False
        if not addresses:
            self.logger.info("Record for %s is not yet available, retrying...", self.hostname)
            return False
        self.context.log_and_notify(f"Record is available: {addresses[0]}")
        return True

    def _load_balancer_ready(self) -> ConvergenceProbe:
        name = self.settings.resource_name

        async def probe() -> bool:
            ingress = await self.kube.read_ingress(self.namespace, name)
            status = (ingress.get("status") or {}).get("loadBalancer") or {}
            for entry in status.get("ingress") or []:
                address = entry.get("hostname") or entry.get("ip")
                if address:
                    self.context.log_and_notify(f"Ingress is ready: {address}")
                    return True
            self.logger.info("Waiting for Ingress %s load balancer", name)
            return False

        return ConvergenceProbe(
            probe=probe,
            interval=self.settings.poll_interval_seconds,
            timeout=self.context.timeout,
            immediate=False,
            description=f"load balancer of ingress {name}",
        )

    def deployment_body(self) -> dict[str, Any]:
        name = self.settings.resource_name
        return {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": {"name": name, "labels": app_labels(name)},
            "spec": {
                "replicas": 1,
                "selector": {"matchLabels": app_labels(name)},
                "template": {
                    "metadata": {"labels": app_labels(name)},
                    "spec": {
                        "containers": [
                            {
                                "name": "nginx",
                                "image": self.settings.image,
                                "ports": [
                                    {
                                        "name": "http",
                                        "protocol": "TCP",
                                        "containerPort": CONTAINER_PORT,
                                    }
                                ],
                            }
                        ]
                    },
                },
            },
        }

    def service_body(self) -> dict[str, Any]:
        name = self.settings.resource_name
        return {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": {"name": name},
            "spec": {
                "selector": app_labels(name),
                "ports": [
                    {"protocol": "TCP", "port": SERVICE_PORT, "targetPort": CONTAINER_PORT}
                ],
            },
        }

    def ingress_body(self) -> dict[str, Any]:
        name = self.settings.resource_name
        return {
            "apiVersion": "networking.k8s.io/v1",
            "kind": "Ingress",
            "metadata": {
                "name": name,
                "annotations": {
                    **ALB_ANNOTATIONS,
                    "external-dns.alpha.kubernetes.io/hostname": self.hostname,
                },
            },
            "spec": {
                "ingressClassName": self.settings.ingress_class_name,
                "rules": [
                    {
                        "host": self.hostname,
                        "http": {
                            "paths": [
                                {
                                    "path": "/",
                                    "pathType": "ImplementationSpecific",
                                    "backend": {
                                        "service": {
                                            "name": name,
                                            "port": {"number": SERVICE_PORT},
                                        }
                                    },
                                }
                            ]
                        },
                    }
                ],
            },
        }
