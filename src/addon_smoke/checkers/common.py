"""Resource builders shared by the Kubernetes backed checkers."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from addon_smoke.clients.kubernetes import KubeClient
from addon_smoke.runtime.lifecycle import ManagedResource
from addon_smoke.runtime.poller import ConvergenceProbe


def namespace_resource(kube: KubeClient, name: str) -> ManagedResource:
    return ManagedResource(
        kind="namespace",
        name=name,
        create=lambda: kube.create_namespace(name),
        delete=lambda: kube.delete_namespace(name),
    )


def deployment_resource(
    kube: KubeClient,
    namespace: str,
    body: Mapping[str, Any],
    *,
    ready: ConvergenceProbe | None = None,
) -> ManagedResource:
    name = body["metadata"]["name"]
    return ManagedResource(
        kind="deployment",
        name=name,
        create=lambda: kube.create_deployment(namespace, body),
        delete=lambda: kube.delete_deployment(namespace, name),
        ready=ready,
    )


def deployment_ready(
    kube: KubeClient,
    namespace: str,
    name: str,
    *,
    interval: float,
    timeout: float,
    logger: logging.Logger,
) -> ConvergenceProbe:
    """Ready once ``status.readyReplicas`` equals ``spec.replicas``.

    The first read happens after one interval. Read errors abort the wait.
    """

    async def probe() -> bool:
        deployment = await kube.read_deployment(namespace, name)
        desired = (deployment.get("spec") or {}).get("replicas") or 0
        ready = (deployment.get("status") or {}).get("readyReplicas") or 0
        if ready == desired:
            logger.info("All Pods are ready")
            return True
        logger.info("Waiting for Pods to be ready, current: %d, desired: %d", ready, desired)
        return False

    return ConvergenceProbe(
        probe=probe,
        interval=interval,
        timeout=timeout,
        immediate=False,
        description=f"Pods of deployment {name} to be ready",
    )


def app_labels(name: str) -> dict[str, str]:
    return {"app": name}
