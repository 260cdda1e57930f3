"""Fake collaborators for checker tests."""

from __future__ import annotations

from typing import Any

import pytest

CREATED_AT = "2024-03-05T01:02:03Z"


class FakeKube:
    """In-memory stand-in for ``KubeClient`` that records every call.

    Deployments become ready as soon as they are created unless
    ``ready_replicas`` pins the reported count. Certificates get their secret
    immediately unless listed in ``withheld_secrets``.
    """

    def __init__(
        self,
        *,
        nodes: list[dict[str, Any]] | None = None,
        ready_replicas: int | None = None,
        lb_status: list[dict[str, str]] | None = None,
    ) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.nodes = nodes or []
        self.ready_replicas = ready_replicas
        self.lb_status = [{"hostname": "k8s-alb.example.com"}] if lb_status is None else lb_status
        self.deployments: dict[str, dict[str, Any]] = {}
        self.secrets: dict[str, dict[str, Any]] = {}
        self.withheld_secrets: set[str] = set()
        self.errors: dict[str, Exception] = {}

    def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, *args))
        error = self.errors.get(operation)
        if error is not None:
            raise error

    @property
    def operations(self) -> list[str]:
        return [call[0] for call in self.calls]

    @property
    def deletes(self) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0].startswith("delete_")]

    async def create_namespace(self, name: str) -> dict[str, Any]:
        self._record("create_namespace", name)
        return {"metadata": {"name": name}}

    async def delete_namespace(self, name: str) -> None:
        self._record("delete_namespace", name)

    async def list_nodes(self, label_selector: str | None = None) -> list[dict[str, Any]]:
        self._record("list_nodes", label_selector)
        return list(self.nodes)

    async def create_deployment(self, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        name = body["metadata"]["name"]
        self._record("create_deployment", namespace, name)
        self.deployments[name] = body
        return body

    async def read_deployment(self, namespace: str, name: str) -> dict[str, Any]:
        self._record("read_deployment", namespace, name)
        body = self.deployments[name]
        desired = body["spec"]["replicas"]
        ready = desired if self.ready_replicas is None else self.ready_replicas
        return {**body, "status": {"readyReplicas": ready}}

    async def delete_deployment(self, namespace: str, name: str) -> None:
        self._record("delete_deployment", namespace, name)

    async def create_service(self, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        self._record("create_service", namespace, body["metadata"]["name"])
        return body

    async def delete_service(self, namespace: str, name: str) -> None:
        self._record("delete_service", namespace, name)

    async def create_ingress(self, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        self._record("create_ingress", namespace, body["metadata"]["name"])
        return body

    async def read_ingress(self, namespace: str, name: str) -> dict[str, Any]:
        self._record("read_ingress", namespace, name)
        return {"status": {"loadBalancer": {"ingress": self.lb_status}}}

    async def delete_ingress(self, namespace: str, name: str) -> None:
        self._record("delete_ingress", namespace, name)

    async def create_custom_object(
        self, group: str, version: str, namespace: str, plural: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        self._record("create_custom_object", plural, body["metadata"]["name"])
        secret_name = body.get("spec", {}).get("secretName")
        if plural == "certificates" and secret_name not in self.withheld_secrets:
            self.secrets[secret_name] = {
                "metadata": {"name": secret_name, "creationTimestamp": CREATED_AT}
            }
        return body

    async def delete_custom_object(
        self, group: str, version: str, namespace: str, plural: str, name: str
    ) -> None:
        self._record("delete_custom_object", plural, name)

    async def read_secret(self, namespace: str, name: str) -> dict[str, Any] | None:
        self._record("read_secret", namespace, name)
        return self.secrets.get(name)

    async def close(self) -> None:
        self._record("close")


@pytest.fixture
def kube() -> FakeKube:
    return FakeKube()


@pytest.fixture
def make_kube() -> type[FakeKube]:
    return FakeKube
