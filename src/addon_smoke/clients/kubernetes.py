"""Thin async Kubernetes client over ``kubernetes_asyncio``.

Objects go in and come out as plain dictionaries using the API's own field
names (``readyReplicas``, ``loadBalancer``), so checkers and their tests never
touch generated model classes.
"""

from __future__ import annotations

import logging
import os
import pathlib
from collections.abc import Mapping
from typing import Any

import kubernetes_asyncio
import kubernetes_asyncio.client
import kubernetes_asyncio.config
from kubernetes_asyncio.client.exceptions import ApiException

from addon_smoke.runtime.errors import AddonSmokeError, SetupError

logger = logging.getLogger(__name__)

_FOREGROUND_DELETE = {"propagationPolicy": "Foreground"}


class KubeApiError(AddonSmokeError):
    """Base exception for Kubernetes API failures."""

    def __init__(
        self,
        operation: str,
        target: str,
        *,
        status: int | None,
        reason: str | None,
    ) -> None:
        self.operation = operation
        self.target = target
        self.status = status
        self.reason = reason
        detail = f"{status} {reason}" if status is not None else (reason or "unknown error")
        super().__init__(f"Kubernetes {operation} failed for '{target}': {detail}")


class KubeNotFoundError(KubeApiError):
    """Raised when the object does not exist (404)."""


class KubeConflictError(KubeApiError):
    """Raised when the object already exists or changed underneath us (409)."""


class KubeAuthError(KubeApiError):
    """Raised when credentials are rejected or RBAC denies the call (401/403)."""


def translate_api_error(operation: str, target: str, exc: ApiException) -> KubeApiError:
    status = exc.status
    reason = exc.reason
    if status == 404:
        return KubeNotFoundError(operation, target, status=status, reason=reason)
    if status == 409:
        return KubeConflictError(operation, target, status=status, reason=reason)
    if status in {401, 403}:
        return KubeAuthError(operation, target, status=status, reason=reason)
    return KubeApiError(operation, target, status=status, reason=reason)


class KubeClient:
    """Create-or-replace, read, list and tolerant delete for the objects we use.

    ``create_*`` calls fall back to replace on 409 so re-running with a fixed
    name is idempotent. ``delete_*`` calls treat 404 as success.
    """

    def __init__(
        self,
        api_client: Any | None = None,
        *,
        core: Any | None = None,
        apps: Any | None = None,
        networking: Any | None = None,
        custom: Any | None = None,
    ) -> None:
        if api_client is None and None in (core, apps, networking, custom):
            raise ValueError("api_client is required unless every API group is supplied")
        client = kubernetes_asyncio.client
        self._api_client = api_client
        self._core = core if core is not None else client.CoreV1Api(api_client)
        self._apps = apps if apps is not None else client.AppsV1Api(api_client)
        self._networking = (
            networking if networking is not None else client.NetworkingV1Api(api_client)
        )
        self._custom = custom if custom is not None else client.CustomObjectsApi(api_client)

    async def close(self) -> None:
        if self._api_client is not None:
            await self._api_client.close()

    async def __aenter__(self) -> KubeClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # Namespaces

    async def create_namespace(self, name: str) -> dict[str, Any]:
        body = {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": name}}
        try:
            created = await self._core.create_namespace(body)
        except ApiException as exc:
            if exc.status != 409:
                raise translate_api_error("create", f"namespace/{name}", exc) from exc
            logger.info("Namespace %s already exists, reusing it", name)
            return await self._call("read", f"namespace/{name}", self._core.read_namespace, name)
        return self._serialize(created)

    async def delete_namespace(self, name: str) -> None:
        await self._delete(f"namespace/{name}", self._core.delete_namespace, name)

    # Workloads

    async def create_deployment(self, namespace: str, body: Mapping[str, Any]) -> dict[str, Any]:
        name = body["metadata"]["name"]
        return await self._create_or_replace(
            f"deployment/{namespace}/{name}",
            lambda: self._apps.create_namespaced_deployment(namespace, body),
            lambda: self._apps.replace_namespaced_deployment(name, namespace, body),
        )

    async def read_deployment(self, namespace: str, name: str) -> dict[str, Any]:
        return await self._call(
            "read",
            f"deployment/{namespace}/{name}",
            self._apps.read_namespaced_deployment,
            name,
            namespace,
        )

    async def delete_deployment(self, namespace: str, name: str) -> None:
        await self._delete(
            f"deployment/{namespace}/{name}",
            self._apps.delete_namespaced_deployment,
            name,
            namespace,
        )

    async def create_service(self, namespace: str, body: Mapping[str, Any]) -> dict[str, Any]:
        name = body["metadata"]["name"]
        target = f"service/{namespace}/{name}"

        async def replace() -> Any:
            # Services keep their immutable clusterIP across replace.
            current = await self._core.read_namespaced_service(name, namespace)
            current = self._serialize(current)
            updated = {
                **body,
                "metadata": {
                    **body["metadata"],
                    "resourceVersion": current["metadata"].get("resourceVersion"),
                },
                "spec": {**body.get("spec", {}), "clusterIP": current["spec"].get("clusterIP")},
            }
            return await self._core.replace_namespaced_service(name, namespace, updated)

        return await self._create_or_replace(
            target,
            lambda: self._core.create_namespaced_service(namespace, body),
            replace,
        )

    async def delete_service(self, namespace: str, name: str) -> None:
        await self._delete(
            f"service/{namespace}/{name}",
            self._core.delete_namespaced_service,
            name,
            namespace,
        )

    async def create_ingress(self, namespace: str, body: Mapping[str, Any]) -> dict[str, Any]:
        name = body["metadata"]["name"]
        return await self._create_or_replace(
            f"ingress/{namespace}/{name}",
            lambda: self._networking.create_namespaced_ingress(namespace, body),
            lambda: self._networking.replace_namespaced_ingress(name, namespace, body),
        )

    async def read_ingress(self, namespace: str, name: str) -> dict[str, Any]:
        return await self._call(
            "read",
            f"ingress/{namespace}/{name}",
            self._networking.read_namespaced_ingress,
            name,
            namespace,
        )

    async def delete_ingress(self, namespace: str, name: str) -> None:
        await self._delete(
            f"ingress/{namespace}/{name}",
            self._networking.delete_namespaced_ingress,
            name,
            namespace,
        )

    # Custom resources (cert-manager)

    async def create_custom_object(
        self,
        group: str,
        version: str,
        namespace: str,
        plural: str,
        body: Mapping[str, Any],
    ) -> dict[str, Any]:
        name = body["metadata"]["name"]
        target = f"{plural}.{group}/{namespace}/{name}"

        async def replace() -> Any:
            # Custom resources require the current resourceVersion on update.
            current = await self._custom.get_namespaced_custom_object(
                group, version, namespace, plural, name
            )
            updated = {
                **body,
                "metadata": {
                    **body["metadata"],
                    "resourceVersion": current["metadata"]["resourceVersion"],
                },
            }
            return await self._custom.replace_namespaced_custom_object(
                group, version, namespace, plural, name, updated
            )

        return await self._create_or_replace(
            target,
            lambda: self._custom.create_namespaced_custom_object(
                group, version, namespace, plural, body
            ),
            replace,
        )

    async def delete_custom_object(
        self,
        group: str,
        version: str,
        namespace: str,
        plural: str,
        name: str,
    ) -> None:
        await self._delete(
            f"{plural}.{group}/{namespace}/{name}",
            self._custom.delete_namespaced_custom_object,
            group,
            version,
            namespace,
            plural,
            name,
        )

    # Reads

    async def read_secret(self, namespace: str, name: str) -> dict[str, Any] | None:
        """Return the secret, or ``None`` while it does not exist yet."""
        try:
            return await self._call(
                "read",
                f"secret/{namespace}/{name}",
                self._core.read_namespaced_secret,
                name,
                namespace,
            )
        except KubeNotFoundError:
            return None

    async def list_nodes(self, label_selector: str | None = None) -> list[dict[str, Any]]:
        kwargs = {} if label_selector is None else {"label_selector": label_selector}
        try:
            result = await self._core.list_node(**kwargs)
        except ApiException as exc:
            raise translate_api_error("list", "nodes", exc) from exc
        return list(self._serialize(result).get("items") or [])

    # Helpers

    async def _call(self, operation: str, target: str, method: Any, *args: Any) -> dict[str, Any]:
        try:
            result = await method(*args)
        except ApiException as exc:
            raise translate_api_error(operation, target, exc) from exc
        return self._serialize(result)

    async def _create_or_replace(self, target: str, create: Any, replace: Any) -> dict[str, Any]:
        try:
            result = await create()
        except ApiException as exc:
            if exc.status != 409:
                raise translate_api_error("create", target, exc) from exc
            logger.info("%s already exists, replacing it", target)
            try:
                result = await replace()
            except ApiException as replace_exc:
                raise translate_api_error("replace", target, replace_exc) from replace_exc
        return self._serialize(result)

    async def _delete(self, target: str, method: Any, *args: Any) -> None:
        try:
            await method(*args, body=dict(_FOREGROUND_DELETE))
        except ApiException as exc:
            if exc.status == 404:
                logger.debug("%s already gone", target)
                return
            raise translate_api_error("delete", target, exc) from exc

    def _serialize(self, obj: Any) -> dict[str, Any]:
        if obj is None or isinstance(obj, dict):
            return obj or {}
        if self._api_client is None:
            raise TypeError(f"cannot serialize {type(obj).__name__} without an api client")
        return self._api_client.sanitize_for_serialization(obj)


async def load_kube_client(
    kubeconfig: str | None = None,
    context: str | None = None,
) -> KubeClient:
    """Build a client from a kubeconfig file or the in-cluster service account.

    ``KUBECONFIG`` is honoured when ``kubeconfig`` is not given.

    Raises:
        SetupError: If neither a kubeconfig nor in-cluster variables are found.
    """
    config_file = pathlib.Path(
        kubeconfig
        or os.environ.get("KUBECONFIG", "").split(os.pathsep)[0]
        or kubernetes_asyncio.config.kube_config.KUBE_CONFIG_DEFAULT_LOCATION
    ).expanduser()

    configuration = kubernetes_asyncio.client.Configuration()
    try:
        if config_file.exists():
            await kubernetes_asyncio.config.load_kube_config(
                config_file=str(config_file),
                context=context,
                client_configuration=configuration,
            )
        elif os.getenv("KUBERNETES_SERVICE_HOST"):
            kubernetes_asyncio.config.load_incluster_config(client_configuration=configuration)
        else:
            raise SetupError(
                "unable to configure Kubernetes client: "
                "no kubeconfig file nor in-cluster environment variables found"
            )
    except kubernetes_asyncio.config.ConfigException as exc:
        raise SetupError(f"error loading Kubernetes configuration: {exc}") from exc

    logger.debug("Loaded Kubernetes configuration for %s", configuration.host)
    return KubeClient(kubernetes_asyncio.client.ApiClient(configuration))
