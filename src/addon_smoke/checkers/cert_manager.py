"""cert-manager: issue a CA and a leaf certificate and wait for their secrets."""

from __future__ import annotations

from typing import Any

from addon_smoke.checkers.common import namespace_resource
from addon_smoke.clients.kubernetes import KubeApiError, KubeAuthError, KubeClient
from addon_smoke.config.models import CertManagerSettings
from addon_smoke.observability.metrics import MetricsRecorder
from addon_smoke.runtime.checker import Checker
from addon_smoke.runtime.context import RunContext
from addon_smoke.runtime.lifecycle import ManagedResource
from addon_smoke.runtime.poller import ConvergenceProbe

GROUP = "cert-manager.io"
VERSION = "v1"


class CertManagerChecker(Checker):
    """Creates, in order: namespace, root CA, CA issuer, leaf certificate.

    The root CA is signed by an existing self-signed ``ClusterIssuer``; the
    namespaced issuer then signs the leaf certificate with that CA. Each
    certificate is ready once cert-manager has written its secret.
    """

    name = "cert-manager"
    workspace_prefix = "cert-manager-test"

    def __init__(
        self,
        context: RunContext,
        settings: CertManagerSettings,
        kube: KubeClient,
        *,
        metrics: MetricsRecorder | None = None,
    ) -> None:
        super().__init__(context, metrics=metrics)
        self.settings = settings
        self.kube = kube

    @property
    def ca_name(self) -> str:
        return f"{self.settings.cert_name}-ca"

    @property
    def ca_secret_name(self) -> str:
        return f"{self.settings.cert_name}-tls"

    @property
    def issuer_name(self) -> str:
        return f"{self.settings.cert_name}-issuer"

    @property
    def certificate_name(self) -> str:
        return f"{self.settings.cert_name}-cert"

    async def resources(self) -> list[ManagedResource]:
        self.context.log_and_notify(
            f"cert-manager check application Namespace: {self.namespace}"
        )
        return [
            namespace_resource(self.kube, self.namespace),
            self._custom_resource(
                "certificate",
                "certificates",
                self.root_ca_body(),
                ready=self._secret_ready(self.ca_secret_name),
            ),
            self._custom_resource("issuer", "issuers", self.issuer_body()),
            self._custom_resource(
                "certificate",
                "certificates",
                self.certificate_body(),
                ready=self._secret_ready(self.certificate_name),
            ),
        ]

    def root_ca_body(self) -> dict[str, Any]:
        return {
            "apiVersion": f"{GROUP}/{VERSION}",
            "kind": "Certificate",
            "metadata": {"name": self.ca_name, "namespace": self.namespace},
            "spec": {
                "secretName": self.ca_secret_name,
                "commonName": self.ca_secret_name,
                "isCA": True,
                "privateKey": {"algorithm": "ECDSA", "size": 256},
                "issuerRef": {
                    "name": self.settings.cluster_issuer,
                    "kind": "ClusterIssuer",
                    "group": GROUP,
                },
            },
        }

    def issuer_body(self) -> dict[str, Any]:
        return {
            "apiVersion": f"{GROUP}/{VERSION}",
            "kind": "Issuer",
            "metadata": {"name": self.issuer_name, "namespace": self.namespace},
            "spec": {"ca": {"secretName": self.ca_secret_name}},
        }

    def certificate_body(self) -> dict[str, Any]:
        cert = self.settings.cert_name
        return {
            "apiVersion": f"{GROUP}/{VERSION}",
            "kind": "Certificate",
            "metadata": {"name": self.certificate_name, "namespace": self.namespace},
            "spec": {
                "secretName": self.certificate_name,
                "dnsNames": [
                    cert,
                    f"{cert}.{self.namespace}.svc",
                    f"{cert}.{self.namespace}.svc.cluster.local",
                ],
                "issuerRef": {"name": self.issuer_name, "kind": "Issuer", "group": GROUP},
            },
        }

    def _custom_resource(
        self,
        kind: str,
        plural: str,
        body: dict[str, Any],
        *,
        ready: ConvergenceProbe | None = None,
    ) -> ManagedResource:
        name = body["metadata"]["name"]
        return ManagedResource(
            kind=kind,
            name=name,
            create=lambda: self.kube.create_custom_object(
                GROUP, VERSION, self.namespace, plural, body
            ),
            delete=lambda: self.kube.delete_custom_object(
                GROUP, VERSION, self.namespace, plural, name
            ),
            ready=ready,
        )

    def _secret_ready(self, secret_name: str) -> ConvergenceProbe:
        async def probe() -> bool:
            try:
                secret = await self.kube.read_secret(self.namespace, secret_name)
            except KubeAuthError:
                raise
            except KubeApiError as exc:
                self.logger.warning("Waiting for secret %s to be ready: %s", secret_name, exc)
                return False
            if secret is None:
                self.logger.info("Waiting for secret %s to be ready", secret_name)
                return False
            created = (secret.get("metadata") or {}).get("creationTimestamp")
            self.context.log_and_notify(f"Created secret: {secret_name} at {created}")
            return True

        return ConvergenceProbe(
            probe=probe,
            interval=self.settings.poll_interval_seconds,
            timeout=self.settings.ready_timeout_seconds,
            immediate=True,
            description=f"secret {secret_name}",
        )
