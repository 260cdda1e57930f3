"""Tests for the cert-manager checker."""

from __future__ import annotations

from typing import Any

import pytest

from addon_smoke.checkers import CertManagerChecker
from addon_smoke.clients.kubernetes import KubeApiError, KubeAuthError
from addon_smoke.config import CertManagerSettings
from addon_smoke.notify import NullTransport
from addon_smoke.runtime.checker import CheckState
from addon_smoke.runtime.context import RunContext
from addon_smoke.runtime.errors import PollTimeoutError

SETTINGS = CertManagerSettings(poll_interval_seconds=0.01, ready_timeout_seconds=0.1)


class TestCertManagerChecker:
    async def test_issues_ca_then_leaf_and_cleans_up_in_reverse(
        self, context: RunContext, kube: Any, transport: NullTransport
    ) -> None:
        checker = CertManagerChecker(context, SETTINGS, kube)

        await checker.check()

        assert checker.state is CheckState.SUCCEEDED
        created = [call for call in kube.calls if call[0].startswith("create_")]
        assert created == [
            ("create_namespace", context.workspace),
            ("create_custom_object", "certificates", "sample-ca"),
            ("create_custom_object", "issuers", "sample-issuer"),
            ("create_custom_object", "certificates", "sample-cert"),
        ]
        assert kube.deletes == [
            ("delete_custom_object", "certificates", "sample-cert"),
            ("delete_custom_object", "issuers", "sample-issuer"),
            ("delete_custom_object", "certificates", "sample-ca"),
            ("delete_namespace", context.workspace),
        ]
        sent = transport.sent[0]
        assert "Created secret: sample-tls at 2024-03-05T01:02:03Z" in sent
        assert "Created secret: sample-cert at 2024-03-05T01:02:03Z" in sent

    async def test_ca_secret_checked_before_issuer_exists(
        self, context: RunContext, kube: Any
    ) -> None:
        await CertManagerChecker(context, SETTINGS, kube).check()

        ops = kube.calls
        ca_ready = ops.index(("read_secret", context.workspace, "sample-tls"))
        issuer = ops.index(("create_custom_object", "issuers", "sample-issuer"))
        assert ca_ready < issuer

    async def test_leaf_secret_timeout_fails_and_cleans_up(
        self, context: RunContext, kube: Any
    ) -> None:
        kube.withheld_secrets.add("sample-cert")
        checker = CertManagerChecker(context, SETTINGS, kube)

        with pytest.raises(PollTimeoutError, match="secret sample-cert"):
            await checker.check()

        assert checker.state is CheckState.FAILED
        assert len(kube.deletes) == 4

    async def test_transient_secret_errors_are_retried(
        self, context: RunContext, kube: Any
    ) -> None:
        checker = CertManagerChecker(context, SETTINGS, kube)
        failures = [KubeApiError("read", "secret", status=500, reason="Internal")]
        original = kube.read_secret

        async def flaky(namespace: str, name: str) -> dict[str, Any] | None:
            if failures:
                raise failures.pop()
            return await original(namespace, name)

        kube.read_secret = flaky

        await checker.check()

        assert checker.state is CheckState.SUCCEEDED

    async def test_auth_error_on_secret_is_fatal(self, context: RunContext, kube: Any) -> None:
        kube.errors["read_secret"] = KubeAuthError("read", "secret", status=403, reason="Forbidden")
        checker = CertManagerChecker(context, SETTINGS, kube)

        with pytest.raises(KubeAuthError):
            await checker.check()

        assert kube.operations.count("read_secret") == 1

    def test_certificate_bodies(self, context: RunContext, kube: Any) -> None:
        checker = CertManagerChecker(
            context, CertManagerSettings(cert_name="demo", cluster_issuer="root"), kube
        )
        ns = context.workspace

        ca = checker.root_ca_body()
        assert ca["spec"]["isCA"] is True
        assert ca["spec"]["secretName"] == "demo-tls"
        assert ca["spec"]["issuerRef"] == {
            "name": "root",
            "kind": "ClusterIssuer",
            "group": "cert-manager.io",
        }
        assert checker.issuer_body()["spec"] == {"ca": {"secretName": "demo-tls"}}
        leaf = checker.certificate_body()
        assert leaf["spec"]["dnsNames"] == [
            "demo",
            f"demo.{ns}.svc",
            f"demo.{ns}.svc.cluster.local",
        ]
        assert leaf["spec"]["issuerRef"]["name"] == "demo-issuer"
