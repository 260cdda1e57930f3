"""Add-on checkers, keyed by their CLI subcommand name."""

from addon_smoke.checkers.cert_manager import CertManagerChecker
from addon_smoke.checkers.cluster_autoscaler import ClusterAutoscalerChecker
from addon_smoke.checkers.datadog_agent import DatadogAgentChecker
from addon_smoke.checkers.fluent import FluentChecker
from addon_smoke.checkers.ingress import IngressChecker
from addon_smoke.runtime.checker import Checker

CHECKERS: dict[str, type[Checker]] = {
    checker.name: checker
    for checker in (
        ClusterAutoscalerChecker,
        IngressChecker,
        FluentChecker,
        CertManagerChecker,
        DatadogAgentChecker,
    )
}

__all__ = [
    "CHECKERS",
    "CertManagerChecker",
    "ClusterAutoscalerChecker",
    "DatadogAgentChecker",
    "FluentChecker",
    "IngressChecker",
]
