"""Builds one checker with its clients, runs it and maps the outcome to an exit code."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import AsyncExitStack

from addon_smoke.checkers import (
    CHECKERS,
    CertManagerChecker,
    ClusterAutoscalerChecker,
    DatadogAgentChecker,
    FluentChecker,
    IngressChecker,
)
from addon_smoke.clients.dns import DnsChecker
from addon_smoke.clients.kubernetes import KubeClient, load_kube_client
from addon_smoke.clients.metrics_api import DatadogMetricsClient
from addon_smoke.clients.storage import ObjectStore
from addon_smoke.config.errors import ConfigError
from addon_smoke.config.models import AppSettings
from addon_smoke.notify.buffer import NotificationBuffer, NotificationTransport
from addon_smoke.notify.chatwork import ChatworkTransport, start_banner
from addon_smoke.runtime.cancellation import CancellationWatcher
from addon_smoke.runtime.checker import Checker
from addon_smoke.runtime.context import RunContext
from addon_smoke.runtime.errors import MissingDependencyError, PollCancelledError, SetupError
from addon_smoke.runtime.identity import workspace_name

EXIT_OK = 0
EXIT_CHECK_FAILED = 1
EXIT_SETUP_ERROR = 2
EXIT_INTERRUPTED = 130

CheckerFactory = Callable[[RunContext, AppSettings, AsyncExitStack], Awaitable[Checker]]
KubeFactory = Callable[[AppSettings], Awaitable[KubeClient]]

logger = logging.getLogger("addon_smoke")


def resolve_workspace(name: str, settings: AppSettings) -> str:
    """Namespace for this run: a fresh one, or the configured fluent namespace."""
    if name == FluentChecker.name and settings.fluent.resource_namespace:
        return settings.fluent.resource_namespace
    return workspace_name(CHECKERS[name].workspace_prefix)


async def _default_kube(settings: AppSettings) -> KubeClient:
    return await load_kube_client(settings.run.kubeconfig, settings.run.kube_context)


async def build_checker(
    context: RunContext,
    settings: AppSettings,
    stack: AsyncExitStack,
    *,
    name: str,
    kube_factory: KubeFactory = _default_kube,
) -> Checker:
    """Validate settings, then build the named checker and its clients.

    Clients are registered on ``stack`` so they are closed with the run.

    Raises:
        SetupError: Required settings are missing or a client cannot be built.
    """
    if name == DatadogAgentChecker.name:
        DatadogAgentChecker.validate(settings.datadog)
        dd = settings.datadog
        metrics_client = DatadogMetricsClient(
            api_key=dd.api_key.get_secret_value(),
            app_key=dd.app_key.get_secret_value(),
            site=dd.site,
            timeout_seconds=dd.timeout_seconds,
        )
        stack.push_async_callback(metrics_client.close)
        return DatadogAgentChecker(context, dd, metrics_client)

    if name == FluentChecker.name:
        FluentChecker.validate(settings.fluent)
    if name == IngressChecker.name and not settings.ingress.external_hostname:
        raise SetupError("EXTERNAL_HOSTNAME is empty")

    kube = await kube_factory(settings)
    stack.push_async_callback(kube.close)

    if name == CertManagerChecker.name:
        return CertManagerChecker(context, settings.cert_manager, kube)
    if name == ClusterAutoscalerChecker.name:
        return ClusterAutoscalerChecker(context, settings.cluster_autoscaler, kube)
    if name == IngressChecker.name:
        return IngressChecker(
            context,
            settings.ingress,
            kube,
            DnsChecker(settings.ingress.nameserver),
        )
    if name == FluentChecker.name:
        fluent = settings.fluent
        store = ObjectStore.for_aws(
            bucket=fluent.log_bucket_name,
            region=fluent.aws_region,
            endpoint=fluent.s3_endpoint,
        )
        return FluentChecker(context, fluent, kube, store)

    raise SetupError(f"unknown checker: {name}")


async def run_check(
    name: str,
    settings: AppSettings,
    *,
    debug: bool = False,
    transport: NotificationTransport | None = None,
    factory: CheckerFactory | None = None,
    grace_seconds: float = 10.0,
) -> int:
    """Run the named checker once and return the process exit code."""
    if name not in CHECKERS:
        logger.error("error: unknown checker %s", name)
        return EXIT_SETUP_ERROR

    if transport is None:
        transport = ChatworkTransport.from_settings(settings.notification)
    notifier = NotificationBuffer(transport, logger=logger)
    notifier.add_message(
        start_banner(
            tool=settings.run.service_name,
            cluster_name=settings.run.cluster_name,
            timezone=settings.run.timezone,
        )
    )

    context = RunContext(
        workspace=resolve_workspace(name, settings),
        notifier=notifier,
        debug=debug,
        timeout=settings.run.timeout_seconds,
        logger=logger,
        cluster_name=settings.run.cluster_name,
    )
    logger.info("Checker timeout: %gs", context.timeout)
    if debug:
        logger.debug("debug mode enabled, resources will be preserved")

    async with AsyncExitStack() as stack:
        stack.push_async_callback(notifier.close)
        try:
            if factory is None:
                checker = await build_checker(context, settings, stack, name=name)
            else:
                checker = await factory(context, settings, stack)
        except (SetupError, ConfigError, MissingDependencyError) as exc:
            context.log_and_notify(f"error: {exc}", level=logging.ERROR)
            await notifier.send()
            return EXIT_SETUP_ERROR

        return await _run_with_watcher(checker, context, grace_seconds=grace_seconds)


async def _run_with_watcher(
    checker: Checker,
    context: RunContext,
    *,
    grace_seconds: float,
) -> int:
    check_task = asyncio.create_task(checker.check(), name=f"check-{checker.name}")
    watcher = CancellationWatcher(context, checker, grace_seconds=grace_seconds)
    watcher.install()
    watcher.watch(check_task)
    try:
        await check_task
    except (PollCancelledError, asyncio.CancelledError):
        if not context.cancelled.is_set():
            raise
        logger.info("%s check interrupted", checker.name)
        return EXIT_INTERRUPTED
    except Exception as exc:
        logger.error("error: %s", exc)
        return EXIT_CHECK_FAILED
    finally:
        await watcher.close()

    if context.cancelled.is_set():
        return EXIT_INTERRUPTED
    return EXIT_OK
