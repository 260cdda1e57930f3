"""datadog-agent: confirm the agent's metrics reach the Datadog API."""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Callable

import aiohttp

from addon_smoke.clients.metrics_api import DatadogMetricsClient, MetricsHttpError
from addon_smoke.config.models import DatadogSettings
from addon_smoke.observability.metrics import MetricsRecorder
from addon_smoke.runtime.checker import Checker
from addon_smoke.runtime.context import RunContext
from addon_smoke.runtime.errors import CheckError, SetupError
from addon_smoke.runtime.poller import poll_until, sleep_or_cancel

_FATAL_STATUS = {401: "401 Unauthorized", 403: "403 Forbidden"}


class DatadogAgentChecker(Checker):
    """Creates nothing; waits, then polls the metrics query API for a series.

    Authorization failures and errors reported by the API itself fail the
    check at once. Other HTTP and transport failures are retried until the
    run timeout.
    """

    name = "datadog-agent"
    workspace_prefix = "datadog-agent-test"

    def __init__(
        self,
        context: RunContext,
        settings: DatadogSettings,
        metrics_client: DatadogMetricsClient,
        *,
        metrics: MetricsRecorder | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(context, metrics=metrics)
        self.settings = settings
        self.metrics_client = metrics_client
        self._clock = clock

    @staticmethod
    def validate(settings: DatadogSettings) -> None:
        if settings.api_key is None or settings.app_key is None:
            raise SetupError("DD_API_KEY or DD_APP_KEY is empty")

    async def probe_convergence(self) -> None:
        ctx = self.context
        query = self.settings.query
        ctx.log_and_notify(f"Querying metrics with query: {query}")

        self.logger.info("Waiting metrics...")
        await sleep_or_cancel(self.settings.wait_seconds, ctx.cancelled)

        to_ts = int(self._clock())
        from_ts = to_ts - int(self.settings.window_seconds)

        async def series_returned() -> bool:
            try:
                response = await self.metrics_client.query(from_ts, to_ts, query)
            except MetricsHttpError as exc:
                if exc.status in _FATAL_STATUS:
                    raise CheckError(
                        f"error waiting for query metrics results: {_FATAL_STATUS[exc.status]}"
                    ) from exc
                self.logger.warning("Error when querying metrics: %s", exc)
                return False
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                self.logger.warning("Error when querying metrics: %s", exc)
                return False

            if response.error:
                raise CheckError(
                    "error waiting for query metrics results: "
                    f"Datadog API error: {response.error}"
                )
            if not response.series:
                self.logger.info("No results found: from=%d to=%d", from_ts, to_ts)
                return False

            ctx.log_and_notify("Response from `MetricsApi.QueryMetrics`")
            self.logger.debug("Response: %s", json.dumps(response.series, indent=2, default=str))
            return True

        await poll_until(
            series_returned,
            interval=self.settings.poll_interval_seconds,
            timeout=ctx.timeout,
            immediate=True,
            cancel=ctx.cancelled,
            description="query metrics results",
        )
