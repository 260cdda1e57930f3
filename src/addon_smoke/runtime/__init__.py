"""Runtime primitives: workspace identity, polling and error contracts.

The checker skeleton, lifecycle manager and cancellation watcher live in
their own modules because they depend on ``addon_smoke.observability``.
"""

from addon_smoke.runtime.errors import (
    AddonSmokeError,
    AggregatedError,
    CheckError,
    MissingDependencyError,
    PollCancelledError,
    PollError,
    PollTimeoutError,
    SetupError,
)
from addon_smoke.runtime.identity import random_suffix, workspace_name
from addon_smoke.runtime.poller import ConvergenceProbe, Probe, poll_until, sleep_or_cancel

__all__ = [
    "AddonSmokeError",
    "AggregatedError",
    "CheckError",
    "ConvergenceProbe",
    "MissingDependencyError",
    "PollCancelledError",
    "PollError",
    "PollTimeoutError",
    "Probe",
    "SetupError",
    "poll_until",
    "random_suffix",
    "sleep_or_cancel",
    "workspace_name",
]
