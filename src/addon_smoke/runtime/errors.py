"""Custom exceptions for addon-smoke runs."""

from __future__ import annotations


class AddonSmokeError(Exception):
    """Base exception for this package."""


class MissingDependencyError(AddonSmokeError):
    """Raised when an optional dependency is required but not installed."""


class SetupError(AddonSmokeError):
    """Raised before any resource is created: bad credentials, config or input."""


class CheckError(AddonSmokeError):
    """Raised when a check fails during creation or convergence."""


class PollError(AddonSmokeError):
    """Base exception for convergence waits."""

    def __init__(self, message: str, *, attempts: int = 0) -> None:
        self.attempts = attempts
        super().__init__(message)


class PollTimeoutError(PollError):
    """Raised when the condition was never observed within the timeout."""


class PollCancelledError(PollError):
    """Raised when the run was cancelled while waiting."""


class AggregatedError(AddonSmokeError):
    """Collects independent teardown failures without dropping any of them."""

    def __init__(self, errors: list[tuple[str, Exception]]) -> None:
        self.errors = list(errors)
        detail = "; ".join(f"{name}: {exc}" for name, exc in self.errors)
        count = len(self.errors)
        noun = "error" if count == 1 else "errors"
        super().__init__(f"{count} {noun} occurred: {detail}")

    def __len__(self) -> int:
        return len(self.errors)

    @property
    def exceptions(self) -> list[Exception]:
        return [exc for _, exc in self.errors]
