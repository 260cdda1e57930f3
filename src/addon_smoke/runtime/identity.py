"""Per-run workspace names."""

from __future__ import annotations

import secrets
import string
from datetime import UTC, datetime

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def random_suffix(length: int = 5) -> str:
    """Return ``length`` random lowercase alphanumeric characters."""
    if length < 1:
        raise ValueError("length must be >= 1")
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def workspace_name(prefix: str, *, now: datetime | None = None, length: int = 5) -> str:
    """Build ``<prefix>-<YYYYMMDD>-<suffix>`` from the current UTC date.

    Two runs started on the same day by different operators still get distinct
    names without any shared allocator.
    """
    moment = datetime.now(UTC) if now is None else now.astimezone(UTC)
    return f"{prefix}-{moment:%Y%m%d}-{random_suffix(length)}"
