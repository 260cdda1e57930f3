"""``${VAR}`` references in appsettings files, resolved from the environment.

An empty variable counts as unset, the same rule ``env_overrides`` applies to
the well-known variables, so ``DD_API_KEY=`` never blanks a file value.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from typing import Any

from addon_smoke.config.errors import PlaceholderResolutionError

PLACEHOLDER_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def resolve_placeholders(
    data: dict[str, Any],
    *,
    strict: bool = True,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return a copy of ``data`` with every ``${VAR}`` reference substituted.

    Mappings and lists are walked at any depth, including lists of mappings.

    Raises:
        PlaceholderResolutionError: ``strict`` is set and a referenced variable
            is unset or empty. The error names the settings path, for example
            ``fluent.log_bucket_name`` or ``items[1]``.
    """
    return _resolve(data, "", os.environ if environ is None else environ, strict)


def _resolve(node: Any, path: str, environ: Mapping[str, str], strict: bool) -> Any:
    if isinstance(node, dict):
        return {
            key: _resolve(value, f"{path}.{key}" if path else key, environ, strict)
            for key, value in node.items()
        }
    if isinstance(node, list):
        return [
            _resolve(item, f"{path}[{index}]", environ, strict)
            for index, item in enumerate(node)
        ]
    if isinstance(node, str):
        return _substitute(node, path, environ, strict)
    return node


def _substitute(text: str, path: str, environ: Mapping[str, str], strict: bool) -> str:
    def lookup(match: re.Match[str]) -> str:
        value = environ.get(match.group(1), "")
        if value:
            return value
        if strict:
            raise PlaceholderResolutionError(match.group(0), path)
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(lookup, text)
