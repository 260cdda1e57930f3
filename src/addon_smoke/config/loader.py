"""Configuration loader with hierarchical merge, env overrides and validation."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from addon_smoke.config.errors import (
    ConfigFileNotFoundError,
    ConfigValidationError,
)
from addon_smoke.config.models import AppSettings
from addon_smoke.config.placeholders import resolve_placeholders

DEFAULT_CONFIG_DIR = Path("config")
DEFAULT_BASE_FILE = "appsettings.json"
ENV_VAR_NAME = "ADDON_SMOKE_ENV"

# Environment variable -> settings paths it overrides. Earlier entries win when
# two variables target the same path (AWS_DEFAULT_REGION over AWS_REGION).
ENV_OVERRIDES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("CLUSTER_NAME", ("run.cluster_name",)),
    ("CHATWORK_API_TOKEN", ("notification.chatwork_api_token",)),
    ("CHATWORK_ROOM_ID", ("notification.chatwork_room_id",)),
    ("CHATWORK_SITE", ("notification.chatwork_site",)),
    ("CERT_NAME", ("cert_manager.cert_name",)),
    (
        "RESOURCE_NAME",
        (
            "cluster_autoscaler.resource_name",
            "ingress.resource_name",
            "fluent.resource_name",
        ),
    ),
    ("NODE_LABEL_KEY", ("cluster_autoscaler.node_label_key",)),
    ("NODE_LABEL_VALUE", ("cluster_autoscaler.node_label_value",)),
    ("EXTERNAL_HOSTNAME", ("ingress.external_hostname",)),
    ("INGRESS_CLASS_NAME", ("ingress.ingress_class_name",)),
    ("LOG_BUCKET_NAME", ("fluent.log_bucket_name",)),
    ("LOG_PATH", ("fluent.log_path",)),
    ("ENV", ("fluent.env",)),
    ("RESOURCE_NAMESPACE", ("fluent.resource_namespace",)),
    ("FLUENT_REPLICA_RATIO", ("fluent.replica_ratio",)),
    ("AWS_DEFAULT_REGION", ("fluent.aws_region",)),
    ("AWS_REGION", ("fluent.aws_region",)),
    ("DD_API_KEY", ("datadog.api_key",)),
    ("DD_APP_KEY", ("datadog.app_key",)),
    ("DD_SITE", ("datadog.site",)),
    ("QUERY_METRICS", ("datadog.query",)),
    ("DD_WAIT_SECONDS", ("datadog.wait_seconds",)),
)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries. Override values take precedence.

    Args:
        base: Base dictionary.
        override: Override dictionary (values take precedence).

    Returns:
        New merged dictionary.
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any]:
    """Load and parse a JSON configuration file.

    Raises:
        ConfigFileNotFoundError: If the file does not exist.
    """
    if not path.exists():
        raise ConfigFileNotFoundError(str(path))

    with path.open(encoding="utf-8") as f:
        return json.load(f)


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Nested override dictionary built from the well-known variables.

    Unset and empty variables are ignored so they never clear a file value.
    """
    overrides: dict[str, Any] = {}
    claimed: set[str] = set()

    for variable, paths in ENV_OVERRIDES:
        value = environ.get(variable, "")
        if value == "":
            continue
        for dotted in paths:
            if dotted in claimed:
                continue
            claimed.add(dotted)
            section, _, key = dotted.partition(".")
            overrides.setdefault(section, {})[key] = value

    return overrides


def load_config(
    *,
    config_dir: Path | str | None = None,
    env: str | None = None,
    environ: Mapping[str, str] | None = None,
    strict_placeholders: bool = True,
) -> AppSettings:
    """Load application configuration with hierarchical merging.

    Sources, later ones overriding earlier ones:
    1. ``<config_dir>/appsettings.json`` (optional)
    2. ``<config_dir>/appsettings.<environment>.json`` (optional)
    3. ``${ENV_VAR}`` placeholder resolution in file values
    4. well-known environment variables (``ENV_OVERRIDES``)

    Args:
        config_dir: Directory containing configuration files. Defaults to
            ``config`` when it exists. An explicit directory must exist.
        env: Environment name. Defaults to ``ADDON_SMOKE_ENV``.
        environ: Variables to read. Defaults to ``os.environ``.
        strict_placeholders: If True, raise error for unresolved placeholders.

    Raises:
        ConfigFileNotFoundError: If an explicit ``config_dir`` does not exist.
        ConfigValidationError: If configuration validation fails.
        PlaceholderResolutionError: If strict_placeholders=True and a placeholder
            cannot be resolved.
    """
    if environ is None:
        environ = os.environ

    if config_dir is None:
        directory = DEFAULT_CONFIG_DIR
    else:
        directory = Path(config_dir)
        if not directory.is_dir():
            raise ConfigFileNotFoundError(str(directory))

    if env is None:
        env = environ.get(ENV_VAR_NAME) or None

    config: dict[str, Any] = {}
    base_path = directory / DEFAULT_BASE_FILE
    if base_path.exists():
        config = load_json_file(base_path)

    if env is not None:
        env_path = directory / f"appsettings.{env}.json"
        if env_path.exists():
            config = deep_merge(config, load_json_file(env_path))

    config = resolve_placeholders(config, strict=strict_placeholders, environ=environ)
    config = deep_merge(config, env_overrides(environ))

    try:
        return AppSettings.model_validate(config)
    except ValidationError as e:
        errors = [
            {"loc": " -> ".join(str(loc) for loc in err["loc"]), "msg": err["msg"]}
            for err in e.errors()
        ]
        raise ConfigValidationError(errors) from e
