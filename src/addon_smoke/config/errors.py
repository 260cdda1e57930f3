"""Configuration-specific exceptions."""

from __future__ import annotations

from addon_smoke.runtime.errors import AddonSmokeError


class ConfigError(AddonSmokeError):
    """Base exception for configuration errors. The CLI exits with status 2."""


class ConfigFileNotFoundError(ConfigError):
    """Raised when an explicitly requested configuration file is missing."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Configuration file not found: {path}")


class ConfigValidationError(ConfigError):
    """Raised when the merged configuration does not validate.

    Every failing field is listed, not only the first one.
    """

    def __init__(self, errors: list[dict[str, str]]) -> None:
        self.errors = errors
        lines = [
            f"  - {err.get('loc', 'unknown')}: {err.get('msg', 'validation error')}"
            for err in errors
        ]
        super().__init__("Configuration validation failed:\n" + "\n".join(lines))


class PlaceholderResolutionError(ConfigError):
    """Raised when a ${VAR} placeholder names an unset or empty environment variable."""

    def __init__(self, placeholder: str, key_path: str) -> None:
        self.placeholder = placeholder
        self.key_path = key_path
        super().__init__(f"Cannot resolve placeholder '{placeholder}' at '{key_path}'")
