"""Settings loading from TOML files and environment variables."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from routerctl.config.models import ConfigError, RouterctlSettings
from routerctl.config.paths import SYSTEM_SETTINGS_PATH, get_settings_path

logger = logging.getLogger(__name__)

# Environment variables that override [service] keys
ENV_OVERRIDES = {
    "ROUTERCTL_SERVICE_NAME": "name",
    "ROUTERCTL_BINARY": "binary_path",
}


def _get_default_settings_paths() -> list[Path]:
    """Get ordered list of default settings file locations."""
    return [
        Path("routerctl.toml"),  # Current directory
        get_settings_path(),  # ~/.config/routerctl/config.toml (or ROUTERCTL_HOME)
        SYSTEM_SETTINGS_PATH,  # System-wide
    ]


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply environment overrides on top of file values."""
    for env_var, key in ENV_OVERRIDES.items():
        if value := os.environ.get(env_var):
            raw.setdefault("service", {})[key] = value
    return raw


def find_settings_file(path: Path | None = None) -> Path | None:
    """Locate the settings file to load.

    Args:
        path: Explicit path. Must exist if given.

    Returns:
        Path to the settings file, or None if no default location exists.

    Raises:
        ConfigError: If an explicit path does not exist.
    """
    if path is not None:
        settings_path = Path(path).expanduser()
        if not settings_path.exists():
            raise ConfigError(f"Settings file not found: {settings_path}")
        return settings_path

    for default_path in _get_default_settings_paths():
        expanded = default_path.expanduser()
        if expanded.exists():
            return expanded
    return None


def load_settings(path: Path | None = None) -> RouterctlSettings:
    """Load settings from TOML, falling back to built-in defaults.

    Args:
        path: Explicit path to a settings file. If None, searches default
            locations and uses defaults when none exists.

    Returns:
        Validated RouterctlSettings instance.

    Raises:
        ConfigError: If the file is missing (explicit path), unreadable,
            not valid TOML, or fails validation.
    """
    settings_path = find_settings_file(path)

    raw: dict[str, Any] = {}
    if settings_path is not None:
        logger.debug("Loading settings from %s", settings_path)
        try:
            with settings_path.open("rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {settings_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read {settings_path}: {e}") from e

    raw = _apply_env_overrides(raw)

    try:
        return RouterctlSettings.model_validate(raw)
    except ValidationError as e:
        source = settings_path or "environment"
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ConfigError(
            f"Invalid settings ({source}): {location}: {first['msg']}"
        ) from e
