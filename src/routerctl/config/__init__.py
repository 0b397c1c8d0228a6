"""Configuration module."""

from routerctl.config.loader import find_settings_file, load_settings
from routerctl.config.models import ConfigError, RouterctlSettings, ServiceSettings
from routerctl.config.paths import (
    get_routerctl_home,
    get_settings_path,
    get_user_unit_dir,
)

__all__ = [
    "ConfigError",
    "RouterctlSettings",
    "ServiceSettings",
    "find_settings_file",
    "get_routerctl_home",
    "get_settings_path",
    "get_user_unit_dir",
    "load_settings",
]
