"""Centralized path defaults for routerctl.

The controller's own settings live under a single directory that can be
overridden with the ROUTERCTL_HOME environment variable. Unit directories
and worker paths depend on the operation scope.

Default locations:
- Settings: ~/.config/routerctl/config.toml, then /etc/routerctl/config.toml
- System units: /etc/systemd/system
- User units: $XDG_CONFIG_HOME/systemd/user (~/.config/systemd/user)
"""

import os
from pathlib import Path

ENV_VAR = "ROUTERCTL_HOME"

SERVICE_NAME = "vllm-router"

SYSTEM_UNIT_DIR = Path("/etc/systemd/system")
SYSTEM_SETTINGS_PATH = Path("/etc/routerctl/config.toml")
DEFAULT_BINARY_PATH = Path("/usr/local/bin/vllm-router")


def get_routerctl_home() -> Path:
    """Get the directory holding the controller's own settings.

    Resolution order:
    1. ROUTERCTL_HOME environment variable (if set)
    2. ~/.config/routerctl

    Returns:
        Path to the routerctl home directory.
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".config" / "routerctl"


def get_settings_path() -> Path:
    """Get the per-user settings file path."""
    return get_routerctl_home() / "config.toml"


def get_user_unit_dir(home: Path, xdg_config_home: Path | None = None) -> Path:
    """Get the systemd user unit directory for an account.

    Args:
        home: The account's home directory.
        xdg_config_home: Value of XDG_CONFIG_HOME, if set.
    """
    config_home = xdg_config_home or home / ".config"
    return config_home / "systemd" / "user"


def get_system_worker_config(service_name: str = SERVICE_NAME) -> Path:
    """Get the default worker config file for system-wide installs."""
    return Path("/etc") / service_name / "config.toml"


def get_user_worker_config(home: Path, service_name: str = SERVICE_NAME) -> Path:
    """Get the default worker config file for per-user installs."""
    return home / ".config" / service_name / "config.toml"
