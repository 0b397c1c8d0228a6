"""Configuration models using Pydantic."""

import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from routerctl.config.paths import (
    DEFAULT_BINARY_PATH,
    SERVICE_NAME,
    SYSTEM_UNIT_DIR,
)

_UNIT_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.@-]*$")


class ConfigError(Exception):
    """Configuration error."""

    pass


def _check_single_line(value: str) -> None:
    if "\n" in value or "\r" in value:
        raise ValueError(f"value must be a single line, got: {value!r}")


class ServiceSettings(BaseModel):
    """Settings for the managed worker and its unit file.

    Worker paths left unset fall back to scope-specific defaults at
    render time.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = SERVICE_NAME
    description: str = "vLLM Router"
    documentation: str | None = "https://github.com/vllm-project/router"
    type: Literal["simple", "exec", "notify"] = "simple"
    binary_path: Path = DEFAULT_BINARY_PATH
    args: list[str] = []
    config_path: Path | None = None
    working_directory: Path | None = None
    # Service account for system-wide installs; user installs run as the caller
    system_user: str = SERVICE_NAME
    restart_sec: int = Field(default=10, gt=0)
    limit_nofile: int = Field(default=65536, gt=0)
    environment: dict[str, str] = {}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if v.endswith(".service"):
            v = v.removesuffix(".service")
        if not _UNIT_NAME_RE.match(v):
            raise ValueError(
                f"service.name must be a valid systemd unit name "
                f"(alphanumerics, '-', '_', '.', '@'), got: {v!r}"
            )
        return v

    @field_validator("binary_path", "config_path", "working_directory")
    @classmethod
    def validate_absolute(cls, v: Path | None) -> Path | None:
        if v is None:
            return v
        v = v.expanduser()
        if not v.is_absolute():
            raise ValueError(f"path must be absolute, got: {v}")
        _check_single_line(str(v))
        return v

    @field_validator("description", "documentation", "system_user", "args", "environment")
    @classmethod
    def validate_single_line(
        cls, v: str | list[str] | dict[str, str] | None
    ) -> str | list[str] | dict[str, str] | None:
        # Values are written verbatim into the unit file
        if isinstance(v, dict):
            values = [*v.keys(), *v.values()]
        elif isinstance(v, list):
            values = v
        else:
            values = [] if v is None else [v]
        for value in values:
            _check_single_line(value)
        return v


class RouterctlSettings(BaseModel):
    """Root settings model."""

    model_config = ConfigDict(extra="forbid")

    service: ServiceSettings = Field(default_factory=ServiceSettings)
    system_unit_dir: Path = SYSTEM_UNIT_DIR
    # Optional unit template using the same placeholders as the built-in one
    template_path: Path | None = None
