"""Unit descriptor construction and rendering.

Everything here is pure: no function reads or writes the filesystem or
talks to systemd. The controller owns all I/O.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path

from routerctl.config.models import RouterctlSettings
from routerctl.config.paths import get_system_worker_config, get_user_worker_config
from routerctl.service.command import CommandDescriptor
from routerctl.service.errors import RenderError
from routerctl.service.scope import OperationScope, ScopeMode

UNIT_TEMPLATE = """\
[Unit]
Description={description}
{documentation}After=network-online.target
Wants=network-online.target

[Service]
Type={type}
ExecStart={exec_start}
WorkingDirectory={working_directory}
User={user}
Restart={restart}
RestartSec={restart_sec}
LimitNOFILE={limit_nofile}

# Security hardening
NoNewPrivileges={no_new_privileges}
PrivateTmp={private_tmp}
{environment}
# Logging
StandardOutput={stdout}
StandardError={stderr}
SyslogIdentifier={identifier}

[Install]
WantedBy={wanted_by}
"""

REQUIRED_SECTIONS = ["[Unit]", "[Service]", "[Install]"]

# Directives every rendered unit must carry, with the value they must match
REQUIRED_DIRECTIVES: dict[str, re.Pattern[str]] = {
    "Description": re.compile(r".+"),
    "Type": re.compile(r"\S+"),
    "ExecStart": re.compile(r"\"?/.+"),
    "WorkingDirectory": re.compile(r"\"?/.*"),
    "User": re.compile(r"\S+"),
    "Restart": re.compile(r"always"),
    "RestartSec": re.compile(r"[1-9]\d*"),
    "LimitNOFILE": re.compile(r"[1-9]\d*"),
    "NoNewPrivileges": re.compile(r"true"),
    "PrivateTmp": re.compile(r"true"),
    "StandardOutput": re.compile(r"journal"),
    "StandardError": re.compile(r"journal"),
    "SyslogIdentifier": re.compile(r"\S+"),
    "WantedBy": re.compile(r"\S+"),
}


@dataclass(frozen=True)
class RestartPolicy:
    policy: str = "always"
    restart_sec: int = 10


@dataclass(frozen=True)
class ResourceLimits:
    open_files: int = 65536


@dataclass(frozen=True)
class SecurityDirectives:
    no_new_privileges: bool = True
    private_tmp: bool = True


@dataclass(frozen=True)
class LoggingSink:
    identifier: str
    stdout: str = "journal"
    stderr: str = "journal"


@dataclass(frozen=True)
class RenderParameters:
    """Runtime inputs to the renderer after overrides are applied."""

    binary_path: Path
    working_directory: Path
    config_path: Path
    run_as: str


@dataclass(frozen=True)
class UnitDescriptor:
    """Everything needed to write a unit file for the worker."""

    description: str
    service_type: str
    binary_path: Path
    args: tuple[str, ...]
    config_path: Path
    working_directory: Path
    run_as: str
    wanted_by: str
    logging: LoggingSink
    restart: RestartPolicy = field(default_factory=RestartPolicy)
    limits: ResourceLimits = field(default_factory=ResourceLimits)
    security: SecurityDirectives = field(default_factory=SecurityDirectives)
    documentation: str | None = None
    environment: tuple[tuple[str, str], ...] = ()

    @property
    def exec_start(self) -> str:
        argv = [str(self.binary_path), *self.args, "--config", str(self.config_path)]
        return " ".join(quote_arg(arg) for arg in argv)


def quote_arg(value: str) -> str:
    """Quote a value for a systemd command line or assignment.

    ``%`` is escaped so systemd does not treat it as a specifier.
    """
    value = value.replace("%", "%%")
    if value and not re.search(r"[\s\"'\\]", value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def resolve_parameters(
    command: CommandDescriptor,
    scope: OperationScope,
    settings: RouterctlSettings,
) -> RenderParameters:
    """Apply command overrides, then settings, then scope defaults."""
    service = settings.service
    identity = scope.identity

    if scope.mode is ScopeMode.USER:
        default_config = get_user_worker_config(identity.home, service.name)
        default_user = identity.username
    else:
        default_config = get_system_worker_config(service.name)
        default_user = service.system_user

    return RenderParameters(
        binary_path=command.binary_path or service.binary_path,
        working_directory=(
            command.working_directory or service.working_directory or identity.cwd
        ),
        config_path=command.config_path or service.config_path or default_config,
        run_as=command.run_as or default_user,
    )


def build_descriptor(
    scope: OperationScope,
    params: RenderParameters,
    settings: RouterctlSettings,
) -> UnitDescriptor:
    """Build the unit descriptor for a scope and resolved parameters."""
    service = settings.service
    return UnitDescriptor(
        description=service.description,
        documentation=service.documentation,
        service_type=service.type,
        binary_path=params.binary_path,
        args=tuple(service.args),
        config_path=params.config_path,
        working_directory=params.working_directory,
        run_as=params.run_as,
        wanted_by=scope.wanted_by,
        logging=LoggingSink(identifier=scope.service_name),
        restart=RestartPolicy(restart_sec=service.restart_sec),
        limits=ResourceLimits(open_files=service.limit_nofile),
        environment=tuple(sorted(service.environment.items())),
    )


def _bool(value: bool) -> str:
    return "true" if value else "false"


def render_unit(descriptor: UnitDescriptor, template: str = UNIT_TEMPLATE) -> str:
    """Serialize a descriptor into unit file text.

    Args:
        descriptor: The unit to render.
        template: ``str.format`` template using the built-in placeholders.

    Returns:
        Complete unit file content.

    Raises:
        RenderError: If the template is malformed or the result is missing
            a required section or directive.
    """
    documentation = (
        f"Documentation={descriptor.documentation}\n"
        if descriptor.documentation
        else ""
    )
    environment = "".join(
        f"Environment={quote_arg(f'{key}={value}')}\n"
        for key, value in descriptor.environment
    )

    try:
        content = template.format(
            description=descriptor.description,
            documentation=documentation,
            type=descriptor.service_type,
            exec_start=descriptor.exec_start,
            working_directory=quote_arg(str(descriptor.working_directory)),
            user=descriptor.run_as,
            restart=descriptor.restart.policy,
            restart_sec=descriptor.restart.restart_sec,
            limit_nofile=descriptor.limits.open_files,
            no_new_privileges=_bool(descriptor.security.no_new_privileges),
            private_tmp=_bool(descriptor.security.private_tmp),
            environment=environment,
            stdout=descriptor.logging.stdout,
            stderr=descriptor.logging.stderr,
            identifier=descriptor.logging.identifier,
            wanted_by=descriptor.wanted_by,
        )
    except (KeyError, IndexError, ValueError) as e:
        raise RenderError(f"Invalid unit template: {e}") from e

    verify_unit(content)
    return content


def verify_unit(content: str) -> None:
    """Check the structural contract systemd's parser relies on.

    Raises:
        RenderError: On the first violation found.
    """
    if not content.startswith("[Unit]"):
        raise RenderError("Unit file must begin with the [Unit] section")

    sections = [
        line.strip()
        for line in content.splitlines()
        if line.startswith("[") and line.strip().endswith("]")
    ]
    if sections != REQUIRED_SECTIONS:
        raise RenderError(
            f"Unit file must contain sections {REQUIRED_SECTIONS} in order, "
            f"got {sections}"
        )

    directives: dict[str, str] = {}
    for line in content.splitlines():
        if line.startswith(("#", ";", "[")) or "=" not in line:
            continue
        key, value = line.split("=", 1)
        directives.setdefault(key.strip(), value.strip())

    for key, pattern in REQUIRED_DIRECTIVES.items():
        if key not in directives:
            raise RenderError(f"Unit file is missing {key}=")
        if not pattern.fullmatch(directives[key]):
            raise RenderError(f"Unit file has invalid {key}={directives[key]}")
