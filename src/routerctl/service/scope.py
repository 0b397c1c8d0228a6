"""Operation scope resolution: system-wide vs per-user installs."""

import os
import pwd
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from routerctl.config.models import RouterctlSettings
from routerctl.config.paths import get_user_unit_dir
from routerctl.service.command import CommandDescriptor
from routerctl.service.errors import PrivilegeError


class ScopeMode(Enum):
    """Where the unit is installed and which systemd manager owns it."""

    SYSTEM = "system"
    USER = "user"


@dataclass(frozen=True)
class Identity:
    """Snapshot of the invoking process's identity and environment."""

    uid: int
    username: str
    home: Path
    cwd: Path
    xdg_config_home: Path | None = None

    @property
    def is_root(self) -> bool:
        return self.uid == 0


def current_identity() -> Identity:
    """Capture the effective identity of the running process.

    Called once per command; results are never cached.
    """
    uid = os.geteuid()
    try:
        entry = pwd.getpwuid(uid)
        username, home = entry.pw_name, Path(entry.pw_dir)
    except KeyError:
        # Containers can run with a uid that has no passwd entry
        username = os.environ.get("USER", str(uid))
        home = Path.home()

    xdg = os.environ.get("XDG_CONFIG_HOME")
    return Identity(
        uid=uid,
        username=username,
        home=home,
        cwd=Path.cwd(),
        xdg_config_home=Path(xdg) if xdg else None,
    )


@dataclass(frozen=True)
class OperationScope:
    """Resolved scope for a single command invocation."""

    mode: ScopeMode
    unit_directory: Path
    service_name: str
    requires_privilege: bool
    identity: Identity

    @property
    def unit_name(self) -> str:
        return f"{self.service_name}.service"

    @property
    def unit_path(self) -> Path:
        return self.unit_directory / self.unit_name

    @property
    def systemctl_args(self) -> list[str]:
        """Manager selection arguments for systemctl/journalctl."""
        return ["--user"] if self.mode is ScopeMode.USER else []

    @property
    def wanted_by(self) -> str:
        return "default.target" if self.mode is ScopeMode.USER else "multi-user.target"


def resolve_scope(
    command: CommandDescriptor,
    identity: Identity,
    settings: RouterctlSettings,
) -> OperationScope:
    """Derive the operation scope for a command.

    ``--user`` always selects the user scope regardless of privilege.
    Without it the system scope is used, which needs root for any
    mutating action.

    Raises:
        PrivilegeError: If a mutating user-scope action would write outside
            the invoking account's home.
    """
    if command.user_mode:
        unit_dir = get_user_unit_dir(identity.home, identity.xdg_config_home)
        inside_home = unit_dir.resolve().is_relative_to(identity.home.resolve())
        if command.action.is_mutating and not inside_home:
            raise PrivilegeError(
                f"User unit directory {unit_dir} is outside {identity.home}; "
                "refusing to manage units outside the invoking account"
            )
        return OperationScope(
            mode=ScopeMode.USER,
            unit_directory=unit_dir,
            service_name=settings.service.name,
            requires_privilege=False,
            identity=identity,
        )

    return OperationScope(
        mode=ScopeMode.SYSTEM,
        unit_directory=settings.system_unit_dir,
        service_name=settings.service.name,
        requires_privilege=command.action.is_mutating,
        identity=identity,
    )


def check_privilege(scope: OperationScope) -> None:
    """Fail fast when the scope needs root and the caller is not root.

    Raises:
        PrivilegeError: With a remediation hint.
    """
    if scope.requires_privilege and not scope.identity.is_root:
        raise PrivilegeError(
            f"Managing the system-wide {scope.unit_name} requires root. "
            "Re-run with sudo, or pass --user to manage a per-user service."
        )
