"""Command descriptors produced from parsed command-line arguments."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from routerctl.service.errors import UsageError


class Action(Enum):
    """Actions understood by the controller."""

    INSTALL = "install"
    UNINSTALL = "uninstall"
    ENABLE = "enable"
    DISABLE = "disable"
    START = "start"
    STOP = "stop"
    RESTART = "restart"
    STATUS = "status"
    HELP = "help"
    RENDER = "render"
    LOGS = "logs"

    @property
    def is_mutating(self) -> bool:
        """Whether the action changes the unit file or systemd state."""
        return self in MUTATING_ACTIONS


MUTATING_ACTIONS = frozenset(
    {
        Action.INSTALL,
        Action.UNINSTALL,
        Action.ENABLE,
        Action.DISABLE,
        Action.START,
        Action.STOP,
        Action.RESTART,
    }
)


class Flag(Enum):
    """Boolean command-line switches."""

    USER_MODE = "user"
    FORCE = "force"
    FOLLOW = "follow"


@dataclass(frozen=True)
class CommandDescriptor:
    """A validated request: one action plus its flags and path overrides."""

    action: Action
    flags: frozenset[Flag] = field(default_factory=frozenset)
    binary_path: Path | None = None
    config_path: Path | None = None
    working_directory: Path | None = None
    run_as: str | None = None
    log_lines: int = 50

    @property
    def user_mode(self) -> bool:
        return Flag.USER_MODE in self.flags

    @property
    def force(self) -> bool:
        return Flag.FORCE in self.flags

    @property
    def follow(self) -> bool:
        return Flag.FOLLOW in self.flags


def _absolute(option: str, value: Path | str | None) -> Path | None:
    if value is None:
        return None
    if "\n" in str(value) or "\r" in str(value):
        raise UsageError(f"{option} must not contain line breaks")
    path = Path(value).expanduser()
    if not path.is_absolute():
        raise UsageError(f"{option} must be an absolute path, got: {value}")
    return path


def build_command(
    action: Action | str,
    *,
    user: bool = False,
    force: bool = False,
    binary_path: Path | str | None = None,
    config_path: Path | str | None = None,
    working_directory: Path | str | None = None,
    run_as: str | None = None,
    follow: bool = False,
    lines: int = 50,
) -> CommandDescriptor:
    """Validate raw option values and build a CommandDescriptor.

    Args:
        action: Action enum member or its command-line name.
        user: Select the per-user scope.
        force: Skip the binary existence check on install.
        binary_path: Override for the worker binary.
        config_path: Override for the worker config file.
        working_directory: Override for the unit's working directory.
        run_as: Override for the account the worker runs as.
        follow: Keep streaming logs.
        lines: Number of historical log lines to show.

    Returns:
        Immutable CommandDescriptor.

    Raises:
        UsageError: If the action is unknown or an override is malformed.
    """
    if isinstance(action, str):
        try:
            action = Action(action)
        except ValueError:
            valid = ", ".join(a.value for a in Action)
            raise UsageError(
                f"Unknown action: {action!r} (expected one of: {valid})"
            ) from None

    if run_as is not None and not run_as.strip():
        raise UsageError("--run-as must not be empty")
    if run_as is not None and ("\n" in run_as or "\r" in run_as):
        raise UsageError("--run-as must not contain line breaks")
    if lines < 1:
        raise UsageError(f"--lines must be positive, got: {lines}")

    flags = set()
    if user:
        flags.add(Flag.USER_MODE)
    if force:
        flags.add(Flag.FORCE)
    if follow:
        flags.add(Flag.FOLLOW)

    return CommandDescriptor(
        action=action,
        flags=frozenset(flags),
        binary_path=_absolute("--binary", binary_path),
        config_path=_absolute("--config", config_path),
        working_directory=_absolute("--working-dir", working_directory),
        run_as=run_as.strip() if run_as else None,
        log_lines=lines,
    )
