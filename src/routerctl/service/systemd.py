"""systemd backend driven through systemctl and journalctl."""

import logging
import shutil
import subprocess
from pathlib import Path

from routerctl.service.base import InitSystem, ServiceState, ServiceStatus
from routerctl.service.errors import InitSubsystemError
from routerctl.service.scope import OperationScope, ScopeMode

logger = logging.getLogger(__name__)

SHOW_PROPERTIES = (
    "ActiveState",
    "SubState",
    "UnitFileState",
    "MainPID",
    "ExecMainStartTimestampMonotonic",
)

# Map systemd ActiveState values to our states
ACTIVE_STATES = {
    "active": ServiceState.RUNNING,
    "activating": ServiceState.RUNNING,
    "reloading": ServiceState.RUNNING,
    "failed": ServiceState.FAILED,
}

ENABLED_STATES = {"enabled", "enabled-runtime"}


def parse_properties(output: str) -> dict[str, str]:
    """Parse ``systemctl show`` Key=Value output."""
    props = {}
    for line in output.strip().splitlines():
        if "=" in line:
            key, value = line.split("=", 1)
            props[key] = value
    return props


def state_from_properties(props: dict[str, str]) -> tuple[ServiceState, bool]:
    """Derive the registration state and enablement from unit properties."""
    enabled = props.get("UnitFileState", "") in ENABLED_STATES
    active_state = props.get("ActiveState", "inactive")

    if active_state in ACTIVE_STATES:
        return ACTIVE_STATES[active_state], enabled

    # Inactive: a unit that has run since it was loaded counts as stopped
    started_at = props.get("ExecMainStartTimestampMonotonic", "0")
    if started_at not in ("", "0"):
        return ServiceState.STOPPED, enabled
    if enabled:
        return ServiceState.INSTALLED_ENABLED, enabled
    return ServiceState.INSTALLED_DISABLED, enabled


class SystemdInitSystem(InitSystem):
    """systemd manager for one scope.

    Uses ``systemctl`` for system units and ``systemctl --user`` for
    per-user units.
    """

    def __init__(self, user_mode: bool = False):
        self._user_mode = user_mode

    @classmethod
    def for_scope(cls, scope: OperationScope) -> "SystemdInitSystem":
        return cls(user_mode=scope.mode is ScopeMode.USER)

    @property
    def name(self) -> str:
        return "systemd"

    @property
    def _manager_args(self) -> list[str]:
        return ["--user"] if self._user_mode else []

    @property
    def is_available(self) -> bool:
        """Check that systemctl exists and the manager answers."""
        if shutil.which("systemctl") is None:
            return False
        try:
            result = subprocess.run(
                ["systemctl", *self._manager_args, "show-environment"],
                capture_output=True,
                timeout=5,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired, OSError):
            return False
        return result.returncode == 0

    def version(self) -> str | None:
        try:
            result = subprocess.run(
                ["systemctl", "--version"],
                capture_output=True,
                text=True,
            )
        except (FileNotFoundError, OSError):
            return None
        if result.returncode != 0 or not result.stdout:
            return None
        # First line looks like: "systemd 255 (255.4-1ubuntu8)"
        parts = result.stdout.splitlines()[0].split()
        return parts[1] if len(parts) > 1 else None

    def _run_systemctl(self, *args: str) -> subprocess.CompletedProcess[str]:
        """Run a systemctl command for this manager.

        Raises:
            InitSubsystemError: If systemctl is missing or exits non-zero.
        """
        cmd = ["systemctl", *self._manager_args, *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise InitSubsystemError(
                "systemctl not found - systemd may not be available",
                {"command": cmd},
            ) from e

        if result.returncode != 0:
            stderr = result.stderr.strip()
            raise InitSubsystemError(
                f"{' '.join(cmd)} failed: {stderr or f'exit status {result.returncode}'}",
                {"returncode": result.returncode, "stderr": stderr},
            )
        return result

    def reload(self) -> None:
        self._run_systemctl("daemon-reload")

    def enable(self, unit: str) -> None:
        self._run_systemctl("enable", unit)

    def disable(self, unit: str) -> None:
        self._run_systemctl("disable", unit)

    def start(self, unit: str) -> None:
        self._run_systemctl("start", unit)

    def stop(self, unit: str) -> None:
        self._run_systemctl("stop", unit)

    def status(self, unit: str, unit_path: Path) -> ServiceStatus:
        if not unit_path.exists():
            return ServiceStatus(state=ServiceState.ABSENT, unit_path=unit_path)

        result = self._run_systemctl(
            "show", unit, f"--property={','.join(SHOW_PROPERTIES)}"
        )
        props = parse_properties(result.stdout)
        state, enabled = state_from_properties(props)

        pid_str = props.get("MainPID", "0")
        pid = int(pid_str) if pid_str.isdigit() and pid_str != "0" else None

        return ServiceStatus(
            state=state,
            unit_path=unit_path,
            enabled=enabled,
            pid=pid,
            active_state=props.get("ActiveState"),
            sub_state=props.get("SubState"),
        )

    def log_command(self, unit: str, lines: int = 50, follow: bool = False) -> list[str]:
        cmd = ["journalctl", *self._manager_args, "-u", unit, "-n", str(lines)]
        if follow:
            cmd.append("-f")
        return cmd
