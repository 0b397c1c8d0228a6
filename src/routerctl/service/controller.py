"""Service lifecycle controller.

Turns a command descriptor into idempotent operations against systemd and
the unit directory. Every action re-captures the caller's identity,
re-resolves the scope and re-checks privilege before doing anything else.

Uninstall is best effort on the systemd side: stop/disable/reload failures
are logged as warnings and reported in the result, but never block removal
of the unit file.
"""

import logging
import os
import subprocess
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from routerctl.config.models import RouterctlSettings
from routerctl.service.base import InitSystem, ServiceState, ServiceStatus
from routerctl.service.command import Action, CommandDescriptor
from routerctl.service.errors import (
    FilesystemError,
    InitSubsystemError,
    ServiceNotInstalledError,
    UsageError,
)
from routerctl.service.scope import (
    Identity,
    OperationScope,
    check_privilege,
    current_identity,
    resolve_scope,
)
from routerctl.service.systemd import SystemdInitSystem
from routerctl.service.unit import (
    UNIT_TEMPLATE,
    build_descriptor,
    render_unit,
    resolve_parameters,
)

logger = logging.getLogger(__name__)

UNIT_FILE_MODE = 0o644


@dataclass
class ActionResult:
    """Outcome of a controller action."""

    action: Action
    scope: OperationScope
    changed: bool
    message: str
    status: ServiceStatus | None = None
    warnings: list[str] = field(default_factory=list)
    unit_text: str | None = None
    init_version: str | None = None


@dataclass(frozen=True)
class _Invocation:
    command: CommandDescriptor
    scope: OperationScope
    init: InitSystem

    @property
    def unit(self) -> str:
        return self.scope.unit_name

    @property
    def unit_path(self) -> Path:
        return self.scope.unit_path


def write_unit_file(path: Path, content: str, mode: int = UNIT_FILE_MODE) -> None:
    """Atomically replace ``path`` with ``content``.

    The content goes to a temporary file in the same directory which is
    renamed over the target, so readers never see a partial unit.

    Raises:
        FilesystemError: If the directory or file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise FilesystemError(
            f"Cannot write unit file {path}: {e.strerror or e}",
            {"path": str(path)},
        ) from e


def remove_unit_file(path: Path) -> None:
    """Remove a unit file if present.

    Raises:
        FilesystemError: If the file exists but cannot be removed.
    """
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        raise FilesystemError(
            f"Cannot remove unit file {path}: {e.strerror or e}",
            {"path": str(path)},
        ) from e


class ServiceController:
    """Dispatches service actions for one command invocation.

    Example:
        controller = ServiceController(load_settings())
        result = controller.run(build_command("install", user=True))
    """

    def __init__(
        self,
        settings: RouterctlSettings,
        identity_provider: Callable[[], Identity] = current_identity,
        init_factory: Callable[
            [OperationScope], InitSystem
        ] = SystemdInitSystem.for_scope,
    ):
        """Initialize the controller.

        Args:
            settings: Loaded routerctl settings.
            identity_provider: Returns the caller's identity; called per action.
            init_factory: Builds the init system client for a scope.
        """
        self._settings = settings
        self._identity_provider = identity_provider
        self._init_factory = init_factory
        self._handlers: dict[Action, Callable[[_Invocation], ActionResult]] = {
            Action.INSTALL: self._install,
            Action.UNINSTALL: self._uninstall,
            Action.ENABLE: self._enable,
            Action.DISABLE: self._disable,
            Action.START: self._start,
            Action.STOP: self._stop,
            Action.RESTART: self._restart,
            Action.STATUS: self._status,
            Action.RENDER: self._render,
            Action.LOGS: self._logs,
        }

    def run(self, command: CommandDescriptor) -> ActionResult:
        """Execute a command.

        Raises:
            UsageError: If the action has no controller handler.
            PrivilegeError: Before any side effect, if root is required.
            InitSubsystemError: If systemd is unavailable or rejects a call.
            FilesystemError: If the unit file cannot be written or removed.
            RenderError: If the unit template produces an invalid unit.
        """
        handler = self._handlers.get(command.action)
        if handler is None:
            raise UsageError(
                f"Action {command.action.value!r} is not a service action"
            )

        scope = resolve_scope(command, self._identity_provider(), self._settings)
        check_privilege(scope)

        init = self._init_factory(scope)
        if command.action.is_mutating and not init.is_available:
            message = f"{init.name} is not available for the {scope.mode.value} scope"
            if not self._runs_without_manager(command.action, scope):
                raise InitSubsystemError(message)
            logger.warning("%s; continuing %s", message, command.action.value)

        logger.debug(
            "Running %s for %s (%s scope)",
            command.action.value,
            scope.unit_name,
            scope.mode.value,
        )
        return handler(_Invocation(command=command, scope=scope, init=init))

    @staticmethod
    def _runs_without_manager(action: Action, scope: OperationScope) -> bool:
        # Uninstall removes the file even when systemd cannot be reached;
        # stop/disable of an absent unit are no-ops
        if action is Action.UNINSTALL:
            return True
        return action in (Action.STOP, Action.DISABLE) and not scope.unit_path.exists()

    def _result(
        self, inv: _Invocation, changed: bool, message: str, **kwargs
    ) -> ActionResult:
        return ActionResult(
            action=inv.command.action,
            scope=inv.scope,
            changed=changed,
            message=message,
            **kwargs,
        )

    def _require_installed(self, inv: _Invocation) -> ServiceStatus:
        status = inv.init.status(inv.unit, inv.unit_path)
        if status.state is ServiceState.ABSENT:
            flag = " --user" if inv.command.user_mode else ""
            raise ServiceNotInstalledError(
                f"{inv.unit} is not installed at {inv.unit_path}. "
                f"Run 'routerctl install{flag}' first."
            )
        return status

    def _load_template(self) -> str:
        template_path = self._settings.template_path
        if template_path is None:
            return UNIT_TEMPLATE
        try:
            return template_path.read_text(encoding="utf-8")
        except OSError as e:
            raise FilesystemError(
                f"Cannot read unit template {template_path}: {e.strerror or e}"
            ) from e

    def _render_for(self, inv: _Invocation) -> str:
        params = resolve_parameters(inv.command, inv.scope, self._settings)
        descriptor = build_descriptor(inv.scope, params, self._settings)
        return render_unit(descriptor, self._load_template())

    def _install(self, inv: _Invocation) -> ActionResult:
        params = resolve_parameters(inv.command, inv.scope, self._settings)
        binary = params.binary_path
        executable = binary.is_file() and os.access(binary, os.X_OK)
        if not inv.command.force and not executable:
            raise FilesystemError(
                f"Worker binary not found or not executable: {binary}. "
                "Pass --binary to point at it, or --force to install anyway."
            )

        content = self._render_for(inv)

        previous = None
        if inv.unit_path.exists():
            try:
                previous = inv.unit_path.read_text(encoding="utf-8")
            except OSError as e:
                raise FilesystemError(
                    f"Cannot read existing unit file {inv.unit_path}: {e.strerror or e}"
                ) from e

        write_unit_file(inv.unit_path, content)
        logger.info("Wrote %s", inv.unit_path)
        inv.init.reload()

        changed = previous != content
        if previous is None:
            message = f"Installed {inv.unit} at {inv.unit_path}"
        elif changed:
            message = f"Updated {inv.unit} at {inv.unit_path}"
        else:
            message = f"{inv.unit} is already up to date"
        return self._result(inv, changed, message, unit_text=content)

    def _uninstall(self, inv: _Invocation) -> ActionResult:
        warnings: list[str] = []

        def best_effort(label: str, call: Callable[..., None], *args: str) -> None:
            try:
                call(*args)
            except InitSubsystemError as e:
                logger.warning("Failed to %s %s: %s", label, inv.unit, e.message)
                warnings.append(f"{label} failed: {e.message}")

        status: ServiceStatus | None
        try:
            status = inv.init.status(inv.unit, inv.unit_path)
        except InitSubsystemError as e:
            logger.warning("Could not query %s before uninstall: %s", inv.unit, e.message)
            warnings.append(f"status query failed: {e.message}")
            status = None

        if status is not None and status.state is ServiceState.ABSENT:
            return self._result(inv, False, f"{inv.unit} is not installed")

        if status is None or status.running:
            best_effort("stop", inv.init.stop, inv.unit)
        if status is None or status.enabled:
            best_effort("disable", inv.init.disable, inv.unit)

        remove_unit_file(inv.unit_path)
        logger.info("Removed %s", inv.unit_path)
        best_effort("reload", inv.init.reload)

        return self._result(
            inv, True, f"Uninstalled {inv.unit}", warnings=warnings
        )

    def _enable(self, inv: _Invocation) -> ActionResult:
        status = self._require_installed(inv)
        if status.enabled:
            return self._result(inv, False, f"{inv.unit} is already enabled")
        inv.init.enable(inv.unit)
        logger.info("Enabled %s", inv.unit)
        return self._result(inv, True, f"Enabled {inv.unit}")

    def _disable(self, inv: _Invocation) -> ActionResult:
        status = inv.init.status(inv.unit, inv.unit_path)
        if not status.enabled:
            return self._result(inv, False, f"{inv.unit} is already disabled")
        inv.init.disable(inv.unit)
        logger.info("Disabled %s", inv.unit)
        return self._result(inv, True, f"Disabled {inv.unit}")

    def _start(self, inv: _Invocation) -> ActionResult:
        status = self._require_installed(inv)
        if status.running:
            return self._result(inv, False, f"{inv.unit} is already running")
        inv.init.start(inv.unit)
        logger.info("Started %s", inv.unit)
        return self._result(inv, True, f"Started {inv.unit}")

    def _stop(self, inv: _Invocation) -> ActionResult:
        status = inv.init.status(inv.unit, inv.unit_path)
        if not status.running:
            return self._result(inv, False, f"{inv.unit} is already stopped")
        inv.init.stop(inv.unit)
        logger.info("Stopped %s", inv.unit)
        return self._result(inv, True, f"Stopped {inv.unit}")

    def _restart(self, inv: _Invocation) -> ActionResult:
        status = self._require_installed(inv)
        # A failed stop propagates and start is never attempted
        if status.running:
            inv.init.stop(inv.unit)
            logger.info("Stopped %s", inv.unit)
        inv.init.start(inv.unit)
        logger.info("Started %s", inv.unit)
        return self._result(inv, True, f"Restarted {inv.unit}")

    def _status(self, inv: _Invocation) -> ActionResult:
        status = inv.init.status(inv.unit, inv.unit_path)
        return self._result(
            inv,
            False,
            f"{inv.unit} is {status.state.value}",
            status=status,
            init_version=inv.init.version(),
        )

    def _render(self, inv: _Invocation) -> ActionResult:
        content = self._render_for(inv)
        return self._result(inv, False, f"Rendered {inv.unit}", unit_text=content)

    def _logs(self, inv: _Invocation) -> ActionResult:
        cmd = inv.init.log_command(inv.unit, inv.command.log_lines, inv.command.follow)
        logger.debug("Running %s", " ".join(cmd))
        try:
            returncode = subprocess.run(cmd, check=False).returncode
        except FileNotFoundError as e:
            raise InitSubsystemError(f"{cmd[0]} not found", {"command": cmd}) from e
        if returncode != 0:
            raise InitSubsystemError(
                f"{' '.join(cmd)} exited with status {returncode}",
                {"returncode": returncode},
            )
        return self._result(inv, False, f"Showed logs for {inv.unit}")
