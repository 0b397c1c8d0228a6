"""systemd service management for the vLLM router.

Provides the lifecycle pipeline:
- Command descriptors built from CLI arguments
- Scope resolution (system-wide vs per-user) and privilege checks
- Unit file rendering from a template
- An idempotent controller driving systemctl

Example:
    from routerctl.service import ServiceController, build_command

    controller = ServiceController(settings)
    result = controller.run(build_command("install", user=True))
"""

from routerctl.service.base import InitSystem, ServiceState, ServiceStatus
from routerctl.service.command import Action, CommandDescriptor, Flag, build_command
from routerctl.service.controller import ActionResult, ServiceController
from routerctl.service.errors import (
    FilesystemError,
    InitSubsystemError,
    PrivilegeError,
    RenderError,
    ServiceError,
    ServiceNotInstalledError,
    UsageError,
)
from routerctl.service.scope import (
    Identity,
    OperationScope,
    ScopeMode,
    current_identity,
    resolve_scope,
)
from routerctl.service.unit import UnitDescriptor, render_unit

__all__ = [
    "Action",
    "ActionResult",
    "CommandDescriptor",
    "FilesystemError",
    "Flag",
    "Identity",
    "InitSubsystemError",
    "InitSystem",
    "OperationScope",
    "PrivilegeError",
    "RenderError",
    "ScopeMode",
    "ServiceController",
    "ServiceError",
    "ServiceNotInstalledError",
    "ServiceState",
    "ServiceStatus",
    "UnitDescriptor",
    "UsageError",
    "build_command",
    "current_identity",
    "render_unit",
    "resolve_scope",
]
