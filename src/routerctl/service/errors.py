"""Error types raised by the service lifecycle controller.

Every failure surfaces at the CLI boundary as a single-line diagnostic and a
non-zero exit status. Nothing in this package retries.
"""

from typing import Any


class ServiceError(Exception):
    """Base exception for service management errors."""

    exit_code = 1

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class UsageError(ServiceError):
    """Malformed or unsupported command."""

    exit_code = 2


class PrivilegeError(ServiceError):
    """A mutating system-wide action was requested without root."""


class FilesystemError(ServiceError):
    """The unit file could not be written or removed."""


class InitSubsystemError(ServiceError):
    """systemd is unavailable or rejected a control call."""


class ServiceNotInstalledError(InitSubsystemError):
    """The action needs an installed unit but none exists."""


class RenderError(ServiceError):
    """A rendered unit is missing a required section or directive."""
