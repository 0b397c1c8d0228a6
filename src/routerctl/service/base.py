"""Abstract interface to the host init system."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ServiceState(Enum):
    """Registration state of the unit as reported by the init system."""

    ABSENT = "absent"
    INSTALLED_DISABLED = "installed-disabled"
    INSTALLED_ENABLED = "installed-enabled"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"

    @property
    def installed(self) -> bool:
        return self is not ServiceState.ABSENT


@dataclass
class ServiceStatus:
    """Service status information."""

    state: ServiceState
    unit_path: Path
    enabled: bool = False
    pid: int | None = None
    active_state: str | None = None
    sub_state: str | None = None
    message: str | None = None

    @property
    def running(self) -> bool:
        return self.state is ServiceState.RUNNING


class InitSystem(ABC):
    """Control interface to the init system for one scope.

    Implementations raise InitSubsystemError when a call fails. They never
    cache state: every query goes to the init system.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Init system name (e.g., 'systemd')."""
        ...

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Check if the init system can be driven from this process."""
        ...

    @abstractmethod
    def version(self) -> str | None:
        """Return the init system version, or None if unavailable."""
        ...

    @abstractmethod
    def reload(self) -> None:
        """Make the init system re-read unit files."""
        ...

    @abstractmethod
    def enable(self, unit: str) -> None:
        """Register the unit for auto-start."""
        ...

    @abstractmethod
    def disable(self, unit: str) -> None:
        """Remove the unit's auto-start registration."""
        ...

    @abstractmethod
    def start(self, unit: str) -> None:
        """Start the unit."""
        ...

    @abstractmethod
    def stop(self, unit: str) -> None:
        """Stop the unit."""
        ...

    @abstractmethod
    def status(self, unit: str, unit_path: Path) -> ServiceStatus:
        """Query the unit's current registration state.

        Args:
            unit: Unit name (e.g., 'vllm-router.service').
            unit_path: Where the unit file is expected on disk.
        """
        ...

    @abstractmethod
    def log_command(self, unit: str, lines: int, follow: bool) -> list[str]:
        """Build the command that shows the unit's logs."""
        ...
