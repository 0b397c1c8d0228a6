"""Shared test fixtures and factories."""

from pathlib import Path

import pytest

from routerctl.config.models import RouterctlSettings, ServiceSettings
from routerctl.service.base import InitSystem, ServiceState, ServiceStatus
from routerctl.service.controller import ServiceController
from routerctl.service.errors import InitSubsystemError
from routerctl.service.scope import Identity

# =============================================================================
# Environment Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep the developer's environment out of settings resolution."""
    for var in (
        "ROUTERCTL_HOME",
        "ROUTERCTL_LOG_LEVEL",
        "ROUTERCTL_SERVICE_NAME",
        "ROUTERCTL_BINARY",
        "XDG_CONFIG_HOME",
    ):
        monkeypatch.delenv(var, raising=False)


# =============================================================================
# Fake Init System
# =============================================================================


class FakeInitSystem(InitSystem):
    """In-memory init system that records every control call.

    The unit counts as installed when its file exists on disk, mirroring
    how systemd only knows about units that were written and reloaded.
    """

    def __init__(self, available: bool = True, version: str | None = "255"):
        self.available = available
        self._version = version
        self.enabled = False
        self.active = False
        self.calls: list[tuple[str, ...]] = []
        self.failures: dict[str, InitSubsystemError] = {}

    @property
    def name(self) -> str:
        return "fake"

    @property
    def is_available(self) -> bool:
        return self.available

    def version(self) -> str | None:
        return self._version

    def _call(self, op: str, *args: str) -> None:
        self.calls.append((op, *args))
        if op in self.failures:
            raise self.failures[op]

    def reload(self) -> None:
        self._call("reload")

    def enable(self, unit: str) -> None:
        self._call("enable", unit)
        self.enabled = True

    def disable(self, unit: str) -> None:
        self._call("disable", unit)
        self.enabled = False

    def start(self, unit: str) -> None:
        self._call("start", unit)
        self.active = True

    def stop(self, unit: str) -> None:
        self._call("stop", unit)
        self.active = False

    def status(self, unit: str, unit_path: Path) -> ServiceStatus:
        if "status" in self.failures:
            raise self.failures["status"]
        if not unit_path.exists():
            return ServiceStatus(state=ServiceState.ABSENT, unit_path=unit_path)
        if self.active:
            state = ServiceState.RUNNING
        elif self.enabled:
            state = ServiceState.INSTALLED_ENABLED
        else:
            state = ServiceState.INSTALLED_DISABLED
        return ServiceStatus(
            state=state,
            unit_path=unit_path,
            enabled=self.enabled,
            pid=4242 if self.active else None,
        )

    def log_command(self, unit: str, lines: int = 50, follow: bool = False) -> list[str]:
        cmd = ["journalctl", "-u", unit, "-n", str(lines)]
        if follow:
            cmd.append("-f")
        return cmd

    @property
    def operations(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def fake_init() -> FakeInitSystem:
    """Available init system with no unit loaded."""
    return FakeInitSystem()


# =============================================================================
# Identity Fixtures
# =============================================================================


@pytest.fixture
def user_identity(tmp_path: Path) -> Identity:
    """Unprivileged caller with a home under tmp_path."""
    home = tmp_path / "home" / "alice"
    cwd = tmp_path / "work"
    home.mkdir(parents=True)
    cwd.mkdir()
    return Identity(uid=1000, username="alice", home=home, cwd=cwd)


@pytest.fixture
def root_identity(tmp_path: Path) -> Identity:
    """Root caller."""
    home = tmp_path / "root"
    cwd = tmp_path / "work-root"
    home.mkdir()
    cwd.mkdir()
    return Identity(uid=0, username="root", home=home, cwd=cwd)


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def router_binary(tmp_path: Path) -> Path:
    """Executable stand-in for the router binary."""
    binary = tmp_path / "bin" / "vllm-router"
    binary.parent.mkdir()
    binary.write_text("#!/bin/sh\nexit 0\n")
    binary.chmod(0o755)
    return binary


@pytest.fixture
def settings(tmp_path: Path, router_binary: Path) -> RouterctlSettings:
    """Settings with the system unit directory redirected under tmp_path."""
    return RouterctlSettings(
        service=ServiceSettings(binary_path=router_binary),
        system_unit_dir=tmp_path / "systemd" / "system",
    )


@pytest.fixture
def settings_file(tmp_path: Path, router_binary: Path) -> Path:
    """Settings file pointing at the stand-in binary."""
    path = tmp_path / "routerctl.toml"
    path.write_text(
        f"""
system_unit_dir = "{tmp_path / "systemd" / "system"}"

[service]
binary_path = "{router_binary}"
"""
    )
    return path


@pytest.fixture
def make_controller(settings: RouterctlSettings, fake_init: FakeInitSystem):
    """Factory for controllers bound to a fixed identity and the fake init."""

    def _make(identity: Identity) -> ServiceController:
        return ServiceController(
            settings,
            identity_provider=lambda: identity,
            init_factory=lambda scope: fake_init,
        )

    return _make


# =============================================================================
# CLI Test Helpers
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})
