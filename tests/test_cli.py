"""Tests for CLI commands."""

from pathlib import Path

import pytest

from routerctl.cli.app import app
from routerctl.service.controller import ServiceController
from routerctl.service.errors import InitSubsystemError


@pytest.fixture
def patch_controller(monkeypatch, fake_init):
    """Route the CLI's controller through a fixed identity and the fake init."""

    def _patch(identity):
        def factory(settings):
            return ServiceController(
                settings,
                identity_provider=lambda: identity,
                init_factory=lambda scope: fake_init,
            )

        monkeypatch.setattr("routerctl.service.ServiceController", factory)

    return _patch


def _user_unit(identity) -> Path:
    return identity.home / ".config" / "systemd" / "user" / "vllm-router.service"


class TestUsage:
    def test_no_arguments_prints_usage(self, cli_runner):
        result = cli_runner.invoke(app, [])
        assert result.exit_code == 0
        assert "Usage:" in result.output
        assert "install" in result.output

    def test_help_command(self, cli_runner):
        result = cli_runner.invoke(app, ["help"])
        assert result.exit_code == 0
        assert "Usage:" in result.output
        assert "uninstall" in result.output

    def test_help_flag(self, cli_runner):
        result = cli_runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Usage:" in result.output

    def test_unknown_command(self, cli_runner):
        result = cli_runner.invoke(app, ["reboot"])
        assert result.exit_code == 2

    def test_install_help_lists_overrides(self, cli_runner):
        result = cli_runner.invoke(app, ["install", "--help"])
        assert result.exit_code == 0
        for option in ("--user", "--binary", "--config", "--working-dir", "--run-as"):
            assert option in result.output


class TestLifecycleCommands:
    """End-to-end command runs against the fake init system."""

    def test_install_user(
        self, cli_runner, patch_controller, user_identity, settings_file
    ):
        patch_controller(user_identity)

        result = cli_runner.invoke(
            app, ["--settings", str(settings_file), "install", "--user"]
        )

        assert result.exit_code == 0, result.output
        assert "Installed vllm-router.service" in result.output
        assert "routerctl enable --user" in result.output
        assert _user_unit(user_identity).exists()

    def test_install_then_status(
        self, cli_runner, patch_controller, user_identity, settings_file
    ):
        patch_controller(user_identity)
        cli_runner.invoke(app, ["--settings", str(settings_file), "install", "--user"])

        result = cli_runner.invoke(
            app, ["--settings", str(settings_file), "status", "--user"]
        )

        assert result.exit_code == 0, result.output
        assert "installed-disabled" in result.output
        assert "255" in result.output

    def test_install_twice_reports_no_change(
        self, cli_runner, patch_controller, user_identity, settings_file
    ):
        patch_controller(user_identity)
        args = ["--settings", str(settings_file), "install", "--user"]
        cli_runner.invoke(app, args)

        result = cli_runner.invoke(app, args)

        assert result.exit_code == 0
        assert "already up to date" in result.output

    def test_full_lifecycle(
        self, cli_runner, patch_controller, user_identity, settings_file, fake_init
    ):
        patch_controller(user_identity)
        base = ["--settings", str(settings_file)]

        for command in ("install", "enable", "start", "restart", "stop", "disable"):
            result = cli_runner.invoke(app, [*base, command, "--user"])
            assert result.exit_code == 0, f"{command}: {result.output}"

        result = cli_runner.invoke(app, [*base, "uninstall", "--user"])
        assert result.exit_code == 0
        assert "Uninstalled" in result.output
        assert not _user_unit(user_identity).exists()

    def test_system_install_without_root(
        self, cli_runner, patch_controller, user_identity, settings_file, tmp_path
    ):
        patch_controller(user_identity)

        result = cli_runner.invoke(app, ["--settings", str(settings_file), "install"])

        assert result.exit_code == 1
        assert "requires root" in result.output
        assert not (tmp_path / "systemd" / "system").exists()

    def test_start_not_installed(
        self, cli_runner, patch_controller, user_identity, settings_file
    ):
        patch_controller(user_identity)

        result = cli_runner.invoke(
            app, ["--settings", str(settings_file), "start", "--user"]
        )

        assert result.exit_code == 1
        assert "not installed" in result.output

    def test_restart_stop_failure(
        self, cli_runner, patch_controller, user_identity, settings_file, fake_init
    ):
        patch_controller(user_identity)
        base = ["--settings", str(settings_file)]
        cli_runner.invoke(app, [*base, "install", "--user"])
        cli_runner.invoke(app, [*base, "start", "--user"])
        fake_init.failures["stop"] = InitSubsystemError("stop timed out")

        result = cli_runner.invoke(app, [*base, "restart", "--user"])

        assert result.exit_code == 1
        assert "Error: stop timed out" in result.output

    def test_uninstall_warning(
        self, cli_runner, patch_controller, user_identity, settings_file, fake_init
    ):
        patch_controller(user_identity)
        base = ["--settings", str(settings_file)]
        cli_runner.invoke(app, [*base, "install", "--user"])
        cli_runner.invoke(app, [*base, "start", "--user"])
        fake_init.failures["stop"] = InitSubsystemError("stop timed out")

        result = cli_runner.invoke(app, [*base, "uninstall", "--user"])

        assert result.exit_code == 0
        assert "Warning: stop failed: stop timed out" in result.output

    def test_uninstall_without_manager(
        self, cli_runner, patch_controller, user_identity, settings_file, fake_init
    ):
        patch_controller(user_identity)
        base = ["--settings", str(settings_file)]
        cli_runner.invoke(app, [*base, "install", "--user"])
        fake_init.available = False

        result = cli_runner.invoke(app, [*base, "uninstall", "--user"])

        assert result.exit_code == 0
        assert not _user_unit(user_identity).exists()


class TestArgumentErrors:
    def test_relative_binary(self, cli_runner, patch_controller, user_identity):
        patch_controller(user_identity)

        result = cli_runner.invoke(app, ["install", "--user", "--binary", "vllm-router"])

        assert result.exit_code == 2
        assert "absolute path" in result.output

    def test_missing_settings_file(self, cli_runner, tmp_path: Path):
        result = cli_runner.invoke(
            app, ["--settings", str(tmp_path / "missing.toml"), "status"]
        )
        assert result.exit_code == 1
        assert "Settings file not found" in result.output

    def test_invalid_settings_file(self, cli_runner, tmp_path: Path):
        path = tmp_path / "bad.toml"
        path.write_text("[service\n")
        result = cli_runner.invoke(app, ["--settings", str(path), "status"])
        assert result.exit_code == 1
        assert "Invalid TOML" in result.output


class TestRenderCommand:
    def test_render_user(
        self, cli_runner, patch_controller, user_identity, settings_file
    ):
        patch_controller(user_identity)

        result = cli_runner.invoke(
            app,
            ["--settings", str(settings_file), "render", "--user", "--run-as", "bob"],
        )

        assert result.exit_code == 0, result.output
        assert result.output.startswith("[Unit]")
        assert "User=bob\n" in result.output
        assert "WantedBy=default.target\n" in result.output
        assert not _user_unit(user_identity).exists()


class TestLogsCommand:
    def test_logs(
        self, cli_runner, patch_controller, user_identity, settings_file, monkeypatch
    ):
        from unittest.mock import MagicMock

        patch_controller(user_identity)
        run = MagicMock(return_value=MagicMock(returncode=0))
        monkeypatch.setattr("routerctl.service.controller.subprocess.run", run)

        result = cli_runner.invoke(
            app, ["--settings", str(settings_file), "logs", "--user", "-n", "10"]
        )

        assert result.exit_code == 0
        assert run.call_args.args[0][-2:] == ["-n", "10"]
