"""Main CLI application."""

from pathlib import Path
from typing import Annotated

import typer

from routerctl.cli.console import (
    console,
    create_table,
    dim,
    error,
    info,
    success,
    warning,
)
from routerctl.config.models import ConfigError
from routerctl.logging import configure_logging
from routerctl.service.base import ServiceState
from routerctl.service.command import Action, build_command
from routerctl.service.controller import ActionResult
from routerctl.service.errors import ServiceError

app = typer.Typer(
    name="routerctl",
    help="Install and control the vLLM router as a systemd service.",
    pretty_exceptions_show_locals=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)

UserOption = Annotated[
    bool,
    typer.Option(
        "--user",
        help="Manage a per-user service instead of the system-wide one",
    ),
]
BinaryOption = Annotated[
    Path | None,
    typer.Option(
        "--binary",
        "-b",
        help="Absolute path to the vllm-router binary",
    ),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Absolute path to the router's config file",
    ),
]
WorkingDirOption = Annotated[
    Path | None,
    typer.Option(
        "--working-dir",
        help="Working directory for the service (default: current directory)",
    ),
]
RunAsOption = Annotated[
    str | None,
    typer.Option(
        "--run-as",
        help="Account the service runs as",
    ),
]

STATE_COLORS = {
    ServiceState.RUNNING: "green",
    ServiceState.STOPPED: "yellow",
    ServiceState.INSTALLED_ENABLED: "cyan",
    ServiceState.INSTALLED_DISABLED: "cyan",
    ServiceState.FAILED: "red",
    ServiceState.ABSENT: "dim",
}


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    settings: Annotated[
        Path | None,
        typer.Option(
            "--settings",
            help="Path to routerctl settings file",
        ),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase log verbosity (-v info, -vv debug)",
        ),
    ] = 0,
) -> None:
    """Install and control the vLLM router as a systemd service."""
    configure_logging(verbosity=verbose, use_rich=console.is_terminal)
    ctx.obj = {"settings_path": settings}

    # Bare invocation prints usage and succeeds
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


def _run_action(ctx: typer.Context, action: Action, **options) -> ActionResult:
    """Build the command, run it through the controller and map failures.

    Args:
        ctx: Typer context carrying the global options.
        action: Action to run.
        **options: Keyword arguments for build_command().

    Returns:
        The controller's result.
    """
    from routerctl.config import load_settings
    from routerctl.service import ServiceController

    settings_path = (ctx.obj or {}).get("settings_path")
    try:
        command = build_command(action, **options)
        settings = load_settings(settings_path)
        return ServiceController(settings).run(command)
    except ServiceError as e:
        error(f"Error: {e.message}")
        raise typer.Exit(e.exit_code) from None
    except ConfigError as e:
        error(f"Error: {e}")
        raise typer.Exit(1) from None


def _report(result: ActionResult) -> None:
    for message in result.warnings:
        warning(f"Warning: {message}")
    if result.changed:
        success(result.message)
    else:
        dim(result.message)


@app.command("install")
def install(
    ctx: typer.Context,
    user: UserOption = False,
    binary: BinaryOption = None,
    config: ConfigOption = None,
    working_dir: WorkingDirOption = None,
    run_as: RunAsOption = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Install even if the binary does not exist yet",
        ),
    ] = False,
) -> None:
    """Write the unit file and reload systemd (re-run to upgrade)."""
    result = _run_action(
        ctx,
        Action.INSTALL,
        user=user,
        force=force,
        binary_path=binary,
        config_path=config,
        working_directory=working_dir,
        run_as=run_as,
    )
    _report(result)
    if result.changed:
        flag = " --user" if user else ""
        info(f"Next: routerctl enable{flag} && routerctl start{flag}")


@app.command("uninstall")
def uninstall(ctx: typer.Context, user: UserOption = False) -> None:
    """Stop, disable and remove the service."""
    _report(_run_action(ctx, Action.UNINSTALL, user=user))


@app.command("enable")
def enable(ctx: typer.Context, user: UserOption = False) -> None:
    """Start the service automatically at boot (or login with --user)."""
    _report(_run_action(ctx, Action.ENABLE, user=user))


@app.command("disable")
def disable(ctx: typer.Context, user: UserOption = False) -> None:
    """Stop starting the service automatically."""
    _report(_run_action(ctx, Action.DISABLE, user=user))


@app.command("start")
def start(ctx: typer.Context, user: UserOption = False) -> None:
    """Start the service."""
    _report(_run_action(ctx, Action.START, user=user))


@app.command("stop")
def stop(ctx: typer.Context, user: UserOption = False) -> None:
    """Stop the service."""
    _report(_run_action(ctx, Action.STOP, user=user))


@app.command("restart")
def restart(ctx: typer.Context, user: UserOption = False) -> None:
    """Stop the service if running, then start it."""
    _report(_run_action(ctx, Action.RESTART, user=user))


@app.command("status")
def status(ctx: typer.Context, user: UserOption = False) -> None:
    """Show the service's registration state."""
    result = _run_action(ctx, Action.STATUS, user=user)
    service_status = result.status
    assert service_status is not None

    table = create_table(
        "vLLM Router Service",
        [
            ("Property", "cyan"),
            ("Value", ""),
        ],
    )

    state_color = STATE_COLORS.get(service_status.state, "white")
    table.add_row(
        "State", f"[{state_color}]{service_status.state.value}[/{state_color}]"
    )
    table.add_row("Scope", result.scope.mode.value)
    table.add_row("Unit", str(service_status.unit_path))
    if service_status.state.installed:
        table.add_row("Enabled", "yes" if service_status.enabled else "no")
    if service_status.active_state:
        active = service_status.active_state
        if service_status.sub_state:
            active = f"{active} ({service_status.sub_state})"
        table.add_row("Active", active)
    if service_status.pid:
        table.add_row("PID", str(service_status.pid))
    if result.init_version:
        table.add_row("systemd", result.init_version)

    console.print(table)


@app.command("render")
def render(
    ctx: typer.Context,
    user: UserOption = False,
    binary: BinaryOption = None,
    config: ConfigOption = None,
    working_dir: WorkingDirOption = None,
    run_as: RunAsOption = None,
) -> None:
    """Print the unit file install would write, without writing it."""
    result = _run_action(
        ctx,
        Action.RENDER,
        user=user,
        binary_path=binary,
        config_path=config,
        working_directory=working_dir,
        run_as=run_as,
    )
    typer.echo(result.unit_text, nl=False)


@app.command("logs")
def logs(
    ctx: typer.Context,
    user: UserOption = False,
    follow: Annotated[
        bool,
        typer.Option(
            "--follow",
            "-f",
            help="Follow log output",
        ),
    ] = False,
    lines: Annotated[
        int,
        typer.Option(
            "--lines",
            "-n",
            help="Number of lines to show",
        ),
    ] = 50,
) -> None:
    """View service logs from the journal."""
    try:
        _run_action(ctx, Action.LOGS, user=user, follow=follow, lines=lines)
    except KeyboardInterrupt:
        pass


@app.command("help")
def show_help(ctx: typer.Context) -> None:
    """Show this message and exit."""
    parent = ctx.parent or ctx
    typer.echo(parent.get_help())
