"""CLI entry point for taskdash."""

import subprocess
import sys
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich.console import Console
from rich.table import Table

from taskdash import __version__
from taskdash.compiler import CompiledLayout, compile_layout, refresh_commands
from taskdash.config import (
    Config,
    display_config_warnings,
    load_config,
    resolve_config_path,
    save_config,
)
from taskdash.hooks import (
    find_hook_executable,
    hook_status,
    install_hook,
    parse_hook_args,
    should_refresh,
    uninstall_hook,
)
from taskdash.layout import LayoutError, build_layout
from taskdash.tmux_manager import (
    DashboardStateError,
    attach_session,
    create_session,
    is_inside_tmux,
    kill_session,
    refresh_session,
    session_exists,
)
from taskdash.xdg_paths import ensure_directories, get_config_file_path, get_task_hooks_dir

app = typer.Typer(
    name="taskdash",
    help="Taskwarrior dashboard in a tmux session, refreshed on every change.",
    no_args_is_help=False,
)

console = Console()
err_console = Console(stderr=True)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-C", help="Config file path."),
]
DryRunOption = Annotated[
    bool,
    typer.Option("--dry-run", "-n", help="Preview commands without executing."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"taskdash {__version__}")
        raise typer.Exit()


def _print_commands(commands: list[str]) -> None:
    console.print("[yellow]Commands that would be executed:[/]")
    for cmd in commands:
        console.print(f"  {cmd}")


def _load(config_path: Path | None, strict: bool = False) -> tuple[Config, CompiledLayout]:
    """Load the config and compile its layout, exiting on any fatal problem."""
    config, warnings = load_config(config_path, strict=strict)
    if warnings:
        display_config_warnings(warnings, err_console)
        if strict or any(w.fatal for w in warnings):
            raise typer.Exit(1)

    try:
        compiled = compile_layout(build_layout(config.layout))
    except LayoutError as e:
        err_console.print(f"[red]Error:[/] Invalid layout: {e}")
        raise typer.Exit(1) from None
    return config, compiled


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: ConfigOption = None,
    dry_run: DryRunOption = False,
    no_attach: Annotated[
        bool,
        typer.Option("--no-attach", help="Build the dashboard without attaching to it."),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", "-D", help="Enable debug output."),
    ] = False,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Increase verbosity."),
    ] = 0,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Exit with error on config validation warnings."),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version."),
    ] = None,
) -> None:
    """Open the Taskwarrior dashboard, creating it if needed."""
    # If a subcommand was invoked, don't run main logic
    if ctx.invoked_subcommand is not None:
        return

    config, compiled = _load(config_path, strict=strict)
    session_name = config.session_name
    attach = config.attach and not no_attach

    if debug or verbose > 1:
        console.print(f"[dim]Config file: {resolve_config_path(config_path)}[/]")
        console.print(f"[dim]Panes: {compiled.pane_count}, splits: {len(compiled.splits)}[/]")
    if debug or verbose > 0:
        console.print(f"[dim]Session: {session_name}[/]")

    if attach and is_inside_tmux() and not dry_run:
        err_console.print("[red]Error:[/] Already inside a tmux session.")
        err_console.print("[dim]Use --no-attach to build the dashboard in the background.[/]")
        raise typer.Exit(1)

    try:
        if session_exists(session_name):
            if verbose > 0 or dry_run:
                console.print(f"[blue]Dashboard already running:[/] {session_name}")
            commands = attach_session(session_name, dry_run=dry_run) if attach else []
        else:
            if verbose > 0 or dry_run:
                console.print(f"[green]Creating dashboard:[/] {session_name}")
            commands = create_session(
                session_name=session_name,
                compiled=compiled,
                window_name=config.window_name,
                attach=attach,
                dry_run=dry_run,
            )
    except (subprocess.SubprocessError, ValueError, DashboardStateError, OSError) as e:
        err_console.print(f"[red]Error:[/] tmux failed: {e}")
        raise typer.Exit(1) from None

    if dry_run:
        _print_commands(commands)
        console.print("[dim]Note: Actual execution uses pane IDs (%N) for reliable targeting.[/]")


@app.command()
def plan(
    config_path: ConfigOption = None,
) -> None:
    """Show the split operations and pane commands the layout compiles to."""
    _config, compiled = _load(config_path)

    splits = Table(title="Split Operations")
    splits.add_column("#", style="dim", justify="right")
    splits.add_column("Target", justify="right")
    splits.add_column("Axis")
    splits.add_column("Size", justify="right")
    splits.add_column("Placement")
    for i, op in enumerate(compiled.splits):
        placement = "before" if op.insert_before else "after"
        splits.add_row(str(i), str(op.target), op.axis.name.lower(), f"{op.size}%", placement)

    panes = Table(title="Pane Commands")
    panes.add_column("Pane", style="cyan", justify="right")
    panes.add_column("Command")
    panes.add_column("Select", justify="center")
    panes.add_column("Refresh", justify="center")
    for i, entry in enumerate(compiled.commands):
        panes.add_row(
            str(i),
            entry.command,
            "✓" if entry.select_after_create else "",
            "" if entry.suppress_on_refresh else "✓",
        )

    console.print(splits)
    console.print(panes)


@app.command()
def refresh(
    action: Annotated[
        str | None,
        typer.Argument(help="Taskwarrior command that triggered the refresh (e.g. 'add')."),
    ] = None,
    config_path: ConfigOption = None,
    dry_run: DryRunOption = False,
) -> None:
    """Re-send pane commands to the running dashboard."""
    config, compiled = _load(config_path)

    if action is not None and not should_refresh(action, config.refresh_actions):
        console.print(f"[dim]'{action}' does not modify tasks; nothing to refresh.[/]")
        return
    if not dry_run and not session_exists(config.session_name):
        err_console.print(f"[yellow]Dashboard not running:[/] {config.session_name}")
        raise typer.Exit(1)

    try:
        commands = refresh_session(config.session_name, compiled, clear=config.clear_on_refresh, dry_run=dry_run)
    except (subprocess.SubprocessError, DashboardStateError, OSError) as e:
        err_console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1) from None

    if dry_run:
        _print_commands(commands)
    else:
        console.print(f"[green]✓[/] Refreshed {len(refresh_commands(compiled.commands))} pane(s).")


@app.command()
def stop(
    config_path: ConfigOption = None,
    dry_run: DryRunOption = False,
) -> None:
    """Close the dashboard session."""
    config, _warnings = load_config(config_path)
    if not dry_run and not session_exists(config.session_name):
        console.print(f"[dim]Dashboard not running: {config.session_name}[/]")
        return

    commands = kill_session(config.session_name, dry_run=dry_run)
    if dry_run:
        _print_commands(commands)
    else:
        console.print(f"[green]✓[/] Stopped {config.session_name}")


@app.command()
def init_config() -> None:
    """Create default configuration file."""
    ensure_directories()
    config_file = get_config_file_path()

    if config_file.exists():
        err_console.print(f"[yellow]Config file already exists:[/] {config_file}")
        raise typer.Exit(1)

    save_config(Config())
    console.print(f"[green]✓[/] Created config file: {config_file}")


config_app = typer.Typer(
    name="config",
    help="Configuration management commands.",
)
app.add_typer(config_app, name="config")


@config_app.command("validate")
def config_validate(
    config_path: ConfigOption = None,
) -> None:
    """Validate the config file, including the layout tree."""
    _config, compiled = _load(config_path, strict=True)
    console.print(f"[green]✓[/] Config is valid ({compiled.pane_count} panes).")


@config_app.command("show")
def config_show(
    config_path: ConfigOption = None,
) -> None:
    """Show effective configuration."""
    config, warnings = load_config(config_path)

    if warnings:
        display_config_warnings(warnings, err_console)

    console.print(yaml.dump(config.model_dump(mode="json"), default_flow_style=False, sort_keys=False))


hook_app = typer.Typer(
    name="hook",
    help="Taskwarrior hook management commands.",
)
app.add_typer(hook_app, name="hook")

HooksDirOption = Annotated[
    Path | None,
    typer.Option("--hooks-dir", help="Taskwarrior hooks directory."),
]


def _hooks_dir(hooks_dir: Path | None, config_path: Path | None) -> Path:
    if hooks_dir:
        return hooks_dir
    config, _warnings = load_config(config_path)
    return config.hooks_dir or get_task_hooks_dir()


@hook_app.command("install")
def hook_install(
    hooks_dir: HooksDirOption = None,
    config_path: ConfigOption = None,
) -> None:
    """Register taskdash as a Taskwarrior on-exit hook."""
    executable = find_hook_executable()
    if executable is None:
        err_console.print("[red]Error:[/] taskdash-hook not found on PATH.")
        raise typer.Exit(1)

    try:
        path = install_hook(_hooks_dir(hooks_dir, config_path), executable)
    except (FileExistsError, OSError) as e:
        err_console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1) from None
    console.print(f"[green]✓[/] Hook installed: {path} -> {executable}")


@hook_app.command("uninstall")
def hook_uninstall(
    hooks_dir: HooksDirOption = None,
    config_path: ConfigOption = None,
) -> None:
    """Remove the taskdash Taskwarrior hook."""
    try:
        removed = uninstall_hook(_hooks_dir(hooks_dir, config_path))
    except (FileExistsError, OSError) as e:
        err_console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1) from None
    if removed:
        console.print("[green]✓[/] Hook removed.")
    else:
        console.print("[dim]Hook was not installed.[/]")


@hook_app.command("status")
def hook_show_status(
    hooks_dir: HooksDirOption = None,
    config_path: ConfigOption = None,
) -> None:
    """Show whether the Taskwarrior hook is installed."""
    status = hook_status(_hooks_dir(hooks_dir, config_path))
    if status.installed:
        console.print(f"[green]Installed:[/] {status.path} -> {status.target}")
    elif status.foreign:
        console.print(f"[yellow]Occupied by another file:[/] {status.path}")
    else:
        console.print(f"[dim]Not installed:[/] {status.path}")
        raise typer.Exit(1)


taskwarrior_hook_app = typer.Typer(
    name="taskdash-hook",
    help="Taskwarrior on-exit hook that refreshes the taskdash dashboard.",
    add_completion=False,
)


@taskwarrior_hook_app.command()
def hook_main(
    argv: Annotated[
        list[str] | None,
        typer.Argument(help="Hook arguments passed by Taskwarrior (api:2 command:add ...)."),
    ] = None,
) -> None:
    """Refresh the dashboard after a Taskwarrior write action."""
    # Taskwarrior pipes the changed tasks on stdin; drain it so it never blocks.
    if not sys.stdin.isatty():
        sys.stdin.read()

    hook_args = parse_hook_args(argv or [])
    config, warnings = load_config()
    if any(w.fatal for w in warnings):
        display_config_warnings(warnings, err_console)
        raise typer.Exit(1)

    if not should_refresh(hook_args.get("command"), config.refresh_actions):
        return
    try:
        if not session_exists(config.session_name):
            return
        compiled = compile_layout(build_layout(config.layout))
        refresh_session(config.session_name, compiled, clear=config.clear_on_refresh)
    except (LayoutError, DashboardStateError, subprocess.SubprocessError, OSError) as e:
        err_console.print(f"taskdash: refresh failed: {e}")
        raise typer.Exit(1) from None


if __name__ == "__main__":
    app()
