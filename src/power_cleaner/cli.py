"""
Click-based CLI for power-cleaner.

IMPORTANT: This module only ORCHESTRATES. It never decides what runs.
- Loads configuration
- Probes the environment
- Hands actions to the runner
- Formats output
"""

import sys
from dataclasses import dataclass, replace
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt

from power_cleaner import __version__
from power_cleaner.actions import CATALOGS, build_registry
from power_cleaner.actions.registry import ActionRegistry
from power_cleaner.config import ConfigManager, RunConfig
from power_cleaner.connector.local import LocalConnector
from power_cleaner.engine.gate import ExecutionGate
from power_cleaner.engine.runner import Runner
from power_cleaner.exceptions import ActionNotFound, StartupError, UnsupportedEnvironment
from power_cleaner.model.action import ExecutionMode
from power_cleaner.model.environment import Environment
from power_cleaner.reporters import BaseReporter, get_reporter
from power_cleaner.runlog import configure_logging
from power_cleaner.scanner.disk import DiskTracker
from power_cleaner.scanner.environment import EnvironmentScanner, host_home

console = Console()

EXIT_OK = 0
EXIT_STARTUP = 1
EXIT_INTERRUPTED = 130


@dataclass
class Session:
    """Objects shared between the group callback and subcommands."""

    config: RunConfig
    registry: ActionRegistry
    environment: Environment
    gate: ExecutionGate
    runner: Runner
    reporter: BaseReporter


def _confirm(question: str) -> bool:
    return Confirm.ask(escape(question), console=console, default=False)


def _ask(menu: str) -> str:
    console.print()
    console.print(menu, markup=False, highlight=False)
    return Prompt.ask("Choice", console=console)


def _parse_selection(answer: str, options: list[tuple[str, str]]) -> list[str]:
    """Numbers (1-based) or keys, separated by spaces or commas."""
    keys = [key for key, _ in options]
    chosen: list[str] = []
    for token in answer.replace(",", " ").split():
        if token.isdigit() and 1 <= int(token) <= len(keys):
            key = keys[int(token) - 1]
        elif token in keys:
            key = token
        else:
            console.print(f"[yellow]Ignoring unknown choice:[/] {escape(token)}")
            continue
        if key not in chosen:
            chosen.append(key)
    return chosen


def _choose(prompt: str, options: list[tuple[str, str]]) -> list[str]:
    console.print()
    console.print(prompt, markup=False, highlight=False)
    for i, (_, label) in enumerate(options, start=1):
        console.print(f"  {i:>2}) {label}", markup=False, highlight=False)
    answer = Prompt.ask("Numbers or names (blank for none)", console=console, default="", show_default=False)
    return _parse_selection(answer, options)


def _notify(line: str) -> None:
    console.print(line, markup=False, highlight=False)


def _bootstrap(
    config_dir: str | None,
    mode: ExecutionMode,
    auto_confirm: bool,
    catalogs: tuple[str, ...],
    strict: bool | None,
    log_path: str | None,
    verbose: bool,
    fmt: str,
    show_output: bool,
    with_log: bool,
) -> Session:
    """Build every component from configuration. Raises StartupError."""
    config_mgr = ConfigManager(Path(config_dir) if config_dir else None)
    run_config = config_mgr.build_run_config(
        mode=mode,
        auto_confirm=auto_confirm,
        strict=strict,
        log_path=log_path,
        verbose=verbose,
    )
    run_config = replace(run_config, home=host_home())

    registry = build_registry(catalogs or ("cleanup",))

    if with_log:
        configure_logging(run_config.log_path, verbose=verbose, console=console)

    connector = LocalConnector(use_sudo=run_config.use_sudo, timeout=run_config.command_timeout)
    environment = EnvironmentScanner(connector).probe(registry.required_commands())
    if run_config.strict and not environment.classified:
        raise UnsupportedEnvironment(
            f"Cannot classify package manager for '{environment.distro_id}' (strict mode)"
        )

    gate = ExecutionGate(connector, environment, run_config, confirm=_confirm, choose=_choose)
    runner = Runner(registry, gate, run_config, tracker=DiskTracker(run_config.disk_path), notify=_notify)
    return Session(
        config=run_config,
        registry=registry,
        environment=environment,
        gate=gate,
        runner=runner,
        reporter=get_reporter(fmt, console, show_output=show_output),
    )


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="power-cleaner")
@click.option("--config", "-c", "config_dir", type=click.Path(file_okay=False), help="Path to config directory")
@click.option("--dry-run", is_flag=True, help="Print commands instead of executing them")
@click.option("--verify", is_flag=True, help="Run non-destructive checks only")
@click.option("--yes", "-y", is_flag=True, help="Assume yes to confirmation prompts")
@click.option("--run-all", is_flag=True, help="Run every action instead of the interactive menu")
@click.option("--action", "-a", "action_names", multiple=True, help="Run only this action (repeatable)")
@click.option("--catalog", "catalogs", type=click.Choice(sorted(CATALOGS)), multiple=True, help="Action catalog (default: cleanup)")
@click.option("--format", "fmt", type=click.Choice(["rich", "plain", "json"]), default=None, help="Output format")
@click.option("--strict/--no-strict", default=None, help="Fail when the package manager cannot be detected")
@click.option("--log", "log_path", type=click.Path(dir_okay=False), help="Append the run log to this file")
@click.option("--show-output", is_flag=True, help="Print captured command output in the report")
@click.option("--verbose", "-v", is_flag=True, help="Mirror the run log on the console")
@click.pass_context
def main(
    ctx: click.Context,
    config_dir: str | None,
    dry_run: bool,
    verify: bool,
    yes: bool,
    run_all: bool,
    action_names: tuple[str, ...],
    catalogs: tuple[str, ...],
    fmt: str | None,
    strict: bool | None,
    log_path: str | None,
    show_output: bool,
    verbose: bool,
) -> None:
    """🧹 power-cleaner: system maintenance with dry-run and verify modes.

    Without --run-all or --action an interactive menu is shown.
    """
    if dry_run and verify:
        raise click.UsageError("--dry-run and --verify are mutually exclusive")
    if run_all and action_names:
        raise click.UsageError("--run-all and --action are mutually exclusive")

    mode = ExecutionMode.VERIFY if verify else ExecutionMode.DRY_RUN if dry_run else ExecutionMode.NORMAL

    if ctx.invoked_subcommand == "init-config":
        ctx.obj = ConfigManager(Path(config_dir) if config_dir else None)
        return

    # Auto-detect format if not specified
    if fmt is None:
        fmt = "plain" if not sys.stdout.isatty() else "rich"

    try:
        session = _bootstrap(
            config_dir,
            mode,
            yes,
            catalogs,
            strict,
            log_path,
            verbose,
            fmt,
            show_output,
            with_log=ctx.invoked_subcommand is None,
        )
    except StartupError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        sys.exit(EXIT_STARTUP)

    ctx.obj = session
    if ctx.invoked_subcommand is not None:
        return

    if mode is ExecutionMode.VERIFY and fmt != "json":
        console.print("[cyan]VERIFY mode: no destructive changes will be performed.[/]")
    elif mode is ExecutionMode.DRY_RUN and fmt != "json":
        console.print("[cyan]DRY-RUN mode: commands will be printed but not executed.[/]")

    runner = session.runner
    if action_names:
        try:
            report = runner.run_selected(list(action_names))
        except ActionNotFound as e:
            console.print(f"[bold red]Error:[/] {escape(str(e))}")
            sys.exit(EXIT_STARTUP)
    elif run_all:
        report = runner.run_all()
    else:
        report = runner.run_interactive(_ask)

    session.reporter.report_run(report)
    if report.interrupted:
        sys.exit(EXIT_INTERRUPTED)


@main.command("list")
@click.pass_obj
def list_actions(session: Session) -> None:
    """List registered actions and whether their tools are present."""
    actions = session.registry.all()
    missing = {a.name: session.gate.missing_dependencies(a) for a in actions}
    session.reporter.report_actions(actions, missing)


@main.command()
@click.pass_obj
def probe(session: Session) -> None:
    """Show the detected environment.

    This is read-only and makes no changes to the host.
    """
    session.reporter.report_environment(session.environment)


@main.command("init-config")
@click.pass_obj
def init_config(config_mgr: ConfigManager) -> None:
    """Write a default config.yaml if none exists."""
    path = config_mgr.write_defaults()
    console.print(f"[bold green]✓ Config:[/] {path}")


def entrypoint() -> None:
    """Console-script entry: usage errors exit 1 instead of click's 2."""
    try:
        code = main.main(standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(EXIT_STARTUP)
    except click.exceptions.Abort:
        console.print("[bold red]Aborted![/]")
        sys.exit(EXIT_STARTUP)
    sys.exit(code or EXIT_OK)


if __name__ == "__main__":
    entrypoint()
