"""Rich Reporter Implementation."""

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from power_cleaner.model.action import Action, Outcome, RunReport
from power_cleaner.model.environment import Environment
from power_cleaner.reporters.base import BaseReporter
from power_cleaner.scanner.disk import describe_delta

OUTCOME_STYLE = {
    Outcome.SUCCEEDED: ("green", "ok"),
    Outcome.FAILED: ("red", "x"),
    Outcome.SKIPPED: ("yellow", "-"),
}


class RichReporter(BaseReporter):
    """Generates high-fidelity terminal output using Rich."""

    def report_run(self, report: RunReport) -> None:
        table = Table(title=f"Run Report ({self.mode_title(report)})", show_lines=False)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Action")
        if report.mixed_modes:
            table.add_column("Mode")
        table.add_column("Outcome")
        table.add_column("Detail", overflow="fold")
        table.add_column("Time", justify="right", style="dim")

        for i, result in enumerate(report.results, start=1):
            color, icon = OUTCOME_STYLE[result.outcome]
            row = [str(i), escape(result.action.name)]
            if report.mixed_modes:
                row.append(result.mode.value if result.mode else "")
            row += [
                f"[{color}]{icon} {result.outcome.value}[/]",
                escape(result.reason or ""),
                f"{result.duration_s:.1f}s",
            ]
            table.add_row(*row)
        self.console.print()
        self.console.print(table)

        if self.show_output:
            for result in report.results:
                if result.output and result.outcome is not Outcome.SKIPPED:
                    self.console.print(Panel(escape(result.output), title=escape(result.action.name), border_style="dim"))

        color = "red" if report.failed else "green"
        lines = [
            f"[green]{report.succeeded} succeeded[/], [red]{report.failed} failed[/], "
            f"[yellow]{report.skipped} skipped[/]"
        ]
        if report.freed_bytes is not None:
            disk_color = "yellow" if report.freed_bytes < 0 else "green"
            lines.append(f"[{disk_color}]{describe_delta(report.freed_bytes)}[/]")
        if report.interrupted:
            lines.append("[bold red]Run interrupted[/]")
        lines.append(f"[dim]Log: {escape(report.log_path)}[/]")
        self.console.print(Panel("\n".join(lines), title="Summary", border_style=color))

    def report_environment(self, env: Environment) -> None:
        grid = Table.grid(padding=(0, 2))
        grid.add_column(style="bold")
        grid.add_column()
        grid.add_row("OS", escape(f"{env.display_name} ({env.os_family})"))
        grid.add_row("Arch", escape(env.arch or "unknown"))
        pm = env.package_manager
        grid.add_row("Package manager", pm.name if pm.known else "[yellow]unknown[/]")
        grid.add_row("Root", "yes" if env.is_root else "no")
        grid.add_row("Tools", escape(", ".join(sorted(env.available_commands)) or "none"))
        self.console.print(Panel(grid, title="Environment", border_style="cyan"))

    def report_actions(self, actions: list[Action], missing: dict[str, list[str]]) -> None:
        table = Table(title="Actions")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Name", style="bold")
        table.add_column("Description")
        table.add_column("Confirm", justify="center")
        table.add_column("Status")
        for i, action in enumerate(actions, start=1):
            needs = missing.get(action.name)
            status = "[green]ready[/]" if not needs else f"[yellow]missing {escape(', '.join(needs))}[/]"
            table.add_row(str(i), escape(action.name), escape(action.description), "yes" if action.interactive else "", status)
        self.console.print(table)
