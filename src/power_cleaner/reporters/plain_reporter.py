"""Plain Text Reporter Implementation."""

from power_cleaner.model.action import Action, Outcome, RunReport
from power_cleaner.model.environment import Environment
from power_cleaner.reporters.base import BaseReporter
from power_cleaner.scanner.disk import describe_delta


class PlainReporter(BaseReporter):
    """Generates clean, text-only output."""

    def report_run(self, report: RunReport) -> None:
        self.console.print()
        self.console.print(f"RUN REPORT ({self.mode_title(report)})", style="bold")
        for result in report.results:
            label = f"[{result.outcome.value.upper()}]"
            line = f"{label} {result.action.name}"
            if report.mixed_modes and result.mode is not None:
                line += f" ({result.mode.value})"
            if result.reason:
                line += f": {result.reason}"
            self.console.print(line, markup=False)
            if self.show_output and result.output and result.outcome is not Outcome.SKIPPED:
                for out_line in result.output.splitlines():
                    self.console.print(f"      {out_line}", markup=False)

        self.console.print()
        self.console.print(
            f"Summary: {report.succeeded} succeeded, {report.failed} failed, {report.skipped} skipped"
        )
        if report.freed_bytes is not None:
            self.console.print(f"Disk: {describe_delta(report.freed_bytes)}")
        if report.interrupted:
            self.console.print("Run interrupted")
        self.console.print(f"Log: {report.log_path}", markup=False)

    def report_environment(self, env: Environment) -> None:
        self.console.print(f"OS: {env.display_name} ({env.os_family}, {env.arch or 'unknown arch'})", markup=False)
        self.console.print(f"Package manager: {env.package_manager.name}")
        self.console.print(f"Root: {'yes' if env.is_root else 'no'}")
        self.console.print(f"Tools: {', '.join(sorted(env.available_commands)) or 'none'}", markup=False)

    def report_actions(self, actions: list[Action], missing: dict[str, list[str]]) -> None:
        for i, action in enumerate(actions, start=1):
            status = "ready" if not missing.get(action.name) else "missing " + ", ".join(missing[action.name])
            flags = " (confirm)" if action.interactive else ""
            self.console.print(f"{i:>2}. {action.name}: {action.description}{flags} - {status}", markup=False)
