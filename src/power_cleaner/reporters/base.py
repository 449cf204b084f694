"""Base Reporter Interface."""

from abc import ABC, abstractmethod

from rich.console import Console

from power_cleaner.model.action import Action, RunReport
from power_cleaner.model.environment import Environment


class BaseReporter(ABC):
    """Abstract base class for all run reporters."""

    def __init__(self, console: Console, show_output: bool = False) -> None:
        self.console = console
        self.show_output = show_output

    @staticmethod
    def mode_title(report: RunReport) -> str:
        """``normal``, or every mode the session used when it toggled."""
        if report.mixed_modes:
            return "mixed: " + ", ".join(m.value for m in report.modes)
        return report.mode.value

    @abstractmethod
    def report_run(self, report: RunReport) -> None:
        """Print the final summary of a run. Always called, even after failures."""
        pass

    @abstractmethod
    def report_environment(self, env: Environment) -> None:
        """Display the probed environment."""
        pass

    @abstractmethod
    def report_actions(self, actions: list[Action], missing: dict[str, list[str]]) -> None:
        """List registered actions with their missing dependencies."""
        pass
