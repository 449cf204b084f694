"""Exception hierarchy for power-cleaner.

Per-action problems (DependencyMissing, failures raised by builders) are
converted into RunResults by the execution gate. Only StartupError and
RunInterrupted are allowed to reach the CLI.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from power_cleaner.model.action import RunResult


class PowerCleanerError(Exception):
    """Base class for all power-cleaner errors."""


class StartupError(PowerCleanerError):
    """Fatal error before any action runs (exit code 1)."""


class ConfigError(StartupError):
    """Configuration file or override could not be parsed."""


class UnsupportedEnvironment(StartupError):
    """Strict mode was requested but the host could not be classified."""


class DuplicateAction(StartupError):
    """Two actions were registered under the same name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Duplicate action name: {name}")
        self.name = name


class ActionNotFound(PowerCleanerError, KeyError):
    """Lookup of an unregistered action name."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown action: {self.name}"


class DependencyMissing(PowerCleanerError):
    """An external command an action relies on is not available."""

    def __init__(self, dependency: str) -> None:
        super().__init__(f"missing dependency: {dependency}")
        self.dependency = dependency


class QueryFailed(PowerCleanerError):
    """A read-only lookup an action builder depends on exited non-zero."""

    def __init__(self, command: str, exit_code: int) -> None:
        super().__init__(f"query exited {exit_code}: {command}")
        self.command = command
        self.exit_code = exit_code


class RunInterrupted(PowerCleanerError):
    """The host interrupt arrived while an action was executing."""

    def __init__(self, result: "RunResult") -> None:
        super().__init__(f"Interrupted during {result.action.name}")
        self.result = result
