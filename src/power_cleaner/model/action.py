"""Action, RunResult and RunReport - the audit trail of a maintenance run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from power_cleaner.model.command import Command

if TYPE_CHECKING:
    from power_cleaner.config import RunConfig
    from power_cleaner.connector.local import CommandResult
    from power_cleaner.model.environment import Environment


class ExecutionMode(Enum):
    """Exactly one mode is active per run."""

    NORMAL = "normal"
    DRY_RUN = "dry-run"  # Report commands, execute nothing
    VERIFY = "verify"  # Non-destructive checks only


class Outcome(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


QueryFn = Callable[[Command], "CommandResult"]
# (prompt, [(key, label), ...]) -> chosen keys
ChooseFn = Callable[[str, list[tuple[str, str]]], list[str]]


@dataclass(frozen=True)
class ActionContext:
    """Everything an action builder may read. Builders must not mutate it.

    Attributes:
        environment: Probed host snapshot.
        config: Run context, with the mode of this invocation.
        query: Runs a read-only command and returns its result. None when
            the builder is called outside the execution gate.
        choose: Lets the user pick entries from a list. None when no prompt
            is available.
    """

    environment: "Environment"
    config: "RunConfig"
    query: QueryFn | None = field(default=None, repr=False, compare=False)
    choose: ChooseFn | None = field(default=None, repr=False, compare=False)


ActionBuilder = Callable[[ActionContext], list[Command]]


@dataclass(frozen=True)
class Action:
    """A named, independently invocable maintenance operation.

    Actions never execute anything themselves. ``build`` returns the commands
    the execution gate will run and ``verify`` (optional) returns read-only
    commands that check the action's preconditions.

    Attributes:
        name: Unique registry key.
        description: One-line menu label.
        build: Produces the commands for the live environment.
        required_commands: Tools that must be on the search path.
        verify: Produces the non-destructive check variant, if any.
        interactive: Requires confirmation unless auto-confirm is set.
        needs_package_manager: Also requires the detected manager's binary.
        category: Catalogue the action belongs to.
    """

    name: str
    description: str
    build: ActionBuilder = field(repr=False, compare=False)
    required_commands: frozenset[str] = field(default_factory=frozenset)
    verify: ActionBuilder | None = field(default=None, repr=False, compare=False)
    interactive: bool = False
    needs_package_manager: bool = False
    category: str = "cleanup"

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Action name cannot be empty")
        object.__setattr__(self, "required_commands", frozenset(self.required_commands))

    @property
    def has_verify(self) -> bool:
        return self.verify is not None


@dataclass(frozen=True)
class RunResult:
    """Outcome of one action execution. Never mutated after creation."""

    action: Action
    outcome: Outcome
    started_at: datetime
    finished_at: datetime
    reason: str | None = None
    output: str = ""
    commands: tuple[str, ...] = ()
    exit_code: int | None = None
    mode: ExecutionMode | None = None

    @property
    def duration_s(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    def fingerprint(self) -> tuple:
        """Result content without timestamps, for idempotence checks."""
        return (
            self.action.name,
            self.outcome,
            self.reason,
            self.output,
            self.commands,
            self.exit_code,
        )

    def summary_line(self) -> str:
        line = f"{self.action.name}: {self.outcome.value}"
        if self.reason:
            line += f" ({self.reason})"
        return line

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.name,
            "outcome": self.outcome.value,
            "mode": self.mode.value if self.mode else None,
            "reason": self.reason,
            "started_at": self.started_at.isoformat(timespec="seconds"),
            "finished_at": self.finished_at.isoformat(timespec="seconds"),
            "commands": list(self.commands),
            "exit_code": self.exit_code,
        }


@dataclass(frozen=True)
class RunReport:
    """Immutable summary built at the end of a run or interactive session."""

    results: tuple[RunResult, ...]
    log_path: str
    mode: ExecutionMode = ExecutionMode.NORMAL
    freed_bytes: int | None = None
    interrupted: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "results", tuple(self.results))

    def count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    @property
    def succeeded(self) -> int:
        return self.count(Outcome.SUCCEEDED)

    @property
    def failed(self) -> int:
        return self.count(Outcome.FAILED)

    @property
    def skipped(self) -> int:
        return self.count(Outcome.SKIPPED)

    @property
    def modes(self) -> tuple[ExecutionMode, ...]:
        """Modes the results ran under, in first-use order."""
        seen: list[ExecutionMode] = []
        for result in self.results:
            if result.mode is not None and result.mode not in seen:
                seen.append(result.mode)
        return tuple(seen)

    @property
    def mixed_modes(self) -> bool:
        return len(self.modes) > 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "modes": [m.value for m in self.modes],
            "log_path": self.log_path,
            "freed_bytes": self.freed_bytes,
            "interrupted": self.interrupted,
            "summary": {
                "succeeded": self.succeeded,
                "failed": self.failed,
                "skipped": self.skipped,
            },
            "results": [r.to_dict() for r in self.results],
        }
