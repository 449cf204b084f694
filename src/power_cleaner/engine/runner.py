"""Runner - sequences actions through the gate and emits the run report.

Strictly sequential: several actions wrap package managers that hold an
exclusive system lock, so one external process finishes before the next
starts. A failed action never stops the run; an interrupt does, after the
partial result has been recorded.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from power_cleaner.actions.registry import ActionRegistry
from power_cleaner.config import RunConfig
from power_cleaner.engine.gate import ExecutionGate
from power_cleaner.exceptions import ActionNotFound, PowerCleanerError, RunInterrupted
from power_cleaner.model.action import Action, ExecutionMode, Outcome, RunReport, RunResult
from power_cleaner.runlog import log_structured
from power_cleaner.scanner.disk import DiskTracker, describe_delta

logger = logging.getLogger(__name__)

PromptFn = Callable[[str], str]
NotifyFn = Callable[[str], None]

QUIT_CHOICES = {"q", "quit", "exit", "0"}


class Runner:
    """Runs registered actions one at a time.

    Args:
        registry: Actions, in menu order.
        gate: Execution gate every action goes through.
        config: Run context.
        tracker: Used-space snapshots for the freed-bytes figure.
        notify: Receives one line per result in interactive sessions.
    """

    def __init__(
        self,
        registry: ActionRegistry,
        gate: ExecutionGate,
        config: RunConfig,
        tracker: DiskTracker | None = None,
        notify: NotifyFn | None = None,
    ) -> None:
        self.registry = registry
        self.gate = gate
        self.config = config
        self.tracker = tracker
        self.notify = notify or logger.info

    # ------------------------------------------------------------------
    # Single action / full run
    # ------------------------------------------------------------------

    def run_one(self, name: str, mode: ExecutionMode | None = None, auto_confirm: bool | None = None) -> RunResult:
        """Invoke one action by name.

        Raises:
            ActionNotFound: Unknown name.
            RunInterrupted: Interrupted while the action was executing.
        """
        action = self.registry.get(name)
        return self._invoke(action, mode, auto_confirm)

    def run_all(self, mode: ExecutionMode | None = None, auto_confirm: bool | None = None) -> RunReport:
        """Invoke every registered action in registration order."""
        mode = mode or self.config.mode
        logger.info("Starting full run (%s, %d actions)", mode.value, len(self.registry))
        return self._run_sequence(self.registry.all(), mode, auto_confirm)

    def run_selected(self, names: list[str], mode: ExecutionMode | None = None, auto_confirm: bool | None = None) -> RunReport:
        """Invoke the named actions, in the order given.

        Raises:
            ActionNotFound: Before anything runs, if any name is unknown.
        """
        actions = [self.registry.get(n) for n in names]
        return self._run_sequence(actions, mode or self.config.mode, auto_confirm)

    def _run_sequence(self, actions: list[Action], mode: ExecutionMode, auto_confirm: bool | None) -> RunReport:
        self._start_tracking()
        results: list[RunResult] = []
        interrupted = False
        for action in actions:
            try:
                results.append(self._invoke(action, mode, auto_confirm))
            except RunInterrupted as e:
                results.append(e.result)
                interrupted = True
                break
            except KeyboardInterrupt:
                interrupted = True
                break
        return self.finish(results, mode, interrupted)

    # ------------------------------------------------------------------
    # Interactive session
    # ------------------------------------------------------------------

    def menu_text(self, dry_run: bool, verify: bool) -> str:
        lines = ["Select action:"]
        for i, action in enumerate(self.registry.all(), start=1):
            lines.append(f"  {i:>2}) {action.description} [{action.name}]")
        lines.append("   a) Run all")
        lines.append(f"   d) Toggle dry-run (now: {dry_run})")
        lines.append(f"   v) Toggle verify (now: {verify})")
        lines.append("   q) Exit")
        return "\n".join(lines)

    def run_interactive(self, prompt: PromptFn) -> RunReport:
        """Selection loop: ask, run through the gate, repeat until quit.

        Args:
            prompt: Shows the menu text and returns the user's choice.
                EOF (``EOFError``) counts as quit.

        Returns:
            The session report, built when the user quits.
        """
        dry_run = self.config.mode is ExecutionMode.DRY_RUN
        verify = self.config.mode is ExecutionMode.VERIFY
        self._start_tracking()
        results: list[RunResult] = []
        interrupted = False

        def current_mode() -> ExecutionMode:
            if verify:
                return ExecutionMode.VERIFY
            if dry_run:
                return ExecutionMode.DRY_RUN
            return ExecutionMode.NORMAL

        try:
            while True:
                try:
                    choice = prompt(self.menu_text(dry_run, verify)).strip().lower()
                except EOFError:
                    break

                if choice in QUIT_CHOICES:
                    logger.info("Exiting interactive session")
                    break
                if choice == "d":
                    dry_run = not dry_run
                    logger.info("Dry-run: %s", dry_run)
                    self.notify(f"Dry-run: {dry_run}")
                    continue
                if choice == "v":
                    verify = not verify
                    logger.info("Verify: %s", verify)
                    self.notify(f"Verify: {verify}")
                    continue

                if choice == "a":
                    selected = self.registry.all()
                else:
                    action = self._resolve_choice(choice)
                    if action is None:
                        logger.error("Invalid choice: %s", choice)
                        self.notify(f"Invalid choice: {choice}")
                        continue
                    selected = [action]

                for action in selected:
                    result = self._invoke(action, current_mode(), None)
                    results.append(result)
                    self.notify(result.summary_line())
        except RunInterrupted as e:
            results.append(e.result)
            interrupted = True
        except KeyboardInterrupt:
            interrupted = True

        return self.finish(results, current_mode(), interrupted)

    def _resolve_choice(self, choice: str) -> Action | None:
        actions = self.registry.all()
        if choice.isdigit():
            index = int(choice)
            if 1 <= index <= len(actions):
                return actions[index - 1]
            return None
        try:
            return self.registry.get(choice)
        except ActionNotFound:
            return None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _invoke(self, action: Action, mode: ExecutionMode | None, auto_confirm: bool | None) -> RunResult:
        try:
            return self.gate.invoke(action, mode, auto_confirm)
        except (RunInterrupted, KeyboardInterrupt):
            raise
        except Exception as e:
            # The gate converts action errors itself; this only guards the report
            now = datetime.now()
            logger.error("FAILED %s: unexpected error: %s", action.name, e)
            return RunResult(
                action=action,
                outcome=Outcome.FAILED,
                started_at=now,
                finished_at=now,
                reason=f"error: {e}",
                mode=mode or self.config.mode,
            )

    def _start_tracking(self) -> None:
        if self.tracker is None:
            return
        try:
            self.tracker.start()
        except PowerCleanerError as e:
            logger.warning("%s", e)

    def finish(self, results: list[RunResult], mode: ExecutionMode, interrupted: bool = False) -> RunReport:
        """Build the immutable report and append it to the run log."""
        freed = self.tracker.freed() if self.tracker is not None else None
        report = RunReport(
            results=tuple(results),
            log_path=str(self.config.log_path),
            mode=mode,
            freed_bytes=freed,
            interrupted=interrupted,
        )
        if interrupted:
            logger.warning("Run interrupted after %d action(s)", len(results))
        summary = f"Run finished: {report.succeeded} succeeded, {report.failed} failed, {report.skipped} skipped"
        if freed is not None:
            summary += f", {describe_delta(freed)}"
        logger.info(summary)
        if report.mixed_modes:
            logger.info("Session modes: %s", ", ".join(m.value for m in report.modes))
        log_structured("REPORT", report.to_dict())
        return report
