"""Execution Gate - the only place where action commands are executed.

Policy, in order:
1. a required command is missing        -> SKIPPED ("missing dependency: X")
2. VERIFY mode                          -> run the verify variant (or log the
                                           intended commands); SUCCEEDED
3. DRY_RUN mode                         -> log "would run" lines; SUCCEEDED
4. interactive without auto-confirm     -> prompt; decline or EOF -> SKIPPED
5. execute; first non-zero exit         -> FAILED, the run carries on

Steps 1-4 never execute anything destructive; only step 5, the verify
variants and the read-only queries builders make reach the connector. A
host interrupt at any step becomes RunInterrupted with a FAILED partial
result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from power_cleaner.config import RunConfig
from power_cleaner.connector.local import CommandResult, LocalConnector
from power_cleaner.exceptions import DependencyMissing, RunInterrupted
from power_cleaner.model.action import Action, ActionContext, ChooseFn, ExecutionMode, Outcome, RunResult
from power_cleaner.model.command import Command
from power_cleaner.model.environment import Environment

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[str], bool]


def _decline(prompt: str) -> bool:
    return False


def _choose_nothing(prompt: str, options: list[tuple[str, str]]) -> list[str]:
    return []


class ExecutionGate:
    """Wraps every action invocation with dry-run, verify and confirmation.

    Args:
        connector: Runs the commands that pass the gate.
        environment: Probed host snapshot.
        config: Run context; supplies the default mode and auto-confirm.
        confirm: Asks the user a yes/no question. Defaults to declining,
            so a gate without a prompt never runs interactive actions
            unless auto-confirm is set.
        choose: Lets the user pick entries from a list (packages to
            remove, ...). Defaults to picking nothing.
        clock: Timestamp source.
    """

    def __init__(
        self,
        connector: LocalConnector,
        environment: Environment,
        config: RunConfig,
        confirm: ConfirmFn | None = None,
        choose: ChooseFn | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.connector = connector
        self.environment = environment
        self.config = config
        self.confirm = confirm or _decline
        self.choose = choose or _choose_nothing
        self.clock = clock

    def missing_dependencies(self, action: Action) -> list[str]:
        """Names of unavailable requirements, sorted."""
        missing = self.environment.missing(action.required_commands)
        if action.needs_package_manager:
            pm = self.environment.package_manager
            if not pm.known:
                missing.insert(0, "package manager")
            elif not self.environment.has(pm.binary):
                missing = sorted({*missing, pm.binary})
        return missing

    def invoke(
        self,
        action: Action,
        mode: ExecutionMode | None = None,
        auto_confirm: bool | None = None,
    ) -> RunResult:
        """Run one action through the gate.

        Returns:
            RunResult stamped with the mode it ran under. Errors raised by
            the action become FAILED results.

        Raises:
            RunInterrupted: The host interrupt arrived while the action was
                prompting or running; carries the FAILED("interrupted")
                partial result.
        """
        mode = mode or self.config.mode
        try:
            result = self._invoke(action, mode, auto_confirm)
        except RunInterrupted as e:
            raise RunInterrupted(replace(e.result, mode=mode)) from None
        return replace(result, mode=mode)

    def _invoke(self, action: Action, mode: ExecutionMode, auto_confirm: bool | None) -> RunResult:
        auto_confirm = self.config.auto_confirm if auto_confirm is None else auto_confirm
        started = self.clock()

        missing = self.missing_dependencies(action)
        if missing:
            return self._result(action, Outcome.SKIPPED, started, reason=f"missing dependency: {', '.join(missing)}")

        ctx = ActionContext(
            environment=self.environment,
            config=self.config.with_mode(mode),
            query=self._query,
            choose=self._pick,
        )
        rendered: tuple[str, ...] = ()
        try:
            if mode is ExecutionMode.VERIFY:
                return self._verify(action, ctx, started)

            commands = action.build(ctx)
            rendered = tuple(self.connector.render(c) for c in commands)

            if mode is ExecutionMode.DRY_RUN:
                for line in rendered:
                    logger.info("DRY-RUN %s would run: %s", action.name, line)
                output = "\n".join(f"would run: {line}" for line in rendered) or "nothing to do"
                return self._result(action, Outcome.SUCCEEDED, started, output=output, commands=rendered)

            if not commands:
                return self._result(action, Outcome.SUCCEEDED, started, output="nothing to do")

            if action.interactive and not auto_confirm:
                question = f"Run '{action.description}'?\n  " + "\n  ".join(rendered)
                if not self._ask(question):
                    return self._result(action, Outcome.SKIPPED, started, reason="declined by user", commands=rendered)

            return self._execute(action, commands, rendered, started)
        except DependencyMissing as e:
            return self._result(action, Outcome.SKIPPED, started, reason=str(e))
        except RunInterrupted:
            raise
        except KeyboardInterrupt:
            partial = self._result(action, Outcome.FAILED, started, reason="interrupted", commands=rendered)
            raise RunInterrupted(partial) from None
        except Exception as e:
            logger.debug("Action %s raised", action.name, exc_info=True)
            return self._result(action, Outcome.FAILED, started, reason=f"error: {e}")

    def _ask(self, question: str) -> bool:
        try:
            return self.confirm(question)
        except EOFError:
            # No terminal to answer on
            logger.info("No answer to confirmation prompt, declining")
            return False

    def _pick(self, prompt: str, options: list[tuple[str, str]]) -> list[str]:
        try:
            return list(self.choose(prompt, options))
        except EOFError:
            logger.info("No answer to selection prompt, nothing selected")
            return []

    def _query(self, command: Command) -> CommandResult:
        """Read-only lookups made by builders, in every mode."""
        if command.root:
            raise ValueError(f"Query must not need root: {command.render()}")
        logger.info("QUERY %s", self.connector.render(command))
        return self.connector.run(command)

    def _verify(self, action: Action, ctx: ActionContext, started: datetime) -> RunResult:
        if action.verify is None:
            rendered = tuple(self.connector.render(c) for c in action.build(ctx))
            for line in rendered:
                logger.info("VERIFY %s would run: %s", action.name, line)
            output = "\n".join(f"would run: {line}" for line in rendered) or "nothing to do"
            return self._result(action, Outcome.SUCCEEDED, started, output=output, commands=rendered)

        checks = action.verify(ctx)
        rendered = tuple(self.connector.render(c) for c in checks)
        outputs = []
        for command, line in zip(checks, rendered):
            logger.info("VERIFY %s: %s", action.name, line)
            result = self._run(action, command, rendered, started)
            outputs.append(f"$ {line} (exit {result.exit_code})")
            if result.output:
                outputs.append(result.output)
        return self._result(
            action,
            Outcome.SUCCEEDED,
            started,
            output="\n".join(outputs) or "nothing to check",
            commands=rendered,
        )

    def _execute(self, action: Action, commands: list[Command], rendered: tuple[str, ...], started: datetime) -> RunResult:
        outputs = []
        for command, line in zip(commands, rendered):
            logger.info("RUN %s: %s", action.name, line)
            result = self._run(action, command, rendered, started)
            if result.output:
                outputs.append(result.output)
            if not result.success:
                return self._result(
                    action,
                    Outcome.FAILED,
                    started,
                    reason=f"exit status {result.exit_code}: {line}",
                    output="\n".join(outputs),
                    commands=rendered,
                    exit_code=result.exit_code,
                )
        return self._result(action, Outcome.SUCCEEDED, started, output="\n".join(outputs), commands=rendered, exit_code=0)

    def _run(self, action: Action, command: Command, rendered: tuple[str, ...], started: datetime):
        try:
            return self.connector.run(command)
        except KeyboardInterrupt:
            partial = self._result(action, Outcome.FAILED, started, reason="interrupted", commands=rendered)
            raise RunInterrupted(partial) from None

    def _result(
        self,
        action: Action,
        outcome: Outcome,
        started: datetime,
        reason: str | None = None,
        output: str = "",
        commands: tuple[str, ...] = (),
        exit_code: int | None = None,
    ) -> RunResult:
        result = RunResult(
            action=action,
            outcome=outcome,
            started_at=started,
            finished_at=self.clock(),
            reason=reason,
            output=output,
            commands=commands,
            exit_code=exit_code,
        )
        if outcome is Outcome.FAILED:
            logger.error("FAILED %s: %s", action.name, reason)
        elif outcome is Outcome.SKIPPED:
            logger.warning("SKIPPED %s: %s", action.name, reason)
        else:
            logger.info("DONE %s", action.name)
        return result
