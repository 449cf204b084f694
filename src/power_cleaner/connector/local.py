"""Local Connector - runs commands on this host.

This module handles all process execution. Nothing else in power-cleaner
spawns processes; the execution gate decides *whether* a command runs, the
connector only decides *how*.
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field

from power_cleaner.model.command import Command

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result of a command execution."""

    command: str
    stdout: str
    stderr: str
    exit_code: int
    success: bool = field(init=False)

    def __post_init__(self) -> None:
        self.success = self.exit_code == 0

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout.rstrip(), self.stderr.rstrip()) if part)


class LocalConnector:
    """Process runner for the local machine.

    Example:
        >>> connector = LocalConnector(use_sudo=False)
        >>> result = connector.run(cmd("uname", "-m"))
        >>> print(result.stdout)
    """

    def __init__(self, use_sudo: bool = True, timeout: float | None = None, is_root: bool | None = None) -> None:
        self.use_sudo = use_sudo
        self.timeout = timeout
        if is_root is None:
            is_root = hasattr(os, "geteuid") and os.geteuid() == 0
        self.is_root = is_root

    def which(self, program: str) -> str | None:
        """Resolve ``program`` against PATH."""
        return shutil.which(program)

    def argv_for(self, command: Command) -> list[str]:
        """Final argv, with sudo prepended for root commands when needed."""
        argv = list(command.argv)
        if command.root and self.use_sudo and not self.is_root:
            argv = ["sudo", *argv]
        return argv

    def render(self, command: Command) -> str:
        """Command line exactly as :meth:`run` would execute it."""
        return Command(tuple(self.argv_for(command))).render()

    def run(self, command: Command, timeout: float | None = None) -> CommandResult:
        """Execute a command and capture its output.

        A missing program or a timeout is reported as a failed CommandResult
        rather than raised. KeyboardInterrupt propagates after the child has
        been killed.

        Args:
            command: The command to execute.
            timeout: Seconds before the child is killed. Defaults to the
                connector timeout.

        Returns:
            CommandResult with stdout, stderr, and exit_code.
        """
        argv = self.argv_for(command)
        rendered = Command(tuple(argv)).render()
        cmd_timeout = timeout if timeout is not None else self.timeout
        logger.debug("Executing: %s", rendered)

        try:
            proc = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=cmd_timeout,
                check=False,
            )
        except FileNotFoundError as e:
            return CommandResult(command=rendered, stdout="", stderr=str(e), exit_code=127)
        except subprocess.TimeoutExpired:
            return CommandResult(
                command=rendered,
                stdout="",
                stderr=f"Timed out after {cmd_timeout}s",
                exit_code=124,
            )

        logger.debug("Exit status %s: %s", proc.returncode, rendered)
        return CommandResult(
            command=rendered,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            exit_code=proc.returncode,
        )
