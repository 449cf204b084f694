"""Command dataclass - one external invocation an action wants to run."""

import shlex
from dataclasses import dataclass


@dataclass(frozen=True)
class Command:
    """A single external command.

    Attributes:
        argv: Program and arguments, never passed through a shell unless the
            program itself is a shell.
        root: Whether the command needs elevated privileges.
        description: Optional human-readable label.
    """

    argv: tuple[str, ...]
    root: bool = False
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "argv", tuple(str(a) for a in self.argv))
        if not self.argv:
            raise ValueError("Command must have at least a program name")

    @property
    def program(self) -> str:
        return self.argv[0]

    def render(self) -> str:
        """Shell-quoted command line for logs and dry-run output."""
        return shlex.join(self.argv)

    def __str__(self) -> str:
        return self.render()


def cmd(*argv: str, root: bool = False, description: str = "") -> Command:
    """Shorthand constructor: ``cmd("apt-get", "clean", root=True)``."""
    return Command(argv=tuple(argv), root=root, description=description)


def shell(script: str, root: bool = False, description: str = "") -> Command:
    """Wrap a pipeline that genuinely needs a shell in ``sh -c``."""
    return Command(argv=("sh", "-c", script), root=root, description=description)
