"""Environment dataclass - what the host looks like for this run."""

from collections.abc import Iterable
from dataclasses import dataclass, field

from power_cleaner.model.package_manager import UNKNOWN, PackageManager


@dataclass(frozen=True)
class Environment:
    """Snapshot of the host, computed once at startup and never re-probed.

    Attributes:
        distro_id: os-release ``ID`` (or the platform name off Linux).
        package_manager: Detected variant, ``UNKNOWN`` when unclassified.
        available_commands: Tools found on the executable search path.
        distro_like: os-release ``ID_LIKE`` entries.
        os_family: ``linux``, ``darwin``, ``windows``...
        pretty_name: os-release ``PRETTY_NAME`` for display.
        arch: Machine architecture (``uname -m``).
        is_root: Whether the process runs with uid 0.
    """

    distro_id: str
    package_manager: PackageManager = UNKNOWN
    available_commands: frozenset[str] = field(default_factory=frozenset)
    distro_like: tuple[str, ...] = ()
    os_family: str = "linux"
    pretty_name: str = ""
    arch: str = ""
    is_root: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "available_commands", frozenset(self.available_commands))
        object.__setattr__(self, "distro_like", tuple(self.distro_like))

    @property
    def classified(self) -> bool:
        return self.package_manager.known

    def has(self, command: str) -> bool:
        return command in self.available_commands

    def missing(self, commands: Iterable[str]) -> list[str]:
        """Sorted list of ``commands`` that are not available."""
        return sorted(c for c in set(commands) if c not in self.available_commands)

    @property
    def display_name(self) -> str:
        return self.pretty_name or self.distro_id
