"""Model package - Core data structures for power-cleaner."""

from power_cleaner.model.command import Command, cmd, shell
from power_cleaner.model.package_manager import (
    ALL_MANAGERS,
    UNKNOWN,
    Apk,
    Apt,
    Dnf,
    Emerge,
    PackageManager,
    Pacman,
    UnknownManager,
    Zypper,
    manager_by_name,
    manager_for,
)
from power_cleaner.model.action import (
    Action,
    ActionContext,
    ExecutionMode,
    Outcome,
    RunReport,
    RunResult,
)
from power_cleaner.model.environment import Environment

__all__ = [
    "ALL_MANAGERS",
    "Action",
    "ActionContext",
    "Apk",
    "Apt",
    "Command",
    "Dnf",
    "Emerge",
    "Environment",
    "ExecutionMode",
    "Outcome",
    "PackageManager",
    "Pacman",
    "RunReport",
    "RunResult",
    "UNKNOWN",
    "UnknownManager",
    "Zypper",
    "cmd",
    "manager_by_name",
    "manager_for",
    "shell",
]
