"""Helpers shared by the action catalogues."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from power_cleaner.exceptions import DependencyMissing
from power_cleaner.model.action import ActionContext
from power_cleaner.model.command import Command, cmd


def require(ctx: ActionContext, *programs: str | None) -> None:
    """Raise DependencyMissing for the first unavailable program.

    For dependencies that are only known once the environment is probed
    (e.g. the package manager's query tool).
    """
    missing = ctx.environment.missing(p for p in programs if p)
    if missing:
        raise DependencyMissing(", ".join(missing))


def existing(paths: Iterable[Path]) -> list[Path]:
    return [p for p in paths if p.exists()]


def find_cmd(paths: Iterable[Path | str], *predicates: str, delete: bool, root: bool = False) -> Command:
    """``find <paths> <predicates> -delete`` or, for previews, ``-print``."""
    return cmd(
        "find",
        *(str(p) for p in paths),
        *predicates,
        "-delete" if delete else "-print",
        root=root,
    )
