"""Reporters package - terminal rendering of environments, actions and runs."""

from rich.console import Console

from power_cleaner.reporters.base import BaseReporter
from power_cleaner.reporters.json_reporter import JsonReporter
from power_cleaner.reporters.plain_reporter import PlainReporter
from power_cleaner.reporters.rich_reporter import RichReporter

REPORTERS: dict[str, type[BaseReporter]] = {
    "rich": RichReporter,
    "plain": PlainReporter,
    "json": JsonReporter,
}


def get_reporter(fmt: str, console: Console, show_output: bool = False) -> BaseReporter:
    """Reporter for ``fmt`` (rich, plain or json)."""
    return REPORTERS[fmt](console, show_output=show_output)


__all__ = ["BaseReporter", "JsonReporter", "PlainReporter", "REPORTERS", "RichReporter", "get_reporter"]
