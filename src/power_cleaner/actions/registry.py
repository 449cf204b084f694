"""Action registry - the static catalogue of maintenance actions.

Registration is append-only and happens at startup. Iteration order is
registration order; it drives the interactive menu and run-all.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from power_cleaner.exceptions import ActionNotFound, DuplicateAction
from power_cleaner.model.action import Action


class ActionRegistry:
    """Ordered, append-only collection of actions keyed by name."""

    def __init__(self, actions: Iterable[Action] = ()) -> None:
        self._actions: dict[str, Action] = {}
        for action in actions:
            self.register(action)

    def register(self, action: Action) -> Action:
        """Add an action.

        Raises:
            DuplicateAction: If the name is already registered.
        """
        if action.name in self._actions:
            raise DuplicateAction(action.name)
        self._actions[action.name] = action
        return action

    def get(self, name: str) -> Action:
        try:
            return self._actions[name]
        except KeyError:
            raise ActionNotFound(name) from None

    def all(self) -> list[Action]:
        return list(self._actions.values())

    def names(self) -> list[str]:
        return list(self._actions)

    def required_commands(self) -> set[str]:
        """Union of every action's required tools."""
        tools: set[str] = set()
        for action in self._actions.values():
            tools.update(action.required_commands)
        return tools

    def __contains__(self, name: object) -> bool:
        return name in self._actions

    def __iter__(self) -> Iterator[Action]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._actions)
