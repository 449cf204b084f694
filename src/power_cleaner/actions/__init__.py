"""Actions package - the registry and the built-in catalogues.

The registry is populated entirely in-process at startup; nothing is
generated on disk.
"""

from collections.abc import Callable, Iterable

from power_cleaner.actions.cleanup import cleanup_actions
from power_cleaner.actions.install import install_actions
from power_cleaner.actions.registry import ActionRegistry
from power_cleaner.model.action import Action

CATALOGS: dict[str, Callable[[], list[Action]]] = {
    "cleanup": cleanup_actions,
    "install": install_actions,
}


def build_registry(catalogs: Iterable[str] = ("cleanup",)) -> ActionRegistry:
    """Registry holding the named catalogues in order.

    Raises:
        KeyError: For an unknown catalogue name.
        DuplicateAction: If two catalogues share an action name.
    """
    registry = ActionRegistry()
    for name in catalogs:
        for action in CATALOGS[name]():
            registry.register(action)
    return registry


__all__ = ["ActionRegistry", "CATALOGS", "build_registry", "cleanup_actions", "install_actions"]
