"""Environment Scanner - classifies the host and finds available tools.

This scanner collects facts without deciding anything: it reads OS release
metadata, maps it to a package manager variant and resolves tool names on
the executable search path. The first probe is cached for the lifetime of
the scanner; an environment is assumed stable during one invocation.
"""

from __future__ import annotations

import logging
import os
import platform
import shlex
from collections.abc import Iterable
from pathlib import Path

from power_cleaner.connector.local import LocalConnector
from power_cleaner.model.environment import Environment
from power_cleaner.model.package_manager import ALL_MANAGERS, FLATPAK, manager_for

logger = logging.getLogger(__name__)

OS_RELEASE_PATHS = (Path("/etc/os-release"), Path("/usr/lib/os-release"))

# Probed on every host regardless of the registered actions
BASE_TOOLS = ("sh", "sudo", "find", "du")


def parse_os_release(text: str) -> dict[str, str]:
    """Parse os-release ``KEY=value`` lines, honouring shell quoting."""
    data: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        try:
            parts = shlex.split(raw)
        except ValueError:
            parts = [raw.strip("\"'")]
        data[key.strip()] = parts[0] if parts else ""
    return data


class EnvironmentScanner:
    """Scanner for host identity and tool availability."""

    def __init__(
        self,
        connector: LocalConnector,
        os_release_paths: Iterable[Path] = OS_RELEASE_PATHS,
        system: str | None = None,
        machine: str | None = None,
    ) -> None:
        self.connector = connector
        self.os_release_paths = tuple(Path(p) for p in os_release_paths)
        self.system = system if system is not None else platform.system()
        self.machine = machine if machine is not None else platform.machine()
        self._cached: Environment | None = None

    def read_os_release(self) -> dict[str, str]:
        for path in self.os_release_paths:
            try:
                return parse_os_release(path.read_text(encoding="utf-8", errors="replace"))
            except OSError:
                continue
        return {}

    def probe(self, tools: Iterable[str] = ()) -> Environment:
        """Detect the environment once and return the cached snapshot afterwards.

        Args:
            tools: Tool names used by the registered actions.

        Returns:
            The Environment. An unclassifiable host still yields a result,
            with an unknown package manager.
        """
        if self._cached is not None:
            return self._cached

        os_family = self.system.lower() or "unknown"
        release: dict[str, str] = {}
        if os_family == "linux":
            release = self.read_os_release()

        distro_id = release.get("ID", "").lower() or os_family
        distro_like = tuple(release.get("ID_LIKE", "").lower().split())
        manager = manager_for(distro_id, distro_like)

        wanted = set(tools) | set(BASE_TOOLS)
        for pm in (*ALL_MANAGERS, FLATPAK):
            wanted.update(pm.tools())
        available = frozenset(t for t in sorted(wanted) if t and self.connector.which(t))

        self._cached = Environment(
            distro_id=distro_id,
            package_manager=manager,
            available_commands=available,
            distro_like=distro_like,
            os_family=os_family,
            pretty_name=release.get("PRETTY_NAME", ""),
            arch=self.machine,
            is_root=self.connector.is_root,
        )
        logger.info(
            "Environment: distro=%s package_manager=%s arch=%s tools=%d/%d",
            distro_id,
            manager.name,
            self.machine,
            len(available),
            len(wanted),
        )
        missing = sorted(t for t in wanted if t and t not in available)
        if missing:
            logger.debug("Tools not found: %s", ", ".join(missing))
        return self._cached


def host_home() -> Path:
    """Home directory of the invoking user, even under sudo."""
    sudo_user = os.environ.get("SUDO_USER")
    if sudo_user and sudo_user != "root":
        candidate = Path("~" + sudo_user).expanduser()
        if candidate.exists():
            return candidate
    return Path.home()
