"""Package manager variants.

A closed set of package managers sharing one capability interface. Actions
never branch on a manager's name; they ask the detected variant for the
commands it would run.
"""

from __future__ import annotations

import re
from typing import ClassVar

from power_cleaner.model.command import Command, cmd, shell

_SIZE_UNITS = {
    "b": 1,
    "kb": 1000,
    "kib": 1024,
    "mb": 1000**2,
    "mib": 1024**2,
    "gb": 1000**3,
    "gib": 1024**3,
    "tb": 1000**4,
    "tib": 1024**4,
}

_SIZE_RE = re.compile(r"([0-9]+(?:[.,][0-9]+)?)\s*([A-Za-z]*)")


def parse_size(text: str) -> int | None:
    """Parse a human-readable size (``12.34 MiB``, ``1.2 GB``) into bytes."""
    match = _SIZE_RE.fullmatch(text.strip())
    if not match:
        return None
    unit = match.group(2).lower() or "b"
    if unit not in _SIZE_UNITS:
        return None
    return int(float(match.group(1).replace(",", ".")) * _SIZE_UNITS[unit])


class PackageManager:
    """Capability interface implemented by every variant.

    The base class doubles as the behaviour of an unknown manager: no binary
    and no commands.
    """

    name: ClassVar[str] = "unknown"
    binary: ClassVar[str | None] = None
    cache_dir: ClassVar[str | None] = None
    # Tools behind is_installed() and clean_cache() when they are not the binary
    query_tool: ClassVar[str | None] = None
    cache_tool: ClassVar[str | None] = None
    # Programs behind package_sizes() and manual_packages()
    size_tools: ClassVar[tuple[str, ...]] = ()
    # Programs the shell pipelines in remove_unused() rely on
    script_tools: ClassVar[tuple[str, ...]] = ()
    # Bytes per unit of the size column package_sizes() prints
    size_unit: ClassVar[int] = 1

    @property
    def known(self) -> bool:
        return self.binary is not None

    @property
    def query_program(self) -> str | None:
        return self.query_tool or self.binary

    @property
    def cache_program(self) -> str | None:
        return self.cache_tool or self.binary

    def tools(self) -> set[str]:
        """Every program this variant's commands may invoke."""
        base = (self.binary, self.query_program, self.cache_program)
        return {t for t in (*base, *self.size_tools, *self.script_tools) if t}

    def clean_cache(self) -> list[Command]:
        return []

    def remove_unused(self) -> list[Command]:
        return []

    def preview_remove_unused(self) -> list[Command]:
        return []

    def refresh(self) -> list[Command]:
        return []

    def install(self, package: str) -> list[Command]:
        return []

    def remove(self, package: str) -> list[Command]:
        return []

    def is_installed(self, package: str) -> Command | None:
        """Command whose zero exit status means ``package`` is installed."""
        return None

    def package_sizes(self) -> Command | None:
        """Read-only listing of installed packages and their sizes."""
        return None

    def manual_packages(self) -> Command | None:
        """Read-only listing of explicitly installed package names.

        None when package_sizes() already lists only those, or when the
        manager does not track it.
        """
        return None

    def parse_sizes(self, output: str) -> list[tuple[int, str]]:
        """Parse ``size<TAB>name`` lines into (bytes, name) pairs.

        Lines without a numeric size (packages in a removed state, ...) are
        dropped.
        """
        sizes = []
        for line in output.splitlines():
            size, _, name = line.strip().partition("\t")
            if size.isdigit() and name.strip():
                sizes.append((int(size) * self.size_unit, name.strip()))
        return sizes

    def install_missing(self, package: str) -> Command | None:
        """Best-effort install of ``package`` unless already present.

        The generated pipeline never fails; a failed install is echoed so it
        lands in the captured output.
        """
        check = self.is_installed(package)
        install = self.install(package)
        if check is None or not install:
            return None
        return shell(
            f"if {check.render()} >/dev/null 2>&1; then echo 'Already installed: {package}'; "
            f"else echo 'Installing: {package}'; {install[0].render()} || echo 'Failed to install: {package}'; fi",
            root=True,
            description=f"install {package}",
        )

    def remove_if_installed(self, package: str) -> Command | None:
        """Remove ``package`` only when it is present."""
        check = self.is_installed(package)
        remove = self.remove(package)
        if check is None or not remove:
            return None
        return shell(
            f"if {check.render()} >/dev/null 2>&1; then {remove[0].render()}; "
            f"else echo 'Not installed: {package}'; fi",
            root=True,
            description=f"remove {package}",
        )

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class UnknownManager(PackageManager):
    """Host whose package manager could not be classified."""


class Apt(PackageManager):
    name = "apt"
    binary = "apt-get"
    cache_dir = "/var/cache/apt/archives"
    query_tool = "dpkg"
    size_tools = ("dpkg-query", "apt-mark")
    size_unit = 1024  # Installed-Size is in KiB

    def clean_cache(self) -> list[Command]:
        return [cmd("apt-get", "clean", root=True), cmd("apt-get", "-y", "autoclean", root=True)]

    def remove_unused(self) -> list[Command]:
        return [cmd("apt-get", "-y", "autoremove", "--purge", root=True)]

    def preview_remove_unused(self) -> list[Command]:
        return [cmd("apt-get", "-s", "autoremove")]

    def refresh(self) -> list[Command]:
        return [cmd("apt-get", "update", "-y", root=True)]

    def install(self, package: str) -> list[Command]:
        return [cmd("apt-get", "install", "-y", package, root=True)]

    def remove(self, package: str) -> list[Command]:
        return [cmd("apt-get", "remove", "--purge", "-y", package, root=True)]

    def is_installed(self, package: str) -> Command | None:
        return cmd("dpkg", "-s", package)

    def package_sizes(self) -> Command | None:
        return cmd("dpkg-query", "-W", "-f=${Installed-Size}\\t${Package}\\n")

    def manual_packages(self) -> Command | None:
        return cmd("apt-mark", "showmanual")


class Dnf(PackageManager):
    name = "dnf"
    binary = "dnf"
    cache_dir = "/var/cache/dnf"
    query_tool = "rpm"
    size_tools = ("rpm",)

    def clean_cache(self) -> list[Command]:
        return [cmd("dnf", "clean", "all", root=True)]

    def remove_unused(self) -> list[Command]:
        return [cmd("dnf", "autoremove", "-y", root=True)]

    def preview_remove_unused(self) -> list[Command]:
        return [cmd("dnf", "autoremove", "--assumeno")]

    def refresh(self) -> list[Command]:
        return [cmd("dnf", "makecache", root=True)]

    def install(self, package: str) -> list[Command]:
        return [cmd("dnf", "install", "-y", package, root=True)]

    def remove(self, package: str) -> list[Command]:
        return [cmd("dnf", "erase", "-y", package, root=True)]

    def is_installed(self, package: str) -> Command | None:
        return cmd("rpm", "-q", package)

    def package_sizes(self) -> Command | None:
        return cmd("rpm", "-qa", "--queryformat", "%{SIZE}\\t%{NAME}\\n")


class Pacman(PackageManager):
    name = "pacman"
    binary = "pacman"
    cache_dir = "/var/cache/pacman/pkg"
    size_tools = ("pacman",)
    script_tools = ("sh",)

    def clean_cache(self) -> list[Command]:
        return [cmd("pacman", "-Sc", "--noconfirm", root=True)]

    def remove_unused(self) -> list[Command]:
        # pacman -Qdtq exits 1 when there are no orphans
        return [
            shell(
                "orphans=$(pacman -Qdtq) || exit 0; pacman -Rns --noconfirm $orphans",
                root=True,
                description="remove orphaned packages",
            )
        ]

    def preview_remove_unused(self) -> list[Command]:
        return [cmd("pacman", "-Qdt")]

    def refresh(self) -> list[Command]:
        return [cmd("pacman", "-Sy", root=True)]

    def install(self, package: str) -> list[Command]:
        return [cmd("pacman", "-S", "--needed", "--noconfirm", package, root=True)]

    def remove(self, package: str) -> list[Command]:
        return [cmd("pacman", "-Rs", "--noconfirm", package, root=True)]

    def is_installed(self, package: str) -> Command | None:
        return cmd("pacman", "-Qi", package)

    def package_sizes(self) -> Command | None:
        # -e: explicitly installed only
        return cmd("pacman", "-Qei")

    def parse_sizes(self, output: str) -> list[tuple[int, str]]:
        """Pair each ``Name`` field with the ``Installed Size`` after it."""
        sizes = []
        name = None
        for line in output.splitlines():
            key, sep, value = line.partition(":")
            if not sep:
                continue
            key = key.strip()
            if key == "Name":
                name = value.strip()
            elif key == "Installed Size" and name:
                size = parse_size(value)
                if size is not None:
                    sizes.append((size, name))
                name = None
        return sizes


class Zypper(PackageManager):
    name = "zypper"
    binary = "zypper"
    cache_dir = "/var/cache/zypp"
    query_tool = "rpm"
    size_tools = ("rpm",)
    script_tools = ("sh", "awk", "xargs")

    def clean_cache(self) -> list[Command]:
        return [cmd("zypper", "clean", "--all", root=True)]

    def remove_unused(self) -> list[Command]:
        return [
            shell(
                "zypper --non-interactive packages --unneeded | awk -F'|' 'NR>4 {gsub(/ /, \"\", $3); print $3}' "
                "| xargs -r zypper --non-interactive rm --clean-deps",
                root=True,
                description="remove unneeded packages",
            )
        ]

    def preview_remove_unused(self) -> list[Command]:
        return [cmd("zypper", "--non-interactive", "packages", "--unneeded")]

    def refresh(self) -> list[Command]:
        return [cmd("zypper", "--non-interactive", "refresh", root=True)]

    def install(self, package: str) -> list[Command]:
        return [cmd("zypper", "--non-interactive", "install", package, root=True)]

    def remove(self, package: str) -> list[Command]:
        return [cmd("zypper", "rm", "-y", package, root=True)]

    def is_installed(self, package: str) -> Command | None:
        return cmd("rpm", "-q", package)

    def package_sizes(self) -> Command | None:
        return cmd("rpm", "-qa", "--queryformat", "%{SIZE}\\t%{NAME}\\n")


class Apk(PackageManager):
    name = "apk"
    binary = "apk"
    cache_dir = "/var/cache/apk"

    def clean_cache(self) -> list[Command]:
        return [cmd("apk", "cache", "clean", root=True)]

    # apk drops orphaned dependencies on removal, nothing left to autoremove

    def preview_remove_unused(self) -> list[Command]:
        return [cmd("apk", "stats")]

    def refresh(self) -> list[Command]:
        return [cmd("apk", "update", root=True)]

    def install(self, package: str) -> list[Command]:
        return [cmd("apk", "add", package, root=True)]

    def remove(self, package: str) -> list[Command]:
        return [cmd("apk", "del", package, root=True)]

    def is_installed(self, package: str) -> Command | None:
        return cmd("apk", "info", "-e", package)


class Emerge(PackageManager):
    name = "emerge"
    binary = "emerge"
    cache_dir = "/var/cache/distfiles"
    query_tool = "portageq"
    cache_tool = "eclean"

    def clean_cache(self) -> list[Command]:
        return [cmd("eclean", "--deep", "distfiles", root=True)]

    def remove_unused(self) -> list[Command]:
        return [cmd("emerge", "--depclean", root=True)]

    def preview_remove_unused(self) -> list[Command]:
        return [cmd("emerge", "--pretend", "--depclean")]

    def refresh(self) -> list[Command]:
        return [cmd("emerge", "--sync", root=True)]

    def install(self, package: str) -> list[Command]:
        return [cmd("emerge", "--noreplace", package, root=True)]

    def remove(self, package: str) -> list[Command]:
        return [cmd("emerge", "--unmerge", package, root=True)]

    def is_installed(self, package: str) -> Command | None:
        return cmd("portageq", "has_version", "/", package)


class Flatpak(PackageManager):
    """Flatpak applications.

    Not a distro manager, so it is never classified from os-release; it is
    the package listing of last resort.
    """

    name = "flatpak"
    binary = "flatpak"
    size_tools = ("flatpak",)

    def remove(self, package: str) -> list[Command]:
        return [cmd("flatpak", "uninstall", "-y", package)]

    def is_installed(self, package: str) -> Command | None:
        return cmd("flatpak", "info", package)

    def package_sizes(self) -> Command | None:
        return cmd("flatpak", "list", "--app", "--columns=application,size")

    def parse_sizes(self, output: str) -> list[tuple[int, str]]:
        sizes = []
        for line in output.splitlines():
            parts = line.split(None, 1)
            if len(parts) != 2:
                continue
            size = parse_size(parts[1])
            if size is not None:
                sizes.append((size, parts[0]))
        return sizes


UNKNOWN = UnknownManager()
FLATPAK = Flatpak()

ALL_MANAGERS: tuple[PackageManager, ...] = (Apt(), Dnf(), Pacman(), Zypper(), Apk(), Emerge())

# Distro ID -> manager. Matched against ID first, then each ID_LIKE entry.
DISTRO_FAMILIES: dict[str, PackageManager] = {
    "debian": ALL_MANAGERS[0],
    "ubuntu": ALL_MANAGERS[0],
    "kali": ALL_MANAGERS[0],
    "raspbian": ALL_MANAGERS[0],
    "linuxmint": ALL_MANAGERS[0],
    "pop": ALL_MANAGERS[0],
    "elementary": ALL_MANAGERS[0],
    "fedora": ALL_MANAGERS[1],
    "rhel": ALL_MANAGERS[1],
    "centos": ALL_MANAGERS[1],
    "rocky": ALL_MANAGERS[1],
    "almalinux": ALL_MANAGERS[1],
    "arch": ALL_MANAGERS[2],
    "manjaro": ALL_MANAGERS[2],
    "endeavouros": ALL_MANAGERS[2],
    "opensuse": ALL_MANAGERS[3],
    "suse": ALL_MANAGERS[3],
    "sles": ALL_MANAGERS[3],
    "alpine": ALL_MANAGERS[4],
    "gentoo": ALL_MANAGERS[5],
}


def manager_for(distro_id: str, distro_like: tuple[str, ...] = ()) -> PackageManager:
    """Classify a distro into a package manager variant.

    Args:
        distro_id: The ``ID`` field of os-release (lowercase).
        distro_like: The ``ID_LIKE`` entries, most specific first.

    Returns:
        The matching variant, or ``UNKNOWN``.
    """
    for candidate in (distro_id, *distro_like):
        candidate = candidate.strip().lower()
        if not candidate:
            continue
        if candidate in DISTRO_FAMILIES:
            return DISTRO_FAMILIES[candidate]
        # opensuse-leap, opensuse-tumbleweed, ...
        family = candidate.split("-", 1)[0]
        if family in DISTRO_FAMILIES:
            return DISTRO_FAMILIES[family]
    return UNKNOWN


def manager_by_name(name: str) -> PackageManager:
    """Look up a variant by its short name (``apt``, ``dnf``, ...)."""
    for manager in ALL_MANAGERS:
        if manager.name == name:
            return manager
    return UNKNOWN
