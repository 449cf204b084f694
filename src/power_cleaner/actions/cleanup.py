"""Cleanup catalogue - disk reclamation actions.

CONTRACT (every action):
- builds commands only; the execution gate runs them
- lookups a builder needs (package sizes, ...) go through ctx.query and
  must be read-only
- verify variants are read-only (find -print, --disk-usage, --dry-run, ...)
- paths that do not exist are left out, so a clean host has nothing to do
"""

from __future__ import annotations

from pathlib import Path

from power_cleaner.actions.base import existing, find_cmd, require
from power_cleaner.exceptions import DependencyMissing, QueryFailed
from power_cleaner.model.action import Action, ActionContext
from power_cleaner.model.command import Command, cmd, shell
from power_cleaner.model.package_manager import FLATPAK, PackageManager
from power_cleaner.scanner.disk import format_bytes

LOG_DIR = Path("/var/log")
TEMP_DIRS = (Path("/tmp"), Path("/var/tmp"))
LOGROTATE_CONF = "/etc/logrotate.conf"

ROTATED_LOG_PATTERNS = ("*.gz", "*.[0-9]", "*.old", "*.xz")

BROWSER_CACHE_DIRS = (
    ".cache/mozilla",
    ".cache/google-chrome",
    ".cache/chromium",
    ".cache/BraveSoftware",
    ".cache/vivaldi",
)

SNAP_REVISIONS_SCRIPT = (
    "snap list --all | awk '/disabled/{print $1, $3}' | "
    "while read -r name rev; do snap remove \"$name\" --revision=\"$rev\"; done"
)


def _name_group(patterns: tuple[str, ...]) -> list[str]:
    group = ["("]
    for i, pattern in enumerate(patterns):
        if i:
            group.append("-o")
        group.extend(["-name", pattern])
    group.append(")")
    return group


# -- package manager -------------------------------------------------------

def _pm_cache(ctx: ActionContext) -> list[Command]:
    pm = ctx.environment.package_manager
    require(ctx, pm.cache_program)
    return pm.clean_cache()


def _pm_cache_verify(ctx: ActionContext) -> list[Command]:
    pm = ctx.environment.package_manager
    if pm.cache_dir and Path(pm.cache_dir).exists():
        return [cmd("du", "-sh", pm.cache_dir)]
    return []


def _pm_autoremove(ctx: ActionContext) -> list[Command]:
    pm = ctx.environment.package_manager
    require(ctx, *pm.script_tools)
    return pm.remove_unused()


def _pm_autoremove_verify(ctx: ActionContext) -> list[Command]:
    return ctx.environment.package_manager.preview_remove_unused()


def _package_source(ctx: ActionContext) -> PackageManager:
    """The detected manager if it can list sizes, else flatpak."""
    pm = ctx.environment.package_manager
    if pm.package_sizes() is not None and ctx.environment.has(pm.binary):
        require(ctx, *pm.size_tools)
        return pm
    if ctx.environment.has(FLATPAK.binary):
        return FLATPAK
    raise DependencyMissing(f"package size listing for {pm.name}")


def _query_output(ctx: ActionContext, command: Command) -> str:
    result = ctx.query(command)
    if not result.success:
        raise QueryFailed(command.render(), result.exit_code)
    return result.stdout


def _largest_packages(ctx: ActionContext, source: PackageManager) -> list[tuple[str, int]]:
    """(name, bytes) of the biggest explicitly installed packages, largest first."""
    sizes = source.parse_sizes(_query_output(ctx, source.package_sizes()))
    manual = source.manual_packages()
    if manual is not None:
        keep = set(_query_output(ctx, manual).split())
        sizes = [(size, name) for size, name in sizes if name in keep]

    # multiarch hosts list a package once per architecture
    by_name: dict[str, int] = {}
    for size, name in sizes:
        by_name[name] = max(size, by_name.get(name, 0))
    ranked = sorted(by_name.items(), key=lambda item: (-item[1], item[0]))
    return ranked[: ctx.config.thresholds.large_package_count]


def _large_packages(ctx: ActionContext) -> list[Command]:
    source = _package_source(ctx)
    if ctx.query is None or ctx.choose is None:
        return []
    ranked = _largest_packages(ctx, source)
    if not ranked:
        return []

    options = [(name, f"{name} ({format_bytes(size)})") for name, size in ranked]
    offered = {name for name, _ in ranked}
    commands: list[Command] = []
    picked: set[str] = set()
    for name in ctx.choose("Select packages to uninstall", options):
        if name in offered and name not in picked:
            picked.add(name)
            commands.extend(source.remove(name))
    return commands


def _large_packages_verify(ctx: ActionContext) -> list[Command]:
    return [_package_source(ctx).package_sizes()]


# -- user files ------------------------------------------------------------

def _thumbnails(ctx: ActionContext, delete: bool = True) -> list[Command]:
    dirs = existing([ctx.config.home / ".cache" / "thumbnails"])
    if not dirs:
        return []
    days = ctx.config.thresholds.thumbnail_days
    return [find_cmd(dirs, "-type", "f", "-atime", f"+{days}", delete=delete)]


def _trash(ctx: ActionContext, delete: bool = True) -> list[Command]:
    trash = ctx.config.home / ".local" / "share" / "Trash"
    dirs = existing([trash / "files", trash / "info"])
    if not dirs:
        return []
    return [find_cmd(dirs, "-mindepth", "1", delete=delete)]


def _browser_cache(ctx: ActionContext, delete: bool = True) -> list[Command]:
    dirs = existing(ctx.config.home / d for d in BROWSER_CACHE_DIRS)
    if not dirs:
        return []
    return [find_cmd(dirs, "-mindepth", "1", delete=delete)]


def _large_files(ctx: ActionContext, delete: bool = True) -> list[Command]:
    t = ctx.config.thresholds
    dirs = existing([ctx.config.expand(t.large_file_dir)])
    if not dirs:
        return []
    return [
        find_cmd(
            dirs,
            "-xdev",
            "-type",
            "f",
            "-size",
            f"+{t.large_file_mb}M",
            "-mtime",
            f"+{t.large_file_days}",
            delete=delete,
        )
    ]


# -- system files ----------------------------------------------------------

def _old_logs(ctx: ActionContext, delete: bool = True) -> list[Command]:
    dirs = existing([LOG_DIR])
    if not dirs:
        return []
    days = ctx.config.thresholds.log_days
    return [
        find_cmd(
            dirs,
            "-type",
            "f",
            *_name_group(ROTATED_LOG_PATTERNS),
            "-mtime",
            f"+{days}",
            delete=delete,
            root=delete,
        )
    ]


def _temp_files(ctx: ActionContext, delete: bool = True) -> list[Command]:
    dirs = existing(TEMP_DIRS)
    if not dirs:
        return []
    days = ctx.config.thresholds.temp_days
    return [
        find_cmd(
            dirs,
            "-mindepth",
            "1",
            "-type",
            "f",
            "-atime",
            f"+{days}",
            delete=delete,
            root=delete,
        )
    ]


# -- tools -----------------------------------------------------------------

def _docker_prune(ctx: ActionContext) -> list[Command]:
    argv = ["docker", "system", "prune", "-f"]
    if ctx.config.thresholds.docker_prune_volumes:
        argv.append("--volumes")
    return [cmd(*argv)]


def _journal_vacuum(ctx: ActionContext) -> list[Command]:
    days = ctx.config.thresholds.journal_days
    return [cmd("journalctl", f"--vacuum-time={days}d", root=True)]


def _tmpreaper(ctx: ActionContext, test: bool = False) -> list[Command]:
    dirs = existing(TEMP_DIRS[:1])
    if not dirs:
        return []
    days = ctx.config.thresholds.temp_days
    flags = ["--test"] if test else []
    return [cmd("tmpreaper", *flags, f"{days}d", *(str(d) for d in dirs), root=not test)]


def cleanup_actions() -> list[Action]:
    """The cleanup catalogue in menu order."""
    return [
        Action(
            name="pm-cache",
            description="Clean package manager cache",
            build=_pm_cache,
            verify=_pm_cache_verify,
            required_commands={"du"},
            needs_package_manager=True,
        ),
        Action(
            name="thumbnails",
            description="Clean thumbnail cache",
            build=_thumbnails,
            verify=lambda ctx: _thumbnails(ctx, delete=False),
            required_commands={"find"},
        ),
        Action(
            name="old-logs",
            description="Remove old rotated logs",
            build=_old_logs,
            verify=lambda ctx: _old_logs(ctx, delete=False),
            required_commands={"find"},
        ),
        Action(
            name="temp-files",
            description="Delete stale temp files",
            build=_temp_files,
            verify=lambda ctx: _temp_files(ctx, delete=False),
            required_commands={"find"},
        ),
        Action(
            name="trash",
            description="Empty trash",
            build=_trash,
            verify=lambda ctx: _trash(ctx, delete=False),
            required_commands={"find"},
            interactive=True,
        ),
        Action(
            name="browser-cache",
            description="Clean browser caches",
            build=_browser_cache,
            verify=lambda ctx: _browser_cache(ctx, delete=False),
            required_commands={"find"},
            interactive=True,
        ),
        Action(
            name="large-files",
            description="Remove large old files",
            build=_large_files,
            verify=lambda ctx: _large_files(ctx, delete=False),
            required_commands={"find"},
            interactive=True,
        ),
        Action(
            name="docker-prune",
            description="Docker system prune",
            build=_docker_prune,
            verify=lambda ctx: [cmd("docker", "system", "df")],
            required_commands={"docker"},
            interactive=True,
        ),
        Action(
            name="journal-vacuum",
            description="Journalctl vacuum",
            build=_journal_vacuum,
            verify=lambda ctx: [cmd("journalctl", "--disk-usage")],
            required_commands={"journalctl"},
        ),
        Action(
            name="tmpreaper",
            description="Tmpreaper cleanup",
            build=_tmpreaper,
            verify=lambda ctx: _tmpreaper(ctx, test=True),
            required_commands={"tmpreaper"},
        ),
        Action(
            name="tmpfiles",
            description="Systemd-tmpfiles cleanup",
            build=lambda ctx: [cmd("systemd-tmpfiles", "--clean", root=True)],
            required_commands={"systemd-tmpfiles"},
        ),
        Action(
            name="logrotate",
            description="Force logrotate",
            build=lambda ctx: [cmd("logrotate", "-f", LOGROTATE_CONF, root=True)],
            verify=lambda ctx: [cmd("logrotate", "-d", LOGROTATE_CONF)],
            required_commands={"logrotate"},
        ),
        Action(
            name="snap-revisions",
            description="Snap revision cleanup",
            build=lambda ctx: [shell(SNAP_REVISIONS_SCRIPT, root=True, description="remove disabled snap revisions")],
            verify=lambda ctx: [cmd("snap", "list", "--all")],
            required_commands={"snap", "sh", "awk"},
        ),
        Action(
            name="pm-autoremove",
            description="Remove unused packages",
            build=_pm_autoremove,
            verify=_pm_autoremove_verify,
            needs_package_manager=True,
            interactive=True,
        ),
        Action(
            name="large-packages",
            description="Uninstall large packages",
            build=_large_packages,
            verify=_large_packages_verify,
            interactive=True,
        ),
        Action(
            name="fstrim",
            description="Trim mounted filesystems",
            build=lambda ctx: [cmd("fstrim", "-av", root=True)],
            verify=lambda ctx: [cmd("fstrim", "-av", "--dry-run", root=True)],
            required_commands={"fstrim"},
        ),
    ]
