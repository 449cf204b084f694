"""Install catalogue - Pi-Apps, its runtimes, and security tool bundles.

Installers are idempotent: anything already present yields no commands.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from power_cleaner.actions.base import require
from power_cleaner.exceptions import DependencyMissing
from power_cleaner.model.action import Action, ActionContext
from power_cleaner.model.command import Command, cmd, shell

logger = logging.getLogger(__name__)

PI_APPS_INSTALLER = "https://raw.githubusercontent.com/Botspot/pi-apps/master/install"
PI_APPS_CLI = "/usr/local/bin/pi-apps"

# Box86/Box64 only make sense on ARM hosts
BOX_ARCHES = {"aarch64", "arm64", "armv7l", "armv6l"}

PI_APPS_SHORTCUTS = (
    ".local/share/applications/pi-apps.desktop",
    ".local/share/applications/pi-apps-settings.desktop",
    ".config/autostart/pi-apps-updater.desktop",
    "Desktop/pi-apps.desktop",
)


def _pi_apps_dir(ctx: ActionContext) -> Path:
    return ctx.config.home / "pi-apps"


def _manage_script(ctx: ActionContext) -> Path | None:
    manage = _pi_apps_dir(ctx) / "manage"
    if manage.is_file() and os.access(manage, os.X_OK):
        return manage
    return None


def pi_apps_installed(ctx: ActionContext) -> bool:
    return _manage_script(ctx) is not None or ctx.environment.has("pi-apps")


def _download_and_run(ctx: ActionContext, url: str) -> Command:
    """Fetch an installer to a temp file and run it with bash (wget, else curl)."""
    if ctx.environment.has("wget"):
        fetch = f'wget -qO "$tmp" "{url}"'
    elif ctx.environment.has("curl"):
        fetch = f'curl -fsSL "{url}" -o "$tmp"'
    else:
        raise DependencyMissing("wget or curl")
    return shell(
        f'tmp=$(mktemp) && {fetch} && bash "$tmp"; status=$?; rm -f "$tmp"; exit $status',
        description=f"download and run {url}",
    )


def _pi_apps(ctx: ActionContext) -> list[Command]:
    if pi_apps_installed(ctx):
        logger.info("pi-apps already installed (skipping installation)")
        return []
    return [_download_and_run(ctx, PI_APPS_INSTALLER)]


def runtime_apps(arch: str) -> list[str]:
    apps = ["Wine"]
    if arch.lower() in BOX_ARCHES:
        apps += ["Box64", "Box86"]
    else:
        logger.info("Box64/Box86 skipped: unsupported CPU architecture %s", arch or "unknown")
    return apps


def _pi_apps_runtime(ctx: ActionContext) -> list[Command]:
    manage = _manage_script(ctx)
    if manage is not None:
        runner: list[str] = [str(manage)]
    elif ctx.environment.has("pi-apps"):
        runner = ["pi-apps"]
    else:
        raise DependencyMissing("pi-apps")
    return [cmd(*runner, "install", app, description=f"install {app} via pi-apps") for app in runtime_apps(ctx.environment.arch)]


def _pi_apps_runtime_verify(ctx: ActionContext) -> list[Command]:
    apps_dir = _pi_apps_dir(ctx) / "apps"
    return [cmd("test", "-d", str(apps_dir / app)) for app in runtime_apps(ctx.environment.arch)]


def _shortcut_paths(ctx: ActionContext) -> list[Path]:
    paths = [ctx.config.home / p for p in PI_APPS_SHORTCUTS]
    paths.append(Path(PI_APPS_CLI))
    return [p for p in paths if p.exists() or p.is_symlink()]


def _pi_apps_shortcuts(ctx: ActionContext) -> list[Command]:
    commands = []
    for path in _shortcut_paths(ctx):
        system = not path.is_relative_to(ctx.config.home)
        commands.append(cmd("rm", "-f", str(path), root=system))
    return commands


def _yad_removal(ctx: ActionContext) -> list[Command]:
    pm = ctx.environment.package_manager
    require(ctx, pm.query_program)
    command = pm.remove_if_installed("yad")
    return [command] if command else []


def _security_tools(ctx: ActionContext) -> list[Command]:
    pm = ctx.environment.package_manager
    require(ctx, pm.query_program)
    commands = list(pm.refresh())
    for tool in ctx.config.security_tools:
        command = pm.install_missing(tool)
        if command is not None:
            commands.append(command)
    return commands


def _security_tools_verify(ctx: ActionContext) -> list[Command]:
    pm = ctx.environment.package_manager
    require(ctx, pm.query_program)
    checks = [pm.is_installed(tool) for tool in ctx.config.security_tools]
    return [c for c in checks if c is not None]


def install_actions() -> list[Action]:
    """The install catalogue in menu order."""
    return [
        Action(
            name="pi-apps",
            description="Install Pi-Apps if missing",
            build=_pi_apps,
            required_commands={"bash", "mktemp", "sh"},
            category="install",
        ),
        Action(
            name="pi-apps-runtime",
            description="Install Wine (and Box64/Box86 on ARM) via Pi-Apps",
            build=_pi_apps_runtime,
            verify=_pi_apps_runtime_verify,
            category="install",
        ),
        Action(
            name="yad-removal",
            description="Uninstall YAD",
            build=_yad_removal,
            required_commands={"sh"},
            needs_package_manager=True,
            interactive=True,
            category="install",
        ),
        Action(
            name="pi-apps-shortcuts",
            description="Remove Pi-Apps shortcuts and launcher",
            build=_pi_apps_shortcuts,
            verify=lambda ctx: [cmd("ls", "-l", str(p)) for p in _shortcut_paths(ctx)],
            required_commands={"ls", "rm"},
            interactive=True,
            category="install",
        ),
        Action(
            name="security-tools",
            description="Install security tool bundle",
            build=_security_tools,
            verify=_security_tools_verify,
            required_commands={"sh"},
            needs_package_manager=True,
            interactive=True,
            category="install",
        ),
    ]
