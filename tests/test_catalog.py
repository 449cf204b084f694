"""Tests for the built-in cleanup and install catalogues.

Verifies:
1. Builders only target paths that exist and honour thresholds.
2. Verify variants are read-only.
3. Dry-run and verify leave a sandboxed home untouched.
4. Install actions are idempotent and pick the right tooling.
5. Large-package removal lists, ranks and removes only what was picked.
6. Tools used inside shell pipelines are declared, so a missing one skips.
"""

import logging
import os
import shutil
import time
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from power_cleaner.actions import build_registry
from power_cleaner.actions.cleanup import cleanup_actions
from power_cleaner.actions.install import install_actions, runtime_apps
from power_cleaner.config import Thresholds
from power_cleaner.connector.local import CommandResult, LocalConnector
from power_cleaner.engine.gate import ExecutionGate
from power_cleaner.exceptions import DependencyMissing
from power_cleaner.model.action import ActionContext, ExecutionMode, Outcome
from power_cleaner.model.command import cmd
from power_cleaner.model.package_manager import Apk, Emerge, Pacman, Zypper

CLEANUP = {a.name: a for a in cleanup_actions()}
INSTALL = {a.name: a for a in install_actions()}

needs_find = pytest.mark.skipif(shutil.which("find") is None, reason="find not available")


def _ctx(env, config):
    return ActionContext(environment=env, config=config)


def _age(path, days):
    stamp = time.time() - days * 86400
    os.utime(path, (stamp, stamp))


@pytest.fixture
def populated_home(sandbox_home):
    thumbs = sandbox_home / ".cache" / "thumbnails" / "normal"
    thumbs.mkdir(parents=True)
    (thumbs / "old.png").write_bytes(b"x" * 64)
    (thumbs / "new.png").write_bytes(b"x" * 64)
    _age(thumbs / "old.png", 90)

    trash = sandbox_home / ".local" / "share" / "Trash" / "files"
    trash.mkdir(parents=True)
    (trash / "deleted.txt").write_text("bye")

    cache = sandbox_home / ".cache" / "mozilla"
    cache.mkdir(parents=True)
    (cache / "entry").write_text("cached")
    return sandbox_home


def _snapshot(root):
    return sorted(str(p.relative_to(root)) for p in root.rglob("*"))


def test_nothing_to_do_on_empty_home(make_env, run_config):
    ctx = _ctx(make_env(), run_config)

    for name in ("thumbnails", "trash", "browser-cache", "large-files"):
        assert CLEANUP[name].build(ctx) == [], name


def test_thumbnails_honours_threshold(make_env, run_config, populated_home):
    ctx = _ctx(make_env(), run_config)

    (command,) = CLEANUP["thumbnails"].build(ctx)
    (check,) = CLEANUP["thumbnails"].verify(ctx)

    assert command.argv[0] == "find"
    assert str(populated_home / ".cache" / "thumbnails") in command.argv
    assert "+30" in command.argv
    assert command.argv[-1] == "-delete"
    assert check.argv[-1] == "-print"
    assert not command.root


def test_large_files_uses_configured_dir(make_env, run_config, sandbox_home):
    (sandbox_home / "Downloads").mkdir()
    config = replace(run_config, thresholds=Thresholds(large_file_mb=100, large_file_days=10))

    (command,) = CLEANUP["large-files"].build(_ctx(make_env(), config))

    assert str(sandbox_home / "Downloads") in command.argv
    assert "+100M" in command.argv
    assert "+10" in command.argv


def test_docker_prune_volumes_flag(make_env, run_config):
    ctx = _ctx(make_env(), run_config)
    assert CLEANUP["docker-prune"].build(ctx)[0].argv == ("docker", "system", "prune", "-f")

    config = replace(run_config, thresholds=Thresholds(docker_prune_volumes=True))
    assert CLEANUP["docker-prune"].build(_ctx(make_env(), config))[0].argv[-1] == "--volumes"


def test_journal_vacuum_threshold(make_env, run_config):
    (command,) = CLEANUP["journal-vacuum"].build(_ctx(make_env(), run_config))
    assert command.argv == ("journalctl", "--vacuum-time=14d")
    assert command.root


def test_pm_cache_uses_detected_manager(make_env, run_config):
    commands = CLEANUP["pm-cache"].build(_ctx(make_env(), run_config))
    assert [c.render() for c in commands] == ["apt-get clean", "apt-get -y autoclean"]


def test_pm_cache_helper_missing(make_env, run_config):
    env = make_env(commands=("emerge", "du"), package_manager=Emerge())

    with pytest.raises(DependencyMissing, match="eclean"):
        CLEANUP["pm-cache"].build(_ctx(env, run_config))


def test_verify_variants_never_need_root(make_env, run_config, populated_home):
    ctx = _ctx(make_env(commands=("find", "du", "sh", "apt-get", "dpkg", "dpkg-query", "apt-mark")), run_config)

    for action in cleanup_actions():
        if action.verify is None or action.name == "fstrim":
            continue
        for command in action.verify(ctx):
            assert not command.root, action.name
            assert "-delete" not in command.argv, action.name


@needs_find
@pytest.mark.parametrize("mode", [ExecutionMode.DRY_RUN, ExecutionMode.VERIFY])
def test_preview_modes_leave_home_untouched(mode, make_env, run_config, populated_home):
    """Verify dry-run and verify change nothing in the sandbox."""
    before = _snapshot(populated_home)
    env = make_env(commands=("find", "du", "sh"))
    gate = ExecutionGate(LocalConnector(use_sudo=False, is_root=False, timeout=60), env, run_config)

    for name in ("thumbnails", "trash", "browser-cache", "large-files"):
        result = gate.invoke(CLEANUP[name], mode=mode)
        assert result.outcome is Outcome.SUCCEEDED, result.reason

    assert _snapshot(populated_home) == before


@needs_find
def test_thumbnails_deletes_only_old_files(make_env, run_config, populated_home):
    env = make_env(commands=("find",))
    gate = ExecutionGate(LocalConnector(use_sudo=False, is_root=False, timeout=60), env, run_config)

    result = gate.invoke(CLEANUP["thumbnails"])

    thumbs = populated_home / ".cache" / "thumbnails" / "normal"
    assert result.outcome is Outcome.SUCCEEDED
    assert not (thumbs / "old.png").exists()
    assert (thumbs / "new.png").exists()


@needs_find
def test_trash_requires_confirmation(make_env, run_config, populated_home):
    env = make_env(commands=("find",))
    gate = ExecutionGate(LocalConnector(use_sudo=False, is_root=False, timeout=60), env, run_config)

    declined = gate.invoke(CLEANUP["trash"])
    assert declined.outcome is Outcome.SKIPPED
    assert (populated_home / ".local/share/Trash/files/deleted.txt").exists()

    accepted = gate.invoke(CLEANUP["trash"], auto_confirm=True)
    assert accepted.outcome is Outcome.SUCCEEDED
    assert not (populated_home / ".local/share/Trash/files/deleted.txt").exists()
    assert (populated_home / ".local/share/Trash/files").is_dir()


def test_full_catalogue_dry_run_on_bare_host(mock_connector, make_env, run_config):
    """Verify every action reports in dry-run without touching the connector."""
    registry = build_registry(("cleanup", "install"))
    gate = ExecutionGate(mock_connector, make_env(commands=()), run_config)

    results = [gate.invoke(a, mode=ExecutionMode.DRY_RUN) for a in registry]

    assert {r.outcome for r in results} <= {Outcome.SUCCEEDED, Outcome.SKIPPED}
    mock_connector.run.assert_not_called()


# -- large packages --------------------------------------------------------

APT_LISTING = "4096\tbig\n2048\tmedium\n8\tsmall\n1\tauto-dep\n"
APT_MANUAL = "big\nmedium\nsmall\n"
APT_TOOLS = ("apt-get", "dpkg", "dpkg-query", "apt-mark")


def _answers(outputs):
    """Connector.run stand-in keyed by program name: (stdout, exit code)."""

    def run(command):
        stdout, code = outputs.get(command.argv[0], ("", 0))
        return CommandResult(command=command.render(), stdout=stdout, stderr="", exit_code=code)

    return run


@pytest.fixture
def apt_listing(mock_connector):
    mock_connector.run.side_effect = _answers({"dpkg-query": (APT_LISTING, 0), "apt-mark": (APT_MANUAL, 0)})
    return mock_connector


def test_large_packages_dry_run_logs_removals(apt_listing, make_env, run_config, caplog):
    caplog.set_level(logging.INFO)
    choose = MagicMock(return_value=["medium", "big", "medium", "bogus"])
    gate = ExecutionGate(apt_listing, make_env(commands=APT_TOOLS), run_config, choose=choose)

    result = gate.invoke(CLEANUP["large-packages"], mode=ExecutionMode.DRY_RUN)

    assert result.outcome is Outcome.SUCCEEDED
    assert result.commands == ("apt-get remove --purge -y medium", "apt-get remove --purge -y big")
    assert "DRY-RUN large-packages would run: apt-get remove --purge -y medium" in caplog.text
    # only the two listings ran
    assert apt_listing.run.call_count == 2
    _, options = choose.call_args.args
    assert options == [("big", "big (4.0 MB)"), ("medium", "medium (2.0 MB)"), ("small", "small (8.0 KB)")]


def test_large_packages_honours_count(apt_listing, make_env, run_config):
    choose = MagicMock(return_value=[])
    config = replace(run_config, thresholds=Thresholds(large_package_count=1))
    gate = ExecutionGate(apt_listing, make_env(commands=APT_TOOLS), config, choose=choose)

    gate.invoke(CLEANUP["large-packages"], mode=ExecutionMode.DRY_RUN)

    _, options = choose.call_args.args
    assert [key for key, _ in options] == ["big"]


def test_large_packages_nothing_picked(apt_listing, make_env, run_config):
    gate = ExecutionGate(apt_listing, make_env(commands=APT_TOOLS), run_config)

    result = gate.invoke(CLEANUP["large-packages"], auto_confirm=True)

    assert result.outcome is Outcome.SUCCEEDED
    assert result.output == "nothing to do"
    assert apt_listing.run.call_count == 2


def test_large_packages_removal_needs_confirmation(apt_listing, make_env, run_config):
    confirm = MagicMock(return_value=False)
    choose = MagicMock(return_value=["big"])
    gate = ExecutionGate(apt_listing, make_env(commands=APT_TOOLS), run_config, confirm=confirm, choose=choose)

    result = gate.invoke(CLEANUP["large-packages"])

    assert result.outcome is Outcome.SKIPPED
    assert result.reason == "declined by user"
    assert "apt-get remove --purge -y big" in confirm.call_args.args[0]
    assert apt_listing.run.call_count == 2


def test_large_packages_falls_back_to_flatpak(mock_connector, make_env, run_config):
    mock_connector.run.side_effect = _answers({"flatpak": ("org.gnome.Calculator\t8.5 MB\n", 0)})
    choose = MagicMock(return_value=["org.gnome.Calculator"])
    env = make_env(commands=("emerge", "flatpak"), package_manager=Emerge())
    gate = ExecutionGate(mock_connector, env, run_config, choose=choose)

    result = gate.invoke(CLEANUP["large-packages"], auto_confirm=True)

    assert result.outcome is Outcome.SUCCEEDED
    assert mock_connector.run.call_args.args[0] == cmd("flatpak", "uninstall", "-y", "org.gnome.Calculator")


def test_large_packages_without_listing_skips(mock_connector, make_env, run_config):
    env = make_env(commands=("apk",), package_manager=Apk())
    gate = ExecutionGate(mock_connector, env, run_config)

    result = gate.invoke(CLEANUP["large-packages"])

    assert result.outcome is Outcome.SKIPPED
    assert result.reason == "missing dependency: package size listing for apk"
    mock_connector.run.assert_not_called()


def test_large_packages_listing_failure(mock_connector, make_env, run_config):
    mock_connector.run.side_effect = _answers({"dpkg-query": ("", 2)})
    gate = ExecutionGate(mock_connector, make_env(commands=APT_TOOLS), run_config)

    result = gate.invoke(CLEANUP["large-packages"])

    assert result.outcome is Outcome.FAILED
    assert result.reason.startswith("error: query exited 2: dpkg-query")


def test_large_packages_verify_lists_sizes(make_env, run_config):
    (listing,) = CLEANUP["large-packages"].verify(_ctx(make_env(commands=APT_TOOLS), run_config))

    assert listing.argv[0] == "dpkg-query"
    assert not listing.root


# -- pipeline tools --------------------------------------------------------


@pytest.mark.parametrize(
    "manager, commands, missing",
    [
        (Zypper(), ("zypper", "rpm", "sh"), "awk, xargs"),
        (Pacman(), ("pacman",), "sh"),
    ],
)
def test_pm_autoremove_pipeline_tools(mock_connector, make_env, run_config, manager, commands, missing):
    gate = ExecutionGate(mock_connector, make_env(commands=commands, package_manager=manager), run_config)

    result = gate.invoke(CLEANUP["pm-autoremove"], auto_confirm=True)

    assert result.outcome is Outcome.SKIPPED
    assert result.reason == f"missing dependency: {missing}"
    mock_connector.run.assert_not_called()


@pytest.mark.parametrize(
    "catalogue, name, commands, missing",
    [
        (CLEANUP, "snap-revisions", ("snap", "sh"), "awk"),
        (INSTALL, "pi-apps", ("bash", "sh", "wget"), "mktemp"),
        (INSTALL, "pi-apps-shortcuts", ("ls",), "rm"),
    ],
)
def test_shell_tools_are_declared(mock_connector, make_env, run_config, catalogue, name, commands, missing):
    gate = ExecutionGate(mock_connector, make_env(commands=commands), run_config)

    result = gate.invoke(catalogue[name], auto_confirm=True)

    assert result.outcome is Outcome.SKIPPED
    assert result.reason == f"missing dependency: {missing}"


# -- install catalogue -----------------------------------------------------


def test_runtime_apps():
    assert runtime_apps("aarch64") == ["Wine", "Box64", "Box86"]
    assert runtime_apps("armv7l") == ["Wine", "Box64", "Box86"]
    assert runtime_apps("x86_64") == ["Wine"]


def test_pi_apps_download_prefers_wget(make_env, run_config):
    (command,) = INSTALL["pi-apps"].build(_ctx(make_env(commands=("wget", "curl", "bash", "sh")), run_config))
    assert command.argv[0] == "sh"
    assert "wget -qO" in command.argv[2]


def test_pi_apps_download_falls_back_to_curl(make_env, run_config):
    (command,) = INSTALL["pi-apps"].build(_ctx(make_env(commands=("curl", "bash", "sh")), run_config))
    assert "curl -fsSL" in command.argv[2]


def test_pi_apps_needs_a_downloader(make_env, run_config):
    with pytest.raises(DependencyMissing, match="wget or curl"):
        INSTALL["pi-apps"].build(_ctx(make_env(commands=("bash", "sh")), run_config))


def test_pi_apps_already_installed(make_env, run_config, sandbox_home):
    manage = sandbox_home / "pi-apps" / "manage"
    manage.parent.mkdir()
    manage.write_text("#!/bin/sh\n")
    manage.chmod(0o755)
    ctx = _ctx(make_env(commands=("wget", "bash", "sh"), arch="aarch64"), run_config)

    assert INSTALL["pi-apps"].build(ctx) == []

    commands = INSTALL["pi-apps-runtime"].build(ctx)
    assert [c.argv for c in commands] == [
        (str(manage), "install", "Wine"),
        (str(manage), "install", "Box64"),
        (str(manage), "install", "Box86"),
    ]


def test_pi_apps_runtime_without_pi_apps(make_env, run_config):
    with pytest.raises(DependencyMissing, match="pi-apps"):
        INSTALL["pi-apps-runtime"].build(_ctx(make_env(), run_config))


def test_shortcuts_removed_from_home(make_env, run_config, sandbox_home):
    desktop = sandbox_home / "Desktop"
    desktop.mkdir()
    (desktop / "pi-apps.desktop").write_text("[Desktop Entry]\n")

    commands = INSTALL["pi-apps-shortcuts"].build(_ctx(make_env(), run_config))
    home_commands = [c for c in commands if str(sandbox_home) in c.argv[-1]]

    assert [c.argv for c in home_commands] == [("rm", "-f", str(desktop / "pi-apps.desktop"))]
    assert not home_commands[0].root


def test_security_tools_installs_each_missing(make_env, run_config):
    commands = INSTALL["security-tools"].build(_ctx(make_env(), run_config))

    assert commands[0].render() == "apt-get update -y"
    assert len(commands) == 1 + len(run_config.security_tools)
    assert "dpkg -s nmap" in commands[1].argv[2]
    assert "dpkg -s hydra" in commands[2].argv[2]


def test_security_tools_verify_queries_only(make_env, run_config):
    checks = INSTALL["security-tools"].verify(_ctx(make_env(), run_config))
    assert [c.argv for c in checks] == [("dpkg", "-s", "nmap"), ("dpkg", "-s", "hydra")]


def test_yad_removal_needs_query_tool(make_env, run_config):
    env = make_env(commands=("apt-get", "sh"))
    with pytest.raises(DependencyMissing, match="dpkg"):
        INSTALL["yad-removal"].build(_ctx(env, run_config))
