"""Pytest configuration and fixtures for power-cleaner tests."""

import logging
from unittest.mock import MagicMock

import pytest

from power_cleaner.config import RunConfig
from power_cleaner.connector.local import CommandResult, LocalConnector
from power_cleaner.model.action import Action
from power_cleaner.model.command import cmd
from power_cleaner.model.environment import Environment
from power_cleaner.model.package_manager import Apt
from power_cleaner.runlog import ROOT_LOGGER, reset_logging


@pytest.fixture(autouse=True)
def _clean_logging():
    """Undo configure_logging() so tests do not share file handlers."""
    yield
    reset_logging()
    root = logging.getLogger(ROOT_LOGGER)
    root.propagate = True
    root.setLevel(logging.NOTSET)


@pytest.fixture
def mock_connector():
    """Create a mock local connector for testing."""
    connector = MagicMock(spec=LocalConnector)
    connector.is_root = False
    connector.use_sudo = False

    # Default behavior: commands succeed
    connector.run.return_value = CommandResult(
        command="test",
        stdout="",
        stderr="",
        exit_code=0,
    )
    connector.render.side_effect = lambda command: command.render()
    connector.which.return_value = None
    return connector


@pytest.fixture
def make_env():
    """Factory for Environment snapshots (Debian-like by default)."""

    def _make(commands=("find", "du", "sh", "apt-get", "dpkg"), package_manager=None, **kwargs):
        kwargs.setdefault("distro_id", "debian")
        kwargs.setdefault("arch", "x86_64")
        return Environment(
            package_manager=package_manager if package_manager is not None else Apt(),
            available_commands=frozenset(commands),
            **kwargs,
        )

    return _make


@pytest.fixture
def sandbox_home(tmp_path):
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def run_config(tmp_path, sandbox_home):
    """RunConfig confined to tmp_path."""
    return RunConfig(
        log_path=tmp_path / "run.log",
        home=sandbox_home,
        use_sudo=False,
        security_tools=("nmap", "hydra"),
    )


@pytest.fixture
def make_action():
    """Factory for actions with fixed command lists."""

    def _make(name="demo", commands=None, verify_commands=None, **kwargs):
        commands = [cmd("echo", name)] if commands is None else commands
        verify = None
        if verify_commands is not None:
            verify = lambda ctx: list(verify_commands)  # noqa: E731
        return Action(
            name=name,
            description=kwargs.pop("description", f"{name} action"),
            build=lambda ctx: list(commands),
            verify=verify,
            **kwargs,
        )

    return _make
