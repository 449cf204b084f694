"""Configuration management for power-cleaner.

Settings live in a YAML file; environment variables override individual
values. The result is a single RunConfig context object handed to every
component, so no module keeps its own mutable flags.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from power_cleaner.exceptions import ConfigError
from power_cleaner.model.action import ExecutionMode

ENV_PREFIX = "POWER_CLEANER_"

DEFAULT_SECURITY_TOOLS = (
    "nmap",
    "masscan",
    "metasploit-framework",
    "burpsuite",
    "zaproxy",
    "john",
    "aircrack-ng",
    "hydra",
    "medusa",
    "sqlmap",
    "wifite",
    "reaver",
    "set",
    "steghide",
    "wireshark",
    "tcpdump",
    "tshark",
    "recon-ng",
    "dnsrecon",
    "hashcat",
    "kismet",
    "ettercap-text-only",
    "maltego",
)


@dataclass(frozen=True)
class Thresholds:
    """Age and size limits the cleanup actions use."""

    thumbnail_days: int = 30
    log_days: int = 14
    temp_days: int = 7
    journal_days: int = 14
    large_file_mb: int = 500
    large_file_days: int = 90
    large_file_dir: str = "~/Downloads"
    docker_prune_volumes: bool = False
    large_package_count: int = 20


@dataclass(frozen=True)
class RunConfig:
    """Explicit context for one invocation.

    Attributes:
        mode: Active execution mode.
        auto_confirm: Skip confirmation prompts for interactive actions.
        log_path: Append-only run log.
        thresholds: Limits injected into the action builders.
        strict: Refuse to run on an unclassified host.
        disk_path: Filesystem whose free space is reported.
        command_timeout: Per-command timeout in seconds, None for no limit.
        use_sudo: Prefix root commands with sudo when not running as root.
        home: Home directory user-level actions operate in.
        security_tools: Packages the security-tools action installs.
        verbose: Mirror log records on the console.
    """

    mode: ExecutionMode = ExecutionMode.NORMAL
    auto_confirm: bool = False
    log_path: Path = field(default_factory=lambda: Path("power_cleaner.log"))
    thresholds: Thresholds = field(default_factory=Thresholds)
    strict: bool = False
    disk_path: str = "/"
    command_timeout: float | None = None
    use_sudo: bool = True
    home: Path = field(default_factory=Path.home)
    security_tools: tuple[str, ...] = DEFAULT_SECURITY_TOOLS
    verbose: bool = False

    def with_mode(self, mode: ExecutionMode) -> "RunConfig":
        return replace(self, mode=mode)

    def expand(self, path: str) -> Path:
        """Expand ``~`` against the configured home, not the process HOME."""
        if path == "~" or path.startswith("~/"):
            return self.home / path[2:]
        return Path(path)


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    raise ConfigError(f"Invalid boolean for {key}: {value!r}")


def _parse_count(key: str, value: Any) -> int:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid integer for {key}: {value!r}") from e
    if number < 0:
        raise ConfigError(f"{key} must not be negative (got {number})")
    return number


def parse_thresholds(data: Mapping[str, Any] | None, environ: Mapping[str, str]) -> Thresholds:
    """Build Thresholds from the YAML section and POWER_CLEANER_* overrides."""
    if data is not None and not isinstance(data, Mapping):
        raise ConfigError("thresholds must be a mapping")
    data = dict(data or {})
    unknown = set(data) - {f.name for f in fields(Thresholds)}
    if unknown:
        raise ConfigError(f"Unknown threshold(s): {', '.join(sorted(unknown))}")

    values: dict[str, Any] = {}
    for f in fields(Thresholds):
        raw = environ.get(ENV_PREFIX + f.name.upper(), data.get(f.name))
        if raw is None:
            continue
        if f.type in (bool, "bool"):
            values[f.name] = _parse_bool(f.name, raw)
        elif f.type in (int, "int"):
            values[f.name] = _parse_count(f.name, raw)
        else:
            values[f.name] = str(raw)
    return Thresholds(**values)


class ConfigManager:
    """Loads the YAML settings file and applies environment overrides."""

    def __init__(self, config_dir: Path | None = None, environ: Mapping[str, str] | None = None) -> None:
        self.environ = os.environ if environ is None else environ
        if config_dir is None:
            env_config = self.environ.get(ENV_PREFIX + "CONFIG")
            if env_config:
                config_dir = Path(env_config).expanduser().resolve()
            else:
                config_dir = Path.home() / ".power-cleaner"

        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / "config.yaml"

    def load_settings(self) -> dict[str, Any]:
        """Read the YAML file; a missing file means defaults."""
        if not self.config_file.exists():
            return {}
        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Cannot parse {self.config_file}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read {self.config_file}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{self.config_file} must contain a mapping")
        return data

    def write_defaults(self) -> Path:
        """Write the default settings file if none exists."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        if not self.config_file.exists():
            defaults = {
                "strict": False,
                "disk_path": "/",
                "use_sudo": True,
                "thresholds": {f.name: getattr(Thresholds(), f.name) for f in fields(Thresholds)},
                "security_tools": list(DEFAULT_SECURITY_TOOLS),
            }
            with open(self.config_file, "w", encoding="utf-8") as f:
                yaml.safe_dump(defaults, f, sort_keys=False)
        return self.config_file

    def default_log_path(self) -> Path:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.config_dir / "logs" / f"power_cleaner_{stamp}.log"

    def resolve_log_path(self, settings: Mapping[str, Any], cli_value: str | None = None) -> Path:
        """CLI flag, then POWER_CLEANER_LOG, then legacy LOGFILE, then the file."""
        candidate = (
            cli_value
            or self.environ.get(ENV_PREFIX + "LOG")
            or self.environ.get("LOGFILE")
            or settings.get("log_path")
        )
        if candidate:
            return Path(str(candidate)).expanduser()
        return self.default_log_path()

    def build_run_config(
        self,
        *,
        mode: ExecutionMode = ExecutionMode.NORMAL,
        auto_confirm: bool = False,
        strict: bool | None = None,
        log_path: str | None = None,
        verbose: bool = False,
    ) -> RunConfig:
        """Combine file settings, environment and CLI flags into a RunConfig.

        Raises:
            ConfigError: If any setting is malformed.
        """
        settings = self.load_settings()

        timeout = settings.get("command_timeout")
        if timeout is not None:
            try:
                timeout = float(timeout)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid command_timeout: {timeout!r}") from e
            if timeout <= 0:
                raise ConfigError("command_timeout must be positive")

        tools = settings.get("security_tools", DEFAULT_SECURITY_TOOLS)
        if not isinstance(tools, (list, tuple)) or not all(isinstance(t, str) for t in tools):
            raise ConfigError("security_tools must be a list of package names")

        return RunConfig(
            mode=mode,
            auto_confirm=auto_confirm,
            log_path=self.resolve_log_path(settings, log_path),
            thresholds=parse_thresholds(settings.get("thresholds"), self.environ),
            strict=_parse_bool("strict", settings.get("strict", False)) if strict is None else strict,
            disk_path=str(settings.get("disk_path", "/")),
            command_timeout=timeout,
            use_sudo=_parse_bool("use_sudo", settings.get("use_sudo", True)),
            security_tools=tuple(tools),
            verbose=verbose,
        )
