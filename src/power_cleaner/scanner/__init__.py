"""Scanner package - Data collection from the local host.

Scanners read the system and collect raw data.
They do NOT decide anything - that's the engine's job.
"""

from power_cleaner.scanner.disk import DiskTracker, describe_delta, diff, snapshot_free, snapshot_used
from power_cleaner.scanner.environment import EnvironmentScanner, parse_os_release

__all__ = [
    "DiskTracker",
    "EnvironmentScanner",
    "describe_delta",
    "diff",
    "parse_os_release",
    "snapshot_free",
    "snapshot_used",
]
