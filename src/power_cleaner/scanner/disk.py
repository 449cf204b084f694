"""Disk Scanner - free/used space snapshots for the run report."""

import shutil

from power_cleaner.exceptions import PowerCleanerError


def snapshot_free(path: str = "/") -> int:
    """Free bytes available on the filesystem holding ``path``."""
    return shutil.disk_usage(path).free


def snapshot_used(path: str = "/") -> int:
    """Used bytes on the filesystem holding ``path``."""
    return shutil.disk_usage(path).used


def diff(before: int, after: int) -> int:
    """Bytes reclaimed between two *used-space* snapshots.

    Negative when more space is in use afterwards. Never clamped.
    """
    return before - after


def format_bytes(size_bytes: int) -> str:
    """Formats a byte count into a human-readable string."""
    size = float(abs(size_bytes))
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} PB"


def describe_delta(freed_bytes: int) -> str:
    """``freed: 1.2 MB`` or, when space grew, ``space used: 200.0 B``."""
    if freed_bytes < 0:
        return f"space used: {format_bytes(-freed_bytes)}"
    return f"freed: {format_bytes(freed_bytes)}"


class DiskTracker:
    """Takes the before/after used-space snapshots around a run."""

    def __init__(self, path: str = "/") -> None:
        self.path = path
        self.before: int | None = None

    def start(self) -> None:
        try:
            self.before = snapshot_used(self.path)
        except OSError as e:
            raise PowerCleanerError(f"Cannot read disk usage of {self.path}: {e}") from e

    def freed(self) -> int | None:
        """Freed bytes since :meth:`start`, or None if no snapshot exists."""
        if self.before is None:
            return None
        try:
            after = snapshot_used(self.path)
        except OSError:
            return None
        return diff(self.before, after)
