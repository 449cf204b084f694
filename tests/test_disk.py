"""Tests for disk snapshots and the freed-space figure."""

import pytest

from power_cleaner.exceptions import PowerCleanerError
from power_cleaner.scanner import disk
from power_cleaner.scanner.disk import DiskTracker, describe_delta, diff, format_bytes


def test_diff_is_not_clamped():
    assert diff(1200, 1000) == 200
    assert diff(1000, 1200) == -200


def test_describe_delta():
    assert describe_delta(2048) == "freed: 2.0 KB"
    assert describe_delta(0) == "freed: 0.0 B"
    assert describe_delta(-200) == "space used: 200.0 B"


def test_format_bytes():
    assert format_bytes(512) == "512.0 B"
    assert format_bytes(5 * 1024**3) == "5.0 GB"


def test_snapshots_are_real_numbers(tmp_path):
    assert disk.snapshot_free(str(tmp_path)) >= 0
    assert disk.snapshot_used(str(tmp_path)) >= 0


def test_tracker_reports_difference(monkeypatch):
    readings = iter([10_000, 6_000])
    monkeypatch.setattr(disk, "snapshot_used", lambda path: next(readings))

    tracker = DiskTracker("/")
    assert tracker.freed() is None

    tracker.start()
    assert tracker.freed() == 4_000


def test_tracker_start_failure(monkeypatch):
    def boom(path):
        raise FileNotFoundError(path)

    monkeypatch.setattr(disk, "snapshot_used", boom)

    with pytest.raises(PowerCleanerError, match="Cannot read disk usage"):
        DiskTracker("/nowhere").start()
