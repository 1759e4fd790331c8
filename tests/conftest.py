"""
Pytest configuration and shared fixtures for battery-zen tests.

This module contains:
- MockFileSystem: In-memory filesystem for testing without actual I/O
- RecordingSurface: In-memory chart Surface that records every cell
- Sample factories shared by analytics, presenter and dashboard tests
- eastern_system_zone: Process time zone switched to US Eastern for DST tests
"""

from __future__ import annotations

import fnmatch
import os
import time
from collections.abc import Iterable, Iterator
from datetime import UTC, datetime, timedelta

import pytest

from battery_zen.models import Sample

T0 = datetime(2025, 9, 1, 10, 0, tzinfo=UTC)


class MockFileSystem:
    """
    In-memory file system for testing.

    Simulates a file system using:
    - _files: dict mapping path -> content (str)
    - _dirs: set of directory paths
    - _fail_writes: paths whose writes raise PermissionError

    FEATURES:
    - No actual I/O operations
    - Easy to inspect state
    - Supports write failure simulation
    """

    def __init__(self) -> None:
        self._files: dict[str, str] = {}
        self._dirs: set[str] = set()
        self._fail_writes: set[str] = set()

    def exists(self, path: str) -> bool:
        return path in self._files or path in self._dirs

    def makedirs(self, path: str, exist_ok: bool = False) -> None:
        """
        Create mock directory and parent directories.

        Raises:
            OSError: If directory exists and exist_ok is False,
                or if path is an existing file.
        """
        if path in self._dirs:
            if not exist_ok:
                raise OSError(f"Directory exists: {path}")
            return
        if path in self._files:
            raise OSError(f"Path is a file, not directory: {path}")
        parts = path.rstrip("/").split("/")
        for i in range(1, len(parts) + 1):
            parent = "/".join(parts[:i])
            if parent:
                self._dirs.add(parent)

    def read_text(self, path: str, _encoding: str = "utf-8") -> str:
        if path not in self._files:
            raise FileNotFoundError(f"No such file: {path}")
        return self._files[path]

    def _check_writable(self, path: str) -> None:
        if path in self._fail_writes:
            raise PermissionError(f"Permission denied: {path}")

    def write_text(self, path: str, content: str, _encoding: str = "utf-8") -> None:
        self._check_writable(path)
        self._files[path] = content

    def append_text(self, path: str, content: str, _encoding: str = "utf-8") -> None:
        self._check_writable(path)
        self._files[path] = self._files.get(path, "") + content

    def create_exclusive(self, path: str, content: str) -> bool:
        """Create the file only if it does not exist (O_EXCL semantics)."""
        self._check_writable(path)
        if path in self._files:
            return False
        self._files[path] = content
        return True

    def remove(self, path: str) -> None:
        if path not in self._files:
            raise FileNotFoundError(f"No such file: {path}")
        del self._files[path]

    def rename(self, src: str, dst: str) -> None:
        if src not in self._files:
            raise FileNotFoundError(f"No such file: {src}")
        self._check_writable(dst)
        self._files[dst] = self._files.pop(src)

    def glob(self, pattern: str) -> list[str]:
        return sorted(p for p in self._files if fnmatch.fnmatch(p, pattern))

    # Test helpers

    def get_file(self, path: str) -> str | None:
        """Return file content, None for missing files instead of raising."""
        return self._files.get(path)

    def set_file(self, path: str, content: str) -> None:
        """
        Set file content directly, bypassing write checks.

        Example:
            >>> fs = MockFileSystem()
            >>> fs.set_file('/sys/class/power_supply/BAT0/capacity', '84\\n')
            >>> fs.read_text('/sys/class/power_supply/BAT0/capacity')
            '84\\n'
        """
        self._files[path] = content

    def fail_writes(self, path: str) -> None:
        """Make every later write to `path` raise PermissionError."""
        self._fail_writes.add(path)

    def list_files(self) -> list[str]:
        return sorted(self._files.keys())


class RecordingSurface:
    """
    In-memory Surface for renderer tests.

    Keeps the last character, foreground, background and bold flag per
    cell. Writes outside the surface are ignored, like the curses surface.
    """

    def __init__(self, cols: int, rows: int) -> None:
        self.cols = cols
        self.rows = rows
        self.chars: dict[tuple[int, int], str] = {}
        self.fg: dict[tuple[int, int], int] = {}
        self.bg: dict[tuple[int, int], int] = {}
        self.bold: set[tuple[int, int]] = set()
        self.texts: list[tuple[int, int, str]] = []

    def size(self) -> tuple[int, int]:
        return self.cols, self.rows

    def _inside(self, col: int, row: int) -> bool:
        return 0 <= col < self.cols and 0 <= row < self.rows

    def set_background(self, col: int, row: int, color: int) -> None:
        if self._inside(col, row):
            self.bg[(col, row)] = color

    def set_cell(self, col: int, row: int, char: str, color: int) -> None:
        if self._inside(col, row):
            self.chars[(col, row)] = char
            self.fg[(col, row)] = color

    def draw_text(
        self, col: int, row: int, text: str, color: int, bold: bool = False
    ) -> None:
        self.texts.append((col, row, text))
        for offset, char in enumerate(text):
            if self._inside(col + offset, row):
                self.chars[(col + offset, row)] = char
                self.fg[(col + offset, row)] = color
                if bold:
                    self.bold.add((col + offset, row))

    def row_text(self, row: int) -> str:
        """The characters of one row, unset cells as spaces."""
        return "".join(self.chars.get((col, row), " ") for col in range(self.cols))

    def text_values(self) -> list[str]:
        return [text for _, _, text in self.texts]

    def braille_cells(self) -> dict[tuple[int, int], str]:
        return {
            pos: char
            for pos, char in self.chars.items()
            if 0x2800 <= ord(char) <= 0x28FF
        }


def make_samples(
    points: Iterable[tuple[float, bool, float]], start: datetime = T0
) -> list[Sample]:
    """
    Build samples from (minutes after start, ac_connected, percent) tuples.

    Example:
        >>> make_samples([(0, True, 50), (10, True, 60)])[1].battery_percent
        60
    """
    return [
        Sample(time=start + timedelta(minutes=minutes), ac_connected=ac, battery_percent=pct)
        for minutes, ac, pct in points
    ]


def linear_samples(
    count: int,
    ac_connected: bool,
    start_percent: float,
    rate_per_minute: float,
    step_minutes: float = 1.0,
    start: datetime = T0,
) -> list[Sample]:
    """Evenly spaced samples following an exact linear trend."""
    return make_samples(
        (
            (i * step_minutes, ac_connected, start_percent + rate_per_minute * i * step_minutes)
            for i in range(count)
        ),
        start=start,
    )


@pytest.fixture
def mock_fs() -> MockFileSystem:
    """
    Create a MockFileSystem for testing.

    Provides a fresh in-memory filesystem instance for each test,
    ensuring test isolation without actual disk I/O.
    """
    return MockFileSystem()


@pytest.fixture
def t0() -> datetime:
    """Fixed reference time (2025-09-01 10:00 UTC) used by sample factories."""
    return T0


# US Eastern as a POSIX rule, so no tz database is needed. DST ends on
# 2025-11-02 at 02:00 local time.
EASTERN_TZ_RULE = "EST5EDT,M3.2.0,M11.1.0"


@pytest.fixture
def eastern_system_zone() -> Iterator[None]:
    """
    Run the test with the process time zone set to US Eastern.

    Business context:
    The dashboard takes "now" from datetime.now().astimezone(), a fixed
    UTC offset. Day boundaries in a week that crosses a DST change only
    come out right if each day is resolved against the system zone, so
    these tests need a system zone that has DST.

    Restores the previous TZ and calls tzset() again on teardown.
    """
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset() is not available on this platform")
    previous = os.environ.get("TZ")
    os.environ["TZ"] = EASTERN_TZ_RULE
    time.tzset()
    try:
        yield
    finally:
        if previous is None:
            os.environ.pop("TZ", None)
        else:
            os.environ["TZ"] = previous
        time.tzset()
