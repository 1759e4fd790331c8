"""
FileSystem abstraction for battery-zen.

PURPOSE: Injectable file system interface for testability.
AI CONTEXT: The CSV log, sysfs probe, PID lock and service installer all go
through this seam so tests run against an in-memory tree.

DESIGN:
- Protocol defines the interface
- RealFileSystem uses actual os/glob operations
- MockFileSystem in tests/conftest.py stores data in memory for tests

USAGE:
    # Production
    log = SampleLog(path, filesystem=RealFileSystem())

    # Tests (MockFileSystem from conftest.py)
    log = SampleLog("/state/battery.csv", filesystem=mock_fs)
"""

from __future__ import annotations

import glob
import os
from typing import Protocol

__all__ = ["FileSystem", "RealFileSystem"]


class FileSystem(Protocol):
    """
    Protocol for file system operations.

    All paths are strings. Implementations include RealFileSystem for
    production and MockFileSystem for testing.
    """

    def exists(self, path: str) -> bool:
        """
        Check if path exists (file or directory).

        Args:
            path: Path to check.

        Returns:
            True if the path exists. Never raises.
        """
        ...

    def makedirs(self, path: str, exist_ok: bool = False) -> None:
        """
        Create directory and all parent directories (`mkdir -p`).

        Args:
            path: Directory to create.
            exist_ok: If True, don't raise if directory exists.

        Raises:
            OSError: If directory exists and exist_ok is False.
        """
        ...

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        """
        Read file contents as text.

        Raises:
            FileNotFoundError: If file doesn't exist.
        """
        ...

    def write_text(self, path: str, content: str, encoding: str = "utf-8") -> None:
        """Write text to file, replacing existing content."""
        ...

    def append_text(self, path: str, content: str, encoding: str = "utf-8") -> None:
        """
        Append text to file, creating it if missing.

        Business context: Every sample is one appended CSV row; the log is
        never rewritten except by an explicit trim.

        Args:
            path: File to append to.
            content: Text to append (caller supplies trailing newline).
            encoding: Text encoding (default utf-8).

        Raises:
            OSError: If the parent directory is missing or not writable.
        """
        ...

    def create_exclusive(self, path: str, content: str) -> bool:
        """
        Create a file only if it does not exist yet (O_CREAT | O_EXCL).

        Args:
            path: File to create.
            content: Initial content.

        Returns:
            True if this call created the file, False if it already existed.

        Raises:
            OSError: For any failure other than the file already existing.
        """
        ...

    def remove(self, path: str) -> None:
        """
        Remove a file.

        Raises:
            FileNotFoundError: If file doesn't exist.
        """
        ...

    def rename(self, src: str, dst: str) -> None:
        """
        Rename a file, replacing dst atomically on the same filesystem.

        Raises:
            FileNotFoundError: If source doesn't exist.
        """
        ...

    def glob(self, pattern: str) -> list[str]:
        """
        Expand a shell-style wildcard pattern.

        Business context: Battery and adapter names vary by vendor (BAT0,
        BAT1, AC, ACAD, ADP1), so sysfs lookups are pattern based.

        Args:
            pattern: Pattern such as '/sys/class/power_supply/BAT*/capacity'.

        Returns:
            Sorted list of matching paths; empty when nothing matches.
        """
        ...


class RealFileSystem:
    """
    Real file system implementation using os and glob.

    This is the production implementation that performs actual I/O.
    """

    def exists(self, path: str) -> bool:  # pragma: no cover
        return os.path.exists(path)

    def makedirs(self, path: str, exist_ok: bool = False) -> None:  # pragma: no cover
        os.makedirs(path, exist_ok=exist_ok)

    def read_text(self, path: str, encoding: str = "utf-8") -> str:  # pragma: no cover
        with open(path, encoding=encoding) as f:
            return f.read()

    def write_text(
        self, path: str, content: str, encoding: str = "utf-8"
    ) -> None:  # pragma: no cover
        with open(path, "w", encoding=encoding) as f:
            f.write(content)

    def append_text(
        self, path: str, content: str, encoding: str = "utf-8"
    ) -> None:  # pragma: no cover
        with open(path, "a", encoding=encoding) as f:
            f.write(content)

    def create_exclusive(self, path: str, content: str) -> bool:  # pragma: no cover
        """
        Create a file with O_EXCL semantics.

        The existence check and creation happen in one system call, so two
        processes racing for the same PID file cannot both succeed.
        """
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w") as f:
            f.write(content)
        return True

    def remove(self, path: str) -> None:  # pragma: no cover
        os.remove(path)

    def rename(self, src: str, dst: str) -> None:  # pragma: no cover
        os.replace(src, dst)

    def glob(self, pattern: str) -> list[str]:  # pragma: no cover
        return sorted(glob.glob(pattern))
