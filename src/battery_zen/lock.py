"""
Single-instance lock for the battery-zen sampler.

PURPOSE: Make sure only one sampler daemon appends to the log.
AI CONTEXT: PID file created with O_EXCL. A leftover file is treated as
stale when its PID is not a live battery-zen process (checked through
/proc), then removed and re-created.

USAGE:
    with PIDFile(settings.pid_path) as acquired:
        if not acquired:
            return 1
        sampler.run(stop)
"""

from __future__ import annotations

import logging
import os
from types import TracebackType
from typing import TYPE_CHECKING

from .config import Config
from .filesystem import RealFileSystem

if TYPE_CHECKING:
    from .filesystem import FileSystem

__all__ = ["PIDFile"]

logger = logging.getLogger(__name__)

PROC_ROOT = "/proc"


class PIDFile:
    """
    PID file lock with stale-lock recovery.

    Acquire is not re-entrant. Release only removes the file if this
    instance created it.
    """

    def __init__(
        self,
        path: str,
        filesystem: FileSystem | None = None,
        pid: int | None = None,
        proc_root: str = PROC_ROOT,
        process_name: str = Config.APP_NAME,
    ) -> None:
        self.path = path
        self._fs: FileSystem = filesystem or RealFileSystem()
        self.pid = os.getpid() if pid is None else pid
        self.proc_root = proc_root
        self.process_name = process_name
        self.acquired = False

    def is_owner_alive(self, pid: int) -> bool:
        """
        Whether `pid` is a running battery-zen process.

        The comm name is checked first; cmdline is the fallback because
        comm is truncated to 15 characters and Python entry points show up
        as "python3".
        """
        base = f"{self.proc_root}/{pid}"
        if not self._fs.exists(base):
            return False
        try:
            comm = self._fs.read_text(f"{base}/comm").strip()
        except OSError:
            return False
        if comm == self.process_name:
            return True
        try:
            cmdline = self._fs.read_text(f"{base}/cmdline")
        except OSError:
            return False
        return self.process_name in cmdline.replace("\x00", " ")

    def acquire(self) -> bool:
        """
        Take the lock.

        Returns:
            True if this process now holds the lock, False if another live
            battery-zen process holds it.

        Raises:
            OSError: If the lock directory or file cannot be created.
        """
        directory = os.path.dirname(self.path)
        if directory:
            self._fs.makedirs(directory, exist_ok=True)
        if self._fs.create_exclusive(self.path, str(self.pid)):
            self.acquired = True
            return True

        try:
            owner = int(self._fs.read_text(self.path).strip() or 0)
        except (OSError, ValueError):
            owner = 0
        if owner > 0 and owner != self.pid and self.is_owner_alive(owner):
            logger.info(f"Lock {self.path} held by running process {owner}")
            return False

        logger.info(f"Removing stale lock {self.path} (pid {owner})")
        try:
            self._fs.remove(self.path)
        except FileNotFoundError:
            pass
        self.acquired = self._fs.create_exclusive(self.path, str(self.pid))
        return self.acquired

    def release(self) -> None:
        if not self.acquired:
            return
        try:
            self._fs.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to remove lock {self.path}: {e}")
        self.acquired = False

    def __enter__(self) -> bool:
        return self.acquire()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
