"""
systemd user service for the battery-zen sampler.

PURPOSE: Set up, control and inspect the background sampler the way
`make setup` does: a user unit whose ExecStart points at this install, a
seeded user config file, and the journal for logs.
AI CONTEXT: Linux only, since battery data comes from sysfs. Every
systemctl/journalctl call goes through SystemdUserService._run, so tests
patch a single subprocess.run.

WORKFLOW:
    battery-zen service setup         # copy-config, install, start
    battery-zen service install       # write unit, daemon-reload, enable
    battery-zen service copy-config   # seed config.toml, never overwrite
    battery-zen service logs          # journalctl --user -u battery-zen -f
    battery-zen service status | start | stop | uninstall
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import subprocess  # nosec B404
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .config import Config, Settings

if TYPE_CHECKING:
    from .filesystem import FileSystem

__all__ = [
    "UNIT_NAME",
    "UNIT_TEMPLATE",
    "ServiceStatus",
    "SystemdUserService",
    "get_service",
    "rewrite_exec_start",
    "sampler_command",
]

logger = logging.getLogger(__name__)

UNIT_NAME = f"{Config.APP_NAME}.service"

# ExecStart is a placeholder; install() rewrites it to this installation.
UNIT_TEMPLATE = """[Unit]
Description=Battery Zen battery logger
After=default.target

[Service]
Type=simple
ExecStart=battery-zen run
Restart=on-failure
RestartSec=30

[Install]
WantedBy=default.target
"""

_EXEC_START = re.compile(r"^ExecStart=.*$", re.MULTILINE)


def rewrite_exec_start(unit_text: str, command: str) -> str:
    """
    Point every ExecStart line of a unit at `command`.

    Raises:
        ValueError: If the unit has no ExecStart line.

    Example:
        >>> rewrite_exec_start("[Service]\\nExecStart=x\\n", "/opt/bz run")
        '[Service]\\nExecStart=/opt/bz run\\n'
    """
    text, count = _EXEC_START.subn(lambda _: f"ExecStart={command}", unit_text)
    if count == 0:
        raise ValueError("unit has no ExecStart line")
    return text


def sampler_command() -> str:
    """
    Command line that starts the sampling daemon from this installation.

    The console script next to the running interpreter is preferred, so a
    virtualenv install keeps working without being on PATH; otherwise the
    package is run as a module.
    """
    script = os.path.join(os.path.dirname(sys.executable), Config.APP_NAME)
    if os.path.exists(script):
        return shlex.join([script, "run"])
    return shlex.join([sys.executable, "-m", "battery_zen", "run"])


@dataclass(frozen=True)
class ServiceStatus:
    """What systemd reports about the unit."""

    installed: bool
    active: str = "inactive"
    enabled: str = "disabled"

    @property
    def running(self) -> bool:
        return self.active == "active"

    def describe(self) -> str:
        if not self.installed:
            return f"{UNIT_NAME} is not installed"
        return f"{UNIT_NAME} is {self.active} ({self.enabled})"


class SystemdUserService:
    """
    The sampler as a `systemctl --user` unit.

    Paths follow Settings and the XDG config directory: the unit goes to
    $XDG_CONFIG_HOME/systemd/user, the seeded config to
    $XDG_CONFIG_HOME/battery-zen/config.toml. No root access is needed.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        filesystem: FileSystem | None = None,
        unit_dir: str | None = None,
        command: str | None = None,
    ) -> None:
        """
        Args:
            settings: Values written by copy-config. Default: Settings().
            filesystem: FileSystem for unit and config files.
                Default: RealFileSystem.
            unit_dir: Directory for the unit file.
                Default: $XDG_CONFIG_HOME/systemd/user.
            command: ExecStart command. Default: sampler_command().
        """
        from .filesystem import RealFileSystem

        self.settings = settings or Settings()
        self._fs: FileSystem = filesystem or RealFileSystem()
        self.unit_dir = unit_dir or os.path.join(Config.config_home(), "systemd", "user")
        self.command = command or sampler_command()

    @property
    def unit_path(self) -> str:
        return os.path.join(self.unit_dir, UNIT_NAME)

    @property
    def config_path(self) -> str:
        return Config.user_config_path()

    # =========================================================================
    # FILES
    # =========================================================================

    def unit_text(self) -> str:
        """The unit file as install() writes it."""
        return rewrite_exec_start(UNIT_TEMPLATE, self.command)

    def copy_config(self) -> bool:
        """
        Seed the user config file from the current settings.

        An existing file is left alone so user edits survive a re-run of
        setup.

        Returns:
            True if the file was written, False if it already existed.

        Raises:
            OSError: If the directory or file cannot be written.
        """
        path = self.config_path
        if self._fs.exists(path):
            logger.info(f"Keeping existing config: {path}")
            return False
        self._fs.makedirs(os.path.dirname(path), exist_ok=True)
        self._fs.write_text(path, self.settings.to_toml())
        logger.info(f"Wrote default config: {path}")
        return True

    # =========================================================================
    # SYSTEMCTL
    # =========================================================================

    def install(self) -> bool:
        """Write the unit, reload systemd and enable it at login."""
        try:
            self._fs.makedirs(self.unit_dir, exist_ok=True)
            self._fs.write_text(self.unit_path, self.unit_text())
            logger.info(f"Wrote unit {self.unit_path} (ExecStart={self.command})")
            self._systemctl("daemon-reload")
            self._systemctl("enable", UNIT_NAME)
        except (OSError, subprocess.CalledProcessError) as e:
            logger.error(f"Installing {UNIT_NAME} failed: {e}")
            return False
        return True

    def uninstall(self) -> bool:
        """
        Stop, disable and remove the unit.

        stop and disable may fail when the unit was never started or
        enabled; that is not an error. The sample log is kept.
        """
        try:
            self._systemctl("stop", UNIT_NAME, check=False)
            self._systemctl("disable", UNIT_NAME, check=False)
            if self._fs.exists(self.unit_path):
                self._fs.remove(self.unit_path)
                logger.info(f"Removed unit {self.unit_path}")
            self._systemctl("daemon-reload", check=False)
        except OSError as e:
            logger.error(f"Removing {UNIT_NAME} failed: {e}")
            return False
        logger.info(f"Sample log kept in {self.settings.log_dir}")
        return True

    def start(self) -> bool:
        return self._control("start")

    def stop(self) -> bool:
        return self._control("stop")

    def setup(self) -> bool:
        """Seed the config, install the unit and start it."""
        try:
            self.copy_config()
        except OSError as e:
            logger.error(f"Seeding config failed: {e}")
            return False
        return self.install() and self.start()

    def status(self) -> ServiceStatus:
        if not self._fs.exists(self.unit_path):
            return ServiceStatus(installed=False)
        try:
            active = self._systemctl("is-active", UNIT_NAME, check=False)
            enabled = self._systemctl("is-enabled", UNIT_NAME, check=False)
        except OSError as e:
            logger.warning(f"systemctl unavailable: {e}")
            return ServiceStatus(installed=True, active="unknown", enabled="unknown")
        return ServiceStatus(
            installed=True,
            active=active.stdout.strip() or "unknown",
            enabled=enabled.stdout.strip() or "unknown",
        )

    # =========================================================================
    # JOURNAL
    # =========================================================================

    def logs_command(self, follow: bool = True) -> list[str]:
        command = ["journalctl", "--user", "-u", UNIT_NAME]
        if follow:
            command.append("-f")
        return command

    def logs(self, follow: bool = True) -> int:
        """
        Stream the unit's journal to the terminal.

        Returns:
            journalctl's exit code.

        Raises:
            OSError: If journalctl cannot be run.
        """
        return self._run(self.logs_command(follow), capture=False).returncode

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _control(self, verb: str) -> bool:
        try:
            self._systemctl(verb, UNIT_NAME)
        except (OSError, subprocess.CalledProcessError) as e:
            logger.error(f"systemctl {verb} {UNIT_NAME} failed: {e}")
            return False
        logger.info(f"systemctl {verb} {UNIT_NAME}: ok")
        return True

    def _systemctl(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        return self._run(["systemctl", "--user", *args], check=check)

    def _run(
        self, command: list[str], check: bool = False, capture: bool = True
    ) -> subprocess.CompletedProcess[str]:
        logger.debug(f"Running {shlex.join(command)}")
        return subprocess.run(  # nosec B603
            command,
            check=check,
            capture_output=capture,
            text=True,
        )


def get_service(
    settings: Settings | None = None, filesystem: FileSystem | None = None
) -> SystemdUserService:
    """
    The sampler service for this machine.

    Raises:
        NotImplementedError: On anything but Linux.
    """
    if not sys.platform.startswith("linux"):
        raise NotImplementedError(f"Unsupported platform: {sys.platform}")
    return SystemdUserService(settings, filesystem)
