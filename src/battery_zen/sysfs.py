"""
Linux power_supply probe for battery-zen.

PURPOSE: Read battery capacity, AC state and cycle count from sysfs.
AI CONTEXT: Only reads files under /sys/class/power_supply. Vendors name
devices differently (BAT0, BAT1, AC, ACAD, ADP1), so lookups use globs and
take the first readable match.

USAGE:
    probe = BatteryProbe()
    percent = probe.battery_percent()   # int | None
    plugged = probe.ac_online()         # bool
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .filesystem import RealFileSystem

if TYPE_CHECKING:
    from .filesystem import FileSystem

__all__ = ["BatteryProbe", "POWER_SUPPLY_ROOT"]

logger = logging.getLogger(__name__)

POWER_SUPPLY_ROOT = "/sys/class/power_supply"
ADAPTER_PREFIXES = ("AC", "ACAD", "ADP")
CHARGING_STATUSES = frozenset({"Charging", "Full"})


class BatteryProbe:
    """
    Reads the first battery and adapter found under power_supply.

    Every method returns a "not available" value instead of raising, since
    desktops and VMs may have no battery at all.
    """

    def __init__(
        self, root: str = POWER_SUPPLY_ROOT, filesystem: FileSystem | None = None
    ) -> None:
        self.root = root.rstrip("/")
        self._fs: FileSystem = filesystem or RealFileSystem()

    def _read_first(self, pattern: str) -> str | None:
        for path in self._fs.glob(f"{self.root}/{pattern}"):
            try:
                return self._fs.read_text(path).strip()
            except OSError as e:
                logger.debug(f"Cannot read {path}: {e}")
        return None

    def _read_int(self, pattern: str) -> int | None:
        value = self._read_first(pattern)
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            logger.debug(f"Non-integer value in {pattern}: {value!r}")
            return None

    def battery_percent(self) -> int | None:
        """Capacity of the first battery in percent, None without a battery."""
        return self._read_int("BAT*/capacity")

    def ac_online(self) -> bool:
        """
        Whether external power is connected.

        Checks AC*, ACAD* and ADP* adapters in that order. Without any
        adapter entry, falls back to the battery status: "Charging" or
        "Full" count as plugged in.
        """
        for prefix in ADAPTER_PREFIXES:
            value = self._read_first(f"{prefix}*/online")
            if value is not None:
                return value == "1"
        status = self._read_first("BAT*/status")
        return status in CHARGING_STATUSES

    def cycle_count(self) -> int | None:
        """Charge cycle count, None when the battery does not report it."""
        return self._read_int("BAT*/cycle_count")
