"""
Sampling daemon for battery-zen.

PURPOSE: Probe the battery, append one CSV row, keep the log bounded.
AI CONTEXT: `battery-zen sample` calls sample_once(); `battery-zen run`
calls run() under the PID lock until the stop event is set.

LOOP:
    sample -> trim if over threshold -> wait interval (shorter on battery)

USAGE:
    sampler = Sampler(settings)
    stop = threading.Event()
    sampler.run(stop)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .models import Sample
from .storage import SampleLog
from .sysfs import BatteryProbe

if TYPE_CHECKING:
    from .config import Settings

__all__ = ["Sampler", "BatteryNotFoundError"]

logger = logging.getLogger(__name__)


class BatteryNotFoundError(RuntimeError):
    """Raised when no battery capacity can be read."""


class Sampler:
    """
    Takes battery samples and appends them to the log.

    Business context: Polling more often on battery gives the discharge
    regression enough points, while on AC the slower rate keeps the log
    from filling with flat 100% rows.
    """

    def __init__(
        self,
        settings: Settings,
        probe: BatteryProbe | None = None,
        log: SampleLog | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings
        self.probe = probe or BatteryProbe()
        self.log = log or SampleLog(settings.log_path)
        self._clock = clock

    def now(self) -> datetime:
        """Timestamp for a new sample, in UTC or local time per settings."""
        if self._clock is not None:
            return self._clock()
        if self.settings.use_utc:
            return datetime.now(UTC)
        return datetime.now().astimezone()

    def sample_once(self) -> Sample:
        """
        Record one sample and trim the log if it grew past the threshold.

        Returns:
            The recorded sample.

        Raises:
            BatteryNotFoundError: If the battery capacity cannot be read.
            OSError: If the sample could not be written.
        """
        percent = self.probe.battery_percent()
        if percent is None:
            raise BatteryNotFoundError("battery percent not found")
        ac = self.probe.ac_online()
        sample = Sample(time=self.now(), ac_connected=ac, battery_percent=float(percent))
        if not self.log.append(sample.time, ac, percent):
            raise OSError(f"could not write {self.log.path}")
        self.log.trim_if_needed(self.settings.max_lines, self.settings.trim_buffer)
        return sample

    def interval_for(self, ac_connected: bool) -> float:
        """Seconds to wait after a sample taken in the given AC state."""
        if ac_connected:
            return float(self.settings.interval_secs_on_ac)
        return float(self.settings.interval_secs)

    def run(self, stop: threading.Event, max_samples: int | None = None) -> int:
        """
        Sample until `stop` is set.

        A failed sample is logged and retried after the battery interval;
        the daemon never exits on a transient read error.

        Args:
            stop: Set to end the loop; also interrupts the wait.
            max_samples: Stop after this many attempts (tests).

        Returns:
            Number of samples successfully recorded.
        """
        recorded = attempts = 0
        logger.info(f"Sampling to {self.log.path}")
        while not stop.is_set():
            ac = False
            try:
                sample = self.sample_once()
                ac = sample.ac_connected
                recorded += 1
            except (BatteryNotFoundError, OSError) as e:
                logger.error(f"sample: {e}")
            attempts += 1
            if max_samples is not None and attempts >= max_samples:
                break
            stop.wait(self.interval_for(ac))
        logger.info(f"Sampler stopped after {recorded} samples")
        return recorded
