"""
Data models for battery-zen.

PURPOSE: Immutable value objects for the battery time series and everything
derived from it.
AI CONTEXT: These models are the contract between storage, analytics,
presenters and the chart. None of them perform I/O.

MODEL HIERARCHY:
- Sample: One (time, AC state, battery %) observation
- RegressionResult / RateEstimate: Trend and ETA derived from a run of samples
- Transition: Where the current AC state began
- SuspendEvent: A gap between samples long enough to count as a suspend
- ScreenOnTimeResult: Active vs suspended time over a series
- DailyScreenOnTime: One bar of the weekly screen-on chart
- ViewWindow: Visible time range of the chart

SERIALIZATION:
Models that appear in `battery-zen report --json` have to_dict(). Timestamps
are ISO 8601, durations are minutes as floats.

USAGE:
    sample = Sample(time=datetime.now(UTC), ac_connected=False, battery_percent=81.0)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

__all__ = [
    "Sample",
    "RegressionResult",
    "RateEstimate",
    "Transition",
    "SuspendEvent",
    "ScreenOnTimeResult",
    "DailyScreenOnTime",
    "ViewWindow",
]


def _minutes(delta: timedelta) -> float:
    return delta.total_seconds() / 60.0


@dataclass(frozen=True)
class Sample:
    """
    One battery observation.

    Samples are ordered by time ascending; callers supply sorted input and
    analytics do not re-sort.

    Attributes:
        time: When the sample was taken.
        ac_connected: True while external power is plugged in.
        battery_percent: Charge level, nominally 0-100.
    """

    time: datetime
    ac_connected: bool
    battery_percent: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "time": self.time.isoformat(),
            "ac_connected": self.ac_connected,
            "battery_percent": self.battery_percent,
        }


@dataclass(frozen=True)
class RegressionResult:
    """
    Weighted least-squares line through a run of samples.

    x is minutes relative to the latest sample (x ≤ 0), so the intercept is
    the fitted battery level "now".

    Attributes:
        slope: Battery change in % per minute.
        intercept: Fitted battery % at the latest sample time.
        ok: False when the fit was impossible (fewer than 2 samples or a
            zero denominator, e.g. all samples at one instant).
    """

    slope: float = 0.0
    intercept: float = 0.0
    ok: bool = False


@dataclass(frozen=True)
class RateEstimate:
    """
    Charge/discharge rate with a time-to-full or time-to-empty estimate.

    Attributes:
        rate: Regression slope in % per minute (positive while charging).
        eta_minutes: Minutes until the target level. math.inf when the
            trend never reaches it.
        confidence: Human-readable note, e.g. "(based on 12 charging samples)".
        ok: False when no rate could be computed at all.
        charging: AC state of the run the estimate was computed from.
    """

    rate: float
    eta_minutes: float
    confidence: str
    ok: bool
    charging: bool = False

    @property
    def has_eta(self) -> bool:
        """True when eta_minutes is a finite, non-negative duration."""
        return self.ok and math.isfinite(self.eta_minutes) and self.eta_minutes >= 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "rate_percent_per_minute": self.rate,
            "eta_minutes": self.eta_minutes if self.has_eta else None,
            "confidence": self.confidence,
            "ok": self.ok,
            "charging": self.charging,
        }


@dataclass(frozen=True)
class Transition:
    """First sample of the current AC state (time and battery at that point)."""

    time: datetime
    battery_percent: float


@dataclass(frozen=True)
class SuspendEvent:
    """
    A gap between two adjacent samples at or above the suspend threshold.

    Attributes:
        start_time: Last sample before the gap.
        end_time: First sample after the gap.
        duration: end_time - start_time.
        battery_before: Battery % at start_time.
        battery_after: Battery % at end_time.
        battery_delta: battery_before - battery_after. Positive means the
            battery drained while suspended, negative means it gained.
    """

    start_time: datetime
    end_time: datetime
    duration: timedelta
    battery_before: float
    battery_after: float
    battery_delta: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_minutes": _minutes(self.duration),
            "battery_before": self.battery_before,
            "battery_after": self.battery_after,
            "battery_delta": self.battery_delta,
        }


@dataclass(frozen=True)
class ScreenOnTimeResult:
    """
    Active (screen-on) versus suspended time over a series.

    Attributes:
        total_active_time: Series span minus total_suspend_time.
        total_suspend_time: Sum of all suspend event durations.
        last_active_session: Time since the end of the latest suspend event,
            or total_active_time when there was no suspend.
        suspend_events: Detected events in chronological order.
    """

    total_active_time: timedelta = timedelta(0)
    total_suspend_time: timedelta = timedelta(0)
    last_active_session: timedelta = timedelta(0)
    suspend_events: tuple[SuspendEvent, ...] = field(default_factory=tuple)

    @property
    def last_suspend(self) -> SuspendEvent | None:
        return self.suspend_events[-1] if self.suspend_events else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_active_minutes": _minutes(self.total_active_time),
            "total_suspend_minutes": _minutes(self.total_suspend_time),
            "last_active_session_minutes": _minutes(self.last_active_session),
            "suspend_events": [e.to_dict() for e in self.suspend_events],
        }


@dataclass(frozen=True)
class DailyScreenOnTime:
    """Screen-on time for one calendar day."""

    day: date
    active_time: timedelta
    is_today: bool = False

    @property
    def has_data(self) -> bool:
        return self.active_time > timedelta(0)

    @property
    def hours(self) -> float:
        return self.active_time.total_seconds() / 3600.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "day": self.day.isoformat(),
            "active_minutes": _minutes(self.active_time),
            "is_today": self.is_today,
        }


@dataclass(frozen=True)
class ViewWindow:
    """
    The visible time range of the chart.

    duration is the zoom width. end - start equals it except when a pan
    pinned the window to data shorter than the width, where
    end - start < duration.
    """

    start: datetime
    end: datetime
    duration: timedelta

    @classmethod
    def ending_at(cls, end: datetime, duration: timedelta) -> ViewWindow:
        return cls(start=end - duration, end=end, duration=duration)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end
