"""
Presenters for battery-zen views.

PURPOSE: Testable layer between analytics and the UI.
AI CONTEXT: Turns samples into view models and display lines. No curses,
no file access; the PNG export is the only rendering done here.

DESIGN PRINCIPLES:
1. Presenters receive data, return view models (dataclasses)
2. No dependency on the terminal UI
3. Every string the status pane shows is built in build_status_lines()

USAGE:
    presenter = StatusPresenter(AnalyticsEngine(), log_path=settings.log_path)
    view = presenter.build(samples)
    lines = build_status_lines(view)

    png = ChartPresenter(AnalyticsEngine()).render_history_chart(samples)
"""

from __future__ import annotations

import io
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from .config import Config
from .navigation import local_now

if TYPE_CHECKING:
    from .analytics import AnalyticsEngine
    from .models import (
        DailyScreenOnTime,
        RateEstimate,
        Sample,
        ScreenOnTimeResult,
        SuspendEvent,
        Transition,
    )

__all__ = [
    "format_duration_auto",
    "format_minutes",
    "format_stamp",
    "StatusLine",
    "StatusViewModel",
    "StatusPresenter",
    "build_status_lines",
    "ChartPresenter",
]

NO_VALUE = "—"

# Matplotlib colors matching the terminal palette
CHART_COLORS: dict[str, str] = {
    "charging": "#00d700",
    "discharging": "#ff0000",
    "day": "#3a3a3a",
    "bar": "#00d7ff",
    "today": "#ffff00",
}


def format_duration_auto(duration: timedelta) -> str:
    """
    Format a duration as "HHh MMm" below one day, else "Xd Yh".

    Example:
        >>> format_duration_auto(timedelta(minutes=95))
        '01h 35m'
        >>> format_duration_auto(timedelta(hours=50))
        '2d 2h'
    """
    total_minutes = int(duration.total_seconds() // 60)
    if duration < timedelta(hours=24):
        return f"{total_minutes // 60:02d}h {total_minutes % 60:02d}m"
    hours = total_minutes // 60
    return f"{hours // 24}d {hours % 24}h"


def format_minutes(minutes: float) -> str:
    """
    Format minutes as "Xh Ym"; "—" for NaN, infinite or negative input.

    Example:
        >>> format_minutes(125)
        '2h 5m'
    """
    if math.isnan(minutes) or math.isinf(minutes) or minutes < 0:
        return NO_VALUE
    total = int(minutes)
    return f"{total // 60}h {total % 60}m"


def format_stamp(moment: datetime) -> str:
    """Short timestamp like "Jan 2 15:04"."""
    return f"{moment:%b} {moment.day} {moment:%H:%M}"


def _round_minute(duration: timedelta) -> timedelta:
    return timedelta(minutes=round(duration.total_seconds() / 60))


@dataclass
class StatusLine:
    """One line of the status pane. color None means terminal default."""

    text: str
    color: int | None = None
    bold: bool = False


@dataclass
class StatusViewModel:
    """
    Everything the status pane and `battery-zen status` display.

    Built by StatusPresenter.build() from a non-empty sample series.
    """

    latest: Sample
    transition: Transition | None
    estimate: RateEstimate
    total_samples: int
    ac_samples: int
    battery_samples: int
    first_time: datetime
    last_time: datetime
    screen_on: ScreenOnTimeResult
    today_screen_on: ScreenOnTimeResult
    max_charge_percent: float
    now: datetime
    cycle_count: int | None = None
    log_path: str = ""
    config_summary: str = ""

    @property
    def charging(self) -> bool:
        return self.latest.ac_connected

    @property
    def ac_status(self) -> str:
        return "Plugged In" if self.charging else "Unplugged"

    @property
    def rate_label(self) -> str:
        return "Charge Rate" if self.charging else "Discharge Rate"

    @property
    def rate_display(self) -> str:
        if not self.estimate.ok:
            return "n/a"
        return f"{self.estimate.rate:.3f} %/min"

    @property
    def estimate_duration(self) -> timedelta | None:
        """ETA as a duration rounded to the minute, None when there is none."""
        if not self.estimate.has_eta:
            return None
        return _round_minute(timedelta(minutes=self.estimate.eta_minutes))

    @property
    def estimate_display(self) -> str:
        duration = self.estimate_duration
        return format_duration_auto(duration) if duration is not None else NO_VALUE

    @property
    def eta(self) -> datetime | None:
        """Wall-clock time the estimate completes, rounded to the minute."""
        duration = self.estimate_duration
        if duration is None:
            return None
        moment = self.now + duration
        return moment.replace(second=0, microsecond=0) + (
            timedelta(minutes=1) if moment.second >= 30 else timedelta(0)
        )

    @property
    def time_range(self) -> timedelta:
        return self.last_time - self.first_time

    @property
    def last_suspend(self) -> SuspendEvent | None:
        return self.screen_on.last_suspend

    def to_dict(self) -> dict[str, Any]:
        eta = self.eta
        return {
            "latest": self.latest.to_dict(),
            "ac_status": self.ac_status,
            "transition_time": self.transition.time.isoformat() if self.transition else None,
            "transition_battery": (
                self.transition.battery_percent if self.transition else None
            ),
            "estimate": self.estimate.to_dict(),
            "eta": eta.isoformat() if eta else None,
            "max_charge_percent": self.max_charge_percent,
            "cycle_count": self.cycle_count,
            "samples": {
                "total": self.total_samples,
                "ac": self.ac_samples,
                "battery": self.battery_samples,
                "first": self.first_time.isoformat(),
                "last": self.last_time.isoformat(),
            },
            "screen_on": self.screen_on.to_dict(),
            "today_screen_on": self.today_screen_on.to_dict(),
            "log_path": self.log_path,
            "config": self.config_summary,
        }


class StatusPresenter:
    """
    Builds StatusViewModel instances from the sample series.

    Business context: The dashboard and the `status`/`report` commands
    show the same numbers, so the aggregation lives here once.
    """

    def __init__(
        self,
        engine: AnalyticsEngine,
        log_path: str = "",
        config_summary: str = "",
        cycle_count: Callable[[], int | None] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize the presenter with its collaborators.

        Args:
            engine: Analytics engine carrying alpha, charge target and
                suspend threshold.
            log_path: CSV path shown in the status pane.
            config_summary: Config file description (Settings.config_summary()).
            cycle_count: Returns the battery cycle count, or None if the
                battery does not report one.
            clock: Returns "now" for ETAs and today's totals.
        """
        self.engine = engine
        self.log_path = log_path
        self.config_summary = config_summary
        self._cycle_count = cycle_count
        self._clock = clock or local_now

    def build(
        self, samples: Sequence[Sample], alpha: float | None = None
    ) -> StatusViewModel | None:
        """
        Aggregate analytics for the current series.

        Args:
            samples: Chronological samples.
            alpha: Regression decay override. Default: engine alpha.

        Returns:
            StatusViewModel, or None when there are no samples.
        """
        if not samples:
            return None
        latest = samples[-1]
        now = self._clock()
        run = self.engine.contiguous_run(samples)
        estimate = self.engine.rate_and_estimate(run, latest.battery_percent, alpha)
        on_ac, on_battery = self.engine.count_by_state(samples)
        return StatusViewModel(
            latest=latest,
            transition=self.engine.find_last_transition(samples),
            estimate=estimate,
            total_samples=len(samples),
            ac_samples=on_ac,
            battery_samples=on_battery,
            first_time=samples[0].time,
            last_time=latest.time,
            screen_on=self.engine.screen_on_time(samples),
            today_screen_on=self.engine.daily_screen_on_time(samples, now),
            max_charge_percent=self.engine.max_charge_percent,
            now=now,
            cycle_count=self._cycle_count() if self._cycle_count else None,
            log_path=self.log_path,
            config_summary=self.config_summary,
        )

    def weekly(self, samples: Sequence[Sample]) -> list[DailyScreenOnTime]:
        """Per-day screen-on time for the bar chart, oldest first."""
        return self.engine.weekly_screen_on_time(samples, self._clock())


def build_status_lines(view: StatusViewModel) -> list[StatusLine]:
    """
    Build every line of the status pane.

    Sections: AC state with time since the last plug change, ETA, battery
    status with rate, screen-on time, data summary, file locations.

    Args:
        view: Aggregated status.

    Returns:
        Lines in display order; empty strings are spacers.
    """
    lines: list[StatusLine] = []

    def add(text: str, color: int | None = None, bold: bool = False) -> None:
        lines.append(StatusLine(text.rstrip(), color, bold))

    latest = view.latest
    add(f"AC Status: {view.ac_status}", Config.HIGHLIGHT_COLOR, bold=True)

    if view.transition is not None:
        since = format_duration_auto(_round_minute(latest.time - view.transition.time))
        start_batt = view.transition.battery_percent
        if view.charging:
            gain = latest.battery_percent - start_batt
            add(f"  - Plugged in for {since}, battery ↑ {gain:.1f}% (start: {start_batt:.1f}%)")
        else:
            drop = start_batt - latest.battery_percent
            add(
                f"  - On battery for {since} (since: {format_stamp(view.transition.time)}), "
                f"battery ↓ {drop:.1f}% (start: {start_batt:.1f}%)"
            )

    eta = view.eta
    by = f" (by: {eta:%H:%M})" if eta is not None else ""
    if view.charging:
        add(f"  - Time to Full ({view.max_charge_percent:.0f}%): {view.estimate_display}{by}")
    else:
        add(f"  - Time to Empty (0%): {view.estimate_display}{by}")

    add("")
    add("Battery Status:", bold=True)
    add(f"  - Current Battery: {latest.battery_percent:.1f}%")
    if view.cycle_count is not None:
        add(f"  - Battery Cycles: {view.cycle_count}")
    add(f"  - {view.rate_label}: {view.rate_display} {view.estimate.confidence}")

    add("")
    add("Screen-On Time (SOT):", Config.LABEL_COLOR, bold=True)
    last_suspend = view.last_suspend
    if view.screen_on.last_active_session > timedelta(0):
        session = format_duration_auto(view.screen_on.last_active_session)
        if last_suspend is not None:
            add(f"  - Current session: {session} (since: {format_stamp(last_suspend.end_time)})")
        else:
            add(f"  - Current session: {session}")
    if view.today_screen_on.total_active_time > timedelta(0):
        add(f"  - Today's total: {format_duration_auto(view.today_screen_on.total_active_time)}")
    if last_suspend is not None:
        add(
            f"  - Last suspend: {format_stamp(last_suspend.start_time)} - "
            f"{format_stamp(last_suspend.end_time)} "
            f"(lasted {format_duration_auto(last_suspend.duration)})"
        )
        before, after = last_suspend.battery_before, last_suspend.battery_after
        delta = last_suspend.battery_delta
        if delta > 0:
            add(
                f"      Battery: {before:.1f}% → {after:.1f}% ({delta:.1f}% drain)",
                Config.DISCHARGING_COLOR,
            )
        elif delta < 0:
            add(
                f"      Battery: {before:.1f}% → {after:.1f}% (+{-delta:.1f}% gain)",
                Config.CHARGING_COLOR,
            )
        else:
            add(f"      Battery: {before:.1f}% → {after:.1f}% (no change)")

    add("")
    add("Data Summary:", bold=True)
    add(
        f"  - Total samples: {view.total_samples} "
        f"(spanning {format_duration_auto(_round_minute(view.time_range))})"
    )
    add(f"  - AC plugged: {view.ac_samples} samples", Config.CHARGING_COLOR)
    add(f"  - On battery: {view.battery_samples} samples", Config.DISCHARGING_COLOR)
    add(
        f"  - Time range: {format_stamp(view.first_time)} to {format_stamp(view.last_time)}"
    )

    add("")
    if view.log_path:
        add(f"Data file: {view.log_path}")
    if view.config_summary:
        add(view.config_summary)
    return lines


class ChartPresenter:
    """
    Presenter for PNG chart export.

    Uses matplotlib with the non-interactive Agg backend. Returns PNG
    images as bytes for `battery-zen export`.
    """

    def __init__(
        self,
        engine: AnalyticsEngine,
        day_start_hour: int = Config.DAY_START_HOUR,
        day_end_hour: int = Config.DAY_END_HOUR,
    ) -> None:
        self.engine = engine
        self.day_start_hour = day_start_hour
        self.day_end_hour = day_end_hour

    def _day_spans(self, start: datetime, end: datetime) -> list[tuple[datetime, datetime]]:
        spans: list[tuple[datetime, datetime]] = []
        day = start.replace(hour=0, minute=0, second=0, microsecond=0)
        while day < end:
            span_start = max(day.replace(hour=self.day_start_hour), start)
            span_end = min(day.replace(hour=self.day_end_hour), end)
            if span_start < span_end:
                spans.append((span_start, span_end))
            day += timedelta(days=1)
        return spans

    def render_history_chart(
        self, samples: Sequence[Sample], window: timedelta | None = None
    ) -> bytes:
        """
        Render battery % over time as a line chart PNG.

        Charging and discharging samples are separate lines, broken
        wherever adjacent samples are more than Config.MAX_LINE_GAP apart,
        over light bands for day hours.

        Args:
            samples: Chronological samples.
            window: Only plot this much history before the latest sample.
                Default: everything.

        Returns:
            PNG image bytes (900x360 at 100 DPI). An empty series gives a
            placeholder image.

        Raises:
            ImportError: If matplotlib is not installed.
        """
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.dates as mdates
        import matplotlib.pyplot as plt

        from .chart import build_series, segment_series

        visible = self.engine.filter_recent(samples, window) if window else list(samples)
        fig, ax = plt.subplots(figsize=(9, 3.6))

        if not visible:
            ax.text(0.5, 0.5, "No data", ha="center", va="center", fontsize=14)
            ax.axis("off")
        else:
            start, end = visible[0].time, visible[-1].time
            for span_start, span_end in self._day_spans(start, end):
                ax.axvspan(span_start, span_end, color=CHART_COLORS["day"], alpha=0.15, lw=0)
            for series in build_series(visible):
                color = CHART_COLORS[series.name.lower()]
                label: str | None = series.name
                for run in segment_series(series.points, start, end, Config.MAX_LINE_GAP):
                    ax.plot(
                        [p.time for p in run],
                        [p.value for p in run],
                        color=color,
                        marker="." if len(run) == 1 else None,
                        linewidth=1.5,
                        label=label,
                    )
                    label = None
            ax.set_ylim(Config.Y_MIN, Config.Y_MAX)
            ax.set_ylabel("Battery (%)")
            ax.set_title("Battery History")
            ax.xaxis.set_major_formatter(mdates.DateFormatter("%b %d %H:%M"))
            fig.autofmt_xdate()
            ax.legend(loc="lower left", frameon=False)
            ax.spines["top"].set_visible(False)
            ax.spines["right"].set_visible(False)

        buf = io.BytesIO()
        plt.tight_layout()
        plt.savefig(buf, format="png", dpi=100, bbox_inches="tight")
        plt.close(fig)
        buf.seek(0)
        return buf.read()

    def render_weekly_sot_chart(self, days: Sequence[DailyScreenOnTime]) -> bytes:
        """
        Render daily screen-on hours as a bar chart PNG, today highlighted.

        Raises:
            ImportError: If matplotlib is not installed.
        """
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt

        fig, ax = plt.subplots(figsize=(6, 3))
        labels = ["Today" if d.is_today else f"{d.day:%a}" for d in days]
        hours = [d.hours for d in days]
        colors = [CHART_COLORS["today"] if d.is_today else CHART_COLORS["bar"] for d in days]

        ax.bar(range(len(days)), hours, color=colors)
        ax.set_xticks(range(len(days)))
        ax.set_xticklabels(labels)
        ax.set_ylabel("Hours")
        ax.set_title("Screen-On Time")
        ax.set_ylim(0, max([1.0, *hours]) * 1.15)
        for i, d in enumerate(days):
            minutes = int(d.active_time.total_seconds() // 60)
            ax.text(i, hours[i], f"{minutes // 60:02d}:{minutes % 60:02d}", ha="center", va="bottom")
        ax.spines["top"].set_visible(False)
        ax.spines["right"].set_visible(False)

        buf = io.BytesIO()
        plt.tight_layout()
        plt.savefig(buf, format="png", dpi=100, bbox_inches="tight")
        plt.close(fig)
        buf.seek(0)
        return buf.read()
