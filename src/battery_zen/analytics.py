"""
Analytics engine for battery-zen.

PURPOSE: Turn a battery time series into rates, ETAs, transitions, suspend
events and screen-on time.
AI CONTEXT: Pure data processing - no I/O, no clock access except through
explicit arguments. Nothing here raises on sparse input; results carry an
`ok` flag or are zero-valued.

METRIC CATEGORIES:
1. Trend: Exponentially weighted regression over the current AC run
2. Estimates: Time to full (charging) or time to empty (discharging)
3. Transitions: When the current AC state began
4. Usage: Suspend gaps, screen-on time overall, per day, per week

REGRESSION MODEL:
- x = minutes relative to the latest sample (x ≤ 0)
- w = exp(alpha * x), so recent samples dominate
- slope = (Σw·Σwxy - Σwx·Σwy) / (Σw·Σwxx - (Σwx)²)
- intercept = (Σwy - slope·Σwx) / Σw

USAGE:
    engine = AnalyticsEngine()
    run = engine.contiguous_run(samples)
    estimate = engine.rate_and_estimate(run, samples[-1].battery_percent)
    sot = engine.screen_on_time(samples)
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import UTC, datetime, time, timedelta, timezone

from .config import Config
from .models import (
    DailyScreenOnTime,
    RateEstimate,
    RegressionResult,
    Sample,
    ScreenOnTimeResult,
    SuspendEvent,
    Transition,
)

__all__ = ["AnalyticsEngine", "start_of_day"]


def start_of_day(moment: datetime, days: int = 0) -> datetime:
    """
    Midnight starting the calendar day `days` after moment's day.

    The midnight is rebuilt from the calendar date, so it carries that
    day's own UTC offset. Named zones (UTC, ZoneInfo) apply their rules;
    a non-UTC fixed offset, as returned by datetime.astimezone(), is
    resolved again in the system zone so days across a DST change keep
    their local midnight.

    Example:
        >>> start_of_day(datetime(2025, 9, 1, 15, 4, tzinfo=UTC), days=1)
        datetime.datetime(2025, 9, 2, 0, 0, tzinfo=datetime.timezone.utc)
    """
    day = moment.date() + timedelta(days=days)
    zone = moment.tzinfo
    if isinstance(zone, timezone) and zone != UTC:
        return datetime.combine(day, time()).astimezone()
    return datetime.combine(day, time(), tzinfo=zone)


class AnalyticsEngine:
    """
    Calculator for battery trends and usage statistics.

    DESIGN:
    - Stateless: Each method operates on provided samples
    - Pure: No side effects, only data transformation
    - Configurable: Parameters from Config or constructor, overridable per call

    PARAMETERS:
    - alpha: Regression weight decay per minute
    - max_charge_percent: Target level for time-to-full
    - suspend_gap_minutes: Sample gap that counts as a suspend
    """

    def __init__(
        self,
        alpha: float | None = None,
        max_charge_percent: float | None = None,
        suspend_gap_minutes: float | None = None,
    ) -> None:
        """
        Initialize the engine with configurable parameters.

        Business context: Users with a charge limit (e.g. 80%) need
        time-to-full computed against that limit, and machines with long
        polling intervals need a larger suspend threshold.

        Args:
            alpha: Default: Config.REGRESSION_ALPHA. 0 gives ordinary least
                squares.
            max_charge_percent: Default: Config.MAX_CHARGE_PERCENT.
            suspend_gap_minutes: Default: Config.SUSPEND_GAP_MINUTES.

        Example:
            >>> engine = AnalyticsEngine(max_charge_percent=80)
            >>> engine.max_charge_percent
            80
        """
        self.alpha = Config.REGRESSION_ALPHA if alpha is None else alpha
        self.max_charge_percent = (
            Config.MAX_CHARGE_PERCENT if max_charge_percent is None else max_charge_percent
        )
        self.suspend_gap_minutes = (
            Config.SUSPEND_GAP_MINUTES if suspend_gap_minutes is None else suspend_gap_minutes
        )

    # =========================================================================
    # TREND
    # =========================================================================

    def weighted_regression(
        self, samples: Sequence[Sample], alpha: float | None = None
    ) -> RegressionResult:
        """
        Fit an exponentially weighted least-squares line to battery %.

        Business context: Battery drain varies with workload. Weighting the
        last few minutes more heavily makes the ETA react to the current
        workload instead of the whole session average.

        Args:
            samples: Chronological samples, usually one contiguous AC run.
            alpha: Weight decay per minute. Default: engine alpha.

        Returns:
            RegressionResult with slope in %/min and intercept at the latest
            sample. ok=False for fewer than 2 samples or a zero denominator.

        Example:
            >>> result = engine.weighted_regression(run, alpha=0.0)
            >>> round(result.slope, 3)
            1.0
        """
        if len(samples) < 2:
            return RegressionResult()
        decay = self.alpha if alpha is None else alpha
        t_now = samples[-1].time

        sum_w = sum_wx = sum_wy = sum_wxx = sum_wxy = 0.0
        for sample in samples:
            x = (sample.time - t_now).total_seconds() / 60.0
            w = math.exp(decay * x)
            y = sample.battery_percent
            sum_w += w
            sum_wx += w * x
            sum_wy += w * y
            sum_wxx += w * x * x
            sum_wxy += w * x * y

        den = sum_w * sum_wxx - sum_wx * sum_wx
        if den == 0:
            return RegressionResult()
        slope = (sum_w * sum_wxy - sum_wx * sum_wy) / den
        intercept = (sum_wy - slope * sum_wx) / sum_w
        return RegressionResult(slope=slope, intercept=intercept, ok=True)

    def contiguous_run(
        self, samples: Sequence[Sample], ac_state: bool | None = None
    ) -> list[Sample]:
        """
        Get the longest suffix of samples sharing one AC state.

        Args:
            samples: Chronological samples.
            ac_state: State to match. Default: the latest sample's state.
                An explicit state different from the latest sample yields
                an empty run.

        Returns:
            Samples in chronological order; empty for empty input.
        """
        if not samples:
            return []
        state = samples[-1].ac_connected if ac_state is None else ac_state
        start = len(samples)
        while start > 0 and samples[start - 1].ac_connected == state:
            start -= 1
        return list(samples[start:])

    def rate_and_estimate(
        self,
        run: Sequence[Sample],
        current_battery: float,
        alpha: float | None = None,
        max_charge_percent: float | None = None,
    ) -> RateEstimate:
        """
        Compute the charge/discharge rate and time to full or empty.

        The run's AC state decides the direction: charging runs estimate
        time until max_charge_percent, discharging runs time until 0%. The
        ETA starts from the live reading, not the regression intercept.

        Business context: A slope with the wrong sign (e.g. draining while
        plugged into a weak charger) still reports a rate but no ETA, so
        the user sees that the machine is not charging.

        Args:
            run: Contiguous single-AC-state samples.
            current_battery: Live battery % the ETA starts from.
            alpha: Weight decay. Default: engine alpha.
            max_charge_percent: Charge target. Default: engine target.

        Returns:
            RateEstimate. ok=False when the run is too short or the
            regression is degenerate; eta_minutes is math.inf when the trend
            never reaches the target.

        Example:
            >>> est = engine.rate_and_estimate(run, 60.0, alpha=0.0)
            >>> est.confidence
            '(based on 11 charging samples)'
        """
        charging = bool(run) and run[0].ac_connected
        kind = "charging" if charging else "discharging"
        if len(run) < 2:
            return RateEstimate(0.0, 0.0, f"(need ≥2 {kind} samples)", False, charging)

        result = self.weighted_regression(run, alpha)
        if not result.ok:
            return RateEstimate(0.0, 0.0, "(regression failed)", False, charging)

        rate = result.slope
        if charging:
            target = self.max_charge_percent if max_charge_percent is None else max_charge_percent
            if rate > Config.RATE_EPSILON:
                eta = (target - current_battery) / rate
                confidence = f"(based on {len(run)} charging samples)"
            else:
                eta = math.inf
                confidence = "(not charging or already full)"
        else:
            if rate < -Config.RATE_EPSILON:
                eta = -current_battery / rate
                confidence = f"(based on {len(run)} discharging samples)"
            else:
                eta = math.inf
                confidence = "(not discharging)"
        return RateEstimate(rate, eta, confidence, True, charging)

    # =========================================================================
    # TRANSITIONS AND FILTERS
    # =========================================================================

    def find_last_transition(self, samples: Sequence[Sample]) -> Transition | None:
        """
        Find where the current AC state began.

        Walks back from the latest sample to the first sample whose AC
        state differs; the transition is the sample right after it. If the
        state never changed, the first sample is returned.

        Returns:
            Transition, or None for an empty series.
        """
        if not samples:
            return None
        current = samples[-1].ac_connected
        for i in range(len(samples) - 2, -1, -1):
            if samples[i].ac_connected != current:
                first = samples[i + 1]
                return Transition(first.time, first.battery_percent)
        return Transition(samples[0].time, samples[0].battery_percent)

    def filter_recent(self, samples: Sequence[Sample], since: timedelta) -> list[Sample]:
        """Samples no older than `since` before the latest sample."""
        if not samples:
            return []
        cut = samples[-1].time - since
        return [s for s in samples if s.time >= cut]

    def count_by_state(self, samples: Sequence[Sample]) -> tuple[int, int]:
        """Return (samples on AC, samples on battery)."""
        on_ac = sum(1 for s in samples if s.ac_connected)
        return on_ac, len(samples) - on_ac

    # =========================================================================
    # USAGE: SUSPEND AND SCREEN-ON TIME
    # =========================================================================

    def detect_suspend_events(
        self, samples: Sequence[Sample], gap_threshold_minutes: float | None = None
    ) -> list[SuspendEvent]:
        """
        Find gaps between adjacent samples that indicate a suspend.

        Business context: The sampler stops while the machine sleeps, so a
        gap in the log is the only trace of a suspend or shutdown. The
        battery change across the gap shows sleep drain.

        Args:
            samples: Chronological samples.
            gap_threshold_minutes: Minimum gap. Default: engine threshold.

        Returns:
            Chronological list of SuspendEvent; empty if none.

        Example:
            >>> # samples at t = 0, 1, 2, 50, 51 minutes
            >>> events = engine.detect_suspend_events(samples, 5)
            >>> events[0].duration
            datetime.timedelta(seconds=2880)
        """
        threshold = timedelta(
            minutes=self.suspend_gap_minutes
            if gap_threshold_minutes is None
            else gap_threshold_minutes
        )
        events: list[SuspendEvent] = []
        for prev, cur in zip(samples, samples[1:]):
            gap = cur.time - prev.time
            if gap >= threshold:
                events.append(
                    SuspendEvent(
                        start_time=prev.time,
                        end_time=cur.time,
                        duration=gap,
                        battery_before=prev.battery_percent,
                        battery_after=cur.battery_percent,
                        battery_delta=prev.battery_percent - cur.battery_percent,
                    )
                )
        return events

    def screen_on_time(
        self, samples: Sequence[Sample], gap_threshold_minutes: float | None = None
    ) -> ScreenOnTimeResult:
        """
        Split a series' span into active and suspended time.

        Args:
            samples: Chronological samples.
            gap_threshold_minutes: Suspend threshold. Default: engine value.

        Returns:
            ScreenOnTimeResult; the zero value for fewer than 2 samples.

        Example:
            >>> # 2h span with one 20-minute gap
            >>> engine.screen_on_time(samples, 5).total_active_time
            datetime.timedelta(seconds=6000)
        """
        if len(samples) < 2:
            return ScreenOnTimeResult()
        events = self.detect_suspend_events(samples, gap_threshold_minutes)
        span = samples[-1].time - samples[0].time
        suspended = sum((e.duration for e in events), timedelta(0))
        active = span - suspended
        if events:
            last_session = samples[-1].time - events[-1].end_time
        else:
            last_session = active
        return ScreenOnTimeResult(
            total_active_time=active,
            total_suspend_time=suspended,
            last_active_session=last_session,
            suspend_events=tuple(events),
        )

    def daily_screen_on_time(
        self,
        samples: Sequence[Sample],
        day: datetime,
        gap_threshold_minutes: float | None = None,
    ) -> ScreenOnTimeResult:
        """
        Screen-on time for the calendar day containing `day`.

        Only samples in [midnight, next midnight) take part, so a suspend
        spanning midnight is split off at the day boundary rather than
        counted on both days.

        Args:
            samples: Chronological samples.
            day: Any moment of the wanted day, in the zone to bucket by.
            gap_threshold_minutes: Suspend threshold. Default: engine value.

        Returns:
            ScreenOnTimeResult; zero value if the day has under 2 samples.
        """
        begin = start_of_day(day)
        end = start_of_day(day, days=1)
        todays = [s for s in samples if begin <= s.time < end]
        return self.screen_on_time(todays, gap_threshold_minutes)

    def weekly_screen_on_time(
        self,
        samples: Sequence[Sample],
        now: datetime,
        days: int = Config.SOT_DAYS,
        gap_threshold_minutes: float | None = None,
    ) -> list[DailyScreenOnTime]:
        """
        Per-day screen-on time for the last `days` days, oldest first.

        Args:
            samples: Chronological samples.
            now: Current time; its day is flagged is_today.
            days: Number of days including today.
            gap_threshold_minutes: Suspend threshold. Default: engine value.

        Returns:
            One DailyScreenOnTime per day.
        """
        result: list[DailyScreenOnTime] = []
        for offset in range(days - 1, -1, -1):
            begin = start_of_day(now, days=-offset)
            sot = self.daily_screen_on_time(samples, begin, gap_threshold_minutes)
            result.append(
                DailyScreenOnTime(
                    day=begin.date(),
                    active_time=sot.total_active_time,
                    is_today=offset == 0,
                )
            )
        return result
