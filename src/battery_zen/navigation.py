"""
Chart window navigation for battery-zen.

PURPOSE: Own the visible time window of the history chart and move it in
response to zoom, pan and reset commands.
AI CONTEXT: A small state machine. It never draws anything; every
transition is reported through the on_change callback so the owner can
re-render.

STATE:
- window: start, end, duration (the zoom width)
- limits: min/max/base duration
- data bounds: first and last sample time, or unknown

TRANSITIONS:
- zoom_in / zoom_out: scale duration, keep end fixed, clamp to limits
- pan: shift by a fraction of duration, clamp to data bounds
- reset: base duration ending now
- update_data_bounds: refresh bounds, window untouched

USAGE:
    nav = WindowNavigator(on_change=lambda s, e, d: redraw())
    nav.update_data_bounds(samples)
    nav.zoom_in()
    nav.pan(right=False)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from .config import Config
from .models import ViewWindow

if TYPE_CHECKING:
    from .models import Sample

__all__ = ["WindowNavigator", "OnChange", "local_now"]

logger = logging.getLogger(__name__)

OnChange = Callable[[datetime, datetime, timedelta], None]


def local_now() -> datetime:
    """Current time as an aware datetime in the local zone."""
    return datetime.now().astimezone()


class WindowNavigator:
    """
    Zoom/pan/reset state machine over a time axis.

    DESIGN:
    - Single owner: mutate only from the dashboard's dispatch loop
    - Zoom ignores data bounds; pan respects them
    - Injectable clock so reset() is testable

    INVARIANTS:
    - min_duration <= duration <= max_duration after every transition
    - After a pan with known bounds: start >= data_start and
      end <= data_end
    - duration is the zoom width; a window pinned to data narrower than
      it shows only the data span, and later zooms scale from duration
    """

    def __init__(
        self,
        base_duration: timedelta | None = None,
        min_duration: timedelta | None = None,
        max_duration: timedelta | None = None,
        zoom_step: float | None = None,
        pan_fraction: float | None = None,
        clock: Callable[[], datetime] | None = None,
        on_change: OnChange | None = None,
    ) -> None:
        """
        Create a navigator showing the base window ending now.

        Args:
            base_duration: Width restored by reset. Default: Config.BASE_WINDOW.
            min_duration: Narrowest zoom. Default: Config.MIN_WINDOW.
            max_duration: Widest zoom. Default: Config.MAX_WINDOW.
            zoom_step: Fractional change per zoom. Default: Config.ZOOM_STEP.
            pan_fraction: Share of the window moved per pan.
                Default: Config.PAN_FRACTION.
            clock: Returns "now". Default: local_now.
            on_change: Called with (start, end, duration) after each
                transition.

        Raises:
            ValueError: If min_duration exceeds max_duration.
        """
        self.min_duration = min_duration or Config.MIN_WINDOW
        self.max_duration = max_duration or Config.MAX_WINDOW
        if self.min_duration > self.max_duration:
            raise ValueError(
                f"min window {self.min_duration} exceeds max window {self.max_duration}"
            )
        self.base_duration = self._clamp(base_duration or Config.BASE_WINDOW)
        self.zoom_step = Config.ZOOM_STEP if zoom_step is None else zoom_step
        self.pan_fraction = Config.PAN_FRACTION if pan_fraction is None else pan_fraction
        self._clock = clock or local_now
        self._on_change = on_change
        self.data_start: datetime | None = None
        self.data_end: datetime | None = None
        self._window = ViewWindow.ending_at(self._clock(), self.base_duration)

    # =========================================================================
    # STATE ACCESS
    # =========================================================================

    @property
    def window(self) -> ViewWindow:
        return self._window

    @property
    def start(self) -> datetime:
        return self._window.start

    @property
    def end(self) -> datetime:
        return self._window.end

    @property
    def duration(self) -> timedelta:
        return self._window.duration

    @property
    def has_data_bounds(self) -> bool:
        return self.data_start is not None and self.data_end is not None

    def set_on_change(self, callback: OnChange | None) -> None:
        self._on_change = callback

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def zoom_in(self, step: float | None = None) -> None:
        """Narrow the window by `step` (default zoom_step), keeping end fixed."""
        self._zoom(1.0 - (self.zoom_step if step is None else step))

    def zoom_out(self, step: float | None = None) -> None:
        """Widen the window by `step` (default zoom_step), keeping end fixed."""
        self._zoom(1.0 + (self.zoom_step if step is None else step))

    def pan(self, right: bool, fraction: float | None = None) -> bool:
        """
        Shift the window along the time axis, clamped to the data.

        Business context: Panning past the data only shows empty chart, so
        the window is pinned to the first or last sample instead.

        Args:
            right: True moves toward newer data.
            fraction: Share of the window to move. Default: pan_fraction.

        Returns:
            True if the pan happened; False (and no notification) while the
            data bounds are unknown.
        """
        if self.data_start is None or self.data_end is None:
            logger.debug("Pan ignored: no data bounds")
            return False
        duration = self.duration
        step = duration * (self.pan_fraction if fraction is None else fraction)
        shift = step if right else -step
        start = self.start + shift
        end = start + duration

        if start < self.data_start:
            start = self.data_start
            end = start + duration
        if end > self.data_end:
            end = self.data_end
            start = max(self.data_start, end - duration)

        self._set(ViewWindow(start, end, duration))
        return True

    def reset(self) -> None:
        """Restore the base duration with the window ending now."""
        self._set(ViewWindow.ending_at(self._clock(), self.base_duration))

    def update_data_bounds(self, samples: Sequence[Sample]) -> None:
        """
        Record the first and last sample times without moving the window.

        An empty sample set clears the bounds, which disables panning.
        Observers are notified so labels that depend on bounds refresh.
        """
        if samples:
            times = [s.time for s in samples]
            self.data_start = min(times)
            self.data_end = max(times)
        else:
            self.data_start = None
            self.data_end = None
        self._notify()

    def select_columns(self, start_col: int, end_col: int, plot_width: int) -> bool:
        """
        Zoom to a dragged column range.

        Mouse drag selection is delivered here by the input layer, but
        mapping the columns back to times is not implemented yet; the
        window is left unchanged.

        Returns:
            False, since no transition took place.
        """
        logger.debug(f"Drag selection {start_col}-{end_col} of {plot_width} ignored")
        return False

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _zoom(self, factor: float) -> None:
        duration = self._clamp(self.duration * factor)
        self._set(ViewWindow.ending_at(self.end, duration))

    def _clamp(self, duration: timedelta) -> timedelta:
        return max(self.min_duration, min(self.max_duration, duration))

    def _set(self, window: ViewWindow) -> None:
        self._window = window
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.start, self.end, self.duration)
