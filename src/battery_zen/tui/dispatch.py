"""
Dashboard state and event dispatch for battery-zen.

PURPOSE: Single owner of everything the dashboard shows.
AI CONTEXT: The curses loop is the only caller of dispatch(). Other threads
(the RefreshTicker) never touch state; they only put events on the queue.

EVENT FLOW:
    keys/mouse --InputAdapter--+
                               +--> EventQueue --drain--> controller.dispatch()
    RefreshTicker (thread) ----+

EVENTS:
- Refresh: re-read the log, recompute analytics and data bounds
- Zoom(zoom_in), Pan(right), Reset: navigator transitions
- Scroll(delta): move the status pane
- Select(start_col, end_col): completed mouse drag over the chart
- Resize: terminal size changed
- Quit: leave the main loop
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from ..analytics import AnalyticsEngine
from ..chart import (
    PLOT_LEFT,
    PLOT_RIGHT_MARGIN,
    ChartRenderer,
    RenderStatus,
    Series,
    SOTBarRenderer,
    build_series,
)
from ..navigation import WindowNavigator, local_now
from ..presenters import (
    StatusLine,
    StatusPresenter,
    StatusViewModel,
    build_status_lines,
    format_duration_auto,
)
from ..storage import SampleLog
from ..sysfs import BatteryProbe

if TYPE_CHECKING:
    from ..chart import Surface
    from ..config import Settings
    from ..models import DailyScreenOnTime, Sample

__all__ = [
    "Refresh",
    "Zoom",
    "Pan",
    "Reset",
    "Scroll",
    "Select",
    "Resize",
    "Quit",
    "Event",
    "EventQueue",
    "RefreshTicker",
    "DashboardController",
]

logger = logging.getLogger(__name__)

HINT_TEXT = "[i/o] zoom  [←/→] pan  [Esc] reset  [↑/↓] scroll  [r] refresh  [q] quit"


@dataclass(frozen=True)
class Refresh:
    pass


@dataclass(frozen=True)
class Zoom:
    zoom_in: bool


@dataclass(frozen=True)
class Pan:
    right: bool


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class Scroll:
    delta: int


@dataclass(frozen=True)
class Select:
    """Mouse drag over the chart, in screen columns."""

    start_col: int
    end_col: int


@dataclass(frozen=True)
class Resize:
    pass


@dataclass(frozen=True)
class Quit:
    pass


Event = Refresh | Zoom | Pan | Reset | Scroll | Select | Resize | Quit


class EventQueue:
    """Thread-safe FIFO of dashboard events."""

    def __init__(self) -> None:
        self._queue: queue.Queue[Event] = queue.Queue()

    def put(self, event: Event) -> None:
        self._queue.put(event)

    def drain(self) -> list[Event]:
        """Remove and return every queued event in arrival order."""
        events: list[Event] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events


class RefreshTicker(threading.Thread):
    """
    Background thread that enqueues a Refresh every `interval` seconds.

    It only ever calls EventQueue.put(); the data is re-read on the main
    loop when the event is dispatched.
    """

    def __init__(self, events: EventQueue, interval: float) -> None:
        super().__init__(name="battery-zen-refresh", daemon=True)
        self.events = events
        self.interval = interval
        self._stop_event = threading.Event()

    def run(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.events.put(Refresh())

    def stop(self) -> None:
        self._stop_event.set()


class DashboardController:
    """
    Owns samples, analytics results, the chart window and the status scroll.

    DESIGN:
    - dispatch(event) is the only mutator after construction
    - The navigator's on_change callback marks the view dirty; the main
      loop redraws once per drained batch of events
    - Drawing methods take a Surface, so the whole dashboard is testable
      without a terminal
    """

    def __init__(
        self,
        log: SampleLog,
        engine: AnalyticsEngine,
        presenter: StatusPresenter,
        navigator: WindowNavigator | None = None,
        chart_renderer: ChartRenderer | None = None,
        sot_renderer: SOTBarRenderer | None = None,
        alpha: float | None = None,
    ) -> None:
        self.log = log
        self.engine = engine
        self.presenter = presenter
        self.navigator = navigator or WindowNavigator()
        self.navigator.set_on_change(self._on_window_change)
        self.chart_renderer = chart_renderer or ChartRenderer()
        self.sot_renderer = sot_renderer or SOTBarRenderer()
        self.alpha = alpha

        self.samples: list[Sample] = []
        self.series: list[Series] = []
        self.view: StatusViewModel | None = None
        self.status_lines: list[StatusLine] = []
        self.weekly: list[DailyScreenOnTime] = []
        self.scroll = 0
        self.status_rows = 0
        self.chart_cols = 0
        self.running = True
        self.dirty = True

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        alpha: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> DashboardController:
        """
        Wire a controller from runtime settings.

        Args:
            settings: Loaded settings.
            alpha: Regression decay override from `battery-zen tui --alpha`.
            clock: Returns "now". Default: local time.
        """
        engine = AnalyticsEngine(
            alpha=settings.regression_alpha,
            max_charge_percent=settings.max_charge_percent,
            suspend_gap_minutes=settings.suspend_gap_minutes,
        )
        probe = BatteryProbe()
        presenter = StatusPresenter(
            engine,
            log_path=settings.log_path,
            config_summary=settings.config_summary(),
            cycle_count=probe.cycle_count,
            clock=clock,
        )
        navigator = WindowNavigator(
            base_duration=settings.base_window,
            min_duration=settings.min_window,
            max_duration=settings.max_window,
            zoom_step=settings.zoom_step,
            clock=clock or local_now,
        )
        return cls(
            SampleLog(settings.log_path),
            engine,
            presenter,
            navigator=navigator,
            chart_renderer=ChartRenderer.from_settings(settings),
            alpha=alpha,
        )

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def dispatch(self, event: Event) -> None:
        """
        Apply one event to the dashboard state.

        Args:
            event: Any of the event types in this module.
        """
        if isinstance(event, Refresh):
            self.refresh()
        elif isinstance(event, Zoom):
            if event.zoom_in:
                self.navigator.zoom_in()
            else:
                self.navigator.zoom_out()
        elif isinstance(event, Pan):
            self.navigator.pan(right=event.right)
        elif isinstance(event, Reset):
            self.navigator.reset()
        elif isinstance(event, Scroll):
            self.scroll_by(event.delta)
        elif isinstance(event, Select):
            self.navigator.select_columns(
                event.start_col - PLOT_LEFT, event.end_col - PLOT_LEFT, self.plot_width
            )
        elif isinstance(event, Resize):
            self.dirty = True
        elif isinstance(event, Quit):
            self.running = False

    def refresh(self) -> None:
        """
        Re-read the sample log and recompute everything derived from it.

        An empty or unreadable log leaves the dashboard in its "No data"
        state instead of failing.
        """
        self.samples = self.log.read()
        self.series = build_series(self.samples)
        self.navigator.update_data_bounds(self.samples)
        self.view = self.presenter.build(self.samples, self.alpha)
        if self.view is not None:
            self.status_lines = build_status_lines(self.view)
        else:
            self.status_lines = [
                StatusLine("No data", bold=True),
                StatusLine(f"Waiting for samples in {self.log.path}"),
            ]
        self.weekly = self.presenter.weekly(self.samples) if self.samples else []
        self.scroll_by(0)
        self.dirty = True
        logger.debug(f"Refreshed: {len(self.samples)} samples")

    def scroll_by(self, delta: int) -> None:
        """Move the status pane, clamped so the last line stays reachable."""
        limit = max(0, len(self.status_lines) - self.status_rows)
        scroll = max(0, min(limit, self.scroll + delta))
        if scroll != self.scroll:
            self.dirty = True
        self.scroll = scroll

    def _on_window_change(self, start: datetime, end: datetime, duration: timedelta) -> None:
        logger.debug(f"Window {start:%H:%M}-{end:%H:%M} ({duration})")
        self.dirty = True

    # =========================================================================
    # DRAWING
    # =========================================================================

    @property
    def plot_width(self) -> int:
        return max(0, self.chart_cols - PLOT_LEFT - PLOT_RIGHT_MARGIN)

    def draw_chart(self, surface: Surface) -> RenderStatus:
        self.chart_cols = surface.size()[0]
        return self.chart_renderer.render(surface, self.navigator.window, self.series)

    def draw_sot(self, surface: Surface) -> RenderStatus:
        return self.sot_renderer.render(surface, self.weekly)

    def visible_status_lines(self, rows: int) -> list[StatusLine]:
        """Lines for a status pane `rows` tall, starting at the scroll offset."""
        self.status_rows = rows
        self.scroll_by(0)
        return self.status_lines[self.scroll : self.scroll + rows]

    def hint_text(self) -> str:
        """Key help plus the current window, e.g. "... | 1d 0h to 15:04"."""
        window = self.navigator.window
        return f"{HINT_TEXT} | {format_duration_auto(window.duration)} to {window.end:%H:%M}"
