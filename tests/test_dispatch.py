"""Tests for tui.dispatch module."""

from __future__ import annotations

import sys
import time
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import pytest

# Add tests directory to path for conftest imports
sys.path.insert(0, str(Path(__file__).parent))

from battery_zen.analytics import AnalyticsEngine
from battery_zen.chart import RenderStatus
from battery_zen.config import Settings
from battery_zen.navigation import WindowNavigator
from battery_zen.presenters import StatusPresenter
from battery_zen.storage import SampleLog
from battery_zen.tui.dispatch import (
    HINT_TEXT,
    DashboardController,
    EventQueue,
    Pan,
    Quit,
    Refresh,
    RefreshTicker,
    Reset,
    Resize,
    Scroll,
    Select,
    Zoom,
)
from conftest import T0, MockFileSystem, RecordingSurface, linear_samples

LOG_PATH = "/state/battery-zen/battery.csv"
NOW = T0 + timedelta(minutes=20)


def clock():  # type: ignore[no-untyped-def]
    return NOW


@pytest.fixture
def sample_log(mock_fs: MockFileSystem) -> SampleLog:
    return SampleLog(LOG_PATH, filesystem=mock_fs)


@pytest.fixture
def filled_log(sample_log: SampleLog) -> SampleLog:
    """Log with 21 one-minute discharging samples from T0 to NOW."""
    for sample in linear_samples(21, False, 90, -0.5):
        sample_log.append(sample.time, sample.ac_connected, int(sample.battery_percent))
    return sample_log


def make_controller(log: SampleLog) -> DashboardController:
    engine = AnalyticsEngine()
    return DashboardController(
        log,
        engine,
        StatusPresenter(engine, log_path=log.path, clock=clock),
        navigator=WindowNavigator(base_duration=timedelta(hours=1), clock=clock),
    )


@pytest.fixture
def controller(filled_log: SampleLog) -> DashboardController:
    """Controller over the filled log, already refreshed and clean."""
    ctrl = make_controller(filled_log)
    ctrl.refresh()
    ctrl.dirty = False
    return ctrl


class TestEventQueue:
    """Tests for the thread-safe event queue."""

    def test_drain_returns_events_in_order(self) -> None:
        """Verifies drain hands back queued events oldest first and empties the queue."""
        events = EventQueue()
        events.put(Zoom(zoom_in=True))
        events.put(Pan(right=False))
        events.put(Quit())

        assert events.drain() == [Zoom(zoom_in=True), Pan(right=False), Quit()]
        assert events.drain() == []

    def test_events_are_values(self) -> None:
        """Verifies events compare by value so tests and handlers can match them."""
        assert Scroll(1) == Scroll(1)
        assert Select(3, 9) != Select(3, 10)


class TestRefreshTicker:
    """Tests for the background refresh thread."""

    def test_enqueues_refresh_until_stopped(self) -> None:
        """Verifies the ticker thread only puts Refresh events on the queue.

        Business context:
        The ticker runs off the main thread, so it must never touch the
        controller directly.

        Action:
        Start with a 10 ms interval, wait for an event, then stop.

        Assertion Strategy:
        At least one Refresh queued; thread exits after stop().
        """
        events = EventQueue()
        ticker = RefreshTicker(events, 0.01)
        ticker.start()
        received: list[object] = []
        deadline = time.monotonic() + 2.0
        while not received and time.monotonic() < deadline:
            received.extend(events.drain())
            time.sleep(0.01)
        ticker.stop()
        ticker.join(timeout=1.0)

        assert received
        assert all(isinstance(e, Refresh) for e in received)
        assert not ticker.is_alive()
        assert ticker.daemon

    def test_stop_before_first_tick(self) -> None:
        """Verifies a ticker stopped before its interval elapses queues nothing."""
        events = EventQueue()
        ticker = RefreshTicker(events, 60.0)
        ticker.start()
        ticker.stop()
        ticker.join(timeout=1.0)

        assert not ticker.is_alive()
        assert events.drain() == []


class TestRefresh:
    """Tests for re-reading the log."""

    def test_no_data(self, sample_log: SampleLog) -> None:
        """Verifies an empty log shows the waiting message instead of failing."""
        ctrl = make_controller(sample_log)

        ctrl.refresh()

        assert ctrl.view is None
        assert [line.text for line in ctrl.status_lines] == [
            "No data",
            f"Waiting for samples in {LOG_PATH}",
        ]
        assert ctrl.weekly == []
        assert not ctrl.navigator.has_data_bounds

    def test_with_data(self, controller: DashboardController) -> None:
        """Verifies a refresh fills samples, series, status, weekly and data bounds."""
        assert len(controller.samples) == 21
        assert [s.name for s in controller.series] == ["Discharging"]
        assert controller.view is not None
        assert controller.status_lines[0].text == "AC Status: Unplugged"
        assert len(controller.weekly) == 7
        assert controller.navigator.data_start == T0
        assert controller.navigator.data_end == NOW

    def test_refresh_event_rereads_log(
        self, controller: DashboardController, filled_log: SampleLog
    ) -> None:
        """Verifies a Refresh event picks up samples appended since the last read.

        Arrangement:
        One plugged-in sample appended after the controller was built.

        Assertion Strategy:
        22 samples, the view marked dirty and the status now plugged in.
        """
        filled_log.append(NOW + timedelta(minutes=1), True, 80)

        controller.dispatch(Refresh())

        assert len(controller.samples) == 22
        assert controller.dirty
        assert controller.status_lines[0].text == "AC Status: Plugged In"

    def test_alpha_passed_to_presenter(self, filled_log: SampleLog) -> None:
        """Verifies the controller's alpha reaches StatusPresenter.build."""
        ctrl = make_controller(filled_log)
        ctrl.alpha = 0.0
        with patch.object(ctrl.presenter, "build", return_value=None) as mock_build:
            ctrl.refresh()

        assert mock_build.call_args.args[1] == 0.0


class TestDispatch:
    """Tests for applying events.

    Categories:
    1. Navigation events - zoom, pan, reset, select
    2. Pane events - scroll, resize
    3. Quit
    """

    def test_zoom(self, controller: DashboardController) -> None:
        """Verifies zoom in and out step the width by the zoom factor.

        Assertion Strategy:
        60 min * 0.9 = 54 min in, then 54 min * 1.1 = 59 min 24 s out.
        """
        controller.dispatch(Zoom(zoom_in=True))

        assert controller.navigator.duration == timedelta(minutes=54)
        assert controller.dirty

        controller.dispatch(Zoom(zoom_in=False))
        assert controller.navigator.duration == timedelta(minutes=59, seconds=24)

    def test_pan_pins_to_data(self, controller: DashboardController) -> None:
        """Verifies a pan on a window wider than the data starts at the data.

        Arrangement:
        One-hour window over 20 minutes of data.

        Assertion Strategy:
        Window shows exactly the data span and keeps its zoom width.
        """
        controller.dispatch(Pan(right=False))

        assert controller.navigator.start == T0
        assert controller.navigator.end == NOW
        assert controller.navigator.duration == timedelta(hours=1)
        assert controller.dirty

    def test_pan_without_data_is_ignored(self, sample_log: SampleLog) -> None:
        """Verifies a pan with no data bounds leaves the window and dirty flag alone."""
        ctrl = make_controller(sample_log)
        ctrl.dirty = False
        before = ctrl.navigator.window

        ctrl.dispatch(Pan(right=True))

        assert ctrl.navigator.window == before
        assert not ctrl.dirty

    def test_reset(self, controller: DashboardController) -> None:
        """Verifies Reset restores the base width ending at now."""
        controller.dispatch(Zoom(zoom_in=True))
        controller.dispatch(Reset())

        assert controller.navigator.duration == timedelta(hours=1)
        assert controller.navigator.end == NOW

    def test_select_maps_to_plot_columns(self, controller: DashboardController) -> None:
        """Verifies a mouse selection is translated into plot-relative columns.

        Arrangement:
        60-column chart, so the plot starts at column 5 and is 54 wide.

        Assertion Strategy:
        Screen columns 10..20 reach the navigator as 5..15 of 54.
        """
        controller.draw_chart(RecordingSurface(60, 20))
        with patch.object(controller.navigator, "select_columns", return_value=False) as mock_sel:
            controller.dispatch(Select(10, 20))

        mock_sel.assert_called_once_with(5, 15, 54)

    def test_select_leaves_window(self, controller: DashboardController) -> None:
        """Verifies a drag selection leaves the view window unchanged."""
        before = controller.navigator.window
        controller.dispatch(Select(10, 20))
        assert controller.navigator.window == before

    def test_resize_marks_dirty(self, controller: DashboardController) -> None:
        """Verifies a terminal resize forces a redraw."""
        controller.dispatch(Resize())
        assert controller.dirty

    def test_quit(self, controller: DashboardController) -> None:
        """Verifies Quit stops the main loop."""
        assert controller.running
        controller.dispatch(Quit())
        assert not controller.running


class TestScroll:
    """Tests for status pane scrolling."""

    def test_scroll_clamped(self, controller: DashboardController) -> None:
        """Verifies the status pane cannot scroll past its last line.

        Arrangement:
        Status pane 5 rows tall.

        Assertion Strategy:
        Large positive scroll stops at len(lines) - 5; large negative
        stops at 0.
        """
        controller.visible_status_lines(5)
        limit = len(controller.status_lines) - 5

        controller.dispatch(Scroll(100))
        assert controller.scroll == limit
        assert controller.dirty

        controller.dispatch(Scroll(-100))
        assert controller.scroll == 0

    def test_visible_lines_follow_scroll(self, controller: DashboardController) -> None:
        """Verifies the visible slice starts at the scroll offset."""
        controller.visible_status_lines(3)
        controller.dispatch(Scroll(2))

        visible = controller.visible_status_lines(3)

        assert visible == controller.status_lines[2:5]

    def test_tall_pane_resets_scroll(self, controller: DashboardController) -> None:
        """Verifies growing the pane past all lines snaps scroll back to the top."""
        controller.visible_status_lines(3)
        controller.dispatch(Scroll(4))

        controller.visible_status_lines(100)

        assert controller.scroll == 0

    def test_no_change_keeps_clean(self, controller: DashboardController) -> None:
        """Verifies scrolling up at the top does not request a redraw."""
        controller.visible_status_lines(5)
        controller.dirty = False
        controller.dispatch(Scroll(-1))
        assert not controller.dirty


class TestDrawing:
    """Tests for drawing the chart and weekly panes."""

    def test_draw_chart(self, controller: DashboardController) -> None:
        """Verifies drawing records the chart size and puts braille on the surface."""
        surface = RecordingSurface(60, 20)

        assert controller.draw_chart(surface) is RenderStatus.OK

        assert controller.chart_cols == 60
        assert controller.plot_width == 54
        assert surface.braille_cells()

    def test_draw_chart_without_data(self, sample_log: SampleLog) -> None:
        """Verifies an empty log reports NO_DATA rather than drawing."""
        ctrl = make_controller(sample_log)
        ctrl.refresh()

        assert ctrl.draw_chart(RecordingSurface(60, 20)) is RenderStatus.NO_DATA

    def test_draw_sot(self, controller: DashboardController) -> None:
        """Verifies the weekly bars draw with today's label."""
        surface = RecordingSurface(35, 10)

        assert controller.draw_sot(surface) is RenderStatus.OK
        assert "Today" in surface.text_values()

    def test_hint_text(self, controller: DashboardController) -> None:
        """Verifies the footer shows key help with the window width and end time."""
        assert controller.hint_text() == f"{HINT_TEXT} | 01h 00m to 10:20"

    def test_plot_width_never_negative(self, controller: DashboardController) -> None:
        """Verifies a chart narrower than the Y-axis gutter has zero plot width."""
        controller.chart_cols = 3
        assert controller.plot_width == 0


class TestFromSettings:
    """Tests for building a controller from Settings."""

    def test_wires_settings(self, tmp_path: Path) -> None:
        """Verifies the controller picks up windows, paths and alpha."""
        settings = Settings(log_dir=str(tmp_path), base_window_hours=6, zoom_step=0.2)

        ctrl = DashboardController.from_settings(settings, alpha=0.1, clock=clock)

        assert ctrl.log.path == settings.log_path
        assert ctrl.navigator.base_duration == timedelta(hours=6)
        assert ctrl.navigator.zoom_step == 0.2
        assert ctrl.navigator.end == NOW
        assert ctrl.alpha == 0.1
        assert ctrl.presenter.log_path == settings.log_path
