"""
curses main loop for the battery-zen dashboard.

PURPOSE: Wire input, the refresh ticker and the controller to the terminal.
AI CONTEXT: Everything testable lives in dispatch.py, input.py and
surface.py; this module only talks to curses.
"""

from __future__ import annotations

import curses
import logging
import os
from typing import TYPE_CHECKING, Any

from ..config import Config
from .dispatch import DashboardController, EventQueue, RefreshTicker
from .input import InputAdapter
from .surface import ColorPairs, CursesSurface, compute_layout

if TYPE_CHECKING:
    from ..config import Settings

__all__ = ["run_dashboard"]

logger = logging.getLogger(__name__)

INPUT_TIMEOUT_MS = 100


def _log_to_file(settings: Settings) -> str:
    """Send all logging to a file so it does not draw over the screen."""
    os.makedirs(settings.log_dir, exist_ok=True)
    path = os.path.join(settings.log_dir, Config.TUI_LOG_FILE)
    logging.basicConfig(
        filename=path,
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )
    return path


def _draw(stdscr: Any, controller: DashboardController, colors: ColorPairs) -> None:
    stdscr.erase()
    rows, cols = stdscr.getmaxyx()
    layout = compute_layout(cols, rows)

    chart = CursesSurface(stdscr, layout.chart, colors)
    controller.draw_chart(chart)
    chart.flush()

    status = CursesSurface(stdscr, layout.status, colors)
    for row, line in enumerate(controller.visible_status_lines(layout.status.rows)):
        color = line.color if line.color is not None else -1
        status.draw_text(1, row, line.text, color, bold=line.bold)
    status.flush()

    sot = CursesSurface(stdscr, layout.sot, colors)
    controller.draw_sot(sot)
    sot.flush()

    try:
        stdscr.addstr(layout.hint_row, 0, controller.hint_text()[: max(0, cols - 1)])
    except curses.error:
        pass
    stdscr.refresh()


def _main_loop(stdscr: Any, controller: DashboardController, refresh_secs: float) -> None:
    curses.curs_set(0)
    stdscr.keypad(True)
    stdscr.timeout(INPUT_TIMEOUT_MS)
    curses.mousemask(curses.ALL_MOUSE_EVENTS | curses.REPORT_MOUSE_POSITION)
    curses.start_color()
    curses.use_default_colors()
    colors = ColorPairs()

    events = EventQueue()
    adapter = InputAdapter()
    ticker = RefreshTicker(events, refresh_secs)
    ticker.start()
    controller.refresh()
    try:
        while controller.running:
            key = stdscr.getch()
            if key == curses.KEY_MOUSE:
                try:
                    _, col, row, _, state = curses.getmouse()
                except curses.error:
                    state = 0
                event = adapter.translate_mouse(col, row, state) if state else None
            elif key != -1:
                event = adapter.translate_key(key)
            else:
                event = None
            if event is not None:
                events.put(event)

            for queued in events.drain():
                controller.dispatch(queued)
            if controller.running and controller.dirty:
                _draw(stdscr, controller, colors)
                controller.dirty = False
    finally:
        ticker.stop()
        ticker.join(timeout=1.0)


def run_dashboard(settings: Settings, alpha: float | None = None) -> None:
    """
    Run the interactive dashboard until the user quits.

    Args:
        settings: Loaded settings.
        alpha: Regression decay override.
    """
    log_file = _log_to_file(settings)
    logger.info(f"Dashboard starting, reading {settings.log_path}")
    controller = DashboardController.from_settings(settings, alpha=alpha)
    try:
        curses.wrapper(_main_loop, controller, float(settings.refresh_secs))
    except KeyboardInterrupt:
        pass
    logger.info(f"Dashboard closed (log: {log_file})")
