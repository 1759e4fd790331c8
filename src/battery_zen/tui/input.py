"""
Key and mouse translation for the battery-zen dashboard.

PURPOSE: Turn curses key codes and mouse states into dashboard events.
AI CONTEXT: No state besides an in-progress mouse drag. Knows nothing about
the navigator; the controller applies the events.

BINDINGS:
    i / wheel up        zoom in
    o / wheel down      zoom out
    Left / Right        pan
    Esc                 reset window
    Up / Down           scroll status pane
    r                   refresh now
    q                   quit
    button-1 drag       Select(start_col, end_col)
"""

from __future__ import annotations

import curses

from .dispatch import Event, Pan, Quit, Refresh, Reset, Resize, Scroll, Select, Zoom

__all__ = ["InputAdapter", "KEY_ESCAPE"]

KEY_ESCAPE = 27

# Not every curses build defines button 5
WHEEL_UP = getattr(curses, "BUTTON4_PRESSED", 0)
WHEEL_DOWN = getattr(curses, "BUTTON5_PRESSED", 0)

_KEY_EVENTS: dict[int, Event] = {
    ord("i"): Zoom(zoom_in=True),
    ord("I"): Zoom(zoom_in=True),
    ord("o"): Zoom(zoom_in=False),
    ord("O"): Zoom(zoom_in=False),
    curses.KEY_LEFT: Pan(right=False),
    curses.KEY_RIGHT: Pan(right=True),
    KEY_ESCAPE: Reset(),
    curses.KEY_UP: Scroll(-1),
    curses.KEY_DOWN: Scroll(1),
    curses.KEY_PPAGE: Scroll(-10),
    curses.KEY_NPAGE: Scroll(10),
    ord("r"): Refresh(),
    ord("R"): Refresh(),
    ord("q"): Quit(),
    ord("Q"): Quit(),
    curses.KEY_RESIZE: Resize(),
}


class InputAdapter:
    """
    Maps raw curses input to events.

    Mouse drags are tracked between a button-1 press and release; a click
    without movement produces nothing.
    """

    def __init__(self) -> None:
        self._drag_start: int | None = None

    def translate_key(self, key: int) -> Event | None:
        """Event for a getch() code, None for unbound keys."""
        return _KEY_EVENTS.get(key)

    def translate_mouse(self, col: int, row: int, button_state: int) -> Event | None:
        """
        Event for a getmouse() report.

        Args:
            col: Screen column of the pointer.
            row: Screen row of the pointer (unused, kept for drag regions).
            button_state: curses BUTTON* bit mask.

        Returns:
            Zoom for wheel motion, Select when a drag completes, else None.
        """
        if WHEEL_UP and button_state & WHEEL_UP:
            return Zoom(zoom_in=True)
        if WHEEL_DOWN and button_state & WHEEL_DOWN:
            return Zoom(zoom_in=False)
        if button_state & curses.BUTTON1_PRESSED:
            self._drag_start = col
            return None
        if button_state & curses.BUTTON1_RELEASED and self._drag_start is not None:
            start, self._drag_start = self._drag_start, None
            if start == col:
                return None
            return Select(min(start, col), max(start, col))
        return None
