"""
curses drawing surface for battery-zen.

PURPOSE: Implement the chart Surface protocol on a region of a curses
window, and split the screen into dashboard regions.
AI CONTEXT: Cells are buffered (char, fg, bg, bold) and written in one pass
by flush(), because curses cannot change a cell's background without
rewriting its character.

LAYOUT:
    +--------------------------------------+
    | chart (60% of rows above the hint)   |
    +-----------------------+--------------+
    | status (65% of cols)  | SOT bars     |
    +-----------------------+--------------+
    | hint line                            |
    +--------------------------------------+
"""

from __future__ import annotations

import curses
import logging
from dataclasses import dataclass
from typing import Any

from ..config import Config

__all__ = ["Region", "DashboardLayout", "compute_layout", "ColorPairs", "CursesSurface"]

logger = logging.getLogger(__name__)

DEFAULT_COLOR = -1


@dataclass(frozen=True)
class Region:
    top: int
    left: int
    rows: int
    cols: int


@dataclass(frozen=True)
class DashboardLayout:
    chart: Region
    status: Region
    sot: Region
    hint_row: int


def compute_layout(
    cols: int,
    rows: int,
    chart_ratio: float = Config.CHART_HEIGHT_RATIO,
    status_ratio: float = Config.STATUS_WIDTH_RATIO,
) -> DashboardLayout:
    """
    Split a cols x rows screen into chart, status, SOT and hint regions.

    The last row is the hint line. Regions may be empty on tiny terminals;
    the renderers report NEEDS_SPACE for those.
    """
    body_rows = max(0, rows - 1)
    chart_rows = int(body_rows * chart_ratio)
    bottom_rows = body_rows - chart_rows
    status_cols = int(cols * status_ratio)
    return DashboardLayout(
        chart=Region(0, 0, chart_rows, cols),
        status=Region(chart_rows, 0, bottom_rows, status_cols),
        sot=Region(chart_rows, status_cols, bottom_rows, cols - status_cols),
        hint_row=body_rows,
    )


class ColorPairs:
    """
    Lazily allocated curses color pairs keyed by (fg, bg).

    Colors outside the terminal's palette fall back to the default color,
    and once every pair is used further combinations reuse pair 0.
    """

    def __init__(self) -> None:
        self._pairs: dict[tuple[int, int], int] = {}
        self._max_pairs = curses.COLOR_PAIRS if curses.has_colors() else 0
        self._max_colors = curses.COLORS if curses.has_colors() else 0

    def _clamp(self, color: int) -> int:
        return color if 0 <= color < self._max_colors else DEFAULT_COLOR

    def attr(self, fg: int, bg: int = DEFAULT_COLOR, bold: bool = False) -> int:
        """curses attribute for the color combination."""
        key = (self._clamp(fg), self._clamp(bg))
        pair = self._pairs.get(key)
        if pair is None:
            pair = len(self._pairs) + 1
            if pair >= self._max_pairs:
                pair = 0
            else:
                curses.init_pair(pair, key[0], key[1])
                self._pairs[key] = pair
        attr = curses.color_pair(pair)
        return attr | curses.A_BOLD if bold else attr


class CursesSurface:
    """Surface over one Region of a curses window."""

    def __init__(self, window: Any, region: Region, colors: ColorPairs) -> None:
        self.window = window
        self.region = region
        self.colors = colors
        self._cells: dict[tuple[int, int], list[Any]] = {}

    def size(self) -> tuple[int, int]:
        return self.region.cols, self.region.rows

    def _inside(self, col: int, row: int) -> bool:
        return 0 <= col < self.region.cols and 0 <= row < self.region.rows

    def _cell(self, col: int, row: int) -> list[Any]:
        return self._cells.setdefault((col, row), [" ", DEFAULT_COLOR, DEFAULT_COLOR, False])

    def set_background(self, col: int, row: int, color: int) -> None:
        if self._inside(col, row):
            self._cell(col, row)[2] = color

    def set_cell(self, col: int, row: int, char: str, color: int) -> None:
        if self._inside(col, row):
            cell = self._cell(col, row)
            cell[0], cell[1], cell[3] = char, color, False

    def draw_text(
        self, col: int, row: int, text: str, color: int, bold: bool = False
    ) -> None:
        for offset, char in enumerate(text):
            if self._inside(col + offset, row):
                cell = self._cell(col + offset, row)
                cell[0], cell[1], cell[3] = char, color, bold

    def flush(self) -> None:
        """Write every buffered cell to the window."""
        for (col, row), (char, fg, bg, bold) in sorted(
            self._cells.items(), key=lambda item: (item[0][1], item[0][0])
        ):
            try:
                self.window.addstr(
                    self.region.top + row,
                    self.region.left + col,
                    char,
                    self.colors.attr(fg, bg, bold),
                )
            except curses.error:
                # Writing the bottom-right cell moves the cursor off screen
                pass
        self._cells.clear()
