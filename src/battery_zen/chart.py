"""
Terminal chart rendering for battery-zen.

PURPOSE: Map a time window and battery samples onto a character-cell
surface: day/night bands, axes, labels, day-break markers and braille
polylines, plus the weekly screen-on-time bar chart.
AI CONTEXT: Rendering only. The window comes from WindowNavigator and the
drawing primitives from a Surface implementation (curses in tui/surface.py,
an in-memory recorder in tests).

LAYOUT (cells, for a surface of W x H):
    col 0-4       Y labels ("100%") and the Y axis at col 4
    row 0         Date labels above day breaks
    rows 1..H-4   Plot area, cols 5..W-2
    row H-3       X axis
    row H-2       Time labels ("15:04")

BRAILLE GRID:
    Each plot cell holds 2 x 4 dots, giving double horizontal and four
    times vertical resolution. Dot bits per (row, col) inside a cell:
        (0,0)=0x01 (0,1)=0x08
        (1,0)=0x02 (1,1)=0x10
        (2,0)=0x04 (2,1)=0x20
        (3,0)=0x40 (3,1)=0x80

USAGE:
    renderer = ChartRenderer.from_settings(settings)
    status = renderer.render(surface, navigator.window, build_series(samples))
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from .analytics import start_of_day
from .config import Config

if TYPE_CHECKING:
    from .config import Settings
    from .models import DailyScreenOnTime, Sample, ViewWindow

__all__ = [
    "Surface",
    "RenderStatus",
    "TimePoint",
    "Series",
    "build_series",
    "BrailleCanvas",
    "ChartRenderer",
    "SOTBarRenderer",
    "time_to_column",
    "value_to_row",
    "segment_series",
    "midnights",
]

BRAILLE_BASE = 0x2800
BRAILLE_BITS: tuple[tuple[int, int], ...] = (
    (0x01, 0x08),
    (0x02, 0x10),
    (0x04, 0x20),
    (0x40, 0x80),
)

PLOT_LEFT = 5
PLOT_TOP = 1
PLOT_RIGHT_MARGIN = 1
PLOT_BOTTOM_MARGIN = 3

DAY_BREAK_CHAR = "┊"
BAR_CHAR = "█"
RESIZE_MARKER = "⇄"


class Surface(Protocol):
    """
    Character-cell drawing target.

    Coordinates are (col, row) from the top-left of the surface. Colors are
    xterm-256 palette indices. Drawing outside the surface is ignored by
    implementations.
    """

    def size(self) -> tuple[int, int]:
        """Return (cols, rows)."""
        ...

    def set_background(self, col: int, row: int, color: int) -> None:
        """Set a cell's background color, keeping its character."""
        ...

    def set_cell(self, col: int, row: int, char: str, color: int) -> None:
        """Set a cell's character and foreground color, keeping its background."""
        ...

    def draw_text(
        self, col: int, row: int, text: str, color: int, bold: bool = False
    ) -> None:
        """Write text left to right starting at (col, row)."""
        ...


class RenderStatus(Enum):
    OK = "ok"
    NO_DATA = "no_data"
    NEEDS_SPACE = "needs_space"


@dataclass(frozen=True)
class TimePoint:
    time: datetime
    value: float


@dataclass(frozen=True)
class Series:
    """One logically continuous line, drawn in a single color."""

    name: str
    points: tuple[TimePoint, ...]
    color: int


def build_series(samples: Sequence[Sample]) -> list[Series]:
    """
    Split samples into a charging and a discharging series.

    Keeping the two AC states apart means a plug-in never draws a line
    from the last discharging point to the first charging one. Empty
    series are omitted.
    """
    charging = tuple(
        TimePoint(s.time, s.battery_percent) for s in samples if s.ac_connected
    )
    discharging = tuple(
        TimePoint(s.time, s.battery_percent) for s in samples if not s.ac_connected
    )
    series: list[Series] = []
    if charging:
        series.append(Series("Charging", charging, Config.CHARGING_COLOR))
    if discharging:
        series.append(Series("Discharging", discharging, Config.DISCHARGING_COLOR))
    return series


# =============================================================================
# COORDINATE MAPPING
# =============================================================================


def time_to_column(
    moment: datetime, start: datetime, end: datetime, width: int
) -> int | None:
    """
    Map a time to a column in [0, width - 1].

    Returns:
        The column, or None when the time lies outside [start, end] or the
        window/width is empty.
    """
    if width <= 0 or end <= start or moment < start or moment > end:
        return None
    col = int((moment - start) / (end - start) * width)
    return min(max(col, 0), width - 1)


def value_to_row(
    value: float,
    height: int,
    y_min: float = Config.Y_MIN,
    y_max: float = Config.Y_MAX,
) -> int:
    """
    Map a value to a row in [0, height - 1], with y_max at the top.

    Out-of-range values are clamped to the nearest edge row.
    """
    if height <= 0:
        return 0
    row = int(height - 1 - (value - y_min) / (y_max - y_min) * height)
    return min(max(row, 0), height - 1)


def segment_series(
    points: Sequence[TimePoint],
    start: datetime,
    end: datetime,
    max_gap: timedelta = Config.MAX_LINE_GAP,
) -> list[list[TimePoint]]:
    """
    Split the visible points of one series into connectable runs.

    Points outside [start, end] are dropped. A NaN value or a gap larger
    than max_gap ends the current run; a run of one point is drawn as an
    isolated dot.

    Example:
        >>> runs = segment_series([p0, p6min], start, end)
        >>> [len(r) for r in runs]
        [1, 1]
    """
    runs: list[list[TimePoint]] = []
    current: list[TimePoint] = []
    for point in points:
        if point.time < start or point.time > end:
            continue
        if math.isnan(point.value):
            if current:
                runs.append(current)
            current = []
            continue
        if current and point.time - current[-1].time > max_gap:
            runs.append(current)
            current = []
        current.append(point)
    if current:
        runs.append(current)
    return runs


def midnights(start: datetime, end: datetime) -> list[datetime]:
    """Every local midnight strictly inside (start, end), one per calendar day."""
    result: list[datetime] = []
    current = start_of_day(start)
    if current <= start:
        current = start_of_day(start, days=1)
    while current < end:
        result.append(current)
        current = start_of_day(current, days=1)
    return result


def _floor_time(moment: datetime, interval: timedelta) -> datetime:
    step = interval.total_seconds()
    return moment - timedelta(seconds=moment.timestamp() % step)


# =============================================================================
# BRAILLE CANVAS
# =============================================================================


class BrailleCanvas:
    """
    Dot grid with 2 x 4 dots per character cell.

    Pixels are addressed in dot coordinates; cells() yields the braille
    characters to place on the surface. A cell takes the color of the last
    pixel set in it.
    """

    def __init__(self, cols: int, rows: int) -> None:
        self.cols = cols
        self.rows = rows
        self._bits: dict[tuple[int, int], int] = {}
        self._colors: dict[tuple[int, int], int] = {}

    @property
    def width(self) -> int:
        return self.cols * 2

    @property
    def height(self) -> int:
        return self.rows * 4

    def set_pixel(self, x: int, y: int, color: int) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            return
        key = (x // 2, y // 4)
        self._bits[key] = self._bits.get(key, 0) | BRAILLE_BITS[y % 4][x % 2]
        self._colors[key] = color

    def line(self, x0: int, y0: int, x1: int, y1: int, color: int) -> None:
        """Bresenham line between two dots, endpoints included."""
        dx = abs(x1 - x0)
        dy = -abs(y1 - y0)
        sx = 1 if x0 < x1 else -1
        sy = 1 if y0 < y1 else -1
        err = dx + dy
        while True:
            self.set_pixel(x0, y0, color)
            if x0 == x1 and y0 == y1:
                break
            e2 = 2 * err
            if e2 >= dy:
                err += dy
                x0 += sx
            if e2 <= dx:
                err += dx
                y0 += sy

    def is_set(self, x: int, y: int) -> bool:
        bits = self._bits.get((x // 2, y // 4), 0)
        return bool(bits & BRAILLE_BITS[y % 4][x % 2])

    def cells(self) -> Iterator[tuple[int, int, str, int]]:
        """Yield (col, row, char, color) for every non-empty cell."""
        for (col, row), bits in sorted(self._bits.items(), key=lambda kv: (kv[0][1], kv[0][0])):
            yield col, row, chr(BRAILLE_BASE + bits), self._colors[(col, row)]


# =============================================================================
# HISTORY CHART
# =============================================================================


class ChartRenderer:
    """
    Battery history chart renderer.

    DRAW ORDER (later layers overwrite earlier ones):
    1. Day/night background for every plot cell
    2. Axes, Y labels, X time labels, date labels
    3. Braille data lines
    4. Day-break markers at each midnight
    """

    def __init__(
        self,
        y_min: float = Config.Y_MIN,
        y_max: float = Config.Y_MAX,
        day_start_hour: int = Config.DAY_START_HOUR,
        day_end_hour: int = Config.DAY_END_HOUR,
        day_color: int = Config.DAY_COLOR,
        night_color: int = Config.NIGHT_COLOR,
        max_gap: timedelta = Config.MAX_LINE_GAP,
        label_color: int = Config.LABEL_COLOR,
        axis_color: int = Config.AXIS_COLOR,
        show_dates: bool = True,
    ) -> None:
        self.y_min = y_min
        self.y_max = y_max
        self.day_start_hour = day_start_hour
        self.day_end_hour = day_end_hour
        self.day_color = day_color
        self.night_color = night_color
        self.max_gap = max_gap
        self.label_color = label_color
        self.axis_color = axis_color
        self.show_dates = show_dates

    @classmethod
    def from_settings(cls, settings: Settings) -> ChartRenderer:
        return cls(
            day_start_hour=settings.day_start_hour,
            day_end_hour=settings.day_end_hour,
            day_color=settings.day_color,
            night_color=settings.night_color,
        )

    def is_day(self, moment: datetime) -> bool:
        return self.day_start_hour <= moment.hour < self.day_end_hour

    def render(
        self, surface: Surface, window: ViewWindow, series: Sequence[Series]
    ) -> RenderStatus:
        """
        Draw the chart for `window` onto `surface`.

        Business context: The chart is redrawn on every refresh and every
        zoom/pan, so it is fully recomputed from the window each frame;
        nothing is cached between frames.

        Args:
            surface: Drawing target, sized to the chart region.
            window: Visible time range.
            series: Lines to draw, typically from build_series().

        Returns:
            RenderStatus.NO_DATA with a "No data" placeholder when there is
            nothing to draw, RenderStatus.NEEDS_SPACE when the surface is
            too small, otherwise RenderStatus.OK.
        """
        cols, rows = surface.size()
        if not any(s.points for s in series):
            surface.draw_text(1, 1, "No data", self.label_color)
            return RenderStatus.NO_DATA
        if cols < Config.MIN_AREA_COLS or rows < Config.MIN_AREA_ROWS:
            surface.draw_text(0, 0, RESIZE_MARKER, self.label_color)
            return RenderStatus.NEEDS_SPACE

        left, top = PLOT_LEFT, PLOT_TOP
        right = cols - PLOT_RIGHT_MARGIN
        bottom = rows - PLOT_BOTTOM_MARGIN
        width, height = right - left, bottom - top
        if width < Config.MIN_PLOT_COLS or height < Config.MIN_PLOT_ROWS:
            surface.draw_text(0, 0, RESIZE_MARKER, self.label_color)
            return RenderStatus.NEEDS_SPACE

        start, end = window.start, window.end
        self._draw_background(surface, left, top, width, height, start, end)
        self._draw_axes(surface, left, top, right, bottom)
        self._draw_y_labels(surface, left, bottom, height)
        self._draw_x_labels(surface, left, bottom, width, window)
        if self.show_dates:
            self._draw_date_labels(surface, left, top, width, cols, start, end)

        canvas = BrailleCanvas(width, height)
        for line in series:
            self._draw_series(canvas, line, start, end)
        for col, row, char, color in canvas.cells():
            surface.set_cell(left + col, top + row, char, color)

        if self.show_dates:
            self._draw_day_breaks(surface, left, top, width, bottom, start, end)
        return RenderStatus.OK

    def _draw_background(
        self,
        surface: Surface,
        left: int,
        top: int,
        width: int,
        height: int,
        start: datetime,
        end: datetime,
    ) -> None:
        span = end - start
        for col in range(width):
            moment = start + span * col / width
            color = self.day_color if self.is_day(moment) else self.night_color
            for row in range(top, top + height):
                surface.set_background(left + col, row, color)

    def _draw_axes(
        self, surface: Surface, left: int, top: int, right: int, bottom: int
    ) -> None:
        for row in range(top, bottom):
            surface.set_cell(left - 1, row, "│", self.axis_color)
        surface.set_cell(left - 1, bottom, "└", self.axis_color)
        for col in range(left, right):
            surface.set_cell(col, bottom, "─", self.axis_color)

    def _draw_y_labels(self, surface: Surface, left: int, bottom: int, height: int) -> None:
        count = Config.Y_LABEL_COUNT
        for i in range(count):
            row = bottom - 1 - (i * height // (count - 1))
            value = self.y_min + (self.y_max - self.y_min) * i / (count - 1)
            label = f"{value:.0f}%"
            col = left - len(label) - 1
            if col >= 0:
                surface.draw_text(col, max(row, PLOT_TOP), label, self.label_color)

    def _draw_x_labels(
        self, surface: Surface, left: int, bottom: int, width: int, window: ViewWindow
    ) -> None:
        if width < 10:
            return
        interval = Config.label_interval(window.duration)
        span = window.end - window.start
        tick = _floor_time(window.start, interval) + interval
        while tick < window.end:
            if tick >= window.start:
                col = left + int(width * ((tick - window.start) / span))
                if col >= left + width:
                    break
                label = tick.strftime("%H:%M")
                surface.draw_text(col - len(label) // 2, bottom + 1, label, self.label_color)
            tick += interval

    def _draw_date_labels(
        self,
        surface: Surface,
        left: int,
        top: int,
        width: int,
        cols: int,
        start: datetime,
        end: datetime,
    ) -> None:
        for midnight in midnights(start, end):
            col = time_to_column(midnight, start, end, width)
            if col is None:
                continue
            label = f"{midnight:%b} {midnight.day}"
            label_col = max(0, min(left + col - len(label) // 2, cols - len(label)))
            surface.draw_text(label_col, top - 1, label, self.label_color, bold=True)

    def _draw_series(
        self, canvas: BrailleCanvas, series: Series, start: datetime, end: datetime
    ) -> None:
        for run in segment_series(series.points, start, end, self.max_gap):
            dots = [
                (
                    time_to_column(p.time, start, end, canvas.width) or 0,
                    value_to_row(p.value, canvas.height, self.y_min, self.y_max),
                )
                for p in run
            ]
            if len(dots) == 1:
                canvas.set_pixel(*dots[0], series.color)
                continue
            for (x0, y0), (x1, y1) in zip(dots, dots[1:]):
                canvas.line(x0, y0, x1, y1, series.color)

    def _draw_day_breaks(
        self,
        surface: Surface,
        left: int,
        top: int,
        width: int,
        bottom: int,
        start: datetime,
        end: datetime,
    ) -> None:
        for midnight in midnights(start, end):
            col = time_to_column(midnight, start, end, width)
            if col is None:
                continue
            for row in range(top, bottom):
                char = DAY_BREAK_CHAR if row % 2 == 0 else " "
                surface.set_cell(left + col, row, char, self.label_color)


# =============================================================================
# WEEKLY SCREEN-ON TIME BARS
# =============================================================================


def _format_hhmm(duration: timedelta) -> str:
    if duration <= timedelta(0):
        return "00:00"
    minutes = int(duration.total_seconds() // 60)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


class SOTBarRenderer:
    """
    Vertical bar chart of daily screen-on time.

    One bar per day, oldest on the left. Bars scale to the longest day but
    never below one hour, so a light day does not fill the whole height.
    """

    def __init__(
        self,
        bar_color: int = Config.LABEL_COLOR,
        today_color: int = Config.HIGHLIGHT_COLOR,
        text_color: int = Config.LABEL_COLOR,
        min_scale: timedelta = timedelta(hours=1),
        bar_spacing: int = 1,
    ) -> None:
        self.bar_color = bar_color
        self.today_color = today_color
        self.text_color = text_color
        self.min_scale = min_scale
        self.bar_spacing = bar_spacing

    def render(self, surface: Surface, days: Sequence[DailyScreenOnTime]) -> RenderStatus:
        """
        Draw one bar per day with an HH:MM label above and the weekday below.

        Returns:
            RenderStatus.NEEDS_SPACE for surfaces under 10 x 5,
            RenderStatus.NO_DATA for an empty list, otherwise OK.
        """
        cols, rows = surface.size()
        if cols < Config.MIN_AREA_COLS or rows < Config.MIN_AREA_ROWS:
            surface.draw_text(0, 0, RESIZE_MARKER, self.text_color)
            return RenderStatus.NEEDS_SPACE
        if not days:
            surface.draw_text(1, 1, "No SOT data", self.text_color)
            return RenderStatus.NO_DATA

        bar_top_limit, bar_bottom = 1, rows - 1
        bar_rows = bar_bottom - bar_top_limit
        count = len(days)
        spacing = self.bar_spacing
        bar_width = (cols - spacing * (count - 1)) // count
        if bar_width < 1:
            bar_width, spacing = 1, 0

        scale = max(max(d.active_time for d in days), self.min_scale)
        for i, day in enumerate(days):
            x0 = i * (bar_width + spacing)
            height = int(bar_rows * (day.active_time / scale))
            color = self.today_color if day.is_today else self.bar_color
            top = bar_bottom - height
            for row in range(top, bar_bottom):
                for col in range(x0, min(x0 + bar_width, cols)):
                    surface.set_cell(col, row, BAR_CHAR, color)

            center = x0 + bar_width // 2
            time_label = _format_hhmm(day.active_time)
            label_col = center - len(time_label) // 2
            if label_col >= 0 and label_col + len(time_label) <= cols:
                surface.draw_text(label_col, max(top - 1, 0), time_label, self.text_color)

            day_label = "Today" if day.is_today else f"{day.day:%a}"
            label_col = center - len(day_label) // 2
            if label_col >= 0 and label_col + len(day_label) <= cols:
                surface.draw_text(label_col, rows - 1, day_label, self.text_color)
        return RenderStatus.OK
