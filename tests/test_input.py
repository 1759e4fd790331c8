"""Tests for tui.input module."""

from __future__ import annotations

import curses

import pytest

from battery_zen.tui.dispatch import Pan, Quit, Refresh, Reset, Resize, Scroll, Select, Zoom
from battery_zen.tui.input import KEY_ESCAPE, WHEEL_DOWN, WHEEL_UP, InputAdapter


@pytest.fixture
def adapter() -> InputAdapter:
    return InputAdapter()


class TestTranslateKey:
    """Tests for key bindings."""

    @pytest.mark.parametrize(
        ("key", "event"),
        [
            (ord("i"), Zoom(zoom_in=True)),
            (ord("I"), Zoom(zoom_in=True)),
            (ord("o"), Zoom(zoom_in=False)),
            (curses.KEY_LEFT, Pan(right=False)),
            (curses.KEY_RIGHT, Pan(right=True)),
            (KEY_ESCAPE, Reset()),
            (curses.KEY_UP, Scroll(-1)),
            (curses.KEY_DOWN, Scroll(1)),
            (curses.KEY_NPAGE, Scroll(10)),
            (ord("r"), Refresh()),
            (ord("q"), Quit()),
            (ord("Q"), Quit()),
            (curses.KEY_RESIZE, Resize()),
        ],
    )
    def test_bound_keys(self, adapter: InputAdapter, key: int, event: object) -> None:
        assert adapter.translate_key(key) == event

    @pytest.mark.parametrize("key", [ord("x"), ord(" "), -1])
    def test_unbound_keys(self, adapter: InputAdapter, key: int) -> None:
        assert adapter.translate_key(key) is None


class TestTranslateMouse:
    """Tests for wheel zoom and drag selection."""

    @pytest.mark.skipif(not WHEEL_UP, reason="curses build lacks button 4")
    def test_wheel_up_zooms_in(self, adapter: InputAdapter) -> None:
        assert adapter.translate_mouse(10, 3, WHEEL_UP) == Zoom(zoom_in=True)

    @pytest.mark.skipif(not WHEEL_DOWN, reason="curses build lacks button 5")
    def test_wheel_down_zooms_out(self, adapter: InputAdapter) -> None:
        assert adapter.translate_mouse(10, 3, WHEEL_DOWN) == Zoom(zoom_in=False)

    def test_drag_right_selects(self, adapter: InputAdapter) -> None:
        """Verifies press then release at another column gives a Select.

        Assertion Strategy:
        Press yields nothing; release yields the ordered column range.
        """
        assert adapter.translate_mouse(12, 4, curses.BUTTON1_PRESSED) is None
        assert adapter.translate_mouse(30, 4, curses.BUTTON1_RELEASED) == Select(12, 30)

    def test_drag_left_is_ordered(self, adapter: InputAdapter) -> None:
        adapter.translate_mouse(30, 4, curses.BUTTON1_PRESSED)
        assert adapter.translate_mouse(12, 4, curses.BUTTON1_RELEASED) == Select(12, 30)

    def test_click_without_drag(self, adapter: InputAdapter) -> None:
        adapter.translate_mouse(12, 4, curses.BUTTON1_PRESSED)
        assert adapter.translate_mouse(12, 4, curses.BUTTON1_RELEASED) is None

    def test_release_without_press(self, adapter: InputAdapter) -> None:
        assert adapter.translate_mouse(12, 4, curses.BUTTON1_RELEASED) is None

    def test_drag_state_cleared_after_release(self, adapter: InputAdapter) -> None:
        adapter.translate_mouse(5, 0, curses.BUTTON1_PRESSED)
        adapter.translate_mouse(9, 0, curses.BUTTON1_RELEASED)

        assert adapter.translate_mouse(20, 0, curses.BUTTON1_RELEASED) is None

    def test_other_buttons_ignored(self, adapter: InputAdapter) -> None:
        assert adapter.translate_mouse(5, 0, curses.BUTTON3_PRESSED) is None
