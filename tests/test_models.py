"""Tests for models module."""

from __future__ import annotations

import dataclasses
import math
from datetime import UTC, datetime, timedelta

import pytest

from battery_zen.models import (
    DailyScreenOnTime,
    RateEstimate,
    RegressionResult,
    Sample,
    ScreenOnTimeResult,
    SuspendEvent,
    ViewWindow,
)

T0 = datetime(2025, 9, 1, 10, 0, tzinfo=UTC)


def suspend(start_minutes: int, length_minutes: int, before: float, after: float) -> SuspendEvent:
    start = T0 + timedelta(minutes=start_minutes)
    end = start + timedelta(minutes=length_minutes)
    return SuspendEvent(start, end, end - start, before, after, before - after)


class TestSample:
    def test_frozen(self) -> None:
        sample = Sample(T0, True, 84.0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            sample.battery_percent = 50.0  # type: ignore[misc]

    def test_to_dict(self) -> None:
        assert Sample(T0, False, 81.5).to_dict() == {
            "time": "2025-09-01T10:00:00+00:00",
            "ac_connected": False,
            "battery_percent": 81.5,
        }


class TestRegressionResult:
    def test_default_is_failed_fit(self) -> None:
        result = RegressionResult()
        assert (result.slope, result.intercept, result.ok) == (0.0, 0.0, False)


class TestRateEstimate:
    """Tests for ETA availability and serialization."""

    @pytest.mark.parametrize(
        ("eta", "ok", "expected"),
        [
            (40.0, True, True),
            (0.0, True, True),
            (math.inf, True, False),
            (-5.0, True, False),
            (40.0, False, False),
        ],
    )
    def test_has_eta(self, eta: float, ok: bool, expected: bool) -> None:
        """Verifies an ETA is shown only for finite, non-negative values.

        Business context:
        A flat or wrong-direction trend gives an infinite or negative
        ETA, which must render as "no estimate" rather than a time.
        """
        assert RateEstimate(0.5, eta, "", ok).has_eta is expected

    def test_to_dict_hides_infinite_eta(self) -> None:
        data = RateEstimate(0.0, math.inf, "(not charging or already full)", True, True).to_dict()

        assert data == {
            "rate_percent_per_minute": 0.0,
            "eta_minutes": None,
            "confidence": "(not charging or already full)",
            "ok": True,
            "charging": True,
        }

    def test_to_dict_with_eta(self) -> None:
        assert RateEstimate(-0.25, 80.0, "c", True).to_dict()["eta_minutes"] == 80.0


class TestSuspendEvent:
    def test_to_dict(self) -> None:
        data = suspend(5, 48, 79.0, 76.0).to_dict()

        assert data["duration_minutes"] == 48.0
        assert data["battery_delta"] == 3.0
        assert data["start_time"] == "2025-09-01T10:05:00+00:00"
        assert data["end_time"] == "2025-09-01T10:53:00+00:00"


class TestScreenOnTimeResult:
    def test_zero_value(self) -> None:
        result = ScreenOnTimeResult()

        assert result.total_active_time == timedelta(0)
        assert result.suspend_events == ()
        assert result.last_suspend is None

    def test_last_suspend_is_latest_event(self) -> None:
        first, second = suspend(5, 20, 90, 89), suspend(60, 30, 80, 78)
        result = ScreenOnTimeResult(
            total_active_time=timedelta(minutes=70),
            total_suspend_time=timedelta(minutes=50),
            last_active_session=timedelta(minutes=30),
            suspend_events=(first, second),
        )

        assert result.last_suspend is second
        data = result.to_dict()
        assert data["total_active_minutes"] == 70.0
        assert data["total_suspend_minutes"] == 50.0
        assert data["last_active_session_minutes"] == 30.0
        assert len(data["suspend_events"]) == 2


class TestDailyScreenOnTime:
    def test_hours_and_has_data(self) -> None:
        day = DailyScreenOnTime(T0.date(), timedelta(hours=2, minutes=30), is_today=True)

        assert day.hours == 2.5
        assert day.has_data
        assert day.to_dict() == {"day": "2025-09-01", "active_minutes": 150.0, "is_today": True}

    def test_empty_day(self) -> None:
        assert not DailyScreenOnTime(T0.date(), timedelta(0)).has_data


class TestViewWindow:
    def test_ending_at(self) -> None:
        window = ViewWindow.ending_at(T0, timedelta(hours=24))

        assert window.start == T0 - timedelta(hours=24)
        assert window.end - window.start == window.duration

    def test_contains_is_inclusive(self) -> None:
        window = ViewWindow.ending_at(T0, timedelta(hours=1))

        assert window.contains(T0)
        assert window.contains(T0 - timedelta(hours=1))
        assert not window.contains(T0 + timedelta(seconds=1))
