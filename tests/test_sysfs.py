"""Tests for sysfs module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Add tests directory to path for conftest imports
sys.path.insert(0, str(Path(__file__).parent))

from battery_zen.sysfs import POWER_SUPPLY_ROOT, BatteryProbe
from conftest import MockFileSystem


@pytest.fixture
def probe(mock_fs: MockFileSystem) -> BatteryProbe:
    """BatteryProbe reading the mock power_supply tree."""
    return BatteryProbe(filesystem=mock_fs)


def supply(mock_fs: MockFileSystem, device: str, attribute: str, value: str) -> None:
    mock_fs.set_file(f"{POWER_SUPPLY_ROOT}/{device}/{attribute}", value + "\n")


class TestBatteryPercent:
    def test_reads_first_battery(self, probe: BatteryProbe, mock_fs: MockFileSystem) -> None:
        supply(mock_fs, "BAT0", "capacity", "84")
        supply(mock_fs, "BAT1", "capacity", "12")

        assert probe.battery_percent() == 84

    def test_no_battery(self, probe: BatteryProbe) -> None:
        """Verifies desktops without a battery get None instead of an error."""
        assert probe.battery_percent() is None

    def test_non_numeric_capacity(self, probe: BatteryProbe, mock_fs: MockFileSystem) -> None:
        supply(mock_fs, "BAT0", "capacity", "unknown")
        assert probe.battery_percent() is None


class TestAcOnline:
    """Tests for AC detection across vendor naming schemes."""

    @pytest.mark.parametrize("device", ["AC", "ACAD", "ADP1"])
    def test_adapter_online(
        self, probe: BatteryProbe, mock_fs: MockFileSystem, device: str
    ) -> None:
        supply(mock_fs, device, "online", "1")
        assert probe.ac_online() is True

    def test_adapter_offline(self, probe: BatteryProbe, mock_fs: MockFileSystem) -> None:
        supply(mock_fs, "AC", "online", "0")
        supply(mock_fs, "BAT0", "status", "Charging")

        assert probe.ac_online() is False

    @pytest.mark.parametrize(
        ("status", "expected"),
        [("Charging", True), ("Full", True), ("Discharging", False), ("Unknown", False)],
    )
    def test_falls_back_to_battery_status(
        self, probe: BatteryProbe, mock_fs: MockFileSystem, status: str, expected: bool
    ) -> None:
        """Verifies the battery status decides when no adapter is listed.

        Business context:
        Some laptops expose only the battery; "Charging" and "Full" mean
        external power is present.
        """
        supply(mock_fs, "BAT0", "status", status)
        assert probe.ac_online() is expected

    def test_nothing_present_is_unplugged(self, probe: BatteryProbe) -> None:
        assert probe.ac_online() is False


class TestCycleCount:
    def test_reads_cycle_count(self, probe: BatteryProbe, mock_fs: MockFileSystem) -> None:
        supply(mock_fs, "BAT0", "cycle_count", "312")
        assert probe.cycle_count() == 312

    def test_missing_cycle_count(self, probe: BatteryProbe) -> None:
        assert probe.cycle_count() is None

    def test_custom_root(self, mock_fs: MockFileSystem) -> None:
        mock_fs.set_file("/fake/BAT0/capacity", "50")
        assert BatteryProbe(root="/fake/", filesystem=mock_fs).battery_percent() == 50
