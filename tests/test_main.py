"""Main test module for battery-zen."""

import os
import subprocess
import sys
from pathlib import Path

import battery_zen


class TestVersion:
    """Test version information."""

    def test_version_format(self) -> None:
        """Verifies version follows semantic versioning format.

        Tests that version string has MAJOR.MINOR.PATCH structure
        with numeric components.

        Business context:
        `battery-zen --version` output is what users paste into bug
        reports.

        Assertion Strategy:
        Validates 3 parts, all numeric.
        """
        parts = battery_zen.__version__.split(".")
        assert len(parts) == 3
        assert all(part.isdigit() for part in parts)

    def test_title(self) -> None:
        assert battery_zen.__title__ == "battery_zen"

    def test_metadata_exported(self) -> None:
        for name in battery_zen.__all__:
            assert getattr(battery_zen, name)


class TestModuleEntryPoint:
    def test_python_m_version(self) -> None:
        """Verifies `python -m battery_zen --version` runs the CLI.

        Testing Principle:
        Exercises the real entry point in a subprocess.
        """
        result = subprocess.run(  # nosec B603
            [sys.executable, "-m", "battery_zen", "--version"],
            capture_output=True,
            text=True,
            check=False,
            env={**os.environ, "PYTHONPATH": str(Path(battery_zen.__file__).parents[1])},
        )

        assert result.returncode == 0
        assert result.stdout.strip() == f"battery-zen {battery_zen.__version__}"
