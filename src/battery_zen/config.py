"""
Configuration for battery-zen.

PURPOSE: Centralized configuration constants and runtime settings.
AI CONTEXT: Compile-time defaults live on Config; user-tunable values are
loaded into a Settings instance from TOML files.

CONFIGURATION CATEGORIES:
- Analytics: Regression weighting, ETA target, suspend gap threshold
- Chart: Window sizes, zoom/pan steps, day/night banding, label density
- Storage: File names, CSV header, trimming thresholds
- Sampling: Polling intervals for battery and AC power

CONFIG FILES (applied in order, later files override earlier ones):
- ./battery-zen.toml
- $XDG_CONFIG_HOME/battery-zen/config.toml
- /etc/battery-zen/config.toml
- The file named by $BATTERY_ZEN_CONFIG

ENVIRONMENT VARIABLES:
- BATTERY_ZEN_CONFIG: Extra config file applied last
- XDG_STATE_HOME: Base for the default log directory (default: ~/.local/state)
- XDG_CONFIG_HOME: Base for the user config file (default: ~/.config)

USAGE:
    from battery_zen.config import Config, Settings
    settings = Settings.load()
    csv_path = settings.log_path
"""

from __future__ import annotations

import json
import logging
import os
import tomllib
from dataclasses import dataclass, field, fields, replace
from datetime import timedelta
from pathlib import Path
from typing import Any, ClassVar

__all__ = ["Config", "Settings"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Config:
    """
    Immutable configuration container for battery-zen.

    DESIGN: Frozen dataclass with class-level constants - no instance
    creation needed. Settings takes its defaults from here so every
    tunable has exactly one default value.

    STORAGE STRUCTURE:
        $XDG_STATE_HOME/battery-zen/
        ├── battery.csv         # Sample log (timestamp,ac_connected,battery_life)
        ├── battery.csv.tmp     # Transient file while trimming
        ├── .battery-zen.pid    # Sampler daemon lock
        └── battery-zen.log     # Log output while the dashboard is open
    """

    # =========================================================================
    # APPLICATION IDENTITY
    # =========================================================================
    APP_NAME: ClassVar[str] = "battery-zen"

    # =========================================================================
    # ANALYTICS PARAMETERS
    # =========================================================================
    REGRESSION_ALPHA: ClassVar[float] = 0.05
    """
    Exponential decay per minute for regression weights.
    A sample 60 minutes old weighs exp(-3) ≈ 5% of the newest sample.
    """

    RATE_EPSILON: ClassVar[float] = 1e-6
    """Slopes within ±epsilon %/min count as flat (no ETA)."""

    MAX_CHARGE_PERCENT: ClassVar[int] = 100
    """Charge target for time-to-full. Lower it when a charge limit is set."""

    SUSPEND_GAP_MINUTES: ClassVar[int] = 10
    """
    Minimum gap between adjacent samples treated as a suspend.
    Must exceed the on-AC polling interval (5 min) to avoid false events.
    """

    SOT_DAYS: ClassVar[int] = 7

    # =========================================================================
    # CHART WINDOW
    # =========================================================================
    BASE_WINDOW: ClassVar[timedelta] = timedelta(hours=24)
    MIN_WINDOW: ClassVar[timedelta] = timedelta(minutes=5)
    MAX_WINDOW: ClassVar[timedelta] = timedelta(days=7)
    ZOOM_STEP: ClassVar[float] = 0.1
    PAN_FRACTION: ClassVar[float] = 0.1

    # =========================================================================
    # CHART RENDERING
    # =========================================================================
    Y_MIN: ClassVar[float] = 0.0
    Y_MAX: ClassVar[float] = 100.0
    Y_LABEL_COUNT: ClassVar[int] = 4

    DAY_START_HOUR: ClassVar[int] = 7
    DAY_END_HOUR: ClassVar[int] = 19
    DAY_COLOR: ClassVar[int] = 237
    NIGHT_COLOR: ClassVar[int] = 0
    """Colors are xterm-256 palette indices. 0 means terminal default/black."""

    CHARGING_COLOR: ClassVar[int] = 46
    DISCHARGING_COLOR: ClassVar[int] = 196
    AXIS_COLOR: ClassVar[int] = 8
    LABEL_COLOR: ClassVar[int] = 51
    HIGHLIGHT_COLOR: ClassVar[int] = 226

    MAX_LINE_GAP: ClassVar[timedelta] = timedelta(minutes=5)
    """Adjacent samples further apart than this are not joined by a line."""

    MIN_AREA_COLS: ClassVar[int] = 10
    MIN_AREA_ROWS: ClassVar[int] = 5
    MIN_PLOT_COLS: ClassVar[int] = 5
    MIN_PLOT_ROWS: ClassVar[int] = 3

    LABEL_INTERVALS: ClassVar[tuple[tuple[timedelta, timedelta], ...]] = (
        (timedelta(minutes=30), timedelta(minutes=5)),
        (timedelta(hours=2), timedelta(minutes=15)),
        (timedelta(hours=4), timedelta(minutes=30)),
        (timedelta(hours=8), timedelta(hours=1)),
        (timedelta(hours=24), timedelta(hours=2)),
        (timedelta(hours=48), timedelta(hours=4)),
        (timedelta(days=7), timedelta(hours=12)),
    )
    """(window span upper bound, tick interval) pairs, smallest span first."""

    FALLBACK_LABEL_INTERVAL: ClassVar[timedelta] = timedelta(hours=24)

    # =========================================================================
    # DASHBOARD
    # =========================================================================
    REFRESH_INTERVAL: ClassVar[timedelta] = timedelta(seconds=10)
    CHART_HEIGHT_RATIO: ClassVar[float] = 0.6
    STATUS_WIDTH_RATIO: ClassVar[float] = 0.65

    # =========================================================================
    # STORAGE CONFIGURATION
    # =========================================================================
    CSV_HEADER: ClassVar[str] = "timestamp,ac_connected,battery_life"
    LOG_FILE: ClassVar[str] = "battery.csv"
    PID_FILE: ClassVar[str] = ".battery-zen.pid"
    TUI_LOG_FILE: ClassVar[str] = "battery-zen.log"
    MAX_LINES: ClassVar[int] = 1000
    TRIM_BUFFER: ClassVar[int] = 100

    # =========================================================================
    # SAMPLING
    # =========================================================================
    INTERVAL_SECS: ClassVar[int] = 60
    INTERVAL_SECS_ON_AC: ClassVar[int] = 300
    TIMEZONE: ClassVar[str] = "Local"

    # =========================================================================
    # CONFIG FILE LOCATIONS
    # =========================================================================
    CONFIG_FILE_NAME: ClassVar[str] = "config.toml"
    LOCAL_CONFIG_FILE: ClassVar[str] = "battery-zen.toml"
    SYSTEM_CONFIG_DIR: ClassVar[str] = "/etc/battery-zen"
    CONFIG_ENV_VAR: ClassVar[str] = "BATTERY_ZEN_CONFIG"

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @classmethod
    def label_interval(cls, span: timedelta) -> timedelta:
        """
        Pick the x-axis tick interval for a window span.

        Walks LABEL_INTERVALS from the smallest span upward and returns the
        interval of the first bound that covers the span, so wider windows
        get sparser labels.

        Args:
            span: Visible window width.

        Returns:
            Tick spacing. FALLBACK_LABEL_INTERVAL for spans over a week.

        Example:
            >>> Config.label_interval(timedelta(hours=3))
            datetime.timedelta(seconds=1800)
        """
        for bound, interval in cls.LABEL_INTERVALS:
            if span <= bound:
                return interval
        return cls.FALLBACK_LABEL_INTERVAL

    # =========================================================================
    # ENVIRONMENT-BASED SETTINGS (runtime configurable)
    # =========================================================================
    _state_home_override: ClassVar[str | None] = None
    _config_home_override: ClassVar[str | None] = None
    _working_dir_override: ClassVar[str | None] = None

    @classmethod
    def state_home(cls) -> str:
        """
        Get the XDG state directory.

        Test overrides take precedence, then $XDG_STATE_HOME, then
        ~/.local/state.

        Returns:
            Absolute path string.
        """
        if cls._state_home_override is not None:
            return cls._state_home_override
        env = os.environ.get("XDG_STATE_HOME", "")
        if env:
            return env
        return str(Path.home() / ".local" / "state")

    @classmethod
    def config_home(cls) -> str:
        """Get the XDG config directory ($XDG_CONFIG_HOME or ~/.config)."""
        if cls._config_home_override is not None:
            return cls._config_home_override
        env = os.environ.get("XDG_CONFIG_HOME", "")
        if env:
            return env
        return str(Path.home() / ".config")

    @classmethod
    def default_log_dir(cls) -> str:
        """Directory holding the CSV log and PID file by default."""
        return os.path.join(cls.state_home(), cls.APP_NAME)

    @classmethod
    def user_config_path(cls) -> str:
        """The per-user config file, seeded by `battery-zen service copy-config`."""
        return os.path.join(cls.config_home(), cls.APP_NAME, cls.CONFIG_FILE_NAME)

    @classmethod
    def config_paths(cls) -> list[str]:
        """
        List every config file location checked, in application order.

        Business context: The status pane tells the user which of these
        files were actually found, so the full candidate list is exposed
        rather than only the existing ones.

        Returns:
            Absolute paths: local project file, user file, system file, and
            the $BATTERY_ZEN_CONFIG file when that variable is set.
        """
        working_dir = cls._working_dir_override or os.getcwd()
        paths = [
            os.path.join(working_dir, cls.LOCAL_CONFIG_FILE),
            cls.user_config_path(),
            os.path.join(cls.SYSTEM_CONFIG_DIR, cls.CONFIG_FILE_NAME),
        ]
        extra = os.environ.get(cls.CONFIG_ENV_VAR, "")
        if extra:
            paths.append(os.path.abspath(os.path.expanduser(extra)))
        return paths

    @classmethod
    def set_test_overrides(
        cls,
        state_home: str | None = None,
        config_home: str | None = None,
        working_dir: str | None = None,
    ) -> None:
        """
        Set test overrides for environment-based directories.

        Must call reset_test_overrides() in test teardown to avoid affecting
        other tests.

        Args:
            state_home: Replacement for $XDG_STATE_HOME. None to clear.
            config_home: Replacement for $XDG_CONFIG_HOME. None to clear.
            working_dir: Replacement for the current directory used to find
                the project-local config file. None to clear.

        Example:
            >>> Config.set_test_overrides(state_home="/state")
            >>> Config.default_log_dir()
            '/state/battery-zen'
            >>> Config.reset_test_overrides()
        """
        cls._state_home_override = state_home
        cls._config_home_override = config_home
        cls._working_dir_override = working_dir

    @classmethod
    def reset_test_overrides(cls) -> None:
        """Reset all test overrides to use environment variables."""
        cls._state_home_override = None
        cls._config_home_override = None
        cls._working_dir_override = None


def _default_log_dir() -> str:
    return Config.default_log_dir()


@dataclass(frozen=True)
class Settings:
    """
    User-tunable runtime settings.

    Every field maps to a TOML key of the same name. Defaults come from
    Config. Instances are immutable; use dataclasses.replace() to derive a
    modified copy (the CLI does this for --alpha).

    Attributes:
        interval_secs: Sampling period while on battery.
        interval_secs_on_ac: Sampling period while plugged in.
        timezone: "Local" or "UTC" for written timestamps.
        log_dir: Directory for the CSV log and PID file (~ expanded).
        log_file: CSV file name inside log_dir.
        max_lines: Data rows kept after a trim.
        trim_buffer: Extra rows tolerated before an automatic trim.
        max_charge_percent: Target used for time-to-full.
        suspend_gap_minutes: Gap threshold for suspend detection.
        day_start_hour / day_end_hour: Day band [start, end) in local hours.
        day_color / night_color: 256-color indices for the bands.
        max_window_days: Widest zoom-out.
        base_window_hours: Window width restored by reset.
        min_window_minutes: Narrowest zoom-in.
        zoom_step: Fractional change per zoom step.
        regression_alpha: Regression weight decay per minute.
        refresh_secs: Dashboard auto-refresh period.
        loaded_files: Config files that were found and applied.
    """

    interval_secs: int = Config.INTERVAL_SECS
    interval_secs_on_ac: int = Config.INTERVAL_SECS_ON_AC
    timezone: str = Config.TIMEZONE
    log_dir: str = field(default_factory=_default_log_dir)
    log_file: str = Config.LOG_FILE
    max_lines: int = Config.MAX_LINES
    trim_buffer: int = Config.TRIM_BUFFER
    max_charge_percent: int = Config.MAX_CHARGE_PERCENT
    suspend_gap_minutes: int = Config.SUSPEND_GAP_MINUTES
    day_start_hour: int = Config.DAY_START_HOUR
    day_end_hour: int = Config.DAY_END_HOUR
    day_color: int = Config.DAY_COLOR
    night_color: int = Config.NIGHT_COLOR
    max_window_days: int = Config.MAX_WINDOW.days
    base_window_hours: int = int(Config.BASE_WINDOW.total_seconds() // 3600)
    min_window_minutes: int = int(Config.MIN_WINDOW.total_seconds() // 60)
    zoom_step: float = Config.ZOOM_STEP
    regression_alpha: float = Config.REGRESSION_ALPHA
    refresh_secs: int = int(Config.REFRESH_INTERVAL.total_seconds())
    loaded_files: tuple[str, ...] = ()

    @property
    def log_path(self) -> str:
        """Full path of the CSV sample log."""
        return os.path.join(self.log_dir, self.log_file)

    @property
    def pid_path(self) -> str:
        """Full path of the sampler PID file."""
        return os.path.join(self.log_dir, Config.PID_FILE)

    @property
    def use_utc(self) -> bool:
        return self.timezone.strip().upper() == "UTC"

    @property
    def base_window(self) -> timedelta:
        return timedelta(hours=self.base_window_hours)

    @property
    def min_window(self) -> timedelta:
        return timedelta(minutes=self.min_window_minutes)

    @property
    def max_window(self) -> timedelta:
        return timedelta(days=self.max_window_days)

    @property
    def refresh_interval(self) -> timedelta:
        return timedelta(seconds=self.refresh_secs)

    @property
    def trim_threshold(self) -> int:
        """Line count (header included) above which the log is trimmed."""
        return self.max_lines + self.trim_buffer + 1

    def config_summary(self) -> str:
        """
        Describe which config files were applied.

        Returns:
            One line: defaults notice, the single file, or the last file
            applied plus a count of the others.
        """
        if not self.loaded_files:
            return "Config: Using defaults (no config file found)"
        if len(self.loaded_files) == 1:
            return f"Config file: {self.loaded_files[0]}"
        return (
            f"Config files: {self.loaded_files[-1]} "
            f"(+ {len(self.loaded_files) - 1} more)"
        )

    def to_toml(self) -> str:
        """
        Render every config key as a TOML document.

        The output parses back with tomllib into the same values, so it can
        seed a user config file that lists every tunable with its current
        value.

        Returns:
            TOML text, one `key = value` line per field.
        """
        lines = [f"# {Config.APP_NAME} configuration", ""]
        for f in fields(self):
            if f.name == "loaded_files":
                continue
            value = getattr(self, f.name)
            if isinstance(value, bool):
                rendered = "true" if value else "false"
            elif isinstance(value, str):
                rendered = json.dumps(value)
            else:
                rendered = repr(value)
            lines.append(f"{f.name} = {rendered}")
        return "\n".join(lines) + "\n"

    @classmethod
    def from_mapping(cls, data: dict[str, Any], base: Settings | None = None) -> Settings:
        """
        Build settings by overlaying a parsed TOML mapping onto a base.

        Unknown keys and values of the wrong type are logged and ignored
        so a typo in one key never discards the rest of the file.

        Args:
            data: Parsed TOML table.
            base: Settings to overlay onto. Default: all defaults.

        Returns:
            New Settings instance.
        """
        current = base or cls()
        known = {f.name: f for f in fields(cls) if f.name != "loaded_files"}
        updates: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            expected = type(getattr(current, key))
            if expected is float and isinstance(value, int) and not isinstance(value, bool):
                value = float(value)
            if not isinstance(value, expected) or isinstance(value, bool) != (expected is bool):
                logger.warning(
                    f"Ignoring config key {key}: expected {expected.__name__}, "
                    f"got {type(value).__name__}"
                )
                continue
            updates[key] = value
        if "log_dir" in updates:
            updates["log_dir"] = os.path.expanduser(updates["log_dir"])
        return replace(current, **updates)

    @classmethod
    def load(cls, paths: list[str] | None = None) -> Settings:
        """
        Load settings from the config file chain.

        Each existing file is parsed with tomllib and overlaid in order, so
        later files override earlier ones key by key. Missing files are
        skipped silently; unreadable or malformed files are logged and
        skipped.

        Business context: The sampler runs unattended as a service, so a
        broken config file must degrade to defaults instead of stopping
        battery logging.

        Args:
            paths: Candidate files. Default: Config.config_paths().

        Returns:
            Settings with loaded_files listing the files applied.

        Example:
            >>> settings = Settings.load()
            >>> settings.interval_secs
            60
        """
        settings = cls()
        loaded: list[str] = []
        for path in paths if paths is not None else Config.config_paths():
            try:
                with open(path, "rb") as f:
                    data = tomllib.load(f)
            except FileNotFoundError:
                continue
            except (OSError, tomllib.TOMLDecodeError) as e:
                logger.error(f"Failed to read config {path}: {e}")
                continue
            settings = cls.from_mapping(data, settings)
            loaded.append(path)
        return replace(settings, loaded_files=tuple(loaded))
