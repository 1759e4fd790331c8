"""
battery-zen: battery logger and power-usage monitor.

PURPOSE: Sample battery/AC state, keep a rolling CSV history, and predict
time-to-full / time-to-empty from recent trends.
AI CONTEXT: Core logic is pure (analytics, navigation, chart); everything that
touches the OS sits behind small injectable seams.

PACKAGE STRUCTURE:
- models.py: Sample and derived value objects
- analytics.py: Weighted regression, ETA, suspend and screen-on detection
- navigation.py: Zoom/pan/reset state machine for the chart time window
- chart.py: Time/value to cell mapping, braille lines, day/night bands
- presenters.py: Status view models and PNG export
- storage.py: CSV sample log (read, append, trim)
- sysfs.py: Linux power_supply probe
- lock.py: Single-instance PID file
- sampler.py: Sampling daemon loop
- service.py: systemd user service management
- tui/: Interactive curses dashboard
- config.py: Defaults and TOML settings

QUICK START:
    battery-zen run       # Start the sampler daemon
    battery-zen tui       # Open the dashboard
    battery-zen status    # Print the current status
"""

from battery_zen.__version__ import (
    __author__,
    __copyright__,
    __description__,
    __license__,
    __title__,
    __url__,
    __version__,
    __version_date__,
)

__all__ = [
    "__version__",
    "__version_date__",
    "__title__",
    "__description__",
    "__url__",
    "__author__",
    "__license__",
    "__copyright__",
]
