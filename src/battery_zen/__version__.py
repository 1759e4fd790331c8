"""Version information for battery-zen."""

__version__ = "0.4.0"
__version_date__ = "2026-10-17"

__title__ = "battery_zen"
__description__ = "Battery logger with trend prediction and an interactive terminal chart"
__url__ = "https://github.com/Prajwal-Prathiksh/battery-zen"

__author__ = "Prajwal Prathiksh"

__license__ = "MIT"
__copyright__ = "Copyright 2025 Prajwal Prathiksh"

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
