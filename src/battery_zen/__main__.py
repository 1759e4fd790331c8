"""
Package entry point for python -m execution.

USAGE:
    python -m battery_zen sample   # Record one sample
    python -m battery_zen run      # Run the sampler daemon
    python -m battery_zen tui      # Launch the dashboard
    python -m battery_zen status   # Print status lines
"""

import sys

from battery_zen.cli import main

if __name__ == "__main__":
    sys.exit(main())
