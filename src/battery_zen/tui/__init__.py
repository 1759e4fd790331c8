"""
Terminal dashboard for battery-zen.

PURPOSE: Interactive curses view of the battery log.
AI CONTEXT: Thin layer over presenters, ChartRenderer and WindowNavigator.

MODULES:
- dispatch.py: DashboardController, event types, RefreshTicker
- input.py: Key and mouse translation to events
- surface.py: curses Surface implementation and screen layout
- app.py: curses main loop

USAGE:
    from battery_zen.tui import run_dashboard
    run_dashboard(settings)
"""

from .app import run_dashboard

__all__ = ["run_dashboard"]
