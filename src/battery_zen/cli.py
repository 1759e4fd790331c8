"""
CLI entry point for battery-zen.

PURPOSE: Command-line interface for the sampler, reports and dashboard.
AI CONTEXT: Main entry points for package execution.

USAGE:
    battery-zen sample            # Record one sample
    battery-zen run               # Sampling daemon (single instance)
    battery-zen trim              # Trim the log to max_lines
    battery-zen status [--json]   # Probe the battery now
    battery-zen report [--window HOURS] [--json]
    battery-zen export [--output PATH] [--hours N]
    battery-zen tui [--alpha A]   # Interactive dashboard
    battery-zen service setup     # config, systemd user unit, start
    battery-zen service logs      # follow the service journal
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import threading
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from types import FrameType
from typing import TYPE_CHECKING

from .config import Settings

if TYPE_CHECKING:
    from .analytics import AnalyticsEngine
    from .sampler import Sampler
    from .service import SystemdUserService
    from .storage import SampleLog
    from .sysfs import BatteryProbe

PROG_NAME = "battery-zen"
DEFAULT_EXPORT = "battery-zen.png"
SERVICE_ACTIONS = (
    "setup",
    "install",
    "copy-config",
    "start",
    "stop",
    "status",
    "logs",
    "uninstall",
)


@lru_cache(maxsize=1)
def _get_logger() -> logging.Logger:
    """Get module logger (cached for thread safety)."""
    logging.basicConfig(level=logging.INFO)
    return logging.getLogger(__name__)


def _log(message: str, *, emoji: str = "") -> None:
    """Log message with optional emoji prefix for CLI output.

    Args:
        message: The message to log.
        emoji: Optional emoji prefix for visual CLI feedback.
    """
    prefix = f"{emoji} " if emoji else ""
    _get_logger().info(f"{prefix}{message}")


def _error(message: str) -> None:
    _get_logger().error(f"❌ {message}")


def run_sample(settings: Settings, sampler: Sampler | None = None) -> int:
    """
    Record one sample and exit.

    Intended for cron or a systemd timer when the daemon is not wanted.

    Returns:
        0 on success, 1 if the battery could not be read or the log
        could not be written.
    """
    from .sampler import BatteryNotFoundError
    from .sampler import Sampler as SamplerImpl

    sampler = sampler or SamplerImpl(settings)
    try:
        sample = sampler.sample_once()
    except (BatteryNotFoundError, OSError) as e:
        _error(f"sample: {e}")
        return 1
    _log(
        f"Recorded {sample.battery_percent:.0f}% "
        f"({'AC' if sample.ac_connected else 'battery'}) to {settings.log_path}"
    )
    return 0


def run_daemon(
    settings: Settings,
    sampler: Sampler | None = None,
    stop: threading.Event | None = None,
) -> int:
    """
    Run the sampling daemon until SIGTERM or SIGINT.

    Business context: The service unit and manual runs must never write
    the same log at once, so the daemon holds the PID file for its whole
    lifetime and refuses to start while another live sampler holds it.

    Args:
        settings: Loaded settings.
        sampler: Optional Sampler for testability.
        stop: Optional stop event for testability; signal handlers are
            only installed when this is omitted.

    Returns:
        0 after a clean stop, 1 if another sampler is running or the lock
        cannot be created.
    """
    from .lock import PIDFile
    from .sampler import Sampler as SamplerImpl

    sampler = sampler or SamplerImpl(settings)
    lock = PIDFile(settings.pid_path)
    try:
        acquired = lock.acquire()
    except OSError as e:
        _error(f"Cannot create lock {settings.pid_path}: {e}")
        return 1
    if not acquired:
        _error(f"Another {PROG_NAME} sampler is already running ({settings.pid_path})")
        return 1

    try:
        if stop is None:
            stop = threading.Event()

            def _handle_signal(signum: int, frame: FrameType | None) -> None:  # noqa: ARG001
                _log(f"Received signal {signum}, stopping")
                stop.set()

            signal.signal(signal.SIGTERM, _handle_signal)
            signal.signal(signal.SIGINT, _handle_signal)

        _log(f"Sampler started: {settings.config_summary()}", emoji="🔋")
        sampler.run(stop)
    finally:
        lock.release()
    return 0


def run_trim(settings: Settings, log: SampleLog | None = None) -> int:
    """Trim the sample log to its newest max_lines rows."""
    from .storage import SampleLog as SampleLogImpl

    log = log or SampleLogImpl(settings.log_path)
    if not log.trim_to_last(settings.max_lines):
        _error(f"Failed to trim {log.path}")
        return 1
    return 0


def run_status(
    settings: Settings, as_json: bool = False, probe: BatteryProbe | None = None
) -> int:
    """
    Print the battery state as read right now, without touching the log.

    Output:
        ac_connected=true battery_life=84 ts=2025-09-01T10:00:00+02:00 file=...

    Returns:
        0 on success, 1 when no battery is found.
    """
    from .sampler import Sampler as SamplerImpl
    from .sysfs import BatteryProbe as BatteryProbeImpl

    probe = probe or BatteryProbeImpl()
    percent = probe.battery_percent()
    if percent is None:
        _error("battery percent not found")
        return 1
    ac = probe.ac_online()
    now = SamplerImpl(settings, probe=probe).now()
    if as_json:
        print(
            json.dumps(
                {
                    "ac_connected": ac,
                    "battery_life": percent,
                    "timestamp": now.isoformat(timespec="seconds"),
                    "file": settings.log_path,
                    "cycle_count": probe.cycle_count(),
                },
                indent=2,
            )
        )
    else:
        # Note: Using print() intentionally for stdout piping support
        print(
            f"ac_connected={str(ac).lower()} battery_life={percent} "
            f"ts={now.isoformat(timespec='seconds')} file={settings.log_path}"
        )
    return 0


def _engine_for(settings: Settings) -> AnalyticsEngine:
    from .analytics import AnalyticsEngine

    return AnalyticsEngine(
        alpha=settings.regression_alpha,
        max_charge_percent=settings.max_charge_percent,
        suspend_gap_minutes=settings.suspend_gap_minutes,
    )


def run_report(
    settings: Settings,
    window_hours: float | None = None,
    as_json: bool = False,
    log: SampleLog | None = None,
    probe: BatteryProbe | None = None,
) -> int:
    """
    Print the status pane as plain text (or JSON) to stdout.

    Args:
        settings: Loaded settings.
        window_hours: Only analyze samples this recent. Default: all.
        as_json: Print StatusViewModel.to_dict() plus weekly SOT as JSON.
        log: Optional SampleLog for testability.
        probe: Optional BatteryProbe for the cycle count.

    Returns:
        0 on success, 1 when the log holds no samples.
    """
    from .presenters import StatusPresenter, build_status_lines
    from .storage import SampleLog as SampleLogImpl
    from .sysfs import BatteryProbe as BatteryProbeImpl

    log = log or SampleLogImpl(settings.log_path)
    probe = probe or BatteryProbeImpl()
    engine = _engine_for(settings)
    samples = log.read()
    if window_hours is not None:
        samples = engine.filter_recent(samples, timedelta(hours=window_hours))

    presenter = StatusPresenter(
        engine,
        log_path=settings.log_path,
        config_summary=settings.config_summary(),
        cycle_count=probe.cycle_count,
    )
    view = presenter.build(samples)
    if view is None:
        _error(f"No samples in {settings.log_path}")
        return 1

    if as_json:
        data = view.to_dict()
        data["weekly_screen_on"] = [d.to_dict() for d in presenter.weekly(samples)]
        print(json.dumps(data, indent=2))
    else:
        print("\n".join(line.text for line in build_status_lines(view)))
    return 0


def run_export(
    settings: Settings,
    output: str = DEFAULT_EXPORT,
    hours: float | None = None,
    log: SampleLog | None = None,
) -> int:
    """
    Write the battery history and weekly SOT charts as PNG files.

    The SOT chart goes next to `output` with a "-sot" suffix.

    Returns:
        0 on success, 1 if matplotlib is missing or a file cannot be written.
    """
    from .presenters import ChartPresenter, StatusPresenter
    from .storage import SampleLog as SampleLogImpl

    log = log or SampleLogImpl(settings.log_path)
    engine = _engine_for(settings)
    samples = log.read()
    presenter = ChartPresenter(engine, settings.day_start_hour, settings.day_end_hour)
    window = timedelta(hours=hours) if hours is not None else None

    history_path = Path(output)
    sot_path = history_path.with_name(f"{history_path.stem}-sot{history_path.suffix or '.png'}")
    try:
        history_png = presenter.render_history_chart(samples, window)
        sot_png = presenter.render_weekly_sot_chart(StatusPresenter(engine).weekly(samples))
    except ImportError:
        _error("matplotlib is required for export (pip install matplotlib)")
        return 1
    try:
        history_path.write_bytes(history_png)
        sot_path.write_bytes(sot_png)
    except OSError as e:
        _error(f"Failed to write chart: {e}")
        return 1
    _log(f"Wrote {history_path} and {sot_path}", emoji="📊")
    return 0


def run_tui(settings: Settings, alpha: float | None = None) -> int:
    """Launch the interactive terminal dashboard."""
    from .tui import run_dashboard

    run_dashboard(settings, alpha=alpha)
    return 0


def run_service(
    action: str,
    settings: Settings | None = None,
    service: SystemdUserService | None = None,
) -> int:
    """
    Manage the sampler's systemd user service.

    Args:
        action: One of SERVICE_ACTIONS.
        settings: Settings written by copy-config and setup.
        service: Optional SystemdUserService for testability.

    Returns:
        0 on success, 1 on failure or unsupported platform. For logs,
        journalctl's exit code.
    """
    from .service import get_service

    try:
        service = service or get_service(settings)
    except NotImplementedError as e:
        _error(str(e))
        return 1

    if action == "status":
        _log(service.status().describe())
        return 0

    if action == "copy-config":
        try:
            written = service.copy_config()
        except OSError as e:
            _error(f"Could not write {service.config_path}: {e}")
            return 1
        if written:
            _log(f"Wrote {service.config_path}", emoji="📝")
        else:
            _log(f"{service.config_path} already exists, left unchanged")
        return 0

    if action == "logs":
        try:
            return service.logs()
        except OSError as e:
            _error(f"Could not run journalctl: {e}")
            return 1
        except KeyboardInterrupt:
            return 0

    handlers = {
        "setup": service.setup,
        "install": service.install,
        "uninstall": service.uninstall,
        "start": service.start,
        "stop": service.stop,
    }
    if not handlers[action]():
        _error(f"Service {action} failed")
        return 1
    _log(f"Service {action}: done", emoji="✅")
    return 0


def build_parser() -> argparse.ArgumentParser:
    from .__version__ import __version__

    parser = argparse.ArgumentParser(
        prog=PROG_NAME,
        description="battery-zen - battery logger and terminal dashboard",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("sample", help="Record one battery sample")
    subparsers.add_parser("run", help="Run the sampling daemon")
    subparsers.add_parser("trim", help="Trim the sample log to max_lines")

    status_parser = subparsers.add_parser("status", help="Print current battery state")
    status_parser.add_argument("--json", action="store_true", help="Print JSON")

    report_parser = subparsers.add_parser("report", help="Print analytics report")
    report_parser.add_argument(
        "--window",
        type=float,
        default=None,
        metavar="HOURS",
        help="Only use samples from the last HOURS hours",
    )
    report_parser.add_argument("--json", action="store_true", help="Print JSON")

    export_parser = subparsers.add_parser("export", help="Write PNG charts")
    export_parser.add_argument(
        "--output",
        default=DEFAULT_EXPORT,
        help=f"History chart path (default: {DEFAULT_EXPORT})",
    )
    export_parser.add_argument(
        "--hours",
        type=float,
        default=None,
        help="Only chart the last N hours",
    )

    tui_parser = subparsers.add_parser("tui", help="Interactive terminal dashboard")
    tui_parser.add_argument(
        "--alpha",
        type=float,
        default=None,
        help="Regression weight decay per minute (0 = unweighted)",
    )

    service_parser = subparsers.add_parser("service", help="Manage the systemd user service")
    service_parser.add_argument("action", choices=SERVICE_ACTIONS)

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main CLI entry point for battery-zen.

    Parses command-line arguments, loads settings from the config file
    chain and dispatches to the subcommand handler. Without a subcommand
    the dashboard is launched.

    Args:
        argv: Arguments without the program name. Default: sys.argv[1:].

    Returns:
        Process exit code.

    Raises:
        SystemExit: On --help, --version or argument parsing errors.
    """
    args = build_parser().parse_args(argv)

    settings = Settings.load()
    if args.command == "service":
        return run_service(args.action, settings)
    if args.command == "sample":
        return run_sample(settings)
    if args.command == "run":
        return run_daemon(settings)
    if args.command == "trim":
        return run_trim(settings)
    if args.command == "status":
        return run_status(settings, as_json=args.json)
    if args.command == "report":
        return run_report(settings, window_hours=args.window, as_json=args.json)
    if args.command == "export":
        return run_export(settings, output=args.output, hours=args.hours)
    if args.command == "tui":
        return run_tui(settings, alpha=args.alpha)
    return run_tui(settings)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
