"""
Sample log storage for battery-zen.

PURPOSE: Append-only CSV persistence for battery samples with bounded size.
AI CONTEXT: All reads and writes of the sample log go through SampleLog.

FILE FORMAT:
    timestamp,ac_connected,battery_life
    2025-09-01T10:00:00+02:00,1,84
    2025-09-01T10:01:00+02:00,1,85

    Readers also accept older/hand-made headers ("ac", "AC Plugged In (bool)",
    "battery", "Battery Life (%)"), loose booleans (true/t/yes/y/1 and
    integers) and timestamps without a zone.

ERROR HANDLING STRATEGY:
- File not found: Empty sample list, line count 0
- Malformed rows: Skipped (logged at debug level)
- Unknown header: Empty sample list, error logged
- Write failure: Logged; append() and trim_to_last() return False

USAGE:
    log = SampleLog(settings.log_path)
    log.append(datetime.now().astimezone(), ac_connected=True, battery_percent=84)
    samples = log.read()
"""

from __future__ import annotations

import csv
import io
import logging
import os
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .config import Config
from .filesystem import RealFileSystem
from .models import Sample

if TYPE_CHECKING:
    from .filesystem import FileSystem

__all__ = ["SampleLog", "parse_bool_loose", "parse_timestamp", "parse_rows"]

logger = logging.getLogger(__name__)

TIMESTAMP_ALIASES = ("timestamp",)
AC_ALIASES = ("ac_connected", "ac", "ac plugged in (bool)", "ac plugged in")
BATTERY_ALIASES = ("battery_life", "battery", "battery life (%)")

FALLBACK_LAYOUTS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%dT%H:%M:%S",
)

TRUE_WORDS = frozenset({"true", "t", "1", "yes", "y"})
FALSE_WORDS = frozenset({"false", "f", "0", "no", "n"})


def parse_bool_loose(value: str) -> bool:
    """
    Parse a boolean written in any of the common spellings.

    Accepts true/t/1/yes/y and false/f/0/no/n (case-insensitive), or any
    integer where 0 is False.

    Raises:
        ValueError: For anything else.

    Example:
        >>> parse_bool_loose(" Yes ")
        True
        >>> parse_bool_loose("2")
        True
    """
    word = value.strip().lower()
    if word in TRUE_WORDS:
        return True
    if word in FALSE_WORDS:
        return False
    try:
        return int(word) != 0
    except ValueError:
        raise ValueError(f"bad bool: {value!r}") from None


def parse_timestamp(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp, falling back to common layouts.

    Timestamps without a zone are taken as UTC so every parsed sample is
    timezone-aware and comparable.

    Raises:
        ValueError: If no layout matches.
    """
    text = value.strip()
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        for layout in FALLBACK_LAYOUTS:
            try:
                parsed = datetime.strptime(text, layout)
                break
            except ValueError:
                continue
    if parsed is None:
        raise ValueError(f"bad timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _find_column(header: list[str], aliases: tuple[str, ...]) -> int:
    normalized = [h.strip().lower() for h in header]
    for alias in aliases:
        if alias in normalized:
            return normalized.index(alias)
    return -1


def parse_rows(rows: list[list[str]]) -> list[Sample]:
    """
    Convert CSV rows (header first) into samples.

    Columns are located by header name, case-insensitively, so column order
    does not matter. Rows that are too short or fail to parse are skipped.

    Args:
        rows: Raw CSV rows including the header row.

    Returns:
        Samples in file order.

    Raises:
        ValueError: If the rows are empty or a required column is missing.
    """
    if not rows:
        raise ValueError("empty csv")
    header = rows[0]
    ts_idx = _find_column(header, TIMESTAMP_ALIASES)
    ac_idx = _find_column(header, AC_ALIASES)
    batt_idx = _find_column(header, BATTERY_ALIASES)
    if min(ts_idx, ac_idx, batt_idx) < 0:
        raise ValueError(
            "expected headers: timestamp, ac_connected, battery_life (or similar)"
        )

    needed = max(ts_idx, ac_idx, batt_idx)
    samples: list[Sample] = []
    for line_no, record in enumerate(rows[1:], start=2):
        if len(record) <= needed:
            continue
        try:
            samples.append(
                Sample(
                    time=parse_timestamp(record[ts_idx]),
                    ac_connected=parse_bool_loose(record[ac_idx]),
                    battery_percent=float(record[batt_idx].strip()),
                )
            )
        except ValueError as e:
            logger.debug(f"Skipping CSV line {line_no}: {e}")
    return samples


class SampleLog:
    """
    CSV sample log with append, read and trim.

    DESIGN PRINCIPLES:
    1. Fail-safe: I/O errors are logged, never raised to the sampler loop
    2. Append-only: Normal operation only appends one line per sample
    3. Bounded: trim_to_last() keeps the header plus the newest rows,
       replacing the file atomically via a temp file and rename
    4. Testable: FileSystem can be injected for mocking

    THREAD SAFETY:
    Single writer (the sampler daemon, guarded by the PID file). Readers
    (dashboard, status) only read whole files.
    """

    def __init__(self, path: str, filesystem: FileSystem | None = None) -> None:
        """
        Args:
            path: CSV file path.
            filesystem: FileSystem implementation. Default: RealFileSystem
        """
        self.path = path
        self._fs: FileSystem = filesystem or RealFileSystem()

    def read(self) -> list[Sample]:
        """
        Load every parsable sample from the log.

        Returns:
            Samples in file order; empty if the file is missing, unreadable
            or has an unknown header.
        """
        try:
            content = self._fs.read_text(self.path)
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error(f"Error reading {self.path}: {e}")
            return []
        rows = [row for row in csv.reader(io.StringIO(content)) if row]
        if not rows:
            return []
        try:
            return parse_rows(rows)
        except ValueError as e:
            logger.error(f"Invalid sample log {self.path}: {e}")
            return []

    def append(self, timestamp: datetime, ac_connected: bool, battery_percent: int) -> bool:
        """
        Append one sample, writing the header first for a new file.

        Args:
            timestamp: Sample time; written in ISO 8601 with its offset.
            ac_connected: Written as 1/0.
            battery_percent: Whole percent as reported by the battery.

        Returns:
            True if written, False on I/O error (logged).
        """
        line = f"{timestamp.isoformat(timespec='seconds')},{1 if ac_connected else 0},{battery_percent}\n"
        try:
            directory = os.path.dirname(self.path)
            if directory:
                self._fs.makedirs(directory, exist_ok=True)
            if not self._fs.exists(self.path):
                line = Config.CSV_HEADER + "\n" + line
            self._fs.append_text(self.path, line)
            return True
        except OSError as e:
            logger.error(f"Failed to append to {self.path}: {e}")
            return False

    def line_count(self) -> int:
        """Number of lines including the header; 0 when the file is missing."""
        try:
            content = self._fs.read_text(self.path)
        except FileNotFoundError:
            return 0
        except OSError as e:
            logger.error(f"Error reading {self.path}: {e}")
            return 0
        return len(content.splitlines())

    def trim_to_last(self, max_data_lines: int) -> bool:
        """
        Keep the header plus the last `max_data_lines` data lines.

        The trimmed content is written to `<path>.tmp` and renamed over the
        log so readers never see a half-written file.

        Returns:
            True on success or when there is nothing to trim, False on
            I/O error (logged).
        """
        try:
            content = self._fs.read_text(self.path)
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.error(f"Error reading {self.path}: {e}")
            return False

        lines = content.splitlines()
        if not lines:
            return True
        header, data = lines[0], [line for line in lines[1:] if line]
        kept = data[-max_data_lines:] if max_data_lines > 0 else []
        tmp_path = self.path + ".tmp"
        try:
            self._fs.write_text(tmp_path, "\n".join([header, *kept]) + "\n")
            self._fs.rename(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to trim {self.path}: {e}")
            return False
        logger.info(f"Trimmed {self.path} to {len(kept)} samples")
        return True

    def trim_if_needed(self, max_lines: int, trim_buffer: int) -> bool:
        """
        Trim once the log exceeds max_lines + trim_buffer data lines.

        The buffer keeps trimming rare: after a trim the file can grow by
        trim_buffer lines before the next rewrite.

        Returns:
            True if a trim was performed.
        """
        if self.line_count() <= max_lines + trim_buffer + 1:
            return False
        return self.trim_to_last(max_lines)
