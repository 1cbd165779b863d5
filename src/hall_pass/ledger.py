"""Newest-first history of completed passes and its CSV export."""

from __future__ import annotations

import csv
import io
from datetime import date, datetime, tzinfo
from typing import Iterable, Iterator, Optional

from .models import LogEntry

EXPORT_HEADER = ("Restroom", "ID", "Name", "Start", "End", "Duration (mm:ss)")
DISPLAY_FMT = "%Y-%m-%d %H:%M:%S"


class Ledger:
    """Completed log entries, most recent first."""

    def __init__(self, entries: Optional[Iterable[LogEntry]] = None) -> None:
        self._entries: list[LogEntry] = list(entries or [])

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> LogEntry:
        return self._entries[index]

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def append(self, entry: LogEntry) -> None:
        self._entries.insert(0, entry)

    def remove(self, index: int) -> LogEntry:
        """Remove the entry at ``index``; raises ``IndexError`` when out of range."""
        if not 0 <= index < len(self._entries):
            raise IndexError(f"No log entry at index {index}")
        return self._entries.pop(index)

    def export_csv(self, tz: Optional[tzinfo] = None) -> str:
        """Serialize the ledger; times are shown in ``tz`` (local time by default)."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(EXPORT_HEADER)
        for entry in self._entries:
            writer.writerow(
                (
                    entry.location_name,
                    entry.id,
                    entry.name,
                    format_timestamp(entry.start_time, tz),
                    format_timestamp(entry.end_time, tz),
                    format_duration(entry.duration_ms),
                )
            )
        return buffer.getvalue()


def format_duration(duration_ms: int) -> str:
    """Format milliseconds as ``mm:ss``; minutes are unbounded, fractions truncated."""
    total_seconds = max(int(duration_ms), 0) // 1000
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"


def format_timestamp(value: datetime, tz: Optional[tzinfo] = None) -> str:
    return value.astimezone(tz).strftime(DISPLAY_FMT)


def export_filename(day: date) -> str:
    return f"hallpass_logs_{day.isoformat()}.csv"
