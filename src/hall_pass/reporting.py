"""Console rendering of the pass status and usage log."""

from __future__ import annotations

from datetime import timedelta, tzinfo
from typing import Optional

from .controller import SessionController
from .ledger import format_duration


class StatusPrinter:
    """Render human-readable pass status and history in the console."""

    def __init__(self, controller: SessionController, tz: Optional[tzinfo] = None) -> None:
        self.controller = controller
        self.tz = tz

    def print_status(self) -> None:
        print(f"{self.controller.settings.location_name}: {status_text(self.controller)}")
        session = self.controller.session
        if session is not None:
            started = session.start_time.astimezone(self.tz).strftime("%Y-%m-%d %H:%M:%S")
            print(f"  {session.name} (ID {session.id})")
            print(f"  Started: {started}")

    def print_usage_log(self, limit: Optional[int] = None) -> None:
        entries = self.controller.ledger.entries
        if not entries:
            print("No logs yet.")
            return
        if limit is not None:
            entries = entries[:limit]

        print(
            f"{'#':>3}  {'Date':<10}  {'Restroom':<16} {'ID':<10} {'Name':<20} "
            f"{'Start':<8}  {'End':<8}  Duration"
        )
        print("-" * 96)
        for index, entry in enumerate(entries):
            start = entry.start_time.astimezone(self.tz)
            end = entry.end_time.astimezone(self.tz)
            print(
                f"{index:>3}  {start:%Y-%m-%d}  {entry.location_name[:16]:<16} "
                f"{entry.id[:10]:<10} {entry.name[:20]:<20} "
                f"{start:%H:%M:%S}  {end:%H:%M:%S}  {format_duration(entry.duration_ms)}"
            )


def status_text(controller: SessionController) -> str:
    elapsed = controller.elapsed()
    if elapsed is None:
        return "AVAILABLE"
    return f"OCCUPIED • {format_elapsed(elapsed)}"


def format_elapsed(elapsed: timedelta) -> str:
    return format_duration(elapsed // timedelta(milliseconds=1))
