"""Wall-clock sampling for session timing."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

# Refresh cadence for live elapsed-time displays.
TICK_INTERVAL = timedelta(milliseconds=500)


class Clock:
    """Source of "now" for the controller; tests substitute a fixed clock."""

    def now(self) -> datetime:
        current = datetime.now(timezone.utc)
        # Millisecond resolution keeps stored ISO strings and durations exact.
        return current.replace(microsecond=current.microsecond // 1000 * 1000)

    def elapsed(self, since: datetime) -> timedelta:
        return self.now() - since
