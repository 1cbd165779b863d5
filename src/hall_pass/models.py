"""Domain models for the active pass and completed usage records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional


@dataclass(frozen=True, slots=True)
class Session:
    """The single in-progress occupancy, from start to end."""

    id: str
    name: str
    location_token: Optional[str]
    start_time: datetime


@dataclass(frozen=True, slots=True)
class LogEntry:
    """A completed occupancy interval recorded in the ledger."""

    id: str
    name: str
    start_time: datetime
    end_time: datetime
    duration_ms: int
    location_name: str

    @classmethod
    def from_session(cls, session: Session, end_time: datetime, location_name: str) -> "LogEntry":
        return cls(
            id=session.id,
            name=session.name,
            start_time=session.start_time,
            end_time=end_time,
            duration_ms=(end_time - session.start_time) // timedelta(milliseconds=1),
            location_name=location_name,
        )

    @property
    def duration_seconds(self) -> float:
        return self.duration_ms / 1000.0
