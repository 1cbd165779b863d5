"""Pass session state machine and the ledger/roster it maintains."""

from __future__ import annotations

import logging
import threading
from datetime import timedelta, tzinfo
from typing import Any, Callable, Optional, TypeVar

from .clock import Clock
from .config import StationSettings
from .db import PersistentStore
from .errors import (
    AlreadyOccupied,
    IdentifierMismatch,
    LoadError,
    LocationMismatch,
    MissingIdentifier,
    MissingLocationToken,
    NotOccupied,
)
from .ledger import Ledger
from .models import LogEntry, Session
from .normalization import normalize_scan_value
from .roster import Roster
from .schemas import (
    LOGS_KEY,
    ROSTER_KEY,
    SESSION_KEY,
    SETTINGS_KEY,
    dump_logs,
    dump_roster,
    dump_session,
    dump_settings,
    load_logs,
    load_roster,
    load_session,
    load_settings,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionController:
    """Owns the single active pass, the ledger, the roster and the settings.

    Every mutating call runs under a lock and is written to the store before
    it takes effect in memory, so a failed write leaves both unchanged.
    Rejected calls raise a ``HallPassError`` subclass and change nothing.
    """

    def __init__(self, store: PersistentStore, clock: Optional[Clock] = None) -> None:
        self._store = store
        self._clock = clock or Clock()
        self._lock = threading.Lock()
        self.reload()

    def reload(self) -> None:
        """Re-read all state from the store, e.g. after another process changed it."""
        with self._lock:
            self._settings = self._hydrate(SETTINGS_KEY, load_settings, StationSettings)
            self._roster = Roster(self._hydrate(ROSTER_KEY, load_roster, dict))
            self._ledger = Ledger(self._hydrate(LOGS_KEY, load_logs, list))
            self._session = self._hydrate(SESSION_KEY, load_session, lambda: None)
        logger.debug(
            "Loaded %d log entries, %d roster entries; occupied=%s",
            len(self._ledger),
            len(self._roster),
            self._session is not None,
        )

    @property
    def settings(self) -> StationSettings:
        return self._settings

    @property
    def roster(self) -> Roster:
        return self._roster

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def is_occupied(self) -> bool:
        return self._session is not None

    def start(self, identifier: Optional[str], location_token: Optional[str] = None) -> Session:
        identifier = normalize_scan_value(identifier)
        location_token = normalize_scan_value(location_token)
        with self._lock:
            if self._session is not None:
                logger.warning("Start rejected: pass already held by %s.", self._session.id)
                raise AlreadyOccupied(self._session.id)
            if identifier is None:
                logger.warning("Start rejected: no identifier supplied.")
                raise MissingIdentifier()
            if self._settings.require_location_token and location_token is None:
                logger.warning("Start rejected: location token required for %s.", identifier)
                raise MissingLocationToken()

            session = Session(
                id=identifier,
                name=self._roster.resolve_name(identifier),
                location_token=location_token,
                start_time=self._clock.now(),
            )
            self._store.save(SESSION_KEY, dump_session(session))
            self._session = session
        logger.info("Pass started for %s (%s).", session.id, session.name)
        return session

    def end(self, identifier: Optional[str], location_token: Optional[str] = None) -> LogEntry:
        identifier = normalize_scan_value(identifier)
        location_token = normalize_scan_value(location_token)
        with self._lock:
            session = self._session
            if session is None:
                logger.warning("End rejected: no active pass.")
                raise NotOccupied()
            if identifier is None:
                logger.warning("End rejected: no identifier supplied.")
                raise MissingIdentifier()
            if identifier != session.id:
                logger.warning("End rejected: %s does not hold the pass.", identifier)
                raise IdentifierMismatch()
            if (
                self._settings.require_location_token
                and session.location_token is not None
                and location_token is not None
                and location_token != session.location_token
            ):
                logger.warning("End rejected: location token mismatch for %s.", identifier)
                raise LocationMismatch()

            entry = LogEntry.from_session(
                session, self._clock.now(), self._settings.location_name
            )
            ledger = Ledger(self._ledger.entries)
            ledger.append(entry)
            # Closing the session and recording it must persist together.
            self._store.save_many({SESSION_KEY: None, LOGS_KEY: dump_logs(ledger.entries)})
            self._ledger = ledger
            self._session = None
        logger.info(
            "Pass ended for %s after %.1f seconds.", entry.id, entry.duration_seconds
        )
        return entry

    def elapsed(self) -> Optional[timedelta]:
        """Time since the active pass started, or ``None`` when vacant."""
        session = self._session
        if session is None:
            return None
        return self._clock.elapsed(session.start_time)

    def delete_log_entry(self, index: int) -> LogEntry:
        with self._lock:
            ledger = Ledger(self._ledger.entries)
            removed = ledger.remove(index)
            self._store.save(LOGS_KEY, dump_logs(ledger.entries))
            self._ledger = ledger
        logger.info("Deleted log entry %d (%s).", index, removed.id)
        return removed

    def update_settings(self, **changes: Any) -> StationSettings:
        with self._lock:
            settings = self._settings.updated(**changes)
            self._store.save(SETTINGS_KEY, dump_settings(settings))
            self._settings = settings
        logger.info("Settings updated: %s", settings)
        return settings

    def import_roster(self, text: str) -> int:
        with self._lock:
            roster = Roster()
            count = roster.import_csv(text)
            self._store.save(ROSTER_KEY, dump_roster(roster.as_dict()))
            self._roster = roster
        return count

    def export_roster(self) -> str:
        return self._roster.export_csv()

    def clear_roster(self) -> None:
        with self._lock:
            self._store.save(ROSTER_KEY, dump_roster({}))
            self._roster = Roster()
        logger.info("Roster cleared.")

    def export_logs(self, tz: Optional[tzinfo] = None) -> str:
        return self._ledger.export_csv(tz)

    def _hydrate(self, key: str, loader: Callable[[Any], T], default: Callable[[], T]) -> T:
        try:
            return loader(self._store.load(key))
        except LoadError:
            logger.warning("Ignoring invalid stored %r; starting empty.", key, exc_info=True)
            return default()
