"""SQLite-backed key/value store for the persisted hall pass blobs."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol, Union

logger = logging.getLogger(__name__)

DATETIME_FMT = "%Y-%m-%d %H:%M:%S.%f"


class PersistentStore(Protocol):
    """Durable get/set/clear of JSON-compatible values by key."""

    def load(self, key: str) -> Any: ...

    def save(self, key: str, value: Any) -> None: ...

    def save_many(self, values: dict[str, Any]) -> None:
        """Save several keys together; either all are written or none."""
        ...

    def clear(self, key: str) -> None: ...


def open_database(
    path: Union[Path, str], *, check_same_thread: bool = True
) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS blobs (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        """
    )


class BlobStore:
    """Stores one JSON document per key in a single SQLite table."""

    def __init__(self, path: Union[Path, str]) -> None:
        self.path = path if path == ":memory:" else Path(path)
        self._conn = open_database(self.path, check_same_thread=False)
        self._lock = threading.Lock()

    def load(self, key: str) -> Any:
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM blobs WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable blob for key %r.", key)
            return None

    def save(self, key: str, value: Any) -> None:
        self.save_many({key: value})

    def save_many(self, values: dict[str, Any]) -> None:
        stamp = datetime.now().strftime(DATETIME_FMT)
        rows = [(key, json.dumps(value), stamp) for key, value in values.items()]
        with self._lock:
            self._conn.execute("BEGIN")
            try:
                self._conn.executemany(
                    """
                    INSERT INTO blobs (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    rows,
                )
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            self._conn.execute("COMMIT")
        logger.debug("Saved %s.", ", ".join(repr(key) for key, _, _ in rows))

    def clear(self, key: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM blobs WHERE key = ?", (key,))
        logger.debug("Cleared %r.", key)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "BlobStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
