"""Identifier-to-name directory with CSV import and export."""

from __future__ import annotations

import csv
import io
import logging
from typing import Iterator, Mapping, Optional

from .errors import MalformedRoster, MissingColumns

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"
ROSTER_FILENAME = "roster_template.csv"
REQUIRED_COLUMNS = ("id", "name")


class Roster:
    """Maps identifiers to display names.

    Imports replace the whole mapping; there is no merge with prior entries.
    """

    def __init__(self, entries: Optional[Mapping[str, str]] = None) -> None:
        self._entries: dict[str, str] = dict(entries or {})

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._entries

    def as_dict(self) -> dict[str, str]:
        return dict(self._entries)

    def resolve_name(self, identifier: str) -> str:
        return self._entries.get(identifier) or UNKNOWN_NAME

    def clear(self) -> None:
        self._entries = {}

    def import_csv(self, text: str) -> int:
        """Replace the roster with rows parsed from ``text``.

        Raises ``MissingColumns`` (leaving the roster untouched) when the
        header lacks ``id`` or ``name``. Returns the number of entries loaded.
        """
        self._entries = parse_roster_csv(text)
        logger.info("Imported roster with %d entries.", len(self._entries))
        return len(self._entries)

    def export_csv(self) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(REQUIRED_COLUMNS)
        for identifier, name in self._entries.items():
            writer.writerow((identifier, name))
        return buffer.getvalue()


def parse_roster_csv(text: str) -> dict[str, str]:
    try:
        return _parse_rows(csv.reader(io.StringIO(text.lstrip("\ufeff"))))
    except csv.Error as exc:
        raise MalformedRoster(str(exc)) from exc


def _parse_rows(rows: Iterator[list[str]]) -> dict[str, str]:
    header = next(rows, None) or []
    columns = [column.strip().lower() for column in header]
    missing = [column for column in REQUIRED_COLUMNS if column not in columns]
    if missing:
        raise MissingColumns(missing)

    id_index = columns.index("id")
    name_index = columns.index("name")
    entries: dict[str, str] = {}
    for row in rows:
        identifier = _field(row, id_index)
        if not identifier:
            continue
        # Later duplicates win.
        entries[identifier] = _field(row, name_index)
    return entries


def _field(row: list[str], index: int) -> str:
    if index >= len(row):
        return ""
    return row[index].strip()
