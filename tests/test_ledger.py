"""Tests for ledger ordering, removal and CSV export."""

from datetime import date, datetime, timedelta, timezone

import pytest

from hall_pass.ledger import Ledger, export_filename, format_duration
from hall_pass.models import LogEntry

T0 = datetime(2024, 3, 4, 9, 15, 0, tzinfo=timezone.utc)


def _entry(identifier: str, name: str = "Alice", seconds: float = 90) -> LogEntry:
    return LogEntry(
        id=identifier,
        name=name,
        start_time=T0,
        end_time=T0 + timedelta(seconds=seconds),
        duration_ms=int(seconds * 1000),
        location_name="Main Restroom",
    )


class TestLedgerOrdering:
    def test_append_is_newest_first(self) -> None:
        ledger = Ledger()
        e1, e2 = _entry("1"), _entry("2")
        ledger.append(e1)
        ledger.append(e2)
        assert ledger.entries == [e2, e1]

    def test_remove_keeps_remaining_order(self) -> None:
        e1, e2, e3 = _entry("1"), _entry("2"), _entry("3")
        ledger = Ledger([e3, e2, e1])
        removed = ledger.remove(1)
        assert removed is e2
        assert ledger.entries == [e3, e1]
        ledger.remove(0)
        assert ledger.entries == [e1]

    @pytest.mark.parametrize("index", [-1, 1, 5])
    def test_remove_out_of_range(self, index: int) -> None:
        ledger = Ledger([_entry("1")])
        with pytest.raises(IndexError):
            ledger.remove(index)
        assert len(ledger) == 1


class TestFormatDuration:
    @pytest.mark.parametrize(
        "duration_ms, expected",
        [
            (0, "00:00"),
            (59_999, "00:59"),
            (60_000, "01:00"),
            (125_900, "02:05"),
            (6_000_000, "100:00"),
        ],
    )
    def test_format(self, duration_ms: int, expected: str) -> None:
        assert format_duration(duration_ms) == expected


class TestLedgerExport:
    def test_header_and_rows(self) -> None:
        ledger = Ledger()
        ledger.append(_entry("1001", seconds=125.9))
        text = ledger.export_csv(timezone.utc)
        lines = text.splitlines()
        assert lines[0] == "Restroom,ID,Name,Start,End,Duration (mm:ss)"
        assert lines[1] == (
            "Main Restroom,1001,Alice,2024-03-04 09:15:00,2024-03-04 09:17:05,02:05"
        )

    def test_fields_are_quoted(self) -> None:
        ledger = Ledger([_entry("1", name='Doe, "JD"')])
        row = ledger.export_csv(timezone.utc).splitlines()[1]
        assert '"Doe, ""JD"""' in row

    def test_export_filename(self) -> None:
        assert export_filename(date(2024, 3, 4)) == "hallpass_logs_2024-03-04.csv"
