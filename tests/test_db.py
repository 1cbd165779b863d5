"""Tests for the SQLite blob store."""

from pathlib import Path

import pytest

from hall_pass.controller import SessionController
from hall_pass.db import BlobStore

from tests.conftest import FakeClock


class TestBlobStore:
    def test_missing_key_loads_none(self, tmp_path: Path) -> None:
        with BlobStore(tmp_path / "hp.sqlite3") as store:
            assert store.load("settings") is None

    def test_save_overwrites(self, tmp_path: Path) -> None:
        with BlobStore(tmp_path / "hp.sqlite3") as store:
            store.save("roster", {"1": {"name": "A"}})
            store.save("roster", {"2": {"name": "B"}})
            assert store.load("roster") == {"2": {"name": "B"}}

    def test_null_and_clear(self, tmp_path: Path) -> None:
        with BlobStore(tmp_path / "hp.sqlite3") as store:
            store.save("session", None)
            assert store.load("session") is None
            store.save("logs", [])
            store.clear("logs")
            assert store.load("logs") is None

    def test_values_survive_reopen(self, tmp_path: Path) -> None:
        path = tmp_path / "hp.sqlite3"
        with BlobStore(path) as store:
            store.save("logs", [{"id": "1"}])
        with BlobStore(path) as store:
            assert store.load("logs") == [{"id": "1"}]

    def test_in_memory_database(self) -> None:
        with BlobStore(":memory:") as store:
            store.save("settings", {"restroomName": "Gym"})
            assert store.load("settings") == {"restroomName": "Gym"}

    def test_controller_state_survives_restart(self, tmp_path: Path) -> None:
        path = tmp_path / "hp.sqlite3"
        clock = FakeClock()
        with BlobStore(path) as store:
            controller = SessionController(store, clock=clock)
            controller.start("1001", "QR-A")
        with BlobStore(path) as store:
            restored = SessionController(store, clock=clock)
            assert restored.session is not None
            assert restored.session.location_token == "QR-A"
            restored.end("1001", "QR-A")
            assert len(restored.ledger) == 1

    def test_save_many_is_all_or_nothing(self, tmp_path: Path) -> None:
        with BlobStore(tmp_path / "hp.sqlite3") as store:
            store.save("session", {"id": "1001"})
            with pytest.raises(TypeError):
                store.save_many({"session": None, "logs": [object()]})
            assert store.load("session") == {"id": "1001"}
            assert store.load("logs") is None

            store.save_many({"session": None, "logs": [{"id": "1001"}]})
            assert store.load("session") is None
            assert store.load("logs") == [{"id": "1001"}]
