"""Shared fixtures: a controllable clock and an in-memory store."""

from __future__ import annotations

import copy
import json
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from hall_pass.clock import Clock
from hall_pass.controller import SessionController

T0 = datetime(2024, 3, 4, 9, 15, 0, tzinfo=timezone.utc)


class FakeClock(Clock):
    def __init__(self, start: datetime = T0) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class MemoryStore:
    """Dict-backed store that round-trips values through JSON like the real one."""

    def __init__(
        self, initial: dict[str, Any] | None = None, fail_keys: tuple[str, ...] = ()
    ) -> None:
        self.data: dict[str, str] = {
            key: json.dumps(value) for key, value in (initial or {}).items()
        }
        self.saves: list[str] = []
        self.fail_keys = set(fail_keys)

    def load(self, key: str) -> Any:
        raw = self.data.get(key)
        return None if raw is None else json.loads(raw)

    def save(self, key: str, value: Any) -> None:
        self.save_many({key: value})

    def save_many(self, values: dict[str, Any]) -> None:
        failing = self.fail_keys.intersection(values)
        if failing:
            raise OSError(f"disk full while saving {sorted(failing)}")
        for key, value in values.items():
            self.data[key] = json.dumps(copy.deepcopy(value))
            self.saves.append(key)

    def clear(self, key: str) -> None:
        self.data.pop(key, None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def controller(store: MemoryStore, clock: FakeClock) -> SessionController:
    return SessionController(store, clock=clock)
