"""Validated shapes of the persisted blobs.

Field aliases keep the stored JSON compatible with the browser version of the
hall pass (``restroomName``, ``startISO``, ``qrValue`` ...).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    TypeAdapter,
    ValidationError,
    field_serializer,
    field_validator,
)

from .config import DEFAULT_LOCATION_NAME, StationSettings
from .errors import LoadError
from .models import LogEntry, Session

SETTINGS_KEY = "settings"
LOGS_KEY = "logs"
ROSTER_KEY = "roster"
SESSION_KEY = "session"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _iso(value: datetime) -> str:
    return _as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class SettingsRecord(_Record):
    location_name: str = Field(DEFAULT_LOCATION_NAME, alias="restroomName")
    require_location_token: bool = Field(True, alias="requireQR")
    allow_manual_identifier: bool = Field(True, alias="allowManualID")


class SessionRecord(_Record):
    id: str = Field(min_length=1)
    name: str
    location_token: Optional[str] = Field(None, alias="qrValue")
    start: datetime

    @field_validator("start")
    @classmethod
    def normalize_start(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @field_serializer("start")
    def serialize_start(self, value: datetime) -> str:
        return _iso(value)


class LogEntryRecord(_Record):
    id: str
    name: str
    start_time: datetime = Field(alias="startISO")
    end_time: datetime = Field(alias="endISO")
    duration_ms: int = Field(alias="durationMs")
    location_name: str = Field(alias="restroom")

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @field_serializer("start_time", "end_time")
    def serialize_time(self, value: datetime) -> str:
        return _iso(value)


class RosterName(_Record):
    name: str = ""


class RosterRecord(RootModel[dict[str, RosterName]]):
    pass


_LOGS_ADAPTER = TypeAdapter(list[LogEntryRecord])


def load_settings(raw: Any) -> StationSettings:
    if raw is None:
        return StationSettings()
    record = _validate(SETTINGS_KEY, SettingsRecord.model_validate, raw)
    return StationSettings(
        location_name=record.location_name,
        require_location_token=record.require_location_token,
        allow_manual_identifier=record.allow_manual_identifier,
    )


def dump_settings(settings: StationSettings) -> dict[str, Any]:
    record = SettingsRecord(
        location_name=settings.location_name,
        require_location_token=settings.require_location_token,
        allow_manual_identifier=settings.allow_manual_identifier,
    )
    return record.model_dump(by_alias=True)


def load_session(raw: Any) -> Optional[Session]:
    if raw is None:
        return None
    record = _validate(SESSION_KEY, SessionRecord.model_validate, raw)
    return Session(
        id=record.id,
        name=record.name,
        location_token=record.location_token,
        start_time=record.start,
    )


def dump_session(session: Optional[Session]) -> Optional[dict[str, Any]]:
    if session is None:
        return None
    record = SessionRecord(
        id=session.id,
        name=session.name,
        location_token=session.location_token,
        start=session.start_time,
    )
    return record.model_dump(by_alias=True)


def load_logs(raw: Any) -> list[LogEntry]:
    if raw is None:
        return []
    records = _validate(LOGS_KEY, _LOGS_ADAPTER.validate_python, raw)
    return [
        LogEntry(
            id=record.id,
            name=record.name,
            start_time=record.start_time,
            end_time=record.end_time,
            duration_ms=record.duration_ms,
            location_name=record.location_name,
        )
        for record in records
    ]


def dump_logs(entries: list[LogEntry]) -> list[dict[str, Any]]:
    return [
        LogEntryRecord(
            id=entry.id,
            name=entry.name,
            start_time=entry.start_time,
            end_time=entry.end_time,
            duration_ms=entry.duration_ms,
            location_name=entry.location_name,
        ).model_dump(by_alias=True)
        for entry in entries
    ]


def load_roster(raw: Any) -> dict[str, str]:
    if raw is None:
        return {}
    record = _validate(ROSTER_KEY, RosterRecord.model_validate, raw)
    return {identifier: entry.name for identifier, entry in record.root.items()}


def dump_roster(entries: dict[str, str]) -> dict[str, dict[str, str]]:
    return {identifier: {"name": name} for identifier, name in entries.items()}


def _validate(key: str, validator: Any, raw: Any) -> Any:
    try:
        return validator(raw)
    except ValidationError as exc:
        raise LoadError(key, f"{exc.error_count()} validation error(s)") from exc
