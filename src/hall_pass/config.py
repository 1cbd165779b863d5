"""Station settings and helpers to update them."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any

DEFAULT_LOCATION_NAME = "Main Restroom"

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off", ""}


@dataclass(frozen=True, slots=True)
class StationSettings:
    """Configuration for the single pass station."""

    location_name: str = DEFAULT_LOCATION_NAME
    require_location_token: bool = True
    allow_manual_identifier: bool = True

    def updated(self, **changes: Any) -> "StationSettings":
        """Return a copy with ``changes`` merged in.

        Unknown keys raise ``TypeError``. Toggle values are coerced to ``bool``
        so form and query-string inputs ("true", "0", ...) are accepted.
        """
        known = {f.name for f in fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise TypeError(f"Unknown settings: {', '.join(unknown)}")

        values: dict[str, Any] = {}
        for key, value in changes.items():
            if value is None:
                continue
            if key == "location_name":
                values[key] = str(value)
            else:
                values[key] = coerce_bool(value)
        return replace(self, **values)


def coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ValueError(f"Cannot interpret {value!r} as a boolean")
    return bool(value)
