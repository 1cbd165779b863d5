"""Exceptions raised by pass transitions, roster import and persistence."""

from __future__ import annotations


class HallPassError(Exception):
    """Base class for recoverable, user-facing failures."""

    code = "HallPassError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PassValidationError(HallPassError):
    code = "ValidationError"


class MissingIdentifier(PassValidationError):
    code = "MissingIdentifier"

    def __init__(self, message: str = "Enter or scan an ID first.") -> None:
        super().__init__(message)


class MissingLocationToken(PassValidationError):
    code = "MissingLocationToken"

    def __init__(self, message: str = "Scan the posted location QR code.") -> None:
        super().__init__(message)


class PassConflictError(HallPassError):
    code = "ConflictError"


class AlreadyOccupied(PassConflictError):
    code = "AlreadyOccupied"

    def __init__(self, holder_id: str) -> None:
        super().__init__(f"The pass is already in use (ID {holder_id}).")
        self.holder_id = holder_id


class NotOccupied(PassConflictError):
    code = "NotOccupied"

    def __init__(self) -> None:
        super().__init__("There is no active pass to end.")


class IdentifierMismatch(PassConflictError):
    code = "IdentifierMismatch"

    def __init__(self) -> None:
        super().__init__("ID does not match the active pass.")


class LocationMismatch(PassConflictError):
    code = "LocationMismatch"

    def __init__(self) -> None:
        super().__init__("This QR doesn't match the one used to start the pass.")


class RosterImportError(HallPassError):
    code = "ImportError"


class MissingColumns(RosterImportError):
    code = "MissingColumns"

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            "CSV must have 'id' and 'name' columns (missing: " + ", ".join(missing) + ")."
        )
        self.missing = missing


class MalformedRoster(RosterImportError):
    """The roster text could not be parsed as CSV."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Roster CSV could not be read: {reason}")


class LoadError(HallPassError):
    """A persisted blob failed validation."""

    code = "LoadError"

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Stored {key!r} data is invalid: {reason}")
        self.key = key


class ScannerUnavailable(HallPassError):
    """The capture device is missing or access was denied."""

    code = "ScannerUnavailable"

    def __init__(self, reason: str = "Camera not available or blocked.") -> None:
        super().__init__(reason)
