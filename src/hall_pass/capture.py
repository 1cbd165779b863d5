"""Scan sessions that feed decoded identifiers and location tokens to the controller."""

from __future__ import annotations

import enum
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Protocol, Union

from .controller import SessionController
from .errors import HallPassError, MissingIdentifier, ScannerUnavailable
from .models import LogEntry, Session
from .normalization import normalize_scan_value

logger = logging.getLogger(__name__)


class ScanPurpose(str, enum.Enum):
    START = "start"
    END = "end"


class CaptureKind(str, enum.Enum):
    IDENTIFIER = "identifier"
    LOCATION = "location"


@dataclass(slots=True)
class ScanOutcome:
    """Result of a decoded location token applied to the controller."""

    purpose: ScanPurpose
    identifier: Optional[str]
    result: Union[Session, LogEntry, None] = None
    error: Optional[HallPassError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


CaptureListener = Callable[[CaptureKind, str], Optional[ScanOutcome]]


class CaptureSource(Protocol):
    """A decoder that emits strings while a listener is attached.

    ``attach`` acquires the device (raising ``ScannerUnavailable`` when it
    cannot); ``release`` must free it and stop emitting.
    """

    def attach(self, listener: CaptureListener) -> None: ...

    def release(self) -> None: ...


class PushCaptureSource:
    """Capture source fed by an external decoder such as a browser camera or keyboard wedge."""

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self._listener: Optional[CaptureListener] = None

    @property
    def is_attached(self) -> bool:
        return self._listener is not None

    def attach(self, listener: CaptureListener) -> None:
        if not self.available:
            raise ScannerUnavailable()
        self._listener = listener

    def release(self) -> None:
        self._listener = None

    def push(self, kind: CaptureKind, value: str) -> Optional[ScanOutcome]:
        listener = self._listener
        if listener is None:
            logger.debug("Dropping %s capture; no scan is active.", kind.value)
            return None
        return listener(kind, value)


class ScanCoordinator:
    """Tracks the active scan purpose and guarantees the device is released.

    Only one purpose is active at a time; activating a different purpose
    releases the previous one first. Activation, release and decoded events
    are serialized across threads.
    """

    def __init__(self, controller: SessionController, source: CaptureSource) -> None:
        self._controller = controller
        self._source = source
        self._lock = threading.RLock()
        self._purpose: Optional[ScanPurpose] = None
        self._pending_identifier: Optional[str] = None
        self.unavailable_reason: Optional[str] = None
        self.last_outcome: Optional[ScanOutcome] = None

    @property
    def purpose(self) -> Optional[ScanPurpose]:
        return self._purpose

    @property
    def pending_identifier(self) -> Optional[str]:
        return self._pending_identifier

    def activate(self, purpose: ScanPurpose, identifier: Optional[str] = None) -> None:
        identifier = normalize_scan_value(identifier)
        with self._lock:
            if self._purpose is purpose:
                if identifier is not None:
                    self._pending_identifier = identifier
                return
            self.deactivate()
            try:
                self._source.attach(self._on_capture)
            except ScannerUnavailable as exc:
                self.unavailable_reason = exc.message
                logger.warning("Scanner unavailable: %s", exc.message)
                raise
            self.unavailable_reason = None
            self._purpose = purpose
            self._pending_identifier = identifier
        logger.debug("Scan activated for %s.", purpose.value)

    def deactivate(self) -> None:
        with self._lock:
            purpose = self._purpose
            if purpose is None:
                return
            try:
                self._source.release()
            finally:
                self._purpose = None
                self._pending_identifier = None
        logger.debug("Scan for %s deactivated.", purpose.value)

    @contextmanager
    def scanning(
        self, purpose: ScanPurpose, identifier: Optional[str] = None
    ) -> Iterator["ScanCoordinator"]:
        self.activate(purpose, identifier)
        try:
            yield self
        finally:
            self.deactivate()

    def _on_capture(self, kind: CaptureKind, value: str) -> Optional[ScanOutcome]:
        with self._lock:
            purpose = self._purpose
            if purpose is None:
                return None
            if kind is CaptureKind.IDENTIFIER:
                self._pending_identifier = normalize_scan_value(value)
                logger.debug("Captured identifier for %s scan.", purpose.value)
                return None

            identifier = self._pending_identifier
            outcome = ScanOutcome(purpose=purpose, identifier=identifier)
            if identifier is None:
                # Keep scanning until an identifier is supplied.
                outcome.error = MissingIdentifier()
                self.last_outcome = outcome
                return outcome
            try:
                if purpose is ScanPurpose.START:
                    outcome.result = self._controller.start(identifier, value)
                else:
                    outcome.result = self._controller.end(identifier, value)
            except HallPassError as exc:
                outcome.error = exc
            finally:
                self.deactivate()
            self.last_outcome = outcome
            return outcome
