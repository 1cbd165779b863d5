"""FastAPI application that exposes the hall pass station over a local web UI and API."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict

from .capture import CaptureKind, PushCaptureSource, ScanCoordinator, ScanOutcome, ScanPurpose
from .clock import TICK_INTERVAL, Clock
from .controller import SessionController
from .db import BlobStore, PersistentStore
from .errors import (
    HallPassError,
    PassConflictError,
    PassValidationError,
    RosterImportError,
    ScannerUnavailable,
)
from .ledger import export_filename, format_duration
from .models import LogEntry, Session
from .paths import get_db_path
from .reporting import format_elapsed, status_text
from .roster import ROSTER_FILENAME

logger = logging.getLogger(__name__)

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


class PassRequest(BaseModel):
    identifier: Optional[str] = None
    location_token: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class SettingsUpdate(BaseModel):
    location_name: Optional[str] = None
    require_location_token: Optional[bool] = None
    allow_manual_identifier: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")


class ScanRequest(BaseModel):
    identifier: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class CapturePayload(BaseModel):
    kind: CaptureKind
    value: str

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    db_path: Optional[Path] = None,
    store: Optional[PersistentStore] = None,
    clock: Optional[Clock] = None,
    source: Optional[PushCaptureSource] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    owned_store: Optional[BlobStore] = None
    if store is None:
        owned_store = BlobStore(Path(db_path or get_db_path()))
        store = owned_store
    controller = SessionController(store, clock=clock)
    capture_source = source or PushCaptureSource()
    scanner = ScanCoordinator(controller, capture_source)

    app = FastAPI(title="Hall Pass", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.controller = controller
    app.state.scanner = scanner
    app.state.capture_source = capture_source

    static_dir = Path(__file__).parent / "static"
    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=static_dir), name="static")

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        scanner.deactivate()
        if owned_store is not None:
            owned_store.close()

    @app.exception_handler(HallPassError)
    async def _hall_pass_error(request: Request, exc: HallPassError) -> JSONResponse:
        return JSONResponse(
            status_code=_status_for(exc),
            content={"detail": exc.message, "code": exc.code},
        )

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        return _status_payload(request.app.state.controller, request.app.state.scanner)

    @app.get("/api/settings")
    def get_settings(request: Request) -> Dict[str, Any]:
        return _settings_payload(request.app.state.controller)

    @app.patch("/api/settings")
    def update_settings(payload: SettingsUpdate, request: Request) -> Dict[str, Any]:
        controller: SessionController = request.app.state.controller
        controller.update_settings(**payload.model_dump(exclude_none=True))
        return _settings_payload(controller)

    @app.post("/api/pass/start")
    def start_pass(payload: PassRequest, request: Request) -> Dict[str, Any]:
        session = request.app.state.controller.start(
            payload.identifier, payload.location_token
        )
        return {"session": _session_payload(session)}

    @app.post("/api/pass/end")
    def end_pass(payload: PassRequest, request: Request) -> Dict[str, Any]:
        entry = request.app.state.controller.end(payload.identifier, payload.location_token)
        return {"entry": _entry_payload(0, entry)}

    @app.get("/api/logs")
    def list_logs(request: Request) -> Dict[str, Any]:
        entries = request.app.state.controller.ledger.entries
        return {"entries": [_entry_payload(i, entry) for i, entry in enumerate(entries)]}

    @app.delete("/api/logs/{index}")
    def delete_log(index: int, request: Request) -> Dict[str, Any]:
        try:
            removed = request.app.state.controller.delete_log_entry(index)
        except IndexError as exc:
            raise HTTPException(status_code=404, detail="Log entry not found") from exc
        return {"deleted": _entry_payload(index, removed)}

    @app.get("/api/logs/export")
    def export_logs(request: Request) -> Response:
        body = request.app.state.controller.export_logs()
        return _csv_response(body, export_filename(datetime.now().date()))

    @app.get("/api/roster")
    def list_roster(request: Request) -> Dict[str, Any]:
        roster = request.app.state.controller.roster.as_dict()
        return {
            "entries": [
                {"id": identifier, "name": name}
                for identifier, name in sorted(roster.items())
            ]
        }

    @app.post("/api/roster/import")
    async def import_roster(request: Request) -> Dict[str, Any]:
        raw = await request.body()
        try:
            text = raw.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise HTTPException(status_code=400, detail="Roster must be UTF-8 text") from exc
        count = request.app.state.controller.import_roster(text)
        return {"imported": count}

    @app.get("/api/roster/export")
    def export_roster(request: Request) -> Response:
        return _csv_response(request.app.state.controller.export_roster(), ROSTER_FILENAME)

    @app.delete("/api/roster")
    def clear_roster(request: Request) -> Dict[str, Any]:
        request.app.state.controller.clear_roster()
        return {"cleared": True}

    @app.post("/api/scan/capture")
    def capture(payload: CapturePayload, request: Request) -> Dict[str, Any]:
        outcome = request.app.state.capture_source.push(payload.kind, payload.value)
        response = _scan_payload(request.app.state.scanner)
        response["outcome"] = _outcome_payload(outcome)
        return response

    @app.post("/api/scan/{purpose}")
    def activate_scan(
        purpose: ScanPurpose, request: Request, payload: Optional[ScanRequest] = None
    ) -> Dict[str, Any]:
        identifier = payload.identifier if payload else None
        request.app.state.scanner.activate(purpose, identifier)
        return _scan_payload(request.app.state.scanner)

    @app.delete("/api/scan")
    def deactivate_scan(request: Request) -> Dict[str, Any]:
        request.app.state.scanner.deactivate()
        return _scan_payload(request.app.state.scanner)

    @app.get("/")
    def index(request: Request):
        index_path = (Path(__file__).parent / "static" / "index.html").resolve()
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="UI not found")
        return FileResponse(index_path)

    return app


def _status_for(exc: HallPassError) -> int:
    if isinstance(exc, PassValidationError):
        return 400
    if isinstance(exc, PassConflictError):
        return 409
    if isinstance(exc, RosterImportError):
        return 422
    if isinstance(exc, ScannerUnavailable):
        return 503
    return 500


def _csv_response(body: str, filename: str) -> Response:
    return Response(
        content=body,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _status_payload(controller: SessionController, scanner: ScanCoordinator) -> Dict[str, Any]:
    elapsed = controller.elapsed()
    session = controller.session
    return {
        "occupied": session is not None,
        "status_text": status_text(controller),
        "location_name": controller.settings.location_name,
        "session": _session_payload(session) if session else None,
        "elapsed_ms": None if elapsed is None else int(elapsed.total_seconds() * 1000),
        "elapsed": None if elapsed is None else format_elapsed(elapsed),
        "refresh_ms": int(TICK_INTERVAL.total_seconds() * 1000),
        "settings": _settings_payload(controller),
        "scan": _scan_payload(scanner),
    }


def _settings_payload(controller: SessionController) -> Dict[str, Any]:
    settings = controller.settings
    return {
        "location_name": settings.location_name,
        "require_location_token": settings.require_location_token,
        "allow_manual_identifier": settings.allow_manual_identifier,
    }


def _scan_payload(scanner: ScanCoordinator) -> Dict[str, Any]:
    return {
        "purpose": scanner.purpose.value if scanner.purpose else None,
        "pending_identifier": scanner.pending_identifier,
        "unavailable_reason": scanner.unavailable_reason,
    }


def _session_payload(session: Session) -> Dict[str, Any]:
    return {
        "id": session.id,
        "name": session.name,
        "location_token": session.location_token,
        "start_time": session.start_time.isoformat(),
    }


def _entry_payload(index: int, entry: LogEntry) -> Dict[str, Any]:
    return {
        "index": index,
        "id": entry.id,
        "name": entry.name,
        "location_name": entry.location_name,
        "start_time": entry.start_time.isoformat(),
        "end_time": entry.end_time.isoformat(),
        "duration_ms": entry.duration_ms,
        "duration": format_duration(entry.duration_ms),
    }


def _outcome_payload(outcome: Optional[ScanOutcome]) -> Optional[Dict[str, Any]]:
    if outcome is None:
        return None
    payload: Dict[str, Any] = {
        "purpose": outcome.purpose.value,
        "ok": outcome.ok,
        "error": None,
        "session": None,
        "entry": None,
    }
    if outcome.error is not None:
        payload["error"] = {"detail": outcome.error.message, "code": outcome.error.code}
    elif isinstance(outcome.result, Session):
        payload["session"] = _session_payload(outcome.result)
    elif isinstance(outcome.result, LogEntry):
        payload["entry"] = _entry_payload(0, outcome.result)
    return payload
