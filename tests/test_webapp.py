"""Tests for the HTTP API exposed to the station UI."""

import pytest
from fastapi.testclient import TestClient

from hall_pass.capture import PushCaptureSource
from hall_pass.webapp import create_app

from tests.conftest import FakeClock, MemoryStore


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client(clock: FakeClock) -> TestClient:
    return TestClient(create_app(store=MemoryStore(), clock=clock))


class TestPassEndpoints:
    def test_status_when_available(self, client: TestClient) -> None:
        body = client.get("/api/status").json()
        assert body["occupied"] is False
        assert body["status_text"] == "AVAILABLE"
        assert body["refresh_ms"] == 500
        assert body["settings"]["require_location_token"] is True

    def test_start_and_end(self, client: TestClient, clock: FakeClock) -> None:
        response = client.post(
            "/api/pass/start", json={"identifier": "1001", "location_token": "QR-A"}
        )
        assert response.status_code == 200
        assert response.json()["session"]["name"] == "Unknown"

        clock.advance(seconds=75)
        status = client.get("/api/status").json()
        assert status["occupied"] is True
        assert status["elapsed"] == "01:15"
        assert status["status_text"] == "OCCUPIED • 01:15"

        response = client.post(
            "/api/pass/end", json={"identifier": "1001", "location_token": "QR-A"}
        )
        assert response.status_code == 200
        assert response.json()["entry"]["duration"] == "01:15"
        assert len(client.get("/api/logs").json()["entries"]) == 1

    def test_validation_error_is_400(self, client: TestClient) -> None:
        response = client.post("/api/pass/start", json={"identifier": "1001"})
        assert response.status_code == 400
        assert response.json()["code"] == "MissingLocationToken"

    def test_conflicts_are_409(self, client: TestClient) -> None:
        client.post("/api/pass/start", json={"identifier": "A", "location_token": "QR-A"})
        response = client.post(
            "/api/pass/end", json={"identifier": "B", "location_token": "QR-A"}
        )
        assert response.status_code == 409
        assert response.json() == {
            "detail": "ID does not match the active pass.",
            "code": "IdentifierMismatch",
        }
        response = client.post(
            "/api/pass/end", json={"identifier": "A", "location_token": "QR-B"}
        )
        assert response.json()["code"] == "LocationMismatch"

    def test_unknown_fields_rejected(self, client: TestClient) -> None:
        response = client.post("/api/pass/start", json={"id": "1001"})
        assert response.status_code == 422


class TestLogsEndpoints:
    def _complete(self, client: TestClient, identifier: str) -> None:
        client.post("/api/pass/start", json={"identifier": identifier, "location_token": "Q"})
        client.post("/api/pass/end", json={"identifier": identifier, "location_token": "Q"})

    def test_delete_log(self, client: TestClient) -> None:
        self._complete(client, "1")
        self._complete(client, "2")
        response = client.delete("/api/logs/0")
        assert response.json()["deleted"]["id"] == "2"
        entries = client.get("/api/logs").json()["entries"]
        assert [entry["id"] for entry in entries] == ["1"]

    def test_delete_missing_log_is_404(self, client: TestClient) -> None:
        assert client.delete("/api/logs/3").status_code == 404

    def test_export_logs(self, client: TestClient) -> None:
        self._complete(client, "1001")
        response = client.get("/api/logs/export")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "hallpass_logs_" in response.headers["content-disposition"]
        assert response.text.startswith("Restroom,ID,Name,Start,End,Duration (mm:ss)\n")
        assert "Main Restroom,1001,Unknown," in response.text


class TestSettingsAndRoster:
    def test_update_settings(self, client: TestClient) -> None:
        response = client.patch(
            "/api/settings", json={"location_name": "Gym", "require_location_token": False}
        )
        assert response.json() == {
            "location_name": "Gym",
            "require_location_token": False,
            "allow_manual_identifier": True,
        }
        response = client.post("/api/pass/start", json={"identifier": "1001"})
        assert response.status_code == 200

    def test_roster_import_export_clear(self, client: TestClient) -> None:
        response = client.post(
            "/api/roster/import",
            content="id,name\n1001,Alice\n1002,Bob\n1001,Alicia\n".encode("utf-8"),
            headers={"Content-Type": "text/csv"},
        )
        assert response.json() == {"imported": 2}
        assert client.get("/api/roster").json()["entries"] == [
            {"id": "1001", "name": "Alicia"},
            {"id": "1002", "name": "Bob"},
        ]
        exported = client.get("/api/roster/export")
        assert "roster_template.csv" in exported.headers["content-disposition"]
        assert exported.text.splitlines()[0] == "id,name"

        client.delete("/api/roster")
        assert client.get("/api/roster").json()["entries"] == []

    def test_bad_roster_header_is_422(self, client: TestClient) -> None:
        client.post("/api/roster/import", content=b"id,name\n1,Ann\n")
        response = client.post("/api/roster/import", content=b"student,label\n1,Ann\n")
        assert response.status_code == 422
        assert response.json()["code"] == "MissingColumns"
        assert client.get("/api/roster").json()["entries"] == [{"id": "1", "name": "Ann"}]


    def test_malformed_roster_is_422(self, client: TestClient) -> None:
        client.post("/api/roster/import", content=b"id,name\n1,Ann\n")
        body = ("id,name\n1001," + "A" * 200_000).encode("utf-8")
        response = client.post("/api/roster/import", content=body)
        assert response.status_code == 422
        assert response.json()["code"] == "ImportError"
        assert client.get("/api/roster").json()["entries"] == [{"id": "1", "name": "Ann"}]


class TestScanEndpoints:
    def test_scan_start_flow(self, client: TestClient) -> None:
        response = client.post("/api/scan/start", json={"identifier": "1001"})
        assert response.json()["purpose"] == "start"

        response = client.post("/api/scan/capture", json={"kind": "location", "value": "QR-A"})
        body = response.json()
        assert body["purpose"] is None
        assert body["outcome"]["ok"] is True
        assert body["outcome"]["session"]["id"] == "1001"

    def test_capture_without_identifier_reports_error(self, client: TestClient) -> None:
        client.post("/api/scan/start")
        body = client.post(
            "/api/scan/capture", json={"kind": "location", "value": "QR-A"}
        ).json()
        assert body["outcome"]["error"]["code"] == "MissingIdentifier"
        assert body["purpose"] == "start"

    def test_deactivate(self, client: TestClient) -> None:
        client.post("/api/scan/end", json={"identifier": "1001"})
        assert client.delete("/api/scan").json()["purpose"] is None

    def test_unknown_purpose(self, client: TestClient) -> None:
        assert client.post("/api/scan/sideways").status_code == 422

    def test_unavailable_scanner_is_503(self) -> None:
        app = create_app(store=MemoryStore(), source=PushCaptureSource(available=False))
        client = TestClient(app)
        response = client.post("/api/scan/start", json={"identifier": "1001"})
        assert response.status_code == 503
        status = client.get("/api/status").json()
        assert status["scan"]["unavailable_reason"] == "Camera not available or blocked."
