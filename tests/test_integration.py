from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from tm_scheduler.data import tms_repository
from tm_scheduler.main import create_app
from tm_scheduler.models.domain import TransitMixer

FLEET = tuple(
    TransitMixer(id=f"TM-{i}", identifier=f"TM-{i}", capacity=6, plant_id="P1", plant_name="North Plant")
    for i in range(1, 6)
) + (TransitMixer(id="TM-9", identifier="TM-9", capacity=9, status="inactive"),)

PAYLOAD = {
    "client_id": "C-100",
    "client_name": "Skyline Builders",
    "input_params": {
        "quantity": 30,
        "pumping_speed": 30,
        "onward_time": 30,
        "return_time": 30,
        "buffer_time": 10,
        "schedule_date": "2026-03-02",
        "pump_start": "2026-03-02T08:00:00",
    },
}


@pytest.fixture
def api_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    app = create_app()
    client = TestClient(app)

    # keep documents and exports under tmpdir and use an in-memory fleet
    from tm_scheduler.services.scheduling import service as schedule_service
    from tm_scheduler.persistence.filesystem import FileStorage

    monkeypatch.setattr(schedule_service, "FileStorage", lambda: FileStorage(root=tmp_path))
    monkeypatch.setattr(schedule_service, "get_supabase_client", lambda: None)
    monkeypatch.setattr(schedule_service, "get_transit_mixers", lambda: FLEET)
    monkeypatch.setattr(tms_repository, "get_transit_mixers", lambda source=None: FLEET)

    return client


def _create_draft(client: TestClient) -> str:
    response = client.post("/api/schedules/calculate-tm", json=PAYLOAD)
    assert response.status_code == 200
    return response.json()["schedule_id"]


def test_health(api_client: TestClient) -> None:
    assert api_client.get("/api/health").json() == {"status": "ok"}


def test_list_transit_mixers(api_client: TestClient) -> None:
    response = api_client.get("/api/tms", params={"active_only": True})

    assert response.status_code == 200
    assert [item["identifier"] for item in response.json()] == ["TM-1", "TM-2", "TM-3", "TM-4", "TM-5"]

    average = api_client.get("/api/tms/average-capacity").json()
    assert average == {"average_capacity": 6.0, "active_count": 5}


def test_calculate_then_generate(api_client: TestClient) -> None:
    response = api_client.post("/api/schedules/calculate-tm", json=PAYLOAD)

    assert response.status_code == 200
    payload = response.json()
    assert payload["tm_count"] == 5
    assert payload["total_trips"] == 5
    assert len(payload["available_tms"]) == 5

    schedule_id = payload["schedule_id"]
    trips = api_client.post(
        f"/api/schedules/{schedule_id}/generate-schedule",
        json=["TM-1", "TM-2", "TM-3", "TM-4", "TM-5"],
    )

    assert trips.status_code == 200
    rows = trips.json()
    assert len(rows) == 5
    assert rows[0]["plant_start"].startswith("2026-03-02T07:30:00")
    assert rows[0]["return"].startswith("2026-03-02T08:42:00")
    assert rows[-1]["completed_capacity"] == 30

    schedule = api_client.get(f"/api/schedules/{schedule_id}").json()
    assert schedule["status"] == "generated"
    assert schedule["tm_overrule"] is None
    assert len(schedule["output_table"]) == 5


def test_invalid_quantity_is_bad_request(api_client: TestClient) -> None:
    payload = {**PAYLOAD, "input_params": {**PAYLOAD["input_params"], "quantity": 0}}

    response = api_client.post("/api/schedules/calculate-tm", json=payload)

    assert response.status_code == 400
    assert api_client.get("/api/schedules").json() == []


def test_empty_selection_is_bad_request(api_client: TestClient) -> None:
    schedule_id = _create_draft(api_client)

    response = api_client.post(f"/api/schedules/{schedule_id}/generate-schedule", json=[])

    assert response.status_code == 400


def test_unknown_schedule_is_not_found(api_client: TestClient) -> None:
    assert api_client.get("/api/schedules/nope").status_code == 404
    assert api_client.post("/api/schedules/nope/generate-schedule", json=["TM-1"]).status_code == 404


def test_conflicting_generation_is_conflict(api_client: TestClient) -> None:
    first = _create_draft(api_client)
    second = _create_draft(api_client)
    assert api_client.post(f"/api/schedules/{first}/generate-schedule", json=["TM-1"]).status_code == 200

    response = api_client.post(f"/api/schedules/{second}/generate-schedule", json=["TM-1", "TM-2"])

    assert response.status_code == 409
    assert response.json()["detail"]["conflicts"][0]["tm_id"] == "TM-1"


def test_cancel_and_status_transitions(api_client: TestClient) -> None:
    schedule_id = _create_draft(api_client)

    bad = api_client.patch(f"/api/schedules/{schedule_id}/status", json={"status": "completed"})
    assert bad.status_code == 409

    cancelled = api_client.post(
        f"/api/schedules/{schedule_id}/cancel",
        json={"canceled_by": "dispatcher", "reason": "Pump breakdown"},
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"
    assert cancelled.json()["cancelation"]["reason"] == "Pump breakdown"

    again = api_client.post(f"/api/schedules/{schedule_id}/generate-schedule", json=["TM-1"])
    assert again.status_code == 409


def test_delete_permanently(api_client: TestClient) -> None:
    schedule_id = _create_draft(api_client)

    response = api_client.delete(f"/api/schedules/{schedule_id}", params={"delete_type": "permanently"})

    assert response.status_code == 200
    assert response.json()["deleted"] is True
    assert api_client.get(f"/api/schedules/{schedule_id}").status_code == 404


def test_export_csv_and_xlsx(api_client: TestClient) -> None:
    schedule_id = _create_draft(api_client)
    api_client.post(f"/api/schedules/{schedule_id}/generate-schedule", json=["TM-1", "TM-2", "TM-3", "TM-4", "TM-5"])

    csv_response = api_client.get(f"/api/schedules/{schedule_id}/export", params={"format": "csv"})
    assert csv_response.status_code == 200
    assert csv_response.text.splitlines()[0].startswith("Trip No,TM No,Plant Start")

    xlsx_response = api_client.get(f"/api/schedules/{schedule_id}/export", params={"format": "xlsx"})
    assert xlsx_response.status_code == 200
    assert xlsx_response.content[:2] == b"PK"


def test_utilization_endpoint(api_client: TestClient) -> None:
    schedule_id = _create_draft(api_client)
    api_client.post(f"/api/schedules/{schedule_id}/generate-schedule", json=["TM-1", "TM-2", "TM-3", "TM-4", "TM-5"])

    response = api_client.get("/api/schedules/utilization", params={"date": "2026-03-02"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["day"] == "2026-03-02"
    assert len(payload["hours"]) == 24
    assert payload["hours"][8] == 5
