import csv
import io

import pytest
from fastapi.testclient import TestClient

from src.dayroute.data.schedule_normalizer import normalize_records
from src.dayroute.main import create_app
from src.dayroute.models.domain import ScheduleDay
from src.dayroute.services.routing.models import ExternalTravelData
from src.dayroute.services.routing.service import SupersededRunError

APPOINTMENTS = [
    {
        "id": "a",
        "appointmentStart": "2025-03-04T09:00:00Z",
        "appointmentEnd": "2025-03-04T09:30:00Z",
        "lat": 40.0,
        "lon": -73.0,
        "clientName": "Smith",
        "patientName": "Rex",
    },
    {
        "id": "b",
        "appointmentStart": "2025-03-04T09:30:00Z",
        "appointmentEnd": "2025-03-04T10:00:00Z",
        "lat": 40.0,
        "lon": -73.0,
        "clientName": "Smith",
        "patientName": "Tom",
    },
    {
        "id": "c",
        "appointmentStart": "2025-03-04T11:00:00Z",
        "appointmentEnd": "2025-03-04T11:45:00Z",
        "clientName": "Jones",
        "isNoLocation": True,
    },
]


@pytest.fixture
def api_client() -> TestClient:
    return TestClient(create_app())


def test_root_and_health(api_client: TestClient):
    assert api_client.get("/").json()["status"] == "running"
    assert api_client.get("/api/health").json() == {"status": "ok"}


def test_provider_health_reports_unconfigured_services(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    from src.dayroute.config import settings

    for attribute in ("schedule_base_url", "travel_base_url", "geocoder_base_url"):
        monkeypatch.setattr(settings, attribute, None)

    payload = api_client.get("/api/health/providers").json()

    assert set(payload["providers"]) == {"schedule", "travel", "geocoder"}
    assert all(not item["configured"] for item in payload["providers"].values())


def test_compute_endpoint_groups_households(api_client: TestClient):
    response = api_client.post(
        "/api/day-route/compute",
        json={
            "date": "2025-03-04",
            "appointments": APPOINTMENTS,
            "start_depot": {"lat": 39.95, "lon": -73.0, "label": "Clinic"},
            "travel": {"drive_seconds": [900, 0]},
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert [stop["key"] for stop in payload["stops"]] == ["40.000000,-73.000000", "noloc:c"]
    first = payload["stops"][0]
    assert [patient["name"] for patient in first["patients"]] == ["Rex", "Tom"]
    assert first["scheduled_end"] == "2025-03-04T10:00:00+00:00"
    assert payload["stops"][1]["is_no_location"] is True
    assert payload["legs"]["to_first_sec"] == 900
    assert payload["legs"]["between_sources"] == ["no_location"]
    assert payload["stats"]["points"] == 3.0
    assert payload["start_depot"]["label"] == "Clinic"
    assert payload["travel_status"] == "provider"


def test_preview_endpoint_marks_the_what_if_stop(api_client: TestClient):
    response = api_client.post(
        "/api/day-route/preview",
        json={
            "appointments": APPOINTMENTS[:2],
            "preview": {"suggested_start": "2025-03-04T13:00:00Z", "service_minutes": 30, "lat": 40.3, "lon": -73.1},
        },
    )

    assert response.status_code == 200
    stops = response.json()["stops"]
    assert [stop["is_preview"] for stop in stops] == [False, True]
    assert stops[1]["scheduled_end"] == "2025-03-04T13:30:00+00:00"


def test_preview_with_bad_start_is_a_bad_request(api_client: TestClient):
    response = api_client.post(
        "/api/day-route/preview",
        json={"appointments": APPOINTMENTS, "preview": {"suggested_start": "later today"}},
    )

    assert response.status_code == 400


def test_export_endpoint_returns_csv(api_client: TestClient):
    response = api_client.post("/api/day-route/export", json={"date": "2025-03-04", "appointments": APPOINTMENTS})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="day-route-2025-03-04.csv"' in response.headers["content-disposition"]
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert [row["household_key"] for row in rows] == ["40.000000,-73.000000", "noloc:c"]
    assert rows[0]["patients"] == "Rex; Tom"


def test_export_rounds_drive_minutes_half_away_from_zero(api_client: TestClient):
    response = api_client.post(
        "/api/day-route/export",
        json={
            "date": "2025-03-04",
            "appointments": APPOINTMENTS,
            "start_depot": {"lat": 39.95, "lon": -73.0},
            "travel": {"drive_seconds": [75, 0]},
        },
    )

    assert response.status_code == 200
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert rows[0]["drive_from_prev_min"] == "1.3"


def test_fetch_endpoint_uses_collaborators(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    from src.dayroute.api.routes import day_route as day_route_routes
    from src.dayroute.services.routing import service as day_route_service

    class DummySchedule:
        def fetch_day(self, date, doctor_id=None):
            return ScheduleDay(date=date, records=normalize_records(APPOINTMENTS), provider_id=doctor_id)

    class DummyTravel:
        def fetch_etas(self, **kwargs):
            return ExternalTravelData(eta_by_key={"40.000000,-73.000000": "2025-03-04T09:05:00Z"})

    def _build(date, doctor_id=None, *, session_id=None):
        return day_route_service.build_day_route(
            date,
            doctor_id,
            session_id=session_id,
            schedule_client_factory=DummySchedule,
            travel_client_factory=DummyTravel,
            geocoder_factory=lambda: None,
        )

    monkeypatch.setattr(day_route_routes, "build_day_route", _build)

    response = api_client.get("/api/day-route", params={"date": "2025-03-04", "doctor_id": "DR-1"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["date"] == "2025-03-04"
    assert payload["stops"][0]["eta"] == "2025-03-04T09:05:00+00:00"
    assert payload["stops"][0]["eta_source"] == "provider"


@pytest.mark.parametrize(
    ("error", "expected_status"),
    [
        (ConnectionError("schedule provider down"), 502),
        (ValueError("bad date"), 400),
        (SupersededRunError("newer request"), 409),
        (RuntimeError("boom"), 500),
    ],
)
def test_fetch_endpoint_error_mapping(api_client: TestClient, monkeypatch: pytest.MonkeyPatch, error, expected_status):
    from src.dayroute.api.routes import day_route as day_route_routes

    def _fail(*args, **kwargs):
        raise error

    monkeypatch.setattr(day_route_routes, "build_day_route", _fail)

    response = api_client.get("/api/day-route", params={"date": "2025-03-04"})

    assert response.status_code == expected_status
