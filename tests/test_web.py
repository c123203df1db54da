#!/usr/bin/env python3
"""Tests for the Flask JSON API."""

import base64
import io
import json
from datetime import date

import pytest

from fleetpro import AdvisoryError, Fleet, InMemoryFleetStore, PersistenceError
from fleetpro.config import Settings
from web.app import create_app

VEHICLE = {
    "vehicleNumber": "M01",
    "brand": "Iveco",
    "model": "Daily",
    "licensePlate": "AB123CD",
    "type": "ROAD",
    "currentUsage": 9500,
    "maintenanceFrequency": 10000,
    "maintenanceIntervalMonths": 12,
    "registrationDate": "2024-06-01",
    "purchaseDate": "2024-06-01",
}


class FakeAdvisor:
    def __init__(self, error=None):
        self.error = error
        self.queries = []
        self.images = []

    def advise(self, vehicles, query):
        if self.error:
            raise self.error
        self.queries.append((vehicles, query))
        return f"{len(vehicles)} vehicles checked"

    def analyze_image(self, image, mime_type="image/jpeg"):
        if self.error:
            raise self.error
        self.images.append((image, mime_type))
        return {"brand": "Iveco", "model": "Daily"}


class FailingStore(InMemoryFleetStore):
    def save(self, vehicles):
        raise PersistenceError("disk full")


@pytest.fixture
def advisor():
    return FakeAdvisor()


@pytest.fixture
def store():
    return InMemoryFleetStore()


@pytest.fixture
def client(store, advisor):
    app = create_app(fleet=Fleet.load(store), advisor=advisor, settings=Settings())
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def vehicle_id(client):
    response = client.post("/vehicles", json=VEHICLE)
    assert response.status_code == 201
    return response.get_json()["id"]


class TestVehicles:
    """Tests for the vehicle CRUD routes."""

    def test_add_returns_vehicle_with_status(self, client, store):
        response = client.post("/vehicles", json=VEHICLE)
        assert response.status_code == 201
        data = response.get_json()
        assert data["id"]
        assert data["unit"] == "km"
        assert data["maintenanceHistory"] == []
        assert data["dueStatus"]["nextServiceUsage"] == 10000
        assert store.saves == 1

    def test_list(self, client, vehicle_id):
        data = client.get("/vehicles?asOf=2025-02-15").get_json()
        assert [v["id"] for v in data["vehicles"]] == [vehicle_id]
        assert data["vehicles"][0]["dueStatus"]["reason"] == "USAGE"

    def test_get(self, client, vehicle_id):
        data = client.get(f"/vehicles/{vehicle_id}").get_json()
        assert data["vehicleNumber"] == "M01"
        assert data["licensePlate"] == "AB123CD"

    def test_get_unknown(self, client):
        response = client.get("/vehicles/nope")
        assert response.status_code == 404
        assert response.get_json()["error"] == "not_found"

    def test_add_missing_field(self, client):
        body = dict(VEHICLE)
        del body["brand"]
        response = client.post("/vehicles", json=body)
        assert response.status_code == 400
        assert response.get_json()["error"] == "invalid_input"

    def test_add_unknown_type(self, client):
        response = client.post("/vehicles", json=dict(VEHICLE, type="TRUCK"))
        assert response.status_code == 400

    def test_add_non_positive_frequency(self, client):
        response = client.post("/vehicles", json=dict(VEHICLE, maintenanceFrequency=0))
        assert response.status_code == 400

    def test_add_non_text_fields_rejected(self, client, store):
        response = client.post("/vehicles", json=dict(VEHICLE, vehicleNumber=12, brand=None))
        assert response.status_code == 400
        assert response.get_json()["error"] == "invalid_input"
        assert store.saves == 0
        assert client.get("/vehicles").get_json()["vehicles"] == []

    def test_add_nan_usage_rejected(self, client, store):
        body = json.dumps(dict(VEHICLE, currentUsage=float("nan")))
        assert "NaN" in body
        response = client.post("/vehicles", data=body, content_type="application/json")
        assert response.status_code == 400
        assert store.saves == 0

    def test_add_not_json(self, client):
        response = client.post("/vehicles", data="vehicle", content_type="text/plain")
        assert response.status_code == 400

    def test_add_duplicate_id(self, client, vehicle_id):
        response = client.post("/vehicles", json=dict(VEHICLE, id=vehicle_id))
        assert response.status_code == 409

    def test_update(self, client, vehicle_id):
        response = client.put(f"/vehicles/{vehicle_id}", json=dict(VEHICLE, brand="Fiat"))
        assert response.status_code == 200
        assert client.get(f"/vehicles/{vehicle_id}").get_json()["brand"] == "Fiat"

    def test_update_unknown(self, client):
        assert client.put("/vehicles/nope", json=VEHICLE).status_code == 404

    def test_delete(self, client, vehicle_id):
        assert client.delete(f"/vehicles/{vehicle_id}").status_code == 204
        assert client.get(f"/vehicles/{vehicle_id}").status_code == 404

    def test_delete_unknown(self, client):
        assert client.delete("/vehicles/nope").status_code == 404

    def test_save_failure(self, advisor):
        app = create_app(fleet=Fleet(FailingStore()), advisor=advisor, settings=Settings())
        client = app.test_client()
        response = client.post("/vehicles", json=VEHICLE)
        assert response.status_code == 500
        assert response.get_json()["error"] == "persistence_failed"
        assert client.get("/vehicles").get_json()["vehicles"] == []


class TestUsage:
    """Tests for POST /vehicles/<id>/usage."""

    def test_increase(self, client, vehicle_id):
        response = client.post(f"/vehicles/{vehicle_id}/usage", json={"currentUsage": 9800})
        assert response.status_code == 200
        assert response.get_json()["currentUsage"] == 9800

    def test_decrease_rejected(self, client, vehicle_id):
        response = client.post(f"/vehicles/{vehicle_id}/usage", json={"currentUsage": 100})
        assert response.status_code == 400
        assert client.get(f"/vehicles/{vehicle_id}").get_json()["currentUsage"] == 9500

    def test_decrease_allowed(self, client, vehicle_id):
        response = client.post(
            f"/vehicles/{vehicle_id}/usage",
            json={"currentUsage": 100, "allowDecrease": True},
        )
        assert response.status_code == 200
        assert response.get_json()["currentUsage"] == 100

    def test_not_a_number(self, client, vehicle_id):
        response = client.post(f"/vehicles/{vehicle_id}/usage", json={"currentUsage": "lots"})
        assert response.status_code == 400

    def test_nan_rejected(self, client, vehicle_id):
        response = client.post(
            f"/vehicles/{vehicle_id}/usage",
            data='{"currentUsage": NaN, "allowDecrease": true}',
            content_type="application/json",
        )
        assert response.status_code == 400
        assert client.get(f"/vehicles/{vehicle_id}").get_json()["currentUsage"] == 9500

    def test_unknown_vehicle(self, client):
        response = client.post("/vehicles/nope/usage", json={"currentUsage": 10})
        assert response.status_code == 404


class TestMaintenance:
    """Tests for the maintenance history routes."""

    def test_add_record(self, client, vehicle_id):
        response = client.post(
            f"/vehicles/{vehicle_id}/maintenance",
            json={"date": date.today().isoformat(), "usageValue": 9600, "oilChange": True},
        )
        assert response.status_code == 201
        data = response.get_json()
        assert data["currentUsage"] == 9600
        assert data["maintenanceHistory"][0]["oilChange"] is True
        assert data["maintenanceHistory"][0]["type"] == "PROGRAMMATA"
        assert data["dueStatus"]["overdue"] is False

    def test_history_most_recent_first(self, client, vehicle_id):
        url = f"/vehicles/{vehicle_id}/maintenance"
        client.post(url, json={"date": "2025-01-10", "usageValue": 9500})
        client.post(
            url, json={"date": "2025-02-10", "usageValue": 9700, "type": "STRAORDINARIA"}
        )
        data = client.get(url).get_json()
        assert data["unit"] == "km"
        assert [r["usageValue"] for r in data["maintenanceHistory"]] == [9700, 9500]

    def test_date_defaults_to_today(self, client, vehicle_id):
        response = client.post(
            f"/vehicles/{vehicle_id}/maintenance", json={"usageValue": 9600}
        )
        assert response.status_code == 201
        assert response.get_json()["maintenanceHistory"][0]["date"]

    def test_unknown_vehicle(self, client):
        response = client.post(
            "/vehicles/nope/maintenance", json={"date": "2025-02-10", "usageValue": 10}
        )
        assert response.status_code == 404

    def test_missing_usage(self, client, vehicle_id):
        response = client.post(
            f"/vehicles/{vehicle_id}/maintenance", json={"date": "2025-02-10"}
        )
        assert response.status_code == 400

    def test_usage_below_current_rejected(self, client, vehicle_id):
        response = client.post(
            f"/vehicles/{vehicle_id}/maintenance",
            json={"date": "2025-02-10", "usageValue": 10},
        )
        assert response.status_code == 400


class TestDashboard:
    """Tests for GET /."""

    def test_empty_fleet(self, client):
        data = client.get("/").get_json()
        assert data["stats"] == {
            "total": 0,
            "road": 0,
            "construction": 0,
            "overdue": 0,
            "compliancePercent": 0,
        }
        assert data["overdue"] == []

    def test_overdue_sorted_inspection_first(self, client):
        client.post("/vehicles", json=dict(VEHICLE, vehicleNumber="A01"))
        client.post(
            "/vehicles",
            json=dict(
                VEHICLE,
                vehicleNumber="B01",
                currentUsage=0,
                lastInspectionDate="2023-01-01",
                inspectionIntervalMonths=24,
            ),
        )
        client.post(
            "/vehicles",
            json=dict(VEHICLE, vehicleNumber="C01", type="CONSTRUCTION", currentUsage=10),
        )
        data = client.get("/?asOf=2025-02-15").get_json()
        assert data["stats"]["total"] == 3
        assert data["stats"]["road"] == 2
        assert data["stats"]["construction"] == 1
        assert data["stats"]["overdue"] == 2
        assert [v["vehicleNumber"] for v in data["overdue"]] == ["B01", "A01"]
        assert data["overdue"][0]["dueStatus"]["reason"] == "INSPECTION"

    def test_invalid_as_of(self, client):
        assert client.get("/?asOf=yesterday").status_code == 400


class TestAdvisory:
    """Tests for the advisory routes."""

    def test_advice(self, client, advisor, vehicle_id):
        response = client.post("/advice", json={"query": "What is urgent?"})
        assert response.status_code == 200
        assert response.get_json() == {"answer": "1 vehicles checked"}
        assert advisor.queries[0][1] == "What is urgent?"

    def test_advice_empty_query(self, client):
        assert client.post("/advice", json={"query": "  "}).status_code == 400

    def test_advice_unavailable(self, store):
        advisor = FakeAdvisor(error=AdvisoryError("timeout"))
        app = create_app(fleet=Fleet.load(store), advisor=advisor, settings=Settings())
        response = app.test_client().post("/advice", json={"query": "?"})
        assert response.status_code == 502
        assert response.get_json()["error"] == "advisory_failed"

    def test_analyze_upload(self, client, advisor):
        response = client.post(
            "/analyze-image",
            data={"image": (io.BytesIO(b"\xff\xd8jpeg"), "truck.jpg")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 200
        assert response.get_json() == {"brand": "Iveco", "model": "Daily"}
        assert advisor.images[0][0] == b"\xff\xd8jpeg"

    def test_analyze_base64(self, client, advisor):
        encoded = base64.b64encode(b"png-bytes").decode("ascii")
        response = client.post(
            "/analyze-image", json={"image": encoded, "mimeType": "image/png"}
        )
        assert response.status_code == 200
        assert advisor.images[0] == (b"png-bytes", "image/png")

    def test_analyze_data_uri(self, client, advisor):
        encoded = base64.b64encode(b"jpeg-bytes").decode("ascii")
        response = client.post(
            "/analyze-image", json={"image": f"data:image/jpeg;base64,{encoded}"}
        )
        assert response.status_code == 200
        assert advisor.images[0][0] == b"jpeg-bytes"

    def test_analyze_invalid_base64(self, client):
        response = client.post("/analyze-image", json={"image": "not base64!"})
        assert response.status_code == 400

    def test_analyze_missing_image(self, client):
        assert client.post("/analyze-image", json={}).status_code == 400
