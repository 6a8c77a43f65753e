"""
HTTP tests for the FastAPI app: principal headers, capability checks,
error mapping and the request/approve flow.
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from hvac_pricing.api.main import app, status_for
from hvac_pricing.data.seed import seed_database
from hvac_pricing.engine.capabilities import grant
from hvac_pricing.engine.errors import (
    DivisionByZero, Forbidden, InvalidInput, InvalidStateTransition,
    NoActiveParameterSet, NotFound, StoreUnavailable
)
from hvac_pricing.store.db import get_db, session_scope

ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin", "X-User-Name": "Ada Admin"}
EMPLOYEE = {"X-User-Id": "employee-1", "X-User-Role": "employee", "X-User-Name": "Emil Employee"}


@pytest.fixture
def client(session_factory):
    with session_scope(session_factory) as db:
        seed_database(db, grant("setup", "admin"))

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def device_id(client):
    devices = client.get("/api/catalog/devices", params={"q": "outdoor"}, headers=EMPLOYEE).json()
    return devices[0]["id"]


@pytest.fixture
def project_id(client):
    return client.post("/api/projects", json={"name": "Hospital Retrofit"}, headers=EMPLOYEE).json()["id"]


def test_root(client):
    assert client.get("/").json()["status"] == "online"


@pytest.mark.parametrize("error, status", [
    (InvalidInput(), 422),
    (DivisionByZero(), 422),
    (NoActiveParameterSet(), 409),
    (NotFound(), 404),
    (InvalidStateTransition(), 409),
    (StoreUnavailable(), 503),
    (Forbidden(), 403),
])
def test_error_status_mapping(error, status):
    assert status_for(error) == status


def test_missing_principal_is_unauthorized(client):
    assert client.get("/api/pricing/requests").status_code == 401


def test_unknown_role_is_unauthorized(client):
    headers = {"X-User-Id": "u", "X-User-Role": "superuser"}
    assert client.get("/api/pricing/requests", headers=headers).status_code == 401


def test_employee_device_search_hides_factory_data(client):
    devices = client.get("/api/catalog/devices", headers=EMPLOYEE).json()
    assert len(devices) == 6
    assert set(devices[0]) == {"id", "model_name", "category_id", "category_name"}


def test_request_then_approve_flow(client, device_id, project_id):
    created = client.post(
        "/api/pricing/requests",
        json={"device_id": device_id, "project_id": project_id},
        headers=EMPLOYEE,
    )
    assert created.status_code == 200
    body = created.json()
    assert body["status"] == "pending"
    assert body["sell_price"] is None

    again = client.post(
        "/api/pricing/requests",
        json={"device_id": device_id, "project_id": project_id},
        headers=EMPLOYEE,
    ).json()
    assert again["request_id"] == body["request_id"]

    pending = client.get("/api/pricing/requests/all", params={"status": "pending"}, headers=ADMIN).json()
    assert [p["request_id"] for p in pending] == [body["request_id"]]
    assert Decimal(pending[0]["sell_price"]) == Decimal("16056")

    approved = client.post(
        f"/api/pricing/requests/{body['request_id']}/status",
        json={"status": "approved"},
        headers=ADMIN,
    )
    assert approved.status_code == 200
    assert approved.json()["responded_by"] == "admin-1"

    mine = client.get("/api/pricing/requests", headers=EMPLOYEE).json()
    assert mine[0]["status"] == "approved"
    assert Decimal(mine[0]["sell_price"]) == Decimal("16056")


def test_second_decision_conflicts(client, device_id, project_id):
    request_id = client.post(
        "/api/pricing/requests",
        json={"device_id": device_id, "project_id": project_id},
        headers=EMPLOYEE,
    ).json()["request_id"]
    url = f"/api/pricing/requests/{request_id}/status"

    assert client.post(url, json={"status": "rejected"}, headers=ADMIN).status_code == 200
    response = client.post(url, json={"status": "approved"}, headers=ADMIN)

    assert response.status_code == 409
    assert response.json()["error"] == "invalid_state_transition"


def test_employee_cannot_approve(client, device_id, project_id):
    request_id = client.post(
        "/api/pricing/requests",
        json={"device_id": device_id, "project_id": project_id},
        headers=EMPLOYEE,
    ).json()["request_id"]

    response = client.post(f"/api/pricing/requests/{request_id}/status",
                           json={"status": "approved"}, headers=EMPLOYEE)

    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


def test_unknown_request_status_update(client):
    response = client.post("/api/pricing/requests/missing/status", json={"status": "approved"}, headers=ADMIN)
    assert response.status_code == 404


def test_invalid_target_status(client, device_id, project_id):
    request_id = client.post(
        "/api/pricing/requests",
        json={"device_id": device_id, "project_id": project_id},
        headers=EMPLOYEE,
    ).json()["request_id"]
    response = client.post(f"/api/pricing/requests/{request_id}/status",
                           json={"status": "pending"}, headers=ADMIN)
    assert response.status_code == 422


def test_request_for_unknown_device(client, project_id):
    response = client.post(
        "/api/pricing/requests",
        json={"device_id": "missing", "project_id": project_id},
        headers=EMPLOYEE,
    )
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_breakdown_is_admin_only(client, device_id):
    assert client.get(f"/api/pricing/devices/{device_id}/breakdown", headers=EMPLOYEE).status_code == 403

    body = client.get(f"/api/pricing/devices/{device_id}/breakdown", headers=ADMIN).json()
    assert Decimal(body["sell_price"]) == Decimal("16056")
    assert Decimal(body["steps"]["company_price"]) == Decimal("5700")
    assert len(body["trace"]) == 8


def test_replayed_breakdown(client, device_id, project_id):
    request_id = client.post(
        "/api/pricing/requests",
        json={"device_id": device_id, "project_id": project_id},
        headers=EMPLOYEE,
    ).json()["request_id"]
    client.put("/api/settings", json={"profit_factor": "0.5"}, headers=ADMIN)

    body = client.get(f"/api/pricing/requests/{request_id}/breakdown", headers=ADMIN).json()

    assert Decimal(body["sell_price"]) == Decimal("16056")
    assert body["device_id"] == device_id


def test_settings_update_and_history(client):
    active = client.get("/api/settings", headers=ADMIN).json()
    assert Decimal(active["profit_factor"]) == Decimal("0.65")

    updated = client.put("/api/settings", json={"profit_factor": "0.6"}, headers=ADMIN)
    assert updated.status_code == 200
    assert updated.json()["id"] != active["id"]
    assert Decimal(updated.json()["discount_multiplier"]) == Decimal("0.38")

    history = client.get("/api/settings/history", headers=ADMIN).json()
    assert [h["is_active"] for h in history] == [True, False]


def test_settings_zero_divisor_rejected(client):
    response = client.put("/api/settings", json={"company_cost_factor": 0}, headers=ADMIN)
    assert response.status_code == 422
    assert response.json()["error"] == "invalid_parameter_set"


def test_settings_validate_does_not_save(client):
    body = client.post("/api/settings/validate", json={"profit_factor": 0}, headers=ADMIN).json()
    assert body["valid"] is False
    assert len(client.get("/api/settings/history", headers=ADMIN).json()) == 1


def test_settings_forbidden_for_employee(client):
    assert client.get("/api/settings", headers=EMPLOYEE).status_code == 403


def test_catalog_maintenance(client):
    categories = client.get("/api/catalog/categories", headers=ADMIN).json()
    chillers = next(c for c in categories if c["name"] == "Chillers")

    saved = client.put("/api/catalog/devices", json={
        "category_id": chillers["id"],
        "model_name": "Magnetic-Chiller-300T",
        "factory_price": "90000",
        "length": "5",
        "weight": "3200",
    }, headers=ADMIN)
    assert saved.status_code == 200
    new_id = saved.json()["id"]

    assert client.delete(f"/api/catalog/devices/{new_id}", headers=ADMIN).status_code == 200
    names = [d["model_name"] for d in client.get("/api/catalog/devices", headers=EMPLOYEE).json()]
    assert "Magnetic-Chiller-300T" not in names


def test_catalog_rejects_non_positive_price(client):
    category_id = client.get("/api/catalog/categories", headers=ADMIN).json()[0]["id"]
    response = client.put("/api/catalog/devices", json={
        "category_id": category_id,
        "model_name": "Broken",
        "factory_price": "0",
        "length": "1",
        "weight": "1",
    }, headers=ADMIN)
    assert response.status_code == 422


def test_catalog_maintenance_forbidden_for_employee(client):
    assert client.get("/api/catalog/devices/admin", headers=EMPLOYEE).status_code == 403


def test_comments_and_unread(client, project_id):
    client.post(f"/api/projects/{project_id}/comments", json={"content": "Need it by March"}, headers=EMPLOYEE)
    client.post(f"/api/projects/{project_id}/comments", json={"content": "Noted"}, headers=ADMIN)

    assert client.get("/api/projects/unread", headers=EMPLOYEE).json() == {"unread": 1}

    summaries = client.get("/api/projects/summaries", headers=ADMIN).json()
    assert summaries[0]["unread_count"] == 1

    thread = client.get(f"/api/projects/{project_id}/comments", headers=EMPLOYEE).json()
    assert [c["content"] for c in thread] == ["Need it by March", "Noted"]
    assert client.get("/api/projects/unread", headers=EMPLOYEE).json() == {"unread": 0}


def test_project_summaries_admin_only(client):
    assert client.get("/api/projects/summaries", headers=EMPLOYEE).status_code == 403


def test_other_users_project_is_hidden(client, project_id):
    intruder = {"X-User-Id": "someone-else", "X-User-Role": "employee"}
    assert client.get(f"/api/projects/{project_id}/comments", headers=intruder).status_code == 404
