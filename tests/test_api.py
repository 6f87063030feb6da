"""
HTTP surface tests against an in-memory ERP.
"""

import pytest
from fastapi.testclient import TestClient

from clinicdesk.app import create_app
from clinicdesk.core.exceptions import RecordStoreError
from clinicdesk.domain.entities.session import Choice

from conftest import DOCTOR_ID, PATIENT_ID, PRODUCT_ID


@pytest.fixture
def client(container):
    """Create a test client for the FastAPI app."""
    with TestClient(create_app(container)) as client:
        yield client


@pytest.fixture
def authed(client):
    response = client.post("/session/login", json={"user": "nurse", "password": "secret"})
    assert response.json()["data"]["step"] == "done"
    return client


def register(client):
    response = client.post(
        "/registrations",
        json={
            "patient_id": PATIENT_ID,
            "patient_name": "Wang Xiao",
            "doctor_id": DOCTOR_ID,
            "doctor_name": "Dr. Lin",
        },
    )
    assert response.status_code == 201
    return response.json()["data"]


def test_health_endpoint(client):
    response = client.get("/health/")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["data"]["status"] == "healthy"
    assert data["data"]["service"] == "ClinicDesk"


def test_ready_follows_login(client):
    assert client.get("/health/ready").json()["data"] == {"ready": False, "step": "credentials"}
    client.post("/session/login", json={"user": "nurse", "password": "secret"})
    assert client.get("/health/ready").json()["data"] == {"ready": True, "step": "done"}


def test_request_id_is_echoed(client):
    response = client.get("/health/", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert response.json()["request_id"] == "req-123"


def test_stepwise_login(client, auth, store):
    auth.tenants = [Choice(11, "Clinic"), Choice(12, "Lab")]

    state = client.post("/session/login", json={"user": "nurse", "password": "secret"}).json()["data"]
    assert state["step"] == "tenant"
    assert [c["id"] for c in state["choices"]] == [11, 12]

    state = client.post("/session/tenant", json={"id": 11}).json()["data"]
    assert state["step"] == "done"
    assert state["context"]["organization_id"] == 31
    assert state["context"]["warehouse_id"] == 41
    assert state["user"]["name"] == "nurse"
    assert store.token == "final-11-21-31-41"


def test_wrong_password_stays_on_credentials(client):
    response = client.post("/session/login", json={"user": "nurse", "password": "nope"})
    assert response.status_code == 200
    assert response.json()["data"] == {
        "step": "credentials",
        "error": "Invalid user name or password",
        "choices": [],
        "context": None,
        "user": None,
    }


def test_selection_at_wrong_step(client):
    response = client.post("/session/role", json={"id": 21})
    assert response.status_code == 409
    assert response.json()["error"] == "NEGOTIATION_ERROR"


def test_invalid_selection_payload(client):
    response = client.post("/session/tenant", json={"id": -1})
    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "INVALID_INPUT"


def test_protected_routes_need_a_session(client):
    for path in ("/patients?keyword=Wang", "/doctors", "/pharmacy/queue", "/checkout"):
        response = client.get(path)
        assert response.status_code == 401, path
        assert response.json()["error"] == "AUTH_ERROR"


def test_switch_context_drops_scope(authed):
    state = authed.post("/session/switch").json()["data"]
    assert state["step"] == "tenant"
    assert authed.get("/doctors").status_code == 401


def test_logout(authed):
    state = authed.post("/session/logout").json()["data"]
    assert state["step"] == "credentials"
    assert authed.get("/doctors").status_code == 401


def test_patient_endpoints(authed):
    found = authed.get("/patients", params={"keyword": "Wang"}).json()["data"]
    assert [p["id"] for p in found] == [PATIENT_ID]

    by_tax_id = authed.get("/patients/by-tax-id/A123456789").json()["data"]
    assert by_tax_id["name"] == "Wang Xiao"

    missing = authed.get("/patients/by-tax-id/Z000000000").json()
    assert missing["data"] is None
    assert missing["message"] == "No patient with that tax id"

    created = authed.post("/patients", json={"name": " Chen Mei ", "tax_id": "B223456789"})
    assert created.status_code == 201
    assert created.json()["data"]["name"] == "Chen Mei"

    blank = authed.post("/patients", json={"name": "   ", "tax_id": "B223456789"})
    assert blank.status_code == 422


def test_registration_queue(authed):
    reg = register(authed)
    assert reg["queue_number"] == "001"

    doctors = authed.get("/doctors").json()["data"]
    assert doctors[0]["waiting"] == 1

    called = authed.post("/registrations/call-next").json()["data"]
    assert called["id"] == reg["id"]
    assert authed.post("/registrations/call-next").json()["message"] == "Nobody is waiting"

    authed.post(f"/registrations/{reg['id']}/start")
    status = authed.get(f"/registrations/{reg['id']}/status").json()["data"]
    assert status == {"id": reg["id"], "status": "CONSULTING"}

    listed = authed.get("/registrations").json()["data"]
    assert [(r["id"], r["status"]) for r in listed] == [(reg["id"], "CONSULTING")]


def test_backward_transition_rejected(authed):
    reg = register(authed)
    authed.post(f"/registrations/{reg['id']}/start")

    response = authed.post(f"/registrations/{reg['id']}/call")
    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_TRANSITION"


def test_unknown_action(authed):
    reg = register(authed)
    assert authed.post(f"/registrations/{reg['id']}/teleport").status_code == 422


def test_erp_failure_maps_to_bad_gateway(authed, store):
    store.fail_on("list", "C_BPartner", RecordStoreError("boom", status=500, detail="Database unavailable"))

    response = authed.get("/patients", params={"keyword": "Wang"})
    assert response.status_code == 502
    body = response.json()
    assert body["error"] == "EXTERNAL_SERVICE_ERROR"
    assert body["message"] == "Database unavailable"


@pytest.mark.slow
def test_visit_over_http(authed):
    reg = register(authed)
    authed.post(f"/registrations/{reg['id']}/call")
    authed.post(f"/registrations/{reg['id']}/start")

    authed.post("/consultation", json={"assignment_id": reg["id"], "patient_name": "Wang Xiao"})
    line = authed.post(
        "/consultation/lines",
        json={"product_id": PRODUCT_ID, "product_name": "Ginseng Powder", "dosage": 1, "frequency": "TID", "days": 3},
    )
    assert line.status_code == 201
    assert authed.post("/consultation/complete").status_code == 200

    queue = authed.get("/pharmacy/queue").json()["data"]
    assert queue["pending_count"] == 1
    started = authed.post(f"/pharmacy/queue/{reg['id']}/start").json()["data"]
    assert started["stock"][str(PRODUCT_ID)][0]["qty_on_hand"] == 120
    outcome = authed.post(f"/pharmacy/queue/{reg['id']}/complete").json()
    assert outcome["data"]["completed"] is True
    assert outcome["message"] == "Dispensed"

    selected = authed.post(f"/checkout/{reg['id']}/select").json()["data"]
    assert selected["copayment"] == 50
    change = authed.put("/checkout/received", json={"amount": 100}).json()["data"]
    assert change["change_amount"] == 50
    paid = authed.post("/checkout/complete").json()["data"]
    assert paid["checkout_status"] == "PAID"
    assert authed.get("/checkout").json()["data"]["pending_count"] == 0
