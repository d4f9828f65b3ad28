"""
tests/test_machines_api.py
──────────────────────────
Machine CRUD over /api/machines and the role gate in front of it.
"""
import pytest

from monitoring.models import Alert, Machine, SensorData

pytestmark = pytest.mark.django_db

PAYLOAD = {
    "name": "Lathe 7",
    "model": "TL-9",
    "type": "lathe",
    "serial_number": "SN-7777",
    "location": "Hall B",
    "last_service": "2024-03-01",
}


def test_list_requires_token(api_client, machine):
    response = api_client.get("/api/machines")
    assert response.status_code == 401
    assert "message" in response.json()


def test_viewer_lists_machines(viewer_client, machine):
    response = viewer_client.get("/api/machines")
    assert response.status_code == 200
    assert [row["serial_number"] for row in response.json()] == ["SN-0001"]


def test_technician_creates_machine_with_bare_date(tech_client):
    response = tech_client.post("/api/machines", PAYLOAD, format="json")
    assert response.status_code == 201
    assert response.json()["last_service"] == "2024-03-01T00:00:00Z"
    assert Machine.objects.filter(serial_number="SN-7777").exists()


def test_viewer_cannot_create_machine(viewer_client):
    response = viewer_client.post("/api/machines", PAYLOAD, format="json")
    assert response.status_code == 403
    assert response.json() == {"message": "Insufficient role for this action"}
    assert not Machine.objects.exists()


def test_patch_last_service_normalizes_date(tech_client, machine):
    response = tech_client.patch(f"/api/machines/{machine.pk}", {"last_service": "2024-01-15"}, format="json")
    assert response.status_code == 200
    assert response.json()["last_service"] == "2024-01-15T00:00:00Z"

    response = tech_client.get(f"/api/machines/{machine.pk}")
    assert response.json()["last_service"] == "2024-01-15T00:00:00Z"


def test_missing_required_field_is_rejected(tech_client):
    payload = {key: value for key, value in PAYLOAD.items() if key != "name"}
    response = tech_client.post("/api/machines", payload, format="json")
    assert response.status_code == 400
    body = response.json()
    assert body["message"].startswith("Validation failed")
    assert "name" in body["errors"]


def test_unknown_machine_is_404(viewer_client):
    response = viewer_client.get("/api/machines/999")
    assert response.status_code == 404
    assert response.json() == {"message": "Machine not found"}


def test_only_admin_deletes(tech_client, admin_client, machine):
    assert tech_client.delete(f"/api/machines/{machine.pk}").status_code == 403

    response = admin_client.delete(f"/api/machines/{machine.pk}")
    assert response.status_code == 200
    assert response.json() == {"message": "Machine deleted successfully"}
    assert admin_client.delete(f"/api/machines/{machine.pk}").status_code == 404


def test_delete_cascades_to_history(admin_client, machine):
    SensorData.objects.create(machine=machine, temperature1=20)
    Alert.objects.create(machine=machine, type=Alert.OTHER, severity=Alert.LOW, message="note")

    admin_client.delete(f"/api/machines/{machine.pk}")

    assert not SensorData.objects.exists()
    assert not Alert.objects.exists()


def test_filter_by_location(viewer_client, machine):
    Machine.objects.create(name="Drill", model="D1", type="drill", serial_number="SN-2", location="Yard")

    response = viewer_client.get("/api/machines", {"location": "hall"})
    assert [row["name"] for row in response.json()] == ["Press 01"]
