"""
tests/test_client_api.py
────────────────────────
Dashboard API client against a stubbed HTTP transport.
"""
import pytest
import requests

from monitor_client import ApiError, Session, StoreError, api
from monitor_client.exceptions import GENERIC_ERROR_MESSAGE
from monitor_client.poller import control_poller

BASE_URL = "http://monitor.local/api"

READING = {
    "id": 8, "machine": 3,
    "temperature1": 71.0, "temperature2": 0, "temperature3": 0, "temperature4": 0,
    "speed1": 0, "speed2": 0, "speed3": 0, "speed4": 950.5,
    "door1_state": False, "door2_state": True,
    "timestamp": "2024-06-01T12:00:00Z",
}

STATUS = {"id": 2, "machine": 3, "status": "online", "changed_by": 1,
          "changed_by_username": "admin", "timestamp": "2024-06-01T12:00:00Z"}


class StubResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self._text = text

    def json(self):
        if self._text is not None:
            raise ValueError("not json")
        return self._body


class StubHttp:
    """Answers requests by (method, path) and records what was sent."""

    def __init__(self, routes):
        self.routes = routes
        self.sent = []

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        path = url[len(BASE_URL) + 1:]
        self.sent.append((method, path, headers, kwargs))
        answer = self.routes[(method, path)]
        if isinstance(answer, Exception):
            raise answer
        return answer


def _session(routes, **kwargs):
    return Session(BASE_URL, token="tok", http=StubHttp(routes), **kwargs)


def test_login_stores_token_and_user():
    http = StubHttp({("POST", "users/login"): StubResponse(200, {
        "token": "abc", "userId": 1, "username": "admin", "role": "admin",
    })})
    session = api.login(BASE_URL, "admin", "admin123", http=http)

    assert session.is_authenticated
    assert session.user.role == "admin"
    assert session.headers()["Authorization"] == "Bearer abc"
    assert http.sent[0][3]["json"] == {"username": "admin", "password": "admin123"}

    session.sign_out()
    assert not session.is_authenticated
    assert "Authorization" not in session.headers()


def test_latest_reading_is_typed():
    session = _session({("GET", "sensor-data/machine/3/latest"): StubResponse(200, READING)})
    reading = api.get_latest_sensor_data(session, 3)

    assert reading.temperatures == [71.0, 0, 0, 0]
    assert reading.speeds[3] == 950.5
    assert reading.door2_state is True


def test_shape_mismatch_is_store_error():
    session = _session({("GET", "machines"): StubResponse(200, {"unexpected": "object"})})
    with pytest.raises(StoreError) as excinfo:
        api.get_machines(session)
    assert excinfo.value.status_code == 200


def test_non_json_body_is_store_error():
    session = _session({("GET", "alerts/active"): StubResponse(200, text="<html>")})
    with pytest.raises(StoreError):
        api.get_alerts(session, active_only=True)


def test_server_message_is_surfaced():
    session = _session({("PATCH", "alerts/9/resolve"): StubResponse(404, {"message": "Alert not found"})})
    with pytest.raises(ApiError) as excinfo:
        api.resolve_alert(session, 9)
    assert excinfo.value.message == "Alert not found"
    assert excinfo.value.status_code == 404


def test_missing_server_message_falls_back():
    session = _session({("GET", "users"): StubResponse(500, text="Internal Server Error")})
    with pytest.raises(ApiError) as excinfo:
        api.get_users(session)
    assert excinfo.value.message == GENERIC_ERROR_MESSAGE


def test_transport_failure_is_api_error():
    session = _session({("GET", "machines/3"): requests.ConnectionError("refused")})
    with pytest.raises(ApiError) as excinfo:
        api.get_machine(session, 3)
    assert excinfo.value.message == GENERIC_ERROR_MESSAGE
    assert excinfo.value.status_code is None


def test_status_update_sends_signed_in_user():
    http = StubHttp({
        ("POST", "users/login"): StubResponse(200, {"token": "abc", "userId": 5, "username": "t", "role": "technician"}),
        ("POST", "machine-status"): StubResponse(201, {**STATUS, "changed_by": 5}),
    })
    session = api.login(BASE_URL, "t", "pw", http=http)
    api.update_machine_status(session, 3, "maintenance")

    assert http.sent[-1][3]["json"] == {"machine": 3, "status": "maintenance", "changed_by": 5}


def test_control_poller_tolerates_missing_history():
    session = _session({
        ("GET", "machine-status/machine/3"): StubResponse(200, STATUS),
        ("GET", "machine-status/history/3"): StubResponse(500, {"message": "Server error"}),
    })
    poller = control_poller(session, 3)

    assert poller.poll() is True
    assert poller.state.status.status == "online"
    assert poller.state.history == []
