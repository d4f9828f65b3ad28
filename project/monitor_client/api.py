"""
Typed calls to the monitoring REST API.

Each function takes the ``Session`` to issue the request with and
validates the answer against exactly one schema. A body that does not
match raises ``StoreError`` instead of being patched up.
"""
from pydantic import TypeAdapter, ValidationError

from .exceptions import StoreError
from .schemas import Alert, LoginResult, Machine, MachineStatus, SensorReading, User
from .session import Session


def _parse(response, schema, path):
    try:
        body = response.json()
    except ValueError as exc:
        raise StoreError(f"Response from {path} is not JSON", status_code=response.status_code) from exc
    try:
        return TypeAdapter(schema).validate_python(body)
    except ValidationError as exc:
        raise StoreError(f"Unexpected response shape from {path}", status_code=response.status_code) from exc


def _call(session, method, path, schema, **kwargs):
    response = session.request(method, path, **kwargs)
    return _parse(response, schema, path)


def login(base_url, username, password, **session_kwargs):
    """Sign in and return a Session carrying the token and user."""
    session = Session(base_url, **session_kwargs)
    result = _call(session, "POST", "users/login", LoginResult, json={"username": username, "password": password})
    session.token = result.token
    session.user = result
    return session


def get_users(session):
    return _call(session, "GET", "users", list[User])


def get_machines(session):
    return _call(session, "GET", "machines", list[Machine])


def get_machine(session, machine_id):
    return _call(session, "GET", f"machines/{machine_id}", Machine)


def create_machine(session, **fields):
    return _call(session, "POST", "machines", Machine, json=fields)


def update_machine(session, machine_id, **fields):
    return _call(session, "PATCH", f"machines/{machine_id}", Machine, json=fields)


def get_latest_sensor_data(session, machine_id):
    return _call(session, "GET", f"sensor-data/machine/{machine_id}/latest", SensorReading)


def get_sensor_history(session, machine_id):
    return _call(session, "GET", f"sensor-data/machine/{machine_id}", list[SensorReading])


def send_sensor_data(session, machine_id, **channels):
    return _call(session, "POST", "sensor-data", SensorReading, json={"machine": machine_id, **channels})


def get_machine_status(session, machine_id):
    return _call(session, "GET", f"machine-status/machine/{machine_id}", MachineStatus)


def get_machine_status_history(session, machine_id):
    return _call(session, "GET", f"machine-status/history/{machine_id}", list[MachineStatus])


def update_machine_status(session, machine_id, status):
    payload = {"machine": machine_id, "status": status}
    if session.user is not None:
        payload["changed_by"] = session.user.userId
    return _call(session, "POST", "machine-status", MachineStatus, json=payload)


def get_alerts(session, active_only=False):
    path = "alerts/active" if active_only else "alerts"
    return _call(session, "GET", path, list[Alert])


def get_machine_alerts(session, machine_id):
    return _call(session, "GET", f"alerts/machine/{machine_id}", list[Alert])


def resolve_alert(session, alert_id):
    return _call(session, "PATCH", f"alerts/{alert_id}/resolve", Alert)
