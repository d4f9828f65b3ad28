"""
tests/conftest.py
─────────────────
Shared pytest fixtures: users per role, authenticated API clients, a machine.
"""
from datetime import datetime, timedelta, timezone

import pytest
from rest_framework.test import APIClient

from monitoring.evaluator import ThresholdBand, ThresholdPolicy
from monitoring.models import Machine, User
from monitoring.services import issue_token


@pytest.fixture
def api_client():
    return APIClient()


def _user(username, role):
    return User.objects.create_user(username=username, password=f"{username}-pass", role=role)


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(username="admin", password="admin123", role=User.ADMIN)


@pytest.fixture
def technician(db):
    return _user("tech", User.TECHNICIAN)


@pytest.fixture
def viewer(db):
    return _user("watcher", User.VIEWER)


def _client_for(user):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token(user)}")
    return client


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def tech_client(technician):
    return _client_for(technician)


@pytest.fixture
def viewer_client(viewer):
    return _client_for(viewer)


@pytest.fixture
def machine(db):
    return Machine.objects.create(
        name="Press 01",
        model="HX-200",
        type="hydraulic press",
        serial_number="SN-0001",
        location="Hall A",
    )


@pytest.fixture
def policy():
    return ThresholdPolicy(
        temperature=ThresholdBand(warning=70.0, critical=85.0),
        speed=ThresholdBand(warning=800.0, critical=1200.0),
        door_open_grace=timedelta(seconds=60),
    )


@pytest.fixture
def t0():
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
