"""
tests/test_users_api.py
───────────────────────
Registration, login tokens, profile and password changes, admin user
management.
"""
from unittest.mock import patch

import pytest
from django.core.management import call_command
from rest_framework_simplejwt.tokens import AccessToken

from monitoring.models import User

pytestmark = pytest.mark.django_db


def test_admin_login_returns_token(api_client, admin_user):
    response = api_client.post("/api/users/login", {"username": "admin", "password": "admin123"}, format="json")
    assert response.status_code == 200
    body = response.json()
    assert body["userId"] == admin_user.pk
    assert body["role"] == "admin"

    token = AccessToken(body["token"])
    assert str(token["userId"]) == str(admin_user.pk)
    assert token["username"] == "admin"
    assert token["role"] == "admin"

    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {body['token']}")
    users = api_client.get("/api/users")
    assert users.status_code == 200
    assert [row["username"] for row in users.json()] == ["admin"]
    assert "password" not in users.json()[0]


def test_users_list_without_token_is_401(api_client, admin_user):
    assert api_client.get("/api/users").status_code == 401


def test_garbage_token_is_401(api_client):
    api_client.credentials(HTTP_AUTHORIZATION="Bearer not-a-token")
    assert api_client.get("/api/users").status_code == 401


def test_bad_password_is_401(api_client, admin_user):
    response = api_client.post("/api/users/login", {"username": "admin", "password": "nope"}, format="json")
    assert response.status_code == 401
    assert response.json() == {"message": "Invalid credentials"}


def test_register_defaults_to_viewer(api_client):
    response = api_client.post("/api/users/register", {"username": "newbie", "password": "secret1"}, format="json")
    assert response.status_code == 201
    assert response.json()["message"] == "User created successfully"
    user = User.objects.get(username="newbie")
    assert user.role == User.VIEWER
    assert user.check_password("secret1")


def test_duplicate_username_is_rejected(api_client, viewer):
    response = api_client.post("/api/users/register", {"username": "watcher", "password": "another1"}, format="json")
    assert response.status_code == 400
    assert response.json() == {"message": "Username already exists"}
    assert User.objects.filter(username="watcher").count() == 1


def test_anonymous_cannot_register_privileged_role(api_client):
    response = api_client.post(
        "/api/users/register",
        {"username": "boss", "password": "secret1", "role": "admin"},
        format="json",
    )
    assert response.status_code == 403
    assert not User.objects.filter(username="boss").exists()


def test_admin_registers_technician(admin_client):
    response = admin_client.post(
        "/api/users/register",
        {"username": "fixer", "password": "secret1", "role": "technician"},
        format="json",
    )
    assert response.status_code == 201
    assert User.objects.get(username="fixer").role == User.TECHNICIAN


def test_change_own_password(viewer_client, viewer):
    url = f"/api/users/change-password/{viewer.pk}"

    wrong = viewer_client.post(url, {"currentPassword": "bad", "newPassword": "fresh-pass"}, format="json")
    assert wrong.status_code == 400
    assert wrong.json() == {"message": "Current password is incorrect"}

    ok = viewer_client.post(url, {"currentPassword": "watcher-pass", "newPassword": "fresh-pass"}, format="json")
    assert ok.status_code == 200
    viewer.refresh_from_db()
    assert viewer.check_password("fresh-pass")


def test_cannot_change_someone_elses_password(viewer_client, technician):
    response = viewer_client.post(
        f"/api/users/change-password/{technician.pk}",
        {"currentPassword": "tech-pass", "newPassword": "hijacked"},
        format="json",
    )
    assert response.status_code == 403


def test_update_profile_username(viewer_client, viewer, technician):
    taken = viewer_client.patch(f"/api/users/profile/{viewer.pk}", {"username": "tech"}, format="json")
    assert taken.status_code == 400

    response = viewer_client.patch(f"/api/users/profile/{viewer.pk}", {"username": "observer"}, format="json")
    assert response.status_code == 200
    assert response.json()["username"] == "observer"


def test_admin_manages_users(admin_client, viewer):
    response = admin_client.patch(f"/api/users/{viewer.pk}", {"role": "technician"}, format="json")
    assert response.status_code == 200
    assert response.json()["role"] == "technician"

    response = admin_client.delete(f"/api/users/{viewer.pk}")
    assert response.status_code == 200
    assert not User.objects.filter(pk=viewer.pk).exists()
    assert admin_client.get(f"/api/users/{viewer.pk}").status_code == 404


def test_non_admin_cannot_manage_users(tech_client, viewer):
    assert tech_client.get(f"/api/users/{viewer.pk}").status_code == 200
    assert tech_client.patch(f"/api/users/{viewer.pk}", {"role": "admin"}, format="json").status_code == 403
    assert tech_client.delete(f"/api/users/{viewer.pk}").status_code == 403


def test_seed_admin_creates_default_once(db):
    call_command("seed_admin")
    call_command("seed_admin")

    admins = User.objects.filter(role=User.ADMIN)
    assert admins.count() == 1
    assert admins.get().check_password("admin123")


def test_register_race_on_username_is_400(api_client, viewer):
    # the name is taken between the availability check and the insert
    with patch("monitoring.services._ensure_username_free"):
        response = api_client.post(
            "/api/users/register", {"username": "watcher", "password": "another1"}, format="json",
        )

    assert response.status_code == 400
    assert response.json() == {"message": "Username already exists"}
    assert User.objects.filter(username="watcher").count() == 1
