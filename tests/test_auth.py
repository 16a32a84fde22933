from datetime import timedelta

import pytest

from services.admin_service.service import AdminService
from services.auth_service.repository import UserRepository
from services.auth_service.schemas import UserCreate, UserUpdate
from services.auth_service.service import AuthService
from shared.errors import Conflict
from shared.security.jwt_handler import create_access_token, verify_access_token
from shared.security.policy import Role


def test_register_returns_token_and_defaults_to_student(client):
    resp = client.post("/auth/register", json={
        "name": "Alice", "email": "alice@example.com", "password": "secret",
    })
    assert resp.status_code == 201
    body = resp.json()
    assert body["user"]["role"] == "student"
    assert body["user"]["email"] == "alice@example.com"
    claims = verify_access_token(body["token"])
    assert claims["sub"] == str(body["user"]["id"])
    assert claims["role"] == "student"
    assert claims["name"] == "Alice"


def test_register_duplicate_email_conflicts(client):
    payload = {"name": "Alice", "email": "alice@example.com", "password": "secret"}
    assert client.post("/auth/register", json=payload).status_code == 201
    resp = client.post("/auth/register", json=payload)
    assert resp.status_code == 409


def test_register_rejects_unknown_role(client):
    resp = client.post("/auth/register", json={
        "name": "Mallory", "email": "m@example.com", "password": "x", "role": "superuser",
    })
    assert resp.status_code == 422


def test_login_success_and_failure(client):
    client.post("/auth/register", json={
        "name": "Bob", "email": "bob@example.com", "password": "hunter2", "role": "writer",
    })
    ok = client.post("/auth/login", json={"email": "bob@example.com", "password": "hunter2"})
    assert ok.status_code == 200
    assert ok.json()["user"]["role"] == "writer"

    wrong = client.post("/auth/login", json={"email": "bob@example.com", "password": "nope"})
    assert wrong.status_code == 401
    unknown = client.post("/auth/login", json={"email": "ghost@example.com", "password": "hunter2"})
    assert unknown.status_code == 401


def test_missing_malformed_and_expired_tokens_are_unauthorized(api, cast):
    client = api.client
    assert client.get("/orders").status_code == 401
    assert client.get("/orders", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401

    student = cast["student"]
    expired = create_access_token(student["id"], student["email"], "student", "Sam",
                                  expires_delta=timedelta(minutes=-5))
    assert client.get("/orders", headers={"Authorization": f"Bearer {expired}"}).status_code == 401


def test_me_returns_profile(api, cast):
    resp = api.get(cast["writer"], "/auth/me")
    assert resp.status_code == 200
    assert resp.json()["name"] == "Wendy Writer"
    assert resp.json()["role"] == "writer"


def test_token_of_deleted_user_is_rejected(api, cast):
    assert api.delete(cast["admin"], f"/admin/users/{cast['student']['id']}").status_code == 200
    assert api.get(cast["student"], "/orders").status_code == 401


def test_role_change_applies_without_new_token(api, cast):
    student = cast["student"]
    assert api.get(student, "/admin/stats").status_code == 403

    resp = api.put(cast["admin"], f"/admin/users/{student['id']}", json={
        "name": "Sam Student", "email": student["email"], "role": "admin",
    })
    assert resp.status_code == 200
    assert api.get(student, "/admin/stats").status_code == 200


def test_users_by_role(api, cast):
    resp = api.get(cast["student"], "/users/role/writer")
    assert resp.status_code == 200
    assert resp.json() == [{"id": cast["writer"]["id"], "name": "Wendy Writer"}]

    assert api.get(cast["student"], "/users/role/wizard").status_code == 422


def test_demo_users_seeded_on_startup(settings):
    from fastapi.testclient import TestClient

    from main import create_app

    seeded = settings.model_copy(update={"seed_demo_users": True})
    with TestClient(create_app(seeded)) as client:
        resp = client.post("/auth/login", json={"email": "admin@example.com", "password": "admin123"})
        assert resp.status_code == 200
        assert resp.json()["user"]["role"] == "admin"
        assert client.post("/auth/login", json={
            "email": "delivery@example.com", "password": "delivery123",
        }).status_code == 200


async def _nobody(db, email):
    return None


async def test_register_racing_on_the_same_email_conflicts(db, monkeypatch):
    await AuthService.register(db, UserCreate(name="Alice", email="alice@example.com", password="pw"))
    # the second request passed its lookup before the first one committed
    monkeypatch.setattr(UserRepository, "get_by_email", staticmethod(_nobody))

    with pytest.raises(Conflict):
        await AuthService.register(db, UserCreate(name="Alice", email="alice@example.com", password="pw"))
    assert await UserRepository.count(db) == 1


async def test_user_update_racing_on_an_email_conflicts(db, make_user, monkeypatch):
    await make_user("Ann Admin", "admin")
    bea = await make_user("Bea Student")
    monkeypatch.setattr(UserRepository, "get_by_email", staticmethod(_nobody))

    with pytest.raises(Conflict):
        await AdminService.update_user(db, bea.id, UserUpdate(
            name="Bea", email="ann.admin@example.com", role=Role.STUDENT,
        ))
    assert (await UserRepository.get_by_id(db, bea.id)).email == "bea.student@example.com"
