import os

# Must be set before the app modules are imported
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from main import create_app
from services.auth_service.models import User
from services.auth_service.service import AuthService
from shared.config.database import Database
from shared.config.settings import Settings


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        upload_dir=str(tmp_path / "uploads"),
        seed_demo_users=False,
        metrics_enabled=False,
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def lax_client(settings):
    lax = settings.model_copy(update={"enforce_status_transitions": False})
    with TestClient(create_app(lax)) as c:
        yield c


@pytest.fixture
async def database(settings):
    database = Database(settings.database_url)
    await database.create_all()
    yield database
    await database.dispose()


@pytest.fixture
async def db(database):
    async with database.sessionmaker() as session:
        yield session


class Api:
    """Small helper around TestClient that remembers tokens per user."""

    def __init__(self, client: TestClient):
        self.client = client

    def register(self, name: str, role: str = "student", password: str = "pw") -> dict:
        email = f"{name.lower().replace(' ', '.')}@example.com"
        resp = self.client.post("/auth/register", json={
            "name": name, "email": email, "password": password, "role": role,
        })
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return {"id": body["user"]["id"], "token": body["token"], "email": email, "role": role}

    @staticmethod
    def headers(user: dict) -> dict:
        return {"Authorization": f"Bearer {user['token']}"}

    def get(self, user: dict, path: str, **kwargs):
        return self.client.get(path, headers=self.headers(user), **kwargs)

    def post(self, user: dict, path: str, **kwargs):
        return self.client.post(path, headers=self.headers(user), **kwargs)

    def put(self, user: dict, path: str, **kwargs):
        return self.client.put(path, headers=self.headers(user), **kwargs)

    def delete(self, user: dict, path: str, **kwargs):
        return self.client.delete(path, headers=self.headers(user), **kwargs)

    def create_order(self, student: dict, title: str = "Essay", page_count: int = 3, **fields) -> dict:
        data = {"title": title, "description": "Transcribe my notes", "page_count": str(page_count)}
        data.update(fields)
        resp = self.post(student, "/orders", data=data)
        assert resp.status_code == 200, resp.text
        return resp.json()

    def assign(self, admin: dict, order_id: int, writer: dict, delivery: dict):
        return self.post(admin, "/admin/assign", json={
            "order_id": order_id, "writer_id": writer["id"], "delivery_id": delivery["id"],
        })

    def set_status(self, user: dict, order_id: int, status: str, message: str | None = None):
        payload = {"status": status}
        if message is not None:
            payload["message"] = message
        return self.post(user, f"/orders/{order_id}/status", json=payload)

    def notifications(self, user: dict) -> list[dict]:
        resp = self.get(user, "/notifications")
        assert resp.status_code == 200, resp.text
        return resp.json()


@pytest.fixture
def api(client):
    return Api(client)


@pytest.fixture
def cast(api):
    """One user per role."""
    return {
        "admin": api.register("Ada Admin", "admin"),
        "student": api.register("Sam Student"),
        "writer": api.register("Wendy Writer", "writer"),
        "delivery": api.register("Dan Delivery", "delivery"),
    }


@pytest.fixture
def make_user(db):
    async def _make(name: str, role: str = "student") -> User:
        user = User(
            name=name,
            email=f"{name.lower().replace(' ', '.')}@example.com",
            hashed_password=AuthService.hash_password("pw"),
            role=role,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make
