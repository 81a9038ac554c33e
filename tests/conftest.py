import pytest
from fastapi.testclient import TestClient

from saini_connect import schemas
from saini_connect.config import Settings
from saini_connect.database import create_db_engine
from saini_connect.main import create_app
from saini_connect.storage import DatabaseStorage, MemStorage


def build_storage(backend, tmp_path):
    if backend == "memory":
        return MemStorage()
    return DatabaseStorage(create_db_engine(f"sqlite:///{tmp_path / 'saini_connect.db'}"))


@pytest.fixture
def storage_factory(tmp_path):
    """Build a fresh store for a named backend."""
    return lambda backend: build_storage(backend, tmp_path)


@pytest.fixture(params=["memory", "database"])
def storage(request, tmp_path):
    store = build_storage(request.param, tmp_path)
    yield store
    store.close()


@pytest.fixture
def make_user(storage):
    counter = {"n": 0}

    def _make_user(username=None, **overrides):
        counter["n"] += 1
        username = username or f"member{counter['n']}"
        values = {
            "username": username,
            "password": "not-a-real-hash",
            "full_name": username.title(),
            "email": f"{username.lower()}@sainiconnect.com",
        }
        values.update(overrides)
        return storage.create_user(schemas.UserCreate(**values))

    return _make_user


@pytest.fixture
def test_settings():
    settings = Settings()
    settings.SEED_DEMO_DATA = False
    return settings


@pytest.fixture
def client(test_settings):
    app = create_app(storage=MemStorage(), app_settings=test_settings)
    return TestClient(app)


@pytest.fixture
def register(client):
    """Register a user through the API; returns (user json, auth headers)."""

    def _register(username, password="password123", full_name=None):
        response = client.post("/api/register", json={
            "username": username,
            "password": password,
            "email": f"{username}@sainiconnect.com",
            "fullName": full_name or username.title(),
        })
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"], {"Authorization": f"Bearer {body['access_token']}"}

    return _register
