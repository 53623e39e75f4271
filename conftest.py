import pytest
from fastapi.testclient import TestClient

from api import create_app
from config import Settings
from library import Library
from session_store import SessionStore

ADMIN_CREDENTIALS = {"username": "admin", "password": "admin123"}


@pytest.fixture
def lib():
    # Her test için yeni bir bellek içi depo
    return Library(default_cover_color="purple")


@pytest.fixture
def sessions():
    return SessionStore(max_age=3600)


@pytest.fixture
def app_settings(tmp_path):
    dist = tmp_path / "dist"
    dist.mkdir()
    (dist / "index.html").write_text("<html><body>app shell</body></html>")
    (dist / "favicon.ico").write_bytes(b"icon")
    return Settings(
        admin_username="admin",
        admin_password="admin123",
        upload_dir=str(tmp_path / "uploads"),
        client_dist_dir=str(dist),
        max_upload_size=1024,
        default_cover_color="purple",
    )


@pytest.fixture
def app(app_settings, lib, sessions):
    return create_app(settings=app_settings, library=lib, sessions=sessions)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_client(client):
    response = client.post("/api/admin/login", json=ADMIN_CREDENTIALS)
    assert response.status_code == 200
    return client
