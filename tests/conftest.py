"""
Shared fixtures: a fresh SQLite DB per test and an in-memory image uploader.
"""

from typing import Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from redrice_platform.api.server import create_app
from redrice_platform.config import Config
from redrice_platform.restaurants.storage import ImageUploadError


ADMIN_EMAIL = "admin@redrice.test"
ADMIN_PASSWORD = "admin-pass"
JWT_SECRET = "test-secret"


class FakeUploader:
    """Records uploads and hands back a deterministic URL."""

    def __init__(self) -> None:
        self.calls: List[Tuple[bytes, str, Optional[str]]] = []
        self.fail = False

    def upload(self, data: bytes, filename: str, content_type: Optional[str] = None) -> str:
        if self.fail:
            raise ImageUploadError("image_upload_failed")
        self.calls.append((data, filename, content_type))
        return f"https://images.redrice.test/restaurants/{len(self.calls)}-{filename}"


@pytest.fixture
def cfg(tmp_path) -> Config:
    return Config(
        DB_DSN=str(tmp_path / "redrice-test.sqlite"),
        AUTH_JWT_SECRET=JWT_SECRET,
        AUTH_TOKEN_EXPIRE_MINUTES=60,
        AUTH_BOOTSTRAP_ADMIN=True,
        AUTH_BOOTSTRAP_ADMIN_EMAIL=ADMIN_EMAIL,
        AUTH_BOOTSTRAP_ADMIN_PASSWORD=ADMIN_PASSWORD,
        CORS_ALLOW_ORIGINS="",
        MAX_IMAGE_BYTES=1024,
    )


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def client(cfg, uploader):
    # Entering the context runs the lifespan (schema + bootstrap admin).
    with TestClient(create_app(cfg, uploader=uploader)) as c:
        yield c


def sign_in(client: TestClient, email: str, password: str) -> Dict[str, str]:
    resp = client.post("/auth/signin", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


def register(client: TestClient, email: str, password: str = "secret-pw", name: str = "Diner") -> dict:
    resp = client.post(
        "/auth/register",
        json={"name": name, "email": email, "password": password, "telephone": "0812345678"},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["user"]


@pytest.fixture
def admin_headers(client) -> Dict[str, str]:
    return sign_in(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def diner(client) -> dict:
    return register(client, "diner@example.com")


@pytest.fixture
def diner_headers(client, diner) -> Dict[str, str]:
    return sign_in(client, "diner@example.com", "secret-pw")


@pytest.fixture
def restaurant(client, admin_headers) -> dict:
    resp = client.post(
        "/restaurants",
        data={"name": "Baan Somtum", "address": "Sathorn, Bangkok", "openTime": "10:00", "closeTime": "22:00"},
        headers=admin_headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()
